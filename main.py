import logging
import secrets

import click
from sqlalchemy import inspect

from simone import create_app, db
from simone.models.usuario import Usuario, ROL_ADMINISTRADOR

logger = logging.getLogger(__name__)

# Crear la aplicación primero
app = create_app()

# Configurar secret key si no está configurada
if not app.config.get('SECRET_KEY') or app.config['SECRET_KEY'] == 'dev-key-change-in-production':
    app.config['SECRET_KEY'] = secrets.token_hex(16)


# Comando CLI para inicializar la base de datos
@app.cli.command("init-db")
def init_db():
    """Initialize the database"""
    db.create_all()
    tablas = inspect(db.engine).get_table_names()
    click.echo(f"✅ Base de datos inicializada ({len(tablas)} tablas)")


@app.cli.command("crear-admin")
@click.option('--email', prompt=True, help='Email del administrador')
@click.option('--nombre', default='Administrador Principal', help='Nombre completo')
@click.password_option(help='Contraseña inicial')
def crear_admin(email, nombre, password):
    """Crear el usuario administrador inicial"""
    email = email.strip().lower()
    existente = Usuario.query.filter_by(email=email).first()
    if existente:
        click.echo(f"✅ El usuario {existente.email} ya existe ({existente.rol})")
        return

    try:
        admin = Usuario(email=email, nombre_completo=nombre, rol=ROL_ADMINISTRADOR, activo=True)
        admin.set_password(password)
        db.session.add(admin)
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception('Error al crear administrador %s', email)
        raise click.ClickException('No se pudo crear el administrador')

    click.echo(f"✅ Administrador creado: {admin.email} (ID {admin.id})")
    click.echo("⚠️ Cambia la contraseña después del primer login!")


if __name__ == "__main__":
    print("🚀 Iniciando servidor de Simone...")
    print(f"📊 Modo debug: {app.config.get('DEBUG', False)}")
    print(f"🌐 Servidor ejecutándose en: http://localhost:5000")
    app.run(host="0.0.0.0", port=5000, debug=True)
