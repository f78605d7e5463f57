# simone/__init__.py
import os
from datetime import timedelta

from flask import Flask, jsonify
from flask_login import LoginManager
from flask_mail import Mail
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from dotenv import load_dotenv

from config import Config

# Cargar variables de entorno
load_dotenv()

# Initialize extensions
login_manager = LoginManager()
mail = Mail()
db = SQLAlchemy()
migrate = Migrate()


def create_app(config_class=Config):
    app = Flask(__name__)

    # Cargar configuración
    app.config.from_object(config_class)

    app.config.update(
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SECURE=False,  # True en producción con HTTPS
        REMEMBER_COOKIE_HTTPONLY=True,
        REMEMBER_COOKIE_DURATION=timedelta(days=1),
        PERMANENT_SESSION_LIFETIME=timedelta(days=1),
    )

    # Carpetas de archivos (comprobantes y configuraciones JSON)
    os.makedirs(os.path.join(app.config['UPLOAD_FOLDER'], 'comprobantes'), exist_ok=True)
    os.makedirs(app.config['DATA_FOLDER'], exist_ok=True)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    login_manager.init_app(app)
    login_manager.login_view = 'auth.login'
    login_manager.login_message = 'Por favor inicia sesión para acceder a esta página.'
    login_manager.login_message_category = 'danger'

    mail.init_app(app)

    # USER LOADER DEBE ESTAR ANTES DE LOS BLUEPRINTS
    from simone.models.usuario import Usuario

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(Usuario, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'success': False, 'error': 'Debes iniciar sesión.'}), 401

    # Importar modelos para que SQLAlchemy los detecte
    from simone import models  # noqa: F401

    # Register blueprints
    from simone.routes.auth import auth_bp
    from simone.routes.compras import compras_bp
    from simone.routes.carrito import carrito_bp
    from simone.routes.mis_compras import mis_compras_bp
    from simone.routes.vendedor import vendedor_bp
    from simone.routes.admin import admin_bp
    from simone.routes.admin_bancos import admin_bancos_bp
    from simone.routes.admin_ventas import admin_ventas_bp
    from simone.routes.api import api_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(compras_bp)
    app.register_blueprint(carrito_bp)
    app.register_blueprint(mis_compras_bp)
    app.register_blueprint(vendedor_bp, url_prefix='/vendedor')
    app.register_blueprint(admin_bp, url_prefix='/admin')
    app.register_blueprint(admin_bancos_bp, url_prefix='/admin/bancos')
    app.register_blueprint(admin_ventas_bp, url_prefix='/admin/ventas')
    app.register_blueprint(api_bp, url_prefix='/api')

    return app
