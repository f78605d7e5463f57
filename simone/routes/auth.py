import logging

from flask import Blueprint, request, session, jsonify, url_for
from flask_login import login_user, logout_user

from simone import db
from simone.models.usuario import Usuario, ROL_CLIENTE, ROL_VENDEDOR
from simone.services import mail_service
from simone.utils.decorators import login_required_sessions, get_current_user
from simone.utils.http import datos_request, texto
from simone.utils.security import generate_password_reset_token, verify_password_reset_token

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)

CAMPOS_PERFIL = ('nombre_completo', 'telefono', 'cedula', 'direccion', 'ciudad', 'provincia',
                 'codigo_postal', 'referencia', 'nombre_depositante')


@auth_bp.route('/register', methods=['POST'])
def register():
    datos = datos_request()
    email = texto(datos.get('email')).lower()
    password = str(datos.get('password') or '')
    rol = datos.get('rol') if datos.get('rol') in (ROL_CLIENTE, ROL_VENDEDOR) else ROL_CLIENTE

    if not email or len(password) < 6:
        return jsonify({'success': False, 'error': 'Email y contraseña (mínimo 6 caracteres) son obligatorios'}), 400

    if Usuario.query.filter_by(email=email).first():
        return jsonify({'success': False, 'error': 'Este email ya está registrado'}), 400

    try:
        usuario = Usuario(email=email, rol=rol, nombre_completo=texto(datos.get('nombre_completo')))
        for campo in CAMPOS_PERFIL[1:]:
            if datos.get(campo):
                setattr(usuario, campo, texto(datos.get(campo)))
        usuario.set_password(password)
        db.session.add(usuario)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.exception('Error registrando %s', email)
        return jsonify({'success': False, 'error': str(e)}), 500

    logger.info('Usuario registrado: %s (%s)', email, rol)
    return jsonify({'success': True, 'usuario': usuario.to_dict()}), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    datos = datos_request()
    email = texto(datos.get('email')).lower()
    password = str(datos.get('password') or '')

    usuario = Usuario.query.filter_by(email=email).first()
    if not usuario or not usuario.check_password(password):
        return jsonify({'success': False, 'error': 'Email o contraseña incorrectos'}), 401
    if not usuario.activo:
        return jsonify({'success': False, 'error': 'Tu cuenta está desactivada. Contacta al administrador.'}), 403

    session['user_id'] = usuario.id
    session['user_email'] = usuario.email
    session['user_role'] = usuario.rol
    login_user(usuario)

    return jsonify({'success': True, 'usuario': usuario.to_dict()})


@auth_bp.route('/logout', methods=['GET', 'POST'])
def logout():
    logout_user()
    session.clear()
    return jsonify({'success': True, 'message': 'Sesión cerrada exitosamente'})


# ==================== RECUPERACIÓN DE CONTRASEÑA ====================

@auth_bp.route('/password/olvido', methods=['POST'])
def password_olvido():
    email = texto(datos_request().get('email')).lower()
    usuario = Usuario.query.filter_by(email=email).first() if email else None
    if usuario and usuario.activo:
        token = generate_password_reset_token(usuario.email)
        enlace = url_for('auth.password_reset', token=token, _external=True)
        mail_service.enviar_recuperacion_password(usuario, enlace)
    # Misma respuesta exista o no el correo
    return jsonify({'success': True, 'message': 'Si el correo está registrado recibirás un enlace de recuperación'})


@auth_bp.route('/password/reset/<token>', methods=['POST'])
def password_reset(token):
    email = verify_password_reset_token(token)
    if not email:
        return jsonify({'success': False, 'error': 'El enlace es inválido o ha expirado'}), 400

    usuario = Usuario.query.filter_by(email=email).first()
    if not usuario:
        return jsonify({'success': False, 'error': 'Usuario no encontrado'}), 404

    password = str(datos_request().get('password') or '')
    if len(password) < 6:
        return jsonify({'success': False, 'error': 'La contraseña debe tener al menos 6 caracteres'}), 400

    usuario.set_password(password)
    db.session.commit()
    logger.info('Contraseña restablecida para %s', email)
    return jsonify({'success': True, 'message': 'Contraseña actualizada'})


# ==================== PERFIL ====================

@auth_bp.route('/perfil', methods=['GET', 'POST'])
@login_required_sessions
def perfil():
    usuario = get_current_user()
    if request.method == 'GET':
        return jsonify({'success': True, 'usuario': usuario.to_dict()})

    datos = datos_request()
    try:
        for campo in CAMPOS_PERFIL:
            if campo in datos:
                valor = texto(datos.get(campo))
                if campo != 'nombre_completo':
                    valor = valor or None
                setattr(usuario, campo, valor)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        return jsonify({'success': False, 'error': str(e)}), 500
    return jsonify({'success': True, 'usuario': usuario.to_dict()})
