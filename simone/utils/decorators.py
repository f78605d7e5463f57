from functools import wraps

from flask import session, jsonify

from simone import db
from simone.models.usuario import Usuario, ROL_ADMINISTRADOR, ROL_VENDEDOR


def get_current_user():
    """Obtener el usuario actual de la sesión"""
    user_id = session.get('user_id')
    if not user_id:
        return None
    return db.session.get(Usuario, user_id)


def login_required_sessions(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = get_current_user()
        if not user or not user.activo:
            return jsonify({'success': False, 'error': 'Por favor inicia sesión'}), 401
        return f(*args, **kwargs)
    return decorated_function


def role_required(*roles):
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = get_current_user()
            if not user or not user.activo:
                return jsonify({'success': False, 'error': 'Por favor inicia sesión'}), 401
            if user.rol not in roles:
                return jsonify({'success': False, 'error': 'Acceso no autorizado'}), 403
            return f(*args, **kwargs)
        return decorated_function
    return decorator


admin_required = role_required(ROL_ADMINISTRADOR)
vendedor_required = role_required(ROL_VENDEDOR)
