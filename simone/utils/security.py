# simone/utils/security.py
import logging

from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired
from flask import current_app

logger = logging.getLogger(__name__)

RESET_SALT = 'password-reset'
RESET_EXPIRATION = 3600


def generate_password_reset_token(email):
    """Generate password reset token."""
    serializer = URLSafeTimedSerializer(current_app.config['SECRET_KEY'])
    return serializer.dumps(email, salt=RESET_SALT)


def verify_password_reset_token(token, expiration=RESET_EXPIRATION):
    """Verify password reset token."""
    serializer = URLSafeTimedSerializer(current_app.config['SECRET_KEY'])
    try:
        return serializer.loads(token, salt=RESET_SALT, max_age=expiration)
    except SignatureExpired:
        logger.warning('Token de recuperación expirado')
        return None
    except BadSignature:
        logger.warning('Token de recuperación inválido')
        return None
