import os
from dotenv import load_dotenv

load_dotenv()

class Config:
    # Security
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-key-change-in-production')

    # Database
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'sqlite:///simone.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Email
    MAIL_SERVER = os.getenv('MAIL_SERVER', 'smtp.gmail.com')
    MAIL_PORT = int(os.getenv('MAIL_PORT', 587))
    MAIL_USE_TLS = True
    MAIL_USERNAME = os.getenv('MAIL_USERNAME')
    MAIL_PASSWORD = os.getenv('MAIL_PASSWORD')
    MAIL_DEFAULT_SENDER = os.getenv('MAIL_DEFAULT_SENDER', 'no-reply@simone.ec')
    ADMIN_EMAIL = os.getenv('ADMIN_EMAIL', 'admin@simone.ec')

    # Uploads (comprobantes de depósito en UPLOAD_FOLDER/comprobantes)
    UPLOAD_FOLDER = os.getenv('UPLOAD_FOLDER', 'uploads')
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024

    # Archivos JSON de configuración (bancos, tarifas de envío)
    DATA_FOLDER = os.getenv('DATA_FOLDER', 'App_Data')

    # Cache en memoria para configuraciones
    CACHE_TTL_SECONDS = int(os.getenv('CACHE_TTL_SECONDS', 300))

    # Paginación
    CATALOGO_PAGE_SIZE = 20
    ADMIN_PAGE_SIZE = 20

    # Comisiones
    COMISION_PORCENTAJE_DEFECTO = float(os.getenv('COMISION_PORCENTAJE_DEFECTO', 10))


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    MAIL_SUPPRESS_SEND = True
    CACHE_TTL_SECONDS = 60
