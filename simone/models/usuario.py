from simone import db
from datetime import datetime
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

ROL_ADMINISTRADOR = 'Administrador'
ROL_VENDEDOR = 'Vendedor'
ROL_CLIENTE = 'Cliente'
ROLES = (ROL_ADMINISTRADOR, ROL_VENDEDOR, ROL_CLIENTE)


class Usuario(UserMixin, db.Model):
    __tablename__ = 'usuarios'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    nombre_completo = db.Column(db.String(150), nullable=False, default='')
    rol = db.Column(db.String(20), nullable=False, default=ROL_CLIENTE)
    activo = db.Column(db.Boolean, default=True)
    fecha_registro = db.Column(db.DateTime, default=datetime.utcnow)

    # Contacto y envío
    telefono = db.Column(db.String(20))
    cedula = db.Column(db.String(13))
    direccion = db.Column(db.String(250))
    ciudad = db.Column(db.String(120))
    provincia = db.Column(db.String(120))
    codigo_postal = db.Column(db.String(20))
    referencia = db.Column(db.String(250))

    # Datos de depósito usados como respaldo cuando la venta no tiene metadatos
    nombre_depositante = db.Column(db.String(150))
    foto_comprobante_deposito = db.Column(db.String(500))

    # Relaciones
    favoritos = db.relationship('Favorito', backref='usuario', lazy=True, cascade='all, delete-orphan')
    carritos = db.relationship('Carrito', backref='usuario', lazy=True, cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Usuario {self.email} ({self.rol})>'

    @property
    def is_active(self):
        return bool(self.activo)

    @property
    def es_admin(self):
        return self.rol == ROL_ADMINISTRADOR

    @property
    def es_vendedor(self):
        return self.rol == ROL_VENDEDOR

    def has_role(self, role_name):
        return self.activo and self.rol == role_name

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'nombre_completo': self.nombre_completo,
            'rol': self.rol,
            'activo': self.activo,
            'telefono': self.telefono,
            'cedula': self.cedula,
            'direccion': self.direccion,
            'ciudad': self.ciudad,
            'provincia': self.provincia,
            'referencia': self.referencia,
            'fecha_registro': self.fecha_registro.isoformat() if self.fecha_registro else None
        }
