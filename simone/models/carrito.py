from simone import db
from datetime import datetime

CARRITO_VACIO = 'Vacio'
CARRITO_EN_USO = 'En Uso'
CARRITO_CERRADO = 'Cerrado'


class Carrito(db.Model):
    __tablename__ = 'carritos'

    id = db.Column(db.Integer, primary_key=True)
    usuario_id = db.Column(db.Integer, db.ForeignKey('usuarios.id'), nullable=False, index=True)
    estado = db.Column(db.String(20), default=CARRITO_VACIO)
    fecha_creacion = db.Column(db.DateTime, default=datetime.utcnow)
    fecha_actualizacion = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relación con los detalles del carrito
    detalles = db.relationship('CarritoDetalle', backref='carrito', lazy=True, cascade='all, delete-orphan')

    def calcular_subtotal(self):
        return round(sum(d.subtotal for d in self.detalles), 2)

    def cantidad_items(self):
        return sum(d.cantidad for d in self.detalles)

    def to_dict(self):
        return {
            'id': self.id,
            'usuario_id': self.usuario_id,
            'estado': self.estado,
            'count': self.cantidad_items(),
            'subtotal': self.calcular_subtotal(),
            'items': [d.to_dict() for d in self.detalles],
            'fecha_creacion': self.fecha_creacion.isoformat() if self.fecha_creacion else None
        }


class CarritoDetalle(db.Model):
    __tablename__ = 'carrito_detalles'

    id = db.Column(db.Integer, primary_key=True)
    carrito_id = db.Column(db.Integer, db.ForeignKey('carritos.id'), nullable=False, index=True)
    producto_id = db.Column(db.Integer, db.ForeignKey('productos.id'), nullable=False, index=True)
    variante_id = db.Column(db.Integer, db.ForeignKey('producto_variantes.id'), nullable=True)
    cantidad = db.Column(db.Integer, nullable=False, default=1)
    precio = db.Column(db.Float, nullable=False, default=0.0)
    fecha_agregado = db.Column(db.DateTime, default=datetime.utcnow)

    producto = db.relationship('Producto')
    variante = db.relationship('ProductoVariante')

    @property
    def subtotal(self):
        return round((self.precio or 0) * (self.cantidad or 0), 2)

    @property
    def stock_referencia(self):
        """Stock de la variante elegida o, si no hay, del producto."""
        if self.variante is not None:
            return self.variante.stock or 0
        return self.producto.stock if self.producto else 0

    def to_dict(self):
        return {
            'id': self.id,
            'producto_id': self.producto_id,
            'variante_id': self.variante_id,
            'nombre': self.producto.nombre if self.producto else None,
            'vendedor_id': self.producto.vendedor_id if self.producto else None,
            'cantidad': self.cantidad,
            'precio': self.precio,
            'subtotal': self.subtotal
        }
