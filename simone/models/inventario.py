from simone import db
from datetime import datetime

MOVIMIENTO_ENTRADA = 'Entrada'
MOVIMIENTO_SALIDA = 'Salida'

MOTIVO_DEVOLUCION = 'devolucion'
MOTIVO_DEPOSITO_FALSO = 'deposito_falso'
MOTIVO_OTRO = 'otro'


class MovimientoInventario(db.Model):
    __tablename__ = 'movimientos_inventario'

    id = db.Column(db.Integer, primary_key=True)
    producto_id = db.Column(db.Integer, db.ForeignKey('productos.id'), nullable=False, index=True)
    variante_id = db.Column(db.Integer, db.ForeignKey('producto_variantes.id'), nullable=True)
    tipo = db.Column(db.String(10), nullable=False)
    cantidad = db.Column(db.Integer, nullable=False)
    descripcion = db.Column(db.String(250))
    fecha = db.Column(db.DateTime, default=datetime.utcnow)

    producto = db.relationship('Producto')

    def to_dict(self):
        return {
            'id': self.id,
            'producto_id': self.producto_id,
            'variante_id': self.variante_id,
            'tipo': self.tipo,
            'cantidad': self.cantidad,
            'descripcion': self.descripcion,
            'fecha': self.fecha.isoformat() if self.fecha else None
        }


class Devolucion(db.Model):
    __tablename__ = 'devoluciones'

    id = db.Column(db.Integer, primary_key=True)
    detalle_venta_id = db.Column(db.Integer, db.ForeignKey('detalle_ventas.id'), nullable=False, index=True)
    cantidad_devuelta = db.Column(db.Integer, nullable=False)
    motivo = db.Column(db.String(300), nullable=False)
    aprobada = db.Column(db.Boolean, default=True)
    fecha_devolucion = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'detalle_venta_id': self.detalle_venta_id,
            'cantidad_devuelta': self.cantidad_devuelta,
            'motivo': self.motivo,
            'aprobada': self.aprobada,
            'fecha_devolucion': self.fecha_devolucion.isoformat() if self.fecha_devolucion else None
        }
