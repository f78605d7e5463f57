from simone import db
from datetime import datetime


class Favorito(db.Model):
    __tablename__ = 'favoritos'

    id = db.Column(db.Integer, primary_key=True)
    usuario_id = db.Column(db.Integer, db.ForeignKey('usuarios.id'), nullable=False)
    producto_id = db.Column(db.Integer, db.ForeignKey('productos.id'), nullable=False)
    fecha_agregado = db.Column(db.DateTime, default=datetime.utcnow)

    # Índice único para evitar duplicados
    __table_args__ = (
        db.UniqueConstraint('usuario_id', 'producto_id', name='unique_usuario_producto_favorito'),
    )

    producto = db.relationship('Producto')

    def to_dict(self):
        return {
            'id': self.id,
            'usuario_id': self.usuario_id,
            'producto_id': self.producto_id,
            'fecha_agregado': self.fecha_agregado.isoformat() if self.fecha_agregado else None,
            'producto': self.producto.to_dict(incluir_variantes=False) if self.producto else None
        }
