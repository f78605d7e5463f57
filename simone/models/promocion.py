from simone import db
from datetime import datetime


class Promocion(db.Model):
    __tablename__ = 'promociones'

    id = db.Column(db.Integer, primary_key=True)
    codigo_cupon = db.Column(db.String(50), unique=True, nullable=False)
    descripcion = db.Column(db.String(250))
    descuento = db.Column(db.Float, nullable=False)
    fecha_inicio = db.Column(db.DateTime, nullable=True)
    fecha_fin = db.Column(db.DateTime, nullable=True)

    __table_args__ = (
        db.CheckConstraint('descuento > 0', name='ck_promocion_descuento_positivo'),
    )

    def es_vigente(self, ahora=None):
        ahora = ahora or datetime.utcnow()
        if self.fecha_inicio and self.fecha_inicio > ahora:
            return False
        if self.fecha_fin and self.fecha_fin < ahora:
            return False
        return True

    def to_dict(self):
        return {
            'id': self.id,
            'codigo_cupon': self.codigo_cupon,
            'descripcion': self.descripcion,
            'descuento': self.descuento,
            'fecha_inicio': self.fecha_inicio.isoformat() if self.fecha_inicio else None,
            'fecha_fin': self.fecha_fin.isoformat() if self.fecha_fin else None
        }
