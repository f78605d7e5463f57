from simone import db
from datetime import datetime
import secrets

# Estados del pedido
ESTADO_PENDIENTE = 'Pendiente'
ESTADO_CONFIRMADO = 'Confirmado'
ESTADO_EN_PROCESO = 'EnProceso'
ESTADO_ENVIADO = 'Enviado'
ESTADO_ENTREGADO = 'Entregado'
ESTADO_CANCELADO = 'Cancelado'
ESTADOS_PEDIDO = (ESTADO_PENDIENTE, ESTADO_CONFIRMADO, ESTADO_EN_PROCESO,
                  ESTADO_ENVIADO, ESTADO_ENTREGADO, ESTADO_CANCELADO)

# Estados del pago (depósito bancario verificado manualmente)
PAGO_PENDIENTE = 'Pendiente'
PAGO_PAGADO = 'Pagado'
PAGO_RECHAZADO = 'Rechazado'

# Estados de una línea de venta
LINEA_NORMAL = 'Normal'
LINEA_DEVUELTO = 'Devuelto'
LINEA_CANCELADO = 'Cancelado'

METODO_TRANSFERENCIA = 'Transferencia'


class Venta(db.Model):
    __tablename__ = 'ventas'

    id = db.Column(db.Integer, primary_key=True)
    numero_orden = db.Column(db.String(50), unique=True, nullable=False)
    usuario_id = db.Column(db.Integer, db.ForeignKey('usuarios.id'), nullable=True, index=True)

    fecha_venta = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    estado = db.Column(db.String(30), default=ESTADO_PENDIENTE)
    metodo_pago = db.Column(db.String(50), default=METODO_TRANSFERENCIA)

    # Pago
    estado_pago = db.Column(db.String(20), default=PAGO_PENDIENTE, index=True)
    fecha_pago = db.Column(db.DateTime, index=True)

    # Envío
    direccion = db.Column(db.String(250))
    ciudad = db.Column(db.String(120))
    provincia = db.Column(db.String(120))

    # Montos
    subtotal = db.Column(db.Float, nullable=False, default=0.0)
    descuento = db.Column(db.Float, default=0.0)
    envio_total = db.Column(db.Float, default=0.0)
    total = db.Column(db.Float, nullable=False, default=0.0)
    cupon_codigo = db.Column(db.String(50))

    notas = db.Column(db.Text)
    fecha_actualizacion = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relaciones
    usuario = db.relationship('Usuario', backref=db.backref('ventas', lazy=True))
    detalles = db.relationship('DetalleVenta', backref='venta', lazy=True, cascade='all, delete-orphan',
                               order_by='DetalleVenta.id')
    historial = db.relationship('VentaHistorial', backref='venta', lazy=True, cascade='all, delete-orphan',
                                order_by='VentaHistorial.id')

    def __repr__(self):
        return f'<Venta {self.numero_orden} - {self.estado}>'

    @property
    def esta_cancelada(self):
        return 'cancel' in (self.estado or '').lower()

    def calcular_subtotal(self):
        return round(sum(d.subtotal for d in self.detalles), 2)

    def agregar_historial(self, estado_anterior, estado_nuevo, comentario=None, usuario_id=None):
        """Agregar entrada al historial"""
        entrada = VentaHistorial(
            estado_anterior=estado_anterior,
            estado_nuevo=estado_nuevo,
            comentario=comentario,
            usuario_id=usuario_id
        )
        self.historial.append(entrada)
        return entrada

    def cambiar_estado(self, nuevo_estado, comentario=None, usuario_id=None):
        """Actualizar estado y agregar al historial"""
        anterior = self.estado
        self.estado = nuevo_estado
        self.fecha_actualizacion = datetime.utcnow()
        return self.agregar_historial(anterior, nuevo_estado, comentario, usuario_id)

    def to_dict(self, incluir_detalles=True):
        data = {
            'id': self.id,
            'numero_orden': self.numero_orden,
            'usuario_id': self.usuario_id,
            'fecha_venta': self.fecha_venta.isoformat() if self.fecha_venta else None,
            'estado': self.estado,
            'estado_pago': self.estado_pago,
            'fecha_pago': self.fecha_pago.isoformat() if self.fecha_pago else None,
            'metodo_pago': self.metodo_pago,
            'direccion': self.direccion,
            'subtotal': self.subtotal,
            'descuento': self.descuento,
            'envio_total': self.envio_total,
            'total': self.total,
            'cupon_codigo': self.cupon_codigo,
            'notas': self.notas
        }
        if incluir_detalles:
            data['detalles'] = [d.to_dict() for d in self.detalles]
        return data

    @classmethod
    def generar_numero_orden(cls):
        timestamp = datetime.now().strftime('%Y%m%d%H%M%S')
        return f'ORD-{timestamp}-{secrets.token_hex(2).upper()}'


class DetalleVenta(db.Model):
    __tablename__ = 'detalle_ventas'

    id = db.Column(db.Integer, primary_key=True)
    venta_id = db.Column(db.Integer, db.ForeignKey('ventas.id'), nullable=False, index=True)
    producto_id = db.Column(db.Integer, db.ForeignKey('productos.id'), nullable=False)
    variante_id = db.Column(db.Integer, db.ForeignKey('producto_variantes.id'), nullable=True)

    # Vendedor del producto al momento de la compra
    vendedor_id = db.Column(db.Integer, db.ForeignKey('usuarios.id'), nullable=True, index=True)

    cantidad = db.Column(db.Integer, nullable=False)
    precio_unitario = db.Column(db.Float, nullable=False)
    descuento = db.Column(db.Float, default=0.0)
    subtotal = db.Column(db.Float, nullable=False)
    estado = db.Column(db.String(20), default=LINEA_NORMAL)

    # Comisiones
    comision_calculada = db.Column(db.Boolean, default=False)
    pago_comision_id = db.Column(db.Integer, db.ForeignKey('pagos_comision.id'), nullable=True)

    fecha_creacion = db.Column(db.DateTime, default=datetime.utcnow)

    producto = db.relationship('Producto')
    variante = db.relationship('ProductoVariante')
    vendedor = db.relationship('Usuario', foreign_keys=[vendedor_id])
    devoluciones = db.relationship('Devolucion', backref='detalle_venta', lazy=True, cascade='all, delete-orphan')

    def __repr__(self):
        return f'<DetalleVenta {self.producto_id} x {self.cantidad}>'

    def calcular_subtotal(self):
        self.subtotal = round(self.cantidad * self.precio_unitario - (self.descuento or 0), 2)
        return self.subtotal

    def to_dict(self):
        return {
            'id': self.id,
            'venta_id': self.venta_id,
            'producto_id': self.producto_id,
            'producto': self.producto.nombre if self.producto else f'#{self.producto_id}',
            'variante_id': self.variante_id,
            'vendedor_id': self.vendedor_id,
            'cantidad': self.cantidad,
            'precio_unitario': self.precio_unitario,
            'descuento': self.descuento,
            'subtotal': self.subtotal,
            'estado': self.estado,
            'comision_calculada': self.comision_calculada
        }


class VentaHistorial(db.Model):
    __tablename__ = 'venta_historial'

    id = db.Column(db.Integer, primary_key=True)
    venta_id = db.Column(db.Integer, db.ForeignKey('ventas.id'), nullable=False, index=True)
    estado_anterior = db.Column(db.String(30))
    estado_nuevo = db.Column(db.String(30))
    comentario = db.Column(db.Text)
    usuario_id = db.Column(db.Integer, db.ForeignKey('usuarios.id'), nullable=True)
    fecha_cambio = db.Column(db.DateTime, default=datetime.utcnow)

    usuario = db.relationship('Usuario')

    def to_dict(self):
        return {
            'id': self.id,
            'venta_id': self.venta_id,
            'estado_anterior': self.estado_anterior,
            'estado_nuevo': self.estado_nuevo,
            'comentario': self.comentario,
            'usuario_id': self.usuario_id,
            'usuario': self.usuario.email if self.usuario else None,
            'fecha_cambio': self.fecha_cambio.isoformat() if self.fecha_cambio else None,
            'formatted_date': self.fecha_cambio.strftime('%d/%m/%Y %H:%M') if self.fecha_cambio else None
        }
