from simone import db
from datetime import datetime

# Tipos de configuración de comisión
TIPO_GLOBAL = 'Global'
TIPO_POR_VENDEDOR = 'PorVendedor'
TIPO_POR_CATEGORIA = 'PorCategoria'
TIPO_ESCALONADO = 'Escalonado'
TIPOS_COMISION = (TIPO_GLOBAL, TIPO_POR_VENDEDOR, TIPO_POR_CATEGORIA, TIPO_ESCALONADO)

# Estados de una liquidación
PAGO_COMISION_PENDIENTE = 'Pendiente'
PAGO_COMISION_APROBADO = 'Aprobado'
PAGO_COMISION_PAGADO = 'Pagado'
PAGO_COMISION_CANCELADO = 'Cancelado'
ESTADOS_PAGO_COMISION = (PAGO_COMISION_PENDIENTE, PAGO_COMISION_APROBADO,
                         PAGO_COMISION_PAGADO, PAGO_COMISION_CANCELADO)

MESES_CORTOS = ('Ene', 'Feb', 'Mar', 'Abr', 'May', 'Jun', 'Jul', 'Ago', 'Sep', 'Oct', 'Nov', 'Dic')
MESES_LARGOS = ('Enero', 'Febrero', 'Marzo', 'Abril', 'Mayo', 'Junio', 'Julio', 'Agosto',
                'Septiembre', 'Octubre', 'Noviembre', 'Diciembre')


def nombre_mes_corto(mes):
    if 1 <= (mes or 0) <= 12:
        return MESES_CORTOS[mes - 1]
    return '???'


def nombre_mes(mes):
    if 1 <= (mes or 0) <= 12:
        return MESES_LARGOS[mes - 1]
    return 'Desconocido'


class ConfiguracionComision(db.Model):
    __tablename__ = 'configuraciones_comision'

    id = db.Column(db.Integer, primary_key=True)
    tipo_comision = db.Column(db.String(30), nullable=False, default=TIPO_GLOBAL)
    vendedor_id = db.Column(db.Integer, db.ForeignKey('usuarios.id'), nullable=True)
    categoria_id = db.Column(db.Integer, db.ForeignKey('categorias.id'), nullable=True)
    porcentaje = db.Column(db.Float, nullable=False, default=10.0)
    monto_minimo = db.Column(db.Float, nullable=True)
    monto_maximo = db.Column(db.Float, nullable=True)
    fecha_inicio = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    fecha_fin = db.Column(db.DateTime, nullable=True)
    activo = db.Column(db.Boolean, default=True)
    descripcion = db.Column(db.String(250))
    creado_utc = db.Column(db.DateTime, default=datetime.utcnow)
    modificado_utc = db.Column(db.DateTime)
    creado_por = db.Column(db.Integer, db.ForeignKey('usuarios.id'), nullable=True)

    vendedor = db.relationship('Usuario', foreign_keys=[vendedor_id])
    categoria = db.relationship('Categoria')

    def esta_vigente(self, ahora=None):
        ahora = ahora or datetime.utcnow()
        return (self.activo and self.fecha_inicio <= ahora
                and (self.fecha_fin is None or self.fecha_fin >= ahora))

    def to_dict(self):
        return {
            'id': self.id,
            'tipo_comision': self.tipo_comision,
            'vendedor_id': self.vendedor_id,
            'categoria_id': self.categoria_id,
            'porcentaje': self.porcentaje,
            'porcentaje_texto': f'{self.porcentaje:.2f}%',
            'monto_minimo': self.monto_minimo,
            'monto_maximo': self.monto_maximo,
            'fecha_inicio': self.fecha_inicio.isoformat() if self.fecha_inicio else None,
            'fecha_fin': self.fecha_fin.isoformat() if self.fecha_fin else None,
            'activo': self.activo,
            'vigente': self.esta_vigente(),
            'descripcion': self.descripcion
        }


class PagoComision(db.Model):
    __tablename__ = 'pagos_comision'

    id = db.Column(db.Integer, primary_key=True)
    vendedor_id = db.Column(db.Integer, db.ForeignKey('usuarios.id'), nullable=False, index=True)

    # Período
    periodo_inicio = db.Column(db.DateTime, nullable=False)
    periodo_fin = db.Column(db.DateTime, nullable=False)
    numero_quincena = db.Column(db.Integer, nullable=False)
    anio = db.Column(db.Integer, nullable=False)
    mes = db.Column(db.Integer, nullable=False)

    # Montos
    monto_ventas = db.Column(db.Float, nullable=False, default=0.0)
    cantidad_pedidos = db.Column(db.Integer, default=0)
    cantidad_productos = db.Column(db.Integer, default=0)
    porcentaje_aplicado = db.Column(db.Float, default=0.0)
    monto_comision = db.Column(db.Float, nullable=False, default=0.0)
    deducciones = db.Column(db.Float, default=0.0)
    bonificaciones = db.Column(db.Float, default=0.0)
    monto_final = db.Column(db.Float, default=0.0)

    estado = db.Column(db.String(20), nullable=False, default=PAGO_COMISION_PENDIENTE)

    # Pago
    fecha_pago = db.Column(db.DateTime)
    metodo_pago = db.Column(db.String(100))
    numero_comprobante = db.Column(db.String(200))
    banco_entidad = db.Column(db.String(200))

    notas = db.Column(db.Text)

    creado_utc = db.Column(db.DateTime, default=datetime.utcnow)
    modificado_utc = db.Column(db.DateTime)
    creado_por = db.Column(db.Integer, db.ForeignKey('usuarios.id'), nullable=True)
    aprobado_por = db.Column(db.Integer, db.ForeignKey('usuarios.id'), nullable=True)
    pagado_por = db.Column(db.Integer, db.ForeignKey('usuarios.id'), nullable=True)

    vendedor = db.relationship('Usuario', foreign_keys=[vendedor_id])
    detalles = db.relationship('PagoComisionDetalle', backref='pago', lazy=True, cascade='all, delete-orphan')

    def __repr__(self):
        return f'<PagoComision {self.vendedor_id} {self.periodo_nombre} - {self.estado}>'

    @property
    def periodo_nombre(self):
        return f'{nombre_mes_corto(self.mes)} {self.anio} - Q{self.numero_quincena}'

    @property
    def rango_fechas(self):
        return f"{self.periodo_inicio:%d/%m/%Y} - {self.periodo_fin:%d/%m/%Y}"

    def calcular_monto_final(self):
        self.monto_final = round((self.monto_comision or 0) - (self.deducciones or 0)
                                 + (self.bonificaciones or 0), 2)
        return self.monto_final

    def aprobar(self, aprobado_por):
        self.estado = PAGO_COMISION_APROBADO
        self.aprobado_por = aprobado_por
        self.modificado_utc = datetime.utcnow()

    def marcar_pagado(self, pagado_por, metodo_pago, comprobante=None):
        self.estado = PAGO_COMISION_PAGADO
        self.fecha_pago = datetime.utcnow()
        self.pagado_por = pagado_por
        self.metodo_pago = metodo_pago
        self.numero_comprobante = comprobante
        self.modificado_utc = datetime.utcnow()

    def cancelar(self, motivo):
        self.estado = PAGO_COMISION_CANCELADO
        self.notas = motivo if not self.notas else f'{self.notas}\n[Cancelado]: {motivo}'
        self.modificado_utc = datetime.utcnow()

    def to_dict(self, incluir_detalles=False):
        data = {
            'id': self.id,
            'vendedor_id': self.vendedor_id,
            'vendedor': self.vendedor.nombre_completo if self.vendedor else None,
            'periodo_nombre': self.periodo_nombre,
            'rango_fechas': self.rango_fechas,
            'numero_quincena': self.numero_quincena,
            'anio': self.anio,
            'mes': self.mes,
            'monto_ventas': self.monto_ventas,
            'cantidad_pedidos': self.cantidad_pedidos,
            'cantidad_productos': self.cantidad_productos,
            'porcentaje_aplicado': self.porcentaje_aplicado,
            'monto_comision': self.monto_comision,
            'deducciones': self.deducciones,
            'bonificaciones': self.bonificaciones,
            'monto_final': self.monto_final,
            'estado': self.estado,
            'fecha_pago': self.fecha_pago.isoformat() if self.fecha_pago else None,
            'metodo_pago': self.metodo_pago,
            'numero_comprobante': self.numero_comprobante,
            'banco_entidad': self.banco_entidad,
            'notas': self.notas
        }
        if incluir_detalles:
            data['detalles'] = [d.to_dict() for d in self.detalles]
        return data


class PagoComisionDetalle(db.Model):
    __tablename__ = 'pagos_comision_detalle'

    id = db.Column(db.Integer, primary_key=True)
    pago_id = db.Column(db.Integer, db.ForeignKey('pagos_comision.id'), nullable=False, index=True)
    venta_id = db.Column(db.Integer, db.ForeignKey('ventas.id'), nullable=False)
    monto_pedido = db.Column(db.Float, nullable=False, default=0.0)
    comision_pedido = db.Column(db.Float, nullable=False, default=0.0)

    def to_dict(self):
        return {
            'id': self.id,
            'pago_id': self.pago_id,
            'venta_id': self.venta_id,
            'monto_pedido': self.monto_pedido,
            'comision_pedido': self.comision_pedido
        }
