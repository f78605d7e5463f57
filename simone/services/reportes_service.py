from datetime import datetime, timedelta

from sqlalchemy import func

from simone import db
from simone.models.usuario import Usuario, ROL_CLIENTE
from simone.models.venta import Venta, DetalleVenta
from simone.services.comprobantes import detalle_pago


def metricas():
    """Totales generales para el panel de reportes."""
    hace_un_mes = datetime.utcnow() - timedelta(days=30)
    return {
        'total_ventas': Venta.query.count(),
        'total_ingresos': round(db.session.query(func.coalesce(func.sum(Venta.total), 0.0)).scalar() or 0.0, 2),
        'productos_vendidos': int(db.session.query(func.coalesce(func.sum(DetalleVenta.cantidad), 0)).scalar() or 0),
        'clientes_nuevos': Usuario.query.filter(Usuario.rol == ROL_CLIENTE,
                                                Usuario.fecha_registro >= hace_un_mes).count()
    }


def _comprador(venta):
    usuario = venta.usuario
    return {
        'id': usuario.id if usuario else None,
        'nombre': usuario.nombre_completo if usuario else 'Desconocido',
        'email': usuario.email if usuario else None
    }


def ventas_recientes(limit=50):
    ventas = Venta.query.order_by(Venta.fecha_venta.desc()).limit(limit).all()
    return [{
        'id': v.id,
        'numero_orden': v.numero_orden,
        'fecha_venta': v.fecha_venta.isoformat() if v.fecha_venta else None,
        'comprador': _comprador(v),
        'estado': v.estado,
        'estado_pago': v.estado_pago,
        'total': v.total,
        'items': sum(d.cantidad for d in v.detalles)
    } for v in ventas]


def venta_detalle(venta_id):
    venta = db.session.get(Venta, venta_id)
    if venta is None:
        return None
    usuario = venta.usuario
    return {
        'venta': venta.to_dict(),
        'comprador': _comprador(venta),
        'perfil_envio': {
            'direccion': venta.direccion or (usuario.direccion if usuario else None),
            'ciudad': venta.ciudad or (usuario.ciudad if usuario else None),
            'provincia': venta.provincia or (usuario.provincia if usuario else None),
            'telefono': usuario.telefono if usuario else None,
            'referencia': usuario.referencia if usuario else None
        },
        'historial': [h.to_dict() for h in venta.historial],
        'pago': detalle_pago(venta)
    }
