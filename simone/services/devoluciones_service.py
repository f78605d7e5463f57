import logging

from sqlalchemy import func

from simone import db
from simone.models.inventario import (Devolucion, MovimientoInventario, MOVIMIENTO_ENTRADA,
                                      MOTIVO_DEVOLUCION, MOTIVO_DEPOSITO_FALSO, MOTIVO_OTRO)
from simone.models.venta import Venta, DetalleVenta, ESTADO_CANCELADO, LINEA_DEVUELTO, LINEA_CANCELADO

logger = logging.getLogger(__name__)

MOTIVOS = (MOTIVO_DEVOLUCION, MOTIVO_DEPOSITO_FALSO, MOTIVO_OTRO)


def _resultado(success, message, venta_cancelada=False, errors=None):
    return {'success': success, 'message': message, 'venta_cancelada': venta_cancelada, 'errors': errors or []}


def devueltas_acumuladas(detalle_id):
    total = (db.session.query(func.coalesce(func.sum(Devolucion.cantidad_devuelta), 0))
             .filter(Devolucion.detalle_venta_id == detalle_id, Devolucion.aprobada.is_(True))
             .scalar())
    return int(total or 0)


def tiene_devoluciones(venta_id):
    return (db.session.query(Devolucion.id)
            .join(DetalleVenta, Devolucion.detalle_venta_id == DetalleVenta.id)
            .filter(DetalleVenta.venta_id == venta_id)
            .first()) is not None


def total_devueltas(venta_id):
    total = (db.session.query(func.coalesce(func.sum(Devolucion.cantidad_devuelta), 0))
             .join(DetalleVenta, Devolucion.detalle_venta_id == DetalleVenta.id)
             .filter(DetalleVenta.venta_id == venta_id, Devolucion.aprobada.is_(True))
             .scalar())
    return int(total or 0)


def _texto_motivo(motivo, nota):
    nota = (nota or '').strip()
    return f'{motivo}: {nota}' if nota else motivo


def _reponer(detalle, cantidad, motivo, nota, descripcion):
    """Registrar la devolución, reponer stock y anotar la entrada de inventario."""
    db.session.add(Devolucion(
        detalle_venta_id=detalle.id,
        cantidad_devuelta=cantidad,
        motivo=_texto_motivo(motivo, nota),
        aprobada=True
    ))
    if detalle.variante is not None:
        detalle.variante.stock = (detalle.variante.stock or 0) + cantidad
    elif detalle.producto is not None:
        detalle.producto.stock = (detalle.producto.stock or 0) + cantidad
    db.session.add(MovimientoInventario(
        producto_id=detalle.producto_id,
        variante_id=detalle.variante_id,
        tipo=MOVIMIENTO_ENTRADA,
        cantidad=cantidad,
        descripcion=descripcion
    ))


def procesar(venta_id, lineas, motivo, nota=None):
    """Procesar devoluciones parciales. ``lineas`` es {detalle_id: cantidad}."""
    venta = db.session.get(Venta, venta_id)
    if venta is None:
        return _resultado(False, 'La venta no existe')

    pedidas = {}
    if not isinstance(lineas, dict):
        lineas = {}
    for detalle_id, cantidad in lineas.items():
        try:
            detalle_id, cantidad = int(detalle_id), int(cantidad)
        except (TypeError, ValueError):
            continue
        if cantidad > 0:
            pedidas[detalle_id] = cantidad
    if not pedidas:
        return _resultado(False, 'No se especificaron líneas para devolver')

    if motivo not in MOTIVOS:
        motivo = MOTIVO_OTRO

    errors = []
    try:
        detalles = {d.id: d for d in venta.detalles}
        for detalle_id, cantidad in pedidas.items():
            detalle = detalles.get(detalle_id)
            if detalle is None:
                errors.append(f'La línea {detalle_id} no pertenece a la venta')
                continue
            maximo = detalle.cantidad - devueltas_acumuladas(detalle_id)
            if cantidad > maximo:
                errors.append(f'La línea {detalle_id} supera el máximo permitido ({maximo})')
                continue
            _reponer(detalle, cantidad, motivo, nota,
                     f'Devolución Venta #{venta.id} (Detalle #{detalle.id})')
            if cantidad == maximo:
                detalle.estado = LINEA_DEVUELTO

        if errors:
            db.session.rollback()
            return _resultado(False, 'No se pudo procesar la devolución', errors=errors)

        db.session.flush()
        vendidas = sum(d.cantidad for d in venta.detalles)
        venta_cancelada = False
        if total_devueltas(venta.id) >= vendidas and not venta.esta_cancelada:
            venta.cambiar_estado(ESTADO_CANCELADO, 'Devolución total de la venta')
            venta_cancelada = True

        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception('Error procesando devolución de la venta %s', venta_id)
        return _resultado(False, 'Error al procesar la devolución')

    logger.info('Devolución registrada en la venta %s (%d líneas)', venta_id, len(pedidas))
    return _resultado(True, 'Devolución procesada correctamente', venta_cancelada)


def revertir_venta(venta_id, motivo, nota=None, usuario_id=None):
    """Reportar una venta (p. ej. depósito falso): devuelve todo el stock y la cancela."""
    if not venta_id or motivo not in MOTIVOS:
        return False, 'Datos inválidos'

    venta = db.session.get(Venta, venta_id)
    if venta is None:
        return False, 'La venta no existe'
    if venta.esta_cancelada:
        return False, 'La venta ya está cancelada'

    try:
        for detalle in venta.detalles:
            restante = detalle.cantidad - devueltas_acumuladas(detalle.id)
            if restante > 0:
                _reponer(detalle, restante, motivo, nota,
                         f'Reversión Venta #{venta.id} (Detalle #{detalle.id})')
            detalle.estado = LINEA_CANCELADO

        comentario = _texto_motivo(f'Venta reportada ({motivo})', nota)
        venta.cambiar_estado(ESTADO_CANCELADO, comentario, usuario_id)
        venta.notas = comentario if not venta.notas else f'{venta.notas}\n{comentario}'
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception('Error al revertir la venta %s', venta_id)
        return False, 'Error al revertir la venta'

    logger.info('Venta %s revertida por %s (%s)', venta_id, usuario_id, motivo)
    return True, 'Venta revertida y stock repuesto'
