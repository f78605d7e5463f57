import logging
from datetime import datetime

from simone import db
from simone.models.venta import (Venta, ESTADO_PENDIENTE, ESTADO_CONFIRMADO, ESTADO_EN_PROCESO,
                                 ESTADO_ENVIADO, ESTADO_ENTREGADO, ESTADO_CANCELADO,
                                 PAGO_PAGADO, PAGO_RECHAZADO)

logger = logging.getLogger(__name__)

ESTADOS_DESTINO = (ESTADO_CONFIRMADO, ESTADO_EN_PROCESO, ESTADO_ENVIADO, ESTADO_ENTREGADO, ESTADO_CANCELADO)


def cambiar_estado(venta_id, nuevo_estado, comentario=None, usuario_id=None):
    """Devuelve (ok, mensaje)."""
    if nuevo_estado not in ESTADOS_DESTINO:
        return False, 'Estado no válido'

    venta = db.session.get(Venta, venta_id)
    if venta is None:
        return False, 'Pedido no encontrado'

    comentario = (comentario or '').strip() or None
    if nuevo_estado == ESTADO_CANCELADO:
        comentario = comentario or 'Cancelado por administrador'
        venta.notas = comentario if not venta.notas else f'{venta.notas}\n{comentario}'

    anterior = venta.estado
    venta.cambiar_estado(nuevo_estado, comentario, usuario_id)
    db.session.commit()
    logger.info('Pedido %s: %s -> %s', venta_id, anterior, nuevo_estado)
    return True, f'Estado actualizado a {nuevo_estado}'


def verificar_pago(venta_id, usuario_id, aprobado=True, comentario=None):
    """Verificación manual del depósito bancario."""
    venta = db.session.get(Venta, venta_id)
    if venta is None:
        return False, 'Pedido no encontrado'

    anterior = venta.estado
    if aprobado:
        venta.estado_pago = PAGO_PAGADO
        venta.fecha_pago = datetime.utcnow()
        if venta.estado == ESTADO_PENDIENTE:
            venta.estado = ESTADO_CONFIRMADO
        texto = comentario or 'Pago verificado'
    else:
        venta.estado_pago = PAGO_RECHAZADO
        texto = comentario or 'Pago rechazado'

    venta.agregar_historial(anterior, venta.estado, texto, usuario_id)
    venta.fecha_actualizacion = datetime.utcnow()
    db.session.commit()
    logger.info('Pago del pedido %s %s', venta_id, 'aprobado' if aprobado else 'rechazado')
    return True, 'Pago verificado correctamente' if aprobado else 'Pago marcado como rechazado'


def marcar_enviada(venta_id, usuario_id=None):
    return cambiar_estado(venta_id, ESTADO_ENVIADO, 'Marcado como enviado', usuario_id)
