import logging

from flask import current_app
from flask_mail import Message

from simone import mail

logger = logging.getLogger(__name__)


def _enviar(asunto, destinatarios, cuerpo):
    """Enviar un correo; los errores se registran y no se propagan."""
    try:
        msg = Message(asunto, recipients=destinatarios, body=cuerpo)
        mail.send(msg)
        return True
    except Exception:
        logger.exception('No se pudo enviar el correo "%s" a %s', asunto, destinatarios)
        return False


def enviar_confirmacion_compra(usuario, venta):
    lineas = '\n'.join(
        f'- {d.producto.nombre if d.producto else d.producto_id} x {d.cantidad}: ${d.subtotal:.2f}'
        for d in venta.detalles
    )
    cuerpo = (
        f'Hola {usuario.nombre_completo or usuario.email},\n\n'
        f'Recibimos tu pedido {venta.numero_orden}.\n\n{lineas}\n\n'
        f'Subtotal: ${venta.subtotal:.2f}\n'
        f'Descuento: ${venta.descuento or 0:.2f}\n'
        f'Envío: ${venta.envio_total or 0:.2f}\n'
        f'Total: ${venta.total:.2f}\n\n'
        'Verificaremos tu depósito y te avisaremos cuando el pedido sea confirmado.'
    )
    return _enviar(f'Confirmación de compra {venta.numero_orden}', [usuario.email], cuerpo)


def enviar_aviso_comprobante(venta, depositante=None, banco=None):
    admin = current_app.config.get('ADMIN_EMAIL')
    if not admin:
        return False
    cuerpo = (
        f'Se recibió el comprobante de depósito del pedido {venta.numero_orden}.\n'
        f'Depositante: {depositante or "-"}\n'
        f'Banco: {banco or "-"}\n'
        f'Total: ${venta.total:.2f}'
    )
    return _enviar(f'Comprobante recibido - {venta.numero_orden}', [admin], cuerpo)


def enviar_recuperacion_password(usuario, enlace):
    cuerpo = (
        f'Hola {usuario.nombre_completo or usuario.email},\n\n'
        f'Para restablecer tu contraseña ingresa a:\n{enlace}\n\n'
        'El enlace vence en una hora.'
    )
    return _enviar('Recuperación de contraseña', [usuario.email], cuerpo)
