import logging

from flask import Blueprint, request, jsonify

from simone.services.bancos_config import bancos_service
from simone.services.envios_service import envios_config_service
from simone.utils.decorators import vendedor_required, get_current_user
from simone.utils.http import datos_request

logger = logging.getLogger(__name__)

vendedor_bp = Blueprint('vendedor', __name__)


# ==================== CUENTAS BANCARIAS ====================

@vendedor_bp.route('/bancos', methods=['GET', 'POST'])
@vendedor_required
def bancos():
    """Cuentas donde los compradores depositan cuando el carrito es solo de este vendedor"""
    usuario = get_current_user()
    service = bancos_service()

    if request.method == 'POST':
        datos = datos_request()
        ok, mensaje = service.guardar_cuenta_proveedor(usuario.id, datos, datos.get('codigo_original'))
        if not ok:
            return jsonify({'success': False, 'error': mensaje}), 400
        return jsonify({'success': True, 'message': mensaje})

    return jsonify({'success': True, 'cuentas': [c.to_dict() for c in service.get_by_proveedor(usuario.id)]})


@vendedor_bp.route('/bancos/eliminar', methods=['POST'])
@vendedor_required
def eliminar_banco():
    usuario = get_current_user()
    ok, mensaje = bancos_service().eliminar_cuenta_proveedor(usuario.id, datos_request().get('codigo'))
    if not ok:
        return jsonify({'success': False, 'error': mensaje}), 404
    return jsonify({'success': True, 'message': mensaje})


@vendedor_bp.route('/bancos/toggle', methods=['POST'])
@vendedor_required
def toggle_banco():
    usuario = get_current_user()
    ok, mensaje = bancos_service().toggle_activo_proveedor(usuario.id, datos_request().get('codigo'))
    if not ok:
        return jsonify({'success': False, 'error': mensaje}), 404
    return jsonify({'success': True, 'message': mensaje})


# ==================== TARIFAS DE ENVÍO ====================

@vendedor_bp.route('/envios', methods=['GET', 'POST'])
@vendedor_required
def envios():
    usuario = get_current_user()
    service = envios_config_service()

    if request.method == 'POST':
        reglas = (request.get_json(silent=True) or {}).get('reglas') or []
        try:
            guardadas = service.set_by_proveedor(usuario.id, reglas)
        except ValueError as e:
            return jsonify({'success': False, 'error': str(e)}), 400
        logger.info('Vendedor %s guardó %d tarifas de envío', usuario.id, len(guardadas))
        return jsonify({'success': True, 'reglas': [r.to_dict() for r in guardadas]})

    return jsonify({'success': True, 'reglas': [r.to_dict() for r in service.get_by_proveedor(usuario.id)]})
