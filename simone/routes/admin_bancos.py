from flask import Blueprint, request, jsonify

from simone.services import bancos_config
from simone.services.bancos_config import bancos_service
from simone.utils.decorators import admin_required
from simone.utils.http import datos_request

admin_bancos_bp = Blueprint('admin_bancos', __name__)


@admin_bancos_bp.route('/', methods=['GET'])
@admin_required
def listar():
    """Cuentas del administrador con filtro y orden"""
    filtro = request.args.get('filtro', '')
    ordenar = request.args.get('ordenar', 'nombre')
    cuentas = bancos_config.listar(bancos_service().get_admin(), filtro, ordenar)
    return jsonify({
        'success': True,
        'cuentas': [c.to_dict() for c in cuentas],
        'filtro': filtro,
        'ordenar': ordenar if ordenar in bancos_config.ORDENES else 'nombre'
    })


@admin_bancos_bp.route('/guardar', methods=['POST'])
@admin_required
def guardar():
    datos = datos_request()
    ok, mensaje = bancos_service().guardar_cuenta_admin(datos, datos.get('codigo_original'))
    if not ok:
        return jsonify({'success': False, 'error': mensaje}), 400
    return jsonify({'success': True, 'message': mensaje})


@admin_bancos_bp.route('/eliminar', methods=['POST'])
@admin_required
def eliminar():
    ok, mensaje = bancos_service().eliminar_cuenta_admin(datos_request().get('codigo'))
    if not ok:
        return jsonify({'success': False, 'error': mensaje}), 404
    return jsonify({'success': True, 'message': mensaje})


@admin_bancos_bp.route('/toggle', methods=['POST'])
@admin_required
def toggle():
    ok, mensaje = bancos_service().toggle_activo_admin(datos_request().get('codigo'))
    if not ok:
        return jsonify({'success': False, 'error': mensaje}), 404
    return jsonify({'success': True, 'message': mensaje})
