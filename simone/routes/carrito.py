from flask import Blueprint, session, jsonify

from simone import db
from simone.services import carrito_service
from simone.services.envios_service import envios_carrito_service
from simone.utils.decorators import login_required_sessions, get_current_user
from simone.utils.http import datos_request, entero

carrito_bp = Blueprint('carrito', __name__)


def cupon_activo():
    """Cupón guardado en sesión, solo si sigue vigente"""
    codigo = session.get('cupon')
    if not codigo:
        return None
    promo = carrito_service.validar_cupon(codigo)
    if promo is None:
        session.pop('cupon', None)
    return promo


def resumen_carrito(usuario):
    carrito = carrito_service.obtener_carrito_abierto(usuario)
    envio = envios_carrito_service().calcular_para_usuario(usuario.id)
    cupon = cupon_activo()
    totales = carrito_service.calcular_totales(
        carrito.calcular_subtotal(),
        cupon.descuento if cupon else 0.0,
        envio['total_envio']
    )
    return {
        'carrito': carrito.to_dict(),
        'cupon': cupon.to_dict() if cupon else None,
        'envio': envio,
        'totales': totales,
        'faltantes': carrito_service.faltantes_stock(carrito)
    }


@carrito_bp.route('/carrito', methods=['GET'])
@login_required_sessions
def ver_carrito():
    """Detalle del carrito con totales"""
    usuario = get_current_user()
    data = resumen_carrito(usuario)
    db.session.commit()
    return jsonify({'success': True, **data})


@carrito_bp.route('/carrito/actualizar', methods=['POST'])
@login_required_sessions
def actualizar():
    datos = datos_request()
    detalle_id = entero(datos.get('detalle_id'))
    if not detalle_id:
        return jsonify({'ok': False, 'error': 'detalle_id requerido'}), 400

    usuario = get_current_user()
    try:
        ok, subtotal, error = carrito_service.actualizar_cantidad(detalle_id, usuario, datos.get('cantidad'))
    except Exception as e:
        db.session.rollback()
        return jsonify({'ok': False, 'error': str(e)}), 500

    if not ok:
        return jsonify({'ok': False, 'error': error, 'subtotal': subtotal}), 400
    resumen = carrito_service.resumen(usuario)
    return jsonify({'ok': True, 'subtotal': subtotal, 'count': resumen['count'], 'total': resumen['subtotal']})


@carrito_bp.route('/carrito/eliminar/<int:detalle_id>', methods=['POST'])
@login_required_sessions
def eliminar(detalle_id):
    usuario = get_current_user()
    try:
        eliminado = carrito_service.eliminar_detalle(detalle_id, usuario)
    except Exception as e:
        db.session.rollback()
        return jsonify({'ok': False, 'error': str(e)}), 500
    if not eliminado:
        return jsonify({'ok': False, 'error': 'El producto no está en tu carrito'}), 404
    return jsonify({'ok': True, **{k: v for k, v in carrito_service.resumen(usuario).items() if k != 'items'}})


# ==================== CUPONES ====================

@carrito_bp.route('/carrito/cupon', methods=['POST'])
@login_required_sessions
def aplicar_cupon():
    codigo = (datos_request().get('codigo') or '').strip()
    if not codigo:
        return jsonify({'ok': False, 'error': 'Ingresa un código de cupón'}), 400

    promo = carrito_service.validar_cupon(codigo)
    if promo is None:
        session.pop('cupon', None)
        return jsonify({'ok': False, 'error': 'Cupón inválido o expirado'}), 400

    session['cupon'] = promo.codigo_cupon
    return jsonify({'ok': True, 'cupon': promo.to_dict()})


@carrito_bp.route('/carrito/cupon/quitar', methods=['POST'])
@login_required_sessions
def quitar_cupon():
    session.pop('cupon', None)
    return jsonify({'ok': True})
