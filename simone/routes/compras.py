import logging

from flask import Blueprint, request, session, jsonify, current_app

from simone import db
from simone.models.catalogo import Producto
from simone.models.favorito import Favorito
from simone.routes.carrito import cupon_activo, resumen_carrito
from simone.services import carrito_service, comprobantes, mail_service
from simone.services.bancos_config import bancos_service
from simone.services.carrito_service import CarritoError, StockInsuficienteError
from simone.services.envios_service import envios_carrito_service
from simone.services.pagos_resolver import PagosResolver
from simone.utils.decorators import login_required_sessions, get_current_user
from simone.utils.http import datos_request, entero

logger = logging.getLogger(__name__)

compras_bp = Blueprint('compras', __name__)

MAX_RELACIONADOS = 8


def _ids_favoritos(usuario):
    if usuario is None:
        return set()
    return {f.producto_id for f in Favorito.query.filter_by(usuario_id=usuario.id).all()}


# ==================== CATÁLOGO ====================

@compras_bp.route('/catalogo', methods=['GET'])
def catalogo():
    """Catálogo paginado con filtros de categoría y subcategorías"""
    page = max(entero(request.args.get('page'), 1), 1)
    per_page = current_app.config.get('CATALOGO_PAGE_SIZE', 20)
    categoria_id = entero(request.args.get('categoria_id'))

    subcategoria_ids = []
    for valor in request.args.getlist('subcategoria_ids'):
        subcategoria_ids.extend(i for i in (entero(v) for v in valor.split(',')) if i)

    query = Producto.query
    if categoria_id:
        query = query.filter(Producto.categoria_id == categoria_id)
    if subcategoria_ids:
        query = query.filter(Producto.subcategoria_id.in_(subcategoria_ids))

    pagination = query.order_by(Producto.fecha_agregado.desc(), Producto.id.desc()).paginate(
        page=page, per_page=per_page, error_out=False
    )
    favoritos = _ids_favoritos(get_current_user())

    productos = []
    for p in pagination.items:
        data = p.to_dict(incluir_variantes=False)
        data['es_favorito'] = p.id in favoritos
        productos.append(data)

    return jsonify({
        'success': True,
        'productos': productos,
        'page': pagination.page,
        'pages': pagination.pages,
        'total': pagination.total
    })


@compras_bp.route('/producto/<int:producto_id>', methods=['GET'])
def producto_detalle(producto_id):
    producto = db.session.get(Producto, producto_id)
    if producto is None:
        return jsonify({'success': False, 'error': 'Producto no encontrado'}), 404

    relacionados = []
    if producto.subcategoria_id:
        relacionados = (Producto.query
                        .filter(Producto.subcategoria_id == producto.subcategoria_id, Producto.id != producto.id)
                        .limit(MAX_RELACIONADOS).all())
    if not relacionados and producto.categoria_id:
        relacionados = (Producto.query
                        .filter(Producto.categoria_id == producto.categoria_id, Producto.id != producto.id)
                        .limit(MAX_RELACIONADOS).all())

    data = producto.to_dict()
    data['es_favorito'] = producto.id in _ids_favoritos(get_current_user())
    return jsonify({
        'success': True,
        'producto': data,
        'relacionados': [p.to_dict(incluir_variantes=False) for p in relacionados]
    })


# ==================== CARRITO (AJAX) ====================

@compras_bp.route('/carrito/agregar', methods=['POST'])
@login_required_sessions
def agregar_al_carrito():
    datos = datos_request()
    producto = db.session.get(Producto, entero(datos.get('producto_id'), 0))
    if producto is None:
        return jsonify({'ok': False, 'error': 'Producto no encontrado'}), 404

    usuario = get_current_user()
    try:
        carrito_service.agregar_producto(producto, usuario, entero(datos.get('cantidad'), 1),
                                         entero(datos.get('variante_id')))
    except StockInsuficienteError as e:
        db.session.rollback()
        return jsonify({'ok': False, 'error': str(e), 'stock': e.stock, 'enCarrito': e.en_carrito}), 400
    except CarritoError as e:
        db.session.rollback()
        return jsonify({'ok': False, 'error': str(e)}), 400
    except Exception as e:
        db.session.rollback()
        logger.exception('Error agregando el producto %s al carrito', producto.id)
        return jsonify({'ok': False, 'error': str(e)}), 500

    return jsonify({'ok': True, 'count': carrito_service.resumen(usuario)['count']})


@compras_bp.route('/carrito/info', methods=['GET'])
def carrito_info():
    usuario = get_current_user()
    if usuario is None:
        return jsonify({'count': 0, 'subtotal': 0.0})
    resumen = carrito_service.resumen(usuario)
    db.session.commit()
    return jsonify({'count': resumen['count'], 'subtotal': resumen['subtotal']})


# ==================== FAVORITOS ====================

@compras_bp.route('/favoritos/<int:producto_id>/toggle', methods=['POST'])
@login_required_sessions
def toggle_favorito(producto_id):
    if db.session.get(Producto, producto_id) is None:
        return jsonify({'ok': False, 'error': 'Producto no encontrado'}), 404

    usuario = get_current_user()
    try:
        existente = Favorito.query.filter_by(usuario_id=usuario.id, producto_id=producto_id).first()
        if existente:
            db.session.delete(existente)
            es_favorito = False
        else:
            db.session.add(Favorito(usuario_id=usuario.id, producto_id=producto_id))
            es_favorito = True
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        return jsonify({'ok': False, 'error': str(e)}), 500

    return jsonify({'ok': True, 'esFavorito': es_favorito})


@compras_bp.route('/favoritos', methods=['GET'])
@login_required_sessions
def mis_favoritos():
    usuario = get_current_user()
    favoritos = (Favorito.query.filter_by(usuario_id=usuario.id)
                 .order_by(Favorito.fecha_agregado.desc()).all())
    return jsonify({'success': True, 'favoritos': [f.to_dict() for f in favoritos]})


# ==================== CHECKOUT ====================

@compras_bp.route('/compras/resumen', methods=['GET'])
@login_required_sessions
def resumen_compra():
    """Líneas, totales, envío y cuentas para depositar"""
    usuario = get_current_user()
    data = resumen_carrito(usuario)
    cuentas, pago = PagosResolver(bancos_service()).cuentas_para_pago(usuario.id)
    db.session.commit()
    return jsonify({
        'success': True,
        **data,
        'pago': pago,
        'cuentas': [c.to_dict() for c in cuentas]
    })


@compras_bp.route('/compras/confirmar', methods=['POST'])
@login_required_sessions
def confirmar_compra():
    usuario = get_current_user()
    depositante = (request.form.get('depositante') or '').strip()
    banco_seleccion = (request.form.get('banco_seleccion') or '').strip()
    archivo = request.files.get('comprobante')

    if not depositante:
        return jsonify({'success': False, 'error': 'Indica el nombre del depositante'}), 400
    if not banco_seleccion:
        return jsonify({'success': False, 'error': 'Selecciona el banco donde depositaste'}), 400
    if archivo is None or not archivo.filename:
        return jsonify({'success': False, 'error': 'Adjunta el comprobante de depósito'}), 400
    if not comprobantes.extension_permitida(archivo.filename):
        return jsonify({'success': False, 'error': 'Formato de comprobante no permitido. Usa JPG, PNG, WEBP o PDF'}), 400

    direccion = (request.form.get('direccion') or usuario.direccion or '').strip()
    envio = envios_carrito_service().calcular_para_usuario(usuario.id)
    cupon = cupon_activo()

    try:
        venta = carrito_service.procesar_carrito(usuario, direccion, cupon, envio['total_envio'])
    except CarritoError as e:
        return jsonify({'success': False, 'error': str(e)}), 400
    except Exception as e:
        return jsonify({'success': False, 'error': str(e)}), 500

    session.pop('cupon', None)

    try:
        comprobantes.guardar_comprobante(venta.id, archivo)
        comprobantes.guardar_meta(venta.id, depositante, banco_seleccion, envio)
    except (OSError, ValueError):
        logger.exception('No se pudo guardar el comprobante de la venta %s', venta.id)
        return jsonify({
            'success': True,
            'venta': venta.to_dict(),
            'advertencia': 'La compra se registró pero no se pudo guardar el comprobante'
        }), 201

    mail_service.enviar_confirmacion_compra(usuario, venta)
    mail_service.enviar_aviso_comprobante(venta, depositante, banco_seleccion)

    logger.info('Checkout completado: venta %s, usuario %s', venta.numero_orden, usuario.id)
    return jsonify({'success': True, 'venta': venta.to_dict(), 'mensajes': envio['mensajes']}), 201
