import logging
from datetime import datetime

from flask import Blueprint, request, jsonify, current_app, Response
from sqlalchemy import or_

from simone import db
from simone.models.comision import PAGO_COMISION_PENDIENTE, ESTADOS_PAGO_COMISION
from simone.models.usuario import Usuario, ROL_VENDEDOR
from simone.models.venta import Venta, DetalleVenta, ESTADO_PENDIENTE, PAGO_PENDIENTE
from simone.services import comision_service, pedidos_service, reportes_service
from simone.utils.decorators import admin_required, get_current_user
from simone.utils.http import datos_request, entero

logger = logging.getLogger(__name__)

admin_ventas_bp = Blueprint('admin_ventas', __name__)


def _respuesta(ok, mensaje, **extra):
    if not ok:
        codigo = 404 if 'no existe' in mensaje or 'no encontrado' in mensaje.lower() else 400
        return jsonify({'success': False, 'error': mensaje}), codigo
    return jsonify({'success': True, 'message': mensaje, **extra})


def _inicio_mes(ahora=None):
    ahora = ahora or datetime.utcnow()
    return datetime(ahora.year, ahora.month, 1)


def _periodo_desde_request(datos):
    ahora = datetime.utcnow()
    anio = entero(datos.get('anio'), ahora.year)
    mes = entero(datos.get('mes'), ahora.month)
    quincena = entero(datos.get('quincena'), 1 if ahora.day < 16 else 2)
    return anio, mes, quincena


# ==================== DASHBOARD ====================

@admin_ventas_bp.route('/', methods=['GET'])
@admin_required
def dashboard():
    """Resumen del mes en curso"""
    inicio = _inicio_mes()
    fin = datetime.utcnow()
    return jsonify({
        'success': True,
        'estadisticas': comision_service.obtener_estadisticas(inicio, fin),
        'top_vendedores': comision_service.obtener_top_vendedores(inicio, fin, 5),
        'pagos_por_verificar': Venta.query.filter_by(estado_pago=PAGO_PENDIENTE).count(),
        'pedidos_pendientes': Venta.query.filter_by(estado=ESTADO_PENDIENTE).count(),
        'liquidaciones_pendientes': len(comision_service.obtener_pagos(estado=PAGO_COMISION_PENDIENTE))
    })


@admin_ventas_bp.route('/vendedores', methods=['GET'])
@admin_required
def vendedores():
    inicio = _inicio_mes()
    top = {t['vendedor_id']: t for t in comision_service.obtener_top_vendedores(inicio, datetime.utcnow(), top=1000)}

    resultado = []
    for v in Usuario.query.filter_by(rol=ROL_VENDEDOR).order_by(Usuario.nombre_completo).all():
        stats = top.get(v.id, {})
        pendientes = comision_service.obtener_pagos(vendedor_id=v.id, estado=PAGO_COMISION_PENDIENTE)
        resultado.append({
            'vendedor': v.to_dict(),
            'ventas_mes': stats.get('total_ventas', 0.0),
            'pedidos_mes': stats.get('cantidad_pedidos', 0),
            'productos_mes': stats.get('cantidad_productos', 0),
            'porcentaje': comision_service.obtener_porcentaje(v.id, monto_ventas=stats.get('total_ventas', 0.0)),
            'comision_pendiente': round(sum(p.monto_final or 0 for p in pendientes), 2)
        })
    resultado.sort(key=lambda r: r['ventas_mes'], reverse=True)
    return jsonify({'success': True, 'vendedores': resultado})


@admin_ventas_bp.route('/vendedores/<int:vendedor_id>', methods=['GET'])
@admin_required
def vendedor_detalle(vendedor_id):
    vendedor = db.session.get(Usuario, vendedor_id)
    if vendedor is None or vendedor.rol != ROL_VENDEDOR:
        return jsonify({'success': False, 'error': 'Vendedor no encontrado'}), 404

    ultimas = (DetalleVenta.query.filter_by(vendedor_id=vendedor.id)
               .order_by(DetalleVenta.id.desc()).limit(20).all())
    return jsonify({
        'success': True,
        'vendedor': vendedor.to_dict(),
        'porcentaje': comision_service.obtener_porcentaje(vendedor.id),
        'pagos': [p.to_dict() for p in comision_service.obtener_pagos(vendedor_id=vendedor.id)],
        'ultimas_ventas': [d.to_dict() for d in ultimas],
        'productos': len(vendedor.productos)
    })


# ==================== PEDIDOS ====================

@admin_ventas_bp.route('/pedidos', methods=['GET'])
@admin_required
def pedidos():
    page = max(entero(request.args.get('page'), 1), 1)
    estado = request.args.get('estado')
    estado_pago = request.args.get('estado_pago')
    vendedor_id = entero(request.args.get('vendedor'))
    busqueda = (request.args.get('busqueda') or '').strip().lower()

    query = Venta.query
    if estado:
        query = query.filter(Venta.estado == estado)
    if estado_pago:
        query = query.filter(Venta.estado_pago == estado_pago)
    if vendedor_id:
        query = query.filter(Venta.detalles.any(DetalleVenta.vendedor_id == vendedor_id))
    if busqueda:
        query = query.outerjoin(Usuario, Venta.usuario_id == Usuario.id).filter(or_(
            Venta.numero_orden.ilike(f'%{busqueda}%'),
            Usuario.email.ilike(f'%{busqueda}%'),
            Usuario.nombre_completo.ilike(f'%{busqueda}%')
        ))

    pagination = query.order_by(Venta.fecha_venta.desc(), Venta.id.desc()).paginate(
        page=page, per_page=current_app.config.get('ADMIN_PAGE_SIZE', 20), error_out=False
    )
    return jsonify({
        'success': True,
        'pedidos': [v.to_dict(incluir_detalles=False) for v in pagination.items],
        'page': pagination.page,
        'pages': pagination.pages,
        'total': pagination.total
    })


@admin_ventas_bp.route('/pedidos/<int:venta_id>', methods=['GET'])
@admin_required
def pedido_detalle(venta_id):
    data = reportes_service.venta_detalle(venta_id)
    if data is None:
        return jsonify({'success': False, 'error': 'Pedido no encontrado'}), 404
    return jsonify({'success': True, **data})


@admin_ventas_bp.route('/pedidos/<int:venta_id>/estado', methods=['POST'])
@admin_required
def cambiar_estado(venta_id):
    datos = datos_request()
    try:
        ok, mensaje = pedidos_service.cambiar_estado(
            venta_id, datos.get('estado'), datos.get('comentario'), get_current_user().id
        )
    except Exception as e:
        db.session.rollback()
        logger.exception('Error cambiando estado del pedido %s', venta_id)
        return jsonify({'success': False, 'error': str(e)}), 500
    return _respuesta(ok, mensaje)


@admin_ventas_bp.route('/pedidos/<int:venta_id>/verificar-pago', methods=['POST'])
@admin_required
def verificar_pago(venta_id):
    datos = datos_request()
    aprobado = str(datos.get('aprobado', True)).lower() not in ('0', 'false', 'no', 'off')
    try:
        ok, mensaje = pedidos_service.verificar_pago(venta_id, get_current_user().id, aprobado,
                                                     datos.get('comentario'))
    except Exception as e:
        db.session.rollback()
        logger.exception('Error verificando pago del pedido %s', venta_id)
        return jsonify({'success': False, 'error': str(e)}), 500
    return _respuesta(ok, mensaje)


# ==================== COMISIONES ====================

@admin_ventas_bp.route('/comisiones', methods=['GET'])
@admin_required
def comisiones():
    estado = request.args.get('estado')
    pagos = comision_service.obtener_pagos(
        vendedor_id=entero(request.args.get('vendedor_id')),
        estado=estado if estado in ESTADOS_PAGO_COMISION else None,
        anio=entero(request.args.get('anio')),
        mes=entero(request.args.get('mes'))
    )
    return jsonify({'success': True, 'pagos': [p.to_dict() for p in pagos]})


@admin_ventas_bp.route('/comisiones/calcular', methods=['POST'])
@admin_required
def calcular_comisiones():
    """Vista previa de lo que se liquidaría en la quincena"""
    anio, mes, quincena = _periodo_desde_request(datos_request())
    try:
        inicio, fin = comision_service.periodo_quincena(anio, mes, quincena)
    except ValueError as e:
        return jsonify({'success': False, 'error': str(e)}), 400

    resumen = comision_service.calcular_comisiones_periodo(inicio, fin)
    return jsonify({
        'success': True,
        'periodo': {'anio': anio, 'mes': mes, 'quincena': quincena,
                    'inicio': inicio.isoformat(), 'fin': fin.isoformat()},
        'vendedores': resumen,
        'total_comisiones': round(sum(r['monto_comision'] for r in resumen), 2)
    })


@admin_ventas_bp.route('/comisiones/liquidar', methods=['POST'])
@admin_required
def liquidar():
    datos = datos_request()
    anio, mes, quincena = _periodo_desde_request(datos)
    admin_id = get_current_user().id

    vendedor_id = entero(datos.get('vendedor_id'))
    if vendedor_id:
        ok, mensaje, pago = comision_service.generar_liquidacion(vendedor_id, anio, mes, quincena, admin_id)
        if not ok:
            return jsonify({'success': False, 'error': mensaje}), 400
        return jsonify({'success': True, 'message': mensaje, 'pago': pago.to_dict(incluir_detalles=True)})

    # Sin vendedor: liquidar a todos los que tengan ventas en el período
    try:
        inicio, fin = comision_service.periodo_quincena(anio, mes, quincena)
    except ValueError as e:
        return jsonify({'success': False, 'error': str(e)}), 400

    generadas, errores = [], []
    for r in comision_service.calcular_comisiones_periodo(inicio, fin):
        ok, mensaje, pago = comision_service.generar_liquidacion(r['vendedor_id'], anio, mes, quincena, admin_id)
        if ok:
            generadas.append(pago.to_dict())
        else:
            errores.append({'vendedor_id': r['vendedor_id'], 'error': mensaje})

    if not generadas and not errores:
        return jsonify({'success': False, 'error': 'No hay ventas para liquidar en este período'}), 400
    return jsonify({'success': bool(generadas), 'pagos': generadas, 'errores': errores})


@admin_ventas_bp.route('/comisiones/<int:pago_id>/aprobar', methods=['POST'])
@admin_required
def aprobar_pago(pago_id):
    return _respuesta(*comision_service.aprobar(pago_id, get_current_user().id))


@admin_ventas_bp.route('/comisiones/<int:pago_id>/pagar', methods=['POST'])
@admin_required
def pagar(pago_id):
    datos = datos_request()
    return _respuesta(*comision_service.marcar_pagado(
        pago_id, get_current_user().id, datos.get('metodo_pago'),
        datos.get('numero_comprobante'), datos.get('banco')
    ))


@admin_ventas_bp.route('/comisiones/<int:pago_id>/cancelar', methods=['POST'])
@admin_required
def cancelar_pago(pago_id):
    return _respuesta(*comision_service.cancelar(pago_id, datos_request().get('motivo')))


@admin_ventas_bp.route('/comisiones/<int:pago_id>/ajustar', methods=['POST'])
@admin_required
def ajustar_pago(pago_id):
    datos = datos_request()
    return _respuesta(*comision_service.ajustar(pago_id, datos.get('deducciones'), datos.get('bonificaciones')))


# ==================== CONFIGURACIONES ====================

@admin_ventas_bp.route('/configuraciones', methods=['GET', 'POST'])
@admin_required
def configuraciones():
    if request.method == 'POST':
        try:
            ok, mensaje, config = comision_service.guardar_configuracion(datos_request(), get_current_user().id)
        except Exception as e:
            db.session.rollback()
            logger.exception('Error guardando configuración de comisión')
            return jsonify({'success': False, 'error': str(e)}), 500
        if not ok:
            return _respuesta(ok, mensaje)
        return jsonify({'success': True, 'message': mensaje, 'configuracion': config.to_dict()})

    return jsonify({
        'success': True,
        'configuraciones': [c.to_dict() for c in comision_service.obtener_configuraciones()],
        'porcentaje_defecto': current_app.config.get('COMISION_PORCENTAJE_DEFECTO', 10)
    })


@admin_ventas_bp.route('/configuraciones/<int:config_id>/eliminar', methods=['POST'])
@admin_required
def eliminar_configuracion(config_id):
    return _respuesta(*comision_service.eliminar_configuracion(config_id))


# ==================== EXPORTACIÓN ====================

def _csv_response(nombre, contenido):
    return Response(
        contenido,
        mimetype='text/csv; charset=utf-8',
        headers={'Content-Disposition': f'attachment; filename={nombre}'}
    )


@admin_ventas_bp.route('/exportar/ventas', methods=['GET'])
@admin_required
def exportar_ventas():
    ahora = datetime.utcnow()
    anio = entero(request.args.get('anio'), ahora.year)
    mes = entero(request.args.get('mes'), ahora.month)
    if not 1 <= mes <= 12:
        return jsonify({'success': False, 'error': 'Mes no válido'}), 400
    return _csv_response(*comision_service.exportar_ventas_csv(anio, mes))


@admin_ventas_bp.route('/exportar/comisiones', methods=['GET'])
@admin_required
def exportar_comisiones():
    anio = entero(request.args.get('anio'), datetime.utcnow().year)
    return _csv_response(*comision_service.exportar_comisiones_csv(anio))
