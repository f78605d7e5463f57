import os
import re

from flask import Blueprint, request, jsonify, send_from_directory, abort

from simone import db
from simone.models.venta import Venta
from simone.services import comprobantes, devoluciones_service
from simone.utils.decorators import login_required_sessions, get_current_user
from simone.utils.http import entero

mis_compras_bp = Blueprint('mis_compras', __name__)

PAGE_SIZE_DEFECTO = 15
PAGE_SIZE_MIN = 5
PAGE_SIZE_MAX = 50

ARCHIVO_COMPROBANTE_RE = re.compile(r'^venta-(\d+)\.[A-Za-z0-9]+$')


@mis_compras_bp.route('/mis-compras', methods=['GET'])
@login_required_sessions
def mis_compras():
    usuario = get_current_user()
    page = max(entero(request.args.get('page'), 1), 1)
    page_size = entero(request.args.get('page_size'), PAGE_SIZE_DEFECTO)
    page_size = min(max(page_size, PAGE_SIZE_MIN), PAGE_SIZE_MAX)

    pagination = (Venta.query
                  .filter_by(usuario_id=usuario.id)
                  .order_by(Venta.fecha_venta.desc(), Venta.id.desc())
                  .paginate(page=page, per_page=page_size, error_out=False))

    return jsonify({
        'success': True,
        'ventas': [v.to_dict(incluir_detalles=False) for v in pagination.items],
        'page': pagination.page,
        'page_size': page_size,
        'pages': pagination.pages,
        'total': pagination.total
    })


@mis_compras_bp.route('/mis-compras/<int:venta_id>', methods=['GET'])
@login_required_sessions
def detalle(venta_id):
    usuario = get_current_user()
    venta = db.session.get(Venta, venta_id)
    if venta is None or venta.usuario_id != usuario.id:
        return jsonify({'success': False, 'error': 'Compra no encontrada'}), 404

    return jsonify({
        'success': True,
        'venta': venta.to_dict(),
        'historial': [h.to_dict() for h in venta.historial],
        'pago': comprobantes.detalle_pago(venta),
        'tiene_devoluciones': devoluciones_service.tiene_devoluciones(venta.id)
    })


@mis_compras_bp.route('/uploads/comprobantes/<path:filename>', methods=['GET'])
@login_required_sessions
def ver_comprobante(filename):
    """Solo el dueño de la venta o un administrador"""
    match = ARCHIVO_COMPROBANTE_RE.match(filename)
    if not match or not comprobantes.extension_permitida(filename):
        abort(404)

    usuario = get_current_user()
    venta = db.session.get(Venta, int(match.group(1)))
    if venta is None:
        abort(404)
    if venta.usuario_id != usuario.id and not usuario.es_admin:
        return jsonify({'success': False, 'error': 'Acceso no autorizado'}), 403

    return send_from_directory(os.path.abspath(comprobantes.carpeta_comprobantes()), filename)
