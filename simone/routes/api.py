# simone/routes/api.py
from datetime import datetime

from flask import Blueprint, jsonify
from flask_login import login_required, current_user

from simone.models.catalogo import Producto
from simone.models.usuario import Usuario
from simone.models.venta import Venta, PAGO_PENDIENTE

api_bp = Blueprint('api', __name__)


@api_bp.route('/health')
def health_check():
    """Endpoint de salud para verificar que la API funciona."""
    return jsonify({
        'status': 'ok',
        'message': 'API funcionando correctamente',
        'timestamp': datetime.utcnow().isoformat() + 'Z'
    })


@api_bp.route('/stats')
@login_required
def stats():
    """Estadísticas básicas (solo para admins)."""
    if not current_user.es_admin:
        return jsonify({'error': 'Acceso no autorizado'}), 403

    return jsonify({
        'usuarios': Usuario.query.count(),
        'productos': Producto.query.count(),
        'ventas': Venta.query.count(),
        'pagos_por_verificar': Venta.query.filter_by(estado_pago=PAGO_PENDIENTE).count()
    })
