import logging
from datetime import datetime

from flask import Blueprint, request, jsonify, current_app
from sqlalchemy import or_

from simone import db
from simone.models.catalogo import Categoria, Subcategoria, Producto, ProductoVariante
from simone.models.promocion import Promocion
from simone.models.usuario import Usuario, ROLES
from simone.models.venta import Venta, DetalleVenta
from simone.services import devoluciones_service, pedidos_service, reportes_service
from simone.services.envios_service import envios_config_service
from simone.utils.decorators import admin_required, get_current_user
from simone.utils.http import datos_request, entero, decimal, booleano

logger = logging.getLogger(__name__)

admin_bp = Blueprint('admin', __name__)


def _page_size():
    return current_app.config.get('ADMIN_PAGE_SIZE', 20)


def _paginado(pagination, clave):
    return jsonify({
        'success': True,
        clave: [item.to_dict() for item in pagination.items],
        'page': pagination.page,
        'pages': pagination.pages,
        'total': pagination.total
    })


# ==================== USUARIOS ====================

@admin_bp.route('/usuarios', methods=['GET'])
@admin_required
def usuarios():
    """Lista de usuarios con búsqueda y filtro de rol"""
    page = max(entero(request.args.get('page'), 1), 1)
    q = (request.args.get('q') or '').strip()
    rol = request.args.get('rol')

    query = Usuario.query
    if q:
        query = query.filter(or_(Usuario.email.ilike(f'%{q}%'), Usuario.nombre_completo.ilike(f'%{q}%')))
    if rol in ROLES:
        query = query.filter(Usuario.rol == rol)

    pagination = query.order_by(Usuario.fecha_registro.desc()).paginate(
        page=page, per_page=_page_size(), error_out=False
    )
    return _paginado(pagination, 'usuarios')


@admin_bp.route('/usuarios/<int:usuario_id>/rol', methods=['POST'])
@admin_required
def cambiar_rol(usuario_id):
    usuario = db.session.get(Usuario, usuario_id)
    if usuario is None:
        return jsonify({'success': False, 'error': 'Usuario no encontrado'}), 404

    rol = datos_request().get('rol')
    if rol not in ROLES:
        return jsonify({'success': False, 'error': 'Rol no válido'}), 400
    if usuario.id == get_current_user().id:
        return jsonify({'success': False, 'error': 'No puedes cambiar tu propio rol'}), 400

    usuario.rol = rol
    db.session.commit()
    logger.info('Rol del usuario %s cambiado a %s', usuario.email, rol)
    return jsonify({'success': True, 'usuario': usuario.to_dict()})


@admin_bp.route('/usuarios/<int:usuario_id>/activar', methods=['POST'])
@admin_required
def activar_usuario(usuario_id):
    usuario = db.session.get(Usuario, usuario_id)
    if usuario is None:
        return jsonify({'success': False, 'error': 'Usuario no encontrado'}), 404
    if usuario.id == get_current_user().id:
        return jsonify({'success': False, 'error': 'No puedes desactivar tu propia cuenta'}), 400

    datos = datos_request()
    if 'activo' in datos:
        usuario.activo = booleano(datos.get('activo'), False)
    else:
        usuario.activo = not usuario.activo
    db.session.commit()
    return jsonify({'success': True, 'activo': usuario.activo})


@admin_bp.route('/usuarios/<int:usuario_id>/eliminar', methods=['POST'])
@admin_required
def eliminar_usuario(usuario_id):
    usuario = db.session.get(Usuario, usuario_id)
    if usuario is None:
        return jsonify({'success': False, 'error': 'Usuario no encontrado'}), 404
    if usuario.id == get_current_user().id:
        return jsonify({'success': False, 'error': 'No puedes eliminar tu propia cuenta'}), 400
    if Venta.query.filter_by(usuario_id=usuario.id).first() or Producto.query.filter_by(vendedor_id=usuario.id).first():
        return jsonify({'success': False, 'error': 'El usuario tiene ventas o productos; desactívalo en su lugar'}), 400

    try:
        db.session.delete(usuario)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        return jsonify({'success': False, 'error': str(e)}), 500
    return jsonify({'success': True})


# ==================== CATEGORÍAS ====================

@admin_bp.route('/categorias', methods=['GET', 'POST'])
@admin_required
def categorias():
    if request.method == 'POST':
        nombre = (datos_request().get('nombre') or '').strip()
        if not nombre:
            return jsonify({'success': False, 'error': 'El nombre es obligatorio'}), 400
        if Categoria.query.filter(Categoria.nombre.ilike(nombre)).first():
            return jsonify({'success': False, 'error': 'Ya existe una categoría con ese nombre'}), 400
        categoria = Categoria(nombre=nombre)
        db.session.add(categoria)
        db.session.commit()
        return jsonify({'success': True, 'categoria': categoria.to_dict()}), 201

    return jsonify({'success': True, 'categorias': [c.to_dict() for c in Categoria.query.order_by(Categoria.nombre).all()]})


@admin_bp.route('/categorias/<int:categoria_id>', methods=['POST'])
@admin_required
def editar_categoria(categoria_id):
    categoria = db.session.get(Categoria, categoria_id)
    if categoria is None:
        return jsonify({'success': False, 'error': 'Categoría no encontrada'}), 404
    nombre = (datos_request().get('nombre') or '').strip()
    if not nombre:
        return jsonify({'success': False, 'error': 'El nombre es obligatorio'}), 400
    categoria.nombre = nombre
    db.session.commit()
    return jsonify({'success': True, 'categoria': categoria.to_dict()})


@admin_bp.route('/categorias/<int:categoria_id>/eliminar', methods=['POST'])
@admin_required
def eliminar_categoria(categoria_id):
    categoria = db.session.get(Categoria, categoria_id)
    if categoria is None:
        return jsonify({'success': False, 'error': 'Categoría no encontrada'}), 404
    if Producto.query.filter_by(categoria_id=categoria.id).first():
        return jsonify({'success': False, 'error': 'La categoría tiene productos asociados'}), 400
    db.session.delete(categoria)
    db.session.commit()
    return jsonify({'success': True})


@admin_bp.route('/categorias/<int:categoria_id>/subcategorias', methods=['POST'])
@admin_required
def crear_subcategoria(categoria_id):
    categoria = db.session.get(Categoria, categoria_id)
    if categoria is None:
        return jsonify({'success': False, 'error': 'Categoría no encontrada'}), 404
    nombre = (datos_request().get('nombre') or '').strip()
    if not nombre:
        return jsonify({'success': False, 'error': 'El nombre es obligatorio'}), 400
    sub = Subcategoria(categoria_id=categoria.id, nombre=nombre)
    db.session.add(sub)
    db.session.commit()
    return jsonify({'success': True, 'subcategoria': sub.to_dict()}), 201


@admin_bp.route('/subcategorias/<int:subcategoria_id>', methods=['POST'])
@admin_required
def editar_subcategoria(subcategoria_id):
    sub = db.session.get(Subcategoria, subcategoria_id)
    if sub is None:
        return jsonify({'success': False, 'error': 'Subcategoría no encontrada'}), 404
    nombre = (datos_request().get('nombre') or '').strip()
    if not nombre:
        return jsonify({'success': False, 'error': 'El nombre es obligatorio'}), 400
    sub.nombre = nombre
    db.session.commit()
    return jsonify({'success': True, 'subcategoria': sub.to_dict()})


@admin_bp.route('/subcategorias/<int:subcategoria_id>/eliminar', methods=['POST'])
@admin_required
def eliminar_subcategoria(subcategoria_id):
    sub = db.session.get(Subcategoria, subcategoria_id)
    if sub is None:
        return jsonify({'success': False, 'error': 'Subcategoría no encontrada'}), 404
    if Producto.query.filter_by(subcategoria_id=sub.id).first():
        return jsonify({'success': False, 'error': 'La subcategoría tiene productos asociados'}), 400
    db.session.delete(sub)
    db.session.commit()
    return jsonify({'success': True})


# ==================== PRODUCTOS ====================

def _aplicar_producto(producto, datos):
    """Validar y copiar campos; devuelve un mensaje de error o None."""
    nombre = (datos.get('nombre') or producto.nombre or '').strip()
    if not nombre:
        return 'El nombre es obligatorio'

    precio_venta = decimal(datos.get('precio_venta'), producto.precio_venta)
    precio_compra = decimal(datos.get('precio_compra'), producto.precio_compra or 0.0)
    stock = entero(datos.get('stock'), producto.stock or 0)
    if precio_venta is None:
        return 'El precio de venta es obligatorio'
    if precio_venta < 0 or (precio_compra or 0) < 0:
        return 'Los precios no pueden ser negativos'
    if stock < 0:
        return 'El stock no puede ser negativo'

    categoria_id = entero(datos.get('categoria_id'), producto.categoria_id)
    subcategoria_id = entero(datos.get('subcategoria_id'), producto.subcategoria_id)
    if categoria_id and db.session.get(Categoria, categoria_id) is None:
        return 'Categoría no válida'
    if subcategoria_id:
        sub = db.session.get(Subcategoria, subcategoria_id)
        if sub is None or (categoria_id and sub.categoria_id != categoria_id):
            return 'Subcategoría no válida'

    vendedor_id = entero(datos.get('vendedor_id'), producto.vendedor_id)
    if vendedor_id and db.session.get(Usuario, vendedor_id) is None:
        return 'Vendedor no válido'

    producto.nombre = nombre
    for campo in ('descripcion', 'talla', 'color', 'marca', 'imagen_path'):
        if campo in datos:
            setattr(producto, campo, (datos.get(campo) or '').strip() or None)
    producto.precio_venta = precio_venta
    producto.precio_compra = precio_compra
    producto.stock = stock
    producto.categoria_id = categoria_id
    producto.subcategoria_id = subcategoria_id
    producto.vendedor_id = vendedor_id
    return None


@admin_bp.route('/productos', methods=['GET', 'POST'])
@admin_required
def productos():
    if request.method == 'POST':
        producto = Producto()
        error = _aplicar_producto(producto, datos_request())
        if error:
            return jsonify({'success': False, 'error': error}), 400
        db.session.add(producto)
        db.session.commit()
        return jsonify({'success': True, 'producto': producto.to_dict()}), 201

    page = max(entero(request.args.get('page'), 1), 1)
    q = (request.args.get('q') or '').strip()
    query = Producto.query
    if q:
        query = query.filter(or_(Producto.nombre.ilike(f'%{q}%'), Producto.marca.ilike(f'%{q}%')))
    if entero(request.args.get('categoria_id')):
        query = query.filter(Producto.categoria_id == entero(request.args.get('categoria_id')))
    pagination = query.order_by(Producto.id.desc()).paginate(page=page, per_page=_page_size(), error_out=False)
    return _paginado(pagination, 'productos')


@admin_bp.route('/productos/<int:producto_id>', methods=['GET', 'POST'])
@admin_required
def producto(producto_id):
    producto = db.session.get(Producto, producto_id)
    if producto is None:
        return jsonify({'success': False, 'error': 'Producto no encontrado'}), 404

    if request.method == 'POST':
        error = _aplicar_producto(producto, datos_request())
        if error:
            db.session.rollback()
            return jsonify({'success': False, 'error': error}), 400
        db.session.commit()

    return jsonify({'success': True, 'producto': producto.to_dict()})


@admin_bp.route('/productos/<int:producto_id>/eliminar', methods=['POST'])
@admin_required
def eliminar_producto(producto_id):
    producto = db.session.get(Producto, producto_id)
    if producto is None:
        return jsonify({'success': False, 'error': 'Producto no encontrado'}), 404
    if DetalleVenta.query.filter_by(producto_id=producto.id).first():
        return jsonify({'success': False, 'error': 'El producto tiene ventas registradas'}), 400
    try:
        db.session.delete(producto)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        return jsonify({'success': False, 'error': str(e)}), 500
    return jsonify({'success': True})


def _aplicar_variante(variante, datos):
    stock = entero(datos.get('stock'), variante.stock or 0)
    if stock < 0:
        return 'El stock no puede ser negativo'
    precio = datos.get('precio_venta')
    if precio not in (None, ''):
        precio = decimal(precio)
        if precio is None or precio < 0:
            return 'Precio no válido'
        variante.precio_venta = precio
    elif 'precio_venta' in datos:
        variante.precio_venta = None
    for campo in ('color', 'talla', 'sku'):
        if campo in datos:
            setattr(variante, campo, (datos.get(campo) or '').strip() or None)
    variante.stock = stock
    return None


@admin_bp.route('/productos/<int:producto_id>/variantes', methods=['POST'])
@admin_required
def crear_variante(producto_id):
    producto = db.session.get(Producto, producto_id)
    if producto is None:
        return jsonify({'success': False, 'error': 'Producto no encontrado'}), 404
    variante = ProductoVariante(producto_id=producto.id)
    error = _aplicar_variante(variante, datos_request())
    if error:
        return jsonify({'success': False, 'error': error}), 400
    db.session.add(variante)
    db.session.commit()
    return jsonify({'success': True, 'variante': variante.to_dict()}), 201


@admin_bp.route('/variantes/<int:variante_id>', methods=['POST'])
@admin_required
def editar_variante(variante_id):
    variante = db.session.get(ProductoVariante, variante_id)
    if variante is None:
        return jsonify({'success': False, 'error': 'Variante no encontrada'}), 404
    error = _aplicar_variante(variante, datos_request())
    if error:
        db.session.rollback()
        return jsonify({'success': False, 'error': error}), 400
    db.session.commit()
    return jsonify({'success': True, 'variante': variante.to_dict()})


@admin_bp.route('/variantes/<int:variante_id>/eliminar', methods=['POST'])
@admin_required
def eliminar_variante(variante_id):
    variante = db.session.get(ProductoVariante, variante_id)
    if variante is None:
        return jsonify({'success': False, 'error': 'Variante no encontrada'}), 404
    if DetalleVenta.query.filter_by(variante_id=variante.id).first():
        return jsonify({'success': False, 'error': 'La variante tiene ventas registradas'}), 400
    db.session.delete(variante)
    db.session.commit()
    return jsonify({'success': True})


# ==================== PROMOCIONES ====================

def _aplicar_promocion(promo, datos):
    codigo = (datos.get('codigo_cupon') or promo.codigo_cupon or '').strip()
    if not codigo:
        return 'El código del cupón es obligatorio'
    duplicado = Promocion.query.filter(Promocion.codigo_cupon.ilike(codigo))
    if promo.id:
        duplicado = duplicado.filter(Promocion.id != promo.id)
    if duplicado.first():
        return 'Ya existe un cupón con ese código'

    descuento = decimal(datos.get('descuento'), promo.descuento)
    if descuento is None or descuento <= 0:
        return 'El descuento debe ser mayor a cero'

    try:
        inicio = datetime.fromisoformat(datos['fecha_inicio']) if datos.get('fecha_inicio') else promo.fecha_inicio
        fin = datetime.fromisoformat(datos['fecha_fin']) if datos.get('fecha_fin') else None
    except ValueError:
        return 'Fechas no válidas'
    if inicio and fin and fin < inicio:
        return 'La fecha de fin no puede ser anterior a la de inicio'

    promo.codigo_cupon = codigo
    promo.descripcion = (datos.get('descripcion') or promo.descripcion or '').strip() or None
    promo.descuento = descuento
    promo.fecha_inicio = inicio or datetime.utcnow()
    promo.fecha_fin = fin
    return None


@admin_bp.route('/promociones', methods=['GET', 'POST'])
@admin_required
def promociones():
    if request.method == 'POST':
        promo = Promocion()
        error = _aplicar_promocion(promo, datos_request())
        if error:
            return jsonify({'success': False, 'error': error}), 400
        db.session.add(promo)
        db.session.commit()
        return jsonify({'success': True, 'promocion': promo.to_dict()}), 201

    promos = Promocion.query.order_by(Promocion.fecha_inicio.desc()).all()
    return jsonify({'success': True, 'promociones': [dict(p.to_dict(), vigente=p.es_vigente()) for p in promos]})


@admin_bp.route('/promociones/<int:promocion_id>', methods=['POST'])
@admin_required
def editar_promocion(promocion_id):
    promo = db.session.get(Promocion, promocion_id)
    if promo is None:
        return jsonify({'success': False, 'error': 'Promoción no encontrada'}), 404
    error = _aplicar_promocion(promo, datos_request())
    if error:
        db.session.rollback()
        return jsonify({'success': False, 'error': error}), 400
    db.session.commit()
    return jsonify({'success': True, 'promocion': promo.to_dict()})


@admin_bp.route('/promociones/<int:promocion_id>/eliminar', methods=['POST'])
@admin_required
def eliminar_promocion(promocion_id):
    promo = db.session.get(Promocion, promocion_id)
    if promo is None:
        return jsonify({'success': False, 'error': 'Promoción no encontrada'}), 404
    db.session.delete(promo)
    db.session.commit()
    return jsonify({'success': True})


# ==================== ENVÍOS ====================

@admin_bp.route('/envios', methods=['GET', 'POST'])
@admin_required
def envios():
    """Tarifas de envío del administrador (respaldo de los vendedores)"""
    service = envios_config_service()
    if request.method == 'POST':
        reglas = (request.get_json(silent=True) or {}).get('reglas') or []
        try:
            guardadas = service.set_admin(reglas)
        except ValueError as e:
            return jsonify({'success': False, 'error': str(e)}), 400
        return jsonify({'success': True, 'reglas': [r.to_dict() for r in guardadas]})

    return jsonify({'success': True, 'reglas': [r.to_dict() for r in service.get_admin()]})


# ==================== REPORTES Y VENTAS ====================

@admin_bp.route('/reportes', methods=['GET'])
@admin_required
def reportes():
    limit = min(max(entero(request.args.get('limit'), 50), 1), 500)
    return jsonify({
        'success': True,
        'metricas': reportes_service.metricas(),
        'ventas': reportes_service.ventas_recientes(limit)
    })


@admin_bp.route('/ventas/<int:venta_id>', methods=['GET'])
@admin_required
def venta_detalle(venta_id):
    data = reportes_service.venta_detalle(venta_id)
    if data is None:
        return jsonify({'success': False, 'error': 'Venta no encontrada'}), 404
    data['tiene_devoluciones'] = devoluciones_service.tiene_devoluciones(venta_id)
    data['total_devueltas'] = devoluciones_service.total_devueltas(venta_id)
    return jsonify({'success': True, **data})


@admin_bp.route('/ventas/<int:venta_id>/marcar-enviada', methods=['POST'])
@admin_required
def marcar_enviada(venta_id):
    ok, mensaje = pedidos_service.marcar_enviada(venta_id, get_current_user().id)
    if not ok:
        return jsonify({'success': False, 'error': mensaje}), 404 if mensaje == 'Pedido no encontrado' else 400
    return jsonify({'success': True, 'message': mensaje})


@admin_bp.route('/ventas/<int:venta_id>/reportar', methods=['POST'])
@admin_required
def reportar_venta(venta_id):
    datos = datos_request()
    ok, mensaje = devoluciones_service.revertir_venta(
        venta_id, datos.get('motivo'), datos.get('nota'), get_current_user().id
    )
    if not ok:
        return jsonify({'success': False, 'error': mensaje}), 404 if mensaje == 'La venta no existe' else 400
    return jsonify({'success': True, 'message': mensaje})


@admin_bp.route('/ventas/<int:venta_id>/devoluciones', methods=['POST'])
@admin_required
def devoluciones(venta_id):
    datos = request.get_json(silent=True) or {}
    if not isinstance(datos, dict):
        datos = {}
    resultado = devoluciones_service.procesar(
        venta_id, datos.get('lineas') or {}, datos.get('motivo'), datos.get('nota')
    )
    if not resultado['success']:
        codigo = 404 if resultado['message'] == 'La venta no existe' else 400
        return jsonify(resultado), codigo
    return jsonify(resultado)
