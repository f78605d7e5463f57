import logging
from datetime import datetime

from sqlalchemy import func

from simone import db
from simone.models.carrito import Carrito, CarritoDetalle, CARRITO_VACIO, CARRITO_EN_USO, CARRITO_CERRADO
from simone.models.catalogo import ProductoVariante
from simone.models.inventario import MovimientoInventario, MOVIMIENTO_SALIDA
from simone.models.promocion import Promocion
from simone.models.venta import (Venta, DetalleVenta, ESTADO_PENDIENTE, PAGO_PENDIENTE,
                                 METODO_TRANSFERENCIA)

logger = logging.getLogger(__name__)


class CarritoError(Exception):
    """Error de validación del carrito o del checkout."""


class StockInsuficienteError(CarritoError):
    def __init__(self, stock, en_carrito, nombre=None):
        self.stock = stock
        self.en_carrito = en_carrito
        self.nombre = nombre
        super().__init__(f'Stock insuficiente. Disponible: {stock}, en tu carrito: {en_carrito}')


# ==================== CARRITO ====================

def obtener_carrito_abierto(usuario):
    """Carrito no cerrado del usuario; se crea vacío si no existe."""
    carrito = (Carrito.query
               .filter(Carrito.usuario_id == usuario.id, Carrito.estado != CARRITO_CERRADO)
               .order_by(Carrito.id.desc())
               .first())
    if carrito is None:
        carrito = Carrito(usuario_id=usuario.id, estado=CARRITO_VACIO)
        db.session.add(carrito)
        db.session.flush()
    return carrito


def _detalle_del_usuario(detalle_id, usuario):
    detalle = db.session.get(CarritoDetalle, detalle_id)
    if detalle is None or detalle.carrito.usuario_id != usuario.id or detalle.carrito.estado == CARRITO_CERRADO:
        return None
    return detalle


def agregar_producto(producto, usuario, cantidad=1, variante_id=None):
    """Agregar (o sumar) un producto al carrito abierto del usuario."""
    if cantidad is None or int(cantidad) <= 0:
        raise CarritoError('La cantidad debe ser mayor a cero')
    cantidad = int(cantidad)

    variante = None
    if producto.tiene_variantes:
        if not variante_id:
            raise CarritoError('Selecciona una variante del producto')
        variante = db.session.get(ProductoVariante, int(variante_id))
        if variante is None or variante.producto_id != producto.id:
            raise CarritoError('La variante seleccionada no pertenece al producto')

    stock = (variante.stock if variante is not None else producto.stock) or 0
    precio = variante.precio_efectivo if variante is not None else producto.precio_venta

    carrito = obtener_carrito_abierto(usuario)
    detalle = next((d for d in carrito.detalles
                    if d.producto_id == producto.id and d.variante_id == (variante.id if variante else None)),
                   None)
    en_carrito = detalle.cantidad if detalle else 0

    if en_carrito + cantidad > stock:
        raise StockInsuficienteError(stock, en_carrito, producto.nombre)

    if detalle:
        detalle.cantidad = en_carrito + cantidad
        detalle.precio = precio
    else:
        detalle = CarritoDetalle(
            producto_id=producto.id,
            variante_id=variante.id if variante else None,
            cantidad=cantidad,
            precio=precio
        )
        carrito.detalles.append(detalle)

    carrito.estado = CARRITO_EN_USO
    carrito.fecha_actualizacion = datetime.utcnow()
    db.session.commit()
    return detalle


def actualizar_cantidad(detalle_id, usuario, cantidad):
    """Devuelve (ok, subtotal_linea, error)."""
    detalle = _detalle_del_usuario(detalle_id, usuario)
    if detalle is None:
        return False, 0.0, 'El producto no está en tu carrito'

    try:
        cantidad = int(cantidad)
    except (TypeError, ValueError):
        cantidad = 1
    if cantidad < 1:
        cantidad = 1

    stock = detalle.stock_referencia
    if cantidad > stock:
        return False, detalle.subtotal, f'Stock insuficiente. Disponible: {stock}'

    detalle.cantidad = cantidad
    detalle.carrito.fecha_actualizacion = datetime.utcnow()
    db.session.commit()
    return True, detalle.subtotal, None


def eliminar_detalle(detalle_id, usuario):
    detalle = _detalle_del_usuario(detalle_id, usuario)
    if detalle is None:
        return False
    carrito = detalle.carrito
    carrito.detalles.remove(detalle)
    db.session.delete(detalle)
    if not carrito.detalles:
        carrito.estado = CARRITO_VACIO
    carrito.fecha_actualizacion = datetime.utcnow()
    db.session.commit()
    return True


def vaciar(usuario):
    carrito = obtener_carrito_abierto(usuario)
    for detalle in list(carrito.detalles):
        carrito.detalles.remove(detalle)
        db.session.delete(detalle)
    carrito.estado = CARRITO_VACIO
    db.session.commit()


def resumen(usuario):
    carrito = obtener_carrito_abierto(usuario)
    return {
        'count': carrito.cantidad_items(),
        'subtotal': carrito.calcular_subtotal(),
        'items': [d.to_dict() for d in carrito.detalles]
    }


def vendedores_en_carrito(usuario_id):
    """Ids (texto) de los vendedores distintos con productos en el carrito abierto."""
    carrito = (Carrito.query
               .filter(Carrito.usuario_id == usuario_id, Carrito.estado != CARRITO_CERRADO)
               .order_by(Carrito.id.desc())
               .first())
    if carrito is None:
        return []
    vendedores = []
    for detalle in carrito.detalles:
        if (detalle.cantidad or 0) <= 0 or detalle.producto is None:
            continue
        vid = str(detalle.producto.vendedor_id).strip() if detalle.producto.vendedor_id is not None else ''
        if vid and vid not in vendedores:
            vendedores.append(vid)
    return vendedores


# ==================== CUPONES Y TOTALES ====================

def validar_cupon(codigo, ahora=None):
    """Promoción vigente para el código o None."""
    codigo = (codigo or '').strip()
    if not codigo:
        return None
    promo = Promocion.query.filter(func.lower(Promocion.codigo_cupon) == codigo.lower()).first()
    if promo and promo.es_vigente(ahora):
        return promo
    return None


def calcular_totales(subtotal, descuento=0.0, envio=0.0):
    subtotal = round(subtotal or 0, 2)
    descuento = round(descuento or 0, 2)
    envio = round(envio or 0, 2)
    return {
        'subtotal': subtotal,
        'descuento': descuento,
        'envio': envio,
        'total': round(max(0.0, subtotal - descuento) + envio, 2)
    }


def faltantes_stock(carrito):
    faltantes = []
    for detalle in carrito.detalles:
        disponible = detalle.stock_referencia
        if detalle.cantidad > disponible:
            faltantes.append({
                'detalle_id': detalle.id,
                'nombre': detalle.producto.nombre if detalle.producto else f'#{detalle.producto_id}',
                'disponible': disponible,
                'pedido': detalle.cantidad
            })
    return faltantes


def mensaje_faltantes(faltantes):
    partes = [f"{f['nombre']} (disp: {f['disponible']}, pediste: {f['pedido']})" for f in faltantes]
    return 'Stock insuficiente para: ' + ', '.join(partes)


# ==================== CHECKOUT ====================

def procesar_carrito(usuario, direccion, cupon=None, envio=None):
    """Convertir el carrito en una venta pendiente de pago (una sola transacción)."""
    try:
        if not usuario or not usuario.activo:
            raise CarritoError('Usuario no válido o inactivo')

        carrito = obtener_carrito_abierto(usuario)
        if not carrito.detalles:
            raise CarritoError('El carrito está vacío')

        direccion = (direccion or '').strip()
        if not direccion:
            raise CarritoError('La dirección de envío es obligatoria')

        faltantes = faltantes_stock(carrito)
        if faltantes:
            raise CarritoError(mensaje_faltantes(faltantes))

        subtotal = carrito.calcular_subtotal()
        descuento = cupon.descuento if cupon is not None else 0.0
        totales = calcular_totales(subtotal, descuento, envio or 0.0)

        venta = Venta(
            numero_orden=Venta.generar_numero_orden(),
            usuario_id=usuario.id,
            estado=ESTADO_PENDIENTE,
            estado_pago=PAGO_PENDIENTE,
            metodo_pago=METODO_TRANSFERENCIA,
            direccion=direccion,
            ciudad=usuario.ciudad,
            provincia=usuario.provincia,
            subtotal=totales['subtotal'],
            descuento=totales['descuento'],
            envio_total=totales['envio'],
            total=totales['total'],
            cupon_codigo=cupon.codigo_cupon if cupon is not None else None
        )
        db.session.add(venta)

        for detalle in carrito.detalles:
            if detalle.variante is not None:
                detalle.variante.stock -= detalle.cantidad
            else:
                detalle.producto.stock -= detalle.cantidad

            db.session.add(MovimientoInventario(
                producto_id=detalle.producto_id,
                variante_id=detalle.variante_id,
                tipo=MOVIMIENTO_SALIDA,
                cantidad=detalle.cantidad,
                descripcion=f'Venta - Carrito #{carrito.id}'
            ))

            linea = DetalleVenta(
                producto_id=detalle.producto_id,
                variante_id=detalle.variante_id,
                vendedor_id=detalle.producto.vendedor_id,
                cantidad=detalle.cantidad,
                precio_unitario=detalle.precio,
                descuento=0.0
            )
            linea.calcular_subtotal()
            venta.detalles.append(linea)

        venta.agregar_historial(None, ESTADO_PENDIENTE, 'Pedido creado desde el carrito', usuario.id)

        carrito.estado = CARRITO_CERRADO
        for detalle in list(carrito.detalles):
            carrito.detalles.remove(detalle)
            db.session.delete(detalle)
        db.session.add(Carrito(usuario_id=usuario.id, estado=CARRITO_VACIO))

        db.session.commit()
    except CarritoError:
        db.session.rollback()
        raise
    except Exception:
        db.session.rollback()
        logger.exception('Error procesando el carrito del usuario %s', getattr(usuario, 'id', None))
        raise

    logger.info('Venta %s creada para el usuario %s (total %.2f)', venta.numero_orden, usuario.id, venta.total)
    return venta
