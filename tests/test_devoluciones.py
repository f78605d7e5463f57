import pytest

from simone import db
from simone.models.inventario import Devolucion, MovimientoInventario, MOVIMIENTO_ENTRADA
from simone.models.venta import ESTADO_CANCELADO, ESTADO_CONFIRMADO, LINEA_DEVUELTO, LINEA_CANCELADO, LINEA_NORMAL
from simone.services import devoluciones_service


@pytest.fixture
def venta(cliente, vendedor, make_producto, make_venta_pagada):
    camiseta = make_producto(vendedor, precio=20.0, stock=10)
    pantalon = make_producto(vendedor, nombre='Pantalón', stock=0,
                             variantes=[{'talla': '32', 'stock': 4, 'precio_venta': 35.0}])
    venta = make_venta_pagada(cliente, [(camiseta, 3), (pantalon, 1)])
    venta.detalles[1].variante_id = pantalon.variantes[0].id
    db.session.commit()
    return venta


def test_devolucion_parcial(venta):
    camiseta = venta.detalles[0]
    resultado = devoluciones_service.procesar(venta.id, {str(camiseta.id): 2}, 'devolucion', 'talla incorrecta')

    assert resultado == {'success': True, 'message': 'Devolución procesada correctamente',
                         'venta_cancelada': False, 'errors': []}
    assert camiseta.producto.stock == 12
    assert camiseta.estado == LINEA_NORMAL
    assert devoluciones_service.devueltas_acumuladas(camiseta.id) == 2
    assert devoluciones_service.tiene_devoluciones(venta.id)

    devolucion = Devolucion.query.one()
    assert devolucion.motivo == 'devolucion: talla incorrecta'
    movimiento = MovimientoInventario.query.one()
    assert movimiento.tipo == MOVIMIENTO_ENTRADA
    assert movimiento.descripcion == f'Devolución Venta #{venta.id} (Detalle #{camiseta.id})'


def test_no_supera_lo_vendido(venta):
    camiseta = venta.detalles[0]
    devoluciones_service.procesar(venta.id, {camiseta.id: 2}, 'devolucion')
    resultado = devoluciones_service.procesar(venta.id, {camiseta.id: 2}, 'devolucion')

    assert not resultado['success']
    assert resultado['message'] == 'No se pudo procesar la devolución'
    assert resultado['errors'] == [f'La línea {camiseta.id} supera el máximo permitido (1)']
    assert devoluciones_service.total_devueltas(venta.id) == 2


def test_linea_ajena_revierte_todo(venta, cliente, make_producto, make_venta_pagada):
    otra = make_venta_pagada(cliente, [(make_producto(nombre='Ajena'), 1)])
    camiseta = venta.detalles[0]
    resultado = devoluciones_service.procesar(venta.id, {camiseta.id: 1, otra.detalles[0].id: 1}, 'devolucion')

    assert not resultado['success']
    assert len(resultado['errors']) == 1
    assert Devolucion.query.count() == 0
    assert camiseta.producto.stock == 10


def test_devolucion_total_cancela_la_venta(venta):
    camiseta, pantalon = venta.detalles
    resultado = devoluciones_service.procesar(venta.id, {camiseta.id: 3, pantalon.id: 1}, 'motivo-raro')

    assert resultado['success'] and resultado['venta_cancelada']
    assert venta.estado == ESTADO_CANCELADO
    assert camiseta.estado == pantalon.estado == LINEA_DEVUELTO
    # la variante recibe el stock, no el producto
    assert pantalon.variante.stock == 5
    assert pantalon.producto.stock == 0
    assert {d.motivo for d in Devolucion.query.all()} == {'otro'}


@pytest.mark.parametrize('lineas', [{}, None, {'1': 0}, {'1': 'x'}, {'abc': 1}, [1], 'x'])
def test_sin_lineas(venta, lineas):
    resultado = devoluciones_service.procesar(venta.id, lineas, 'devolucion')
    assert resultado['message'] == 'No se especificaron líneas para devolver'


def test_venta_inexistente(app):
    assert devoluciones_service.procesar(999, {1: 1}, 'devolucion')['message'] == 'La venta no existe'


class TestRevertir:
    def test_revierte_lo_pendiente(self, venta, admin):
        camiseta, pantalon = venta.detalles
        devoluciones_service.procesar(venta.id, {camiseta.id: 1}, 'devolucion')

        ok, mensaje = devoluciones_service.revertir_venta(venta.id, 'deposito_falso', 'comprobante editado', admin.id)
        assert (ok, mensaje) == (True, 'Venta revertida y stock repuesto')
        assert camiseta.producto.stock == 13
        assert pantalon.variante.stock == 5
        assert camiseta.estado == pantalon.estado == LINEA_CANCELADO
        assert venta.estado == ESTADO_CANCELADO
        assert venta.notas == 'Venta reportada (deposito_falso): comprobante editado'
        assert venta.historial[-1].estado_anterior == ESTADO_CONFIRMADO
        assert venta.historial[-1].usuario_id == admin.id

        reversiones = [m for m in MovimientoInventario.query.all() if m.descripcion.startswith('Reversión')]
        assert sorted(m.cantidad for m in reversiones) == [1, 2]

    def test_validaciones(self, venta):
        assert devoluciones_service.revertir_venta(venta.id, 'inventado') == (False, 'Datos inválidos')
        assert devoluciones_service.revertir_venta(None, 'otro') == (False, 'Datos inválidos')
        assert devoluciones_service.revertir_venta(999, 'otro') == (False, 'La venta no existe')

        devoluciones_service.revertir_venta(venta.id, 'otro')
        assert devoluciones_service.revertir_venta(venta.id, 'otro') == (False, 'La venta ya está cancelada')
