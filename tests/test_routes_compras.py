import io
import os
from datetime import datetime, timedelta

import pytest

from simone import db
from simone.models.catalogo import Subcategoria
from simone.models.promocion import Promocion
from simone.models.venta import Venta
from simone.services import comprobantes
from simone.services.carrito_service import agregar_producto
from simone.services.envios_service import EnviosConfigService


class TestCatalogo:
    def test_listado_y_filtros(self, client, categoria, make_producto):
        sub = Subcategoria(categoria_id=categoria.id, nombre='Camisetas')
        otra = Subcategoria(categoria_id=categoria.id, nombre='Gorras')
        db.session.add_all([sub, otra])
        db.session.commit()
        make_producto(nombre='A', subcategoria_id=sub.id)
        make_producto(nombre='B', subcategoria_id=otra.id)
        make_producto(nombre='C')

        data = client.get('/catalogo').get_json()
        assert data['success'] and data['total'] == 3
        assert all(p['es_favorito'] is False for p in data['productos'])

        data = client.get(f'/catalogo?subcategoria_ids={sub.id}').get_json()
        assert [p['nombre'] for p in data['productos']] == ['A']

        data = client.get(f'/catalogo?subcategoria_ids={sub.id},{otra.id}').get_json()
        assert data['total'] == 2

    def test_detalle_con_relacionados(self, client, make_producto):
        producto = make_producto(variantes=[{'talla': 'M', 'stock': 2}])
        make_producto(nombre='Hermano')

        data = client.get(f'/producto/{producto.id}').get_json()
        assert data['producto']['nombre'] == 'Camiseta'
        assert len(data['producto']['variantes']) == 1
        assert [p['nombre'] for p in data['relacionados']] == ['Hermano']

    def test_producto_inexistente(self, client, app):
        assert client.get('/producto/999').status_code == 404


class TestCarritoAjax:
    def test_requiere_sesion(self, client, app):
        resp = client.post('/carrito/agregar', json={'producto_id': 1})
        assert resp.status_code == 401

    def test_agregar_y_consultar(self, login, cliente, make_producto):
        client = login(cliente)
        producto = make_producto(stock=3)

        resp = client.post('/carrito/agregar', json={'producto_id': producto.id, 'cantidad': 2})
        assert resp.get_json() == {'ok': True, 'count': 2}

        resp = client.post('/carrito/agregar', json={'producto_id': producto.id, 'cantidad': 2})
        assert resp.status_code == 400
        data = resp.get_json()
        assert data['ok'] is False
        assert (data['stock'], data['enCarrito']) == (3, 2)

        assert client.get('/carrito/info').get_json() == {'count': 2, 'subtotal': 20.0}

    def test_agregar_producto_inexistente(self, login, cliente):
        resp = login(cliente).post('/carrito/agregar', data={'producto_id': '999'})
        assert resp.status_code == 404

    def test_info_anonimo(self, client, app):
        assert client.get('/carrito/info').get_json() == {'count': 0, 'subtotal': 0.0}

    def test_actualizar_y_eliminar(self, login, cliente, make_producto):
        client = login(cliente)
        detalle = agregar_producto(make_producto(precio=5.0, stock=10), cliente, 1)

        data = client.post('/carrito/actualizar', json={'detalle_id': detalle.id, 'cantidad': 4}).get_json()
        assert data == {'ok': True, 'subtotal': 20.0, 'count': 4, 'total': 20.0}

        assert client.post('/carrito/actualizar', json={}).status_code == 400
        assert client.post('/carrito/actualizar', json={'detalle_id': detalle.id, 'cantidad': 50}).status_code == 400

        data = client.post(f'/carrito/eliminar/{detalle.id}').get_json()
        assert data == {'ok': True, 'count': 0, 'subtotal': 0}
        assert client.post(f'/carrito/eliminar/{detalle.id}').status_code == 404

    def test_cupon(self, login, cliente, make_producto):
        db.session.add(Promocion(codigo_cupon='DESC5', descuento=5, fecha_inicio=datetime.utcnow() - timedelta(days=1)))
        db.session.commit()
        client = login(cliente)
        agregar_producto(make_producto(precio=30.0), cliente, 1)

        assert client.post('/carrito/cupon', json={'codigo': 'nada'}).status_code == 400
        assert client.post('/carrito/cupon', json={'codigo': ''}).status_code == 400
        assert client.post('/carrito/cupon', json={'codigo': 'desc5'}).get_json()['ok']

        data = client.get('/carrito').get_json()
        assert data['cupon']['codigo_cupon'] == 'DESC5'
        assert data['totales']['total'] == 25.0

        client.post('/carrito/cupon/quitar')
        assert client.get('/carrito').get_json()['cupon'] is None


class TestFavoritos:
    def test_toggle(self, login, cliente, make_producto):
        client = login(cliente)
        producto = make_producto()

        assert client.post(f'/favoritos/{producto.id}/toggle').get_json() == {'ok': True, 'esFavorito': True}
        favoritos = client.get('/favoritos').get_json()['favoritos']
        assert [f['producto_id'] for f in favoritos] == [producto.id]
        assert client.get('/catalogo').get_json()['productos'][0]['es_favorito'] is True

        assert client.post(f'/favoritos/{producto.id}/toggle').get_json()['esFavorito'] is False
        assert client.get('/favoritos').get_json()['favoritos'] == []

    def test_producto_inexistente(self, login, cliente):
        assert login(cliente).post('/favoritos/999/toggle').status_code == 404


def _formulario(**extra):
    data = {
        'depositante': 'Ana Pérez',
        'banco_seleccion': 'Banco Pichincha',
        'comprobante': (io.BytesIO(b'%PDF-1.4'), 'deposito.pdf'),
    }
    data.update(extra)
    return data


class TestCheckout:
    @pytest.fixture
    def carrito_listo(self, app, cliente, vendedor, make_producto):
        EnviosConfigService(app.config['DATA_FOLDER']).set_by_proveedor(
            vendedor.id, [{'provincia': 'Pichincha', 'precio': 3}])
        producto = make_producto(vendedor, precio=15.0, stock=4)
        agregar_producto(producto, cliente, 2)
        return producto

    def test_resumen(self, login, cliente, vendedor, carrito_listo):
        data = login(cliente).get('/compras/resumen').get_json()
        assert data['envio']['total_envio'] == 3.0
        assert data['totales']['total'] == 33.0
        assert data['pago']['vendedor_id_unico'] == str(vendedor.id)
        assert data['pago']['origen'] == 'admin'
        assert data['faltantes'] == []

    def test_confirmar(self, login, cliente, carrito_listo):
        client = login(cliente)
        resp = client.post('/compras/confirmar', data=_formulario(), content_type='multipart/form-data')
        assert resp.status_code == 201
        data = resp.get_json()
        assert data['success']
        venta = data['venta']
        assert venta['subtotal'] == 30.0
        assert venta['envio_total'] == 3.0
        assert venta['total'] == 33.0
        assert venta['direccion'] == 'Av. Siempre Viva 123'

        assert carrito_listo.stock == 2
        carpeta = comprobantes.carpeta_comprobantes()
        assert os.path.exists(os.path.join(carpeta, f'venta-{venta["id"]}.pdf'))
        assert comprobantes.buscar_meta_deposito(venta['id']) == ('Ana Pérez', 'Banco Pichincha')
        assert comprobantes.buscar_envio_total(venta['id']) == 3.0
        assert client.get('/carrito/info').get_json()['count'] == 0

    @pytest.mark.parametrize('campo, valor', [
        ('depositante', ' '),
        ('banco_seleccion', ''),
        ('comprobante', (io.BytesIO(b'MZ'), 'virus.exe')),
    ])
    def test_validaciones(self, login, cliente, carrito_listo, campo, valor):
        resp = login(cliente).post('/compras/confirmar', data=_formulario(**{campo: valor}),
                                   content_type='multipart/form-data')
        assert resp.status_code == 400
        assert Venta.query.count() == 0

    def test_sin_comprobante(self, login, cliente, carrito_listo):
        data = _formulario()
        data.pop('comprobante')
        resp = login(cliente).post('/compras/confirmar', data=data, content_type='multipart/form-data')
        assert resp.status_code == 400

    def test_carrito_vacio(self, login, cliente):
        resp = login(cliente).post('/compras/confirmar', data=_formulario(), content_type='multipart/form-data')
        assert resp.status_code == 400
        assert 'vacío' in resp.get_json()['error']
