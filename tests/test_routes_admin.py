from datetime import datetime

import pytest

from simone import db
from simone.models.catalogo import Producto
from simone.models.promocion import Promocion
from simone.models.usuario import ROL_VENDEDOR
from simone.models.venta import ESTADO_CANCELADO, ESTADO_ENVIADO


@pytest.mark.parametrize('url', ['/admin/usuarios', '/admin/bancos/', '/admin/ventas/', '/admin/reportes'])
def test_rutas_admin_protegidas(client, login, cliente, url):
    assert client.get(url).status_code == 401
    assert login(cliente).get(url).status_code == 403


class TestUsuarios:
    def test_listar_y_filtrar(self, login, admin, cliente, vendedor):
        client = login(admin)
        assert client.get('/admin/usuarios').get_json()['total'] == 3
        data = client.get(f'/admin/usuarios?rol={ROL_VENDEDOR}').get_json()
        assert [u['id'] for u in data['usuarios']] == [vendedor.id]
        data = client.get('/admin/usuarios?q=cliente@').get_json()
        assert [u['id'] for u in data['usuarios']] == [cliente.id]

    def test_cambiar_rol(self, login, admin, cliente):
        client = login(admin)
        assert client.post(f'/admin/usuarios/{cliente.id}/rol', json={'rol': 'Jefe'}).status_code == 400
        assert client.post(f'/admin/usuarios/{admin.id}/rol', json={'rol': ROL_VENDEDOR}).status_code == 400
        assert client.post(f'/admin/usuarios/{cliente.id}/rol', json={'rol': ROL_VENDEDOR}).status_code == 200
        assert cliente.rol == ROL_VENDEDOR

    def test_activar_y_eliminar(self, login, admin, cliente, make_usuario):
        client = login(admin)
        assert client.post(f'/admin/usuarios/{cliente.id}/activar').get_json()['activo'] is False
        assert client.post(f'/admin/usuarios/{cliente.id}/activar', data={'activo': 'true'}).get_json()['activo']
        assert client.post(f'/admin/usuarios/{admin.id}/activar').status_code == 400

        efimero = make_usuario()
        assert client.post(f'/admin/usuarios/{efimero.id}/eliminar').status_code == 200
        assert client.post(f'/admin/usuarios/{efimero.id}/eliminar').status_code == 404

    def test_no_elimina_vendedor_con_productos(self, login, admin, vendedor, make_producto):
        make_producto(vendedor)
        assert login(admin).post(f'/admin/usuarios/{vendedor.id}/eliminar').status_code == 400


class TestCatalogoAdmin:
    def test_categorias_y_subcategorias(self, login, admin):
        client = login(admin)
        resp = client.post('/admin/categorias', json={'nombre': 'Calzado'})
        assert resp.status_code == 201
        categoria_id = resp.get_json()['categoria']['id']
        assert client.post('/admin/categorias', json={'nombre': 'calzado'}).status_code == 400

        resp = client.post(f'/admin/categorias/{categoria_id}/subcategorias', json={'nombre': 'Botas'})
        assert resp.status_code == 201
        sub_id = resp.get_json()['subcategoria']['id']
        client.post(f'/admin/subcategorias/{sub_id}', json={'nombre': 'Botines'})

        categorias = client.get('/admin/categorias').get_json()['categorias']
        assert categorias[0]['subcategorias'][0]['nombre'] == 'Botines'

        assert client.post(f'/admin/subcategorias/{sub_id}/eliminar').status_code == 200
        assert client.post(f'/admin/categorias/{categoria_id}/eliminar').status_code == 200

    def test_no_elimina_categoria_con_productos(self, login, admin, categoria, make_producto):
        make_producto()
        assert login(admin).post(f'/admin/categorias/{categoria.id}/eliminar').status_code == 400

    def test_productos(self, login, admin, categoria, vendedor):
        client = login(admin)
        assert client.post('/admin/productos', json={'nombre': 'Sin precio'}).status_code == 400
        assert client.post('/admin/productos', json={'nombre': 'X', 'precio_venta': -1}).status_code == 400
        assert client.post('/admin/productos', json={'nombre': 'X', 'precio_venta': 5,
                                                    'categoria_id': 999}).status_code == 400

        resp = client.post('/admin/productos', data={'nombre': 'Zapato', 'precio_venta': '39,90', 'stock': '7',
                                                    'categoria_id': str(categoria.id),
                                                    'vendedor_id': str(vendedor.id)})
        assert resp.status_code == 201
        producto = resp.get_json()['producto']
        assert producto['precio_venta'] == 39.9
        assert producto['vendedor_id'] == vendedor.id

        resp = client.post(f'/admin/productos/{producto["id"]}', json={'stock': 3, 'marca': 'Simone'})
        assert resp.get_json()['producto']['stock'] == 3
        assert client.get('/admin/productos?q=simone').get_json()['total'] == 1

        resp = client.post(f'/admin/productos/{producto["id"]}/variantes', json={'talla': '40', 'stock': 2})
        assert resp.status_code == 201
        variante_id = resp.get_json()['variante']['id']
        assert client.post(f'/admin/variantes/{variante_id}', json={'stock': 5}).get_json()['variante']['stock'] == 5
        assert client.post(f'/admin/variantes/{variante_id}/eliminar').status_code == 200

        assert client.post(f'/admin/productos/{producto["id"]}/eliminar').status_code == 200
        assert db.session.get(Producto, producto['id']) is None

    def test_no_elimina_producto_vendido(self, login, admin, cliente, make_producto, make_venta_pagada):
        producto = make_producto()
        make_venta_pagada(cliente, [(producto, 1)])
        assert login(admin).post(f'/admin/productos/{producto.id}/eliminar').status_code == 400


class TestPromociones:
    def test_crear_editar_eliminar(self, login, admin):
        client = login(admin)
        resp = client.post('/admin/promociones', json={'codigo_cupon': 'VERANO', 'descuento': 5,
                                                      'fecha_inicio': '2025-01-01'})
        assert resp.status_code == 201
        promo_id = resp.get_json()['promocion']['id']

        assert client.post('/admin/promociones', json={'codigo_cupon': 'verano', 'descuento': 5}).status_code == 400
        assert client.post('/admin/promociones', json={'codigo_cupon': 'X', 'descuento': 0}).status_code == 400
        assert client.post('/admin/promociones', json={'codigo_cupon': 'Y', 'descuento': 3,
                                                      'fecha_inicio': '2025-02-01',
                                                      'fecha_fin': '2025-01-01'}).status_code == 400

        resp = client.post(f'/admin/promociones/{promo_id}', json={'descuento': 8})
        assert resp.get_json()['promocion']['descuento'] == 8.0

        promos = client.get('/admin/promociones').get_json()['promociones']
        assert promos[0]['vigente'] is True

        assert client.post(f'/admin/promociones/{promo_id}/eliminar').status_code == 200
        assert Promocion.query.count() == 0


class TestEnviosYBancos:
    def test_envios_admin(self, login, admin):
        client = login(admin)
        resp = client.post('/admin/envios', json={'reglas': [{'provincia': 'Loja', 'precio': 4}]})
        assert resp.get_json()['reglas'][0]['provincia'] == 'Loja'
        assert client.post('/admin/envios', json={'reglas': [{'provincia': '', 'precio': 4}]}).status_code == 400
        assert len(client.get('/admin/envios').get_json()['reglas']) == 1

    def test_envios_vendedor(self, login, vendedor, cliente):
        assert login(cliente).get('/vendedor/envios').status_code == 403
        client = login(vendedor)
        client.post('/vendedor/envios', json={'reglas': [{'provincia': 'Azuay', 'ciudad': 'Cuenca', 'precio': 2}]})
        reglas = client.get('/vendedor/envios').get_json()['reglas']
        assert reglas[0]['ciudad'] == 'Cuenca'

    def test_bancos_admin(self, login, admin):
        client = login(admin)
        datos = {'codigo': 'pichincha', 'nombre': 'Banco Pichincha', 'numero': '2200112233'}
        assert client.post('/admin/bancos/guardar', data=datos).status_code == 200
        assert client.post('/admin/bancos/guardar', data=datos).status_code == 400
        client.post('/admin/bancos/guardar', json={'codigo': 'austro', 'nombre': 'Austro', 'numero': '99887766'})

        data = client.get('/admin/bancos/?ordenar=nombre_desc').get_json()
        assert [c['codigo'] for c in data['cuentas']] == ['pichincha', 'austro']
        assert client.get('/admin/bancos/?ordenar=raro').get_json()['ordenar'] == 'nombre'

        assert client.post('/admin/bancos/toggle', json={'codigo': 'austro'}).get_json()['message'] == \
            'Cuenta desactivada'
        assert client.post('/admin/bancos/eliminar', json={'codigo': 'austro'}).status_code == 200
        assert client.post('/admin/bancos/eliminar', json={'codigo': 'austro'}).status_code == 404

    def test_bancos_vendedor(self, login, vendedor):
        client = login(vendedor)
        datos = {'codigo': 'mi-cuenta', 'nombre': 'Produbanco', 'numero': '12345678'}
        assert client.post('/vendedor/bancos', json=datos).status_code == 200
        assert [c['codigo'] for c in client.get('/vendedor/bancos').get_json()['cuentas']] == ['mi-cuenta']
        assert client.post('/vendedor/bancos/toggle', json={'codigo': 'mi-cuenta'}).status_code == 200
        assert client.post('/vendedor/bancos/eliminar', json={'codigo': 'otra'}).status_code == 404


class TestVentasAdmin:
    def test_reportes_y_detalle(self, login, admin, cliente, make_producto, make_venta_pagada):
        venta = make_venta_pagada(cliente, [(make_producto(precio=12.0), 2)])
        client = login(admin)

        data = client.get('/admin/reportes').get_json()
        assert data['metricas']['total_ventas'] == 1
        assert data['metricas']['productos_vendidos'] == 2
        assert data['ventas'][0]['comprador']['email'] == cliente.email

        data = client.get(f'/admin/ventas/{venta.id}').get_json()
        assert data['perfil_envio']['ciudad'] == 'Quito'
        assert data['total_devueltas'] == 0
        assert client.get('/admin/ventas/999').status_code == 404

    def test_marcar_enviada_y_reportar(self, login, admin, cliente, make_producto, make_venta_pagada):
        producto = make_producto(stock=5)
        venta = make_venta_pagada(cliente, [(producto, 2)])
        client = login(admin)

        assert client.post(f'/admin/ventas/{venta.id}/marcar-enviada').status_code == 200
        assert venta.estado == ESTADO_ENVIADO

        assert client.post(f'/admin/ventas/{venta.id}/reportar', json={'motivo': 'x'}).status_code == 400
        resp = client.post(f'/admin/ventas/{venta.id}/reportar', json={'motivo': 'deposito_falso'})
        assert resp.status_code == 200
        assert venta.estado == ESTADO_CANCELADO
        assert producto.stock == 7
        assert client.post('/admin/ventas/999/reportar', json={'motivo': 'otro'}).status_code == 404

    def test_devoluciones(self, login, admin, cliente, make_producto, make_venta_pagada):
        venta = make_venta_pagada(cliente, [(make_producto(), 2)])
        detalle_id = venta.detalles[0].id
        client = login(admin)

        resp = client.post(f'/admin/ventas/{venta.id}/devoluciones',
                           json={'lineas': {str(detalle_id): 1}, 'motivo': 'devolucion', 'nota': 'defecto'})
        assert resp.get_json()['success'] is True
        resp = client.post(f'/admin/ventas/{venta.id}/devoluciones', json={'lineas': {str(detalle_id): 5}})
        assert resp.status_code == 400
        assert resp.get_json()['errors']
        assert client.post('/admin/ventas/999/devoluciones', json={'lineas': {'1': 1}}).status_code == 404

    @pytest.mark.parametrize('cuerpo', [{'lineas': [1]}, {'lineas': {'abc': 1}}, {'lineas': 'x'}, [1, 2]])
    def test_devoluciones_lineas_mal_formadas(self, login, admin, cliente, make_producto, make_venta_pagada,
                                              cuerpo):
        venta = make_venta_pagada(cliente, [(make_producto(), 2)])
        resp = login(admin).post(f'/admin/ventas/{venta.id}/devoluciones', json=cuerpo)
        assert resp.status_code == 400
        assert resp.get_json()['message'] == 'No se especificaron líneas para devolver'


MARZO = datetime(2025, 3, 5)


class TestAdminVentas:
    @pytest.fixture
    def ventas(self, cliente, vendedor, make_producto, make_venta_pagada):
        producto = make_producto(vendedor, precio=50.0, stock=20)
        return make_venta_pagada(cliente, [(producto, 2)], fecha_pago=MARZO)

    def test_dashboard_y_vendedores(self, login, admin, vendedor, ventas):
        client = login(admin)
        data = client.get('/admin/ventas/').get_json()
        assert 'estadisticas' in data and 'top_vendedores' in data

        data = client.get('/admin/ventas/vendedores').get_json()
        assert data['vendedores'][0]['vendedor']['id'] == vendedor.id
        assert data['vendedores'][0]['porcentaje'] == 10.0

        data = client.get(f'/admin/ventas/vendedores/{vendedor.id}').get_json()
        assert data['productos'] == 1
        assert len(data['ultimas_ventas']) == 1
        assert client.get(f'/admin/ventas/vendedores/{admin.id}').status_code == 404

    def test_pedidos(self, login, admin, cliente, vendedor, ventas):
        client = login(admin)
        assert client.get('/admin/ventas/pedidos').get_json()['total'] == 1
        assert client.get(f'/admin/ventas/pedidos?vendedor={vendedor.id}').get_json()['total'] == 1
        assert client.get('/admin/ventas/pedidos?busqueda=CLIENTE@').get_json()['total'] == 1
        assert client.get('/admin/ventas/pedidos?estado=Enviado').get_json()['total'] == 0

        assert client.get(f'/admin/ventas/pedidos/{ventas.id}').get_json()['venta']['id'] == ventas.id
        assert client.get('/admin/ventas/pedidos/999').status_code == 404

        resp = client.post(f'/admin/ventas/pedidos/{ventas.id}/estado', json={'estado': 'EnProceso'})
        assert resp.get_json()['message'] == 'Estado actualizado a EnProceso'
        assert client.post(f'/admin/ventas/pedidos/{ventas.id}/estado', json={'estado': 'X'}).status_code == 400
        assert client.post('/admin/ventas/pedidos/999/estado', json={'estado': 'Enviado'}).status_code == 404

        resp = client.post(f'/admin/ventas/pedidos/{ventas.id}/verificar-pago', data={'aprobado': 'false'})
        assert resp.get_json()['message'] == 'Pago marcado como rechazado'

    def test_flujo_de_comisiones(self, login, admin, vendedor, ventas):
        client = login(admin)
        periodo = {'anio': 2025, 'mes': 3, 'quincena': 1}

        data = client.post('/admin/ventas/comisiones/calcular', json=periodo).get_json()
        assert data['total_comisiones'] == 10.0
        assert data['periodo']['inicio'] == '2025-03-01T00:00:00'

        data = client.post('/admin/ventas/comisiones/liquidar', json=periodo).get_json()
        assert data['success'] and len(data['pagos']) == 1
        pago_id = data['pagos'][0]['id']

        resp = client.post('/admin/ventas/comisiones/liquidar', json=dict(periodo, vendedor_id=vendedor.id))
        assert resp.status_code == 400

        assert client.post(f'/admin/ventas/comisiones/{pago_id}/ajustar',
                           json={'bonificaciones': 2}).get_json()['success']
        assert client.post(f'/admin/ventas/comisiones/{pago_id}/aprobar').get_json()['success']
        resp = client.post(f'/admin/ventas/comisiones/{pago_id}/pagar', json={'metodo_pago': 'Transferencia'})
        assert resp.get_json()['success']
        assert client.post(f'/admin/ventas/comisiones/{pago_id}/cancelar').status_code == 400
        assert client.post('/admin/ventas/comisiones/999/aprobar').status_code == 404

        pagos = client.get('/admin/ventas/comisiones?estado=Pagado').get_json()['pagos']
        assert pagos[0]['monto_final'] == 12.0

    def test_liquidar_sin_ventas(self, login, admin):
        resp = login(admin).post('/admin/ventas/comisiones/liquidar', json={'anio': 2020, 'mes': 1, 'quincena': 1})
        assert resp.status_code == 400

    def test_calcular_periodo_invalido(self, login, admin):
        resp = login(admin).post('/admin/ventas/comisiones/calcular', json={'anio': 2025, 'mes': 3, 'quincena': 3})
        assert resp.status_code == 400

    def test_configuraciones(self, login, admin):
        client = login(admin)
        resp = client.post('/admin/ventas/configuraciones', json={'tipo_comision': 'Global', 'porcentaje': 12})
        config_id = resp.get_json()['configuracion']['id']
        assert client.post('/admin/ventas/configuraciones',
                           json={'tipo_comision': 'Global', 'porcentaje': 120}).status_code == 400

        data = client.get('/admin/ventas/configuraciones').get_json()
        assert data['configuraciones'][0]['porcentaje_texto'] == '12.00%'
        assert client.post(f'/admin/ventas/configuraciones/{config_id}/eliminar').status_code == 200
        assert client.post('/admin/ventas/configuraciones/999/eliminar').status_code == 404

    def test_exportar(self, login, admin, ventas):
        client = login(admin)
        resp = client.get('/admin/ventas/exportar/ventas?anio=2025&mes=3')
        assert resp.mimetype == 'text/csv'
        assert resp.headers['Content-Disposition'] == 'attachment; filename=ventas_2025_03.csv'
        assert len(resp.get_data(as_text=True).splitlines()) == 2

        assert client.get('/admin/ventas/exportar/ventas?mes=13').status_code == 400

        resp = client.get('/admin/ventas/exportar/comisiones?anio=2025')
        assert resp.headers['Content-Disposition'] == 'attachment; filename=comisiones_2025.csv'
