import pytest

from simone.models.configuracion import CuentaBancaria
from simone.services.bancos_config import BancosConfigService, validar_cuenta, listar


def cuenta(**extra):
    datos = {'codigo': 'pichincha', 'nombre': 'Banco Pichincha', 'numero': '2200112233'}
    datos.update(extra)
    return datos


class TestValidarCuenta:
    def test_normaliza_campos(self):
        ok, _, c = validar_cuenta(cuenta(codigo='  PICHINCHA ', numero='2200 1122 33', titular='  '))
        assert ok
        assert c.codigo == 'pichincha'
        assert c.numero == '2200112233'
        assert c.tipo == 'Cuenta de Ahorros'
        assert c.titular is None
        assert c.activo is True

    @pytest.mark.parametrize('extra', [
        {'codigo': 'a'},
        {'codigo': 'con espacio'},
        {'nombre': ''},
        {'nombre': 'x' * 121},
        {'numero': '12345'},
        {'numero': '12345abc'},
        {'tipo': 'x' * 41},
        {'titular': 'x' * 121},
        {'ruc': '12345'},
        {'ruc': '12345678901'},
    ])
    def test_rechaza_datos_invalidos(self, extra):
        ok, mensaje, c = validar_cuenta(cuenta(**extra))
        assert not ok
        assert mensaje
        assert c is None

    @pytest.mark.parametrize('ruc', ['1712345678', '1712345678001'])
    def test_ruc_valido(self, ruc):
        ok, _, c = validar_cuenta(cuenta(ruc=ruc))
        assert ok and c.ruc == ruc


@pytest.fixture
def service(app):
    return BancosConfigService(app.config['DATA_FOLDER'])


def test_guardar_y_leer_admin(service):
    ok, _ = service.guardar_cuenta_admin(cuenta())
    assert ok
    cuentas = service.get_admin()
    assert [c.codigo for c in cuentas] == ['pichincha']
    assert isinstance(cuentas[0], CuentaBancaria)


def test_codigo_duplicado_sin_importar_mayusculas(service):
    service.guardar_cuenta_admin(cuenta())
    ok, mensaje = service.guardar_cuenta_admin(cuenta(codigo='PICHINCHA', numero='99999999'))
    assert not ok
    assert 'pichincha' in mensaje


def test_editar_con_codigo_original(service):
    service.guardar_cuenta_admin(cuenta())
    ok, _ = service.guardar_cuenta_admin(cuenta(codigo='pichincha2', nombre='Pichincha Corriente'),
                                         codigo_original='pichincha')
    assert ok
    assert [c.codigo for c in service.get_admin()] == ['pichincha2']


def test_toggle_y_eliminar(service):
    service.guardar_cuenta_admin(cuenta())
    ok, mensaje = service.toggle_activo_admin('PICHINCHA')
    assert ok and mensaje == 'Cuenta desactivada'
    assert service.activas_admin() == []
    ok, _ = service.eliminar_cuenta_admin('pichincha')
    assert ok
    assert service.get_admin() == []
    assert service.eliminar_cuenta_admin('pichincha') == (False, 'La cuenta no existe')


def test_cuentas_por_proveedor_y_cache(service):
    service.guardar_cuenta_proveedor(5, cuenta(codigo='guayaquil', nombre='Banco Guayaquil'))
    assert [c.codigo for c in service.get_by_proveedor(5)] == ['guayaquil']
    # la escritura invalida el cache
    service.set_by_proveedor(5, [])
    assert service.get_by_proveedor(5) == []
    assert service.delete_proveedor(5) is True


def test_listar_filtra_y_ordena():
    cuentas = [
        CuentaBancaria(codigo='b', nombre='Produbanco', numero='111111', tipo='Cuenta Corriente'),
        CuentaBancaria(codigo='a', nombre='Austro', numero='222222', titular='Ana Pérez'),
        CuentaBancaria(codigo='c', nombre='Pichincha', numero='333333'),
    ]
    assert [c.codigo for c in listar(cuentas)] == ['a', 'c', 'b']
    assert [c.codigo for c in listar(cuentas, ordenar='nombre_desc')] == ['b', 'c', 'a']
    assert [c.codigo for c in listar(cuentas, ordenar='codigo_desc')] == ['c', 'b', 'a']
    assert [c.codigo for c in listar(cuentas, filtro='ana')] == ['a']
    assert [c.codigo for c in listar(cuentas, filtro='3333')] == ['c']
