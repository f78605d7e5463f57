import pytest

from simone.services.carrito_service import agregar_producto
from simone.services.envios_service import (EnviosConfigService, EnviosResolver, EnviosCarritoService,
                                            normalizar_texto, validar_regla)


def test_normalizar_texto():
    assert normalizar_texto('  Bolívar ') == 'bolivar'
    assert normalizar_texto('MANABÍ') == 'manabi'
    assert normalizar_texto(None) == ''


@pytest.fixture
def config(app):
    return EnviosConfigService(app.config['DATA_FOLDER'])


@pytest.fixture
def resolver(config):
    config.set_admin([
        {'provincia': 'Pichincha', 'precio': 5},
        {'provincia': 'Pichincha', 'ciudad': 'Quito', 'precio': 3},
        {'provincia': 'Guayas', 'precio': 7, 'activo': False},
    ])
    config.set_by_proveedor('9', [
        {'provincia': 'Pichincha', 'ciudad': 'Cayambe', 'precio': 2.5},
        {'provincia': 'Azuay', 'precio': 4},
    ])
    return EnviosResolver(config)


def test_set_admin_valida_reglas(config):
    with pytest.raises(ValueError):
        config.set_admin([{'provincia': '', 'precio': 1}])
    with pytest.raises(ValueError):
        config.set_admin([{'provincia': 'Loja', 'precio': 10000}])
    assert config.get_admin() == []


@pytest.mark.parametrize('precio', ['abc', '1.2.3', -1])
def test_validar_regla_precio(precio):
    ok, mensaje, regla = validar_regla({'provincia': 'Loja', 'precio': precio})
    assert not ok and regla is None


def test_validar_regla_precio_con_coma():
    ok, _, regla = validar_regla({'provincia': 'Loja', 'precio': '3,50'})
    assert ok and regla.precio == 3.5


def test_regla_inactiva_desde_formulario(config):
    config.set_by_proveedor('9', [{'provincia': 'Loja', 'precio': '4', 'activo': 'false'}])
    assert config.get_by_proveedor('9')[0].activo is False
    assert EnviosResolver(config).get_tarifa('9', 'Loja') is None

    with pytest.raises(ValueError):
        config.set_by_proveedor('9', [{'provincia': 'Loja', 'precio': 'abc'}])


def test_orden_de_resolucion(resolver):
    assert resolver.get_tarifa('9', 'Pichincha', 'cayambe') == (2.5, 'vendedor', 'ciudad')
    assert resolver.get_tarifa('9', 'azuay', 'Cuenca') == (4.0, 'vendedor', 'provincia')
    assert resolver.get_tarifa('9', 'PICHINCHA', 'Quito') == (3.0, 'admin', 'ciudad')
    assert resolver.get_tarifa('9', 'Pichincha', 'Machachi') == (5.0, 'admin', 'provincia')
    assert resolver.get_tarifa('1', 'Pichincha') == (5.0, 'admin', 'provincia')


def test_reglas_inactivas_se_ignoran(resolver):
    assert resolver.get_tarifa('9', 'Guayas', 'Guayaquil') is None


@pytest.mark.parametrize('vendedor, provincia', [('', 'Pichincha'), ('9', ''), ('9', 'P'), ('9', 'x' * 101)])
def test_datos_invalidos(resolver, vendedor, provincia):
    with pytest.raises(ValueError):
        resolver.get_tarifa(vendedor, provincia)


def test_calcular_un_cobro_por_vendedor(resolver):
    service = EnviosCarritoService(resolver)
    resultado = service.calcular(['9', '1', '9'], 'Pichincha', 'Quito')
    assert resultado['por_vendedor'] == {'9': 3.0, '1': 3.0}
    assert resultado['total_envio'] == 6.0
    assert resultado['mensajes'] == []


def test_calcular_vendedor_sin_tarifa(resolver):
    resultado = EnviosCarritoService(resolver).calcular(['9'], 'Loja', 'Catamayo')
    assert resultado['total_envio'] == 0.0
    assert resultado['por_vendedor'] == {'9': 0.0}
    assert resultado['mensajes'] == ['El vendedor 9 no tiene tarifa configurada para Loja / Catamayo.']


def test_calcular_provincia_invalida_un_mensaje(resolver):
    resultado = EnviosCarritoService(resolver).calcular(['9'], 'P')
    assert resultado['por_vendedor'] == {'9': 0.0}
    assert resultado['mensajes'] == ['La provincia debe tener entre 2 y 100 caracteres']


def test_calcular_sin_provincia(resolver):
    resultado = EnviosCarritoService(resolver).calcular(['9'], None)
    assert resultado['total_envio'] == 0.0
    assert resultado['mensajes'] == ['Completa tu provincia en el perfil para calcular el envío.']


def test_calcular_para_usuario(resolver, cliente, vendedor, make_producto, config):
    config.set_by_proveedor(vendedor.id, [{'provincia': 'Pichincha', 'precio': 1.5}])
    agregar_producto(make_producto(vendedor), cliente, 1)
    resultado = EnviosCarritoService(resolver).calcular_para_usuario(cliente.id)
    assert resultado['por_vendedor'] == {str(vendedor.id): 1.5}
    assert resultado['total_envio'] == 1.5
