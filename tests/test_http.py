import pytest

from simone.utils.http import booleano, decimal, entero, texto


@pytest.mark.parametrize('valor, esperado', [
    ('true', True), ('On', True), ('sí', True), ('1', True), (1, True), (True, True),
    ('false', False), ('0', False), ('off', False), ('', False), (0, False), (False, False),
])
def test_booleano(valor, esperado):
    assert booleano(valor) is esperado


def test_booleano_por_defecto():
    assert booleano(None) is True
    assert booleano(None, False) is False


def test_texto():
    assert texto('  hola ') == 'hola'
    assert texto(None) == ''
    assert texto(123) == '123'


def test_numeros():
    assert decimal('39,90') == 39.9
    assert decimal('abc') is None
    assert entero('7') == 7
    assert entero(None, 1) == 1
