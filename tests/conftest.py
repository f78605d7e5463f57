from datetime import datetime

import pytest

from config import TestConfig
from simone import create_app, db
from simone.models.catalogo import Categoria, Producto, ProductoVariante
from simone.models.usuario import Usuario, ROL_CLIENTE, ROL_VENDEDOR, ROL_ADMINISTRADOR
from simone.models.venta import Venta, DetalleVenta, PAGO_PAGADO, ESTADO_CONFIRMADO
from simone.utils.cache_manager import config_cache


@pytest.fixture
def app(tmp_path):
    class Config(TestConfig):
        UPLOAD_FOLDER = str(tmp_path / 'uploads')
        DATA_FOLDER = str(tmp_path / 'App_Data')

    app = create_app(Config)
    config_cache.clear()
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()
    config_cache.clear()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def login(client):
    def _login(usuario):
        with client.session_transaction() as sess:
            sess['user_id'] = usuario.id
            sess['user_role'] = usuario.rol
            sess['_user_id'] = str(usuario.id)
            sess['_fresh'] = True
        return client
    return _login


@pytest.fixture
def make_usuario(app):
    contador = {'n': 0}

    def _make(rol=ROL_CLIENTE, email=None, password='secreto123', **campos):
        contador['n'] += 1
        usuario = Usuario(
            email=email or f'usuario{contador["n"]}@simone.test',
            nombre_completo=campos.pop('nombre_completo', f'Usuario {contador["n"]}'),
            rol=rol,
            **campos
        )
        usuario.set_password(password)
        db.session.add(usuario)
        db.session.commit()
        return usuario
    return _make


@pytest.fixture
def cliente(make_usuario):
    return make_usuario(ROL_CLIENTE, email='cliente@simone.test', direccion='Av. Siempre Viva 123',
                        ciudad='Quito', provincia='Pichincha')


@pytest.fixture
def vendedor(make_usuario):
    return make_usuario(ROL_VENDEDOR, email='vendedor@simone.test', nombre_completo='Tienda Uno')


@pytest.fixture
def admin(make_usuario):
    return make_usuario(ROL_ADMINISTRADOR, email='admin@simone.test')


@pytest.fixture
def categoria(app):
    categoria = Categoria(nombre='Ropa')
    db.session.add(categoria)
    db.session.commit()
    return categoria


@pytest.fixture
def make_producto(categoria):
    def _make(vendedor=None, nombre='Camiseta', precio=10.0, stock=5, variantes=None, **campos):
        producto = Producto(
            nombre=nombre,
            precio_venta=precio,
            precio_compra=campos.pop('precio_compra', precio / 2),
            stock=stock,
            categoria_id=campos.pop('categoria_id', categoria.id),
            vendedor_id=vendedor.id if vendedor else None,
            **campos
        )
        for datos in variantes or []:
            producto.variantes.append(ProductoVariante(**datos))
        db.session.add(producto)
        db.session.commit()
        return producto
    return _make


@pytest.fixture
def make_venta_pagada():
    """Venta ya pagada armada directamente, sin pasar por el carrito."""
    def _make(usuario, lineas, fecha_pago=None, estado=ESTADO_CONFIRMADO):
        venta = Venta(
            numero_orden=Venta.generar_numero_orden(),
            usuario_id=usuario.id,
            estado=estado,
            estado_pago=PAGO_PAGADO,
            fecha_pago=fecha_pago or datetime.utcnow(),
            fecha_venta=fecha_pago or datetime.utcnow(),
            direccion='Calle 1'
        )
        for producto, cantidad in lineas:
            detalle = DetalleVenta(
                producto_id=producto.id,
                vendedor_id=producto.vendedor_id,
                cantidad=cantidad,
                precio_unitario=producto.precio_venta
            )
            detalle.calcular_subtotal()
            venta.detalles.append(detalle)
        venta.subtotal = venta.calcular_subtotal()
        venta.total = venta.subtotal
        db.session.add(venta)
        db.session.commit()
        return venta
    return _make
