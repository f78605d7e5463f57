# Exportar todos los modelos
from .usuario import Usuario
from .catalogo import Categoria, Subcategoria, Producto, ProductoVariante
from .carrito import Carrito, CarritoDetalle
from .promocion import Promocion
from .favorito import Favorito
from .venta import Venta, DetalleVenta, VentaHistorial
from .inventario import MovimientoInventario, Devolucion
from .comision import ConfiguracionComision, PagoComision, PagoComisionDetalle
