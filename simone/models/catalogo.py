from simone import db
from datetime import datetime


class Categoria(db.Model):
    __tablename__ = 'categorias'

    id = db.Column(db.Integer, primary_key=True)
    nombre = db.Column(db.String(100), unique=True, nullable=False)

    subcategorias = db.relationship('Subcategoria', backref='categoria', lazy=True, cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'nombre': self.nombre,
            'subcategorias': [s.to_dict() for s in self.subcategorias]
        }


class Subcategoria(db.Model):
    __tablename__ = 'subcategorias'

    id = db.Column(db.Integer, primary_key=True)
    categoria_id = db.Column(db.Integer, db.ForeignKey('categorias.id'), nullable=False, index=True)
    nombre = db.Column(db.String(100), nullable=False)

    def to_dict(self):
        return {'id': self.id, 'categoria_id': self.categoria_id, 'nombre': self.nombre}


class Producto(db.Model):
    __tablename__ = 'productos'

    id = db.Column(db.Integer, primary_key=True)
    nombre = db.Column(db.String(200), nullable=False)
    descripcion = db.Column(db.Text)
    talla = db.Column(db.String(50))
    color = db.Column(db.String(50))
    marca = db.Column(db.String(100))
    imagen_path = db.Column(db.String(500))
    precio_compra = db.Column(db.Float, default=0.0)
    precio_venta = db.Column(db.Float, nullable=False, default=0.0)
    stock = db.Column(db.Integer, nullable=False, default=0)
    fecha_agregado = db.Column(db.DateTime, default=datetime.utcnow)

    categoria_id = db.Column(db.Integer, db.ForeignKey('categorias.id'), index=True)
    subcategoria_id = db.Column(db.Integer, db.ForeignKey('subcategorias.id'), index=True)
    vendedor_id = db.Column(db.Integer, db.ForeignKey('usuarios.id'), index=True)

    __table_args__ = (
        db.CheckConstraint('stock >= 0', name='ck_producto_stock_no_negativo'),
    )

    # Relaciones
    categoria = db.relationship('Categoria')
    subcategoria = db.relationship('Subcategoria')
    vendedor = db.relationship('Usuario', backref=db.backref('productos', lazy=True))
    variantes = db.relationship('ProductoVariante', backref='producto', lazy=True, cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Producto {self.id} {self.nombre}>'

    @property
    def tiene_variantes(self):
        return len(self.variantes) > 0

    @property
    def stock_disponible(self):
        if self.variantes:
            return sum(v.stock or 0 for v in self.variantes)
        return self.stock or 0

    def to_dict(self, incluir_variantes=True):
        data = {
            'id': self.id,
            'nombre': self.nombre,
            'descripcion': self.descripcion,
            'talla': self.talla,
            'color': self.color,
            'marca': self.marca,
            'imagen_path': self.imagen_path,
            'precio_venta': self.precio_venta,
            'stock': self.stock,
            'stock_disponible': self.stock_disponible,
            'categoria_id': self.categoria_id,
            'subcategoria_id': self.subcategoria_id,
            'vendedor_id': self.vendedor_id
        }
        if incluir_variantes:
            data['variantes'] = [v.to_dict() for v in self.variantes]
        return data


class ProductoVariante(db.Model):
    __tablename__ = 'producto_variantes'

    id = db.Column(db.Integer, primary_key=True)
    producto_id = db.Column(db.Integer, db.ForeignKey('productos.id'), nullable=False, index=True)
    color = db.Column(db.String(50))
    talla = db.Column(db.String(50))
    sku = db.Column(db.String(100))
    precio_venta = db.Column(db.Float, nullable=True)
    stock = db.Column(db.Integer, nullable=False, default=0)

    __table_args__ = (
        db.CheckConstraint('stock >= 0', name='ck_variante_stock_no_negativo'),
    )

    @property
    def precio_efectivo(self):
        if self.precio_venta is not None:
            return self.precio_venta
        return self.producto.precio_venta if self.producto else 0.0

    def to_dict(self):
        return {
            'id': self.id,
            'producto_id': self.producto_id,
            'color': self.color,
            'talla': self.talla,
            'sku': self.sku,
            'precio_venta': self.precio_efectivo,
            'stock': self.stock
        }
