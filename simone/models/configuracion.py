"""Registros de configuración guardados en archivos JSON (no en la base de datos).

Las claves se serializan en camelCase para mantener el formato de los archivos
``bancos-*.json`` y ``envios-*.json``.
"""

from simone.utils.http import booleano, texto

TIPO_CUENTA_AHORROS = 'Cuenta de Ahorros'
TIPO_CUENTA_CORRIENTE = 'Cuenta Corriente'


class CuentaBancaria:
    def __init__(self, codigo='', nombre='', numero='', tipo=TIPO_CUENTA_AHORROS,
                 titular=None, ruc=None, logo_path=None, activo=True):
        self.codigo = codigo
        self.nombre = nombre
        self.numero = numero
        self.tipo = tipo
        self.titular = titular
        self.ruc = ruc
        self.logo_path = logo_path
        self.activo = activo

    def __repr__(self):
        return f'<CuentaBancaria {self.codigo} {self.numero}>'

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        return cls(
            codigo=data.get('codigo') or '',
            nombre=data.get('nombre') or '',
            numero=data.get('numero') or '',
            tipo=data.get('tipo') or TIPO_CUENTA_AHORROS,
            titular=data.get('titular'),
            ruc=data.get('ruc'),
            logo_path=data.get('logoPath', data.get('logo_path')),
            activo=booleano(data.get('activo'), True)
        )

    def to_dict(self):
        data = {
            'codigo': self.codigo,
            'nombre': self.nombre,
            'numero': self.numero,
            'tipo': self.tipo,
            'titular': self.titular,
            'ruc': self.ruc,
            'logoPath': self.logo_path,
            'activo': self.activo
        }
        # Los nulos no se escriben en el archivo
        return {k: v for k, v in data.items() if v is not None}


class TarifaEnvioRegla:
    def __init__(self, provincia='', ciudad=None, precio=0.0, activo=True, nota=None):
        self.provincia = provincia
        self.ciudad = ciudad
        self.precio = precio
        self.activo = activo
        self.nota = nota

    def __repr__(self):
        return f'<TarifaEnvioRegla {self.provincia}/{self.ciudad or "*"} {self.precio}>'

    @property
    def es_provincial(self):
        return not (self.ciudad or '').strip()

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        try:
            precio = round(float(str(data.get('precio') or 0).replace(',', '.')), 2)
        except (TypeError, ValueError):
            precio = 0.0
        return cls(
            provincia=texto(data.get('provincia')),
            ciudad=texto(data.get('ciudad')) or None,
            precio=precio,
            activo=booleano(data.get('activo'), True),
            nota=data.get('nota')
        )

    def to_dict(self):
        data = {
            'provincia': self.provincia,
            'ciudad': self.ciudad,
            'precio': self.precio,
            'activo': self.activo,
            'nota': self.nota
        }
        return {k: v for k, v in data.items() if v is not None}
