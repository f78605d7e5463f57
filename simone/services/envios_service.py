import logging
import unicodedata
from collections import namedtuple

from flask import current_app

from simone import db
from simone.models.configuracion import TarifaEnvioRegla
from simone.services.json_store import JsonListStore, safe_id
from simone.utils.cache_manager import config_cache
from simone.utils.http import decimal, texto

logger = logging.getLogger(__name__)

PRECIO_MAXIMO = 9999.99

FUENTE_VENDEDOR = 'vendedor'
FUENTE_ADMIN = 'admin'
NIVEL_CIUDAD = 'ciudad'
NIVEL_PROVINCIA = 'provincia'

TarifaResuelta = namedtuple('TarifaResuelta', ['precio', 'fuente', 'nivel'])


def normalizar_texto(texto):
    """Minúsculas y sin tildes, para comparar provincias y ciudades."""
    if not texto:
        return ''
    texto = unicodedata.normalize('NFD', str(texto).strip().lower())
    texto = ''.join(ch for ch in texto if unicodedata.category(ch) != 'Mn')
    return unicodedata.normalize('NFC', texto)


def validar_regla(datos):
    """Devuelve (ok, mensaje, regla)."""
    precio = (datos or {}).get('precio')
    if texto(precio) and decimal(precio) is None:
        return False, 'El precio debe ser un número', None
    regla = TarifaEnvioRegla.from_dict(datos)
    if not regla.provincia:
        return False, 'La provincia es obligatoria', None
    if len(regla.provincia) > 120:
        return False, 'La provincia admite máximo 120 caracteres', None
    if regla.ciudad and len(regla.ciudad) > 120:
        return False, 'La ciudad admite máximo 120 caracteres', None
    if not 0 <= regla.precio <= PRECIO_MAXIMO:
        return False, f'El precio debe estar entre 0 y {PRECIO_MAXIMO}', None
    if regla.nota and len(regla.nota) > 120:
        return False, 'La nota admite máximo 120 caracteres', None
    return True, 'OK', regla


class EnviosConfigService:
    PREFIX = 'envios'

    def __init__(self, data_folder):
        self.store = JsonListStore(data_folder, self.PREFIX, backups=True)

    def _key_admin(self):
        return f'{self.PREFIX}:{self.store.data_folder}:admin'

    def _key_proveedor(self, proveedor_id):
        return f'{self.PREFIX}:{self.store.data_folder}:proveedor:{safe_id(proveedor_id)}'

    def _leer(self, key, loader):
        data = config_cache.get(key)
        if data is None:
            data = loader()
            config_cache.save(key, data)
        return [TarifaEnvioRegla.from_dict(d) for d in data]

    def _validar_todas(self, reglas):
        validas = []
        for i, regla in enumerate(reglas, start=1):
            datos = regla.to_dict() if isinstance(regla, TarifaEnvioRegla) else regla
            ok, mensaje, normalizada = validar_regla(datos)
            if not ok:
                logger.warning('Regla de envío %d rechazada: %s', i, mensaje)
                raise ValueError(f'Regla {i}: {mensaje}')
            validas.append(normalizada)
        return validas

    def get_admin(self):
        return self._leer(self._key_admin(), self.store.read_admin)

    def set_admin(self, reglas):
        validas = self._validar_todas(reglas)
        self.store.write_admin([r.to_dict() for r in validas])
        config_cache.remove(self._key_admin())
        return validas

    def get_by_proveedor(self, proveedor_id):
        return self._leer(self._key_proveedor(proveedor_id),
                          lambda: self.store.read_proveedor(proveedor_id))

    def set_by_proveedor(self, proveedor_id, reglas):
        validas = self._validar_todas(reglas)
        self.store.write_proveedor(proveedor_id, [r.to_dict() for r in validas])
        config_cache.remove(self._key_proveedor(proveedor_id))
        return validas

    def delete_proveedor(self, proveedor_id):
        eliminado = self.store.delete_proveedor(proveedor_id)
        config_cache.remove(self._key_proveedor(proveedor_id))
        return eliminado


class EnviosResolver:
    def __init__(self, config_service):
        self.config = config_service

    @staticmethod
    def _buscar(reglas, provincia, ciudad):
        activas = [r for r in reglas if r.activo and normalizar_texto(r.provincia) == provincia]
        if ciudad:
            for regla in activas:
                if not regla.es_provincial and normalizar_texto(regla.ciudad) == ciudad:
                    return regla, NIVEL_CIUDAD
        for regla in activas:
            if regla.es_provincial:
                return regla, NIVEL_PROVINCIA
        return None, None

    def get_tarifa(self, vendedor_id, provincia, ciudad=None):
        """Tarifa del vendedor (ciudad, provincia) o, si no tiene, la del administrador."""
        if vendedor_id is None or not str(vendedor_id).strip():
            raise ValueError('El vendedor es obligatorio')
        if not provincia or not str(provincia).strip():
            raise ValueError('La provincia es obligatoria')
        if not 2 <= len(str(provincia).strip()) <= 100:
            raise ValueError('La provincia debe tener entre 2 y 100 caracteres')

        prov = normalizar_texto(provincia)
        ciu = normalizar_texto(ciudad)

        regla, nivel = self._buscar(self.config.get_by_proveedor(vendedor_id), prov, ciu)
        if regla:
            return TarifaResuelta(regla.precio, FUENTE_VENDEDOR, nivel)

        regla, nivel = self._buscar(self.config.get_admin(), prov, ciu)
        if regla:
            return TarifaResuelta(regla.precio, FUENTE_ADMIN, nivel)
        return None


class EnviosCarritoService:
    MENSAJE_SIN_PROVINCIA = 'Completa tu provincia en el perfil para calcular el envío.'

    def __init__(self, resolver):
        self.resolver = resolver

    def calcular(self, vendedor_ids, provincia, ciudad=None):
        """Un cobro por cada vendedor distinto."""
        resultado = {'total_envio': 0.0, 'por_vendedor': {}, 'mensajes': []}
        if not provincia or not str(provincia).strip():
            resultado['mensajes'].append(self.MENSAJE_SIN_PROVINCIA)
            return resultado

        vendedores = []
        for vid in vendedor_ids:
            vid = str(vid).strip() if vid is not None else ''
            if vid and vid not in vendedores:
                vendedores.append(vid)

        total = 0.0
        for vid in vendedores:
            try:
                tarifa = self.resolver.get_tarifa(vid, provincia, ciudad)
            except ValueError as e:
                resultado['mensajes'].append(str(e))
                resultado['por_vendedor'][vid] = 0.0
                continue
            if tarifa is None:
                destino = provincia if not ciudad else f'{provincia} / {ciudad}'
                resultado['mensajes'].append(f'El vendedor {vid} no tiene tarifa configurada para {destino}.')
                resultado['por_vendedor'][vid] = 0.0
                continue
            resultado['por_vendedor'][vid] = tarifa.precio
            total += tarifa.precio

        resultado['total_envio'] = round(total, 2)
        return resultado

    def calcular_para_usuario(self, usuario_id):
        from simone.models.usuario import Usuario
        from simone.services.carrito_service import vendedores_en_carrito

        usuario = db.session.get(Usuario, usuario_id)
        if usuario is None:
            return {'total_envio': 0.0, 'por_vendedor': {}, 'mensajes': [self.MENSAJE_SIN_PROVINCIA]}
        return self.calcular(vendedores_en_carrito(usuario_id), usuario.provincia, usuario.ciudad)


def envios_config_service():
    return EnviosConfigService(current_app.config['DATA_FOLDER'])


def envios_carrito_service():
    return EnviosCarritoService(EnviosResolver(envios_config_service()))
