import logging
import re

from flask import current_app

from simone.models.configuracion import CuentaBancaria, TIPO_CUENTA_AHORROS
from simone.services.json_store import JsonListStore, safe_id
from simone.utils.cache_manager import config_cache
from simone.utils.http import booleano

logger = logging.getLogger(__name__)

CODIGO_RE = re.compile(r'^[a-z0-9_-]{2,50}$')
NUMERO_RE = re.compile(r'^[0-9]{6,20}$')
RUC_RE = re.compile(r'^\d{10}(\d{3})?$')

ORDENES = ('nombre', 'nombre_desc', 'codigo', 'codigo_desc', 'tipo')


def _texto(valor):
    if valor is None:
        return None
    valor = str(valor).strip()
    return valor or None


def validar_cuenta(datos):
    """Normalizar y validar una cuenta. Devuelve (ok, mensaje, cuenta)."""
    datos = datos or {}
    codigo = (_texto(datos.get('codigo')) or '').lower()
    nombre = _texto(datos.get('nombre')) or ''
    numero = re.sub(r'\s+', '', _texto(datos.get('numero')) or '')
    tipo = _texto(datos.get('tipo')) or TIPO_CUENTA_AHORROS
    titular = _texto(datos.get('titular'))
    ruc = _texto(datos.get('ruc'))
    logo_path = _texto(datos.get('logoPath', datos.get('logo_path')))
    activo = booleano(datos.get('activo'), True)

    if not CODIGO_RE.match(codigo):
        return False, 'El código debe tener de 2 a 50 caracteres (a-z, 0-9, - o _)', None
    if not 1 <= len(nombre) <= 120:
        return False, 'El nombre del banco es obligatorio (máximo 120 caracteres)', None
    if not NUMERO_RE.match(numero):
        return False, 'El número de cuenta debe tener entre 6 y 20 dígitos', None
    if len(tipo) > 40:
        return False, 'El tipo de cuenta admite máximo 40 caracteres', None
    if titular and len(titular) > 120:
        return False, 'El titular admite máximo 120 caracteres', None
    if ruc and not RUC_RE.match(ruc):
        return False, 'El RUC/Cédula debe tener 10 o 13 dígitos', None
    if logo_path and len(logo_path) > 200:
        return False, 'La ruta del logo admite máximo 200 caracteres', None

    cuenta = CuentaBancaria(codigo=codigo, nombre=nombre, numero=numero, tipo=tipo,
                            titular=titular, ruc=ruc, logo_path=logo_path, activo=activo)
    return True, 'OK', cuenta


def listar(cuentas, filtro=None, ordenar=None):
    """Filtrar por código, nombre, número o titular y ordenar."""
    resultado = list(cuentas)
    filtro = (filtro or '').strip().lower()
    if filtro:
        resultado = [
            c for c in resultado
            if filtro in (c.codigo or '').lower()
            or filtro in (c.nombre or '').lower()
            or filtro in (c.numero or '').lower()
            or filtro in (c.titular or '').lower()
        ]

    if ordenar == 'nombre_desc':
        resultado.sort(key=lambda c: (c.nombre or '').lower(), reverse=True)
    elif ordenar == 'codigo':
        resultado.sort(key=lambda c: c.codigo or '')
    elif ordenar == 'codigo_desc':
        resultado.sort(key=lambda c: c.codigo or '', reverse=True)
    elif ordenar == 'tipo':
        resultado.sort(key=lambda c: ((c.tipo or '').lower(), (c.nombre or '').lower()))
    else:
        resultado.sort(key=lambda c: (c.nombre or '').lower())
    return resultado


class BancosConfigService:
    PREFIX = 'bancos'

    def __init__(self, data_folder):
        self.store = JsonListStore(data_folder, self.PREFIX)

    # ==================== CACHE ====================

    def _key_admin(self):
        return f'{self.PREFIX}:{self.store.data_folder}:admin'

    def _key_proveedor(self, proveedor_id):
        return f'{self.PREFIX}:{self.store.data_folder}:proveedor:{safe_id(proveedor_id)}'

    def _leer(self, key, loader):
        data = config_cache.get(key)
        if data is None:
            data = loader()
            config_cache.save(key, data)
        return [CuentaBancaria.from_dict(d) for d in data]

    # ==================== LECTURA / ESCRITURA ====================

    def get_admin(self):
        return self._leer(self._key_admin(), self.store.read_admin)

    def set_admin(self, cuentas):
        self.store.write_admin([c.to_dict() for c in cuentas])
        config_cache.remove(self._key_admin())

    def get_by_proveedor(self, proveedor_id):
        return self._leer(self._key_proveedor(proveedor_id),
                          lambda: self.store.read_proveedor(proveedor_id))

    def set_by_proveedor(self, proveedor_id, cuentas):
        self.store.write_proveedor(proveedor_id, [c.to_dict() for c in cuentas])
        config_cache.remove(self._key_proveedor(proveedor_id))

    def delete_proveedor(self, proveedor_id):
        eliminado = self.store.delete_proveedor(proveedor_id)
        config_cache.remove(self._key_proveedor(proveedor_id))
        return eliminado

    def activas_admin(self):
        return [c for c in self.get_admin() if c.activo]

    def activas_proveedor(self, proveedor_id):
        return [c for c in self.get_by_proveedor(proveedor_id) if c.activo]

    # ==================== OPERACIONES ====================

    def _guardar(self, cuentas, datos, codigo_original=None):
        ok, mensaje, cuenta = validar_cuenta(datos)
        if not ok:
            logger.warning('Cuenta bancaria rechazada: %s', mensaje)
            return False, mensaje, cuentas

        original = (codigo_original or '').strip().lower() or None
        duplicada = any(c.codigo.lower() == cuenta.codigo and c.codigo.lower() != original
                        for c in cuentas)
        if duplicada:
            return False, f'Ya existe una cuenta con el código "{cuenta.codigo}"', cuentas

        if original:
            indice = next((i for i, c in enumerate(cuentas) if c.codigo.lower() == original), None)
            if indice is None:
                return False, 'La cuenta a editar no existe', cuentas
            cuentas[indice] = cuenta
            return True, 'Cuenta actualizada correctamente', cuentas

        cuentas.append(cuenta)
        return True, 'Cuenta agregada correctamente', cuentas

    def _eliminar(self, cuentas, codigo):
        codigo = (codigo or '').strip().lower()
        restantes = [c for c in cuentas if c.codigo.lower() != codigo]
        if len(restantes) == len(cuentas):
            return False, 'La cuenta no existe', cuentas
        return True, 'Cuenta eliminada', restantes

    def _toggle(self, cuentas, codigo):
        codigo = (codigo or '').strip().lower()
        for c in cuentas:
            if c.codigo.lower() == codigo:
                c.activo = not c.activo
                return True, 'Cuenta activada' if c.activo else 'Cuenta desactivada', cuentas
        return False, 'La cuenta no existe', cuentas

    def guardar_cuenta_admin(self, datos, codigo_original=None):
        ok, mensaje, cuentas = self._guardar(self.get_admin(), datos, codigo_original)
        if ok:
            self.set_admin(cuentas)
        return ok, mensaje

    def eliminar_cuenta_admin(self, codigo):
        ok, mensaje, cuentas = self._eliminar(self.get_admin(), codigo)
        if ok:
            self.set_admin(cuentas)
        return ok, mensaje

    def toggle_activo_admin(self, codigo):
        ok, mensaje, cuentas = self._toggle(self.get_admin(), codigo)
        if ok:
            self.set_admin(cuentas)
        return ok, mensaje

    def guardar_cuenta_proveedor(self, proveedor_id, datos, codigo_original=None):
        ok, mensaje, cuentas = self._guardar(self.get_by_proveedor(proveedor_id), datos, codigo_original)
        if ok:
            self.set_by_proveedor(proveedor_id, cuentas)
        return ok, mensaje

    def eliminar_cuenta_proveedor(self, proveedor_id, codigo):
        ok, mensaje, cuentas = self._eliminar(self.get_by_proveedor(proveedor_id), codigo)
        if ok:
            self.set_by_proveedor(proveedor_id, cuentas)
        return ok, mensaje

    def toggle_activo_proveedor(self, proveedor_id, codigo):
        ok, mensaje, cuentas = self._toggle(self.get_by_proveedor(proveedor_id), codigo)
        if ok:
            self.set_by_proveedor(proveedor_id, cuentas)
        return ok, mensaje


def bancos_service():
    """Servicio ligado a la carpeta de datos de la app actual."""
    return BancosConfigService(current_app.config['DATA_FOLDER'])
