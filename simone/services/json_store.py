"""Persistencia de listas de configuración en archivos JSON.

Cada tienda usa un prefijo (``bancos``, ``envios``) y guarda un archivo para el
administrador (``<prefix>-admin.json``) y uno por proveedor
(``<prefix>-proveedor-<safeId>.json``). Las escrituras son atómicas: se escribe
un ``.tmp`` y se reemplaza el destino con ``os.replace``.
"""
import glob
import hashlib
import json
import logging
import os
import re
import shutil
import threading
import time
from datetime import datetime

logger = logging.getLogger(__name__)

# Un solo candado por proceso para todas las escrituras de configuración
_write_lock = threading.Lock()

_SAFE_CHARS = re.compile(r'[^A-Za-z0-9_-]')
MAX_SAFE_ID = 80


def safe_id(proveedor_id):
    """Convertir un id de proveedor en un fragmento seguro para nombres de archivo."""
    if proveedor_id is None or not str(proveedor_id).strip():
        raise ValueError('El id del proveedor es obligatorio')
    raw = str(proveedor_id).strip()
    limpio = _SAFE_CHARS.sub('-', raw).strip('-')
    if not limpio or len(limpio) > MAX_SAFE_ID:
        limpio = hashlib.sha256(raw.encode('utf-8')).hexdigest()[:16]
    return limpio


class JsonListStore:
    def __init__(self, data_folder, prefix, backups=False):
        self.data_folder = data_folder
        self.prefix = prefix
        self.backups = backups

    # ==================== RUTAS ====================

    def admin_path(self):
        return os.path.join(self.data_folder, f'{self.prefix}-admin.json')

    def proveedor_path(self, proveedor_id):
        return os.path.join(self.data_folder, f'{self.prefix}-proveedor-{safe_id(proveedor_id)}.json')

    # ==================== LECTURA ====================

    def read(self, path):
        """Leer una lista; nunca lanza excepción."""
        tmp = path + '.tmp'
        if not os.path.exists(path) and os.path.exists(tmp):
            try:
                os.replace(tmp, path)
                logger.warning('Archivo temporal recuperado: %s', tmp)
            except OSError as e:
                logger.warning('No se pudo recuperar %s: %s', tmp, e)

        if not os.path.exists(path):
            return []

        try:
            with open(path, 'r', encoding='utf-8') as fh:
                data = json.load(fh)
        except (OSError, ValueError) as e:
            logger.warning('No se pudo leer %s: %s', path, e)
            return []

        if not isinstance(data, list):
            logger.warning('Contenido inesperado en %s, se esperaba una lista', path)
            return []
        return [item for item in data if isinstance(item, dict)]

    def read_admin(self):
        return self.read(self.admin_path())

    def read_proveedor(self, proveedor_id):
        return self.read(self.proveedor_path(proveedor_id))

    # ==================== ESCRITURA ====================

    def write(self, path, items):
        os.makedirs(os.path.dirname(path) or '.', exist_ok=True)
        tmp = path + '.tmp'
        with _write_lock:
            if self.backups and os.path.exists(path):
                self._backup(path)
            with open(tmp, 'w', encoding='utf-8') as fh:
                json.dump(list(items), fh, ensure_ascii=False, indent=2)
            os.replace(tmp, path)
        logger.info('Configuración guardada: %s (%d registros)', path, len(items))

    def write_admin(self, items):
        self.write(self.admin_path(), items)

    def write_proveedor(self, proveedor_id, items):
        self.write(self.proveedor_path(proveedor_id), items)

    def _backup(self, path):
        base = os.path.basename(path)
        nombre = base[:-len('.json')] if base.endswith('.json') else base
        stamp = datetime.now().strftime('%Y%m%d-%H%M%S')
        destino = os.path.join(os.path.dirname(path), f'{nombre}_{stamp}.bak.json')
        shutil.copy2(path, destino)
        return destino

    # ==================== MANTENIMIENTO ====================

    def delete_proveedor(self, proveedor_id):
        path = self.proveedor_path(proveedor_id)
        with _write_lock:
            if not os.path.exists(path):
                return False
            os.remove(path)
        logger.info('Configuración eliminada: %s', path)
        return True

    def exists(self, proveedor_id):
        return os.path.exists(self.proveedor_path(proveedor_id))

    def proveedor_ids(self):
        """Ids seguros de los proveedores que tienen archivo."""
        inicio = f'{self.prefix}-proveedor-'
        ids = []
        for path in glob.glob(os.path.join(self.data_folder, inicio + '*.json')):
            base = os.path.basename(path)
            if base.endswith('.bak.json'):
                continue
            ids.append(base[len(inicio):-len('.json')])
        return sorted(ids)

    def _archivos_principales(self):
        archivos = []
        if os.path.exists(self.admin_path()):
            archivos.append(self.admin_path())
        for pid in self.proveedor_ids():
            archivos.append(os.path.join(self.data_folder, f'{self.prefix}-proveedor-{pid}.json'))
        return archivos

    def backup_all(self, folder):
        os.makedirs(folder, exist_ok=True)
        copiados = 0
        for path in self._archivos_principales():
            shutil.copy2(path, os.path.join(folder, os.path.basename(path)))
            copiados += 1
        logger.info('Respaldo de %s: %d archivos copiados a %s', self.prefix, copiados, folder)
        return copiados

    def cleanup(self, days):
        """Eliminar temporales y respaldos antiguos. Devuelve (total, temp, backups)."""
        limite = time.time() - days * 86400
        temp = backups = 0
        for path in glob.glob(os.path.join(self.data_folder, f'{self.prefix}-*.tmp')):
            if os.path.getmtime(path) < limite:
                os.remove(path)
                temp += 1
        for path in glob.glob(os.path.join(self.data_folder, f'{self.prefix}-*.bak.json')):
            if os.path.getmtime(path) < limite:
                os.remove(path)
                backups += 1
        return temp + backups, temp, backups
