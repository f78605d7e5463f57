"""Comprobantes de depósito y su archivo de metadatos ``venta-{id}.meta.json``."""
import glob
import json
import logging
import os
from datetime import datetime

from flask import current_app
from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)

EXTENSIONES_PERMITIDAS = ('.jpg', '.jpeg', '.png', '.webp', '.pdf')
URL_BASE = '/uploads/comprobantes'


def carpeta_comprobantes():
    return os.path.join(current_app.config['UPLOAD_FOLDER'], 'comprobantes')


def _archivos_comprobante(venta_id):
    patron = os.path.join(carpeta_comprobantes(), f'venta-{venta_id}.*')
    return [p for p in glob.glob(patron) if os.path.splitext(p)[1].lower() in EXTENSIONES_PERMITIDAS]


def extension_permitida(filename):
    return os.path.splitext(filename or '')[1].lower() in EXTENSIONES_PERMITIDAS


def guardar_comprobante(venta_id, file_storage):
    """Guardar el archivo como venta-{id}{ext}, reemplazando los anteriores."""
    nombre = secure_filename(file_storage.filename or '')
    ext = os.path.splitext(nombre)[1].lower()
    if ext not in EXTENSIONES_PERMITIDAS:
        raise ValueError('Formato de comprobante no permitido. Usa JPG, PNG, WEBP o PDF')

    carpeta = carpeta_comprobantes()
    os.makedirs(carpeta, exist_ok=True)
    for anterior in _archivos_comprobante(venta_id):
        os.remove(anterior)

    destino = f'venta-{venta_id}{ext}'
    file_storage.save(os.path.join(carpeta, destino))
    logger.info('Comprobante guardado para la venta %s: %s', venta_id, destino)
    return destino


def guardar_meta(venta_id, depositante, banco_seleccion, envio=None):
    envio = envio or {}
    meta = {
        'depositante': (depositante or '').strip() or None,
        'bancoSeleccion': banco_seleccion,
        'banco': banco_seleccion if isinstance(banco_seleccion, str) else None,
        'envio': {
            'total': round(envio.get('total_envio', envio.get('total', 0.0)) or 0.0, 2),
            'porVendedor': envio.get('por_vendedor', envio.get('porVendedor', {})) or {}
        },
        'ts': datetime.utcnow().isoformat()
    }
    carpeta = carpeta_comprobantes()
    os.makedirs(carpeta, exist_ok=True)
    path = os.path.join(carpeta, f'venta-{venta_id}.meta.json')
    with open(path, 'w', encoding='utf-8') as fh:
        json.dump(meta, fh, ensure_ascii=False, indent=2)
    return path


def buscar_comprobante_url(venta_id):
    """URL del comprobante más reciente o None."""
    archivos = _archivos_comprobante(venta_id)
    if not archivos:
        return None
    ultimo = max(archivos, key=os.path.getmtime)
    return f'{URL_BASE}/{os.path.basename(ultimo)}?v={int(os.path.getmtime(ultimo))}'


def normalizar_url(raw):
    if raw is None or not str(raw).strip():
        return None
    raw = str(raw).strip()
    if raw.lower().startswith(('http://', 'https://')) or raw.startswith('/'):
        return raw
    if raw.startswith('~/'):
        return raw[1:]
    return '/' + raw


def _texto(valor):
    if valor is None:
        return None
    valor = str(valor).strip()
    return valor or None


def _claves_minusculas(data):
    return {str(k).lower(): v for k, v in data.items()} if isinstance(data, dict) else {}


def _nombre_banco(obj):
    obj = _claves_minusculas(obj)
    for clave in ('nombre', 'codigo', 'valor'):
        valor = obj.get(clave)
        if isinstance(valor, (dict, list)):
            continue
        valor = _texto(valor)
        if valor:
            return valor
    return None


def _extraer_banco(meta):
    banco = meta.get('banco')
    if isinstance(banco, str) and _texto(banco):
        return _texto(banco)

    seleccion = meta.get('bancoseleccion')
    if isinstance(seleccion, str):
        return _texto(seleccion)
    if isinstance(seleccion, dict):
        nombre = _nombre_banco(seleccion)
        if nombre:
            return nombre
        anidado = _claves_minusculas(seleccion).get('banco')
        if isinstance(anidado, dict):
            return _nombre_banco(anidado)
        if isinstance(anidado, str):
            return _texto(anidado)
    return None


def _leer_meta(venta_id):
    path = os.path.join(carpeta_comprobantes(), f'venta-{venta_id}.meta.json')
    if not os.path.exists(path):
        return None
    try:
        with open(path, 'r', encoding='utf-8') as fh:
            return _claves_minusculas(json.load(fh))
    except (OSError, ValueError) as e:
        logger.warning('Metadatos ilegibles para la venta %s: %s', venta_id, e)
        return None


def buscar_meta_deposito(venta_id):
    """Devuelve (depositante, banco)."""
    meta = _leer_meta(venta_id)
    if meta is not None:
        return _texto(meta.get('depositante')), _extraer_banco(meta)

    txt = os.path.join(carpeta_comprobantes(), f'venta-{venta_id}.txt')
    if os.path.exists(txt):
        try:
            with open(txt, 'r', encoding='utf-8') as fh:
                return _texto(fh.read()), None
        except OSError as e:
            logger.warning('No se pudo leer %s: %s', txt, e)
    return None, None


def buscar_envio_total(venta_id):
    meta = _leer_meta(venta_id)
    if not meta:
        return None
    envio = _claves_minusculas(meta.get('envio'))
    try:
        return round(float(envio['total']), 2) if envio.get('total') is not None else None
    except (TypeError, ValueError):
        return None


def detalle_pago(venta):
    """Comprobante, depositante, banco y envío de una venta, con respaldos del perfil."""
    usuario = venta.usuario
    url = buscar_comprobante_url(venta.id)
    if not url and usuario is not None:
        url = normalizar_url(usuario.foto_comprobante_deposito)

    depositante, banco = buscar_meta_deposito(venta.id)
    if not depositante and usuario is not None:
        depositante = _texto(usuario.nombre_depositante)

    envio = buscar_envio_total(venta.id)
    if envio is None:
        envio = venta.envio_total or 0.0

    return {
        'comprobante_url': url,
        'depositante': depositante,
        'banco': banco,
        'envio': envio,
        'subtotal': venta.subtotal,
        'descuento': venta.descuento,
        'total': venta.total
    }
