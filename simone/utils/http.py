from flask import request


def datos_request():
    """JSON o formulario, indistintamente"""
    if request.is_json:
        datos = request.get_json(silent=True)
        return datos if isinstance(datos, dict) else {}
    return request.form.to_dict()


def entero(valor, defecto=None):
    try:
        return int(valor)
    except (TypeError, ValueError):
        return defecto


def decimal(valor, defecto=None):
    try:
        return round(float(str(valor).replace(',', '.')), 2)
    except (TypeError, ValueError):
        return defecto


def texto(valor):
    """Cadena sin espacios; None y vacíos quedan como ''."""
    return str(valor if valor is not None else '').strip()


def booleano(valor, defecto=True):
    if valor is None:
        return defecto
    if isinstance(valor, str):
        return valor.strip().lower() in ('1', 'true', 'on', 'si', 'sí')
    return bool(valor)
