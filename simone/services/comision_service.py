"""Comisiones de vendedores y liquidaciones quincenales."""
import csv
import io
import logging
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import or_

from simone import db
from simone.models.comision import (
    ConfiguracionComision, PagoComision, PagoComisionDetalle,
    TIPOS_COMISION, TIPO_GLOBAL, TIPO_POR_VENDEDOR, TIPO_POR_CATEGORIA, TIPO_ESCALONADO,
    PAGO_COMISION_PENDIENTE, PAGO_COMISION_PAGADO, PAGO_COMISION_CANCELADO,
)
from simone.models.usuario import Usuario
from simone.models.venta import Venta, DetalleVenta, PAGO_PAGADO, ESTADO_CANCELADO, LINEA_NORMAL
from simone.utils.http import booleano

logger = logging.getLogger(__name__)

PORCENTAJE_DEFECTO = 10.0


def _porcentaje_defecto():
    try:
        return float(current_app.config.get('COMISION_PORCENTAJE_DEFECTO', PORCENTAJE_DEFECTO))
    except RuntimeError:
        return PORCENTAJE_DEFECTO


def _a_entero(valor):
    try:
        return int(str(valor).strip())
    except (TypeError, ValueError):
        return None


# ==================== CONFIGURACIÓN ====================

def _configuraciones_vigentes(ahora):
    return ConfiguracionComision.query.filter(
        ConfiguracionComision.activo.is_(True),
        ConfiguracionComision.fecha_inicio <= ahora,
        or_(ConfiguracionComision.fecha_fin.is_(None), ConfiguracionComision.fecha_fin >= ahora)
    ).order_by(ConfiguracionComision.id.desc()).all()


def obtener_porcentaje(vendedor_id, categoria_id=None, monto_ventas=None, ahora=None):
    """Porcentaje aplicable: vendedor, categoría, escalonado, global y por último el valor por defecto."""
    ahora = ahora or datetime.utcnow()
    configs = _configuraciones_vigentes(ahora)
    vendedor_id = _a_entero(vendedor_id)

    for c in configs:
        if c.tipo_comision == TIPO_POR_VENDEDOR and vendedor_id is not None and c.vendedor_id == vendedor_id:
            return c.porcentaje

    if categoria_id is not None:
        for c in configs:
            if c.tipo_comision == TIPO_POR_CATEGORIA and c.categoria_id == categoria_id:
                return c.porcentaje

    if monto_ventas is not None:
        escalones = [
            c for c in configs
            if c.tipo_comision == TIPO_ESCALONADO
            and (c.monto_minimo or 0) <= monto_ventas
            and (c.monto_maximo is None or monto_ventas <= c.monto_maximo)
        ]
        if escalones:
            return max(escalones, key=lambda c: c.monto_minimo or 0).porcentaje

    for c in configs:
        if c.tipo_comision == TIPO_GLOBAL:
            return c.porcentaje

    return _porcentaje_defecto()


def obtener_configuraciones():
    return ConfiguracionComision.query.order_by(
        ConfiguracionComision.activo.desc(),
        ConfiguracionComision.tipo_comision,
        ConfiguracionComision.fecha_inicio.desc()
    ).all()


def _fecha(valor):
    if valor in (None, ''):
        return None
    if isinstance(valor, datetime):
        return valor
    return datetime.fromisoformat(str(valor))


def _monto(valor):
    if valor in (None, ''):
        return None
    return round(float(valor), 2)


def guardar_configuracion(datos, creado_por):
    """Crear o editar una configuración. Devuelve (ok, mensaje, config)."""
    datos = datos or {}
    tipo = (datos.get('tipo_comision') or '').strip()
    if tipo not in TIPOS_COMISION:
        return False, 'Tipo de comisión no válido', None

    try:
        porcentaje = round(float(datos.get('porcentaje')), 2)
        monto_minimo = _monto(datos.get('monto_minimo'))
        monto_maximo = _monto(datos.get('monto_maximo'))
        fecha_inicio = _fecha(datos.get('fecha_inicio')) or datetime.utcnow()
        fecha_fin = _fecha(datos.get('fecha_fin'))
    except (TypeError, ValueError):
        return False, 'Datos numéricos o fechas no válidos', None

    if not 0 <= porcentaje <= 100:
        return False, 'El porcentaje debe estar entre 0 y 100', None
    if fecha_fin is not None and fecha_fin < fecha_inicio:
        return False, 'La fecha de fin no puede ser anterior a la de inicio', None

    vendedor_id = _a_entero(datos.get('vendedor_id'))
    categoria_id = _a_entero(datos.get('categoria_id'))
    if tipo == TIPO_POR_VENDEDOR and vendedor_id is None:
        return False, 'Debes seleccionar un vendedor', None
    if tipo == TIPO_POR_CATEGORIA and categoria_id is None:
        return False, 'Debes seleccionar una categoría', None
    if tipo == TIPO_ESCALONADO:
        if monto_minimo is None:
            return False, 'El escalonado requiere un monto mínimo', None
        if monto_maximo is not None and monto_maximo < monto_minimo:
            return False, 'El monto máximo debe ser mayor al mínimo', None

    config_id = _a_entero(datos.get('id'))
    if config_id:
        config = db.session.get(ConfiguracionComision, config_id)
        if config is None:
            return False, 'La configuración no existe', None
        config.modificado_utc = datetime.utcnow()
    else:
        config = ConfiguracionComision(creado_por=creado_por)
        db.session.add(config)

    config.tipo_comision = tipo
    config.porcentaje = porcentaje
    config.vendedor_id = vendedor_id if tipo == TIPO_POR_VENDEDOR else None
    config.categoria_id = categoria_id if tipo == TIPO_POR_CATEGORIA else None
    config.monto_minimo = monto_minimo if tipo == TIPO_ESCALONADO else None
    config.monto_maximo = monto_maximo if tipo == TIPO_ESCALONADO else None
    config.fecha_inicio = fecha_inicio
    config.fecha_fin = fecha_fin
    config.activo = booleano(datos.get('activo'), True)
    config.descripcion = (datos.get('descripcion') or '').strip() or None

    db.session.commit()
    logger.info('Configuración de comisión %s guardada (%s %.2f%%)', config.id, tipo, porcentaje)
    return True, 'Configuración guardada correctamente', config


def eliminar_configuracion(config_id):
    config = db.session.get(ConfiguracionComision, config_id)
    if config is None:
        return False, 'La configuración no existe'
    config.activo = False
    config.modificado_utc = datetime.utcnow()
    db.session.commit()
    return True, 'Configuración desactivada'


# ==================== CÁLCULO ====================

def periodo_quincena(anio, mes, quincena):
    """Q1 = [día 1, día 16); Q2 = [día 16, primer día del mes siguiente)."""
    if quincena not in (1, 2) or not 1 <= mes <= 12:
        raise ValueError('Período no válido')
    if quincena == 1:
        return datetime(anio, mes, 1), datetime(anio, mes, 16)
    fin = datetime(anio + 1, 1, 1) if mes == 12 else datetime(anio, mes + 1, 1)
    return datetime(anio, mes, 16), fin


def _lineas_liquidables(inicio, fin, vendedor_id=None):
    query = (DetalleVenta.query
             .join(Venta, DetalleVenta.venta_id == Venta.id)
             .filter(Venta.estado_pago == PAGO_PAGADO,
                     Venta.fecha_pago >= inicio,
                     Venta.fecha_pago < fin,
                     Venta.estado != ESTADO_CANCELADO,
                     DetalleVenta.estado == LINEA_NORMAL,
                     DetalleVenta.comision_calculada.is_(False),
                     DetalleVenta.vendedor_id.isnot(None)))
    if vendedor_id is not None:
        query = query.filter(DetalleVenta.vendedor_id == vendedor_id)
    return query.order_by(DetalleVenta.venta_id, DetalleVenta.id).all()


def calcular_comisiones_periodo(inicio, fin, vendedor_id=None):
    """Resumen por vendedor de las líneas pagadas y aún no liquidadas."""
    grupos = {}
    for linea in _lineas_liquidables(inicio, fin, vendedor_id):
        grupos.setdefault(linea.vendedor_id, []).append(linea)

    resultados = []
    for vid, lineas in grupos.items():
        vendedor = db.session.get(Usuario, vid)
        ventas = round(sum(l.subtotal for l in lineas), 2)
        porcentaje = obtener_porcentaje(vid, monto_ventas=ventas)
        resultados.append({
            'vendedor_id': vid,
            'nombre_vendedor': vendedor.nombre_completo if vendedor else 'Desconocido',
            'email_vendedor': vendedor.email if vendedor else '',
            'monto_ventas': ventas,
            'cantidad_pedidos': len({l.venta_id for l in lineas}),
            'cantidad_productos': sum(l.cantidad for l in lineas),
            'porcentaje': porcentaje,
            'monto_comision': round(ventas * porcentaje / 100, 2),
            'detalles': [{
                'detalle_id': l.id,
                'venta_id': l.venta_id,
                'producto_id': l.producto_id,
                'producto': l.producto.nombre if l.producto else None,
                'cantidad': l.cantidad,
                'subtotal': l.subtotal
            } for l in lineas]
        })

    resultados.sort(key=lambda r: r['monto_ventas'], reverse=True)
    return resultados


# ==================== LIQUIDACIONES ====================

def generar_liquidacion(vendedor_id, anio, mes, quincena, creado_por):
    """Devuelve (ok, mensaje, pago)."""
    try:
        inicio, fin = periodo_quincena(int(anio), int(mes), int(quincena))
    except (TypeError, ValueError):
        return False, 'Período no válido', None

    vendedor_id = _a_entero(vendedor_id)
    if vendedor_id is None:
        return False, 'Vendedor no válido', None

    existente = PagoComision.query.filter(
        PagoComision.vendedor_id == vendedor_id,
        PagoComision.anio == int(anio),
        PagoComision.mes == int(mes),
        PagoComision.numero_quincena == int(quincena),
        PagoComision.estado != PAGO_COMISION_CANCELADO
    ).first()
    if existente:
        return False, 'Ya existe una liquidación para este período', None

    lineas = _lineas_liquidables(inicio, fin, vendedor_id)
    if not lineas:
        return False, 'No hay ventas para liquidar en este período', None

    try:
        ventas = round(sum(l.subtotal for l in lineas), 2)
        porcentaje = obtener_porcentaje(vendedor_id, monto_ventas=ventas)
        comision = round(ventas * porcentaje / 100, 2)

        pago = PagoComision(
            vendedor_id=vendedor_id,
            periodo_inicio=inicio,
            periodo_fin=fin - timedelta(days=1),
            numero_quincena=int(quincena),
            anio=int(anio),
            mes=int(mes),
            monto_ventas=ventas,
            cantidad_pedidos=len({l.venta_id for l in lineas}),
            cantidad_productos=sum(l.cantidad for l in lineas),
            porcentaje_aplicado=porcentaje,
            monto_comision=comision,
            deducciones=0.0,
            bonificaciones=0.0,
            monto_final=comision,
            estado=PAGO_COMISION_PENDIENTE,
            creado_por=creado_por
        )
        db.session.add(pago)
        db.session.flush()

        por_venta = {}
        for linea in lineas:
            por_venta[linea.venta_id] = por_venta.get(linea.venta_id, 0.0) + linea.subtotal
            linea.comision_calculada = True
            linea.pago_comision_id = pago.id

        for venta_id, monto in por_venta.items():
            pago.detalles.append(PagoComisionDetalle(
                venta_id=venta_id,
                monto_pedido=round(monto, 2),
                comision_pedido=round(monto * porcentaje / 100, 2)
            ))

        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception('Error generando la liquidación del vendedor %s', vendedor_id)
        return False, 'Error al generar la liquidación', None

    logger.info('Liquidación %s generada: vendedor %s, %s, comisión %.2f',
                pago.id, vendedor_id, pago.periodo_nombre, comision)
    return True, 'Liquidación generada correctamente', pago


def aprobar(pago_id, aprobado_por):
    pago = db.session.get(PagoComision, pago_id)
    if pago is None:
        return False, 'La liquidación no existe'
    if pago.estado != PAGO_COMISION_PENDIENTE:
        return False, 'Solo se pueden aprobar liquidaciones pendientes'
    pago.aprobar(aprobado_por)
    db.session.commit()
    logger.info('Liquidación %s aprobada por %s', pago_id, aprobado_por)
    return True, 'Liquidación aprobada correctamente'


def marcar_pagado(pago_id, pagado_por, metodo_pago, comprobante=None, banco=None):
    pago = db.session.get(PagoComision, pago_id)
    if pago is None:
        return False, 'La liquidación no existe'
    if pago.estado == PAGO_COMISION_PAGADO:
        return False, 'Esta liquidación ya fue pagada'
    if pago.estado == PAGO_COMISION_CANCELADO:
        return False, 'No se puede pagar una liquidación cancelada'
    if not (metodo_pago or '').strip():
        return False, 'El método de pago es obligatorio'
    pago.marcar_pagado(pagado_por, metodo_pago.strip(), (comprobante or '').strip() or None)
    pago.banco_entidad = (banco or '').strip() or None
    db.session.commit()
    logger.info('Liquidación %s pagada (%s)', pago_id, metodo_pago)
    return True, 'Pago registrado correctamente'


def cancelar(pago_id, motivo):
    pago = db.session.get(PagoComision, pago_id)
    if pago is None:
        return False, 'La liquidación no existe'
    if pago.estado == PAGO_COMISION_PAGADO:
        return False, 'No se puede cancelar una liquidación ya pagada'
    try:
        for linea in DetalleVenta.query.filter_by(pago_comision_id=pago.id).all():
            linea.comision_calculada = False
            linea.pago_comision_id = None
        pago.cancelar((motivo or '').strip() or 'Sin motivo')
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception('Error al cancelar la liquidación %s', pago_id)
        return False, 'Error al cancelar la liquidación'
    return True, 'Liquidación cancelada correctamente'


def ajustar(pago_id, deducciones=0.0, bonificaciones=0.0):
    pago = db.session.get(PagoComision, pago_id)
    if pago is None:
        return False, 'La liquidación no existe'
    if pago.estado != PAGO_COMISION_PENDIENTE:
        return False, 'Solo se pueden ajustar liquidaciones pendientes'
    try:
        deducciones = round(float(deducciones or 0), 2)
        bonificaciones = round(float(bonificaciones or 0), 2)
    except (TypeError, ValueError):
        return False, 'Montos no válidos'
    if deducciones < 0 or bonificaciones < 0:
        return False, 'Los montos no pueden ser negativos'
    pago.deducciones = deducciones
    pago.bonificaciones = bonificaciones
    pago.calcular_monto_final()
    pago.modificado_utc = datetime.utcnow()
    db.session.commit()
    return True, 'Ajustes aplicados correctamente'


# ==================== CONSULTAS ====================

def obtener_pagos(vendedor_id=None, estado=None, anio=None, mes=None):
    query = PagoComision.query
    if vendedor_id:
        query = query.filter(PagoComision.vendedor_id == vendedor_id)
    if estado:
        query = query.filter(PagoComision.estado == estado)
    if anio:
        query = query.filter(PagoComision.anio == anio)
    if mes:
        query = query.filter(PagoComision.mes == mes)
    return query.order_by(PagoComision.anio.desc(), PagoComision.mes.desc(),
                          PagoComision.numero_quincena.desc()).all()


def _lineas_pagadas(inicio, fin):
    return (DetalleVenta.query
            .join(Venta, DetalleVenta.venta_id == Venta.id)
            .filter(Venta.estado_pago == PAGO_PAGADO,
                    Venta.fecha_pago >= inicio,
                    Venta.fecha_pago <= fin)
            .all())


def obtener_estadisticas(inicio=None, fin=None):
    ahora = datetime.utcnow()
    inicio = inicio or datetime(ahora.year, ahora.month, 1)
    fin = fin or ahora

    pagadas = Venta.query.filter(Venta.estado_pago == PAGO_PAGADO,
                                 Venta.fecha_pago >= inicio,
                                 Venta.fecha_pago <= fin).all()
    total_ventas = round(sum(v.total or 0 for v in pagadas), 2)
    cantidad = len(pagadas)

    pendientes = round(sum(p.monto_final or 0 for p in
                           PagoComision.query.filter_by(estado=PAGO_COMISION_PENDIENTE).all()), 2)
    pagadas_comision = round(sum(p.monto_final or 0 for p in PagoComision.query.filter(
        PagoComision.estado == PAGO_COMISION_PAGADO,
        PagoComision.fecha_pago >= inicio,
        PagoComision.fecha_pago <= fin).all()), 2)

    vendedores = {l.vendedor_id for l in _lineas_pagadas(inicio, fin) if l.vendedor_id is not None}

    return {
        'fecha_inicio': inicio.isoformat(),
        'fecha_fin': fin.isoformat(),
        'total_ventas': total_ventas,
        'cantidad_pedidos': cantidad,
        'ticket_promedio': round(total_ventas / cantidad, 2) if cantidad else 0.0,
        'comisiones_pendientes': pendientes,
        'comisiones_pagadas': pagadas_comision,
        'vendedores_activos': len(vendedores),
        'total_comisiones': round(pendientes + pagadas_comision, 2)
    }


def obtener_top_vendedores(inicio, fin, top=10):
    grupos = {}
    for linea in _lineas_pagadas(inicio, fin):
        if linea.vendedor_id is not None:
            grupos.setdefault(linea.vendedor_id, []).append(linea)

    resultado = []
    for vid, lineas in grupos.items():
        vendedor = db.session.get(Usuario, vid)
        resultado.append({
            'vendedor_id': vid,
            'nombre_vendedor': vendedor.nombre_completo if vendedor else 'Desconocido',
            'total_ventas': round(sum(l.subtotal for l in lineas), 2),
            'cantidad_pedidos': len({l.venta_id for l in lineas}),
            'cantidad_productos': sum(l.cantidad for l in lineas)
        })
    resultado.sort(key=lambda r: r['total_ventas'], reverse=True)
    return resultado[:top]


# ==================== EXPORTACIÓN CSV ====================

def _f2(valor):
    return f'{(valor or 0):.2f}'


def _escribir_csv(encabezado, filas):
    si = io.StringIO()
    writer = csv.writer(si, lineterminator='\n')
    writer.writerow(encabezado)
    writer.writerows(filas)
    return si.getvalue()


def exportar_ventas_csv(anio, mes):
    """Devuelve (nombre_archivo, contenido)."""
    inicio = datetime(anio, mes, 1)
    fin = datetime(anio + 1, 1, 1) if mes == 12 else datetime(anio, mes + 1, 1)

    lineas = (DetalleVenta.query
              .join(Venta, DetalleVenta.venta_id == Venta.id)
              .filter(Venta.fecha_venta >= inicio, Venta.fecha_venta < fin)
              .order_by(Venta.fecha_venta, DetalleVenta.id)
              .all())

    filas = []
    for d in lineas:
        venta = d.venta
        cliente = venta.usuario
        vendedor = d.vendedor or (d.producto.vendedor if d.producto else None)
        categoria = d.producto.categoria if d.producto else None
        filas.append([
            venta.fecha_venta.strftime('%Y-%m-%d %H:%M') if venta.fecha_venta else '',
            venta.numero_orden or venta.id,
            cliente.nombre_completo if cliente else '',
            cliente.email if cliente else '',
            vendedor.nombre_completo if vendedor else '',
            categoria.nombre if categoria else '',
            d.producto.nombre if d.producto else '',
            d.cantidad,
            _f2(d.precio_unitario),
            _f2(d.subtotal),
            venta.estado,
            venta.estado_pago
        ])
    encabezado = ['Fecha', 'NumeroOrden', 'Cliente', 'Email', 'Vendedor', 'Categoria', 'Producto', 'Cantidad',
                  'PrecioUnit', 'Subtotal', 'EstadoPedido', 'EstadoPago']
    return f'ventas_{anio}_{mes:02d}.csv', _escribir_csv(encabezado, filas)


def exportar_comisiones_csv(anio):
    pagos = (PagoComision.query
             .filter(PagoComision.anio == anio)
             .order_by(PagoComision.mes, PagoComision.numero_quincena)
             .all())

    filas = []
    for p in pagos:
        filas.append([
            p.periodo_nombre,
            p.vendedor.nombre_completo if p.vendedor else '',
            p.vendedor.email if p.vendedor else '',
            _f2(p.monto_ventas),
            p.cantidad_pedidos or 0,
            p.cantidad_productos or 0,
            _f2(p.porcentaje_aplicado),
            _f2(p.monto_comision),
            _f2(p.deducciones),
            _f2(p.bonificaciones),
            _f2(p.monto_final),
            p.estado,
            p.fecha_pago.strftime('%Y-%m-%d') if p.fecha_pago else '',
            p.metodo_pago
        ])
    encabezado = ['Periodo', 'Vendedor', 'Email', 'MontoVentas', 'Pedidos', 'Productos', 'Porcentaje', 'Comision',
                  'Deducciones', 'Bonificaciones', 'MontoFinal', 'Estado', 'FechaPago', 'MetodoPago']
    return f'comisiones_{anio}.csv', _escribir_csv(encabezado, filas)
