import logging

from simone.services.carrito_service import vendedores_en_carrito

logger = logging.getLogger(__name__)

ORIGEN_VENDEDOR = 'vendedor'
ORIGEN_ADMIN = 'admin'


class PagosResolver:
    """Decide a qué cuentas debe depositar el comprador."""

    def __init__(self, bancos_service):
        self.bancos = bancos_service

    def resolver(self, usuario_id):
        vendedores = vendedores_en_carrito(usuario_id)
        return {
            'es_multi_vendedor': len(vendedores) > 1,
            'vendedor_id_unico': vendedores[0] if len(vendedores) == 1 else None,
            'vendedores_ids': vendedores
        }

    def cuentas_para_pago(self, usuario_id):
        """Cuentas activas del vendedor único o, en su defecto, las del administrador."""
        info = self.resolver(usuario_id)
        vendedor_id = info['vendedor_id_unico']
        if vendedor_id:
            cuentas = self.bancos.activas_proveedor(vendedor_id)
            if cuentas:
                return cuentas, dict(info, origen=ORIGEN_VENDEDOR)
            logger.warning('El vendedor %s no tiene cuentas activas, se usan las del administrador', vendedor_id)
        return self.bancos.activas_admin(), dict(info, origen=ORIGEN_ADMIN)
