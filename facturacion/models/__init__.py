from .cliente_models import Cliente
from .factura_models import Factura, FacturaDetalle, IntentoTimbrado
from .dian_models import ResolucionDian, ParametrosDian

__all__ = [
    "Cliente",
    "Factura",
    "FacturaDetalle",
    "IntentoTimbrado",
    "ResolucionDian",
    "ParametrosDian",
]
