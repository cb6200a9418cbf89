# facturacion/services/factura_store.py
"""
Store de faturas usado pelo orquestrador de timbrado.

Uma instância por requisição, ligada ao alias de banco do tenant. O escopo
transacional é aberto a cada chamada via ``atomic()``; nada aqui é global.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from django.db import transaction
from django.utils import timezone

from facturacion.models import Factura, IntentoTimbrado
from facturacion.services.exceptions import FacturaNoEncontrada


class FacturaStore:
    def __init__(self, using: str = "default"):
        self.using = using

    def atomic(self):
        return transaction.atomic(using=self.using)

    def obtener_para_timbrado(self, factura_id: int) -> Factura:
        """
        Carrega a fatura com lock de linha (SELECT ... FOR UPDATE).

        Precisa ser chamado dentro de ``atomic()``: o lock vale até o commit
        do desfecho, impedindo dois envios simultâneos da mesma fatura.
        """
        try:
            return (
                Factura.objects.using(self.using)
                .select_for_update()
                .get(pk=factura_id)
            )
        except Factura.DoesNotExist:
            raise FacturaNoEncontrada() from None

    def obtener(self, factura_id: int) -> Factura:
        try:
            return Factura.objects.using(self.using).get(pk=factura_id)
        except Factura.DoesNotExist:
            raise FacturaNoEncontrada() from None

    def actualizar_resultado(
        self,
        factura_id: int,
        *,
        estado: str,
        cufe: Optional[str],
        fecha_timbrado,
        motivo_rechazo: Optional[str],
    ) -> int:
        """Grava o desfecho do timbrado. Retorna o número de linhas afetadas."""
        return (
            Factura.objects.using(self.using)
            .filter(pk=factura_id)
            .update(
                estado=estado,
                cufe=cufe,
                fecha_timbrado=fecha_timbrado,
                motivo_rechazo=motivo_rechazo,
                fecha_modificacion=timezone.now(),
            )
        )

    def registrar_intento(
        self,
        factura_id: int,
        *,
        estado_resultado: str,
        cufe: Optional[str] = None,
        status_code: Optional[str] = None,
        mensaje: Optional[str] = None,
        hash_payload: Optional[str] = None,
        respuesta_raw: Optional[Dict[str, Any]] = None,
        tenant_id: Optional[str] = None,
    ) -> IntentoTimbrado:
        # código da autoridade é texto livre; a coluna tem limite
        limite = IntentoTimbrado._meta.get_field("status_code").max_length
        return IntentoTimbrado.objects.using(self.using).create(
            factura_id=factura_id,
            estado_resultado=estado_resultado,
            cufe=cufe,
            status_code=status_code[:limite] if status_code else status_code,
            mensaje=mensaje,
            hash_payload=hash_payload,
            respuesta_raw=respuesta_raw,
            tenant_id=tenant_id,
        )
