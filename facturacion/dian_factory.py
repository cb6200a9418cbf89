# facturacion/dian_factory.py
"""
Factory do client DIAN.

Ponto único de construção: o orquestrador recebe o client pronto, já ligado
ao mesmo alias de banco do store de faturas do tenant.
"""

from __future__ import annotations

from django.conf import settings

from facturacion.dian_client import TIMEOUT_PADRAO_SEGUNDOS, DianClient, DianClientProtocol


def _normalize_timeout(valor) -> float:
    """
    Timeout HTTP em segundos. Valores vazios, inválidos ou não positivos
    voltam ao padrão.
    """
    try:
        timeout = float(valor)
    except (TypeError, ValueError):
        return TIMEOUT_PADRAO_SEGUNDOS
    return timeout if timeout > 0 else TIMEOUT_PADRAO_SEGUNDOS


def get_dian_client(*, using: str = "default") -> DianClientProtocol:
    timeout = _normalize_timeout(getattr(settings, "DIAN_TIMEOUT_SEGUNDOS", None))
    return DianClient(using=using, timeout=timeout)
