"""
Vocabulário de estados compartilhado pela cadeia de documentos
(cotização → pedido → remissão → fatura → nota crédito).

Cada estado humano tem exatamente um código de 1 caractere persistido.
``EstadoDocumento`` é um ``TextChoices``: o Django aplica ``enum.unique``
na construção da classe, então dois estados com o mesmo código quebram já
no import do módulo.
"""

from __future__ import annotations

import re

from django.db import models


class EstadoDocumento(models.TextChoices):
    BORRADOR = "B", "Borrador"
    ENVIADA = "E", "Enviada"
    APROBADA = "A", "Aprobada"
    RECHAZADA = "R", "Rechazada"
    VENCIDA = "V", "Vencida"
    CONFIRMADO = "C", "Confirmado"
    EN_PROCESO = "P", "En proceso"
    PARCIALMENTE_REMITIDO = "L", "Parcialmente remitido"
    REMITIDO = "M", "Remitido"
    CANCELADO = "X", "Cancelado"
    EN_TRANSITO = "T", "En tránsito"
    ENTREGADO = "D", "Entregado"
    # "A" pertence a APROBADA (faturas); cotização aceita usa código próprio
    ACEPTADA = "K", "Aceptada"
    ANULADA = "N", "Anulada"


class TipoDocumento(models.TextChoices):
    COTIZACION = "COTIZACION", "Cotización"
    PEDIDO = "PEDIDO", "Pedido"
    REMISION = "REMISION", "Remisión"
    FACTURA = "FACTURA", "Factura"
    NOTA_CREDITO = "NOTA_CREDITO", "Nota crédito"


ESTADOS_POR_DOCUMENTO: dict[str, frozenset[EstadoDocumento]] = {
    TipoDocumento.COTIZACION: frozenset({
        EstadoDocumento.BORRADOR,
        EstadoDocumento.ENVIADA,
        EstadoDocumento.ACEPTADA,
        EstadoDocumento.RECHAZADA,
        EstadoDocumento.VENCIDA,
    }),
    TipoDocumento.PEDIDO: frozenset({
        EstadoDocumento.BORRADOR,
        EstadoDocumento.CONFIRMADO,
        EstadoDocumento.EN_PROCESO,
        EstadoDocumento.PARCIALMENTE_REMITIDO,
        EstadoDocumento.REMITIDO,
        EstadoDocumento.CANCELADO,
    }),
    TipoDocumento.REMISION: frozenset({
        EstadoDocumento.BORRADOR,
        EstadoDocumento.EN_TRANSITO,
        EstadoDocumento.ENTREGADO,
        EstadoDocumento.CANCELADO,
    }),
    TipoDocumento.FACTURA: frozenset({
        EstadoDocumento.BORRADOR,
        EstadoDocumento.ENVIADA,
        EstadoDocumento.APROBADA,
        EstadoDocumento.RECHAZADA,
        EstadoDocumento.ANULADA,
    }),
    TipoDocumento.NOTA_CREDITO: frozenset({
        EstadoDocumento.BORRADOR,
        EstadoDocumento.ENVIADA,
        EstadoDocumento.APROBADA,
        EstadoDocumento.RECHAZADA,
        EstadoDocumento.ANULADA,
    }),
}

# Códigos de duas letras ainda presentes em bases antigas (somente leitura).
CODIGOS_LEGADOS: dict[str, EstadoDocumento] = {
    "PR": EstadoDocumento.PARCIALMENTE_REMITIDO,
    "AC": EstadoDocumento.ACEPTADA,
    "AN": EstadoDocumento.ANULADA,
}

_SEPARADORES_RE = re.compile(r"[\s\-]+")


def _chave_estado(estado: str) -> str:
    return _SEPARADORES_RE.sub("_", estado.strip().upper())


def a_codigo(estado: str | None) -> str:
    """
    Estado humano → código persistido.

    Vazio vira BORRADOR. Estado desconhecido cai no primeiro caractere em
    maiúscula: é apenas uma rede de segurança para dados sujos, não um
    mapeamento a ser estendido.
    """
    if not estado or not str(estado).strip():
        return EstadoDocumento.BORRADOR.value

    chave = _chave_estado(str(estado))
    if chave in EstadoDocumento.names:
        return EstadoDocumento[chave].value
    return str(estado).strip()[0].upper()


def desde_codigo(codigo: str | None) -> str | None:
    """
    Código persistido → estado humano.

    Código desconhecido volta como veio; quem exibe deve tratá-lo como
    "desconhecido, mostrar literal".
    """
    if codigo is None:
        return None

    chave = str(codigo).strip().upper()
    if chave in CODIGOS_LEGADOS:
        return CODIGOS_LEGADOS[chave].name
    if chave in EstadoDocumento.values:
        return EstadoDocumento(chave).name
    return codigo


def estados_de(tipo: str) -> frozenset[EstadoDocumento]:
    return ESTADOS_POR_DOCUMENTO[TipoDocumento(tipo)]


def estado_permitido(tipo: str, estado: str) -> bool:
    chave = _chave_estado(estado)
    if chave not in EstadoDocumento.names:
        return False
    return EstadoDocumento[chave] in estados_de(tipo)
