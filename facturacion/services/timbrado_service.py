# facturacion/services/timbrado_service.py

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Union

from django.db import DatabaseError
from django.utils import timezone

from commons.estados import EstadoDocumento, desde_codigo
from facturacion.dian_client import DianClientProtocol, ResultadoDian
from facturacion.models import Factura
from facturacion.services.exceptions import (
    ErrorInterno,
    ErrorPersistencia,
    FacturaNoEncontrada,
    IdentificadorInvalido,
    TimbradoError,
)
from facturacion.services.factura_store import FacturaStore

logger = logging.getLogger("backoffice.facturacion")

MOTIVO_RECHAZO_GENERICO = "Error en el envío a la DIAN"
MENSAJE_ACEPTADA = "Factura timbrada exitosamente"

# AutoField (integer)
MAX_FACTURA_ID = 2147483647


# ---------------------------------------------------------------------------
# Desfecho do envio (aceite ou rejeição de negócio)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Aceptacion:
    cufe: str
    fecha_timbrado: datetime
    resultado: ResultadoDian
    hash_payload: Optional[str] = None


@dataclass(frozen=True)
class Rechazo:
    motivo: str
    resultado: Optional[ResultadoDian] = None
    hash_payload: Optional[str] = None
    raw: Optional[Dict[str, Any]] = None


Desenlace = Union[Aceptacion, Rechazo]


@dataclass
class TimbrarFacturaResult:
    """
    DTO de retorno do timbrado, montado a partir da fatura relida após a
    gravação do desfecho.
    """

    factura_id: int
    numero_factura: str
    estado_codigo: str
    estado: str
    aceptada: bool
    cufe: Optional[str]
    fecha_timbrado: Optional[datetime]
    motivo_rechazo: Optional[str]
    mensaje: str


# ---------------------------------------------------------------------------
# Helpers internos
# ---------------------------------------------------------------------------


def parse_factura_id(valor: Any) -> int:
    """
    Aceita int positivo ou texto só com dígitos ASCII.

    Roda antes de qualquer acesso ao store.
    """
    if isinstance(valor, bool):
        raise IdentificadorInvalido()

    if isinstance(valor, int):
        numero = valor
    else:
        texto = str(valor if valor is not None else "").strip()
        if not (texto.isascii() and texto.isdigit()):
            raise IdentificadorInvalido()
        numero = int(texto)

    if numero <= 0 or numero > MAX_FACTURA_ID:
        raise IdentificadorInvalido()
    return numero


def _hash_payload(payload: Any) -> str:
    """
    Hash SHA256 estável do payload enviado (json com sort_keys).
    """
    try:
        normalized = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    except TypeError:
        normalized = str(payload)
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def decidir_desenlace(resultado: ResultadoDian, hash_payload: Optional[str] = None) -> Desenlace:
    """
    ACEITA somente com sucesso reportado E CUFE não vazio; qualquer outra
    resposta é rejeição com a mensagem do provedor (ou a genérica).
    """
    cufe = (resultado.cufe or "").strip()
    if resultado.success and cufe:
        return Aceptacion(
            cufe=cufe,
            fecha_timbrado=resultado.fecha_timbrado or timezone.now(),
            resultado=resultado,
            hash_payload=hash_payload,
        )
    return Rechazo(
        motivo=(resultado.message or "").strip() or MOTIVO_RECHAZO_GENERICO,
        resultado=resultado,
        hash_payload=hash_payload,
    )


def ejecutar_envio(
    *,
    factura_id: int,
    overrides: Mapping[str, Any] | None,
    store: FacturaStore,
    dian_client: DianClientProtocol,
    tenant_id: Optional[str] = None,
) -> Desenlace:
    """
    Pipeline resolução → parâmetros → agregado → payload → envio.

    Roda dentro de um savepoint: erro em qualquer etapa (inclusive de banco
    ou timeout de rede) desfaz só o savepoint e vira Rechazo, sem invalidar
    a transação externa que vai gravar o desfecho.
    """
    payload: Optional[Dict[str, Any]] = None
    try:
        with store.atomic():
            resolucion = dian_client.obtener_resolucion_activa()
            parametros = dian_client.obtener_parametros()
            completa = dian_client.obtener_factura_completa(factura_id)
            payload = dian_client.transformar(completa, resolucion, parametros, overrides)
            resultado = dian_client.enviar(payload, parametros.test_set_id, parametros.url_base)
    except Exception as exc:
        motivo = str(exc).strip() or MOTIVO_RECHAZO_GENERICO
        logger.warning(
            "timbrar_factura_envio_fallido",
            extra={
                "event": "factura_timbrar",
                "tenant_id": tenant_id,
                "factura_id": factura_id,
                "error": motivo,
                "error_type": type(exc).__name__,
            },
        )
        return Rechazo(
            motivo=motivo,
            hash_payload=_hash_payload(payload) if payload is not None else None,
            raw=getattr(exc, "raw", None) or None,
        )

    return decidir_desenlace(resultado, _hash_payload(payload))


def _registrar_desenlace(
    store: FacturaStore,
    factura_id: int,
    desenlace: Desenlace,
    tenant_id: Optional[str],
) -> Factura:
    if isinstance(desenlace, Aceptacion):
        estado = EstadoDocumento.APROBADA.value
        cufe = desenlace.cufe
        fecha_timbrado = desenlace.fecha_timbrado
        motivo = None
    else:
        estado = EstadoDocumento.RECHAZADA.value
        cufe = None
        fecha_timbrado = None
        motivo = desenlace.motivo

    filas = store.actualizar_resultado(
        factura_id,
        estado=estado,
        cufe=cufe,
        fecha_timbrado=fecha_timbrado,
        motivo_rechazo=motivo,
    )
    if filas != 1:
        raise ErrorPersistencia()

    resultado = desenlace.resultado
    store.registrar_intento(
        factura_id,
        estado_resultado=estado,
        cufe=cufe,
        status_code=resultado.status_code if resultado else None,
        mensaje=motivo if motivo else (resultado.message if resultado else None),
        hash_payload=desenlace.hash_payload,
        respuesta_raw=resultado.raw if resultado else getattr(desenlace, "raw", None),
        tenant_id=tenant_id,
    )

    return store.obtener(factura_id)


def _build_result(factura: Factura) -> TimbrarFacturaResult:
    aceptada = factura.estado == EstadoDocumento.APROBADA
    return TimbrarFacturaResult(
        factura_id=factura.pk,
        numero_factura=factura.numero_factura,
        estado_codigo=factura.estado,
        estado=desde_codigo(factura.estado),
        aceptada=aceptada,
        cufe=factura.cufe,
        fecha_timbrado=factura.fecha_timbrado,
        motivo_rechazo=factura.motivo_rechazo,
        mensaje=MENSAJE_ACEPTADA if aceptada else (factura.motivo_rechazo or MOTIVO_RECHAZO_GENERICO),
    )


# ---------------------------------------------------------------------------
# Service principal
# ---------------------------------------------------------------------------


def timbrar_factura(
    *,
    factura_id: Any,
    overrides: Mapping[str, Any] | None = None,
    store: FacturaStore,
    dian_client: DianClientProtocol,
    tenant_id: Optional[str] = None,
) -> TimbrarFacturaResult:
    """
    Timbra uma fatura na DIAN e grava o desfecho.

    Fluxo:
      1) Valida o ID (IdentificadorInvalido, sem tocar no store).
      2) Abre transação e carrega a fatura com lock de linha
         (FacturaNoEncontrada → rollback).
      3) Roda o pipeline de envio; falhas viram Rechazo.
      4) APROBADA só com sucesso + CUFE; senão RECHAZADA com motivo.
      5) Atualiza estado/CUFE/motivo/fecha_modificacion, registra a tentativa
         e relê a fatura na mesma transação.
      6) Erro de banco → rollback + ErrorPersistencia (fatura fica no
         estado anterior). Qualquer outro erro → ErrorInterno.

    Nenhum estado intermediário ("em envio") é persistido.
    """
    factura_pk = parse_factura_id(factura_id)
    overrides = dict(overrides or {})

    logger.info(
        "timbrar_factura_iniciado",
        extra={
            "event": "factura_timbrar",
            "tenant_id": tenant_id,
            "factura_id": factura_pk,
            "db_alias": store.using,
        },
    )

    try:
        with store.atomic():
            factura = store.obtener_para_timbrado(factura_pk)
            estado_anterior = factura.estado

            desenlace = ejecutar_envio(
                factura_id=factura_pk,
                overrides=overrides,
                store=store,
                dian_client=dian_client,
                tenant_id=tenant_id,
            )

            factura = _registrar_desenlace(store, factura_pk, desenlace, tenant_id)

    except FacturaNoEncontrada:
        logger.warning(
            "timbrar_factura_no_encontrada",
            extra={"event": "factura_timbrar", "tenant_id": tenant_id, "factura_id": factura_pk},
        )
        raise
    except TimbradoError as exc:
        logger.error(
            "timbrar_factura_error",
            extra={
                "event": "factura_timbrar",
                "tenant_id": tenant_id,
                "factura_id": factura_pk,
                "code": exc.codigo,
                "error": exc.mensagem,
            },
        )
        raise
    except DatabaseError as exc:
        logger.error(
            "timbrar_factura_persistencia_fallida",
            extra={
                "event": "factura_timbrar",
                "tenant_id": tenant_id,
                "factura_id": factura_pk,
                "error": str(exc),
            },
        )
        raise ErrorPersistencia() from exc
    except Exception as exc:
        logger.exception(
            "timbrar_factura_error_inesperado",
            extra={"event": "factura_timbrar", "tenant_id": tenant_id, "factura_id": factura_pk},
        )
        raise ErrorInterno(str(exc) or None) from exc

    result = _build_result(factura)

    logger.info(
        "timbrar_factura_concluido",
        extra={
            "event": "factura_timbrar",
            "tenant_id": tenant_id,
            "factura_id": factura_pk,
            "estado_anterior": estado_anterior,
            "outcome": "ACEPTADA" if result.aceptada else "RECHAZADA",
            "cufe": result.cufe,
        },
    )
    return result
