"""
Camada de client DIAN (facturación electrónica, UBL 2.1).

Este módulo define:

- Contrato ``DianClientProtocol`` usado pelo orquestrador de timbrado.
- DTOs ``FacturaCompleta`` e ``ResultadoDian``.
- ``DianClient``: leitura da configuração fiscal do tenant, montagem do
  payload e envio HTTP ao provedor.

O client nunca escreve no store de faturas e nunca faz retry: quem decide
repetir é o chamador.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Protocol

import requests
from django.db.models import Q
from django.utils import timezone

from commons.montos import normalizar_monto, normalizar_porcentaje
from facturacion.models import (
    Cliente,
    Factura,
    FacturaDetalle,
    ParametrosDian,
    ResolucionDian,
)
from facturacion.services.exceptions import FacturaNoEncontrada

logger = logging.getLogger("backoffice.facturacion")

TIMEOUT_PADRAO_SEGUNDOS = 30

STATUS_CODE_EXITO = "00"
STATUS_CODE_ERRO = "99"

DOCUMENTO_CONSUMIDOR_FINAL = 222222222222
NOMBRE_CONSUMIDOR_FINAL = "CONSUMIDOR FINAL"
TELEFONO_PADRAO = "3000000000"
EMAIL_PADRAO = "consumidor@final.com"
UBICACION_PADRAO = "11001"
DIRECCION_PADRAO = "BOGOTA D.C."
DESCRIPCION_CONSOLIDADA = "VENTA DE PRODUCTOS Y SERVICIOS"

TIPO_DOCUMENTO_FACTURA_VENTA = 1
UNIDAD_MEDIDA_ESTANDAR = 70
TIPO_ITEM_CODIGO_VENDEDOR = 4
TAX_ID_IVA = 1

# (payment_form_id, payment_method_id)
FORMA_PAGO_CONTADO = (1, 10)
FORMA_PAGO_TARJETA = (2, 48)
FORMA_PAGO_TRANSFERENCIA = (3, 42)
FORMA_PAGO_CREDITO = (4, 1)

_NO_DIGITOS_RE = re.compile(r"\D")


# ---------------------------------------------------------------------------
# Exceções específicas
# ---------------------------------------------------------------------------


class DianError(Exception):
    """Base dos erros do pipeline de envio à DIAN."""


class SinResolucionActiva(DianError):
    def __init__(self, mensagem: str = "No hay resolución DIAN activa vigente."):
        super().__init__(mensagem)


class ConfiguracionFaltante(DianError):
    def __init__(self, mensagem: str = "Faltan parámetros de facturación electrónica DIAN."):
        super().__init__(mensagem)


class DianTechnicalError(DianError):
    """
    Falha técnica na troca com o provedor DIAN: timeout, conexão recusada,
    HTTP não-2xx ou resposta que não é um objeto JSON.

    Nunca é convertida em sucesso; o orquestrador a registra como rejeição.
    """

    def __init__(
        self,
        message: str,
        *,
        codigo: str | None = None,
        raw: Dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.codigo = codigo
        self.raw: Dict[str, Any] = raw or {}


# ---------------------------------------------------------------------------
# DTOs
# ---------------------------------------------------------------------------


@dataclass
class FacturaCompleta:
    factura: Factura
    detalles: List[FacturaDetalle] = field(default_factory=list)
    cliente: Optional[Cliente] = None


@dataclass
class ResultadoDian:
    """
    Resultado normalizado de um envio.

    ``success`` só é True quando o provedor reportou sucesso E devolveu CUFE.
    """

    success: bool
    status: str  # accepted | rejected | error
    status_code: Optional[str]
    cufe: Optional[str]
    uuid: Optional[str]
    is_valid: Optional[bool]
    message: Optional[str]
    pdf_url: Optional[str]
    xml_url: Optional[str]
    qr_code: Optional[str]
    fecha_timbrado: Optional[datetime]
    raw: Dict[str, Any]


# ---------------------------------------------------------------------------
# Contrato
# ---------------------------------------------------------------------------


class DianClientProtocol(Protocol):
    def obtener_resolucion_activa(self) -> ResolucionDian:
        ...

    def obtener_parametros(self) -> ParametrosDian:
        ...

    def obtener_factura_completa(self, factura_id: int) -> FacturaCompleta:
        ...

    def transformar(
        self,
        completa: FacturaCompleta,
        resolucion: ResolucionDian,
        parametros: ParametrosDian,
        overrides: Mapping[str, Any] | None = None,
    ) -> Dict[str, Any]:
        ...

    def enviar(
        self,
        payload: Dict[str, Any],
        test_set_id: str,
        url_base: str,
    ) -> ResultadoDian:
        ...


# ---------------------------------------------------------------------------
# Helpers de transformação
# ---------------------------------------------------------------------------


def _num(valor: Decimal) -> float:
    # JSON do provedor espera número, não string
    return float(valor)


def calcular_numero_factura(resolucion: ResolucionDian) -> int:
    """
    Próximo número da faixa autorizada: consecutivo + 1.

    Abaixo do início da faixa → início; acima do fim → volta ao início.
    """
    numero = (resolucion.consecutivo or 0) + 1
    if resolucion.rango_inicial and numero < resolucion.rango_inicial:
        return resolucion.rango_inicial
    if resolucion.rango_final and numero > resolucion.rango_final:
        return resolucion.rango_inicial or 1
    return numero


def determinar_forma_pago(factura: Factura) -> tuple[int, int]:
    if (factura.tarjeta_credito or 0) > 0:
        return FORMA_PAGO_TARJETA
    if (factura.transferencia or 0) > 0:
        return FORMA_PAGO_TRANSFERENCIA
    if (factura.credito or 0) > 0:
        return FORMA_PAGO_CREDITO
    return FORMA_PAGO_CONTADO


def normalizar_telefono(telefono) -> str:
    digitos = _NO_DIGITOS_RE.sub("", str(telefono or ""))
    if len(digitos) < 10:
        return TELEFONO_PADRAO
    return digitos[:15]


def _documento_cliente(overrides: Mapping[str, Any], cliente: Cliente | None) -> int:
    for candidato in (overrides.get("customer_document"), cliente.codigo if cliente else None):
        digitos = _NO_DIGITOS_RE.sub("", str(candidato or ""))
        if digitos:
            return int(digitos)
    return DOCUMENTO_CONSUMIDOR_FINAL


def _track_id(override, numero: int) -> str:
    if override is None or isinstance(override, (list, tuple, dict)):
        return f"track-{numero}-{int(time.time() * 1000)}"
    return str(override)


def _linea(
    *,
    codigo: str,
    descripcion: str,
    cantidad: Decimal,
    base: Decimal,
    porcentaje_iva: Decimal,
) -> Dict[str, Any]:
    impuesto = normalizar_monto(base * porcentaje_iva / 100, "tax_amount")
    precio = normalizar_monto(base / cantidad, "price_amount") if cantidad > 0 else Decimal("0.00")
    return {
        "unit_measure_id": UNIDAD_MEDIDA_ESTANDAR,
        "invoiced_quantity": _num(cantidad),
        "line_extension_amount": _num(base),
        "description": descripcion or DESCRIPCION_CONSOLIDADA,
        "price_amount": _num(precio),
        "code": codigo,
        "type_item_identification_id": TIPO_ITEM_CODIGO_VENDEDOR,
        "base_quantity": _num(cantidad),
        "free_of_charge_indicator": False,
        "tax_totals": [
            {
                "tax_id": TAX_ID_IVA,
                "tax_amount": _num(impuesto),
                "taxable_amount": _num(base),
                "percent": _num(porcentaje_iva),
            }
        ],
    }


def _primeiro(dados: Mapping[str, Any], *chaves: str):
    for chave in chaves:
        valor = dados.get(chave)
        if valor not in (None, ""):
            return valor
    return None


def _formatar_erros(erros) -> Optional[str]:
    """Achata ``errors`` do provedor (dict campo → lista, ou lista) em texto."""
    if not erros:
        return None
    if isinstance(erros, dict):
        partes = []
        for campo, msgs in erros.items():
            if isinstance(msgs, (list, tuple)):
                msgs = "; ".join(str(m) for m in msgs)
            partes.append(f"{campo}: {msgs}")
        return " | ".join(partes)
    if isinstance(erros, (list, tuple)):
        return " | ".join(str(e) for e in erros)
    return str(erros)


def normalizar_respuesta(body: Dict[str, Any]) -> ResultadoDian:
    """
    Interpreta o JSON do provedor.

    - ``response`` aninhado é desembrulhado;
    - statusCode "00" = sucesso, "99" = erro, outro = rejeição;
    - sem statusCode, vale o booleano ``success``/``isValid``;
    - CUFE vem de cufe/CUFE/uuid (nunca do trackId que nós geramos).
    """
    dados = body.get("response") if isinstance(body.get("response"), dict) else body

    status_code = _primeiro(dados, "statusCode", "status_code", "code")
    status_code = str(status_code) if status_code is not None else None

    is_valid = dados.get("isValid")
    if status_code is not None:
        exito = status_code == STATUS_CODE_EXITO
    else:
        exito = dados.get("success") is True or body.get("success") is True or is_valid is True

    cufe = _primeiro(dados, "cufe", "CUFE") or _primeiro(body, "cufe", "CUFE")
    uuid = _primeiro(dados, "uuid", "UUID")
    cufe = str(cufe or uuid or "").strip() or None

    message = _primeiro(dados, "message", "Message", "error") or _primeiro(body, "message", "error")
    if not message:
        message = _formatar_erros(dados.get("errors") or body.get("errors"))

    success = bool(exito and cufe)
    if success:
        status = "accepted"
    elif status_code == STATUS_CODE_ERRO:
        status = "error"
    else:
        status = "rejected"

    return ResultadoDian(
        success=success,
        status=status,
        status_code=status_code,
        cufe=cufe,
        uuid=str(uuid) if uuid else None,
        is_valid=is_valid if isinstance(is_valid, bool) else None,
        message=str(message) if message else None,
        pdf_url=_primeiro(dados, "pdf_url", "pdfUrl"),
        xml_url=_primeiro(dados, "xml_url", "xmlUrl"),
        qr_code=_primeiro(dados, "qr_code", "qrCode", "QRCode"),
        fecha_timbrado=timezone.now() if success else None,
        raw=body,
    )


# ---------------------------------------------------------------------------
# Client HTTP
# ---------------------------------------------------------------------------


class DianClient:
    """
    Implementação real do contrato, ligada a um alias de banco (store do
    tenant) e a um timeout HTTP.
    """

    def __init__(self, *, using: str = "default", timeout: float = TIMEOUT_PADRAO_SEGUNDOS):
        self.using = using
        self.timeout = timeout

    # 1) Resolução vigente
    def obtener_resolucion_activa(self) -> ResolucionDian:
        hoy = timezone.localdate()
        resolucion = (
            ResolucionDian.objects.using(self.using)
            .filter(activa=True)
            .filter(Q(fecha_desde__isnull=True) | Q(fecha_desde__lte=hoy))
            .filter(Q(fecha_hasta__isnull=True) | Q(fecha_hasta__gte=hoy))
            .order_by("-id")
            .first()
        )
        if resolucion is None:
            raise SinResolucionActiva()
        return resolucion

    # 2) Parâmetros de envio
    def obtener_parametros(self) -> ParametrosDian:
        parametros = (
            ParametrosDian.objects.using(self.using)
            .filter(activo=True)
            .order_by("-id")
            .first()
        )
        if parametros is None:
            raise ConfiguracionFaltante()

        faltantes = [
            nome
            for nome in ("url_base", "test_set_id", "nit_empresa")
            if not str(getattr(parametros, nome) or "").strip()
        ]
        if faltantes:
            raise ConfiguracionFaltante(
                f"Faltan parámetros de facturación electrónica DIAN: {', '.join(faltantes)}."
            )
        return parametros

    # 3) Agregado da fatura
    def obtener_factura_completa(self, factura_id: int) -> FacturaCompleta:
        factura = (
            Factura.objects.using(self.using)
            .select_related("cliente")
            .filter(pk=factura_id)
            .first()
        )
        if factura is None:
            raise FacturaNoEncontrada()

        detalles = list(
            FacturaDetalle.objects.using(self.using).filter(factura_id=factura.pk).order_by("id")
        )
        return FacturaCompleta(factura=factura, detalles=detalles, cliente=factura.cliente)

    # 4) Payload UBL 2.1
    def transformar(
        self,
        completa: FacturaCompleta,
        resolucion: ResolucionDian,
        parametros: ParametrosDian,
        overrides: Mapping[str, Any] | None = None,
    ) -> Dict[str, Any]:
        overrides = dict(overrides or {})
        factura = completa.factura
        cliente = completa.cliente

        emision = timezone.localdate()
        vencimiento: date = factura.fecha_vencimiento or emision
        numero = calcular_numero_factura(resolucion)

        porcentaje_iva = normalizar_porcentaje(parametros.porcentaje_iva, "porcentaje_iva")
        base = normalizar_monto(factura.subtotal, "subtotal")
        impuesto = normalizar_monto(base * porcentaje_iva / 100, "valor_iva")
        total = normalizar_monto(base + impuesto, "total")
        descuento = normalizar_monto(factura.descuento, "descuento")

        if completa.detalles:
            lineas = [
                _linea(
                    codigo=str(detalle.codigo_producto or indice + 1),
                    descripcion=detalle.descripcion,
                    cantidad=Decimal(detalle.cantidad or 1),
                    base=normalizar_monto(detalle.subtotal, "detalle.subtotal"),
                    porcentaje_iva=porcentaje_iva,
                )
                for indice, detalle in enumerate(completa.detalles)
            ]
        else:
            lineas = [
                _linea(
                    codigo="1",
                    descripcion=DESCRIPCION_CONSOLIDADA,
                    cantidad=Decimal("1"),
                    base=base,
                    porcentaje_iva=porcentaje_iva,
                )
            ]

        forma_pago, medio_pago = determinar_forma_pago(factura)

        nombre = overrides.get("customer_name") or (cliente.nombre if cliente else "")
        telefono = overrides.get("customer_phone") or (
            (cliente.telefono or cliente.celular) if cliente else ""
        )
        email = overrides.get("customer_email") or (cliente.email if cliente else "")

        return {
            "number": numero,
            "type_document_id": TIPO_DOCUMENTO_FACTURA_VENTA,
            "date": emision.isoformat(),
            "identification_number": parametros.nit_empresa,
            "resolution_id": resolucion.id_api,
            "sync": True,
            "trackId": _track_id(overrides.get("trackId"), numero),
            "company": {
                "identification_number": parametros.nit_empresa,
                "dv": parametros.digito_verificacion,
                "name": parametros.razon_social,
                "type_organization_id": parametros.tipo_organizacion_id,
                "type_document_id": parametros.tipo_documento_id,
                "id_location": parametros.id_ubicacion,
                "address": parametros.direccion,
                "phone": parametros.telefono,
                "email": parametros.email,
            },
            "customer": {
                "identification_number": _documento_cliente(overrides, cliente),
                "name": (str(nombre).strip() or NOMBRE_CONSUMIDOR_FINAL).upper(),
                "type_organization_id": 2,
                "type_document_id": "13",
                "id_location": (cliente.codigo_dane if cliente else "") or UBICACION_PADRAO,
                "address": (cliente.direccion if cliente else "") or DIRECCION_PADRAO,
                "phone": normalizar_telefono(telefono),
                "email": email or EMAIL_PADRAO,
            },
            "tax_totals": [
                {
                    "tax_id": TAX_ID_IVA,
                    "tax_amount": _num(impuesto),
                    "taxable_amount": _num(base),
                    "percent": _num(porcentaje_iva),
                }
            ],
            "legal_monetary_totals": {
                "line_extension_amount": _num(base),
                "tax_exclusive_amount": _num(base),
                "tax_inclusive_amount": _num(total),
                "payable_amount": _num(total),
                "allowance_total_amount": _num(descuento),
                "charge_total_amount": 0,
            },
            "invoice_lines": lineas,
            "payment_forms": [
                {
                    "payment_form_id": forma_pago,
                    "payment_method_id": medio_pago,
                    "payment_due_date": vencimiento.isoformat(),
                    "duration_measure": factura.plazo_dias if forma_pago == FORMA_PAGO_CREDITO[0] else 0,
                }
            ],
        }

    # 5) Envio
    def enviar(self, payload: Dict[str, Any], test_set_id: str, url_base: str) -> ResultadoDian:
        url = f"{url_base.rstrip('/')}/api/ubl2.1/invoice/{test_set_id}"

        logger.info(
            "dian_envio_iniciado",
            extra={"event": "dian_enviar", "url": url, "numero": payload.get("number")},
        )

        try:
            resp = requests.post(
                url,
                json=payload,
                headers={"Content-Type": "application/json", "Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            raise DianTechnicalError(
                f"Tiempo de espera agotado al conectar con la DIAN ({self.timeout:g}s).",
                codigo="TIMEOUT",
            ) from exc
        except requests.ConnectionError as exc:
            raise DianTechnicalError(
                f"No fue posible conectar con la DIAN: {exc}",
                codigo="CONEXION",
            ) from exc
        except requests.RequestException as exc:
            raise DianTechnicalError(
                f"Error de comunicación con la DIAN: {exc}",
                codigo="HTTP",
            ) from exc

        if not resp.ok:
            raise DianTechnicalError(
                f"DIAN API error: {resp.status_code} - {resp.text[:500]}",
                codigo=f"HTTP_{resp.status_code}",
            )

        try:
            body = resp.json()
        except ValueError as exc:
            raise DianTechnicalError(
                "Respuesta de la DIAN no es JSON válido.",
                codigo="RESPUESTA_INVALIDA",
                raw={"text": resp.text[:2000]},
            ) from exc

        if not isinstance(body, dict):
            raise DianTechnicalError(
                "Respuesta de la DIAN con formato inesperado.",
                codigo="RESPUESTA_INVALIDA",
                raw={"body": body},
            )

        resultado = normalizar_respuesta(body)

        logger.info(
            "dian_envio_respondido",
            extra={
                "event": "dian_enviar",
                "outcome": resultado.status,
                "status_code": resultado.status_code,
                "cufe": resultado.cufe,
            },
        )
        return resultado
