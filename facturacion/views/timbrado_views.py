# facturacion/views/timbrado_views.py

import logging
from collections.abc import Mapping

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from facturacion.dian_client import DianError
from facturacion.dian_factory import get_dian_client
from facturacion.serializers import (
    PruebaDianInputSerializer,
    ResultadoDianSerializer,
    TimbrarFacturaOutputSerializer,
)
from facturacion.services.exceptions import ErrorInterno, TimbradoError
from facturacion.services.factura_store import FacturaStore
from facturacion.services.timbrado_service import timbrar_factura

logger = logging.getLogger("backoffice.facturacion")

ERR_DIAN_TEST_FAILED = "DIAN_TEST_FAILED"


def _tenant_id_from_request(request):
    """
    Extrai o identificador do tenant do request.
    """
    return getattr(getattr(request, "tenant", None), "schema_name", None)


def _db_alias_from_request(request) -> str:
    """
    Alias do store de faturas do tenant: ``tenant.db_alias`` quando definido,
    senão "default". Alias ausente de settings.DATABASES é erro de configuração.
    """
    alias = getattr(getattr(request, "tenant", None), "db_alias", None) or "default"
    if alias not in settings.DATABASES:
        raise ImproperlyConfigured(f"Alias de base de datos '{alias}' no configurado para el tenant.")
    return alias


def _overrides_from_request(request) -> dict:
    """
    Aceita o corpo direto ({"customer_name": ...}) ou embrulhado em
    {"invoiceData": {...}}. Qualquer outra coisa vira overrides vazio.
    """
    data = request.data
    if not isinstance(data, Mapping):
        return {}
    datos = data.get("invoiceData", data)
    if hasattr(datos, "dict"):
        datos = datos.dict()
    return dict(datos) if isinstance(datos, Mapping) else {}


def _error_response(exc: TimbradoError) -> Response:
    return Response(
        {"success": False, "code": exc.codigo, "message": exc.mensagem},
        status=exc.status_code,
    )


@extend_schema(request=None, responses=TimbrarFacturaOutputSerializer)
@api_view(["POST"])
@permission_classes([IsAuthenticated])
def timbrar_factura_view(request, factura_id):
    """
    Endpoint HTTP de timbrado de fatura na DIAN.

        POST /api/v1/facturacion/facturas/<id>/timbrar

    Rejeição da DIAN (ou DIAN inacessível) responde 200 com success=false;
    só erros de entrada, fatura inexistente e falhas de sistema mudam o
    status HTTP.
    """
    tenant_id = _tenant_id_from_request(request)

    try:
        store = FacturaStore(using=_db_alias_from_request(request))
        result = timbrar_factura(
            factura_id=factura_id,
            overrides=_overrides_from_request(request),
            store=store,
            dian_client=get_dian_client(using=store.using),
            tenant_id=tenant_id,
        )
    except TimbradoError as exc:
        return _error_response(exc)
    except ImproperlyConfigured as exc:
        logger.error(
            "timbrar_factura_configuracion_invalida",
            extra={"event": "factura_timbrar", "tenant_id": tenant_id, "error": str(exc)},
        )
        return _error_response(ErrorInterno(str(exc)))

    return Response(TimbrarFacturaOutputSerializer(result).data, status=status.HTTP_200_OK)


@extend_schema(request=PruebaDianInputSerializer, responses=ResultadoDianSerializer)
@api_view(["POST"])
@permission_classes([IsAuthenticated])
def prueba_dian_view(request):
    """
    Envio manual de um payload UBL à DIAN (diagnóstico do ambiente de
    habilitação). Não toca em nenhuma fatura.

        POST /api/v1/facturacion/dian/prueba
    """
    serializer = PruebaDianInputSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    tenant_id = _tenant_id_from_request(request)

    try:
        client = get_dian_client(using=_db_alias_from_request(request))
        parametros = client.obtener_parametros()
        resultado = client.enviar(
            serializer.validated_data["payload"],
            parametros.test_set_id,
            parametros.url_base,
        )
    except (DianError, ImproperlyConfigured) as exc:
        logger.warning(
            "prueba_dian_fallida",
            extra={"event": "dian_prueba", "tenant_id": tenant_id, "error": str(exc)},
        )
        return Response(
            {"success": False, "code": ERR_DIAN_TEST_FAILED, "message": str(exc)},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    logger.info(
        "prueba_dian_enviada",
        extra={
            "event": "dian_prueba",
            "tenant_id": tenant_id,
            "outcome": resultado.status,
            "status_code": resultado.status_code,
        },
    )
    return Response(
        {
            "success": True,
            "message": "Prueba manual enviada a la DIAN",
            "dianResult": ResultadoDianSerializer(resultado).data,
        },
        status=status.HTTP_200_OK,
    )
