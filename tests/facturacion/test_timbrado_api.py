from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
import requests
from django.core.exceptions import ImproperlyConfigured
from rest_framework_simplejwt.tokens import RefreshToken

from commons.estados import EstadoDocumento
from facturacion.models import Factura, IntentoTimbrado
from facturacion.views.timbrado_views import _db_alias_from_request

URL = "/api/v1/facturacion/facturas/{}/timbrar"


def _resposta_json(data, status_code=200):
    resp = MagicMock()
    resp.status_code = status_code
    resp.ok = 200 <= status_code < 300
    resp.json.return_value = data
    resp.text = str(data)
    return resp


@pytest.mark.django_db
@patch("facturacion.dian_client.requests.post")
def test_timbrar_aceita_resposta_completa(mock_post, auth_client, factura, resolucion, parametros):
    mock_post.return_value = _resposta_json({"success": True, "cufe": "CUFE-ABC123"})

    resp = auth_client.post(URL.format(501), {}, format="json")

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["status"] == "ACEPTADA"
    assert body["message"] == "Factura timbrada exitosamente"
    assert body["data"]["id"] == "501"
    assert body["data"]["numeroFactura"] == "FV-501"
    assert body["data"]["cufe"] == "CUFE-ABC123"
    assert body["data"]["estado"] == "APROBADA"
    assert body["data"]["fechaTimbrado"] is not None
    assert body["data"]["motivoRechazo"] is None

    factura.refresh_from_db()
    assert factura.estado == EstadoDocumento.APROBADA
    assert factura.cufe == "CUFE-ABC123"

    enviado = mock_post.call_args.kwargs["json"]
    assert enviado["number"] == resolucion.consecutivo + 1
    assert mock_post.call_args.args[0] == "https://dian.test.local/api/ubl2.1/invoice/set-123"


@pytest.mark.django_db
@patch("facturacion.dian_client.requests.post")
def test_timbrar_timeout_responde_200_com_rejeicao(mock_post, auth_client, factura, resolucion, parametros):
    mock_post.side_effect = requests.Timeout("read timed out")

    resp = auth_client.post(URL.format(501), {}, format="json")

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is False
    assert body["status"] == "RECHAZADA"
    assert body["data"]["estado"] == "RECHAZADA"
    assert body["data"]["cufe"] is None

    factura.refresh_from_db()
    assert factura.estado == EstadoDocumento.RECHAZADA
    assert factura.motivo_rechazo == "Tiempo de espera agotado al conectar con la DIAN (30s)."
    assert body["data"]["motivoRechazo"] == factura.motivo_rechazo
    assert body["message"] == factura.motivo_rechazo


@pytest.mark.django_db
@patch("facturacion.dian_client.requests.post")
def test_timbrar_sem_configuracao_vira_rejeicao(mock_post, auth_client, factura):
    resp = auth_client.post(URL.format(501), {}, format="json")

    assert resp.status_code == 200
    assert resp.json()["success"] is False
    assert "resolución" in resp.json()["data"]["motivoRechazo"]
    mock_post.assert_not_called()


@pytest.mark.django_db
@patch("facturacion.dian_client.requests.post")
def test_timbrar_aceita_overrides_em_invoice_data(mock_post, auth_client, factura, resolucion, parametros):
    mock_post.return_value = _resposta_json({"statusCode": "00", "cufe": "C-1"})

    auth_client.post(
        URL.format(501),
        {"invoiceData": {"customer_name": "cliente corregido", "trackId": "trk-1"}},
        format="json",
    )

    enviado = mock_post.call_args.kwargs["json"]
    assert enviado["customer"]["name"] == "CLIENTE CORREGIDO"
    assert enviado["trackId"] == "trk-1"


@pytest.mark.django_db
def test_id_invalido_400(auth_client):
    resp = auth_client.post(URL.format("abc"), {}, format="json")

    assert resp.status_code == 400
    assert resp.json() == {"success": False, "code": "INVALID_ID", "message": "ID inválido"}


@pytest.mark.django_db
def test_factura_inexistente_404(auth_client):
    resp = auth_client.post(URL.format(9999), {}, format="json")

    assert resp.status_code == 404
    assert resp.json()["code"] == "FACTURA_NOT_FOUND"
    assert Factura.objects.count() == 0
    assert IntentoTimbrado.objects.count() == 0


@pytest.mark.django_db
@patch("facturacion.services.factura_store.FacturaStore.actualizar_resultado")
@patch("facturacion.dian_client.requests.post")
def test_falha_de_persistencia_500(mock_post, mock_update, auth_client, factura, resolucion, parametros):
    from django.db import DatabaseError

    mock_post.return_value = _resposta_json({"statusCode": "00", "cufe": "C-1"})
    mock_update.side_effect = DatabaseError("connection lost")

    resp = auth_client.post(URL.format(501), {}, format="json")

    assert resp.status_code == 500
    assert resp.json()["code"] == "UPDATE_FAILED"
    factura.refresh_from_db()
    assert factura.estado == EstadoDocumento.BORRADOR


@pytest.mark.django_db
def test_sem_autenticacao_401(api_client, factura):
    resp = api_client.post(URL.format(501), {}, format="json")

    assert resp.status_code == 401
    factura.refresh_from_db()
    assert factura.estado == EstadoDocumento.BORRADOR


@pytest.mark.django_db
@patch("facturacion.dian_client.requests.post")
def test_jwt_bearer_autentica(mock_post, api_client, user, factura, resolucion, parametros):
    mock_post.return_value = _resposta_json({"statusCode": "00", "cufe": "C-JWT"})
    token = str(RefreshToken.for_user(user).access_token)

    resp = api_client.post(URL.format(501), {}, format="json", HTTP_AUTHORIZATION=f"Bearer {token}")

    assert resp.status_code == 200
    assert resp.json()["data"]["cufe"] == "C-JWT"


def test_alias_do_tenant():
    assert _db_alias_from_request(SimpleNamespace()) == "default"
    assert _db_alias_from_request(SimpleNamespace(tenant=SimpleNamespace(db_alias=None))) == "default"

    with pytest.raises(ImproperlyConfigured):
        _db_alias_from_request(SimpleNamespace(tenant=SimpleNamespace(db_alias="premium_x")))


# ---------------------------------------------------------------------------
# Envio manual
# ---------------------------------------------------------------------------


@pytest.mark.django_db
@patch("facturacion.dian_client.requests.post")
def test_prueba_dian_envia_payload_bruto(mock_post, auth_client, parametros):
    mock_post.return_value = _resposta_json({"statusCode": "00", "cufe": "C-PRUEBA", "message": "ok"})

    resp = auth_client.post("/api/v1/facturacion/dian/prueba", {"payload": {"number": 1}}, format="json")

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["dianResult"]["cufe"] == "C-PRUEBA"
    assert body["dianResult"]["statusCode"] == "00"
    assert mock_post.call_args.kwargs["json"] == {"number": 1}


@pytest.mark.django_db
def test_prueba_dian_sem_parametros_500(auth_client):
    resp = auth_client.post("/api/v1/facturacion/dian/prueba", {"payload": {"number": 1}}, format="json")

    assert resp.status_code == 500
    assert resp.json()["code"] == "DIAN_TEST_FAILED"


@pytest.mark.django_db
def test_prueba_dian_payload_obrigatorio(auth_client):
    resp = auth_client.post("/api/v1/facturacion/dian/prueba", {}, format="json")

    assert resp.status_code == 400


@pytest.mark.django_db
def test_schema_openapi_publica_endpoint_de_timbrado(auth_client):
    resp = auth_client.get("/api/v1/schema/?format=json")

    assert resp.status_code == 200
    assert "/api/v1/facturacion/facturas/{factura_id}/timbrar" in resp.content.decode()
