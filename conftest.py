# conftest.py (na raiz do projeto)

import logging
from datetime import timedelta
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient

from commons.estados import EstadoDocumento
from facturacion.models import (
    Cliente,
    Factura,
    FacturaDetalle,
    ParametrosDian,
    ResolucionDian,
)


logger = logging.getLogger(__name__)


# =============================================================================
# AUTENTICAÇÃO
# =============================================================================

@pytest.fixture
def user(db):
    User = get_user_model()
    return User.objects.create_user(username="facturador", password="senha-segura")


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def auth_client(api_client, user):
    api_client.force_authenticate(user=user)
    return api_client


# =============================================================================
# CONFIGURAÇÃO DIAN DO TENANT
# =============================================================================

@pytest.fixture
def resolucion(db):
    hoy = timezone.localdate()
    return ResolucionDian.objects.create(
        numero_resolucion="18760000001",
        prefijo="SETP",
        rango_inicial=990000000,
        rango_final=995000000,
        consecutivo=990000010,
        id_api=101,
        fecha_desde=hoy - timedelta(days=30),
        fecha_hasta=hoy + timedelta(days=335),
        activa=True,
    )


@pytest.fixture
def parametros(db):
    return ParametrosDian.objects.create(
        url_base="https://dian.test.local",
        test_set_id="set-123",
        es_prueba=True,
        nit_empresa="901994818",
        digito_verificacion="5",
        razon_social="ORQUIDEA IA SOLUTIONS S.A.S",
        tipo_organizacion_id=1,
        tipo_documento_id="31",
        id_ubicacion="11001",
        direccion="CALLE 100 # 10-20",
        telefono="6015550000",
        email="facturacion@orquidea.test",
        porcentaje_iva=Decimal("19.00"),
        activo=True,
    )


# =============================================================================
# FATURA
# =============================================================================

@pytest.fixture
def cliente(db):
    return Cliente.objects.create(
        codigo="1020304050",
        nombre="Maria Fernanda Rojas",
        telefono="(601) 555-12-34",
        email="maria@cliente.test",
        direccion="CARRERA 7 # 45-10",
        codigo_dane="05001",
    )


@pytest.fixture
def factura_factory(db):
    def _make(**kwargs):
        detalles = kwargs.pop("detalles", [])
        defaults = {
            "numero_factura": "FV-501",
            "estado": EstadoDocumento.BORRADOR,
            "subtotal": Decimal("100000.00"),
            "valor_iva": Decimal("19000.00"),
            "descuento": Decimal("0.00"),
            "total": Decimal("119000.00"),
            "efectivo": Decimal("119000.00"),
        }
        defaults.update(kwargs)
        factura = Factura.objects.create(**defaults)
        for detalle in detalles:
            FacturaDetalle.objects.create(factura=factura, **detalle)
        return factura

    return _make


@pytest.fixture
def factura(factura_factory, cliente):
    return factura_factory(pk=501, cliente=cliente)
