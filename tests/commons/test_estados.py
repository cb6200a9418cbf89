import pytest
from django.db import models

from commons.estados import (
    CODIGOS_LEGADOS,
    ESTADOS_POR_DOCUMENTO,
    EstadoDocumento,
    TipoDocumento,
    a_codigo,
    desde_codigo,
    estado_permitido,
    estados_de,
)


def test_cada_estado_tem_codigo_unico_de_um_caractere():
    codigos = EstadoDocumento.values
    assert len(codigos) == len(set(codigos))
    assert all(len(c) == 1 for c in codigos)


def test_colisao_de_codigo_quebra_na_construcao_da_classe():
    with pytest.raises(ValueError):
        class EstadoComColisao(models.TextChoices):
            APROBADA = "A", "Aprobada"
            ACEPTADA = "A", "Aceptada"


def test_aprobada_e_aceptada_nao_colidem():
    assert a_codigo("APROBADA") == "A"
    assert a_codigo("ACEPTADA") != a_codigo("APROBADA")
    assert a_codigo("CANCELADO") != a_codigo("ANULADA")


@pytest.mark.parametrize("tipo", list(TipoDocumento))
def test_bijecao_por_tipo_de_documento(tipo):
    for estado in estados_de(tipo):
        codigo = a_codigo(estado.name)
        assert desde_codigo(codigo) == estado.name

    codigos = {estado.value for estado in ESTADOS_POR_DOCUMENTO[tipo]}
    assert len(codigos) == len(ESTADOS_POR_DOCUMENTO[tipo])


def test_a_codigo_aceita_variacoes_de_escrita():
    assert a_codigo("en proceso") == "P"
    assert a_codigo("Parcialmente-Remitido") == "L"
    assert a_codigo("  rechazada ") == "R"


def test_a_codigo_vazio_vira_borrador():
    assert a_codigo("") == "B"
    assert a_codigo(None) == "B"


def test_a_codigo_desconhecido_cai_no_primeiro_caractere():
    assert a_codigo("zumbi") == "Z"
    assert a_codigo("-foo") == "-"
    assert a_codigo("  x-ray") == "X"


def test_desde_codigo_desconhecido_volta_literal():
    assert desde_codigo("Q") == "Q"
    assert desde_codigo("??") == "??"
    assert desde_codigo(None) is None


def test_desde_codigo_le_codigos_legados():
    assert desde_codigo("PR") == "PARCIALMENTE_REMITIDO"
    assert desde_codigo("AC") == "ACEPTADA"
    assert desde_codigo("AN") == "ANULADA"
    assert set(CODIGOS_LEGADOS) == {"PR", "AC", "AN"}


def test_estados_da_fatura():
    assert estado_permitido(TipoDocumento.FACTURA, "APROBADA")
    assert estado_permitido(TipoDocumento.FACTURA, "rechazada")
    assert not estado_permitido(TipoDocumento.FACTURA, "EN_TRANSITO")
    assert not estado_permitido(TipoDocumento.FACTURA, "inexistente")
    assert estado_permitido(TipoDocumento.COTIZACION, "ACEPTADA")
