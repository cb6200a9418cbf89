from decimal import Decimal

import pytest

from commons.montos import (
    FueraDeRangoError,
    MontoInvalidoError,
    NumeroInvalidoError,
    RangoLogicoError,
    normalizar_monto,
    normalizar_porcentaje,
)


@pytest.mark.parametrize(
    "entrada, esperado",
    [
        ("1.234,56", Decimal("1234.56")),
        ("1,234.56", Decimal("1234.56")),
        ("105,5", Decimal("105.50")),
        ("105,55", Decimal("105.55")),
        ("1,000", Decimal("1000.00")),
        ("1,234,567", Decimal("1234567.00")),
        ("$ 2.500.000,00", Decimal("2500000.00")),
        ("  42  ", Decimal("42.00")),
        (10, Decimal("10.00")),
        (0.1, Decimal("0.10")),
        (Decimal("3.14159"), Decimal("3.14")),
    ],
)
def test_normalizar_monto_formatos(entrada, esperado):
    assert normalizar_monto(entrada, "valor") == esperado


@pytest.mark.parametrize("entrada", [None, "", "   "])
def test_normalizar_monto_vazio_vira_zero(entrada):
    assert normalizar_monto(entrada, "valor") == Decimal("0.00")


def test_normalizar_monto_arredonda_meio_para_longe_do_zero():
    assert normalizar_monto("2.345") == Decimal("2.35")
    assert normalizar_monto("-2.345") == Decimal("-2.35")
    assert normalizar_monto(1.005) == Decimal("1.01")
    assert normalizar_monto("2.344") == Decimal("2.34")


def test_normalizar_monto_e_idempotente():
    for entrada in ("1.234,56", "105,5", "0.005", "-99.995", 12345.678):
        uma_vez = normalizar_monto(entrada)
        assert normalizar_monto(uma_vez) == uma_vez


def test_normalizar_monto_resultado_tem_duas_casas():
    assert normalizar_monto("7").as_tuple().exponent == -2


@pytest.mark.parametrize("entrada", ["abc", "12abc", "1.2.3,4,5", "NaN", "Infinity", float("nan"), float("inf")])
def test_normalizar_monto_numero_invalido(entrada):
    with pytest.raises(NumeroInvalidoError) as exc:
        normalizar_monto(entrada, "subtotal")
    assert str(exc.value).startswith("subtotal:")


@pytest.mark.parametrize("entrada", [True, [1], {"v": 1}])
def test_normalizar_monto_tipo_invalido(entrada):
    with pytest.raises(NumeroInvalidoError):
        normalizar_monto(entrada, "subtotal")


def test_normalizar_monto_fora_de_faixa_checado_antes_de_arredondar():
    assert normalizar_monto("9999999999999999.99") == Decimal("9999999999999999.99")
    with pytest.raises(FueraDeRangoError):
        # arredondaria para baixo, mas já excede a capacidade
        normalizar_monto("9999999999999999.991")
    with pytest.raises(FueraDeRangoError):
        normalizar_monto(-10**17)


def test_erros_sao_value_error():
    with pytest.raises(ValueError):
        normalizar_monto("xyz")
    assert issubclass(RangoLogicoError, MontoInvalidoError)


def test_normalizar_porcentaje_rango_logico():
    with pytest.raises(RangoLogicoError):
        normalizar_porcentaje("150", "descuento", validar_rango=True)
    assert normalizar_porcentaje("150", "descuento", validar_rango=False) == Decimal("150.00")


def test_normalizar_porcentaje_negativo_com_validacao():
    with pytest.raises(RangoLogicoError):
        normalizar_porcentaje("-1", "descuento")


def test_normalizar_porcentaje_capacidade():
    assert normalizar_porcentaje("999.99", validar_rango=False) == Decimal("999.99")
    with pytest.raises(FueraDeRangoError):
        normalizar_porcentaje("1000", validar_rango=False)


def test_normalizar_porcentaje_aceita_sinal_de_porcento_e_virgula():
    assert normalizar_porcentaje("19,5 %", "iva") == Decimal("19.50")
    assert normalizar_porcentaje(None, "iva") == Decimal("0.00")


def test_fracao_longa_arredonda_uma_unica_vez():
    assert normalizar_monto("0.0049999999999999999999999999999") == Decimal("0.00")
    assert normalizar_monto("1234567890123456.004999999999999999999") == Decimal("1234567890123456.00")
    assert normalizar_porcentaje("19.994999999999999999999999999999", "iva") == Decimal("19.99")
