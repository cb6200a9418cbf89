"""
Normalização de valores monetários e percentuais.

Todo valor que chega de formulários, importações ou do banco legado passa por
aqui antes de ser usado em cálculos fiscais. O resultado é sempre um
``Decimal`` com duas casas decimais.

Regras de separador (texto):

- Se vírgula e ponto aparecem juntos, o que vier por último é o decimal:
  ``"1.234,56"`` e ``"1,234.56"`` viram ``1234.56``.
- Se só há vírgula, ela é decimal quando há uma única vírgula seguida de
  no máximo dois dígitos (``"105,5"`` → ``105.50``); caso contrário é
  separador de milhar (``"1,000"`` → ``1000.00``).
"""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext

DUAS_CASAS = Decimal("0.01")
CEM = Decimal("100")

# DECIMAL(18,2) e DECIMAL(5,2)
LIMITE_MONTO = Decimal("9999999999999999.99")
LIMITE_PORCENTAJE = Decimal("999.99")

_LIMPEZA_RE = re.compile(r"[$%\s]")


class MontoInvalidoError(ValueError):
    """Base para falhas de normalização; a mensagem começa pelo nome do campo."""

    def __init__(self, campo: str, detalhe: str):
        super().__init__(f"{campo}: {detalhe}")
        self.campo = campo
        self.detalhe = detalhe


class NumeroInvalidoError(MontoInvalidoError):
    pass


class FueraDeRangoError(MontoInvalidoError):
    pass


class RangoLogicoError(MontoInvalidoError):
    pass


def _limpar_texto(texto: str) -> str:
    limpo = _LIMPEZA_RE.sub("", texto)

    if "," in limpo and "." in limpo:
        if limpo.rfind(",") > limpo.rfind("."):
            return limpo.replace(".", "").replace(",", ".")
        return limpo.replace(",", "")

    if "," in limpo:
        partes = limpo.split(",")
        if len(partes) == 2 and len(partes[1]) <= 2:
            return limpo.replace(",", ".")
        return limpo.replace(",", "")

    return limpo


def _para_decimal(valor, campo: str) -> Decimal | None:
    """
    Converte a entrada bruta em Decimal, sem arredondar.

    Retorna None para entradas vazias (tratadas como zero pelo chamador).
    """
    if valor is None:
        return None

    # bool é subclasse de int; não é um valor monetário
    if isinstance(valor, bool):
        raise NumeroInvalidoError(campo, "Tipo de dato inválido. Se esperaba número o texto.")

    if isinstance(valor, Decimal):
        numero = valor
    elif isinstance(valor, int):
        numero = Decimal(valor)
    elif isinstance(valor, float):
        numero = Decimal(repr(valor))
    elif isinstance(valor, str):
        if not valor.strip():
            return None
        texto = _limpar_texto(valor.strip())
        try:
            numero = Decimal(texto)
        except InvalidOperation:
            raise NumeroInvalidoError(campo, "Valor no es un número válido.") from None
    else:
        raise NumeroInvalidoError(campo, "Tipo de dato inválido. Se esperaba número o texto.")

    if not numero.is_finite():
        raise NumeroInvalidoError(campo, "Valor no es un número válido.")
    return numero


def _arredondar(numero: Decimal) -> Decimal:
    # inteiro escalado: x100, arredonda meio-para-longe-do-zero, /100.
    # precisão do contexto cobre todos os dígitos da entrada: um único arredondamento
    with localcontext() as ctx:
        ctx.prec = max(28, len(numero.as_tuple().digits) + 6)
        escalado = (numero * CEM).to_integral_value(rounding=ROUND_HALF_UP)
        return (escalado / CEM).quantize(DUAS_CASAS)


def normalizar_monto(valor, campo: str = "campo") -> Decimal:
    """
    Normaliza um valor monetário para DECIMAL(18,2).

    Levanta NumeroInvalidoError quando a entrada não é um número finito e
    FueraDeRangoError quando o módulo excede 9999999999999999.99 (checado
    antes do arredondamento).
    """
    numero = _para_decimal(valor, campo)
    if numero is None:
        return Decimal("0.00")

    if abs(numero) > LIMITE_MONTO:
        raise FueraDeRangoError(campo, "Valor fuera de rango.")

    return _arredondar(numero)


def normalizar_porcentaje(valor, campo: str = "campo", validar_rango: bool = True) -> Decimal:
    """
    Normaliza um percentual para DECIMAL(5,2).

    Com ``validar_rango`` ligado, valores fora de [0, 100] levantam
    RangoLogicoError.
    """
    numero = _para_decimal(valor, campo)
    if numero is None:
        return Decimal("0.00")

    if abs(numero) > LIMITE_PORCENTAJE:
        raise FueraDeRangoError(campo, "Valor fuera de rango (máx. 999.99).")

    if validar_rango and (numero < 0 or numero > CEM):
        raise RangoLogicoError(campo, "El porcentaje debe estar entre 0 y 100.")

    return _arredondar(numero)
