# facturacion/services/exceptions.py
"""
Erros do timbrado que chegam à camada HTTP.

São APIException do DRF: cada um carrega o status HTTP e um código estável,
renderizados pela view como {"success": false, "code": ..., "message": ...}.

Falhas da DIAN (rejeição, timeout, resolução ausente...) NÃO aparecem aqui:
viram desfecho RECHAZADA persistido, nunca erro de sistema.
"""

from rest_framework import status
from rest_framework.exceptions import APIException

ERR_INVALID_ID = "INVALID_ID"
ERR_FACTURA_NOT_FOUND = "FACTURA_NOT_FOUND"
ERR_UPDATE_FAILED = "UPDATE_FAILED"
ERR_INTERNAL = "INTERNAL_ERROR"


class TimbradoError(APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = ERR_INTERNAL
    default_detail = "Error interno al timbrar la factura."

    def __init__(self, mensagem: str | None = None):
        self.mensagem = mensagem or str(self.default_detail)
        super().__init__(detail=self.mensagem, code=self.default_code)

    @property
    def codigo(self) -> str:
        return self.default_code


class IdentificadorInvalido(TimbradoError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = ERR_INVALID_ID
    default_detail = "ID inválido"


class FacturaNoEncontrada(TimbradoError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = ERR_FACTURA_NOT_FOUND
    default_detail = "Factura no encontrada"


class ErrorPersistencia(TimbradoError):
    """Falha de banco ao gravar o desfecho; a fatura fica no estado anterior."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = ERR_UPDATE_FAILED
    default_detail = "No se pudo registrar el resultado del timbrado. Intente nuevamente."


class ErrorInterno(TimbradoError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = ERR_INTERNAL
