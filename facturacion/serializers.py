# facturacion/serializers.py
from rest_framework import serializers


class TimbrarFacturaDataSerializer(serializers.Serializer):
    """
    Bloco ``data`` da resposta do timbrado.

    Espelha o DTO TimbrarFacturaResult de
    facturacion.services.timbrado_service.timbrar_factura.
    """

    id = serializers.CharField(source="factura_id")
    numeroFactura = serializers.CharField(source="numero_factura")
    estado = serializers.CharField()
    cufe = serializers.CharField(allow_null=True)
    fechaTimbrado = serializers.DateTimeField(source="fecha_timbrado", allow_null=True)
    motivoRechazo = serializers.CharField(source="motivo_rechazo", allow_null=True)


class TimbrarFacturaOutputSerializer(serializers.Serializer):
    success = serializers.BooleanField(source="aceptada")
    status = serializers.SerializerMethodField()
    data = serializers.SerializerMethodField()
    message = serializers.CharField(source="mensaje")

    def get_status(self, obj) -> str:
        return "ACEPTADA" if obj.aceptada else "RECHAZADA"

    def get_data(self, obj) -> dict:
        return TimbrarFacturaDataSerializer(obj).data


class PruebaDianInputSerializer(serializers.Serializer):
    """
    Envio manual de um payload UBL já montado, usando os parâmetros DIAN
    ativos do tenant.
    """

    payload = serializers.DictField()


class ResultadoDianSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    status = serializers.CharField()
    statusCode = serializers.CharField(source="status_code", allow_null=True)
    cufe = serializers.CharField(allow_null=True)
    uuid = serializers.CharField(allow_null=True)
    isValid = serializers.BooleanField(source="is_valid", allow_null=True)
    message = serializers.CharField(allow_null=True)
    pdf_url = serializers.CharField(allow_null=True)
    xml_url = serializers.CharField(allow_null=True)
    qr_code = serializers.CharField(allow_null=True)
    fechaTimbrado = serializers.DateTimeField(source="fecha_timbrado", allow_null=True)
