from decimal import Decimal

from django.db import models


class ResolucionDian(models.Model):
    """
    Resolução de numeração autorizada pela DIAN.

    Somente leitura para o timbrado: a resolução vigente é a mais recente com
    ``activa=True`` cuja janela de validade contém a data de hoje.
    """

    numero_resolucion = models.CharField(max_length=30)
    prefijo = models.CharField(max_length=10, blank=True, default="")
    rango_inicial = models.PositiveIntegerField()
    rango_final = models.PositiveIntegerField()
    # último número usado dentro da faixa
    consecutivo = models.PositiveIntegerField(default=0)
    # chave técnica da resolução no provedor (resolution_id do payload)
    id_api = models.PositiveIntegerField()
    clave_tecnica = models.CharField(max_length=128, blank=True, default="")
    fecha_desde = models.DateField(null=True, blank=True)
    fecha_hasta = models.DateField(null=True, blank=True)
    activa = models.BooleanField(default=True)

    class Meta:
        db_table = "dian_resolucion"

    def __str__(self):
        return f"Resolución {self.numero_resolucion} ({self.rango_inicial}-{self.rango_final})"


class ParametrosDian(models.Model):
    """
    Parâmetros de envio à DIAN por tenant (uma linha ativa).
    """

    url_base = models.URLField(max_length=255)
    test_set_id = models.CharField(max_length=64)
    es_prueba = models.BooleanField(default=True)

    # Dados do emissor
    nit_empresa = models.CharField(max_length=15)
    digito_verificacion = models.CharField(max_length=1, blank=True, default="")
    razon_social = models.CharField(max_length=150)
    tipo_organizacion_id = models.PositiveSmallIntegerField(default=1)
    tipo_documento_id = models.CharField(max_length=3, default="31")
    id_ubicacion = models.CharField(max_length=5, default="11001")
    direccion = models.CharField(max_length=180, blank=True, default="")
    telefono = models.CharField(max_length=20, blank=True, default="")
    email = models.EmailField(max_length=100, blank=True, default="")

    porcentaje_iva = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("19.00"))

    activo = models.BooleanField(default=True)

    class Meta:
        db_table = "dian_parametros"

    def __str__(self):
        return f"Parámetros DIAN {self.nit_empresa} ({'prueba' if self.es_prueba else 'producción'})"
