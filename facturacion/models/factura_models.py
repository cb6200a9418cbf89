from django.db import models
from django.utils import timezone

from commons.estados import EstadoDocumento, TipoDocumento, estados_de

ESTADOS_FACTURA = sorted(estados_de(TipoDocumento.FACTURA), key=lambda e: e.value)


class Factura(models.Model):
    """
    Fatura de venda.

    Criada em BORRADOR pelo fluxo de pedidos/remissões. A partir do momento em
    que o timbrado começa, só o orquestrador de timbrado escreve o desfecho:

      - estado APROBADA  ⇔ cufe preenchido
      - estado RECHAZADA ⇔ motivo_rechazo preenchido
    """

    numero_factura = models.CharField(max_length=15)
    fecha_factura = models.DateField(default=timezone.localdate)
    fecha_vencimiento = models.DateField(null=True, blank=True)

    estado = models.CharField(
        max_length=1,
        choices=[(e.value, e.label) for e in ESTADOS_FACTURA],
        default=EstadoDocumento.BORRADOR,
    )

    cliente = models.ForeignKey(
        "facturacion.Cliente",
        on_delete=models.PROTECT,
        related_name="facturas",
        null=True,
        blank=True,
    )

    # Totais DECIMAL(18,2)
    subtotal = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    valor_iva = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    descuento = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    total = models.DecimalField(max_digits=18, decimal_places=2, default=0)

    # Formas de pagamento (define payment_form enviado à DIAN)
    efectivo = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    tarjeta_credito = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    transferencia = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    credito = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    plazo_dias = models.PositiveIntegerField(default=0)

    observaciones = models.TextField(blank=True, default="")

    # Resultado do timbrado
    cufe = models.CharField(max_length=128, null=True, blank=True)
    fecha_timbrado = models.DateTimeField(null=True, blank=True)
    motivo_rechazo = models.TextField(null=True, blank=True)

    fecha_creacion = models.DateTimeField(default=timezone.now)
    fecha_modificacion = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "factura"
        indexes = [
            models.Index(fields=["numero_factura"]),
            models.Index(fields=["estado"]),
        ]

    def __str__(self):
        return f"Factura {self.numero_factura} ({self.estado})"


class FacturaDetalle(models.Model):
    factura = models.ForeignKey(
        "facturacion.Factura",
        on_delete=models.CASCADE,
        related_name="detalles",
    )
    codigo_producto = models.CharField(max_length=30, blank=True, default="")
    descripcion = models.CharField(max_length=255, blank=True, default="")
    cantidad = models.DecimalField(max_digits=18, decimal_places=2, default=1)
    # valor sem IVA da linha
    subtotal = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    valor_iva = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    total = models.DecimalField(max_digits=18, decimal_places=2, default=0)

    class Meta:
        db_table = "factura_detalle"
        ordering = ["id"]

    def __str__(self):
        return f"{self.codigo_producto} x {self.cantidad}"


class IntentoTimbrado(models.Model):
    """
    Trilha de auditoria: um registro por tentativa de timbrado que chegou a
    um desfecho (aceita ou rejeitada). O payload enviado não é guardado, só
    o hash SHA256 dele.
    """

    factura = models.ForeignKey(
        "facturacion.Factura",
        on_delete=models.CASCADE,
        related_name="intentos_timbrado",
    )
    estado_resultado = models.CharField(max_length=1)
    cufe = models.CharField(max_length=128, null=True, blank=True)
    status_code = models.CharField(max_length=64, null=True, blank=True)
    mensaje = models.TextField(null=True, blank=True)
    hash_payload = models.CharField(max_length=64, null=True, blank=True)
    respuesta_raw = models.JSONField(null=True, blank=True)
    tenant_id = models.CharField(max_length=64, null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "factura_intento_timbrado"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["factura", "created_at"]),
        ]

    def __str__(self):
        return f"Intento {self.factura_id} → {self.estado_resultado}"
