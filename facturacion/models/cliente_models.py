from django.db import models


class Cliente(models.Model):
    """
    Comprador referenciado pela fatura.

    Só os campos que o envio à DIAN precisa; o cadastro completo de terceiros
    é mantido por outro fluxo.
    """

    # NIT/CC do terceiro
    codigo = models.CharField(max_length=15, unique=True)
    nombre = models.CharField(max_length=150)
    telefono = models.CharField(max_length=20, blank=True, default="")
    celular = models.CharField(max_length=20, blank=True, default="")
    email = models.EmailField(max_length=100, blank=True, default="")
    direccion = models.CharField(max_length=180, blank=True, default="")
    # código DANE do município (5 dígitos)
    codigo_dane = models.CharField(max_length=5, blank=True, default="")

    class Meta:
        db_table = "cliente"

    def __str__(self):
        return f"{self.codigo} - {self.nombre}"
