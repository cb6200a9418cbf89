from django.db import models
from django_tenants.models import TenantMixin, DomainMixin


class Tenant(TenantMixin):
    nit = models.CharField(max_length=15, unique=True)
    nombre = models.CharField(max_length=150)
    # alias em settings.DATABASES com o store de faturas do tenant (vazio = default)
    db_alias = models.CharField(max_length=64, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    active = models.BooleanField(default=True)
    auto_create_schema = True


class Domain(DomainMixin):
    pass
