from .tenants_models import Tenant, Domain

__all__ = ["Tenant", "Domain"]
