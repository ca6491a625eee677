from .resolver import TenantScope, get_business

__all__ = ["TenantScope", "get_business"]
