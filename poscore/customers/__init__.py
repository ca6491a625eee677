from .routes import customers_router
from .service import CustomerService, CUSTOMERS

__all__ = ["customers_router", "CustomerService", "CUSTOMERS"]
