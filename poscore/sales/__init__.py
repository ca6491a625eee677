from .routes import refunds_router, sales_router
from .service import REFUNDS, SALES, RefundService, SaleService, settle_payment

__all__ = [
    "sales_router",
    "refunds_router",
    "SaleService",
    "RefundService",
    "settle_payment",
    "SALES",
    "REFUNDS",
]
