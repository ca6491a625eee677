from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class PaymentMethod(str, Enum):
    CASH = "CASH"
    CARD = "CARD"
    MIXED = "MIXED"


class SaleLine(BaseModel):
    product_id: str
    quantity: int = Field(..., gt=0)


class CreateSaleRequest(BaseModel):
    """
    POST /sales

    Prices and tax are not accepted from the client. They are read from
    the product rows and the business tax rate when the sale is rung up.
    """

    items: list[SaleLine] = Field(..., min_length=1)
    payment_method: PaymentMethod
    discount: float = Field(0, ge=0)
    cash_received: Optional[float] = Field(None, ge=0)
    card_amount: Optional[float] = Field(None, ge=0)
    customer_id: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)


class RefundLine(BaseModel):
    sale_item_id: str
    quantity: int = Field(..., gt=0)


class CreateRefundRequest(BaseModel):
    sale_id: str
    items: list[RefundLine] = Field(..., min_length=1)
    reason: str = Field(..., min_length=10, max_length=500)
    payment_method: PaymentMethod
    notes: Optional[str] = Field(None, max_length=500)
