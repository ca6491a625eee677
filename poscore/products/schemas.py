import re
from typing import Optional

from pydantic import BaseModel, Field, field_validator

_SKU = re.compile(r"^[A-Za-z0-9\-_]+$")


def _clean_sku(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not _SKU.match(v):
        raise ValueError("SKU can only contain letters, numbers, hyphens, and underscores")
    return v.upper()


def _clean_barcode(v: Optional[str]) -> Optional[str]:
    if v is None or not v.strip():
        return None
    if not v.strip().isdigit():
        raise ValueError("Barcode must be numeric")
    return v.strip()


class CreateProductRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    sku: str = Field(..., min_length=1, max_length=50)
    barcode: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = Field(None, max_length=1000)
    category_id: Optional[str] = None
    cost_price: Optional[float] = Field(None, ge=0)
    selling_price: float = Field(..., ge=0)
    # opening stock only; stock is not adjusted through this API
    stock_level: int = Field(0, ge=0)
    low_stock_threshold: int = Field(5, ge=0)
    taxable: bool = True

    @field_validator("sku")
    @classmethod
    def validate_sku(cls, v):
        return _clean_sku(v)

    @field_validator("barcode")
    @classmethod
    def validate_barcode(cls, v):
        return _clean_barcode(v)


class UpdateProductRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    sku: Optional[str] = Field(None, min_length=1, max_length=50)
    barcode: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = Field(None, max_length=1000)
    category_id: Optional[str] = None
    cost_price: Optional[float] = Field(None, ge=0)
    selling_price: Optional[float] = Field(None, ge=0)
    low_stock_threshold: Optional[int] = Field(None, ge=0)
    taxable: Optional[bool] = None

    @field_validator("sku")
    @classmethod
    def validate_sku(cls, v):
        return _clean_sku(v)

    @field_validator("barcode")
    @classmethod
    def validate_barcode(cls, v):
        return _clean_barcode(v)


class CategoryRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)


class UpdateCategoryRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
