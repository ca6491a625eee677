from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional

# Changing these needs the edit_tax_info capability
TAX_FIELDS = ("currency", "tax_rate")


class SignupRequest(BaseModel):
    """
    POST /auth/signup

    Fields are optional at the schema level so that a missing field is
    reported by the signup flow as a 400, like any other rejected signup.
    """

    model_config = ConfigDict(populate_by_name=True)

    business_name: Optional[str] = Field(None, alias="businessName")
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None

    def missing_fields(self) -> list[str]:
        return [
            alias
            for alias, value in (
                ("businessName", self.business_name),
                ("name", self.name),
                ("email", self.email),
                ("password", self.password),
            )
            if not value or not str(value).strip()
        ]


class AddressModel(BaseModel):
    street: Optional[str] = Field(None, max_length=200)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    country: Optional[str] = Field(None, max_length=100)


class BusinessSettingsUpdate(BaseModel):
    """PUT /settings — business details and tax information."""

    name: Optional[str] = Field(None, min_length=2, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)
    website: Optional[str] = None
    address: Optional[AddressModel] = None
    currency: Optional[str] = Field(None, pattern=r"^[A-Z]{3}$")
    tax_rate: Optional[float] = Field(None, ge=0, le=100)
    refund_time_limit_days: Optional[int] = Field(None, ge=0, le=365)
