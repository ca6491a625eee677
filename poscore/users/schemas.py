from pydantic import BaseModel, Field, EmailStr, field_validator
from typing import Optional

from poscore.rbac import Role

# OWNER is only ever created by business signup
ASSIGNABLE_ROLES = (Role.SUPER_ADMIN, Role.CASHIER, Role.STOCK_MANAGER)


def _check_assignable(role: Optional[Role]) -> Optional[Role]:
    if role is not None and role not in ASSIGNABLE_ROLES:
        raise ValueError("Invalid role")
    return role


class CreateUserRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: Role

    @field_validator("role")
    @classmethod
    def validate_role(cls, v):
        return _check_assignable(v)


class UpdateUserRequest(BaseModel):
    verification_password: str = Field(..., min_length=1)
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    email: Optional[EmailStr] = None
    role: Optional[Role] = None
    new_password: Optional[str] = Field(None, min_length=6)

    @field_validator("role")
    @classmethod
    def validate_role(cls, v):
        return _check_assignable(v)


class DeactivateUserRequest(BaseModel):
    verification_password: str = Field(..., min_length=1)
