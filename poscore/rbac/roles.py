"""
Role definitions and the legacy role hierarchy.

A principal holds exactly one Role. The hierarchy ranks only a subset of
roles and is maintained independently of the capability table: OWNER is
deliberately unranked (rank 0) even though it holds every capability.
"""

from enum import Enum
from types import MappingProxyType
from typing import Mapping, Union


class Role(str, Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    OWNER = "OWNER"
    CASHIER = "CASHIER"
    STOCK_MANAGER = "STOCK_MANAGER"


RoleLike = Union[Role, str]


def parse_role(value: RoleLike) -> Role:
    """Return the Role for `value`. Raises ValueError for unknown strings."""
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        raise ValueError(f"Unknown role: {value!r}") from None


def _coerce(value: RoleLike) -> Role | None:
    try:
        return parse_role(value)
    except ValueError:
        return None


# ── "At least as privileged" ranking ─────────────────────────────
ROLE_HIERARCHY: Mapping[Role, int] = MappingProxyType(
    {
        Role.SUPER_ADMIN: 3,
        Role.STOCK_MANAGER: 2,
        Role.CASHIER: 1,
    }
)


def rank(role: RoleLike) -> int:
    """Hierarchy rank; roles outside the hierarchy (or unknown) rank 0."""
    parsed = _coerce(role)
    return ROLE_HIERARCHY.get(parsed, 0) if parsed else 0


def outranks(role_a: RoleLike, role_b: RoleLike) -> bool:
    """True when role_a is strictly more privileged than role_b."""
    return rank(role_a) > rank(role_b)


def has_role(role: RoleLike, required: RoleLike) -> bool:
    """True when `role` is at least as privileged as `required`."""
    return rank(role) >= rank(required)


# ── Landing pages ────────────────────────────────────────────────
ROLE_HOME: Mapping[Role, str] = MappingProxyType(
    {
        Role.CASHIER: "/checkout",
        Role.STOCK_MANAGER: "/products",
    }
)

# Where the login form sends each role
LOGIN_LANDING: Mapping[Role, str] = MappingProxyType(
    {
        Role.CASHIER: "/checkout",
        Role.STOCK_MANAGER: "/products",
        Role.SUPER_ADMIN: "/reports",
    }
)


def home_path(role: RoleLike) -> str:
    parsed = _coerce(role)
    return ROLE_HOME.get(parsed, "/") if parsed else "/"


def login_landing(role: RoleLike) -> str:
    parsed = _coerce(role)
    return LOGIN_LANDING.get(parsed, "/") if parsed else "/"
