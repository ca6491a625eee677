"""
Capability table and permission evaluator.

Capabilities name actions, independent of any page route. Each maps to
the set of roles allowed to perform it. The owner of a business may do
everything, so OWNER appears in every entry.
"""

from enum import Enum
from types import MappingProxyType
from typing import Mapping, Union

from .roles import Role, RoleLike, parse_role

SA, OW, CA, SM = Role.SUPER_ADMIN, Role.OWNER, Role.CASHIER, Role.STOCK_MANAGER


class Capability(str, Enum):
    VIEW_DASHBOARD = "view_dashboard"

    # Checkout / sales
    VIEW_CHECKOUT = "view_checkout"
    CREATE_SALE = "create_sale"
    VIEW_SALES = "view_sales"
    REFUND_SALE = "refund_sale"
    PROCESS_REFUND = "process_refund"

    # Products
    VIEW_PRODUCTS = "view_products"
    CREATE_PRODUCT = "create_product"
    EDIT_PRODUCT = "edit_product"
    DELETE_PRODUCT = "delete_product"
    MANAGE_PRODUCTS = "manage_products"
    MANAGE_CATEGORIES = "manage_categories"

    # Customers
    VIEW_CUSTOMERS = "view_customers"
    MANAGE_CUSTOMERS = "manage_customers"

    # Reports
    VIEW_REPORTS = "view_reports"
    VIEW_DETAILED_REPORTS = "view_detailed_reports"

    # Transactions / payments
    VIEW_TRANSACTIONS = "view_transactions"
    VIEW_PAYMENTS = "view_payments"
    VIEW_REFUNDS = "view_refunds"

    # Staff
    VIEW_USERS = "view_users"
    MANAGE_USERS = "manage_users"

    # Settings
    VIEW_SETTINGS = "view_settings"
    MANAGE_SETTINGS = "manage_settings"
    EDIT_BUSINESS_DETAILS = "edit_business_details"
    EDIT_TAX_INFO = "edit_tax_info"

    # Stock
    ADJUST_STOCK = "adjust_stock"
    VIEW_STOCK_MOVEMENTS = "view_stock_movements"


CapabilityLike = Union[Capability, str]

_TABLE: dict[Capability, frozenset[Role]] = {
    Capability.VIEW_DASHBOARD: frozenset({SA, OW}),
    Capability.VIEW_CHECKOUT: frozenset({CA, OW}),
    Capability.CREATE_SALE: frozenset({CA, OW}),
    Capability.VIEW_SALES: frozenset({SA, OW}),
    Capability.REFUND_SALE: frozenset({SA, OW}),
    Capability.PROCESS_REFUND: frozenset({SA, OW, CA}),
    Capability.VIEW_PRODUCTS: frozenset({SA, SM, OW}),
    Capability.CREATE_PRODUCT: frozenset({SA, SM, OW}),
    Capability.EDIT_PRODUCT: frozenset({SA, SM, OW}),
    Capability.DELETE_PRODUCT: frozenset({SA, SM, OW}),
    Capability.MANAGE_PRODUCTS: frozenset({SA, SM, OW}),
    Capability.MANAGE_CATEGORIES: frozenset({SA, SM, OW}),
    Capability.VIEW_CUSTOMERS: frozenset({SA, OW}),
    Capability.MANAGE_CUSTOMERS: frozenset({SA, OW}),
    Capability.VIEW_REPORTS: frozenset({SA, OW}),
    Capability.VIEW_DETAILED_REPORTS: frozenset({SA, OW}),
    Capability.VIEW_TRANSACTIONS: frozenset({SA, OW, CA}),
    Capability.VIEW_PAYMENTS: frozenset({SA, OW}),
    Capability.VIEW_REFUNDS: frozenset({SA, OW, CA}),
    Capability.VIEW_USERS: frozenset({SA, OW}),
    Capability.MANAGE_USERS: frozenset({SA, OW}),
    Capability.VIEW_SETTINGS: frozenset({SA, OW}),
    Capability.MANAGE_SETTINGS: frozenset({SA, OW}),
    Capability.EDIT_BUSINESS_DETAILS: frozenset({SA, OW}),
    Capability.EDIT_TAX_INFO: frozenset({SA, OW}),
    Capability.ADJUST_STOCK: frozenset({SA, SM, OW}),
    Capability.VIEW_STOCK_MOVEMENTS: frozenset({SA, SM, OW}),
}


def _validate(table: dict[Capability, frozenset[Role]]) -> None:
    missing = [c.value for c in Capability if c not in table]
    empty = [c.value for c, roles in table.items() if not roles]
    if missing or empty:
        raise RuntimeError(
            f"Capability table incomplete: missing={missing} empty={empty}"
        )


_validate(_TABLE)

CAPABILITIES: Mapping[Capability, frozenset[Role]] = MappingProxyType(_TABLE)


def can_perform(role: RoleLike, capability: CapabilityLike) -> bool:
    """
    True when `role` is listed for `capability`.

    Unknown capabilities and unknown role strings are allowed to nobody.
    """
    try:
        parsed_role = parse_role(role)
        parsed_cap = Capability(capability)
    except ValueError:
        return False
    return parsed_role in CAPABILITIES.get(parsed_cap, frozenset())


def capabilities_for(role: RoleLike) -> list[str]:
    """All capability names granted to `role`, sorted."""
    return sorted(c.value for c in CAPABILITIES if can_perform(role, c))
