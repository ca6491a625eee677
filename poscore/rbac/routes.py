"""
Page route table: path prefix → roles allowed to open it.

Entries are checked in declaration order and the first prefix the path
starts with decides. The table is configuration; it can be replaced via
Settings.route_permissions without touching the gate.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from .roles import Role, parse_role


@dataclass(frozen=True)
class RoutePermission:
    prefix: str
    roles: frozenset[Role]

    def allows(self, role: Role) -> bool:
        return role in self.roles


def _entry(prefix: str, *roles: Role) -> RoutePermission:
    return RoutePermission(prefix, frozenset(roles))


DEFAULT_ROUTE_PERMISSIONS: tuple[RoutePermission, ...] = (
    _entry("/checkout", Role.CASHIER, Role.OWNER, Role.SUPER_ADMIN),
    _entry("/customers", Role.SUPER_ADMIN, Role.OWNER),
    _entry("/products", Role.SUPER_ADMIN, Role.STOCK_MANAGER, Role.OWNER),
    _entry("/transactions", Role.SUPER_ADMIN, Role.OWNER, Role.CASHIER),
    _entry("/refunds", Role.SUPER_ADMIN, Role.OWNER, Role.CASHIER),
    _entry("/reports", Role.SUPER_ADMIN, Role.OWNER),
    _entry("/settings", Role.SUPER_ADMIN, Role.OWNER),
    _entry("/users", Role.SUPER_ADMIN, Role.OWNER),
    _entry("/payments", Role.SUPER_ADMIN, Role.OWNER),
)


def build_route_table(entries: Iterable) -> tuple[RoutePermission, ...]:
    """
    Build a table from config entries (objects with `prefix` and `roles`).

    Unknown role names are rejected here, at startup, rather than silently
    granting or denying at request time.
    """
    table = []
    for entry in entries:
        roles = frozenset(parse_role(r) for r in entry.roles)
        if not roles:
            raise ValueError(f"Route '{entry.prefix}' allows no roles")
        table.append(RoutePermission(entry.prefix, roles))
    return tuple(table)


def match_route(
    path: str, table: Sequence[RoutePermission] = DEFAULT_ROUTE_PERMISSIONS
) -> Optional[RoutePermission]:
    """First entry (in table order) whose prefix `path` starts with."""
    for entry in table:
        if path.startswith(entry.prefix):
            return entry
    return None
