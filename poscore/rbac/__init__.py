from .roles import (
    Role,
    ROLE_HIERARCHY,
    ROLE_HOME,
    parse_role,
    rank,
    outranks,
    has_role,
    home_path,
    login_landing,
)
from .permissions import Capability, CAPABILITIES, can_perform, capabilities_for
from .routes import (
    RoutePermission,
    DEFAULT_ROUTE_PERMISSIONS,
    build_route_table,
    match_route,
)
from .hooks import CurrentUserStore, PermissionHook, RoleHook

__all__ = [
    "Role",
    "ROLE_HIERARCHY",
    "ROLE_HOME",
    "parse_role",
    "rank",
    "outranks",
    "has_role",
    "home_path",
    "login_landing",
    "Capability",
    "CAPABILITIES",
    "can_perform",
    "capabilities_for",
    "RoutePermission",
    "DEFAULT_ROUTE_PERMISSIONS",
    "build_route_table",
    "match_route",
    "CurrentUserStore",
    "PermissionHook",
    "RoleHook",
]
