from .settings import Settings, RoutePermissionConfig, settings
from .database import DatabaseManager, db_manager

__all__ = [
    "Settings",
    "RoutePermissionConfig",
    "settings",
    "DatabaseManager",
    "db_manager",
]
