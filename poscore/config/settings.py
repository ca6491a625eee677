from pydantic import BaseModel
from pydantic_settings import BaseSettings
from typing import Optional


class RoutePermissionConfig(BaseModel):
    """One entry of the page route table: path prefix → allowed role names."""

    prefix: str
    roles: list[str]


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    # ── Application ──────────────────────────────────────────────
    app_name: str = "Point of Sale"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"
    api_version: str = "v1"
    log_level: str = "INFO"

    # ── Database ─────────────────────────────────────────────────
    mongodb_atlas_uri: Optional[str] = None
    database_name: str = "pos_db"
    mongodb_timeout_ms: int = 5000

    # ── Sessions / JWT ───────────────────────────────────────────
    secret_key: str = "change-me-in-production"
    algorithm: str = "HS256"
    session_cookie_name: str = "pos_session"
    session_cookie_secure: bool = False
    session_max_age_minutes: int = 60 * 24 * 7
    session_refresh_after_minutes: int = 60
    password_hash_rounds: int = 12

    # ── Legacy bearer tokens (deprecated) ────────────────────────
    legacy_auth_enabled: bool = False
    legacy_secret_key: str = "change-me-in-production"

    # ── Route gate ───────────────────────────────────────────────
    gate_timeout_seconds: float = 5.0
    api_prefix: str = "/api"
    public_paths: list[str] = ["/login", "/signup"]
    static_prefixes: list[str] = ["/static", "/_next"]
    # Empty means the built-in table in poscore.rbac.routes
    route_permissions: list[RoutePermissionConfig] = []

    # ── New business defaults ────────────────────────────────────
    default_currency: str = "USD"
    default_tax_rate: float = 15.0

    # ── CORS ─────────────────────────────────────────────────────
    cors_allowed_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    cors_allow_credentials: bool = True
    cors_allowed_methods: list[str] = ["*"]
    cors_allowed_headers: list[str] = ["*"]

    class Config:
        env_file = ".env.local"
        extra = "ignore"


# ── Module-level singleton ──────────────────────────────────────
settings = Settings()
