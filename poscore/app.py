"""
Point of Sale API.

create_app() wires settings, storage, the identity provider, the page
route gate and the routers. Tests pass their own store and provider;
otherwise MongoDB is connected in the lifespan.
"""

import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from poscore.auth import (
    AuthEvents,
    FallbackIdentityResolver,
    IdentityProvider,
    LegacyTokenIdentityResolver,
    LocalIdentityProvider,
    SessionIdentityResolver,
)
from poscore.auth.routes import auth_router
from poscore.business import signup_router, settings_router
from poscore.config import settings, db_manager
from poscore.customers import customers_router
from poscore.middleware import RouteGateMiddleware
from poscore.pages import pages_router
from poscore.products import categories_router, products_router
from poscore.rbac import DEFAULT_ROUTE_PERMISSIONS, build_route_table
from poscore.sales import refunds_router, sales_router
from poscore.storage import MongoTableStore, TableStore
from poscore.users import users_router
from poscore.utils import Logger, configure_logging, error_response

logger = Logger("request")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One line in, one line out per request, tagged with the caller's role once known."""

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        method, path = request.method, request.url.path
        logger.debug(f"--> {method} {path}")

        try:
            response = await call_next(request)
        except Exception:
            elapsed = (time.perf_counter() - start) * 1000
            logger.exception(f"<-- {method} {path} | 500 | {elapsed:.1f}ms")
            raise

        elapsed = (time.perf_counter() - start) * 1000
        principal = getattr(request.state, "principal", None)
        who = principal.role.value if principal else "anonymous"
        line = f"<-- {method} {path} | {response.status_code} | {elapsed:.1f}ms | {who}"

        if response.status_code >= 500:
            logger.error(line)
        elif response.status_code >= 400:
            logger.warning(line)
        else:
            logger.info(line)
        return response


def wire_collaborators(
    app: FastAPI,
    store: TableStore,
    identity: Optional[IdentityProvider] = None,
    events: Optional[AuthEvents] = None,
) -> None:
    """Attach store, identity provider and identity resolver to app.state."""
    events = events or AuthEvents()
    identity = identity or LocalIdentityProvider(store, events)

    resolver = SessionIdentityResolver(identity, store)
    if settings.legacy_auth_enabled:
        logger.warning("legacy bearer tokens are accepted")
        resolver = FallbackIdentityResolver(
            [resolver, LegacyTokenIdentityResolver(store)]
        )

    app.state.store = store
    app.state.auth_events = events
    app.state.identity = identity
    app.state.resolver = resolver


@asynccontextmanager
async def lifespan(app: FastAPI):
    if app.state.store is not None:
        yield
        return

    store = MongoTableStore(await db_manager.connect())
    await store.ensure_indexes()
    wire_collaborators(app, store)
    try:
        yield
    finally:
        db_manager.close()


def create_app(
    store: Optional[TableStore] = None,
    identity: Optional[IdentityProvider] = None,
    events: Optional[AuthEvents] = None,
) -> FastAPI:
    configure_logging("DEBUG" if settings.debug else settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Multi-tenant point of sale",
        docs_url=f"{settings.api_prefix}/docs",
        lifespan=lifespan,
    )

    app.state.store = None
    app.state.route_table = (
        build_route_table(settings.route_permissions)
        if settings.route_permissions
        else DEFAULT_ROUTE_PERMISSIONS
    )
    if store is not None:
        wire_collaborators(app, store, identity, events)

    # Added innermost first: the gate sees requests after CORS and logging
    app.add_middleware(RouteGateMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allowed_methods,
        allow_headers=settings.cors_allowed_headers,
    )

    @app.exception_handler(Exception)
    async def unhandled_exception(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception on {request.method} {request.url.path}")
        return error_response(
            str(exc) if settings.debug else "Internal server error", code=500
        )

    api = f"{settings.api_prefix}/{settings.api_version}"
    app.include_router(auth_router, prefix=f"{api}/auth", tags=["Authentication"])
    app.include_router(signup_router, prefix=f"{api}/auth", tags=["Business Signup"])
    app.include_router(users_router, prefix=f"{api}/users", tags=["Users"])
    app.include_router(settings_router, prefix=f"{api}/settings", tags=["Business Settings"])
    app.include_router(products_router, prefix=f"{api}/products", tags=["Products"])
    app.include_router(categories_router, prefix=f"{api}/categories", tags=["Categories"])
    app.include_router(customers_router, prefix=f"{api}/customers", tags=["Customers"])
    app.include_router(sales_router, prefix=f"{api}/sales", tags=["Sales"])
    app.include_router(refunds_router, prefix=f"{api}/refunds", tags=["Refunds"])
    app.include_router(pages_router)

    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "app": settings.app_name,
            "version": settings.app_version,
            "database": db_manager.is_connected,
        }

    return app


app = create_app()
