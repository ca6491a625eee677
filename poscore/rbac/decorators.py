"""
Declarative authorization for API handlers.

The page gate skips /api, so every API handler authorizes itself:

    @router.get("/")
    @require_capability(Capability.VIEW_USERS)
    async def list_users(request: Request):
        principal = request.state.principal
        ...

Anonymous callers get 401, inactive accounts and missing capabilities 403.
Session rotations are written to the handler's response.
"""

from functools import wraps

from fastapi import HTTPException, status
from starlette.requests import Request
from starlette.responses import Response

from poscore.auth.session import SessionCarrier
from poscore.utils import Logger, error_response
from poscore.utils.exceptions import (
    InactiveAccountError,
    UnauthenticatedError,
    UnauthorizedError,
    UpstreamFailure,
)
from .permissions import Capability, can_perform

logger = Logger("rbac")


def _find_request(args, kwargs) -> Request:
    request: Request | None = kwargs.get("request")
    if request is None:
        for arg in args:
            if isinstance(arg, Request):
                request = arg
                break

    if request is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Request object not found in handler",
        )
    return request


def require_capability(*capabilities: Capability):
    """
    Decorator that resolves the caller and checks that it holds at least
    one of `capabilities`.

    With no capability, only a signed-in, active account is required.
    Must be applied AFTER the route decorator.
    """

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            request = _find_request(args, kwargs)
            carrier = SessionCarrier()

            try:
                resolution = await request.app.state.resolver.resolve(request, carrier)
                principal = resolution.principal
                if principal is None:
                    raise UnauthenticatedError()
                if not principal.is_active:
                    raise InactiveAccountError()
                if capabilities and not any(
                    can_perform(principal.role, c) for c in capabilities
                ):
                    required = " or ".join(c.value for c in capabilities)
                    logger.info(
                        f"{principal.role.value} denied {required} on {request.url.path}"
                    )
                    raise UnauthorizedError(f"Permission denied. Requires: {required}")

                request.state.principal = principal
                result = await func(*args, **kwargs)
            except HTTPException as e:
                result = error_response(str(e.detail), code=e.status_code)
            except UpstreamFailure as e:
                logger.error(f"{request.url.path}: {e}")
                result = error_response(
                    "Service temporarily unavailable",
                    code=status.HTTP_503_SERVICE_UNAVAILABLE,
                )

            if isinstance(result, Response):
                carrier.apply(result)
            return result

        return wrapper

    return decorator


def require_login(func):
    """Shorthand for require_capability() with no capability."""
    return require_capability()(func)
