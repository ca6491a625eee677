from fastapi import APIRouter, Depends, Request

from poscore.dependencies import get_identity_provider, get_store
from poscore.rbac import capabilities_for
from poscore.rbac.decorators import require_login
from poscore.utils import success_response
from .provider import IdentityProvider
from .schemas import LoginRequest
from .service import AuthService
from .session import SessionCarrier

auth_router = APIRouter()


@auth_router.post("/login")
async def login(
    body: LoginRequest,
    store=Depends(get_store),
    provider: IdentityProvider = Depends(get_identity_provider),
):
    """Authenticate with email + password and set the session cookie."""
    carrier = SessionCarrier()
    svc = AuthService(store, provider)
    result = await svc.login(body.email, body.password, carrier)
    return carrier.apply(success_response(data=result, message="Login successful"))


@auth_router.post("/logout")
async def logout(
    store=Depends(get_store),
    provider: IdentityProvider = Depends(get_identity_provider),
):
    carrier = SessionCarrier()
    await AuthService(store, provider).logout(carrier)
    return carrier.apply(success_response(message="Logged out"))


@auth_router.get("/me")
@require_login
async def me(request: Request):
    """Current profile plus the capabilities the UI may use to show or hide controls."""
    principal = request.state.principal
    return success_response(
        data={
            "user": principal.to_public(),
            "capabilities": capabilities_for(principal.role),
        }
    )
