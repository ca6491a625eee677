from fastapi import APIRouter, Depends, Request

from poscore.dependencies import get_identity_provider, get_store
from poscore.rbac import Capability
from poscore.rbac.decorators import require_capability
from poscore.utils import success_response
from .schemas import CreateUserRequest, DeactivateUserRequest, UpdateUserRequest
from .service import UserService

users_router = APIRouter()


def _service(request: Request, store, provider) -> UserService:
    return UserService(store, provider, request.state.principal.business_id)


@users_router.get("/")
@require_capability(Capability.VIEW_USERS)
async def list_users(
    request: Request,
    store=Depends(get_store),
    provider=Depends(get_identity_provider),
):
    users = await _service(request, store, provider).list_users()
    return success_response(data={"users": users, "total": len(users)})


@users_router.post("/")
@require_capability(Capability.MANAGE_USERS)
async def create_user(
    request: Request,
    body: CreateUserRequest,
    store=Depends(get_store),
    provider=Depends(get_identity_provider),
):
    user = await _service(request, store, provider).create_user(
        data=body.model_dump(),
        created_by=request.state.principal.id,
    )
    return success_response(data=user, message="User created", code=201)


@users_router.put("/{user_id}")
@require_capability(Capability.MANAGE_USERS)
async def update_user(
    request: Request,
    user_id: str,
    body: UpdateUserRequest,
    store=Depends(get_store),
    provider=Depends(get_identity_provider),
):
    user = await _service(request, store, provider).update_user(
        request.state.principal, user_id, body.model_dump(exclude_unset=True)
    )
    return success_response(data=user, message="User updated")


@users_router.post("/{user_id}/deactivate")
@require_capability(Capability.MANAGE_USERS)
async def deactivate_user(
    request: Request,
    user_id: str,
    body: DeactivateUserRequest,
    store=Depends(get_store),
    provider=Depends(get_identity_provider),
):
    user = await _service(request, store, provider).deactivate_user(
        request.state.principal, user_id, body.verification_password
    )
    return success_response(data=user, message="User deactivated")
