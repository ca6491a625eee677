from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from poscore.dependencies import get_identity_provider, get_store
from poscore.rbac import Capability, can_perform
from poscore.rbac.decorators import require_capability
from poscore.utils import success_response
from poscore.utils.exceptions import UnauthorizedError
from .schemas import TAX_FIELDS, BusinessSettingsUpdate, SignupRequest
from .service import BusinessService, SignupOrchestrator, SignupOutcome

signup_router = APIRouter()
settings_router = APIRouter()


@signup_router.post("/signup")
async def signup(
    body: SignupRequest,
    store=Depends(get_store),
    provider=Depends(get_identity_provider),
):
    """Create a new business together with its OWNER account."""
    result = await SignupOrchestrator(store, provider).signup(body)

    if result.outcome is SignupOutcome.OK:
        return JSONResponse(
            status_code=result.status_code,
            content={"success": True, "businessId": result.business_id},
        )

    content = {"error": result.message}
    if result.step:
        content["step"] = result.step
    return JSONResponse(status_code=result.status_code, content=content)


@settings_router.get("/")
@require_capability(Capability.VIEW_SETTINGS)
async def get_settings(request: Request, store=Depends(get_store)):
    principal = request.state.principal
    svc = BusinessService(store, principal.business_id)
    return success_response(data=await svc.get_settings())


@settings_router.put("/")
@require_capability(Capability.MANAGE_SETTINGS)
async def update_settings(
    request: Request,
    body: BusinessSettingsUpdate,
    store=Depends(get_store),
):
    principal = request.state.principal
    changes = body.model_dump(exclude_unset=True)

    if any(f in changes for f in TAX_FIELDS) and not can_perform(
        principal.role, Capability.EDIT_TAX_INFO
    ):
        raise UnauthorizedError("Permission denied. Requires: edit_tax_info")
    if any(f not in TAX_FIELDS for f in changes) and not can_perform(
        principal.role, Capability.EDIT_BUSINESS_DETAILS
    ):
        raise UnauthorizedError("Permission denied. Requires: edit_business_details")

    svc = BusinessService(store, principal.business_id)
    business = await svc.update_settings(changes)
    return success_response(data=business, message="Settings updated")
