from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from poscore.dependencies import get_store
from poscore.rbac import Capability
from poscore.rbac.decorators import require_capability
from poscore.utils import success_response
from .schemas import CreateCustomerRequest, UpdateCustomerRequest
from .service import CustomerService

customers_router = APIRouter()


def _service(request: Request, store) -> CustomerService:
    return CustomerService(store, request.state.principal.business_id)


@customers_router.post("/")
@require_capability(Capability.MANAGE_CUSTOMERS)
async def create_customer(
    request: Request,
    body: CreateCustomerRequest,
    store=Depends(get_store),
):
    customer = await _service(request, store).create_customer(
        body.model_dump(), created_by=request.state.principal.id
    )
    return success_response(data=customer, message="Customer created", code=201)


# Cashiers look customers up to attach them to a sale
@customers_router.get("/")
@require_capability(Capability.VIEW_CUSTOMERS, Capability.CREATE_SALE)
async def list_customers(
    request: Request,
    q: Optional[str] = Query(None),
    store=Depends(get_store),
):
    customers = await _service(request, store).list_customers(query=q)
    return success_response(data={"customers": customers, "total": len(customers)})


@customers_router.get("/{customer_id}")
@require_capability(Capability.VIEW_CUSTOMERS, Capability.CREATE_SALE)
async def get_customer(request: Request, customer_id: str, store=Depends(get_store)):
    return success_response(data=await _service(request, store).get_customer(customer_id))


@customers_router.put("/{customer_id}")
@require_capability(Capability.MANAGE_CUSTOMERS)
async def update_customer(
    request: Request,
    customer_id: str,
    body: UpdateCustomerRequest,
    store=Depends(get_store),
):
    customer = await _service(request, store).update_customer(
        customer_id, body.model_dump(exclude_unset=True)
    )
    return success_response(data=customer, message="Customer updated")


@customers_router.delete("/{customer_id}")
@require_capability(Capability.MANAGE_CUSTOMERS)
async def delete_customer(request: Request, customer_id: str, store=Depends(get_store)):
    result = await _service(request, store).delete_customer(customer_id)
    return success_response(data=result, message="Customer deleted")
