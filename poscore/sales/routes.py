from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from poscore.dependencies import get_store
from poscore.rbac import Capability
from poscore.rbac.decorators import require_capability
from poscore.utils import success_response
from .schemas import CreateRefundRequest, CreateSaleRequest
from .service import RefundService, SaleService

sales_router = APIRouter()
refunds_router = APIRouter()


@sales_router.post("/")
@require_capability(Capability.CREATE_SALE)
async def create_sale(request: Request, body: CreateSaleRequest, store=Depends(get_store)):
    principal = request.state.principal
    sale = await SaleService(store, principal.business_id).create_sale(
        body.model_dump(mode="json"), cashier_id=principal.id
    )
    return success_response(data=sale, message="Sale completed", code=201)


@sales_router.get("/")
@require_capability(Capability.VIEW_TRANSACTIONS)
async def list_sales(
    request: Request,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    customer_id: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    store=Depends(get_store),
):
    sales = await SaleService(store, request.state.principal.business_id).list_sales(
        start_date=start_date, end_date=end_date, customer_id=customer_id, limit=limit
    )
    return success_response(data={"sales": sales, "total": len(sales)})


@sales_router.get("/{sale_id}")
@require_capability(Capability.VIEW_TRANSACTIONS)
async def get_sale(request: Request, sale_id: str, store=Depends(get_store)):
    svc = SaleService(store, request.state.principal.business_id)
    return success_response(data=await svc.get_sale(sale_id))


@refunds_router.post("/")
@require_capability(Capability.PROCESS_REFUND)
async def create_refund(request: Request, body: CreateRefundRequest, store=Depends(get_store)):
    principal = request.state.principal
    refund = await RefundService(store, principal.business_id).create_refund(
        body.model_dump(mode="json"), processed_by=principal.id
    )
    return success_response(data=refund, message="Refund processed", code=201)


@refunds_router.get("/")
@require_capability(Capability.VIEW_REFUNDS)
async def list_refunds(
    request: Request,
    sale_id: Optional[str] = Query(None),
    store=Depends(get_store),
):
    svc = RefundService(store, request.state.principal.business_id)
    return success_response(data=await svc.list_refunds(sale_id=sale_id))


@refunds_router.get("/{refund_id}")
@require_capability(Capability.VIEW_REFUNDS)
async def get_refund(request: Request, refund_id: str, store=Depends(get_store)):
    svc = RefundService(store, request.state.principal.business_id)
    return success_response(data=await svc.get_refund(refund_id))
