from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from poscore.dependencies import get_store
from poscore.rbac import Capability, can_perform
from poscore.rbac.decorators import require_capability
from poscore.utils import success_response
from poscore.utils.exceptions import UnauthorizedError
from .schemas import (
    CategoryRequest,
    CreateProductRequest,
    UpdateCategoryRequest,
    UpdateProductRequest,
)
from .service import CategoryService, ProductService

products_router = APIRouter()
categories_router = APIRouter()


def _products(request: Request, store) -> ProductService:
    return ProductService(store, request.state.principal.business_id)


def _categories(request: Request, store) -> CategoryService:
    return CategoryService(store, request.state.principal.business_id)


# ── Products ─────────────────────────────────────────────────────
# Checkout looks products up too, so cashiers may read the catalog.


@products_router.get("/")
@require_capability(Capability.VIEW_PRODUCTS, Capability.VIEW_CHECKOUT)
async def list_products(
    request: Request,
    q: Optional[str] = Query(None),
    category_id: Optional[str] = Query(None),
    barcode: Optional[str] = Query(None),
    include_inactive: bool = Query(False),
    store=Depends(get_store),
):
    if include_inactive and not can_perform(
        request.state.principal.role, Capability.MANAGE_PRODUCTS
    ):
        raise UnauthorizedError("Permission denied. Requires: manage_products")

    products = await _products(request, store).list_products(
        query=q, category_id=category_id, barcode=barcode, include_inactive=include_inactive
    )
    return success_response(data={"products": products, "total": len(products)})


@products_router.get("/{product_id}")
@require_capability(Capability.VIEW_PRODUCTS, Capability.VIEW_CHECKOUT)
async def get_product(request: Request, product_id: str, store=Depends(get_store)):
    return success_response(data=await _products(request, store).get_product(product_id))


@products_router.post("/")
@require_capability(Capability.CREATE_PRODUCT)
async def create_product(
    request: Request,
    body: CreateProductRequest,
    store=Depends(get_store),
):
    product = await _products(request, store).create_product(
        body.model_dump(), created_by=request.state.principal.id
    )
    return success_response(data=product, message="Product created", code=201)


@products_router.put("/{product_id}")
@require_capability(Capability.EDIT_PRODUCT)
async def update_product(
    request: Request,
    product_id: str,
    body: UpdateProductRequest,
    store=Depends(get_store),
):
    product = await _products(request, store).update_product(
        product_id, body.model_dump(exclude_unset=True)
    )
    return success_response(data=product, message="Product updated")


@products_router.delete("/{product_id}")
@require_capability(Capability.DELETE_PRODUCT)
async def delete_product(request: Request, product_id: str, store=Depends(get_store)):
    """Soft delete: the product disappears from the catalog but past sales keep it."""
    product = await _products(request, store).set_active(product_id, False)
    return success_response(data=product, message="Product deleted")


@products_router.post("/{product_id}/restore")
@require_capability(Capability.MANAGE_PRODUCTS)
async def restore_product(request: Request, product_id: str, store=Depends(get_store)):
    product = await _products(request, store).set_active(product_id, True)
    return success_response(data=product, message="Product restored")


# ── Categories ───────────────────────────────────────────────────


@categories_router.get("/")
@require_capability(Capability.VIEW_PRODUCTS, Capability.VIEW_CHECKOUT)
async def list_categories(
    request: Request,
    search: Optional[str] = Query(None),
    store=Depends(get_store),
):
    categories = await _categories(request, store).list_categories(search)
    return success_response(data={"categories": categories, "total": len(categories)})


@categories_router.get("/{category_id}")
@require_capability(Capability.VIEW_PRODUCTS, Capability.VIEW_CHECKOUT)
async def get_category(request: Request, category_id: str, store=Depends(get_store)):
    return success_response(data=await _categories(request, store).get_category(category_id))


@categories_router.post("/")
@require_capability(Capability.MANAGE_CATEGORIES)
async def create_category(
    request: Request,
    body: CategoryRequest,
    store=Depends(get_store),
):
    category = await _categories(request, store).create_category(
        body.model_dump(), created_by=request.state.principal.id
    )
    return success_response(data=category, message="Category created", code=201)


@categories_router.put("/{category_id}")
@require_capability(Capability.MANAGE_CATEGORIES)
async def update_category(
    request: Request,
    category_id: str,
    body: UpdateCategoryRequest,
    store=Depends(get_store),
):
    category = await _categories(request, store).update_category(
        category_id, body.model_dump(exclude_unset=True)
    )
    return success_response(data=category, message="Category updated")


@categories_router.delete("/{category_id}")
@require_capability(Capability.MANAGE_CATEGORIES)
async def delete_category(request: Request, category_id: str, store=Depends(get_store)):
    result = await _categories(request, store).delete_category(category_id)
    return success_response(data=result, message="Category deleted")
