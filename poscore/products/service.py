"""
Catalog service: products and their categories, scoped to one business.

Products and categories are never hard-deleted. Sales keep pointing at
the product rows they were rung up from, so removing one only clears
`is_active`.
"""

from datetime import datetime, timezone
from typing import Optional

from poscore.storage import TableStore
from poscore.tenant import TenantScope
from poscore.utils import Logger, serialize_doc
from poscore.utils.exceptions import ConflictError, NotFoundError, ValidationError

logger = Logger("catalog")

PRODUCTS = "products"
CATEGORIES = "categories"


def _contains(row: dict, fields: tuple[str, ...], query: str) -> bool:
    needle = query.casefold()
    return any(needle in str(row.get(f) or "").casefold() for f in fields)


class CategoryService:
    def __init__(self, store: TableStore, business_id: str):
        self.scope = TenantScope(store, business_id)

    async def list_categories(self, search: Optional[str] = None) -> list[dict]:
        rows = await self.scope.select_many(CATEGORIES, order_by="name", is_active=True)
        if search:
            rows = [r for r in rows if _contains(r, ("name", "description"), search)]
        return serialize_doc(rows)

    async def get_category(self, category_id: str) -> dict:
        return serialize_doc(await self._get(category_id))

    async def create_category(self, data: dict, created_by: str) -> dict:
        await self._check_unique_name(data["name"])
        now = datetime.now(timezone.utc)
        row = await self.scope.insert(
            CATEGORIES,
            {
                "name": data["name"].strip(),
                "description": data.get("description"),
                "is_active": True,
                "created_by": created_by,
                "created_at": now,
                "updated_at": now,
            },
        )
        return serialize_doc(row)

    async def update_category(self, category_id: str, data: dict) -> dict:
        await self._get(category_id)
        if data.get("name"):
            data["name"] = data["name"].strip()
            await self._check_unique_name(data["name"], exclude_id=category_id)

        changes = {k: v for k, v in data.items() if v is not None}
        changes["updated_at"] = datetime.now(timezone.utc)
        row = await self.scope.update(CATEGORIES, changes, id=category_id)
        return serialize_doc(row)

    async def delete_category(self, category_id: str) -> dict:
        await self._get(category_id)
        in_use = await self.scope.select_many(
            PRODUCTS, category_id=category_id, is_active=True
        )
        if in_use:
            raise ConflictError(f"Category is used by {len(in_use)} active product(s)")

        await self.scope.update(
            CATEGORIES,
            {"is_active": False, "updated_at": datetime.now(timezone.utc)},
            id=category_id,
        )
        return {"id": category_id, "deleted": True}

    async def _get(self, category_id: str) -> dict:
        row = await self.scope.select_single(CATEGORIES, id=category_id, is_active=True)
        if not row:
            raise NotFoundError("Category not found")
        return row

    async def _check_unique_name(self, name: str, exclude_id: Optional[str] = None) -> None:
        rows = await self.scope.select_many(CATEGORIES, is_active=True)
        for row in rows:
            if row["id"] != exclude_id and row["name"].casefold() == name.strip().casefold():
                raise ConflictError(f"Category '{name.strip()}' already exists")


class ProductService:
    def __init__(self, store: TableStore, business_id: str):
        self.scope = TenantScope(store, business_id)

    async def list_products(
        self,
        query: Optional[str] = None,
        category_id: Optional[str] = None,
        barcode: Optional[str] = None,
        include_inactive: bool = False,
    ) -> list[dict]:
        """Active products by name; barcode wins over search, search over category."""
        where: dict = {} if include_inactive else {"is_active": True}
        if barcode:
            where["barcode"] = barcode
        elif category_id and not query:
            where["category_id"] = category_id

        rows = await self.scope.select_many(PRODUCTS, order_by="name", **where)
        if query and not barcode:
            rows = [r for r in rows if _contains(r, ("name", "sku", "barcode"), query)]
        return serialize_doc(rows)

    async def get_product(self, product_id: str) -> dict:
        return serialize_doc(await self._get(product_id))

    async def create_product(self, data: dict, created_by: str) -> dict:
        await self._check_unique(data.get("sku"), data.get("barcode"))
        await self._check_category(data.get("category_id"))

        now = datetime.now(timezone.utc)
        row = await self.scope.insert(
            PRODUCTS,
            {
                **data,
                "is_active": True,
                "created_by": created_by,
                "created_at": now,
                "updated_at": now,
            },
        )
        logger.info(f"product {row['id']} ({row['sku']}) created by {created_by}")
        return serialize_doc(row)

    async def update_product(self, product_id: str, data: dict) -> dict:
        await self._get(product_id)
        await self._check_unique(data.get("sku"), data.get("barcode"), exclude_id=product_id)
        await self._check_category(data.get("category_id"))

        changes = {k: v for k, v in data.items() if v is not None}
        changes["updated_at"] = datetime.now(timezone.utc)
        row = await self.scope.update(PRODUCTS, changes, id=product_id)
        return serialize_doc(row)

    async def set_active(self, product_id: str, active: bool) -> dict:
        await self._get(product_id, include_inactive=True)
        row = await self.scope.update(
            PRODUCTS,
            {"is_active": active, "updated_at": datetime.now(timezone.utc)},
            id=product_id,
        )
        logger.info(f"product {product_id} {'restored' if active else 'deactivated'}")
        return serialize_doc(row)

    async def _get(self, product_id: str, include_inactive: bool = False) -> dict:
        where = {} if include_inactive else {"is_active": True}
        row = await self.scope.select_single(PRODUCTS, id=product_id, **where)
        if not row:
            raise NotFoundError("Product not found")
        return row

    async def _check_unique(
        self,
        sku: Optional[str],
        barcode: Optional[str],
        exclude_id: Optional[str] = None,
    ) -> None:
        # SKUs stay reserved by inactive products; barcodes only by active ones
        if sku:
            existing = await self.scope.select_single(PRODUCTS, sku=sku)
            if existing and existing["id"] != exclude_id:
                raise ConflictError(f"Product with SKU '{sku}' already exists")
        if barcode:
            existing = await self.scope.select_single(
                PRODUCTS, barcode=barcode, is_active=True
            )
            if existing and existing["id"] != exclude_id:
                raise ConflictError(f"Product with barcode '{barcode}' already exists")

    async def _check_category(self, category_id: Optional[str]) -> None:
        if not category_id:
            return
        if not await self.scope.select_single(CATEGORIES, id=category_id, is_active=True):
            raise ValidationError("Unknown category")
