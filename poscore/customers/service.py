"""Customer service: CRUD on the tenant-scoped customers table."""

from datetime import datetime, timezone
from typing import Optional

from poscore.storage import TableStore
from poscore.tenant import TenantScope
from poscore.utils import serialize_doc
from poscore.utils.exceptions import ConflictError, NotFoundError

CUSTOMERS = "customers"


class CustomerService:
    def __init__(self, store: TableStore, business_id: str):
        self.scope = TenantScope(store, business_id)

    async def create_customer(self, data: dict, created_by: str) -> dict:
        """Create a customer. Phone numbers are unique among active customers."""
        await self._check_phone(data.get("phone"))

        now = datetime.now(timezone.utc)
        row = await self.scope.insert(
            CUSTOMERS,
            {
                **data,
                "email": data["email"].lower() if data.get("email") else None,
                "is_active": True,
                "created_by": created_by,
                "created_at": now,
                "updated_at": now,
            },
        )
        return serialize_doc(row)

    async def get_customer(self, customer_id: str) -> dict:
        return serialize_doc(await self._get(customer_id))

    async def list_customers(self, query: Optional[str] = None) -> list[dict]:
        """Active customers, newest first. `query` matches name, phone or email."""
        rows = await self.scope.select_many(
            CUSTOMERS, order_by="created_at", descending=True, is_active=True
        )
        if query:
            needle = query.casefold()
            rows = [
                r for r in rows
                if any(needle in str(r.get(f) or "").casefold() for f in ("name", "phone", "email"))
            ]
        return serialize_doc(rows)

    async def update_customer(self, customer_id: str, update_data: dict) -> dict:
        await self._get(customer_id)
        await self._check_phone(update_data.get("phone"), exclude_id=customer_id)

        clean = {k: v for k, v in update_data.items() if v is not None}
        if clean.get("email"):
            clean["email"] = clean["email"].lower()
        clean["updated_at"] = datetime.now(timezone.utc)
        return serialize_doc(await self.scope.update(CUSTOMERS, clean, id=customer_id))

    async def delete_customer(self, customer_id: str) -> dict:
        """Soft delete: past sales still reference the row."""
        await self._get(customer_id)
        await self.scope.update(
            CUSTOMERS,
            {"is_active": False, "updated_at": datetime.now(timezone.utc)},
            id=customer_id,
        )
        return {"id": customer_id, "deleted": True}

    async def _get(self, customer_id: str) -> dict:
        row = await self.scope.select_single(CUSTOMERS, id=customer_id, is_active=True)
        if not row:
            raise NotFoundError("Customer not found")
        return row

    async def _check_phone(self, phone: Optional[str], exclude_id: Optional[str] = None) -> None:
        if not phone:
            return
        existing = await self.scope.select_single(CUSTOMERS, phone=phone, is_active=True)
        if existing and existing["id"] != exclude_id:
            raise ConflictError(f"Customer with phone '{phone}' already exists")
