"""
Tenant scoping.

Convention:
  - Tenant-scoped tables carry a `business_id` column and are only ever
    queried through a TenantScope, which adds that predicate to every call.
    e.g.  profiles, products, categories, customers, sales, refunds
  - Global tables are addressed directly on the store.
    e.g.  businesses, auth_accounts
"""

from typing import Any, Optional

from poscore.storage import TableStore


class TenantScope:
    """Row access restricted to one business."""

    def __init__(self, store: TableStore, business_id: str):
        if not business_id:
            raise ValueError("business_id is required for tenant-scoped access")
        self.store = store
        self.business_id = business_id

    async def insert(self, table: str, row: dict) -> dict:
        return await self.store.insert(table, {**row, "business_id": self.business_id})

    async def select_single(self, table: str, **where: Any) -> Optional[dict]:
        return await self.store.select_single(
            table, business_id=self.business_id, **where
        )

    async def select_many(self, table: str, **kwargs: Any) -> list[dict]:
        return await self.store.select_many(
            table, business_id=self.business_id, **kwargs
        )

    async def update(self, table: str, values: dict, **where: Any) -> Optional[dict]:
        # business_id can never be moved through a scoped update
        clean = {k: v for k, v in values.items() if k != "business_id"}
        return await self.store.update(
            table, clean, business_id=self.business_id, **where
        )

    async def upsert(self, table: str, row: dict, key: str = "id") -> dict:
        return await self.store.upsert(
            table, {**row, "business_id": self.business_id}, key=key
        )

    async def delete(self, table: str, **where: Any) -> int:
        return await self.store.delete(table, business_id=self.business_id, **where)


def get_business(store: TableStore, business_id: str):
    """Fetch a business row. Businesses are the one global tenant table."""
    return store.select_single("businesses", id=business_id)
