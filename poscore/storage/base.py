"""
Row store interface.

Every table is addressed by name and every row carries a string `id`.
Filters are equality predicates passed as keyword arguments:

    await store.select_single("profiles", id=identity_id)
    await store.select_many("profiles", business_id=tenant_id)
"""

from abc import ABC, abstractmethod
from typing import Any, Optional


class TableStore(ABC):
    @abstractmethod
    async def insert(self, table: str, row: dict) -> dict:
        """Insert a row (an `id` is generated when missing). Returns the row."""

    @abstractmethod
    async def select_single(self, table: str, **where: Any) -> Optional[dict]:
        """Return the one row matching `where`, or None."""

    @abstractmethod
    async def select_many(
        self,
        table: str,
        order_by: Optional[str] = None,
        descending: bool = False,
        **where: Any,
    ) -> list[dict]:
        ...

    @abstractmethod
    async def update(self, table: str, values: dict, **where: Any) -> Optional[dict]:
        """Update the first matching row. Returns the updated row, or None."""

    @abstractmethod
    async def delete(self, table: str, **where: Any) -> int:
        """Delete matching rows and return how many were removed."""

    @abstractmethod
    async def upsert(self, table: str, row: dict, key: str = "id") -> dict:
        """Insert or overwrite the row identified by `row[key]`."""
