"""Motor-backed TableStore: one collection per table, rows keyed by `id`."""

import uuid
from typing import Any, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from poscore.utils import Logger
from poscore.utils.exceptions import UpstreamFailure
from .base import TableStore

logger = Logger("storage")

# Tables whose `id` must stay unique even under concurrent upserts
KEYED_TABLES = (
    "businesses",
    "profiles",
    "auth_accounts",
    "products",
    "categories",
    "customers",
    "sales",
    "refunds",
)

TENANT_TABLES = ("profiles", "products", "categories", "customers", "sales", "refunds")

_NO_MONGO_ID = {"_id": False}


class MongoTableStore(TableStore):
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    async def ensure_indexes(self) -> None:
        for table in KEYED_TABLES:
            await self.db[table].create_index("id", unique=True)
        for table in TENANT_TABLES:
            await self.db[table].create_index("business_id")
        await self.db["sales"].create_index([("business_id", ASCENDING), ("created_at", DESCENDING)])
        await self.db["refunds"].create_index("sale_id")
        await self.db["auth_accounts"].create_index("email", unique=True)

    async def insert(self, table: str, row: dict) -> dict:
        doc = {"id": row.get("id") or str(uuid.uuid4()), **row}
        try:
            await self.db[table].insert_one(dict(doc))
        except PyMongoError as e:
            raise self._failure(table, "insert", e)
        return doc

    async def select_single(self, table: str, **where: Any) -> Optional[dict]:
        try:
            return await self.db[table].find_one(where, _NO_MONGO_ID)
        except PyMongoError as e:
            raise self._failure(table, "select", e)

    async def select_many(
        self,
        table: str,
        order_by: Optional[str] = None,
        descending: bool = False,
        **where: Any,
    ) -> list[dict]:
        try:
            cursor = self.db[table].find(where, _NO_MONGO_ID)
            if order_by:
                cursor = cursor.sort(order_by, DESCENDING if descending else ASCENDING)
            return [row async for row in cursor]
        except PyMongoError as e:
            raise self._failure(table, "select", e)

    async def update(self, table: str, values: dict, **where: Any) -> Optional[dict]:
        try:
            return await self.db[table].find_one_and_update(
                where,
                {"$set": values},
                projection=_NO_MONGO_ID,
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            raise self._failure(table, "update", e)

    async def delete(self, table: str, **where: Any) -> int:
        try:
            result = await self.db[table].delete_many(where)
        except PyMongoError as e:
            raise self._failure(table, "delete", e)
        return result.deleted_count

    async def upsert(self, table: str, row: dict, key: str = "id") -> dict:
        # Two concurrent upserts of a new key can both miss and both try to
        # insert; the unique index rejects one, and the retry then updates.
        for attempt in (1, 2):
            try:
                await self.db[table].update_one(
                    {key: row[key]}, {"$set": row}, upsert=True
                )
                return row
            except DuplicateKeyError as e:
                if attempt == 2:
                    raise self._failure(table, "upsert", e)
                logger.debug(f"upsert race on {table}.{key}, retrying")
            except PyMongoError as e:
                raise self._failure(table, "upsert", e)

    @staticmethod
    def _failure(table: str, operation: str, exc: Exception) -> UpstreamFailure:
        logger.error(f"storage {operation} on '{table}' failed: {exc}")
        return UpstreamFailure("storage", f"{operation}:{table}", str(exc))
