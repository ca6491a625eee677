from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from poscore.utils.logger import Logger
from .settings import settings

logger = Logger("database")


class DatabaseManager:
    """Process-wide MongoDB client. Every instance shares the same connection."""

    _instance = None
    _client: AsyncIOMotorClient | None = None
    _database: AsyncIOMotorDatabase | None = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    async def connect(self) -> AsyncIOMotorDatabase:
        if self._database is not None:
            return self._database
        if not settings.mongodb_atlas_uri:
            raise RuntimeError("MONGODB_ATLAS_URI is not configured")

        client = AsyncIOMotorClient(
            settings.mongodb_atlas_uri,
            serverSelectionTimeoutMS=settings.mongodb_timeout_ms,
            uuidRepresentation="standard",
            tz_aware=True,
        )
        try:
            await client.admin.command("ping")
        except Exception as e:
            client.close()
            logger.error(f"MongoDB unreachable: {e}")
            raise

        self._client = client
        self._database = client[settings.database_name]
        logger.info(f"Connected to MongoDB [{settings.database_name}]")
        return self._database

    def close(self) -> None:
        if self._client is None:
            return
        self._client.close()
        self._client = None
        self._database = None
        logger.info("MongoDB connection closed")

    @property
    def database(self) -> AsyncIOMotorDatabase:
        if self._database is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._database

    @property
    def is_connected(self) -> bool:
        return self._database is not None


db_manager = DatabaseManager()
