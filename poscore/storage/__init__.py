from .base import TableStore
from .mongo import MongoTableStore

__all__ = ["TableStore", "MongoTableStore"]
