"""
Shared fixtures.

Collaborators are replaced with an in-memory TableStore; the identity
provider is the real LocalIdentityProvider running on top of it.
"""

import os

# Cheap bcrypt rounds for the suite; must be set before poscore is imported
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "4")

import copy
import uuid
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from poscore.app import create_app
from poscore.auth import AuthEvents, LocalIdentityProvider
from poscore.auth.helpers import create_access_token, hash_password
from poscore.config import settings
from poscore.storage import TableStore
from poscore.utils.exceptions import UpstreamFailure

DEFAULT_BUSINESS = "biz-1"
DEFAULT_PASSWORD = "pw123456"


class MemoryStore(TableStore):
    """Dict-backed TableStore. `fail_on` holds (operation, table) pairs to break."""

    def __init__(self):
        self.tables: dict[str, list[dict]] = {}
        self.fail_on: set[tuple[str, str]] = set()

    def _check(self, operation: str, table: str) -> None:
        if (operation, table) in self.fail_on:
            raise UpstreamFailure("storage", f"{operation}:{table}", "injected failure")

    def rows(self, table: str) -> list[dict]:
        return self.tables.setdefault(table, [])

    def seed(self, table: str, row: dict) -> dict:
        self.rows(table).append(copy.deepcopy(row))
        return row

    @staticmethod
    def _matches(row: dict, where: dict) -> bool:
        return all(row.get(k) == v for k, v in where.items())

    async def insert(self, table, row):
        self._check("insert", table)
        doc = {"id": row.get("id") or str(uuid.uuid4()), **row}
        self.rows(table).append(copy.deepcopy(doc))
        return doc

    async def select_single(self, table, **where):
        self._check("select", table)
        for row in self.rows(table):
            if self._matches(row, where):
                return copy.deepcopy(row)
        return None

    async def select_many(self, table, order_by=None, descending=False, **where):
        self._check("select", table)
        found = [copy.deepcopy(r) for r in self.rows(table) if self._matches(r, where)]
        if order_by:
            found.sort(key=lambda r: r.get(order_by), reverse=descending)
        return found

    async def update(self, table, values, **where):
        self._check("update", table)
        for row in self.rows(table):
            if self._matches(row, where):
                row.update(copy.deepcopy(values))
                return copy.deepcopy(row)
        return None

    async def delete(self, table, **where):
        self._check("delete", table)
        before = len(self.rows(table))
        self.tables[table] = [r for r in self.rows(table) if not self._matches(r, where)]
        return before - len(self.tables[table])

    async def upsert(self, table, row, key="id"):
        self._check("upsert", table)
        for existing in self.rows(table):
            if existing.get(key) == row[key]:
                existing.update(copy.deepcopy(row))
                return row
        self.rows(table).append(copy.deepcopy(row))
        return row


def seed_user(
    store: MemoryStore,
    role: str = "OWNER",
    active: bool = True,
    business_id: str = DEFAULT_BUSINESS,
    email: str | None = None,
    password: str = DEFAULT_PASSWORD,
    with_profile: bool = True,
) -> str:
    """Insert an identity account (and normally its profile). Returns the identity id."""
    identity_id = str(uuid.uuid4())
    email = email or f"{role.lower()}-{identity_id[:8]}@example.com"
    now = datetime.now(timezone.utc)
    store.seed(
        "auth_accounts",
        {
            "id": identity_id,
            "email": email,
            "password_hash": hash_password(password),
            "email_confirmed": True,
            "metadata": {},
            "created_at": now,
        },
    )
    if with_profile:
        store.seed(
            "profiles",
            {
                "id": identity_id,
                "email": email,
                "name": role.title(),
                "role": role,
                "is_active": active,
                "business_id": business_id,
                "created_at": now,
                "updated_at": now,
            },
        )
    return identity_id


def session_token(identity_id: str) -> str:
    return create_access_token({"sub": identity_id, "typ": "session"})


def sign_in(client: TestClient, identity_id: str) -> TestClient:
    client.cookies.set(settings.session_cookie_name, session_token(identity_id))
    return client


@pytest.fixture
def store():
    s = MemoryStore()
    s.seed(
        "businesses",
        {"id": DEFAULT_BUSINESS, "name": "Corner Shop", "currency": "USD", "tax_rate": 15.0},
    )
    return s


@pytest.fixture
def events():
    return AuthEvents()


@pytest.fixture
def provider(store, events):
    return LocalIdentityProvider(store, events)


@pytest.fixture
def app(store, provider, events):
    return create_app(store=store, identity=provider, events=events)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
