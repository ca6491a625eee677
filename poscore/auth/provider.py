"""
Identity provider — accounts, credentials and signed sessions.

The provider owns `auth_accounts` and the session cookie. It knows nothing
about businesses, roles or profiles; those live in `profiles`, keyed by the
identity id this provider hands out.
"""

import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional

from email_validator import EmailNotValidError, validate_email
from starlette.requests import Request

from poscore.config import settings
from poscore.storage import TableStore
from poscore.utils import Logger
from poscore.utils.exceptions import IdentityProviderError
from .events import AuthEvent, AuthEvents
from .helpers import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from .session import SessionCarrier

logger = Logger("identity")

ACCOUNTS = "auth_accounts"
MIN_PASSWORD_LENGTH = 6


class IdentityProvider(ABC):
    @abstractmethod
    async def get_current_identity(
        self, request: Request, carrier: SessionCarrier
    ) -> Optional[str]:
        """Identity bound to the request's session, or None. May rotate the session."""

    @abstractmethod
    async def create_account(
        self,
        email: str,
        password: str,
        confirmed: bool = True,
        metadata: Optional[dict] = None,
    ) -> str:
        ...

    @abstractmethod
    async def delete_account(self, identity_id: str) -> None:
        ...

    @abstractmethod
    async def update_password(self, identity_id: str, new_password: str) -> None:
        ...

    @abstractmethod
    async def update_email(self, identity_id: str, email: str) -> None:
        ...

    @abstractmethod
    async def verify_credentials(self, email: str, password: str) -> Optional[str]:
        ...

    @abstractmethod
    async def issue_session(self, identity_id: str, carrier: SessionCarrier) -> None:
        ...

    @abstractmethod
    async def end_session(self, carrier: SessionCarrier, identity_id: Optional[str] = None) -> None:
        ...


class LocalIdentityProvider(IdentityProvider):
    """Accounts stored in the row store; sessions are signed JWT cookies."""

    def __init__(self, store: TableStore, events: Optional[AuthEvents] = None):
        self.store = store
        self.events = events or AuthEvents()
        self.cookie_name = settings.session_cookie_name

    # ── Sessions ─────────────────────────────────────────────────
    async def get_current_identity(
        self, request: Request, carrier: SessionCarrier
    ) -> Optional[str]:
        token = request.cookies.get(self.cookie_name)
        if not token:
            return None

        payload = decode_access_token(token)
        if not payload or payload.get("typ") != "session" or not payload.get("sub"):
            carrier.delete(self.cookie_name)
            return None

        identity_id = payload["sub"]
        issued_at = datetime.fromtimestamp(payload.get("iat", 0), tz=timezone.utc)
        if datetime.now(timezone.utc) - issued_at >= timedelta(
            minutes=settings.session_refresh_after_minutes
        ):
            self._write_session(identity_id, carrier)

        account = await self.store.select_single(ACCOUNTS, id=identity_id)
        if not account:
            carrier.delete(self.cookie_name)
            return None
        return identity_id

    def _write_session(self, identity_id: str, carrier: SessionCarrier) -> None:
        max_age = settings.session_max_age_minutes
        token = create_access_token(
            {"sub": identity_id, "typ": "session"},
            expires_delta=timedelta(minutes=max_age),
        )
        carrier.set(self.cookie_name, token, max_age=max_age * 60)

    async def issue_session(self, identity_id: str, carrier: SessionCarrier) -> None:
        self._write_session(identity_id, carrier)
        await self.events.publish(AuthEvent.SIGNED_IN, identity_id)

    async def end_session(self, carrier: SessionCarrier, identity_id: Optional[str] = None) -> None:
        carrier.delete(self.cookie_name)
        await self.events.publish(AuthEvent.SIGNED_OUT, identity_id)

    # ── Accounts ─────────────────────────────────────────────────
    async def create_account(
        self,
        email: str,
        password: str,
        confirmed: bool = True,
        metadata: Optional[dict] = None,
    ) -> str:
        email = _checked_email(email)
        _check_password(password)
        if await self.store.select_single(ACCOUNTS, email=email):
            raise IdentityProviderError(
                "A user with this email address has already been registered"
            )

        identity_id = str(uuid.uuid4())
        await self.store.insert(
            ACCOUNTS,
            {
                "id": identity_id,
                "email": email,
                "password_hash": hash_password(password),
                "email_confirmed": confirmed,
                "metadata": metadata or {},
                "created_at": datetime.now(timezone.utc),
            },
        )
        logger.info(f"account created: {identity_id}")
        return identity_id

    async def delete_account(self, identity_id: str) -> None:
        removed = await self.store.delete(ACCOUNTS, id=identity_id)
        if not removed:
            raise IdentityProviderError("User not found")
        logger.info(f"account deleted: {identity_id}")

    async def update_password(self, identity_id: str, new_password: str) -> None:
        _check_password(new_password)
        updated = await self.store.update(
            ACCOUNTS,
            {
                "password_hash": hash_password(new_password),
                "updated_at": datetime.now(timezone.utc),
            },
            id=identity_id,
        )
        if not updated:
            raise IdentityProviderError("User not found")
        await self.events.publish(AuthEvent.PASSWORD_UPDATED, identity_id)

    async def update_email(self, identity_id: str, email: str) -> None:
        email = _checked_email(email)
        existing = await self.store.select_single(ACCOUNTS, email=email)
        if existing and existing["id"] != identity_id:
            raise IdentityProviderError(
                "A user with this email address has already been registered"
            )
        updated = await self.store.update(
            ACCOUNTS,
            {"email": email, "updated_at": datetime.now(timezone.utc)},
            id=identity_id,
        )
        if not updated:
            raise IdentityProviderError("User not found")
        await self.events.publish(AuthEvent.USER_UPDATED, identity_id)

    async def verify_credentials(self, email: str, password: str) -> Optional[str]:
        account = await self.store.select_single(ACCOUNTS, email=_normalize_email(email))
        if not account or not verify_password(password, account.get("password_hash", "")):
            return None
        return account["id"]


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _checked_email(email: str) -> str:
    """Normalized address, or IdentityProviderError when it is not a valid email."""
    email = _normalize_email(email or "")
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        raise IdentityProviderError("Unable to validate email address: invalid format") from None
    return email


def _check_password(password: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise IdentityProviderError(
            f"Password should be at least {MIN_PASSWORD_LENGTH} characters"
        )
