"""
Business onboarding and settings.

Signup spans two systems with no shared transaction (the row store and the
identity provider), so it runs as a sequence of steps with one explicit
compensation:

  1. Validate required fields                 → 400, nothing written
  2. Create the business row                  → 500 on failure
  3. Create the identity account              → 400 on failure; business row stays
  4. Upsert the OWNER profile (keyed by id)   → 500 on failure; account deleted,
                                                business row stays

A business row left behind by steps 3/4 has no owner. It is kept so that
support can recover it; signup does not delete it.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from fastapi import status

from poscore.auth.provider import IdentityProvider
from poscore.auth.resolver import PROFILES
from poscore.config import settings
from poscore.rbac import Role
from poscore.storage import TableStore
from poscore.tenant import get_business
from poscore.utils import Logger, serialize_doc
from poscore.utils.exceptions import (
    IdentityProviderError,
    NotFoundError,
    UpstreamFailure,
)
from .schemas import SignupRequest

logger = Logger("signup")

BUSINESSES = "businesses"


class SignupOutcome(str, Enum):
    OK = "ok"
    INVALID = "invalid"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass(frozen=True)
class SignupResult:
    outcome: SignupOutcome
    business_id: Optional[str] = None
    message: Optional[str] = None
    # failing step: "business", "account" or "profile"
    step: Optional[str] = None

    @property
    def status_code(self) -> int:
        return {
            SignupOutcome.OK: status.HTTP_200_OK,
            SignupOutcome.INVALID: status.HTTP_400_BAD_REQUEST,
            SignupOutcome.REJECTED: status.HTTP_400_BAD_REQUEST,
            SignupOutcome.FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
        }[self.outcome]


class SignupOrchestrator:
    def __init__(self, store: TableStore, provider: IdentityProvider):
        self.store = store
        self.provider = provider

    async def signup(self, data: SignupRequest) -> SignupResult:
        # ── 1. Required fields ───────────────────────────────────
        missing = data.missing_fields()
        if missing:
            return SignupResult(SignupOutcome.INVALID, message="Missing required fields")

        email = data.email.strip().lower()
        now = datetime.now(timezone.utc)

        # ── 2. Business ──────────────────────────────────────────
        try:
            business = await self.store.insert(
                BUSINESSES,
                {
                    "name": data.business_name.strip(),
                    "currency": settings.default_currency,
                    "tax_rate": settings.default_tax_rate,
                    "created_at": now,
                    "updated_at": now,
                },
            )
        except UpstreamFailure as e:
            logger.error(f"signup: business creation failed: {e}")
            return SignupResult(
                SignupOutcome.FAILED, message="Failed to create business", step="business"
            )
        business_id = business["id"]

        # ── 3. Identity account ──────────────────────────────────
        try:
            identity_id = await self.provider.create_account(
                email=email,
                password=data.password,
                confirmed=True,
                metadata={"name": data.name, "business_id": business_id},
            )
        except IdentityProviderError as e:
            logger.warning(
                f"signup: account rejected ({e.message}); business {business_id} left without owner"
            )
            return SignupResult(SignupOutcome.REJECTED, message=e.message)
        except UpstreamFailure as e:
            logger.error(
                f"signup: account creation failed: {e}; business {business_id} left without owner"
            )
            return SignupResult(
                SignupOutcome.REJECTED, message="Failed to create user", step="account"
            )

        # ── 4. Owner profile ─────────────────────────────────────
        try:
            await self.store.upsert(
                PROFILES,
                {
                    "id": identity_id,
                    "email": email,
                    "name": data.name.strip(),
                    "role": Role.OWNER.value,
                    "business_id": business_id,
                    "is_active": True,
                    "created_at": now,
                    "updated_at": now,
                },
            )
        except UpstreamFailure as e:
            logger.error(f"signup: profile creation failed: {e}")
            await self._remove_account(identity_id)
            return SignupResult(
                SignupOutcome.FAILED,
                message="Failed to create user profile",
                step="profile",
            )

        logger.info(f"signup complete: business {business_id}, owner {identity_id}")
        return SignupResult(SignupOutcome.OK, business_id=business_id)

    async def _remove_account(self, identity_id: str) -> None:
        try:
            await self.provider.delete_account(identity_id)
            logger.info(f"signup: removed account {identity_id} after profile failure")
        except (IdentityProviderError, UpstreamFailure) as e:
            logger.error(
                f"signup: could not remove account {identity_id}; it has no profile: {e}"
            )


class BusinessService:
    """Read and update the settings of the caller's own business."""

    def __init__(self, store: TableStore, business_id: str):
        self.store = store
        self.business_id = business_id

    async def get_settings(self) -> dict:
        business = await get_business(self.store, self.business_id)
        if not business:
            raise NotFoundError("Business not found")
        return serialize_doc(business)

    async def update_settings(self, update_data: dict) -> dict:
        clean = {k: v for k, v in update_data.items() if v is not None}
        clean["updated_at"] = datetime.now(timezone.utc)

        business = await self.store.update(BUSINESSES, clean, id=self.business_id)
        if not business:
            raise NotFoundError("Business not found")
        return serialize_doc(business)
