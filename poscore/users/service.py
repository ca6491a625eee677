"""User service — staff accounts of one business (identity account + profile row)."""

from datetime import datetime, timezone

from fastapi import HTTPException, status

from poscore.auth.provider import IdentityProvider
from poscore.auth.resolver import PROFILES, Profile
from poscore.storage import TableStore
from poscore.tenant import TenantScope
from poscore.utils import Logger, serialize_doc
from poscore.utils.exceptions import (
    IdentityProviderError,
    NotFoundError,
    UpstreamFailure,
    ValidationError,
)

logger = Logger("users")


def _public(row: dict) -> dict:
    safe = serialize_doc(row)
    return {
        "id": safe["id"],
        "email": safe.get("email"),
        "name": safe.get("name"),
        "role": safe.get("role"),
        "isActive": bool(safe.get("is_active")),
        "createdAt": safe.get("created_at"),
        "updatedAt": safe.get("updated_at"),
    }


class UserService:
    def __init__(self, store: TableStore, provider: IdentityProvider, business_id: str):
        self.provider = provider
        self.scope = TenantScope(store, business_id)

    async def list_users(self) -> list[dict]:
        rows = await self.scope.select_many(PROFILES, order_by="created_at", descending=True)
        return [_public(r) for r in rows]

    async def create_user(self, data: dict, created_by: str) -> dict:
        """Create the identity account, then its profile. The account is removed if the profile write fails."""
        try:
            identity_id = await self.provider.create_account(
                email=data["email"],
                password=data["password"],
                confirmed=True,
                metadata={"name": data["name"], "business_id": self.scope.business_id},
            )
        except IdentityProviderError as e:
            raise ValidationError(e.message)

        now = datetime.now(timezone.utc)
        try:
            row = await self.scope.upsert(
                PROFILES,
                {
                    "id": identity_id,
                    "email": data["email"].strip().lower(),
                    "name": data["name"],
                    "role": data["role"].value,
                    "is_active": True,
                    "created_by": created_by,
                    "created_at": now,
                    "updated_at": now,
                },
            )
        except UpstreamFailure:
            await self.provider.delete_account(identity_id)
            raise

        logger.info(f"user {identity_id} created by {created_by}")
        return _public(row)

    async def update_user(self, actor: Profile, user_id: str, data: dict) -> dict:
        await self._verify_actor(actor, data.pop("verification_password"))
        await self._get(user_id)

        try:
            if data.get("email"):
                await self.provider.update_email(user_id, data["email"])
            if data.get("new_password"):
                await self.provider.update_password(user_id, data["new_password"])
        except IdentityProviderError as e:
            raise ValidationError(e.message)

        changes = {
            k: v for k, v in data.items() if k in ("name", "email", "role") and v is not None
        }
        if "role" in changes:
            changes["role"] = changes["role"].value
        if "email" in changes:
            changes["email"] = changes["email"].strip().lower()
        changes["updated_at"] = datetime.now(timezone.utc)

        row = await self.scope.update(PROFILES, changes, id=user_id)
        logger.info(f"user {user_id} updated by {actor.id}: {sorted(changes)}")
        return _public(row)

    async def deactivate_user(self, actor: Profile, user_id: str, verification_password: str) -> dict:
        """Soft delete: profiles stay for historical records, only `is_active` flips."""
        await self._verify_actor(actor, verification_password)
        await self._get(user_id)
        row = await self.scope.update(
            PROFILES,
            {"is_active": False, "updated_at": datetime.now(timezone.utc)},
            id=user_id,
        )
        logger.info(f"user {user_id} deactivated by {actor.id}")
        return _public(row)

    async def _get(self, user_id: str) -> dict:
        row = await self.scope.select_single(PROFILES, id=user_id)
        if not row:
            raise NotFoundError("User not found")
        return row

    async def _verify_actor(self, actor: Profile, password: str) -> None:
        if not password:
            raise ValidationError("Password verification required")
        if await self.provider.verify_credentials(actor.email, password) != actor.id:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid password"
            )
