"""Authentication service — password login and logout on top of the identity provider."""

from datetime import datetime, timezone

from fastapi import HTTPException, status

from poscore.rbac import login_landing
from poscore.storage import TableStore
from poscore.utils import Logger
from poscore.utils.exceptions import InconsistentStateError, InactiveAccountError
from .provider import IdentityProvider
from .resolver import PROFILES, load_profile
from .session import SessionCarrier

logger = Logger("auth")


class AuthService:
    def __init__(self, store: TableStore, provider: IdentityProvider):
        self.store = store
        self.provider = provider

    async def login(self, email: str, password: str, carrier: SessionCarrier) -> dict:
        """
        1. Verify credentials with the identity provider.
        2. Load the tenant-scoped profile; refuse inactive accounts.
        3. Issue the session cookie and return the role's landing page.
        """
        # ── 1. Credentials ───────────────────────────────────────
        identity_id = await self.provider.verify_credentials(email, password)
        if not identity_id:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid email or password",
            )

        # ── 2. Profile ───────────────────────────────────────────
        try:
            profile = await load_profile(self.store, identity_id)
        except InconsistentStateError as e:
            logger.warning(f"login refused: {e}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Account setup is incomplete. Contact your administrator.",
            )

        if not profile.is_active:
            raise InactiveAccountError()

        # ── 3. Session ───────────────────────────────────────────
        await self.provider.issue_session(identity_id, carrier)
        await self.store.update(
            PROFILES, {"last_login": datetime.now(timezone.utc)}, id=identity_id
        )
        logger.info(f"login: {identity_id} ({profile.role.value})")

        return {
            "user": profile.to_public(),
            "redirectTo": login_landing(profile.role),
        }

    async def logout(self, carrier: SessionCarrier, identity_id: str | None = None) -> None:
        await self.provider.end_session(carrier, identity_id)
