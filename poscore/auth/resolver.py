"""
Identity resolution: request → tenant-scoped profile (or anonymous).

Two independent implementations sit behind IdentityResolver:

  - SessionIdentityResolver      cookie session from the identity provider
  - LegacyTokenIdentityResolver  deprecated `Authorization: Bearer` tokens

FallbackIdentityResolver chains them while the legacy path is retired.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Sequence

from starlette.requests import Request

from poscore.config import settings
from poscore.rbac.roles import Role, parse_role
from poscore.storage import TableStore
from poscore.utils import Logger
from poscore.utils.exceptions import InconsistentStateError
from .helpers import decode_access_token
from .provider import IdentityProvider
from .session import SessionCarrier

logger = Logger("identity")

PROFILES = "profiles"

MISSING_PROFILE = "missing_profile"
UNKNOWN_ROLE = "unknown_role"


@dataclass(frozen=True)
class Profile:
    id: str
    email: str
    name: str
    role: Role
    is_active: bool
    business_id: str

    @classmethod
    def from_row(cls, row: dict) -> "Profile":
        """Raises ValueError when the stored role is not a known Role."""
        return cls(
            id=row["id"],
            email=row.get("email", ""),
            name=row.get("name", ""),
            role=parse_role(row.get("role")),
            is_active=bool(row.get("is_active", False)),
            business_id=row.get("business_id", ""),
        )

    def to_public(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role.value,
            "isActive": self.is_active,
            "businessId": self.business_id,
        }


@dataclass(frozen=True)
class Resolution:
    principal: Optional[Profile] = None
    identity_id: Optional[str] = None
    # Set when an identity exists but cannot be used (see MISSING_PROFILE)
    diagnostic: Optional[str] = None

    @property
    def authenticated(self) -> bool:
        return self.principal is not None


ANONYMOUS = Resolution()


async def load_profile(store: TableStore, identity_id: str) -> Profile:
    """Load the profile row for an identity. Raises InconsistentStateError."""
    row = await store.select_single(PROFILES, id=identity_id)
    if not row:
        raise InconsistentStateError(identity_id, MISSING_PROFILE)
    try:
        return Profile.from_row(row)
    except ValueError:
        raise InconsistentStateError(identity_id, UNKNOWN_ROLE) from None


async def _resolve_identity(store: TableStore, identity_id: str) -> Resolution:
    try:
        profile = await load_profile(store, identity_id)
    except InconsistentStateError as e:
        logger.warning(f"treating request as anonymous: {e}")
        return Resolution(identity_id=identity_id, diagnostic=e.condition)
    return Resolution(principal=profile, identity_id=identity_id)


class IdentityResolver(ABC):
    @abstractmethod
    async def resolve(self, request: Request, carrier: SessionCarrier) -> Resolution:
        """
        Resolve the principal behind `request`.

        Session rotations are written to `carrier`. Collaborator failures
        raise UpstreamFailure; callers decide how to degrade.
        """


class SessionIdentityResolver(IdentityResolver):
    def __init__(self, provider: IdentityProvider, store: TableStore):
        self.provider = provider
        self.store = store

    async def resolve(self, request: Request, carrier: SessionCarrier) -> Resolution:
        identity_id = await self.provider.get_current_identity(request, carrier)
        if not identity_id:
            return ANONYMOUS
        return await _resolve_identity(self.store, identity_id)


class LegacyTokenIdentityResolver(IdentityResolver):
    """
    Deprecated bearer-token sessions.

    Only the `sub` claim is trusted; role and status always come from the
    profile row, never from claims baked into an old token.
    """

    def __init__(self, store: TableStore, secret_key: Optional[str] = None):
        self.store = store
        self.secret_key = secret_key or settings.legacy_secret_key

    async def resolve(self, request: Request, carrier: SessionCarrier) -> Resolution:
        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return ANONYMOUS

        token = auth_header.split(" ", 1)[1].strip()
        payload = decode_access_token(token, secret_key=self.secret_key)
        if not payload or not payload.get("sub"):
            return ANONYMOUS

        return await _resolve_identity(self.store, str(payload["sub"]))


class FallbackIdentityResolver(IdentityResolver):
    """Ask each resolver in order; the first principal found wins."""

    def __init__(self, resolvers: Sequence[IdentityResolver]):
        self.resolvers = list(resolvers)

    async def resolve(self, request: Request, carrier: SessionCarrier) -> Resolution:
        first_diagnostic = None
        for resolver in self.resolvers:
            resolution = await resolver.resolve(request, carrier)
            if resolution.authenticated:
                return resolution
            if resolution.diagnostic and first_diagnostic is None:
                first_diagnostic = resolution
        return first_diagnostic or ANONYMOUS
