from .session import SessionCarrier
from .events import AuthEvent, AuthEvents
from .provider import IdentityProvider, LocalIdentityProvider
from .resolver import (
    ANONYMOUS,
    FallbackIdentityResolver,
    IdentityResolver,
    LegacyTokenIdentityResolver,
    Profile,
    Resolution,
    SessionIdentityResolver,
    load_profile,
)

__all__ = [
    "SessionCarrier",
    "AuthEvent",
    "AuthEvents",
    "IdentityProvider",
    "LocalIdentityProvider",
    "ANONYMOUS",
    "FallbackIdentityResolver",
    "IdentityResolver",
    "LegacyTokenIdentityResolver",
    "Profile",
    "Resolution",
    "SessionIdentityResolver",
    "load_profile",
]
