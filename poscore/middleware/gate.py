"""
Page gate decision.

Evaluated in a fixed order; the first step that produces an outcome wins:

  1. exempt paths (API, static assets, public pages)  → pass
  2. no principal                                      → /login
  3. inactive account                                  → /login?error=account_inactive
  4. route table match that excludes the role          → role home ?error=unauthorized
  5. "/" for roles with their own landing page         → that page
  6. otherwise                                         → pass
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence
from urllib.parse import urlencode

from poscore.auth.resolver import Profile
from poscore.rbac.roles import ROLE_HOME, home_path
from poscore.rbac.routes import DEFAULT_ROUTE_PERMISSIONS, RoutePermission, match_route

LOGIN_PATH = "/login"


class GateState(str, Enum):
    EXEMPT = "EXEMPT"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    AUTHENTICATED_INACTIVE = "AUTHENTICATED_INACTIVE"
    AUTHENTICATED_ACTIVE_AUTHORIZED = "AUTHENTICATED_ACTIVE_AUTHORIZED"
    AUTHENTICATED_ACTIVE_UNAUTHORIZED = "AUTHENTICATED_ACTIVE_UNAUTHORIZED"


class GateAction(str, Enum):
    PASS = "PASS"
    REDIRECT = "REDIRECT"


class GateReason(str, Enum):
    ACCOUNT_INACTIVE = "account_inactive"
    UNAUTHORIZED = "unauthorized"


@dataclass(frozen=True)
class GateDecision:
    action: GateAction
    state: GateState
    target: Optional[str] = None
    reason: Optional[GateReason] = None

    @property
    def location(self) -> Optional[str]:
        """Redirect URL with the machine-readable reason, if any."""
        if self.target is None:
            return None
        if self.reason is None:
            return self.target
        return f"{self.target}?{urlencode({'error': self.reason.value})}"


@dataclass(frozen=True)
class ExemptionRules:
    api_prefix: str = "/api"
    static_prefixes: tuple[str, ...] = ("/static", "/_next")
    public_paths: tuple[str, ...] = ("/login", "/signup")
    health_path: str = "/health"

    def is_exempt(self, path: str) -> bool:
        if path.startswith(self.api_prefix):
            return True
        if any(path.startswith(p) for p in self.static_prefixes):
            return True
        # file-like paths: /favicon.ico, /robots.txt, /openapi.json
        if "." in path:
            return True
        if path == self.health_path:
            return True
        return any(path.startswith(p) for p in self.public_paths)


def _pass(state: GateState) -> GateDecision:
    return GateDecision(GateAction.PASS, state)


def _redirect(
    state: GateState, target: str, reason: Optional[GateReason] = None
) -> GateDecision:
    return GateDecision(GateAction.REDIRECT, state, target, reason)


def decide(
    path: str,
    principal: Optional[Profile],
    table: Sequence[RoutePermission] = DEFAULT_ROUTE_PERMISSIONS,
    rules: ExemptionRules = ExemptionRules(),
) -> GateDecision:
    if rules.is_exempt(path):
        return _pass(GateState.EXEMPT)

    if principal is None:
        return _redirect(GateState.UNAUTHENTICATED, LOGIN_PATH)

    if not principal.is_active:
        return _redirect(
            GateState.AUTHENTICATED_INACTIVE, LOGIN_PATH, GateReason.ACCOUNT_INACTIVE
        )

    matched = match_route(path, table)
    if matched and not matched.allows(principal.role):
        return _redirect(
            GateState.AUTHENTICATED_ACTIVE_UNAUTHORIZED,
            home_path(principal.role),
            GateReason.UNAUTHORIZED,
        )

    if path == "/" and principal.role in ROLE_HOME:
        return _redirect(
            GateState.AUTHENTICATED_ACTIVE_AUTHORIZED, ROLE_HOME[principal.role]
        )

    return _pass(GateState.AUTHENTICATED_ACTIVE_AUTHORIZED)
