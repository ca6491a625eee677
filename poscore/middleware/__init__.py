"""
Route gate middleware.

Runs on every request:
  1. Exempt paths (API, assets, public pages) go straight through
  2. Resolve the principal from the session (bounded by a timeout)
  3. Apply the page gate decision (see .gate)
  4. Forward any session rotation on whatever response is returned

Collaborator failures and timeouts are treated as "not signed in": the
gate never lets a request through because it could not check it.
"""

import asyncio

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import RedirectResponse

from poscore.auth.resolver import ANONYMOUS
from poscore.auth.session import SessionCarrier
from poscore.config import settings
from poscore.utils import Logger
from poscore.utils.exceptions import UpstreamFailure
from .gate import (
    ExemptionRules,
    GateAction,
    GateDecision,
    GateReason,
    GateState,
    decide,
)

logger = Logger("gate")


def exemption_rules_from_settings() -> ExemptionRules:
    return ExemptionRules(
        api_prefix=settings.api_prefix,
        static_prefixes=tuple(settings.static_prefixes),
        public_paths=tuple(settings.public_paths),
    )


class RouteGateMiddleware(BaseHTTPMiddleware):
    """Authentication + page-level role enforcement for every navigation."""

    def __init__(self, app, rules: ExemptionRules | None = None):
        super().__init__(app)
        self.rules = rules or exemption_rules_from_settings()

    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        if request.method == "OPTIONS" or self.rules.is_exempt(path):
            return await call_next(request)

        carrier = SessionCarrier()
        resolution = await self._resolve(request, carrier)
        table = request.app.state.route_table

        decision = decide(path, resolution.principal, table, self.rules)
        request.state.principal = resolution.principal
        self._log(request, decision, resolution)

        if decision.action is GateAction.REDIRECT:
            response = RedirectResponse(decision.location, status_code=307)
        else:
            response = await call_next(request)

        return carrier.apply(response)

    async def _resolve(self, request: Request, carrier: SessionCarrier):
        resolver = request.app.state.resolver
        try:
            return await asyncio.wait_for(
                resolver.resolve(request, carrier),
                timeout=settings.gate_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"identity resolution timed out after "
                f"{settings.gate_timeout_seconds}s on {request.url.path}"
            )
        except UpstreamFailure as e:
            logger.error(f"identity resolution failed on {request.url.path}: {e}")
        return ANONYMOUS

    @staticmethod
    def _log(request: Request, decision: GateDecision, resolution) -> None:
        path = request.url.path
        if decision.state is GateState.AUTHENTICATED_INACTIVE:
            logger.warning(f"inactive account {resolution.identity_id} blocked on {path}")
        elif decision.reason is GateReason.UNAUTHORIZED:
            logger.info(
                f"role {resolution.principal.role.value} denied {path} "
                f"→ {decision.target}"
            )
        else:
            logger.debug(f"{decision.state.value} {path} → {decision.action.value}")


__all__ = ["RouteGateMiddleware", "exemption_rules_from_settings"]
