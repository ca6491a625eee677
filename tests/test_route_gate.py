"""Tests for the page gate: the pure decision and the middleware around it."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from poscore.auth import ANONYMOUS, IdentityResolver, Profile
from poscore.config import settings
from poscore.middleware.gate import (
    ExemptionRules,
    GateAction,
    GateReason,
    GateState,
    decide,
)
from poscore.rbac import Role
from poscore.utils.exceptions import UpstreamFailure

from conftest import seed_user, sign_in


def profile(role: Role, active: bool = True) -> Profile:
    return Profile(
        id="u-1",
        email="u@example.com",
        name="U",
        role=role,
        is_active=active,
        business_id="biz-1",
    )


class TestDecide:
    @pytest.mark.parametrize(
        "path",
        ["/api/v1/users/", "/api", "/static/app.js", "/_next/chunk", "/favicon.ico", "/login", "/signup", "/health"],
    )
    def test_exempt_paths_pass_without_identity(self, path):
        decision = decide(path, None)
        assert decision.action is GateAction.PASS
        assert decision.state is GateState.EXEMPT

    def test_api_paths_pass_even_for_inactive_accounts(self):
        decision = decide("/api/v1/settings/", profile(Role.OWNER, active=False))
        assert decision.action is GateAction.PASS

    def test_anonymous_goes_to_login(self):
        decision = decide("/checkout", None)
        assert decision.action is GateAction.REDIRECT
        assert decision.location == "/login"
        assert decision.state is GateState.UNAUTHENTICATED

    def test_inactive_account_is_rejected_before_role_routing(self):
        decision = decide("/settings", profile(Role.OWNER, active=False))
        assert decision.state is GateState.AUTHENTICATED_INACTIVE
        assert decision.reason is GateReason.ACCOUNT_INACTIVE
        assert decision.location == "/login?error=account_inactive"

    def test_inactive_cashier_on_forbidden_page_still_gets_account_inactive(self):
        decision = decide("/reports", profile(Role.CASHIER, active=False))
        assert decision.location == "/login?error=account_inactive"

    def test_cashier_on_reports_goes_to_checkout(self):
        decision = decide("/reports", profile(Role.CASHIER))
        assert decision.state is GateState.AUTHENTICATED_ACTIVE_UNAUTHORIZED
        assert decision.location == "/checkout?error=unauthorized"

    def test_stock_manager_on_checkout_goes_to_products(self):
        decision = decide("/checkout", profile(Role.STOCK_MANAGER))
        assert decision.location == "/products?error=unauthorized"

    def test_empty_route_table_only_requires_an_active_account(self):
        decision = decide("/users", profile(Role.CASHIER), table=[])
        assert decision.action is GateAction.PASS

    @pytest.mark.parametrize(
        "role,path",
        [
            (Role.OWNER, "/settings"),
            (Role.OWNER, "/checkout"),
            (Role.SUPER_ADMIN, "/reports"),
            (Role.CASHIER, "/transactions/42"),
            (Role.STOCK_MANAGER, "/products"),
            (Role.CASHIER, "/categories"),
        ],
    )
    def test_permitted_pages_pass(self, role, path):
        decision = decide(path, profile(role))
        assert decision.action is GateAction.PASS
        assert decision.state is GateState.AUTHENTICATED_ACTIVE_AUTHORIZED

    @pytest.mark.parametrize(
        "role,target",
        [(Role.CASHIER, "/checkout"), (Role.STOCK_MANAGER, "/products")],
    )
    def test_root_sends_roles_to_their_landing_page(self, role, target):
        decision = decide("/", profile(role))
        assert decision.action is GateAction.REDIRECT
        assert decision.location == target
        assert decision.reason is None

    @pytest.mark.parametrize("role", [Role.OWNER, Role.SUPER_ADMIN])
    def test_root_is_shown_to_top_level_roles(self, role):
        assert decide("/", profile(role)).action is GateAction.PASS

    def test_custom_exemption_rules(self):
        rules = ExemptionRules(api_prefix="/backend", public_paths=("/welcome",))
        assert decide("/backend/x", None, rules=rules).action is GateAction.PASS
        assert decide("/welcome", None, rules=rules).action is GateAction.PASS
        assert decide("/api/x", None, rules=rules).location == "/login"

    def test_redirect_targets_carry_no_identifiers(self):
        decision = decide("/reports", profile(Role.CASHIER))
        assert "u-1" not in decision.location
        assert "biz-1" not in decision.location


class TestRouteGateMiddleware:
    def test_anonymous_page_view_redirects_to_login(self, client):
        response = client.get("/checkout", follow_redirects=False)
        assert response.status_code == 307
        assert response.headers["location"] == "/login"

    def test_login_page_is_public(self, client):
        response = client.get("/login?error=account_inactive")
        assert response.status_code == 200
        assert "deactivated" in response.text

    def test_api_routes_are_never_redirected(self, client):
        response = client.get("/api/v1/auth/me", follow_redirects=False)
        assert response.status_code == 401
        assert response.headers["content-type"].startswith("application/json")

    def test_owner_passes_to_settings(self, client, store):
        sign_in(client, seed_user(store, "OWNER"))
        response = client.get("/settings", follow_redirects=False)
        assert response.status_code == 200
        assert 'data-page="Settings"' in response.text

    def test_inactive_owner_is_sent_to_login(self, client, store):
        sign_in(client, seed_user(store, "OWNER", active=False))
        response = client.get("/settings", follow_redirects=False)
        assert response.status_code == 307
        assert response.headers["location"] == "/login?error=account_inactive"

    def test_cashier_is_sent_to_checkout(self, client, store):
        sign_in(client, seed_user(store, "CASHIER"))
        response = client.get("/reports", follow_redirects=False)
        assert response.status_code == 307
        assert response.headers["location"] == "/checkout?error=unauthorized"

    def test_cashier_follows_redirect_to_checkout_with_notice(self, client, store):
        sign_in(client, seed_user(store, "CASHIER"))
        response = client.get("/reports")
        assert response.status_code == 200
        assert 'data-page="Checkout"' in response.text
        assert "do not have access" in response.text

    def test_identity_without_profile_is_treated_as_anonymous(self, client, store):
        sign_in(client, seed_user(store, "OWNER", with_profile=False))
        response = client.get("/", follow_redirects=False)
        assert response.headers["location"] == "/login"

    def test_unknown_role_in_profile_means_no_access(self, client, store):
        identity_id = seed_user(store, "OWNER")
        store.rows("profiles")[-1]["role"] = "owner "
        sign_in(client, identity_id)
        response = client.get("/", follow_redirects=False)
        assert response.headers["location"] == "/login"

    def test_garbage_cookie_is_cleared(self, client):
        client.cookies.set(settings.session_cookie_name, "not-a-jwt")
        response = client.get("/products", follow_redirects=False)
        assert response.headers["location"] == "/login"
        assert f'{settings.session_cookie_name}=""' in response.headers["set-cookie"]

    def test_session_rotation_is_forwarded_on_redirects(self, client, store, monkeypatch):
        monkeypatch.setattr(settings, "session_refresh_after_minutes", 0)
        sign_in(client, seed_user(store, "OWNER", active=False))
        response = client.get("/settings", follow_redirects=False)
        assert response.status_code == 307
        assert response.headers["location"] == "/login?error=account_inactive"
        assert settings.session_cookie_name in response.headers["set-cookie"]

    def test_session_rotation_is_forwarded_on_pass_through(self, client, store, monkeypatch):
        monkeypatch.setattr(settings, "session_refresh_after_minutes", 0)
        sign_in(client, seed_user(store, "OWNER"))
        response = client.get("/customers", follow_redirects=False)
        assert response.status_code == 200
        assert settings.session_cookie_name in response.headers["set-cookie"]

    def test_fresh_session_is_not_rotated(self, client, store):
        sign_in(client, seed_user(store, "OWNER"))
        response = client.get("/customers", follow_redirects=False)
        assert response.status_code == 200
        assert "set-cookie" not in response.headers


class _SlowResolver(IdentityResolver):
    async def resolve(self, request, carrier):
        await asyncio.sleep(5)
        return ANONYMOUS


class _BrokenResolver(IdentityResolver):
    def __init__(self):
        self.calls = 0

    async def resolve(self, request, carrier):
        self.calls += 1
        carrier.set(settings.session_cookie_name, "rotated", max_age=60)
        raise UpstreamFailure("storage", "select:profiles")


class TestGateFailsClosed:
    def test_timeout_redirects_to_login(self, app, monkeypatch):
        monkeypatch.setattr(settings, "gate_timeout_seconds", 0.05)
        app.state.resolver = _SlowResolver()
        with TestClient(app) as client:
            response = client.get("/settings", follow_redirects=False)
        assert response.status_code == 307
        assert response.headers["location"] == "/login"

    def test_upstream_failure_redirects_to_login_and_keeps_rotation(self, app):
        resolver = _BrokenResolver()
        app.state.resolver = resolver
        with TestClient(app) as client:
            response = client.get("/settings", follow_redirects=False)
        assert resolver.calls == 1
        assert response.headers["location"] == "/login"
        assert f"{settings.session_cookie_name}=rotated" in response.headers["set-cookie"]

    def test_broken_resolver_is_not_consulted_for_exempt_paths(self, app):
        resolver = _BrokenResolver()
        app.state.resolver = resolver
        with TestClient(app) as client:
            response = client.get("/health")
        assert response.status_code == 200
        assert resolver.calls == 0
