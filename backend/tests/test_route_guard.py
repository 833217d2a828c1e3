"""Tests for route protection: path classification, the guard middleware, role gates."""
import pytest
from fastapi import Depends, FastAPI
from httpx import ASGITransport, AsyncClient

from app.api.auth import RoleGate
from app.core.config import settings
from app.core.errors import register_error_handlers
from app.core.roles import Role, is_role_allowed, parse_role
from app.core.routes import RouteKind, classify_path, login_redirect_url

from conftest import COOKIE_NAME, session_token, signup


# =============================================================================
# PATH CLASSIFICATION (pure functions)
# =============================================================================

class TestClassifyPath:

    @pytest.mark.parametrize(
        "path",
        ["/dashboard", "/dashboard/", "/profile", "/profile/edit", "/contests/create", "/achievements"],
    )
    def test_protected(self, path):
        assert classify_path(path) is RouteKind.PROTECTED

    @pytest.mark.parametrize("path", ["/login", "/signup", "/login/"])
    def test_auth_only(self, path):
        assert classify_path(path) is RouteKind.AUTH_ONLY

    @pytest.mark.parametrize(
        "path",
        ["/", "/contests", "/freelancers", "/api/v1/health", "/dashboards", "/profiles", "/login-help"],
    )
    def test_public(self, path):
        assert classify_path(path) is RouteKind.PUBLIC

    def test_login_redirect_url(self):
        assert login_redirect_url("/login", "/dashboard") == "/login?callbackUrl=/dashboard"
        assert (
            login_redirect_url("/login", "/contests/create")
            == "/login?callbackUrl=/contests/create"
        )


# =============================================================================
# ROLES
# =============================================================================

class TestRoles:

    def test_single_role(self):
        assert is_role_allowed(Role.CLIENT, Role.CLIENT) is True
        assert is_role_allowed(Role.FREELANCER, Role.CLIENT) is False

    def test_collection(self):
        assert is_role_allowed(Role.FREELANCER, [Role.CLIENT, Role.FREELANCER]) is True
        assert is_role_allowed(Role.FREELANCER, {Role.CLIENT}) is False

    def test_empty_collection(self):
        assert is_role_allowed(Role.CLIENT, []) is False

    def test_no_role(self):
        assert is_role_allowed(None, [Role.CLIENT, Role.FREELANCER]) is False

    def test_parse_role(self):
        assert parse_role("CLIENT") is Role.CLIENT
        assert parse_role("ADMIN") is None
        assert parse_role(None) is None


# =============================================================================
# GUARD MIDDLEWARE
# =============================================================================

class TestRouteGuard:

    async def test_anonymous_protected_page_redirects_to_login(self, client):
        response = await client.get("/dashboard")
        assert response.status_code == 307
        assert response.headers["location"] == "/login?callbackUrl=/dashboard"

    async def test_callback_keeps_sub_path(self, client):
        response = await client.get("/profile/settings")
        assert response.status_code == 307
        assert response.headers["location"] == "/login?callbackUrl=/profile/settings"

    async def test_forged_cookie_is_not_a_session(self, client):
        client.cookies.set(COOKIE_NAME, "forged-token")
        response = await client.get("/achievements")
        assert response.status_code == 307
        assert response.headers["location"].startswith("/login?callbackUrl=")

    async def test_session_reaches_protected_page(self, logged_in_client, freelancer):
        response = await logged_in_client.get("/dashboard")
        assert response.status_code == 200
        data = response.json()
        assert data["page"] == "dashboard"
        assert data["user_id"] == freelancer["id"]
        assert data["role"] == "FREELANCER"

    async def test_signed_in_user_bounced_from_login(self, logged_in_client):
        response = await logged_in_client.get("/login")
        assert response.status_code == 307
        assert response.headers["location"] == "/dashboard"

    async def test_signed_in_user_bounced_from_signup(self, logged_in_client):
        response = await logged_in_client.get("/signup")
        assert response.status_code == 307
        assert response.headers["location"] == "/dashboard"

    async def test_anonymous_login_page(self, client):
        response = await client.get("/login")
        assert response.status_code == 200
        assert response.json() == {"page": "login", "user_id": None, "role": None}

    async def test_public_paths_untouched(self, client):
        response = await client.get("/api/v1/contests")
        assert response.status_code == 200


# =============================================================================
# ROLE-GATED PAGES
# =============================================================================

class TestContestCreatePage:

    async def test_freelancer_redirected(self, client):
        await signup(client, email="f@example.com", role="FREELANCER")
        response = await client.get("/contests/create")
        assert response.status_code == 307
        assert response.headers["location"] == "/dashboard"

    async def test_client_allowed(self, client):
        await signup(client, email="c@example.com", role="CLIENT")
        response = await client.get("/contests/create")
        assert response.status_code == 200
        assert response.json()["page"] == "contests/create"


class TestRoleGateDependency:

    @pytest.fixture
    async def gated_client(self):
        app = FastAPI()
        app.state.settings = settings
        register_error_handlers(app)

        @app.get("/clients-only")
        async def clients_only(identity=Depends(RoleGate(Role.CLIENT))):
            return {"id": identity.id}

        @app.get("/clients-only-page")
        async def clients_only_page(identity=Depends(RoleGate([Role.CLIENT], redirect=True))):
            return {"id": identity.id}

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac

    async def test_allowed(self, gated_client):
        gated_client.cookies.set(COOKIE_NAME, session_token("c-1", Role.CLIENT))
        response = await gated_client.get("/clients-only")
        assert response.status_code == 200
        assert response.json() == {"id": "c-1"}

    async def test_wrong_role(self, gated_client):
        gated_client.cookies.set(COOKIE_NAME, session_token("f-1", Role.FREELANCER))
        response = await gated_client.get("/clients-only")
        assert response.status_code == 403
        assert "error" in response.json()

    async def test_no_session(self, gated_client):
        response = await gated_client.get("/clients-only")
        assert response.status_code == 401

    async def test_redirecting_gate_sends_other_roles_to_landing(self, gated_client):
        gated_client.cookies.set(COOKIE_NAME, session_token("f-1", Role.FREELANCER))
        response = await gated_client.get("/clients-only-page")
        assert response.status_code == 307
        assert response.headers["location"] == settings.default_landing_path

    async def test_redirecting_gate_allows_role(self, gated_client):
        gated_client.cookies.set(COOKIE_NAME, session_token("c-1", Role.CLIENT))
        response = await gated_client.get("/clients-only-page")
        assert response.status_code == 200
