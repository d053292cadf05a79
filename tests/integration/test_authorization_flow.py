"""End-to-end tests for guarded routes, login and tenant scoping."""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from fleetguard.api.guard import get_guard, require_permission
from fleetguard.api.main import create_app
from fleetguard.core.config import Settings
from fleetguard.core.password_reset import create_reset_token
from fleetguard.core.security import SessionClaims, TokenService
from fleetguard.db.models import PasswordResetToken
from fleetguard.db.repository import SqlAlchemyStore
from fleetguard.db.session import create_db_engine, create_session_factory
from tests.conftest import TEST_SECRET
from tests.factories import TEST_PASSWORD, create_company, create_role, create_user

pytestmark = pytest.mark.integration


@pytest.fixture
def handler_calls():
    return []


@pytest.fixture
def app(settings, store, tokens, handler_calls):
    app = create_app(settings=settings, store=store, tokens=tokens)

    @app.get("/test/drivers")
    @require_permission(["view driver", "edit driver"], require_all=True)
    async def edit_drivers(request: Request, user: SessionClaims):
        handler_calls.append(user.id)
        return {"ok": True, "user": user.id}

    @app.get("/test/strict")
    @require_permission("view driver", allow_super_admin=False)
    def strict(request: Request, user: SessionClaims):
        handler_calls.append(user.id)
        return {"ok": True}

    @app.get("/test/inline")
    def inline(request: Request):
        guard = get_guard(request)
        has_access, user = guard.check_permission(request, ["view driver", "view vehicles"])
        caller = guard.get_auth_user(request)
        return {
            "has_access": has_access,
            "user": user.id if user else None,
            "caller": caller.id if caller else None,
        }

    return app


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def bearer(tokens, claims_for):
    """Authorization header for a stored user."""
    def _bearer(user, **overrides):
        return {"Authorization": f"Bearer {tokens.issue(claims_for(user, **overrides))}"}
    return _bearer


class TestTokenGate:
    """Requests rejected before any permission is evaluated."""

    def test_health_is_public(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_missing_token(self, client, handler_calls):
        response = client.get("/test/drivers")

        assert response.status_code == 401
        assert response.json() == {"error": "Authentication required"}
        assert response.headers["www-authenticate"] == "Bearer"
        assert handler_calls == []

    def test_garbage_token(self, client, handler_calls):
        response = client.get("/test/drivers", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid token"}
        assert handler_calls == []

    def test_expired_token(self, client, db_session, claims_for):
        user = create_user(db_session)
        issued = datetime.now(timezone.utc) - timedelta(days=8)
        old_tokens = TokenService(secret=TEST_SECRET, clock=lambda: issued)
        token = old_tokens.issue(claims_for(user))

        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid token"}

    def test_token_signed_with_other_secret(self, client, db_session, claims_for):
        user = create_user(db_session)
        token = TokenService(secret="someone-else").issue(claims_for(user))

        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401


class TestCors:
    """Cross-origin access follows the configured origins."""

    def _preflight(self, client, origin):
        return client.options(
            "/api/auth/me",
            headers={"Origin": origin, "Access-Control-Request-Method": "GET"},
        )

    def test_configured_origin_is_allowed(self, client):
        response = self._preflight(client, "http://localhost:3000")

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "http://localhost:3000"

    def test_other_origin_is_refused(self, client):
        response = self._preflight(client, "https://evil.example.com")

        assert response.status_code == 400
        assert "access-control-allow-origin" not in response.headers


class TestPermissionGate:
    """Admin bypass and permission checks."""

    def test_admin_bypasses_without_permission_rows(self, client, db_session, bearer, handler_calls):
        admin_role = create_role(db_session, name="Admin")
        admin = create_user(db_session, role=admin_role)

        response = client.get("/test/drivers", headers=bearer(admin))

        assert response.status_code == 200
        assert handler_calls == [str(admin.id)]

    @pytest.mark.parametrize("role_name", ["super admin", "SuperAdmin", "super_user"])
    def test_admin_name_variants(self, client, db_session, bearer, role_name):
        user = create_user(db_session, role_name=role_name)
        assert client.get("/api/permissions", headers=bearer(user)).status_code == 200

    def test_bypass_can_be_disabled(self, client, db_session, bearer, handler_calls):
        admin = create_user(db_session, role_name="admin")

        response = client.get("/test/strict", headers=bearer(admin))

        assert response.status_code == 403
        assert response.json() == {"error": "Insufficient permissions"}
        assert handler_calls == []

    def test_require_all_rejects_partial_grants(self, client, db_session, bearer, handler_calls):
        role = create_role(db_session, name="Viewer", permissions=["view driver"])
        user = create_user(db_session, role=role)

        response = client.get("/test/drivers", headers=bearer(user))

        assert response.status_code == 403
        assert handler_calls == []

    def test_require_all_accepts_full_grants(self, client, db_session, bearer, handler_calls):
        role = create_role(db_session, name="Dispatcher", permissions=["view driver", "edit driver"])
        user = create_user(db_session, role=role)

        response = client.get("/test/drivers", headers=bearer(user))

        assert response.status_code == 200
        assert response.json() == {"ok": True, "user": str(user.id)}

    def test_sync_handler_runs_when_allowed(self, client, db_session, bearer, handler_calls):
        role = create_role(db_session, name="Viewer", permissions=["view driver"])
        user = create_user(db_session, role=role)

        assert client.get("/test/strict", headers=bearer(user)).status_code == 200
        assert handler_calls == [str(user.id)]

    def test_missing_permission(self, client, db_session, bearer):
        role = create_role(db_session, name="Officer", permissions=["view driver"])
        user = create_user(db_session, role=role)

        response = client.get("/api/permissions", headers=bearer(user))

        assert response.status_code == 403
        assert response.json() == {"error": "Insufficient permissions"}

    def test_granted_permission_lists_catalogue(self, client, db_session, bearer):
        role = create_role(db_session, name="Auditor", permissions=["view permissions", "view fuel log"])
        user = create_user(db_session, role=role)

        response = client.get("/api/permissions", headers=bearer(user))

        assert response.status_code == 200
        body = response.json()
        assert [p["name"] for p in body] == ["view fuel log", "view permissions"]
        assert body[0]["action"] == "view"
        assert body[0]["resource"] == "fuel log"

    def test_legacy_role_string_is_healed_on_request(self, client, db_session, bearer):
        create_role(db_session, name="Officer", permissions=["view permissions"])
        user = create_user(db_session, role_name="officer")

        response = client.get("/api/permissions", headers=bearer(user))
        assert response.status_code == 200

        me = client.get("/api/permissions/me", headers=bearer(user)).json()
        assert me == {"user_id": str(user.id), "is_admin": False, "permissions": ["view permissions"]}

    def test_unresolvable_role_is_denied(self, client, db_session, bearer):
        user = create_user(db_session, role_name="ghost")
        assert client.get("/api/permissions", headers=bearer(user)).status_code == 403


class TestInlineChecks:
    """check_permission and get_auth_user without wrapping a handler."""

    def test_any_of_granted(self, client, db_session, bearer):
        role = create_role(db_session, name="Fleet Clerk", permissions=["view vehicles"])
        user = create_user(db_session, role=role)

        body = client.get("/test/inline", headers=bearer(user)).json()

        assert body == {"has_access": True, "user": str(user.id), "caller": str(user.id)}

    def test_denied_still_returns_user(self, client, db_session, bearer):
        user = create_user(db_session)

        body = client.get("/test/inline", headers=bearer(user)).json()

        assert body == {"has_access": False, "user": str(user.id), "caller": str(user.id)}

    def test_no_token(self, client):
        body = client.get("/test/inline").json()
        assert body == {"has_access": False, "user": None, "caller": None}


class TestLogin:
    def test_login_then_me(self, client, db_session):
        company = create_company(db_session)
        role = create_role(db_session, name="Company")
        user = create_user(db_session, role=role, company=company, email="owner@example.com")

        response = client.post(
            "/api/auth/login", json={"email": "owner@example.com", "password": TEST_PASSWORD}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["user"] == {
            "id": str(user.id), "email": "owner@example.com", "name": user.name, "role": "Company",
        }

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
        assert me.status_code == 200
        claims = me.json()["user"]
        assert claims["id"] == str(user.id)
        assert claims["spcode"] == str(company.id)

    def test_login_with_phone(self, client, db_session):
        create_user(db_session, phone="0244000111")

        response = client.post("/api/auth/login", json={"phone": "0244000111", "password": TEST_PASSWORD})
        assert response.status_code == 200

    def test_login_requires_identifier_and_password(self, client):
        response = client.post("/api/auth/login", json={"email": "x@example.com"})

        assert response.status_code == 400
        assert response.json() == {"error": "Email/Phone and password are required"}

    def test_wrong_password(self, client, db_session):
        create_user(db_session, email="owner@example.com")

        response = client.post("/api/auth/login", json={"email": "owner@example.com", "password": "nope"})

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid email/phone or password"}


class TestCompanyScoping:
    """Tenant-scoped listing through the HTTP surface."""

    @pytest.fixture
    def companies(self, db_session):
        parent = create_company(db_session, name="Parent Transport")
        child = create_company(db_session, name="Child Transport", parent=parent)
        other = create_company(db_session, name="Other Transport")
        return parent, child, other

    @pytest.fixture
    def viewer_role(self, db_session):
        return create_role(db_session, name="Company", permissions=["view companies"])

    def test_admin_sees_all(self, client, db_session, bearer, companies):
        admin = create_user(db_session, role_name="Admin")

        body = client.get("/api/companies", headers=bearer(admin)).json()

        assert body["scope"] == "unrestricted"
        assert body["total"] == 3

    def test_company_user_sees_own(self, client, db_session, bearer, companies, viewer_role):
        parent, _, _ = companies
        user = create_user(db_session, role=viewer_role, company=parent)

        body = client.get("/api/companies", headers=bearer(user)).json()

        assert body["scope"] == "company"
        assert [c["id"] for c in body["items"]] == [parent.id]

    def test_subsidiary_sees_children(self, client, db_session, bearer, companies):
        parent, child, _ = companies
        role = create_role(db_session, name="Subsidiary", permissions=["view companies"])
        user = create_user(db_session, role=role, role_name="subsidiary", company=parent)

        body = client.get("/api/companies", headers=bearer(user)).json()

        assert sorted(c["id"] for c in body["items"]) == sorted([parent.id, child.id])

    def test_capitalised_subsidiary_role_sees_own_company_only(self, client, db_session, bearer, companies):
        parent, _, _ = companies
        role = create_role(db_session, name="Subsidiary", permissions=["view companies"])
        user = create_user(db_session, role=role, company=parent)

        body = client.get("/api/companies", headers=bearer(user)).json()

        assert [c["id"] for c in body["items"]] == [parent.id]

    def test_companyless_user_sees_nothing(self, client, db_session, bearer, companies, viewer_role):
        user = create_user(db_session, role=viewer_role)

        body = client.get("/api/companies", headers=bearer(user)).json()

        assert body == {"items": [], "total": 0, "scope": "empty"}

    def test_scope_endpoint(self, client, db_session, bearer, companies, viewer_role):
        parent, _, _ = companies
        user = create_user(db_session, role=viewer_role, company=parent)

        body = client.get("/api/companies/scope", headers=bearer(user)).json()

        assert body == {"kind": "company", "company_id": parent.id, "company_name": "Parent Transport"}


class TestStoreFailures:
    """Store failures surface as a 500 with a generic message."""

    def _broken_client(self, tmp_path, environment):
        settings = Settings(
            database_url=f"sqlite:///{tmp_path / 'no-tables.db'}",
            jwt_secret=TEST_SECRET,
            environment=environment,
            _env_file=None,
        )
        engine = create_db_engine(settings.database_url)
        store = SqlAlchemyStore(create_session_factory(engine))
        tokens = TokenService(secret=TEST_SECRET)
        app = create_app(settings=settings, store=store, tokens=tokens)
        token = tokens.issue(SessionClaims(id="1", email="u@example.com", name="U", role="officer"))
        return TestClient(app), {"Authorization": f"Bearer {token}"}

    def test_details_outside_production(self, tmp_path):
        client, headers = self._broken_client(tmp_path, "development")
        with client:
            response = client.get("/api/permissions", headers=headers)

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "An unexpected database error occurred. Please try again later."
        assert body["type"] == "unknown"
        assert "timestamp" in body
        assert "no such table" in body["details"]

    def test_no_details_in_production(self, tmp_path):
        client, headers = self._broken_client(tmp_path, "production")
        with client:
            response = client.get("/api/permissions", headers=headers)

        assert response.status_code == 500
        assert "details" not in response.json()


class TestPasswordReset:
    """Forgot-password, token check and reset through the HTTP surface."""

    GENERIC = "If an account with that email/phone exists, we have sent a password reset link."

    def test_known_and_unknown_accounts_get_the_same_answer(self, client, db_session):
        create_user(db_session, email="known@example.com")

        known = client.post("/api/auth/forgot-password", json={"email": "known@example.com"})
        unknown = client.post("/api/auth/forgot-password", json={"email": "nobody@example.com"})

        assert known.status_code == unknown.status_code == 200
        assert known.json() == unknown.json() == {"message": self.GENERIC}
        assert db_session.query(PasswordResetToken).count() == 1

    def test_inactive_account_gets_no_token(self, client, db_session):
        create_user(db_session, phone="0244555666", is_active=False)

        response = client.post("/api/auth/forgot-password", json={"phone": "0244555666"})

        assert response.json() == {"message": self.GENERIC}
        assert db_session.query(PasswordResetToken).count() == 0

    def test_phone_lookup_issues_token(self, client, db_session):
        user = create_user(db_session, phone="0244555777")

        client.post("/api/auth/forgot-password", json={"phone": "0244555777"})

        issued = db_session.query(PasswordResetToken).one()
        assert issued.user_id == user.id

    def test_identifier_is_required(self, client):
        response = client.post("/api/auth/forgot-password", json={})

        assert response.status_code == 400
        assert response.json() == {"error": "Email or phone is required"}

    def test_verify_reset_token(self, client, db_session):
        user = create_user(db_session)
        _, plain_token = create_reset_token(user.id, db_session)

        assert client.get("/api/auth/verify-reset-token", params={"token": plain_token}).json() == {
            "valid": True
        }
        assert client.get("/api/auth/verify-reset-token", params={"token": "nope"}).json() == {
            "valid": False
        }
        assert client.get("/api/auth/verify-reset-token").json() == {"valid": False}

    def test_reset_then_login_with_new_password(self, client, db_session):
        user = create_user(db_session, email="reset@example.com")
        _, plain_token = create_reset_token(user.id, db_session)

        response = client.post(
            "/api/auth/reset-password", json={"token": plain_token, "password": "n3w-secret"}
        )
        assert response.status_code == 200

        old = client.post(
            "/api/auth/login", json={"email": "reset@example.com", "password": TEST_PASSWORD}
        )
        new = client.post(
            "/api/auth/login", json={"email": "reset@example.com", "password": "n3w-secret"}
        )
        assert old.status_code == 401
        assert new.status_code == 200

        reused = client.post(
            "/api/auth/reset-password", json={"token": plain_token, "password": "again"}
        )
        assert reused.status_code == 400
        assert reused.json() == {"error": "Invalid or expired reset token"}

    def test_reset_requires_token_and_password(self, client):
        response = client.post("/api/auth/reset-password", json={"token": "abc"})

        assert response.status_code == 400
        assert response.json() == {"error": "Token and password are required"}
