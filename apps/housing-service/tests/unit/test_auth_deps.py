from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from housing.api.auth import resolve_identity_from_headers
from housing.api.deps import get_current_user_context, get_superadmin_context


def _app():
    app = FastAPI()

    @app.get("/me")
    def me(user_ctx=Depends(get_current_user_context)):
        user, current = user_ctx
        return {"email": user.email, "role": current["role"], "is_superadmin": current["is_superadmin"]}

    @app.get("/admin-only")
    def admin_only(user_ctx=Depends(get_superadmin_context)):
        return {"ok": True}

    return app


def test_get_current_user_context_unauthorized():
    client = TestClient(_app())
    r = client.get("/me")
    assert r.status_code == 401


def test_get_current_user_context_dev_mode(monkeypatch):
    monkeypatch.setenv("DEV_MODE", "true")
    monkeypatch.setenv("APP_BASE_URL", "http://localhost:3000")

    client = TestClient(_app())
    r = client.get("/me")
    assert r.status_code == 200
    assert r.json()["email"] == "dev@localhost"


def test_forwarded_headers_are_accepted_and_email_normalized():
    client = TestClient(_app())
    r = client.get("/me", headers={"x-forwarded-email": "  Someone@Example.COM ", "x-forwarded-user": "Someone"})
    assert r.status_code == 200
    assert r.json() == {"email": "someone@example.com", "role": "user", "is_superadmin": False}


def test_admin_emails_elevation(monkeypatch):
    admin_email = "farm_admin@example.com"
    monkeypatch.setenv("ADMIN_EMAILS", f" '{admin_email}' , other@example.com")

    client = TestClient(_app())
    headers = {"x-auth-request-email": admin_email, "x-auth-request-user": "Admin"}
    r = client.get("/me", headers=headers)
    assert r.status_code == 200
    assert r.json()["is_superadmin"] is True
    assert client.get("/admin-only", headers=headers).status_code == 200


def test_existing_user_is_promoted_when_listed(monkeypatch, user_factory):
    user_factory(email="late@example.com", role="user")
    monkeypatch.setenv("ADMIN_EMAILS", "late@example.com")

    client = TestClient(_app())
    r = client.get("/me", headers={"x-auth-request-email": "late@example.com"})
    assert r.json()["role"] == "superadmin"


def test_superadmin_route_forbidden_for_regular_users(monkeypatch):
    monkeypatch.setenv("ADMIN_EMAILS", "privileged@example.com")
    client = TestClient(_app())
    r = client.get("/admin-only", headers={"x-auth-request-email": "regular@example.com"})
    assert r.status_code == 403


def test_auth_request_headers_win_over_forwarded():
    user, email = resolve_identity_from_headers("Primary", "primary@example.com", "Fallback", "fallback@example.com")
    assert (user, email) == ("Primary", "primary@example.com")
    assert resolve_identity_from_headers(None, None, None, None) == (None, None)
