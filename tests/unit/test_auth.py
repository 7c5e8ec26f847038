import pytest

from portal.api.auth import is_admin_email, resolve_identity_from_headers
from portal.db import models
from portal.utils.runtime import dev_mode_active


def headers_for(email, name):
    return {"x-auth-request-email": email, "x-auth-request-user": name}


def test_resolve_identity_prefers_auth_request_headers():
    assert resolve_identity_from_headers("alice", " Alice@Example.com ", "bob", "bob@example.com") == (
        "alice", "alice@example.com",
    )
    assert resolve_identity_from_headers(None, None, "bob", "Bob@Example.com") == ("bob", "bob@example.com")
    assert resolve_identity_from_headers(None, None, None, None) == (None, None)


def test_admin_email_list(monkeypatch):
    monkeypatch.setenv("ADMIN_EMAILS", ' "Boss@Example.com", other@example.com ,')
    assert is_admin_email("boss@example.com")
    assert is_admin_email("OTHER@example.com")
    assert not is_admin_email("tenant@example.com")
    assert not is_admin_email(None)


def test_missing_identity_is_401(client):
    r = client.get("/me")
    assert r.status_code == 401


def test_first_request_creates_tenant(client, db_session):
    r = client.get("/me", headers=headers_for("Newbie@Example.com", "Newbie"))
    assert r.status_code == 200
    body = r.json()
    assert body["email"] == "newbie@example.com"
    assert body["role"] == "TENANT"
    assert body["tenancy"] is None
    assert db_session.query(models.User).count() == 1


def test_admin_emails_elevate_existing_user(client, factory, monkeypatch):
    factory.user("promoted@example.com", name="Pat Promoted")
    monkeypatch.setenv("ADMIN_EMAILS", "promoted@example.com")
    r = client.get("/me", headers=headers_for("promoted@example.com", "Pat Promoted"))
    assert r.json()["role"] == "ADMIN"


def test_me_includes_tenancy(client, tenant):
    body = client.get("/me", headers=tenant.headers).json()
    assert body["tenancy"]["unit_label"] == "101"
    assert body["tenancy"]["role_in_unit"] == "PRIMARY"


def test_update_own_profile(client, db_session, tenant):
    r = client.patch("/me", json={"display_name": "Johnny Smith", "phone": "416-555-0100", "email": "x@evil.com"},
                     headers=tenant.headers)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["display_name"] == "Johnny Smith"
    assert body["phone"] == "416-555-0100"
    assert body["email"] == "tenant@example.com"
    assert body["tenancy"]["unit_label"] == "101"

    # the identity header name does not overwrite the saved profile
    again = client.get("/me", headers=tenant.headers).json()
    assert again["display_name"] == "Johnny Smith"


def test_update_profile_without_changes_returns_profile(client, tenant):
    r = client.patch("/me", json={}, headers=tenant.headers)
    assert r.status_code == 200
    assert r.json()["display_name"] == "John Smith"


def test_update_profile_validation(client, tenant):
    assert client.patch("/me", json={"display_name": ""}, headers=tenant.headers).status_code == 422
    assert client.patch("/me", json={"phone": "x" * 41}, headers=tenant.headers).status_code == 422
    assert client.patch("/me", json={"phone": "1"}).status_code == 401


def test_dev_mode_impersonates_dev_user(client, monkeypatch):
    monkeypatch.setenv("DEV_MODE", "true")
    r = client.get("/me")
    assert r.status_code == 200
    assert r.json()["email"] == "dev@localhost"


def test_dev_mode_refused_for_public_host(monkeypatch):
    monkeypatch.setenv("DEV_MODE", "true")
    monkeypatch.setenv("APP_BASE_URL", "https://portal.example.com")
    with pytest.raises(RuntimeError):
        dev_mode_active()

    monkeypatch.setenv("DEV_MODE_ALLOWED_HOSTS", "portal.example.com")
    assert dev_mode_active() is True


def test_health(client):
    assert client.get("/health").json() == {"status": "ok", "service": "tenant-portal"}
