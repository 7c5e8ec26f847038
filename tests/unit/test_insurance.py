from datetime import datetime, timedelta, UTC

import pytest

from portal.db import models
from portal.errors import PortalError
from portal.services import insurance


def _future(days=200):
    return (datetime.now(UTC) + timedelta(days=days)).isoformat()


def _upload(client, tenant, *, name="policy.pdf", content=b"%PDF-1.4 data", mime="application/pdf",
            provider="Acme Insurance", expires_at=None):
    return client.post(
        "/tenant/insurance/upload",
        files={"file": (name, content, mime)},
        data={"provider": provider, "expires_at": expires_at or _future()},
        headers=tenant.headers,
    )


def test_effective_status():
    now = datetime(2025, 3, 1, tzinfo=UTC)
    assert insurance.effective_status(None, now) == "MISSING"

    approved = models.InsuranceRecord(status="APPROVED", expires_at=datetime(2025, 6, 1, tzinfo=UTC))
    assert insurance.effective_status(approved, now) == "APPROVED"

    lapsed = models.InsuranceRecord(status="APPROVED", expires_at=datetime(2025, 2, 1, tzinfo=UTC))
    assert insurance.effective_status(lapsed, now) == "EXPIRED"

    pending = models.InsuranceRecord(status="PENDING", expires_at=datetime(2025, 2, 1, tzinfo=UTC))
    assert insurance.effective_status(pending, now) == "PENDING"


@pytest.mark.parametrize(
    "filename,content_type,size,code",
    [
        ("policy.exe", "application/pdf", 10, "INVALID_FILE_TYPE"),
        ("policy.pdf", "text/plain", 10, "INVALID_FILE_TYPE"),
        ("policy.pdf", "application/pdf", insurance.MAX_FILE_SIZE + 1, "FILE_TOO_LARGE"),
        ("policy.pdf", "application/pdf", 0, "EMPTY_FILE"),
    ],
)
def test_validate_upload_errors(filename, content_type, size, code):
    with pytest.raises(PortalError) as exc:
        insurance.validate_upload(filename, content_type, size)
    assert exc.value.code == code


def test_validate_upload_returns_extension():
    assert insurance.validate_upload("Scan.PNG", "image/png", 100) == ".png"


def test_sanitize_filename():
    assert insurance.sanitize_filename("../../etc/pass wd.pdf") == "pass_wd.pdf"
    assert insurance.sanitize_filename(None) == "document"


def test_tenant_upload(client, db_session, tenant):
    r = _upload(client, tenant)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["status"] == "PENDING"
    assert body["provider"] == "Acme Insurance"
    assert body["has_document"] is True

    record = db_session.query(models.InsuranceRecord).one()
    with open(record.document_path, "rb") as fh:
        assert fh.read() == b"%PDF-1.4 data"

    assert client.get("/tenant/insurance/status", headers=tenant.headers).json()["status"] == "PENDING"


@pytest.mark.parametrize(
    "kwargs,code",
    [
        ({"provider": "  "}, "NO_PROVIDER"),
        ({"name": "notes.txt", "mime": "text/plain"}, "INVALID_FILE_TYPE"),
        ({"content": b""}, "EMPTY_FILE"),
        ({"expires_at": "2020-01-01T00:00:00Z"}, "EXPIRED_DATE"),
        ({"expires_at": _future(365 * 3)}, "DATE_TOO_FAR"),
    ],
)
def test_tenant_upload_rejections(client, tenant, kwargs, code):
    r = _upload(client, tenant, **kwargs)
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == code


def test_admin_approves(client, admin_headers, tenant):
    _upload(client, tenant)

    listing = client.get("/admin/insurance", params={"status": "PENDING"}, headers=admin_headers).json()
    assert [row["email"] for row in listing] == ["tenant@example.com"]
    assert listing[0]["unit_label"] == "101"

    r = client.put(f"/admin/insurance/{tenant.user.id}/approve", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "APPROVED"
    assert r.json()["verified_at"] is not None

    again = client.put(f"/admin/insurance/{tenant.user.id}/approve", headers=admin_headers)
    assert again.json()["detail"]["code"] == "NOT_PENDING"


def test_admin_rejects_and_notifies(client, db_session, admin_headers, tenant, email_service):
    _upload(client, tenant)

    r = client.put(f"/admin/insurance/{tenant.user.id}/reject", json={"reason": "Policy unreadable"},
                   headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "REJECTED"
    assert r.json()["rejection_reason"] == "Policy unreadable"

    log = db_session.query(models.EmailNotificationLog).one()
    assert log.event_type == "insurance_rejected"
    assert log.user_id == tenant.user.id


def test_send_reminder(client, admin_headers, tenant, email_service):
    r = client.post(f"/admin/insurance/{tenant.user.id}/send-reminder", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["reminder_sent_at"] is not None
    assert email_service.send_email.await_count == 1


def test_send_reminder_failure(client, admin_headers, tenant, email_service):
    email_service.send_email.return_value = {"success": False, "error": "bounced"}
    r = client.post(f"/admin/insurance/{tenant.user.id}/send-reminder", headers=admin_headers)
    assert r.status_code == 500
    assert r.json()["detail"]["code"] == "EMAIL_FAILED"


def test_admin_insurance_for_non_tenant(client, admin_headers, admin):
    assert client.get(f"/admin/insurance/{admin.id}", headers=admin_headers).status_code == 404
    r = client.put(f"/admin/insurance/{admin.id}/approve", headers=admin_headers)
    assert r.json()["detail"]["code"] == "NOT_TENANT"
