from unittest.mock import MagicMock

from portal.audit import AuditAction, log as audit_log


def test_email_logs_filterable(client, admin_headers, factory, tenant):
    invoice = factory.invoice(tenant.tenancy)
    client.post(f"/admin/invoices/{invoice.id}/reminder", headers=admin_headers)

    logs = client.get("/admin/notifications/email-logs", headers=admin_headers).json()
    assert len(logs) == 1
    assert logs[0]["status"] == "sent"
    assert logs[0]["provider_message_id"] == "msg-1"

    empty = client.get("/admin/notifications/email-logs", params={"status": "failed"}, headers=admin_headers).json()
    assert empty == []


def test_email_status(client, admin_headers, email_service):
    email_service.test_connection = MagicMock(return_value={"success": True, "provider": "resend"})
    r = client.get("/admin/notifications/email-status", headers=admin_headers)
    assert r.json() == {"success": True, "provider": "resend"}


def test_audit_logs_listing(client, db_session, admin, admin_headers):
    audit_log(db_session, action=AuditAction.UNIT_DELETE, target_type="unit", actor_user_id=admin.id,
              metadata={"unit_label": "909"})

    rows = client.get("/admin/audit-logs", params={"action_type": "unit_delete"}, headers=admin_headers).json()
    assert len(rows) == 1
    assert rows[0]["metadata"] == {"unit_label": "909"}
    assert rows[0]["actor_user_id"] == str(admin.id)


def test_logs_require_admin(client, tenant):
    assert client.get("/admin/audit-logs", headers=tenant.headers).status_code == 403
    assert client.get("/admin/notifications/email-logs", headers=tenant.headers).status_code == 403
