import pytest

from portal.db import models
from portal.services.payment_reconciliation import IntakePayload, process_payment_intake


@pytest.fixture
def invoice(factory, tenant):
    return factory.invoice(tenant.tenancy)


def _mark_sent(client, tenant, invoice):
    return client.post(f"/tenant/invoices/{invoice.id}/etransfer-sent", headers=tenant.headers)


def test_tenant_marks_sent_once(client, tenant, invoice):
    r = _mark_sent(client, tenant, invoice)
    assert r.status_code == 200, r.text
    assert r.json()["etransfer_status"] == "pending"
    assert r.json()["payment_method"] == "etransfer"

    r = _mark_sent(client, tenant, invoice)
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "ALREADY_PENDING"


def test_tenant_cannot_mark_other_units_invoice(client, factory, tenant):
    other = factory.tenant(email="other@example.com", name="Alice Wong", label="102")
    foreign = factory.invoice(other.tenancy)
    r = _mark_sent(client, tenant, foreign)
    assert r.status_code == 404


def test_mark_sent_when_disabled(client, admin_headers, tenant, invoice):
    r = client.put("/admin/etransfer/settings", json={"etransfer_enabled": False}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["etransfer_enabled"] is False

    r = _mark_sent(client, tenant, invoice)
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "ETRANSFER_DISABLED"


def test_tenant_settings_memo_example(client, admin_headers, tenant):
    client.put(
        "/admin/etransfer/settings",
        json={"etransfer_recipient_email": "rent@example.com", "etransfer_memo_template": "Unit {UNIT_LABEL} rent"},
        headers=admin_headers,
    )
    r = client.get("/tenant/invoices/etransfer-settings", headers=tenant.headers)
    assert r.status_code == 200
    body = r.json()
    assert body["etransfer_recipient_email"] == "rent@example.com"
    assert body["memo_example"] == "Unit 101 rent"


def test_admin_approves_pending_transfer(client, db_session, admin_headers, tenant, invoice, email_service):
    _mark_sent(client, tenant, invoice)

    pending = client.get("/admin/etransfer/pending", headers=admin_headers).json()
    assert [p["id"] for p in pending] == [str(invoice.id)]

    r = client.put(f"/admin/etransfer/{invoice.id}/approve", headers=admin_headers)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["invoice"]["status"] == "PAID"
    assert body["invoice"]["etransfer_status"] == "approved"
    assert body["payment_id"]
    assert body["notification"]["success"] is True

    payment = db_session.query(models.Payment).one()
    assert payment.method == "etransfer_manual"
    assert payment.user_id == tenant.user.id

    history = client.get("/admin/etransfer/payment-history", headers=admin_headers).json()
    assert len(history) == 1
    assert history[0]["tenant"]["email"] == "tenant@example.com"

    r = client.put(f"/admin/etransfer/{invoice.id}/approve", headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "NOT_PENDING"


def test_admin_rejects_pending_transfer(client, admin_headers, tenant, invoice):
    _mark_sent(client, tenant, invoice)

    r = client.put(f"/admin/etransfer/{invoice.id}/reject", json={"reason": "Not received"}, headers=admin_headers)
    assert r.status_code == 200
    body = r.json()["invoice"]
    assert body["status"] == "OPEN"
    assert body["etransfer_status"] == "rejected"
    assert body["etransfer_reject_reason"] == "Not received"
    assert body["payment_method"] is None

    # a rejected transfer can be re-sent
    assert _mark_sent(client, tenant, invoice).status_code == 200


def test_payment_history_rejects_bad_month(client, admin_headers):
    r = client.get("/admin/etransfer/payment-history", params={"month": "2025-13"}, headers=admin_headers)
    assert r.status_code == 400


def test_manual_match_and_dismiss(client, db_session, admin_headers, factory, tenant, invoice):
    body = ("Hi Landlord,\nBob Stone sent you $1,500.00 (CAD).\nReference Number: CA9999999999\n"
            "This deposit was automatically processed.")
    unmatched = process_payment_intake(db_session, IntakePayload(body=body)).log
    noise = process_payment_intake(db_session, IntakePayload(body="ping")).log

    listing = client.get("/admin/etransfer/intake-logs", params={"status": "MANUAL_REVIEW"}, headers=admin_headers).json()
    assert listing["total"] == 2

    r = client.post(
        f"/admin/etransfer/intake-logs/{unmatched.id}/match",
        json={"tenant_id": str(tenant.user.id), "invoice_id": str(invoice.id)},
        headers=admin_headers,
    )
    assert r.status_code == 200, r.text
    detail = r.json()
    assert detail["status"] == "PAID"
    assert detail["matched_invoice"]["id"] == str(invoice.id)
    assert detail["reconciliation_note"].startswith("Manual match by admin: $1,500.00 from John Smith")

    r = client.post(
        f"/admin/etransfer/intake-logs/{unmatched.id}/match",
        json={"tenant_id": str(tenant.user.id), "invoice_id": str(invoice.id)},
        headers=admin_headers,
    )
    assert r.json()["detail"]["code"] == "ALREADY_RECONCILED"

    r = client.put(f"/admin/etransfer/intake-logs/{noise.id}/dismiss", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "DISMISSED"

    db_session.refresh(invoice)
    assert invoice.status == "PAID"


def test_intake_log_detail_lists_candidates(client, db_session, admin_headers, tenant, invoice):
    body = ("Hi Landlord,\nJohn Smith sent you $1,400.00 (CAD).\nReference Number: CA5555555555\n"
            "This deposit was automatically processed.")
    log = process_payment_intake(db_session, IntakePayload(body=body)).log

    r = client.get(f"/admin/etransfer/intake-logs/{log.id}", headers=admin_headers)
    assert r.status_code == 200
    detail = r.json()
    assert detail["matched_tenant"]["id"] == str(tenant.user.id)
    assert [c["id"] for c in detail["candidate_invoices"]] == [str(invoice.id)]

    missing = client.get("/admin/etransfer/intake-logs/00000000-0000-0000-0000-000000000000", headers=admin_headers)
    assert missing.status_code == 404


def test_etransfer_admin_routes_require_admin(client, tenant):
    r = client.get("/admin/etransfer/pending", headers=tenant.headers)
    assert r.status_code == 403
    assert r.json()["detail"]["code"] == "FORBIDDEN"


def test_manual_match_rejects_void_and_foreign_invoices(client, db_session, admin_headers, factory, tenant):
    voided = factory.invoice(tenant.tenancy, status="VOID")
    other = factory.tenant(email="other@example.com", name="Alice Wong", label="102")
    foreign = factory.invoice(other.tenancy)
    body = ("Hi Landlord,\nBob Stone sent you $1,500.00 (CAD).\nReference Number: CA7777777777\n"
            "This deposit was automatically processed.")
    log = process_payment_intake(db_session, IntakePayload(body=body)).log

    r = client.post(f"/admin/etransfer/intake-logs/{log.id}/match",
                    json={"tenant_id": str(tenant.user.id), "invoice_id": str(voided.id)}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "VOIDED"

    r = client.post(f"/admin/etransfer/intake-logs/{log.id}/match",
                    json={"tenant_id": str(tenant.user.id), "invoice_id": str(foreign.id)}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "TENANT_MISMATCH"

    db_session.expire_all()
    assert db_session.get(models.Invoice, foreign.id).status == "OPEN"
    assert db_session.query(models.Payment).count() == 0


def test_webhook_dry_run_matches_without_writing(client, db_session, admin_headers, tenant, invoice, monkeypatch):
    monkeypatch.setenv("PAYMENT_WEBHOOK_SECRET", "a-long-enough-secret")
    r = client.post(
        "/admin/etransfer/test-webhook",
        json={
            "raw_email_subject": "INTERAC e-Transfer: John Smith sent you money.",
            "raw_email_content": "John Smith sent you $1,500.00 (CAD).\nReference Number: CA1234567890",
        },
        headers=admin_headers,
    )
    assert r.status_code == 200, r.text
    result = r.json()
    assert [(s["step"], s["status"]) for s in result["steps"]] == [
        ("validate", "success"),
        ("parse", "success"),
        ("match", "success"),
        ("reconcile", "success"),
    ]
    assert result["parsed"]["amount"] == "$1,500.00"
    assert result["parsed"]["reference_number"] == "CA1234567890"
    assert result["matched_tenant"]["id"] == str(tenant.user.id)
    assert result["matched_tenant"]["unit"] == "Maple Court - 101"
    assert result["invoice"]["id"] == str(invoice.id)
    assert "dry run" in result["steps"][3]["message"]

    db_session.expire_all()
    assert db_session.get(models.Invoice, invoice.id).status == "OPEN"
    assert db_session.query(models.PaymentIntakeLog).count() == 0
    assert db_session.query(models.Payment).count() == 0


def test_webhook_dry_run_reports_each_failed_step(client, admin_headers, tenant, invoice):
    r = client.post(
        "/admin/etransfer/test-webhook",
        json={"raw_email_content": "John Smith sent you $99.00 (CAD)."},
        headers=admin_headers,
    )
    steps = {s["step"]: s for s in r.json()["steps"]}
    assert steps["validate"]["status"] == "failure"
    assert steps["match"]["status"] == "success"
    assert steps["reconcile"]["status"] == "failure"
    assert "2025-03 ($1,500.00)" in steps["reconcile"]["message"]

    r = client.post(
        "/admin/etransfer/test-webhook",
        json={"raw_email_content": "You have received $99.00, please sign in to deposit."},
        headers=admin_headers,
    )
    body = r.json()
    steps = {s["step"]: s for s in body["steps"]}
    assert steps["parse"] == {"step": "parse", "status": "failure", "message": "Could not extract: sender name"}
    assert steps["match"]["status"] == "skipped"
    assert steps["reconcile"]["status"] == "skipped"
    assert body["matched_tenant"] is None

    assert client.post("/admin/etransfer/test-webhook", json={"raw_email_content": ""},
                       headers=admin_headers).status_code == 422
