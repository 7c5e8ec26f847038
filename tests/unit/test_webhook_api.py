import uuid
from unittest.mock import patch

from portal.db import models
from portal.services.etransfer import WEBHOOK_PATH

SECRET = "webhook-secret-123"
BODY = (
    "Hi Landlord,\n"
    "John Smith sent you $1,500.00 (CAD).\n"
    "Reference Number: CA1234567890\n"
    "This deposit was automatically processed."
)


def test_webhook_not_configured(client, db_session):
    r = client.post(WEBHOOK_PATH, json={"body": BODY}, headers={"x-webhook-secret": SECRET})
    assert r.status_code == 500
    assert r.json()["detail"]["code"] == "NOT_CONFIGURED"
    assert db_session.query(models.PaymentIntakeLog).count() == 0


def test_webhook_rejects_bad_secret(client, monkeypatch):
    monkeypatch.setenv("PAYMENT_WEBHOOK_SECRET", SECRET)
    r = client.post(WEBHOOK_PATH, json={"body": BODY}, headers={"x-webhook-secret": "wrong-secret"})
    assert r.status_code == 401
    assert r.json()["detail"]["code"] == "UNAUTHORIZED"

    r = client.post(WEBHOOK_PATH, json={"body": BODY})
    assert r.status_code == 401


def test_webhook_json_reconciles(client, db_session, factory, tenant, monkeypatch):
    monkeypatch.setenv("PAYMENT_WEBHOOK_SECRET", SECRET)
    invoice = factory.invoice(tenant.tenancy)

    r = client.post(
        WEBHOOK_PATH,
        json={"subject": "INTERAC e-Transfer", "body-plain": BODY, "from": "notify@payments.interac.ca",
              "headers": {"X-Mailer": "forwarder"}},
        headers={"x-webhook-secret": SECRET, "x-webhook-source": "mailgun"},
    )

    assert r.status_code == 200, r.text
    data = r.json()
    assert data["status"] == "reconciled"
    log = db_session.get(models.PaymentIntakeLog, uuid.UUID(data["log_id"]))
    assert log.webhook_source == "mailgun"
    assert log.raw_from == "notify@payments.interac.ca"
    assert log.raw_headers == {"X-Mailer": "forwarder"}
    db_session.refresh(invoice)
    assert invoice.status == "PAID"


def test_webhook_accepts_bearer_and_plain_text(client, monkeypatch):
    monkeypatch.setenv("PAYMENT_WEBHOOK_SECRET", SECRET)
    r = client.post(
        WEBHOOK_PATH,
        content="verify",
        headers={"Authorization": f"Bearer {SECRET}", "content-type": "text/plain"},
    )
    assert r.status_code == 200
    assert r.json()["status"] == "verification_logged"


def test_webhook_uses_secret_from_settings(client, db_session, admin, admin_headers):
    r = client.post("/admin/etransfer/webhook-secret", json={"secret": "short"}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "INVALID_SECRET"

    r = client.post("/admin/etransfer/webhook-secret", json={"secret": SECRET}, headers=admin_headers)
    assert r.status_code == 200
    config = r.json()
    assert config["configured"] is True
    assert config["source"] == "settings"
    assert config["masked_secret"] == "webh**********-123"

    r = client.post(WEBHOOK_PATH, json={"body": BODY}, headers={"x-webhook-secret": SECRET})
    assert r.status_code == 200
    assert r.json()["status"] == "no_tenant_match"


def test_webhook_processing_error_returns_500(client, db_session, monkeypatch):
    monkeypatch.setenv("PAYMENT_WEBHOOK_SECRET", SECRET)
    with patch("portal.api.webhooks.process_payment_intake", side_effect=RuntimeError("boom")):
        r = client.post(WEBHOOK_PATH, json={"body": BODY}, headers={"x-webhook-secret": SECRET})
    assert r.status_code == 500
    assert r.json()["detail"]["code"] == "PROCESSING_ERROR"


def test_webhook_status(client, monkeypatch):
    r = client.get(WEBHOOK_PATH + "/status")
    assert r.status_code == 200
    assert r.json() == {"configured": False, "llm_parser_configured": False, "webhook_path": WEBHOOK_PATH}

    monkeypatch.setenv("PAYMENT_WEBHOOK_SECRET", SECRET)
    assert client.get(WEBHOOK_PATH + "/status").json()["configured"] is True
