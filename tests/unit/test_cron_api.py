from datetime import date, datetime, UTC
from unittest.mock import patch

import pytest

from portal.db import models


@pytest.fixture
def fixed_today():
    with patch("portal.api.cron.today_utc", return_value=date(2025, 2, 26)):
        yield


def test_cron_requires_secret(client):
    r = client.post("/cron/invoices/generate-monthly")
    assert r.status_code == 401
    assert r.json()["detail"]["code"] == "UNAUTHORIZED"

    r = client.get("/cron/reminders/status", headers={"x-cron-secret": "nope"})
    assert r.status_code == 401


def test_cron_unconfigured(client, monkeypatch):
    monkeypatch.delenv("CRON_SECRET", raising=False)
    r = client.get("/cron/invoices/status", headers={"x-cron-secret": "anything"})
    assert r.status_code == 500
    assert r.json()["detail"]["code"] == "NOT_CONFIGURED"


def test_cron_secret_as_query_param(client, fixed_today):
    r = client.get("/cron/invoices/status", params={"secret": "cron-secret-value"})
    assert r.status_code == 200
    assert r.json()["today"] == "2025-02-26"


def test_generate_monthly_endpoint(client, db_session, tenant, cron_headers, fixed_today):
    r = client.post("/cron/invoices/generate-monthly", params={"dry_run": "true"}, headers=cron_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["dry_run"] is True
    assert body["lead_days"] == 5
    assert body["summary"]["created"] == 1
    assert db_session.query(models.Invoice).count() == 0

    r = client.post("/cron/invoices/generate-monthly", headers=cron_headers)
    assert r.json()["summary"]["created"] == 1
    assert db_session.query(models.Invoice).count() == 1


def test_generate_monthly_validates_lead(client, cron_headers):
    r = client.post("/cron/invoices/generate-monthly", params={"days_lead": 40}, headers=cron_headers)
    assert r.status_code == 422


def test_invoice_status_endpoint(client, tenant, cron_headers, fixed_today):
    r = client.get("/cron/invoices/status", headers=cron_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["units_checked"] == 1
    assert body["would_generate"] == 1
    assert body["units"][0]["period_month"] == "2025-03"


def test_reminders_endpoints(client, factory, tenant, cron_headers, email_service):
    factory.invoice(tenant.tenancy, due=datetime(2025, 3, 1, 12, tzinfo=UTC))
    with patch("portal.api.cron.today_utc", return_value=date(2025, 2, 28)):
        status = client.get("/cron/reminders/status", headers=cron_headers).json()
        assert status["invoices_due"] == 1
        assert status["reminders_already_sent"] == 0

        r = client.post("/cron/reminders/send", headers=cron_headers)
        assert r.status_code == 200
        assert r.json()["sent"] == 1

        status = client.get("/cron/reminders/status", headers=cron_headers).json()
        assert status["reminders_already_sent"] == 1
    assert email_service.send_email.await_count == 1
