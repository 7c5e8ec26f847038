from datetime import date

import pytest

from portal.db import models
from portal.services.invoice_generation import (
    generate_for_period,
    generate_monthly_invoices,
    select_period,
    upcoming_due_dates,
)
from portal.utils.feature_flags import refresh_feature_flag_cache


@pytest.mark.parametrize(
    "today,due_day,lead,expected_period,expected_due",
    [
        (date(2025, 2, 26), 1, 5, "2025-03", date(2025, 3, 1)),
        (date(2025, 3, 1), 1, 5, "2025-03", date(2025, 3, 1)),
        (date(2025, 2, 25), 31, 5, "2025-02", date(2025, 2, 28)),
        (date(2025, 3, 28), 5, 10, "2025-04", date(2025, 4, 5)),
        (date(2025, 12, 29), 1, 5, "2026-01", date(2026, 1, 1)),
    ],
)
def test_select_period_inside_lead_window(today, due_day, lead, expected_period, expected_due):
    choice = select_period(today, due_day, lead)
    assert choice.period_month == expected_period
    assert choice.due_date == expected_due
    assert choice.skip_reason is None


def test_select_period_outside_window_reports_distances():
    choice = select_period(date(2025, 3, 10), 1, 5)
    assert choice.period_month is None
    assert choice.days_this == -9
    assert choice.days_next == 22
    assert "Not within lead time" in choice.skip_reason


def test_generate_creates_invoice_and_emails_tenant(db_session, tenant, email_service):
    result = generate_monthly_invoices(db_session, today=date(2025, 2, 26))

    assert result.summary.created == 1
    assert result.summary.emails_sent == 1
    assert result.details[0].action == "created"
    assert result.details[0].period_month == "2025-03"
    assert result.details[0].email_sent is True

    invoice = db_session.query(models.Invoice).one()
    assert invoice.amount_cents == 150000
    assert invoice.status == "OPEN"
    assert invoice.invoice_type == "RENT"
    assert invoice.tenancy_id == tenant.tenancy.id
    assert email_service.send_email.await_count == 1
    assert db_session.query(models.EmailNotificationLog).filter_by(event_type="invoice_ready").count() == 1


def test_generate_is_idempotent(db_session, tenant):
    generate_monthly_invoices(db_session, today=date(2025, 2, 26))
    second = generate_monthly_invoices(db_session, today=date(2025, 2, 27))

    assert second.summary.created == 0
    assert second.summary.skipped == 1
    assert second.details[0].reason == "Invoice already exists"
    assert db_session.query(models.Invoice).count() == 1


def test_generate_dry_run_writes_nothing(db_session, tenant, email_service):
    result = generate_monthly_invoices(db_session, today=date(2025, 2, 26), dry_run=True)

    assert result.dry_run is True
    assert result.summary.created == 1
    assert result.details[0].reason == "Dry run - would create"
    assert db_session.query(models.Invoice).count() == 0
    email_service.send_email.assert_not_called()


def test_generate_skips_outside_window(db_session, tenant):
    result = generate_monthly_invoices(db_session, today=date(2025, 3, 10))
    assert result.summary.created == 0
    assert result.summary.skipped == 1
    assert result.details[0].action == "skipped"


def test_generate_reports_missing_rent(db_session, factory):
    factory.tenant(rent_cents=None)
    result = generate_monthly_invoices(db_session, today=date(2025, 2, 26))

    assert result.summary.error_count == 1
    assert result.errors[0].error == "No rent amount configured"
    assert db_session.query(models.Invoice).count() == 0


def test_generate_ignores_vacant_units(db_session, factory):
    factory.unit("202", status="VACANT")
    result = generate_monthly_invoices(db_session, today=date(2025, 2, 26))
    assert result.details == []


def test_generate_without_invoice_emails(db_session, tenant, email_service, monkeypatch):
    monkeypatch.setenv("FEATURE_INVOICE_EMAILS_ENABLED", "false")
    refresh_feature_flag_cache()

    result = generate_monthly_invoices(db_session, today=date(2025, 2, 26))

    assert result.summary.created == 1
    assert result.summary.emails_sent == 0
    email_service.send_email.assert_not_called()


def test_generate_prefers_primary_tenancy(db_session, factory):
    primary = factory.tenant()
    occupant = factory.user("roommate@example.com", name="Rita Room")
    factory.tenancy(occupant, primary.unit, role_in_unit="OCCUPANT")

    generate_monthly_invoices(db_session, today=date(2025, 2, 26))

    invoice = db_session.query(models.Invoice).one()
    assert invoice.tenancy_id == primary.tenancy.id


def test_generate_for_period_skips_existing(db_session, factory):
    first = factory.tenant()
    factory.tenant(email="second@example.com", name="Sam Second", label="102")
    factory.invoice(first.tenancy, period="2025-05")

    result = generate_for_period(db_session, "2025-05")

    assert result.created == 1
    assert result.skipped == 1
    assert result.invoices[0].unit_label == "102"


def test_upcoming_due_dates_preview(db_session, tenant):
    status = upcoming_due_dates(db_session, today=date(2025, 2, 26), lead_days=5)

    assert status.units_checked == 1
    assert status.would_generate == 1
    row = status.units[0]
    assert row.period_month == "2025-03"
    assert row.days_until_due == 3
    assert row.tenant_email == "tenant@example.com"
