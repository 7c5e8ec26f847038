from datetime import date, datetime, UTC

from portal.db import models
from portal.services.rent_reminders import mark_overdue_invoices, reminder_status, send_rent_reminders

DUE_FEB = datetime(2025, 2, 1, 12, tzinfo=UTC)
DUE_MARCH = datetime(2025, 3, 1, 12, tzinfo=UTC)
TODAY = date(2025, 2, 28)


def test_mark_overdue_only_past_due_open_invoices(db_session, factory, tenant):
    late = factory.invoice(tenant.tenancy, period="2025-02", due=DUE_FEB)
    current = factory.invoice(tenant.tenancy, period="2025-03", due=DUE_MARCH)
    paid = factory.invoice(tenant.tenancy, period="2025-01", due=datetime(2025, 1, 1, 12, tzinfo=UTC), status="PAID")

    assert mark_overdue_invoices(db_session, today=TODAY) == 1

    db_session.expire_all()
    assert db_session.get(models.Invoice, late.id).status == "OVERDUE"
    assert db_session.get(models.Invoice, current.id).status == "OPEN"
    assert db_session.get(models.Invoice, paid.id).status == "PAID"


def test_send_reminders_once_per_invoice(db_session, factory, tenant, email_service):
    invoice = factory.invoice(tenant.tenancy, due=DUE_MARCH)

    first = send_rent_reminders(db_session, today=TODAY, days_before_due=1)
    assert first.target_date == date(2025, 3, 1)
    assert first.total == 1
    assert first.sent == 1
    assert first.details[0].action == "sent"
    assert db_session.query(models.ReminderLog).filter_by(invoice_id=invoice.id, reminder_no=1).count() == 1

    second = send_rent_reminders(db_session, today=TODAY, days_before_due=1)
    assert second.sent == 0
    assert second.skipped == 1
    assert second.details[0].reason == "Reminder already sent"
    assert email_service.send_email.await_count == 1


def test_send_reminders_dry_run(db_session, factory, tenant, email_service):
    factory.invoice(tenant.tenancy, period="2025-02", due=DUE_FEB)
    factory.invoice(tenant.tenancy, period="2025-03", due=DUE_MARCH)

    result = send_rent_reminders(db_session, today=TODAY, dry_run=True)

    assert result.marked_overdue == 0
    assert result.sent == 1
    assert result.details[0].action == "dry_run"
    assert db_session.query(models.ReminderLog).count() == 0
    assert db_session.query(models.Invoice).filter_by(status="OVERDUE").count() == 0
    email_service.send_email.assert_not_called()


def test_send_reminders_marks_overdue_first(db_session, factory, tenant):
    factory.invoice(tenant.tenancy, period="2025-02", due=DUE_FEB)

    result = send_rent_reminders(db_session, today=TODAY)

    assert result.marked_overdue == 1
    assert result.total == 0


def test_send_reminders_skips_inactive_tenant(db_session, factory, tenant):
    tenant.user.status = "INACTIVE"
    db_session.commit()
    factory.invoice(tenant.tenancy, due=DUE_MARCH)

    result = send_rent_reminders(db_session, today=TODAY)

    assert result.skipped == 1
    assert result.details[0].reason == "Tenant status is INACTIVE"


def test_send_reminders_records_failures(db_session, factory, tenant, email_service):
    email_service.send_email.return_value = {"success": False, "error": "provider down"}
    factory.invoice(tenant.tenancy, due=DUE_MARCH)

    result = send_rent_reminders(db_session, today=TODAY)

    assert result.failed == 1
    assert result.details[0].action == "failed"
    assert result.details[0].reason == "provider down"
    assert db_session.query(models.ReminderLog).count() == 0


def test_reminder_status_counts(db_session, factory, tenant):
    factory.invoice(tenant.tenancy, due=DUE_MARCH)
    send_rent_reminders(db_session, today=TODAY)

    status = reminder_status(db_session, today=TODAY, days_before_due=1)
    assert status.invoices_due == 1
    assert status.reminders_already_sent == 1
