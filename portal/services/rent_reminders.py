"""
Rent reminder emails and overdue marking.
"""

import logging
from datetime import date, timedelta
from typing import Optional, List

from sqlalchemy.orm import Session

from portal.db import models, schemas
from portal.db.repositories import invoices as invoice_repo
from portal.services.notification_service import NotificationService
from portal.utils.dates import day_bounds
from portal.utils.statuses import INVOICE_OPEN, INVOICE_OVERDUE, USER_ACTIVE

logger = logging.getLogger("portal.cron")


def mark_overdue_invoices(db: Session, *, today: date) -> int:
    """Flip OPEN invoices whose due date is before ``today`` to OVERDUE."""
    start_of_today, _ = day_bounds(today)
    count = (
        db.query(models.Invoice)
        .filter(models.Invoice.status == INVOICE_OPEN, models.Invoice.due_date < start_of_today)
        .update({models.Invoice.status: INVOICE_OVERDUE}, synchronize_session=False)
    )
    db.commit()
    if count:
        logger.info("Marked %d invoices overdue", count)
    return count


def send_rent_reminders(
    db: Session,
    *,
    today: date,
    days_before_due: int = 1,
    dry_run: bool = False,
    notifier: Optional[NotificationService] = None,
) -> schemas.ReminderRunResult:
    marked = 0 if dry_run else mark_overdue_invoices(db, today=today)

    target = today + timedelta(days=days_before_due)
    start, end = day_bounds(target)
    invoices = invoice_repo.list_unpaid_due_between(db, start, end)

    result = schemas.ReminderRunResult(
        run_date=today,
        target_date=target,
        dry_run=dry_run,
        marked_overdue=marked,
        total=len(invoices),
    )
    details: List[schemas.ReminderDetail] = []

    for invoice in invoices:
        tenant = invoice.tenancy.user if invoice.tenancy else None
        detail = schemas.ReminderDetail(
            invoice_id=invoice.id,
            unit_label=invoice.unit.unit_label if invoice.unit else None,
            email=tenant.email if tenant else None,
            action="skipped",
        )
        details.append(detail)

        if tenant is None or tenant.status != USER_ACTIVE:
            result.skipped += 1
            detail.reason = f"Tenant status is {tenant.status if tenant else 'missing'}"
            continue
        if invoice_repo.reminder_exists(db, invoice.id, days_before_due):
            result.skipped += 1
            detail.reason = "Reminder already sent"
            continue
        if dry_run:
            result.sent += 1
            detail.action = "dry_run"
            detail.reason = "Dry run - would have sent"
            continue

        notifier = notifier or NotificationService(db)
        outcome = notifier.notify_rent_reminder(invoice, tenant, overdue=invoice.status == INVOICE_OVERDUE)
        if outcome.get("success"):
            db.add(models.ReminderLog(invoice_id=invoice.id, reminder_no=days_before_due))
            db.commit()
            result.sent += 1
            detail.action = "sent"
            detail.reason = None
        else:
            result.failed += 1
            detail.action = "failed"
            detail.reason = outcome.get("error")

    result.details = details
    logger.info(
        "Rent reminders complete target=%s dry_run=%s total=%d sent=%d skipped=%d failed=%d",
        target.isoformat(), dry_run, result.total, result.sent, result.skipped, result.failed,
    )
    return result


def reminder_status(db: Session, *, today: date, days_before_due: int = 1) -> schemas.ReminderCronStatus:
    target = today + timedelta(days=days_before_due)
    start, end = day_bounds(target)
    invoices = invoice_repo.list_unpaid_due_between(db, start, end)
    already = sum(1 for inv in invoices if invoice_repo.reminder_exists(db, inv.id, days_before_due))
    return schemas.ReminderCronStatus(
        today=today,
        days_before_due=days_before_due,
        target_date=target,
        invoices_due=len(invoices),
        reminders_already_sent=already,
    )
