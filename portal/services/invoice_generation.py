"""
Monthly rent invoice generation.

Runs daily from the cron endpoint. For each occupied unit it decides whether
this month's or next month's rent invoice falls inside the lead window and
creates it once; re-running on the same day is a no-op.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional, List, Tuple

from sqlalchemy.orm import Session

from portal.db import models, schemas
from portal.db.repositories import invoices as invoice_repo
from portal.db.repositories import users as user_repo
from portal.services.notification_service import NotificationService
from portal.utils.dates import clamped_due_date, due_datetime, next_month, parse_period, period_for
from portal.utils.feature_flags import invoice_emails_enabled
from portal.utils.runtime import env_int
from portal.utils.statuses import (
    INVOICE_OPEN,
    INVOICE_TYPE_RENT,
    UNIT_OCCUPIED,
    USER_ACTIVE,
)

logger = logging.getLogger("portal.cron")

DEFAULT_LEAD_DAYS = env_int("INVOICE_LEAD_DAYS", 5)


@dataclass(frozen=True)
class PeriodChoice:
    period_month: Optional[str]
    due_date: Optional[date]
    days_this: int
    days_next: int

    @property
    def skip_reason(self) -> Optional[str]:
        if self.period_month is not None:
            return None
        return f"Not within lead time (this month: {self.days_this}d, next: {self.days_next}d)"


def select_period(today: date, rent_due_day: int, lead_days: int) -> PeriodChoice:
    """Pick the billing period whose due date falls inside the lead window."""
    due_this = clamped_due_date(today.year, today.month, rent_due_day)
    ny, nm = next_month(today.year, today.month)
    due_next = clamped_due_date(ny, nm, rent_due_day)
    days_this = (due_this - today).days
    days_next = (due_next - today).days

    if days_this < 0:
        if 0 <= days_next <= lead_days:
            return PeriodChoice(period_for(due_next), due_next, days_this, days_next)
    elif days_this <= lead_days:
        return PeriodChoice(period_for(due_this), due_this, days_this, days_next)
    elif 0 <= days_next <= lead_days:
        return PeriodChoice(period_for(due_next), due_next, days_this, days_next)
    return PeriodChoice(None, None, days_this, days_next)


def occupied_units_with_tenancy(db: Session) -> List[Tuple[models.Unit, Optional[models.Tenancy]]]:
    """Occupied units paired with their preferred active tenancy (PRIMARY first)."""
    units = (
        db.query(models.Unit)
        .filter(
            models.Unit.status == UNIT_OCCUPIED,
            models.Unit.tenancies.any(models.Tenancy.is_active.is_(True)),
        )
        .order_by(models.Unit.building_name, models.Unit.unit_label)
        .all()
    )
    pairs = []
    for unit in units:
        tenancies = user_repo.list_active_tenancies(db, unit_id=unit.id)
        pairs.append((unit, user_repo.pick_primary_tenancy(tenancies)))
    return pairs


def create_rent_invoice(db: Session, unit: models.Unit, tenancy: models.Tenancy, period_month: str, due_day: date) -> models.Invoice:
    invoice = models.Invoice(
        unit_id=unit.id,
        tenancy_id=tenancy.id,
        period_month=period_month,
        due_date=due_datetime(due_day),
        amount_cents=unit.rent_amount_cents,
        status=INVOICE_OPEN,
        invoice_type=INVOICE_TYPE_RENT,
    )
    db.add(invoice)
    db.commit()
    db.refresh(invoice)
    return invoice


def generate_monthly_invoices(
    db: Session,
    *,
    today: date,
    lead_days: int = DEFAULT_LEAD_DAYS,
    dry_run: bool = False,
    notifier: Optional[NotificationService] = None,
) -> schemas.InvoiceGenerationResult:
    summary = schemas.GenerationSummary()
    errors: List[schemas.GenerationError] = []
    details: List[schemas.GenerationDetail] = []

    def _error(unit_label: str, message: str) -> None:
        errors.append(schemas.GenerationError(unit_label=unit_label, error=message))
        details.append(schemas.GenerationDetail(unit_label=unit_label, action="error", reason=message))

    for unit, tenancy in occupied_units_with_tenancy(db):
        label = unit.unit_label
        try:
            if tenancy is None:
                _error(label, "No active tenancy found")
                continue
            if not unit.rent_amount_cents:
                _error(label, "No rent amount configured")
                continue

            choice = select_period(today, unit.rent_due_day or 1, lead_days)
            if choice.period_month is None:
                summary.skipped += 1
                details.append(schemas.GenerationDetail(
                    unit_label=label, action="skipped", period_month=period_for(today), reason=choice.skip_reason,
                ))
                continue

            if invoice_repo.find_rent_invoice(db, unit.id, choice.period_month):
                summary.skipped += 1
                details.append(schemas.GenerationDetail(
                    unit_label=label, action="skipped", period_month=choice.period_month, reason="Invoice already exists",
                ))
                continue

            if dry_run:
                summary.created += 1
                details.append(schemas.GenerationDetail(
                    unit_label=label, action="created", period_month=choice.period_month, reason="Dry run - would create",
                ))
                continue

            invoice = create_rent_invoice(db, unit, tenancy, choice.period_month, choice.due_date)
            summary.created += 1
            logger.info("Created invoice unit=%s period=%s amount_cents=%s", label, choice.period_month, invoice.amount_cents)

            detail = schemas.GenerationDetail(unit_label=label, action="created", period_month=choice.period_month)
            tenant = tenancy.user
            if tenant is None or tenant.status != USER_ACTIVE or not tenant.email:
                detail.reason = "Tenant not active" if tenant is not None and tenant.status != USER_ACTIVE else "No tenant email"
            elif invoice_emails_enabled():
                notifier = notifier or NotificationService(db)
                result = notifier.notify_invoice_ready(invoice, tenant)
                detail.email_sent = bool(result.get("success"))
                if detail.email_sent:
                    summary.emails_sent += 1
                else:
                    summary.emails_failed += 1
            details.append(detail)
        except Exception as exc:
            db.rollback()
            logger.exception("Invoice generation failed for unit=%s", label)
            _error(label, str(exc))

    summary.error_count = len(errors)
    logger.info(
        "Invoice generation complete dry_run=%s created=%d skipped=%d errors=%d emails_sent=%d emails_failed=%d",
        dry_run, summary.created, summary.skipped, summary.error_count, summary.emails_sent, summary.emails_failed,
    )
    return schemas.InvoiceGenerationResult(
        run_date=today,
        dry_run=dry_run,
        lead_days=lead_days,
        summary=summary,
        errors=errors,
        details=details,
    )


def generate_for_period(db: Session, period_month: str) -> schemas.PeriodGenerationResponse:
    """Create RENT invoices for an explicit period, skipping units already billed."""
    year, month = parse_period(period_month)
    created: List[schemas.GeneratedInvoice] = []
    errors: List[schemas.GenerationError] = []
    skipped = 0

    for unit, tenancy in occupied_units_with_tenancy(db):
        if tenancy is None:
            errors.append(schemas.GenerationError(unit_label=unit.unit_label, error="No active tenancy found"))
            continue
        if not unit.rent_amount_cents:
            errors.append(schemas.GenerationError(unit_label=unit.unit_label, error="No rent amount configured"))
            continue
        if invoice_repo.find_rent_invoice(db, unit.id, period_month):
            skipped += 1
            continue
        try:
            create_rent_invoice(db, unit, tenancy, period_month, clamped_due_date(year, month, unit.rent_due_day or 1))
        except Exception as exc:
            db.rollback()
            logger.exception("Invoice generation failed for unit=%s period=%s", unit.unit_label, period_month)
            errors.append(schemas.GenerationError(unit_label=unit.unit_label, error=str(exc)))
            continue
        created.append(schemas.GeneratedInvoice(unit_label=unit.unit_label, amount_cents=unit.rent_amount_cents))

    logger.info("Generated invoices period=%s created=%d skipped=%d errors=%d", period_month, len(created), skipped, len(errors))
    return schemas.PeriodGenerationResponse(
        period_month=period_month,
        created=len(created),
        skipped=skipped,
        error_count=len(errors),
        errors=errors,
        invoices=created,
    )


def upcoming_due_dates(db: Session, *, today: date, lead_days: int = DEFAULT_LEAD_DAYS) -> schemas.InvoiceCronStatus:
    """Preview what the next generation run would do for each occupied unit."""
    rows: List[schemas.UpcomingDueDate] = []
    for unit, tenancy in occupied_units_with_tenancy(db):
        due_day = unit.rent_due_day or 1
        choice = select_period(today, due_day, lead_days)
        if choice.period_month is not None:
            period_month, due = choice.period_month, choice.due_date
        else:
            due = clamped_due_date(today.year, today.month, due_day)
            if due < today:
                ny, nm = next_month(today.year, today.month)
                due = clamped_due_date(ny, nm, due_day)
            period_month = period_for(due)
        exists = invoice_repo.find_rent_invoice(db, unit.id, period_month) is not None
        tenant = tenancy.user if tenancy is not None else None
        rows.append(schemas.UpcomingDueDate(
            unit_id=unit.id,
            unit_label=unit.unit_label,
            rent_amount_cents=unit.rent_amount_cents,
            rent_due_day=due_day,
            period_month=period_month,
            next_due_date=due,
            days_until_due=(due - today).days,
            invoice_exists=exists,
            would_generate=choice.period_month is not None and not exists and bool(unit.rent_amount_cents),
            tenant_email=tenant.email if tenant is not None else None,
        ))
    return schemas.InvoiceCronStatus(
        today=today,
        lead_days=lead_days,
        units_checked=len(rows),
        would_generate=sum(1 for r in rows if r.would_generate),
        already_exist=sum(1 for r in rows if r.invoice_exists),
        units=rows,
    )
