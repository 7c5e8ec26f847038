"""
Scheduled job endpoints, called by an external scheduler with a shared secret.
"""
import hmac
import logging
import os
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.orm import Session

from portal.db.database import get_db
from portal.db import schemas
from portal.errors import PortalError
from portal.services.invoice_generation import DEFAULT_LEAD_DAYS, generate_monthly_invoices, upcoming_due_dates
from portal.services.rent_reminders import reminder_status, send_rent_reminders
from portal.utils.dates import today_utc

logger = logging.getLogger(__name__)


def verify_cron_secret(
    x_cron_secret: Optional[str] = Header(default=None),
    secret: Optional[str] = Query(default=None),
) -> None:
    expected = os.getenv("CRON_SECRET", "")
    if not expected:
        logger.error("Cron endpoint called but CRON_SECRET is not set")
        raise PortalError(500, "NOT_CONFIGURED", "Cron secret is not configured")
    provided = x_cron_secret or secret or ""
    if not hmac.compare_digest(provided.encode(), expected.encode()):
        logger.warning("Cron request rejected: invalid secret")
        raise PortalError(401, "UNAUTHORIZED", "Invalid cron secret")


router = APIRouter(prefix="/cron", tags=["cron"], dependencies=[Depends(verify_cron_secret)])


@router.post("/invoices/generate-monthly", response_model=schemas.InvoiceGenerationResult)
def generate_monthly(
    dry_run: bool = False,
    days_lead: int = Query(default=DEFAULT_LEAD_DAYS, ge=0, le=28),
    db: Session = Depends(get_db),
):
    return generate_monthly_invoices(db, today=today_utc(), lead_days=days_lead, dry_run=dry_run)


@router.get("/invoices/status", response_model=schemas.InvoiceCronStatus)
def invoice_status(days_lead: int = Query(default=DEFAULT_LEAD_DAYS, ge=0, le=28), db: Session = Depends(get_db)):
    return upcoming_due_dates(db, today=today_utc(), lead_days=days_lead)


@router.post("/reminders/send", response_model=schemas.ReminderRunResult)
def send_reminders(
    dry_run: bool = False,
    days_before_due: int = Query(default=1, ge=0, le=14),
    db: Session = Depends(get_db),
):
    return send_rent_reminders(db, today=today_utc(), days_before_due=days_before_due, dry_run=dry_run)


@router.get("/reminders/status", response_model=schemas.ReminderCronStatus)
def reminders_status(days_before_due: int = Query(default=1, ge=0, le=14), db: Session = Depends(get_db)):
    return reminder_status(db, today=today_utc(), days_before_due=days_before_due)
