"""
Invoice, payment, reminder and settings repository functions.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional, List, Iterable
from sqlalchemy.orm import Session

from portal.db import models
from portal.utils.statuses import (
    INVOICE_TYPE_RENT,
    UNPAID_INVOICE_STATUSES,
    ETRANSFER_PENDING,
    ETRANSFER_PAYMENT_METHODS,
)

SETTINGS_ID = "default"


def get_invoice(db: Session, invoice_id: uuid.UUID) -> Optional[models.Invoice]:
    return db.query(models.Invoice).filter(models.Invoice.id == invoice_id).first()


def list_invoices(
    db: Session,
    *,
    status: Optional[str] = None,
    unit_id: Optional[uuid.UUID] = None,
    unit_ids: Optional[Iterable[uuid.UUID]] = None,
    period_month: Optional[str] = None,
    building_name: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[models.Invoice]:
    query = db.query(models.Invoice)
    if building_name:
        query = query.join(models.Unit, models.Unit.id == models.Invoice.unit_id).filter(models.Unit.building_name == building_name)
    if status:
        query = query.filter(models.Invoice.status == status)
    if unit_id:
        query = query.filter(models.Invoice.unit_id == unit_id)
    if unit_ids is not None:
        query = query.filter(models.Invoice.unit_id.in_(list(unit_ids)))
    if period_month:
        query = query.filter(models.Invoice.period_month == period_month)
    return (
        query.order_by(models.Invoice.period_month.desc(), models.Invoice.due_date.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


def find_rent_invoice(db: Session, unit_id: uuid.UUID, period_month: str) -> Optional[models.Invoice]:
    return (
        db.query(models.Invoice)
        .filter(
            models.Invoice.unit_id == unit_id,
            models.Invoice.period_month == period_month,
            models.Invoice.invoice_type == INVOICE_TYPE_RENT,
        )
        .first()
    )


def list_unpaid_for_units(db: Session, unit_ids: Iterable[uuid.UUID], *, amount_cents: Optional[int] = None, limit: Optional[int] = None) -> List[models.Invoice]:
    """Unpaid invoices on the given units, oldest due date first."""
    ids = list(unit_ids)
    if not ids:
        return []
    query = db.query(models.Invoice).filter(
        models.Invoice.unit_id.in_(ids),
        models.Invoice.status.in_(UNPAID_INVOICE_STATUSES),
    )
    if amount_cents is not None:
        query = query.filter(models.Invoice.amount_cents == amount_cents)
    query = query.order_by(models.Invoice.due_date.asc())
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def list_unpaid_due_between(db: Session, start: datetime, end: datetime) -> List[models.Invoice]:
    return (
        db.query(models.Invoice)
        .filter(
            models.Invoice.status.in_(UNPAID_INVOICE_STATUSES),
            models.Invoice.due_date >= start,
            models.Invoice.due_date < end,
        )
        .order_by(models.Invoice.due_date)
        .all()
    )


def list_pending_etransfers(db: Session) -> List[models.Invoice]:
    return (
        db.query(models.Invoice)
        .filter(models.Invoice.etransfer_status == ETRANSFER_PENDING)
        .order_by(models.Invoice.etransfer_marked_at.asc())
        .all()
    )


def create_payment(
    db: Session,
    *,
    invoice: models.Invoice,
    user_id: uuid.UUID,
    amount_cents: int,
    method: str,
    paid_at: datetime,
    receipt_reference: Optional[str] = None,
    approved_by_id: Optional[uuid.UUID] = None,
) -> models.Payment:
    payment = models.Payment(
        invoice_id=invoice.id,
        unit_id=invoice.unit_id,
        user_id=user_id,
        amount_cents=amount_cents,
        paid_at=paid_at,
        method=method,
        receipt_reference=receipt_reference,
        approved_by_id=approved_by_id,
    )
    db.add(payment)
    return payment


def get_payment(db: Session, payment_id: uuid.UUID) -> Optional[models.Payment]:
    return db.query(models.Payment).filter(models.Payment.id == payment_id).first()


def list_payments_for_user(db: Session, user_id: uuid.UUID, *, skip: int = 0, limit: int = 100) -> List[models.Payment]:
    return (
        db.query(models.Payment)
        .filter(models.Payment.user_id == user_id)
        .order_by(models.Payment.paid_at.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


def list_etransfer_payments(db: Session, *, start: Optional[datetime] = None, end: Optional[datetime] = None, limit: int = 200) -> List[models.Payment]:
    query = db.query(models.Payment).filter(models.Payment.method.in_(ETRANSFER_PAYMENT_METHODS))
    if start is not None:
        query = query.filter(models.Payment.paid_at >= start)
    if end is not None:
        query = query.filter(models.Payment.paid_at < end)
    return query.order_by(models.Payment.paid_at.desc()).limit(limit).all()


def reminder_exists(db: Session, invoice_id: uuid.UUID, reminder_no: int) -> bool:
    return (
        db.query(models.ReminderLog.id)
        .filter(models.ReminderLog.invoice_id == invoice_id, models.ReminderLog.reminder_no == reminder_no)
        .first()
        is not None
    )


def get_settings(db: Session) -> models.PortalSettings:
    """Return the singleton settings row, creating it with defaults on first use."""
    settings = db.query(models.PortalSettings).filter(models.PortalSettings.id == SETTINGS_ID).first()
    if settings is None:
        settings = models.PortalSettings(
            id=SETTINGS_ID,
            etransfer_enabled=True,
            etransfer_memo_template="{UNIT_LABEL} {MONTH} Rent",
        )
        db.add(settings)
        db.commit()
        db.refresh(settings)
    return settings
