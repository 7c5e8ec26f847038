"""
Admin and tenant invoice operations outside the automated jobs.
"""

import logging
import uuid
from datetime import datetime, UTC
from pathlib import Path
from typing import List

from jinja2 import Environment, FileSystemLoader, select_autoescape
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from portal.audit import AuditAction, log_invoice
from portal.db import models, schemas
from portal.db.repositories import invoices as invoice_repo
from portal.db.repositories import units as unit_repo
from portal.db.repositories import users as user_repo
from portal.errors import bad_request, forbidden, not_found
from portal.services.notification_service import NotificationService, format_cents
from portal.utils.dates import ensure_utc, period_label
from portal.utils.statuses import (
    INVOICE_OPEN,
    INVOICE_PAID,
    INVOICE_TYPE_CUSTOM,
    INVOICE_TYPE_RENT,
    INVOICE_VOID,
    INVOICE_OVERDUE,
    PAYMENT_METHOD_ETRANSFER,
    PAYMENT_METHOD_ETRANSFER_MANUAL,
    PAYMENT_METHOD_MANUAL,
    USER_ACTIVE,
)

logger = logging.getLogger(__name__)


def get_or_404(db: Session, invoice_id: uuid.UUID) -> models.Invoice:
    invoice = invoice_repo.get_invoice(db, invoice_id)
    if invoice is None:
        raise not_found("Invoice not found")
    return invoice


def create_invoice(db: Session, payload: schemas.InvoiceCreate, admin: models.User) -> models.Invoice:
    unit = unit_repo.get_unit(db, payload.unit_id)
    if unit is None:
        raise not_found("Unit not found")
    tenancy = user_repo.pick_primary_tenancy(user_repo.list_active_tenancies(db, unit_id=unit.id))
    if tenancy is None:
        raise bad_request("NO_TENANCY", "Unit has no active tenancy")
    if tenancy.user is None or tenancy.user.status != USER_ACTIVE:
        raise bad_request("TENANT_INACTIVE", "Tenant for this unit is not active")

    invoice_type = payload.invoice_type.value
    if invoice_type == INVOICE_TYPE_CUSTOM and not (payload.description or "").strip():
        raise bad_request("VALIDATION_ERROR", "Custom invoices require a description")
    if invoice_type == INVOICE_TYPE_RENT and invoice_repo.find_rent_invoice(db, unit.id, payload.period_month):
        raise bad_request("DUPLICATE", f"A rent invoice for {payload.period_month} already exists for this unit")

    invoice = models.Invoice(
        unit_id=unit.id,
        tenancy_id=tenancy.id,
        period_month=payload.period_month,
        due_date=ensure_utc(payload.due_date),
        amount_cents=payload.amount_cents,
        status=INVOICE_OPEN,
        invoice_type=invoice_type,
        description=payload.description,
    )
    db.add(invoice)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise bad_request("DUPLICATE", f"A rent invoice for {payload.period_month} already exists for this unit")
    db.refresh(invoice)
    log_invoice(db, actor_user_id=admin.id, invoice_id=invoice.id, action=AuditAction.INVOICE_CREATE,
                metadata={"unit_id": str(unit.id), "period_month": invoice.period_month, "amount_cents": invoice.amount_cents})
    return invoice


def update_invoice(db: Session, invoice_id: uuid.UUID, payload: schemas.InvoiceUpdate, admin: models.User) -> models.Invoice:
    invoice = get_or_404(db, invoice_id)
    changes = payload.model_dump(exclude_unset=True)
    new_status = changes.get("status")
    if new_status is not None:
        new_status = new_status.value if hasattr(new_status, "value") else new_status
        if invoice.status == INVOICE_PAID and new_status != INVOICE_PAID:
            raise bad_request("ALREADY_PAID", "Paid invoices cannot be reopened")
        invoice.status = new_status
    if changes.get("amount_cents") is not None:
        invoice.amount_cents = changes["amount_cents"]
    if changes.get("due_date") is not None:
        invoice.due_date = ensure_utc(changes["due_date"])
    db.commit()
    db.refresh(invoice)
    log_invoice(db, actor_user_id=admin.id, invoice_id=invoice.id, action=AuditAction.INVOICE_UPDATE,
                metadata={"fields": sorted(changes)})
    return invoice


def mark_paid(db: Session, invoice_id: uuid.UUID, admin: models.User) -> schemas.InvoicePaidResponse:
    invoice = get_or_404(db, invoice_id)
    if invoice.status == INVOICE_PAID:
        raise bad_request("ALREADY_PAID", "Invoice is already paid")
    if invoice.status == INVOICE_VOID:
        raise bad_request("INVOICE_VOID", "Invoice has been voided")

    invoice.status = INVOICE_PAID
    invoice.payment_method = PAYMENT_METHOD_MANUAL
    payment = invoice_repo.create_payment(
        db,
        invoice=invoice,
        user_id=invoice.tenancy.user_id,
        amount_cents=invoice.amount_cents,
        method=PAYMENT_METHOD_MANUAL,
        paid_at=datetime.now(UTC),
        approved_by_id=admin.id,
    )
    db.commit()
    db.refresh(invoice)
    db.refresh(payment)
    log_invoice(db, actor_user_id=admin.id, invoice_id=invoice.id, action=AuditAction.INVOICE_MARK_PAID,
                metadata={"payment_id": str(payment.id), "amount_cents": payment.amount_cents})
    data = schemas.Invoice.model_validate(invoice).model_dump()
    return schemas.InvoicePaidResponse(**data, payment=schemas.PaymentOut.model_validate(payment))


def void(db: Session, invoice_id: uuid.UUID, admin: models.User) -> models.Invoice:
    invoice = get_or_404(db, invoice_id)
    if invoice.status == INVOICE_PAID:
        raise bad_request("ALREADY_PAID", "Paid invoices cannot be voided")
    invoice.status = INVOICE_VOID
    db.commit()
    db.refresh(invoice)
    log_invoice(db, actor_user_id=admin.id, invoice_id=invoice.id, action=AuditAction.INVOICE_VOID)
    return invoice


def send_reminder(db: Session, invoice_id: uuid.UUID, notifier: NotificationService = None) -> schemas.ReminderResponse:
    invoice = get_or_404(db, invoice_id)
    if invoice.status == INVOICE_PAID:
        raise bad_request("ALREADY_PAID", "Invoice is already paid")
    if invoice.status == INVOICE_VOID:
        raise bad_request("INVOICE_VOID", "Invoice has been voided")
    tenant = invoice.tenancy.user if invoice.tenancy else None
    if tenant is None or not tenant.email:
        raise bad_request("NO_TENANT_EMAIL", "Invoice has no tenant email")

    result = (notifier or NotificationService(db)).notify_rent_reminder(
        invoice, tenant, overdue=invoice.status == INVOICE_OVERDUE,
    )
    return schemas.ReminderResponse(
        success=bool(result.get("success")),
        invoice_id=invoice.id,
        sent_to=tenant.email,
        sent_at=datetime.now(UTC),
    )


def tenant_invoices(db: Session, tenancy: models.Tenancy) -> List[models.Invoice]:
    return (
        db.query(models.Invoice)
        .filter(models.Invoice.unit_id == tenancy.unit_id)
        .order_by(models.Invoice.period_month.desc(), models.Invoice.created_at.desc())
        .all()
    )


def tenant_invoice(db: Session, tenancy: models.Tenancy, invoice_id: uuid.UUID) -> models.Invoice:
    invoice = invoice_repo.get_invoice(db, invoice_id)
    if invoice is None or invoice.unit_id != tenancy.unit_id:
        raise not_found("Invoice not found")
    return invoice


# === Receipts ===

RECEIPT_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "receipts"
PAYMENT_METHOD_LABELS = {
    PAYMENT_METHOD_MANUAL: "Recorded by property management",
    PAYMENT_METHOD_ETRANSFER: "Interac e-Transfer",
    PAYMENT_METHOD_ETRANSFER_MANUAL: "Interac e-Transfer",
}

_receipt_env = Environment(
    loader=FileSystemLoader(str(RECEIPT_TEMPLATE_DIR)),
    autoescape=select_autoescape(["html"]),
)


def payment_receipt(db: Session, payment_id: uuid.UUID, tenant: models.User) -> str:
    """HTML receipt for one of the tenant's own payments."""
    payment = invoice_repo.get_payment(db, payment_id)
    if payment is None:
        raise not_found("Payment not found")
    if payment.user_id != tenant.id:
        raise forbidden("Access denied")

    unit = unit_repo.get_unit(db, payment.unit_id)
    prop = unit.property if unit is not None else None
    address = None
    if prop is not None:
        address = ", ".join(part for part in (prop.address, prop.city, prop.province, prop.postal_code) if part)
    unit_label = "-"
    if unit is not None:
        unit_label = f"{unit.building_name} - {unit.unit_label}" if unit.building_name else unit.unit_label

    return _receipt_env.get_template("payment_receipt.html").render(
        receipt_number=str(payment.id)[:8].upper(),
        property_name=prop.name if prop is not None else "Tenant Portal",
        property_address=address,
        tenant_name=tenant.display_name or tenant.email,
        tenant_email=tenant.email,
        unit_label=unit_label,
        paid_at=ensure_utc(payment.paid_at).strftime("%B %d, %Y"),
        period_label=period_label(payment.invoice.period_month),
        method=PAYMENT_METHOD_LABELS.get(payment.method, payment.method),
        receipt_reference=payment.receipt_reference,
        amount=format_cents(payment.amount_cents),
    )
