"""
e-Transfer settings, tenant "I sent it" notices, and admin review of
pending transfers and intake logs, plus a dry run of the intake pipeline.
"""

import logging
import os
import uuid
from datetime import datetime, UTC
from typing import Optional, Tuple, List

from sqlalchemy.orm import Session

from portal.audit import AuditAction, log_intake, log_invoice, log as audit_log
from portal.db import models, schemas
from portal.db.repositories import intake as intake_repo
from portal.db.repositories import invoices as invoice_repo
from portal.db.repositories import users as user_repo
from portal.errors import PortalError, bad_request, not_found
from portal.services.notification_service import NotificationService, format_cents
from portal.services.payment_parser import (
    ParserConfig,
    find_oldest_pending_invoice,
    find_pending_invoices_for_tenant,
    match_tenant_by_name,
    parse_payment_notification,
)
from portal.services.payment_reconciliation import reconcile_invoice
from portal.utils.dates import ensure_utc, parse_period, next_month, period_label, today_utc
from portal.utils.feature_flags import etransfer_feature_enabled
from portal.utils.statuses import (
    ETRANSFER_APPROVED,
    ETRANSFER_PENDING,
    ETRANSFER_REJECTED,
    INTAKE_DISMISSED,
    INTAKE_PAID,
    INVOICE_PAID,
    INVOICE_VOID,
    PAYMENT_METHOD_ETRANSFER,
    PAYMENT_METHOD_ETRANSFER_MANUAL,
)

logger = logging.getLogger(__name__)

WEBHOOK_PATH = "/webhooks/rent-payment-intake"
MIN_SECRET_LENGTH = 10


# === Settings ===

def etransfer_enabled(settings: models.PortalSettings) -> bool:
    return bool(settings.etransfer_enabled) and etransfer_feature_enabled()


def update_settings(db: Session, update: schemas.EtransferSettingsUpdate, actor: models.User) -> models.PortalSettings:
    settings = invoice_repo.get_settings(db)
    changes = update.model_dump(exclude_unset=True)
    for key, value in changes.items():
        setattr(settings, key, value)
    db.commit()
    db.refresh(settings)
    audit_log(
        db,
        action=AuditAction.SETTINGS_UPDATE,
        target_type="portal_settings",
        actor_user_id=actor.id,
        metadata={"fields": sorted(changes)},
    )
    return settings


def render_memo(template: str, unit_label: str, period_month: str) -> str:
    return template.replace("{UNIT_LABEL}", unit_label).replace("{MONTH}", period_label(period_month))


def mask_secret(secret: Optional[str]) -> Optional[str]:
    if not secret:
        return None
    if len(secret) <= 8:
        return "*" * len(secret)
    return f"{secret[:4]}{'*' * (len(secret) - 8)}{secret[-4:]}"


def resolve_webhook_secret(db: Session) -> Tuple[Optional[str], Optional[str]]:
    """Return (secret, source); the environment overrides the settings row."""
    env_secret = os.getenv("PAYMENT_WEBHOOK_SECRET")
    if env_secret:
        return env_secret, "env"
    settings = invoice_repo.get_settings(db)
    if settings.webhook_secret:
        return settings.webhook_secret, "settings"
    return None, None


def webhook_config(db: Session) -> schemas.WebhookConfig:
    secret, source = resolve_webhook_secret(db)
    return schemas.WebhookConfig(
        configured=secret is not None,
        masked_secret=mask_secret(secret),
        source=source,
        webhook_path=WEBHOOK_PATH,
    )


def set_webhook_secret(db: Session, secret: str, actor: models.User) -> schemas.WebhookConfig:
    secret = (secret or "").strip()
    if len(secret) < MIN_SECRET_LENGTH:
        raise bad_request("INVALID_SECRET", f"Secret must be at least {MIN_SECRET_LENGTH} characters")
    settings = invoice_repo.get_settings(db)
    settings.webhook_secret = secret
    db.commit()
    audit_log(db, action=AuditAction.WEBHOOK_SECRET_UPDATE, target_type="portal_settings", actor_user_id=actor.id)
    return webhook_config(db)


# === Tenant ===

def tenant_settings(db: Session, tenancy: Optional[models.Tenancy]) -> schemas.TenantEtransferSettings:
    settings = invoice_repo.get_settings(db)
    example = None
    if tenancy is not None and tenancy.unit is not None:
        example = render_memo(settings.etransfer_memo_template, tenancy.unit.unit_label, f"{today_utc():%Y-%m}")
    return schemas.TenantEtransferSettings(
        etransfer_enabled=etransfer_enabled(settings),
        etransfer_recipient_email=settings.etransfer_recipient_email,
        etransfer_memo_template=settings.etransfer_memo_template,
        memo_example=example,
    )


def mark_sent(db: Session, *, invoice_id: uuid.UUID, tenant: models.User) -> models.Invoice:
    """Record the tenant's notice that an e-Transfer was sent for an invoice."""
    tenancy = user_repo.get_active_tenancy(db, tenant.id)
    if tenancy is None:
        raise bad_request("NO_TENANCY", "No active tenancy found")
    invoice = invoice_repo.get_invoice(db, invoice_id)
    if invoice is None or invoice.unit_id != tenancy.unit_id:
        raise not_found("Invoice not found")
    if invoice.status == INVOICE_PAID:
        raise bad_request("ALREADY_PAID", "Invoice is already paid")
    if invoice.status == INVOICE_VOID:
        raise bad_request("VOIDED", "Invoice has been voided")
    if invoice.etransfer_status == ETRANSFER_PENDING:
        raise bad_request("ALREADY_PENDING", "An e-Transfer is already pending review for this invoice")
    if not etransfer_enabled(invoice_repo.get_settings(db)):
        raise bad_request("ETRANSFER_DISABLED", "e-Transfer payments are currently disabled")

    invoice.payment_method = PAYMENT_METHOD_ETRANSFER
    invoice.etransfer_status = ETRANSFER_PENDING
    invoice.etransfer_marked_at = datetime.now(UTC)
    invoice.etransfer_marked_by_id = tenant.id
    invoice.etransfer_reject_reason = None
    db.commit()
    db.refresh(invoice)
    logger.info("e-Transfer marked sent invoice=%s tenant=%s", invoice.id, tenant.id)
    return invoice


# === Admin review ===

def _pending_invoice(db: Session, invoice_id: uuid.UUID) -> models.Invoice:
    invoice = invoice_repo.get_invoice(db, invoice_id)
    if invoice is None:
        raise not_found("Invoice not found")
    if invoice.etransfer_status != ETRANSFER_PENDING:
        raise bad_request("NOT_PENDING", "Invoice has no pending e-Transfer")
    return invoice


def _invoice_tenant(db: Session, invoice: models.Invoice) -> Optional[models.User]:
    if invoice.etransfer_marked_by_id:
        user = user_repo.get_user(db, invoice.etransfer_marked_by_id)
        if user is not None:
            return user
    return invoice.tenancy.user if invoice.tenancy else None


def approve(db: Session, *, invoice_id: uuid.UUID, admin: models.User, notifier: Optional[NotificationService] = None) -> schemas.EtransferActionResult:
    invoice = _pending_invoice(db, invoice_id)
    tenant = _invoice_tenant(db, invoice)
    now = datetime.now(UTC)

    invoice.status = INVOICE_PAID
    invoice.etransfer_status = ETRANSFER_APPROVED
    payment = invoice_repo.create_payment(
        db,
        invoice=invoice,
        user_id=tenant.id if tenant else invoice.tenancy.user_id,
        amount_cents=invoice.amount_cents,
        method=PAYMENT_METHOD_ETRANSFER_MANUAL,
        paid_at=now,
        approved_by_id=admin.id,
    )
    db.commit()
    db.refresh(invoice)
    log_invoice(db, actor_user_id=admin.id, invoice_id=invoice.id, action=AuditAction.ETRANSFER_APPROVE,
                metadata={"amount_cents": invoice.amount_cents, "payment_id": str(payment.id)})

    notification = None
    if tenant is not None:
        notification = (notifier or NotificationService(db)).notify_etransfer_approved(invoice, tenant)
    return schemas.EtransferActionResult(
        invoice=schemas.Invoice.model_validate(invoice),
        payment_id=payment.id,
        notification=notification,
    )


def reject(db: Session, *, invoice_id: uuid.UUID, reason: str, admin: models.User, notifier: Optional[NotificationService] = None) -> schemas.EtransferActionResult:
    invoice = _pending_invoice(db, invoice_id)
    tenant = _invoice_tenant(db, invoice)

    invoice.payment_method = None
    invoice.etransfer_status = ETRANSFER_REJECTED
    invoice.etransfer_reject_reason = reason
    db.commit()
    db.refresh(invoice)
    log_invoice(db, actor_user_id=admin.id, invoice_id=invoice.id, action=AuditAction.ETRANSFER_REJECT, metadata={"reason": reason})

    notification = None
    if tenant is not None:
        notification = (notifier or NotificationService(db)).notify_etransfer_rejected(invoice, tenant, reason)
    return schemas.EtransferActionResult(
        invoice=schemas.Invoice.model_validate(invoice),
        notification=notification,
    )


# === Intake logs ===

def intake_detail(db: Session, log: models.PaymentIntakeLog) -> schemas.IntakeLogDetail:
    detail = schemas.IntakeLogDetail.model_validate(log)
    if log.matched_tenant_id:
        tenant = user_repo.get_user(db, log.matched_tenant_id)
        if tenant is not None:
            detail.matched_tenant = schemas.TenantRef.model_validate(tenant)
            detail.candidate_invoices = [
                schemas.Invoice.model_validate(inv) for inv in find_pending_invoices_for_tenant(db, tenant.id)
            ]
    if log.matched_invoice_id:
        invoice = invoice_repo.get_invoice(db, log.matched_invoice_id)
        if invoice is not None:
            detail.matched_invoice = schemas.Invoice.model_validate(invoice)
    return detail


def _open_log(db: Session, log_id: uuid.UUID) -> models.PaymentIntakeLog:
    log = intake_repo.get_intake_log(db, log_id)
    if log is None:
        raise not_found("Intake log not found")
    if log.status == INTAKE_PAID:
        raise bad_request("ALREADY_RECONCILED", "This payment has already been reconciled")
    return log


def manual_match(db: Session, *, log_id: uuid.UUID, tenant_id: uuid.UUID, invoice_id: uuid.UUID, admin: models.User,
                 notifier: Optional[NotificationService] = None) -> schemas.IntakeLogDetail:
    log = _open_log(db, log_id)
    tenant = user_repo.get_user(db, tenant_id)
    if tenant is None:
        raise not_found("Tenant not found")
    invoice = invoice_repo.get_invoice(db, invoice_id)
    if invoice is None:
        raise not_found("Invoice not found")
    if invoice.status == INVOICE_PAID:
        raise bad_request("INVOICE_ALREADY_PAID", "Invoice is already paid")
    if invoice.status == INVOICE_VOID:
        raise bad_request("VOIDED", "Invoice has been voided")
    if not user_repo.has_tenancy_on_unit(db, tenant.id, invoice.unit_id):
        raise bad_request("TENANT_MISMATCH", "Invoice does not belong to a unit of this tenant")

    amount_cents = log.amount_cents or invoice.amount_cents
    unit = invoice.unit
    where = f"{unit.building_name} - {unit.unit_label}" if unit.building_name else unit.unit_label
    note = f"Manual match by admin: {format_cents(amount_cents)} from {tenant.display_name or tenant.email} to {where}"
    payment = reconcile_invoice(
        db,
        log=log,
        tenant=tenant,
        invoice=invoice,
        amount_cents=amount_cents,
        note=note,
        approved_by_id=admin.id,
    )
    log_intake(db, actor_user_id=admin.id, intake_log_id=log.id, action=AuditAction.INTAKE_MANUAL_MATCH,
               metadata={"invoice_id": str(invoice.id), "tenant_id": str(tenant.id), "amount_cents": amount_cents})
    (notifier or NotificationService(db)).notify_payment_received(invoice, tenant, payment)
    return intake_detail(db, log)


def dismiss(db: Session, *, log_id: uuid.UUID, admin: models.User) -> schemas.IntakeLogDetail:
    log = _open_log(db, log_id)
    log.status = INTAKE_DISMISSED
    log.reconciliation_note = f"Dismissed by admin on {datetime.now(UTC).date().isoformat()}"
    db.commit()
    db.refresh(log)
    log_intake(db, actor_user_id=admin.id, intake_log_id=log.id, action=AuditAction.INTAKE_DISMISS)
    return intake_detail(db, log)


def payment_history(db: Session, month: Optional[str] = None) -> List[schemas.PaymentHistoryItem]:
    start = end = None
    if month:
        try:
            year, mon = parse_period(month)
        except ValueError as exc:
            raise PortalError(400, "VALIDATION_ERROR", str(exc))
        ny, nm = next_month(year, mon)
        start = datetime(year, mon, 1, tzinfo=UTC)
        end = datetime(ny, nm, 1, tzinfo=UTC)

    items = []
    for payment in invoice_repo.list_etransfer_payments(db, start=start, end=end):
        invoice = payment.invoice
        tenant = user_repo.get_user(db, payment.user_id)
        items.append(schemas.PaymentHistoryItem(
            id=payment.id,
            invoice_id=payment.invoice_id,
            period_month=invoice.period_month if invoice else None,
            unit_label=invoice.unit.unit_label if invoice and invoice.unit else None,
            tenant=schemas.TenantRef.model_validate(tenant) if tenant else None,
            amount_cents=payment.amount_cents,
            paid_at=ensure_utc(payment.paid_at),
            method=payment.method,
            receipt_reference=payment.receipt_reference,
            approved_by_id=payment.approved_by_id,
        ))
    return items


def pending_etransfers(db: Session) -> List[schemas.Invoice]:
    return [schemas.Invoice.model_validate(inv) for inv in invoice_repo.list_pending_etransfers(db)]


# === Webhook dry run ===

def _step(steps: List[schemas.WebhookDryRunStep], step: str, status: str, message: str) -> None:
    steps.append(schemas.WebhookDryRunStep(step=step, status=status, message=message))


def simulate_intake(db: Session, body: str, subject: Optional[str] = None,
                    *, parser_config: Optional[ParserConfig] = None) -> schemas.WebhookDryRunResult:
    """Walk a notification through validate, parse, match and reconcile without writing anything."""
    steps: List[schemas.WebhookDryRunStep] = []

    secret, source = resolve_webhook_secret(db)
    if secret:
        _step(steps, "validate", "success", f"Webhook secret is configured ({source}) and would be validated")
    else:
        _step(steps, "validate", "failure", "Webhook secret is not configured")

    parsed = parse_payment_notification(subject or "", body, config=parser_config)
    amount = format_cents(parsed.amount_cents) if parsed.amount_cents else None
    parsed_out = schemas.WebhookDryRunParsed(
        sender_name=parsed.sender_name,
        amount=amount,
        amount_cents=parsed.amount_cents,
        reference_number=parsed.reference_number,
        confidence=parsed.confidence,
        method=parsed.method,
    )
    if parsed.sender_name and parsed.amount_cents:
        _step(steps, "parse", "success",
              f"Extracted: {parsed.sender_name}, {amount}, {parsed.reference_number or 'no reference'}")
    elif parsed.error:
        _step(steps, "parse", "failure", f"Parsing error: {parsed.error}")
    else:
        missing = [label for label, value in (("sender name", parsed.sender_name), ("amount", parsed.amount_cents)) if not value]
        _step(steps, "parse", "failure", f"Could not extract: {', '.join(missing)}")

    tenant_out = None
    match = None
    if parsed.sender_name:
        match = match_tenant_by_name(db, parsed.sender_name)
        if match is not None:
            unit = None
            if match.unit_label:
                unit = f"{match.building_name} - {match.unit_label}" if match.building_name else match.unit_label
            tenant_out = schemas.WebhookDryRunTenant(
                id=match.user.id, name=match.user.display_name, email=match.user.email, unit=unit,
            )
            _step(steps, "match", "success", f"Matched tenant: {match.user.display_name} ({unit or 'no unit assigned'})")
        else:
            _step(steps, "match", "failure", f'No tenant found matching "{parsed.sender_name}"')
    else:
        _step(steps, "match", "skipped", "Tenant matching skipped - no sender name extracted")

    invoice_out = None
    if match is None:
        _step(steps, "reconcile", "skipped", "Invoice reconciliation skipped - no tenant matched")
    elif not parsed.amount_cents:
        _step(steps, "reconcile", "skipped", "Invoice reconciliation skipped - no amount extracted")
    else:
        invoice = find_oldest_pending_invoice(db, match.user.id, parsed.amount_cents)
        if invoice is not None:
            invoice_out = schemas.Invoice.model_validate(invoice)
            _step(steps, "reconcile", "success",
                  f"Would mark invoice {invoice.period_month} ({invoice.unit.unit_label}) as PAID (dry run, no changes made)")
        else:
            pending = find_pending_invoices_for_tenant(db, match.user.id)
            if pending:
                listed = ", ".join(f"{inv.period_month} ({format_cents(inv.amount_cents)})" for inv in pending)
                _step(steps, "reconcile", "failure",
                      f"No invoice found matching amount {amount}. Pending invoices for {match.user.display_name}: {listed}")
            else:
                _step(steps, "reconcile", "failure", f"No pending invoices found for {match.user.display_name}")

    return schemas.WebhookDryRunResult(steps=steps, parsed=parsed_out, matched_tenant=tenant_out, invoice=invoice_out)


__all__ = [
    "WEBHOOK_PATH",
    "approve",
    "reject",
    "mark_sent",
    "manual_match",
    "dismiss",
    "mask_secret",
    "resolve_webhook_secret",
    "tenant_settings",
    "update_settings",
    "webhook_config",
    "set_webhook_secret",
    "payment_history",
    "pending_etransfers",
    "intake_detail",
    "render_memo",
    "simulate_intake",
]
