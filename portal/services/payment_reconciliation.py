"""
Payment intake pipeline: log, parse, match and reconcile forwarded
Interac e-Transfer notifications.

Every inbound notification produces exactly one ``PaymentIntakeLog``. Anything
the pipeline cannot settle on its own ends in MANUAL_REVIEW for an admin.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Optional, Dict, Any

from sqlalchemy.orm import Session

from portal.db import models
from portal.db.repositories import intake as intake_repo
from portal.db.repositories import invoices as invoice_repo
from portal.services.notification_service import NotificationService, format_cents
from portal.services.payment_parser import (
    ParserConfig,
    find_oldest_pending_invoice,
    match_tenant_by_name,
    parse_payment_notification,
)
from portal.utils.statuses import (
    ETRANSFER_AUTO_PAID,
    INTAKE_FAILED,
    INTAKE_MANUAL_REVIEW,
    INTAKE_MATCHED,
    INTAKE_PAID,
    INTAKE_PARSED,
    INTAKE_RECEIVED,
    INVOICE_PAID,
    PAYMENT_METHOD_ETRANSFER,
)

logger = logging.getLogger("portal.webhooks")

MIN_BODY_LENGTH = 50
MIN_CONFIDENCE = 0.5

OUTCOME_VERIFICATION = "verification_logged"
OUTCOME_DUPLICATE = "duplicate_rejected"
OUTCOME_MANUAL_REVIEW = "manual_review"
OUTCOME_NO_TENANT = "no_tenant_match"
OUTCOME_NO_INVOICE = "no_invoice_match"
OUTCOME_RECONCILED = "reconciled"


@dataclass
class IntakePayload:
    body: Optional[str]
    subject: Optional[str] = None
    sender: Optional[str] = None
    headers: Dict[str, Any] = field(default_factory=dict)
    webhook_source: Optional[str] = None
    is_verified: bool = True


@dataclass
class IntakeOutcome:
    status: str
    log: models.PaymentIntakeLog


def reconcile_invoice(
    db: Session,
    *,
    log: models.PaymentIntakeLog,
    tenant: models.User,
    invoice: models.Invoice,
    amount_cents: int,
    note: str,
    method: str = PAYMENT_METHOD_ETRANSFER,
    approved_by_id: Optional[uuid.UUID] = None,
) -> models.Payment:
    """Mark the invoice paid, record the payment and close the log in one commit."""
    now = datetime.now(UTC)
    try:
        invoice.status = INVOICE_PAID
        invoice.payment_method = method
        invoice.etransfer_status = ETRANSFER_AUTO_PAID
        invoice.etransfer_marked_at = now

        payment = invoice_repo.create_payment(
            db,
            invoice=invoice,
            user_id=tenant.id,
            amount_cents=amount_cents,
            method=method,
            paid_at=now,
            receipt_reference=f"Interac Ref: {log.reference_number}" if log.reference_number else None,
            approved_by_id=approved_by_id,
        )

        log.matched_tenant_id = tenant.id
        log.matched_invoice_id = invoice.id
        log.status = INTAKE_PAID
        log.reconciliation_note = note
        log.reconciled_at = now
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(payment)
    return payment


def _to_review(db: Session, log: models.PaymentIntakeLog, note: str, outcome: str) -> IntakeOutcome:
    log.status = INTAKE_MANUAL_REVIEW
    log.reconciliation_note = note
    db.commit()
    logger.info("Payment intake log=%s outcome=%s note=%r", log.id, outcome, note)
    return IntakeOutcome(outcome, log)


def process_payment_intake(
    db: Session,
    payload: IntakePayload,
    *,
    parser_config: Optional[ParserConfig] = None,
    notifier: Optional[NotificationService] = None,
) -> IntakeOutcome:
    log = models.PaymentIntakeLog(
        raw_subject=payload.subject,
        raw_body=payload.body,
        raw_from=payload.sender,
        raw_headers=payload.headers or {},
        webhook_source=payload.webhook_source,
        is_verified=payload.is_verified,
        status=INTAKE_RECEIVED,
    )
    db.add(log)
    db.commit()
    db.refresh(log)

    body = (payload.body or "").strip()
    if len(body) < MIN_BODY_LENGTH:
        log.parse_error = "Short or empty body - possible verification request"
        return _to_review(db, log, log.parse_error, OUTCOME_VERIFICATION)

    parsed = parse_payment_notification(payload.subject or "", body, payload.sender, config=parser_config)

    if parsed.reference_number and intake_repo.reference_already_paid(db, parsed.reference_number, exclude_id=log.id):
        log.reference_number = parsed.reference_number
        log.status = INTAKE_FAILED
        log.parse_error = f"Duplicate: Reference {parsed.reference_number} already processed"
        log.reconciliation_note = "This transaction reference has already been processed"
        db.commit()
        logger.warning("Duplicate payment intake log=%s reference=%s", log.id, parsed.reference_number)
        return IntakeOutcome(OUTCOME_DUPLICATE, log)

    log.sender_name = parsed.sender_name
    log.amount_cents = parsed.amount_cents
    log.reference_number = parsed.reference_number
    log.parse_confidence = parsed.confidence
    log.parse_method = parsed.method
    log.parse_error = parsed.error
    log.parsed_at = datetime.now(UTC)
    log.status = INTAKE_PARSED if parsed.sender_name and parsed.amount_cents else INTAKE_FAILED
    db.commit()

    if not parsed.sender_name:
        return _to_review(db, log, "Could not extract sender name", OUTCOME_MANUAL_REVIEW)
    if not parsed.amount_cents:
        return _to_review(db, log, "Could not extract amount", OUTCOME_MANUAL_REVIEW)
    if parsed.confidence < MIN_CONFIDENCE:
        return _to_review(db, log, "Low parsing confidence", OUTCOME_MANUAL_REVIEW)

    amount = format_cents(parsed.amount_cents)
    match = match_tenant_by_name(db, parsed.sender_name)
    if match is None:
        return _to_review(
            db, log, f"Manual Review Required: Unmatched payment of {amount} from {parsed.sender_name}", OUTCOME_NO_TENANT,
        )

    tenant = match.user
    tenant_name = tenant.display_name or tenant.email
    log.matched_tenant_id = tenant.id
    log.status = INTAKE_MATCHED
    db.commit()

    invoice = find_oldest_pending_invoice(db, tenant.id, parsed.amount_cents)
    if invoice is None:
        return _to_review(
            db, log, f"No matching invoice found for {tenant_name} - Amount: {amount}", OUTCOME_NO_INVOICE,
        )

    payment = reconcile_invoice(
        db,
        log=log,
        tenant=tenant,
        invoice=invoice,
        amount_cents=parsed.amount_cents,
        note=f"Auto-Payment: {amount} from {tenant_name} reconciled.",
    )
    logger.info(
        "Payment reconciled log=%s invoice=%s tenant=%s amount_cents=%d",
        log.id, invoice.id, tenant.id, parsed.amount_cents,
    )

    notifier = notifier or NotificationService(db)
    notifier.notify_payment_received(invoice, tenant, payment)
    return IntakeOutcome(OUTCOME_RECONCILED, log)
