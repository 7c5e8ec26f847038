from unittest.mock import MagicMock, patch

import pytest

from portal.db import models
from portal.services.payment_reconciliation import (
    OUTCOME_DUPLICATE,
    OUTCOME_MANUAL_REVIEW,
    OUTCOME_NO_INVOICE,
    OUTCOME_NO_TENANT,
    OUTCOME_RECONCILED,
    OUTCOME_VERIFICATION,
    IntakePayload,
    process_payment_intake,
)

SUBJECT = "INTERAC e-Transfer: John Smith sent you money."
BODY = (
    "Hi Landlord,\n"
    "John Smith sent you $1,500.00 (CAD).\n"
    "Reference Number: CA1234567890\n"
    "This deposit was automatically processed."
)


def _payload(body=BODY, subject=SUBJECT):
    return IntakePayload(body=body, subject=subject, sender="notify@payments.interac.ca", webhook_source="test")


def test_short_body_is_logged_for_review(db_session):
    outcome = process_payment_intake(db_session, _payload(body="ping"))

    assert outcome.status == OUTCOME_VERIFICATION
    assert outcome.log.status == "MANUAL_REVIEW"
    assert "verification" in outcome.log.parse_error
    assert db_session.query(models.PaymentIntakeLog).count() == 1


def test_reconciles_matching_invoice(db_session, factory, tenant, email_service):
    invoice = factory.invoice(tenant.tenancy)

    outcome = process_payment_intake(db_session, _payload())

    assert outcome.status == OUTCOME_RECONCILED
    log = outcome.log
    assert log.status == "PAID"
    assert log.matched_tenant_id == tenant.user.id
    assert log.matched_invoice_id == invoice.id
    assert log.parse_method == "regex"
    assert log.reconciliation_note == "Auto-Payment: $1,500.00 from John Smith reconciled."

    db_session.refresh(invoice)
    assert invoice.status == "PAID"
    assert invoice.etransfer_status == "PAID"
    assert invoice.payment_method == "etransfer"
    payment = db_session.query(models.Payment).one()
    assert payment.amount_cents == 150000
    assert payment.receipt_reference == "Interac Ref: CA1234567890"
    assert db_session.query(models.EmailNotificationLog).filter_by(event_type="payment_received").count() == 1


def test_duplicate_reference_is_rejected(db_session, factory, tenant):
    factory.invoice(tenant.tenancy, period="2025-03")
    factory.invoice(tenant.tenancy, period="2025-04")
    process_payment_intake(db_session, _payload())

    outcome = process_payment_intake(db_session, _payload())

    assert outcome.status == OUTCOME_DUPLICATE
    assert outcome.log.status == "FAILED"
    assert "CA1234567890" in outcome.log.parse_error
    assert db_session.query(models.Payment).count() == 1


def test_unknown_sender_needs_review(db_session, factory, tenant):
    factory.invoice(tenant.tenancy)
    body = BODY.replace("John Smith", "Bob Stone")

    outcome = process_payment_intake(db_session, _payload(body=body, subject="Interac e-Transfer"))

    assert outcome.status == OUTCOME_NO_TENANT
    assert outcome.log.status == "MANUAL_REVIEW"
    assert outcome.log.reconciliation_note == "Manual Review Required: Unmatched payment of $1,500.00 from Bob Stone"


def test_amount_mismatch_needs_review(db_session, factory, tenant):
    factory.invoice(tenant.tenancy, amount_cents=160000)

    outcome = process_payment_intake(db_session, _payload())

    assert outcome.status == OUTCOME_NO_INVOICE
    assert outcome.log.matched_tenant_id == tenant.user.id
    assert outcome.log.matched_invoice_id is None
    assert outcome.log.reconciliation_note.startswith("No matching invoice found for John Smith")


def test_missing_sender_needs_review(db_session):
    body = "You have received $1,500.00 today. Please sign in to your bank to deposit these funds."

    outcome = process_payment_intake(db_session, _payload(body=body, subject="Deposit"))

    assert outcome.status == OUTCOME_MANUAL_REVIEW
    assert outcome.log.reconciliation_note == "Could not extract sender name"
    assert outcome.log.status == "MANUAL_REVIEW"


def test_missing_amount_needs_review(db_session, tenant):
    body = "John Smith sent you money.\nReference Number: CA1234567890\nPlease sign in to deposit these funds."

    outcome = process_payment_intake(db_session, _payload(body=body, subject="Interac e-Transfer"))

    assert outcome.status == OUTCOME_MANUAL_REVIEW
    assert outcome.log.sender_name == "John Smith"
    assert outcome.log.amount_cents is None
    assert outcome.log.reconciliation_note == "Could not extract amount"
    assert outcome.log.status == "MANUAL_REVIEW"


def test_low_confidence_parse_needs_review(db_session, factory, tenant, monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    invoice = factory.invoice(tenant.tenancy)
    response = MagicMock()
    response.raise_for_status.return_value = None
    response.json.return_value = {
        "choices": [{"message": {"content": '{"senderName": "John Smith", "amountCents": 150000, '
                                            '"referenceNumber": null, "confidence": 0.3}'}}]
    }

    with patch("portal.services.payment_parser.requests.post", return_value=response):
        outcome = process_payment_intake(db_session, _payload())

    assert outcome.status == OUTCOME_MANUAL_REVIEW
    assert outcome.log.parse_method == "llm"
    assert outcome.log.parse_confidence == pytest.approx(0.3)
    assert outcome.log.reconciliation_note == "Low parsing confidence"
    assert outcome.log.matched_tenant_id is None
    db_session.refresh(invoice)
    assert invoice.status == "OPEN"
