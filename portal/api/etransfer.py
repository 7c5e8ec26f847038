"""
Admin e-Transfer review, webhook configuration and intake log management.
"""
from typing import List, Optional
import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from portal.db.database import get_db
from portal.db import schemas
from portal.db.repositories import intake as intake_repo
from portal.db.repositories import invoices as invoice_repo
from portal.api.deps import require_admin
from portal.errors import not_found
from portal.services import etransfer as etransfer_service

router = APIRouter(prefix="/admin/etransfer", tags=["etransfer"])


@router.get("/settings", response_model=schemas.EtransferSettings)
def get_settings(db: Session = Depends(get_db), admin=Depends(require_admin)):
    return invoice_repo.get_settings(db)


@router.put("/settings", response_model=schemas.EtransferSettings)
def update_settings(payload: schemas.EtransferSettingsUpdate, db: Session = Depends(get_db), admin=Depends(require_admin)):
    return etransfer_service.update_settings(db, payload, admin)


@router.get("/pending", response_model=List[schemas.Invoice])
def list_pending(db: Session = Depends(get_db), admin=Depends(require_admin)):
    return etransfer_service.pending_etransfers(db)


@router.get("/webhook-config", response_model=schemas.WebhookConfig)
def get_webhook_config(db: Session = Depends(get_db), admin=Depends(require_admin)):
    return etransfer_service.webhook_config(db)


@router.post("/webhook-secret", response_model=schemas.WebhookConfig)
def set_webhook_secret(payload: schemas.WebhookSecretUpdate, db: Session = Depends(get_db), admin=Depends(require_admin)):
    return etransfer_service.set_webhook_secret(db, payload.secret, admin)


@router.get("/intake-logs", response_model=schemas.IntakeLogList)
def list_intake_logs(
    status: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    limit = max(1, min(limit, 200))
    logs, total = intake_repo.list_intake_logs(db, status=status, skip=offset, limit=limit)
    return schemas.IntakeLogList(
        items=[schemas.IntakeLogDetail.model_validate(log) for log in logs],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/intake-logs/{log_id}", response_model=schemas.IntakeLogDetail)
def get_intake_log(log_id: uuid.UUID, db: Session = Depends(get_db), admin=Depends(require_admin)):
    log = intake_repo.get_intake_log(db, log_id)
    if log is None:
        raise not_found("Intake log not found")
    return etransfer_service.intake_detail(db, log)


@router.post("/intake-logs/{log_id}/match", response_model=schemas.IntakeLogDetail)
def match_intake_log(log_id: uuid.UUID, payload: schemas.ManualMatchRequest, db: Session = Depends(get_db), admin=Depends(require_admin)):
    """Reconcile an intake log against an invoice chosen by the admin."""
    return etransfer_service.manual_match(
        db, log_id=log_id, tenant_id=payload.tenant_id, invoice_id=payload.invoice_id, admin=admin,
    )


@router.put("/intake-logs/{log_id}/dismiss", response_model=schemas.IntakeLogDetail)
def dismiss_intake_log(log_id: uuid.UUID, db: Session = Depends(get_db), admin=Depends(require_admin)):
    return etransfer_service.dismiss(db, log_id=log_id, admin=admin)


@router.post("/test-webhook", response_model=schemas.WebhookDryRunResult)
def dry_run_webhook(payload: schemas.WebhookDryRunRequest, db: Session = Depends(get_db), admin=Depends(require_admin)):
    """Run a pasted notification through parse, match and invoice lookup without saving anything."""
    return etransfer_service.simulate_intake(db, payload.raw_email_content, payload.raw_email_subject)


@router.get("/payment-history", response_model=List[schemas.PaymentHistoryItem])
def payment_history(month: Optional[str] = None, db: Session = Depends(get_db), admin=Depends(require_admin)):
    return etransfer_service.payment_history(db, month)


@router.put("/{invoice_id}/approve", response_model=schemas.EtransferActionResult)
def approve_etransfer(invoice_id: uuid.UUID, db: Session = Depends(get_db), admin=Depends(require_admin)):
    return etransfer_service.approve(db, invoice_id=invoice_id, admin=admin)


@router.put("/{invoice_id}/reject", response_model=schemas.EtransferActionResult)
def reject_etransfer(invoice_id: uuid.UUID, payload: schemas.RejectRequest, db: Session = Depends(get_db), admin=Depends(require_admin)):
    return etransfer_service.reject(db, invoice_id=invoice_id, reason=payload.reason, admin=admin)
