"""
Audit logging helpers and enums.

Centralized helpers to persist normalized audit records with consistent
schema; includes convenience wrappers per target type.
"""
from __future__ import annotations
import uuid
from enum import Enum
from typing import Any, Optional, Dict
from sqlalchemy.orm import Session

from portal.db import schemas
from portal.db.repositories import audits as audit_repo


class AuditAction(str, Enum):
    # Settings
    SETTINGS_UPDATE = "settings_update"
    WEBHOOK_SECRET_UPDATE = "webhook_secret_update"
    # e-Transfer review
    ETRANSFER_APPROVE = "etransfer_approve"
    ETRANSFER_REJECT = "etransfer_reject"
    # Payment intake
    INTAKE_MANUAL_MATCH = "intake_manual_match"
    INTAKE_DISMISS = "intake_dismiss"
    # Invoices
    INVOICE_CREATE = "invoice_create"
    INVOICE_UPDATE = "invoice_update"
    INVOICE_MARK_PAID = "invoice_mark_paid"
    INVOICE_VOID = "invoice_void"
    # Units / tenants
    UNIT_CREATE = "unit_create"
    UNIT_UPDATE = "unit_update"
    UNIT_DELETE = "unit_delete"
    TENANT_DEACTIVATE = "tenant_deactivate"
    TENANT_REACTIVATE = "tenant_reactivate"
    # Insurance
    INSURANCE_APPROVE = "insurance_approve"
    INSURANCE_REJECT = "insurance_reject"
    # Invitations
    INVITATION_CREATE = "invitation_create"
    INVITATION_RESEND = "invitation_resend"
    INVITATION_REVOKE = "invitation_revoke"
    INVITATION_ACCEPT = "invitation_accept"


class AuditStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


def log(
    db: Session,
    *,
    action: AuditAction | str,
    status: AuditStatus | str = AuditStatus.SUCCESS,
    target_type: str,
    target_id: Optional[uuid.UUID] = None,
    actor_user_id: Optional[uuid.UUID] = None,
    metadata: Optional[Dict[str, Any]] = None,
    commit: bool = True,
):
    """Central audit logging helper.

    Pass ``commit=False`` to stage the row inside a caller's transaction.
    """
    # Ensure we persist pure string values, not Enum reprs (avoid 'AuditAction.XYZ')
    action_value = action.value if isinstance(action, AuditAction) else str(action)
    status_value = status.value if isinstance(status, AuditStatus) else str(status)
    audit_log = schemas.AuditLogCreate(
        action_type=action_value,
        status=status_value,
        target_type=target_type,
        target_id=target_id,
        metadata=metadata or {},
    )
    return audit_repo.create_audit_log(
        db,
        audit_log=audit_log,
        actor_user_id=actor_user_id,
        commit=commit,
    )


__all__ = ["AuditAction", "AuditStatus", "log"]


def log_invoice(db: Session, *, actor_user_id: Optional[uuid.UUID], invoice_id: uuid.UUID, action: AuditAction, status: AuditStatus | str = AuditStatus.SUCCESS, metadata: Optional[Dict[str, Any]] = None, commit: bool = True):
    return log(
        db,
        action=action,
        status=status,
        target_type="invoice",
        target_id=invoice_id,
        actor_user_id=actor_user_id,
        metadata=metadata,
        commit=commit,
    )


def log_intake(db: Session, *, actor_user_id: Optional[uuid.UUID], intake_log_id: uuid.UUID, action: AuditAction, metadata: Optional[Dict[str, Any]] = None, commit: bool = True):
    return log(
        db,
        action=action,
        target_type="payment_intake_log",
        target_id=intake_log_id,
        actor_user_id=actor_user_id,
        metadata=metadata,
        commit=commit,
    )


def log_user(db: Session, *, actor_user_id: Optional[uuid.UUID], user_id: uuid.UUID, action: AuditAction, metadata: Optional[Dict[str, Any]] = None):
    return log(
        db,
        action=action,
        target_type="user",
        target_id=user_id,
        actor_user_id=actor_user_id,
        metadata=metadata,
    )


__all__.extend(["log_invoice", "log_intake", "log_user"])
