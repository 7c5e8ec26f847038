"""
Renter's insurance: effective status, document upload and admin review.
"""

import logging
import os
import uuid
from datetime import datetime, timedelta, UTC
from pathlib import Path
from typing import Optional, List

from sqlalchemy.orm import Session

from portal.audit import AuditAction, log_user
from portal.db import models, schemas
from portal.db.repositories import users as user_repo
from portal.errors import PortalError, bad_request, not_found
from portal.services.notification_service import NotificationService
from portal.utils.dates import ensure_utc
from portal.utils.runtime import upload_root
from portal.utils.statuses import (
    INSURANCE_APPROVED,
    INSURANCE_EXPIRED,
    INSURANCE_MISSING,
    INSURANCE_PENDING,
    INSURANCE_REJECTED,
    ROLE_TENANT,
)

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = {"application/pdf", "image/jpeg", "image/png"}
ALLOWED_EXTENSIONS = {".pdf", ".jpg", ".jpeg", ".png"}
MAX_FILE_SIZE = 10 * 1024 * 1024
MAX_EXPIRY_YEARS = 2


def effective_status(record: Optional[models.InsuranceRecord], now: Optional[datetime] = None) -> str:
    """Stored status, with an APPROVED record past its expiry reported as EXPIRED."""
    if record is None:
        return INSURANCE_MISSING
    now = now or datetime.now(UTC)
    expires_at = ensure_utc(record.expires_at)
    if record.status == INSURANCE_APPROVED and expires_at is not None and expires_at < now:
        return INSURANCE_EXPIRED
    return record.status or INSURANCE_MISSING


def status_for(db: Session, user: models.User) -> schemas.InsuranceStatus:
    record = user_repo.get_insurance_record(db, user.id)
    return schemas.InsuranceStatus(
        user_id=user.id,
        status=effective_status(record),
        provider=record.provider if record else None,
        expires_at=ensure_utc(record.expires_at) if record else None,
        verified_at=ensure_utc(record.verified_at) if record else None,
        rejection_reason=record.rejection_reason if record else None,
        has_document=bool(record and record.document_path),
        reminder_sent_at=ensure_utc(record.reminder_sent_at) if record else None,
    )


def tenant_insurance(db: Session, tenant: models.User) -> schemas.TenantInsurance:
    status = status_for(db, tenant)
    tenancy = user_repo.get_active_tenancy(db, tenant.id)
    return schemas.TenantInsurance(
        **status.model_dump(),
        email=tenant.email,
        display_name=tenant.display_name,
        unit_label=tenancy.unit.unit_label if tenancy and tenancy.unit else None,
    )


def list_tenant_insurance(db: Session, status: Optional[str] = None) -> List[schemas.TenantInsurance]:
    rows = [tenant_insurance(db, tenant) for tenant in user_repo.list_active_tenants(db)]
    if status:
        rows = [row for row in rows if row.status == status]
    return rows


def sanitize_filename(filename: Optional[str]) -> str:
    name = os.path.basename((filename or "").replace("\\", "/"))
    return "".join(ch if ch.isalnum() or ch in "._-" else "_" for ch in name) or "document"


def validate_upload(filename: Optional[str], content_type: Optional[str], size: int) -> str:
    """Return the lowercase file extension, raising for disallowed or oversized files."""
    ext = Path(sanitize_filename(filename)).suffix.lower()
    if content_type not in ALLOWED_MIME_TYPES or ext not in ALLOWED_EXTENSIONS:
        raise bad_request("INVALID_FILE_TYPE", "Invalid file type. Only PDF, JPG, and PNG are allowed.")
    if size > MAX_FILE_SIZE:
        raise bad_request("FILE_TOO_LARGE", "File too large. Maximum size is 10MB.")
    if size == 0:
        raise bad_request("EMPTY_FILE", "File appears to be empty")
    return ext


def store_document(user_id: uuid.UUID, content: bytes, ext: str) -> str:
    directory = upload_root() / "insurance"
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{user_id}-{uuid.uuid4().hex}{ext}"
    path.write_bytes(content)
    return str(path)


def upload(
    db: Session,
    *,
    tenant: models.User,
    filename: Optional[str],
    content_type: Optional[str],
    content: bytes,
    provider: str,
    expires_at: datetime,
) -> schemas.InsuranceStatus:
    provider = (provider or "").strip()
    if not provider:
        raise bad_request("NO_PROVIDER", "Provider name is required")
    ext = validate_upload(filename, content_type, len(content))

    now = datetime.now(UTC)
    expires_at = ensure_utc(expires_at)
    if expires_at <= now:
        raise bad_request("EXPIRED_DATE", "Expiration date must be in the future")
    if expires_at > now + timedelta(days=365 * MAX_EXPIRY_YEARS):
        raise bad_request("DATE_TOO_FAR", "Expiration date cannot be more than 2 years in the future")

    path = store_document(tenant.id, content, ext)
    record = user_repo.get_or_create_insurance_record(db, tenant.id)
    record.status = INSURANCE_PENDING
    record.provider = provider
    record.expires_at = expires_at
    record.document_path = path
    record.rejection_reason = None
    record.verified_at = None
    record.verified_by_id = None
    db.commit()
    logger.info("Insurance uploaded tenant=%s path=%s", tenant.id, path)
    return status_for(db, tenant)


def _tenant_or_error(db: Session, tenant_id: uuid.UUID) -> models.User:
    tenant = user_repo.get_user(db, tenant_id)
    if tenant is None:
        raise not_found("Tenant not found")
    if tenant.role != ROLE_TENANT:
        raise bad_request("NOT_TENANT", "User is not a tenant")
    return tenant


def approve(db: Session, *, tenant_id: uuid.UUID, admin: models.User) -> schemas.TenantInsurance:
    tenant = _tenant_or_error(db, tenant_id)
    record = user_repo.get_insurance_record(db, tenant.id)
    if record is None or record.status != INSURANCE_PENDING:
        raise bad_request("NOT_PENDING", "No pending insurance to approve")
    expires_at = ensure_utc(record.expires_at)
    if expires_at is not None and expires_at < datetime.now(UTC):
        raise bad_request("ALREADY_EXPIRED", "Insurance has already expired")

    record.status = INSURANCE_APPROVED
    record.verified_at = datetime.now(UTC)
    record.verified_by_id = admin.id
    record.rejection_reason = None
    db.commit()
    log_user(db, actor_user_id=admin.id, user_id=tenant.id, action=AuditAction.INSURANCE_APPROVE)
    return tenant_insurance(db, tenant)


def reject(db: Session, *, tenant_id: uuid.UUID, reason: str, admin: models.User,
           notifier: Optional[NotificationService] = None) -> schemas.TenantInsurance:
    tenant = _tenant_or_error(db, tenant_id)
    record = user_repo.get_insurance_record(db, tenant.id)
    if record is None or record.status != INSURANCE_PENDING:
        raise bad_request("NOT_PENDING", "No pending insurance to reject")

    record.status = INSURANCE_REJECTED
    record.rejection_reason = reason
    record.verified_at = None
    record.verified_by_id = None
    db.commit()
    log_user(db, actor_user_id=admin.id, user_id=tenant.id, action=AuditAction.INSURANCE_REJECT, metadata={"reason": reason})
    (notifier or NotificationService(db)).notify_insurance_rejected(tenant, reason)
    return tenant_insurance(db, tenant)


def send_reminder(db: Session, *, tenant_id: uuid.UUID, notifier: Optional[NotificationService] = None) -> schemas.TenantInsurance:
    tenant = _tenant_or_error(db, tenant_id)
    record = user_repo.get_insurance_record(db, tenant.id)
    status = effective_status(record)
    result = (notifier or NotificationService(db)).notify_insurance_reminder(
        tenant, status, ensure_utc(record.expires_at) if record else None,
    )
    if not result.get("success"):
        raise PortalError(500, "EMAIL_FAILED", "Failed to send reminder email")

    record = user_repo.get_or_create_insurance_record(db, tenant.id)
    record.reminder_sent_at = datetime.now(UTC)
    db.commit()
    return tenant_insurance(db, tenant)
