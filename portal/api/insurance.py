"""
Renter's insurance endpoints: tenant upload and admin review.
"""
from datetime import datetime
from typing import List, Optional
import uuid

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from portal.db.database import get_db
from portal.db import schemas
from portal.api.deps import require_admin, require_tenant
from portal.services import insurance as insurance_service
from portal.services.units import get_tenant_or_404

router = APIRouter(prefix="/admin/insurance", tags=["insurance"])
tenant_router = APIRouter(prefix="/tenant/insurance", tags=["tenant-insurance"])


@tenant_router.get("/status", response_model=schemas.InsuranceStatus)
def get_my_insurance(db: Session = Depends(get_db), tenant=Depends(require_tenant)):
    return insurance_service.status_for(db, tenant)


@tenant_router.post("/upload", response_model=schemas.InsuranceStatus)
def upload_insurance(
    file: UploadFile = File(...),
    provider: str = Form(...),
    expires_at: datetime = Form(...),
    db: Session = Depends(get_db),
    tenant=Depends(require_tenant),
):
    # Read one byte past the limit so oversized files are detected without loading them whole
    content = file.file.read(insurance_service.MAX_FILE_SIZE + 1)
    return insurance_service.upload(
        db,
        tenant=tenant,
        filename=file.filename,
        content_type=file.content_type,
        content=content,
        provider=provider,
        expires_at=expires_at,
    )


@router.get("", response_model=List[schemas.TenantInsurance])
def list_insurance(status: Optional[str] = None, db: Session = Depends(get_db), admin=Depends(require_admin)):
    return insurance_service.list_tenant_insurance(db, status)


@router.get("/{tenant_id}", response_model=schemas.TenantInsurance)
def get_tenant_insurance(tenant_id: uuid.UUID, db: Session = Depends(get_db), admin=Depends(require_admin)):
    return insurance_service.tenant_insurance(db, get_tenant_or_404(db, tenant_id))


@router.put("/{tenant_id}/approve", response_model=schemas.TenantInsurance)
def approve_insurance(tenant_id: uuid.UUID, db: Session = Depends(get_db), admin=Depends(require_admin)):
    return insurance_service.approve(db, tenant_id=tenant_id, admin=admin)


@router.put("/{tenant_id}/reject", response_model=schemas.TenantInsurance)
def reject_insurance(tenant_id: uuid.UUID, payload: schemas.InsuranceRejectRequest, db: Session = Depends(get_db), admin=Depends(require_admin)):
    return insurance_service.reject(db, tenant_id=tenant_id, reason=payload.reason, admin=admin)


@router.post("/{tenant_id}/send-reminder", response_model=schemas.TenantInsurance)
def send_insurance_reminder(tenant_id: uuid.UUID, db: Session = Depends(get_db), admin=Depends(require_admin)):
    return insurance_service.send_reminder(db, tenant_id=tenant_id)
