"""
Admin tenant management endpoints.
"""
from typing import List, Optional
import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from portal.db.database import get_db
from portal.db import schemas
from portal.db.repositories import users as user_repo
from portal.api.deps import require_admin
from portal.services import units as unit_service

router = APIRouter(prefix="/admin/tenants", tags=["tenants"])


@router.get("", response_model=List[schemas.TenantListItem])
def list_tenants(
    status: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    tenants = user_repo.list_tenants(db, status=status, skip=skip, limit=limit)
    return [unit_service.tenant_list_item(db, tenant) for tenant in tenants]


@router.put("/{tenant_id}", response_model=schemas.TenantListItem)
def update_tenant(tenant_id: uuid.UUID, payload: schemas.UserUpdate, db: Session = Depends(get_db), admin=Depends(require_admin)):
    return unit_service.update_tenant(db, tenant_id, payload)


@router.put("/{tenant_id}/deactivate", response_model=schemas.TenantListItem)
def deactivate_tenant(tenant_id: uuid.UUID, db: Session = Depends(get_db), admin=Depends(require_admin)):
    """End the tenant's active tenancies and block sign-in; emptied units become VACANT."""
    return unit_service.deactivate_tenant(db, tenant_id, admin)


@router.put("/{tenant_id}/reactivate", response_model=schemas.TenantListItem)
def reactivate_tenant(tenant_id: uuid.UUID, db: Session = Depends(get_db), admin=Depends(require_admin)):
    return unit_service.reactivate_tenant(db, tenant_id, admin)


@router.put("/{tenant_id}/move-out", response_model=schemas.TenantListItem)
def schedule_move_out(tenant_id: uuid.UUID, payload: schemas.MoveOutRequest, db: Session = Depends(get_db), admin=Depends(require_admin)):
    return unit_service.schedule_move_out(db, tenant_id, payload.move_out_date)
