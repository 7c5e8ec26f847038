"""
Move-in and move-out checklist endpoints.
"""
import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from portal.db.database import get_db
from portal.db import schemas
from portal.api.deps import require_admin, require_tenant, get_tenant_tenancy
from portal.services import checklist as checklist_service
from portal.utils.statuses import ChecklistType

router = APIRouter(prefix="/admin/checklist", tags=["checklist"])
tenant_router = APIRouter(prefix="/tenant/checklist", tags=["tenant-checklist"])


@router.get("/tenant/{tenant_id}", response_model=schemas.Checklist)
def get_tenant_checklist(
    tenant_id: uuid.UUID,
    type: ChecklistType = Query(default=ChecklistType.MOVE_IN),
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    tenancy = checklist_service.tenancy_for_tenant(db, tenant_id)
    return checklist_service.get_checklist(db, tenancy, type.value)


@router.post("/tenant/{tenant_id}", response_model=schemas.ChecklistItem, status_code=status.HTTP_201_CREATED)
def add_checklist_item(tenant_id: uuid.UUID, payload: schemas.ChecklistItemCreate, db: Session = Depends(get_db), admin=Depends(require_admin)):
    tenancy = checklist_service.tenancy_for_tenant(db, tenant_id)
    return checklist_service.add_custom_item(db, tenancy, payload)


@router.post("/tenant/{tenant_id}/initialize", response_model=schemas.Checklist, status_code=status.HTTP_201_CREATED)
def initialize_checklist(tenant_id: uuid.UUID, payload: schemas.ChecklistInitialize, db: Session = Depends(get_db), admin=Depends(require_admin)):
    tenancy = checklist_service.tenancy_for_tenant(db, tenant_id)
    checklist_service.initialize(db, tenancy, payload.checklist_type.value)
    return checklist_service.get_checklist(db, tenancy, payload.checklist_type.value)


@router.put("/item/{item_id}/complete", response_model=schemas.ChecklistItem)
def complete_item(item_id: uuid.UUID, db: Session = Depends(get_db), admin=Depends(require_admin)):
    return checklist_service.set_completed(db, item_id, True, admin)


@router.put("/item/{item_id}/incomplete", response_model=schemas.ChecklistItem)
def reopen_item(item_id: uuid.UUID, db: Session = Depends(get_db), admin=Depends(require_admin)):
    return checklist_service.set_completed(db, item_id, False, admin)


@router.delete("/item/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_item(item_id: uuid.UUID, db: Session = Depends(get_db), admin=Depends(require_admin)):
    checklist_service.delete_item(db, item_id)


@tenant_router.get("", response_model=schemas.Checklist)
def get_my_checklist(
    type: ChecklistType = Query(default=ChecklistType.MOVE_IN),
    db: Session = Depends(get_db),
    tenant=Depends(require_tenant),
):
    tenancy = get_tenant_tenancy(db, tenant)
    return checklist_service.get_checklist(db, tenancy, type.value)


@tenant_router.put("/{item_id}/complete", response_model=schemas.ChecklistItem)
def complete_my_item(item_id: uuid.UUID, db: Session = Depends(get_db), tenant=Depends(require_tenant)):
    """Only items the tenant can finish on their own are accepted here."""
    return checklist_service.tenant_complete(db, item_id=item_id, tenant=tenant)
