"""
Maintenance request endpoints.

Tenants see only requests for their own unit and never see internal
comments; admins see everything.
"""
from typing import List, Optional
import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from portal.db.database import get_db
from portal.db import models, schemas
from portal.db.repositories import service_requests as request_repo
from portal.api.deps import require_admin, require_tenant, get_tenant_tenancy
from portal.services import service_requests as request_service
from portal.services.units import get_tenant_or_404

router = APIRouter(prefix="/admin/service-requests", tags=["service-requests"])
tenant_router = APIRouter(prefix="/tenant/service-requests", tags=["tenant-service-requests"])


def _comment_out(comment: models.ServiceRequestComment, author: models.User) -> schemas.Comment:
    out = schemas.Comment.model_validate(comment)
    out.author_name = author.display_name or author.email
    return out


# === Tenant ===

@tenant_router.get("", response_model=List[schemas.ServiceRequest])
def list_my_requests(db: Session = Depends(get_db), tenant=Depends(require_tenant)):
    tenancy = get_tenant_tenancy(db, tenant)
    return [request_service.to_schema(r) for r in request_service.tenant_requests(db, tenancy.unit_id)]


@tenant_router.post("", response_model=schemas.ServiceRequest, status_code=status.HTTP_201_CREATED)
def create_my_request(payload: schemas.ServiceRequestCreate, db: Session = Depends(get_db), tenant=Depends(require_tenant)):
    request = request_service.create_request(db, tenant=tenant, payload=payload)
    return request_service.to_schema(request)


@tenant_router.get("/{request_id}", response_model=schemas.ServiceRequestDetail)
def get_my_request(request_id: uuid.UUID, db: Session = Depends(get_db), tenant=Depends(require_tenant)):
    tenancy = get_tenant_tenancy(db, tenant)
    request = request_service.get_or_404(db, request_id, unit_id=tenancy.unit_id)
    return request_service.to_detail(request, include_internal=False)


@tenant_router.post("/{request_id}/comment", response_model=schemas.Comment, status_code=status.HTTP_201_CREATED)
def comment_on_my_request(request_id: uuid.UUID, payload: schemas.CommentCreate, db: Session = Depends(get_db), tenant=Depends(require_tenant)):
    tenancy = get_tenant_tenancy(db, tenant)
    request = request_service.get_or_404(db, request_id, unit_id=tenancy.unit_id)
    comment = request_repo.add_comment(db, request=request, author_id=tenant.id, body=payload.body, is_internal=False)
    return _comment_out(comment, tenant)


# === Admin ===

@router.get("", response_model=List[schemas.ServiceRequest])
def list_requests(
    status: Optional[str] = None,
    priority: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    requests = request_repo.list_service_requests(db, status=status, priority=priority, skip=skip, limit=limit)
    return [request_service.to_schema(r) for r in requests]


@router.post("", response_model=schemas.ServiceRequest, status_code=status.HTTP_201_CREATED)
def create_request_for_tenant(payload: schemas.AdminServiceRequestCreate, db: Session = Depends(get_db), admin=Depends(require_admin)):
    tenant = get_tenant_or_404(db, payload.tenant_id)
    request = request_service.create_request(db, tenant=tenant, payload=payload, created_by=admin)
    return request_service.to_schema(request)


@router.get("/{request_id}", response_model=schemas.ServiceRequestDetail)
def get_request(request_id: uuid.UUID, db: Session = Depends(get_db), admin=Depends(require_admin)):
    return request_service.to_detail(request_service.get_or_404(db, request_id), include_internal=True)


@router.put("/{request_id}", response_model=schemas.ServiceRequest)
def update_request(request_id: uuid.UUID, payload: schemas.ServiceRequestUpdate, db: Session = Depends(get_db), admin=Depends(require_admin)):
    return request_service.to_schema(request_service.update_request(db, request_id, payload))


@router.post("/{request_id}/comment", response_model=schemas.Comment, status_code=status.HTTP_201_CREATED)
def comment_on_request(request_id: uuid.UUID, payload: schemas.CommentCreate, db: Session = Depends(get_db), admin=Depends(require_admin)):
    request = request_service.get_or_404(db, request_id)
    comment = request_repo.add_comment(db, request=request, author_id=admin.id, body=payload.body, is_internal=payload.is_internal)
    return _comment_out(comment, admin)
