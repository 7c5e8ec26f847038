"""
Maintenance (service) requests and their comment threads.
"""

import uuid
from datetime import datetime, UTC
from typing import Optional, List

from sqlalchemy.orm import Session

from portal.db import models, schemas
from portal.db.repositories import service_requests as request_repo
from portal.db.repositories import users as user_repo
from portal.errors import bad_request, not_found
from portal.services.notification_service import NotificationService
from portal.utils.statuses import ROLE_TENANT, ServiceRequestStatus


def to_schema(request: models.ServiceRequest) -> schemas.ServiceRequest:
    out = schemas.ServiceRequest.model_validate(request)
    out.unit_label = request.unit.unit_label if request.unit else None
    return out


def to_detail(request: models.ServiceRequest, *, include_internal: bool) -> schemas.ServiceRequestDetail:
    comments = []
    for comment in request.comments:
        if comment.is_internal and not include_internal:
            continue
        item = schemas.Comment.model_validate(comment)
        item.author_name = comment.author.display_name if comment.author else None
        comments.append(item)
    return schemas.ServiceRequestDetail(**to_schema(request).model_dump(), comments=comments)


def get_or_404(db: Session, request_id: uuid.UUID, *, unit_id: Optional[uuid.UUID] = None) -> models.ServiceRequest:
    request = request_repo.get_service_request(db, request_id)
    if request is None or (unit_id is not None and request.unit_id != unit_id):
        raise not_found("Service request not found")
    return request


def create_request(
    db: Session,
    *,
    tenant: models.User,
    payload: schemas.ServiceRequestCreate,
    created_by: Optional[models.User] = None,
    notifier: Optional[NotificationService] = None,
) -> models.ServiceRequest:
    tenancy = user_repo.get_active_tenancy(db, tenant.id)
    if tenancy is None:
        raise bad_request("NO_TENANCY", "No active tenancy found")
    request = models.ServiceRequest(
        unit_id=tenancy.unit_id,
        created_by_id=(created_by or tenant).id,
        title=payload.title,
        description=payload.description,
        category=payload.category,
        priority=payload.priority.value,
        status=ServiceRequestStatus.OPEN.value,
    )
    db.add(request)
    db.commit()
    db.refresh(request)
    (notifier or NotificationService(db)).notify_service_request_created(request, tenant)
    return request


def update_request(
    db: Session,
    request_id: uuid.UUID,
    payload: schemas.ServiceRequestUpdate,
    notifier: Optional[NotificationService] = None,
) -> models.ServiceRequest:
    request = get_or_404(db, request_id)
    old_status = request.status
    if payload.priority is not None:
        request.priority = payload.priority.value
    if payload.status is not None:
        request.status = payload.status.value
        if request.status == ServiceRequestStatus.RESOLVED.value and old_status != request.status:
            request.resolved_at = datetime.now(UTC)
    db.commit()
    db.refresh(request)

    if request.status != old_status:
        tenant = _requesting_tenant(db, request)
        if tenant is not None:
            (notifier or NotificationService(db)).notify_service_request_updated(request, tenant, old_status)
    return request


def _requesting_tenant(db: Session, request: models.ServiceRequest) -> Optional[models.User]:
    # Requests filed by an admin on a tenant's behalf notify the unit's primary tenant
    if request.created_by is not None and request.created_by.role == ROLE_TENANT:
        return request.created_by
    tenancy = user_repo.pick_primary_tenancy(user_repo.list_active_tenancies(db, unit_id=request.unit_id))
    return tenancy.user if tenancy else None


def tenant_requests(db: Session, unit_id: uuid.UUID) -> List[models.ServiceRequest]:
    return request_repo.list_service_requests(db, unit_id=unit_id)
