"""
Service request repository functions.
"""
from __future__ import annotations

import uuid
from typing import Optional, List
from sqlalchemy.orm import Session

from portal.db import models


def get_service_request(db: Session, request_id: uuid.UUID) -> Optional[models.ServiceRequest]:
    return db.query(models.ServiceRequest).filter(models.ServiceRequest.id == request_id).first()


def list_service_requests(
    db: Session,
    *,
    unit_id: Optional[uuid.UUID] = None,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[models.ServiceRequest]:
    query = db.query(models.ServiceRequest)
    if unit_id:
        query = query.filter(models.ServiceRequest.unit_id == unit_id)
    if status:
        query = query.filter(models.ServiceRequest.status == status)
    if priority:
        query = query.filter(models.ServiceRequest.priority == priority)
    return query.order_by(models.ServiceRequest.created_at.desc()).offset(skip).limit(limit).all()


def count_open_for_unit(db: Session, unit_id: uuid.UUID) -> int:
    return (
        db.query(models.ServiceRequest)
        .filter(
            models.ServiceRequest.unit_id == unit_id,
            models.ServiceRequest.status.in_(("OPEN", "IN_PROGRESS")),
        )
        .count()
    )


def add_comment(db: Session, *, request: models.ServiceRequest, author_id: uuid.UUID, body: str, is_internal: bool = False) -> models.ServiceRequestComment:
    comment = models.ServiceRequestComment(
        request_id=request.id,
        author_id=author_id,
        body=body,
        is_internal=is_internal,
    )
    db.add(comment)
    db.commit()
    db.refresh(comment)
    return comment
