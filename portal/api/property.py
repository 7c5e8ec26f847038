"""
Public property landing data and showing requests, plus the admin showing queue.
"""
import logging
from typing import List, Optional
import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from portal.db.database import get_db
from portal.db import models, schemas
from portal.db.repositories import units as unit_repo
from portal.api.deps import require_admin
from portal.errors import not_found
from portal.services.notification_service import NotificationService
from portal.utils.statuses import UNIT_VACANT, ShowingRequestStatus

logger = logging.getLogger(__name__)

router = APIRouter(tags=["property"])


@router.get("/property", response_model=schemas.PropertyLanding)
def property_landing(db: Session = Depends(get_db)):
    prop = unit_repo.get_primary_property(db)
    if prop is None:
        return schemas.PropertyLanding()
    vacant = [u for u in unit_repo.list_units(db, status=UNIT_VACANT) if u.property_id == prop.id]
    return schemas.PropertyLanding(property=prop, available_units=vacant)


@router.post("/property/showing-requests", response_model=schemas.ShowingRequest, status_code=status.HTTP_201_CREATED)
def create_showing_request(payload: schemas.ShowingRequestCreate, db: Session = Depends(get_db)):
    unit = None
    if payload.unit_id:
        unit = unit_repo.get_unit(db, payload.unit_id)
        if unit is None:
            raise not_found("Unit not found")
    prop = unit.property if unit is not None else unit_repo.get_primary_property(db)
    showing = models.ShowingRequest(
        property_id=prop.id if prop else None,
        unit_id=unit.id if unit else None,
        name=payload.name.strip(),
        email=payload.email.strip().lower(),
        phone=payload.phone,
        message=payload.message,
        preferred_date=payload.preferred_date,
        status=ShowingRequestStatus.NEW.value,
    )
    db.add(showing)
    db.commit()
    db.refresh(showing)
    logger.info("Showing request received id=%s unit=%s", showing.id, showing.unit_id)
    NotificationService(db).notify_showing_request(showing, unit.unit_label if unit else None)
    return showing


@router.get("/admin/showing-requests", response_model=List[schemas.ShowingRequest])
def list_showing_requests(
    status: Optional[ShowingRequestStatus] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    query = db.query(models.ShowingRequest)
    if status is not None:
        query = query.filter(models.ShowingRequest.status == status.value)
    return query.order_by(models.ShowingRequest.created_at.desc()).offset(skip).limit(limit).all()


@router.put("/admin/showing-requests/{showing_id}", response_model=schemas.ShowingRequest)
def update_showing_request(
    showing_id: uuid.UUID,
    payload: schemas.ShowingRequestUpdate,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    showing = db.query(models.ShowingRequest).filter(models.ShowingRequest.id == showing_id).first()
    if showing is None:
        raise not_found("Showing request not found")
    showing.status = payload.status.value
    db.commit()
    db.refresh(showing)
    return showing
