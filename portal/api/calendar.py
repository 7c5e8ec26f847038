"""
Calendar endpoints aggregating lease milestones, due dates, holidays and custom events.
"""
from datetime import date
from typing import List, Optional
import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from portal.db.database import get_db
from portal.db import schemas
from portal.db.repositories import users as user_repo
from portal.api.deps import require_admin, require_tenant
from portal.services import calendar as calendar_service

router = APIRouter(tags=["calendar"])


@router.get("/admin/calendar", response_model=List[schemas.CalendarEventOut])
def admin_calendar(
    start: Optional[date] = None,
    end: Optional[date] = None,
    building_name: Optional[str] = None,
    unit_id: Optional[uuid.UUID] = None,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    return calendar_service.build_admin_calendar(db, start, end, building_name=building_name, unit_id=unit_id)


@router.post("/admin/calendar/events", response_model=schemas.CalendarEventOut, status_code=status.HTTP_201_CREATED)
def create_event(payload: schemas.CalendarEventCreate, db: Session = Depends(get_db), admin=Depends(require_admin)):
    return calendar_service.create_event(db, payload, admin)


@router.delete("/admin/calendar/events/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(event_id: str, db: Session = Depends(get_db), admin=Depends(require_admin)):
    calendar_service.delete_event(db, event_id)


@router.get("/tenant/calendar", response_model=List[schemas.CalendarEventOut])
def tenant_calendar(
    start: Optional[date] = None,
    end: Optional[date] = None,
    db: Session = Depends(get_db),
    tenant=Depends(require_tenant),
):
    tenancy = user_repo.get_active_tenancy(db, tenant.id)
    return calendar_service.build_tenant_calendar(db, tenancy, start, end)
