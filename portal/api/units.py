"""
Admin unit inventory and rent roll endpoints.
"""
from typing import List, Optional
import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from portal.db.database import get_db
from portal.db import schemas
from portal.db.repositories import units as unit_repo
from portal.api.deps import require_admin
from portal.services import units as unit_service

router = APIRouter(prefix="/admin/units", tags=["units"])


@router.get("", response_model=List[schemas.UnitWithTenants])
def list_units(
    building_name: Optional[str] = None,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    return [unit_service.unit_with_tenants(db, unit) for unit in unit_repo.list_units(db, building_name=building_name)]


@router.get("/buildings", response_model=List[str])
def list_buildings(db: Session = Depends(get_db), admin=Depends(require_admin)):
    return unit_repo.list_buildings(db)


@router.get("/rent-roll", response_model=schemas.RentRoll)
def rent_roll(
    building_name: Optional[str] = None,
    period_month: Optional[str] = None,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    return unit_service.rent_roll(db, building_name, period_month)


@router.post("", response_model=schemas.Unit, status_code=status.HTTP_201_CREATED)
def create_unit(payload: schemas.UnitCreate, db: Session = Depends(get_db), admin=Depends(require_admin)):
    return unit_service.create_unit(db, payload, admin)


@router.put("/{unit_id}", response_model=schemas.Unit)
def update_unit(unit_id: uuid.UUID, payload: schemas.UnitUpdate, db: Session = Depends(get_db), admin=Depends(require_admin)):
    return unit_service.update_unit(db, unit_id, payload, admin)


@router.delete("/{unit_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_unit(unit_id: uuid.UUID, db: Session = Depends(get_db), admin=Depends(require_admin)):
    unit_service.delete_unit(db, unit_id, admin)
