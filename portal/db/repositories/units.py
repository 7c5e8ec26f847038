"""
Property and unit repository functions.
"""
from __future__ import annotations

import uuid
from typing import Optional, List
from sqlalchemy.orm import Session

from portal.db import models


def get_unit(db: Session, unit_id: uuid.UUID) -> Optional[models.Unit]:
    return db.query(models.Unit).filter(models.Unit.id == unit_id).first()


def list_units(db: Session, *, building_name: Optional[str] = None, status: Optional[str] = None) -> List[models.Unit]:
    query = db.query(models.Unit)
    if building_name:
        query = query.filter(models.Unit.building_name == building_name)
    if status:
        query = query.filter(models.Unit.status == status)
    return query.order_by(models.Unit.building_name, models.Unit.unit_label).all()


def list_buildings(db: Session) -> List[str]:
    rows = (
        db.query(models.Unit.building_name)
        .filter(models.Unit.building_name.isnot(None))
        .distinct()
        .order_by(models.Unit.building_name)
        .all()
    )
    return [row[0] for row in rows]


def find_duplicate_unit(
    db: Session,
    *,
    property_id: uuid.UUID,
    building_name: Optional[str],
    unit_label: str,
    exclude_id: Optional[uuid.UUID] = None,
) -> Optional[models.Unit]:
    query = db.query(models.Unit).filter(
        models.Unit.property_id == property_id,
        models.Unit.unit_label == unit_label,
    )
    if building_name is None:
        query = query.filter(models.Unit.building_name.is_(None))
    else:
        query = query.filter(models.Unit.building_name == building_name)
    if exclude_id:
        query = query.filter(models.Unit.id != exclude_id)
    return query.first()


def get_property(db: Session, property_id: uuid.UUID) -> Optional[models.Property]:
    return db.query(models.Property).filter(models.Property.id == property_id).first()


def get_primary_property(db: Session) -> Optional[models.Property]:
    return db.query(models.Property).order_by(models.Property.created_at).first()


def get_or_create_property(db: Session, *, property_id: Optional[uuid.UUID], building_name: Optional[str]) -> models.Property:
    """Resolve the property for a new unit, creating a placeholder on an empty install."""
    prop = get_property(db, property_id) if property_id else None
    if prop is None:
        prop = get_primary_property(db)
    if prop is None:
        name = building_name or "Default Property"
        prop = models.Property(name=name, address=name)
        db.add(prop)
        db.flush()
    return prop
