"""
User, tenancy and insurance-record lookups.
"""
from __future__ import annotations

import uuid
from typing import Optional, List
from sqlalchemy.orm import Session

from portal.db import models
from portal.utils.statuses import ROLE_TENANT, ROLE_IN_UNIT_PRIMARY, USER_ACTIVE


def get_user(db: Session, user_id: uuid.UUID) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.email == email.strip().lower()).first()


def list_tenants(db: Session, *, status: Optional[str] = None, skip: int = 0, limit: int = 100) -> List[models.User]:
    query = db.query(models.User).filter(models.User.role == ROLE_TENANT)
    if status:
        query = query.filter(models.User.status == status)
    return query.order_by(models.User.display_name, models.User.email).offset(skip).limit(limit).all()


def list_active_tenants(db: Session) -> List[models.User]:
    return (
        db.query(models.User)
        .filter(models.User.role == ROLE_TENANT, models.User.status == USER_ACTIVE)
        .order_by(models.User.display_name, models.User.email)
        .all()
    )


def list_admins(db: Session) -> List[models.User]:
    return (
        db.query(models.User)
        .filter(models.User.role == "ADMIN", models.User.status == USER_ACTIVE)
        .order_by(models.User.email)
        .all()
    )


def get_active_tenancy(db: Session, user_id: uuid.UUID) -> Optional[models.Tenancy]:
    """Return the user's active tenancy, PRIMARY first."""
    tenancies = (
        db.query(models.Tenancy)
        .filter(models.Tenancy.user_id == user_id, models.Tenancy.is_active.is_(True))
        .order_by(models.Tenancy.start_date.desc())
        .all()
    )
    if not tenancies:
        return None
    for tenancy in tenancies:
        if tenancy.role_in_unit == ROLE_IN_UNIT_PRIMARY:
            return tenancy
    return tenancies[0]


def list_active_tenancies(db: Session, *, unit_id: Optional[uuid.UUID] = None, user_id: Optional[uuid.UUID] = None) -> List[models.Tenancy]:
    query = db.query(models.Tenancy).filter(models.Tenancy.is_active.is_(True))
    if unit_id:
        query = query.filter(models.Tenancy.unit_id == unit_id)
    if user_id:
        query = query.filter(models.Tenancy.user_id == user_id)
    return query.order_by(models.Tenancy.start_date).all()


def pick_primary_tenancy(tenancies: List[models.Tenancy]) -> Optional[models.Tenancy]:
    """Prefer the PRIMARY tenancy, otherwise the first one."""
    for tenancy in tenancies:
        if tenancy.role_in_unit == ROLE_IN_UNIT_PRIMARY:
            return tenancy
    return tenancies[0] if tenancies else None


def get_insurance_record(db: Session, user_id: uuid.UUID) -> Optional[models.InsuranceRecord]:
    return db.query(models.InsuranceRecord).filter(models.InsuranceRecord.user_id == user_id).first()


def get_or_create_insurance_record(db: Session, user_id: uuid.UUID) -> models.InsuranceRecord:
    record = get_insurance_record(db, user_id)
    if record is None:
        record = models.InsuranceRecord(user_id=user_id)
        db.add(record)
        db.flush()
    return record


def has_tenancy_on_unit(db: Session, user_id: uuid.UUID, unit_id: uuid.UUID) -> bool:
    """Whether the user ever held a tenancy (active or ended) on the unit."""
    return db.query(models.Tenancy.id).filter(
        models.Tenancy.user_id == user_id,
        models.Tenancy.unit_id == unit_id,
    ).first() is not None
