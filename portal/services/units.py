"""
Unit inventory, rent roll and tenant lifecycle.
"""

import logging
import uuid
from datetime import datetime, UTC
from typing import Optional, List

from sqlalchemy.orm import Session

from portal.audit import AuditAction, log as audit_log, log_user
from portal.db import models, schemas
from portal.db.repositories import units as unit_repo
from portal.db.repositories import users as user_repo
from portal.errors import bad_request, not_found
from portal.services.insurance import effective_status
from portal.utils.dates import ensure_utc, period_for, today_utc
from portal.utils.statuses import (
    ROLE_IN_UNIT_PRIMARY,
    ROLE_TENANT,
    UNIT_OCCUPIED,
    UNIT_VACANT,
    USER_ACTIVE,
    USER_INACTIVE,
)

logger = logging.getLogger(__name__)


# === Units ===

def unit_with_tenants(db: Session, unit: models.Unit) -> schemas.UnitWithTenants:
    out = schemas.UnitWithTenants.model_validate(unit)
    out.tenant_names = [
        t.user.display_name or t.user.email for t in user_repo.list_active_tenancies(db, unit_id=unit.id) if t.user
    ]
    return out


def get_unit_or_404(db: Session, unit_id: uuid.UUID) -> models.Unit:
    unit = unit_repo.get_unit(db, unit_id)
    if unit is None:
        raise not_found("Unit not found")
    return unit


def create_unit(db: Session, payload: schemas.UnitCreate, admin: models.User) -> models.Unit:
    prop = unit_repo.get_or_create_property(db, property_id=payload.property_id, building_name=payload.building_name)
    if unit_repo.find_duplicate_unit(db, property_id=prop.id, building_name=payload.building_name, unit_label=payload.unit_label):
        raise bad_request("DUPLICATE", f"Unit {payload.unit_label} already exists")
    data = payload.model_dump(exclude={"property_id"})
    unit = models.Unit(property_id=prop.id, status=UNIT_VACANT, **data)
    db.add(unit)
    db.commit()
    db.refresh(unit)
    audit_log(db, action=AuditAction.UNIT_CREATE, target_type="unit", target_id=unit.id, actor_user_id=admin.id,
              metadata={"unit_label": unit.unit_label, "building_name": unit.building_name})
    return unit


def update_unit(db: Session, unit_id: uuid.UUID, payload: schemas.UnitUpdate, admin: models.User) -> models.Unit:
    unit = get_unit_or_404(db, unit_id)
    changes = payload.model_dump(exclude_unset=True)
    label = changes.get("unit_label", unit.unit_label)
    building = changes.get("building_name", unit.building_name)
    if unit_repo.find_duplicate_unit(db, property_id=unit.property_id, building_name=building, unit_label=label, exclude_id=unit.id):
        raise bad_request("DUPLICATE", f"Unit {label} already exists")
    for key, value in changes.items():
        setattr(unit, key, value)
    db.commit()
    db.refresh(unit)
    audit_log(db, action=AuditAction.UNIT_UPDATE, target_type="unit", target_id=unit.id, actor_user_id=admin.id,
              metadata={"fields": sorted(changes)})
    return unit


def delete_unit(db: Session, unit_id: uuid.UUID, admin: models.User) -> None:
    unit = get_unit_or_404(db, unit_id)
    if user_repo.list_active_tenancies(db, unit_id=unit.id):
        raise bad_request("HAS_TENANCY", "Unit has an active tenancy")
    label = unit.unit_label
    db.delete(unit)
    db.commit()
    audit_log(db, action=AuditAction.UNIT_DELETE, target_type="unit", target_id=unit_id, actor_user_id=admin.id,
              metadata={"unit_label": label})


def _bed_bath(unit: models.Unit) -> str:
    parts = []
    if unit.bedrooms:
        parts.append(f"{unit.bedrooms} Bed")
    if unit.bathrooms:
        parts.append(f"{unit.bathrooms:g} Bath")
    return " / ".join(parts) or unit.description or "-"


def rent_roll(db: Session, building_name: Optional[str], period_month: Optional[str] = None) -> schemas.RentRoll:
    if not building_name:
        raise bad_request("MISSING_BUILDING", "Building name is required")
    rows: List[schemas.RentRollRow] = []
    occupied = 0
    total_rent = 0
    for unit in unit_repo.list_units(db, building_name=building_name):
        tenancies = user_repo.list_active_tenancies(db, unit_id=unit.id)
        tenants = [
            schemas.RentRollTenant(
                id=t.user.id,
                name=t.user.display_name,
                email=t.user.email,
                role_in_unit=t.role_in_unit,
                move_in_date=ensure_utc(t.start_date),
            )
            for t in sorted(tenancies, key=lambda t: t.role_in_unit != ROLE_IN_UNIT_PRIMARY)
        ]
        primary = next((t for t in tenants if t.role_in_unit == ROLE_IN_UNIT_PRIMARY), None)
        is_occupied = unit.status == UNIT_OCCUPIED and bool(tenants)
        if is_occupied:
            occupied += 1
            total_rent += unit.rent_amount_cents or 0
        rows.append(schemas.RentRollRow(
            unit_id=unit.id,
            unit_label=unit.unit_label,
            sqft=unit.sqft,
            bedrooms=unit.bedrooms,
            bathrooms=unit.bathrooms,
            description=_bed_bath(unit),
            status=unit.status,
            rent_amount_cents=unit.rent_amount_cents,
            tenants=tenants,
            primary_tenant_name=(primary.name if primary and primary.name else None) or ("Occupied" if is_occupied else "Vacant"),
            move_in_date=primary.move_in_date if primary else None,
        ))
    total = len(rows)
    return schemas.RentRoll(
        building_name=building_name,
        period_month=period_month or period_for(today_utc()),
        generated_at=datetime.now(UTC),
        summary=schemas.RentRollSummary(
            total_units=total,
            occupied_units=occupied,
            vacant_units=total - occupied,
            total_monthly_rent_cents=total_rent,
            occupancy_rate=round(occupied * 100 / total) if total else 0,
        ),
        units=rows,
    )


# === Tenants ===

def tenancy_summary(tenancy: Optional[models.Tenancy]) -> Optional[schemas.TenancySummary]:
    if tenancy is None or tenancy.unit is None:
        return None
    return schemas.TenancySummary(
        tenancy_id=tenancy.id,
        unit_id=tenancy.unit_id,
        unit_label=tenancy.unit.unit_label,
        building_name=tenancy.unit.building_name,
        role_in_unit=tenancy.role_in_unit,
        start_date=ensure_utc(tenancy.start_date),
        end_date=ensure_utc(tenancy.end_date),
        move_out_date=ensure_utc(tenancy.move_out_date),
    )


def tenant_list_item(db: Session, tenant: models.User) -> schemas.TenantListItem:
    out = schemas.TenantListItem(
        **schemas.User.model_validate(tenant).model_dump(),
        tenancy=tenancy_summary(user_repo.get_active_tenancy(db, tenant.id)),
        insurance_status=effective_status(user_repo.get_insurance_record(db, tenant.id)),
    )
    return out


def get_tenant_or_404(db: Session, tenant_id: uuid.UUID) -> models.User:
    tenant = user_repo.get_user(db, tenant_id)
    if tenant is None or tenant.role != ROLE_TENANT:
        raise not_found("Tenant not found")
    return tenant


def _vacate_if_empty(db: Session, unit_id: uuid.UUID) -> None:
    if not user_repo.list_active_tenancies(db, unit_id=unit_id):
        unit = unit_repo.get_unit(db, unit_id)
        if unit is not None:
            unit.status = UNIT_VACANT


def deactivate_tenant(db: Session, tenant_id: uuid.UUID, admin: models.User) -> schemas.TenantListItem:
    tenant = get_tenant_or_404(db, tenant_id)
    if tenant.status == USER_INACTIVE:
        raise bad_request("ALREADY_INACTIVE", "Tenant is already deactivated")
    now = datetime.now(UTC)
    unit_ids = set()
    for tenancy in user_repo.list_active_tenancies(db, user_id=tenant.id):
        tenancy.is_active = False
        tenancy.end_date = tenancy.end_date or now
        unit_ids.add(tenancy.unit_id)
    tenant.status = USER_INACTIVE
    db.flush()
    for unit_id in unit_ids:
        _vacate_if_empty(db, unit_id)
    db.commit()
    log_user(db, actor_user_id=admin.id, user_id=tenant.id, action=AuditAction.TENANT_DEACTIVATE,
             metadata={"ended_tenancies": len(unit_ids)})
    logger.info("Tenant deactivated tenant=%s units=%d", tenant.id, len(unit_ids))
    return tenant_list_item(db, tenant)


def reactivate_tenant(db: Session, tenant_id: uuid.UUID, admin: models.User) -> schemas.TenantListItem:
    tenant = get_tenant_or_404(db, tenant_id)
    if tenant.status == USER_ACTIVE:
        raise bad_request("ALREADY_ACTIVE", "Tenant is already active")
    tenant.status = USER_ACTIVE
    db.commit()
    log_user(db, actor_user_id=admin.id, user_id=tenant.id, action=AuditAction.TENANT_REACTIVATE)
    return tenant_list_item(db, tenant)


def update_tenant(db: Session, tenant_id: uuid.UUID, payload: schemas.UserUpdate) -> schemas.TenantListItem:
    tenant = get_tenant_or_404(db, tenant_id)
    for key, value in payload.model_dump(exclude_unset=True).items():
        setattr(tenant, key, value)
    db.commit()
    db.refresh(tenant)
    return tenant_list_item(db, tenant)


def schedule_move_out(db: Session, tenant_id: uuid.UUID, move_out_date: datetime) -> schemas.TenantListItem:
    tenant = get_tenant_or_404(db, tenant_id)
    tenancy = user_repo.get_active_tenancy(db, tenant.id)
    if tenancy is None:
        raise bad_request("NO_TENANCY", "Tenant has no active tenancy")
    tenancy.move_out_date = ensure_utc(move_out_date)
    db.commit()
    return tenant_list_item(db, tenant)
