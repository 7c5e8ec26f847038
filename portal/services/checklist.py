"""
Move-in and move-out checklists attached to a tenancy.
"""

import uuid
from datetime import datetime, UTC
from typing import Optional, List

from sqlalchemy.orm import Session

from portal.db import models, schemas
from portal.db.repositories import checklists as checklist_repo
from portal.db.repositories import users as user_repo
from portal.errors import PortalError, bad_request, not_found
from portal.services.insurance import effective_status
from portal.utils.statuses import CHECKLIST_MOVE_IN, CHECKLIST_MOVE_OUT, INSURANCE_APPROVED, INSURANCE_PENDING

# (item_type, title, description)
DEFAULT_ITEMS = {
    CHECKLIST_MOVE_IN: [
        ("LEASE_SIGNED", "Lease Agreement Signed", "The lease agreement has been signed by all parties"),
        ("INSURANCE_UPLOADED", "Renter's Insurance Uploaded", "Valid renter's insurance has been uploaded and verified"),
        ("INITIAL_PAYMENT", "Initial Payment Complete", "First month's rent and deposit have been paid"),
        ("MOVE_IN_INSPECTION", "Move-in Inspection Complete", "Move-in inspection has been completed and documented"),
        ("KEYS_RECEIVED", "Keys Received", "Tenant has received all keys and access cards"),
    ],
    CHECKLIST_MOVE_OUT: [
        ("FORWARDING_ADDRESS", "Forwarding Address Provided", "Tenant has provided a forwarding address for final correspondence and deposit return"),
        ("FINAL_CLEAN", "Final Clean of Unit", "Unit has been cleaned and is move-out ready"),
        ("KEYS_RETURNED", "Keys Returned", "All keys and access cards have been returned"),
        ("UTILITIES_TRANSFERRED", "Utilities Transferred", "Utilities have been transferred out of tenant's name"),
        ("MOVE_OUT_INSPECTION", "Move-out Inspection Complete", "Move-out inspection has been completed and documented"),
    ],
}

SELF_COMPLETABLE = {
    CHECKLIST_MOVE_IN: {"INSURANCE_UPLOADED"},
    CHECKLIST_MOVE_OUT: {"FORWARDING_ADDRESS", "UTILITIES_TRANSFERRED"},
}

CUSTOM_ITEM_TYPE = "CUSTOM"


def can_self_complete(checklist_type: str, item_type: str) -> bool:
    return item_type in SELF_COMPLETABLE.get(checklist_type, set())


def progress(items: List[models.ChecklistItem]) -> schemas.ChecklistProgress:
    total = len(items)
    completed = sum(1 for item in items if item.is_completed)
    percentage = round(completed * 100 / total) if total else 0
    return schemas.ChecklistProgress(completed=completed, total=total, percentage=percentage)


def _item_out(item: models.ChecklistItem) -> schemas.ChecklistItem:
    out = schemas.ChecklistItem.model_validate(item)
    out.can_self_complete = can_self_complete(item.checklist_type, item.item_type)
    return out


def get_checklist(db: Session, tenancy: models.Tenancy, checklist_type: str = CHECKLIST_MOVE_IN) -> schemas.Checklist:
    items = checklist_repo.list_items(db, tenancy.id, checklist_type)
    return schemas.Checklist(
        checklist_type=checklist_type,
        items=[_item_out(item) for item in items],
        progress=progress(items),
    )


def initialize(db: Session, tenancy: models.Tenancy, checklist_type: str = CHECKLIST_MOVE_IN, *, commit: bool = True) -> List[models.ChecklistItem]:
    """Create the default items for a checklist that does not exist yet."""
    if checklist_type == CHECKLIST_MOVE_OUT and tenancy.move_out_date is None:
        raise bad_request("NO_MOVE_OUT_DATE", "Set a move-out date before creating the move-out checklist")
    if checklist_repo.count_items(db, tenancy.id, checklist_type):
        raise bad_request("ALREADY_EXISTS", "Checklist already exists for this tenancy")

    items = []
    for order, (item_type, title, description) in enumerate(DEFAULT_ITEMS[checklist_type], start=1):
        item = models.ChecklistItem(
            tenancy_id=tenancy.id,
            checklist_type=checklist_type,
            item_type=item_type,
            title=title,
            description=description,
            is_required=True,
            sort_order=order,
        )
        db.add(item)
        items.append(item)
    if commit:
        db.commit()
    else:
        db.flush()
    return items


def add_custom_item(db: Session, tenancy: models.Tenancy, payload: schemas.ChecklistItemCreate) -> schemas.ChecklistItem:
    checklist_type = payload.checklist_type.value
    item = models.ChecklistItem(
        tenancy_id=tenancy.id,
        checklist_type=checklist_type,
        item_type=CUSTOM_ITEM_TYPE,
        title=payload.title,
        description=payload.description,
        is_required=payload.is_required,
        sort_order=checklist_repo.max_sort_order(db, tenancy.id, checklist_type) + 1,
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    return _item_out(item)


def _get_item(db: Session, item_id: uuid.UUID) -> models.ChecklistItem:
    item = checklist_repo.get_item(db, item_id)
    if item is None:
        raise not_found("Checklist item not found")
    return item


def set_completed(db: Session, item_id: uuid.UUID, completed: bool, actor: models.User) -> schemas.ChecklistItem:
    item = _get_item(db, item_id)
    item.is_completed = completed
    item.completed_at = datetime.now(UTC) if completed else None
    item.completed_by_id = actor.id if completed else None
    db.commit()
    db.refresh(item)
    return _item_out(item)


def delete_item(db: Session, item_id: uuid.UUID) -> None:
    item = _get_item(db, item_id)
    db.delete(item)
    db.commit()


def tenant_complete(db: Session, *, item_id: uuid.UUID, tenant: models.User) -> schemas.ChecklistItem:
    tenancy = user_repo.get_active_tenancy(db, tenant.id)
    item = checklist_repo.get_item(db, item_id)
    if tenancy is None or item is None or item.tenancy_id != tenancy.id:
        raise not_found("Checklist item not found")
    if not can_self_complete(item.checklist_type, item.item_type):
        raise PortalError(403, "NOT_ALLOWED", "This item must be completed by the property manager")
    if item.item_type == "INSURANCE_UPLOADED":
        status = effective_status(user_repo.get_insurance_record(db, tenant.id))
        if status not in (INSURANCE_PENDING, INSURANCE_APPROVED):
            raise bad_request("INSURANCE_NOT_VALID", "Upload your renter's insurance before completing this item")
    return set_completed(db, item.id, True, tenant)


def tenancy_for_tenant(db: Session, tenant_id: uuid.UUID) -> models.Tenancy:
    tenant = user_repo.get_user(db, tenant_id)
    if tenant is None:
        raise not_found("Tenant not found")
    tenancy = user_repo.get_active_tenancy(db, tenant.id)
    if tenancy is None:
        raise bad_request("NO_TENANCY", "Tenant has no active tenancy")
    return tenancy


def progress_for_tenancy(db: Session, tenancy: Optional[models.Tenancy], checklist_type: str = CHECKLIST_MOVE_IN) -> Optional[schemas.ChecklistProgress]:
    if tenancy is None:
        return None
    return progress(checklist_repo.list_items(db, tenancy.id, checklist_type))
