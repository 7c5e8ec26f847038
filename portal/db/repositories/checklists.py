"""
Checklist item repository functions.
"""
from __future__ import annotations

import uuid
from typing import Optional, List
from sqlalchemy import func
from sqlalchemy.orm import Session

from portal.db import models


def get_item(db: Session, item_id: uuid.UUID) -> Optional[models.ChecklistItem]:
    return db.query(models.ChecklistItem).filter(models.ChecklistItem.id == item_id).first()


def list_items(db: Session, tenancy_id: uuid.UUID, checklist_type: str) -> List[models.ChecklistItem]:
    return (
        db.query(models.ChecklistItem)
        .filter(
            models.ChecklistItem.tenancy_id == tenancy_id,
            models.ChecklistItem.checklist_type == checklist_type,
        )
        .order_by(models.ChecklistItem.sort_order, models.ChecklistItem.created_at)
        .all()
    )


def count_items(db: Session, tenancy_id: uuid.UUID, checklist_type: str) -> int:
    return (
        db.query(models.ChecklistItem)
        .filter(
            models.ChecklistItem.tenancy_id == tenancy_id,
            models.ChecklistItem.checklist_type == checklist_type,
        )
        .count()
    )


def max_sort_order(db: Session, tenancy_id: uuid.UUID, checklist_type: str) -> int:
    value = (
        db.query(func.max(models.ChecklistItem.sort_order))
        .filter(
            models.ChecklistItem.tenancy_id == tenancy_id,
            models.ChecklistItem.checklist_type == checklist_type,
        )
        .scalar()
    )
    return value or 0


def find_item_by_type(db: Session, tenancy_id: uuid.UUID, checklist_type: str, item_type: str) -> Optional[models.ChecklistItem]:
    return (
        db.query(models.ChecklistItem)
        .filter(
            models.ChecklistItem.tenancy_id == tenancy_id,
            models.ChecklistItem.checklist_type == checklist_type,
            models.ChecklistItem.item_type == item_type,
        )
        .first()
    )
