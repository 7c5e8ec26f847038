"""
Payment intake log repository functions.
"""
from __future__ import annotations

import uuid
from typing import Optional, List, Tuple
from sqlalchemy.orm import Session

from portal.db import models
from portal.utils.statuses import INTAKE_PAID


def get_intake_log(db: Session, log_id: uuid.UUID) -> Optional[models.PaymentIntakeLog]:
    return db.query(models.PaymentIntakeLog).filter(models.PaymentIntakeLog.id == log_id).first()


def list_intake_logs(db: Session, *, status: Optional[str] = None, skip: int = 0, limit: int = 50) -> Tuple[List[models.PaymentIntakeLog], int]:
    query = db.query(models.PaymentIntakeLog)
    if status:
        query = query.filter(models.PaymentIntakeLog.status == status)
    total = query.count()
    items = query.order_by(models.PaymentIntakeLog.received_at.desc()).offset(skip).limit(limit).all()
    return items, total


def reference_already_paid(db: Session, reference_number: str, *, exclude_id: Optional[uuid.UUID] = None) -> bool:
    query = db.query(models.PaymentIntakeLog.id).filter(
        models.PaymentIntakeLog.reference_number == reference_number,
        models.PaymentIntakeLog.status == INTAKE_PAID,
    )
    if exclude_id:
        query = query.filter(models.PaymentIntakeLog.id != exclude_id)
    return query.first() is not None
