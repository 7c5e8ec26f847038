"""
Notification API Endpoints

Admin views over outbound email: the delivery log and provider status.
"""
from typing import List, Optional, Dict, Any
import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from portal.db.database import get_db
from portal.db import models, schemas
from portal.api.deps import require_admin
from portal.services import transactional_email_service

router = APIRouter(prefix="/admin/notifications", tags=["notifications"])


@router.get("/email-logs", response_model=List[schemas.EmailNotificationLog])
def list_email_logs(
    user_id: Optional[uuid.UUID] = None,
    event_type: Optional[str] = None,
    status: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    """
    List outbound email attempts, newest first.

    - **event_type**: e.g. invoice_ready, rent_reminder
    - **status**: pending, sent or failed
    """
    query = db.query(models.EmailNotificationLog)
    if user_id:
        query = query.filter(models.EmailNotificationLog.user_id == user_id)
    if event_type:
        query = query.filter(models.EmailNotificationLog.event_type == event_type)
    if status:
        query = query.filter(models.EmailNotificationLog.status == status)
    return query.order_by(models.EmailNotificationLog.created_at.desc()).offset(skip).limit(min(limit, 500)).all()


@router.get("/email-status")
def email_status(admin=Depends(require_admin)) -> Dict[str, Any]:
    """Report whether the configured email provider is usable."""
    return transactional_email_service.get_transactional_email_service().test_connection()
