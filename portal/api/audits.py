"""
Audit log API endpoints.

Admin-only listing of audited mutations, newest first.
"""
from typing import Optional, List
import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from portal.db.database import get_db
from portal.db import schemas
from portal.db.repositories.audits import get_audit_logs
from portal.api.deps import require_admin

router = APIRouter(prefix="/admin/audit-logs", tags=["audits"])


@router.get("", response_model=List[schemas.AuditLog])
def list_audit_logs(
    user_id: Optional[uuid.UUID] = None,
    action_type: Optional[str] = None,
    target_type: Optional[str] = None,
    target_id: Optional[uuid.UUID] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    return get_audit_logs(
        db,
        user_id=user_id,
        action_type=action_type,
        target_type=target_type,
        target_id=target_id,
        skip=skip,
        limit=min(limit, 500),
    )
