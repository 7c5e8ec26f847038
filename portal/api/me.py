"""
Current user endpoints: profile lookup and self-service profile edits.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from portal.db.database import get_db
from portal.db import models, schemas
from portal.api.deps import get_current_user, get_current_user_context
from portal.db.repositories import users as user_repo
from portal.services.units import tenancy_summary
from portal.utils.statuses import ROLE_TENANT

router = APIRouter(tags=["me"])


def _me(db: Session, user: models.User) -> schemas.Me:
    tenancy = user_repo.get_active_tenancy(db, user.id) if user.role == ROLE_TENANT else None
    return schemas.Me(
        **schemas.User.model_validate(user).model_dump(),
        tenancy=tenancy_summary(tenancy),
    )


@router.get("/me", response_model=schemas.Me)
def get_me(db: Session = Depends(get_db), user_context=Depends(get_current_user_context)):
    user, _current_user = user_context
    return _me(db, user)


@router.patch("/me", response_model=schemas.Me)
def update_me(payload: schemas.UserUpdate, db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    """Update the caller's name and phone; the email comes from the identity provider and stays read-only."""
    changes = payload.model_dump(exclude_unset=True)
    if changes:
        for key, value in changes.items():
            setattr(user, key, value)
        db.commit()
        db.refresh(user)
    return _me(db, user)
