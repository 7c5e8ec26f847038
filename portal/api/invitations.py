"""
Invitation endpoints.

Admins create, resend and revoke invitations; the public routes let the
invitee look up an invitation by token and accept it.
"""
from typing import List
import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from portal.db.database import get_db
from portal.db import schemas
from portal.api.deps import require_admin
from portal.services import invitations as invitation_service

router = APIRouter(prefix="/admin/invitations", tags=["invitations"])
public_router = APIRouter(prefix="/invitations", tags=["invitations-public"])


@router.get("", response_model=List[schemas.AdminInvitation])
def list_invitations(db: Session = Depends(get_db), admin=Depends(require_admin)):
    return invitation_service.list_invitations(db)


@router.post("", response_model=schemas.AdminInvitation, status_code=status.HTTP_201_CREATED)
def create_invitation(payload: schemas.InvitationCreate, db: Session = Depends(get_db), admin=Depends(require_admin)):
    return invitation_service.create_invitation(db, payload, admin)


@router.delete("/{invitation_id}", status_code=status.HTTP_204_NO_CONTENT)
def revoke_invitation(invitation_id: uuid.UUID, db: Session = Depends(get_db), admin=Depends(require_admin)):
    invitation_service.revoke_invitation(db, invitation_id, admin)


@router.post("/{invitation_id}/resend", response_model=schemas.AdminInvitation)
def resend_invitation(invitation_id: uuid.UUID, db: Session = Depends(get_db), admin=Depends(require_admin)):
    return invitation_service.resend_invitation(db, invitation_id, admin)


@public_router.get("/{token}", response_model=schemas.PublicInvitation)
def get_invitation(token: str, db: Session = Depends(get_db)):
    return invitation_service.public_invitation(db, token)


@public_router.post("/{token}/accept", response_model=schemas.User)
def accept_invitation(token: str, payload: schemas.InvitationAccept = None, db: Session = Depends(get_db)):
    return invitation_service.accept_invitation(db, token, payload or schemas.InvitationAccept())
