"""
Tenant and admin invitations: creation, resend, revoke and public acceptance.
"""

import logging
import secrets
import uuid
from datetime import datetime, timedelta, UTC
from typing import List

from sqlalchemy.orm import Session

from portal.audit import AuditAction, log as audit_log
from portal.db import models, schemas
from portal.db.repositories import units as unit_repo
from portal.db.repositories import users as user_repo
from portal.errors import bad_request, not_found
from portal.services import checklist as checklist_service
from portal.services.notification_service import NotificationService
from portal.utils.dates import ensure_utc
from portal.utils.runtime import env_int
from portal.utils.statuses import (
    CHECKLIST_MOVE_IN,
    ROLE_IN_UNIT_OCCUPANT,
    ROLE_IN_UNIT_PRIMARY,
    ROLE_TENANT,
    UNIT_OCCUPIED,
    UNIT_VACANT,
    USER_ACTIVE,
)

logger = logging.getLogger(__name__)


def ttl() -> timedelta:
    return timedelta(days=env_int("INVITATION_TTL_DAYS", 7))


def _unit_label(unit: models.Unit) -> str:
    return f"{unit.building_name} - {unit.unit_label}" if unit.building_name else unit.unit_label


def _check_unit_roles(db: Session, unit: models.Unit, role_in_unit: str) -> None:
    tenancies = user_repo.list_active_tenancies(db, unit_id=unit.id)
    if role_in_unit == ROLE_IN_UNIT_PRIMARY and any(t.role_in_unit == ROLE_IN_UNIT_PRIMARY for t in tenancies):
        raise bad_request("PRIMARY_EXISTS", "The unit already has a primary tenant")
    if role_in_unit == ROLE_IN_UNIT_OCCUPANT and not tenancies:
        raise bad_request("NO_PRIMARY", "Cannot add occupant to empty unit. Primary tenant must accept first.")


def list_invitations(db: Session) -> List[models.Invitation]:
    return db.query(models.Invitation).order_by(models.Invitation.created_at.desc()).all()


def _send(db: Session, invitation: models.Invitation, notifier: NotificationService = None) -> None:
    unit = unit_repo.get_unit(db, invitation.unit_id) if invitation.unit_id else None
    (notifier or NotificationService(db)).notify_invitation(invitation, _unit_label(unit) if unit else None)


def create_invitation(db: Session, payload: schemas.InvitationCreate, admin: models.User,
                      notifier: NotificationService = None) -> models.Invitation:
    email = payload.email.strip().lower()
    if user_repo.get_user_by_email(db, email):
        raise bad_request("USER_EXISTS", "A user with this email already exists")
    now = datetime.now(UTC)
    pending = (
        db.query(models.Invitation)
        .filter(models.Invitation.email == email, models.Invitation.accepted_at.is_(None))
        .all()
    )
    if any(ensure_utc(inv.expires_at) > now for inv in pending):
        raise bad_request("PENDING_INVITATION", "A pending invitation already exists for this email")

    role = payload.role.value
    if payload.unit_id:
        unit = unit_repo.get_unit(db, payload.unit_id)
        if unit is None:
            raise not_found("Unit not found")
        if role == ROLE_TENANT:
            _check_unit_roles(db, unit, payload.role_in_unit.value)

    invitation = models.Invitation(
        email=email,
        tenant_name=payload.tenant_name,
        unit_id=payload.unit_id,
        role=role,
        role_in_unit=payload.role_in_unit.value,
        token=secrets.token_urlsafe(32),
        expires_at=now + ttl(),
        lease_start_date=ensure_utc(payload.lease_start_date),
        created_by_id=admin.id,
    )
    db.add(invitation)
    db.commit()
    db.refresh(invitation)
    audit_log(db, action=AuditAction.INVITATION_CREATE, target_type="invitation", target_id=invitation.id,
              actor_user_id=admin.id, metadata={"email": email, "role": role})
    _send(db, invitation, notifier)
    return invitation


def _get_or_404(db: Session, invitation_id: uuid.UUID) -> models.Invitation:
    invitation = db.query(models.Invitation).filter(models.Invitation.id == invitation_id).first()
    if invitation is None:
        raise not_found("Invitation not found")
    return invitation


def revoke_invitation(db: Session, invitation_id: uuid.UUID, admin: models.User) -> None:
    invitation = _get_or_404(db, invitation_id)
    if invitation.accepted_at is not None:
        raise bad_request("ALREADY_ACCEPTED", "Cannot delete an accepted invitation")
    db.delete(invitation)
    db.commit()
    audit_log(db, action=AuditAction.INVITATION_REVOKE, target_type="invitation", target_id=invitation_id, actor_user_id=admin.id)


def resend_invitation(db: Session, invitation_id: uuid.UUID, admin: models.User,
                      notifier: NotificationService = None) -> models.Invitation:
    invitation = _get_or_404(db, invitation_id)
    if invitation.accepted_at is not None:
        raise bad_request("ALREADY_ACCEPTED", "Cannot resend an accepted invitation")
    invitation.expires_at = datetime.now(UTC) + ttl()
    db.commit()
    db.refresh(invitation)
    audit_log(db, action=AuditAction.INVITATION_RESEND, target_type="invitation", target_id=invitation.id, actor_user_id=admin.id)
    _send(db, invitation, notifier)
    return invitation


def _open_invitation(db: Session, token: str) -> models.Invitation:
    invitation = db.query(models.Invitation).filter(models.Invitation.token == token).first()
    if invitation is None:
        raise not_found("Invalid invitation token", code="INVALID_TOKEN")
    if invitation.accepted_at is not None:
        raise bad_request("ALREADY_ACCEPTED", "This invitation has already been accepted")
    if ensure_utc(invitation.expires_at) < datetime.now(UTC):
        raise bad_request("EXPIRED", "This invitation has expired")
    return invitation


def public_invitation(db: Session, token: str) -> schemas.PublicInvitation:
    invitation = _open_invitation(db, token)
    unit = unit_repo.get_unit(db, invitation.unit_id) if invitation.unit_id else None
    return schemas.PublicInvitation(
        email=invitation.email,
        tenant_name=invitation.tenant_name,
        unit_label=unit.unit_label if unit else None,
        building_name=unit.building_name if unit else None,
        role=invitation.role,
        role_in_unit=invitation.role_in_unit,
        expires_at=ensure_utc(invitation.expires_at),
    )


def accept_invitation(db: Session, token: str, payload: schemas.InvitationAccept) -> models.User:
    """Create the invited user, their tenancy and move-in checklist in one transaction."""
    invitation = _open_invitation(db, token)
    if user_repo.get_user_by_email(db, invitation.email):
        raise bad_request("USER_EXISTS", "A user with this email already exists")

    unit = None
    if invitation.role == ROLE_TENANT and invitation.unit_id:
        unit = unit_repo.get_unit(db, invitation.unit_id)
        if unit is None:
            raise bad_request("UNIT_NOT_FOUND", "The assigned unit no longer exists")
        _check_unit_roles(db, unit, invitation.role_in_unit)

    now = datetime.now(UTC)
    try:
        user = models.User(
            email=invitation.email,
            display_name=(payload.name or invitation.tenant_name or invitation.email.split("@")[0]).strip(),
            role=invitation.role,
            status=USER_ACTIVE,
        )
        db.add(user)
        db.flush()

        if unit is not None:
            tenancy = models.Tenancy(
                user_id=user.id,
                unit_id=unit.id,
                start_date=ensure_utc(invitation.lease_start_date) or now,
                role_in_unit=invitation.role_in_unit,
                is_active=True,
            )
            db.add(tenancy)
            if unit.status == UNIT_VACANT:
                unit.status = UNIT_OCCUPIED
            db.flush()
            checklist_service.initialize(db, tenancy, CHECKLIST_MOVE_IN, commit=False)

        invitation.accepted_at = now
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(user)
    audit_log(db, action=AuditAction.INVITATION_ACCEPT, target_type="invitation", target_id=invitation.id,
              actor_user_id=user.id, metadata={"unit_id": str(unit.id) if unit else None})
    logger.info("Invitation accepted email=%s role=%s unit=%s", user.email, user.role, unit.id if unit else None)
    return user
