"""
API dependency helpers.

Provides the dependency-resolved user context and role guards for routes.
"""
from typing import Optional, Tuple, Dict, Any

from fastapi import Header, HTTPException, status, Depends
from sqlalchemy.orm import Session

from portal.db.database import get_db
from portal.api.auth import DEV_USER_EMAIL, DEV_USER_NAME, resolve_identity_from_headers, get_or_create_user
from portal.db import models
from portal.db.repositories import users as user_repo
from portal.errors import PortalError
from portal.utils.runtime import dev_mode_active
from portal.utils.statuses import ROLE_ADMIN, ROLE_TENANT, USER_INACTIVE

# Contract:
# Returns (sqlalchemy User model, current_user_context_dict)
# Raises 401 if identity cannot be resolved, 403 if the account is inactive.

def get_current_user_context(
    db: Session = Depends(get_db),
    x_auth_request_user: Optional[str] = Header(default=None),
    x_auth_request_email: Optional[str] = Header(default=None),
    x_forwarded_user: Optional[str] = Header(default=None),
    x_forwarded_email: Optional[str] = Header(default=None),
) -> Tuple[models.User, Dict[str, Any]]:
    if dev_mode_active():
        name, email = DEV_USER_NAME, DEV_USER_EMAIL
    else:
        name, email = resolve_identity_from_headers(
            x_auth_request_user=x_auth_request_user,
            x_auth_request_email=x_auth_request_email,
            x_forwarded_user=x_forwarded_user,
            x_forwarded_email=x_forwarded_email,
        )
        if not email:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    user = get_or_create_user(db, email=email, display_name=name)
    if user.status == USER_INACTIVE:
        raise PortalError(status.HTTP_403_FORBIDDEN, "ACCOUNT_INACTIVE", "Account is inactive")

    tenancy = user_repo.get_active_tenancy(db, user.id) if user.role == ROLE_TENANT else None
    current_user = {
        "id": user.id,
        "email": user.email,
        "display_name": user.display_name,
        "role": user.role,
        "is_admin": user.role == ROLE_ADMIN,
        "tenancy_id": tenancy.id if tenancy else None,
        "unit_id": tenancy.unit_id if tenancy else None,
    }
    return user, current_user


def get_current_user(context=Depends(get_current_user_context)) -> models.User:
    user, _ctx = context
    return user


def require_admin(context=Depends(get_current_user_context)) -> models.User:
    user, current_user = context
    if not current_user["is_admin"]:
        raise PortalError(status.HTTP_403_FORBIDDEN, "FORBIDDEN", "Admin access required")
    return user


def require_tenant(context=Depends(get_current_user_context)) -> models.User:
    user, current_user = context
    if current_user["role"] != ROLE_TENANT:
        raise PortalError(status.HTTP_403_FORBIDDEN, "FORBIDDEN", "Tenant access required")
    return user


def get_tenant_tenancy(db: Session, tenant: models.User) -> models.Tenancy:
    """Active tenancy of the caller, or 400 NO_TENANCY."""
    tenancy = user_repo.get_active_tenancy(db, tenant.id)
    if tenancy is None:
        raise PortalError(status.HTTP_400_BAD_REQUEST, "NO_TENANCY", "No active tenancy found")
    return tenancy
