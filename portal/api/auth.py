"""
Authentication helpers and identity resolution.

Parses proxy headers, normalizes emails, and upserts users while supporting
admin elevation via environment configuration.
"""
import logging
import os
from typing import Optional, Tuple
from sqlalchemy.orm import Session

from portal.db import models
from portal.utils.statuses import ROLE_ADMIN, ROLE_TENANT

logger = logging.getLogger("portal.auth")

DEV_USER_EMAIL = "dev@localhost"
DEV_USER_NAME = "Development User"


def _normalize_email(email: Optional[str]) -> Optional[str]:
    if not email:
        return None
    return email.strip().lower()


def _normalize_list_env(var_name: str) -> set:
    raw = os.getenv(var_name, "")
    values = set()
    for entry in raw.split(","):
        cleaned = entry.strip().strip('"').strip("'")
        if cleaned:
            values.add(cleaned.lower())
    return values


def _admin_emails() -> set:
    return _normalize_list_env("ADMIN_EMAILS")


def is_admin_email(email: Optional[str]) -> bool:
    if not email:
        return False
    return _normalize_email(email) in _admin_emails()


def resolve_identity_from_headers(
    x_auth_request_user: Optional[str],
    x_auth_request_email: Optional[str],
    x_forwarded_user: Optional[str],
    x_forwarded_email: Optional[str],
) -> Tuple[Optional[str], Optional[str]]:
    user = x_auth_request_user or x_forwarded_user
    email = _normalize_email(x_auth_request_email or x_forwarded_email)
    return user, email


def get_or_create_user(db: Session, email: str, display_name: Optional[str] = None) -> models.User:
    user = db.query(models.User).filter(models.User.email == email).first()
    admin = is_admin_email(email)
    if not user:
        user = models.User(
            email=email,
            display_name=display_name or email.split("@")[0],
            role=ROLE_ADMIN if admin else ROLE_TENANT,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info("Created user email=%s role=%s", email, user.role)
        return user

    # Existing users might predate a new ADMIN_EMAILS value; promote them when necessary.
    if admin and user.role != ROLE_ADMIN:
        user.role = ROLE_ADMIN
        db.commit()
        db.refresh(user)
        logger.info("Promoted user email=%s to ADMIN", email)
    return user
