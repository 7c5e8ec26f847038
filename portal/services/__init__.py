"""Business logic services package with public service helpers."""

from .notification_service import (
    NotificationService,
    format_cents,
)
from .transactional_email_service import (
    EmailProvider,
    TransactionalEmailConfig,
    get_transactional_email_service,
)

__all__ = [
    "NotificationService",
    "format_cents",
    "EmailProvider",
    "TransactionalEmailConfig",
    "get_transactional_email_service",
]
