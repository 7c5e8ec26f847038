"""
Domain-split SQLAlchemy models with a single import surface.

Exposes `Base`, `now_utc`, and all ORM classes so callers can write
`from portal.db import models` and `models.Invoice`.
"""

from .base import Base, now_utc  # re-export

# Domain models
from .users import User, InsuranceRecord
from .properties import Property, Unit, Tenancy
from .billing import Invoice, Payment, ReminderLog, PortalSettings
from .intake import PaymentIntakeLog
from .service_requests import ServiceRequest, ServiceRequestComment
from .checklists import ChecklistItem
from .calendar import CalendarEvent
from .leasing import ShowingRequest, Invitation
from .notifications import EmailNotificationLog
from .audit import AuditLog

__all__ = [
    # base
    "Base",
    "now_utc",
    # people
    "User",
    "InsuranceRecord",
    # property
    "Property",
    "Unit",
    "Tenancy",
    # billing
    "Invoice",
    "Payment",
    "ReminderLog",
    "PortalSettings",
    "PaymentIntakeLog",
    # operations
    "ServiceRequest",
    "ServiceRequestComment",
    "ChecklistItem",
    "CalendarEvent",
    # leasing
    "ShowingRequest",
    "Invitation",
    # notifications/audit
    "EmailNotificationLog",
    "AuditLog",
]
