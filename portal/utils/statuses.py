"""
Status and role constants.

Centralized definitions for the string values stored in status/role columns
to eliminate literals scattered across the codebase.
"""

from typing import FrozenSet
from enum import Enum

# Users
ROLE_TENANT = "TENANT"
ROLE_ADMIN = "ADMIN"
USER_ACTIVE = "ACTIVE"
USER_INACTIVE = "INACTIVE"

# Units / tenancies
UNIT_VACANT = "VACANT"
UNIT_OCCUPIED = "OCCUPIED"
ROLE_IN_UNIT_PRIMARY = "PRIMARY"
ROLE_IN_UNIT_OCCUPANT = "OCCUPANT"

# Invoices
INVOICE_OPEN = "OPEN"
INVOICE_PAID = "PAID"
INVOICE_OVERDUE = "OVERDUE"
INVOICE_VOID = "VOID"
INVOICE_TYPE_RENT = "RENT"
INVOICE_TYPE_CUSTOM = "CUSTOM"
UNPAID_INVOICE_STATUSES: FrozenSet[str] = frozenset({INVOICE_OPEN, INVOICE_OVERDUE})

# e-Transfer sub-status on invoices (lowercase values are set by people, PAID by the intake pipeline)
ETRANSFER_PENDING = "pending"
ETRANSFER_APPROVED = "approved"
ETRANSFER_REJECTED = "rejected"
ETRANSFER_AUTO_PAID = "PAID"

# Payments
PAYMENT_METHOD_MANUAL = "manual"
PAYMENT_METHOD_ETRANSFER = "etransfer"
PAYMENT_METHOD_ETRANSFER_MANUAL = "etransfer_manual"
ETRANSFER_PAYMENT_METHODS: FrozenSet[str] = frozenset({PAYMENT_METHOD_ETRANSFER, PAYMENT_METHOD_ETRANSFER_MANUAL})

# Payment intake
INTAKE_RECEIVED = "RECEIVED"
INTAKE_PARSED = "PARSED"
INTAKE_MATCHED = "MATCHED"
INTAKE_PAID = "PAID"
INTAKE_FAILED = "FAILED"
INTAKE_MANUAL_REVIEW = "MANUAL_REVIEW"
INTAKE_DISMISSED = "DISMISSED"

# Insurance
INSURANCE_MISSING = "MISSING"
INSURANCE_PENDING = "PENDING"
INSURANCE_APPROVED = "APPROVED"
INSURANCE_REJECTED = "REJECTED"
INSURANCE_EXPIRED = "EXPIRED"

# Checklists
CHECKLIST_MOVE_IN = "MOVE_IN"
CHECKLIST_MOVE_OUT = "MOVE_OUT"


class UserRole(str, Enum):
    TENANT = ROLE_TENANT
    ADMIN = ROLE_ADMIN


class RoleInUnit(str, Enum):
    PRIMARY = ROLE_IN_UNIT_PRIMARY
    OCCUPANT = ROLE_IN_UNIT_OCCUPANT


class InvoiceStatus(str, Enum):
    OPEN = INVOICE_OPEN
    PAID = INVOICE_PAID
    OVERDUE = INVOICE_OVERDUE
    VOID = INVOICE_VOID


class InvoiceType(str, Enum):
    RENT = INVOICE_TYPE_RENT
    CUSTOM = INVOICE_TYPE_CUSTOM


class IntakeStatus(str, Enum):
    RECEIVED = INTAKE_RECEIVED
    PARSED = INTAKE_PARSED
    MATCHED = INTAKE_MATCHED
    PAID = INTAKE_PAID
    FAILED = INTAKE_FAILED
    MANUAL_REVIEW = INTAKE_MANUAL_REVIEW
    DISMISSED = INTAKE_DISMISSED


class ServiceRequestStatus(str, Enum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"


class ServiceRequestPriority(str, Enum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"


class ChecklistType(str, Enum):
    MOVE_IN = CHECKLIST_MOVE_IN
    MOVE_OUT = CHECKLIST_MOVE_OUT


class CalendarCategory(str, Enum):
    logistics = "logistics"
    milestone = "milestone"
    compliance = "compliance"
    holiday = "holiday"
    move = "move"


class ShowingRequestStatus(str, Enum):
    NEW = "NEW"
    CONTACTED = "CONTACTED"
    SCHEDULED = "SCHEDULED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
