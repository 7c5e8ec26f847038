"""
Domain-split Pydantic schemas re-exported from a single namespace.
"""

from .users import EMAIL_PATTERN, UserBase, User, UserUpdate, TenancySummary, Me, TenantListItem, MoveOutRequest
from .units import (
    PropertyOut,
    UnitBase,
    UnitCreate,
    UnitUpdate,
    Unit,
    UnitWithTenants,
    RentRollTenant,
    RentRollRow,
    RentRollSummary,
    RentRoll,
    PropertyLanding,
)
from .invoices import (
    InvoiceCreate,
    InvoiceUpdate,
    InvoiceGenerateRequest,
    PaymentOut,
    TenantRef,
    Invoice,
    InvoicePaidResponse,
    ReminderResponse,
    GeneratedInvoice,
    PeriodGenerationResponse,
)
from .etransfer import (
    EtransferSettings,
    EtransferSettingsUpdate,
    RejectRequest,
    WebhookConfig,
    WebhookSecretUpdate,
    IntakeLog,
    IntakeLogDetail,
    IntakeLogList,
    ManualMatchRequest,
    IntakeWebhookResponse,
    IntakeWebhookStatus,
    TenantEtransferSettings,
    PaymentHistoryItem,
    EtransferActionResult,
    WebhookDryRunRequest,
    WebhookDryRunStep,
    WebhookDryRunParsed,
    WebhookDryRunTenant,
    WebhookDryRunResult,
)
from .service_requests import (
    ServiceRequestCreate,
    AdminServiceRequestCreate,
    ServiceRequestUpdate,
    CommentCreate,
    Comment,
    ServiceRequest,
    ServiceRequestDetail,
)
from .checklists import ChecklistItem, ChecklistProgress, Checklist, ChecklistItemCreate, ChecklistInitialize
from .insurance import InsuranceStatus, TenantInsurance, InsuranceRejectRequest
from .calendar import CalendarEventOut, CalendarEventCreate
from .leasing import (
    ShowingRequestCreate,
    ShowingRequest,
    ShowingRequestUpdate,
    InvitationCreate,
    Invitation,
    AdminInvitation,
    PublicInvitation,
    InvitationAccept,
)
from .notifications import EmailNotificationLog
from .audits import AuditLogBase, AuditLogCreate, AuditLog
from .cron import (
    GenerationSummary,
    GenerationDetail,
    GenerationError,
    InvoiceGenerationResult,
    UpcomingDueDate,
    InvoiceCronStatus,
    ReminderDetail,
    ReminderRunResult,
    ReminderCronStatus,
)
from .dashboard import DashboardUnit, TenantDashboard
