import uuid
from datetime import date
from typing import Optional, List
from pydantic import BaseModel


class GenerationSummary(BaseModel):
    created: int = 0
    skipped: int = 0
    error_count: int = 0
    emails_sent: int = 0
    emails_failed: int = 0


class GenerationDetail(BaseModel):
    unit_label: str
    action: str  # created|skipped|error
    period_month: Optional[str] = None
    reason: Optional[str] = None
    email_sent: Optional[bool] = None


class GenerationError(BaseModel):
    unit_label: str
    error: str


class InvoiceGenerationResult(BaseModel):
    run_date: date
    dry_run: bool
    lead_days: int
    summary: GenerationSummary
    errors: List[GenerationError] = []
    details: List[GenerationDetail] = []


class UpcomingDueDate(BaseModel):
    unit_id: uuid.UUID
    unit_label: str
    rent_amount_cents: Optional[int] = None
    rent_due_day: int
    period_month: str
    next_due_date: date
    days_until_due: int
    invoice_exists: bool
    would_generate: bool
    tenant_email: Optional[str] = None


class InvoiceCronStatus(BaseModel):
    today: date
    lead_days: int
    units_checked: int
    would_generate: int
    already_exist: int
    units: List[UpcomingDueDate]


class ReminderDetail(BaseModel):
    invoice_id: uuid.UUID
    unit_label: Optional[str] = None
    email: Optional[str] = None
    action: str  # sent|skipped|failed|dry_run
    reason: Optional[str] = None


class ReminderRunResult(BaseModel):
    run_date: date
    target_date: date
    dry_run: bool
    marked_overdue: int = 0
    total: int = 0
    sent: int = 0
    skipped: int = 0
    failed: int = 0
    details: List[ReminderDetail] = []


class ReminderCronStatus(BaseModel):
    today: date
    days_before_due: int
    target_date: date
    invoices_due: int
    reminders_already_sent: int
