import uuid
from datetime import datetime
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, ConfigDict, Field

from .invoices import Invoice, TenantRef
from .users import EMAIL_PATTERN


class EtransferSettings(BaseModel):
    etransfer_enabled: bool
    etransfer_recipient_email: Optional[str] = None
    etransfer_memo_template: str
    model_config = ConfigDict(from_attributes=True)


class EtransferSettingsUpdate(BaseModel):
    etransfer_enabled: Optional[bool] = None
    etransfer_recipient_email: Optional[str] = Field(default=None, pattern=EMAIL_PATTERN)
    etransfer_memo_template: Optional[str] = Field(default=None, min_length=1, max_length=200)


class RejectRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=500)


class WebhookConfig(BaseModel):
    configured: bool
    masked_secret: Optional[str] = None
    source: Optional[str] = None  # env|settings
    webhook_path: str


class WebhookSecretUpdate(BaseModel):
    secret: str


class IntakeLog(BaseModel):
    id: uuid.UUID
    raw_subject: Optional[str] = None
    raw_body: Optional[str] = None
    raw_from: Optional[str] = None
    webhook_source: Optional[str] = None
    is_verified: bool
    status: str
    sender_name: Optional[str] = None
    amount_cents: Optional[int] = None
    reference_number: Optional[str] = None
    parse_confidence: Optional[float] = None
    parse_method: Optional[str] = None
    parse_error: Optional[str] = None
    parsed_at: Optional[datetime] = None
    matched_tenant_id: Optional[uuid.UUID] = None
    matched_invoice_id: Optional[uuid.UUID] = None
    reconciliation_note: Optional[str] = None
    received_at: datetime
    reconciled_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class IntakeLogDetail(IntakeLog):
    matched_tenant: Optional[TenantRef] = None
    matched_invoice: Optional[Invoice] = None
    candidate_invoices: List[Invoice] = []


class IntakeLogList(BaseModel):
    items: List[IntakeLogDetail]
    total: int
    limit: int
    offset: int


class ManualMatchRequest(BaseModel):
    tenant_id: uuid.UUID
    invoice_id: uuid.UUID


class IntakeWebhookResponse(BaseModel):
    status: str
    log_id: uuid.UUID


class IntakeWebhookStatus(BaseModel):
    configured: bool
    llm_parser_configured: bool
    webhook_path: str


class TenantEtransferSettings(EtransferSettings):
    memo_example: Optional[str] = None


class PaymentHistoryItem(BaseModel):
    id: uuid.UUID
    invoice_id: uuid.UUID
    period_month: Optional[str] = None
    unit_label: Optional[str] = None
    tenant: Optional[TenantRef] = None
    amount_cents: int
    paid_at: datetime
    method: str
    receipt_reference: Optional[str] = None
    approved_by_id: Optional[uuid.UUID] = None


class EtransferActionResult(BaseModel):
    invoice: Invoice
    payment_id: Optional[uuid.UUID] = None
    notification: Optional[Dict[str, Any]] = None


class WebhookDryRunRequest(BaseModel):
    raw_email_content: str = Field(min_length=1)
    raw_email_subject: Optional[str] = None


class WebhookDryRunStep(BaseModel):
    step: str  # validate|parse|match|reconcile
    status: str  # success|failure|skipped
    message: str


class WebhookDryRunParsed(BaseModel):
    sender_name: Optional[str] = None
    amount: Optional[str] = None
    amount_cents: Optional[int] = None
    reference_number: Optional[str] = None
    confidence: Optional[float] = None
    method: str


class WebhookDryRunTenant(BaseModel):
    id: uuid.UUID
    name: Optional[str] = None
    email: str
    unit: Optional[str] = None


class WebhookDryRunResult(BaseModel):
    steps: List[WebhookDryRunStep]
    parsed: Optional[WebhookDryRunParsed] = None
    matched_tenant: Optional[WebhookDryRunTenant] = None
    invoice: Optional[Invoice] = None
