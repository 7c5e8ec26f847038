import uuid
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field, model_validator

from portal.utils.dates import PERIOD_RE
from portal.utils.statuses import InvoiceStatus, InvoiceType
from .cron import GenerationError


class InvoiceCreate(BaseModel):
    unit_id: uuid.UUID
    period_month: str = Field(pattern=PERIOD_RE.pattern)
    due_date: datetime
    amount_cents: int = Field(ge=0)
    invoice_type: InvoiceType = InvoiceType.RENT
    description: Optional[str] = None


class InvoiceUpdate(BaseModel):
    status: Optional[InvoiceStatus] = None
    amount_cents: Optional[int] = Field(default=None, ge=0)
    due_date: Optional[datetime] = None


class InvoiceGenerateRequest(BaseModel):
    period_month: str = Field(pattern=PERIOD_RE.pattern)


class PaymentOut(BaseModel):
    id: uuid.UUID
    invoice_id: uuid.UUID
    unit_id: uuid.UUID
    user_id: uuid.UUID
    amount_cents: int
    paid_at: datetime
    method: str
    receipt_reference: Optional[str] = None
    approved_by_id: Optional[uuid.UUID] = None
    model_config = ConfigDict(from_attributes=True)


class TenantRef(BaseModel):
    id: uuid.UUID
    display_name: Optional[str] = None
    email: str
    model_config = ConfigDict(from_attributes=True)


class Invoice(BaseModel):
    id: uuid.UUID
    unit_id: uuid.UUID
    tenancy_id: uuid.UUID
    period_month: str
    due_date: datetime
    amount_cents: int
    status: str
    invoice_type: str
    description: Optional[str] = None
    payment_method: Optional[str] = None
    etransfer_status: Optional[str] = None
    etransfer_marked_at: Optional[datetime] = None
    etransfer_reject_reason: Optional[str] = None
    created_at: datetime
    unit_label: Optional[str] = None
    building_name: Optional[str] = None
    tenant: Optional[TenantRef] = None
    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="before")
    @classmethod
    def _flatten_relations(cls, data):
        # ORM instances carry unit/tenancy relationships; lift the display fields
        unit = getattr(data, "unit", None)
        tenancy = getattr(data, "tenancy", None)
        if unit is None and tenancy is None:
            return data
        values = {name: getattr(data, name, None) for name in cls.model_fields if hasattr(data, name)}
        if unit is not None:
            values["unit_label"] = unit.unit_label
            values["building_name"] = unit.building_name
        if tenancy is not None and tenancy.user is not None:
            values["tenant"] = tenancy.user
        return values


class InvoicePaidResponse(Invoice):
    payment: PaymentOut


class ReminderResponse(BaseModel):
    success: bool
    invoice_id: uuid.UUID
    sent_to: str
    sent_at: datetime


class GeneratedInvoice(BaseModel):
    unit_label: str
    amount_cents: int


class PeriodGenerationResponse(BaseModel):
    period_month: str
    created: int
    skipped: int
    error_count: int
    errors: List[GenerationError] = []
    invoices: List[GeneratedInvoice] = []
