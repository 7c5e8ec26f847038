import uuid
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class InsuranceStatus(BaseModel):
    user_id: uuid.UUID
    status: str
    provider: Optional[str] = None
    expires_at: Optional[datetime] = None
    verified_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    has_document: bool = False
    reminder_sent_at: Optional[datetime] = None


class TenantInsurance(InsuranceStatus):
    email: str
    display_name: Optional[str] = None
    unit_label: Optional[str] = None


class InsuranceRejectRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=500)
