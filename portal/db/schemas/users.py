import uuid
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class UserBase(BaseModel):
    email: str
    display_name: str | None = None
    phone: str | None = None


class User(UserBase):
    id: uuid.UUID
    role: str
    status: str
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class UserUpdate(BaseModel):
    display_name: Optional[str] = Field(default=None, min_length=1, max_length=80)
    phone: Optional[str] = Field(default=None, max_length=40)


class TenancySummary(BaseModel):
    tenancy_id: uuid.UUID
    unit_id: uuid.UUID
    unit_label: str
    building_name: Optional[str] = None
    role_in_unit: str
    start_date: datetime
    end_date: Optional[datetime] = None
    move_out_date: Optional[datetime] = None


class Me(User):
    tenancy: Optional[TenancySummary] = None


class TenantListItem(User):
    tenancy: Optional[TenancySummary] = None
    insurance_status: str


class MoveOutRequest(BaseModel):
    move_out_date: datetime
