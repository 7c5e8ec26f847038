import uuid
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from portal.utils.statuses import RoleInUnit, ShowingRequestStatus, UserRole
from .users import EMAIL_PATTERN


class ShowingRequestCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    email: str = Field(pattern=EMAIL_PATTERN, max_length=320)
    phone: Optional[str] = Field(default=None, max_length=40)
    message: Optional[str] = Field(default=None, max_length=2000)
    preferred_date: Optional[datetime] = None
    unit_id: Optional[uuid.UUID] = None


class ShowingRequest(BaseModel):
    id: uuid.UUID
    property_id: Optional[uuid.UUID] = None
    unit_id: Optional[uuid.UUID] = None
    name: str
    email: str
    phone: Optional[str] = None
    message: Optional[str] = None
    preferred_date: Optional[datetime] = None
    status: str
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class ShowingRequestUpdate(BaseModel):
    status: ShowingRequestStatus


class InvitationCreate(BaseModel):
    email: str = Field(pattern=EMAIL_PATTERN, max_length=320)
    tenant_name: Optional[str] = Field(default=None, max_length=120)
    unit_id: Optional[uuid.UUID] = None
    role: UserRole = UserRole.TENANT
    role_in_unit: RoleInUnit = RoleInUnit.PRIMARY
    lease_start_date: Optional[datetime] = None


class Invitation(BaseModel):
    id: uuid.UUID
    email: str
    tenant_name: Optional[str] = None
    unit_id: Optional[uuid.UUID] = None
    role: str
    role_in_unit: str
    expires_at: datetime
    accepted_at: Optional[datetime] = None
    lease_start_date: Optional[datetime] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class AdminInvitation(Invitation):
    token: str


class PublicInvitation(BaseModel):
    email: str
    tenant_name: Optional[str] = None
    unit_label: Optional[str] = None
    building_name: Optional[str] = None
    role: str
    role_in_unit: str
    expires_at: datetime


class InvitationAccept(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
