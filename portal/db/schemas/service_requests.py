import uuid
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field

from portal.utils.statuses import ServiceRequestPriority, ServiceRequestStatus


class ServiceRequestCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1, max_length=5000)
    category: Optional[str] = Field(default=None, max_length=50)
    priority: ServiceRequestPriority = ServiceRequestPriority.NORMAL


class AdminServiceRequestCreate(ServiceRequestCreate):
    tenant_id: uuid.UUID


class ServiceRequestUpdate(BaseModel):
    status: Optional[ServiceRequestStatus] = None
    priority: Optional[ServiceRequestPriority] = None


class CommentCreate(BaseModel):
    body: str = Field(min_length=1, max_length=5000)
    is_internal: bool = False


class Comment(BaseModel):
    id: uuid.UUID
    author_id: uuid.UUID
    author_name: Optional[str] = None
    body: str
    is_internal: bool
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class ServiceRequest(BaseModel):
    id: uuid.UUID
    unit_id: uuid.UUID
    created_by_id: uuid.UUID
    title: str
    description: str
    category: Optional[str] = None
    priority: str
    status: str
    resolved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    unit_label: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class ServiceRequestDetail(ServiceRequest):
    comments: List[Comment] = []
