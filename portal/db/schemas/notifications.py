import uuid
from datetime import datetime
from typing import Optional, Dict, Any
from pydantic import BaseModel, ConfigDict, Field


class EmailNotificationLog(BaseModel):
    id: uuid.UUID
    user_id: Optional[uuid.UUID] = None
    email_address: str
    event_type: str
    subject: str
    status: str = 'pending'
    provider_message_id: Optional[str] = None
    error_message: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="metadata_json")
    sent_at: Optional[datetime] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)
