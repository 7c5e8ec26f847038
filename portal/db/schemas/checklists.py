import uuid
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field

from portal.utils.statuses import ChecklistType


class ChecklistItem(BaseModel):
    id: uuid.UUID
    tenancy_id: uuid.UUID
    checklist_type: str
    item_type: str
    title: str
    description: Optional[str] = None
    is_required: bool
    is_completed: bool
    completed_at: Optional[datetime] = None
    completed_by_id: Optional[uuid.UUID] = None
    sort_order: int
    can_self_complete: bool = False
    model_config = ConfigDict(from_attributes=True)


class ChecklistProgress(BaseModel):
    completed: int
    total: int
    percentage: int


class Checklist(BaseModel):
    checklist_type: str
    items: List[ChecklistItem]
    progress: ChecklistProgress


class ChecklistItemCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    checklist_type: ChecklistType = ChecklistType.MOVE_IN
    is_required: bool = False


class ChecklistInitialize(BaseModel):
    checklist_type: ChecklistType = Field(default=ChecklistType.MOVE_IN, alias="type")
    model_config = ConfigDict(populate_by_name=True)
