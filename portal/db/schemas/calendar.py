import uuid
from datetime import date
from typing import Optional
from pydantic import BaseModel, Field, model_validator

from portal.utils.statuses import CalendarCategory


class CalendarEventOut(BaseModel):
    id: str
    title: str
    start: date
    end: Optional[date] = None
    all_day: bool = True
    category: str
    description: Optional[str] = None
    location: Optional[str] = None
    unit_id: Optional[uuid.UUID] = None
    unit_label: Optional[str] = None
    building_name: Optional[str] = None
    tenant_name: Optional[str] = None
    is_custom: bool = False
    is_visible_to_tenant: Optional[bool] = None


class CalendarEventCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    event_date: date
    end_date: Optional[date] = None
    all_day: bool = True
    category: CalendarCategory = CalendarCategory.logistics
    building_name: Optional[str] = None
    unit_id: Optional[uuid.UUID] = None
    is_visible_to_tenant: bool = False

    @model_validator(mode="after")
    def _end_not_before_start(self):
        if self.end_date and self.end_date < self.event_date:
            raise ValueError("end_date must not be before event_date")
        return self
