import uuid
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field


class PropertyOut(BaseModel):
    id: uuid.UUID
    name: str
    address: str
    city: Optional[str] = None
    province: Optional[str] = None
    postal_code: Optional[str] = None
    hero_image_url: Optional[str] = None
    headline: Optional[str] = None
    description: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class UnitBase(BaseModel):
    building_name: Optional[str] = None
    unit_label: str = Field(min_length=1, max_length=50)
    rent_amount_cents: Optional[int] = Field(default=None, ge=0)
    rent_due_day: int = Field(default=1, ge=1, le=31)
    bedrooms: Optional[int] = Field(default=None, ge=0)
    bathrooms: Optional[float] = Field(default=None, ge=0)
    sqft: Optional[int] = Field(default=None, ge=0)
    description: Optional[str] = None


class UnitCreate(UnitBase):
    property_id: Optional[uuid.UUID] = None


class UnitUpdate(BaseModel):
    building_name: Optional[str] = None
    unit_label: Optional[str] = Field(default=None, min_length=1, max_length=50)
    rent_amount_cents: Optional[int] = Field(default=None, ge=0)
    rent_due_day: Optional[int] = Field(default=None, ge=1, le=31)
    bedrooms: Optional[int] = Field(default=None, ge=0)
    bathrooms: Optional[float] = Field(default=None, ge=0)
    sqft: Optional[int] = Field(default=None, ge=0)
    description: Optional[str] = None


class Unit(UnitBase):
    id: uuid.UUID
    property_id: uuid.UUID
    status: str
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class UnitWithTenants(Unit):
    tenant_names: List[str] = []


class RentRollTenant(BaseModel):
    id: uuid.UUID
    name: Optional[str] = None
    email: str
    role_in_unit: str
    move_in_date: datetime


class RentRollRow(BaseModel):
    unit_id: uuid.UUID
    unit_label: str
    sqft: Optional[int] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[float] = None
    description: str
    status: str
    rent_amount_cents: Optional[int] = None
    tenants: List[RentRollTenant]
    primary_tenant_name: str
    move_in_date: Optional[datetime] = None


class RentRollSummary(BaseModel):
    total_units: int
    occupied_units: int
    vacant_units: int
    total_monthly_rent_cents: int
    occupancy_rate: int


class RentRoll(BaseModel):
    building_name: str
    period_month: str
    generated_at: datetime
    summary: RentRollSummary
    units: List[RentRollRow]


class PropertyLanding(BaseModel):
    property: Optional[PropertyOut] = None
    available_units: List[Unit] = []
