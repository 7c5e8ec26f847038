import uuid
from sqlalchemy import Column, String, Integer, Float, Text, DateTime, Boolean, ForeignKey, Index, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from .base import Base, now_utc


class Property(Base):
    __tablename__ = 'properties'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    address = Column(String, nullable=False)
    city = Column(String, nullable=True)
    province = Column(String, nullable=True)
    postal_code = Column(String, nullable=True)
    hero_image_url = Column(Text, nullable=True)
    headline = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    contact_email = Column(String, nullable=True)
    contact_phone = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    units = relationship("Unit", back_populates="property")


class Unit(Base):
    __tablename__ = 'units'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    property_id = Column(UUID(as_uuid=True), ForeignKey('properties.id', ondelete='CASCADE'), nullable=False)
    building_name = Column(String, nullable=True)
    unit_label = Column(String, nullable=False)
    rent_amount_cents = Column(Integer, nullable=True)
    rent_due_day = Column(Integer, nullable=False, default=1)
    status = Column(String(20), nullable=False, default='VACANT')  # VACANT|OCCUPIED
    bedrooms = Column(Integer, nullable=True)
    bathrooms = Column(Float, nullable=True)
    sqft = Column(Integer, nullable=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    property = relationship("Property", back_populates="units")
    tenancies = relationship("Tenancy", back_populates="unit", cascade="all, delete-orphan")
    invoices = relationship("Invoice", back_populates="unit", cascade="all, delete-orphan")
    service_requests = relationship("ServiceRequest", back_populates="unit", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint('property_id', 'building_name', 'unit_label', name='uq_units_property_building_label'),
        Index('ix_units_building_name', 'building_name'),
        Index('ix_units_status', 'status'),
    )


class Tenancy(Base):
    __tablename__ = 'tenancies'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    unit_id = Column(UUID(as_uuid=True), ForeignKey('units.id', ondelete='CASCADE'), nullable=False)
    start_date = Column(DateTime(timezone=True), nullable=False, default=now_utc)
    end_date = Column(DateTime(timezone=True), nullable=True)
    move_out_date = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    role_in_unit = Column(String(20), nullable=False, default='PRIMARY')  # PRIMARY|OCCUPANT
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    user = relationship("User", back_populates="tenancies")
    unit = relationship("Unit", back_populates="tenancies")

    __table_args__ = (
        Index('ix_tenancies_user_id_is_active', 'user_id', 'is_active'),
        Index('ix_tenancies_unit_id_is_active', 'unit_id', 'is_active'),
    )
