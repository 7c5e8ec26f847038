import uuid
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID
from .base import Base, now_utc


class ShowingRequest(Base):
    __tablename__ = 'showing_requests'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    property_id = Column(UUID(as_uuid=True), ForeignKey('properties.id', ondelete='CASCADE'), nullable=True)
    unit_id = Column(UUID(as_uuid=True), ForeignKey('units.id', ondelete='SET NULL'), nullable=True)
    name = Column(String, nullable=False)
    email = Column(String(320), nullable=False)
    phone = Column(String, nullable=True)
    message = Column(Text, nullable=True)
    preferred_date = Column(DateTime(timezone=True), nullable=True)
    status = Column(String(20), nullable=False, default='NEW')  # NEW|CONTACTED|SCHEDULED|COMPLETED|CANCELLED
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    __table_args__ = (
        Index('ix_showing_requests_status_created_at', 'status', 'created_at'),
    )


class Invitation(Base):
    __tablename__ = 'invitations'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(Text, nullable=False)
    tenant_name = Column(String, nullable=True)
    unit_id = Column(UUID(as_uuid=True), ForeignKey('units.id', ondelete='SET NULL'), nullable=True)
    role = Column(String(20), nullable=False, default='TENANT')
    role_in_unit = Column(String(20), nullable=False, default='PRIMARY')
    token = Column(Text, nullable=False, unique=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    accepted_at = Column(DateTime(timezone=True), nullable=True)
    lease_start_date = Column(DateTime(timezone=True), nullable=True)
    created_by_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    __table_args__ = (
        Index('ix_invitations_email', 'email'),
    )
