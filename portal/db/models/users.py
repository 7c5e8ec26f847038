import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, Text, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from .base import Base, now_utc


class User(Base):
    __tablename__ = 'users'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String, nullable=False, unique=True, index=True)
    display_name = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    role = Column(String, nullable=False, default='TENANT')  # TENANT|ADMIN
    status = Column(String, nullable=False, default='ACTIVE')  # ACTIVE|INACTIVE
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    insurance = relationship("InsuranceRecord", back_populates="user", uselist=False, foreign_keys="InsuranceRecord.user_id")
    tenancies = relationship("Tenancy", back_populates="user")


class InsuranceRecord(Base):
    __tablename__ = 'insurance_records'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True)
    # Stored status: MISSING|PENDING|APPROVED|REJECTED (EXPIRED is derived from expires_at)
    status = Column(String(20), nullable=False, default='MISSING')
    provider = Column(String, nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    verified_by_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=True)
    document_path = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    reminder_sent_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    user = relationship("User", back_populates="insurance", foreign_keys=[user_id])

    __table_args__ = (
        Index('ix_insurance_records_status', 'status'),
        Index('ix_insurance_records_expires_at', 'expires_at'),
    )
