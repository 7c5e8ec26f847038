import uuid
from sqlalchemy import Column, String, Text, DateTime, Boolean, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from .base import Base, now_utc


class ServiceRequest(Base):
    __tablename__ = 'service_requests'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    unit_id = Column(UUID(as_uuid=True), ForeignKey('units.id', ondelete='CASCADE'), nullable=False)
    created_by_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=False)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String(50), nullable=True)
    priority = Column(String(20), nullable=False, default='NORMAL')  # LOW|NORMAL|HIGH|URGENT
    status = Column(String(20), nullable=False, default='OPEN')  # OPEN|IN_PROGRESS|RESOLVED|CLOSED
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    unit = relationship("Unit", back_populates="service_requests")
    created_by = relationship("User")
    comments = relationship(
        "ServiceRequestComment",
        back_populates="request",
        cascade="all, delete-orphan",
        order_by="ServiceRequestComment.created_at",
    )

    __table_args__ = (
        Index('ix_service_requests_unit_id_created_at', 'unit_id', 'created_at'),
        Index('ix_service_requests_status', 'status'),
    )


class ServiceRequestComment(Base):
    __tablename__ = 'service_request_comments'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    request_id = Column(UUID(as_uuid=True), ForeignKey('service_requests.id', ondelete='CASCADE'), nullable=False)
    author_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=False)
    body = Column(Text, nullable=False)
    is_internal = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    request = relationship("ServiceRequest", back_populates="comments")
    author = relationship("User")
