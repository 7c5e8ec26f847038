import uuid
from sqlalchemy import Column, String, Integer, Text, DateTime, Boolean, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID
from .base import Base, now_utc


class ChecklistItem(Base):
    __tablename__ = 'checklist_items'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenancy_id = Column(UUID(as_uuid=True), ForeignKey('tenancies.id', ondelete='CASCADE'), nullable=False)
    checklist_type = Column(String(20), nullable=False, default='MOVE_IN')  # MOVE_IN|MOVE_OUT
    item_type = Column(String(50), nullable=False)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    is_required = Column(Boolean, nullable=False, default=True)
    is_completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    completed_by_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    __table_args__ = (
        Index('ix_checklist_items_tenancy_type_order', 'tenancy_id', 'checklist_type', 'sort_order'),
    )
