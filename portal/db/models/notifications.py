import uuid
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID, JSONB
from .base import Base, now_utc


class EmailNotificationLog(Base):
    __tablename__ = 'email_notification_logs'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # Null for recipients without an account (showing requests, invitations)
    user_id = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='CASCADE'), nullable=True)
    email_address = Column(String(320), nullable=False)
    event_type = Column(String(50), nullable=False)
    subject = Column(String(200), nullable=False)
    status = Column(String(20), nullable=False, default='pending')  # pending|sent|failed
    provider_message_id = Column(String(255), nullable=True)
    error_message = Column(Text, nullable=True)
    metadata_json = Column('metadata', JSONB, nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    __table_args__ = (
        Index('idx_email_notification_logs_user_id_created_at', 'user_id', 'created_at'),
        Index('idx_email_notification_logs_status', 'status'),
        Index('idx_email_notification_logs_event_type', 'event_type'),
    )

    def get_metadata(self):
        return self.metadata_json

    def set_metadata(self, value):
        self.metadata_json = value
