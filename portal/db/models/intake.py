import uuid
from sqlalchemy import Column, String, Integer, Float, Text, DateTime, Boolean, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID, JSONB
from .base import Base, now_utc


class PaymentIntakeLog(Base):
    __tablename__ = 'payment_intake_logs'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    raw_subject = Column(Text, nullable=True)
    raw_body = Column(Text, nullable=True)
    raw_from = Column(Text, nullable=True)
    raw_headers = Column(JSONB, nullable=True)
    webhook_source = Column(String(50), nullable=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    # RECEIVED|PARSED|MATCHED|PAID|FAILED|MANUAL_REVIEW|DISMISSED
    status = Column(String(20), nullable=False, default='RECEIVED')

    sender_name = Column(String, nullable=True)
    amount_cents = Column(Integer, nullable=True)
    reference_number = Column(String(64), nullable=True)
    parse_confidence = Column(Float, nullable=True)
    parse_method = Column(String(10), nullable=True)  # llm|regex
    parse_error = Column(Text, nullable=True)
    parsed_at = Column(DateTime(timezone=True), nullable=True)

    matched_tenant_id = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    matched_invoice_id = Column(UUID(as_uuid=True), ForeignKey('invoices.id', ondelete='SET NULL'), nullable=True)
    reconciliation_note = Column(Text, nullable=True)
    received_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    reconciled_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index('ix_payment_intake_logs_status_received_at', 'status', 'received_at'),
        Index('ix_payment_intake_logs_reference_number', 'reference_number'),
    )
