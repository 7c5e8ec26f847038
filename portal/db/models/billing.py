import uuid
from sqlalchemy import Column, String, Integer, Text, DateTime, Boolean, ForeignKey, Index, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from .base import Base, now_utc


class Invoice(Base):
    __tablename__ = 'invoices'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    unit_id = Column(UUID(as_uuid=True), ForeignKey('units.id', ondelete='CASCADE'), nullable=False)
    tenancy_id = Column(UUID(as_uuid=True), ForeignKey('tenancies.id', ondelete='CASCADE'), nullable=False)
    period_month = Column(String(7), nullable=False)  # YYYY-MM
    due_date = Column(DateTime(timezone=True), nullable=False)
    amount_cents = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default='OPEN')  # OPEN|PAID|OVERDUE|VOID
    invoice_type = Column(String(20), nullable=False, default='RENT')  # RENT|CUSTOM
    description = Column(Text, nullable=True)
    payment_method = Column(String(30), nullable=True)
    etransfer_status = Column(String(20), nullable=True)  # pending|approved|rejected|PAID
    etransfer_marked_at = Column(DateTime(timezone=True), nullable=True)
    etransfer_marked_by_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=True)
    etransfer_reject_reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    unit = relationship("Unit", back_populates="invoices")
    tenancy = relationship("Tenancy")
    payments = relationship("Payment", back_populates="invoice", cascade="all, delete-orphan")

    __table_args__ = (
        # One RENT invoice per unit and period
        Index(
            'uq_invoices_unit_period_rent',
            'unit_id',
            'period_month',
            unique=True,
            postgresql_where=text("invoice_type = 'RENT'"),
            sqlite_where=text("invoice_type = 'RENT'"),
        ),
        Index('ix_invoices_status_due_date', 'status', 'due_date'),
        Index('ix_invoices_etransfer_status', 'etransfer_status'),
    )


class Payment(Base):
    __tablename__ = 'payments'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    invoice_id = Column(UUID(as_uuid=True), ForeignKey('invoices.id', ondelete='CASCADE'), nullable=False)
    unit_id = Column(UUID(as_uuid=True), ForeignKey('units.id', ondelete='CASCADE'), nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=False)
    amount_cents = Column(Integer, nullable=False)
    paid_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    method = Column(String(30), nullable=False, default='manual')  # manual|etransfer|etransfer_manual
    receipt_reference = Column(Text, nullable=True)
    approved_by_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    invoice = relationship("Invoice", back_populates="payments")

    __table_args__ = (
        Index('ix_payments_user_id_paid_at', 'user_id', 'paid_at'),
        Index('ix_payments_method', 'method'),
    )


class ReminderLog(Base):
    __tablename__ = 'reminder_logs'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    invoice_id = Column(UUID(as_uuid=True), ForeignKey('invoices.id', ondelete='CASCADE'), nullable=False)
    reminder_no = Column(Integer, nullable=False)
    sent_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    __table_args__ = (
        UniqueConstraint('invoice_id', 'reminder_no', name='uq_reminder_logs_invoice_reminder'),
    )


class PortalSettings(Base):
    __tablename__ = 'portal_settings'
    id = Column(String, primary_key=True, default='default')
    etransfer_enabled = Column(Boolean, nullable=False, default=True)
    etransfer_recipient_email = Column(String, nullable=True)
    etransfer_memo_template = Column(String, nullable=False, default='{UNIT_LABEL} {MONTH} Rent')
    webhook_secret = Column(Text, nullable=True)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)
