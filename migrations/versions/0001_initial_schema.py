"""initial tenant portal schema

Revision ID: 0001_initial
Revises:
Create Date: 2025-01-15 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

UUID = postgresql.UUID(as_uuid=True)
TS = sa.TIMESTAMP(timezone=True)


def _id():
    return sa.Column('id', UUID, primary_key=True, server_default=sa.text('gen_random_uuid()'))


def _created():
    return sa.Column('created_at', TS, server_default=sa.text('now()'), nullable=False)


def _updated():
    return sa.Column('updated_at', TS, server_default=sa.text('now()'), nullable=False)


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'users',
        _id(),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('display_name', sa.String(), nullable=True),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('role', sa.String(), nullable=False, server_default='TENANT'),
        sa.Column('status', sa.String(), nullable=False, server_default='ACTIVE'),
        _created(),
        _updated(),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'insurance_records',
        _id(),
        sa.Column('user_id', UUID, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='MISSING'),
        sa.Column('provider', sa.String(), nullable=True),
        sa.Column('expires_at', TS, nullable=True),
        sa.Column('verified_at', TS, nullable=True),
        sa.Column('verified_by_id', UUID, sa.ForeignKey('users.id'), nullable=True),
        sa.Column('document_path', sa.Text(), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('reminder_sent_at', TS, nullable=True),
        _created(),
        _updated(),
    )
    op.create_index('ix_insurance_records_status', 'insurance_records', ['status'])
    op.create_index('ix_insurance_records_expires_at', 'insurance_records', ['expires_at'])

    op.create_table(
        'properties',
        _id(),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('address', sa.String(), nullable=False),
        sa.Column('city', sa.String(), nullable=True),
        sa.Column('province', sa.String(), nullable=True),
        sa.Column('postal_code', sa.String(), nullable=True),
        sa.Column('hero_image_url', sa.Text(), nullable=True),
        sa.Column('headline', sa.String(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('contact_email', sa.String(), nullable=True),
        sa.Column('contact_phone', sa.String(), nullable=True),
        _created(),
        _updated(),
    )

    op.create_table(
        'units',
        _id(),
        sa.Column('property_id', UUID, sa.ForeignKey('properties.id', ondelete='CASCADE'), nullable=False),
        sa.Column('building_name', sa.String(), nullable=True),
        sa.Column('unit_label', sa.String(), nullable=False),
        sa.Column('rent_amount_cents', sa.Integer(), nullable=True),
        sa.Column('rent_due_day', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('status', sa.String(20), nullable=False, server_default='VACANT'),
        sa.Column('bedrooms', sa.Integer(), nullable=True),
        sa.Column('bathrooms', sa.Float(), nullable=True),
        sa.Column('sqft', sa.Integer(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        _created(),
        _updated(),
        sa.UniqueConstraint('property_id', 'building_name', 'unit_label', name='uq_units_property_building_label'),
    )
    op.create_index('ix_units_building_name', 'units', ['building_name'])
    op.create_index('ix_units_status', 'units', ['status'])

    op.create_table(
        'tenancies',
        _id(),
        sa.Column('user_id', UUID, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('unit_id', UUID, sa.ForeignKey('units.id', ondelete='CASCADE'), nullable=False),
        sa.Column('start_date', TS, server_default=sa.text('now()'), nullable=False),
        sa.Column('end_date', TS, nullable=True),
        sa.Column('move_out_date', TS, nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('role_in_unit', sa.String(20), nullable=False, server_default='PRIMARY'),
        _created(),
        _updated(),
    )
    op.create_index('ix_tenancies_user_id_is_active', 'tenancies', ['user_id', 'is_active'])
    op.create_index('ix_tenancies_unit_id_is_active', 'tenancies', ['unit_id', 'is_active'])

    op.create_table(
        'invoices',
        _id(),
        sa.Column('unit_id', UUID, sa.ForeignKey('units.id', ondelete='CASCADE'), nullable=False),
        sa.Column('tenancy_id', UUID, sa.ForeignKey('tenancies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('period_month', sa.String(7), nullable=False),
        sa.Column('due_date', TS, nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='OPEN'),
        sa.Column('invoice_type', sa.String(20), nullable=False, server_default='RENT'),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('payment_method', sa.String(30), nullable=True),
        sa.Column('etransfer_status', sa.String(20), nullable=True),
        sa.Column('etransfer_marked_at', TS, nullable=True),
        sa.Column('etransfer_marked_by_id', UUID, sa.ForeignKey('users.id'), nullable=True),
        sa.Column('etransfer_reject_reason', sa.Text(), nullable=True),
        _created(),
        _updated(),
    )
    op.create_index(
        'uq_invoices_unit_period_rent', 'invoices', ['unit_id', 'period_month'],
        unique=True, postgresql_where=sa.text("invoice_type = 'RENT'"),
    )
    op.create_index('ix_invoices_status_due_date', 'invoices', ['status', 'due_date'])
    op.create_index('ix_invoices_etransfer_status', 'invoices', ['etransfer_status'])

    op.create_table(
        'payments',
        _id(),
        sa.Column('invoice_id', UUID, sa.ForeignKey('invoices.id', ondelete='CASCADE'), nullable=False),
        sa.Column('unit_id', UUID, sa.ForeignKey('units.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', UUID, sa.ForeignKey('users.id'), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('paid_at', TS, server_default=sa.text('now()'), nullable=False),
        sa.Column('method', sa.String(30), nullable=False, server_default='manual'),
        sa.Column('receipt_reference', sa.Text(), nullable=True),
        sa.Column('approved_by_id', UUID, sa.ForeignKey('users.id'), nullable=True),
        _created(),
    )
    op.create_index('ix_payments_user_id_paid_at', 'payments', ['user_id', 'paid_at'])
    op.create_index('ix_payments_method', 'payments', ['method'])

    op.create_table(
        'reminder_logs',
        _id(),
        sa.Column('invoice_id', UUID, sa.ForeignKey('invoices.id', ondelete='CASCADE'), nullable=False),
        sa.Column('reminder_no', sa.Integer(), nullable=False),
        sa.Column('sent_at', TS, server_default=sa.text('now()'), nullable=False),
        sa.UniqueConstraint('invoice_id', 'reminder_no', name='uq_reminder_logs_invoice_reminder'),
    )

    op.create_table(
        'portal_settings',
        sa.Column('id', sa.String(), primary_key=True, server_default='default'),
        sa.Column('etransfer_enabled', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('etransfer_recipient_email', sa.String(), nullable=True),
        sa.Column('etransfer_memo_template', sa.String(), nullable=False, server_default='{UNIT_LABEL} {MONTH} Rent'),
        sa.Column('webhook_secret', sa.Text(), nullable=True),
        sa.Column('updated_at', TS, server_default=sa.text('now()'), nullable=True),
    )

    op.create_table(
        'payment_intake_logs',
        _id(),
        sa.Column('raw_subject', sa.Text(), nullable=True),
        sa.Column('raw_body', sa.Text(), nullable=True),
        sa.Column('raw_from', sa.Text(), nullable=True),
        sa.Column('raw_headers', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('webhook_source', sa.String(50), nullable=True),
        sa.Column('is_verified', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('status', sa.String(20), nullable=False, server_default='RECEIVED'),
        sa.Column('sender_name', sa.String(), nullable=True),
        sa.Column('amount_cents', sa.Integer(), nullable=True),
        sa.Column('reference_number', sa.String(64), nullable=True),
        sa.Column('parse_confidence', sa.Float(), nullable=True),
        sa.Column('parse_method', sa.String(10), nullable=True),
        sa.Column('parse_error', sa.Text(), nullable=True),
        sa.Column('parsed_at', TS, nullable=True),
        sa.Column('matched_tenant_id', UUID, sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('matched_invoice_id', UUID, sa.ForeignKey('invoices.id', ondelete='SET NULL'), nullable=True),
        sa.Column('reconciliation_note', sa.Text(), nullable=True),
        sa.Column('received_at', TS, server_default=sa.text('now()'), nullable=False),
        sa.Column('reconciled_at', TS, nullable=True),
    )
    op.create_index('ix_payment_intake_logs_status_received_at', 'payment_intake_logs', ['status', 'received_at'])
    op.create_index('ix_payment_intake_logs_reference_number', 'payment_intake_logs', ['reference_number'])

    op.create_table(
        'service_requests',
        _id(),
        sa.Column('unit_id', UUID, sa.ForeignKey('units.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_by_id', UUID, sa.ForeignKey('users.id'), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('category', sa.String(50), nullable=True),
        sa.Column('priority', sa.String(20), nullable=False, server_default='NORMAL'),
        sa.Column('status', sa.String(20), nullable=False, server_default='OPEN'),
        sa.Column('resolved_at', TS, nullable=True),
        _created(),
        _updated(),
    )
    op.create_index('ix_service_requests_unit_id_created_at', 'service_requests', ['unit_id', 'created_at'])
    op.create_index('ix_service_requests_status', 'service_requests', ['status'])

    op.create_table(
        'service_request_comments',
        _id(),
        sa.Column('request_id', UUID, sa.ForeignKey('service_requests.id', ondelete='CASCADE'), nullable=False),
        sa.Column('author_id', UUID, sa.ForeignKey('users.id'), nullable=False),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('is_internal', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        _created(),
    )

    op.create_table(
        'checklist_items',
        _id(),
        sa.Column('tenancy_id', UUID, sa.ForeignKey('tenancies.id', ondelete='CASCADE'), nullable=False),
        sa.Column('checklist_type', sa.String(20), nullable=False, server_default='MOVE_IN'),
        sa.Column('item_type', sa.String(50), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_required', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('is_completed', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('completed_at', TS, nullable=True),
        sa.Column('completed_by_id', UUID, sa.ForeignKey('users.id'), nullable=True),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        _created(),
        _updated(),
    )
    op.create_index('ix_checklist_items_tenancy_type_order', 'checklist_items', ['tenancy_id', 'checklist_type', 'sort_order'])

    op.create_table(
        'calendar_events',
        _id(),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('event_date', TS, nullable=False),
        sa.Column('end_date', TS, nullable=True),
        sa.Column('all_day', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('category', sa.String(20), nullable=False, server_default='logistics'),
        sa.Column('building_name', sa.String(), nullable=True),
        sa.Column('unit_id', UUID, sa.ForeignKey('units.id', ondelete='CASCADE'), nullable=True),
        sa.Column('is_visible_to_tenant', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('created_by_id', UUID, sa.ForeignKey('users.id'), nullable=False),
        _created(),
    )
    op.create_index('ix_calendar_events_event_date', 'calendar_events', ['event_date'])

    op.create_table(
        'showing_requests',
        _id(),
        sa.Column('property_id', UUID, sa.ForeignKey('properties.id', ondelete='CASCADE'), nullable=True),
        sa.Column('unit_id', UUID, sa.ForeignKey('units.id', ondelete='SET NULL'), nullable=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('email', sa.String(320), nullable=False),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('preferred_date', TS, nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='NEW'),
        _created(),
        _updated(),
    )
    op.create_index('ix_showing_requests_status_created_at', 'showing_requests', ['status', 'created_at'])

    op.create_table(
        'invitations',
        _id(),
        sa.Column('email', sa.Text(), nullable=False),
        sa.Column('tenant_name', sa.String(), nullable=True),
        sa.Column('unit_id', UUID, sa.ForeignKey('units.id', ondelete='SET NULL'), nullable=True),
        sa.Column('role', sa.String(20), nullable=False, server_default='TENANT'),
        sa.Column('role_in_unit', sa.String(20), nullable=False, server_default='PRIMARY'),
        sa.Column('token', sa.Text(), nullable=False, unique=True),
        sa.Column('expires_at', TS, nullable=False),
        sa.Column('accepted_at', TS, nullable=True),
        sa.Column('lease_start_date', TS, nullable=True),
        sa.Column('created_by_id', UUID, sa.ForeignKey('users.id'), nullable=True),
        _created(),
    )
    op.create_index('ix_invitations_email', 'invitations', ['email'])

    op.create_table(
        'email_notification_logs',
        _id(),
        sa.Column('user_id', UUID, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=True),
        sa.Column('email_address', sa.String(320), nullable=False),
        sa.Column('event_type', sa.String(50), nullable=False),
        sa.Column('subject', sa.String(200), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('provider_message_id', sa.String(255), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('metadata', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('sent_at', TS, nullable=True),
        _created(),
    )
    op.create_index('idx_email_notification_logs_user_id_created_at', 'email_notification_logs', ['user_id', 'created_at'])
    op.create_index('idx_email_notification_logs_status', 'email_notification_logs', ['status'])
    op.create_index('idx_email_notification_logs_event_type', 'email_notification_logs', ['event_type'])

    op.create_table(
        'audit_logs',
        _id(),
        sa.Column('actor_user_id', UUID, sa.ForeignKey('users.id'), nullable=True),
        sa.Column('action_type', sa.Text(), nullable=False),
        sa.Column('target_type', sa.Text(), nullable=True),
        sa.Column('target_id', UUID, nullable=True),
        sa.Column('status', sa.Text(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('metadata', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        _created(),
    )
    op.create_index('ix_audit_logs_actor_user_id_created_at', 'audit_logs', ['actor_user_id', 'created_at'])
    op.create_index('ix_audit_logs_action_type', 'audit_logs', ['action_type'])
    op.create_index('ix_audit_logs_target', 'audit_logs', ['target_type', 'target_id'])


def downgrade() -> None:
    """Downgrade schema."""
    for table in (
        'audit_logs',
        'email_notification_logs',
        'invitations',
        'showing_requests',
        'calendar_events',
        'checklist_items',
        'service_request_comments',
        'service_requests',
        'payment_intake_logs',
        'portal_settings',
        'reminder_logs',
        'payments',
        'invoices',
        'tenancies',
        'units',
        'properties',
        'insurance_records',
        'users',
    ):
        op.drop_table(table)
