"""
Notification service: email dispatch for tenant and admin events.

Every send is logged in ``email_notification_logs`` (pending -> sent|failed).
Sends are best-effort: failures are recorded and returned, never raised.
"""

import asyncio
import logging
import uuid
from datetime import datetime, UTC
from inspect import isawaitable
from typing import Optional, List, Dict, Any

from sqlalchemy.orm import Session

from portal.db import models
from portal.utils.dates import ensure_utc, period_label
from portal.utils.runtime import portal_link

logger = logging.getLogger(__name__)

# Event type constants (stored on EmailNotificationLog.event_type)
EVENT_INVOICE_READY = 'invoice_ready'
EVENT_PAYMENT_RECEIVED = 'payment_received'
EVENT_ETRANSFER_APPROVED = 'etransfer_approved'
EVENT_ETRANSFER_REJECTED = 'etransfer_rejected'
EVENT_RENT_REMINDER = 'rent_reminder'
EVENT_INSURANCE_REJECTED = 'insurance_rejected'
EVENT_INSURANCE_REMINDER = 'insurance_reminder'
EVENT_SERVICE_REQUEST_CREATED = 'service_request_created'
EVENT_SERVICE_REQUEST_UPDATED = 'service_request_updated'
EVENT_SHOWING_REQUEST = 'showing_request'
EVENT_INVITATION = 'invitation'

# Template name constants (match file names under portal/templates/email)
TEMPLATE_INVOICE_READY = 'invoice_ready'
TEMPLATE_PAYMENT_RECEIVED = 'payment_received'
TEMPLATE_ETRANSFER_APPROVED = 'etransfer_approved'
TEMPLATE_ETRANSFER_REJECTED = 'etransfer_rejected'
TEMPLATE_RENT_REMINDER = 'rent_reminder'
TEMPLATE_INSURANCE_REJECTED = 'insurance_rejected'
TEMPLATE_INSURANCE_REMINDER = 'insurance_reminder'
TEMPLATE_SERVICE_REQUEST_CREATED = 'service_request_created'
TEMPLATE_SERVICE_REQUEST_UPDATED = 'service_request_updated'
TEMPLATE_SHOWING_REQUEST = 'showing_request'
TEMPLATE_INVITATION = 'invitation'


def format_cents(amount_cents: Optional[int]) -> str:
    return f"${(amount_cents or 0) / 100:,.2f}"


def _run(result):
    # Provider send_email is a coroutine; sync callers run it on a private loop
    if isawaitable(result):
        return asyncio.run(result)
    return result


class NotificationService:
    """Service class for handling all notification operations."""

    def __init__(self, db: Session, email_service: Optional[Any] = None):
        self.db = db
        # Import the factory lazily so tests patching
        # portal.services.transactional_email_service.get_transactional_email_service take effect.
        if email_service is not None:
            self.email_service = email_service
        else:
            from portal.services import transactional_email_service
            self.email_service = transactional_email_service.get_transactional_email_service()

    # === Email log bookkeeping ===

    def create_email_notification_log(
        self,
        user_id: Optional[uuid.UUID],
        email_address: str,
        event_type: str,
        subject: str,
        metadata: Optional[Dict[str, Any]] = None,
        status: str = 'pending'
    ) -> models.EmailNotificationLog:
        email_log = models.EmailNotificationLog(
            user_id=user_id,
            email_address=email_address,
            event_type=event_type,
            subject=subject[:200],
            status=status,
            metadata_json=metadata,
        )
        self.db.add(email_log)
        self.db.commit()
        self.db.refresh(email_log)
        return email_log

    def update_email_status(
        self,
        email_log: models.EmailNotificationLog,
        status: str,
        provider_message_id: Optional[str] = None,
        error_message: Optional[str] = None
    ) -> None:
        email_log.status = status
        if provider_message_id:
            email_log.provider_message_id = provider_message_id
        if error_message:
            email_log.error_message = error_message
        if status == 'sent':
            email_log.sent_at = datetime.now(UTC)
        self.db.commit()

    async def send_email_notification(
        self,
        email_log: models.EmailNotificationLog,
        template_name: str,
        template_context: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Render a template and send it, recording the outcome on ``email_log``.

        Returns:
            Dict with 'success', 'email_log_id' and 'message_id' or 'error'
        """
        try:
            html_content, text_content = self.email_service.render_template(
                template_name,
                template_context
            )
            result = await self.email_service.send_email(
                to_email=email_log.email_address,
                subject=email_log.subject,
                html_content=html_content,
                text_content=text_content
            )
        except Exception as e:
            result = {'success': False, 'error': f"Failed to send email: {e}"}

        if result.get('success'):
            self.update_email_status(email_log, 'sent', provider_message_id=result.get('message_id'))
            return {
                'success': True,
                'email_log_id': email_log.id,
                'message_id': result.get('message_id')
            }
        error = result.get('error') or 'Unknown error'
        self.update_email_status(email_log, 'failed', error_message=error)
        logger.warning("Email %s to %s failed: %s", email_log.event_type, email_log.email_address, error)
        return {
            'success': False,
            'email_log_id': email_log.id,
            'error': error
        }

    def _deliver(
        self,
        *,
        user_id: Optional[uuid.UUID],
        email: Optional[str],
        event_type: str,
        subject: str,
        template_name: str,
        context: Dict[str, Any],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        if not email:
            return {'success': False, 'error': 'No email address'}
        try:
            email_log = self.create_email_notification_log(
                user_id=user_id,
                email_address=email,
                event_type=event_type,
                subject=subject,
                metadata=metadata,
            )
            context = {'portal_url': portal_link('/'), **context}
            return _run(self.send_email_notification(email_log, template_name, context))
        except Exception as e:
            logger.exception("Notification %s for %s could not be processed", event_type, email)
            self.db.rollback()
            return {'success': False, 'error': str(e)}

    def _notify_admins(self, *, event_type: str, subject: str, template_name: str, context: Dict[str, Any], metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        from portal.db.repositories import users as user_repo

        results: List[Dict[str, Any]] = []
        for admin in user_repo.list_admins(self.db):
            results.append(self._deliver(
                user_id=admin.id,
                email=admin.email,
                event_type=event_type,
                subject=subject,
                template_name=template_name,
                context={**context, 'recipient_name': admin.display_name or admin.email},
                metadata=metadata,
            ))
        return {
            'success': any(r.get('success') for r in results),
            'sent': sum(1 for r in results if r.get('success')),
            'recipients': len(results),
        }

    @staticmethod
    def _invoice_context(invoice: models.Invoice, tenant: models.User) -> Dict[str, Any]:
        unit = invoice.unit
        return {
            'tenant_name': tenant.display_name or tenant.email,
            'unit_label': unit.unit_label if unit else '',
            'building_name': unit.building_name if unit else None,
            'period_label': period_label(invoice.period_month),
            'period_month': invoice.period_month,
            'amount': format_cents(invoice.amount_cents),
            'due_date': ensure_utc(invoice.due_date).strftime('%B %d, %Y'),
            'invoice_url': portal_link(f'/tenant/invoices/{invoice.id}'),
        }

    # === Billing ===

    def notify_invoice_ready(self, invoice: models.Invoice, tenant: models.User) -> Dict[str, Any]:
        context = self._invoice_context(invoice, tenant)
        return self._deliver(
            user_id=tenant.id,
            email=tenant.email,
            event_type=EVENT_INVOICE_READY,
            subject=f"Your Rent Invoice for {context['period_label']} is Ready",
            template_name=TEMPLATE_INVOICE_READY,
            context=context,
            metadata={'invoice_id': str(invoice.id), 'period_month': invoice.period_month},
        )

    def notify_payment_received(self, invoice: models.Invoice, tenant: models.User, payment: models.Payment) -> Dict[str, Any]:
        context = self._invoice_context(invoice, tenant)
        context.update({
            'paid_amount': format_cents(payment.amount_cents),
            'paid_at': ensure_utc(payment.paid_at).strftime('%B %d, %Y'),
            'receipt_reference': payment.receipt_reference,
        })
        return self._deliver(
            user_id=tenant.id,
            email=tenant.email,
            event_type=EVENT_PAYMENT_RECEIVED,
            subject=f"Payment Received - {context['period_label']}",
            template_name=TEMPLATE_PAYMENT_RECEIVED,
            context=context,
            metadata={'invoice_id': str(invoice.id), 'payment_id': str(payment.id)},
        )

    def notify_etransfer_approved(self, invoice: models.Invoice, tenant: models.User) -> Dict[str, Any]:
        context = self._invoice_context(invoice, tenant)
        return self._deliver(
            user_id=tenant.id,
            email=tenant.email,
            event_type=EVENT_ETRANSFER_APPROVED,
            subject=f"e-Transfer Confirmed - {context['period_label']}",
            template_name=TEMPLATE_ETRANSFER_APPROVED,
            context=context,
            metadata={'invoice_id': str(invoice.id)},
        )

    def notify_etransfer_rejected(self, invoice: models.Invoice, tenant: models.User, reason: str) -> Dict[str, Any]:
        context = self._invoice_context(invoice, tenant)
        context['reason'] = reason
        return self._deliver(
            user_id=tenant.id,
            email=tenant.email,
            event_type=EVENT_ETRANSFER_REJECTED,
            subject=f"e-Transfer Not Received - {context['period_label']}",
            template_name=TEMPLATE_ETRANSFER_REJECTED,
            context=context,
            metadata={'invoice_id': str(invoice.id), 'reason': reason},
        )

    def notify_rent_reminder(self, invoice: models.Invoice, tenant: models.User, *, overdue: bool = False) -> Dict[str, Any]:
        context = self._invoice_context(invoice, tenant)
        context['overdue'] = overdue
        if overdue:
            subject = f"Payment Overdue - {context['period_label']} Rent"
        else:
            subject = f"Reminder: Rent Due {context['due_date']}"
        return self._deliver(
            user_id=tenant.id,
            email=tenant.email,
            event_type=EVENT_RENT_REMINDER,
            subject=subject,
            template_name=TEMPLATE_RENT_REMINDER,
            context=context,
            metadata={'invoice_id': str(invoice.id), 'overdue': overdue},
        )

    # === Insurance ===

    def notify_insurance_rejected(self, tenant: models.User, reason: str) -> Dict[str, Any]:
        return self._deliver(
            user_id=tenant.id,
            email=tenant.email,
            event_type=EVENT_INSURANCE_REJECTED,
            subject="Action Needed: Renter's Insurance Document",
            template_name=TEMPLATE_INSURANCE_REJECTED,
            context={
                'tenant_name': tenant.display_name or tenant.email,
                'reason': reason,
                'upload_url': portal_link('/tenant/insurance'),
            },
            metadata={'reason': reason},
        )

    def notify_insurance_reminder(self, tenant: models.User, status: str, expires_at: Optional[datetime] = None) -> Dict[str, Any]:
        expires = ensure_utc(expires_at)
        return self._deliver(
            user_id=tenant.id,
            email=tenant.email,
            event_type=EVENT_INSURANCE_REMINDER,
            subject="Reminder: Renter's Insurance Required",
            template_name=TEMPLATE_INSURANCE_REMINDER,
            context={
                'tenant_name': tenant.display_name or tenant.email,
                'status': status,
                'expires_at': expires.strftime('%B %d, %Y') if expires else None,
                'upload_url': portal_link('/tenant/insurance'),
            },
            metadata={'status': status},
        )

    # === Service requests ===

    def notify_service_request_created(self, request: models.ServiceRequest, tenant: models.User) -> Dict[str, Any]:
        unit = request.unit
        return self._notify_admins(
            event_type=EVENT_SERVICE_REQUEST_CREATED,
            subject=f"Maintenance Request Received - {request.title}",
            template_name=TEMPLATE_SERVICE_REQUEST_CREATED,
            context={
                'title': request.title,
                'description': request.description,
                'priority': request.priority,
                'category': request.category,
                'unit_label': unit.unit_label if unit else '',
                'tenant_name': tenant.display_name or tenant.email,
                'request_url': portal_link(f'/admin/service-requests/{request.id}'),
            },
            metadata={'service_request_id': str(request.id)},
        )

    def notify_service_request_updated(self, request: models.ServiceRequest, tenant: models.User, old_status: str) -> Dict[str, Any]:
        return self._deliver(
            user_id=tenant.id,
            email=tenant.email,
            event_type=EVENT_SERVICE_REQUEST_UPDATED,
            subject=f"Maintenance Update - {request.title}",
            template_name=TEMPLATE_SERVICE_REQUEST_UPDATED,
            context={
                'tenant_name': tenant.display_name or tenant.email,
                'title': request.title,
                'old_status': old_status,
                'new_status': request.status,
                'request_url': portal_link(f'/tenant/service-requests/{request.id}'),
            },
            metadata={'service_request_id': str(request.id), 'old_status': old_status, 'new_status': request.status},
        )

    # === Leasing ===

    def notify_showing_request(self, showing: models.ShowingRequest, unit_label: Optional[str] = None) -> Dict[str, Any]:
        preferred = ensure_utc(showing.preferred_date)
        return self._notify_admins(
            event_type=EVENT_SHOWING_REQUEST,
            subject=f"New Showing Request from {showing.name}",
            template_name=TEMPLATE_SHOWING_REQUEST,
            context={
                'name': showing.name,
                'email': showing.email,
                'phone': showing.phone,
                'message': showing.message,
                'unit_label': unit_label,
                'preferred_date': preferred.strftime('%B %d, %Y') if preferred else None,
            },
            metadata={'showing_request_id': str(showing.id)},
        )

    def notify_invitation(self, invitation: models.Invitation, unit_label: Optional[str] = None) -> Dict[str, Any]:
        return self._deliver(
            user_id=None,
            email=invitation.email,
            event_type=EVENT_INVITATION,
            subject="You're Invited to the Tenant Portal",
            template_name=TEMPLATE_INVITATION,
            context={
                'tenant_name': invitation.tenant_name or invitation.email,
                'unit_label': unit_label,
                'accept_url': portal_link(f'/invite/{invitation.token}'),
                'expires_at': ensure_utc(invitation.expires_at).strftime('%B %d, %Y'),
            },
            metadata={'invitation_id': str(invitation.id)},
        )
