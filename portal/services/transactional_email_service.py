"""
Transactional Email Service

Delivers tenant and admin notifications (invoices, receipts, reminders,
insurance and service-request updates) through a transactional email
provider, rendering Jinja2 templates from ``portal/templates/email``.

Supports:
- Resend (default)
- SendGrid
- Mailgun (HTTP API via requests)
"""

import os
import re
import logging
from typing import Optional, Dict, Any, List
from enum import Enum
from pathlib import Path

import requests
import resend
from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail, From, To, Subject, HtmlContent, PlainTextContent

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "email"


class EmailProvider(Enum):
    """Supported email service providers."""
    RESEND = "resend"
    SENDGRID = "sendgrid"
    MAILGUN = "mailgun"


class TransactionalEmailConfig:
    """Configuration for transactional email services."""

    def __init__(self):
        self.provider = EmailProvider(os.getenv('EMAIL_PROVIDER', 'resend').lower())

        self.from_email = os.getenv('FROM_EMAIL', 'rent@localhost')
        self.from_name = os.getenv('FROM_NAME', 'Tenant Portal')
        self.reply_to_email = os.getenv('REPLY_TO_EMAIL', '')

        self.resend_api_key = os.getenv('RESEND_API_KEY', '')
        self.sendgrid_api_key = os.getenv('SENDGRID_API_KEY', '')
        self.mailgun_api_key = os.getenv('MAILGUN_API_KEY', '')
        self.mailgun_domain = os.getenv('MAILGUN_DOMAIN', '')

        self.template_dir = os.getenv('EMAIL_TEMPLATE_DIR') or str(DEFAULT_TEMPLATE_DIR)

    def is_configured(self) -> bool:
        """Check if the selected provider is properly configured."""
        if self.provider == EmailProvider.RESEND:
            return bool(self.resend_api_key and self.from_email)
        elif self.provider == EmailProvider.SENDGRID:
            return bool(self.sendgrid_api_key and self.from_email)
        elif self.provider == EmailProvider.MAILGUN:
            return bool(self.mailgun_api_key and self.mailgun_domain and self.from_email)
        return False

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors."""
        errors = []

        if not self.from_email:
            errors.append("FROM_EMAIL is required")

        if self.provider == EmailProvider.RESEND:
            if not self.resend_api_key:
                errors.append("RESEND_API_KEY is required for Resend provider")
        elif self.provider == EmailProvider.SENDGRID:
            if not self.sendgrid_api_key:
                errors.append("SENDGRID_API_KEY is required for SendGrid provider")
        elif self.provider == EmailProvider.MAILGUN:
            if not self.mailgun_api_key:
                errors.append("MAILGUN_API_KEY is required for Mailgun provider")
            if not self.mailgun_domain:
                errors.append("MAILGUN_DOMAIN is required for Mailgun provider")

        return errors

    @property
    def sender(self) -> str:
        return f"{self.from_name} <{self.from_email}>"


class ResendEmailService:
    """Email service implementation for Resend."""

    def __init__(self, config: TransactionalEmailConfig):
        self.config = config
        resend.api_key = self.config.resend_api_key
        self.client = resend

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None
    ) -> Dict[str, Any]:
        try:
            email_data = {
                "from": self.config.sender,
                "to": [to_email],
                "subject": subject,
                "html": html_content,
            }
            if text_content:
                email_data["text"] = text_content
            if self.config.reply_to_email:
                email_data["reply_to"] = self.config.reply_to_email

            result = self.client.Emails.send(email_data)
            return {
                'success': True,
                'provider': 'resend',
                'message_id': result['id'],
            }
        except Exception as e:
            return {
                'success': False,
                'provider': 'resend',
                'error': str(e)
            }


class SendGridEmailService:
    """Email service implementation for SendGrid."""

    def __init__(self, config: TransactionalEmailConfig):
        self.config = config
        self.client = SendGridAPIClient(api_key=self.config.sendgrid_api_key)

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None
    ) -> Dict[str, Any]:
        try:
            mail = Mail(
                from_email=From(self.config.from_email, self.config.from_name),
                to_emails=To(to_email),
                subject=Subject(subject),
                html_content=HtmlContent(html_content),
            )
            if text_content:
                mail.plain_text_content = PlainTextContent(text_content)
            if self.config.reply_to_email:
                mail.reply_to = self.config.reply_to_email

            response = self.client.send(mail)
            return {
                'success': True,
                'provider': 'sendgrid',
                'message_id': response.headers.get('X-Message-Id', ''),
                'status_code': response.status_code,
            }
        except Exception as e:
            return {
                'success': False,
                'provider': 'sendgrid',
                'error': str(e)
            }


class MailgunEmailService:
    """Email service implementation for Mailgun."""

    def __init__(self, config: TransactionalEmailConfig):
        self.config = config
        self.base_url = f"https://api.mailgun.net/v3/{self.config.mailgun_domain}"

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None
    ) -> Dict[str, Any]:
        try:
            data = {
                "from": self.config.sender,
                "to": to_email,
                "subject": subject,
                "html": html_content,
            }
            if text_content:
                data["text"] = text_content
            if self.config.reply_to_email:
                data["h:Reply-To"] = self.config.reply_to_email

            response = requests.post(
                f"{self.base_url}/messages",
                auth=("api", self.config.mailgun_api_key),
                data=data,
                timeout=15,
            )
            if response.status_code == 200:
                result = response.json()
                return {
                    'success': True,
                    'provider': 'mailgun',
                    'message_id': result.get('id', ''),
                }
            return {
                'success': False,
                'provider': 'mailgun',
                'error': f"HTTP {response.status_code}: {response.text}"
            }
        except requests.RequestException as e:
            return {
                'success': False,
                'provider': 'mailgun',
                'error': str(e)
            }


_PROVIDERS = {
    EmailProvider.RESEND: ResendEmailService,
    EmailProvider.SENDGRID: SendGridEmailService,
    EmailProvider.MAILGUN: MailgunEmailService,
}


class TransactionalEmailService:
    """Main transactional email service that delegates to provider implementations."""

    def __init__(self, config: Optional[TransactionalEmailConfig] = None):
        self.config = config or TransactionalEmailConfig()
        self.provider_service = None
        self.template_env = None
        self._setup_provider()
        self._setup_templates()

    def _setup_provider(self):
        if not self.config.is_configured():
            logger.warning("Email service not configured; notifications will be logged as failed")
            return
        try:
            self.provider_service = _PROVIDERS[self.config.provider](self.config)
            logger.info("Initialized %s email service", self.config.provider.value)
        except Exception as e:
            logger.error(f"Failed to initialize email provider {self.config.provider}: {e}")

    def _setup_templates(self):
        template_path = Path(self.config.template_dir)
        if not template_path.exists():
            logger.warning(f"Email template directory not found: {template_path}")
        self.template_env = Environment(
            loader=FileSystemLoader(str(template_path)),
            autoescape=select_autoescape(["html"]),
        )

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
        **kwargs
    ) -> Dict[str, Any]:
        """
        Send an email via the configured transactional email service.

        Returns:
            Dict with 'success', 'provider', 'message_id', and 'error' keys
        """
        if not self.provider_service:
            return {
                'success': False,
                'error': 'Email service not configured or initialization failed'
            }

        try:
            logger.info(f"Sending email to {to_email} via {self.config.provider.value}")
            result = await self.provider_service.send_email(
                to_email=to_email,
                subject=subject,
                html_content=html_content,
                text_content=text_content
            )
            if result['success']:
                logger.info(f"Email sent successfully to {to_email} via {result['provider']}")
            else:
                logger.error(f"Email sending failed: {result['error']}")
            return result
        except Exception as e:
            error_msg = f"Email service error: {str(e)}"
            logger.error(error_msg, exc_info=True)
            return {
                'success': False,
                'error': error_msg
            }

    def render_template(self, template_name: str, context: Dict[str, Any]) -> tuple[str, str]:
        """
        Render email template with context.

        Returns:
            Tuple of (html_content, text_content)
        """
        html_content = self.template_env.get_template(f"{template_name}.html").render(**context)
        try:
            text_content = self.template_env.get_template(f"{template_name}.txt").render(**context)
        except TemplateNotFound:
            text_content = self._html_to_text(html_content)
        return html_content, text_content

    def _html_to_text(self, html_content: str) -> str:
        """Convert HTML to basic text content."""
        text = re.sub(r'<(br|/p|/h\d|/li|/tr)[^>]*>', '\n', html_content, flags=re.IGNORECASE)
        text = re.sub(r'<[^>]+>', '', text)
        text = text.replace('&amp;', '&').replace('&lt;', '<').replace('&gt;', '>')
        text = text.replace('&quot;', '"').replace('&#39;', "'")
        lines = [re.sub(r'[ \t]+', ' ', line).strip() for line in text.splitlines()]
        return "\n".join(line for line in lines if line)

    def test_connection(self) -> Dict[str, Any]:
        """Report whether the configured provider is usable."""
        validation_errors = self.config.validate()
        if validation_errors:
            return {
                'success': False,
                'error': f"Configuration errors: {', '.join(validation_errors)}"
            }
        if not self.provider_service:
            return {
                'success': False,
                'error': 'Email provider service not initialized'
            }
        return {
            'success': True,
            'provider': self.config.provider.value,
            'message': f"Email service configured and ready ({self.config.provider.value})"
        }


# Global email service instance
_email_service = None


def get_transactional_email_service() -> TransactionalEmailService:
    """Get singleton transactional email service instance."""
    global _email_service
    if _email_service is None:
        _email_service = TransactionalEmailService()
    return _email_service


def reset_transactional_email_service() -> None:
    """Drop the cached instance so the next call re-reads the environment."""
    global _email_service
    _email_service = None
