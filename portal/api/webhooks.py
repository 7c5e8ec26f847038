"""
Inbound payment notification webhook.

Email forwarders (Mailgun routes, Zapier, plain curl) post the Interac
notification here; the body may arrive as JSON, form data or plain text.
"""
import hmac
import json
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from portal.db.database import get_db
from portal.db import schemas
from portal.errors import PortalError
from portal.services.etransfer import WEBHOOK_PATH, resolve_webhook_secret
from portal.services.payment_parser import ParserConfig
from portal.services.payment_reconciliation import IntakePayload, process_payment_intake

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhooks"])

BODY_KEYS = ("body", "text", "html", "content", "body-plain", "stripped-text")
SENDER_KEYS = ("from", "sender")


def _provided_secret(request: Request) -> Optional[str]:
    secret = request.headers.get("x-webhook-secret")
    if secret:
        return secret
    auth = request.headers.get("authorization") or ""
    if auth.lower().startswith("bearer "):
        return auth[7:].strip()
    return None


def _first(data: Dict[str, Any], keys) -> Optional[str]:
    for key in keys:
        value = data.get(key)
        if value:
            return str(value)
    return None


async def _read_payload(request: Request) -> IntakePayload:
    content_type = (request.headers.get("content-type") or "").lower()
    source = request.headers.get("x-webhook-source") or request.headers.get("user-agent")

    if "application/json" in content_type:
        try:
            data = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            data = None
        if isinstance(data, dict):
            headers = data.get("headers") if isinstance(data.get("headers"), dict) else {}
            return IntakePayload(
                body=_first(data, BODY_KEYS),
                subject=data.get("subject"),
                sender=_first(data, SENDER_KEYS),
                headers=headers,
                webhook_source=source,
            )
        return IntakePayload(body=None, webhook_source=source)

    if "form" in content_type:
        form = await request.form()
        data = {key: value for key, value in form.items() if isinstance(value, str)}
        return IntakePayload(
            body=_first(data, BODY_KEYS),
            subject=data.get("subject"),
            sender=_first(data, SENDER_KEYS),
            webhook_source=source,
        )

    raw = await request.body()
    return IntakePayload(body=raw.decode("utf-8", errors="replace"), webhook_source=source)


def _check_secret(db: Session, provided: Optional[str]) -> None:
    expected, _source = resolve_webhook_secret(db)
    if not expected:
        logger.error("Payment webhook called but no secret is configured")
        raise PortalError(500, "NOT_CONFIGURED", "Webhook secret is not configured")
    if not provided or not hmac.compare_digest(provided.encode(), expected.encode()):
        logger.warning("Payment webhook rejected: invalid secret")
        raise PortalError(401, "UNAUTHORIZED", "Invalid webhook secret")


def _handle(db: Session, provided: Optional[str], payload: IntakePayload) -> schemas.IntakeWebhookResponse:
    _check_secret(db, provided)
    try:
        outcome = process_payment_intake(db, payload)
    except PortalError:
        raise
    except Exception:
        logger.exception("Payment intake processing failed")
        db.rollback()
        raise PortalError(500, "PROCESSING_ERROR", "Failed to process payment notification")
    return schemas.IntakeWebhookResponse(status=outcome.status, log_id=outcome.log.id)


@router.post(WEBHOOK_PATH, response_model=schemas.IntakeWebhookResponse)
async def receive_payment_notification(request: Request, db: Session = Depends(get_db)):
    provided = _provided_secret(request)
    payload = await _read_payload(request)
    # Parsing may call out to the LLM and sends email synchronously
    return await run_in_threadpool(_handle, db, provided, payload)


@router.get(WEBHOOK_PATH + "/status", response_model=schemas.IntakeWebhookStatus)
def webhook_status(db: Session = Depends(get_db)):
    secret, _source = resolve_webhook_secret(db)
    return schemas.IntakeWebhookStatus(
        configured=bool(secret),
        llm_parser_configured=ParserConfig().llm_available,
        webhook_path=WEBHOOK_PATH,
    )
