"""
Interac e-Transfer notification parsing and tenant/invoice matching.

Parsing tries the OpenAI chat-completions API when a key is configured and
falls back to regular expressions otherwise (or when the API call fails).
"""

import json
import logging
import os
import re
import uuid
from dataclasses import dataclass
from typing import Optional, List

import requests
from sqlalchemy.orm import Session

from portal.db import models
from portal.db.repositories import invoices as invoice_repo
from portal.db.repositories import users as user_repo
from portal.utils.feature_flags import llm_parser_enabled
from portal.utils.runtime import env_int

logger = logging.getLogger("portal.webhooks")

OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"

SYSTEM_PROMPT = """You are an expert at parsing Interac e-Transfer notification emails.
Extract the following information from the email:
1. Sender Name - the person who sent the money (not the bank)
2. Amount - the dollar amount sent, in cents (e.g. $2,700.00 = 270000)
3. Reference Number - the Interac reference/confirmation number

Return ONLY a JSON object with these exact keys:
{"senderName": string or null, "amountCents": number or null, "referenceNumber": string or null, "confidence": number between 0 and 1}

If you cannot find a field with high confidence, set it to null.
The confidence score reflects how certain you are about all fields combined."""

# Names match in any case; connecting words never count as part of a name.
_WORD = r"(?!(?:has|sent|you|from)\b)[A-Za-z][A-Za-z'\-]+"
_NAME = r"\b(" + _WORD + r"(?:[ \t]+" + _WORD + r"){1,3})"

SENDER_PATTERNS = [
    re.compile(r"from\s+" + _NAME, re.IGNORECASE),
    re.compile(_NAME + r"\s+sent\s+you", re.IGNORECASE),
    re.compile(_NAME + r"\s+has\s+sent", re.IGNORECASE),
    re.compile(r"sender:[ \t]*\b(" + _WORD + r"(?:[ \t]+" + _WORD + r"){0,3})", re.IGNORECASE),
]

AMOUNT_PATTERNS = [
    re.compile(r"\$\s*([\d,]+\.?\d*)"),
    re.compile(r"CAD\s*([\d,]+\.?\d*)", re.IGNORECASE),
    re.compile(r"([\d,]+\.?\d*)\s*CAD", re.IGNORECASE),
    re.compile(r"amount[:\s]+\$?\s*([\d,]+\.?\d*)", re.IGNORECASE),
]

REFERENCE_PATTERNS = [
    re.compile(r"(?:reference|confirmation|ref)(?:\s*(?:number|no\.?|#))?[:\s#]+([A-Za-z0-9]+)", re.IGNORECASE),
    re.compile(r"transfer\s+(?:id|number|#)[:\s]*([A-Za-z0-9]+)", re.IGNORECASE),
]
BARE_REFERENCE = re.compile(r"\b([A-Za-z0-9]{10,14})\b")


class ParserConfig:
    """Configuration for the optional LLM parsing pass."""

    def __init__(self):
        self.api_key = os.getenv("OPENAI_API_KEY", "")
        self.model = os.getenv("PAYMENT_PARSER_MODEL", "gpt-4o-mini")
        self.timeout = env_int("PAYMENT_PARSER_TIMEOUT", 15)

    @property
    def llm_available(self) -> bool:
        return bool(self.api_key) and llm_parser_enabled()


@dataclass
class ParsedPayment:
    sender_name: Optional[str]
    amount_cents: Optional[int]
    reference_number: Optional[str]
    confidence: float
    method: str = "regex"  # llm|regex
    error: Optional[str] = None


@dataclass
class TenantMatch:
    user: models.User
    score: float
    unit_label: Optional[str] = None
    building_name: Optional[str] = None

    @property
    def user_id(self) -> uuid.UUID:
        return self.user.id


def _parse_amount(raw: str) -> Optional[int]:
    cleaned = raw.replace(",", "")
    if not cleaned or cleaned == ".":
        return None
    try:
        return int(round(float(cleaned) * 100))
    except ValueError:
        return None


def regex_parse(subject: str, body: str) -> ParsedPayment:
    """Extract sender, amount and reference with regular expressions."""
    text = f"{subject or ''}\n{body or ''}"

    sender_name = None
    for pattern in SENDER_PATTERNS:
        match = pattern.search(text)
        if match:
            sender_name = match.group(1).strip()
            break

    amount_cents = None
    for pattern in AMOUNT_PATTERNS:
        match = pattern.search(text)
        if match:
            amount_cents = _parse_amount(match.group(1))
            if amount_cents is not None:
                break

    reference = None
    for pattern in (*REFERENCE_PATTERNS, BARE_REFERENCE):
        for match in pattern.finditer(text):
            token = match.group(1).strip()
            # Interac references always carry digits; skips words like "Number"
            if any(ch.isdigit() for ch in token):
                reference = token
                break
        if reference:
            break

    found = sum(1 for value in (sender_name, amount_cents, reference) if value)
    return ParsedPayment(
        sender_name=sender_name,
        amount_cents=amount_cents,
        reference_number=reference,
        confidence=found / 3,
        method="regex",
    )


def llm_parse(subject: str, body: str, config: ParserConfig, sender: Optional[str] = None) -> ParsedPayment:
    """Ask the chat-completions API for the fields; raises on any failure."""
    response = requests.post(
        OPENAI_CHAT_URL,
        headers={"Authorization": f"Bearer {config.api_key}", "Content-Type": "application/json"},
        json={
            "model": config.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": f"From: {sender or 'unknown'}\nSubject: {subject}\n\nBody:\n{body}"},
            ],
            "temperature": 0.1,
            "max_tokens": 200,
        },
        timeout=config.timeout,
    )
    response.raise_for_status()
    content = response.json()["choices"][0]["message"]["content"]
    match = re.search(r"\{.*\}", content or "", re.DOTALL)
    if not match:
        raise ValueError("Could not find JSON in model response")
    data = json.loads(match.group(0))

    amount = data.get("amountCents")
    confidence = data.get("confidence")
    return ParsedPayment(
        sender_name=data.get("senderName") or None,
        amount_cents=int(amount) if isinstance(amount, (int, float)) else None,
        reference_number=data.get("referenceNumber") or None,
        confidence=float(confidence) if isinstance(confidence, (int, float)) else 0.5,
        method="llm",
    )


def parse_payment_notification(subject: str, body: str, sender: Optional[str] = None, *, config: Optional[ParserConfig] = None) -> ParsedPayment:
    config = config or ParserConfig()
    if not config.llm_available:
        return regex_parse(subject, body)
    try:
        return llm_parse(subject, body, config, sender)
    except (requests.RequestException, ValueError, KeyError, IndexError, TypeError) as exc:
        logger.error("LLM payment parsing failed, falling back to regex: %s", exc)
        parsed = regex_parse(subject, body)
        parsed.error = str(exc)
        return parsed


def normalize_name(value: str) -> str:
    letters = re.sub(r"[^a-z\s]", "", (value or "").lower())
    return re.sub(r"\s+", " ", letters).strip()


def name_score(sender_name: str, tenant_name: str) -> float:
    sender = normalize_name(sender_name)
    tenant = normalize_name(tenant_name)
    if not sender or not tenant:
        return 0.0
    if sender == tenant:
        return 1.0
    score = 0.0
    for part in sender.split(" "):
        if part in tenant:
            score += 0.3
    for part in tenant.split(" "):
        if part in sender:
            score += 0.3
    return min(score, 0.9)


def match_tenant_by_name(db: Session, sender_name: Optional[str]) -> Optional[TenantMatch]:
    """Best-scoring active tenant for ``sender_name``; None unless the score exceeds 0.5."""
    if not sender_name:
        return None
    best: Optional[TenantMatch] = None
    for tenant in user_repo.list_active_tenants(db):
        if not tenant.display_name:
            continue
        score = name_score(sender_name, tenant.display_name)
        if score > 0.5 and (best is None or score > best.score):
            best = TenantMatch(user=tenant, score=score)
    if best is not None:
        tenancy = user_repo.get_active_tenancy(db, best.user.id)
        if tenancy is not None and tenancy.unit is not None:
            best.unit_label = tenancy.unit.unit_label
            best.building_name = tenancy.unit.building_name
    return best


def _tenant_unit_ids(db: Session, user_id: uuid.UUID) -> List[uuid.UUID]:
    return [t.unit_id for t in user_repo.list_active_tenancies(db, user_id=user_id)]


def find_oldest_pending_invoice(db: Session, user_id: uuid.UUID, amount_cents: int) -> Optional[models.Invoice]:
    """Earliest-due OPEN/OVERDUE invoice with exactly ``amount_cents`` on the tenant's units."""
    invoices = invoice_repo.list_unpaid_for_units(db, _tenant_unit_ids(db, user_id), amount_cents=amount_cents, limit=1)
    return invoices[0] if invoices else None


def find_pending_invoices_for_tenant(db: Session, user_id: uuid.UUID, limit: int = 5) -> List[models.Invoice]:
    return invoice_repo.list_unpaid_for_units(db, _tenant_unit_ids(db, user_id), limit=limit)
