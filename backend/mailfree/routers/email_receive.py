"""
Inbound email router.

Receives messages posted by the email worker, turns them into a stored
raw message plus the cached list fields (preview, verification code).

Environment variables
---------------------
EMAIL_PROVIDER            Which normaliser to use (default: "worker").
INBOUND_WEBHOOK_SECRET    Shared secret checked in the X-Webhook-Secret header.

Endpoints:
  POST /receive   - worker webhook (auth: X-Webhook-Secret)
"""

import hmac
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException

from mailfree.config import get_webhook_secret
from mailfree.models.inbound_email import InboundEmail
from mailfree.models.message import ReceiveResponse
from mailfree.services import mail_store
from mailfree.services.address import extract_address
from mailfree.services.envelope import build_envelope
from mailfree.services.html_text import make_preview
from mailfree.services.inbound_email_adapter import normalize_webhook
from mailfree.services.verification_code import ExtractionInput, extract_code

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Webhook authentication dependency
# ---------------------------------------------------------------------------

def _verify_webhook_secret(
    x_webhook_secret: Optional[str] = Header(None),
) -> None:
    """
    Verify that the inbound request carries the configured shared secret.

    Raises 401 if the secret is missing, unconfigured, or does not match.
    """
    expected = get_webhook_secret()
    if not expected:
        logger.warning(
            "No webhook secret configured (INBOUND_WEBHOOK_SECRET) - "
            "all inbound requests will be rejected"
        )
        raise HTTPException(status_code=401, detail="Webhook secret not configured")

    if not x_webhook_secret or not hmac.compare_digest(x_webhook_secret, expected):
        raise HTTPException(status_code=401, detail="Invalid webhook secret")


# ---------------------------------------------------------------------------
# Processing
# ---------------------------------------------------------------------------

def _build_message_row(email: InboundEmail, mailbox_id: int, now: datetime) -> dict:
    """
    Build the messages row for a normalized inbound email.

    Steps:
    1. Normalize sender / recipient to bare addresses.
    2. Build the raw message (eml_content).
    3. Compute the list preview.
    4. Extract the verification code (empty -> NULL).
    """
    sender = extract_address(email.sender_email)
    eml = build_envelope(email, now=now)
    preview = make_preview(email.text, email.html)
    code = extract_code(
        ExtractionInput(subject=email.subject, text=email.text, html=email.html)
    )

    return {
        "mailbox_id": mailbox_id,
        "sender": sender,
        "to_addrs": email.recipient_email,
        "subject": email.subject,
        "verification_code": code or None,
        "preview": preview or None,
        "eml_content": eml or None,
        "received_at": now.isoformat(),
        "is_read": False,
    }


def _process_inbound_email(email: InboundEmail) -> dict:
    """Resolve the mailbox and store the message. Returns the inserted row."""
    mailbox = extract_address(email.recipient_email)
    mailbox_id = mail_store.get_or_create_mailbox_id(mailbox)

    row = _build_message_row(email, mailbox_id, datetime.now(timezone.utc))
    stored = mail_store.insert_message(row)
    logger.info(
        f"Stored message {stored.get('id')} for mailbox {mailbox_id} "
        f"(code={'yes' if row['verification_code'] else 'no'})"
    )
    return stored


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("/receive", response_model=ReceiveResponse)
async def receive_email(
    payload: dict,
    _: None = Depends(_verify_webhook_secret),
) -> ReceiveResponse:
    """
    Ingest one inbound email.

    Returns 400 when the payload cannot be normalized and 500 when the
    datastore write fails, so the worker can retry.
    """
    try:
        email = normalize_webhook(payload)
    except ValueError as exc:
        logger.error(f"Inbound payload normalization failed: {exc}")
        raise HTTPException(status_code=400, detail=str(exc))

    try:
        _process_inbound_email(email)
    except Exception as e:
        logger.error(f"Failed to process inbound email: {e}")
        raise HTTPException(status_code=500, detail="Failed to process email")

    return ReceiveResponse(success=True)
