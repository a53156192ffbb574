"""
Emails read API.

List, read, download and delete stored messages. Detail endpoints re-parse
the stored raw message (eml_content) on every request; list endpoints only
return the cached preview and verification code.

When MAILBOX_ONLY is enabled every read is restricted to messages received
in the last 24 hours.

Endpoints:
  GET    /emails?mailbox=&limit=   - list a mailbox (max 50)
  GET    /emails/batch?ids=1,2,3   - detail for up to 50 messages
  DELETE /emails?mailbox=          - clear a mailbox
  GET    /email/{id}/download      - raw message as .eml
  GET    /email/{id}               - detail for one message (marks it read)
  DELETE /email/{id}               - delete one message
"""

import logging
from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import Response

from mailfree.config import MAILBOX_ONLY_WINDOW_HOURS, is_mailbox_only, received_since
from mailfree.models.message import (
    ClearResponse,
    DeleteResponse,
    MessageDetail,
    MessageSummary,
)
from mailfree.services import mail_store
from mailfree.services.message_view import build_message_detail, eml_download_filename

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_LIST_LIMIT = 20
MAX_LIST_LIMIT = 50
MAX_BATCH_IDS = 50


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _require_mailbox(mailbox: Optional[str]) -> str:
    if not mailbox or not mailbox.strip():
        raise HTTPException(status_code=400, detail="Missing mailbox parameter")
    return mailbox


def _parse_id_list(ids: str) -> list[int]:
    """'1, 2,x,-3' -> [1, 2]; only positive integers survive."""
    parsed: list[int] = []
    for chunk in ids.split(","):
        chunk = chunk.strip()
        if chunk.isascii() and chunk.isdigit() and int(chunk) > 0:
            parsed.append(int(chunk))
    return parsed


def _parse_message_id(email_id: str) -> int:
    if not (email_id.isascii() and email_id.isdigit()):
        raise HTTPException(status_code=400, detail="Invalid email id")
    return int(email_id)


def _not_found_detail() -> str:
    if is_mailbox_only():
        return (
            f"Email not found or older than the "
            f"{MAILBOX_ONLY_WINDOW_HOURS}-hour access window"
        )
    return "Email not found"


def _content_disposition(subject: Optional[str]) -> str:
    """
    attachment header with an ASCII fallback name plus the UTF-8 name
    (RFC 6266 / RFC 5987), since header values must be latin-1.
    """
    filename = eml_download_filename(subject)
    ascii_name = "".join(ch if ord(ch) < 128 else "_" for ch in filename)
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"


# ---------------------------------------------------------------------------
# Mailbox endpoints
# ---------------------------------------------------------------------------

@router.get("/emails", response_model=List[MessageSummary])
async def list_emails(
    mailbox: Optional[str] = Query(default=None),
    limit: int = Query(default=DEFAULT_LIST_LIMIT),
):
    """
    List the most recent messages of a mailbox.

    Unknown mailboxes return an empty list rather than 404 so the client can
    poll a freshly generated address before its first message arrives.
    """
    mailbox = _require_mailbox(mailbox)
    limit = max(1, min(limit, MAX_LIST_LIMIT))

    try:
        mailbox_id = mail_store.get_mailbox_id_by_address(mailbox)
        if mailbox_id is None:
            return []
        rows = mail_store.list_messages(mailbox_id, limit, since=received_since())
    except Exception as e:
        logger.error(f"Failed to list emails for {mailbox!r}: {e}")
        raise HTTPException(status_code=500, detail="Failed to list emails")

    return [MessageSummary(**row) for row in rows]


@router.get("/emails/batch", response_model=List[MessageDetail])
async def batch_emails(ids: str = Query(default="")):
    """Detail view for several messages at once (comma-separated ids)."""
    parsed_ids = _parse_id_list(ids)
    if not parsed_ids:
        return []
    if len(parsed_ids) > MAX_BATCH_IDS:
        raise HTTPException(
            status_code=400,
            detail=f"At most {MAX_BATCH_IDS} emails can be fetched per request",
        )

    try:
        rows = mail_store.get_messages_by_ids(parsed_ids, since=received_since())
    except Exception as e:
        logger.error(f"Batch email query failed: {e}")
        raise HTTPException(status_code=500, detail="Batch query failed")

    return [build_message_detail(row) for row in rows]


@router.delete("/emails", response_model=ClearResponse)
async def clear_mailbox(mailbox: Optional[str] = Query(default=None)):
    """Delete every message in a mailbox."""
    mailbox = _require_mailbox(mailbox)

    try:
        mailbox_id = mail_store.get_mailbox_id_by_address(mailbox)
        if mailbox_id is None:
            return ClearResponse(deletedCount=0)
        deleted_count = mail_store.delete_mailbox_messages(mailbox_id)
    except Exception as e:
        logger.error(f"Failed to clear mailbox {mailbox!r}: {e}")
        raise HTTPException(status_code=500, detail="Failed to clear emails")

    logger.info(f"Cleared {deleted_count} emails from mailbox {mailbox_id}")
    return ClearResponse(deletedCount=deleted_count)


# ---------------------------------------------------------------------------
# Single-message endpoints
# ---------------------------------------------------------------------------

@router.get("/email/{email_id}/download")
async def download_email(email_id: str):
    """Return the stored raw message as a message/rfc822 attachment."""
    message_id = _parse_message_id(email_id)

    try:
        row = mail_store.get_message(message_id, since=received_since())
    except Exception as e:
        logger.error(f"Failed to load email {message_id} for download: {e}")
        raise HTTPException(status_code=500, detail="Failed to load email")

    if not row or not row.get("eml_content"):
        raise HTTPException(status_code=404, detail="Email content not found")

    return Response(
        content=row["eml_content"],
        media_type="message/rfc822",
        headers={"Content-Disposition": _content_disposition(row.get("subject"))},
    )


@router.get("/email/{email_id}", response_model=MessageDetail)
async def get_email(email_id: str):
    """Return one message with parsed bodies and mark it as read."""
    message_id = _parse_message_id(email_id)

    try:
        row = mail_store.get_message(message_id, since=received_since())
    except Exception as e:
        logger.error(f"Failed to load email {message_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to load email")

    if not row:
        raise HTTPException(status_code=404, detail=_not_found_detail())

    try:
        mail_store.mark_read(message_id)
    except Exception as e:
        # Reading still succeeds if the flag can't be written
        logger.warning(f"Failed to mark email {message_id} as read: {e}")

    return build_message_detail(row)


@router.delete("/email/{email_id}", response_model=DeleteResponse)
async def delete_email(email_id: str):
    """Delete one message."""
    message_id = _parse_message_id(email_id)

    try:
        deleted = mail_store.delete_message(message_id)
    except Exception as e:
        logger.error(f"Failed to delete email {message_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to delete email: {e}")

    return DeleteResponse(
        deleted=deleted,
        message="Email deleted" if deleted else "Email not found or already deleted",
    )
