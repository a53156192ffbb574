"""
Supabase-backed datastore for mailboxes and messages.

Tables
------
mailboxes  (id, address, created_at)
messages   (id, mailbox_id, sender, to_addrs, subject, verification_code,
            preview, eml_content, received_at, is_read)

Every helper raises ValueError when the admin client is not configured and
lets Supabase/PostgREST errors propagate to the router, which maps them to
HTTP responses.
"""

import logging
from typing import Optional

from mailfree.db import supabase_admin
from mailfree.services.address import normalize_mailbox

logger = logging.getLogger(__name__)

MESSAGES_TABLE = "messages"
MAILBOXES_TABLE = "mailboxes"

SUMMARY_COLUMNS = "id, sender, subject, received_at, is_read, preview, verification_code"
DETAIL_COLUMNS = (
    "id, sender, to_addrs, subject, verification_code, preview, "
    "eml_content, received_at, is_read"
)


def _admin():
    if not supabase_admin:
        raise ValueError("SUPABASE_SERVICE_KEY is required for datastore operations")
    return supabase_admin


# ---------------------------------------------------------------------------
# Mailbox identity
# ---------------------------------------------------------------------------

def get_mailbox_id_by_address(address: str) -> Optional[int]:
    """Return the id of the mailbox for ``address``, or None if unknown."""
    normalized = normalize_mailbox(address)
    if not normalized:
        return None
    result = (
        _admin().table(MAILBOXES_TABLE)
        .select("id")
        .eq("address", normalized)
        .limit(1)
        .execute()
    )
    if result.data:
        return result.data[0]["id"]
    return None


def get_or_create_mailbox_id(address: str) -> int:
    """
    Resolve ``address`` to a stable mailbox id, creating the mailbox on first use.

    A concurrent insert of the same address trips the unique constraint; in
    that case the row the other writer created is returned.
    """
    normalized = normalize_mailbox(address)
    if not normalized:
        raise ValueError("Mailbox address is empty")

    existing = get_mailbox_id_by_address(normalized)
    if existing is not None:
        return existing

    try:
        result = _admin().table(MAILBOXES_TABLE).insert({"address": normalized}).execute()
        if result.data:
            return result.data[0]["id"]
    except Exception as e:
        logger.info(f"Mailbox insert for {normalized!r} failed, re-reading: {e}")

    existing = get_mailbox_id_by_address(normalized)
    if existing is None:
        raise ValueError(f"Could not create mailbox {normalized!r}")
    return existing


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------

def insert_message(row: dict) -> dict:
    """Insert a messages row and return the stored row."""
    result = _admin().table(MESSAGES_TABLE).insert(row).execute()
    if not result.data:
        raise ValueError("messages insert returned no data")
    return result.data[0]


def list_messages(mailbox_id: int, limit: int, since: Optional[str] = None) -> list[dict]:
    """Most recent messages for a mailbox, summary columns only."""
    query = (
        _admin().table(MESSAGES_TABLE)
        .select(SUMMARY_COLUMNS)
        .eq("mailbox_id", mailbox_id)
    )
    if since:
        query = query.gte("received_at", since)
    result = query.order("received_at", desc=True).limit(limit).execute()
    return result.data or []


def get_messages_by_ids(ids: list[int], since: Optional[str] = None) -> list[dict]:
    if not ids:
        return []
    query = _admin().table(MESSAGES_TABLE).select(DETAIL_COLUMNS).in_("id", ids)
    if since:
        query = query.gte("received_at", since)
    result = query.execute()
    return result.data or []


def get_message(message_id: int, since: Optional[str] = None) -> Optional[dict]:
    query = _admin().table(MESSAGES_TABLE).select(DETAIL_COLUMNS).eq("id", message_id)
    if since:
        query = query.gte("received_at", since)
    result = query.execute()
    if result.data:
        return result.data[0]
    return None


def mark_read(message_id: int) -> None:
    _admin().table(MESSAGES_TABLE).update({"is_read": True}).eq("id", message_id).execute()


def delete_message(message_id: int) -> bool:
    """Delete one message. Returns True when a row was removed."""
    result = _admin().table(MESSAGES_TABLE).delete().eq("id", message_id).execute()
    return bool(result.data)


def delete_mailbox_messages(mailbox_id: int) -> int:
    """Delete every message in a mailbox. Returns the number of rows removed."""
    result = _admin().table(MESSAGES_TABLE).delete().eq("mailbox_id", mailbox_id).execute()
    return len(result.data or [])
