"""
Envelope builder.

Turns a normalized InboundEmail into the raw wire-format message that is
stored verbatim in ``messages.eml_content``. Output is:

  - single-part ``text/plain`` when no HTML is supplied, or
  - ``multipart/alternative`` (text/plain first, text/html second) when HTML
    is supplied.

CRLF is used for every line, body lines included, so the stored blob can be
downloaded as an .eml and opened by ordinary mail tooling.

The clock and the boundary source are parameters so tests can pin them.
"""

import re
import uuid
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Callable, Optional

from mailfree.models.inbound_email import DEFAULT_SUBJECT, InboundEmail
from mailfree.services.address import extract_address

CRLF = "\r\n"
BOUNDARY_PREFIX = "mf-"

_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")


def new_boundary() -> str:
    """Random boundary token, e.g. ``mf-3f2a...``."""
    return f"{BOUNDARY_PREFIX}{uuid.uuid4().hex}"


def _header_value(value: str) -> str:
    """Fold CR/LF out of a header value so it stays on one line."""
    return _LINE_BREAK_RE.sub(" ", value).strip()


def _body(value: str) -> str:
    """Normalize every line break in a body to CRLF."""
    return _LINE_BREAK_RE.sub(CRLF, value or "")


def _choose_boundary(factory: Callable[[], str], bodies: list[str]) -> str:
    """
    Pick a boundary that does not occur in any of ``bodies``.

    A colliding token is extended with a random suffix until it is unique,
    so the loop terminates even with a deterministic factory.
    """
    token = factory()
    while any(token in body for body in bodies):
        token = f"{token}-{uuid.uuid4().hex[:8]}"
    return token


def build_envelope(
    email: InboundEmail,
    *,
    now: Optional[datetime] = None,
    boundary_factory: Optional[Callable[[], str]] = None,
) -> str:
    """
    Assemble the raw message for ``email``.

    Args:
        email:            Typed inbound message (subject already defaulted).
        now:              Timestamp for the Date header (default: current UTC).
        boundary_factory: Callable producing a boundary token (default:
                          ``new_boundary``). Only used when HTML is present.

    Returns:
        The raw message string, CRLF-terminated.
    """
    sender = extract_address(email.sender_email)
    mailbox = extract_address(email.recipient_email)
    subject = _header_value(email.subject) or DEFAULT_SUBJECT
    timestamp = now or datetime.now(timezone.utc)
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)

    text = _body(email.text)
    html = _body(email.html)

    headers = [
        f"From: <{_header_value(sender)}>",
        f"To: <{_header_value(mailbox)}>",
        f"Subject: {subject}",
        f"Date: {format_datetime(timestamp.astimezone(timezone.utc), usegmt=True)}",
        "MIME-Version: 1.0",
    ]

    if html:
        boundary = _choose_boundary(boundary_factory or new_boundary, [text, html])
        lines = headers + [
            f'Content-Type: multipart/alternative; boundary="{boundary}"',
            "",
            f"--{boundary}",
            'Content-Type: text/plain; charset="utf-8"',
            "Content-Transfer-Encoding: 8bit",
            "",
            text,
            f"--{boundary}",
            'Content-Type: text/html; charset="utf-8"',
            "Content-Transfer-Encoding: 8bit",
            "",
            html,
            f"--{boundary}--",
            "",
        ]
    else:
        lines = headers + [
            'Content-Type: text/plain; charset="utf-8"',
            "Content-Transfer-Encoding: 8bit",
            "",
            text,
            "",
        ]

    return CRLF.join(lines)
