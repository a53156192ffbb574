"""
Message parser.

Reconstructs the plain-text and HTML bodies from a stored raw message,
whether it was produced by ``envelope.build_envelope`` or arrived verbatim
from another mail source.

The stdlib ``email`` package does the wire-level work: header/body split
(CRLF or bare LF), case-insensitive header lookup, boundary detection, and
base64 / quoted-printable transfer decoding. This module decides which
parts count as the text and HTML bodies and how their bytes become ``str``.

Part selection rule: the FIRST text/plain part and the FIRST text/html part
win. multipart/alternative lists the simplest representation first, so a
later duplicate of the same kind is ignored. Without a text/plain part the
first other text/* part (text/markdown, text/calendar, ...) is the text
body. A message that has body bytes never parses to two empty bodies: when
no part qualifies, the first leaf part (or the whole single-part body,
whatever its type) is decoded as text.

Charset handling is best-effort: the declared charset is used when Python
has a codec for it, anything else is decoded as UTF-8 with replacement
characters. Nothing in this module raises to the caller.
"""

import logging
import re
from dataclasses import dataclass
from email import policy
from email.message import Message
from email.parser import BytesParser
from typing import Optional, Union

logger = logging.getLogger(__name__)

DEFAULT_CHARSET = "utf-8"

_LINE_BREAK_RE = re.compile(r"\r\n|\r")


@dataclass(frozen=True)
class ParsedBody:
    """Decoded bodies of a raw message; either may be empty."""
    text: str = ""
    html: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.text and not self.html


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _to_bytes(raw: Union[str, bytes]) -> bytes:
    if isinstance(raw, bytes):
        return raw
    # surrogateescape round-trips text that was itself decoded that way
    return raw.encode("utf-8", errors="surrogateescape")


def _normalize_newlines(text: str) -> str:
    return _LINE_BREAK_RE.sub("\n", text)


def _decode_payload(part: Message) -> str:
    """
    Transfer-decode a leaf part and turn its bytes into text.

    base64 / quoted-printable are decoded by ``get_payload(decode=True)``;
    7bit, 8bit, binary and unknown encodings pass through unchanged.
    """
    payload = part.get_payload(decode=True)
    if not payload:
        return ""

    charset = part.get_content_charset() or DEFAULT_CHARSET
    try:
        text = payload.decode(charset, errors="replace")
    except LookupError:
        logger.debug(f"Unknown charset {charset!r}, decoding as {DEFAULT_CHARSET}")
        text = payload.decode(DEFAULT_CHARSET, errors="replace")
    return _normalize_newlines(text)


def _is_attachment(part: Message) -> bool:
    disposition = part.get("Content-Disposition", "")
    return str(disposition).strip().lower().startswith("attachment")


def _classify(part: Message) -> Optional[str]:
    """
    Return "text", "html", "other_text" (text/* that is neither plain nor
    html, e.g. text/markdown) or None for a leaf part.
    """
    content_type = part.get_content_type()
    if content_type == "text/plain":
        return "text"
    if content_type == "text/html":
        return "html"
    if part.get_content_maintype() == "text":
        return "other_text"
    return None


def _parse_multipart(message: Message) -> ParsedBody:
    text: Optional[str] = None
    html: Optional[str] = None
    other_text: Optional[Message] = None
    leaves: list[Message] = []

    for part in message.walk():
        if part.is_multipart():
            continue
        leaves.append(part)
        if _is_attachment(part):
            continue
        kind = _classify(part)
        if kind == "text" and text is None:
            text = _decode_payload(part)
        elif kind == "html" and html is None:
            html = _decode_payload(part)
        elif kind == "other_text" and other_text is None:
            other_text = part
        if text is not None and html is not None:
            break

    if text is None and other_text is not None:
        text = _decode_payload(other_text)
    if not text and not html:
        # No text body among the parts; surface the first leaf that has bytes
        for part in leaves:
            text = _decode_payload(part)
            if text:
                break

    return ParsedBody(text=text or "", html=html or "")


def _parse_single(message: Message) -> ParsedBody:
    # Any non-HTML body is text, including multipart/* whose boundary was
    # missing or never found (the parser leaves the whole body as one payload).
    body = _decode_payload(message)
    # The line break before EOF frames the body; it is not content.
    if body.endswith("\n"):
        body = body[:-1]

    if _classify(message) == "html":
        return ParsedBody(html=body)
    return ParsedBody(text=body)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse_message(raw: Union[str, bytes]) -> Message:
    """Parse ``raw`` into a stdlib message object (may carry defects)."""
    return BytesParser(policy=policy.default).parsebytes(_to_bytes(raw))


def parse_body(raw: Union[str, bytes, None]) -> ParsedBody:
    """
    Best-effort text/HTML extraction from a raw message.

    Returns ``ParsedBody("", "")`` for empty input and on any internal
    failure; callers apply their own fallback (see ``resolve_content``).
    """
    if not raw:
        return ParsedBody()

    try:
        message = parse_message(raw)
        if message.is_multipart():
            return _parse_multipart(message)
        return _parse_single(message)
    except Exception as e:
        logger.warning(f"Failed to parse raw message: {e}")
        return ParsedBody()


def resolve_content(raw: Optional[str], preview: Optional[str] = None) -> ParsedBody:
    """
    Parse ``raw`` and apply the read-path fallback chain.

    1. Parsed text/html bodies.
    2. The raw blob itself, as text, when nothing could be parsed.
    3. The stored preview, when there is no raw blob either.
    """
    parsed = parse_body(raw) if raw else ParsedBody()
    if not parsed.is_empty:
        return parsed
    if raw:
        return ParsedBody(text=raw)
    if preview:
        return ParsedBody(text=preview)
    return ParsedBody()
