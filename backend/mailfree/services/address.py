"""
Address normalization helpers.

Inbound payloads carry sender/recipient fields in whatever shape the
upstream worker produced: "Display Name <user@host>", a bare address, or
something that is not an address at all. Everything downstream (mailbox
resolution, the stored From/To headers) wants a bare address, so these
helpers pull one out and degrade to a passthrough when they can't.
"""

import re
from typing import Any

# Conservative ASCII local-part@domain; no whitespace or angle brackets.
_ADDRESS_RE = re.compile(
    r"[A-Za-z0-9.!#$%&'*+/=?^_`{|}~-]+@[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?"
    r"(?:\.[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?)*"
)


def extract_address(raw: Any) -> str:
    """
    Return the first bare email address found in ``raw``.

    Examples:
        "Alice <alice@example.com>" -> "alice@example.com"
        "  Bob@Example.com "        -> "Bob@Example.com"   (case preserved)
        "not-an-email"              -> "not-an-email"      (passthrough)
        None                        -> ""

    Never raises.
    """
    if raw is None:
        return ""
    value = raw if isinstance(raw, str) else str(raw)

    match = _ADDRESS_RE.search(value)
    if match:
        return match.group(0).strip()
    return value.strip()


def normalize_mailbox(raw: Any) -> str:
    """Canonical mailbox key: bare address, trimmed and lower-cased."""
    return extract_address(raw).strip().lower()
