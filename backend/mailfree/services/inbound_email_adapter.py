"""
Inbound email adapter service.

Normalizes provider-specific inbound webhook payloads into a single
provider-agnostic InboundEmail model.

Supported providers:
  - worker    (default) the Cloudflare email worker / Resend-style payload
  - postmark  Postmark inbound webhook

Adding a new provider:
  1. Write a normalize_<provider>(payload: dict) -> InboundEmail function.
  2. Register it in _NORMALIZERS.
  3. Set EMAIL_PROVIDER=<provider> in the environment.

Worker payload fields
---------------------
  to       str  - recipient, e.g. "box@mail.example.com" or "Box <box@...>"
  from     str  - sender, e.g. "Alice <alice@example.com>"
  subject  str  - subject line (may be missing)
  text     str  - plain-text body (may be missing)
  html     str  - HTML body (may be missing)

Every field is optional; InboundEmail coerces missing / null / non-string
values to strings and defaults the subject.
"""

from typing import Callable, Optional

from mailfree.config import get_email_provider
from mailfree.models.inbound_email import InboundEmail


# ---------------------------------------------------------------------------
# Worker normalizer
# ---------------------------------------------------------------------------

def normalize_worker(payload: dict) -> InboundEmail:
    """Convert a worker payload ({to, from, subject, text, html}) to InboundEmail."""
    return InboundEmail(
        sender_email=payload.get("from"),
        recipient_email=payload.get("to"),
        subject=payload.get("subject"),
        text=payload.get("text"),
        html=payload.get("html"),
    )


# ---------------------------------------------------------------------------
# Postmark normalizer
# ---------------------------------------------------------------------------

def normalize_postmark(payload: dict) -> InboundEmail:
    """
    Convert a Postmark inbound webhook payload to InboundEmail.

    Postmark uses PascalCase keys:
      From, To, Subject, TextBody, HtmlBody
    """
    return InboundEmail(
        sender_email=payload.get("From"),
        recipient_email=payload.get("To"),
        subject=payload.get("Subject"),
        text=payload.get("TextBody"),
        html=payload.get("HtmlBody"),
    )


# ---------------------------------------------------------------------------
# Registry and dispatcher
# ---------------------------------------------------------------------------

_NORMALIZERS: dict[str, Callable[[dict], InboundEmail]] = {
    "worker": normalize_worker,
    "postmark": normalize_postmark,
}


def normalize_webhook(payload: dict, provider: Optional[str] = None) -> InboundEmail:
    """
    Route to the correct normalizer based on the provider argument or the
    EMAIL_PROVIDER environment variable.

    Priority:
      1. provider argument (explicit, used in tests)
      2. EMAIL_PROVIDER env var
      3. Default: "worker"

    Raises ValueError for unknown provider names or a non-object payload.
    """
    if not isinstance(payload, dict):
        raise ValueError(f"Inbound payload must be a JSON object, got {type(payload).__name__}")

    resolved = (provider or get_email_provider()).lower().strip()

    normalizer = _NORMALIZERS.get(resolved)
    if normalizer is None:
        raise ValueError(
            f"Unknown email provider {resolved!r}. "
            f"Supported providers: {sorted(_NORMALIZERS)}"
        )

    return normalizer(payload)
