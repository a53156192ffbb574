"""
Provider-agnostic inbound email model.

Represents a message after provider-specific field names have been mapped
away by the adapter layer. Every field is coerced to ``str`` here, at the
boundary, so the decoding engine only ever sees well-typed input.
"""

from typing import Any

from pydantic import BaseModel, field_validator

# Placeholder stored when a message arrives without a subject
DEFAULT_SUBJECT = "(无主题)"


class InboundEmail(BaseModel):
    """
    Normalized inbound email, provider-agnostic.

    sender_email / recipient_email may still be in "Name <addr>" form; the
    ingestion path runs them through the address normalizer before use.
    """

    sender_email: str = ""
    recipient_email: str = ""
    subject: str = DEFAULT_SUBJECT
    text: str = ""
    html: str = ""

    @field_validator("sender_email", "recipient_email", "text", "html", mode="before")
    @classmethod
    def _coerce_to_str(cls, value: Any) -> str:
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)

    @field_validator("subject", mode="before")
    @classmethod
    def _default_subject(cls, value: Any) -> str:
        if value is None:
            return DEFAULT_SUBJECT
        subject = value if isinstance(value, str) else str(value)
        return subject or DEFAULT_SUBJECT
