"""
Pydantic models for stored messages and the read API.

Models:
  MessageSummary  - list-view row (no raw content, no parsing)
  MessageDetail   - detail view: row fields plus parsed content/html_content
  ReceiveResponse - body returned to the email worker after ingestion
  DeleteResponse  - body returned by DELETE /api/email/{id}
  ClearResponse   - body returned by DELETE /api/emails
"""

from typing import Optional
from pydantic import BaseModel


class MessageSummary(BaseModel):
    """A messages row as shown in the mailbox list."""
    model_config = {"extra": "ignore"}

    id: int
    sender: Optional[str] = None
    subject: Optional[str] = None
    received_at: Optional[str] = None
    is_read: Optional[bool] = None
    preview: Optional[str] = None
    verification_code: Optional[str] = None


class MessageDetail(MessageSummary):
    """
    A single message with its bodies reconstructed from eml_content.

    content / html_content come from the parser (with the raw-blob and
    preview fallbacks applied); eml_content itself is passed through so the
    client can offer "view source". download is the EML download path, or
    "" when the row has no raw content.
    """
    to_addrs: Optional[str] = None
    eml_content: Optional[str] = None
    content: str = ""
    html_content: str = ""
    download: str = ""


class ReceiveResponse(BaseModel):
    success: bool = True


class DeleteResponse(BaseModel):
    success: bool = True
    deleted: bool
    message: str


class ClearResponse(BaseModel):
    success: bool = True
    deletedCount: int
