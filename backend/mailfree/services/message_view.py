"""
Assembles read-path views of stored messages.

The presentation layer never re-parses raw content itself; it receives
MessageDetail objects built here.
"""

import re

from mailfree.models.message import MessageDetail
from mailfree.services.mime_parser import resolve_content
from mailfree.services.verification_code import ExtractionInput, extract_code

# Characters kept in download filenames: ASCII word chars, CJK, dot, dash
_FILENAME_UNSAFE_RE = re.compile(r"[^a-zA-Z0-9\u4e00-\u9fa5._-]")


def download_path(message_id: int) -> str:
    return f"/api/email/{message_id}/download"


def eml_download_filename(subject: str | None) -> str:
    """``"Hello world"`` -> ``"Hello_world.eml"``"""
    return _FILENAME_UNSAFE_RE.sub("_", f"{subject or 'email'}.eml")


def build_message_detail(row: dict) -> MessageDetail:
    """
    Build the detail view for a messages row.

    - content/html_content: parsed from eml_content, falling back to the raw
      blob and then to the stored preview.
    - verification_code: the stored value, or recomputed with the same
      heuristic used at ingestion when the stored value is empty.
    """
    raw = row.get("eml_content") or ""
    body = resolve_content(raw, row.get("preview"))

    code = row.get("verification_code") or extract_code(
        ExtractionInput(
            subject=row.get("subject") or "",
            text=body.text,
            html=body.html,
        )
    )

    return MessageDetail(
        **{
            **row,
            "verification_code": code or None,
            "content": body.text,
            "html_content": body.html,
            "download": download_path(row["id"]) if raw else "",
        }
    )
