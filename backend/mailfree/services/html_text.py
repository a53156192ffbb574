"""
HTML-to-text reduction.

Used for the stored list preview and as the text source the verification
code extractor scans when a message only has an HTML body.
"""

import html as html_lib
import logging
import re
from typing import Optional

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 120

_WHITESPACE_RE = re.compile(r"\s+")
_TAG_RE = re.compile(r"<[^>]*>")

# Elements whose text is never shown to a reader
_INVISIBLE_TAGS = ["script", "style", "head", "title", "noscript", "template"]


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text or "").strip()


def strip_html(html: Optional[str]) -> str:
    """
    Reduce an HTML fragment to a single line of plain text.

    Tags are removed, entities resolved (``&amp; &lt; &gt; &quot; &#39;
    &nbsp;`` and the rest of the HTML5 set), whitespace runs collapsed to a
    single space and the result trimmed.

    Never raises: if BeautifulSoup chokes on the markup, a regex tag strip
    plus ``html.unescape`` is used instead.

    Idempotent on text free of tags and entities. Escaped markup is not:
    ``"a &lt;b&gt; c"`` reduces to ``"a <b> c"``, and reducing that again
    drops ``<b>`` as a tag. Same for double escapes (``&amp;amp;``).
    """
    if not html:
        return ""

    try:
        soup = BeautifulSoup(html, "html.parser")
        for tag in soup(_INVISIBLE_TAGS):
            tag.decompose()
        text = soup.get_text(" ")
    except Exception as e:
        logger.warning(f"HTML parse failed, falling back to regex strip: {e}")
        text = html_lib.unescape(_TAG_RE.sub(" ", html))

    return collapse_whitespace(text)


def make_preview(text: Optional[str], html: Optional[str], limit: int = PREVIEW_LENGTH) -> str:
    """
    Short single-line excerpt for list views.

    Prefers the plain-text body; falls back to the stripped HTML body.
    """
    base = collapse_whitespace(text or "") or strip_html(html)
    return base[:limit]
