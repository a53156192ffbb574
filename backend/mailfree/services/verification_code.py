"""
Verification-code (OTP) extraction.

Scans subject, text body and stripped HTML body for a short alphanumeric
code that a service sent to authenticate an action.

Rules are independent, pure functions evaluated in a fixed order; fields
are evaluated subject -> text -> html, and within a field the rules run in
priority order. The first match wins.

  1. trigger_then_code   "Your code is 384920", "验证码: 583920"
  2. code_then_trigger   "384920 is your verification code"
  3. bare_numeric_run    "384920" with no trigger word (restricted on subjects)

A candidate code is 4-8 ASCII letters/digits and must contain at least one
digit, so ordinary words next to a trigger ("verification code for Acme")
are never mistaken for codes.

The same heuristic runs at ingestion time (result persisted on the row) and
at display time (recomputed when the stored value is empty), so
recomputation is idempotent.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional

from mailfree.services.html_text import strip_html

logger = logging.getLogger(__name__)

MIN_CODE_LENGTH = 4
MAX_CODE_LENGTH = 8

# Characters allowed between a trigger word and the code that follows it
TRIGGER_WINDOW_AFTER = 30
# Characters allowed between a code and the trigger word that follows it
TRIGGER_WINDOW_BEFORE = 20
# A subject with more words than this is not "short" for the bare-number rule
SHORT_SUBJECT_WORDS = 6

_TRIGGER_WORDS = (
    r"verification",
    r"verify",
    r"passcode",
    r"one[-\s]?time\s+password",
    r"otp",
    r"pin",
    r"code",
    r"验证码",
    r"校验码",
    r"动态码",
    r"确认码",
    r"激活码",
    r"安全码",
)

_TRIGGER_RE = re.compile(
    r"(?<![A-Za-z])(?:" + "|".join(_TRIGGER_WORDS) + r")(?![A-Za-z])",
    re.IGNORECASE,
)

_CANDIDATE_RE = re.compile(
    rf"(?<![A-Za-z0-9])([A-Za-z0-9]{{{MIN_CODE_LENGTH},{MAX_CODE_LENGTH}}})(?![A-Za-z0-9])"
)

# A standalone digit run that is not glued to a date, phone number, decimal or time
_NUMERIC_RUN_RE = re.compile(
    rf"(?<![A-Za-z0-9\-/.:])(\d{{{MIN_CODE_LENGTH},{MAX_CODE_LENGTH}}})(?![A-Za-z0-9])(?![\-/.:]\d)"
)

_YEAR_RE = re.compile(r"^(?:19|20)\d{2}$")


@dataclass(frozen=True)
class ExtractionInput:
    """Read-only view of the fields the extractor scans."""
    subject: str = ""
    text: str = ""
    html: str = ""


@dataclass(frozen=True)
class CodeMatch:
    """A code found by a rule, with where and how it was found."""
    code: str
    field: str      # "subject" | "text" | "html"
    rule: str       # rule function name


# ---------------------------------------------------------------------------
# Candidate filters
# ---------------------------------------------------------------------------

def _is_candidate(token: str) -> bool:
    if not any(ch.isdigit() for ch in token):
        return False
    if _YEAR_RE.match(token):
        return False
    return True


def _first_candidate(segment: str) -> Optional[str]:
    for m in _CANDIDATE_RE.finditer(segment):
        if _is_candidate(m.group(1)):
            return m.group(1)
    return None


def _last_candidate(segment: str) -> Optional[str]:
    found = None
    for m in _CANDIDATE_RE.finditer(segment):
        if _is_candidate(m.group(1)):
            found = m.group(1)
    return found


def _same_line(segment: str) -> str:
    return segment.split("\n", 1)[0]


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

def trigger_then_code(value: str, field: str) -> Optional[str]:
    """Trigger word followed, on the same line and nearby, by a code."""
    for trigger in _TRIGGER_RE.finditer(value):
        window = _same_line(value[trigger.end():trigger.end() + TRIGGER_WINDOW_AFTER])
        code = _first_candidate(window)
        if code:
            return code
    return None


def code_then_trigger(value: str, field: str) -> Optional[str]:
    """Code followed, on the same line and nearby, by a trigger word."""
    for trigger in _TRIGGER_RE.finditer(value):
        start = max(0, trigger.start() - TRIGGER_WINDOW_BEFORE)
        window = value[start:trigger.start()].rsplit("\n", 1)[-1]
        code = _last_candidate(window)
        if code:
            return code
    return None


def bare_numeric_run(value: str, field: str) -> Optional[str]:
    """
    A standalone 4-8 digit run with no trigger word.

    On the subject line this is only trusted when the subject is short and
    the run is the only one in it.
    """
    runs = [m.group(1) for m in _NUMERIC_RUN_RE.finditer(value) if not _YEAR_RE.match(m.group(1))]
    if not runs:
        return None

    if field == "subject":
        if len(value.split()) > SHORT_SUBJECT_WORDS or len(runs) != 1:
            return None
    return runs[0]


Rule = Callable[[str, str], Optional[str]]

RULES: tuple[Rule, ...] = (
    trigger_then_code,
    code_then_trigger,
    bare_numeric_run,
)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def find_verification_code(
    data: ExtractionInput,
    rules: tuple[Rule, ...] = RULES,
) -> Optional[CodeMatch]:
    """
    Run the rules over subject, text and stripped HTML.

    Returns None when nothing matches. Unlike ``extract_code`` this does not
    swallow exceptions, so a failed search is distinguishable from an empty one.
    """
    fields = (
        ("subject", data.subject or ""),
        ("text", data.text or ""),
        ("html", strip_html(data.html) if data.html else ""),
    )
    for field, value in fields:
        if not value:
            continue
        for rule in rules:
            code = rule(value, field)
            if code:
                return CodeMatch(code=code, field=field, rule=rule.__name__)
    return None


def extract_code(data: ExtractionInput) -> str:
    """
    Verification code for display/storage, or "" when none is found.

    Internal errors are logged and reported as "not found".
    """
    try:
        match = find_verification_code(data)
    except Exception as e:
        logger.warning(f"Verification code extraction failed: {e}")
        return ""
    return match.code if match else ""
