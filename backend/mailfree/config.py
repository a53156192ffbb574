"""
Environment-driven settings.

Values are read at call time (not import time) so tests can flip them with
``patch.dict(os.environ, ...)``. A ``.env`` file in the working directory is
loaded once when this module is imported.

Environment variables
---------------------
INBOUND_WEBHOOK_SECRET  Shared secret the email worker sends in X-Webhook-Secret.
EMAIL_PROVIDER          Inbound payload format: "worker" (default) or "postmark".
MAILBOX_ONLY            "true" restricts reads to the last MAILBOX_ONLY_WINDOW_HOURS.
LOG_LEVEL               Root log level (default INFO).
CORS_ORIGINS            Extra comma-separated CORS origins.
"""

import os
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

MAILBOX_ONLY_WINDOW_HOURS = 24

_TRUTHY = {"1", "true", "yes", "on"}


def get_webhook_secret() -> str:
    return os.getenv("INBOUND_WEBHOOK_SECRET", "")


def get_email_provider() -> str:
    return os.getenv("EMAIL_PROVIDER", "worker")


def is_mailbox_only() -> bool:
    return os.getenv("MAILBOX_ONLY", "").strip().lower() in _TRUTHY


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()


def get_extra_cors_origins() -> List[str]:
    cors_env = os.getenv("CORS_ORIGINS", "").strip()
    if not cors_env:
        return []
    return [o.strip() for o in cors_env.split(",") if o.strip()]


def received_since() -> Optional[str]:
    """
    ISO timestamp lower bound for reads, or None when unrestricted.

    Only set when MAILBOX_ONLY is enabled.
    """
    if not is_mailbox_only():
        return None
    cutoff = datetime.now(timezone.utc) - timedelta(hours=MAILBOX_ONLY_WINDOW_HOURS)
    return cutoff.isoformat()
