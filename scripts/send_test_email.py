#!/usr/bin/env python3
"""
Dev helper: send a test inbound email to the local Mailfree backend.

Builds a webhook payload in the configured provider format (text body,
optional HTML body, optional verification code) and POSTs it to
/api/email/receive.

Usage
-----
# Basic - worker payload with a text + HTML body and a 6-digit code
python scripts/send_test_email.py

# Text-only message to a specific mailbox
python scripts/send_test_email.py --to box@mail.example.com --no-html

# Use Postmark payload format instead of the worker format
python scripts/send_test_email.py --provider postmark

# Print the payload without sending it
python scripts/send_test_email.py --dry-run

Environment / .env
------------------
INBOUND_WEBHOOK_SECRET   Shared webhook secret (required unless --dry-run).
EMAIL_PROVIDER           Payload format to use (default: worker).
                         Overridden by --provider flag.
"""

import argparse
import json
import os
import random
import sys
import textwrap
from pathlib import Path

import httpx
from dotenv import load_dotenv


# ---------------------------------------------------------------------------
# Payload builders
# ---------------------------------------------------------------------------

def _build_worker_payload(from_email: str, to_address: str, subject: str, text: str, html: str) -> dict:
    """Worker format: {from, to, subject, text, html}."""
    return {
        "from": from_email,
        "to": to_address,
        "subject": subject,
        "text": text,
        "html": html,
    }


def _build_postmark_payload(from_email: str, to_address: str, subject: str, text: str, html: str) -> dict:
    """Postmark format: {From, To, Subject, TextBody, HtmlBody}."""
    return {
        "From": from_email,
        "To": to_address,
        "Subject": subject,
        "TextBody": text,
        "HtmlBody": html,
    }


_PAYLOAD_BUILDERS = {
    "worker": _build_worker_payload,
    "postmark": _build_postmark_payload,
}


# ---------------------------------------------------------------------------
# Pretty printer
# ---------------------------------------------------------------------------

def _print_response(response: httpx.Response) -> None:
    status = response.status_code
    symbol = "OK" if status == 200 else "FAIL"
    print(f"\n[{symbol}] HTTP {status}")
    try:
        print(json.dumps(response.json(), indent=2, ensure_ascii=False))
    except ValueError:
        print(response.text)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main() -> int:
    # scripts/ lives one level below the project root
    project_root = Path(__file__).resolve().parent.parent
    load_dotenv(project_root / ".env")
    load_dotenv(project_root / "backend" / ".env")

    parser = argparse.ArgumentParser(
        prog="send_test_email.py",
        description=textwrap.dedent("""\
            Send a test inbound email to the Mailfree backend.

            Reads INBOUND_WEBHOOK_SECRET from the environment or a .env file
            in the project root.
        """),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--url", default="http://localhost:8000", help="Backend base URL")
    parser.add_argument(
        "--provider",
        default=os.getenv("EMAIL_PROVIDER", "worker"),
        choices=list(_PAYLOAD_BUILDERS),
        help="Webhook payload format to use (default: worker)",
    )
    parser.add_argument("--to", dest="to_address", default="test@mail.example.com")
    parser.add_argument("--from", dest="from_email", default="Acme Login <no-reply@acme.example>")
    parser.add_argument("--subject", default=None, help="Subject (default: contains the code)")
    parser.add_argument("--code", default=None, help="Verification code (default: random 6 digits)")
    parser.add_argument("--no-html", action="store_true", help="Send a text-only message")
    parser.add_argument("--secret", default=None, help="Override INBOUND_WEBHOOK_SECRET")
    parser.add_argument("--dry-run", action="store_true", help="Print the payload without sending it")

    args = parser.parse_args()

    secret = args.secret or os.getenv("INBOUND_WEBHOOK_SECRET", "")
    if not secret and not args.dry_run:
        print(
            "ERROR: No webhook secret found.\n"
            "Set INBOUND_WEBHOOK_SECRET in your environment or .env file, "
            "or pass --secret.",
            file=sys.stderr,
        )
        return 1

    code = args.code or f"{random.randint(0, 999999):06d}"
    subject = args.subject or f"Your Acme verification code is {code}"
    text = f"Hi,\n\nYour verification code is {code}.\nIt expires in 10 minutes.\n"
    html = "" if args.no_html else (
        f"<html><body><p>Hi,</p><p>Your verification code is <b>{code}</b>.</p>"
        f"<p style=\"color:#888\">It expires in 10 minutes.</p></body></html>"
    )

    payload = _PAYLOAD_BUILDERS[args.provider](
        from_email=args.from_email,
        to_address=args.to_address,
        subject=subject,
        text=text,
        html=html,
    )
    endpoint = f"{args.url.rstrip('/')}/api/email/receive"

    print(f"Provider : {args.provider}")
    print(f"Endpoint : {endpoint}")
    print(f"To       : {args.to_address}")
    print(f"Subject  : {subject}")

    if args.dry_run:
        print("\n[DRY RUN] Payload:")
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return 0

    try:
        response = httpx.post(
            endpoint,
            json=payload,
            headers={"X-Webhook-Secret": secret},
            timeout=30.0,
        )
    except httpx.HTTPError as e:
        print(f"\nERROR: Request failed: {e}", file=sys.stderr)
        return 1

    _print_response(response)
    return 0 if response.status_code == 200 else 1


if __name__ == "__main__":
    sys.exit(main())
