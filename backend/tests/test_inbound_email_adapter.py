"""
Tests for the InboundEmail model and the provider adapters.

The adapters only map field names; coercion and defaults live on the
model, so both are covered here together.
"""

import os
from unittest.mock import patch

import pytest

from mailfree.models.inbound_email import DEFAULT_SUBJECT, InboundEmail
from mailfree.services.inbound_email_adapter import (
    normalize_postmark,
    normalize_webhook,
    normalize_worker,
)


# ---------------------------------------------------------------------------
# InboundEmail coercion
# ---------------------------------------------------------------------------

class TestInboundEmailModel:

    def test_defaults(self):
        email = InboundEmail()
        assert email.sender_email == ""
        assert email.recipient_email == ""
        assert email.subject == DEFAULT_SUBJECT
        assert email.text == ""
        assert email.html == ""

    def test_none_values_become_empty_strings(self):
        email = InboundEmail(sender_email=None, recipient_email=None, text=None, html=None)
        assert (email.sender_email, email.recipient_email, email.text, email.html) == ("", "", "", "")

    def test_non_string_values_are_coerced(self):
        email = InboundEmail(text=123456, html=True)
        assert email.text == "123456"
        assert email.html == "True"

    def test_empty_or_missing_subject_uses_placeholder(self):
        assert InboundEmail(subject="").subject == DEFAULT_SUBJECT
        assert InboundEmail(subject=None).subject == DEFAULT_SUBJECT

    def test_subject_kept_when_present(self):
        assert InboundEmail(subject="Hi").subject == "Hi"


# ---------------------------------------------------------------------------
# Provider normalizers
# ---------------------------------------------------------------------------

class TestNormalizeWorker:

    def test_maps_all_fields(self):
        email = normalize_worker(
            {
                "from": "Alice <alice@example.com>",
                "to": "box@mail.test",
                "subject": "Hello",
                "text": "Hi",
                "html": "<b>Hi</b>",
            }
        )
        assert email == InboundEmail(
            sender_email="Alice <alice@example.com>",
            recipient_email="box@mail.test",
            subject="Hello",
            text="Hi",
            html="<b>Hi</b>",
        )

    def test_empty_payload(self):
        assert normalize_worker({}) == InboundEmail()


class TestNormalizePostmark:

    def test_maps_pascal_case_fields(self):
        email = normalize_postmark(
            {
                "From": "alice@example.com",
                "To": "box@mail.test",
                "Subject": "Hello",
                "TextBody": "Hi",
                "HtmlBody": "<b>Hi</b>",
                "MessageID": "ignored",
            }
        )
        assert email.sender_email == "alice@example.com"
        assert email.recipient_email == "box@mail.test"
        assert email.text == "Hi"
        assert email.html == "<b>Hi</b>"


class TestNormalizeWebhook:

    def test_explicit_provider(self):
        email = normalize_webhook({"From": "a@b.test", "TextBody": "x"}, provider="postmark")
        assert email.sender_email == "a@b.test"
        assert email.text == "x"

    def test_provider_from_env(self):
        with patch.dict(os.environ, {"EMAIL_PROVIDER": "postmark"}):
            email = normalize_webhook({"Subject": "from env"})
        assert email.subject == "from env"

    def test_defaults_to_worker(self):
        env = {k: v for k, v in os.environ.items() if k != "EMAIL_PROVIDER"}
        with patch.dict(os.environ, env, clear=True):
            email = normalize_webhook({"subject": "worker"})
        assert email.subject == "worker"

    def test_provider_name_is_case_insensitive(self):
        email = normalize_webhook({"Subject": "x"}, provider="  PostMark ")
        assert email.subject == "x"

    def test_unknown_provider_raises(self):
        with pytest.raises(ValueError, match="Unknown email provider"):
            normalize_webhook({}, provider="smtp")

    def test_non_object_payload_raises(self):
        with pytest.raises(ValueError, match="JSON object"):
            normalize_webhook(["not", "a", "dict"], provider="worker")
