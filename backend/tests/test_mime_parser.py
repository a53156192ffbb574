"""
Unit tests for the message parser.

Covers messages produced by the envelope builder as well as hand-written
wire-format fixtures in the shapes external mail sources send: base64 and
quoted-printable parts, non-UTF-8 charsets, bare-LF line endings, and
malformed input that must never raise.
"""

import base64
from unittest.mock import patch

from mailfree.services.mime_parser import ParsedBody, parse_body, resolve_content


def _crlf(*lines: str) -> str:
    return "\r\n".join(lines)


# ---------------------------------------------------------------------------
# Single-part messages
# ---------------------------------------------------------------------------

class TestSinglePart:

    def test_plain_text(self):
        raw = _crlf("Subject: hi", "Content-Type: text/plain; charset=utf-8", "", "Hello world", "")
        assert parse_body(raw) == ParsedBody(text="Hello world", html="")

    def test_html_body_is_classified_as_html(self):
        raw = _crlf("Content-Type: text/html; charset=utf-8", "", "<p>Hi</p>", "")
        assert parse_body(raw) == ParsedBody(text="", html="<p>Hi</p>")

    def test_missing_content_type_defaults_to_text(self):
        raw = _crlf("Subject: no type", "", "just text", "")
        assert parse_body(raw).text == "just text"

    def test_header_names_are_case_insensitive(self):
        raw = _crlf("CONTENT-TYPE: TEXT/HTML", "", "<i>x</i>", "")
        assert parse_body(raw).html == "<i>x</i>"

    def test_bare_lf_line_endings(self):
        raw = "Content-Type: text/plain\n\nline one\nline two\n"
        assert parse_body(raw).text == "line one\nline two"

    def test_base64_body(self):
        encoded = base64.b64encode("验证码 123456".encode("utf-8")).decode()
        raw = _crlf(
            'Content-Type: text/plain; charset="utf-8"',
            "Content-Transfer-Encoding: base64",
            "",
            encoded,
            "",
        )
        assert parse_body(raw).text == "验证码 123456"

    def test_quoted_printable_body(self):
        raw = _crlf(
            "Content-Type: text/plain; charset=utf-8",
            "Content-Transfer-Encoding: quoted-printable",
            "",
            "caf=C3=A9 latte",
            "",
        )
        assert parse_body(raw).text == "café latte"

    def test_declared_non_utf8_charset(self):
        encoded = base64.b64encode("你好".encode("gbk")).decode()
        raw = _crlf(
            "Content-Type: text/plain; charset=gbk",
            "Content-Transfer-Encoding: base64",
            "",
            encoded,
            "",
        )
        assert parse_body(raw).text == "你好"

    def test_unknown_charset_falls_back_to_utf8(self):
        raw = _crlf("Content-Type: text/plain; charset=x-no-such-charset", "", "plain ascii", "")
        assert parse_body(raw).text == "plain ascii"

    def test_non_text_single_part_is_decoded_as_text(self):
        raw = _crlf("Content-Type: application/octet-stream", "", "binary-ish", "")
        assert parse_body(raw) == ParsedBody(text="binary-ish")

    def test_other_text_subtype_is_text(self):
        raw = "Content-Type: text/markdown; charset=utf-8\r\n\r\nYour code is 123456\r\n"
        assert parse_body(raw) == ParsedBody(text="Your code is 123456")

    def test_headers_only_has_no_body(self):
        assert parse_body(_crlf("Subject: nothing here", "", "")) == ParsedBody()

    def test_bytes_input(self):
        raw = "Content-Type: text/plain; charset=utf-8\r\n\r\nünïcode\r\n".encode("utf-8")
        assert parse_body(raw).text == "ünïcode"


# ---------------------------------------------------------------------------
# Multipart messages
# ---------------------------------------------------------------------------

class TestMultipart:

    def test_alternative_with_quoted_boundary(self):
        raw = _crlf(
            'Content-Type: multipart/alternative; boundary="b1"',
            "",
            "preamble is ignored",
            "--b1",
            "Content-Type: text/plain",
            "",
            "plain body",
            "--b1",
            "Content-Type: text/html",
            "",
            "<p>html body</p>",
            "--b1--",
            "epilogue is ignored",
        )
        assert parse_body(raw) == ParsedBody(text="plain body", html="<p>html body</p>")

    def test_bare_boundary_parameter(self):
        raw = _crlf(
            "Content-Type: multipart/alternative; boundary=abc123",
            "",
            "--abc123",
            "Content-Type: text/plain",
            "",
            "bare boundary",
            "--abc123--",
            "",
        )
        assert parse_body(raw).text == "bare boundary"

    def test_part_transfer_encodings_are_decoded(self):
        html_b64 = base64.b64encode("<p>Größe</p>".encode("utf-8")).decode()
        raw = _crlf(
            'Content-Type: multipart/alternative; boundary="enc"',
            "",
            "--enc",
            "Content-Type: text/plain; charset=utf-8",
            "Content-Transfer-Encoding: quoted-printable",
            "",
            "Gr=C3=B6=C3=9Fe",
            "--enc",
            "Content-Type: text/html; charset=utf-8",
            "Content-Transfer-Encoding: base64",
            "",
            html_b64,
            "--enc--",
            "",
        )
        assert parse_body(raw) == ParsedBody(text="Größe", html="<p>Größe</p>")

    def test_first_part_of_each_kind_wins(self):
        raw = _crlf(
            'Content-Type: multipart/alternative; boundary="dup"',
            "",
            "--dup",
            "Content-Type: text/plain",
            "",
            "first text",
            "--dup",
            "Content-Type: text/html",
            "",
            "<p>first html</p>",
            "--dup",
            "Content-Type: text/plain",
            "",
            "second text",
            "--dup",
            "Content-Type: text/html",
            "",
            "<p>second html</p>",
            "--dup--",
            "",
        )
        assert parse_body(raw) == ParsedBody(text="first text", html="<p>first html</p>")

    def test_nested_multipart_and_attachments(self):
        raw = _crlf(
            'Content-Type: multipart/mixed; boundary="outer"',
            "",
            "--outer",
            "Content-Type: text/plain",
            'Content-Disposition: attachment; filename="notes.txt"',
            "",
            "attached file, not the body",
            "--outer",
            'Content-Type: multipart/alternative; boundary="inner"',
            "",
            "--inner",
            "Content-Type: text/plain",
            "",
            "inner text",
            "--inner",
            "Content-Type: text/html",
            "",
            "<b>inner html</b>",
            "--inner--",
            "--outer--",
            "",
        )
        assert parse_body(raw) == ParsedBody(text="inner text", html="<b>inner html</b>")

    def test_multipart_without_boundary_keeps_body_as_text(self):
        raw = _crlf("Content-Type: multipart/alternative", "", "--x", "Content-Type: text/plain", "", "t", "--x--")
        parsed = parse_body(raw)
        assert parsed.html == ""
        assert parsed.text.startswith("--x\nContent-Type: text/plain")
        assert parsed.text.endswith("--x--")

    def test_other_text_part_used_when_no_plain_part(self):
        raw = _crlf(
            'Content-Type: multipart/mixed; boundary="cal"',
            "",
            "--cal",
            "Content-Type: text/calendar; charset=utf-8",
            "",
            "BEGIN:VCALENDAR",
            "--cal--",
            "",
        )
        assert parse_body(raw) == ParsedBody(text="BEGIN:VCALENDAR")

    def test_plain_part_preferred_over_other_text(self):
        raw = _crlf(
            'Content-Type: multipart/alternative; boundary="md"',
            "",
            "--md",
            "Content-Type: text/markdown",
            "",
            "**markdown**",
            "--md",
            "Content-Type: text/plain",
            "",
            "plain",
            "--md--",
            "",
        )
        assert parse_body(raw).text == "plain"

    def test_attachment_only_multipart_is_not_empty(self):
        raw = _crlf(
            'Content-Type: multipart/mixed; boundary="att"',
            "",
            "--att",
            "Content-Type: application/pdf",
            'Content-Disposition: attachment; filename="a.pdf"',
            "",
            "PDFDATA",
            "--att--",
            "",
        )
        assert parse_body(raw) == ParsedBody(text="PDFDATA")


# ---------------------------------------------------------------------------
# Malformed input
# ---------------------------------------------------------------------------

class TestNeverRaises:

    def test_empty_and_none(self):
        assert parse_body("") == ParsedBody()
        assert parse_body(None) == ParsedBody()

    def test_no_headers_at_all(self):
        assert parse_body("just some words").text == "just some words"

    def test_garbage_bytes(self):
        result = parse_body(b"\xff\xfe\x00\x01\x02garbage\r\n\r\n\x80\x81")
        assert isinstance(result, ParsedBody)

    def test_garbage_strings(self):
        samples = [
            ":::\r\n\r\n",
            "Content-Type: multipart/alternative; boundary=\"\"\r\n\r\n--\r\n--",
            "Content-Transfer-Encoding: base64\r\n\r\n!!!not base64!!!",
            "Content-Type: text/plain; charset=\"\r\n\r\nbody",
            "\x00" * 64,
        ]
        for raw in samples:
            assert isinstance(parse_body(raw), ParsedBody)

    def test_internal_failure_returns_empty(self):
        with patch("mailfree.services.mime_parser.parse_message", side_effect=RuntimeError("boom")):
            assert parse_body("Content-Type: text/plain\r\n\r\nhi") == ParsedBody()


# ---------------------------------------------------------------------------
# resolve_content fallback chain
# ---------------------------------------------------------------------------

class TestResolveContent:

    def test_parsed_content_wins(self):
        raw = _crlf("Content-Type: text/plain", "", "parsed", "")
        assert resolve_content(raw, preview="preview").text == "parsed"

    def test_raw_is_used_as_text_when_parsing_fails(self):
        raw = _crlf("Content-Type: text/plain", "", "opaque", "")
        with patch("mailfree.services.mime_parser.parse_message", side_effect=RuntimeError("boom")):
            assert resolve_content(raw, preview="preview") == ParsedBody(text=raw)

    def test_preview_used_when_no_raw(self):
        assert resolve_content(None, preview="stored preview") == ParsedBody(text="stored preview")

    def test_everything_empty(self):
        assert resolve_content("", preview=None) == ParsedBody()
