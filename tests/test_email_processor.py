"""Tests for EmailProcessor class."""

import base64
from datetime import datetime, timezone

import pytest

from job_tracker.email_processor import EmailProcessor
from job_tracker.models import MessagePart, RawMessage
from tests.fakes import BASE_INTERNAL_DATE, encode_body, make_raw_message


class TestEmailProcessor:
    """Test cases for EmailProcessor class."""

    def test_init_defaults_to_html(self):
        """Test that only HTML parts contribute text by default."""
        processor = EmailProcessor()

        assert processor.mime_types == ["text/html"]

    def test_init_lowercases_mime_types(self):
        """Test custom content types are normalized."""
        processor = EmailProcessor(["Text/HTML", "TEXT/PLAIN"])

        assert processor.mime_types == ["text/html", "text/plain"]

    def test_strip_html_entities_and_tags(self, email_processor):
        """Test that tags and non-breaking spaces collapse to single spaces."""
        result = email_processor.strip_html("<b>Hello</b>&nbsp;World")

        assert result == "Hello World"

    def test_strip_html_removes_scripts_and_styles(self, email_processor):
        """Test that script and style contents are dropped."""
        html = """
        <html>
            <head><style>body { color: red; }</style></head>
            <body>
                <script>alert('x');</script>
                <p>Visible   text</p>
            </body>
        </html>
        """

        result = email_processor.strip_html(html)

        assert result == "Visible text"

    def test_strip_html_plain_text(self, email_processor):
        """Test stripping text with no markup."""
        assert email_processor.strip_html("Just text") == "Just text"

    def test_collapse_whitespace(self):
        """Test that runs of whitespace become single spaces."""
        assert EmailProcessor.collapse_whitespace("  a \n\t b  ") == "a b"

    def test_decode_body_data_url_safe(self):
        """Test decoding unpadded url-safe base64."""
        assert EmailProcessor.decode_body_data(encode_body("Hello?>")) == "Hello?>"

    def test_decode_body_data_standard_alphabet(self):
        """Test decoding padded standard base64."""
        data = base64.b64encode("Hello?>".encode("utf-8")).decode("ascii")

        assert EmailProcessor.decode_body_data(data) == "Hello?>"

    def test_decode_body_data_invalid(self):
        """Test that invalid base64 raises ValueError."""
        with pytest.raises(ValueError):
            EmailProcessor.decode_body_data("a")

    def test_extract_body_depth_first(self, email_processor):
        """Test that nested HTML parts are joined in document order."""
        payload = MessagePart(
            mime_type="multipart/mixed",
            parts=(
                MessagePart(
                    mime_type="multipart/alternative",
                    parts=(
                        MessagePart(mime_type="text/plain", body_data=encode_body("ignored")),
                        MessagePart(mime_type="text/html", body_data=encode_body("<p>First</p>")),
                    ),
                ),
                MessagePart(mime_type="text/html", body_data=encode_body("<div>Second</div>")),
            ),
        )

        assert email_processor.extract_body(payload) == "First Second"

    def test_extract_body_with_plain_text_enabled(self):
        """Test that plain parts are used when configured."""
        processor = EmailProcessor(["text/plain", "text/html"])
        payload = MessagePart(
            mime_type="multipart/alternative",
            parts=(
                MessagePart(mime_type="text/plain", body_data=encode_body("Plain\n\nbody")),
                MessagePart(mime_type="text/html", body_data=encode_body("<p>Html body</p>")),
            ),
        )

        assert processor.extract_body(payload) == "Plain body Html body"

    def test_extract_body_skips_undecodable_part(self, email_processor):
        """Test that a bad part is skipped instead of failing the message."""
        payload = MessagePart(
            mime_type="multipart/alternative",
            parts=(
                MessagePart(mime_type="text/html", body_data="a"),
                MessagePart(mime_type="text/html", body_data=encode_body("<p>Good</p>")),
            ),
        )

        assert email_processor.extract_body(payload) == "Good"

    def test_extract_body_empty(self, email_processor):
        """Test empty and missing payloads."""
        assert email_processor.extract_body(None) == ""
        assert email_processor.extract_body(MessagePart()) == ""

    def test_extract_body_top_level_html(self, email_processor):
        """Test a single-part HTML message."""
        payload = MessagePart(mime_type="text/html", body_data=encode_body("<h1>Offer</h1>"))

        assert email_processor.extract_body(payload) == "Offer"

    def test_normalize(self, email_processor):
        """Test building the normalized view of a message."""
        message = make_raw_message(
            "msg1",
            sender="Acme <jobs@acme.io>",
            subject="Your application",
            html="<p>Thanks&nbsp;for applying</p>",
        )

        email = email_processor.normalize(message)

        assert email.id == "msg1"
        assert email.sender == "Acme <jobs@acme.io>"
        assert email.subject == "Your application"
        assert email.body_text == "Thanks for applying"
        assert email.date == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_normalize_missing_headers(self, email_processor):
        """Test that absent headers become empty strings."""
        message = RawMessage(id="msg1", internal_date=BASE_INTERNAL_DATE)

        email = email_processor.normalize(message)

        assert email.sender == ""
        assert email.subject == ""
        assert email.body_text == ""

    def test_classification_text_truncates_body(self, email_processor):
        """Test that classification text holds the subject and the first 1000 body characters."""
        message = make_raw_message("msg1", subject="Hi", html="<p>" + "x" * 1500 + "</p>")

        email = email_processor.normalize(message)

        assert email.classification_text == "Subject: Hi\n\n" + "x" * 1000
