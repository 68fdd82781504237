"""Email body normalization utilities."""

import base64
import binascii
import logging
import re
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from bs4 import BeautifulSoup

from .models import MessagePart, NormalizedEmail, RawMessage

logger = logging.getLogger(__name__)

HTML_MIME_TYPE = "text/html"
PLAIN_MIME_TYPE = "text/plain"


class EmailProcessor:
    """Turns raw message part trees into plain, whitespace-collapsed text."""

    def __init__(self, mime_types: Optional[Iterable[str]] = None):
        """Initialize the processor.

        Args:
            mime_types: Content types whose parts contribute text. Defaults to HTML only.
        """
        self.mime_types = [m.lower() for m in (mime_types or [HTML_MIME_TYPE])]

    def strip_html(self, html_content: str) -> str:
        """Remove HTML tags, scripts and styles and extract text content."""
        soup = BeautifulSoup(html_content, "html.parser")
        for tag in soup(["script", "style"]):
            tag.decompose()
        text_content = soup.get_text(separator=" ", strip=True)
        return self.collapse_whitespace(text_content)

    @staticmethod
    def collapse_whitespace(text: str) -> str:
        return re.sub(r"\s+", " ", text).strip()

    @staticmethod
    def decode_body_data(data: str) -> str:
        """Decode base64 body data, accepting url-safe or standard alphabets.

        Raises:
            ValueError: If the data is not valid base64.
        """
        normalized = data.strip().replace("+", "-").replace("/", "_")
        normalized += "=" * (-len(normalized) % 4)
        try:
            raw = base64.urlsafe_b64decode(normalized)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"Invalid base64 body data: {e}") from e
        return raw.decode("utf-8", errors="ignore")

    def _accepts(self, mime_type: str) -> bool:
        mime_type = (mime_type or "").lower()
        return any(accepted in mime_type for accepted in self.mime_types)

    def _part_text(self, part: MessagePart) -> str:
        if not part.body_data or not self._accepts(part.mime_type):
            return ""
        try:
            decoded = self.decode_body_data(part.body_data)
        except ValueError as e:
            logger.debug(f"Skipping undecodable {part.mime_type} part: {e}")
            return ""
        if HTML_MIME_TYPE in part.mime_type.lower():
            return self.strip_html(decoded)
        return self.collapse_whitespace(decoded)

    def _collect(self, part: MessagePart, texts: List[str]):
        text = self._part_text(part)
        if text:
            texts.append(text)
        for child in part.parts:
            self._collect(child, texts)

    def extract_body(self, payload: Optional[MessagePart]) -> str:
        """Flatten a part tree into text, depth-first in document order."""
        if payload is None:
            return ""
        texts: List[str] = []
        self._collect(payload, texts)
        return " ".join(texts).strip()

    def normalize(self, message: RawMessage) -> NormalizedEmail:
        """Build the normalized view of a retrieved message."""
        return NormalizedEmail(
            id=message.id,
            sender=message.header("from"),
            subject=message.header("subject"),
            date=datetime.fromtimestamp(message.internal_date / 1000, tz=timezone.utc),
            body_text=self.extract_body(message.payload),
            snippet=message.snippet,
        )
