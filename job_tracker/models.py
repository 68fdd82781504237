"""Data models shared across the job tracker pipeline."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Union

DEFAULT_JOB_LABELS = ["applied", "rejected", "interview", "next-phase", "offer"]
DEFAULT_CLASSIFICATION_THRESHOLD = 0.05

CLASSIFICATION_TEXT_CHARS = 1000
BODY_PREVIEW_CHARS = 200


@dataclass(frozen=True)
class MessagePart:
    """One node of a message's MIME part tree."""

    mime_type: str = ""
    body_data: Optional[str] = None
    parts: Tuple["MessagePart", ...] = ()

    @classmethod
    def from_api(cls, payload: Optional[Dict[str, Any]]) -> "MessagePart":
        """Build a part tree from a Gmail API ``payload`` dictionary."""
        if not payload:
            return cls()
        return cls(
            mime_type=payload.get("mimeType", "") or "",
            body_data=(payload.get("body") or {}).get("data"),
            parts=tuple(cls.from_api(p) for p in payload.get("parts", []) or []),
        )


@dataclass(frozen=True)
class RawMessage:
    """A fully retrieved message as returned by a message source."""

    id: str
    payload: MessagePart = field(default_factory=MessagePart)
    headers: Dict[str, str] = field(default_factory=dict)
    internal_date: int = 0
    snippet: str = ""

    @staticmethod
    def build_headers(header_list: List[Dict[str, str]]) -> Dict[str, str]:
        """Map lower-cased header names to values, keeping the first occurrence."""
        headers: Dict[str, str] = {}
        for header in header_list or []:
            name = (header.get("name") or "").lower()
            if name and name not in headers:
                headers[name] = header.get("value", "") or ""
        return headers

    @classmethod
    def from_api(cls, message: Dict[str, Any]) -> "RawMessage":
        """Build a RawMessage from a ``users.messages.get(format="full")`` resource."""
        payload = message.get("payload") or {}
        try:
            internal_date = int(message.get("internalDate") or 0)
        except (TypeError, ValueError):
            internal_date = 0
        return cls(
            id=message["id"],
            payload=MessagePart.from_api(payload),
            headers=cls.build_headers(payload.get("headers", [])),
            internal_date=internal_date,
            snippet=message.get("snippet", "") or "",
        )

    def header(self, name: str, default: str = "") -> str:
        return self.headers.get(name.lower(), default)


@dataclass
class NormalizedEmail:
    """Plain-text view of a message used for classification and extraction."""

    id: str
    sender: str
    subject: str
    date: datetime
    body_text: str
    snippet: str = ""

    @property
    def classification_text(self) -> str:
        return f"Subject: {self.subject}\n\n{self.body_text[:CLASSIFICATION_TEXT_CHARS]}"


@dataclass
class ClassificationResult:
    """Lifecycle label assigned to an email."""

    label: str
    score: float
    success: bool


@dataclass
class ExtractionResult:
    """Company and role derived from an email. Missing values degrade to Unknown."""

    company: str = "Unknown"
    role: str = "Unknown"
    success: bool = True


@dataclass
class Application:
    """A job application event surfaced to the caller."""

    id: str
    company: str
    role: str
    status: str
    email: str
    date: str
    subject: str
    body_preview: str
    label: str
    confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "company": self.company,
            "role": self.role,
            "status": self.status,
            "email": self.email,
            "date": self.date,
            "subject": self.subject,
            "bodyPreview": self.body_preview,
            "classification": {"label": self.label, "confidence": self.confidence},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Application":
        classification = data.get("classification") or {}
        return cls(
            id=data["id"],
            company=data.get("company", "Unknown"),
            role=data.get("role", "Unknown"),
            status=data.get("status", "other"),
            email=data.get("email", ""),
            date=data.get("date", ""),
            subject=data.get("subject", ""),
            body_preview=data.get("bodyPreview", ""),
            label=classification.get("label", "unknown"),
            confidence=float(classification.get("confidence", 0) or 0),
        )


@dataclass
class ProcessRequest:
    """Parameters of a single scan, as sent by the caller."""

    start_date: Any = None
    end_date: Any = None
    excluded_emails: List[str] = field(default_factory=list)
    classification_threshold: float = DEFAULT_CLASSIFICATION_THRESHOLD
    job_labels: List[str] = field(default_factory=lambda: list(DEFAULT_JOB_LABELS))

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        default_threshold: float = DEFAULT_CLASSIFICATION_THRESHOLD,
        default_labels: Optional[List[str]] = None,
    ) -> "ProcessRequest":
        """Build a request from the camelCase JSON body.

        Defaults apply only to absent or null fields; an explicit empty
        ``jobLabels`` list accepts nothing.

        Raises:
            ValueError: If the threshold is not a number.
            TypeError: If ``excludedEmails`` or ``jobLabels`` is not a list.
        """
        threshold = data.get("classificationThreshold")
        excluded = data.get("excludedEmails")
        labels = data.get("jobLabels")
        if labels is None:
            labels = default_labels if default_labels is not None else DEFAULT_JOB_LABELS
        return cls(
            start_date=data.get("startDate"),
            end_date=data.get("endDate"),
            excluded_emails=_string_list("excludedEmails", [] if excluded is None else excluded),
            classification_threshold=default_threshold if threshold is None else float(threshold),
            job_labels=_string_list("jobLabels", labels),
        )


def _string_list(name: str, value: Any) -> List[str]:
    if not isinstance(value, (list, tuple)):
        raise TypeError(f"{name} must be a list")
    return [str(item) for item in value]


@dataclass(frozen=True)
class DateWindow:
    """Half-open query window [start, end)."""

    start: datetime
    end: datetime

    @property
    def start_epoch(self) -> int:
        return int(self.start.timestamp())

    @property
    def end_epoch(self) -> int:
        return int(self.end.timestamp())


@dataclass
class AccessCredentials:
    """OAuth tokens for the mailbox, obtained outside the pipeline."""

    access_token: Optional[str] = None
    refresh_token: Optional[str] = None


def parse_instant(value: Union[str, int, float, datetime, None]) -> Optional[datetime]:
    """Parse a date value into an aware UTC datetime.

    Accepts ISO-8601 strings (with or without ``Z``), bare dates, epoch
    milliseconds and datetimes. Naive values are taken as UTC. Returns None
    when the value cannot be parsed.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        try:
            parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    else:
        text = str(value).strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_instant(value: datetime) -> str:
    """Format a datetime as ISO-8601 UTC with milliseconds, e.g. 2024-01-01T12:00:00.000Z."""
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
