"""Progress protocol events and their ``data: <json>`` text framing."""

import json
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Union

from ..models import Application

FRAME_PREFIX = "data: "
FRAME_SEPARATOR = "\n\n"


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass
class ProgressEvent:
    """Progress update for one pipeline stage."""

    stage: str
    current: float
    total: float = 100

    @property
    def percentage(self) -> int:
        if not self.total:
            return 0
        return round_half_up(self.current / self.total * 100)

    is_terminal = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "progress",
            "stage": self.stage,
            "current": self.current,
            "total": self.total,
            "percentage": self.percentage,
        }


@dataclass
class CompleteEvent:
    """Terminal event for a successful run."""

    applications: List[Application] = field(default_factory=list)
    total_emails: int = 0

    is_terminal = True

    @property
    def processed(self) -> int:
        return len(self.applications)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "complete",
            "success": True,
            "processed": self.processed,
            "applications": [app.to_dict() for app in self.applications],
            "totalEmails": self.total_emails,
        }


@dataclass
class ErrorEvent:
    """Terminal event for a failed run."""

    message: str

    is_terminal = True

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "error", "message": self.message}


Event = Union[ProgressEvent, CompleteEvent, ErrorEvent]


def format_sse(event: Event) -> str:
    """Encode an event as a ``data: <json>`` frame."""
    return f"{FRAME_PREFIX}{json.dumps(event.to_dict())}{FRAME_SEPARATOR}"


def iter_sse_payloads(chunks: Iterable[str]) -> Iterator[Dict[str, Any]]:
    """Decode frame payloads from a stream of text chunks.

    Chunks may split frames at any point; incomplete trailing data is decoded
    once the stream ends.
    """
    buffer = ""
    for chunk in chunks:
        buffer += chunk
        while FRAME_SEPARATOR in buffer:
            frame, buffer = buffer.split(FRAME_SEPARATOR, 1)
            payload = _decode_frame(frame)
            if payload is not None:
                yield payload
    payload = _decode_frame(buffer)
    if payload is not None:
        yield payload


def _decode_frame(frame: str):
    data_lines = [
        line[len(FRAME_PREFIX) :] if line.startswith(FRAME_PREFIX) else line[len("data:") :]
        for line in frame.splitlines()
        if line.startswith("data:")
    ]
    if not data_lines:
        return None
    return json.loads("\n".join(data_lines))
