"""Base classes and data models for the scan pipeline."""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Generator, List, Optional

from ..models import (
    ClassificationResult,
    DateWindow,
    ExtractionResult,
    NormalizedEmail,
    ProcessRequest,
)
from .events import ProgressEvent


class RunStage(Enum):
    """Pipeline run states, in the order a successful run passes through them."""

    CONNECTING = "connecting"
    LISTING = "listing"
    DETAIL = "detail"
    CLASSIFYING = "classifying"
    COMPLETE = "complete"
    ERROR = "error"


# Share of the overall 0-100 scale owned by each stage.
PROGRESS_RANGES = {
    RunStage.CONNECTING: (0, 0),
    RunStage.LISTING: (0, 20),
    RunStage.DETAIL: (20, 40),
    RunStage.CLASSIFYING: (40, 90),
    RunStage.COMPLETE: (100, 100),
}


def stage_progress(stage: RunStage, done: float, total: float) -> float:
    """Map ``done`` out of ``total`` items onto the stage's progress range."""
    low, high = PROGRESS_RANGES[stage]
    if total <= 0:
        return float(low)
    return low + (min(done, total) / total) * (high - low)


@dataclass
class ClassifiedEmail:
    """Email with its classification and extracted fields."""

    email: NormalizedEmail
    classification: ClassificationResult
    extraction: ExtractionResult


@dataclass
class PipelineContext:
    """Context passed through pipeline stages."""

    run_id: str
    start_time: datetime
    config: Any  # Will be PipelineConfig
    request: ProcessRequest
    window: Optional[DateWindow] = None
    stage: RunStage = RunStage.CONNECTING
    total_emails: int = 0
    metrics: Dict[str, Any] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)

    @classmethod
    def create(cls, config: Any, request: ProcessRequest) -> "PipelineContext":
        """Create a new pipeline context."""
        return cls(
            run_id=str(uuid.uuid4()),
            start_time=datetime.now(),
            config=config,
            request=request,
        )

    def add_metric(self, key: str, value: Any):
        """Add a metric to the context."""
        if key in self.metrics:
            if isinstance(self.metrics[key], list):
                self.metrics[key].append(value)
            elif isinstance(self.metrics[key], (int, float)):
                self.metrics[key] += value
            else:
                self.metrics[key] = [self.metrics[key], value]
        else:
            self.metrics[key] = value

    def add_error(self, error: str):
        """Record a recovered error."""
        self.errors.append(error)


ProgressStream = Generator[ProgressEvent, None, Any]


class PipelineStage(ABC):
    """Base interface for all pipeline stages.

    ``execute`` is a generator: it yields progress events while it works and
    returns the stage output, so callers drive it with ``yield from``.
    """

    def __init__(self):
        self.metrics = {}
        self.name = self.__class__.__name__

    @abstractmethod
    def execute(self, input_data: Any, context: PipelineContext) -> ProgressStream:
        """Execute the stage logic."""
        pass

    @abstractmethod
    def validate_input(self, input_data: Any) -> bool:
        """Validate stage input."""
        pass

    def get_metrics(self) -> Dict[str, Any]:
        """Return stage-specific metrics."""
        return self.metrics
