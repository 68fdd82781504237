"""Streaming scan pipeline."""

from .base import ClassifiedEmail, PipelineContext, PipelineStage, RunStage
from .classify_stage import ClassifyStage
from .config import (
    ClassifyConfig,
    FetchConfig,
    MonitoringConfig,
    NormalizeConfig,
    OAuthConfig,
    PipelineConfig,
    StoreConfig,
)
from .events import CompleteEvent, ErrorEvent, ProgressEvent, format_sse, iter_sse_payloads
from .fetch_stage import FetchStage
from .filter_stage import FilterStage
from .orchestrator import EmailPipeline

__all__ = [
    # Base classes
    "ClassifiedEmail",
    "PipelineContext",
    "PipelineStage",
    "RunStage",
    # Configuration
    "OAuthConfig",
    "FetchConfig",
    "NormalizeConfig",
    "ClassifyConfig",
    "StoreConfig",
    "MonitoringConfig",
    "PipelineConfig",
    # Events
    "ProgressEvent",
    "CompleteEvent",
    "ErrorEvent",
    "format_sse",
    "iter_sse_payloads",
    # Stages
    "FetchStage",
    "FilterStage",
    "ClassifyStage",
    # Orchestrator
    "EmailPipeline",
]
