"""Fetch stage: lists the date window and retrieves message details."""

import logging
from datetime import datetime
from typing import Any, List

from ..batch_fetcher import BatchFetcher
from ..models import RawMessage
from .base import PipelineContext, PipelineStage, ProgressStream, RunStage, stage_progress
from .config import FetchConfig
from .events import ProgressEvent

logger = logging.getLogger(__name__)

LISTING_START = 5
# Listing progress stays below the detail stage's starting point.
LISTING_CAP = 15
LISTING_IDS_PER_STEP = 100


def listing_progress(found: int) -> float:
    return min(LISTING_CAP, LISTING_START + (found / LISTING_IDS_PER_STEP) * 10)


class FetchStage(PipelineStage):
    """Handles message listing and detail retrieval."""

    def __init__(self, config: FetchConfig, fetcher: BatchFetcher):
        """Initialize the fetch stage.

        Args:
            config: Fetch stage configuration.
            fetcher: Batch fetcher bound to the run's message source.
        """
        super().__init__()
        self.config = config
        self.fetcher = fetcher

    def execute(self, input_data: None, context: PipelineContext) -> ProgressStream:
        """List every message id in the window, then fetch the details."""
        start_time = datetime.now()

        context.stage = RunStage.LISTING
        yield ProgressEvent("Fetching emails", LISTING_START)

        message_ids: List[str] = []
        for ids, found in self.fetcher.iter_pages(context.window):
            message_ids.extend(ids)
            yield ProgressEvent(f"Fetching emails ({found} found)", listing_progress(found))

        context.total_emails = len(message_ids)
        context.add_metric("fetch_listed_count", len(message_ids))

        context.stage = RunStage.DETAIL
        yield ProgressEvent("Retrieving message details", stage_progress(RunStage.DETAIL, 0, 1))

        messages: List[RawMessage] = []
        failed = 0
        for group in self.fetcher.iter_detail_groups(message_ids):
            messages.extend(group.messages)
            failed += len(group.failed_ids)
            for message_id in group.failed_ids:
                context.add_error(f"Failed to fetch message {message_id}")
            yield ProgressEvent(
                f"Retrieving message details ({group.completed}/{group.total})",
                stage_progress(RunStage.DETAIL, group.completed, group.total),
            )

        elapsed = (datetime.now() - start_time).total_seconds()
        self.metrics["messages_listed"] = len(message_ids)
        self.metrics["messages_fetched"] = len(messages)
        self.metrics["fetch_failures"] = failed
        self.metrics["fetch_time"] = elapsed

        context.add_metric("fetch_retrieved_count", len(messages))
        context.add_metric("fetch_error_count", failed)

        logger.info(
            f"Fetched {len(messages)}/{len(message_ids)} messages in {elapsed:.2f} seconds "
            f"({failed} failed)"
        )
        return messages

    def validate_input(self, input_data: Any) -> bool:
        """Validate stage input."""
        # Fetch stage doesn't require input data
        return input_data is None
