"""Filter stage: normalizes message bodies and drops excluded senders."""

import logging
from typing import Any, List

from ..email_processor import EmailProcessor
from ..exclusion import is_excluded
from ..models import NormalizedEmail, RawMessage
from .base import PipelineContext, PipelineStage, ProgressStream, RunStage, stage_progress
from .events import ProgressEvent

logger = logging.getLogger(__name__)


class FilterStage(PipelineStage):
    """Turns retrieved messages into normalized emails from non-excluded senders."""

    def __init__(self, email_processor: EmailProcessor):
        super().__init__()
        self.email_processor = email_processor

    def execute(self, input_data: List[RawMessage], context: PipelineContext) -> ProgressStream:
        """Normalize messages, keeping source order."""
        excluded_rules = context.request.excluded_emails
        yield ProgressEvent(
            f"Preparing {len(input_data)} emails", stage_progress(RunStage.DETAIL, 1, 1)
        )

        emails: List[NormalizedEmail] = []
        excluded_count = 0
        for message in input_data:
            if is_excluded(message.header("from"), excluded_rules):
                excluded_count += 1
                logger.debug(f"Excluding message {message.id} from {message.header('from')}")
                continue
            emails.append(self.email_processor.normalize(message))

        self.metrics["emails_kept"] = len(emails)
        self.metrics["emails_excluded"] = excluded_count
        context.add_metric("filter_excluded_count", excluded_count)

        logger.info(f"Kept {len(emails)} emails ({excluded_count} excluded)")
        return emails

    def validate_input(self, input_data: Any) -> bool:
        """Validate stage input."""
        if not isinstance(input_data, list):
            return False
        return all(isinstance(item, RawMessage) for item in input_data)
