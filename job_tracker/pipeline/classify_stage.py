"""Classify stage: labels each email and extracts company and role."""

import logging
from datetime import datetime
from typing import Any, List

from ..classifier import EmailClassifier
from ..extractor import JobInfoExtractor
from ..models import NormalizedEmail
from .base import (
    ClassifiedEmail,
    PipelineContext,
    PipelineStage,
    ProgressStream,
    RunStage,
    stage_progress,
)
from .events import ProgressEvent

logger = logging.getLogger(__name__)


class ClassifyStage(PipelineStage):
    """Handles email classification and field extraction."""

    def __init__(self, classifier: EmailClassifier, extractor: JobInfoExtractor):
        """Initialize the classify stage.

        Args:
            classifier: Rule-based lifecycle classifier.
            extractor: Company and role extractor.
        """
        super().__init__()
        self.classifier = classifier
        self.extractor = extractor

    def execute(
        self, input_data: List[NormalizedEmail], context: PipelineContext
    ) -> ProgressStream:
        """Classify emails strictly in input order."""
        context.stage = RunStage.CLASSIFYING
        yield ProgressEvent("Classifying emails", stage_progress(RunStage.CLASSIFYING, 0, 1))

        start_time = datetime.now()
        total = len(input_data)
        results: List[ClassifiedEmail] = []

        for index, email in enumerate(input_data, start=1):
            text = email.classification_text
            classification = self.classifier.classify(text)
            extraction = self.extractor.extract(text, email.sender, email.subject)
            results.append(ClassifiedEmail(email, classification, extraction))
            logger.debug(
                f"Classified email {email.id} as {classification.label} "
                f"({classification.score:.3f})"
            )
            yield ProgressEvent(
                f"Classifying ({index}/{total})",
                stage_progress(RunStage.CLASSIFYING, index, total),
            )

        elapsed = (datetime.now() - start_time).total_seconds()
        self.metrics["emails_classified"] = len(results)
        self.metrics["classification_time"] = elapsed
        context.add_metric("classify_count", len(results))

        logger.info(f"Classified {len(results)} emails in {elapsed:.2f} seconds")
        return results

    def validate_input(self, input_data: Any) -> bool:
        """Validate stage input."""
        if not isinstance(input_data, list):
            return False
        return all(isinstance(item, NormalizedEmail) for item in input_data)
