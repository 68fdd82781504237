"""Main orchestrator for the scan pipeline."""

import logging
import re
import time
from collections import OrderedDict
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List, Optional, Union

from ..batch_fetcher import BatchFetcher
from ..classifier import ClassificationRules, EmailClassifier
from ..email_processor import EmailProcessor
from ..errors import AuthenticationError, ConfigurationError, ValidationError
from ..extractor import UNKNOWN, JobInfoExtractor
from ..message_source import GmailMessageSource, MessageSource
from ..models import (
    AccessCredentials,
    Application,
    DateWindow,
    ProcessRequest,
    format_instant,
    parse_instant,
)
from .base import ClassifiedEmail, PipelineContext, PipelineStage, RunStage, stage_progress
from .classify_stage import ClassifyStage
from .config import PipelineConfig
from .events import CompleteEvent, ErrorEvent, Event, ProgressEvent
from .fetch_stage import FetchStage
from .filter_stage import FilterStage

logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = "Failed to process emails"

SourceFactory = Callable[[AccessCredentials, PipelineConfig], MessageSource]


def create_gmail_source(credentials: AccessCredentials, config: PipelineConfig) -> MessageSource:
    """Default source factory: a Gmail source for the caller's tokens."""
    return GmailMessageSource.from_tokens(
        credentials,
        config.oauth,
        page_size=config.fetch.page_size,
        query_prefix=config.fetch.query_prefix,
    )


class EmailPipeline:
    """Runs one scan per call and streams its progress as events."""

    def __init__(
        self,
        config: PipelineConfig,
        source_factory: Optional[SourceFactory] = None,
        email_processor: Optional[EmailProcessor] = None,
        classifier: Optional[EmailClassifier] = None,
        extractor: Optional[JobInfoExtractor] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the pipeline with configuration.

        Args:
            config: Pipeline configuration.
            source_factory: Builds the message source for a run's credentials.
            email_processor: Optional shared EmailProcessor instance.
            classifier: Optional classifier. If not provided, built from the configured rules.
            extractor: Optional shared JobInfoExtractor instance.
            sleep: Sleep function used between detail groups.
        """
        self.config = config
        self.source_factory = source_factory or create_gmail_source
        self.email_processor = email_processor or EmailProcessor(config.normalize.mime_types)
        self.classifier = classifier
        self.extractor = extractor or JobInfoExtractor()
        self.sleep = sleep

        self._configure_logging()

    def _configure_logging(self):
        """Configure logging based on monitoring config."""
        log_level = getattr(logging, self.config.monitoring.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    def _get_classifier(self) -> EmailClassifier:
        if self.classifier is None:
            rules_file = self.config.classify.rules_file
            rules = ClassificationRules.from_yaml(rules_file) if rules_file else None
            self.classifier = EmailClassifier(rules)
        return self.classifier

    def _create_stages(self, source: MessageSource) -> "OrderedDict[str, PipelineStage]":
        """Build the stages for one run."""
        fetcher = BatchFetcher(
            source,
            max_pages=self.config.fetch.max_pages,
            detail_batch_size=self.config.fetch.detail_batch_size,
            batch_delay=self.config.fetch.batch_delay,
            sleep=self.sleep,
        )
        stages: "OrderedDict[str, PipelineStage]" = OrderedDict()
        stages["fetch"] = FetchStage(self.config.fetch, fetcher)
        stages["filter"] = FilterStage(self.email_processor)
        stages["classify"] = ClassifyStage(self._get_classifier(), self.extractor)
        return stages

    def parse_request(self, request: Union[ProcessRequest, Dict[str, Any]]) -> ProcessRequest:
        if isinstance(request, ProcessRequest):
            return request
        if not isinstance(request, dict):
            raise ValidationError("Request body must be a JSON object")
        try:
            return ProcessRequest.from_dict(
                request,
                default_threshold=self.config.classify.threshold,
                default_labels=self.config.classify.job_labels,
            )
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid request: {e}") from e

    def validate(
        self, request: ProcessRequest, credentials: Optional[AccessCredentials]
    ) -> DateWindow:
        """Pre-flight checks, run before any network access.

        Raises:
            ConfigurationError: If OAuth client settings are missing.
            ValidationError: If dates are missing, unparseable or out of order.
            AuthenticationError: If no access token was supplied.
        """
        missing = self.config.oauth.missing()
        if missing:
            raise ConfigurationError(f"{missing[0]} not configured")

        if not request.start_date or not request.end_date:
            raise ValidationError("Start and end date required")

        start = parse_instant(request.start_date)
        end = parse_instant(request.end_date)
        if start is None or end is None:
            raise ValidationError("Invalid date format")
        if start >= end:
            raise ValidationError("Start date must be before end date")

        if credentials is None or not credentials.access_token:
            raise AuthenticationError("Authentication required")

        return DateWindow(start=start, end=end)

    def build_applications(
        self, classified: List[ClassifiedEmail], request: ProcessRequest
    ) -> List[Application]:
        """Keep accepted classifications, in source order, as applications."""
        accepted_labels = {label.lower() for label in request.job_labels}
        applications = []

        for item in classified:
            result = item.classification
            if not result.success:
                continue
            label = result.label.lower()
            if label not in accepted_labels or result.score < request.classification_threshold:
                continue

            email = item.email
            address = re.search(r"<(.+)>", email.sender)
            applications.append(
                Application(
                    id=f"gmail-{email.id}",
                    company=item.extraction.company or UNKNOWN,
                    role=item.extraction.role or UNKNOWN,
                    status=label,
                    email=address.group(1) if address else email.sender,
                    date=format_instant(email.date),
                    subject=email.subject,
                    body_preview=email.body_text[:200],
                    label=result.label,
                    confidence=result.score,
                )
            )

        return applications

    def run(
        self,
        request: Union[ProcessRequest, Dict[str, Any]],
        credentials: Optional[AccessCredentials] = None,
    ) -> Iterator[Event]:
        """Execute one scan, yielding progress events and exactly one terminal event.

        Progress percentages never decrease. The generator never raises;
        every failure ends the stream with an error event. Closing the
        generator abandons the run at the next progress event.
        """
        events = self._run(request, credentials)
        last = 0.0
        try:
            for event in events:
                if isinstance(event, ProgressEvent):
                    if event.current < last:
                        event = ProgressEvent(event.stage, last, event.total)
                    last = event.current
                yield event
                if event.is_terminal:
                    break
        finally:
            events.close()

    def _run(
        self,
        request: Union[ProcessRequest, Dict[str, Any]],
        credentials: Optional[AccessCredentials],
    ) -> Iterator[Event]:
        start_time = datetime.now()
        context = None
        stages_completed = []

        try:
            parsed_request = self.parse_request(request)
            context = PipelineContext.create(config=self.config, request=parsed_request)
            logger.info(f"Starting pipeline run {context.run_id}")

            context.window = self.validate(parsed_request, credentials)

            context.stage = RunStage.CONNECTING
            yield ProgressEvent("Connecting to mailbox", stage_progress(RunStage.CONNECTING, 0, 1))

            source = self.source_factory(credentials, self.config)
            try:
                data = None
                for stage_name, stage in self._create_stages(source).items():
                    logger.info(f"Executing stage: {stage_name}")
                    if not stage.validate_input(data):
                        raise ValueError(f"Invalid input for stage '{stage_name}'")

                    data = yield from stage.execute(data, context)

                    stages_completed.append(stage_name)
                    for key, value in stage.get_metrics().items():
                        context.add_metric(f"{stage_name}_{key}", value)
            finally:
                source.close()

            applications = self.build_applications(data, parsed_request)
            context.add_metric("applications_count", len(applications))

            context.stage = RunStage.COMPLETE
            yield ProgressEvent("Complete", stage_progress(RunStage.COMPLETE, 1, 1))
            yield CompleteEvent(applications=applications, total_emails=context.total_emails)

        except Exception as e:
            logger.error(f"Pipeline failed: {e}")
            if context is not None:
                context.stage = RunStage.ERROR
                context.add_error(f"Pipeline failed: {str(e)}")
            yield ErrorEvent(message=str(e) or DEFAULT_ERROR_MESSAGE)

        finally:
            elapsed = (datetime.now() - start_time).total_seconds()
            if context is not None:
                self._log_summary(context, stages_completed, elapsed)

    def _log_summary(self, context: PipelineContext, stages_completed: List[str], elapsed: float):
        logger.info(f"Pipeline run {context.run_id} ended in state '{context.stage.value}'")
        logger.info(f"Run time: {elapsed:.2f}s")
        logger.info(f"Stages completed: {', '.join(stages_completed)}")
        logger.info(f"Emails listed: {context.total_emails}")
        logger.info(f"Applications found: {context.metrics.get('applications_count', 0)}")

        if context.errors:
            logger.warning(f"Errors encountered: {len(context.errors)}")
            for error in context.errors[:5]:  # Show first 5 errors
                logger.warning(f"  - {error}")
