"""Factory functions for creating dependency-injected instances."""

import logging
import sqlite3
from pathlib import Path
from typing import Optional

from .classifier import ClassificationRules, EmailClassifier
from .config import DATABASE_FILE, GMAIL_ACCESS_TOKEN, GMAIL_REFRESH_TOKEN, TOKEN_FILE
from .database import ApplicationStore
from .email_processor import EmailProcessor
from .extractor import JobInfoExtractor
from .gmail_utils import load_credentials
from .message_source import MessageSource
from .models import AccessCredentials
from .pipeline.config import PipelineConfig
from .pipeline.orchestrator import EmailPipeline, SourceFactory, create_gmail_source


def create_database_connection(database_file: str = DATABASE_FILE) -> sqlite3.Connection:
    """Create a SQLite database connection.

    Args:
        database_file: Path to the database file.

    Returns:
        SQLite connection object.
    """
    if database_file != ":memory:":
        Path(database_file).parent.mkdir(parents=True, exist_ok=True)
    return sqlite3.connect(database_file)


def create_application_store(
    conn: Optional[sqlite3.Connection] = None, database_file: str = DATABASE_FILE
) -> ApplicationStore:
    """Create an ApplicationStore instance with optional connection injection.

    Args:
        conn: Optional SQLite connection to inject.
        database_file: Database file path (used if conn is None).

    Returns:
        ApplicationStore instance.
    """
    if conn is None:
        store = ApplicationStore(
            conn=create_database_connection(database_file), database_file=database_file
        )
        store.owns_connection = True
        return store
    return ApplicationStore(conn=conn, database_file=database_file)


def load_access_credentials(token_file: str = TOKEN_FILE) -> Optional[AccessCredentials]:
    """Load the mailbox tokens obtained outside the pipeline.

    ``GMAIL_ACCESS_TOKEN`` takes precedence over the token file.

    Returns:
        AccessCredentials, or None if no token is available.
    """
    if GMAIL_ACCESS_TOKEN:
        logging.info("Using access token from environment")
        return AccessCredentials(
            access_token=GMAIL_ACCESS_TOKEN, refresh_token=GMAIL_REFRESH_TOKEN
        )

    creds = load_credentials(token_file)
    if creds is None:
        return None
    return AccessCredentials(access_token=creds.token, refresh_token=creds.refresh_token)


def create_message_source(
    credentials: AccessCredentials, config: Optional[PipelineConfig] = None
) -> MessageSource:
    """Create a Gmail message source for the given tokens.

    Args:
        credentials: Mailbox access tokens.
        config: Pipeline configuration (defaults to environment configuration).

    Returns:
        MessageSource instance.
    """
    return create_gmail_source(credentials, config or PipelineConfig.from_env())


def create_classifier(rules_file: Optional[str] = None) -> EmailClassifier:
    """Create a classifier from a rules file, or the built-in rules.

    Args:
        rules_file: Optional YAML file of label definitions.

    Returns:
        EmailClassifier instance.
    """
    if rules_file:
        return EmailClassifier(ClassificationRules.from_yaml(rules_file))
    return EmailClassifier()


def create_pipeline(
    config: Optional[PipelineConfig] = None,
    source_factory: Optional[SourceFactory] = None,
    classifier: Optional[EmailClassifier] = None,
) -> EmailPipeline:
    """Create a fully configured EmailPipeline instance.

    Args:
        config: Pipeline configuration (defaults to environment configuration).
        source_factory: Optional message source factory, e.g. a fake source for tests.
        classifier: Optional classifier. If not provided, the pipeline loads
            ``classify.rules_file`` when a run starts.

    Returns:
        EmailPipeline instance.
    """
    config = config or PipelineConfig.from_env()
    return EmailPipeline(
        config,
        source_factory=source_factory or create_message_source,
        email_processor=EmailProcessor(config.normalize.mime_types),
        classifier=classifier,
        extractor=JobInfoExtractor(),
    )
