"""Shared pytest fixtures for job tracker tests."""

import sqlite3
import tempfile
from typing import Dict, List, Tuple
from unittest.mock import MagicMock, patch

import pytest

from job_tracker.database import ApplicationStore
from job_tracker.email_processor import EmailProcessor
from job_tracker.models import (
    AccessCredentials,
    DateWindow,
    ProcessRequest,
    RawMessage,
    parse_instant,
)
from job_tracker.pipeline.base import PipelineContext
from job_tracker.pipeline.config import (
    ClassifyConfig,
    FetchConfig,
    OAuthConfig,
    PipelineConfig,
)
from tests.fakes import BASE_INTERNAL_DATE, FakeMessageSource, encode_body, make_raw_message


@pytest.fixture
def sample_messages() -> List[RawMessage]:
    """Three messages: an interview invite, an unrelated note and an application receipt."""
    return [
        make_raw_message(
            "msg1",
            sender='"Acme Careers Team" <jobs@acme.io>',
            subject="Interview invitation for the Backend Engineer position",
            html="<p>We would like to schedule an interview with you.</p>",
            internal_date=BASE_INTERNAL_DATE,
        ),
        make_raw_message(
            "msg2",
            sender="Friend <friend@gmail.com>",
            subject="Lunch tomorrow?",
            html="<p>Want to grab lunch this Friday?</p>",
            internal_date=BASE_INTERNAL_DATE + 60000,
        ),
        make_raw_message(
            "msg3",
            sender="Globex Recruiting <no-reply@globex.com>",
            subject="Application received",
            html="<p>Thank you for applying. We have received your application.</p>",
            internal_date=BASE_INTERNAL_DATE + 120000,
        ),
    ]


@pytest.fixture
def fake_source(sample_messages) -> FakeMessageSource:
    """Create a single-page fake source holding the sample messages."""
    return FakeMessageSource(
        pages=[([m.id for m in sample_messages], None)],
        messages={m.id: m for m in sample_messages},
    )


@pytest.fixture
def pipeline_config() -> PipelineConfig:
    """Create a test pipeline configuration with OAuth settings present."""
    return PipelineConfig(
        oauth=OAuthConfig(
            client_id="client-id",
            client_secret="client-secret",
            redirect_uri="http://localhost/callback",
        ),
        fetch=FetchConfig(detail_batch_size=2, batch_delay=0),
        classify=ClassifyConfig(),
    )


@pytest.fixture
def access_credentials() -> AccessCredentials:
    return AccessCredentials(access_token="access-token", refresh_token="refresh-token")


@pytest.fixture
def scan_request() -> Dict:
    """Create a scan request body."""
    return {
        "startDate": "2024-01-01T00:00:00.000Z",
        "endDate": "2024-02-01T00:00:00.000Z",
        "excludedEmails": [],
        "classificationThreshold": 0.05,
        "jobLabels": ["applied", "rejected", "interview", "next-phase", "offer"],
    }


@pytest.fixture
def date_window() -> DateWindow:
    return DateWindow(
        start=parse_instant("2024-01-01T00:00:00Z"), end=parse_instant("2024-02-01T00:00:00Z")
    )


@pytest.fixture
def pipeline_context(pipeline_config, date_window) -> PipelineContext:
    """Create a test pipeline context with a resolved date window."""
    context = PipelineContext.create(config=pipeline_config, request=ProcessRequest())
    context.window = date_window
    return context


@pytest.fixture
def email_processor() -> EmailProcessor:
    """Create a real EmailProcessor with the default content types."""
    return EmailProcessor()


@pytest.fixture
def mock_gmail_client():
    """Create a mock Gmail API client."""
    mock_client = MagicMock()

    # Mock the users().messages() chain
    mock_messages = MagicMock()
    mock_client.users.return_value.messages.return_value = mock_messages

    # Mock list response
    mock_messages.list.return_value.execute.return_value = {
        "messages": [
            {"id": "msg1", "threadId": "thread1"},
            {"id": "msg2", "threadId": "thread2"},
        ],
        "nextPageToken": "page-2",
    }

    # Mock get response
    mock_messages.get.return_value.execute.return_value = {
        "id": "msg1",
        "internalDate": str(BASE_INTERNAL_DATE),
        "snippet": "Test snippet",
        "payload": {
            "mimeType": "text/html",
            "headers": [
                {"name": "Subject", "value": "Test Subject"},
                {"name": "From", "value": "Tester <test@example.com>"},
                {"name": "Date", "value": "Mon, 01 Jan 2024 12:00:00 +0000"},
            ],
            "body": {"data": encode_body("<p>Test content</p>")},
        },
    }

    return mock_client


@pytest.fixture
def temp_database():
    """Create a temporary SQLite database for testing."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as tmp:
        conn = sqlite3.connect(tmp.name)
        yield conn, tmp.name
        conn.close()


@pytest.fixture
def mock_sqlite_connection() -> Tuple[MagicMock, MagicMock]:
    """Create a mock SQLite connection."""
    mock_conn = MagicMock(spec=sqlite3.Connection)
    mock_cursor = MagicMock(spec=sqlite3.Cursor)
    mock_conn.cursor.return_value = mock_cursor
    mock_cursor.fetchone.return_value = None
    mock_cursor.fetchall.return_value = []
    return mock_conn, mock_cursor


@pytest.fixture
def application_store():
    """Create an ApplicationStore backed by an in-memory database."""
    conn = sqlite3.connect(":memory:")
    store = ApplicationStore(conn=conn)
    yield store
    conn.close()


@pytest.fixture(autouse=True)
def mock_logging():
    """Mock logging to prevent log output during tests."""
    with patch("logging.info"), patch("logging.error"), patch("logging.warning"), patch(
        "logging.debug"
    ):
        yield
