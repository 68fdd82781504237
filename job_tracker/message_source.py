"""Message sources consumed by the batch fetcher."""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Tuple

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import Resource

from .errors import FetchError
from .gmail_utils import (
    build_credentials,
    create_authorized_http,
    get_gmail_client,
    get_message,
    list_messages,
)
from .models import AccessCredentials, DateWindow, RawMessage

logger = logging.getLogger(__name__)

DEFAULT_QUERY_PREFIX = "category:primary"


class MessageSource(ABC):
    """Abstract paginated provider of mailbox messages."""

    @abstractmethod
    def list_page(
        self, window: DateWindow, page_token: Optional[str] = None
    ) -> Tuple[List[str], Optional[str]]:
        """Return one page of message ids and the next continuation token, if any."""
        pass

    @abstractmethod
    def get_detail(self, message_id: str) -> RawMessage:
        """Retrieve one full message. Must be safe to call from several threads.

        Raises:
            FetchError: If the message cannot be retrieved.
        """
        pass

    def close(self):
        """Release any resources held by the source."""


class GmailMessageSource(MessageSource):
    """Message source backed by the Gmail API."""

    def __init__(
        self,
        credentials: Credentials,
        gmail_client: Optional[Resource] = None,
        page_size: int = 100,
        query_prefix: str = DEFAULT_QUERY_PREFIX,
    ):
        """Initialize the Gmail message source.

        Args:
            credentials: Authorized credentials for the mailbox.
            gmail_client: Optional Gmail API client. If not provided, builds one from credentials.
            page_size: Number of message ids requested per page.
            query_prefix: Search terms prepended to the date window query.
        """
        self.credentials = credentials
        self.gmail = gmail_client or get_gmail_client(credentials)
        self.page_size = page_size
        self.query_prefix = query_prefix
        self._local = threading.local()

    @classmethod
    def from_tokens(
        cls,
        credentials: AccessCredentials,
        oauth_config: Any,
        page_size: int = 100,
        query_prefix: str = DEFAULT_QUERY_PREFIX,
    ) -> "GmailMessageSource":
        """Build a source from caller-supplied tokens and the OAuth client settings."""
        creds = build_credentials(
            credentials.access_token,
            refresh_token=credentials.refresh_token,
            client_id=oauth_config.client_id,
            client_secret=oauth_config.client_secret,
        )
        return cls(creds, page_size=page_size, query_prefix=query_prefix)

    def build_query(self, window: DateWindow) -> str:
        terms = [self.query_prefix] if self.query_prefix else []
        terms.append(f"after:{window.start_epoch}")
        terms.append(f"before:{window.end_epoch}")
        return " ".join(terms)

    def list_page(
        self, window: DateWindow, page_token: Optional[str] = None
    ) -> Tuple[List[str], Optional[str]]:
        messages, next_token = list_messages(
            self.gmail,
            query=self.build_query(window),
            max_results=self.page_size,
            page_token=page_token,
        )
        return [m["id"] for m in messages if m.get("id")], next_token

    def _thread_http(self):
        http = getattr(self._local, "http", None)
        if http is None:
            http = create_authorized_http(self.credentials)
            self._local.http = http
        return http

    def get_detail(self, message_id: str) -> RawMessage:
        try:
            message = get_message(self.gmail, message_id, http=self._thread_http())
            return RawMessage.from_api(message)
        except Exception as e:
            raise FetchError(message_id, str(e)) from e
