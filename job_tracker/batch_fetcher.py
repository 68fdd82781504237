"""Paginated listing and rate-limited detail retrieval."""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Tuple

from .message_source import MessageSource
from .models import DateWindow, RawMessage

logger = logging.getLogger(__name__)

DEFAULT_MAX_PAGES = 500
DEFAULT_DETAIL_BATCH_SIZE = 10
DEFAULT_BATCH_DELAY = 0.5


@dataclass
class DetailGroup:
    """Outcome of one concurrently fetched group of message ids."""

    messages: List[RawMessage]
    failed_ids: List[str] = field(default_factory=list)
    completed: int = 0
    total: int = 0


class BatchFetcher:
    """Retrieves every message in a date window from a message source."""

    def __init__(
        self,
        source: MessageSource,
        max_pages: int = DEFAULT_MAX_PAGES,
        detail_batch_size: int = DEFAULT_DETAIL_BATCH_SIZE,
        batch_delay: float = DEFAULT_BATCH_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the fetcher.

        Args:
            source: Message source to page through.
            max_pages: Hard cap on listing requests per run.
            detail_batch_size: Number of detail requests run concurrently per group.
            batch_delay: Seconds to pause between detail groups.
            sleep: Sleep function, injectable for tests.
        """
        if detail_batch_size < 1:
            raise ValueError("detail_batch_size must be at least 1")
        self.source = source
        self.max_pages = max_pages
        self.detail_batch_size = detail_batch_size
        self.batch_delay = batch_delay
        self.sleep = sleep

    def iter_pages(self, window: DateWindow) -> Iterator[Tuple[List[str], int]]:
        """Yield each page of message ids together with the running total.

        Stops when the source returns no continuation token, when a page is
        empty but still carries a token, or after ``max_pages`` requests.
        """
        page_token = None
        pages = 0
        total = 0

        while True:
            ids, next_token = self.source.list_page(window, page_token)
            pages += 1
            total += len(ids)
            yield ids, total

            if not next_token:
                break
            if not ids:
                logger.warning(
                    f"Source returned an empty page with a continuation token on page {pages}, "
                    "stopping pagination"
                )
                break
            if pages >= self.max_pages:
                logger.warning(f"Reached page limit ({self.max_pages}), stopping pagination")
                break
            page_token = next_token

        logger.info(f"Listed {total} messages in {pages} page(s)")

    def list_message_ids(self, window: DateWindow) -> List[str]:
        """Return all message ids in the window."""
        message_ids: List[str] = []
        for ids, _ in self.iter_pages(window):
            message_ids.extend(ids)
        return message_ids

    def iter_detail_groups(self, message_ids: List[str]) -> Iterator[DetailGroup]:
        """Fetch message details in fixed-size concurrent groups.

        Failed fetches are logged and dropped. The pause runs between groups,
        never after the last one.
        """
        total = len(message_ids)
        if not total:
            return

        size = self.detail_batch_size
        with ThreadPoolExecutor(max_workers=size) as executor:
            for start in range(0, total, size):
                if start:
                    self.sleep(self.batch_delay)

                group_ids = message_ids[start : start + size]
                futures = [executor.submit(self.source.get_detail, mid) for mid in group_ids]

                messages = []
                failed_ids = []
                for message_id, future in zip(group_ids, futures):
                    try:
                        messages.append(future.result())
                    except Exception as e:
                        logger.warning(f"Dropping message {message_id}: {e}")
                        failed_ids.append(message_id)

                yield DetailGroup(
                    messages=messages,
                    failed_ids=failed_ids,
                    completed=min(start + size, total),
                    total=total,
                )

    def fetch_details(self, message_ids: List[str]) -> List[RawMessage]:
        """Return every message that could be retrieved, in id order."""
        messages: List[RawMessage] = []
        for group in self.iter_detail_groups(message_ids):
            messages.extend(group.messages)
        return messages
