"""Tests for paginated listing and batched detail retrieval."""

from unittest.mock import Mock

import pytest

from job_tracker.batch_fetcher import BatchFetcher
from tests.fakes import FakeMessageSource, make_raw_message


def build_source(pages, message_ids=(), failing_ids=None):
    messages = {mid: make_raw_message(mid) for mid in message_ids}
    return FakeMessageSource(pages=pages, messages=messages, failing_ids=failing_ids)


class TestPagination:
    """Test cases for listing pages."""

    def test_follows_continuation_tokens(self, date_window):
        """Test that pages are requested until no token is returned."""
        source = build_source([(["a", "b"], "t1"), (["c"], "t2"), (["d"], None)])
        fetcher = BatchFetcher(source)

        ids = fetcher.list_message_ids(date_window)

        assert ids == ["a", "b", "c", "d"]
        assert source.page_tokens == [None, "t1", "t2"]

    def test_running_totals(self, date_window):
        source = build_source([(["a", "b"], "t1"), (["c"], None)])
        fetcher = BatchFetcher(source)

        totals = [total for _, total in fetcher.iter_pages(date_window)]

        assert totals == [2, 3]

    def test_single_empty_page(self, date_window):
        source = build_source([([], None)])
        fetcher = BatchFetcher(source)

        assert fetcher.list_message_ids(date_window) == []
        assert len(source.page_tokens) == 1

    def test_stops_on_empty_page_with_token(self, date_window):
        """Test that an empty page carrying a token ends pagination."""
        source = build_source([(["a"], "t1"), ([], "t2"), (["never"], None)])
        fetcher = BatchFetcher(source)

        ids = fetcher.list_message_ids(date_window)

        assert ids == ["a"]
        assert len(source.page_tokens) == 2

    def test_stops_at_page_limit(self, date_window):
        """Test that a source that never stops returning tokens is capped."""
        source = Mock()
        source.list_page.return_value = (["same"], "forever")
        fetcher = BatchFetcher(source, max_pages=3)

        ids = fetcher.list_message_ids(date_window)

        assert ids == ["same", "same", "same"]
        assert source.list_page.call_count == 3


class TestDetailRetrieval:
    """Test cases for batched detail retrieval."""

    def test_invalid_batch_size(self):
        with pytest.raises(ValueError):
            BatchFetcher(Mock(), detail_batch_size=0)

    def test_fetch_details_in_order(self):
        """Test that messages come back in id order."""
        ids = [f"m{i}" for i in range(7)]
        source = build_source([], ids)
        fetcher = BatchFetcher(source, detail_batch_size=3, sleep=Mock())

        messages = fetcher.fetch_details(ids)

        assert [m.id for m in messages] == ids
        assert sorted(source.detail_calls) == sorted(ids)

    def test_failed_ids_are_dropped(self):
        """Test that failures are dropped without losing successful messages."""
        ids = ["m1", "m2", "m3", "m4"]
        source = build_source([], ids, failing_ids=["m2"])
        fetcher = BatchFetcher(source, detail_batch_size=2, sleep=Mock())

        groups = list(fetcher.iter_detail_groups(ids))

        assert [m.id for g in groups for m in g.messages] == ["m1", "m3", "m4"]
        assert groups[0].failed_ids == ["m2"]
        assert groups[1].failed_ids == []

    def test_group_progress(self):
        ids = ["m1", "m2", "m3", "m4", "m5"]
        source = build_source([], ids)
        fetcher = BatchFetcher(source, detail_batch_size=2, sleep=Mock())

        groups = list(fetcher.iter_detail_groups(ids))

        assert [(g.completed, g.total) for g in groups] == [(2, 5), (4, 5), (5, 5)]

    def test_delay_between_groups_only(self):
        """Test that the pause runs between groups and not after the last one."""
        ids = ["m1", "m2", "m3", "m4", "m5"]
        source = build_source([], ids)
        sleep = Mock()
        fetcher = BatchFetcher(source, detail_batch_size=2, batch_delay=0.5, sleep=sleep)

        list(fetcher.iter_detail_groups(ids))

        assert sleep.call_count == 2
        sleep.assert_called_with(0.5)

    def test_single_group_never_sleeps(self):
        ids = ["m1", "m2"]
        sleep = Mock()
        fetcher = BatchFetcher(build_source([], ids), detail_batch_size=10, sleep=sleep)

        fetcher.fetch_details(ids)

        sleep.assert_not_called()

    def test_no_ids(self):
        source = build_source([])
        sleep = Mock()
        fetcher = BatchFetcher(source, sleep=sleep)

        assert fetcher.fetch_details([]) == []
        assert source.detail_calls == []
        sleep.assert_not_called()

    def test_unexpected_exception_is_dropped(self):
        """Test that any per-message failure is recovered, not only FetchError."""

        def get_detail(message_id):
            if message_id == "bad":
                raise RuntimeError("connection reset")
            return make_raw_message(message_id)

        source = Mock()
        source.get_detail.side_effect = get_detail
        fetcher = BatchFetcher(source, sleep=Mock())

        messages = fetcher.fetch_details(["ok", "bad"])

        assert [m.id for m in messages] == ["ok"]
