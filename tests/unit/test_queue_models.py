"""Unit tests for dispatch queue models."""

from mediawiki_bot.constants import HttpMethod
from mediawiki_bot.deferred import Deferred
from mediawiki_bot.queue.models import QueueEntry, QueueStats


class TestQueueEntry:
    """Test QueueEntry model."""

    def test_defaults(self):
        """Test each entry gets its own id and timestamp."""
        first = QueueEntry({"action": "query"}, HttpMethod.GET, False, Deferred())
        second = QueueEntry({"action": "query"}, HttpMethod.GET, False, Deferred())
        assert first.request_id != second.request_id
        assert first.enqueued_at <= second.enqueued_at

    def test_to_dict(self):
        """Test logging fields."""
        entry = QueueEntry({"action": "edit", "title": "X"}, HttpMethod.POST, True, Deferred())
        data = entry.to_dict()
        assert data == {
            "request_id": entry.request_id,
            "method": "POST",
            "priority": True,
            "action": "edit",
        }


class TestQueueStats:
    """Test QueueStats model."""

    def test_to_dict_rounds_interval(self):
        """Test the interval is rounded for display."""
        stats = QueueStats(
            pending=3,
            priority_pending=1,
            in_flight=True,
            min_interval_seconds=1 / 3,
            dispatched_total=10,
            failed_total=2,
        )
        assert stats.to_dict() == {
            "pending": 3,
            "priority_pending": 1,
            "in_flight": True,
            "min_interval_seconds": 0.333,
            "dispatched_total": 10,
            "failed_total": 2,
        }
