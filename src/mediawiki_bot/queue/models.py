"""
Data models for the request dispatch queue.
"""
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Mapping

from ..constants import HttpMethod
from ..deferred import Deferred


@dataclass(frozen=True)
class QueueEntry:
    """A call waiting in the queue to be dispatched."""

    parameters: Mapping[str, Any]
    method: HttpMethod
    priority: bool
    handle: Deferred
    enqueued_at: float = field(default_factory=time.monotonic)
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "request_id": self.request_id,
            "method": self.method.value,
            "priority": self.priority,
            "action": self.parameters.get("action"),
        }


@dataclass
class ThrottleState:
    """Per-client throttle clock."""

    next_allowed_dispatch: float = field(default_factory=time.monotonic)
    dispatch_in_flight: bool = False


@dataclass
class QueueStats:
    """Statistics about the dispatch queue."""

    pending: int
    priority_pending: int
    in_flight: bool
    min_interval_seconds: float
    dispatched_total: int
    failed_total: int

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for display."""
        return {
            "pending": self.pending,
            "priority_pending": self.priority_pending,
            "in_flight": self.in_flight,
            "min_interval_seconds": round(self.min_interval_seconds, 3),
            "dispatched_total": self.dispatched_total,
            "failed_total": self.failed_total,
        }
