"""
Request queue for the MediaWiki client.

Provides priority ordering, single-flight dispatch and throttling for outbound
API calls.
"""

from .manager import DispatchQueue
from .models import HttpMethod, QueueEntry, QueueStats, ThrottleState
from .rate_limiter import MinIntervalThrottle

__all__ = [
    "DispatchQueue",
    "HttpMethod",
    "MinIntervalThrottle",
    "QueueEntry",
    "QueueStats",
    "ThrottleState",
]
