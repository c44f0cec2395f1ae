"""
Minimum-interval throttle for spacing out API calls.
"""
import asyncio
import time
from typing import Callable, Optional

from .models import ThrottleState


class MinIntervalThrottle:
    """
    Enforces a minimum gap between the end of one call and the start of the next.

    Unlike a token bucket there is no burst allowance: once a call finishes,
    the next may not start until ``min_interval`` seconds have passed.
    """

    def __init__(
        self,
        min_interval: float,
        clock: Callable[[], float] = time.monotonic,
        state: Optional[ThrottleState] = None,
    ):
        """
        Initialize the throttle.

        Args:
            min_interval: Required spacing between calls, in seconds
            clock: Monotonic clock returning seconds
            state: Existing throttle state (a fresh one is created by default)
        """
        if min_interval < 0:
            raise ValueError("min_interval must not be negative")
        self.min_interval = min_interval
        self._clock = clock
        self.state = state if state is not None else ThrottleState(next_allowed_dispatch=clock())

    @property
    def enabled(self) -> bool:
        return self.min_interval > 0

    def delay(self) -> float:
        """
        Seconds until the next call may start (0.0 if it may start now).
        """
        return max(0.0, self.state.next_allowed_dispatch - self._clock())

    async def wait(self) -> None:
        """
        Sleep until the next call may start.

        Re-checks after waking, since timers may fire marginally early.
        """
        remaining = self.delay()
        while remaining > 0:
            await asyncio.sleep(remaining)
            remaining = self.delay()

    def mark_completed(self) -> None:
        """Record that a call finished and push the next allowed start forward."""
        self.state.next_allowed_dispatch = self._clock() + self.min_interval
