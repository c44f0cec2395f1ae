"""
Dispatch queue that serializes and throttles every outbound API call.
"""
import asyncio
import logging
from collections import deque
from typing import Any, Callable, Mapping, Optional

from ..decoder import decode
from ..deferred import Deferred
from ..errors import QueueClosedError
from ..transport.interface import Transport
from .models import HttpMethod, QueueEntry, QueueStats
from .rate_limiter import MinIntervalThrottle

logger = logging.getLogger(__name__)


class DispatchQueue:
    """
    Single-flight, priority-ordered request queue for one client.

    Entries are kept in two FIFOs. Priority entries always go out before
    normal ones, and order within each FIFO is preserved. At most one call is
    in flight at a time, and consecutive calls are spaced by at least the
    throttle's minimum interval, measured from the end of one call to the
    start of the next.

    The head entry is removed from the queue when it is scheduled, not when
    it completes, so anything enqueued while it waits out the throttle delay
    goes after it.

    All methods must be called from the event loop thread. ``enqueue`` needs
    a running loop.
    """

    def __init__(
        self,
        transport: Transport,
        endpoint: str,
        min_interval_seconds: float = 6.0,
        decoder: Callable[[str], dict[str, Any]] = decode,
    ):
        """
        Initialize the dispatch queue.

        Args:
            transport: Transport used to send each call
            endpoint: API URL every call is sent to
            min_interval_seconds: Minimum spacing between consecutive calls
            decoder: Turns a raw response body into a structured result
        """
        self.transport = transport
        self.endpoint = endpoint
        self._decode = decoder
        self._throttle = MinIntervalThrottle(min_interval_seconds)

        self._priority: deque[QueueEntry] = deque()
        self._normal: deque[QueueEntry] = deque()
        self._current: Optional[asyncio.Task] = None
        self._idle = asyncio.Event()
        self._idle.set()
        self._closed = False

        # Statistics
        self._dispatched = 0
        self._failed = 0

    @property
    def throttle(self) -> MinIntervalThrottle:
        return self._throttle

    @property
    def in_flight(self) -> bool:
        return self._throttle.state.dispatch_in_flight

    def __len__(self) -> int:
        return len(self._priority) + len(self._normal)

    def enqueue(
        self,
        parameters: Mapping[str, Any],
        method: HttpMethod = HttpMethod.GET,
        priority: bool = False,
    ) -> Deferred:
        """
        Queue a call and return the handle its outcome will settle.

        Args:
            parameters: API parameters (copied; the caller's mapping is not touched)
            method: HTTP method
            priority: Jump ahead of every normal-priority entry

        Returns:
            Deferred resolved with the decoded response, or rejected with the failure

        Raises:
            QueueClosedError: If the queue has been closed
            RuntimeError: If no event loop is running; the queue is left untouched
        """
        if self._closed:
            raise QueueClosedError("Dispatch queue is closed")
        loop = asyncio.get_running_loop()

        entry = QueueEntry(
            parameters=dict(parameters),
            method=HttpMethod(method),
            priority=bool(priority),
            handle=Deferred(),
        )
        if entry.priority:
            self._priority.append(entry)
        else:
            self._normal.append(entry)
        self._idle.clear()

        logger.debug(
            f"Queued {entry.method.value} action={entry.parameters.get('action')} "
            f"(priority={entry.priority}, pending={len(self)})",
            extra=entry.to_dict(),
        )

        self._process_queue(loop)
        return entry.handle

    def _next_entry(self) -> Optional[QueueEntry]:
        if self._priority:
            return self._priority.popleft()
        if self._normal:
            return self._normal.popleft()
        return None

    def _process_queue(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """Schedule the head entry unless a call is already in flight."""
        if self.in_flight:
            return
        # Resolved before popping so a missing loop cannot strand an entry
        loop = loop or asyncio.get_running_loop()

        entry = self._next_entry()
        if entry is None:
            self._idle.set()
            return

        self._throttle.state.dispatch_in_flight = True
        delay = self._throttle.delay()
        if delay > 0:
            logger.debug(
                f"Throttling {entry.method.value} for {delay:.3f}s",
                extra={"request_id": entry.request_id},
            )
        self._current = loop.create_task(self._dispatch(entry))

    async def _dispatch(self, entry: QueueEntry) -> None:
        """Wait out the throttle, send one call, and settle its handle."""
        try:
            await self._throttle.wait()
            body = await self.transport.send(entry.method, self.endpoint, entry.parameters)
            result = self._decode(body)
        except Exception as e:
            self._failed += 1
            logger.warning(
                f"{entry.method.value} action={entry.parameters.get('action')} failed: {e}",
                extra={"request_id": entry.request_id},
            )
            entry.handle.reject(e)
        else:
            logger.debug(
                f"{entry.method.value} action={entry.parameters.get('action')} completed",
                extra={"request_id": entry.request_id},
            )
            entry.handle.resolve(result)
        finally:
            self._dispatched += 1
            self._throttle.mark_completed()
            self._throttle.state.dispatch_in_flight = False
            # Let code awaiting the settled handle run first, so a follow-up
            # it enqueues is considered before the next entry is picked
            asyncio.get_running_loop().call_soon(self._process_queue)

    async def drain(self) -> None:
        """Wait until every queued call has been dispatched and settled."""
        await self._idle.wait()

    def close(self) -> None:
        """Refuse further calls. Entries already queued still go out."""
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def get_stats(self) -> QueueStats:
        """
        Get current queue statistics.

        Returns:
            Queue statistics
        """
        return QueueStats(
            pending=len(self),
            priority_pending=len(self._priority),
            in_flight=self.in_flight,
            min_interval_seconds=self._throttle.min_interval,
            dispatched_total=self._dispatched,
            failed_total=self._failed,
        )
