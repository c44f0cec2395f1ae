"""Mock transport for testing and offline runs."""

import asyncio
import json
import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Union
from urllib.parse import parse_qsl

from ..constants import HttpMethod
from ..errors import TransportError
from .interface import Transport

logger = logging.getLogger(__name__)

# A scripted reply: a JSON-able object, a raw body, an HTTP error status, or
# an exception to raise
MockResponse = Union[dict, list, str, int, BaseException]
Responder = Callable[[HttpMethod, dict[str, str]], MockResponse]


@dataclass
class RecordedCall:
    """A call the mock transport received."""

    method: HttpMethod
    endpoint: str
    parameters: dict[str, str]
    started_at: float
    finished_at: Optional[float] = None


class MockTransport(Transport):
    """
    In-memory transport that answers from a script.

    Replies come from ``responder`` if given, otherwise from ``responses`` in
    order. Every call is recorded with its decoded parameters and monotonic
    start and finish times.
    """

    def __init__(
        self,
        responses: Optional[Iterable[MockResponse]] = None,
        responder: Optional[Responder] = None,
        latency: float = 0.0,
        user_agent: str = "mediawiki-bot-test",
    ):
        """
        Initialize mock transport.

        Args:
            responses: Replies handed out one per call
            responder: Callable computing the reply from method and parameters
            latency: Simulated time each call takes, in seconds
            user_agent: User-Agent value (recorded only)
        """
        super().__init__(user_agent)
        self._responses: deque[MockResponse] = deque(responses or [])
        self._responder = responder
        self.latency = latency
        self.calls: list[RecordedCall] = []
        self.active = 0
        self.max_active = 0
        self.closed = False

    def add_response(self, response: MockResponse) -> None:
        """Append a scripted reply."""
        self._responses.append(response)

    def _next_response(self, method: HttpMethod, parameters: dict[str, str]) -> MockResponse:
        if self._responder is not None:
            return self._responder(method, parameters)
        if not self._responses:
            raise TransportError(f"No scripted response left for {parameters}")
        return self._responses.popleft()

    async def _send(self, method: HttpMethod, endpoint: str, payload: str) -> str:
        call = RecordedCall(
            method=method,
            endpoint=endpoint,
            parameters=dict(parse_qsl(payload, keep_blank_values=True)),
            started_at=time.monotonic(),
        )
        self.calls.append(call)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        logger.debug(f"Mock: {method.value} {call.parameters}")

        try:
            if self.latency:
                await asyncio.sleep(self.latency)
            response = self._next_response(method, call.parameters)
        finally:
            self.active -= 1
            call.finished_at = time.monotonic()

        if isinstance(response, BaseException):
            raise response
        if isinstance(response, int):
            raise TransportError(f"HTTP {response} from {endpoint}", status_code=response)
        if isinstance(response, str):
            return response
        return json.dumps(response)

    async def close(self) -> None:
        """Mark the transport closed."""
        self.closed = True
