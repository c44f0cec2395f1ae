"""
Continuation engine for paginated API queries.

A paginated query is driven through an explicit state machine::

    INIT -> FETCH -> DECIDE -> FETCH -> ... -> DONE
               \\
                -> ERROR

Each FETCH is one call through the dispatch queue. The first round uses the
caller's priority; every later round is a priority call, since the caller is
already waiting on it. Rounds of concurrent queries interleave in the shared
queue, each still throttled.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping, Optional

from .constants import HttpMethod
from .decoder import raise_for_api_error
from .deferred import Deferred
from .queue.manager import DispatchQueue

logger = logging.getLogger(__name__)

# Pulls (new items, summary fields) out of one round's response
ItemExtractor = Callable[[dict[str, Any]], tuple[list[Any], dict[str, Any]]]


class ContinuationPhase(str, Enum):
    """States of the continuation state machine."""
    INIT = "init"
    FETCH = "fetch"
    DECIDE = "decide"
    DONE = "done"
    ERROR = "error"


@dataclass
class ContinuationState:
    """Progress of one paginated query."""

    target_count: Optional[int] = None
    cursor_token: Optional[str] = None
    secondary_cursor_token: Optional[str] = None
    accumulated: list[Any] = field(default_factory=list)
    summary: dict[str, Any] = field(default_factory=dict)
    rounds: int = 0
    phase: ContinuationPhase = ContinuationPhase.INIT

    @property
    def target_reached(self) -> bool:
        return self.target_count is not None and len(self.accumulated) >= self.target_count

    def absorb(self, items: list[Any]) -> None:
        """Append items in order, never growing past ``target_count``."""
        for item in items:
            if self.target_reached:
                break
            self.accumulated.append(item)


@dataclass
class ContinuationResult:
    """Everything a finished paginated query gathered."""

    items: list[Any]
    summary: dict[str, Any]
    rounds: int


class ContinuationEngine:
    """
    Repeats a query, following continuation tokens, until it is complete.

    The engine stops when a response carries no ``continue`` block (or none
    for ``cursor_key``), or when ``target_count`` items have been gathered.
    A failed round aborts the whole query and its partial results are
    discarded.
    """

    def __init__(
        self,
        queue: DispatchQueue,
        base_parameters: Mapping[str, Any],
        cursor_key: str,
        extract: ItemExtractor,
        target_count: Optional[int] = None,
        priority: bool = False,
        method: HttpMethod = HttpMethod.GET,
    ):
        """
        Initialize the engine.

        Args:
            queue: Dispatch queue every round goes through
            base_parameters: Parameters shared by every round
            cursor_key: Module-specific continuation parameter (e.g. "rvcontinue")
            extract: Pulls items and summary fields out of a response
            target_count: Stop once this many items are gathered (None for all)
            priority: Priority of the first round
            method: HTTP method of every round
        """
        if target_count is not None and target_count < 0:
            raise ValueError("target_count must not be negative")
        self.queue = queue
        self.base_parameters = dict(base_parameters)
        self.cursor_key = cursor_key
        self.method = method
        self.priority = priority
        self._extract = extract
        self.state = ContinuationState(target_count=target_count)
        self._pending: Optional[Deferred] = None

    def _round_parameters(self) -> dict[str, Any]:
        params = dict(self.base_parameters)
        params["continue"] = self.state.cursor_token or ""
        if self.state.secondary_cursor_token is not None:
            params[self.cursor_key] = self.state.secondary_cursor_token
        return params

    def _leave_init(self) -> None:
        self.state.phase = (
            ContinuationPhase.DONE if self.state.target_reached else ContinuationPhase.FETCH
        )

    def _enqueue_round(self) -> Deferred:
        priority = self.priority if self.state.rounds == 0 else True
        return self.queue.enqueue(self._round_parameters(), self.method, priority)

    def start(self) -> "ContinuationEngine":
        """
        Enqueue the first round right away.

        The round takes its place in the queue at the moment of the call
        instead of when :meth:`run` is first scheduled. Calling it again, or
        on an engine that has already started, does nothing.

        Raises:
            QueueClosedError: If the queue has been closed
        """
        if self.state.phase is ContinuationPhase.INIT:
            self._leave_init()
            if self.state.phase is ContinuationPhase.FETCH:
                self._pending = self._enqueue_round()
        return self

    async def run(self) -> ContinuationResult:
        """
        Drive the state machine to a terminal state.

        Returns:
            Gathered items (at most ``target_count``), summary fields and round count

        Raises:
            Whatever the failing round raised
        """
        state = self.state
        response: dict[str, Any] = {}

        while True:
            if state.phase is ContinuationPhase.INIT:
                self._leave_init()

            elif state.phase is ContinuationPhase.FETCH:
                handle, self._pending = self._pending, None
                try:
                    response = await (handle or self._enqueue_round())
                    raise_for_api_error(response)
                    items, summary = self._extract(response)
                except Exception:
                    state.phase = ContinuationPhase.ERROR
                    state.accumulated.clear()
                    logger.debug(
                        f"Continuation of action={self.base_parameters.get('action')} "
                        f"failed in round {state.rounds + 1}"
                    )
                    raise
                state.rounds += 1
                state.absorb(items)
                state.summary.update(summary)
                state.phase = ContinuationPhase.DECIDE

            elif state.phase is ContinuationPhase.DECIDE:
                cont = response.get("continue")
                if not cont or state.target_reached or self.cursor_key not in cont:
                    state.phase = ContinuationPhase.DONE
                else:
                    state.cursor_token = str(cont.get("continue", ""))
                    state.secondary_cursor_token = str(cont[self.cursor_key])
                    state.phase = ContinuationPhase.FETCH

            elif state.phase is ContinuationPhase.DONE:
                logger.debug(
                    f"Continuation finished after {state.rounds} round(s) "
                    f"with {len(state.accumulated)} item(s)"
                )
                return ContinuationResult(
                    items=list(state.accumulated),
                    summary=dict(state.summary),
                    rounds=state.rounds,
                )

            else:
                raise RuntimeError(f"Continuation cannot resume from {state.phase.value}")
