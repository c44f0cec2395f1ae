"""
Single-assignment completion handle with multicast callbacks.
"""
import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Generator, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DeferredState(str, Enum):
    """Lifecycle of a Deferred."""
    PENDING = "pending"
    FULFILLED = "fulfilled"
    REJECTED = "rejected"


class Deferred(Generic[T]):
    """
    A future that settles exactly once, to a value or to an error.

    Success and error callbacks may be attached any number of times, before or
    after settlement. Callbacks attached before settlement fire when it
    happens, in registration order. Callbacks attached afterwards are
    delivered on the next turn of the event loop so that attaching never
    re-enters the code that settled the handle.

    The handle is also awaitable: ``await handle`` returns the value or raises
    the error.
    """

    def __init__(self) -> None:
        self._state = DeferredState.PENDING
        self._value: Optional[T] = None
        self._error: Optional[BaseException] = None
        self._success_callbacks: list[Callable[[T], Any]] = []
        self._error_callbacks: list[Callable[[BaseException], Any]] = []
        self._task: Optional[asyncio.Future] = None

    @classmethod
    def from_coroutine(cls, coro: Awaitable[T]) -> "Deferred[T]":
        """
        Run a coroutine as a task and settle a new handle with its outcome.

        Must be called from a running event loop.
        """
        deferred: Deferred[T] = cls()
        task = asyncio.ensure_future(coro)
        # Hold a reference so the task is not garbage collected mid-flight
        deferred._task = task

        def _settle(finished: asyncio.Future) -> None:
            if finished.cancelled():
                deferred.reject(asyncio.CancelledError())
            elif finished.exception() is not None:
                deferred.reject(finished.exception())
            else:
                deferred.resolve(finished.result())

        task.add_done_callback(_settle)
        return deferred

    @property
    def state(self) -> DeferredState:
        return self._state

    @property
    def value(self) -> Optional[T]:
        return self._value

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    def done(self) -> bool:
        """Return True once the handle has been resolved or rejected."""
        return self._state is not DeferredState.PENDING

    def resolve(self, value: T) -> bool:
        """
        Fulfil the handle.

        Returns:
            True if this call settled the handle, False if it was already settled
        """
        if self.done():
            return False
        self._state = DeferredState.FULFILLED
        self._value = value
        callbacks = self._success_callbacks
        self._success_callbacks = []
        self._error_callbacks = []
        for callback in callbacks:
            self._invoke(callback, value)
        return True

    def reject(self, error: BaseException) -> bool:
        """
        Reject the handle.

        Returns:
            True if this call settled the handle, False if it was already settled
        """
        if self.done():
            return False
        self._state = DeferredState.REJECTED
        self._error = error
        callbacks = self._error_callbacks
        self._success_callbacks = []
        self._error_callbacks = []
        for callback in callbacks:
            self._invoke(callback, error)
        return True

    def on_complete(self, callback: Callable[[T], Any]) -> "Deferred[T]":
        """Register a callback for the success value. Returns self for chaining."""
        if self._state is DeferredState.PENDING:
            self._success_callbacks.append(callback)
        elif self._state is DeferredState.FULFILLED:
            self._deliver_later(callback, self._value)
        return self

    def on_error(self, callback: Callable[[BaseException], Any]) -> "Deferred[T]":
        """Register a callback for the error. Returns self for chaining."""
        if self._state is DeferredState.PENDING:
            self._error_callbacks.append(callback)
        elif self._state is DeferredState.REJECTED:
            self._deliver_later(callback, self._error)
        return self

    def _deliver_later(self, callback: Callable[[Any], Any], outcome: Any) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop to defer to, so nothing can be mid-settlement
            self._invoke(callback, outcome)
            return
        loop.call_soon(self._invoke, callback, outcome)

    @staticmethod
    def _invoke(callback: Callable[[Any], Any], outcome: Any) -> None:
        try:
            callback(outcome)
        except Exception as e:
            logger.error(f"Deferred callback {callback!r} raised: {e}", exc_info=True)

    def __await__(self) -> Generator[Any, None, T]:
        if self._state is DeferredState.PENDING:
            future = asyncio.get_running_loop().create_future()

            def _set_result(value: T) -> None:
                if not future.done():
                    future.set_result(value)

            def _set_exception(error: BaseException) -> None:
                if not future.done():
                    future.set_exception(error)

            self.on_complete(_set_result)
            self.on_error(_set_exception)
            return (yield from future.__await__())

        if self._state is DeferredState.REJECTED:
            raise self._error
        return self._value

    def __repr__(self) -> str:
        return f"<Deferred {self._state.value}>"
