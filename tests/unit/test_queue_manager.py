"""Unit tests for the dispatch queue."""

import asyncio

import pytest

from mediawiki_bot.constants import HttpMethod
from mediawiki_bot.errors import DecodeError, QueueClosedError, TransportError
from mediawiki_bot.queue.manager import DispatchQueue
from mediawiki_bot.transport.mock import MockTransport

ENDPOINT = "https://wiki.example.org/w/api.php"


def echo(method, params):
    """Responder answering with the call's own marker."""
    return {"n": params.get("n"), "method": method.value}


def make_queue(min_interval: float = 0.0, latency: float = 0.0, **kwargs):
    transport = MockTransport(responder=kwargs.pop("responder", echo), latency=latency, **kwargs)
    queue = DispatchQueue(transport=transport, endpoint=ENDPOINT, min_interval_seconds=min_interval)
    return queue, transport


async def settle_all(handles):
    """Await every handle, collecting values or errors."""
    outcomes = []
    for handle in handles:
        try:
            outcomes.append(await handle)
        except Exception as e:
            outcomes.append(e)
    return outcomes


def sent_markers(transport: MockTransport) -> list[str]:
    return [call.parameters.get("n") for call in transport.calls]


@pytest.mark.asyncio
class TestDispatchQueueEnqueue:
    """Test enqueueing and result delivery."""

    async def test_resolves_with_decoded_response(self):
        """Test the handle resolves with the decoded body."""
        queue, transport = make_queue()
        result = await queue.enqueue({"action": "query", "n": "1"})
        assert result == {"n": "1", "method": "GET"}
        assert transport.calls[0].endpoint == ENDPOINT

    async def test_post_method(self):
        """Test the method reaches the transport."""
        queue, transport = make_queue()
        result = await queue.enqueue({"action": "logout"}, HttpMethod.POST)
        assert result["method"] == "POST"
        assert transport.calls[0].method == HttpMethod.POST

    async def test_parameters_copied(self):
        """Test the caller's mapping is neither mutated nor shared."""
        queue, transport = make_queue()
        params = {"action": "query", "n": "1"}
        handle = queue.enqueue(params)
        params["n"] = "changed"
        await handle
        assert transport.calls[0].parameters["n"] == "1"
        assert params == {"action": "query", "n": "changed"}

    async def test_format_json_always_sent(self):
        """Test every call asks for JSON output."""
        queue, transport = make_queue()
        await queue.enqueue({"action": "query", "format": "xml"})
        assert transport.calls[0].parameters["format"] == "json"


@pytest.mark.asyncio
class TestDispatchQueueOrdering:
    """Test priority and FIFO ordering."""

    async def test_priority_before_normal(self):
        """Test priority entries overtake waiting normal entries, FIFO within each class."""
        queue, transport = make_queue()
        handles = [
            queue.enqueue({"n": "1"}),
            queue.enqueue({"n": "2"}),
            queue.enqueue({"n": "3"}, priority=True),
            queue.enqueue({"n": "4"}, priority=True),
            queue.enqueue({"n": "5"}),
        ]
        await settle_all(handles)
        # "1" was already scheduled when the others arrived
        assert sent_markers(transport) == ["1", "3", "4", "2", "5"]

    async def test_normal_fifo(self):
        """Test normal entries go out in arrival order."""
        queue, transport = make_queue()
        handles = [queue.enqueue({"n": str(i)}) for i in range(6)]
        await settle_all(handles)
        assert sent_markers(transport) == [str(i) for i in range(6)]

    async def test_follow_up_goes_before_next_normal(self):
        """Test a priority call enqueued on completion is picked before waiting normal calls."""
        queue, transport = make_queue()
        first = queue.enqueue({"n": "A"})
        second = queue.enqueue({"n": "B"})

        await first
        follow_up = queue.enqueue({"n": "C"}, priority=True)

        await settle_all([second, follow_up])
        assert sent_markers(transport) == ["A", "C", "B"]

    async def test_scheduled_head_not_overtaken(self):
        """Test an entry waiting out the throttle keeps its place."""
        queue, transport = make_queue(min_interval=0.05)
        await queue.enqueue({"n": "X"})

        waiting = queue.enqueue({"n": "A"})
        assert queue.in_flight is True
        urgent = queue.enqueue({"n": "P"}, priority=True)

        await settle_all([waiting, urgent])
        assert sent_markers(transport) == ["X", "A", "P"]


@pytest.mark.asyncio
class TestDispatchQueueThrottling:
    """Test single-flight dispatch and spacing."""

    async def test_single_flight(self):
        """Test at most one call is outstanding at any time."""
        queue, transport = make_queue(latency=0.01)
        handles = [queue.enqueue({"n": str(i)}, priority=(i % 2 == 0)) for i in range(6)]
        await settle_all(handles)
        assert len(transport.calls) == 6
        assert transport.max_active == 1

    async def test_min_interval_between_calls(self):
        """Test each call starts at least the interval after the previous one ended."""
        interval = 0.05
        queue, transport = make_queue(min_interval=interval, latency=0.01)
        handles = [queue.enqueue({"n": str(i)}) for i in range(4)]
        await settle_all(handles)

        for previous, current in zip(transport.calls, transport.calls[1:]):
            assert current.started_at - previous.finished_at >= interval - 1e-3
            assert current.started_at - previous.started_at >= interval - 1e-3

    async def test_first_call_not_delayed(self):
        """Test an idle queue sends without waiting."""
        queue, transport = make_queue(min_interval=10.0)
        await asyncio.wait_for(queue.enqueue({"n": "1"}), timeout=1.0)
        assert len(transport.calls) == 1

    async def test_queues_are_independent(self):
        """Test one client's throttle never delays another's calls."""
        slow_queue, _ = make_queue(min_interval=10.0)
        fast_queue, fast_transport = make_queue(min_interval=10.0)

        await slow_queue.enqueue({"n": "1"})
        await asyncio.wait_for(fast_queue.enqueue({"n": "2"}), timeout=1.0)
        assert sent_markers(fast_transport) == ["2"]
        assert slow_queue.throttle.delay() > 0
        assert slow_queue.throttle.state is not fast_queue.throttle.state


@pytest.mark.asyncio
class TestDispatchQueueFailures:
    """Test failed calls."""

    async def test_failures_reject_and_queue_continues(self):
        """Test transport and decode failures reject only their own handle."""
        queue, _ = make_queue(
            responder=None,
            responses=[503, "<html>not json</html>", {"ok": True}],
        )
        status_failure = queue.enqueue({"n": "1"})
        decode_failure = queue.enqueue({"n": "2"})
        success = queue.enqueue({"n": "3"})

        with pytest.raises(TransportError) as exc_info:
            await status_failure
        assert exc_info.value.status_code == 503

        with pytest.raises(DecodeError):
            await decode_failure

        assert await success == {"ok": True}

        stats = queue.get_stats()
        assert stats.dispatched_total == 3
        assert stats.failed_total == 2

    async def test_transport_exception_rejects(self):
        """Test an exception raised by the transport reaches the handle unchanged."""
        error = TransportError("connection refused", cause=ConnectionRefusedError())
        queue, _ = make_queue(responder=None, responses=[error, {"ok": True}])

        with pytest.raises(TransportError) as exc_info:
            await queue.enqueue({"n": "1"})
        assert exc_info.value is error
        assert await queue.enqueue({"n": "2"}) == {"ok": True}

    async def test_api_error_payload_resolves(self):
        """Test a wiki error object is a well-formed response at this layer."""
        payload = {"error": {"code": "badtoken", "info": "Invalid token"}}
        queue, _ = make_queue(responder=None, responses=[payload])
        assert await queue.enqueue({"action": "edit"}) == payload


@pytest.mark.asyncio
class TestDispatchQueueLifecycle:
    """Test stats, draining and closing."""

    async def test_pending_count_never_grows_without_enqueue(self):
        """Test the pending count only shrinks as calls complete."""
        queue, _ = make_queue(latency=0.005)
        seen = []
        handles = []
        for i in range(5):
            handle = queue.enqueue({"n": str(i)})
            handle.on_complete(lambda _v: seen.append(len(queue)))
            handles.append(handle)

        await settle_all(handles)
        assert seen == sorted(seen, reverse=True)
        assert len(queue) == 0

    async def test_stats(self):
        """Test stats reflect queue contents."""
        queue, _ = make_queue(min_interval=0.25, latency=0.01)
        queue.enqueue({"n": "1"})
        queue.enqueue({"n": "2"})
        queue.enqueue({"n": "3"}, priority=True)

        stats = queue.get_stats()
        assert stats.pending == 2
        assert stats.priority_pending == 1
        assert stats.in_flight is True
        assert stats.min_interval_seconds == 0.25
        assert stats.dispatched_total == 0

        queue.close()
        await queue.drain()

    async def test_drain_waits_for_all(self):
        """Test drain returns once every queued call has settled."""
        queue, transport = make_queue(latency=0.005)
        handles = [queue.enqueue({"n": str(i)}) for i in range(3)]

        await queue.drain()

        assert all(handle.done() for handle in handles)
        assert len(transport.calls) == 3
        assert queue.get_stats().dispatched_total == 3

    async def test_drain_idle_queue(self):
        """Test draining an unused queue returns at once."""
        queue, _ = make_queue()
        await asyncio.wait_for(queue.drain(), timeout=1.0)

    async def test_closed_queue_rejects_new_calls(self):
        """Test closing refuses new entries but finishes queued ones."""
        queue, transport = make_queue(latency=0.005)
        queued = queue.enqueue({"n": "1"})

        queue.close()
        assert queue.closed is True
        with pytest.raises(QueueClosedError):
            queue.enqueue({"n": "2"})

        assert await queued == {"n": "1", "method": "GET"}
        assert sent_markers(transport) == ["1"]


class TestDispatchQueueWithoutLoop:
    """Test enqueueing outside a running event loop."""

    def test_enqueue_without_loop_leaves_queue_untouched(self):
        """Test a refused call neither stays queued nor marks a call in flight."""
        queue, transport = make_queue()

        with pytest.raises(RuntimeError):
            queue.enqueue({"n": "1"})
        with pytest.raises(RuntimeError):
            queue.enqueue({"n": "2"}, priority=True)

        assert len(queue) == 0
        assert queue.in_flight is False
        assert transport.calls == []

        stats = queue.get_stats()
        assert stats.pending == 0
        assert stats.in_flight is False

    def test_queue_usable_after_refused_call(self):
        """Test a queue that refused a call outside the loop works inside one."""
        queue, transport = make_queue()
        with pytest.raises(RuntimeError):
            queue.enqueue({"n": "lost"})

        async def send():
            return await asyncio.wait_for(queue.enqueue({"n": "1"}), timeout=1.0)

        result = asyncio.run(send())
        assert result == {"n": "1", "method": "GET"}
        assert sent_markers(transport) == ["1"]
