# ============================================================================
# POLLER TESTS
# ============================================================================
# STATUS: Tests - Concurrency-bounded polling loop
# PURPOSE: Verify slot accounting, drain on stop, error isolation
# CREATED: 18 OCT 2026
# ============================================================================
"""
Poller Tests

Covers:
1. Never more than concurrency executions in flight
2. poll_fn is asked for the number of free slots
3. Over-delivered items are queued; stop_polling drains queued and in-flight work
4. start/stop idempotence and state transitions
5. poll_fn and execute_fn errors do not stop the loop
6. update_options diff semantics

Run with:
    pytest tests/test_poller.py -v
"""

import asyncio

import pytest

from worker.poller import Poller, PollerOptions, PollerState


# ============================================================================
# HELPERS
# ============================================================================

class Source:
    """Hands out numbered items, recording each requested count."""

    def __init__(self, total=100):
        self.remaining = total
        self.requested = []
        self.next_id = 0

    async def poll(self, count):
        self.requested.append(count)
        n = min(count, self.remaining)
        self.remaining -= n
        items = list(range(self.next_id, self.next_id + n))
        self.next_id += n
        return items


# ============================================================================
# CONCURRENCY
# ============================================================================

class TestConcurrencyBound:

    def test_in_flight_never_exceeds_concurrency(self):
        source = Source(total=20)
        active = 0
        peak = 0
        done = []

        async def execute(item):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.02)
            active -= 1
            done.append(item)

        async def run():
            poller = Poller("t", source.poll, execute, PollerOptions(concurrency=3, poll_interval_ms=1))
            poller.start_polling()
            while len(done) < 20:
                await asyncio.sleep(0.01)
            await poller.stop_polling()

        asyncio.run(run())

        assert peak <= 3
        assert sorted(done) == list(range(20))
        assert all(1 <= count <= 3 for count in source.requested)

    def test_no_poll_when_no_slots(self):
        release = None
        source = Source(total=10)

        async def execute(item):
            await release.wait()

        async def run():
            nonlocal release
            release = asyncio.Event()
            poller = Poller("t", source.poll, execute, PollerOptions(concurrency=2, poll_interval_ms=1))
            poller.start_polling()
            await asyncio.sleep(0.05)
            polls_while_full = len(source.requested)
            await asyncio.sleep(0.05)
            assert poller.in_flight == 2
            assert len(source.requested) == polls_while_full
            release.set()
            await poller.stop_polling()

        asyncio.run(run())
        assert source.requested[0] == 2

    def test_over_delivery_is_queued_within_bound(self):
        polls = []
        executed = []
        active = 0
        peak = 0

        async def poll(count):
            polls.append(count)
            return [1, 2, 3, 4, 5] if len(polls) == 1 else []

        async def execute(item):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.005)
            active -= 1
            executed.append(item)

        async def run():
            poller = Poller("t", poll, execute, PollerOptions(concurrency=2, poll_interval_ms=1))
            poller.start_polling()
            while len(executed) < 5:
                await asyncio.sleep(0.005)
            await poller.stop_polling()

        asyncio.run(run())
        assert sorted(executed) == [1, 2, 3, 4, 5]
        assert peak <= 2
        assert polls[0] == 2

    def test_stop_drains_queued_items(self):
        executed = []

        async def poll(count):
            return ["a", "b", "c"] if not executed else []

        async def execute(item):
            await asyncio.sleep(0.01)
            executed.append(item)

        async def run():
            poller = Poller("t", poll, execute, PollerOptions(concurrency=1, poll_interval_ms=1000))
            poller.start_polling()
            await asyncio.sleep(0.001)
            await poller.stop_polling()
            assert poller.stats["queued"] == 0

        asyncio.run(run())
        assert executed == ["a", "b", "c"]


# ============================================================================
# LIFECYCLE
# ============================================================================

class TestLifecycle:

    def test_stop_drains_in_flight(self):
        finished = []

        async def poll(count):
            return ["slow"] if not finished and count else []

        async def execute(item):
            await asyncio.sleep(0.1)
            finished.append(item)

        async def run():
            poller = Poller("t", poll, execute, PollerOptions(concurrency=1, poll_interval_ms=1))
            poller.start_polling()
            await asyncio.sleep(0.02)
            assert poller.in_flight == 1
            await poller.stop_polling()
            assert poller.in_flight == 0
            assert poller.state == PollerState.IDLE

        asyncio.run(run())
        assert finished == ["slow"]

    def test_no_polls_after_stop(self):
        source = Source(total=0)

        async def execute(item):
            pass

        async def run():
            poller = Poller("t", source.poll, execute, PollerOptions(poll_interval_ms=1))
            poller.start_polling()
            await asyncio.sleep(0.02)
            await poller.stop_polling()
            count = len(source.requested)
            await asyncio.sleep(0.02)
            return count

        count = asyncio.run(run())
        assert len(source.requested) == count

    def test_start_is_idempotent(self):
        source = Source(total=0)

        async def execute(item):
            pass

        async def run():
            poller = Poller("t", source.poll, execute, PollerOptions(poll_interval_ms=1000))
            poller.start_polling()
            first_task = poller._loop_task
            poller.start_polling()
            assert poller._loop_task is first_task
            assert poller.is_polling
            await asyncio.sleep(0.01)
            await poller.stop_polling()

        asyncio.run(run())
        assert source.requested == [1]

    def test_stop_when_idle_is_noop(self):
        async def run():
            poller = Poller("t", Source().poll, lambda item: asyncio.sleep(0))
            await poller.stop_polling()
            assert poller.state == PollerState.IDLE

        asyncio.run(run())

    def test_stop_wakes_long_sleep(self):
        async def run():
            poller = Poller("t", Source(total=0).poll, lambda item: asyncio.sleep(0),
                            PollerOptions(poll_interval_ms=60_000))
            poller.start_polling()
            await asyncio.sleep(0.01)
            await asyncio.wait_for(poller.stop_polling(), timeout=1)

        asyncio.run(run())

    def test_restart_after_stop(self):
        source = Source(total=0)

        async def run():
            poller = Poller("t", source.poll, lambda item: asyncio.sleep(0),
                            PollerOptions(poll_interval_ms=1000))
            poller.start_polling()
            await asyncio.sleep(0.01)
            await poller.stop_polling()
            poller.start_polling()
            await asyncio.sleep(0.01)
            assert poller.is_polling
            await poller.stop_polling()

        asyncio.run(run())
        assert len(source.requested) == 2


# ============================================================================
# FAILURES
# ============================================================================

class TestFailureIsolation:

    def test_poll_error_is_logged_and_loop_continues(self, caplog):
        calls = []

        async def poll(count):
            calls.append(count)
            if len(calls) == 1:
                raise ConnectionError("server down")
            return []

        async def run():
            poller = Poller("t", poll, lambda item: asyncio.sleep(0), PollerOptions(poll_interval_ms=1))
            poller.start_polling()
            while len(calls) < 3:
                await asyncio.sleep(0.005)
            await poller.stop_polling()
            return poller.stats

        stats = asyncio.run(run())
        assert stats["poll_errors"] == 1
        assert "server down" in caplog.text

    def test_execute_error_does_not_reach_loop(self):
        source = Source(total=3)
        seen = []

        async def execute(item):
            seen.append(item)
            raise ValueError("bad item")

        async def run():
            poller = Poller("t", source.poll, execute, PollerOptions(poll_interval_ms=1))
            poller.start_polling()
            while len(seen) < 3:
                await asyncio.sleep(0.005)
            assert poller.is_polling
            await poller.stop_polling()

        asyncio.run(run())
        assert seen == [0, 1, 2]

    def test_none_from_poll_is_empty(self):
        async def poll(count):
            return None

        async def run():
            poller = Poller("t", poll, lambda item: asyncio.sleep(0), PollerOptions(poll_interval_ms=1))
            poller.start_polling()
            await asyncio.sleep(0.02)
            await poller.stop_polling()
            return poller.stats

        stats = asyncio.run(run())
        assert stats["dispatched"] == 0
        assert stats["poll_errors"] == 0


# ============================================================================
# OPTIONS
# ============================================================================

class TestUpdateOptions:

    def test_same_values_are_noop(self):
        poller = Poller("t", Source().poll, lambda item: asyncio.sleep(0),
                        PollerOptions(concurrency=2, poll_interval_ms=100))
        before = poller.options

        assert poller.update_options(concurrency=2, poll_interval_ms=100) is False
        assert poller.options is before

    def test_changes_are_applied(self):
        poller = Poller("t", Source().poll, lambda item: asyncio.sleep(0))

        assert poller.update_options(concurrency=4) is True
        assert poller.options.concurrency == 4
        assert poller.options.poll_interval_ms == 100

    def test_invalid_options_rejected(self):
        with pytest.raises(ValueError):
            PollerOptions(concurrency=0)
        with pytest.raises(ValueError):
            PollerOptions(poll_interval_ms=-1)
