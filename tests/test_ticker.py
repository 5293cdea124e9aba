"""
Tests for the display ticker and the asyncio scheduler behind it.
"""

import asyncio
import unittest

from app.features.binge_timer.domain import TimerSnapshot, TimerStatus
from app.features.binge_timer.scheduler import AsyncioScheduler
from app.features.binge_timer.ticker import DisplayTicker

from tests.fakes import FakeClock, FakeScheduler, T0


class TestDisplayTicker(unittest.TestCase):

    def setUp(self):
        self.clock = FakeClock()
        self.scheduler = FakeScheduler()
        self.ticker = DisplayTicker(self.scheduler, self.clock, interval=0.01)
        self.received = []
        self.ticker.subscribe(self.received.append)

    def test_start_publishes_immediately(self):
        self.ticker.start(T0)

        self.assertTrue(self.ticker.running)
        self.assertEqual(len(self.received), 1)
        self.assertEqual(self.received[0].display, "00:00.00")
        self.assertEqual(self.scheduler.tasks[0].interval, 0.01)

    def test_ticks_recompute_from_wall_clock(self):
        self.ticker.start(T0)

        # Many ticks without the clock moving must not accumulate anything
        self.scheduler.run_pending(times=50)
        self.assertEqual(self.ticker.latest.elapsed, 0.0)

        self.clock.advance(65.23)
        self.scheduler.run_pending()
        self.assertEqual(self.ticker.latest.elapsed, 65.23)
        self.assertEqual(self.ticker.latest.display, "01:05.23")
        self.assertEqual(self.ticker.latest.status, TimerStatus.RUNNING)

    def test_stop_cancels_immediately(self):
        self.ticker.start(T0)
        self.ticker.stop()
        count = len(self.received)

        self.clock.advance(5)
        self.scheduler.run_pending(times=3)

        self.assertFalse(self.ticker.running)
        self.assertEqual(self.scheduler.active, [])
        self.assertEqual(len(self.received), count)

    def test_restart_replaces_previous_task(self):
        self.ticker.start(T0)
        self.ticker.start(T0)

        self.assertEqual(len(self.scheduler.active), 1)

    def test_failing_listener_does_not_block_others(self):
        def broken(snapshot):
            raise RuntimeError("boom")

        ticker = DisplayTicker(self.scheduler, self.clock, interval=0.01)
        ticker.subscribe(broken)
        ticker.subscribe(self.received.append)

        ticker.start(T0)

        self.assertEqual(len(self.received), 1)

    def test_unsubscribe(self):
        unsubscribe = self.ticker.subscribe(lambda snapshot: None)
        unsubscribe()
        unsubscribe()

        self.ticker.publish(TimerSnapshot(status=TimerStatus.IDLE, elapsed=0.0, display="00:00.00"))

        self.assertEqual(len(self.received), 1)


class TestAsyncioScheduler(unittest.IsolatedAsyncioTestCase):

    async def test_repeats_until_cancelled(self):
        calls = []
        task = AsyncioScheduler().call_repeating(0.005, lambda: calls.append(1))

        await asyncio.sleep(0.05)
        task.cancel()
        count = len(calls)
        await asyncio.sleep(0.03)

        self.assertGreater(count, 1)
        self.assertEqual(len(calls), count)
        self.assertTrue(task.cancelled)

    async def test_callback_error_keeps_task_alive(self):
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("first tick fails")

        task = AsyncioScheduler().call_repeating(0.005, flaky)
        await asyncio.sleep(0.05)
        task.cancel()

        self.assertGreater(len(calls), 1)

    async def test_rejects_non_positive_interval(self):
        with self.assertRaises(ValueError):
            AsyncioScheduler().call_repeating(0, lambda: None)


if __name__ == "__main__":
    unittest.main()
