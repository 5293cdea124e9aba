"""
Tests for the BingeFreeTimer state machine.
"""

import asyncio
import unittest

from app.features.binge_timer.domain import (
    IdleState,
    PersistenceOperation,
    RunningState,
    TimerStatus,
)
from app.features.binge_timer.errors import PersistenceUnavailable
from app.features.binge_timer.service import BingeFreeTimer
from app.features.binge_timer.ticker import DisplayTicker
from app.models.timer_record import TimerRecord

from tests.fakes import FakeClock, FakeScheduler, InMemoryGateway, T0


class TimerTestCase(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.clock = FakeClock()
        self.scheduler = FakeScheduler()
        self.gateway = InMemoryGateway()
        self.timer = self.make_timer(self.gateway)

    def make_timer(self, gateway):
        ticker = DisplayTicker(self.scheduler, self.clock, interval=0.01)
        return BingeFreeTimer(gateway, ticker, self.clock)


class TestStart(TimerTestCase):

    async def test_start_from_idle(self):
        result = await self.timer.start()

        self.assertTrue(result.changed)
        self.assertTrue(result.persisted)
        self.assertEqual(self.timer.state, RunningState(start_time=T0))
        self.assertEqual(self.gateway.writes(), ["save_start"])
        self.assertTrue(self.gateway.record.is_timer_running)
        self.assertEqual(self.gateway.record.timer_start_time, T0)
        self.assertTrue(self.timer.ticker.running)

    async def test_double_start_keeps_first_start_time(self):
        await self.timer.start()
        self.clock.advance(30)

        result = await self.timer.start()

        self.assertFalse(result.changed)
        self.assertEqual(result.persistence, [])
        self.assertEqual(self.timer.state.start_time, T0)
        self.assertEqual(self.gateway.writes(), ["save_start"])
        self.assertEqual(self.gateway.record.timer_start_time, T0)

    async def test_concurrent_starts_persist_once(self):
        results = await asyncio.gather(self.timer.start(), self.timer.start())

        self.assertEqual(sorted(r.changed for r in results), [False, True])
        self.assertEqual(self.gateway.writes(), ["save_start"])

    async def test_failed_save_keeps_local_transition(self):
        self.gateway.fail(PersistenceOperation.SAVE_START)

        result = await self.timer.start()

        self.assertTrue(result.changed)
        self.assertFalse(result.persisted)
        self.assertEqual(result.persistence[0].error, "store offline")
        self.assertTrue(self.timer.is_running)
        self.assertIsNone(self.gateway.record)


class TestStop(TimerTestCase):

    async def test_stop_while_idle_is_noop(self):
        result = await self.timer.stop()

        self.assertFalse(result.changed)
        self.assertEqual(self.timer.state, IdleState())
        self.assertEqual(self.gateway.writes(), [])

    async def test_stop_records_elapsed_and_clears_start(self):
        await self.timer.start()
        self.clock.advance(5)

        result = await self.timer.stop()

        self.assertTrue(result.changed)
        self.assertEqual(result.elapsed, 5.0)
        self.assertEqual(self.timer.state, IdleState(elapsed_at_stop=5.0))
        self.assertFalse(self.gateway.record.is_timer_running)
        self.assertIsNone(self.gateway.record.timer_start_time)
        self.assertEqual(self.gateway.record.elapsed_time_at_stop, 5.0)
        self.assertFalse(self.timer.ticker.running)
        self.assertEqual(self.scheduler.active, [])

    async def test_second_stop_is_noop(self):
        await self.timer.start()
        await self.timer.stop()

        result = await self.timer.stop()

        self.assertFalse(result.changed)
        self.assertEqual(self.gateway.writes(), ["save_start", "save_stop"])

    async def test_idle_duration_round_trips_through_reconcile(self):
        await self.timer.start()
        self.clock.advance(12.34)
        await self.timer.stop()
        stored = self.gateway.record.elapsed_time_at_stop

        self.clock.advance(500)
        fresh = self.make_timer(self.gateway)
        reconciled = await fresh.reconcile()

        self.assertEqual(stored, 12.34)
        self.assertEqual(reconciled.elapsed, stored)
        self.assertEqual(fresh.state, IdleState(elapsed_at_stop=stored))


class TestStopAndLog(TimerTestCase):

    async def test_logs_exactly_one_period(self):
        await self.timer.start()
        self.clock.advance(10)

        result = await self.timer.stop_and_log()

        self.assertTrue(result.changed)
        self.assertTrue(result.persisted)
        self.assertEqual(len(self.gateway.periods), 1)
        period = self.gateway.periods[0]
        self.assertAlmostEqual(period.duration, 10.0, delta=0.05)
        self.assertEqual(period.start_time, T0)
        self.assertEqual((period.end_time - period.start_time).total_seconds(), period.duration)
        self.assertEqual(period.user_id, "user-1")
        self.assertIsNone(self.gateway.record.timer_start_time)
        self.assertFalse(self.gateway.record.is_timer_running)
        self.assertEqual(self.gateway.writes(), ["save_start", "save_stop", "append_period"])

    async def test_transition_happens_before_io(self):
        await self.timer.start()
        self.clock.advance(3)
        observed = []

        def before_write(operation):
            observed.append((operation, self.timer.state.status, self.timer.ticker.running))

        self.gateway.before_write = before_write
        await self.timer.stop_and_log()

        self.assertEqual(observed, [
            ("save_stop", TimerStatus.IDLE, False),
            ("append_period", TimerStatus.IDLE, False),
        ])

    async def test_append_failure_does_not_replay_save_stop(self):
        self.gateway.fail(PersistenceOperation.APPEND_PERIOD)
        await self.timer.start()
        self.clock.advance(8)

        result = await self.timer.stop_and_log()

        self.assertTrue(result.changed)
        self.assertFalse(result.persisted)
        self.assertEqual([r.success for r in result.persistence], [True, False])
        self.assertEqual(self.gateway.writes(), ["save_start", "save_stop", "append_period"])
        self.assertEqual(self.gateway.periods, [])
        self.assertEqual(self.timer.state, IdleState(elapsed_at_stop=8.0))

    async def test_save_stop_failure_still_appends_period(self):
        self.gateway.fail(PersistenceOperation.SAVE_STOP)
        await self.timer.start()
        self.clock.advance(4)

        result = await self.timer.stop_and_log()

        self.assertEqual([r.success for r in result.persistence], [False, True])
        self.assertEqual(len(self.gateway.periods), 1)

    async def test_log_while_idle_is_noop(self):
        result = await self.timer.stop_and_log()

        self.assertFalse(result.changed)
        self.assertIsNone(result.period)
        self.assertEqual(self.gateway.writes(), [])

    async def test_period_listeners_run_after_logging(self):
        received = []

        async def on_period(period):
            received.append((period.id, self.timer.state.status))

        async def broken(period):
            raise RuntimeError("quote service down")

        self.timer.add_period_listener(broken)
        self.timer.add_period_listener(on_period)
        await self.timer.start()
        self.clock.advance(60)

        result = await self.timer.stop_and_log()

        self.assertEqual(received, [(result.period.id, TimerStatus.IDLE)])

    async def test_period_listeners_skipped_when_append_fails(self):
        received = []

        async def on_period(period):
            received.append(period)

        self.timer.add_period_listener(on_period)
        self.gateway.fail(PersistenceOperation.APPEND_PERIOD)
        await self.timer.start()
        await self.timer.stop_and_log()

        self.assertEqual(received, [])


class TestReset(TimerTestCase):

    async def test_reset_while_running(self):
        await self.timer.start()
        self.clock.advance(20)

        result = await self.timer.reset()

        self.assertTrue(result.changed)
        self.assertEqual(self.timer.state, IdleState(elapsed_at_stop=0.0))
        self.assertEqual(self.gateway.record.elapsed_time_at_stop, 0.0)
        self.assertIsNone(self.gateway.record.timer_start_time)
        self.assertFalse(self.timer.ticker.running)

    async def test_reset_clears_stopped_duration(self):
        await self.timer.start()
        self.clock.advance(20)
        await self.timer.stop()

        await self.timer.reset()

        self.assertEqual(self.timer.elapsed(), 0.0)
        self.assertEqual(self.gateway.writes(), ["save_start", "save_stop", "save_stop"])

    async def test_reset_when_already_cleared_is_noop(self):
        result = await self.timer.reset()

        self.assertFalse(result.changed)
        self.assertEqual(self.gateway.writes(), [])


class TestLifecycle(TimerTestCase):

    async def test_init_resumes_running_record(self):
        self.gateway.record = TimerRecord(user_id="user-1", timer_start_time=T0, is_timer_running=True)
        self.clock.advance(3600)

        result = await self.timer.init()

        self.assertEqual(result.elapsed, 3600.0)
        self.assertTrue(self.timer.is_running)
        self.assertTrue(self.timer.ticker.running)
        self.assertEqual(self.timer.snapshot().display, "01:00:00.00")

    async def test_init_runs_once(self):
        await self.timer.init()
        await self.timer.init()

        self.assertEqual(self.gateway.calls, ["fetch"])

    async def test_init_failure_leaves_timer_idle(self):
        self.gateway.fetch_error = PersistenceUnavailable("offline")

        result = await self.timer.init()

        self.assertIsNone(result)
        self.assertFalse(self.timer.initialized)
        self.assertEqual(self.timer.state, IdleState())

    async def test_init_retries_after_failure(self):
        self.gateway.fetch_error = PersistenceUnavailable("offline")
        await self.timer.init()
        self.gateway.fetch_error = None

        result = await self.timer.init()

        self.assertIsNotNone(result)
        self.assertTrue(self.timer.initialized)
        self.assertEqual(self.gateway.calls, ["fetch", "fetch"])

    async def test_start_after_failed_init_resumes_stored_interval(self):
        self.gateway.record = TimerRecord(user_id="user-1", timer_start_time=T0, is_timer_running=True)
        self.gateway.fetch_error = PersistenceUnavailable("offline")
        self.clock.advance(3600)
        await self.timer.init()
        self.gateway.fetch_error = None

        result = await self.timer.start()

        self.assertFalse(result.changed)
        self.assertEqual(self.timer.state, RunningState(start_time=T0))
        self.assertEqual(self.timer.elapsed(), 3600.0)
        self.assertEqual(self.gateway.writes(), [])
        self.assertEqual(self.gateway.record.timer_start_time, T0)

    async def test_transitions_refused_while_store_unreadable(self):
        self.gateway.record = TimerRecord(user_id="user-1", timer_start_time=T0, is_timer_running=True)
        self.gateway.fetch_error = PersistenceUnavailable("offline")
        await self.timer.init()

        with self.assertRaises(PersistenceUnavailable):
            await self.timer.start()
        with self.assertRaises(PersistenceUnavailable):
            await self.timer.reset()

        self.assertEqual(self.gateway.writes(), [])
        self.assertEqual(self.gateway.record.timer_start_time, T0)
        self.assertFalse(self.timer.initialized)

    async def test_concurrent_init_reads_once(self):
        await asyncio.gather(self.timer.init(), self.timer.init())

        self.assertEqual(self.gateway.calls, ["fetch"])

    async def test_explicit_reconcile_propagates_failure(self):
        self.gateway.fetch_error = PersistenceUnavailable("offline")

        with self.assertRaises(PersistenceUnavailable):
            await self.timer.reconcile()

    async def test_reconcile_to_idle_stops_ticker(self):
        await self.timer.start()
        self.gateway.record = TimerRecord(user_id="user-1", is_timer_running=False, elapsed_time_at_stop=42.0)

        await self.timer.reconcile()

        self.assertFalse(self.timer.ticker.running)
        self.assertEqual(self.timer.elapsed(), 42.0)

    async def test_shutdown_cancels_ticker(self):
        await self.timer.start()

        await self.timer.shutdown()

        self.assertFalse(self.timer.ticker.running)
        self.assertEqual(self.scheduler.active, [])

    async def test_elapsed_follows_clock_while_running(self):
        await self.timer.start()
        self.clock.advance(1.5)

        snapshot = self.timer.snapshot()

        self.assertEqual(snapshot.status, TimerStatus.RUNNING)
        self.assertEqual(snapshot.elapsed, 1.5)
        self.assertEqual(snapshot.display, "00:01.50")


if __name__ == "__main__":
    unittest.main()
