import time
import unittest
from datetime import datetime, timezone
from decimal import Decimal

from chainseries.adapters.chain.static_chain_adapter import StaticChainAdapter
from chainseries.core.errors import InvalidTimeFrame, SnapshotNotReady, TransientNetworkError
from chainseries.core.models import TimeFrameConfig, TimeFrameKey
from chainseries.services.cache_store import CacheStore
from chainseries.services.scheduler import RefreshScheduler
from chainseries.services.series_generator import SeriesGenerator

NOW = datetime(2026, 10, 18, tzinfo=timezone.utc)
KEYS = [TimeFrameKey.ONE_DAY, TimeFrameKey.SEVEN_DAYS]


class _Clock:
    def __init__(self) -> None:
        self.now = 10_000.0

    def __call__(self) -> float:
        return self.now


class _FlakyChain(StaticChainAdapter):
    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.down = False

    def get_current_block_height(self):
        if self.down:
            raise TransientNetworkError("connection refused")
        return super().get_current_block_height()


def _frames(key, now):
    return {
        TimeFrameKey.ONE_DAY: TimeFrameConfig(TimeFrameKey.ONE_DAY, 1, 2, 10),
        TimeFrameKey.SEVEN_DAYS: TimeFrameConfig(TimeFrameKey.SEVEN_DAYS, 7, 2, 100),
    }[key]


def _store(chain, clock, frames=_frames) -> CacheStore:
    gen = SeriesGenerator(chain, "0xaaaa", "0xcccc", clock=lambda: NOW)
    return CacheStore(gen, time_frames=frames, freshness_window=1800, clock=clock, keys=KEYS)


class CacheStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self.balances = {980: Decimal(1), 990: Decimal(2), 1000: Decimal(4), 800: Decimal(0), 900: Decimal(1)}
        self.chain = _FlakyChain(current_block=1000, balances=self.balances, current_balance=Decimal(4))
        self.clock = _Clock()

    def test_starts_empty(self) -> None:
        store = _store(self.chain, self.clock)
        self.assertEqual(store.snapshot_map(), {k: None for k in KEYS})
        with self.assertRaises(SnapshotNotReady):
            store.get("1d")
        self.assertIsNone(store.last_refresh_at)

    def test_refresh_populates_every_key(self) -> None:
        store = _store(self.chain, self.clock)
        self.assertTrue(store.refresh())

        self.assertEqual(list(store.get("1d").supply_change), [Decimal(1), Decimal(2)])
        self.assertEqual(list(store.get(TimeFrameKey.SEVEN_DAYS).supply_change), [Decimal(1), Decimal(3)])
        self.assertEqual(store.last_refresh_at, 10_000.0)

    def test_second_refresh_within_window_is_skipped(self) -> None:
        store = _store(self.chain, self.clock)
        store.refresh()
        calls = len(self.chain.calls)

        self.clock.now += 60
        self.assertFalse(store.refresh())
        self.assertEqual(len(self.chain.calls), calls)

        self.clock.now += 1800
        self.assertTrue(store.refresh())
        self.assertGreater(len(self.chain.calls), calls)

    def test_force_bypasses_guard(self) -> None:
        store = _store(self.chain, self.clock)
        store.refresh()
        self.assertTrue(store.refresh(force=True))

    def test_outage_keeps_previous_snapshot(self) -> None:
        store = _store(self.chain, self.clock)
        store.refresh()
        before = store.get("1d")

        self.chain.down = True
        self.clock.now += 1800
        with self.assertLogs("chainseries.services.cache_store", level="ERROR"):
            self.assertTrue(store.refresh())

        self.assertIs(store.get("1d"), before)
        # the failed attempt still counts for the guard
        self.assertEqual(store.last_refresh_at, self.clock.now)
        self.clock.now += 60
        self.assertFalse(store.refresh())

    def test_failing_key_leaves_others_updated(self) -> None:
        def frames(key, now):
            if key is TimeFrameKey.SEVEN_DAYS:
                return TimeFrameConfig(TimeFrameKey.SEVEN_DAYS, 7, 2, 5000)
            return _frames(key, now)

        store = _store(self.chain, self.clock, frames=frames)
        with self.assertLogs("chainseries.services.cache_store", level="ERROR"):
            store.refresh()

        self.assertIsNotNone(store.get("1d"))
        with self.assertRaises(SnapshotNotReady):
            store.get("7d")

    def test_time_frame_build_failure_only_skips_that_key(self) -> None:
        def frames(key, now):
            if key is TimeFrameKey.ONE_DAY:
                raise InvalidTimeFrame("degenerate window")
            return _frames(key, now)

        store = _store(self.chain, self.clock, frames=frames)
        with self.assertLogs("chainseries.services.cache_store", level="ERROR"):
            self.assertTrue(store.refresh())

        with self.assertRaises(SnapshotNotReady):
            store.get("1d")
        self.assertEqual(list(store.get("7d").supply_change), [Decimal(1), Decimal(3)])

    def test_snapshot_map_is_a_copy(self) -> None:
        store = _store(self.chain, self.clock)
        store.refresh()
        view = store.snapshot_map()
        view[TimeFrameKey.ONE_DAY] = None
        self.assertIsNotNone(store.get("1d"))

    def test_unconfigured_key(self) -> None:
        store = _store(self.chain, self.clock)
        with self.assertRaises(InvalidTimeFrame):
            store.get("30d")
        with self.assertRaises(InvalidTimeFrame):
            store.get("bogus")


class RefreshSchedulerTests(unittest.TestCase):
    def test_tick_refreshes_and_survives_errors(self) -> None:
        class _Boom:
            def __init__(self) -> None:
                self.calls = 0

            def refresh(self):
                self.calls += 1
                raise RuntimeError("boom")

        store = _Boom()
        scheduler = RefreshScheduler(store, interval=60)
        with self.assertLogs("chainseries.services.scheduler", level="ERROR"):
            scheduler.tick()
        self.assertEqual(store.calls, 1)

    def test_start_runs_first_refresh_and_stops(self) -> None:
        chain = StaticChainAdapter(current_block=1000)
        store = _store(chain, _Clock())
        scheduler = RefreshScheduler(store, interval=3600)

        scheduler.start()
        try:
            for _ in range(200):
                if store.last_refresh_at is not None and store.snapshot_map()[TimeFrameKey.ONE_DAY]:
                    break
                time.sleep(0.01)
        finally:
            scheduler.stop(timeout=2)

        self.assertFalse(scheduler.running)
        self.assertIsNotNone(store.get("1d"))

    def test_rejects_bad_interval(self) -> None:
        with self.assertRaises(ValueError):
            RefreshScheduler(None, interval=0)


if __name__ == "__main__":
    unittest.main()
