import unittest
from datetime import datetime, timezone
from decimal import Decimal

from fastapi.testclient import TestClient

from chainseries.adapters.chain.static_chain_adapter import StaticChainAdapter
from chainseries.api.app import create_app
from chainseries.core.dto import InternalTransaction
from chainseries.core.models import TimeFrameConfig, TimeFrameKey
from chainseries.services.cache_store import CacheStore
from chainseries.services.read_api import ReadApi, parse_flag
from chainseries.services.series_generator import SeriesGenerator

NOW = datetime(2026, 10, 18, tzinfo=timezone.utc)


def _frames(key, now):
    return {
        TimeFrameKey.ONE_DAY: TimeFrameConfig(TimeFrameKey.ONE_DAY, 1, 2, 10),
        TimeFrameKey.CUSTOM: TimeFrameConfig(TimeFrameKey.CUSTOM, 10, 2, 10, start_anchor=datetime(2026, 10, 8, tzinfo=timezone.utc)),
    }[key]


def _store() -> CacheStore:
    txs = [
        InternalTransaction("0xcccc", "0xaaaa", 985, "1000000000000000000"),
        InternalTransaction("0xcccc", "0xaaaa", 995, "2000000000000000000"),
    ]
    chain = StaticChainAdapter(
        current_block=1000,
        balances={980: Decimal(1), 990: Decimal(2), 1000: Decimal(4)},
        current_balance=Decimal("4.5"),
        internal_txs=txs,
    )
    gen = SeriesGenerator(chain, "0xaaaa", "0xcccc", clock=lambda: NOW)
    return CacheStore(gen, time_frames=_frames, keys=[TimeFrameKey.ONE_DAY, TimeFrameKey.CUSTOM])


class ReadApiTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = _store()
        self.api = ReadApi(self.store)

    def test_bogus_time_frame_is_error_result(self) -> None:
        self.store.refresh()
        result = self.api.get_data("bogus")
        self.assertEqual(result.status, 400)
        self.assertEqual(result.body, {"error": "Invalid time frame"})

    def test_missing_time_frame(self) -> None:
        self.assertEqual(self.api.get_data(None).status, 400)

    def test_never_refreshed_is_error_result(self) -> None:
        result = self.api.get_data("1d")
        self.assertEqual(result.status, 400)
        self.assertFalse(result.ok)

    def test_data_body(self) -> None:
        self.store.refresh()
        result = self.api.get_data("1d", "false")

        self.assertTrue(result.ok)
        body = result.body
        self.assertEqual(body["supplyChange"], [1.0, 2.0])
        self.assertEqual(body["cumulativeGenerated"], [1.0, 2.0])
        self.assertEqual(body["contractBalanceTotal"], 3.0)
        self.assertEqual(body["currentEthTotal"], 4.5)
        self.assertEqual(len(body["labels"]), 2)
        self.assertEqual(body["labels"][-1], "2026-10-18 00:00:00")

    def test_simulate_scales_cumulative_only(self) -> None:
        self.store.refresh()
        plain = self.api.get_data("1d", False).body
        simulated = self.api.get_data("1d", "true").body

        self.assertEqual(simulated["supplyChange"], plain["supplyChange"])
        for got, base in zip(simulated["cumulativeGenerated"], plain["cumulativeGenerated"]):
            self.assertAlmostEqual(got, base * 1.1)
        # cached snapshot untouched
        self.assertEqual(self.api.get_data("1d").body["cumulativeGenerated"], [1.0, 2.0])

    def test_get_cache(self) -> None:
        body = self.api.get_cache().body
        self.assertEqual(body, {"1d": None, "custom": None})
        self.store.refresh()
        body = self.api.get_cache().body
        self.assertEqual(body["custom"]["labels"][0], "2026-10-13 00:00:00")

    def test_parse_flag(self) -> None:
        self.assertTrue(parse_flag("TRUE"))
        self.assertTrue(parse_flag(True))
        self.assertFalse(parse_flag("false"))
        self.assertFalse(parse_flag(None))
        self.assertFalse(parse_flag("yes"))


class HttpWiringTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = _store()
        self.store.refresh()
        self.client = TestClient(create_app(ReadApi(self.store)))

    def test_data_endpoint(self) -> None:
        resp = self.client.get("/api/data", params={"timeFrame": "1d", "simulate": "false"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["supplyChange"], [1.0, 2.0])

    def test_invalid_time_frame_is_400(self) -> None:
        resp = self.client.get("/api/data", params={"timeFrame": "bogus"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"error": "Invalid time frame"})

    def test_cache_endpoint(self) -> None:
        resp = self.client.get("/api/cache")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(set(resp.json()), {"1d", "custom"})

    def test_health(self) -> None:
        resp = self.client.get("/health")
        self.assertEqual(resp.json()["status"], "ok")

    def test_lifespan_drives_scheduler(self) -> None:
        class _Scheduler:
            def __init__(self) -> None:
                self.events = []

            def start(self) -> None:
                self.events.append("start")

            def stop(self, timeout=None) -> None:
                self.events.append("stop")

        scheduler = _Scheduler()
        app = create_app(ReadApi(self.store), scheduler)
        with self.assertLogs("chainseries.api.app", level="INFO"):
            with TestClient(app) as client:
                client.get("/health")
        self.assertEqual(scheduler.events, ["start", "stop"])


if __name__ == "__main__":
    unittest.main()
