import asyncio
import unittest
from datetime import datetime, timezone
from unittest.mock import patch

from app.errors import QuoteRequestValidationError
from app.schemas.quote import Quote
from app.services.quote_builder import build_quote
from app.services.quote_cache import QuoteCache
from app.services.quote_gateway import QuoteGatewayService, validate_symbol

NOW = datetime(2026, 1, 2, 12, 0, tzinfo=timezone.utc)


class StubResolver:
    def __init__(self, change_pct: dict[str, float] | None = None, failing: set[str] | None = None) -> None:
        self.change_pct = change_pct or {}
        self.failing = failing or set()
        self.calls: list[str] = []
        self.providers: list = []

    async def resolve(self, symbol: str) -> Quote:
        self.calls.append(symbol)
        if symbol in self.failing:
            raise RuntimeError(f"upstream down:{symbol}")
        pct = self.change_pct.get(symbol, 0.5)
        return build_quote(symbol, price=100 + pct, previous_close=100, source="stub", now=NOW)

    def metrics(self) -> dict:
        return {"resolutions": len(self.calls), "synthetic_fallbacks": 0, "providers": []}


class GatedResolver(StubResolver):
    """Each call waits until `expected` calls are in flight at once."""

    def __init__(self, expected: int) -> None:
        super().__init__()
        self.expected = expected
        self.in_flight = 0
        self.peak_in_flight = 0
        self.all_started = asyncio.Event()

    async def resolve(self, symbol: str) -> Quote:
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        if self.in_flight >= self.expected:
            self.all_started.set()
        try:
            await asyncio.wait_for(self.all_started.wait(), timeout=1.0)
        finally:
            self.in_flight -= 1
        return await super().resolve(symbol)


def _service(resolver: StubResolver | None = None) -> QuoteGatewayService:
    return QuoteGatewayService(quote_cache=QuoteCache(), resolver=resolver or StubResolver())


class QuoteGatewayTickerTest(unittest.IsolatedAsyncioTestCase):
    async def test_default_split_favours_indian_market(self):
        resolver = StubResolver()
        payload = await _service(resolver).ticker(limit=15)

        self.assertEqual(payload["summary"]["total"], 15)
        self.assertEqual(payload["summary"]["indian"], 9)
        self.assertEqual(payload["summary"]["global"], 6)
        self.assertFalse(payload["cached"])
        self.assertIn("timestamp", payload)
        self.assertNotIn("errors", payload)

    async def test_odd_limit_rounds_indian_share_up(self):
        payload = await _service().ticker(limit=7)

        self.assertEqual(payload["summary"]["indian"], 5)
        self.assertEqual(payload["summary"]["global"], 2)

    async def test_single_market_request_uses_whole_limit(self):
        payload = await _service().ticker(include_indian=True, include_global=False, limit=6)

        self.assertEqual(payload["summary"]["total"], 6)
        self.assertEqual({q["currency"] for q in payload["data"]}, {"INR"})

    async def test_repeat_request_is_served_from_cache(self):
        resolver = StubResolver()
        service = _service(resolver)

        first = await service.ticker(limit=5)
        calls_after_first = len(resolver.calls)
        second = await service.ticker(limit=5)

        self.assertEqual(len(resolver.calls), calls_after_first)
        self.assertTrue(second["cached"])
        self.assertGreaterEqual(second["cacheAge"], 0)
        self.assertEqual(second["data"], first["data"])
        self.assertEqual(service.metrics()["ticker_cache_hits"], 1)

    async def test_different_parameters_use_distinct_cache_entries(self):
        resolver = StubResolver()
        service = _service(resolver)

        await service.ticker(limit=5)
        await service.ticker(limit=6)
        await service.ticker(include_global=False, limit=5)

        keys = [k for k in service.quote_cache.keys() if k.startswith("ticker:")]
        self.assertEqual(sorted(keys), ["ticker:1:0:5", "ticker:1:1:5", "ticker:1:1:6"])

    async def test_sorts_home_market_first_then_by_move_size(self):
        resolver = StubResolver(change_pct={"RELIANCE": 0.2, "HDFCBANK": 0.1, "TCS": -4.0, "AAPL": 1.0, "GOOGL": -2.5})
        service = _service(resolver)

        with patch("app.services.quote_gateway.open_home_market", return_value="global"):
            payload = await service.ticker(limit=5)

        self.assertEqual([q["symbol"] for q in payload["data"]], ["GOOGL", "AAPL", "TCS", "RELIANCE", "HDFCBANK"])

    async def test_sorts_by_move_size_when_no_market_open(self):
        resolver = StubResolver(change_pct={"RELIANCE": 0.2, "HDFCBANK": 0.1, "TCS": -4.0, "AAPL": 1.0, "GOOGL": -2.5})
        service = _service(resolver)

        with patch("app.services.quote_gateway.open_home_market", return_value=None):
            payload = await service.ticker(limit=5)

        self.assertEqual([q["symbol"] for q in payload["data"]], ["TCS", "GOOGL", "AAPL", "RELIANCE", "HDFCBANK"])

    async def test_failed_symbol_reported_without_failing_batch(self):
        resolver = StubResolver(failing={"TCS"})
        service = _service(resolver)

        payload = await service.ticker(include_global=False, limit=3)

        self.assertEqual(payload["summary"]["total"], 2)
        self.assertEqual(payload["summary"]["errors"], 1)
        self.assertEqual(payload["errors"][0]["symbol"], "TCS")
        self.assertEqual(service.metrics()["batch_error_count"], 1)

    async def test_summary_counts_gainers_and_losers(self):
        resolver = StubResolver(change_pct={"RELIANCE": 1.0, "TCS": -1.0, "HDFCBANK": 0.0})
        payload = await _service(resolver).ticker(include_global=False, limit=3)

        self.assertEqual(payload["summary"]["gainers"], 1)
        self.assertEqual(payload["summary"]["losers"], 1)
        self.assertEqual(payload["summary"]["sources"], ["stub"])
        self.assertEqual(payload["summary"]["mockData"], 0)

    async def test_rejects_out_of_range_limit(self):
        service = _service()
        for limit in (0, 51, -3):
            with self.assertRaises(QuoteRequestValidationError):
                await service.ticker(limit=limit)

    async def test_rejects_request_for_no_market(self):
        with self.assertRaises(QuoteRequestValidationError):
            await _service().ticker(include_indian=False, include_global=False)

    async def test_symbols_resolve_concurrently(self):
        resolver = GatedResolver(expected=5)
        payload = await _service(resolver).ticker(limit=5)

        self.assertEqual(resolver.peak_in_flight, 5)
        self.assertEqual(payload["summary"]["total"], 5)
        self.assertEqual(payload["summary"]["errors"], 0)

    async def test_cache_hit_reports_fresh_timestamp(self):
        service = _service()

        with patch("app.services.quote_gateway._utc_now_iso", return_value="2026-01-02T12:00:00+00:00"):
            first = await service.ticker(limit=3)
        with patch("app.services.quote_gateway._utc_now_iso", return_value="2026-01-02T12:00:30+00:00"):
            second = await service.ticker(limit=3)

        self.assertEqual(first["timestamp"], "2026-01-02T12:00:00+00:00")
        self.assertEqual(second["timestamp"], "2026-01-02T12:00:30+00:00")
        self.assertTrue(second["cached"])

    async def test_market_quotes_cover_one_market(self):
        payload = await _service().market_quotes("global", limit=4)

        self.assertEqual(payload["summary"]["global"], 4)
        self.assertEqual(payload["summary"]["indian"], 0)


class QuoteGatewayDetailTest(unittest.IsolatedAsyncioTestCase):
    async def test_detail_adds_analysis_and_caches(self):
        resolver = StubResolver(change_pct={"AAPL": 2.0})
        service = _service(resolver)

        first = await service.detail("aapl")
        second = await service.detail("AAPL")

        self.assertEqual(first["symbol"], "AAPL")
        self.assertEqual(first["analysis"]["trend"], "Bullish")
        self.assertIn("fetchedAt", first)
        self.assertFalse(first["cached"])
        self.assertTrue(second["cached"])
        self.assertEqual(resolver.calls, ["AAPL"])

    async def test_detail_rejects_malformed_symbol(self):
        with self.assertRaises(QuoteRequestValidationError):
            await _service().detail("bad symbol!")

    def test_validate_symbol_keeps_exchange_suffix(self):
        self.assertEqual(validate_symbol(" reliance.ns "), "RELIANCE.NS")
        self.assertEqual(validate_symbol("BRK.B"), "BRK.B")


class QuoteGatewaySearchTest(unittest.TestCase):
    def test_search_filters_by_market(self):
        payload = _service().search("reliance", "indian")

        self.assertEqual(payload["query"], "reliance")
        self.assertEqual(payload["marketFilter"], "indian")
        self.assertEqual(payload["results"][0]["symbol"], "RELIANCE")
        self.assertEqual(payload["breakdown"]["global"], 0)
        self.assertEqual(payload["total"], len(payload["results"]))

    def test_search_matches_names_across_markets(self):
        payload = _service().search("bank")

        self.assertEqual(payload["marketFilter"], "all")
        self.assertIn("HDFCBANK", [r["symbol"] for r in payload["results"]])
        self.assertLessEqual(payload["total"], 10)

    def test_search_repeat_is_cached(self):
        service = _service()
        service.search("tata")

        self.assertTrue(service.search("TATA")["cached"])

    def test_search_cache_hit_echoes_query_as_typed(self):
        service = _service()
        service.search("reliance")

        with patch("app.services.quote_gateway._utc_now_iso", return_value="2026-01-02T12:05:00+00:00"):
            payload = service.search("RELIANCE")

        self.assertTrue(payload["cached"])
        self.assertEqual(payload["query"], "RELIANCE")
        self.assertEqual(payload["timestamp"], "2026-01-02T12:05:00+00:00")

    def test_search_rejects_unknown_market(self):
        with self.assertRaises(QuoteRequestValidationError):
            _service().search("apple", "crypto")

    def test_search_rejects_blank_query(self):
        with self.assertRaises(QuoteRequestValidationError):
            _service().search("   ")


class QuoteGatewayStatusTest(unittest.TestCase):
    def test_market_status_reports_both_sessions(self):
        # 10:30 IST / 00:00 ET on a Friday
        now = datetime(2026, 1, 2, 5, 0, tzinfo=timezone.utc)

        payload = _service().market_status(now)

        indian = payload["markets"]["indian"]
        global_ = payload["markets"]["global"]
        self.assertTrue(indian["open"])
        self.assertFalse(global_["open"])
        self.assertEqual(indian["tradingHours"], "09:15 - 15:30 IST")
        self.assertEqual(global_["nextSession"], "2026-01-02T09:30:00-05:00")
        self.assertEqual(indian["symbols"], 18)
        self.assertEqual(payload["timestamp"], now.isoformat())

    def test_health_reports_cache_and_fallback_mode(self):
        payload = _service().health()

        self.assertEqual(payload["status"], "OK")
        self.assertTrue(payload["providers"]["syntheticFallbackOnly"])
        self.assertEqual(payload["cache"]["size"], 0)
        self.assertEqual(payload["symbols"], {"indian": 18, "global": 18})
        self.assertIn("timestamp", payload)


if __name__ == "__main__":
    unittest.main()
