from __future__ import annotations

from typing import Any, Optional

import httpx

from app.errors import ProviderError
from app.integrations.base import QuoteProvider
from app.schemas.quote import Quote
from app.services.quote_builder import build_quote, to_float

USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


def _last_value(values: Any) -> Optional[float]:
    if not isinstance(values, list):
        return None
    for value in reversed(values):
        if value is not None:
            return float(value)
    return None


class YahooChartQuoteProvider(QuoteProvider):
    """Keyless Yahoo Finance chart endpoint, optionally reached through proxy prefixes."""

    name = "yahoo_finance"
    requires_credential = False
    chart_url = "https://query1.finance.yahoo.com/v8/finance/chart"

    def __init__(self, *, enabled: bool = False, proxies: Optional[list[str]] = None, **kwargs: Any) -> None:
        kwargs.setdefault("timeout", 8.0)
        super().__init__(None, **kwargs)
        self._enabled = enabled
        self.proxies = list(proxies or [])

    @property
    def enabled(self) -> bool:
        return self._enabled

    def _candidate_urls(self, symbol: str) -> list[str]:
        target = f"{self.chart_url}/{self.upstream_symbol(symbol)}"
        if not self.proxies:
            return [target]
        return [f"{proxy}{target}" for proxy in self.proxies]

    async def fetch(self, symbol: str) -> Quote:
        if not self.enabled:
            raise self.fail(symbol, "provider disabled")

        last_reason = "no route"
        for url in self._candidate_urls(symbol):
            try:
                payload = await self._get_json(symbol, url, headers={"User-Agent": USER_AGENT})
                return self._to_quote(symbol, payload)
            except ProviderError as exc:
                last_reason = exc.reason
            except httpx.HTTPError as exc:
                last_reason = f"{type(exc).__name__}: {exc}"
            print(f"[PROVIDER][yahoo_route_fail] symbol={symbol} url={url} reason={last_reason}", flush=True)
        raise self.fail(symbol, f"all routes failed ({last_reason})")

    def _to_quote(self, symbol: str, payload: Any) -> Quote:
        chart = payload.get("chart") if isinstance(payload, dict) else None
        results = chart.get("result") if isinstance(chart, dict) else None
        if not results:
            raise self.fail(symbol, "no data in response")
        if not isinstance(results, list) or not isinstance(results[0], dict):
            raise self.fail(symbol, "malformed payload")

        data = results[0]
        meta = data.get("meta") or {}
        series = ((data.get("indicators") or {}).get("quote") or [{}])[0]
        if not isinstance(meta, dict) or not isinstance(series, dict):
            raise self.fail(symbol, "malformed payload")

        price = _last_value(series.get("close")) or to_float(meta.get("regularMarketPrice"))
        if price is None or price <= 0:
            raise self.fail(symbol, "missing price")

        upstream = self.upstream_symbol(symbol)
        return build_quote(
            symbol,
            price=price,
            high=_last_value(series.get("high")),
            low=_last_value(series.get("low")),
            previous_close=to_float(meta.get("previousClose") or meta.get("chartPreviousClose")),
            volume=_last_value(series.get("volume")) or 0,
            exchange="BSE" if upstream.endswith(".BO") else None,
            source="Yahoo_Finance",
        )
