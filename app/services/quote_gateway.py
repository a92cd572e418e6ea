from __future__ import annotations

import asyncio
import math
import re
import time
from datetime import datetime, timezone

from app.errors import QuoteRequestValidationError
from app.schemas.quote import Market, Quote
from app.services.analytics import analyze
from app.services.market_hours import SESSIONS, is_market_open, next_session_open, open_home_market
from app.services.provider_chain import ProviderChainResolver
from app.services.quote_cache import QuoteCache
from app.services.symbols import GLOBAL_SYMBOLS, INDIAN_SYMBOLS, search_symbols, symbols_for_market

MAX_LIMIT = 50
SEARCH_RESULT_LIMIT = 10
_SYMBOL_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9.&^=\-]{0,19}$")


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def validate_limit(limit: int) -> int:
    if not 1 <= limit <= MAX_LIMIT:
        raise QuoteRequestValidationError(f"limit must be between 1 and {MAX_LIMIT}")
    return limit


def validate_symbol(symbol: str) -> str:
    value = symbol.strip()
    if not _SYMBOL_RE.match(value):
        raise QuoteRequestValidationError(f"invalid symbol: {symbol!r}")
    return value.upper()


def validate_market(market: str | None) -> Market | None:
    if market is None or market == "":
        return None
    value = market.strip().lower()
    if value not in ("indian", "global"):
        raise QuoteRequestValidationError("market must be one of: indian, global")
    return value  # type: ignore[return-value]


class QuoteGatewayService:
    """Cache-first quote aggregation over the provider chain."""

    def __init__(
        self,
        *,
        quote_cache: QuoteCache,
        resolver: ProviderChainResolver,
        quote_ttl_sec: float = 60,
        search_ttl_sec: float = 300,
        indian_share: float = 0.6,
    ) -> None:
        self.quote_cache = quote_cache
        self.resolver = resolver
        self.quote_ttl_sec = quote_ttl_sec
        self.search_ttl_sec = search_ttl_sec
        self.indian_share = indian_share
        self.started_at = time.time()

        self.ticker_requests = 0
        self.ticker_cache_hits = 0
        self.last_batch_target = 0
        self.last_batch_final = 0
        self.last_batch_errors = 0

    def _select_symbols(self, include_indian: bool, include_global: bool, limit: int) -> list[tuple[str, Market]]:
        if include_indian and include_global:
            n_indian = math.ceil(limit * self.indian_share)
            n_global = math.floor(limit * (1 - self.indian_share))
        else:
            n_indian = limit if include_indian else 0
            n_global = limit if include_global else 0
        return [(s, "indian") for s in INDIAN_SYMBOLS[:n_indian]] + [
            (s, "global") for s in GLOBAL_SYMBOLS[:n_global]
        ]

    async def _resolve_one(self, symbol: str, market: Market) -> Quote | dict:
        try:
            return await self.resolver.resolve(symbol)
        except Exception as exc:
            print(f"[TICKER][resolve_error] symbol={symbol} market={market} error={exc}", flush=True)
            return {"symbol": symbol, "market": market, "error": str(exc)}

    @staticmethod
    def _sort(quotes: list[Quote], home: Market | None) -> list[Quote]:
        home_currency = SESSIONS[home].currency if home else None

        def key(q: Quote) -> tuple[int, float]:
            priority = 0 if home_currency and q.currency == home_currency else 1
            return priority, -abs(q.change_percent)

        return sorted(quotes, key=key)

    async def ticker(self, *, include_indian: bool = True, include_global: bool = True, limit: int = 15) -> dict:
        validate_limit(limit)
        if not include_indian and not include_global:
            raise QuoteRequestValidationError("at least one of indian/global must be requested")

        self.ticker_requests += 1
        key = f"ticker:{int(include_indian)}:{int(include_global)}:{limit}"
        entry = self.quote_cache.get_entry(key)
        if entry is not None:
            self.ticker_cache_hits += 1
            age = self.quote_cache.age(entry)
            print(f"[CACHE][hit] key={key} age={age}", flush=True)
            return {**entry.value, "cached": True, "cacheAge": age, "timestamp": _utc_now_iso()}

        targets = self._select_symbols(include_indian, include_global, limit)
        results = await asyncio.gather(*(self._resolve_one(s, m) for s, m in targets))

        quotes = [r for r in results if isinstance(r, Quote)]
        errors = [r for r in results if not isinstance(r, Quote)]

        data = self._sort(quotes, open_home_market())[:limit]
        summary = {
            "total": len(data),
            "indian": sum(1 for q in data if q.market == "indian"),
            "global": sum(1 for q in data if q.market == "global"),
            "sources": list(dict.fromkeys(q.source for q in data)),
            "mockData": sum(1 for q in data if q.mock),
            "errors": len(errors),
            "gainers": sum(1 for q in data if q.change > 0),
            "losers": sum(1 for q in data if q.change < 0),
            "marketStatus": {m: is_market_open(m) for m in SESSIONS},
            "timestamp": _utc_now_iso(),
        }
        payload = {
            "summary": summary,
            "data": [q.to_payload() for q in data],
            "cached": False,
            "timestamp": summary["timestamp"],
        }
        if errors:
            payload["errors"] = errors

        self.last_batch_target = len(targets)
        self.last_batch_final = len(data)
        self.last_batch_errors = len(errors)
        print(
            "[TICKER][batch_resolve] "
            f"indian={int(include_indian)} global={int(include_global)} limit={limit} "
            f"target_count={len(targets)} final_count={len(data)} "
            f"mock_count={summary['mockData']} error_count={len(errors)}",
            flush=True,
        )

        self.quote_cache.set(key, payload, ttl=self.quote_ttl_sec)
        return payload

    async def market_quotes(self, market: Market, limit: int = 12) -> dict:
        return await self.ticker(
            include_indian=market == "indian",
            include_global=market == "global",
            limit=limit,
        )

    async def detail(self, symbol: str) -> dict:
        value = validate_symbol(symbol)
        key = f"detail:{value}"
        entry = self.quote_cache.get_entry(key)
        if entry is not None:
            return {**entry.value, "cached": True, "cacheAge": self.quote_cache.age(entry)}

        quote = await self.resolver.resolve(value)
        payload = quote.to_payload()
        payload["analysis"] = analyze(quote).model_dump()
        payload["fetchedAt"] = _utc_now_iso()
        payload["cached"] = False
        self.quote_cache.set(key, payload, ttl=self.quote_ttl_sec)
        return payload

    def search(self, query: str, market: str | None = None) -> dict:
        needle = query.strip()
        if not needle:
            raise QuoteRequestValidationError("query must not be empty")
        market_filter = validate_market(market)

        key = f"search:{needle.lower()}:{market_filter or 'all'}"
        cached = self.quote_cache.get(key)
        if cached is not None:
            return {**cached, "query": needle, "cached": True, "timestamp": _utc_now_iso()}

        results = search_symbols(needle, market_filter, limit=SEARCH_RESULT_LIMIT)
        payload = {
            "query": needle,
            "marketFilter": market_filter or "all",
            "results": [r.model_dump() for r in results],
            "total": len(results),
            "breakdown": {
                "indian": sum(1 for r in results if r.market == "indian"),
                "global": sum(1 for r in results if r.market == "global"),
            },
            "cached": False,
            "timestamp": _utc_now_iso(),
        }
        self.quote_cache.set(key, payload, ttl=self.search_ttl_sec)
        return payload

    def market_status(self, now: datetime | None = None) -> dict:
        current = now or datetime.now(timezone.utc)
        markets = {}
        for market, session in SESSIONS.items():
            markets[market] = {
                "open": is_market_open(market, current),
                "nextSession": next_session_open(market, current).isoformat(),
                "timezone": session.timezone_label,
                "currentTime": current.astimezone(session.timezone).isoformat(),
                "exchanges": list(session.exchanges),
                "tradingHours": session.trading_hours,
                "symbols": len(symbols_for_market(market)),
            }
        return {
            "markets": markets,
            "providers": self.resolver.metrics()["providers"],
            "timestamp": current.isoformat(),
        }

    def health(self) -> dict:
        resolver_metrics = self.resolver.metrics()
        enabled = [p["name"] for p in resolver_metrics["providers"] if p["enabled"]]
        return {
            "status": "OK",
            "uptime": int(time.time() - self.started_at),
            "cache": self.quote_cache.stats(),
            "providers": {
                "configured": enabled,
                "total": len(resolver_metrics["providers"]),
                "syntheticFallbackOnly": not enabled,
            },
            "symbols": {"indian": len(INDIAN_SYMBOLS), "global": len(GLOBAL_SYMBOLS)},
            "metrics": self.metrics(),
            "timestamp": _utc_now_iso(),
        }

    def metrics(self) -> dict:
        resolver_metrics = self.resolver.metrics()
        return {
            "ticker_requests": self.ticker_requests,
            "ticker_cache_hits": self.ticker_cache_hits,
            "batch_target_count": self.last_batch_target,
            "batch_final_count": self.last_batch_final,
            "batch_error_count": self.last_batch_errors,
            "resolutions": resolver_metrics["resolutions"],
            "synthetic_fallbacks": resolver_metrics["synthetic_fallbacks"],
        }
