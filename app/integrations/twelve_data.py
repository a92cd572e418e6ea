from __future__ import annotations

from app.integrations.base import QuoteProvider
from app.schemas.quote import Quote
from app.services.quote_builder import build_quote, to_float


class TwelveDataQuoteProvider(QuoteProvider):
    name = "twelve_data"
    base_url = "https://api.twelvedata.com"

    async def fetch(self, symbol: str) -> Quote:
        if not self.enabled:
            raise self.fail(symbol, "credential not configured")

        payload = await self._get_json(
            symbol,
            f"{self.base_url}/quote",
            params={"symbol": self.upstream_symbol(symbol), "apikey": self.credential},
        )
        if not isinstance(payload, dict) or not payload:
            raise self.fail(symbol, "empty payload")
        if payload.get("status") == "error":
            raise self.fail(symbol, str(payload.get("message") or "upstream error"))

        price = to_float(payload.get("close"))
        if price is None or price <= 0:
            raise self.fail(symbol, "missing price")

        return build_quote(
            symbol,
            price=price,
            high=to_float(payload.get("high")),
            low=to_float(payload.get("low")),
            previous_close=to_float(payload.get("previous_close")),
            volume=to_float(payload.get("volume"), 0.0),
            name=payload.get("name") or None,
            exchange=payload.get("exchange") or None,
            source="Twelve_Data",
        )
