from __future__ import annotations

from app.integrations.base import QuoteProvider
from app.schemas.quote import Quote
from app.services.quote_builder import build_quote, to_float


class FmpQuoteProvider(QuoteProvider):
    """Financial Modeling Prep quote endpoint (free tier: 250 calls/day)."""

    name = "financial_modeling_prep"
    base_url = "https://financialmodelingprep.com/api/v3"

    async def fetch(self, symbol: str) -> Quote:
        if not self.enabled:
            raise self.fail(symbol, "credential not configured")

        payload = await self._get_json(
            symbol,
            f"{self.base_url}/quote/{self.upstream_symbol(symbol)}",
            params={"apikey": self.credential},
        )
        if not isinstance(payload, list) or not payload:
            raise self.fail(symbol, "empty payload")

        row = payload[0]
        if not isinstance(row, dict):
            raise self.fail(symbol, "malformed payload")
        price = to_float(row.get("price"))
        if price is None or price <= 0:
            raise self.fail(symbol, "missing price")

        return build_quote(
            symbol,
            price=price,
            change=to_float(row.get("change")),
            change_percent=to_float(row.get("changesPercentage")),
            high=to_float(row.get("dayHigh")),
            low=to_float(row.get("dayLow")),
            previous_close=to_float(row.get("previousClose")),
            volume=to_float(row.get("volume"), 0.0),
            market_cap=to_float(row.get("marketCap")),
            name=row.get("name") or None,
            source="Financial_Modeling_Prep",
        )
