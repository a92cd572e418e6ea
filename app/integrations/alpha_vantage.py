from __future__ import annotations

from app.integrations.base import QuoteProvider
from app.schemas.quote import Quote
from app.services.quote_builder import build_quote, to_float


class AlphaVantageQuoteProvider(QuoteProvider):
    name = "alpha_vantage"
    base_url = "https://www.alphavantage.co/query"

    async def fetch(self, symbol: str) -> Quote:
        if not self.enabled:
            raise self.fail(symbol, "credential not configured")

        payload = await self._get_json(
            symbol,
            self.base_url,
            params={
                "function": "GLOBAL_QUOTE",
                "symbol": self.upstream_symbol(symbol),
                "apikey": self.credential,
            },
        )
        quote = payload.get("Global Quote") if isinstance(payload, dict) else None
        if quote and not isinstance(quote, dict):
            raise self.fail(symbol, "malformed payload")
        if not quote:
            # rate-limit notes and unknown symbols both come back without a quote body
            note = (payload.get("Note") or payload.get("Information")) if isinstance(payload, dict) else None
            raise self.fail(symbol, str(note or "no data for symbol"))

        price = to_float(quote.get("05. price"))
        if price is None or price <= 0:
            raise self.fail(symbol, "missing price")

        return build_quote(
            symbol,
            price=price,
            change=to_float(quote.get("09. change")),
            change_percent=to_float(quote.get("10. change percent")),
            high=to_float(quote.get("03. high")),
            low=to_float(quote.get("04. low")),
            previous_close=to_float(quote.get("08. previous close")),
            volume=to_float(quote.get("06. volume"), 0.0),
            source="Alpha_Vantage",
        )
