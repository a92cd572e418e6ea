from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from app.schemas.quote import Quote
from app.services.market_hours import is_market_open
from app.services.symbols import lookup


def to_float(value: Any, default: float | None = None) -> float | None:
    try:
        if value is None or value == "":
            return default
        if isinstance(value, str):
            value = value.strip().rstrip("%")
        return float(value)
    except (TypeError, ValueError):
        return default


def build_quote(
    symbol: str,
    *,
    price: float,
    source: str,
    change: float | None = None,
    change_percent: float | None = None,
    high: float | None = None,
    low: float | None = None,
    previous_close: float | None = None,
    volume: float | None = None,
    market_cap: float | None = None,
    name: str | None = None,
    exchange: str | None = None,
    mock: bool = False,
    now: datetime | None = None,
) -> Quote:
    """Fill every Quote field, deriving what the provider left out."""
    meta = lookup(symbol)
    if previous_close is None or previous_close == 0:
        previous_close = price - change if change is not None else price
    if change is None:
        change = price - previous_close
    if change_percent is None:
        change_percent = (change / previous_close * 100) if previous_close else 0.0
    if not market_cap:
        market_cap = meta.shares_outstanding * price

    return Quote(
        symbol=meta.symbol,
        name=name or meta.name,
        sector=meta.sector,
        exchange=exchange or meta.exchange,
        currency=meta.currency,
        market=meta.market,
        price=price,
        change=change,
        change_percent=change_percent,
        high=high if high is not None else price,
        low=low if low is not None else price,
        previous_close=previous_close,
        volume=int(volume or 0),
        market_cap=round(market_cap),
        market_open=is_market_open(meta.market, now),
        timestamp=now or datetime.now(timezone.utc),
        source=source,
        mock=mock,
    )
