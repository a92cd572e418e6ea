from __future__ import annotations

import math
import random
import time
from datetime import datetime, timezone
from typing import Callable

from app.schemas.quote import Quote
from app.services.quote_builder import build_quote
from app.services.symbols import lookup

SYNTHETIC_SOURCE = "synthetic"
PRICE_FLOOR_RATIO = 0.8

# (high/low spread as a fraction of |change|, volume range)
_MARKET_PROFILE = {
    "indian": (0.3, (5_000_000, 25_000_000)),
    "global": (0.4, (10_000_000, 110_000_000)),
}


class SyntheticQuoteGenerator:
    """Plausible stand-in quotes from baseline price and volatility."""

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
    ) -> None:
        self.clock = clock
        self.rng = rng or random.Random()
        self.generated = 0

    def generate(self, symbol: str) -> Quote:
        meta = lookup(symbol)
        now = self.clock()
        baseline = meta.baseline_price

        oscillation = math.sin(now / 10.0) * 0.5
        noise = self.rng.uniform(-1.0, 1.0)
        change = (oscillation + noise) * meta.volatility
        price = max(baseline + change, baseline * PRICE_FLOOR_RATIO)
        # keep price - previousClose == change when the floor applies
        change = price - baseline

        spread, (min_volume, max_volume) = _MARKET_PROFILE[meta.market]
        self.generated += 1
        return build_quote(
            symbol,
            price=price,
            change=change,
            change_percent=change / baseline * 100,
            high=price + abs(change) * spread,
            low=price - abs(change) * spread,
            previous_close=baseline,
            volume=self.rng.randint(min_volume, max_volume),
            source=SYNTHETIC_SOURCE,
            mock=True,
            now=datetime.fromtimestamp(now, tz=timezone.utc),
        )
