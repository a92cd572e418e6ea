from __future__ import annotations

from typing import Sequence

from app.errors import ResolutionExhausted
from app.integrations.base import QuoteProvider
from app.schemas.quote import Quote
from app.services.quote_cache import QuoteCache
from app.services.synthetic import SyntheticQuoteGenerator


class ProviderChainResolver:
    """Tries providers in priority order; the synthetic generator is the last resort."""

    def __init__(
        self,
        providers: Sequence[QuoteProvider],
        generator: SyntheticQuoteGenerator,
        *,
        quote_cache: QuoteCache | None = None,
        quote_ttl_sec: float = 60,
    ) -> None:
        self.providers = list(providers)
        self.generator = generator
        self.quote_cache = quote_cache
        self.quote_ttl_sec = quote_ttl_sec

        self.resolutions = 0
        self.fallbacks = 0
        self._stats: dict[str, dict] = {
            p.name: {"attempts": 0, "successes": 0, "failures": 0, "last_error": None} for p in self.providers
        }

    def enabled_providers(self) -> list[QuoteProvider]:
        return [p for p in self.providers if p.enabled]

    async def resolve(self, symbol: str) -> Quote:
        # suffix stays in the key: RELIANCE.BO and RELIANCE differ in exchange
        key = f"quote:{symbol.strip().upper()}"
        if self.quote_cache is not None:
            cached = self.quote_cache.get(key)
            if cached is not None:
                return cached

        self.resolutions += 1
        failures: list[str] = []
        quote: Quote | None = None
        for provider in self.enabled_providers():
            stats = self._stats[provider.name]
            stats["attempts"] += 1
            result = await provider.attempt(symbol)
            if result.ok:
                stats["successes"] += 1
                quote = result.quote
                break
            stats["failures"] += 1
            stats["last_error"] = result.error
            failures.append(f"{provider.name}:{result.error}")

        if quote is None:
            self.fallbacks += 1
            print(
                f"[RESOLVE][synthetic_fallback] symbol={symbol} "
                f"tried={len(failures)} failures={';'.join(failures) or 'none'}",
                flush=True,
            )
            try:
                quote = self.generator.generate(symbol)
            except Exception as exc:
                raise ResolutionExhausted(symbol) from exc

        if self.quote_cache is not None:
            self.quote_cache.set(key, quote, ttl=self.quote_ttl_sec)
        return quote

    def metrics(self) -> dict:
        return {
            "resolutions": self.resolutions,
            "synthetic_fallbacks": self.fallbacks,
            "providers": [
                {
                    "name": p.name,
                    "priority": index + 1,
                    "enabled": p.enabled,
                    **self._stats[p.name],
                }
                for index, p in enumerate(self.providers)
            ],
        }
