from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from app.errors import ProviderError
from app.schemas.quote import Quote
from app.services.symbols import lookup, split_symbol

PLACEHOLDER_CREDENTIALS = frozenset({"", "demo", "your_key_here", "changeme"})


@dataclass(frozen=True)
class ProviderResult:
    provider: str
    symbol: str
    quote: Optional[Quote] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.quote is not None


class QuoteProvider(ABC):
    """One upstream quote source. `fetch` raises ProviderError, `attempt` never raises for upstream faults."""

    name: str = "provider"
    requires_credential: bool = True

    def __init__(
        self,
        credential: Optional[str] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
        retry_attempts: int = 2,
        retry_backoff_sec: float = 0.5,
    ) -> None:
        self.credential = credential
        self.client = client
        self.timeout = timeout
        self.retry_attempts = max(1, retry_attempts)
        self.retry_backoff_sec = retry_backoff_sec

    @property
    def enabled(self) -> bool:
        if not self.requires_credential:
            return True
        value = (self.credential or "").strip()
        return value.lower() not in PLACEHOLDER_CREDENTIALS

    @staticmethod
    def upstream_symbol(symbol: str) -> str:
        canonical, suffix_exchange = split_symbol(symbol)
        if lookup(symbol).market != "indian":
            return canonical
        return f"{canonical}{'.BO' if suffix_exchange == 'BSE' else '.NS'}"

    def fail(self, symbol: str, reason: str) -> ProviderError:
        return ProviderError(self.name, symbol, reason)

    async def _get_json(self, symbol: str, url: str, params: Optional[dict] = None, headers: Optional[dict] = None) -> Any:
        for attempt in range(self.retry_attempts):
            if self.client is not None:
                response = await self.client.get(url, params=params, headers=headers, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(url, params=params, headers=headers)

            if response.status_code == 429 and attempt < self.retry_attempts - 1:
                await asyncio.sleep(self.retry_backoff_sec * (2**attempt))
                continue
            if response.status_code == 429:
                raise self.fail(symbol, "rate limited")
            if response.status_code == 404:
                raise self.fail(symbol, "symbol not found")
            response.raise_for_status()
            try:
                return response.json()
            except ValueError as exc:
                raise self.fail(symbol, "malformed payload") from exc
        raise self.fail(symbol, "rate limited")

    @abstractmethod
    async def fetch(self, symbol: str) -> Quote:
        raise NotImplementedError

    async def attempt(self, symbol: str) -> ProviderResult:
        if not self.enabled:
            reason = "credential not configured"
            print(f"[PROVIDER][quote_fail] provider={self.name} symbol={symbol} reason={reason}", flush=True)
            return ProviderResult(provider=self.name, symbol=symbol, error=reason)
        try:
            quote = await self.fetch(symbol)
        except ProviderError as exc:
            reason = exc.reason
        except (httpx.TimeoutException, TimeoutError):
            reason = "timeout"
        except httpx.HTTPStatusError as exc:
            reason = f"http {exc.response.status_code}"
        except httpx.HTTPError as exc:
            reason = f"transport error: {exc}"
        except (AttributeError, KeyError, IndexError, TypeError, ValueError) as exc:
            reason = f"malformed payload: {exc!r}"
        else:
            print(
                f"[PROVIDER][quote_ok] provider={self.name} symbol={symbol} price={quote.price}",
                flush=True,
            )
            return ProviderResult(provider=self.name, symbol=symbol, quote=quote)

        print(f"[PROVIDER][quote_fail] provider={self.name} symbol={symbol} reason={reason}", flush=True)
        return ProviderResult(provider=self.name, symbol=symbol, error=reason)
