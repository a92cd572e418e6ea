from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any


@dataclass
class CacheEntry:
    key: str
    value: Any
    created_at: float
    ttl: float

    def expired(self, now: float) -> bool:
        return now - self.created_at >= self.ttl


class QuoteCache:
    """In-process TTL cache with a FIFO entry ceiling (oldest insert evicted first)."""

    def __init__(self, *, default_ttl: float = 60, max_entries: int = 1000) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.default_ttl = default_ttl
        self.max_entries = max_entries
        self._rows: dict[str, CacheEntry] = {}
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def get_entry(self, key: str, now: float | None = None) -> CacheEntry | None:
        ref = time.time() if now is None else now
        entry = self._rows.get(key)
        if entry is None or entry.expired(ref):
            self.misses += 1
            return None
        self.hits += 1
        return entry

    def get(self, key: str, now: float | None = None) -> Any | None:
        entry = self.get_entry(key, now=now)
        return None if entry is None else entry.value

    def set(self, key: str, value: Any, ttl: float | None = None, now: float | None = None) -> CacheEntry:
        ref = time.time() if now is None else now
        entry = CacheEntry(key=key, value=value, created_at=ref, ttl=self.default_ttl if ttl is None else ttl)
        # re-insert so an overwritten key counts as the newest entry
        self._rows.pop(key, None)
        self._rows[key] = entry
        while len(self._rows) > self.max_entries:
            oldest = next(iter(self._rows))
            self._rows.pop(oldest)
            self.evictions += 1
        return entry

    def age(self, entry: CacheEntry, now: float | None = None) -> int:
        ref = time.time() if now is None else now
        return int(max(ref - entry.created_at, 0))

    def keys(self) -> list[str]:
        return list(self._rows)

    def clear(self) -> None:
        self._rows.clear()

    def __len__(self) -> int:
        return len(self._rows)

    def stats(self) -> dict:
        keys = self.keys()
        return {
            "size": len(keys),
            "max_size": self.max_entries,
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "breakdown": {
                "quote": sum(1 for k in keys if k.startswith("quote:")),
                "ticker": sum(1 for k in keys if k.startswith("ticker:")),
                "detail": sum(1 for k in keys if k.startswith("detail:")),
                "search": sum(1 for k in keys if k.startswith("search:")),
            },
        }
