import unittest
from unittest.mock import patch

from app.services.quote_cache import QuoteCache


class QuoteCacheTest(unittest.TestCase):
    def test_get_returns_value_within_ttl(self):
        cache = QuoteCache()
        cache.set("ticker:1:1:10", {"data": []}, ttl=60, now=1000)

        self.assertEqual(cache.get("ticker:1:1:10", now=1059), {"data": []})

    def test_get_misses_at_exact_ttl_boundary(self):
        cache = QuoteCache()
        cache.set("k", "v", ttl=60, now=1000)

        self.assertIsNone(cache.get("k", now=1060))

    def test_expired_read_does_not_remove_entry(self):
        cache = QuoteCache()
        cache.set("k", "v", ttl=60, now=1000)

        self.assertIsNone(cache.get("k", now=2000))
        self.assertEqual(len(cache), 1)
        self.assertEqual(cache.keys(), ["k"])

    def test_set_overwrites_and_restamps(self):
        cache = QuoteCache()
        cache.set("k", "old", ttl=60, now=1000)
        cache.set("k", "new", ttl=60, now=1050)

        entry = cache.get_entry("k", now=1100)
        self.assertIsNotNone(entry)
        self.assertEqual(entry.value, "new")
        self.assertEqual(entry.created_at, 1050)
        self.assertEqual(len(cache), 1)

    def test_default_ttl_applies_when_not_given(self):
        cache = QuoteCache(default_ttl=5)
        cache.set("k", "v", now=1000)

        self.assertEqual(cache.get("k", now=1004), "v")
        self.assertIsNone(cache.get("k", now=1005))

    def test_ceiling_evicts_oldest_inserted_first(self):
        cache = QuoteCache(max_entries=3)
        for i in range(5):
            cache.set(f"k{i}", i, ttl=300, now=1000 + i)
            self.assertLessEqual(len(cache), 3)

        self.assertEqual(cache.keys(), ["k2", "k3", "k4"])
        self.assertEqual(cache.stats()["evictions"], 2)

    def test_eviction_is_fifo_not_lru(self):
        cache = QuoteCache(max_entries=2)
        cache.set("a", 1, now=1000)
        cache.set("b", 2, now=1001)
        # reading "a" does not protect it
        cache.get("a", now=1002)
        cache.set("c", 3, now=1003)

        self.assertIsNone(cache.get("a", now=1004))
        self.assertEqual(cache.keys(), ["b", "c"])

    def test_age_uses_wall_clock(self):
        cache = QuoteCache()
        with patch("app.services.quote_cache.time.time", return_value=1000.0):
            entry = cache.set("k", "v", ttl=60)
        with patch("app.services.quote_cache.time.time", return_value=1002.7):
            self.assertEqual(cache.age(entry), 2)
            self.assertEqual(cache.get("k"), "v")

    def test_stats_breakdown_by_key_prefix(self):
        cache = QuoteCache()
        cache.set("quote:RELIANCE", 1, now=1)
        cache.set("ticker:1:0:6", 2, now=1)
        cache.set("search:rel:all", 3, now=1)

        stats = cache.stats()
        self.assertEqual(stats["size"], 3)
        self.assertEqual(stats["max_size"], 1000)
        self.assertEqual(stats["breakdown"]["quote"], 1)
        self.assertEqual(stats["breakdown"]["ticker"], 1)
        self.assertEqual(stats["breakdown"]["search"], 1)

    def test_rejects_non_positive_ceiling(self):
        with self.assertRaises(ValueError):
            QuoteCache(max_entries=0)


if __name__ == "__main__":
    unittest.main()
