"""Query cache behavior: memoization, LRU bounds, and in-flight dedup."""

from __future__ import annotations

import threading
import unittest
from concurrent.futures import ThreadPoolExecutor

from jarmanifest.errors import DataFetchError
from jarmanifest.git import QueryCache, QueryKey


def _key(head: str = "h1", **kwargs) -> QueryKey:
    return QueryKey.scoped("diff", "proj", branch="main", base_sha="b1", head_sha=head, **kwargs)


class QueryKeyTests(unittest.TestCase):
    def test_paths_are_order_independent(self) -> None:
        self.assertEqual(_key(paths=["b", "a"]), _key(paths=("a", "b")))
        self.assertNotEqual(_key(paths=["a"]), _key())

    def test_strategy_is_part_of_identity(self) -> None:
        self.assertNotEqual(_key(strategy="full"), _key(strategy="commit"))


class QueryCacheSyncTests(unittest.TestCase):
    def test_get_memoizes_results(self) -> None:
        cache = QueryCache()
        calls: list[int] = []

        def loader() -> str:
            calls.append(1)
            return "value"

        self.assertEqual(cache.get(_key(), loader), "value")
        self.assertEqual(cache.get(_key(), loader), "value")
        self.assertEqual(len(calls), 1)
        self.assertIn(_key(), cache)

    def test_failures_are_not_cached(self) -> None:
        cache = QueryCache()
        attempts: list[int] = []

        def flaky() -> str:
            attempts.append(1)
            if len(attempts) == 1:
                raise DataFetchError("timeout", operation="diff")
            return "ok"

        with self.assertRaises(DataFetchError):
            cache.get(_key(), flaky)
        self.assertNotIn(_key(), cache)
        self.assertEqual(cache.get(_key(), flaky), "ok")
        self.assertEqual(len(attempts), 2)

    def test_lru_evicts_oldest_entry(self) -> None:
        cache = QueryCache(max_entries=2)
        cache.get(_key("h1"), lambda: 1)
        cache.get(_key("h2"), lambda: 2)
        cache.get(_key("h1"), lambda: 99)
        cache.get(_key("h3"), lambda: 3)

        self.assertIn(_key("h1"), cache)
        self.assertNotIn(_key("h2"), cache)
        self.assertEqual(len(cache), 2)

    def test_invalidate_by_predicate(self) -> None:
        cache = QueryCache()
        cache.get(QueryKey.scoped("branches", "one"), lambda: ["main"])
        cache.get(QueryKey.scoped("branches", "two"), lambda: ["dev"])

        dropped = cache.invalidate(lambda key: key.project_id == "one")

        self.assertEqual(dropped, 1)
        self.assertNotIn(QueryKey.scoped("branches", "one"), cache)
        self.assertIn(QueryKey.scoped("branches", "two"), cache)
        cache.clear()
        self.assertEqual(len(cache), 0)


class QueryCacheAsyncTests(unittest.TestCase):
    def test_concurrent_identical_requests_share_one_fetch(self) -> None:
        cache = QueryCache()
        release = threading.Event()
        calls: list[int] = []

        def slow_loader() -> str:
            calls.append(1)
            release.wait(timeout=5)
            return "diff"

        with ThreadPoolExecutor(max_workers=4) as executor:
            first = cache.submit(_key(), slow_loader, executor)
            second = cache.submit(_key(), slow_loader, executor)
            self.assertIs(first, second)
            self.assertTrue(cache.in_flight(_key()))
            release.set()
            self.assertEqual(first.result(timeout=5), "diff")

        self.assertEqual(len(calls), 1)
        self.assertFalse(cache.in_flight(_key()))
        self.assertEqual(cache.get(_key(), lambda: "unused"), "diff")

    def test_sync_get_waits_for_pending_future(self) -> None:
        cache = QueryCache()
        release = threading.Event()
        calls: list[int] = []

        def slow_loader() -> str:
            calls.append(1)
            release.wait(timeout=5)
            return "tree"

        with ThreadPoolExecutor(max_workers=2) as executor:
            cache.submit(_key(), slow_loader, executor)
            waiter = executor.submit(cache.get, _key(), slow_loader)
            release.set()
            self.assertEqual(waiter.result(timeout=5), "tree")

        self.assertEqual(len(calls), 1)

    def test_submit_for_cached_key_returns_finished_future(self) -> None:
        cache = QueryCache()
        cache.get(_key(), lambda: "cached")
        with ThreadPoolExecutor(max_workers=1) as executor:
            future = cache.submit(_key(), lambda: "fresh", executor)
        self.assertTrue(future.done())
        self.assertEqual(future.result(), "cached")

    def test_failed_async_load_is_retried(self) -> None:
        cache = QueryCache()

        def failing() -> str:
            raise DataFetchError("boom", operation="diff")

        with ThreadPoolExecutor(max_workers=1) as executor:
            future = cache.submit(_key(), failing, executor)
            with self.assertRaises(DataFetchError):
                future.result(timeout=5)

        self.assertFalse(cache.in_flight(_key()))
        self.assertNotIn(_key(), cache)
        self.assertEqual(cache.get(_key(), lambda: "ok"), "ok")


if __name__ == "__main__":
    unittest.main()
