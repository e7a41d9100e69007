"""Keyed query cache with in-flight request deduplication.

Git data is fetched through queries keyed by project, branch, range, and
strategy. Finished results are memoized in a small LRU; a request for a key
that is already being fetched shares the pending future instead of issuing a
second fetch. The cache never starts threads: asynchronous callers pass their
own executor.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from collections.abc import Callable, Iterable
from concurrent.futures import Executor, Future
from dataclasses import dataclass
from functools import partial
from typing import Any

logger = logging.getLogger(__name__)

QUERY_CACHE_MAX = 128


@dataclass(frozen=True)
class QueryKey:
    """Identity of one git data query."""

    operation: str
    project_id: str
    branch: str | None = None
    base_sha: str | None = None
    head_sha: str | None = None
    strategy: str | None = None
    paths: frozenset[str] | None = None

    @classmethod
    def scoped(
        cls,
        operation: str,
        project_id: str,
        *,
        branch: str | None = None,
        base_sha: str | None = None,
        head_sha: str | None = None,
        strategy: str | None = None,
        paths: Iterable[str] | None = None,
    ) -> "QueryKey":
        return cls(
            operation=operation,
            project_id=project_id,
            branch=branch,
            base_sha=base_sha,
            head_sha=head_sha,
            strategy=strategy,
            paths=frozenset(paths) if paths is not None else None,
        )


class QueryCache:
    """LRU of finished query results plus a table of in-flight futures.

    Failed loads are never memoized so a retry re-issues the query.
    """

    def __init__(self, max_entries: int = QUERY_CACHE_MAX) -> None:
        self._max_entries = max(1, int(max_entries))
        self._lock = threading.Lock()
        self._results: OrderedDict[QueryKey, Any] = OrderedDict()
        self._in_flight: dict[QueryKey, Future[Any]] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._results

    def _store(self, key: QueryKey, value: Any) -> None:
        """Insert result and evict oldest overflow entries (lock held)."""
        self._results[key] = value
        self._results.move_to_end(key)
        while len(self._results) > self._max_entries:
            self._results.popitem(last=False)

    def _lookup(self, key: QueryKey) -> tuple[bool, Any]:
        """Return ``(found, value)`` and refresh LRU order (lock held)."""
        if key not in self._results:
            return False, None
        self._results.move_to_end(key)
        return True, self._results[key]

    def get(self, key: QueryKey, loader: Callable[[], Any]) -> Any:
        """Return cached result for ``key`` or load it synchronously.

        If the key is already in flight the pending result is awaited instead
        of calling ``loader`` again. Loader exceptions propagate uncached.
        """
        with self._lock:
            found, value = self._lookup(key)
            if found:
                return value
            pending = self._in_flight.get(key)
        if pending is not None:
            return pending.result()

        logger.debug("query miss: %s", key)
        value = loader()
        with self._lock:
            self._store(key, value)
        return value

    def submit(self, key: QueryKey, loader: Callable[[], Any], executor: Executor) -> Future[Any]:
        """Schedule ``loader`` on ``executor`` unless the key is cached or pending.

        Identical concurrent requests receive the same future.
        """
        with self._lock:
            found, value = self._lookup(key)
            if found:
                done: Future[Any] = Future()
                done.set_result(value)
                return done
            pending = self._in_flight.get(key)
            if pending is not None:
                return pending
            logger.debug("query submit: %s", key)
            future = executor.submit(loader)
            self._in_flight[key] = future
        future.add_done_callback(partial(self._settle, key))
        return future

    def _settle(self, key: QueryKey, future: Future[Any]) -> None:
        """Move a finished future's result into the LRU."""
        with self._lock:
            if self._in_flight.get(key) is future:
                del self._in_flight[key]
            if future.cancelled() or future.exception() is not None:
                return
            self._store(key, future.result())

    def in_flight(self, key: QueryKey) -> bool:
        with self._lock:
            return key in self._in_flight

    def invalidate(self, predicate: Callable[[QueryKey], bool] | None = None) -> int:
        """Drop cached results (all, or those matching ``predicate``).

        Returns the number of dropped entries. In-flight queries are left to
        finish; callers discard stale results via their own generation checks.
        """
        with self._lock:
            if predicate is None:
                dropped = len(self._results)
                self._results.clear()
                return dropped
            stale = [key for key in self._results if predicate(key)]
            for key in stale:
                del self._results[key]
            return len(stale)

    def clear(self) -> None:
        self.invalidate()


__all__ = ["QUERY_CACHE_MAX", "QueryKey", "QueryCache"]
