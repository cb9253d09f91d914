"""
In-memory query cache keyed by query identity.

The cache memoizes single-shot query results, shares one in-flight request
between concurrent identical calls, and keeps one pagination walk per
identity. Invalidation policy, retries and persistence are left to the caller.
"""

import asyncio
import json
import time
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

from ._logging import logger, redact_token

if TYPE_CHECKING:
    from .controller import PaginatedQuery

T = TypeVar("T")


def identity_key(identity: Iterable[Any]) -> str:
    """
    Canonical string for a query identity.

    Segments are JSON-encoded with sorted object keys so that equal inputs
    built in a different key order share the same cache entry.
    """
    return json.dumps(list(identity), sort_keys=True, default=str, separators=(",", ":"))


def _log_failed_request(task: "asyncio.Future[Any]") -> None:
    # Consumes the exception even when no caller is left to await the request
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.debug(
            "Cached query request failed",
            extra={"error_type": type(error).__name__, "error_message": str(error)},
        )


@dataclass
class CacheEntry:
    value: Any
    fetched_at: float

    def is_stale(self, stale_time: float | None, now: float | None = None) -> bool:
        """An entry without ``stale_time`` never goes stale."""
        if stale_time is None:
            return False
        now = time.monotonic() if now is None else now
        return now - self.fetched_at >= stale_time


class QueryCache:
    """
    Identity-keyed memoization for queries and pagination walks.

    Usage:
        cache = QueryCache()
        user = await cache.fetch(("user", "42"), lambda: client_call("42"))
        walk = cache.paginate(("users",), make_walk)
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._results: dict[str, CacheEntry] = {}
        self._inflight: dict[str, asyncio.Future[Any]] = {}
        self._walks: dict[str, "PaginatedQuery"] = {}

    def __contains__(self, identity: Iterable[Any]) -> bool:
        key = identity_key(identity)
        return key in self._results or key in self._walks

    async def fetch(
        self,
        identity: Iterable[Any],
        fetcher: Callable[[], Awaitable[T]],
        stale_time: float | None = None,
    ) -> T:
        """
        Returns the memoized result for ``identity`` or runs ``fetcher``.

        Concurrent calls with the same identity share one ``fetcher`` call.
        A cached result older than ``stale_time`` seconds is refetched; with
        ``stale_time=None`` the result is reused until invalidated. A request
        outlives cancelled callers and still caches its result. Failures
        are not cached.
        """
        key = identity_key(identity)

        entry = self._results.get(key)
        if entry is not None and not entry.is_stale(stale_time, self._clock()):
            logger.debug("Cache hit", extra={"identity_hash": redact_token(key)})
            return entry.value

        pending = self._inflight.get(key)
        if pending is not None:
            logger.debug("Joining in-flight request", extra={"identity_hash": redact_token(key)})
            return await asyncio.shield(pending)

        async def run() -> T:
            try:
                value = await fetcher()
            finally:
                if self._inflight.get(key) is task:
                    del self._inflight[key]
            self._results[key] = CacheEntry(value=value, fetched_at=self._clock())
            return value

        # Stores its own result, even after every caller was cancelled
        task = asyncio.ensure_future(run())
        task.add_done_callback(_log_failed_request)
        self._inflight[key] = task
        return await asyncio.shield(task)

    def get(self, identity: Iterable[Any]) -> Any | None:
        """Returns the cached result, stale or not, or None."""
        entry = self._results.get(identity_key(identity))
        return entry.value if entry is not None else None

    def is_stale(self, identity: Iterable[Any], stale_time: float | None) -> bool:
        """True if nothing is cached for ``identity`` or the entry is older than ``stale_time``."""
        entry = self._results.get(identity_key(identity))
        return entry is None or entry.is_stale(stale_time, self._clock())

    def is_fetching(self, identity: Iterable[Any]) -> bool:
        key = identity_key(identity)
        if key in self._inflight:
            return True
        walk = self._walks.get(key)
        return walk is not None and walk.is_fetching

    def paginate(
        self, identity: Iterable[Any], factory: Callable[[], "PaginatedQuery"]
    ) -> "PaginatedQuery":
        """Returns the live walk for ``identity``, creating it with ``factory`` if needed."""
        key = identity_key(identity)
        walk = self._walks.get(key)
        if walk is not None and not walk.is_discarded:
            return walk

        walk = factory()
        self._walks[key] = walk
        logger.debug(
            "Pagination walk registered",
            extra={"identity_hash": redact_token(key), "operation": walk.operation},
        )
        return walk

    def invalidate(self, identity: Iterable[Any]) -> None:
        """Drops the cached result and discards the walk of ``identity``."""
        key = identity_key(identity)
        self._results.pop(key, None)
        walk = self._walks.pop(key, None)
        if walk is not None:
            walk.discard()

    def clear(self) -> None:
        """Drops every cached result and discards every walk."""
        for walk in self._walks.values():
            walk.discard()
        self._walks.clear()
        self._results.clear()
