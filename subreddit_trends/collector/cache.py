"""Per-key result cache with in-flight request de-duplication."""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from subreddit_trends.config import CacheConfig
from subreddit_trends.models import CacheEntry, Post

logger = logging.getLogger(__name__)

Producer = Callable[[], Awaitable[List[Post]]]


class ResultCache:
    """
    Memoizes successful fetches per ``canonical:timeframe`` key.

    Concurrent misses for the same key share one pending task, so at most one
    fallback chain runs per key at a time. The check-and-register step has no
    await in between and is therefore atomic on the event loop.
    """

    def __init__(
        self,
        config: CacheConfig,
        clock: Callable[[], float] = time.monotonic,
        prometheus_exporter=None,
    ):
        """
        Initialize the cache.

        Args:
            config: TTL configuration
            clock: Monotonic clock, replaceable in tests
            prometheus_exporter: Optional Prometheus exporter for metrics
        """
        self.config = config
        self._clock = clock
        self.prometheus_exporter = prometheus_exporter
        self._entries: Dict[str, CacheEntry] = {}
        self._in_flight: Dict[str, "asyncio.Task[Tuple[Post, ...]]"] = {}

    def ttl_for(self, timeframe: str) -> int:
        """5 minutes for ``day``, 60 minutes for every other timeframe."""
        if timeframe == "day":
            return self.config.day_ttl_sec
        return self.config.default_ttl_sec

    def get(self, key: str) -> Optional[List[Post]]:
        """Return the cached posts for ``key`` if the entry has not expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not entry.is_fresh(self._clock()):
            del self._entries[key]
            logger.debug(f"Cache entry expired: {key}")
            return None
        return list(entry.posts)

    def put(self, key: str, timeframe: str, posts: List[Post]) -> CacheEntry:
        """Store ``posts`` under ``key``, replacing any previous entry."""
        now = self._clock()
        self.prune(now)
        entry = CacheEntry(
            key=key,
            posts=tuple(posts),
            expires_at=now + self.ttl_for(timeframe),
            fetched_at=now,
        )
        self._entries[key] = entry
        return entry

    def prune(self, now: Optional[float] = None) -> int:
        """Drop every expired entry and return how many were removed."""
        if now is None:
            now = self._clock()
        expired = [key for key, entry in self._entries.items() if not entry.is_fresh(now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Pruned {len(expired)} expired cache entries")
        return len(expired)

    def is_in_flight(self, key: str) -> bool:
        return key in self._in_flight

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    async def get_or_fetch(self, key: str, timeframe: str, producer: Producer) -> List[Post]:
        """
        Return cached posts, join an in-flight fetch, or start a new one.

        Args:
            key: Cache key (see ``cache_key``)
            timeframe: Timeframe of the request, selects the TTL
            producer: Coroutine function that runs the fallback chain

        Returns:
            The posts produced for ``key``

        Raises:
            Whatever ``producer`` raised; every waiter sees the same exception.
        """
        cached = self.get(key)
        if cached is not None:
            logger.debug(f"Cache hit: {key}")
            self._record("hit")
            return cached

        task = self._in_flight.get(key)
        if task is not None:
            logger.debug(f"Joining in-flight fetch: {key}")
            self._record("joined")
        else:
            logger.debug(f"Cache miss: {key}")
            self._record("miss")
            task = asyncio.ensure_future(self._run(key, timeframe, producer))
            self._in_flight[key] = task

        # Shielded so one cancelled waiter does not cancel the shared fetch
        return list(await asyncio.shield(task))

    async def _run(self, key: str, timeframe: str, producer: Producer) -> Tuple[Post, ...]:
        try:
            posts = await producer()
            return self.put(key, timeframe, posts).posts
        finally:
            self._in_flight.pop(key, None)

    def _record(self, outcome: str) -> None:
        if self.prometheus_exporter:
            self.prometheus_exporter.record_cache_lookup(outcome)
