"""Fallback chain driver for fetching a subreddit's top posts."""

import logging
from typing import List, Optional, Sequence

from subreddit_trends.collector.cache import ResultCache
from subreddit_trends.collector.sources import PostSource
from subreddit_trends.config import Config
from subreddit_trends.errors import (
    CredentialsMissing,
    RateLimited,
    TrendsError,
    Unavailable,
    UpstreamTimeout,
)
from subreddit_trends.models import Post, cache_key

logger = logging.getLogger(__name__)


class PostFetcher:
    """
    Runs the ordered list of post sources until one yields posts.

    Stages run strictly in order. A rate limit or a timeout from any stage
    aborts the chain and reaches the caller; every other stage failure is
    logged and the next stage is tried.
    """

    def __init__(
        self,
        config: Config,
        sources: Sequence[PostSource],
        cache: ResultCache,
        prometheus_exporter=None,
    ):
        """
        Initialize the fetcher.

        Args:
            config: Application configuration
            sources: Post sources in priority order
            cache: Result cache shared by all callers
            prometheus_exporter: Optional Prometheus exporter for metrics
        """
        self.config = config
        self.sources = list(sources)
        self.cache = cache
        self.prometheus_exporter = prometheus_exporter

    @property
    def stage_names(self) -> List[str]:
        return [source.name for source in self.sources]

    async def fetch_top(self, canonical: str, timeframe: Optional[str] = None) -> List[Post]:
        """
        Return the top posts for a resolved subreddit, using the cache.

        Args:
            canonical: Canonical subreddit name
            timeframe: Ranking window (defaults to the configured timeframe)

        Returns:
            At most ``top_n`` posts

        Raises:
            RateLimited: Upstream answered 429 at some stage
            UpstreamTimeout: Some stage timed out
            Unavailable: Every stage was exhausted
        """
        timeframe = timeframe or self.config.fetch.default_timeframe
        key = cache_key(canonical, timeframe)
        return await self.cache.get_or_fetch(key, timeframe, lambda: self.run_chain(canonical, timeframe))

    async def run_chain(self, canonical: str, timeframe: str) -> List[Post]:
        """Run the fallback chain once, bypassing the cache."""
        top_n = self.config.fetch.top_n

        for source in self.sources:
            if not source.enabled():
                logger.debug(f"Stage {source.name} disabled, skipping")
                continue

            logger.debug(f"Trying stage {source.name} for r/{canonical} ({timeframe})")
            try:
                posts = await source.fetch(canonical, timeframe)
            except RateLimited as e:
                logger.warning(f"Stage {source.name} rate limited for r/{canonical}: retry after {e.retry_after}s")
                self._record(source.name, "rate_limited")
                raise
            except UpstreamTimeout as e:
                # Aborts the whole chain rather than falling through to the next stage
                logger.warning(f"Stage {source.name} timed out for r/{canonical}: {e}")
                self._record(source.name, "timeout")
                raise
            except CredentialsMissing:
                logger.debug(f"Stage {source.name} skipped: no credentials")
                continue
            except TrendsError as e:
                logger.warning(f"Stage {source.name} failed for r/{canonical}: {e}")
                self._record(source.name, "error")
                continue

            if posts or source.accepts_empty:
                self._record(source.name, "success" if posts else "empty")
                logger.info(f"Fetched {len(posts[:top_n])} posts from r/{canonical} via {source.name}")
                return posts[:top_n]

            self._record(source.name, "empty")

        logger.error(f"All stages exhausted for r/{canonical} ({timeframe})")
        raise Unavailable(canonical, timeframe)

    def _record(self, stage: str, outcome: str) -> None:
        if self.prometheus_exporter:
            self.prometheus_exporter.record_stage(stage, outcome)
