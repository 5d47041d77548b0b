"""Wiring of the resolution and retrieval pipeline into one service object."""

import logging
from typing import List, Optional, Sequence

from subreddit_trends.collector.cache import ResultCache
from subreddit_trends.collector.fetcher import PostFetcher
from subreddit_trends.collector.http_client import UpstreamClient
from subreddit_trends.collector.rate_limiter import RateLimiter
from subreddit_trends.collector.resolver import SubredditResolver
from subreddit_trends.collector.sources import PostSource, default_sources
from subreddit_trends.collector.token_manager import TokenManager
from subreddit_trends.config import Config
from subreddit_trends.errors import SubredditNotFound
from subreddit_trends.models import Post, ResolutionResult

logger = logging.getLogger(__name__)


class TrendsService:
    """
    Entry point used by the HTTP layer, the CLI and the digest runner.

    Owns one request gate, one token manager and one result cache. Build a
    fresh instance per process (or per test) with ``from_config``.
    """

    def __init__(
        self,
        config: Config,
        client: UpstreamClient,
        resolver: SubredditResolver,
        fetcher: PostFetcher,
        token_manager: Optional[TokenManager] = None,
    ):
        self.config = config
        self.client = client
        self.resolver = resolver
        self.fetcher = fetcher
        self.token_manager = token_manager

    @classmethod
    def from_config(
        cls,
        config: Config,
        client: Optional[UpstreamClient] = None,
        rate_limiter: Optional[RateLimiter] = None,
        cache: Optional[ResultCache] = None,
        sources: Optional[Sequence[PostSource]] = None,
        prometheus_exporter=None,
    ) -> "TrendsService":
        """
        Build a service and all its components from configuration.

        Args:
            config: Application configuration
            client: Optional pre-built upstream client (tests pass a fake)
            rate_limiter: Optional request gate
            cache: Optional result cache
            sources: Optional fallback chain overriding the default order
            prometheus_exporter: Optional Prometheus exporter for metrics
        """
        if client is None:
            rate_limiter = rate_limiter or RateLimiter(config.rate_limit)
            client = UpstreamClient(config, rate_limiter, prometheus_exporter=prometheus_exporter)
        token_manager = TokenManager(config, client)
        cache = cache or ResultCache(config.cache, prometheus_exporter=prometheus_exporter)
        if sources is None:
            sources = default_sources(config, client, token_manager)
        fetcher = PostFetcher(config, sources, cache, prometheus_exporter=prometheus_exporter)
        resolver = SubredditResolver(client, prometheus_exporter=prometheus_exporter)

        if config.oauth_enabled:
            logger.info("OAuth credentials configured, OAuth stage enabled")
        else:
            logger.info("No OAuth credentials, OAuth stage disabled")
        logger.info(f"Fallback chain: {' -> '.join(fetcher.stage_names)}")
        return cls(config, client, resolver, fetcher, token_manager)

    async def resolve(self, name: str) -> ResolutionResult:
        """Resolve user-typed subreddit text."""
        return await self.resolver.resolve(name)

    async def fetch_top(self, canonical: str, timeframe: Optional[str] = None) -> List[Post]:
        """Top posts for an already-resolved canonical name."""
        return await self.fetcher.fetch_top(canonical, timeframe)

    async def trending(self, name: str, timeframe: Optional[str] = None) -> List[Post]:
        """
        Resolve ``name`` and fetch its top posts.

        Raises:
            SubredditNotFound: If the resolver reports the subreddit absent
            RateLimited, UpstreamTimeout, Unavailable: From the fallback chain
        """
        info = await self.resolve(name)
        if not info.exists:
            raise SubredditNotFound(info.canonical)
        return await self.fetch_top(info.canonical, timeframe)

    async def close(self) -> None:
        await self.client.close()

    async def __aenter__(self) -> "TrendsService":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
