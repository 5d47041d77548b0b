"""
Post sources for the fallback chain.

Every source exposes the same contract: ``fetch(canonical, timeframe)`` returns a
list of posts, or raises. ``RateLimited`` and ``UpstreamTimeout`` stop the whole
chain; any other ``TrendsError`` only fails the current stage.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
from urllib.parse import quote

from subreddit_trends.collector.http_client import UpstreamClient, UpstreamResponse
from subreddit_trends.collector.token_manager import TokenManager
from subreddit_trends.config import Config
from subreddit_trends.errors import RateLimited, UpstreamError
from subreddit_trends.models import Post, Provenance
from subreddit_trends.parsers import parse_feed, parse_listing, parse_listing_html

logger = logging.getLogger(__name__)

OAUTH_BASE_URL = "https://oauth.reddit.com"

# Exceptions a parser may raise on a malformed body
PARSE_ERRORS = (ValueError, TypeError, KeyError, AttributeError, IndexError, OverflowError, OSError)

# (label, url template, extra params) tried in order by PublicJsonSource
PUBLIC_JSON_ENDPOINTS: Tuple[Tuple[str, str, Dict[str, Any]], ...] = (
    ("api", "https://api.reddit.com/r/{name}/top", {"raw_json": 1}),
    ("www", "https://www.reddit.com/r/{name}/top.json", {"raw_json": 1}),
    ("old", "https://old.reddit.com/r/{name}/top.json", {}),
)


class PostSource(ABC):
    """Base class for one stage of the fallback chain."""

    #: Stage name used in logs and metrics
    name: str = ""
    provenance: Provenance
    #: Whether an empty post list from this stage is an answer rather than a miss
    accepts_empty: bool = False

    def __init__(self, config: Config, client: UpstreamClient):
        self.config = config
        self.client = client

    @property
    def top_n(self) -> int:
        return self.config.fetch.top_n

    def enabled(self) -> bool:
        """Whether the stage should run at all."""
        return True

    @abstractmethod
    async def fetch(self, canonical: str, timeframe: str) -> List[Post]:
        """
        Fetch top posts for a resolved subreddit.

        Args:
            canonical: Canonical subreddit name
            timeframe: Ranking window passed to upstream verbatim

        Returns:
            At most ``top_n`` posts

        Raises:
            RateLimited: On a 429 response
            UpstreamTimeout: If the request timed out
            UpstreamError: If this stage produced nothing usable
        """

    def check_response(self, response: UpstreamResponse) -> None:
        """Raise ``RateLimited`` on 429 and ``UpstreamError`` on any other non-200."""
        if response.status == 429:
            retry_after = response.retry_after(self.config.fetch.default_retry_after_sec)
            raise RateLimited(retry_after, response.url)
        if response.status != 200:
            raise UpstreamError(response.status, response.url)

    def parse(self, response: UpstreamResponse, parser: Callable[..., Optional[List[Post]]], *args, **kwargs) -> Optional[List[Post]]:
        """
        Run ``parser`` on a response body.

        Raises:
            UpstreamError: If the parser failed on a malformed body
        """
        try:
            return parser(*args, **kwargs)
        except PARSE_ERRORS as e:
            logger.warning(f"Stage {self.name} could not parse {response.url}: {e!r}")
            raise UpstreamError(response.status, response.url, f"malformed body: {e}") from e

    def listing_params(self, timeframe: str) -> Dict[str, Any]:
        return {"t": timeframe, "limit": self.config.fetch.listing_limit}

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r}>"


class OAuthJsonSource(PostSource):
    """Authenticated ``/top`` listing on oauth.reddit.com."""

    name = "oauth"
    provenance = Provenance.OAUTH

    def __init__(self, config: Config, client: UpstreamClient, token_manager: TokenManager):
        super().__init__(config, client)
        self.token_manager = token_manager

    def enabled(self) -> bool:
        return self.token_manager.configured

    async def fetch(self, canonical: str, timeframe: str) -> List[Post]:
        token = await self.token_manager.get_token()
        url = f"{OAUTH_BASE_URL}/r/{quote(canonical)}/top"
        params = self.listing_params(timeframe)
        params["raw_json"] = 1
        response = await self.client.get(url, params=params, headers={"Authorization": f"bearer {token}"})
        if response.status == 401:
            # Token revoked or expired early; the next call re-authenticates
            self.token_manager.invalidate()
        self.check_response(response)

        posts = self.parse(response, parse_listing, response.json(), self.provenance, limit=self.top_n)
        if not posts:
            raise UpstreamError(response.status, response.url, "empty or malformed listing")
        return posts


class PublicJsonSource(PostSource):
    """Unauthenticated ``/top`` listings on the api, www and old hosts, in order."""

    name = "json"
    provenance = Provenance.JSON

    def __init__(
        self,
        config: Config,
        client: UpstreamClient,
        endpoints: Sequence[Tuple[str, str, Dict[str, Any]]] = PUBLIC_JSON_ENDPOINTS,
    ):
        super().__init__(config, client)
        self.endpoints = tuple(endpoints)

    async def fetch(self, canonical: str, timeframe: str) -> List[Post]:
        last_error: Optional[UpstreamError] = None
        for label, template, extra in self.endpoints:
            url = template.format(name=quote(canonical))
            params = self.listing_params(timeframe)
            params.update(extra)
            try:
                response = await self.client.get(url, params=params)
                self.check_response(response)
                posts = self.parse(response, parse_listing, response.json(), self.provenance, limit=self.top_n)
            except UpstreamError as e:
                logger.debug(f"JSON endpoint {label} failed for r/{canonical}: {e}")
                last_error = e
                continue

            if posts:
                logger.debug(f"JSON endpoint {label} returned {len(posts)} posts for r/{canonical}")
                return posts
            logger.debug(f"JSON endpoint {label} returned no posts for r/{canonical}")
            last_error = UpstreamError(response.status, response.url, "empty or malformed listing")

        raise last_error or UpstreamError(0, "", "no JSON endpoints configured")


class FeedSource(PostSource):
    """Atom feed for the ``/top`` listing."""

    name = "rss"
    provenance = Provenance.RSS
    accepts_empty = True

    FEED_URL = "https://www.reddit.com/r/{name}/top/.rss"

    async def fetch(self, canonical: str, timeframe: str) -> List[Post]:
        url = self.FEED_URL.format(name=quote(canonical))
        response = await self.client.get(url, params={"t": timeframe})
        self.check_response(response)

        posts = self.parse(response, parse_feed, response.text, limit=self.top_n)
        if posts is None:
            raise UpstreamError(response.status, response.url, "body is not a feed")
        return posts


class HtmlListingSource(PostSource):
    """Scrape the old.reddit ``/top`` page as a last resort."""

    name = "html"
    provenance = Provenance.HTML

    LISTING_URL = "https://old.reddit.com/r/{name}/top/"

    async def fetch(self, canonical: str, timeframe: str) -> List[Post]:
        url = self.LISTING_URL.format(name=quote(canonical))
        response = await self.client.get(url, params={"t": timeframe})
        self.check_response(response)

        posts = self.parse(response, parse_listing_html, response.text, limit=self.top_n)
        if not posts:
            raise UpstreamError(response.status, response.url, "no listing entries in page")
        return posts


def default_sources(config: Config, client: UpstreamClient, token_manager: TokenManager) -> List[PostSource]:
    """The fallback chain in priority order."""
    return [
        OAuthJsonSource(config, client, token_manager),
        PublicJsonSource(config, client),
        FeedSource(config, client),
        HtmlListingSource(config, client),
    ]
