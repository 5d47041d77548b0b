"""Exception types raised by the resolution and retrieval pipeline."""

from typing import Optional


class TrendsError(Exception):
    """Base class for all pipeline errors."""


class SubredditNotFound(TrendsError):
    """The resolver determined the subreddit does not exist."""

    def __init__(self, name: str):
        super().__init__(f"Subreddit \"{name}\" not found")
        self.name = name


class RateLimited(TrendsError):
    """Upstream answered 429; the whole fallback chain stops."""

    def __init__(self, retry_after: int, url: Optional[str] = None):
        super().__init__(f"Rate limited by upstream, retry after {retry_after}s")
        self.retry_after = retry_after
        self.url = url


class UpstreamTimeout(TrendsError):
    """A single upstream call exceeded the fetch timeout."""

    def __init__(self, url: str, timeout: float):
        super().__init__(f"Request to {url} timed out after {timeout:.1f}s")
        self.url = url
        self.timeout = timeout


class Unavailable(TrendsError):
    """Every fallback stage was exhausted without a usable result."""

    def __init__(self, canonical: str, timeframe: str):
        super().__init__(f"r/{canonical} is not readable from this server ({timeframe})")
        self.canonical = canonical
        self.timeframe = timeframe


class CredentialsMissing(TrendsError):
    """OAuth was requested without a configured client id/secret."""


class UpstreamError(TrendsError):
    """Non-success response from a single stage. Swallowed by the fetcher."""

    def __init__(self, status: int, url: str, message: str = ""):
        detail = f": {message}" if message else ""
        super().__init__(f"HTTP {status} from {url}{detail}")
        self.status = status
        self.url = url
