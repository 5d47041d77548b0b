from subreddit_trends.models.post import (
    Accessibility,
    CacheEntry,
    OAuthToken,
    Post,
    Provenance,
    ResolutionResult,
    cache_key,
    normalize_query,
)

__all__ = [
    "Accessibility",
    "CacheEntry",
    "OAuthToken",
    "Post",
    "Provenance",
    "ResolutionResult",
    "cache_key",
    "normalize_query",
]
