"""Data models for subreddit resolution results and normalized posts."""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class Accessibility(str, Enum):
    """How confident the resolver is that a subreddit can be read."""

    PUBLIC = "public"
    GATED_MAYBE = "gated-maybe"
    UNKNOWN = "unknown"
    NOT_FOUND = "not-found"


class Provenance(str, Enum):
    """Which fallback stage produced a post."""

    OAUTH = "oauth"
    JSON = "json"
    RSS = "rss"
    HTML = "html"


@dataclass(frozen=True)
class ResolutionResult:
    """
    Outcome of resolving user-typed subreddit text.

    ``source`` names the probe that produced the answer: ``api.about``,
    ``www.about``, ``html`` or ``none`` when both mirrors reported 404.
    """

    exists: bool
    canonical: str
    accessibility: Accessibility
    source: str
    subreddit_type: Optional[str] = None
    url: Optional[str] = None
    http_status: Optional[int] = None

    @classmethod
    def not_found(cls, query: str) -> "ResolutionResult":
        return cls(
            exists=False,
            canonical=query,
            accessibility=Accessibility.NOT_FOUND,
            source="none",
            http_status=404,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["accessibility"] = self.accessibility.value
        return data


@dataclass(frozen=True)
class Post:
    """
    A single top post, normalized across every fallback stage.

    Feed and HTML stages cannot populate every field, so most attributes are
    optional. ``title`` is always set and at least one of ``url``/``permalink``.
    """

    title: str
    url: Optional[str]
    permalink: Optional[str]
    provenance: Provenance
    score: Optional[int] = None
    author: Optional[str] = None
    created_at: Optional[datetime] = None
    num_comments: Optional[int] = None

    def __post_init__(self):
        if not self.title:
            raise ValueError("Post requires a title")
        if not self.url and not self.permalink:
            raise ValueError("Post requires a url or a permalink")

    @property
    def link(self) -> str:
        """Best link for presentation: the permalink, else the target url."""
        return self.permalink or self.url  # type: ignore[return-value]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "url": self.url,
            "permalink": self.permalink,
            "score": self.score,
            "author": self.author,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "num_comments": self.num_comments,
            "provenance": self.provenance.value,
        }


@dataclass(frozen=True)
class OAuthToken:
    """Bearer token from the client-credentials grant. Replaced, never mutated."""

    access_token: str
    expires_at: float

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at


@dataclass(frozen=True)
class CacheEntry:
    """Cached, already-capped post list for one ``canonical:timeframe`` key."""

    key: str
    posts: Tuple[Post, ...]
    expires_at: float
    fetched_at: float = field(default=0.0, compare=False)

    def is_fresh(self, now: float) -> bool:
        return now < self.expires_at


def normalize_query(raw: str) -> str:
    """Trim user input and strip a leading ``r/`` (any case)."""
    name = (raw or "").strip()
    if name[:2].lower() == "r/":
        name = name[2:]
    return name.strip()


def cache_key(canonical: str, timeframe: str) -> str:
    """Build the cache/in-flight key for a subreddit and timeframe."""
    return f"{canonical.lower()}:{timeframe}"
