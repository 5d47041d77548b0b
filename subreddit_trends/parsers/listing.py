"""Decoder for Reddit JSON listings (``/top``, ``/top.json``)."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from subreddit_trends.models import Post, Provenance

logger = logging.getLogger(__name__)

REDDIT_BASE_URL = "https://www.reddit.com"


def absolute_url(path: Optional[str]) -> Optional[str]:
    """Qualify a site-relative Reddit path; pass absolute URLs through."""
    if not path:
        return None
    if path.startswith(("http://", "https://")):
        return path
    if path.startswith("//"):
        return f"https:{path}"
    if not path.startswith("/"):
        path = f"/{path}"
    return f"{REDDIT_BASE_URL}{path}"


def _to_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def timestamp_to_datetime(value: Any, per_second: int = 1) -> Optional[datetime]:
    """UTC datetime for a Unix timestamp in 1/``per_second`` units; ``None`` when unusable."""
    try:
        return datetime.fromtimestamp(float(value) / per_second, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def post_from_listing_child(data: Dict[str, Any], provenance: Provenance) -> Optional[Post]:
    """
    Map the ``data`` object of a ``t3`` listing child onto a ``Post``.

    Returns ``None`` for children without a title or without any link.
    """
    title = data.get("title")
    if not isinstance(title, str) or not title.strip():
        return None
    permalink = absolute_url(data.get("permalink"))
    url = absolute_url(data.get("url")) or permalink
    if not url and not permalink:
        return None
    author = data.get("author")
    return Post(
        title=title.strip(),
        url=url,
        permalink=permalink,
        provenance=provenance,
        score=_to_int(data.get("score")),
        author=author if isinstance(author, str) else None,
        created_at=timestamp_to_datetime(data.get("created_utc")),
        num_comments=_to_int(data.get("num_comments")),
    )


def parse_listing(payload: Any, provenance: Provenance, limit: Optional[int] = None) -> Optional[List[Post]]:
    """
    Decode a listing payload into posts.

    Args:
        payload: Decoded JSON body
        provenance: Stage that fetched the payload
        limit: Maximum number of posts to return

    Returns:
        The posts in listing order, an empty list for a listing without
        usable children, or ``None`` if the payload is not a listing at all.
    """
    if not isinstance(payload, dict):
        return None
    data = payload.get("data")
    if not isinstance(data, dict) or not isinstance(data.get("children"), list):
        return None

    posts: List[Post] = []
    for child in data["children"]:
        if not isinstance(child, dict) or not isinstance(child.get("data"), dict):
            continue
        if child.get("kind") not in (None, "t3"):
            continue
        post = post_from_listing_child(child["data"], provenance)
        if post is None:
            logger.debug("Skipping listing child without title or link")
            continue
        posts.append(post)
        if limit is not None and len(posts) >= limit:
            break
    return posts


def parse_about(payload: Any) -> Optional[Dict[str, Any]]:
    """
    Extract the subreddit description from an ``about`` payload.

    Returns the ``data`` object when it carries a display name, else ``None``.
    """
    if not isinstance(payload, dict):
        return None
    data = payload.get("data")
    if not isinstance(data, dict) or not data.get("display_name"):
        return None
    return data
