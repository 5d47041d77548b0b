"""Decoder for Reddit's Atom (``.rss``) listing feeds."""

import logging
from datetime import datetime, timezone
from typing import List, Optional

import feedparser

from subreddit_trends.models import Post, Provenance

logger = logging.getLogger(__name__)


def _entry_datetime(entry) -> Optional[datetime]:
    time_struct = entry.get("updated_parsed") or entry.get("published_parsed")
    if not time_struct:
        return None
    return datetime(*time_struct[:6], tzinfo=timezone.utc)


def parse_feed(text: str, limit: Optional[int] = None) -> Optional[List[Post]]:
    """
    Parse an Atom/RSS document into posts carrying only title, links and date.

    Args:
        text: Raw feed body
        limit: Maximum number of posts to return

    Returns:
        Posts in feed order; an empty list for a well-formed feed without
        usable entries; ``None`` when the body is not a feed.
    """
    feed = feedparser.parse(text)
    if not feed.entries and (feed.bozo or not feed.version):
        logger.debug(f"Body is not a usable feed: {feed.get('bozo_exception')}")
        return None

    posts: List[Post] = []
    for entry in feed.entries:
        title = (entry.get("title") or "").strip()
        link = entry.get("link") or ""
        entry_id = entry.get("id") or ""
        if "/comments/" in entry_id:
            permalink = entry_id
        elif "/comments/" in link:
            permalink = link
        else:
            permalink = None
        url = link or permalink
        if not title or not url:
            continue
        posts.append(
            Post(
                title=title,
                url=url,
                permalink=permalink,
                provenance=Provenance.RSS,
                created_at=_entry_datetime(entry),
            )
        )
        if limit is not None and len(posts) >= limit:
            break
    return posts
