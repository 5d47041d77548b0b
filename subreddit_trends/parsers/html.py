"""
Pattern extraction from Reddit HTML pages.

Canonical names and gating markers are matched with regular expressions on the
raw www/old.reddit pages. Listing entries on old.reddit are read with
BeautifulSoup. Each helper reports plainly when it found nothing.
"""

import logging
import re
from typing import List, Optional

from bs4 import BeautifulSoup

from subreddit_trends.models import Post, Provenance
from subreddit_trends.parsers.listing import absolute_url, timestamp_to_datetime

logger = logging.getLogger(__name__)

# Canonical name, in priority order
OG_URL_RE = re.compile(
    r"""property=["']og:url["'][^>]*content=["']https://(?:www|old)\.reddit\.com/r/([^/"']+)/""",
    re.IGNORECASE,
)
CANONICAL_LINK_RE = re.compile(
    r"""<link\s+rel=["']canonical["'][^>]*href=["']https://(?:www|old)\.reddit\.com/r/([^/"']+)/""",
    re.IGNORECASE,
)
DESCRIPTION_ATTR_RE = re.compile(
    r"""(?:subreddit-description|subredditDescription)=["']r/([^"']+)["']""",
    re.IGNORECASE,
)
TITLE_RE = re.compile(r"<title>\s*r/([A-Za-z0-9_]+)\b", re.IGNORECASE)

CANONICAL_PATTERNS = (OG_URL_RE, CANONICAL_LINK_RE, DESCRIPTION_ATTR_RE, TITLE_RE)

GATING_MARKERS = (
    re.compile(r"<protected-community-modal", re.IGNORECASE),
    re.compile(r"This community is private", re.IGNORECASE),
    re.compile(r"You must be invited to visit this community", re.IGNORECASE),
)


def extract_canonical_name(page: str) -> Optional[str]:
    """
    Find the canonical subreddit name in one or more concatenated pages.

    Tries the og:url meta tag, the canonical link, the subreddit description
    attribute and the ``<title>`` prefix, in that order.

    Returns:
        The name from the first pattern that matches, or ``None``.
    """
    if not page:
        return None
    for pattern in CANONICAL_PATTERNS:
        match = pattern.search(page)
        if match and match.group(1):
            return match.group(1)
    return None


def looks_gated(page: str) -> bool:
    """True if the page carries any known private/protected community marker."""
    if not page:
        return False
    return any(marker.search(page) for marker in GATING_MARKERS)


def _to_int(value: Optional[str]) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        return None


def parse_listing_html(page: str, limit: Optional[int] = None) -> Optional[List[Post]]:
    """
    Scrape posts from an old.reddit listing page.

    Each ``div.thing`` contributes its ``a.title`` text plus the ``data-*``
    attributes for url, permalink, score, comment count, author and timestamp.
    Promoted entries are skipped.

    Returns:
        Posts in page order, or ``None`` when the page has no listing entries.
    """
    if not page:
        return None
    soup = BeautifulSoup(page, "html.parser")
    things = soup.select("div.thing")
    if not things:
        return None

    posts: List[Post] = []
    for thing in things:
        if thing.get("data-promoted") == "true" or thing.get("data-type", "link") != "link":
            continue

        title_link = thing.select_one("a.title")
        title = " ".join(title_link.get_text().split()) if title_link else ""
        permalink = absolute_url(thing.get("data-permalink"))
        url = absolute_url(thing.get("data-url")) or permalink
        if not title or not url:
            continue

        # old.reddit timestamps are in milliseconds
        created_at = timestamp_to_datetime(thing.get("data-timestamp"), per_second=1000)

        posts.append(
            Post(
                title=title,
                url=url,
                permalink=permalink,
                provenance=Provenance.HTML,
                score=_to_int(thing.get("data-score")),
                author=thing.get("data-author") or None,
                created_at=created_at,
                num_comments=_to_int(thing.get("data-comments-count")),
            )
        )
        if limit is not None and len(posts) >= limit:
            break

    logger.debug(f"Extracted {len(posts)} posts from {len(things)} listing entries")
    return posts
