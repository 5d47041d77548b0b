"""Parsers for the three upstream response shapes: JSON, Atom/RSS and HTML."""

from subreddit_trends.parsers.feed import parse_feed
from subreddit_trends.parsers.html import extract_canonical_name, looks_gated, parse_listing_html
from subreddit_trends.parsers.listing import absolute_url, parse_about, parse_listing

__all__ = [
    "absolute_url",
    "extract_canonical_name",
    "looks_gated",
    "parse_about",
    "parse_feed",
    "parse_listing",
    "parse_listing_html",
]
