"""Subreddit top-post retrieval with resolution, fallbacks, caching and digests."""

__version__ = "0.1.0"
