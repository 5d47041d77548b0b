"""Subreddit resolution: existence, canonical name and accessibility."""

import logging
from typing import Optional
from urllib.parse import quote

from subreddit_trends.collector.http_client import UpstreamClient, UpstreamResponse
from subreddit_trends.errors import UpstreamError
from subreddit_trends.models import Accessibility, ResolutionResult, normalize_query
from subreddit_trends.parsers import extract_canonical_name, looks_gated, parse_about

logger = logging.getLogger(__name__)

API_ABOUT_URL = "https://api.reddit.com/r/{name}/about"
WWW_ABOUT_URL = "https://www.reddit.com/r/{name}/about.json"
WWW_PAGE_URL = "https://www.reddit.com/r/{name}/"
OLD_PAGE_URL = "https://old.reddit.com/r/{name}/"

# about.subreddit_type values that restrict reading to members
GATED_TYPES = ("private", "employees_only", "gold_only")


class SubredditResolver:
    """
    Resolves user-typed subreddit text against a prioritized list of probes.

    The two ``about`` JSON endpoints are authoritative when they answer. When
    they do not, the www and old front pages are fetched and mined for the
    canonical name and for gating markers. Gating only lowers confidence;
    it never marks a subreddit as unreadable.
    """

    def __init__(self, client: UpstreamClient, prometheus_exporter=None):
        self.client = client
        self.prometheus_exporter = prometheus_exporter

    async def resolve(self, raw_name: str) -> ResolutionResult:
        """
        Resolve ``raw_name`` (e.g. ``"r/cooking"``) to a ``ResolutionResult``.

        Raises:
            UpstreamTimeout: If any probe timed out
        """
        name = normalize_query(raw_name)
        path_name = quote(name)

        about = await self._probe(API_ABOUT_URL.format(name=path_name))
        result = self._from_about(about, "api.about")
        if result is not None:
            return self._done(raw_name, result)

        if about is None or about.status != 403:
            about = await self._probe(WWW_ABOUT_URL.format(name=path_name))
            result = self._from_about(about, "www.about")
            if result is not None:
                return self._done(raw_name, result)

        www_page = await self._probe(WWW_PAGE_URL.format(name=path_name))
        old_page = await self._probe(OLD_PAGE_URL.format(name=path_name))
        if _status(www_page) == 404 and _status(old_page) == 404:
            logger.info(f"Subreddit not found on either mirror: {name}")
            return self._done(raw_name, ResolutionResult.not_found(name))

        page = "\n".join(_body(response) for response in (www_page, old_page))
        canonical = extract_canonical_name(page)
        if canonical is None:
            logger.debug(f"No canonical name in HTML for {name}, keeping input casing")
            canonical = name
        gated = looks_gated(page)

        result = ResolutionResult(
            exists=True,
            canonical=canonical,
            accessibility=Accessibility.GATED_MAYBE if gated else Accessibility.UNKNOWN,
            source="html",
            url=f"https://www.reddit.com/r/{canonical}/",
            http_status=403 if gated else 200,
        )
        return self._done(raw_name, result)

    async def _probe(self, url: str) -> Optional[UpstreamResponse]:
        """GET ``url``; transport failures count as "no answer". Timeouts propagate."""
        try:
            return await self.client.get(url)
        except UpstreamError as e:
            logger.debug(f"Probe failed: {e}")
            return None

    @staticmethod
    def _from_about(response: Optional[UpstreamResponse], source: str) -> Optional[ResolutionResult]:
        if response is None or response.status != 200:
            return None
        data = parse_about(response.json())
        if data is None:
            return None
        subreddit_url = data.get("url") or f"/r/{data['display_name']}/"
        subreddit_type = data.get("subreddit_type") or "public"
        accessibility = Accessibility.GATED_MAYBE if subreddit_type in GATED_TYPES else Accessibility.PUBLIC
        return ResolutionResult(
            exists=True,
            canonical=data["display_name"],
            accessibility=accessibility,
            source=source,
            subreddit_type=subreddit_type,
            url=f"https://www.reddit.com{subreddit_url}",
            http_status=200,
        )

    def _done(self, raw_name: str, result: ResolutionResult) -> ResolutionResult:
        if result.exists and normalize_query(raw_name).lower() != result.canonical.lower():
            logger.info(f"Canonicalized {raw_name!r} to {result.canonical!r}")
        logger.debug(f"Resolved {raw_name!r} via {result.source}: {result.accessibility.value}")
        if self.prometheus_exporter:
            self.prometheus_exporter.record_resolution(result.source)
        return result


def _status(response: Optional[UpstreamResponse]) -> Optional[int]:
    return response.status if response is not None else None


def _body(response: Optional[UpstreamResponse]) -> str:
    if response is None or response.status != 200:
        return ""
    return response.text
