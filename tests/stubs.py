"""Test doubles shared across the test-suite: a fake clock and a fake upstream."""

import asyncio
import json
from typing import Any, Dict, List, Optional, Union

from subreddit_trends.collector.http_client import UpstreamResponse
from subreddit_trends.config import Config

JSON_HEADERS = {"Content-Type": "application/json; charset=UTF-8"}
HTML_HEADERS = {"Content-Type": "text/html; charset=UTF-8"}
ATOM_HEADERS = {"Content-Type": "application/atom+xml; charset=UTF-8"}


class FakeClock:
    """Controllable clock; ``sleep`` advances it instead of waiting."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.advance(seconds)
        await asyncio.sleep(0)


def json_response(url: str, payload: Any, status: int = 200, headers: Optional[Dict[str, str]] = None) -> UpstreamResponse:
    merged = dict(JSON_HEADERS)
    merged.update(headers or {})
    return UpstreamResponse(status=status, url=url, text=json.dumps(payload), headers=merged)


def text_response(url: str, text: str, status: int = 200, headers: Optional[Dict[str, str]] = None) -> UpstreamResponse:
    return UpstreamResponse(status=status, url=url, text=text, headers=headers or dict(HTML_HEADERS))


def listing_payload(count: int, prefix: str = "Post") -> Dict[str, Any]:
    """A ``/top.json`` listing with ``count`` children."""
    children = []
    for i in range(1, count + 1):
        children.append({
            "kind": "t3",
            "data": {
                "title": f"{prefix} {i}",
                "url": f"https://example.com/{i}",
                "permalink": f"/r/Cooking/comments/abc{i}/post_{i}/",
                "score": 100 * i,
                "author": f"user{i}",
                "created_utc": 1700000000 + i,
                "num_comments": i,
            },
        })
    return {"kind": "Listing", "data": {"children": children}}


def atom_feed(count: int) -> str:
    """A Reddit-style Atom feed with ``count`` entries."""
    entries = "".join(
        f"""
  <entry>
    <author><name>/u/user{i}</name></author>
    <id>t3_rss{i}</id>
    <link href="https://www.reddit.com/r/Cooking/comments/rss{i}/feed_post_{i}/" />
    <updated>2024-01-0{i}T10:00:00+00:00</updated>
    <title>Feed post {i}</title>
  </entry>"""
        for i in range(1, count + 1)
    )
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <id>/r/Cooking/top/.rss</id>
  <title>top scoring links : Cooking</title>
  <updated>2024-01-10T10:00:00+00:00</updated>{entries}
</feed>"""


def old_listing_html(count: int) -> str:
    """An old.reddit ``/top/`` page with ``count`` link things."""
    things = "".join(
        f"""
<div class=" thing id-t3_old{i} link " data-fullname="t3_old{i}" data-type="link"
     data-author="user{i}" data-url="https://example.com/old/{i}"
     data-permalink="/r/Cooking/comments/old{i}/html_post_{i}/" data-score="{10 * i}"
     data-comments-count="{i}" data-timestamp="{1700000000000 + i * 1000}">
  <p class="title"><a class="title may-blank " href="https://example.com/old/{i}">HTML post {i}</a></p>
</div>"""
        for i in range(1, count + 1)
    )
    return f'<html><body><div id="siteTable" class="sitetable linklisting">{things}</div></body></html>'


Route = Union[UpstreamResponse, Exception, List[Union[UpstreamResponse, Exception]]]


class FakeUpstream:
    """
    Stand-in for ``UpstreamClient`` keyed by URL (query string excluded).

    A route may be a response, an exception to raise, or a list consumed one
    item per call (the last item repeats). Unknown URLs answer 404.
    """

    def __init__(self, routes: Optional[Dict[str, Route]] = None, delay: float = 0.0):
        self.routes: Dict[str, Route] = dict(routes or {})
        self.calls: List[Dict[str, Any]] = []
        self.delay = delay
        self.closed = False

    def add(self, url: str, route: Route) -> None:
        self.routes[url] = route

    def urls(self) -> List[str]:
        return [call["url"] for call in self.calls]

    async def get(self, url: str, params=None, headers=None) -> UpstreamResponse:
        return await self._handle("GET", url, params=params, headers=headers)

    async def post(self, url: str, data=None, headers=None, auth=None) -> UpstreamResponse:
        return await self._handle("POST", url, data=data, headers=headers, auth=auth)

    async def _handle(self, method: str, url: str, **kwargs) -> UpstreamResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        if self.delay:
            await asyncio.sleep(self.delay)
        else:
            await asyncio.sleep(0)

        route = self.routes.get(url)
        if isinstance(route, list):
            item = route.pop(0) if len(route) > 1 else route[0]
        else:
            item = route
        if item is None:
            return text_response(url, "not found", status=404)
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self) -> None:
        self.closed = True


def make_config(**fetch_overrides) -> Config:
    """Default config without credentials, with optional fetch overrides."""
    config = Config()
    for key, value in fetch_overrides.items():
        setattr(config.fetch, key, value)
    return config


def oauth_config() -> Config:
    config = Config()
    config.client_id = "client-id"
    config.client_secret = "client-secret"
    return config
