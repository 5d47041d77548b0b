"""Thin aiohttp wrapper used by every probe and fallback stage."""

import asyncio
import json
import logging
from contextlib import nullcontext
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

import aiohttp

from subreddit_trends.collector.rate_limiter import RateLimiter
from subreddit_trends.config import Config
from subreddit_trends.errors import UpstreamError, UpstreamTimeout

logger = logging.getLogger(__name__)

ACCEPT_HEADER = "text/html,application/json;q=0.9,*/*;q=0.8"
ACCEPT_LANGUAGE = "en-US,en;q=0.8"


@dataclass
class UpstreamResponse:
    """Status, headers and body of one upstream call."""

    status: int
    url: str
    text: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def content_type(self) -> str:
        for key, value in self.headers.items():
            if key.lower() == "content-type":
                return value
        return ""

    def header(self, name: str) -> Optional[str]:
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None

    def json(self) -> Optional[Any]:
        """Decoded JSON body, or ``None`` if the body is not JSON."""
        if "json" not in self.content_type:
            return None
        try:
            return json.loads(self.text)
        except ValueError:
            return None

    def retry_after(self, default: int) -> int:
        """Seconds from the Retry-After header, falling back to ``default``."""
        value = self.header("Retry-After")
        if value is None:
            return default
        try:
            return max(0, int(float(value)))
        except (TypeError, ValueError):
            logger.warning(f"Failed to parse Retry-After header: {value!r}")
            return default


class UpstreamClient:
    """
    HTTP client for Reddit hosts.

    Every request goes through the shared request gate and is bounded by the
    fetch timeout. Any HTTP status is returned to the caller as an
    ``UpstreamResponse``; only timeouts and transport failures raise.
    """

    def __init__(
        self,
        config: Config,
        rate_limiter: RateLimiter,
        session: Optional[aiohttp.ClientSession] = None,
        prometheus_exporter=None,
    ):
        self.config = config
        self.rate_limiter = rate_limiter
        self.timeout = config.fetch.timeout_sec
        self.prometheus_exporter = prometheus_exporter
        self._session = session
        self._owns_session = session is None
        self.default_headers = {
            "User-Agent": config.user_agent,
            "Accept": ACCEPT_HEADER,
            "Accept-Language": ACCEPT_LANGUAGE,
        }

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers=self.default_headers)
            self._owns_session = True
        return self._session

    async def get(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> UpstreamResponse:
        """
        GET ``url`` after waiting for a request slot.

        Raises:
            UpstreamTimeout: If the call exceeds the fetch timeout
            UpstreamError: On transport failures (status 0)
        """
        return await self._request("GET", url, params=params, headers=headers)

    async def post(
        self,
        url: str,
        data: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        auth: Optional[aiohttp.BasicAuth] = None,
    ) -> UpstreamResponse:
        """POST form ``data`` to ``url`` after waiting for a request slot."""
        return await self._request("POST", url, data=data, headers=headers, auth=auth)

    async def _request(self, method: str, url: str, headers: Optional[Dict[str, str]] = None, **kwargs) -> UpstreamResponse:
        await self.rate_limiter.pre_request()

        merged = dict(self.default_headers)
        if headers:
            merged.update(headers)

        timer = self.prometheus_exporter.time_request() if self.prometheus_exporter else None
        session = self._get_session()
        logger.debug(f"{method} {url} params={kwargs.get('params')}")
        try:
            with timer if timer else nullcontext():
                async with session.request(
                    method,
                    url,
                    headers=merged,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                    **kwargs,
                ) as resp:
                    # Undecodable bytes become U+FFFD
                    text = await resp.text(errors="replace")
                    response = UpstreamResponse(
                        status=resp.status,
                        url=str(resp.url),
                        text=text,
                        headers=dict(resp.headers),
                    )
        except asyncio.TimeoutError as e:
            logger.warning(f"Timeout after {self.timeout:.1f}s: {method} {url}")
            if self.prometheus_exporter:
                self.prometheus_exporter.record_upstream_status(0)
            raise UpstreamTimeout(url, self.timeout) from e
        except aiohttp.ClientError as e:
            logger.warning(f"Transport error for {method} {url}: {e}")
            if self.prometheus_exporter:
                self.prometheus_exporter.record_upstream_status(0)
            raise UpstreamError(0, url, str(e)) from e
        except LookupError as e:
            logger.warning(f"Unknown charset for {method} {url}: {e}")
            raise UpstreamError(0, url, f"undecodable body: {e}") from e

        if self.prometheus_exporter:
            self.prometheus_exporter.record_upstream_status(response.status)
        logger.debug(f"{method} {url} -> {response.status}")
        return response

    async def close(self) -> None:
        """Close the underlying session if this client created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None
