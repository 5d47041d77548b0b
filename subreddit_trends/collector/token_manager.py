"""OAuth bearer token handling for the application-only (client credentials) grant."""

import asyncio
import logging
import time
from typing import Callable, Optional

import aiohttp

from subreddit_trends.collector.http_client import UpstreamClient
from subreddit_trends.config import Config
from subreddit_trends.errors import CredentialsMissing, RateLimited, UpstreamError
from subreddit_trends.models import OAuthToken

logger = logging.getLogger(__name__)

TOKEN_URL = "https://www.reddit.com/api/v1/access_token"


class TokenManager:
    """
    Caches one bearer token and refreshes it shortly before expiry.

    Refreshes are single-flight: concurrent callers wait on the same lock and
    reuse the token the first caller obtained.
    """

    def __init__(
        self,
        config: Config,
        client: UpstreamClient,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self.client = client
        self._clock = clock
        self._token: Optional[OAuthToken] = None
        self._lock = asyncio.Lock()

    @property
    def configured(self) -> bool:
        return self.config.oauth_enabled

    @property
    def token(self) -> Optional[OAuthToken]:
        return self._token

    async def get_token(self) -> str:
        """
        Return a valid access token, exchanging credentials if needed.

        Raises:
            CredentialsMissing: If no client id/secret is configured
            RateLimited: If the token endpoint answered 429
            UpstreamError: If the exchange failed or returned no token
        """
        if not self.configured:
            raise CredentialsMissing("Reddit OAuth credentials are not configured")

        token = self._token
        if token is not None and token.is_valid(self._clock()):
            return token.access_token

        async with self._lock:
            # Another caller may have refreshed while we waited
            token = self._token
            if token is not None and token.is_valid(self._clock()):
                return token.access_token
            self._token = await self._exchange()
            return self._token.access_token

    def invalidate(self) -> None:
        """Drop the cached token so the next call performs a fresh exchange."""
        self._token = None

    async def _exchange(self) -> OAuthToken:
        logger.info("Requesting Reddit OAuth token (client credentials)")
        response = await self.client.post(
            TOKEN_URL,
            data={"grant_type": "client_credentials"},
            auth=aiohttp.BasicAuth(self.config.client_id, self.config.client_secret),
        )
        if response.status == 429:
            raise RateLimited(
                response.retry_after(self.config.fetch.default_retry_after_sec), TOKEN_URL
            )
        if response.status != 200:
            raise UpstreamError(response.status, TOKEN_URL, "token exchange failed")

        payload = response.json() or {}
        access_token = payload.get("access_token")
        if not access_token:
            raise UpstreamError(response.status, TOKEN_URL, "token response missing access_token")

        try:
            expires_in = float(payload.get("expires_in", 3600))
        except (TypeError, ValueError):
            expires_in = 3600.0
        lifetime = max(
            expires_in - self.config.oauth.token_safety_margin_sec,
            self.config.oauth.min_token_lifetime_sec,
        )
        token = OAuthToken(access_token=access_token, expires_at=self._clock() + lifetime)
        logger.info(f"Obtained OAuth token valid for {lifetime:.0f}s")
        return token
