"""Tests for the OAuth token manager."""

import asyncio
import unittest

from subreddit_trends.collector.token_manager import TOKEN_URL, TokenManager
from subreddit_trends.errors import CredentialsMissing, RateLimited, UpstreamError
from tests.stubs import FakeClock, FakeUpstream, json_response, make_config, oauth_config


def token_response(token: str = "tok-1", expires_in: int = 3600, status: int = 200):
    return json_response(TOKEN_URL, {"access_token": token, "token_type": "bearer", "expires_in": expires_in}, status=status)


class TestTokenManager(unittest.TestCase):
    """Test cases for the TokenManager class."""

    def setUp(self):
        """Set up test environment."""
        self.clock = FakeClock(start=0.0)
        self.upstream = FakeUpstream({TOKEN_URL: token_response()})
        self.manager = TokenManager(oauth_config(), self.upstream, clock=self.clock)

    def test_missing_credentials(self):
        """Without client id/secret the manager refuses to exchange."""
        manager = TokenManager(make_config(), self.upstream, clock=self.clock)

        self.assertFalse(manager.configured)
        with self.assertRaises(CredentialsMissing):
            asyncio.run(manager.get_token())
        self.assertEqual(self.upstream.calls, [])

    def test_exchange_uses_client_credentials_grant(self):
        """The exchange posts the grant type with basic auth."""
        token = asyncio.run(self.manager.get_token())

        self.assertEqual(token, "tok-1")
        call = self.upstream.calls[0]
        self.assertEqual(call["method"], "POST")
        self.assertEqual(call["data"], {"grant_type": "client_credentials"})
        self.assertEqual(call["auth"].login, "client-id")
        self.assertEqual(call["auth"].password, "client-secret")

    def test_token_is_cached_until_expiry_margin(self):
        """The cached token is reused until lifetime minus the safety margin."""
        async def scenario():
            first = await self.manager.get_token()
            self.clock.advance(3500)
            second = await self.manager.get_token()
            return first, second

        first, second = asyncio.run(scenario())

        self.assertEqual(first, second)
        self.assertEqual(len(self.upstream.calls), 1)
        self.assertEqual(self.manager.token.expires_at, 3540)

    def test_token_refreshed_after_expiry(self):
        """A fresh exchange replaces the token once it expired."""
        self.upstream.add(TOKEN_URL, [token_response("tok-1"), token_response("tok-2")])

        async def scenario():
            first = await self.manager.get_token()
            old = self.manager.token
            self.clock.advance(3541)
            second = await self.manager.get_token()
            return first, second, old

        first, second, old = asyncio.run(scenario())

        self.assertEqual(first, "tok-1")
        self.assertEqual(second, "tok-2")
        self.assertIsNot(self.manager.token, old)
        self.assertEqual(old.access_token, "tok-1")

    def test_short_lifetime_uses_minimum(self):
        """A lifetime shorter than the margin still yields a 60s token."""
        self.upstream.add(TOKEN_URL, token_response(expires_in=30))

        asyncio.run(self.manager.get_token())

        self.assertEqual(self.manager.token.expires_at, 60)

    def test_concurrent_refresh_is_single_flight(self):
        """Concurrent callers share one exchange."""
        upstream = FakeUpstream({TOKEN_URL: token_response()}, delay=0.01)
        manager = TokenManager(oauth_config(), upstream, clock=self.clock)

        async def scenario():
            return await asyncio.gather(*(manager.get_token() for _ in range(5)))

        tokens = asyncio.run(scenario())

        self.assertEqual(tokens, ["tok-1"] * 5)
        self.assertEqual(len(upstream.calls), 1)

    def test_rate_limited_exchange(self):
        """A 429 from the token endpoint surfaces as RateLimited."""
        self.upstream.add(TOKEN_URL, json_response(TOKEN_URL, {}, status=429, headers={"Retry-After": "12"}))

        with self.assertRaises(RateLimited) as ctx:
            asyncio.run(self.manager.get_token())
        self.assertEqual(ctx.exception.retry_after, 12)

    def test_failed_exchange(self):
        """Non-200 or missing token raises UpstreamError and caches nothing."""
        self.upstream.add(TOKEN_URL, json_response(TOKEN_URL, {"error": "invalid_grant"}, status=401))
        with self.assertRaises(UpstreamError):
            asyncio.run(self.manager.get_token())

        self.upstream.add(TOKEN_URL, json_response(TOKEN_URL, {"token_type": "bearer"}))
        with self.assertRaises(UpstreamError):
            asyncio.run(self.manager.get_token())
        self.assertIsNone(self.manager.token)

    def test_invalidate(self):
        """Invalidating forces the next call to exchange again."""
        async def scenario():
            await self.manager.get_token()
            self.manager.invalidate()
            await self.manager.get_token()

        asyncio.run(scenario())

        self.assertEqual(len(self.upstream.calls), 2)


if __name__ == "__main__":
    unittest.main()
