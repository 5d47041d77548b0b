"""Tests for the request gate."""

import asyncio
import unittest

from subreddit_trends.collector.rate_limiter import RateLimiter
from subreddit_trends.config import RateLimitConfig
from tests.stubs import FakeClock


class TestRateLimiter(unittest.TestCase):
    """Test cases for the RateLimiter class."""

    def setUp(self):
        """Set up test environment."""
        self.clock = FakeClock(start=100.0)
        self.config = RateLimitConfig(min_interval_sec=1.2)
        self.rate_limiter = RateLimiter(self.config, clock=self.clock, sleep=self.clock.sleep)

    def test_first_request_does_not_wait(self):
        """The first request takes a slot immediately."""
        asyncio.run(self.rate_limiter.pre_request())

        self.assertEqual(self.clock.sleeps, [])
        self.assertEqual(self.rate_limiter.last_request_time, 100.0)

    def test_second_request_waits_for_remaining_interval(self):
        """A request 0.5s after the previous one waits the remaining 0.7s."""
        async def scenario():
            await self.rate_limiter.pre_request()
            self.clock.advance(0.5)
            await self.rate_limiter.pre_request()

        asyncio.run(scenario())

        self.assertEqual(len(self.clock.sleeps), 1)
        self.assertAlmostEqual(self.clock.sleeps[0], 0.7)
        self.assertAlmostEqual(self.rate_limiter.last_request_time, 101.2)

    def test_no_wait_when_interval_already_elapsed(self):
        """No sleep when enough time has passed since the previous slot."""
        async def scenario():
            await self.rate_limiter.pre_request()
            self.clock.advance(5.0)
            await self.rate_limiter.pre_request()

        asyncio.run(scenario())

        self.assertEqual(self.clock.sleeps, [])

    def test_concurrent_callers_are_spaced_and_fifo(self):
        """Under concurrency, slots are at least min_interval apart and FIFO."""
        starts = []

        async def caller(index):
            await self.rate_limiter.pre_request()
            starts.append((index, self.clock()))

        async def scenario():
            await asyncio.gather(*(caller(i) for i in range(6)))

        asyncio.run(scenario())

        self.assertEqual([index for index, _ in starts], list(range(6)))
        times = [when for _, when in starts]
        for earlier, later in zip(times, times[1:]):
            self.assertGreaterEqual(later - earlier, 1.2 - 1e-9)

    def test_async_context_manager(self):
        """The gate can be used with ``async with``."""
        async def scenario():
            async with self.rate_limiter:
                pass
            async with self.rate_limiter:
                pass

        asyncio.run(scenario())

        self.assertEqual(len(self.clock.sleeps), 1)


if __name__ == "__main__":
    unittest.main()
