"""Request gate that spaces out every upstream Reddit call."""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

from subreddit_trends.config import RateLimitConfig

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Global request gate for the upstream host.

    Every outbound call, whatever the endpoint, passes through ``pre_request``.
    Callers queue on an ``asyncio.Lock`` (FIFO by arrival), wait until at least
    ``min_interval`` has passed since the previous slot, then take the next slot.
    """

    def __init__(
        self,
        config: RateLimitConfig,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the request gate.

        Args:
            config: Rate limiting configuration
            clock: Monotonic clock, replaceable in tests
            sleep: Async sleep function, replaceable in tests
        """
        self.config = config
        self.min_interval = config.min_interval_sec
        self.last_request_time: Optional[float] = None
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()

    async def pre_request(self) -> None:
        """
        Block until the next request slot is available, then reserve it.

        This should be called before each upstream request.
        """
        async with self._lock:
            if self.last_request_time is not None:
                elapsed = self._clock() - self.last_request_time
                if elapsed < self.min_interval:
                    wait_time = self.min_interval - elapsed
                    logger.debug(f"Request gate: waiting {wait_time:.2f}s for next slot")
                    await self._sleep(wait_time)
            self.last_request_time = self._clock()

    async def __aenter__(self) -> "RateLimiter":
        await self.pre_request()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        return None
