import asyncio
import logging
import time
from collections import deque

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Sliding-window limiter shared by every outbound call.
    At most `requests_per_second` acquisitions fall inside any trailing window.
    """

    def __init__(self, requests_per_second: int = 15, window: float = 1.0, clock=time.monotonic, sleep=asyncio.sleep):
        if requests_per_second <= 0:
            raise ValueError(f"requests_per_second must be positive, got {requests_per_second}")
        self.requests_per_second = requests_per_second
        self.window = window
        self._clock = clock
        self._sleep = sleep
        self._timestamps = deque()
        self._lock = asyncio.Lock()

    async def acquire(self):
        async with self._lock:
            now = self._purge()
            while len(self._timestamps) >= self.requests_per_second:
                wait_time = self.window - (now - self._timestamps[0])
                if wait_time > 0:
                    logger.debug(f"Rate limit reached, waiting {wait_time:.3f}s")
                    await self._sleep(wait_time)
                now = self._purge()
            self._timestamps.append(now)

    def _purge(self) -> float:
        now = self._clock()
        while self._timestamps and now - self._timestamps[0] >= self.window:
            self._timestamps.popleft()
        return now

    @property
    def in_window(self) -> int:
        return len(self._timestamps)
