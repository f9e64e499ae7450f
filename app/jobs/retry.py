import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 1.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    description: str = "operation",
) -> T:
    """
    Runs `operation` up to `max_attempts` times with exponential backoff
    (base_delay * 2^(attempt-1), no jitter). The last error is re-raised unchanged.
    """
    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except Exception as e:
            if attempt >= max_attempts:
                logger.error(f"{description} failed after {attempt} attempts: {e}")
                raise
            delay_time = base_delay * 2 ** (attempt - 1)
            logger.warning(f"{description} attempt {attempt} failed, retrying in {delay_time:.1f}s: {e}")
            await sleep(delay_time)

    raise ValueError("max_attempts must be at least 1")
