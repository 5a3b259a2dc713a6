"""
Bounded exponential backoff for read paths.

Only reads go through this: saves and deletes are not guaranteed idempotent
from the caller's side, so they are never retried automatically.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Tuple, Type, TypeVar

from app.core.exceptions import RemoteFailureError, RemoteTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Max attempts (including the first), base delay in seconds, growth factor."""

    max_attempts: int = 3
    base_delay: float = 0.5
    multiplier: float = 2.0
    max_delay: float = 8.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0 or self.multiplier < 1:
            raise ValueError("base_delay must be >= 0 and multiplier >= 1")

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after the given failed attempt (1-indexed)."""
        return min(self.base_delay * (self.multiplier ** (attempt - 1)), self.max_delay)


NO_RETRY = RetryPolicy(max_attempts=1, base_delay=0)


async def retry_async(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    retry_on: Tuple[Type[BaseException], ...] = (RemoteFailureError,),
    give_up_on: Tuple[Type[BaseException], ...] = (RemoteTimeoutError,),
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Await fn() up to policy.max_attempts times.

    Exceptions matching retry_on (and not give_up_on) trigger a backoff and
    another attempt; anything else propagates immediately. The last failure
    is re-raised once attempts are exhausted.
    """
    attempt = 1
    while True:
        try:
            return await fn()
        except give_up_on:
            raise
        except retry_on as e:
            if attempt >= policy.max_attempts:
                logger.warning(f"Giving up after {attempt} attempt(s): {e}")
                raise
            delay = policy.delay_for(attempt)
            logger.info(
                f"Attempt {attempt}/{policy.max_attempts} failed ({e}); retrying in {delay:.2f}s"
            )
            await sleep(delay)
            attempt += 1
