"""
Latest-request-wins gate with a timeout.

A new request for a key cancels the one still in flight for the same key,
so a slow, stale fetch can never overwrite the result of a fresher one.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Hashable, TypeVar

from app.core.exceptions import RemoteTimeoutError, RequestSupersededError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LatestRequestGate:
    def __init__(self) -> None:
        self._inflight: Dict[Hashable, asyncio.Task] = {}

    def in_flight(self, key: Hashable) -> bool:
        task = self._inflight.get(key)
        return task is not None and not task.done()

    async def run(
        self,
        key: Hashable,
        fn: Callable[[], Awaitable[T]],
        timeout: float,
    ) -> T:
        previous = self._inflight.get(key)
        if previous is not None and not previous.done():
            logger.debug(f"Cancelling superseded request '{key}'")
            previous.cancel()

        task = asyncio.ensure_future(fn())
        self._inflight[key] = task
        try:
            return await asyncio.wait_for(task, timeout=timeout)
        except asyncio.TimeoutError:
            task.cancel()
            logger.warning(f"Request '{key}' timed out after {timeout:g}s")
            raise RemoteTimeoutError(timeout)
        except asyncio.CancelledError:
            if task.cancelled() and self._inflight.get(key) is not task:
                logger.info(f"Request '{key}' was superseded by a newer one")
                raise RequestSupersededError(key)
            task.cancel()
            raise
        finally:
            if self._inflight.get(key) is task:
                del self._inflight[key]
