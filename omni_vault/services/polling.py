from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from omni_vault.services.errors import PollTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BoundedPoller:
    """Client-side retry loop with a fixed attempt count and fixed delay.

    `poll()` returns the first truthy result of `check`. Exceptions listed in
    `retry_on` count as a failed attempt; anything else propagates at once.
    After `max_attempts` the last error (if any) is chained onto a
    `PollTimeoutError`.
    """

    def __init__(
        self,
        *,
        max_attempts: int,
        delay_seconds: float,
        retry_on: tuple[type[BaseException], ...] = (),
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if delay_seconds < 0:
            raise ValueError("delay_seconds must be >= 0")
        self._max_attempts = max_attempts
        self._delay_seconds = delay_seconds
        self._retry_on = retry_on
        self._sleep = sleep

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    async def poll(self, check: Callable[[], Awaitable[Optional[T]]], *, description: str = "check") -> T:
        last_error: Optional[BaseException] = None

        for attempt in range(1, self._max_attempts + 1):
            try:
                result = await check()
                if result:
                    return result
            except self._retry_on as exc:
                last_error = exc
                logger.debug("%s attempt %d/%d failed: %s", description, attempt, self._max_attempts, exc)

            if attempt < self._max_attempts:
                await self._sleep(self._delay_seconds)

        error = PollTimeoutError(f"{description} did not succeed after {self._max_attempts} attempt(s)")
        if last_error is not None:
            raise error from last_error
        raise error
