"""Fixed-delay throttle for sequential paginated fetches."""

from __future__ import annotations

import asyncio
import time


class PageThrottle:
    """
    Enforce a minimum interval between successive calls to wait().

    The first call never blocks. Intended for a single sequential caller;
    concurrent callers are not coordinated.

    Args:
        min_interval: Minimum seconds between the starts of two requests.
    """

    def __init__(self, min_interval: float = 1.0) -> None:
        self._interval = max(min_interval, 0.0)
        self._last_request_time: float | None = None

    @property
    def interval(self) -> float:
        return self._interval

    async def wait(self) -> None:
        """Sleep until the next request is allowed, then mark it as issued."""
        if self._last_request_time is not None:
            elapsed = time.monotonic() - self._last_request_time
            if elapsed < self._interval:
                await asyncio.sleep(self._interval - elapsed)
        self._last_request_time = time.monotonic()

