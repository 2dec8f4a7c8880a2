"""Pauses between TestRail calls to stay under the API request ceiling."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Protocol


class RateLimiter(Protocol):
    def wait(self) -> None: ...


class FixedDelay:
    """Sleep a fixed wall-clock interval every time ``wait()`` is called.

    TestRail Cloud allows 180 requests per minute. The pause is applied after
    each call whether or not it succeeded.
    """

    def __init__(self, seconds: float, sleep: Callable[[float], None] = time.sleep) -> None:
        self.seconds = seconds
        self._sleep = sleep
        self.calls = 0

    def wait(self) -> None:
        self.calls += 1
        if self.seconds > 0:
            self._sleep(self.seconds)
