"""Time source shared by the cache and the rate limiter."""

import time
from typing import Callable

Clock = Callable[[], float]


def now_ms() -> float:
    """Return the current UNIX time in milliseconds."""
    return time.time() * 1000.0
