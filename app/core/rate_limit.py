"""
In-process fixed-window rate limiter (login attempts per client IP).
"""

import math
import threading
import time
from typing import Dict, Tuple

from app.core.config import get_settings
from app.core.exceptions import RateLimitError

settings = get_settings()


class FixedWindowLimiter:
    """Allows `points` hits per key in each `window_seconds` window."""

    def __init__(self, points: int, window_seconds: int):
        self.points = points
        self.window_seconds = window_seconds
        self._hits: Dict[str, Tuple[float, int]] = {}
        self._lock = threading.Lock()

    def consume(self, key: str) -> None:
        """Record one hit. Raises RateLimitError (with retryAfter seconds) when over budget."""
        now = time.monotonic()
        with self._lock:
            window_start, count = self._hits.get(key, (now, 0))
            if now - window_start >= self.window_seconds:
                window_start, count = now, 0
            if count >= self.points:
                retry_after = math.ceil(self.window_seconds - (now - window_start))
                raise RateLimitError(
                    "Too many login attempts. Please try again later.",
                    retryAfter=retry_after,
                )
            self._hits[key] = (window_start, count + 1)

    def reset(self, key: str = None) -> None:
        with self._lock:
            if key is None:
                self._hits.clear()
            else:
                self._hits.pop(key, None)


login_limiter = FixedWindowLimiter(
    settings.login_rate_limit_points, settings.login_rate_limit_window_seconds
)
