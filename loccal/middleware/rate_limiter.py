"""
Rate Limiter - minimum-interval gate for upstream-bound endpoints.

City search forwards every query to the public Nominatim service, whose
usage policy allows roughly one request per second. The gate admits a
call only when at least ``min_interval_s`` has passed since the last
admitted call; refused calls are not recorded.

Usage:
    from loccal.middleware.rate_limiter import city_search_limiter

    if not city_search_limiter.try_acquire():
        raise HTTPException(429, detail="Rate limit exceeded")
"""

import threading
import time
from collections.abc import Callable

from loccal.config import settings
from loccal.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class MinimumIntervalRateLimiter:
    """Process-local limiter admitting one call per interval."""

    def __init__(self, min_interval_s: float = 1.0, clock: Callable[[], float] = time.monotonic):
        self.min_interval_s = min_interval_s
        self._clock = clock
        self._last_acquired: float | None = None
        self._lock = threading.Lock()

    def try_acquire(self) -> bool:
        with self._lock:
            now = self._clock()
            if self._last_acquired is not None and now - self._last_acquired < self.min_interval_s:
                return False
            self._last_acquired = now
            return True

    def retry_after(self) -> int:
        """Whole seconds until the next call would be admitted (at least 1)."""
        with self._lock:
            if self._last_acquired is None:
                return 1
            remaining = self.min_interval_s - (self._clock() - self._last_acquired)
        return max(1, int(remaining + 0.999))

    def reset(self) -> None:
        with self._lock:
            self._last_acquired = None


# Global instance
city_search_limiter = MinimumIntervalRateLimiter(settings.CITY_SEARCH_MIN_INTERVAL_S)
