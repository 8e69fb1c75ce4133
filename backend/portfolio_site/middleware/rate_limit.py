"""
Portfolio Site Backend — Sliding Window Rate Limiter
=====================================================

What:  Per-client sliding window counter used by the analytics gate.
How:   Tracks request timestamps per client key in memory.
Who:   AnalyticsGateMiddleware (one limiter per app instance).

Algorithm: Sliding Window Counter
    1. Each client key gets a list of request timestamps
    2. On each hit, drop timestamps older than the window
    3. If remaining count >= limit, raise RateLimitExceededError
    4. Otherwise record the current timestamp

    A fixed window lets a client burst 2× the limit across a boundary;
    the sliding window always counts the last N seconds.

Client identity:
    X-Forwarded-For (first hop) → X-Real-IP → socket peer → "unknown".
    The site runs behind a reverse proxy, so the socket peer is usually the
    proxy itself.

Scope:
    Single-process only. Multiple workers each keep their own counters.
"""

import logging
import time
from collections import defaultdict
from typing import Callable, Dict, List

from starlette.requests import HTTPConnection

from portfolio_site.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)

# Sweep idle keys every N recorded hits
CLEANUP_INTERVAL = 1000


def client_identifier(request: HTTPConnection) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    return request.client.host if request.client else "unknown"


class SlidingWindowRateLimiter:
    """
    In-memory sliding window limiter.

    Usage:
        limiter = SlidingWindowRateLimiter(max_requests=100, window_seconds=60)
        limiter.hit(client_identifier(request))  # raises RateLimitExceededError
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: int,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._requests: Dict[str, List[float]] = defaultdict(list)
        self._hits_since_cleanup = 0

    def hit(self, key: str) -> None:
        now = self._clock()
        window_start = now - self.window_seconds

        timestamps = [ts for ts in self._requests[key] if ts > window_start]
        self._requests[key] = timestamps

        if len(timestamps) >= self.max_requests:
            # Seconds until the oldest request leaves the window
            retry_after = int(timestamps[0] + self.window_seconds - now) + 1
            logger.warning(
                "Rate limit exceeded for %s: %d requests in %ds window",
                key,
                len(timestamps),
                self.window_seconds,
            )
            raise RateLimitExceededError(
                retry_after=retry_after, context={"client": key}
            )

        timestamps.append(now)

        self._hits_since_cleanup += 1
        if self._hits_since_cleanup >= CLEANUP_INTERVAL:
            self._cleanup_inactive(window_start)

    def remaining(self, key: str) -> int:
        window_start = self._clock() - self.window_seconds
        used = sum(1 for ts in self._requests.get(key, []) if ts > window_start)
        return max(self.max_requests - used, 0)

    def _cleanup_inactive(self, window_start: float) -> None:
        """Drop keys with no requests inside the current window."""
        inactive = [
            key
            for key, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] <= window_start
        ]
        for key in inactive:
            del self._requests[key]
        self._hits_since_cleanup = 0

        if inactive:
            logger.debug("Cleaned up %d inactive rate limit entries", len(inactive))
