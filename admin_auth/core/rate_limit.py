"""
In-process sliding-window rate limiting for the public auth endpoints.

One `RateLimiter` per endpoint family (login, registration, password
reset), keyed by client address.  Limiters are built from settings in
the app factory and held on `app.state`; routes depend on them through
`rate_limited(...)`.
"""

import logging
import math
import time
from collections import defaultdict, deque
from collections.abc import Callable
from typing import Deque

from fastapi import HTTPException, Request, status

from admin_auth.core.errors import ErrorCode
from admin_auth.services.device_service import get_client_ip

logger = logging.getLogger(__name__)


class RateLimiter:
    def __init__(
        self,
        name: str,
        limit: int,
        window_seconds: float,
        *,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.limit = limit
        self.window = float(window_seconds)
        self.enabled = enabled
        self._clock = clock
        self._hits: dict[str, Deque[float]] = defaultdict(deque)
        self._last_sweep = clock()

    def _prune(self, bucket: Deque[float], now: float) -> None:
        cutoff = now - self.window
        while bucket and bucket[0] <= cutoff:
            bucket.popleft()

    def _sweep(self, now: float) -> None:
        # Drop addresses with nothing left in the window.
        for key in list(self._hits):
            bucket = self._hits[key]
            self._prune(bucket, now)
            if not bucket:
                del self._hits[key]
        self._last_sweep = now

    def hit(self, key: str) -> float | None:
        """
        Record one request for `key`.

        Returns None when allowed, otherwise the seconds until the oldest
        request in the window expires.
        """
        if not self.enabled:
            return None
        now = self._clock()
        if now - self._last_sweep >= self.window:
            self._sweep(now)
        bucket = self._hits[key]
        self._prune(bucket, now)
        if len(bucket) >= self.limit:
            return max(0.0, bucket[0] + self.window - now)
        bucket.append(now)
        return None

    def reset(self, key: str | None = None) -> None:
        if key is None:
            self._hits.clear()
        else:
            self._hits.pop(key, None)


def rate_limited(limiter_name: str):
    """Dependency factory: enforce `app.state.rate_limiters[limiter_name]`."""

    async def dependency(request: Request) -> None:
        limiter: RateLimiter = request.app.state.rate_limiters[limiter_name]
        resolver = request.app.state.device_resolver
        key = get_client_ip(request, resolver.trust_proxy) or "unknown"
        retry_after = limiter.hit(key)
        if retry_after is None:
            return
        logger.warning("Rate limit hit on %s for %s", limiter.name, key)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "code": ErrorCode.RATE_LIMIT_EXCEEDED.value,
                "message": "Too many requests. Please try again later",
            },
            headers={"Retry-After": str(max(1, math.ceil(retry_after)))},
        )

    return dependency
