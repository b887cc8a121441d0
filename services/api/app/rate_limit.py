"""Per-client fixed-window request throttling for the payment endpoints.

Counters live in process memory, so each worker process enforces its own limit.
"""

from __future__ import annotations

import math
import threading
import time
from collections.abc import Callable

import structlog
from fastapi import HTTPException, Request

logger = structlog.get_logger(__name__)

WINDOW_SECONDS = 60.0


class FixedWindowRateLimiter:
    def __init__(
        self,
        max_requests: int,
        window_seconds: float = WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        # key -> (count, window reset time)
        self._windows: dict[str, tuple[int, float]] = {}

    def hit(self, key: str) -> int | None:
        """Record one request for `key`.

        Returns None when the request is allowed, otherwise the seconds until the window resets.
        """

        now = self._clock()
        with self._lock:
            self._evict_expired(now)
            count, reset_at = self._windows.get(key, (0, now + self.window_seconds))
            if count >= self.max_requests:
                return max(1, math.ceil(reset_at - now))
            self._windows[key] = (count + 1, reset_at)
            return None

    def _evict_expired(self, now: float) -> None:
        expired = [k for k, (_, reset_at) in self._windows.items() if now >= reset_at]
        for k in expired:
            del self._windows[k]


def client_key(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for", "")
    ip = (
        forwarded.split(",")[0].strip()
        or request.headers.get("x-real-ip", "").strip()
        or (request.client.host if request.client else "")
        or "unknown"
    )
    return f"{ip}:{request.url.path}"


def enforce_payment_rate_limit(request: Request) -> None:
    limiter: FixedWindowRateLimiter | None = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        return

    key = client_key(request)
    retry_after = limiter.hit(key)
    if retry_after is not None:
        logger.warning("rate_limited", client=key, retry_after=retry_after)
        raise HTTPException(
            status_code=429,
            detail="Too many requests. Please try again later.",
            headers={"Retry-After": str(retry_after)},
        )
