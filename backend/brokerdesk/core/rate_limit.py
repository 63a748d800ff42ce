"""In-memory rate limiting dependency."""

from __future__ import annotations

import math
import time
from collections import deque
from threading import Lock
from typing import Callable, Deque

from fastapi import Request, Response

from brokerdesk.core.config import settings
from brokerdesk.core.exceptions import RateLimitExceeded


class SlidingWindowLimiter:
    """Request timestamps per client key over the last ``window_seconds``.

    Keys whose newest hit has left the window are dropped on the next call,
    so the table only holds clients seen within one window.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._hits: dict[str, Deque[float]] = {}
        self._lock = Lock()
        self._clock = clock

    def __len__(self) -> int:
        return len(self._hits)

    def _drop_stale(self, cutoff: float) -> None:
        stale = [key for key, hits in self._hits.items() if not hits or hits[-1] <= cutoff]
        for key in stale:
            del self._hits[key]

    def hit(self, key: str, *, limit: int, window_seconds: int) -> tuple[bool, int, int]:
        """Record one request; returns ``(allowed, remaining, retry_after_seconds)``."""
        if limit <= 0:
            return True, limit, 0
        now = self._clock()
        cutoff = now - window_seconds
        with self._lock:
            self._drop_stale(cutoff)
            hits = self._hits.setdefault(key, deque())
            while hits and hits[0] <= cutoff:
                hits.popleft()
            if len(hits) >= limit:
                return False, 0, max(math.ceil(hits[0] + window_seconds - now), 1)
            hits.append(now)
            return True, limit - len(hits), 0

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()


_limiter = SlidingWindowLimiter()


def _client_key(request: Request, scope: str) -> str:
    # First hop of X-Forwarded-For when behind the proxy, else the socket peer.
    forwarded = (request.headers.get("x-forwarded-for") or "").split(",")[0].strip()
    host = forwarded or (request.client.host if request.client else "unknown")
    return f"{scope}:{host}"


def rate_limit(scope: str = "notifications"):
    def _dependency(request: Request, response: Response) -> None:
        if not settings.RATE_LIMIT_ENABLED:
            return
        limit = settings.RATE_LIMIT_MAX_REQUESTS
        window = settings.RATE_LIMIT_WINDOW_SECONDS
        allowed, remaining, retry_after = _limiter.hit(_client_key(request, scope), limit=limit, window_seconds=window)
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        if not allowed:
            raise RateLimitExceeded(retry_after=retry_after, limit=limit, window_seconds=window)

    return _dependency
