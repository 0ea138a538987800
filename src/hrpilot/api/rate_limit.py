"""
Request admission backed by the ``limits`` package.

A fixed-window counter per key.  Callers :meth:`RateLimiter.check` before doing any work and
:meth:`RateLimiter.record` only once the request has been admitted and validated, so rejected or
malformed requests never consume the budget.  Counters live in process memory; they are not shared
between workers.
"""

import logging

from fastapi import Request
from limits import RateLimitItemPerSecond
from limits.storage import MemoryStorage
from limits.strategies import FixedWindowRateLimiter

from hrpilot.config import settings

logger = logging.getLogger(__name__)


class RateLimiter:
    """Fixed-window limiter: at most *max_requests* per key every *window_seconds*."""

    def __init__(self, max_requests: int | None = None, window_seconds: int | None = None) -> None:
        self.max_requests = (
            max_requests if max_requests is not None else settings.RATE_LIMIT_MAX_REQUESTS
        )
        self.window_seconds = int(
            window_seconds if window_seconds is not None else settings.RATE_LIMIT_WINDOW_SECONDS
        )
        self._item = RateLimitItemPerSecond(self.max_requests, self.window_seconds)
        self._storage = MemoryStorage()
        self._strategy = FixedWindowRateLimiter(self._storage)

    def check(self, key: str) -> bool:
        """Return True if a request under *key* may proceed."""
        allowed = self._strategy.test(self._item, key)
        if not allowed:
            logger.info("Rate limit exceeded for %s", key)
        return allowed

    def record(self, key: str) -> None:
        """Count one admitted request under *key*."""
        self._strategy.hit(self._item, key)

    def reset(self) -> None:
        """Forget every window."""
        self._storage.reset()


def rate_limit_key(ip: str, route: str) -> str:
    return f"hr:{route}:{ip}"


def client_ip(request: Request) -> str:
    """First ``X-Forwarded-For`` entry, else the socket peer, else ``"unknown"``."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client is not None and request.client.host:
        return request.client.host
    return "unknown"
