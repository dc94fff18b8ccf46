"""Fixed-window request rate limiting per client key."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass


@dataclass
class _Window:
    count: int
    reset_at: float


class FixedWindowRateLimiter:
    """Allows max_requests per window_seconds for each key.

    The check reads then increments without a lock. All calls run on one
    event loop in this service, so concurrent requests cannot interleave
    inside is_limited.
    """

    def __init__(
        self,
        max_requests: int = 20,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock
        self._windows: dict[str, _Window] = {}

    def is_limited(self, key: str) -> bool:
        """Record a request for key and report whether it exceeds the limit."""
        now = self.clock()
        window = self._windows.get(key)
        if window is None or now > window.reset_at:
            self._windows[key] = _Window(count=1, reset_at=now + self.window_seconds)
            return False
        window.count += 1
        return window.count > self.max_requests

    def reset(self) -> None:
        self._windows.clear()


def client_key(forwarded_for: str | None, client_host: str | None) -> str:
    """First X-Forwarded-For hop, else the peer address, else "unknown"."""
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    return client_host or "unknown"


__all__ = ["FixedWindowRateLimiter", "client_key"]
