"""Short-lived memoization of provider quotes.

Quotes go stale quickly, so entries carry a fixed TTL and are dropped on the
first read after they expire.
"""

from __future__ import annotations

import json
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


@dataclass
class _Entry:
    value: Any
    expires_at: float


class RouteCache:
    """TTL cache keyed by deterministic strings.

    One instance is created per application and injected into the providers
    that need it.
    """

    def __init__(self, ttl_seconds: float = 30.0, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._entries: dict[str, _Entry] = {}

    @staticmethod
    def make_key(**parts: Any) -> str:
        """Build a key from named parts; argument order does not matter."""
        return json.dumps(parts, sort_keys=True, default=str, separators=(",", ":"))

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self.clock() > entry.expires_at:
            del self._entries[key]
            return None
        return entry.value

    def put(self, key: str, value: Any) -> None:
        self._entries[key] = _Entry(value=value, expires_at=self.clock() + self.ttl_seconds)

    def sweep(self) -> int:
        """Drop every expired entry and return how many were removed."""
        now = self.clock()
        expired = [key for key, entry in self._entries.items() if now > entry.expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["RouteCache"]
