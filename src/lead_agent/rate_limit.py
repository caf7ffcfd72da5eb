"""Fixed-window request throttling keyed by client identifier."""

from __future__ import annotations

import asyncio
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Protocol

import structlog
from starlette.requests import Request

from .errors import RateLimitExceeded

LOGGER = structlog.get_logger(__name__)

UNKNOWN_CLIENT = "unknown"


@dataclass
class RateLimitEntry:
    count: int
    reset_at: float


class RateLimitStore(Protocol):
    """Storage backend for rate-limit entries."""

    def get(self, identifier: str) -> Optional[RateLimitEntry]: ...

    def set(self, identifier: str, entry: RateLimitEntry) -> None: ...

    def evict_expired(self, now: float) -> int: ...


class InMemoryRateLimitStore:
    """Process-local store; safe to share between threads."""

    def __init__(self) -> None:
        self._entries: Dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()

    def get(self, identifier: str) -> Optional[RateLimitEntry]:
        with self._lock:
            return self._entries.get(identifier)

    def set(self, identifier: str, entry: RateLimitEntry) -> None:
        with self._lock:
            self._entries[identifier] = entry

    def evict_expired(self, now: float) -> int:
        with self._lock:
            expired = [key for key, entry in self._entries.items() if now > entry.reset_at]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)


class FixedWindowRateLimiter:
    """Allow ``max_requests`` calls per identifier in each window."""

    def __init__(
        self,
        store: Optional[RateLimitStore] = None,
        *,
        window_seconds: float = 60.0,
        max_requests: int = 20,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store if store is not None else InMemoryRateLimitStore()
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self._clock = clock
        self._lock = threading.Lock()

    def check(self, identifier: str) -> None:
        """Count one request; raise RateLimitExceeded once the window is full."""
        now = self._clock()
        with self._lock:
            entry = self.store.get(identifier)
            if entry is None or now > entry.reset_at:
                entry = RateLimitEntry(count=0, reset_at=now + self.window_seconds)
            entry.count += 1
            # Written back even when the request is denied.
            self.store.set(identifier, entry)

        if entry.count > self.max_requests:
            LOGGER.info("rate_limit.denied", identifier=identifier, count=entry.count)
            raise RateLimitExceeded("Rate limit exceeded. Try again soon.")

    def sweep(self) -> int:
        """Drop entries whose window has elapsed."""
        removed = self.store.evict_expired(self._clock())
        if removed:
            LOGGER.debug("rate_limit.swept", removed=removed)
        return removed

    async def run_sweeper(self, interval_seconds: float) -> None:
        """Sweep forever on a timer; cancel the task to stop it."""
        while True:
            await asyncio.sleep(interval_seconds)
            self.sweep()


def client_identifier(request: Request) -> str:
    """Forwarded address, then peer address, then a shared bucket."""
    forwarded = request.headers.get("x-forwarded-for", "")
    first_hop = forwarded.split(",")[0].strip()
    if first_hop:
        return first_hop
    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT
