"""Throttled snapshot cache for API-backed metrics.

Prometheus may scrape far more often than the Cloudflare API rate limits
allow; the cache keeps the last snapshot and only refetches once it is
older than the configured poll limit.
"""

import time
from collections.abc import Callable
from threading import Lock
from typing import Generic, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class AtomicThrottledCache(Generic[T]):
    """Thread-safe single-value cache refreshed at most once per poll limit.

    Concurrent callers serialize on one lock, so a burst of scrapes on a
    cold cache triggers a single fetch.
    """

    def __init__(self, limit: float):
        """Initialize the cache.

        Args:
            limit: Minimum seconds between two fetches.
        """
        self._lock = Lock()
        self._limit = limit
        self._snapshot: T | None = None
        self._fetched_at: float | None = None

    def _age(self) -> float | None:
        if self._fetched_at is None:
            return None
        return time.monotonic() - self._fetched_at

    def fetch_or_throttle(self, fetch_func: Callable[[], T]) -> tuple[T, float | None]:
        """Return the cached snapshot, or fetch a new one if it is stale.

        A fetch that returns None is not cached. Exceptions from fetch_func
        propagate and leave the previous snapshot in place.

        Args:
            fetch_func: Zero-argument callable producing a fresh snapshot.

        Returns:
            Tuple of (snapshot, fetch_duration); fetch_duration is None when
            the snapshot came from the cache.
        """
        with self._lock:
            age = self._age()
            if self._snapshot is not None and age is not None and age < self._limit:
                logger.debug("Serving cached snapshot", age_seconds=round(age, 2))
                return self._snapshot, None

            started = time.monotonic()
            snapshot = fetch_func()
            duration = time.monotonic() - started
            self._snapshot = snapshot
            self._fetched_at = time.monotonic()
            logger.debug("Fetched fresh snapshot", duration_seconds=round(duration, 3))
            return snapshot, duration
