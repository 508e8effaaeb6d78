"""
Fixed-window request counter keyed by client address.

Each client gets a bucket ``{count, reset_at}``. The first request of a window
opens the bucket with ``count=1``; later requests inside the window increment
it; a request that takes ``count`` past the maximum is rejected with the
seconds left until ``reset_at``. Burst precision at window edges is traded for
O(1) memory and work per client.

Buckets live in a ``BucketStore`` so the in-process dict can be replaced by a
shared store when several instances sit behind one load balancer.

Usage::

    limiter = FixedWindowRateLimiter(max_requests=100, window_seconds=60)
    decision = limiter.check(client_ip)
    if not decision.allowed:
        ...  # answer 429 with Retry-After: decision.retry_after
"""

import logging
import math
import threading
import time
from collections.abc import Callable, MutableMapping
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)


@dataclass
class Bucket:
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of one ``check`` call."""

    allowed: bool
    remaining: int
    reset_at: float
    retry_after: int | None = None


def sweep_expired_buckets(buckets: MutableMapping[str, Bucket], now: float) -> int:
    """
    Remove every bucket whose window has closed at *now*.

    Returns the number of buckets removed.
    """
    stale = [key for key, bucket in buckets.items() if bucket.reset_at <= now]
    for key in stale:
        del buckets[key]
    return len(stale)


class BucketStore(Protocol):
    """Storage for rate-limit buckets."""

    def increment(self, key: str, now: float, window_seconds: float) -> Bucket:
        """Count one request for *key* and return a snapshot of its bucket.

        Must be atomic per key: two concurrent calls never observe the same
        count.
        """
        ...

    def evict_expired(self, now: float) -> int:
        """Drop buckets whose window has closed; return how many were dropped."""
        ...

    def __len__(self) -> int: ...


class InMemoryBucketStore:
    """Process-local bucket store guarded by a lock."""

    def __init__(self) -> None:
        self._buckets: dict[str, Bucket] = {}
        self._lock = threading.Lock()

    def increment(self, key: str, now: float, window_seconds: float) -> Bucket:
        with self._lock:
            bucket = self._buckets.get(key)
            if bucket is None or now >= bucket.reset_at:
                bucket = Bucket(count=1, reset_at=now + window_seconds)
                self._buckets[key] = bucket
            else:
                bucket.count += 1
            return Bucket(count=bucket.count, reset_at=bucket.reset_at)

    def evict_expired(self, now: float) -> int:
        with self._lock:
            return sweep_expired_buckets(self._buckets, now)

    def __len__(self) -> int:
        return len(self._buckets)


class FixedWindowRateLimiter:
    """Fixed-window limiter with opportunistic eviction of stale buckets."""

    def __init__(
        self,
        max_requests: int = 100,
        window_seconds: float = 60.0,
        cleanup_interval_seconds: float = 60.0,
        store: BucketStore | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.cleanup_interval_seconds = cleanup_interval_seconds
        self.store: BucketStore = store if store is not None else InMemoryBucketStore()
        self._clock = clock
        self._last_sweep = clock()
        self._sweep_lock = threading.Lock()

    def check(self, client_id: str) -> RateLimitDecision:
        """Count a request from *client_id* and decide whether to admit it."""
        now = self._clock()
        self.maybe_sweep(now)

        bucket = self.store.increment(client_id, now, self.window_seconds)
        remaining = max(0, self.max_requests - bucket.count)

        if bucket.count <= self.max_requests:
            return RateLimitDecision(allowed=True, remaining=remaining, reset_at=bucket.reset_at)

        retry_after = max(1, math.ceil(bucket.reset_at - now))
        return RateLimitDecision(
            allowed=False,
            remaining=0,
            reset_at=bucket.reset_at,
            retry_after=retry_after,
        )

    def maybe_sweep(self, now: float | None = None) -> int:
        """
        Evict stale buckets if a cleanup interval has passed since the last sweep.

        Never waits: if another caller is already sweeping, this one returns 0.
        """
        now = self._clock() if now is None else now
        if now - self._last_sweep < self.cleanup_interval_seconds:
            return 0
        if not self._sweep_lock.acquire(blocking=False):
            return 0
        try:
            # Re-check under the lock; another caller may have just swept
            if now - self._last_sweep < self.cleanup_interval_seconds:
                return 0
            removed = self.store.evict_expired(now)
            self._last_sweep = now
        finally:
            self._sweep_lock.release()

        if removed:
            logger.debug("rate_limiter: evicted %d stale buckets", removed)
        return removed
