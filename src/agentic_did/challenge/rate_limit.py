"""Per-caller token-bucket rate limiting for challenge issuance."""
from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from typing import Callable

logger = logging.getLogger(__name__)


class TokenBucket:
    """Token bucket algorithm for rate limiting.

    Parameters
    ----------
    rate:
        Tokens added per second.
    capacity:
        Maximum burst size (max tokens in the bucket).
    monotonic:
        Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        rate: float,
        capacity: int,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._rate = rate
        self._capacity = capacity
        self._monotonic = monotonic
        self._tokens = float(capacity)
        self._last_refill = monotonic()
        self._lock = threading.Lock()

    def _refill(self) -> None:
        now = self._monotonic()
        elapsed = now - self._last_refill
        self._tokens = min(self._capacity, self._tokens + elapsed * self._rate)
        self._last_refill = now

    def consume(self, tokens: int = 1) -> bool:
        """Try to consume tokens. Returns True if allowed."""
        with self._lock:
            self._refill()
            if self._tokens >= tokens:
                self._tokens -= tokens
                return True
            return False

    def is_full(self) -> bool:
        """Return True when the bucket has refilled to capacity."""
        with self._lock:
            self._refill()
            return self._tokens >= self._capacity


class RateLimiter:
    """Independent token buckets keyed by caller identifier.

    Buckets that have refilled to capacity carry no state worth keeping
    and are dropped by :meth:`prune`. Pruning also runs whenever a new
    caller would push the tracked count past *max_callers*; if every
    tracked bucket is still draining, the least recently used one is
    evicted so memory stays bounded under caller-id churn.

    Parameters
    ----------
    per_minute:
        Sustained requests per minute per caller.
    burst:
        Bucket capacity per caller.
    max_callers:
        Upper bound on the number of buckets held at once.
    """

    def __init__(
        self,
        per_minute: int,
        burst: int,
        monotonic: Callable[[], float] = time.monotonic,
        max_callers: int = 10_000,
    ) -> None:
        if max_callers < 1:
            raise ValueError("max_callers must be at least 1.")
        self._rate = per_minute / 60.0
        self._burst = burst
        self._monotonic = monotonic
        self._max_callers = max_callers
        self._buckets: OrderedDict[str, TokenBucket] = OrderedDict()
        self._lock = threading.Lock()

    def allow(self, caller_id: str) -> bool:
        """Return True when *caller_id* may make another request now."""
        with self._lock:
            bucket = self._buckets.get(caller_id)
            if bucket is None:
                if len(self._buckets) >= self._max_callers:
                    self._prune_locked()
                while len(self._buckets) >= self._max_callers:
                    evicted, _ = self._buckets.popitem(last=False)
                    logger.debug("Rate limiter evicted least recent caller=%s", evicted)
                bucket = TokenBucket(self._rate, self._burst, self._monotonic)
                self._buckets[caller_id] = bucket
            else:
                self._buckets.move_to_end(caller_id)
        return bucket.consume()

    def prune(self) -> int:
        """Drop every bucket that has refilled to capacity; returns the count removed."""
        with self._lock:
            removed = self._prune_locked()
        if removed:
            logger.debug("Rate limiter pruned %d idle callers", removed)
        return removed

    def reset(self, caller_id: str | None = None) -> None:
        """Forget one caller's bucket, or every bucket when *caller_id* is None."""
        with self._lock:
            if caller_id is None:
                self._buckets.clear()
            else:
                self._buckets.pop(caller_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._buckets)

    def _prune_locked(self) -> int:
        """Remove full buckets (caller must hold the lock)."""
        idle = [caller for caller, bucket in self._buckets.items() if bucket.is_full()]
        for caller in idle:
            del self._buckets[caller]
        return len(idle)


__all__ = ["RateLimiter", "TokenBucket"]
