from __future__ import annotations

import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass


@dataclass(slots=True)
class _Bucket:
    tokens: float
    updated_at: float


class TokenBucketLimiter:
    """Per-client token bucket; ``capacity`` requests refill evenly over ``window_sec``."""

    def __init__(self, capacity: int, window_sec: float = 60.0, clock: Callable[[], float] = time.monotonic):
        self.capacity = max(1, capacity)
        self.window_sec = window_sec
        self._clock = clock
        self._buckets: dict[str, _Bucket] = {}
        self._lock = threading.Lock()

    def acquire(self, key: str) -> float:
        """Take one token for ``key``. Returns 0 when allowed, else seconds until a token is available."""
        now = self._clock()
        with self._lock:
            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = self._buckets[key] = _Bucket(tokens=float(self.capacity), updated_at=now)
            else:
                elapsed = max(0.0, now - bucket.updated_at)
                bucket.tokens = min(float(self.capacity), bucket.tokens + elapsed * self.capacity / self.window_sec)
                bucket.updated_at = now

            if bucket.tokens >= 1:
                bucket.tokens -= 1
                return 0.0
            return (1 - bucket.tokens) * self.window_sec / self.capacity

    def retry_after(self, wait: float) -> int:
        return max(1, math.ceil(wait))

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()


class RateLimiterRegistry:
    def __init__(self, limits: dict[str, int], window_sec: float = 60.0, clock: Callable[[], float] = time.monotonic):
        self._limiters = {name: TokenBucketLimiter(limit, window_sec, clock) for name, limit in limits.items()}

    def get(self, name: str) -> TokenBucketLimiter:
        return self._limiters[name]

    def reset(self) -> None:
        for limiter in self._limiters.values():
            limiter.reset()
