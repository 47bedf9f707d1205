from __future__ import annotations

from recruitdesk.core.rate_limit import RateLimiterRegistry, TokenBucketLimiter


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_bucket_allows_capacity_then_blocks() -> None:
    clock = FakeClock()
    limiter = TokenBucketLimiter(5, 60.0, clock=clock)

    assert all(limiter.acquire("1.2.3.4") == 0 for _ in range(5))
    wait = limiter.acquire("1.2.3.4")
    assert wait > 0
    assert limiter.retry_after(wait) == 12


def test_bucket_refills_over_time() -> None:
    clock = FakeClock()
    limiter = TokenBucketLimiter(2, 60.0, clock=clock)
    limiter.acquire("client")
    limiter.acquire("client")
    assert limiter.acquire("client") > 0

    clock.now += 30
    assert limiter.acquire("client") == 0


def test_buckets_are_per_client() -> None:
    limiter = TokenBucketLimiter(1, 60.0, clock=FakeClock())
    assert limiter.acquire("a") == 0
    assert limiter.acquire("b") == 0
    assert limiter.acquire("a") > 0


def test_registry_reset() -> None:
    registry = RateLimiterRegistry({"login": 1}, clock=FakeClock())
    limiter = registry.get("login")
    limiter.acquire("a")
    assert limiter.acquire("a") > 0

    registry.reset()
    assert limiter.acquire("a") == 0
