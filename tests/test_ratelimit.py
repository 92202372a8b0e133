"""Tests for the sliding-window rate limiter."""

import time

from ratelimit import RateLimiter


def test_allows_up_to_the_limit():
    limiter = RateLimiter(max_requests=3, window_seconds=60)
    assert [limiter.consume("a")[0] for _ in range(4)] == [True, True, True, False]


def test_retry_after_is_at_least_one_second():
    limiter = RateLimiter(max_requests=1, window_seconds=60)
    limiter.consume("a")
    allowed, retry_after = limiter.consume("a")
    assert not allowed
    assert 1 <= retry_after <= 60


def test_clients_are_counted_separately():
    limiter = RateLimiter(max_requests=1, window_seconds=60)
    assert limiter.consume("a")[0]
    assert limiter.consume("b")[0]
    assert not limiter.consume("a")[0]


def test_window_slides():
    limiter = RateLimiter(max_requests=1, window_seconds=0.05)
    assert limiter.consume("a")[0]
    time.sleep(0.1)
    assert limiter.consume("a")[0]


def test_zero_disables():
    assert not RateLimiter(max_requests=0, window_seconds=60).enabled
