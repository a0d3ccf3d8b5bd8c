"""Tests for the fixed-window rate limiter."""

from receipt_relay.services.rate_limit import RateLimiter


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_allows_up_to_limit():
    """Test requests are allowed until the limit is reached."""
    limiter = RateLimiter(limit=3, window_seconds=60, clock=FakeClock())
    assert [limiter.hit("1.2.3.4") for _ in range(4)] == [True, True, True, False]


def test_keys_are_independent():
    """Test each address has its own window."""
    limiter = RateLimiter(limit=1, window_seconds=60, clock=FakeClock())
    assert limiter.hit("1.1.1.1") is True
    assert limiter.hit("2.2.2.2") is True
    assert limiter.hit("1.1.1.1") is False


def test_window_resets():
    """Test the count resets once the window has passed."""
    clock = FakeClock()
    limiter = RateLimiter(limit=1, window_seconds=60, clock=clock)
    assert limiter.hit("1.1.1.1") is True
    assert limiter.hit("1.1.1.1") is False
    assert limiter.retry_after("1.1.1.1") == 60

    clock.now += 45
    assert limiter.retry_after("1.1.1.1") == 15

    clock.now += 15
    assert limiter.hit("1.1.1.1") is True


def test_retry_after_unknown_key():
    """Test unknown keys have nothing to wait for."""
    limiter = RateLimiter(limit=1, window_seconds=60, clock=FakeClock())
    assert limiter.retry_after("9.9.9.9") == 0
