from __future__ import annotations

from brokerdesk.core.rate_limit import SlidingWindowLimiter


class _Ticker:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_limit_is_enforced_per_key_with_retry_after() -> None:
    ticker = _Ticker()
    limiter = SlidingWindowLimiter(clock=ticker)

    assert limiter.hit("notifications:10.0.0.1", limit=2, window_seconds=60) == (True, 1, 0)
    ticker.now += 20
    assert limiter.hit("notifications:10.0.0.1", limit=2, window_seconds=60) == (True, 0, 0)
    assert limiter.hit("notifications:10.0.0.1", limit=2, window_seconds=60) == (False, 0, 40)
    assert limiter.hit("notifications:10.0.0.2", limit=2, window_seconds=60)[0] is True

    ticker.now += 41
    assert limiter.hit("notifications:10.0.0.1", limit=2, window_seconds=60) == (True, 0, 0)


def test_clients_outside_the_window_are_forgotten() -> None:
    ticker = _Ticker()
    limiter = SlidingWindowLimiter(clock=ticker)

    for index in range(50):
        limiter.hit(f"notifications:10.0.1.{index}", limit=5, window_seconds=60)
    assert len(limiter) == 50

    ticker.now += 61
    limiter.hit("notifications:10.0.2.1", limit=5, window_seconds=60)

    assert len(limiter) == 1


def test_reset_and_disabled_limit() -> None:
    limiter = SlidingWindowLimiter(clock=_Ticker())
    limiter.hit("notifications:10.0.0.1", limit=1, window_seconds=60)

    assert limiter.hit("notifications:10.0.0.1", limit=1, window_seconds=60)[0] is False
    limiter.reset()
    assert len(limiter) == 0
    assert limiter.hit("notifications:10.0.0.1", limit=1, window_seconds=60) == (True, 0, 0)
    assert limiter.hit("notifications:10.0.0.1", limit=0, window_seconds=60) == (True, 0, 0)
