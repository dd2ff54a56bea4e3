"""Behavioural tests for the sliding-window rate limiter."""

import random
import threading

import pytest

from app.security.rate_limit import (
    ConfigurationError,
    InvalidConfiguration,
    RateLimiter,
    RateLimitExceeded,
)
from tests.conftest import FakeClock


def _limiter(max_requests: int, window_ms: int, start: int = 0):
    clock = FakeClock(start)
    return RateLimiter(max_requests, window_ms, clock=clock), clock


@pytest.mark.parametrize(
    "max_requests, window_ms",
    [(0, 1000), (-1, 1000), (5, 0), (5, -60_000), (True, 1000), (5, 1.5), ("5", 1000)],
)
def test_invalid_configuration_rejected(max_requests, window_ms):
    with pytest.raises(InvalidConfiguration):
        RateLimiter(max_requests, window_ms)


def test_invalid_configuration_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        RateLimiter(0, 0)


def test_limits_are_read_only():
    limiter = RateLimiter(5, 60_000)
    assert limiter.max_requests == 5
    assert limiter.window_ms == 60_000
    with pytest.raises(AttributeError):
        limiter.max_requests = 10  # type: ignore[misc]


def test_admits_up_to_quota_then_rejects():
    limiter, _ = _limiter(5, 60_000)
    assert [limiter.is_allowed("user@example.com") for _ in range(5)] == [True] * 5
    assert limiter.is_allowed("user@example.com") is False


def test_window_expiry_recovers_admission():
    limiter, clock = _limiter(1, 1000)
    assert limiter.is_allowed("a") is True
    clock.now = 500
    assert limiter.is_allowed("a") is False
    clock.now = 1001
    assert limiter.is_allowed("a") is True


def test_event_leaves_window_exactly_at_window_length():
    limiter, clock = _limiter(1, 1000)
    assert limiter.is_allowed("a") is True
    clock.now = 999
    assert limiter.is_allowed("a") is False
    clock.now = 1000
    assert limiter.is_allowed("a") is True


def test_rejected_calls_do_not_push_recovery_out():
    limiter, clock = _limiter(1, 1000)
    assert limiter.is_allowed("a") is True
    for now in (100, 200, 300, 999):
        clock.now = now
        assert limiter.is_allowed("a") is False
    clock.now = 1001
    assert limiter.is_allowed("a") is True


def test_identifiers_are_independent():
    limiter, _ = _limiter(2, 60_000)
    assert limiter.is_allowed("a")
    assert limiter.is_allowed("a")
    assert not limiter.is_allowed("a")
    assert limiter.is_allowed("b")
    assert limiter.get_remaining_requests("b") == 1


def test_empty_identifier_is_a_valid_key():
    limiter, _ = _limiter(1, 60_000)
    assert limiter.is_allowed("") is True
    assert limiter.is_allowed("") is False
    assert limiter.is_allowed(" ") is True


def test_remaining_requests_counts_down_and_resets():
    limiter, _ = _limiter(3, 60_000)
    assert limiter.get_remaining_requests("login_attempt") == 3
    for expected in (2, 1, 0):
        assert limiter.is_allowed("login_attempt")
        assert limiter.get_remaining_requests("login_attempt") == expected
    assert not limiter.is_allowed("login_attempt")
    assert limiter.get_remaining_requests("login_attempt") == 0

    limiter.reset("login_attempt")
    assert limiter.get_remaining_requests("login_attempt") == 3
    assert limiter.is_allowed("login_attempt")


def test_remaining_requests_recovers_as_events_expire():
    limiter, clock = _limiter(2, 1000)
    limiter.is_allowed("a")
    clock.now = 600
    limiter.is_allowed("a")
    assert limiter.get_remaining_requests("a") == 0
    clock.now = 1000
    assert limiter.get_remaining_requests("a") == 1
    clock.now = 1600
    assert limiter.get_remaining_requests("a") == 2


def test_reset_unknown_identifier_is_noop():
    limiter, _ = _limiter(1, 1000)
    limiter.reset("never-seen")
    assert limiter.get_remaining_requests("never-seen") == 1


def test_instances_do_not_share_state():
    clock = FakeClock(0)
    lenient = RateLimiter(100, 60_000, clock=clock, name="api")
    strict = RateLimiter(1, 60_000, clock=clock, name="auth")
    assert strict.is_allowed("login_attempt")
    assert not strict.is_allowed("login_attempt")
    assert lenient.is_allowed("login_attempt")
    assert lenient.get_remaining_requests("login_attempt") == 99

    twin = RateLimiter(1, 60_000, clock=clock, name="auth")
    assert twin.is_allowed("login_attempt")


def test_retry_after_reports_time_until_oldest_event_expires():
    limiter, clock = _limiter(2, 1000)
    assert limiter.retry_after_ms("a") == 0
    limiter.is_allowed("a")
    clock.now = 300
    limiter.is_allowed("a")
    clock.now = 400
    assert limiter.retry_after_ms("a") == 600
    clock.now = 1000
    assert limiter.retry_after_ms("a") == 0


def test_assert_allowed_raises_with_retry_hint():
    limiter, clock = _limiter(1, 1000)
    limiter.assert_allowed("a")
    clock.now = 250
    with pytest.raises(RateLimitExceeded) as excinfo:
        limiter.assert_allowed("a")
    assert excinfo.value.identifier == "a"
    assert excinfo.value.retry_after_ms == 750


def test_clear_forgets_every_identifier():
    limiter, _ = _limiter(1, 60_000)
    limiter.is_allowed("a")
    limiter.is_allowed("b")
    limiter.clear()
    assert limiter.is_allowed("a")
    assert limiter.is_allowed("b")


def test_concurrent_callers_never_exceed_quota():
    limiter = RateLimiter(50, 60_000, clock=FakeClock(0))
    results = []
    results_lock = threading.Lock()
    barrier = threading.Barrier(8)

    def worker() -> None:
        barrier.wait()
        for _ in range(25):
            allowed = limiter.is_allowed("shared")
            with results_lock:
                results.append(allowed)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(results) == 200
    assert results.count(True) == 50
    assert limiter.get_remaining_requests("shared") == 0


@pytest.mark.parametrize("seed", range(20))
def test_random_call_sequences_respect_sliding_window(seed):
    rng = random.Random(seed)
    max_requests = rng.randint(1, 6)
    window_ms = rng.randint(10, 500)
    limiter, clock = _limiter(max_requests, window_ms)
    admitted = []

    for _ in range(300):
        clock.advance(rng.randint(0, window_ms // 3))
        if rng.random() < 0.05:
            limiter.reset("k")
            admitted = []
            continue
        expected_recent = [t for t in admitted if t > clock.now - window_ms]
        assert limiter.get_remaining_requests("k") == max_requests - len(expected_recent)
        allowed = limiter.is_allowed("k")
        assert allowed is (len(expected_recent) < max_requests)
        if allowed:
            admitted.append(clock.now)
