"""Sliding-window rate limiter keyed by caller identifier."""

from __future__ import annotations

import logging
import time
from collections import deque
from threading import Lock
from typing import Callable, Deque, Dict, Optional

from app.metrics import record_rate_limit_decision

_LOGGER = logging.getLogger("app.security.rate_limit")

Clock = Callable[[], int]


class ConfigurationError(ValueError):
    """Raised when application settings cannot be used."""


class InvalidConfiguration(ConfigurationError):
    """Raised when a limiter is constructed with unusable limits."""


class RateLimitExceeded(Exception):
    """Raised when a caller exceeds the configured request budget."""

    def __init__(self, identifier: str, retry_after_ms: int) -> None:
        super().__init__(f"rate limit exceeded for key={identifier}")
        self.identifier = identifier
        self.retry_after_ms = retry_after_ms


def epoch_millis() -> int:
    return time.time_ns() // 1_000_000


def _require_positive(name: str, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidConfiguration(f"{name} must be an integer, got {value!r}")
    if value <= 0:
        raise InvalidConfiguration(f"{name} must be positive, got {value}")
    return value


class RateLimiter:
    """Admit at most ``max_requests`` events per identifier in any trailing window.

    Expired timestamps are purged lazily whenever an identifier is touched and
    the purged sequence is always written back. Rejected attempts are never
    recorded, so they neither consume quota nor delay recovery.
    """

    def __init__(
        self,
        max_requests: int,
        window_ms: int,
        *,
        clock: Optional[Clock] = None,
        name: str = "default",
    ) -> None:
        self._max_requests = _require_positive("max_requests", max_requests)
        self._window_ms = _require_positive("window_ms", window_ms)
        self._clock: Clock = clock or epoch_millis
        self._requests: Dict[str, Deque[int]] = {}
        self._lock = Lock()
        self.name = name

    @property
    def max_requests(self) -> int:
        return self._max_requests

    @property
    def window_ms(self) -> int:
        return self._window_ms

    def _recent(self, identifier: str, now: int) -> Deque[int]:
        # Caller must hold self._lock.
        window_start = now - self._window_ms
        queue = self._requests.get(identifier)
        if queue is None:
            return deque()
        while queue and queue[0] <= window_start:
            queue.popleft()
        if not queue:
            del self._requests[identifier]
        return queue

    def is_allowed(self, identifier: str) -> bool:
        """Return True and record the event if ``identifier`` still has quota."""

        now = self._clock()
        with self._lock:
            recent = self._recent(identifier, now)
            if len(recent) >= self._max_requests:
                allowed = False
            else:
                recent.append(now)
                self._requests[identifier] = recent
                allowed = True

        record_rate_limit_decision(self.name, allowed)
        if allowed:
            _LOGGER.debug("Request admitted", extra={"limiter": self.name, "identifier": identifier})
        else:
            _LOGGER.warning("Request throttled", extra={"limiter": self.name, "identifier": identifier})
        return allowed

    def assert_allowed(self, identifier: str) -> None:
        """Raise :class:`RateLimitExceeded` if the request should be rejected."""

        if not self.is_allowed(identifier):
            raise RateLimitExceeded(identifier, self.retry_after_ms(identifier))

    def get_remaining_requests(self, identifier: str) -> int:
        now = self._clock()
        with self._lock:
            used = len(self._recent(identifier, now))
        return max(0, self._max_requests - used)

    def retry_after_ms(self, identifier: str) -> int:
        """Milliseconds until ``identifier`` is admitted again (0 when it has quota)."""

        now = self._clock()
        with self._lock:
            recent = self._recent(identifier, now)
            if len(recent) < self._max_requests:
                return 0
            # The oldest event that must expire before a slot frees up.
            blocking = recent[len(recent) - self._max_requests]
        return blocking + self._window_ms - now

    def reset(self, identifier: str) -> None:
        with self._lock:
            self._requests.pop(identifier, None)

    def clear(self) -> None:
        """Forget every identifier (used in tests)."""

        with self._lock:
            self._requests.clear()
