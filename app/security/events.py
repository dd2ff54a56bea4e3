"""In-memory security event log backing the admin security summary."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Deque, Dict, List, Optional

from app.metrics import record_security_event

_LOGGER = logging.getLogger("app.security.events")

RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
LOGIN_FAILED = "login_failed"
ADMIN_PASSWORD_CHANGE = "admin_password_change"

_LOG_LEVELS = {
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


@dataclass(frozen=True)
class SecurityEvent:
    """A single recorded security-relevant occurrence."""

    event_type: str
    severity: str = "info"
    details: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))

    def as_dict(self) -> Dict[str, Any]:
        return {
            "event_type": self.event_type,
            "severity": self.severity,
            "details": dict(self.details),
            "created_at": self.created_at.isoformat(),
        }


class SecurityEventLog:
    """Bounded, most-recent-last log of security events."""

    def __init__(self, max_events: int = 500) -> None:
        self._events: Deque[SecurityEvent] = deque(maxlen=max_events)
        self._lock = Lock()

    def record(self, event_type: str, *, severity: str = "info", **details: Any) -> SecurityEvent:
        event = SecurityEvent(event_type=event_type, severity=severity, details=details)
        with self._lock:
            self._events.append(event)
        record_security_event(event_type, severity)
        _LOGGER.log(
            _LOG_LEVELS.get(severity, logging.INFO),
            "Security event recorded",
            extra={"event_type": event_type, "details": details},
        )
        return event

    def recent(self, limit: Optional[int] = None) -> List[SecurityEvent]:
        """Return events newest first, at most ``limit`` of them."""

        with self._lock:
            events = list(reversed(self._events))
        if limit is not None:
            events = events[: max(limit, 0)]
        return events

    def summary(self) -> Dict[str, int]:
        with self._lock:
            events = list(self._events)
        return {
            "total": len(events),
            "failed_attempts": sum(1 for event in events if event.event_type == LOGIN_FAILED),
            "rate_limit_exceeded": sum(1 for event in events if event.event_type == RATE_LIMIT_EXCEEDED),
        }

    def reset(self) -> None:
        """Remove all recorded events (used in tests)."""

        with self._lock:
            self._events.clear()
