"""Prometheus metric definitions and helpers for the Fleet Guard API."""

from __future__ import annotations

from prometheus_client import Counter

RATE_LIMIT_DECISIONS_TOTAL = Counter(
    "rate_limit_decisions_total",
    "Total admission decisions taken by rate limiters partitioned by limiter and outcome.",
    ["limiter", "outcome"],
)

SECURITY_EVENTS_TOTAL = Counter(
    "security_events_total",
    "Total security events recorded partitioned by event type and severity.",
    ["event_type", "severity"],
)

HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests processed by the FastAPI application, partitioned by path.",
    ["path"],
)


def record_rate_limit_decision(limiter: str, allowed: bool) -> None:
    """Increment the decision counter for ``limiter``."""

    outcome = "allowed" if allowed else "rejected"
    RATE_LIMIT_DECISIONS_TOTAL.labels(limiter=limiter, outcome=outcome).inc()


def record_security_event(event_type: str, severity: str) -> None:
    """Increment counters for recorded security events."""

    SECURITY_EVENTS_TOTAL.labels(event_type=event_type, severity=severity).inc()


def record_http_request(path: str) -> None:
    """Record a handled HTTP request for the provided path."""

    HTTP_REQUESTS_TOTAL.labels(path=path).inc()
