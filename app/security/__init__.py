"""Security utilities and middleware for the Fleet Guard application."""

from .events import SecurityEvent, SecurityEventLog
from .middleware import RateLimitMiddleware
from .rate_limit import ConfigurationError, InvalidConfiguration, RateLimiter, RateLimitExceeded

__all__ = [
    "ConfigurationError",
    "InvalidConfiguration",
    "RateLimitExceeded",
    "RateLimitMiddleware",
    "RateLimiter",
    "SecurityEvent",
    "SecurityEventLog",
]
