"""Environment-driven settings for the Fleet Guard API."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Tuple

from app.security.rate_limit import ConfigurationError

_DEFAULT_EXEMPT_PATHS = "/health,/metrics"


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from exc


def _list_env(name: str, default: str) -> Tuple[str, ...]:
    raw = os.getenv(name, default)
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class LimitSettings:
    max_requests: int
    window_ms: int


@dataclass(frozen=True)
class Settings:
    """Runtime configuration resolved once at start-up."""

    api_limit: LimitSettings
    auth_limit: LimitSettings
    password_change_limit: LimitSettings
    backend_url: str
    backend_api_key: Optional[str]
    admin_reset_secret: Optional[str]
    exempt_paths: Tuple[str, ...]


def load_settings() -> Settings:
    """Read settings from the process environment."""

    return Settings(
        api_limit=LimitSettings(
            max_requests=_int_env("API_RATE_LIMIT_MAX", 100),
            window_ms=_int_env("API_RATE_LIMIT_WINDOW_MS", 60_000),
        ),
        auth_limit=LimitSettings(
            max_requests=_int_env("AUTH_RATE_LIMIT_MAX", 5),
            window_ms=_int_env("AUTH_RATE_LIMIT_WINDOW_MS", 60_000),
        ),
        password_change_limit=LimitSettings(
            max_requests=_int_env("PASSWORD_CHANGE_RATE_LIMIT_MAX", 3),
            window_ms=_int_env("PASSWORD_CHANGE_RATE_LIMIT_WINDOW_MS", 15 * 60_000),
        ),
        backend_url=os.getenv("BACKEND_URL", "http://localhost:54321"),
        backend_api_key=os.getenv("BACKEND_API_KEY") or None,
        admin_reset_secret=os.getenv("ADMIN_RESET_SECRET") or None,
        exempt_paths=_list_env("RATE_LIMIT_EXEMPT_PATHS", _DEFAULT_EXEMPT_PATHS),
    )
