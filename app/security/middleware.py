"""Middleware applying the global API throttle to incoming requests."""

from __future__ import annotations

import logging
import math
from typing import Iterable, Optional, Tuple

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from .events import RATE_LIMIT_EXCEEDED, SecurityEventLog
from .rate_limit import RateLimiter

_LOGGER = logging.getLogger("app.security.middleware")


def retry_after_header(retry_after_ms: int) -> str:
    """Convert a millisecond delay into a ``Retry-After`` value in whole seconds."""

    return str(max(1, math.ceil(retry_after_ms / 1000)))


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Reject callers exceeding the API quota with a quiet 429 response."""

    def __init__(
        self,
        app,
        *,
        limiter: RateLimiter,
        event_log: Optional[SecurityEventLog] = None,
        exempt_paths: Iterable[str] = (),
    ) -> None:
        super().__init__(app)
        self._limiter = limiter
        self._event_log = event_log
        self._exempt_paths: Tuple[str, ...] = tuple(exempt_paths)

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        path = request.url.path
        if path in self._exempt_paths:
            return await call_next(request)

        client = request.client.host if request.client else "anonymous"
        if self._limiter.is_allowed(client):
            return await call_next(request)

        retry_after_ms = self._limiter.retry_after_ms(client)
        _LOGGER.warning("Throttled API request", extra={"path": path, "client": client})
        if self._event_log is not None:
            self._event_log.record(
                RATE_LIMIT_EXCEEDED,
                severity="warning",
                operation="api",
                identifier=client,
                path=path,
            )
        return JSONResponse(
            status_code=429,
            content={"error": "rate_limit_exceeded"},
            headers={"Retry-After": retry_after_header(retry_after_ms)},
        )
