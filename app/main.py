"""FastAPI application factory wiring the rate limiters into their callers."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request

from app.api_client import BackendClient
from app.auth.login import router as auth_router
from app.config import LimitSettings, Settings, load_settings
from app.metrics import record_http_request
from app.root.routes import router as root_router
from app.security import RateLimitMiddleware, RateLimiter, SecurityEventLog
from app.security.rate_limit import Clock
from app.security.routes import router as security_router
from app.users.repository import UserRepository

logger = logging.getLogger(__name__)


def _build_limiter(name: str, limits: LimitSettings, clock: Optional[Clock]) -> RateLimiter:
    return RateLimiter(limits.max_requests, limits.window_ms, clock=clock, name=name)


def create_app(settings: Optional[Settings] = None, *, clock: Optional[Clock] = None) -> FastAPI:
    """Build the application with independent limiter instances per concern."""

    settings = settings or load_settings()

    api_limiter = _build_limiter("api", settings.api_limit, clock)
    auth_limiter = _build_limiter("auth", settings.auth_limit, clock)
    password_limiter = _build_limiter("password_change", settings.password_change_limit, clock)
    # Outbound calls get their own quota per category, separate from inbound throttling.
    backend_limiter = _build_limiter("backend", settings.api_limit, clock)
    security_events = SecurityEventLog()

    user_repo = UserRepository()
    seeded = user_repo.seed_from_env()
    if seeded:
        logger.info("Seeded users from environment", extra={"count": seeded})

    backend_client = BackendClient(
        settings.backend_url,
        backend_limiter,
        api_key=settings.backend_api_key,
    )

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        await backend_client.aclose()

    app = FastAPI(title="Fleet Guard API", lifespan=lifespan)
    app.state.settings = settings
    app.state.api_rate_limiter = api_limiter
    app.state.auth_rate_limiter = auth_limiter
    app.state.password_change_rate_limiter = password_limiter
    app.state.security_events = security_events
    app.state.user_repo = user_repo
    app.state.backend_client = backend_client

    app.add_middleware(
        RateLimitMiddleware,
        limiter=api_limiter,
        event_log=security_events,
        exempt_paths=settings.exempt_paths,
    )

    @app.middleware("http")
    async def count_requests(request: Request, call_next):
        response = await call_next(request)
        record_http_request(request.url.path)
        return response

    app.include_router(root_router)
    app.include_router(auth_router)
    app.include_router(security_router)
    return app


app = create_app()
