"""Credential login and admin password change routes, guarded by the auth throttles."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Request, status
from pydantic import BaseModel, Field

from app.security.admin import secret_matches
from app.security.events import (
    ADMIN_PASSWORD_CHANGE,
    LOGIN_FAILED,
    RATE_LIMIT_EXCEEDED,
    SecurityEventLog,
)
from app.security.middleware import retry_after_header
from app.security.rate_limit import RateLimiter
from app.users.repository import UserRepository, normalise_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

TOO_MANY_ATTEMPTS = "Too many attempts, please try again later."
PASSWORD_CHANGE_THROTTLED = "Rate limit exceeded. Please try again later."


class LoginRequest(BaseModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class PasswordChangeRequest(BaseModel):
    target_email: Optional[str] = None
    target_user_id: Optional[str] = None
    new_password: str = Field(min_length=8)
    admin_secret: Optional[str] = None


def login_identifier(email: str) -> str:
    return f"login_attempt:{normalise_email(email) or ''}"


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",", 1)[0].strip()
    return request.client.host if request.client else "unknown"


def _throttled(limiter: RateLimiter, identifier: str, detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail=detail,
        headers={"Retry-After": retry_after_header(limiter.retry_after_ms(identifier))},
    )


@router.post("/login")
async def login(payload: LoginRequest, request: Request) -> dict:
    state = request.app.state
    limiter: RateLimiter = state.auth_rate_limiter
    events: SecurityEventLog = state.security_events
    users: UserRepository = state.user_repo

    identifier = login_identifier(payload.email)
    if not limiter.is_allowed(identifier):
        events.record(
            RATE_LIMIT_EXCEEDED,
            severity="warning",
            operation="login",
            identifier=identifier,
            ip=_client_ip(request),
        )
        raise _throttled(limiter, identifier, TOO_MANY_ATTEMPTS)

    user = users.authenticate(payload.email, payload.password)
    if user is None:
        events.record(LOGIN_FAILED, severity="warning", identifier=identifier, ip=_client_ip(request))
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_credentials")

    limiter.reset(identifier)
    logger.info("User signed in", extra={"user_id": user.id, "role": user.role})
    return {"status": "ok", "user": user.as_profile()}


@router.post("/password")
async def change_password(payload: PasswordChangeRequest, request: Request) -> dict:
    state = request.app.state
    limiter: RateLimiter = state.password_change_rate_limiter
    events: SecurityEventLog = state.security_events
    users: UserRepository = state.user_repo
    admin_secret: Optional[str] = state.settings.admin_reset_secret

    identifier = normalise_email(payload.target_email) or payload.target_user_id or "unknown"
    if not limiter.is_allowed(identifier):
        events.record(
            RATE_LIMIT_EXCEEDED,
            severity="warning",
            operation="password_change",
            identifier=identifier,
            ip=_client_ip(request),
        )
        raise _throttled(limiter, identifier, PASSWORD_CHANGE_THROTTLED)

    if not secret_matches(payload.admin_secret, admin_secret):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="unauthorized")

    if payload.target_email:
        user = users.get_by_email(payload.target_email)
    elif payload.target_user_id:
        user = users.get(payload.target_user_id)
    else:
        user = None
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="user_not_found")
    users.set_password(user.email, payload.new_password)

    events.record(
        ADMIN_PASSWORD_CHANGE,
        target_user_id=user.id,
        target_email=user.email,
        ip=_client_ip(request),
    )
    return {"success": True}
