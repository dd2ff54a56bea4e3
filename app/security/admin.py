"""Shared-secret check for admin-only operations."""

from __future__ import annotations

import hmac
from typing import Optional

from fastapi import HTTPException, Request, status

ADMIN_SECRET_HEADER = "X-Admin-Secret"


def secret_matches(provided: Optional[str], expected: Optional[str]) -> bool:
    """Constant-time comparison; an unset ``expected`` never matches."""

    if not expected:
        return False
    return hmac.compare_digest((provided or "").encode("utf-8"), expected.encode("utf-8"))


def require_admin_secret(request: Request) -> None:
    """FastAPI dependency rejecting callers without the configured admin secret."""

    expected = request.app.state.settings.admin_reset_secret
    if not secret_matches(request.headers.get(ADMIN_SECRET_HEADER), expected):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="unauthorized")
