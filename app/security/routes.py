"""Admin-only views over the security event log."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request

from .admin import require_admin_secret
from .events import SecurityEventLog

router = APIRouter(
    prefix="/security",
    tags=["security"],
    dependencies=[Depends(require_admin_secret)],
)


def _event_log(request: Request) -> SecurityEventLog:
    event_log = getattr(request.app.state, "security_events", None)
    if event_log is None:
        raise RuntimeError("Security event log is not configured")
    return event_log


@router.get("/summary")
async def security_summary(request: Request) -> dict[str, int]:
    """Counters shown on the admin security monitor."""

    return _event_log(request).summary()


@router.get("/events")
async def security_events(request: Request, limit: int = Query(50, ge=1, le=500)) -> dict:
    events = _event_log(request).recent(limit)
    return {"events": [event.as_dict() for event in events]}
