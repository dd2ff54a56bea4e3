"""User domain models used for authentication."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

ROLES = ("admin", "driver", "parent")


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclass
class User:
    """Fleet portal account able to sign in."""

    id: str
    email: str
    password_hash: str
    role: str = "driver"
    organization_id: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)
    last_login_at: Optional[datetime] = None

    def as_profile(self) -> dict[str, Optional[str]]:
        """Return a serialisable profile payload for API responses."""

        return {
            "id": self.id,
            "email": self.email,
            "role": self.role,
            "organization_id": self.organization_id,
        }
