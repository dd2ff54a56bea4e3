"""In-memory user repository for authentication flows."""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import os
import uuid
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional

from .models import ROLES, User

logger = logging.getLogger(__name__)

_PBKDF2_ITERATIONS = 120_000


def normalise_email(email: Optional[str]) -> Optional[str]:
    if not email:
        return None
    return email.strip().lower()


def hash_password(password: str, *, salt: Optional[bytes] = None) -> str:
    salt = salt or os.urandom(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, _PBKDF2_ITERATIONS)
    return "{}${}".format(
        base64.b64encode(salt).decode("ascii"),
        base64.b64encode(digest).decode("ascii"),
    )


def verify_password(password: str, stored: str) -> bool:
    try:
        salt_b64, digest_b64 = stored.split("$", 1)
        salt = base64.b64decode(salt_b64)
        expected = base64.b64decode(digest_b64)
    except ValueError:
        return False
    computed = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, _PBKDF2_ITERATIONS)
    return hmac.compare_digest(computed, expected)


class UserRepository:
    """Very small in-memory store used by the FastAPI app for auth."""

    def __init__(self) -> None:
        self._users_by_id: Dict[str, User] = {}
        self._users_by_email: Dict[str, User] = {}

    def reset(self) -> None:
        """Remove all in-memory users (used in tests)."""

        self._users_by_id.clear()
        self._users_by_email.clear()

    def all(self) -> Iterable[User]:  # pragma: no cover - convenience helper
        return self._users_by_id.values()

    def get(self, user_id: str) -> Optional[User]:
        return self._users_by_id.get(user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        email_key = normalise_email(email)
        if not email_key:
            return None
        return self._users_by_email.get(email_key)

    def create(
        self,
        email: str,
        password: str,
        *,
        role: str = "driver",
        organization_id: Optional[str] = None,
    ) -> User:
        email_key = normalise_email(email)
        if not email_key:
            raise ValueError("Email is required")
        if role not in ROLES:
            raise ValueError(f"Unknown role: {role}")
        if email_key in self._users_by_email:
            raise ValueError(f"User already exists: {email_key}")
        user = User(
            id=str(uuid.uuid4()),
            email=email_key,
            password_hash=hash_password(password),
            role=role,
            organization_id=organization_id,
        )
        self._users_by_id[user.id] = user
        self._users_by_email[email_key] = user
        return user

    def authenticate(self, email: str, password: str) -> Optional[User]:
        user = self.get_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            return None
        user.last_login_at = datetime.now(tz=timezone.utc)
        return user

    def set_password(self, email: str, password: str) -> User:
        user = self.get_by_email(email)
        if user is None:
            raise KeyError(email)
        user.password_hash = hash_password(password)
        return user

    def seed_from_env(self) -> int:
        """Load ``SEED_USERS`` entries of the form ``email:password[:role]``.

        The password runs up to the last colon, so a password containing a
        colon needs an explicit role. Entries with an unknown role are skipped.
        """

        raw = os.getenv("SEED_USERS", "")
        created = 0
        for entry in raw.split(","):
            email, _, rest = entry.strip().partition(":")
            if not email or not rest:
                continue
            password, role = rest, "driver"
            if ":" in rest:
                password, role = rest.rsplit(":", 1)
                role = role.strip() or "driver"
            if not password:
                continue
            if role not in ROLES:
                logger.warning("Skipping seed user with unknown role", extra={"email": email, "role": role})
                continue
            if self.get_by_email(email) is None:
                self.create(email, password, role=role)
                created += 1
        return created
