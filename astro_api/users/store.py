"""
User storage.

``UserStore`` is the interface route handlers depend on. ``InMemoryUserStore``
is the default backend; a Redis-backed implementation lives in
``astro_api.services.redis_store``.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from astro_api.exceptions import ConflictError
from astro_api.users.models import User, UserCreate, normalize_email


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_user(fields: UserCreate) -> User:
    """Build a fresh record with a new id and both timestamps set to now."""
    now = utcnow()
    return User(
        **fields.model_dump(),
        id=str(uuid.uuid4()),
        created_at=now,
        updated_at=now,
    )


def merge_user(user: User, changes: Dict[str, Any]) -> User:
    """Apply ``changes`` over ``user``; identity, credential and creation time are never touched."""
    protected = {"id", "password", "created_at", "updated_at"}
    data = user.model_dump()
    data.update({k: v for k, v in changes.items() if k not in protected})
    data["updated_at"] = utcnow()
    return User.model_validate(data)


@runtime_checkable
class UserStore(Protocol):
    """Async storage interface for user records."""

    async def get_user(self, user_id: str) -> Optional[User]:
        ...

    async def get_user_by_email(self, email: str) -> Optional[User]:
        ...

    async def create_user(self, fields: UserCreate) -> User:
        ...

    async def create_user_if_email_available(self, fields: UserCreate) -> Optional[User]:
        ...

    async def update_user(self, user_id: str, changes: Dict[str, Any]) -> Optional[User]:
        ...

    async def delete_user(self, user_id: str) -> bool:
        ...

    async def ping(self) -> bool:
        ...


class InMemoryUserStore:
    """Dictionary-backed store; contents live for the lifetime of the process."""

    def __init__(self) -> None:
        self._users: Dict[str, User] = {}
        self._lock = Lock()

    def __len__(self) -> int:
        return len(self._users)

    async def get_user(self, user_id: str) -> Optional[User]:
        return self._users.get(user_id)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        email = normalize_email(email)
        with self._lock:
            for user in self._users.values():
                if user.email == email:
                    return user
        return None

    async def create_user(self, fields: UserCreate) -> User:
        user = new_user(fields)
        with self._lock:
            self._users[user.id] = user
        return user

    async def create_user_if_email_available(self, fields: UserCreate) -> Optional[User]:
        with self._lock:
            if self._email_owner(fields.email) is not None:
                return None
            user = new_user(fields)
            self._users[user.id] = user
        return user

    async def update_user(self, user_id: str, changes: Dict[str, Any]) -> Optional[User]:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return None
            new_email = changes.get("email")
            if new_email is not None:
                owner = self._email_owner(normalize_email(new_email))
                if owner is not None and owner != user_id:
                    raise ConflictError("Email already registered", field="email")
            updated = merge_user(user, changes)
            self._users[user_id] = updated
        return updated

    async def delete_user(self, user_id: str) -> bool:
        with self._lock:
            return self._users.pop(user_id, None) is not None

    async def ping(self) -> bool:
        return True

    def _email_owner(self, email: str) -> Optional[str]:
        # Caller holds the lock
        for user in self._users.values():
            if user.email == email:
                return user.id
        return None
