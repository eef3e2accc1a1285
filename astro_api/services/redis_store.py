"""
Redis Store Service

Redis-backed implementations of the user store and the webhook event log.
Used when ``STORAGE_BACKEND=redis``; the application falls back to the
in-memory stores when Redis is unreachable.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from astro_api.config import Settings
from astro_api.exceptions import ConflictError
from astro_api.logger import logger
from astro_api.n8n.models import WebhookEvent
from astro_api.users.models import User, UserCreate, normalize_email
from astro_api.users.store import merge_user, new_user

USER_KEY = "user:{user_id}"
EMAIL_INDEX_KEY = "user_email:{email}"
EVENTS_KEY = "n8n:events"


def _decode(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode()
    return value


class RedisUserStore:
    """
    User store keyed by id, with an email -> id index.

    The email index is claimed with ``SET NX`` before a record is written, so two
    concurrent registrations for the same email cannot both succeed.
    """

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def get_user(self, user_id: str) -> Optional[User]:
        raw = _decode(await self._redis.get(USER_KEY.format(user_id=user_id)))
        if raw is None:
            return None
        return User.model_validate_json(raw)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        user_id = _decode(await self._redis.get(EMAIL_INDEX_KEY.format(email=normalize_email(email))))
        if user_id is None:
            return None
        return await self.get_user(user_id)

    async def create_user(self, fields: UserCreate) -> User:
        user = new_user(fields)
        await self._save(user)
        await self._redis.set(EMAIL_INDEX_KEY.format(email=user.email), user.id)
        return user

    async def create_user_if_email_available(self, fields: UserCreate) -> Optional[User]:
        user = new_user(fields)
        claimed = await self._redis.set(EMAIL_INDEX_KEY.format(email=user.email), user.id, nx=True)
        if not claimed:
            return None
        await self._save(user)
        return user

    async def update_user(self, user_id: str, changes: Dict[str, Any]) -> Optional[User]:
        user = await self.get_user(user_id)
        if user is None:
            return None

        updated = merge_user(user, changes)
        if updated.email != user.email:
            claimed = await self._redis.set(
                EMAIL_INDEX_KEY.format(email=updated.email), user_id, nx=True
            )
            if not claimed:
                raise ConflictError("Email already registered", field="email")
            await self._redis.delete(EMAIL_INDEX_KEY.format(email=user.email))

        await self._save(updated)
        return updated

    async def delete_user(self, user_id: str) -> bool:
        user = await self.get_user(user_id)
        if user is None:
            return False
        await self._redis.delete(USER_KEY.format(user_id=user_id))
        index_key = EMAIL_INDEX_KEY.format(email=user.email)
        # The index may already belong to another record with the same email
        if _decode(await self._redis.get(index_key)) == user_id:
            await self._redis.delete(index_key)
        return True

    async def ping(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except (RedisError, OSError) as e:
            logger.warning("redis_ping_failed", error=str(e))
            return False

    async def _save(self, user: User) -> None:
        await self._redis.set(USER_KEY.format(user_id=user.id), user.model_dump_json())


class RedisEventLog:
    """Webhook event log kept in a Redis list, newest at index 0."""

    def __init__(self, redis_client, capacity: int = 100) -> None:
        self._redis = redis_client
        self.capacity = capacity

    async def append(self, event: WebhookEvent) -> None:
        await self._redis.lpush(EVENTS_KEY, event.model_dump_json())
        await self._redis.ltrim(EVENTS_KEY, 0, self.capacity - 1)

    async def items(self) -> List[WebhookEvent]:
        raw_events = await self._redis.lrange(EVENTS_KEY, 0, self.capacity - 1)
        return [WebhookEvent.model_validate_json(_decode(raw)) for raw in raw_events]

    async def latest(self) -> Optional[WebhookEvent]:
        raw = _decode(await self._redis.lindex(EVENTS_KEY, 0))
        if raw is None:
            return None
        return WebhookEvent.model_validate_json(raw)

    async def clear(self) -> None:
        await self._redis.delete(EVENTS_KEY)

    async def size(self) -> int:
        return min(int(await self._redis.llen(EVENTS_KEY)), self.capacity)


async def get_redis_client(settings: Settings):
    """
    Connect to Redis and verify the connection.

    Returns:
        A ``redis.asyncio`` client, or None when Redis cannot be reached
    """
    client = redis.from_url(settings.redis_url)
    try:
        await client.ping()
    except (RedisError, OSError) as e:
        logger.warning("redis_connection_failed", error=str(e))
        await client.aclose()
        return None

    logger.info("redis_connected", url=settings.redis_url.split("@")[-1])
    return client
