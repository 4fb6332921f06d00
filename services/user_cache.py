"""Read-through cache of the authenticated user's document.

Only request context (identity, activity, premium capability) comes from
here. Swipe recording and match formation always read the database.
"""

import logging
from datetime import datetime

import redis.asyncio as redis
from pydantic import BaseModel
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession

from core.clock import utcnow
from models import User

logger = logging.getLogger(__name__)


class CurrentUser(BaseModel):
    """Snapshot of the requesting user; may be stale up to the cache TTL."""

    id: int
    first_name: str
    is_active: bool
    is_premium: bool
    premium_expires_at: datetime | None = None
    latitude: float | None = None
    longitude: float | None = None

    @property
    def has_premium(self) -> bool:
        if not self.is_premium:
            return False
        return self.premium_expires_at is None or self.premium_expires_at >= utcnow()

    @classmethod
    def from_user(cls, user: User) -> "CurrentUser":
        return cls(
            id=user.id,
            first_name=user.first_name,
            is_active=user.is_active,
            is_premium=user.is_premium,
            premium_expires_at=user.premium_expires_at,
            latitude=user.latitude,
            longitude=user.longitude,
        )


class UserCache:
    def __init__(self, redis_client: redis.Redis, ttl_seconds: int = 300) -> None:
        self.redis = redis_client
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def key(user_id: int) -> str:
        return f"user:{user_id}"

    async def get(self, db: AsyncSession, user_id: int) -> CurrentUser | None:
        """Cached snapshot, or load from the database and cache it."""
        try:
            cached = await self.redis.get(self.key(user_id))
        except RedisError as exc:
            logger.warning(f"User cache read failed for {user_id}: {exc}")
            cached = None
        if cached:
            return CurrentUser.model_validate_json(cached)

        user = await db.get(User, user_id)
        if user is None:
            return None
        snapshot = CurrentUser.from_user(user)
        try:
            await self.redis.set(self.key(user_id), snapshot.model_dump_json(), ex=self.ttl_seconds)
        except RedisError as exc:
            logger.warning(f"User cache write failed for {user_id}: {exc}")
        return snapshot
