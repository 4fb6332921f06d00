"""FastAPI dependencies."""

from collections.abc import AsyncGenerator

import redis.asyncio as redis
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import gateway_auth
from core.config import settings
from core.db import get_db as _get_db
from core.errors import AuthenticationError, AuthorizationError
from core.redis import get_redis as _get_redis
from services.candidate_store import CandidateStore
from services.discovery import DiscoveryFeedBuilder
from services.match_detector import MatchDetector
from services.match_lifecycle import MatchLifecycleManager
from services.reconcile import ReconcileQueue
from services.swipe_ledger import SwipeLedger
from services.user_cache import CurrentUser, UserCache


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async for session in _get_db():
        yield session


async def get_redis_client() -> redis.Redis:
    """Get Redis client dependency."""
    return await _get_redis()


async def get_current_user(
    user_id: int = Depends(gateway_auth),
    db: AsyncSession = Depends(get_db),
    redis_client: redis.Redis = Depends(get_redis_client),
) -> CurrentUser:
    """Authenticated, active user for this request (read-through cached)."""
    user = await UserCache(redis_client, settings.user_cache_ttl_seconds).get(db, user_id)
    if user is None:
        raise AuthenticationError("User not found")
    if not user.is_active:
        raise AuthorizationError("Your account has been deactivated")
    return user


async def require_premium(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """Restrict an endpoint to users with an unexpired premium capability."""
    if not current_user.is_premium:
        raise AuthorizationError("This feature is only available for premium users")
    if not current_user.has_premium:
        raise AuthorizationError("Your premium subscription has expired")
    return current_user


def get_swipe_ledger(db: AsyncSession = Depends(get_db)) -> SwipeLedger:
    return SwipeLedger(db, history_max_limit=settings.history_max_limit)


def get_match_detector(
    db: AsyncSession = Depends(get_db),
    redis_client: redis.Redis = Depends(get_redis_client),
) -> MatchDetector:
    return MatchDetector(
        db,
        reconcile_queue=ReconcileQueue(redis_client, settings.match_reconcile_stream),
        max_attempts=settings.match_formation_max_attempts,
        backoff_seconds=settings.match_formation_backoff_seconds,
    )


def get_discovery_feed(db: AsyncSession = Depends(get_db)) -> DiscoveryFeedBuilder:
    return DiscoveryFeedBuilder(
        db,
        CandidateStore(db),
        default_limit=settings.discover_default_limit,
        max_limit=settings.discover_max_limit,
    )


def get_match_lifecycle(db: AsyncSession = Depends(get_db)) -> MatchLifecycleManager:
    return MatchLifecycleManager(
        db,
        recent_window_days=settings.recent_match_window_days,
        max_limit=settings.history_max_limit,
    )
