"""Shared infrastructure: settings, database, redis, errors and logging."""

from core.config import settings
from core.db import AsyncSessionLocal, Base, engine, get_db
from core.redis import close_redis, get_redis

__all__ = ["settings", "Base", "AsyncSessionLocal", "get_db", "engine", "get_redis", "close_redis"]
