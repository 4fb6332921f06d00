"""Hand-off of pairs whose match formation could not complete in-request."""

import logging

import redis.asyncio as redis

from core.clock import utcnow
from models import canonical_pair

logger = logging.getLogger(__name__)


class ReconcileQueue:
    """Redis stream of unordered pairs the match worker should re-evaluate."""

    def __init__(self, redis_client: redis.Redis, stream: str) -> None:
        self.redis = redis_client
        self.stream = stream

    async def enqueue(self, user_x: int, user_y: int) -> str:
        u_lo, u_hi = canonical_pair(user_x, user_y)
        payload = {"u_lo": str(u_lo), "u_hi": str(u_hi), "requested_at": utcnow().isoformat()}
        stream_id = await self.redis.xadd(self.stream, payload)
        logger.info(f"Queued match reconcile for pair ({u_lo}, {u_hi}): {stream_id}")
        return stream_id
