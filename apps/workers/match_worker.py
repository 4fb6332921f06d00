"""Reconcile worker: retries match formation for pairs the API gave up on."""

import asyncio
import logging
from typing import Any

from redis.exceptions import ResponseError

from core.config import settings
from core.db import AsyncSessionLocal
from core.logging import configure_logging
from core.redis import get_redis
from services.match_detector import MatchDetector, MatchOutcome

logger = logging.getLogger(__name__)

GROUP_NAME = "matchers"
DEAD_LETTER_STREAM = "match.dead"


class MatchWorker:
    """Consumes ``match.reconcile`` and re-runs formation for each pair."""

    def __init__(self, consumer_name: str = "worker-1") -> None:
        self.running = False
        self.stream_name = settings.match_reconcile_stream
        self.consumer_name = consumer_name

    async def start(self) -> None:
        """Start the reconcile loop."""
        self.running = True
        redis_client = await get_redis()

        logger.info(f"Match worker started, consuming from {self.stream_name}...")

        # Create consumer group if not exists
        try:
            await redis_client.xgroup_create(name=self.stream_name, groupname=GROUP_NAME, id="0", mkstream=True)
            logger.info(f"Created consumer group: {GROUP_NAME}")
        except ResponseError as e:
            if "BUSYGROUP" not in str(e):
                raise

        while self.running:
            try:
                messages = await redis_client.xreadgroup(
                    groupname=GROUP_NAME,
                    consumername=self.consumer_name,
                    streams={self.stream_name: ">"},
                    count=10,
                    block=5000,  # 5 seconds timeout
                )
                for _stream_key, stream_messages in messages or []:
                    for message_id, message_data in stream_messages:
                        await self.handle_message(redis_client, message_id, message_data)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Error in match worker loop")
                await asyncio.sleep(5)

    async def handle_message(self, redis_client: Any, message_id: str, message_data: dict[str, str]) -> None:
        """Process one stream entry; failures go to the dead letter stream."""
        logger.debug(f"Processing message {message_id}: {message_data}")
        try:
            outcome = await self.process_pair(int(message_data["u_lo"]), int(message_data["u_hi"]))
            if outcome.is_match and outcome.match is not None:
                logger.info(f"Reconciled pair into match {outcome.match.id}")
            else:
                logger.info(f"Reconciled pair ({message_data['u_lo']}, {message_data['u_hi']}): no match")
        except Exception:
            logger.exception(f"Error processing message {message_id}, moving to {DEAD_LETTER_STREAM}")
            await redis_client.xadd(DEAD_LETTER_STREAM, message_data)
        await redis_client.xack(self.stream_name, GROUP_NAME, message_id)

    async def process_pair(self, user_x: int, user_y: int) -> MatchOutcome:
        async with AsyncSessionLocal() as db:
            detector = MatchDetector(
                db,
                max_attempts=settings.match_formation_max_attempts,
                backoff_seconds=settings.match_formation_backoff_seconds,
            )
            return await detector.reconcile_pair(user_x, user_y)

    async def stop(self) -> None:
        """Stop the reconcile loop."""
        self.running = False


async def main() -> None:
    """Run match worker."""
    configure_logging()
    worker = MatchWorker()
    try:
        await worker.start()
    except KeyboardInterrupt:
        await worker.stop()


if __name__ == "__main__":
    asyncio.run(main())
