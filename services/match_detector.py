"""Match formation.

A match for an unordered pair is created at most once. The partial unique
index on ``matches(u_lo, u_hi) WHERE status = 'active'`` is the serialization
point: concurrent writers race on the insert, the loser gets an
``IntegrityError``, rolls back and attaches both swipes to the winner's row.
"""

import asyncio
import logging
from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.clock import utcnow
from core.errors import AppError, ConflictError
from core.metrics import (
    match_conflicts_total,
    match_formation_retries_total,
    match_reconcile_enqueued_total,
    matches_created_total,
)
from models import Match, MatchStatus, Swipe, SwipeAction, User, canonical_pair
from services.reconcile import ReconcileQueue

logger = logging.getLogger(__name__)


@dataclass
class MatchOutcome:
    is_match: bool
    match: Match | None = None


class MatchFormationError(AppError):
    """Match formation kept failing; the pair was handed to the reconcile worker."""

    status_code = 503


class MatchDetector:
    """Turns a positive swipe into a match when the reciprocal swipe is positive too."""

    def __init__(
        self,
        db: AsyncSession,
        reconcile_queue: ReconcileQueue | None = None,
        max_attempts: int = 3,
        backoff_seconds: float = 0.05,
    ) -> None:
        self.db = db
        self.reconcile_queue = reconcile_queue
        self.max_attempts = max(1, max_attempts)
        self.backoff_seconds = backoff_seconds

    async def evaluate(self, swipe: Swipe) -> MatchOutcome:
        """
        Evaluate a freshly recorded swipe.

        Args:
            swipe: Swipe returned by SwipeLedger.record_swipe

        Returns:
            MatchOutcome; ``match`` is set when the pair is matched

        Raises:
            MatchFormationError: Retries exhausted (pair queued for reconcile)
        """
        if not SwipeAction(swipe.action).forms_match:
            return MatchOutcome(is_match=False)
        return await self._evaluate_with_retry(swipe.swiper_id, swipe.swiped_user_id)

    async def reconcile_pair(self, user_x: int, user_y: int) -> MatchOutcome:
        """Re-run formation for a pair in either direction. Idempotent."""
        outcome = await self._evaluate_with_retry(user_x, user_y, enqueue_on_failure=False)
        if outcome.is_match:
            return outcome
        return await self._evaluate_with_retry(user_y, user_x, enqueue_on_failure=False)

    async def _evaluate_with_retry(
        self, swiper_id: int, swiped_user_id: int, enqueue_on_failure: bool = True
    ) -> MatchOutcome:
        attempt = 0
        while True:
            attempt += 1
            try:
                return await self._form_match(swiper_id, swiped_user_id)
            except (ConflictError, DBAPIError) as exc:
                await self.db.rollback()
                if attempt >= self.max_attempts:
                    logger.error(
                        f"Match formation failed after {attempt} attempts: "
                        f"swiper={swiper_id}, swiped={swiped_user_id}: {exc}"
                    )
                    if enqueue_on_failure:
                        await self._hand_off(swiper_id, swiped_user_id)
                    raise MatchFormationError("Match could not be completed yet, it will be retried") from exc
                match_formation_retries_total.inc()
                logger.warning(
                    f"Retrying match formation (attempt {attempt + 1}/{self.max_attempts}): "
                    f"swiper={swiper_id}, swiped={swiped_user_id}: {exc}"
                )
                await asyncio.sleep(self.backoff_seconds * attempt)

    async def _hand_off(self, swiper_id: int, swiped_user_id: int) -> None:
        if self.reconcile_queue is None:
            return
        try:
            await self.reconcile_queue.enqueue(swiper_id, swiped_user_id)
            match_reconcile_enqueued_total.inc()
        except Exception:
            logger.exception(f"Could not queue match reconcile: swiper={swiper_id}, swiped={swiped_user_id}")

    async def _positive_swipe_id(self, swiper_id: int, swiped_user_id: int) -> int | None:
        return await self.db.scalar(
            select(Swipe.id).where(
                Swipe.swiper_id == swiper_id,
                Swipe.swiped_user_id == swiped_user_id,
                Swipe.action.in_(SwipeAction.positive()),
            )
        )

    async def _active_match(self, u_lo: int, u_hi: int) -> Match | None:
        return await self.db.scalar(
            select(Match)
            .where(Match.u_lo == u_lo, Match.u_hi == u_hi, Match.status == MatchStatus.ACTIVE)
            .execution_options(populate_existing=True)
        )

    async def _form_match(self, swiper_id: int, swiped_user_id: int) -> MatchOutcome:
        reciprocal_id = await self._positive_swipe_id(swiped_user_id, swiper_id)
        if reciprocal_id is None:
            return MatchOutcome(is_match=False)

        own_id = await self._positive_swipe_id(swiper_id, swiped_user_id)
        if own_id is None:
            # Undone before evaluation
            return MatchOutcome(is_match=False)

        u_lo, u_hi = canonical_pair(swiper_id, swiped_user_id)

        existing = await self._active_match(u_lo, u_hi)
        if existing is not None:
            return await self._attach(existing, own_id, reciprocal_id)

        now = utcnow()
        match = Match(
            user_a=swiper_id,
            user_b=swiped_user_id,
            u_lo=u_lo,
            u_hi=u_hi,
            status=MatchStatus.ACTIVE,
            matched_at=now,
            last_message_at=now,
        )
        self.db.add(match)
        try:
            await self.db.flush()
        except IntegrityError:
            # Another writer created the active match for this pair first
            await self.db.rollback()
            match_conflicts_total.inc()
            logger.warning(f"Match for pair ({u_lo}, {u_hi}) created concurrently, attaching to it")
            existing = await self._active_match(u_lo, u_hi)
            if existing is None:
                raise ConflictError(f"Active match for pair ({u_lo}, {u_hi}) is not visible yet") from None
            return await self._attach(existing, own_id, reciprocal_id)

        marked = await self.db.execute(
            update(Swipe)
            .where(Swipe.id.in_([own_id, reciprocal_id]), Swipe.is_match.is_(False))
            .values(is_match=True, match_id=match.id)
            .execution_options(synchronize_session=False)
        )
        if marked.rowcount != 2:
            # A swipe was undone or already belongs to an earlier match
            await self.db.rollback()
            logger.info(f"Match for pair ({u_lo}, {u_hi}) abandoned: swipes changed during formation")
            return MatchOutcome(is_match=False)

        await self.db.execute(
            update(User)
            .where(User.id.in_([swiper_id, swiped_user_id]))
            .values(total_matches=User.total_matches + 1)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

        matches_created_total.inc()
        logger.info(f"New match created between {swiper_id} and {swiped_user_id}: match_id={match.id}")
        return MatchOutcome(is_match=True, match=match)

    async def _attach(self, match: Match, own_id: int, reciprocal_id: int) -> MatchOutcome:
        """Point both swipes at an existing active match. Swipes already matched are left alone."""
        await self.db.execute(
            update(Swipe)
            .where(Swipe.id.in_([own_id, reciprocal_id]), Swipe.is_match.is_(False))
            .values(is_match=True, match_id=match.id)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        logger.info(f"Swipes {own_id}, {reciprocal_id} attached to match {match.id}")
        return MatchOutcome(is_match=True, match=match)
