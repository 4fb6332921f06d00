"""Swipe ledger: one immutable record per ordered (swiper, swiped) pair."""

import logging
from dataclasses import dataclass

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import NotFoundError, ValidationError
from core.metrics import swipes_total, swipes_undone_total
from models import Swipe, SwipeAction, User
from services.candidate_store import GeoPoint
from services.pagination import Page, check_pagination

logger = logging.getLogger(__name__)

DUPLICATE_SWIPE = "You have already swiped on this user"


def parse_swipe_action(value: SwipeAction | str) -> SwipeAction:
    """Map a raw action value onto SwipeAction or reject it."""
    try:
        return SwipeAction(value)
    except ValueError:
        raise ValidationError("Invalid swipe action") from None


@dataclass
class SwipeHistoryItem:
    swipe: Swipe
    user: User | None


@dataclass
class ReceivedLike:
    swipe: Swipe
    user: User


class SwipeLedger:
    """Records swipes, undoes the latest one and answers history queries."""

    def __init__(self, db: AsyncSession, history_max_limit: int | None = None) -> None:
        self.db = db
        self.history_max_limit = history_max_limit

    async def record_swipe(
        self,
        swiper_id: int,
        swiped_user_id: int,
        action: SwipeAction | str,
        location: GeoPoint | None = None,
    ) -> Swipe:
        """
        Record a swipe and bump the swiper's swipe counter.

        The row is committed before returning so a following match evaluation,
        in this or any other worker, observes it.

        Raises:
            ValidationError: Self swipe, invalid action or duplicate swipe
            NotFoundError: Target user missing or inactive
        """
        if swiper_id == swiped_user_id:
            raise ValidationError("You cannot swipe on yourself")

        action = parse_swipe_action(action)

        target = await self.db.get(User, swiped_user_id)
        if target is None or not target.is_active:
            raise NotFoundError("User not found")

        existing = await self.db.scalar(
            select(Swipe.id).where(Swipe.swiper_id == swiper_id, Swipe.swiped_user_id == swiped_user_id)
        )
        if existing is not None:
            raise ValidationError(DUPLICATE_SWIPE)

        swipe = Swipe(
            swiper_id=swiper_id,
            swiped_user_id=swiped_user_id,
            action=action,
            is_match=False,
            match_id=None,
            latitude=location.latitude if location else None,
            longitude=location.longitude if location else None,
        )
        self.db.add(swipe)
        try:
            await self.db.flush()
            await self.db.execute(
                update(User)
                .where(User.id == swiper_id)
                .values(total_swipes=User.total_swipes + 1)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except IntegrityError:
            # A concurrent request inserted the same ordered pair first
            await self.db.rollback()
            logger.info(f"Duplicate swipe rejected by constraint: swiper={swiper_id}, swiped={swiped_user_id}")
            raise ValidationError(DUPLICATE_SWIPE) from None

        swipes_total.labels(action=action.value).inc()
        logger.info(f"Swipe recorded: swiper={swiper_id}, swiped={swiped_user_id}, action={action.value}")
        return swipe

    async def undo_last(self, user_id: int) -> None:
        """
        Delete the user's most recent swipe unless it formed a match.

        Raises:
            NotFoundError: User has no swipes
            ValidationError: The most recent swipe is part of a match
        """
        last = await self.db.scalar(
            select(Swipe)
            .where(Swipe.swiper_id == user_id)
            .order_by(Swipe.swiped_at.desc(), Swipe.id.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        if last is None:
            raise NotFoundError("No swipe to undo")
        if last.is_match:
            raise ValidationError("Cannot undo a swipe that resulted in a match")

        swipe_id = last.id
        # Guarded on is_match so a match formed in the meantime wins
        result = await self.db.execute(
            delete(Swipe)
            .where(Swipe.id == swipe_id, Swipe.is_match.is_(False))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            raise ValidationError("Cannot undo a swipe that resulted in a match")

        await self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(total_swipes=case((User.total_swipes > 0, User.total_swipes - 1), else_=0))
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        self.db.expunge(last)

        swipes_undone_total.inc()
        logger.info(f"Swipe undone: swiper={user_id}, swipe_id={swipe_id}")

    async def history(
        self,
        user_id: int,
        page: int = 1,
        limit: int = 20,
        action: SwipeAction | str | None = None,
    ) -> Page[SwipeHistoryItem]:
        """Swipes made by ``user_id``, newest first, with the swiped user's profile."""
        page, limit = check_pagination(page, limit, self.history_max_limit)

        conditions = [Swipe.swiper_id == user_id]
        if action is not None:
            conditions.append(Swipe.action == parse_swipe_action(action))

        total = await self.db.scalar(select(func.count(Swipe.id)).where(*conditions)) or 0
        result = await self.db.execute(
            select(Swipe, User)
            .outerjoin(User, User.id == Swipe.swiped_user_id)
            .where(*conditions)
            .order_by(Swipe.swiped_at.desc(), Swipe.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        items = [SwipeHistoryItem(swipe=swipe, user=user) for swipe, user in result.all()]
        return Page(items=items, page=page, limit=limit, total=total)

    async def likes_received(self, user_id: int) -> list[ReceivedLike]:
        """Active users whose like or superlike on ``user_id`` has not formed a match yet."""
        result = await self.db.execute(
            select(Swipe, User)
            .join(User, User.id == Swipe.swiper_id)
            .where(
                Swipe.swiped_user_id == user_id,
                Swipe.action.in_(SwipeAction.positive()),
                Swipe.is_match.is_(False),
                User.is_active.is_(True),
            )
            .order_by(Swipe.swiped_at.desc(), Swipe.id.desc())
        )
        return [ReceivedLike(swipe=swipe, user=user) for swipe, user in result.all()]
