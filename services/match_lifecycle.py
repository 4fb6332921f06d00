"""Match listing, detail, statistics and the unmatch/block transitions."""

import logging
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy import case, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.clock import utcnow
from core.errors import AuthorizationError, NotFoundError, ValidationError
from core.metrics import match_transitions_total
from models import Match, MatchStatus, User, UserBlock
from services.match_state import MatchAction, transition_match
from services.pagination import Page, check_pagination

logger = logging.getLogger(__name__)

UNMATCH_REASON_MAX_LENGTH = 200


@dataclass
class MatchView:
    match: Match
    user: User | None  # counterpart


@dataclass
class MatchStats:
    total_matches: int
    matches_with_conversation: int
    recent_matches: int

    @property
    def matches_without_conversation(self) -> int:
        return self.total_matches - self.matches_with_conversation


def counterpart_id(match: Match, user_id: int) -> int:
    return match.user_b if user_id == match.user_a else match.user_a


def parse_match_status(value: MatchStatus | str) -> MatchStatus:
    try:
        return MatchStatus(value)
    except ValueError:
        raise ValidationError("Invalid match status") from None


def _involves(user_id: int):
    return or_(Match.user_a == user_id, Match.user_b == user_id)


class MatchLifecycleManager:
    """Everything that happens to a match after it is formed."""

    def __init__(self, db: AsyncSession, recent_window_days: int = 7, max_limit: int | None = None) -> None:
        self.db = db
        self.recent_window_days = recent_window_days
        self.max_limit = max_limit

    async def list_matches(
        self,
        user_id: int,
        status: MatchStatus | str = MatchStatus.ACTIVE,
        page: int = 1,
        limit: int = 20,
    ) -> Page[MatchView]:
        """
        List a user's matches with the counterpart's profile.

        Sorted by last message time, newest first. Matches whose counterpart
        no longer exists are left out of the page.
        """
        status = parse_match_status(status)
        page, limit = check_pagination(page, limit, self.max_limit)
        conditions = [_involves(user_id), Match.status == status]

        total = await self.db.scalar(select(func.count(Match.id)).where(*conditions)) or 0
        result = await self.db.execute(
            select(Match)
            .where(*conditions)
            .order_by(Match.last_message_at.desc(), Match.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        matches = list(result.scalars().all())

        other_ids = {counterpart_id(m, user_id) for m in matches}
        users: dict[int, User] = {}
        if other_ids:
            users_result = await self.db.execute(select(User).where(User.id.in_(other_ids)))
            users = {u.id: u for u in users_result.scalars().all()}

        items = [
            MatchView(match=m, user=users[counterpart_id(m, user_id)])
            for m in matches
            if counterpart_id(m, user_id) in users
        ]
        return Page(items=items, page=page, limit=limit, total=total)

    async def _load_for_member(self, match_id: int, user_id: int) -> Match:
        match = await self.db.get(Match, match_id)
        if match is None:
            raise NotFoundError("Match not found")
        if user_id not in (match.user_a, match.user_b):
            raise AuthorizationError("You are not part of this match")
        return match

    async def get_match(self, match_id: int, user_id: int) -> MatchView:
        """
        Match detail for one of its members.

        Raises:
            NotFoundError: Match does not exist
            AuthorizationError: ``user_id`` is not part of the match
        """
        match = await self._load_for_member(match_id, user_id)
        other_id = counterpart_id(match, user_id)
        if not await self._count_profile_view(other_id):
            await self.db.refresh(match)
        other = await self.db.get(User, other_id)
        return MatchView(match=match, user=other)

    async def _count_profile_view(self, user_id: int) -> bool:
        """Best effort: a failed counter update never fails the read."""
        try:
            await self.db.execute(
                update(User)
                .where(User.id == user_id)
                .values(profile_views=User.profile_views + 1)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.warning(f"Profile view increment failed for user {user_id}: {exc}")
            return False
        return True

    async def _end_match(self, match_id: int, user_id: int, action: MatchAction, reason: str | None) -> Match:
        match = await self._load_for_member(match_id, user_id)
        new_status = transition_match(match.status, action)

        # Conditional write: only the request that still sees 'active' ends the match
        result = await self.db.execute(
            update(Match)
            .where(Match.id == match_id, Match.status == MatchStatus.ACTIVE)
            .values(status=new_status, unmatched_by=user_id, unmatched_at=utcnow(), unmatch_reason=reason)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            raise ValidationError("Match is already inactive")

        await self.db.execute(
            update(User)
            .where(User.id.in_([match.user_a, match.user_b]))
            .values(total_matches=case((User.total_matches > 0, User.total_matches - 1), else_=0))
            .execution_options(synchronize_session=False)
        )

        if action is MatchAction.BLOCK:
            other_id = counterpart_id(match, user_id)
            already = await self.db.get(UserBlock, (user_id, other_id))
            if already is None:
                self.db.add(UserBlock(user_id=user_id, blocked_id=other_id))

        await self.db.commit()
        await self.db.refresh(match)

        match_transitions_total.labels(status=new_status.value).inc()
        logger.info(f"Match {match_id} -> {new_status.value} by user {user_id}")
        return match

    async def unmatch(self, match_id: int, user_id: int, reason: str | None = None) -> Match:
        """
        End an active match.

        Raises:
            NotFoundError: Match does not exist
            AuthorizationError: ``user_id`` is not part of the match
            ValidationError: Match is not active, or the reason is too long
        """
        if reason is not None:
            reason = reason.strip() or None
        if reason is not None and len(reason) > UNMATCH_REASON_MAX_LENGTH:
            raise ValidationError(f"Reason cannot exceed {UNMATCH_REASON_MAX_LENGTH} characters")
        return await self._end_match(match_id, user_id, MatchAction.UNMATCH, reason)

    async def block(self, match_id: int, user_id: int) -> Match:
        """End an active match as blocked and hide the counterpart from the actor's feed."""
        return await self._end_match(match_id, user_id, MatchAction.BLOCK, None)

    async def record_message(self, match_id: int, user_id: int) -> Match:
        """
        Note a message sent in an active match; called by the messaging service.

        Raises:
            NotFoundError: Match does not exist
            AuthorizationError: ``user_id`` is not part of the match
            ValidationError: Match is not active
        """
        match = await self._load_for_member(match_id, user_id)
        result = await self.db.execute(
            update(Match)
            .where(Match.id == match_id, Match.status == MatchStatus.ACTIVE)
            .values(last_message_at=utcnow(), has_conversation=True, message_count=Match.message_count + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            raise ValidationError("Match is already inactive")

        await self.db.commit()
        await self.db.refresh(match)
        return match

    async def get_stats(self, user_id: int) -> MatchStats:
        """Counts derived from current match rows."""
        active = [_involves(user_id), Match.status == MatchStatus.ACTIVE]
        since = utcnow() - timedelta(days=self.recent_window_days)

        total = await self.db.scalar(select(func.count(Match.id)).where(*active)) or 0
        with_conversation = (
            await self.db.scalar(select(func.count(Match.id)).where(*active, Match.has_conversation.is_(True))) or 0
        )
        recent = await self.db.scalar(select(func.count(Match.id)).where(*active, Match.matched_at >= since)) or 0

        return MatchStats(total_matches=total, matches_with_conversation=with_conversation, recent_matches=recent)
