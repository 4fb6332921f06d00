"""Discovery feed: candidates a viewer can swipe on."""

import logging
from dataclasses import dataclass
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.clock import today, years_before
from core.errors import NotFoundError
from core.metrics import discover_feed_size
from models import Gender, GenderPreference, Swipe, User, UserBlock
from services.candidate_store import Candidate, CandidateFilter, CandidateStore, GeoPoint

logger = logging.getLogger(__name__)

DEFAULT_FEED_LIMIT = 20


@dataclass
class DiscoveryFeed:
    users: list[Candidate]

    @property
    def count(self) -> int:
        return len(self.users)


def normalize_limit(limit: int | None, default: int = DEFAULT_FEED_LIMIT, maximum: int | None = None) -> int:
    """Absent or non-positive limits fall back to the default."""
    if limit is None or limit <= 0:
        limit = default
    if maximum is not None:
        limit = min(limit, maximum)
    return limit


def birth_date_window(on: date, min_age: int, max_age: int) -> tuple[date, date]:
    """Birth dates of people aged within [min_age, max_age] on ``on``: (earliest, latest)."""
    return years_before(on, max_age), years_before(on, min_age)


def build_candidate_filter(viewer: User, excluded: set[int], on: date) -> CandidateFilter:
    min_birth, max_birth = birth_date_window(on, viewer.pref_age_min, viewer.pref_age_max)
    show_me = GenderPreference(viewer.pref_show_me)
    return CandidateFilter(
        exclude_ids=frozenset(excluded),
        gender=None if show_me is GenderPreference.EVERYONE else Gender(show_me.value),
        interested_in_any=(GenderPreference(Gender(viewer.gender).value), GenderPreference.EVERYONE),
        min_birth_date=min_birth,
        max_birth_date=max_birth,
        active_only=True,
    )


class DiscoveryFeedBuilder:
    """Combines viewer preferences, swipe exclusions and the candidate store."""

    def __init__(
        self,
        db: AsyncSession,
        store: CandidateStore,
        default_limit: int = DEFAULT_FEED_LIMIT,
        max_limit: int | None = None,
    ) -> None:
        self.db = db
        self.store = store
        self.default_limit = default_limit
        self.max_limit = max_limit

    async def excluded_ids(self, viewer: User) -> set[int]:
        """Viewer, viewer's blocked users and everyone the viewer already swiped on."""
        result = await self.db.execute(select(Swipe.swiped_user_id).where(Swipe.swiper_id == viewer.id))
        excluded = {row[0] for row in result.all()}
        blocked = await self.db.execute(select(UserBlock.blocked_id).where(UserBlock.user_id == viewer.id))
        excluded.update(row[0] for row in blocked.all())
        excluded.add(viewer.id)
        return excluded

    async def get_feed(self, viewer_id: int, limit: int | None = None) -> DiscoveryFeed:
        """
        Build the discovery feed for a viewer.

        Args:
            viewer_id: User requesting the feed
            limit: Maximum number of candidates (absent or non-positive means default)

        Returns:
            DiscoveryFeed with at most ``limit`` candidates

        Raises:
            NotFoundError: If the viewer does not exist
        """
        limit = normalize_limit(limit, self.default_limit, self.max_limit)

        viewer = await self.db.get(User, viewer_id)
        if viewer is None:
            raise NotFoundError("User not found")

        excluded = await self.excluded_ids(viewer)
        filters = build_candidate_filter(viewer, excluded, today())

        if viewer.latitude is not None and viewer.longitude is not None:
            query = self.store.find_candidates(
                GeoPoint(viewer.latitude, viewer.longitude), float(viewer.pref_max_distance_km), filters
            )
        else:
            query = self.store.find_candidates(None, None, filters)

        users = await query.take(limit)
        discover_feed_size.observe(len(users))
        logger.debug(f"Discovery feed built: viewer={viewer_id}, excluded={len(excluded)}, returned={len(users)}")
        return DiscoveryFeed(users=users)
