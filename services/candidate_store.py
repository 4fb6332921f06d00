"""Read-only candidate queries over the user population.

Attribute filters and a latitude/longitude bounding box run in SQL; the exact
great-circle distance is applied in Python so the same store works on any
backend without a geospatial extension.
"""

import math
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from datetime import date

from sqlalchemy import Select, and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from models import Gender, GenderPreference, User, UserInterest

EARTH_RADIUS_KM = 6371.0088
KM_PER_DEGREE_LAT = math.radians(1) * EARTH_RADIUS_KM
# Widens the prefilter slightly; haversine does the exact cut
BOX_MARGIN_KM = 0.01


@dataclass(frozen=True)
class GeoPoint:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class CandidateFilter:
    """Compound attribute filter applied to every candidate query."""

    exclude_ids: frozenset[int] = frozenset()
    gender: Gender | None = None
    # Candidate's interested-in set must contain at least one of these
    interested_in_any: tuple[GenderPreference, ...] = ()
    min_birth_date: date | None = None
    max_birth_date: date | None = None
    active_only: bool = True


@dataclass(frozen=True)
class Candidate:
    user: User
    distance_km: float | None = None


def haversine_km(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two points in kilometres."""
    lat1, lon1, lat2, lon2 = map(math.radians, (a.latitude, a.longitude, b.latitude, b.longitude))
    h = math.sin((lat2 - lat1) / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin((lon2 - lon1) / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(h)))


def _bounding_box_clause(origin: GeoPoint, radius_km: float):
    """SQL prefilter that contains every point within ``radius_km`` of ``origin``."""
    radius_km += BOX_MARGIN_KM
    dlat = radius_km / KM_PER_DEGREE_LAT
    min_lat = max(-90.0, origin.latitude - dlat)
    max_lat = min(90.0, origin.latitude + dlat)
    clauses = [User.latitude.between(min_lat, max_lat)]

    cos_lat = math.cos(math.radians(origin.latitude))
    if min_lat <= -90.0 or max_lat >= 90.0 or cos_lat < 1e-6:
        # Box touches a pole: every longitude qualifies
        return and_(*clauses)

    # Widest longitude span of the circle, which lies away from the origin latitude
    ratio = math.sin(radius_km / EARTH_RADIUS_KM) / cos_lat
    if ratio >= 1.0:
        return and_(*clauses)
    dlng = math.degrees(math.asin(ratio))

    min_lng = origin.longitude - dlng
    max_lng = origin.longitude + dlng
    if min_lng < -180.0:
        clauses.append(or_(User.longitude >= min_lng + 360.0, User.longitude <= max_lng))
    elif max_lng > 180.0:
        clauses.append(or_(User.longitude >= min_lng, User.longitude <= max_lng - 360.0))
    else:
        clauses.append(User.longitude.between(min_lng, max_lng))
    return and_(*clauses)


class CandidateQuery:
    """
    Lazy, finite, restartable sequence of candidates.

    Every ``async for`` re-executes the query, so iterating twice reflects the
    store at the time of each iteration. Distance queries yield nearest first,
    but only after every row in the bounding box has been read; attribute-only
    queries stream the most recently active users first, batch by batch.
    """

    def __init__(
        self,
        db: AsyncSession,
        statement: Select[tuple[User]],
        origin: GeoPoint | None = None,
        max_distance_km: float | None = None,
        batch_size: int = 200,
    ) -> None:
        self._db = db
        self._statement = statement
        self._origin = origin
        self._max_distance_km = max_distance_km
        self._batch_size = batch_size

    def __aiter__(self) -> AsyncIterator[Candidate]:
        if self._origin is None:
            return self._iter_by_recency()
        return self._iter_by_distance()

    async def take(self, limit: int) -> list[Candidate]:
        """Collect at most ``limit`` candidates, stopping the scan early."""
        out: list[Candidate] = []
        if limit <= 0:
            return out
        async for candidate in self:
            out.append(candidate)
            if len(out) >= limit:
                break
        return out

    async def _batches(self, statement: Select[tuple[User]]) -> AsyncIterator[list[User]]:
        offset = 0
        while True:
            result = await self._db.execute(statement.offset(offset).limit(self._batch_size))
            users = list(result.scalars().all())
            if not users:
                return
            yield users
            if len(users) < self._batch_size:
                return
            offset += self._batch_size

    async def _iter_by_recency(self) -> AsyncIterator[Candidate]:
        statement = self._statement.order_by(User.last_active.desc(), User.id.desc())
        async for users in self._batches(statement):
            for user in users:
                yield Candidate(user=user)

    async def _iter_by_distance(self) -> AsyncIterator[Candidate]:
        """
        Yield in-radius candidates nearest first.

        Ordering needs every distance, so all rows inside the bounding box are read
        (in batches) before the first yield. The recency path streams instead.
        """
        assert self._origin is not None
        origin = self._origin
        statement = self._statement.where(User.latitude.is_not(None), User.longitude.is_not(None))
        if self._max_distance_km is not None:
            statement = statement.where(_bounding_box_clause(origin, self._max_distance_km))
        statement = statement.order_by(User.id)

        within: list[Candidate] = []
        async for users in self._batches(statement):
            for user in users:
                distance = haversine_km(origin, GeoPoint(user.latitude, user.longitude))
                if self._max_distance_km is None or distance <= self._max_distance_km:
                    within.append(Candidate(user=user, distance_km=round(distance, 2)))

        within.sort(key=lambda c: (c.distance_km, c.user.id))
        for candidate in within:
            yield candidate


@dataclass
class CandidateStore:
    """Query surface over users; swap this class to change the geospatial index."""

    db: AsyncSession
    batch_size: int = field(default=200)

    def find_candidates(
        self,
        origin: GeoPoint | None,
        max_distance_km: float | None,
        filters: CandidateFilter,
    ) -> CandidateQuery:
        """
        Build a candidate query.

        Args:
            origin: Point to measure distance from; None for attribute-only search
            max_distance_km: Radius limit, ignored without an origin
            filters: Attribute filters

        Returns:
            Lazy, restartable candidate sequence
        """
        statement = select(User)
        if filters.active_only:
            statement = statement.where(User.is_active.is_(True))
        if filters.exclude_ids:
            statement = statement.where(User.id.not_in(sorted(filters.exclude_ids)))
        if filters.gender is not None:
            statement = statement.where(User.gender == filters.gender)
        if filters.interested_in_any:
            statement = statement.where(
                User.id.in_(
                    select(UserInterest.user_id).where(UserInterest.gender.in_(list(filters.interested_in_any)))
                )
            )
        if filters.min_birth_date is not None:
            statement = statement.where(User.date_of_birth >= filters.min_birth_date)
        if filters.max_birth_date is not None:
            statement = statement.where(User.date_of_birth <= filters.max_birth_date)

        return CandidateQuery(
            self.db,
            statement,
            origin=origin,
            max_distance_km=max_distance_km if origin is not None else None,
            batch_size=self.batch_size,
        )
