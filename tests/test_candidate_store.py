import math
from datetime import timedelta

import pytest
from conftest import NYC, birth_date_for

from core.clock import utcnow
from models import Gender, GenderPreference
from services.candidate_store import EARTH_RADIUS_KM, CandidateFilter, CandidateStore, GeoPoint, haversine_km

pytestmark = pytest.mark.anyio

ORIGIN = GeoPoint(*NYC)
KM_PER_DEGREE = 111.195


def north_of(point, km):
    return (point.latitude + km / KM_PER_DEGREE, point.longitude)


def destination(point, km, bearing_deg):
    """Point reached travelling ``km`` along a great circle from ``point``."""
    lat1 = math.radians(point.latitude)
    lng1 = math.radians(point.longitude)
    bearing = math.radians(bearing_deg)
    delta = km / EARTH_RADIUS_KM
    lat2 = math.asin(math.sin(lat1) * math.cos(delta) + math.cos(lat1) * math.sin(delta) * math.cos(bearing))
    lng2 = lng1 + math.atan2(
        math.sin(bearing) * math.sin(delta) * math.cos(lat1), math.cos(delta) - math.sin(lat1) * math.sin(lat2)
    )
    return (math.degrees(lat2), math.degrees(lng2))


def ids(candidates):
    return [c.user.id for c in candidates]


def test_haversine_known_distances():
    los_angeles = GeoPoint(34.0522, -118.2437)
    assert haversine_km(ORIGIN, ORIGIN) == 0
    assert haversine_km(ORIGIN, los_angeles) == pytest.approx(3936, abs=10)
    assert haversine_km(GeoPoint(0, 0), GeoPoint(1, 0)) == pytest.approx(KM_PER_DEGREE, abs=0.1)


async def test_distance_limit_includes_40km_excludes_60km(session, make_user):
    near = await make_user(location=north_of(ORIGIN, 40))
    far = await make_user(location=north_of(ORIGIN, 60))

    found = await CandidateStore(session).find_candidates(ORIGIN, 50, CandidateFilter()).take(10)

    assert ids(found) == [near.id]
    assert far.id not in ids(found)
    assert found[0].distance_km == pytest.approx(40, abs=0.5)


async def test_candidate_just_inside_radius_is_found(session, make_user):
    inside = await make_user(location=(ORIGIN.latitude + math.degrees(49.97 / EARTH_RADIUS_KM), ORIGIN.longitude))

    found = await CandidateStore(session).find_candidates(ORIGIN, 50, CandidateFilter()).take(10)

    assert ids(found) == [inside.id]
    assert found[0].distance_km == pytest.approx(49.97, abs=0.001)


async def test_radius_edge_found_in_every_direction_at_high_latitude(session, make_user):
    origin = GeoPoint(60.0, 10.0)
    edge = [await make_user(location=destination(origin, 49.9, bearing)) for bearing in range(0, 360, 30)]
    outside = await make_user(location=destination(origin, 50.5, 90))

    found = await CandidateStore(session).find_candidates(origin, 50, CandidateFilter()).take(50)

    assert sorted(ids(found)) == sorted(u.id for u in edge)
    assert outside.id not in ids(found)


async def test_distance_results_nearest_first(session, make_user):
    mid = await make_user(location=north_of(ORIGIN, 20))
    close = await make_user(location=north_of(ORIGIN, 5))
    edge = await make_user(location=north_of(ORIGIN, 45))

    found = await CandidateStore(session).find_candidates(ORIGIN, 50, CandidateFilter()).take(10)

    assert ids(found) == [close.id, mid.id, edge.id]


async def test_distance_across_antimeridian(session, make_user):
    east = GeoPoint(0.0, 179.9)
    neighbour = await make_user(location=(0.0, -179.9))

    found = await CandidateStore(session).find_candidates(east, 50, CandidateFilter()).take(10)

    assert ids(found) == [neighbour.id]
    assert found[0].distance_km == pytest.approx(22.2, abs=0.5)


async def test_distance_query_skips_users_without_location(session, make_user):
    await make_user(location=None)
    located = await make_user()

    found = await CandidateStore(session).find_candidates(ORIGIN, 50, CandidateFilter()).take(10)

    assert ids(found) == [located.id]


async def test_attribute_filters(session, make_user):
    match = await make_user(gender=Gender.FEMALE, interested_in=(GenderPreference.MALE,))
    await make_user(gender=Gender.MALE, interested_in=(GenderPreference.MALE,))
    await make_user(gender=Gender.FEMALE, interested_in=(GenderPreference.FEMALE,))
    await make_user(gender=Gender.FEMALE, interested_in=(GenderPreference.EVERYONE,), is_active=False)
    excluded = await make_user(gender=Gender.FEMALE, interested_in=(GenderPreference.EVERYONE,))
    too_old = await make_user(gender=Gender.FEMALE, interested_in=(GenderPreference.EVERYONE,), age=50)

    filters = CandidateFilter(
        exclude_ids=frozenset({excluded.id}),
        gender=Gender.FEMALE,
        interested_in_any=(GenderPreference.MALE, GenderPreference.EVERYONE),
        min_birth_date=birth_date_for(40),
        max_birth_date=birth_date_for(20),
    )
    found = await CandidateStore(session).find_candidates(None, None, filters).take(10)

    assert ids(found) == [match.id]
    assert too_old.id not in ids(found)


async def test_attribute_only_query_orders_by_recent_activity(session, make_user):
    stale = await make_user(last_active=utcnow() - timedelta(days=3))
    fresh = await make_user(last_active=utcnow())

    found = await CandidateStore(session).find_candidates(None, None, CandidateFilter()).take(10)

    assert ids(found) == [fresh.id, stale.id]
    assert all(c.distance_km is None for c in found)


async def test_query_is_restartable_and_reflects_new_rows(session, make_user):
    first = await make_user()
    query = CandidateStore(session, batch_size=1).find_candidates(ORIGIN, 50, CandidateFilter())

    assert [c.user.id async for c in query] == [first.id]

    second = await make_user(location=north_of(ORIGIN, 10))
    assert sorted([c.user.id async for c in query]) == sorted([first.id, second.id])


async def test_take_stops_at_limit(session, make_user):
    for _ in range(5):
        await make_user()

    query = CandidateStore(session, batch_size=2).find_candidates(None, None, CandidateFilter())

    assert len(await query.take(3)) == 3
    assert await query.take(0) == []
