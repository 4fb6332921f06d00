import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("INTERNAL_AUTH_SECRET", "test-gateway-secret")
os.environ.setdefault("ENVIRONMENT", "test")

from collections import defaultdict
from datetime import timedelta

import httpx
import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from core.auth import sign_user_id
from core.clock import today, years_before
from core.db import Base, build_sessionmaker
from models import Gender, GenderPreference, SwipeAction, User, UserInterest
from services.match_detector import MatchDetector
from services.swipe_ledger import SwipeLedger

NYC = (40.7128, -74.0060)


class FakeRedis:
    """In-memory stand-in for the few redis commands the app uses."""

    def __init__(self):
        self.values = {}
        self.streams = defaultdict(list)

    async def get(self, key):
        return self.values.get(key)

    async def set(self, key, value, ex=None):
        self.values[key] = value
        return True

    async def xadd(self, name, fields):
        self.streams[name].append(dict(fields))
        return f"{len(self.streams[name])}-0"

    async def xack(self, name, group, *ids):
        return len(ids)

    async def ping(self):
        return True


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def sessionmaker(engine):
    return build_sessionmaker(engine)


@pytest.fixture
async def session(sessionmaker):
    async with sessionmaker() as session:
        yield session


@pytest.fixture
def fake_redis():
    return FakeRedis()


def birth_date_for(age):
    """Birth date of someone who turned ``age`` yesterday."""
    return years_before(today(), age) - timedelta(days=1)


@pytest.fixture
def make_user(session):
    counter = {"n": 0}

    async def _make(
        first_name=None,
        age=30,
        gender=Gender.FEMALE,
        interested_in=(GenderPreference.EVERYONE,),
        location=NYC,
        **fields,
    ):
        counter["n"] += 1
        user = User(
            first_name=first_name or f"User{counter['n']}",
            date_of_birth=birth_date_for(age),
            gender=gender,
            latitude=location[0] if location else None,
            longitude=location[1] if location else None,
            **fields,
        )
        user.interested_in = [UserInterest(gender=g) for g in interested_in]
        session.add(user)
        await session.commit()
        return user

    return _make


@pytest.fixture
def form_match(session):
    """Both users like each other; returns the resulting match."""

    async def _form(user_a, user_b):
        ledger = SwipeLedger(session)
        detector = MatchDetector(session)
        first = await ledger.record_swipe(user_a.id, user_b.id, SwipeAction.LIKE)
        await detector.evaluate(first)
        second = await ledger.record_swipe(user_b.id, user_a.id, SwipeAction.LIKE)
        outcome = await detector.evaluate(second)
        assert outcome.is_match
        return outcome.match

    return _form


def auth_headers(user_id):
    return {"X-User-Id": str(user_id), "X-Auth-Signature": sign_user_id(user_id)}


@pytest.fixture
async def client(sessionmaker, fake_redis):
    from apps.api.deps import get_db, get_redis_client
    from apps.api.main import app

    async def _get_db():
        async with sessionmaker() as session:
            yield session

    async def _get_redis():
        return fake_redis

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_redis_client] = _get_redis
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
