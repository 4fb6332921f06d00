from datetime import timedelta

import pytest
from sqlalchemy import delete, update

from core.clock import utcnow
from core.errors import AuthorizationError, NotFoundError, ValidationError
from models import Match, MatchStatus, User, UserBlock
from services.candidate_store import CandidateStore
from services.discovery import DiscoveryFeedBuilder
from services.match_lifecycle import MatchLifecycleManager

pytestmark = pytest.mark.anyio


async def load(sessionmaker, model, key):
    async with sessionmaker() as fresh:
        return await fresh.get(model, key)


async def test_list_matches_with_counterpart(session, make_user, form_match):
    alice = await make_user(first_name="Alice")
    bob = await make_user(first_name="Bob")
    carol = await make_user(first_name="Carol")
    older = await form_match(alice, bob)
    newer = await form_match(carol, alice)
    await session.execute(
        update(Match).where(Match.id == older.id).values(last_message_at=utcnow() - timedelta(days=1))
    )
    await session.commit()

    page = await MatchLifecycleManager(session).list_matches(alice.id)

    assert page.total == 2
    assert [view.match.id for view in page.items] == [newer.id, older.id]
    assert [view.user.first_name for view in page.items] == ["Carol", "Bob"]


async def test_list_matches_by_status_and_skips_missing_counterpart(session, make_user, form_match):
    alice = await make_user()
    bob = await make_user()
    carol = await make_user()
    await form_match(alice, bob)
    ended = await form_match(alice, carol)
    manager = MatchLifecycleManager(session)
    await manager.unmatch(ended.id, alice.id)

    assert [v.user.id for v in (await manager.list_matches(alice.id, status="unmatched")).items] == [carol.id]

    await session.execute(delete(User).where(User.id == bob.id))
    await session.commit()
    assert (await manager.list_matches(alice.id)).items == []

    with pytest.raises(ValidationError):
        await manager.list_matches(alice.id, status="pending")


async def test_get_match_for_members_only(session, sessionmaker, make_user, form_match):
    alice = await make_user()
    bob = await make_user()
    outsider = await make_user()
    match = await form_match(alice, bob)
    manager = MatchLifecycleManager(session)

    view = await manager.get_match(match.id, alice.id)
    assert view.match.id == match.id
    assert view.user.id == bob.id
    assert (await load(sessionmaker, User, bob.id)).profile_views == 1

    with pytest.raises(AuthorizationError):
        await manager.get_match(match.id, outsider.id)
    with pytest.raises(NotFoundError):
        await manager.get_match(9999, alice.id)


async def test_unmatch(session, sessionmaker, make_user, form_match):
    alice = await make_user()
    bob = await make_user()
    match = await form_match(alice, bob)
    manager = MatchLifecycleManager(session)

    ended = await manager.unmatch(match.id, bob.id, reason="  not my type  ")

    assert ended.status is MatchStatus.UNMATCHED
    assert ended.unmatched_by == bob.id
    assert ended.unmatched_at is not None
    assert ended.unmatch_reason == "not my type"
    assert (await load(sessionmaker, User, alice.id)).total_matches == 0
    assert (await load(sessionmaker, User, bob.id)).total_matches == 0

    with pytest.raises(ValidationError, match="already inactive"):
        await manager.unmatch(match.id, alice.id)
    assert (await load(sessionmaker, User, alice.id)).total_matches == 0


async def test_unmatch_rejects_outsider_and_long_reason(session, make_user, form_match):
    alice = await make_user()
    bob = await make_user()
    outsider = await make_user()
    match = await form_match(alice, bob)
    manager = MatchLifecycleManager(session)

    with pytest.raises(AuthorizationError):
        await manager.unmatch(match.id, outsider.id)
    with pytest.raises(ValidationError, match="200"):
        await manager.unmatch(match.id, alice.id, reason="x" * 201)

    assert (await manager.get_match(match.id, alice.id)).match.status is MatchStatus.ACTIVE


async def test_concurrent_unmatch_only_one_wins(session, sessionmaker, make_user, form_match):
    alice = await make_user()
    bob = await make_user()
    match = await form_match(alice, bob)

    async with sessionmaker() as other:
        stale = MatchLifecycleManager(other)
        # Load the match while still active, then let the other member end it
        await stale._load_for_member(match.id, bob.id)
        await MatchLifecycleManager(session).unmatch(match.id, alice.id)
        with pytest.raises(ValidationError, match="already inactive"):
            await stale.unmatch(match.id, bob.id)

    assert (await load(sessionmaker, User, alice.id)).total_matches == 0


async def test_block_hides_counterpart_from_discovery(session, sessionmaker, make_user, form_match):
    alice = await make_user()
    bob = await make_user()
    match = await form_match(alice, bob)

    blocked = await MatchLifecycleManager(session).block(match.id, alice.id)

    assert blocked.status is MatchStatus.BLOCKED
    assert blocked.unmatched_by == alice.id
    assert await load(sessionmaker, UserBlock, (alice.id, bob.id)) is not None

    async with sessionmaker() as fresh:
        excluded = await DiscoveryFeedBuilder(fresh, CandidateStore(fresh)).excluded_ids(await fresh.get(User, alice.id))
    assert bob.id in excluded


async def test_stats(session, make_user, form_match):
    alice = await make_user()
    bob, carol, dave, erin = [await make_user() for _ in range(4)]
    chatty = await form_match(alice, bob)
    old = await form_match(alice, carol)
    await form_match(alice, dave)
    ended = await form_match(erin, alice)
    await session.execute(update(Match).where(Match.id == chatty.id).values(has_conversation=True, message_count=4))
    await session.execute(update(Match).where(Match.id == old.id).values(matched_at=utcnow() - timedelta(days=30)))
    await session.commit()
    manager = MatchLifecycleManager(session, recent_window_days=7)
    await manager.unmatch(ended.id, alice.id)

    stats = await manager.get_stats(alice.id)

    assert stats.total_matches == 3
    assert stats.matches_with_conversation == 1
    assert stats.matches_without_conversation == 2
    assert stats.recent_matches == 2


async def test_stats_for_user_without_matches(session, make_user):
    alice = await make_user()
    stats = await MatchLifecycleManager(session).get_stats(alice.id)
    assert (stats.total_matches, stats.matches_with_conversation, stats.recent_matches) == (0, 0, 0)


async def test_record_message_updates_stats_and_order(session, sessionmaker, make_user, form_match):
    alice = await make_user()
    bob = await make_user()
    carol = await make_user()
    alice_id = alice.id
    older = await form_match(alice, bob)
    newer = await form_match(alice, carol)
    older_id, newer_id = older.id, newer.id
    await session.execute(
        update(Match).where(Match.id == older_id).values(last_message_at=utcnow() - timedelta(days=1))
    )
    await session.commit()
    manager = MatchLifecycleManager(session)

    await manager.record_message(older_id, bob.id)
    updated = await manager.record_message(older_id, alice_id)

    assert updated.has_conversation is True
    assert updated.message_count == 2
    stored = await load(sessionmaker, Match, older_id)
    assert stored.message_count == 2
    stats = await manager.get_stats(alice_id)
    assert (stats.matches_with_conversation, stats.matches_without_conversation) == (1, 1)
    page = await manager.list_matches(alice_id)
    assert [view.match.id for view in page.items] == [older_id, newer_id]


async def test_record_message_requires_member_and_active_match(session, sessionmaker, make_user, form_match):
    alice = await make_user()
    bob = await make_user()
    outsider = await make_user()
    alice_id, bob_id, outsider_id = alice.id, bob.id, outsider.id
    match = await form_match(alice, bob)
    match_id = match.id
    manager = MatchLifecycleManager(session)

    with pytest.raises(NotFoundError):
        await manager.record_message(match_id + 1000, alice_id)
    with pytest.raises(AuthorizationError):
        await manager.record_message(match_id, outsider_id)

    await manager.unmatch(match_id, bob_id)
    with pytest.raises(ValidationError):
        await manager.record_message(match_id, alice_id)

    stored = await load(sessionmaker, Match, match_id)
    assert stored.message_count == 0
    assert stored.has_conversation is False
