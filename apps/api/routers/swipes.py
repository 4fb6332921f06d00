"""Swipe endpoints: discovery feed, swiping, history, likes and undo."""

from typing import Any

from fastapi import APIRouter, Depends, Query

from apps.api.deps import (
    get_current_user,
    get_discovery_feed,
    get_match_detector,
    get_swipe_ledger,
    require_premium,
)
from apps.api.schemas import MatchOut, SwipeIn, SwipeOut, UserCard, dump, paginated, success
from core.config import settings
from models import SwipeAction
from services.candidate_store import GeoPoint
from services.discovery import DiscoveryFeedBuilder
from services.match_detector import MatchDetector
from services.swipe_ledger import SwipeLedger
from services.user_cache import CurrentUser

router = APIRouter(prefix="/swipes", tags=["swipes"])


@router.get("/discover")
async def discover(
    limit: int | None = None,
    current_user: CurrentUser = Depends(get_current_user),
    feed: DiscoveryFeedBuilder = Depends(get_discovery_feed),
) -> dict[str, Any]:
    """Candidates the current user can swipe on."""
    result = await feed.get_feed(current_user.id, limit)
    users = [dump(UserCard.from_user(c.user, c.distance_km)) for c in result.users]
    return success("Discover users retrieved", {"users": users, "count": result.count})


@router.post("", status_code=201)
async def swipe_user(
    body: SwipeIn,
    current_user: CurrentUser = Depends(get_current_user),
    ledger: SwipeLedger = Depends(get_swipe_ledger),
    detector: MatchDetector = Depends(get_match_detector),
) -> dict[str, Any]:
    """
    Swipe on a user.

    The swipe is recorded first; like and superlike are then evaluated for a
    reciprocal positive swipe, which forms a match.
    """
    location = None
    if current_user.latitude is not None and current_user.longitude is not None:
        location = GeoPoint(current_user.latitude, current_user.longitude)

    swipe = await ledger.record_swipe(current_user.id, body.swiped_user_id, body.action, location)
    # Snapshot before evaluation, which may roll back and expire the instance
    swipe_out = SwipeOut.from_swipe(swipe)
    outcome = await detector.evaluate(swipe)

    if outcome.is_match and outcome.match is not None:
        swipe_out.is_match = True
        swipe_out.match_id = outcome.match.id

    data = {
        "swipe": dump(swipe_out),
        "isMatch": outcome.is_match,
        "match": dump(MatchOut.from_match(outcome.match)) if outcome.match is not None else None,
    }
    message = "It's a match!" if outcome.is_match else "Swipe recorded"
    return success(message, data)


@router.get("/history")
async def swipe_history(
    page: int = Query(1),
    limit: int = Query(settings.history_default_limit),
    action: SwipeAction | None = None,
    current_user: CurrentUser = Depends(get_current_user),
    ledger: SwipeLedger = Depends(get_swipe_ledger),
) -> dict[str, Any]:
    """Swipes made by the current user, newest first."""
    result = await ledger.history(current_user.id, page=page, limit=limit, action=action)
    items = [
        {
            **dump(SwipeOut.from_swipe(item.swipe)),
            "swipedUser": dump(UserCard.from_user(item.user)) if item.user is not None else None,
        }
        for item in result.items
    ]
    return paginated("Swipe history retrieved", items, result)


@router.get("/likes")
async def likes_received(
    current_user: CurrentUser = Depends(get_current_user),
    ledger: SwipeLedger = Depends(get_swipe_ledger),
) -> dict[str, Any]:
    """Users who liked the current user and are not matched with them yet."""
    likes = await ledger.likes_received(current_user.id)
    users = [{**dump(UserCard.from_user(like.user)), "action": like.swipe.action.value} for like in likes]
    return success("Users who liked you retrieved", {"users": users, "count": len(users)})


@router.post("/undo")
async def undo_swipe(
    current_user: CurrentUser = Depends(require_premium),
    ledger: SwipeLedger = Depends(get_swipe_ledger),
) -> dict[str, Any]:
    """Undo the current user's last swipe (premium)."""
    await ledger.undo_last(current_user.id)
    return success("Swipe undone successfully")
