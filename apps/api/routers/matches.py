"""Match endpoints: listing, detail, statistics, unmatch and block."""

from typing import Any

from fastapi import APIRouter, Body, Depends, Query

from apps.api.deps import get_current_user, get_match_lifecycle
from apps.api.schemas import MatchOut, UnmatchIn, UserCard, dump, paginated, success
from core.config import settings
from models import MatchStatus
from services.match_lifecycle import MatchLifecycleManager, MatchView
from services.user_cache import CurrentUser

router = APIRouter(prefix="/matches", tags=["matches"])


def _view(view: MatchView) -> dict[str, Any]:
    return {
        **dump(MatchOut.from_match(view.match)),
        "user": dump(UserCard.from_user(view.user)) if view.user is not None else None,
    }


@router.get("")
async def list_matches(
    status: MatchStatus = MatchStatus.ACTIVE,
    page: int = Query(1),
    limit: int = Query(settings.history_default_limit),
    current_user: CurrentUser = Depends(get_current_user),
    lifecycle: MatchLifecycleManager = Depends(get_match_lifecycle),
) -> dict[str, Any]:
    """Current user's matches, most recent conversation first."""
    result = await lifecycle.list_matches(current_user.id, status=status, page=page, limit=limit)
    return paginated("Matches retrieved successfully", [_view(v) for v in result.items], result)


@router.get("/stats")
async def match_stats(
    current_user: CurrentUser = Depends(get_current_user),
    lifecycle: MatchLifecycleManager = Depends(get_match_lifecycle),
) -> dict[str, Any]:
    stats = await lifecycle.get_stats(current_user.id)
    return success(
        "Match statistics retrieved",
        {
            "stats": {
                "totalMatches": stats.total_matches,
                "matchesWithConversation": stats.matches_with_conversation,
                "matchesWithoutConversation": stats.matches_without_conversation,
                "recentMatches": stats.recent_matches,
            }
        },
    )


@router.get("/{match_id}")
async def get_match(
    match_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    lifecycle: MatchLifecycleManager = Depends(get_match_lifecycle),
) -> dict[str, Any]:
    view = await lifecycle.get_match(match_id, current_user.id)
    return success("Match details retrieved", {"match": _view(view)})


@router.delete("/{match_id}")
async def unmatch(
    match_id: int,
    body: UnmatchIn | None = Body(default=None),
    current_user: CurrentUser = Depends(get_current_user),
    lifecycle: MatchLifecycleManager = Depends(get_match_lifecycle),
) -> dict[str, Any]:
    """End an active match; the optional reason is kept for moderation."""
    reason = body.reason if body is not None else None
    await lifecycle.unmatch(match_id, current_user.id, reason)
    return success("Unmatched successfully")


@router.post("/{match_id}/block")
async def block_match(
    match_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    lifecycle: MatchLifecycleManager = Depends(get_match_lifecycle),
) -> dict[str, Any]:
    """End an active match as blocked and hide the other user from discovery."""
    await lifecycle.block(match_id, current_user.id)
    return success("User blocked")
