"""Request and response shapes for the swipe and match endpoints."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from core.clock import age_on, today
from models import Match, MatchStatus, Swipe, SwipeAction, User
from services.pagination import Page


class CamelModel(BaseModel):  # type: ignore[misc]
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SwipeIn(CamelModel):
    """Request to swipe on a user."""

    swiped_user_id: int
    action: SwipeAction

    @field_validator("action", mode="before")
    @classmethod
    def _check_action(cls, value: Any) -> Any:
        if not isinstance(value, str) or value not in {a.value for a in SwipeAction}:
            raise ValueError("Invalid action. Must be like, dislike, or superlike")
        return value


class UnmatchIn(CamelModel):
    """Optional unmatch reason."""

    reason: str | None = Field(default=None, max_length=200)


class UserCard(CamelModel):
    id: int
    first_name: str
    age: int
    photos: list[str] = Field(default_factory=list)
    bio: str | None = None
    occupation: str | None = None
    interests: list[str] = Field(default_factory=list)
    city: str | None = None
    country: str | None = None
    distance_km: float | None = None

    @classmethod
    def from_user(cls, user: User, distance_km: float | None = None) -> "UserCard":
        return cls(
            id=user.id,
            first_name=user.first_name,
            age=age_on(user.date_of_birth, today()),
            photos=list(user.photos or []),
            bio=user.bio,
            occupation=user.occupation,
            interests=list(user.interests or []),
            city=user.city,
            country=user.country,
            distance_km=distance_km,
        )


class SwipeOut(CamelModel):
    id: int
    swiper_id: int
    swiped_user_id: int
    action: SwipeAction
    is_match: bool
    match_id: int | None = None
    swiped_at: datetime

    @classmethod
    def from_swipe(cls, swipe: Swipe) -> "SwipeOut":
        return cls(
            id=swipe.id,
            swiper_id=swipe.swiper_id,
            swiped_user_id=swipe.swiped_user_id,
            action=swipe.action,
            is_match=swipe.is_match,
            match_id=swipe.match_id,
            swiped_at=swipe.swiped_at,
        )


class MatchOut(CamelModel):
    id: int
    users: list[int]
    status: MatchStatus
    matched_at: datetime
    last_message_at: datetime
    has_conversation: bool
    message_count: int
    unmatched_by: int | None = None
    unmatched_at: datetime | None = None
    unmatch_reason: str | None = None

    @classmethod
    def from_match(cls, match: Match) -> "MatchOut":
        return cls(
            id=match.id,
            users=[match.user_a, match.user_b],
            status=match.status,
            matched_at=match.matched_at,
            last_message_at=match.last_message_at,
            has_conversation=match.has_conversation,
            message_count=match.message_count,
            unmatched_by=match.unmatched_by,
            unmatched_at=match.unmatched_at,
            unmatch_reason=match.unmatch_reason,
        )


def dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(by_alias=True, mode="json")


def success(message: str, data: Any = None) -> dict[str, Any]:
    return {"success": True, "message": message, "data": data}


def paginated(message: str, data: list[Any], page: Page[Any]) -> dict[str, Any]:
    return {
        "success": True,
        "message": message,
        "data": data,
        "pagination": {
            "page": page.page,
            "limit": page.limit,
            "total": page.total,
            "totalPages": page.total_pages,
            "hasNextPage": page.has_next_page,
            "hasPrevPage": page.has_prev_page,
        },
    }
