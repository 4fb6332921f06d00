"""Closed value sets used by the swipe and match models."""

import enum


class Gender(str, enum.Enum):
    MALE = "male"
    FEMALE = "female"
    NON_BINARY = "non-binary"
    OTHER = "other"


class GenderPreference(str, enum.Enum):
    """A gender a user wants to see / is interested in, or everyone."""

    MALE = "male"
    FEMALE = "female"
    NON_BINARY = "non-binary"
    OTHER = "other"
    EVERYONE = "everyone"


class SwipeAction(str, enum.Enum):
    LIKE = "like"
    DISLIKE = "dislike"
    SUPERLIKE = "superlike"

    @property
    def forms_match(self) -> bool:
        """Like and superlike can start or complete a match; dislike never does."""
        return self in (SwipeAction.LIKE, SwipeAction.SUPERLIKE)

    @classmethod
    def positive(cls) -> tuple["SwipeAction", ...]:
        return (cls.LIKE, cls.SUPERLIKE)


class MatchStatus(str, enum.Enum):
    ACTIVE = "active"
    UNMATCHED = "unmatched"
    BLOCKED = "blocked"


def enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    """Persist enum values (not member names) in non-native enum columns."""
    return [member.value for member in enum_cls]
