"""Database models."""

from models.enums import Gender, GenderPreference, MatchStatus, SwipeAction
from models.match import Match, canonical_pair
from models.preference import UserBlock, UserInterest
from models.swipe import Swipe
from models.user import User

__all__ = [
    "User",
    "UserInterest",
    "UserBlock",
    "Swipe",
    "Match",
    "canonical_pair",
    "Gender",
    "GenderPreference",
    "SwipeAction",
    "MatchStatus",
]
