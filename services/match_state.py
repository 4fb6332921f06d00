"""Legal match state transitions.

active -> unmatched (unmatch), active -> blocked (block). Unmatched and blocked
are terminal.
"""

import enum

from core.errors import ValidationError
from models import MatchStatus


class MatchAction(str, enum.Enum):
    UNMATCH = "unmatch"
    BLOCK = "block"


_TRANSITIONS: dict[tuple[MatchStatus, MatchAction], MatchStatus] = {
    (MatchStatus.ACTIVE, MatchAction.UNMATCH): MatchStatus.UNMATCHED,
    (MatchStatus.ACTIVE, MatchAction.BLOCK): MatchStatus.BLOCKED,
}


def transition_match(current: MatchStatus, action: MatchAction) -> MatchStatus:
    try:
        return _TRANSITIONS[(MatchStatus(current), action)]
    except KeyError:
        raise ValidationError("Match is already inactive") from None
