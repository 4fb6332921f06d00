from datetime import datetime

from sqlalchemy import BigInteger, Boolean, CheckConstraint, DateTime, Enum, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from core.clock import utcnow
from core.db import Base, BigIntPK
from models.enums import MatchStatus, enum_values


def canonical_pair(user_x: int, user_y: int) -> tuple[int, int]:
    """Order-independent key for an unordered pair of users."""
    return (user_x, user_y) if user_x < user_y else (user_y, user_x)


class Match(Base):
    """Mutual-interest match between two users."""

    __tablename__ = "matches"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_a: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    user_b: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    # Ordered pair for deduplication: u_lo = min(user_a, user_b), u_hi = max(user_a, user_b)
    u_lo: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    u_hi: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    status: Mapped[MatchStatus] = mapped_column(
        Enum(MatchStatus, native_enum=False, values_callable=enum_values, length=16),
        nullable=False,
        default=MatchStatus.ACTIVE,
    )  # active, unmatched, blocked
    matched_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False, index=True)
    last_message_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    has_conversation: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    message_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    unmatched_by: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    unmatched_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    unmatch_reason: Mapped[str | None] = mapped_column(String(200), nullable=True)

    __table_args__ = (
        # Prevent self-matching (user cannot match with themselves)
        CheckConstraint("user_a <> user_b", name="chk_match_no_self"),
        # At most one ACTIVE match per unordered pair; ended matches stay as history
        Index(
            "idx_match_pair_active",
            "u_lo",
            "u_hi",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
        Index("idx_matches_status_last_message", "status", "last_message_at"),
    )

    def __repr__(self) -> str:
        return f"<Match(id={self.id}, user_a={self.user_a}, user_b={self.user_b}, status={self.status})>"
