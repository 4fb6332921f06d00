from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, CheckConstraint, DateTime, Enum, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.clock import utcnow
from core.db import Base
from models.enums import GenderPreference, enum_values

if TYPE_CHECKING:
    from models.user import User


class UserInterest(Base):
    """One gender a user is interested in (or everyone)."""

    __tablename__ = "user_interests"

    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    gender: Mapped[GenderPreference] = mapped_column(
        Enum(GenderPreference, native_enum=False, values_callable=enum_values, length=16), primary_key=True
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="interested_in")

    __table_args__ = (Index("idx_user_interests_gender", "gender"),)

    def __repr__(self) -> str:
        return f"<UserInterest(user_id={self.user_id}, gender={self.gender})>"


class UserBlock(Base):
    """A user hidden from another user's discovery feed."""

    __tablename__ = "user_blocks"

    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    blocked_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("user_id <> blocked_id", name="chk_block_no_self"),
        Index("idx_user_blocks_blocked_id", "blocked_id"),
    )

    def __repr__(self) -> str:
        return f"<UserBlock(user_id={self.user_id}, blocked_id={self.blocked_id})>"
