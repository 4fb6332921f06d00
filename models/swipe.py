from datetime import datetime

from sqlalchemy import BigInteger, Boolean, CheckConstraint, DateTime, Enum, Float, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from core.clock import utcnow
from core.db import Base, BigIntPK
from models.enums import SwipeAction, enum_values


class Swipe(Base):
    """One user's directed action toward another. At most one row per ordered pair."""

    __tablename__ = "swipes"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    swiper_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    swiped_user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    action: Mapped[SwipeAction] = mapped_column(
        Enum(SwipeAction, native_enum=False, values_callable=enum_values, length=16), nullable=False
    )
    # Set at most once, when this swipe helps form a match
    is_match: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    match_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("matches.id", ondelete="SET NULL"), nullable=True
    )
    swiped_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False, index=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)

    __table_args__ = (
        UniqueConstraint("swiper_id", "swiped_user_id", name="uq_swipe_pair"),
        CheckConstraint("swiper_id <> swiped_user_id", name="chk_swipe_no_self"),
        Index("idx_swipes_swiper_action_at", "swiper_id", "action", "swiped_at"),
        Index("idx_swipes_swiped_action_at", "swiped_user_id", "action", "swiped_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Swipe(id={self.id}, swiper={self.swiper_id}, swiped={self.swiped_user_id}, "
            f"action={self.action}, is_match={self.is_match})>"
        )
