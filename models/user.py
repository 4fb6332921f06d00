from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import JSON, Boolean, Date, DateTime, Enum, Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.clock import utcnow
from core.db import Base, BigIntPK
from models.enums import Gender, GenderPreference, enum_values

if TYPE_CHECKING:
    from models.preference import UserBlock, UserInterest


class User(Base):
    """User profile fields the swipe/match core reads, plus its aggregate counters."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    first_name: Mapped[str] = mapped_column(String(50), nullable=False)
    date_of_birth: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    gender: Mapped[Gender] = mapped_column(
        Enum(Gender, native_enum=False, values_callable=enum_values, length=16), nullable=False, index=True
    )
    bio: Mapped[str | None] = mapped_column(String(500), nullable=True)
    occupation: Mapped[str | None] = mapped_column(String(100), nullable=True)
    photos: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    interests: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    # Location (WGS84 degrees)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Discovery preferences
    pref_age_min: Mapped[int] = mapped_column(Integer, nullable=False, default=18)
    pref_age_max: Mapped[int] = mapped_column(Integer, nullable=False, default=80)
    pref_max_distance_km: Mapped[int] = mapped_column(Integer, nullable=False, default=50)
    pref_show_me: Mapped[GenderPreference] = mapped_column(
        Enum(GenderPreference, native_enum=False, values_callable=enum_values, length=16),
        nullable=False,
        default=GenderPreference.EVERYONE,
    )

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_premium: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    premium_expires_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Aggregate counters
    total_swipes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_matches: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    profile_views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    last_active: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    # Relationships
    interested_in: Mapped[list["UserInterest"]] = relationship(
        "UserInterest", back_populates="user", cascade="all, delete-orphan", lazy="selectin"
    )
    blocks: Mapped[list["UserBlock"]] = relationship(
        "UserBlock",
        foreign_keys="UserBlock.user_id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index("idx_users_active_last_active", "is_active", "last_active"),
        Index("idx_users_lat_lng", "latitude", "longitude"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, first_name={self.first_name}, active={self.is_active})>"
