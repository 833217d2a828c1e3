"""Profile extension of a user: bio, showcase lists, and gamification counters."""

from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, Date, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, new_id

if TYPE_CHECKING:
    from app.models.user import User


class Profile(Base):
    """One-to-one profile, created lazily on the first profile write."""

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        index=True,
    )

    bio: Mapped[str] = mapped_column(Text, default="")
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Ordered lists of strings or objects, stored as given
    skills: Mapped[list[Any]] = mapped_column(JSON, default=list)
    portfolio: Mapped[list[Any]] = mapped_column(JSON, default=list)
    endorsements: Mapped[list[Any]] = mapped_column(JSON, default=list)

    # Gamification: xp is the points total, level is always derived from it
    xp: Mapped[int] = mapped_column(Integer, default=0)
    level: Mapped[int] = mapped_column(Integer, default=1)
    streak: Mapped[int] = mapped_column(Integer, default=0)
    last_active_on: Mapped[date | None] = mapped_column(Date, nullable=True)
    # achievement id -> {"progress": int, "unlocked": bool}
    achievement_progress: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    level_up_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="profile")
    achievements: Mapped[list["ProfileAchievement"]] = relationship(
        "ProfileAchievement",
        back_populates="profile",
        cascade="all, delete-orphan",
        order_by="ProfileAchievement.achieved_at.desc()",
        lazy="selectin",
    )


class ProfileAchievement(Base):
    """Showcase achievement displayed on a profile."""

    __tablename__ = "profile_achievements"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    profile_id: Mapped[str] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"),
        index=True,
    )
    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    icon_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    achieved_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    profile: Mapped["Profile"] = relationship("Profile", back_populates="achievements")
