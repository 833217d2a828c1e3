"""Profile reads and partial updates for the current user."""

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.profile import Profile, ProfileAchievement
from app.models.user import User

logger = logging.getLogger(__name__)

USER_FIELDS = ("name", "avatar")
PROFILE_FIELDS = (
    "bio",
    "title",
    "location",
    "skills",
    "portfolio",
    "endorsements",
    "xp",
    "streak",
)


def new_profile(user_id: str) -> Profile:
    """Blank profile with every counter at its starting value."""
    return Profile(
        user_id=user_id,
        bio="",
        skills=[],
        portfolio=[],
        endorsements=[],
        xp=0,
        level=1,
        streak=0,
        achievement_progress={},
        achievements=[],
    )


def profile_query(user_id: str, for_update: bool = False) -> Select:
    """SELECT for a user's profile; ``for_update`` adds a row lock and reloads it."""
    query = select(Profile).where(Profile.user_id == user_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    return query


async def get_profile(db: AsyncSession, user_id: str, for_update: bool = False) -> Profile | None:
    result = await db.execute(profile_query(user_id, for_update))
    return result.scalar_one_or_none()


async def get_or_create_profile(
    db: AsyncSession,
    user_id: str,
    for_update: bool = False,
) -> Profile:
    """Get the user's profile, creating a blank one on first use.

    Read-modify-write callers pass ``for_update`` so concurrent writers on
    the same profile queue behind the row lock (Postgres; SQLite ignores it).
    """
    profile = await get_profile(db, user_id, for_update)
    if profile is None:
        profile = new_profile(user_id)
        db.add(profile)
        await db.flush()
        logger.info(f"Created profile for user {user_id}")
    return profile


def _achievement_from_payload(item: dict[str, Any]) -> ProfileAchievement:
    return ProfileAchievement(
        title=item["title"],
        description=item.get("description"),
        icon_url=item.get("icon_url"),
        achieved_at=item.get("achieved_at") or datetime.now(timezone.utc),
    )


async def update_profile(db: AsyncSession, user: User, changes: dict[str, Any]) -> None:
    """Apply a partial update of user and profile fields.

    ``changes`` holds only the fields the caller sent. An ``achievements`` list
    replaces the showcase list wholesale. ``level`` is recomputed from ``xp``.
    The user row, profile row and showcase list are written as separate
    statements in one commit.
    """
    from app.services.gamification import level_for_points

    for name in USER_FIELDS:
        if name in changes and changes[name] is not None:
            setattr(user, name, changes[name])

    profile_changes = {
        name: changes[name]
        for name in PROFILE_FIELDS
        if name in changes and changes[name] is not None
    }
    achievements = changes.get("achievements")

    profile = await get_profile(db, user.id)
    if profile is None and (profile_changes or achievements is not None):
        profile = new_profile(user.id)
        db.add(profile)

    if profile is not None:
        for name, value in profile_changes.items():
            setattr(profile, name, value)
        if "xp" in profile_changes:
            profile.level = level_for_points(profile.xp).level
        if achievements is not None:
            profile.achievements = [_achievement_from_payload(item) for item in achievements]

    await db.commit()


def _sort_key(achievement: ProfileAchievement) -> datetime:
    achieved_at = achievement.achieved_at or datetime.min
    if achieved_at.tzinfo is None:
        achieved_at = achieved_at.replace(tzinfo=timezone.utc)
    return achieved_at


def profile_to_dict(profile: Profile | None) -> dict[str, Any] | None:
    if profile is None:
        return None
    return {
        "id": profile.id,
        "bio": profile.bio or "",
        "title": profile.title,
        "location": profile.location,
        "skills": profile.skills or [],
        "portfolio": profile.portfolio or [],
        "endorsements": profile.endorsements or [],
        "xp": profile.xp or 0,
        "level": profile.level or 1,
        "streak": profile.streak or 0,
        "achievements": [
            {
                "id": a.id,
                "title": a.title,
                "description": a.description,
                "icon_url": a.icon_url,
                "achieved_at": a.achieved_at,
            }
            for a in sorted(profile.achievements, key=_sort_key, reverse=True)
        ],
    }


def user_to_dict(user: User) -> dict[str, Any]:
    """Composite user + profile record, never including the password hash."""
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "avatar": user.avatar,
        "profile": profile_to_dict(user.profile),
    }
