"""Gamification API endpoints for points, levels, and achievements."""

import logging
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.auth import get_current_user
from app.core.database import get_db
from app.core.errors import NotFoundError
from app.models.user import User
from app.services.gamification import (
    ACHIEVEMENTS,
    LEVELS,
    Action,
    AddPoints,
    DismissLevelUp,
    GamificationService,
    UnlockAchievement,
    UpdateAchievementProgress,
    event_to_dict,
    level_to_dict,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/gamification", tags=["gamification"])


# =============================================================================
# SCHEMAS
# =============================================================================

class LevelResponse(BaseModel):
    level: int
    title: str
    points_required: int
    color: str


class AchievementProgressResponse(BaseModel):
    id: str
    title: str
    description: str
    points: int
    unlocked: bool
    progress: int | None
    max_progress: int | None


class GamificationProgressResponse(BaseModel):
    """Full gamification progress response."""
    points: int
    level: LevelResponse
    next_level: LevelResponse | None
    points_to_next_level: int
    level_progress: float
    streak: int
    show_level_up: bool
    level_up_expires_at: str | None
    achievements: list[AchievementProgressResponse]


class NotificationResponse(BaseModel):
    kind: str
    title: str
    description: str
    data: dict[str, Any]


class TransitionResponse(BaseModel):
    """Progress after an action, plus the notifications it emitted."""
    progress: GamificationProgressResponse
    notifications: list[NotificationResponse]
    leveled_up: bool


class AddPointsRequest(BaseModel):
    amount: int
    reason: str | None = Field(default=None, max_length=255)


class ProgressRequest(BaseModel):
    progress: int


# =============================================================================
# HELPERS
# =============================================================================

_ACHIEVEMENT_IDS = {a.id for a in ACHIEVEMENTS}


def _require_known_achievement(achievement_id: str) -> None:
    if achievement_id not in _ACHIEVEMENT_IDS:
        raise NotFoundError(f"Unknown achievement: {achievement_id}")


async def _apply(db: AsyncSession, user: User, action: Action) -> dict[str, Any]:
    service = GamificationService(db)
    _, transition = await service.dispatch(user.id, action)
    await db.commit()
    return {
        "progress": await service.get_progress(user.id),
        "notifications": [event_to_dict(e) for e in transition.events],
        "leveled_up": transition.leveled_up,
    }


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("/progress", response_model=GamificationProgressResponse)
async def get_progress(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Get the current user's points, level, streak and achievements."""
    service = GamificationService(db)
    progress = await service.get_progress(current_user.id)
    await db.commit()
    return progress


@router.post("/points", response_model=TransitionResponse)
async def add_points(
    request: AddPointsRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Award (or deduct) points; a level change is reported in the notifications."""
    return await _apply(db, current_user, AddPoints(request.amount, request.reason))


@router.post("/achievements/{achievement_id}/unlock", response_model=TransitionResponse)
async def unlock_achievement(
    achievement_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Unlock an achievement. Repeated calls never award its points twice."""
    _require_known_achievement(achievement_id)
    return await _apply(db, current_user, UnlockAchievement(achievement_id))


@router.post("/achievements/{achievement_id}/progress", response_model=TransitionResponse)
async def update_achievement_progress(
    achievement_id: str,
    request: ProgressRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Record progress; reaching the maximum unlocks the achievement."""
    _require_known_achievement(achievement_id)
    return await _apply(
        db, current_user, UpdateAchievementProgress(achievement_id, request.progress)
    )


@router.post("/level-up/dismiss", response_model=TransitionResponse)
async def dismiss_level_up(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Acknowledge the level-up banner."""
    return await _apply(db, current_user, DismissLevelUp())


@router.get("/levels", response_model=list[LevelResponse])
async def get_levels() -> list[dict[str, Any]]:
    """The level table, lowest first."""
    return [level_to_dict(level) for level in LEVELS]
