"""Gamification service - points, levels, achievements, and streak bookkeeping.

The engine half of this module is plain data plus a reducer: every change is
an action applied to an immutable ``GamificationState``, producing the next
state and the notifications it emitted. ``GamificationService`` loads that
state from a profile, applies actions, and writes the result back.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta, timezone
from typing import Any, Union

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.profile import Profile
from app.services.profile import get_or_create_profile

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

@dataclass(frozen=True)
class Level:
    """One row of the level table."""

    level: int
    title: str
    points_required: int
    color: str = "blue"


LEVELS: tuple[Level, ...] = (
    Level(1, "Novice", 0, "blue"),
    Level(2, "Apprentice", 100, "green"),
    Level(3, "Specialist", 300, "yellow"),
    Level(4, "Expert", 700, "purple"),
    Level(5, "Master", 1500, "red"),
)


@dataclass(frozen=True)
class AchievementDefinition:
    id: str
    title: str
    description: str
    points: int
    max_progress: int | None = None


# Progress triggers for these are declared but not wired to real events yet.
ACHIEVEMENTS: tuple[AchievementDefinition, ...] = (
    AchievementDefinition(
        "profile_complete", "Profile Perfectionist",
        "Complete your profile with all details", 50, max_progress=5,
    ),
    AchievementDefinition(
        "first_submission", "First Steps",
        "Submit your first contest entry", 30,
    ),
    AchievementDefinition(
        "contest_winner", "Winner's Circle",
        "Win your first contest", 100,
    ),
    AchievementDefinition(
        "submission_streak", "Consistency Champion",
        "Submit entries for 5 days in a row", 75, max_progress=5,
    ),
)

# How long the level-up banner stays visible unless dismissed
LEVEL_UP_DISPLAY = timedelta(seconds=5)

# Every STREAK_BONUS_INTERVAL consecutive days earns STREAK_BONUS_POINTS
STREAK_BONUS_INTERVAL = 5
STREAK_BONUS_POINTS = 15


# =============================================================================
# LEVEL CALCULATIONS
# =============================================================================

def level_for_points(points: int, levels: tuple[Level, ...] = LEVELS) -> Level:
    """Highest level whose threshold is <= points (the first level as a floor)."""
    ordered = sorted(levels, key=lambda l: l.points_required)
    current = ordered[0]
    for candidate in ordered:
        if points >= candidate.points_required:
            current = candidate
        else:
            break
    return current


def next_level(current: Level, levels: tuple[Level, ...] = LEVELS) -> Level | None:
    """The level after ``current``, or None at the top of the table."""
    higher = [l for l in levels if l.points_required > current.points_required]
    return min(higher, key=lambda l: l.points_required) if higher else None


def level_progress(points: int, levels: tuple[Level, ...] = LEVELS) -> dict[str, Any]:
    """Progress from the current level towards the next one."""
    current = level_for_points(points, levels)
    upcoming = next_level(current, levels)
    if upcoming is None:
        return {
            "current_level": current,
            "next_level": None,
            "points_to_next_level": 0,
            "progress": 1.0,
        }
    span = upcoming.points_required - current.points_required
    return {
        "current_level": current,
        "next_level": upcoming,
        "points_to_next_level": upcoming.points_required - points,
        "progress": (points - current.points_required) / span,
    }


# =============================================================================
# STATE, ACTIONS, EVENTS
# =============================================================================

@dataclass(frozen=True)
class AchievementState:
    id: str
    title: str
    description: str
    points: int
    unlocked: bool = False
    progress: int | None = None
    max_progress: int | None = None

    @classmethod
    def from_definition(cls, definition: AchievementDefinition) -> "AchievementState":
        return cls(
            id=definition.id,
            title=definition.title,
            description=definition.description,
            points=definition.points,
            progress=0 if definition.max_progress is not None else None,
            max_progress=definition.max_progress,
        )


@dataclass(frozen=True)
class GamificationState:
    points: int = 0
    level: Level = LEVELS[0]
    achievements: tuple[AchievementState, ...] = ()
    level_up_expires_at: datetime | None = None
    levels: tuple[Level, ...] = LEVELS

    def achievement(self, achievement_id: str) -> AchievementState | None:
        for achievement in self.achievements:
            if achievement.id == achievement_id:
                return achievement
        return None

    def show_level_up(self, now: datetime) -> bool:
        """True while the level-up banner is still within its display window."""
        return self.level_up_expires_at is not None and now < self.level_up_expires_at


@dataclass(frozen=True)
class AddPoints:
    amount: int
    reason: str | None = None


@dataclass(frozen=True)
class UnlockAchievement:
    achievement_id: str


@dataclass(frozen=True)
class UpdateAchievementProgress:
    achievement_id: str
    progress: int


@dataclass(frozen=True)
class DismissLevelUp:
    pass


Action = Union[AddPoints, UnlockAchievement, UpdateAchievementProgress, DismissLevelUp]


@dataclass(frozen=True)
class GamificationEvent:
    """User-visible notification emitted by a transition."""

    kind: str  # "points_awarded", "level_up", "achievement_unlocked"
    title: str
    description: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Transition:
    state: GamificationState
    events: tuple[GamificationEvent, ...] = ()

    @property
    def leveled_up(self) -> bool:
        return any(e.kind == "level_up" for e in self.events)


def initial_state(
    definitions: tuple[AchievementDefinition, ...] = ACHIEVEMENTS,
    levels: tuple[Level, ...] = LEVELS,
    points: int = 0,
) -> GamificationState:
    return GamificationState(
        points=points,
        level=level_for_points(points, levels),
        achievements=tuple(AchievementState.from_definition(d) for d in definitions),
        levels=levels,
    )


# =============================================================================
# REDUCER
# =============================================================================

def _replace_achievement(
    state: GamificationState,
    updated: AchievementState,
) -> GamificationState:
    return replace(
        state,
        achievements=tuple(updated if a.id == updated.id else a for a in state.achievements),
    )


def _add_points(
    state: GamificationState,
    amount: int,
    reason: str | None,
    now: datetime,
) -> Transition:
    events = []
    points = max(0, state.points + amount)
    new_level = level_for_points(points, state.levels)
    expires_at = state.level_up_expires_at

    if amount > 0:
        events.append(GamificationEvent(
            kind="points_awarded",
            title=f"+{amount} points earned!",
            description=reason or "Keep up the good work!",
            data={"amount": amount, "total": points},
        ))

    if new_level.level > state.level.level:
        expires_at = now + LEVEL_UP_DISPLAY
        events.append(GamificationEvent(
            kind="level_up",
            title="Level Up!",
            description=f"Congratulations! You've reached {new_level.title} level!",
            data={"level_before": state.level.level, "level_after": new_level.level},
        ))

    new_state = replace(state, points=points, level=new_level, level_up_expires_at=expires_at)
    return Transition(new_state, tuple(events))


def _unlock(state: GamificationState, achievement_id: str, now: datetime) -> Transition:
    achievement = state.achievement(achievement_id)
    if achievement is None or achievement.unlocked:
        return Transition(state)

    unlocked = replace(achievement, unlocked=True)
    if unlocked.max_progress is not None:
        unlocked = replace(unlocked, progress=unlocked.max_progress)
    state = _replace_achievement(state, unlocked)

    awarded = _add_points(
        state, achievement.points, f"Achievement unlocked: {achievement.title}", now
    )
    unlock_event = GamificationEvent(
        kind="achievement_unlocked",
        title="Achievement Unlocked!",
        description=achievement.title,
        data={"achievement_id": achievement.id, "points": achievement.points},
    )
    return Transition(awarded.state, awarded.events + (unlock_event,))


def _update_progress(
    state: GamificationState,
    achievement_id: str,
    progress: int,
    now: datetime,
) -> Transition:
    achievement = state.achievement(achievement_id)
    if achievement is None or achievement.unlocked:
        # Progress is frozen once unlocked
        return Transition(state)

    clamped = max(0, progress)
    if achievement.max_progress is not None:
        clamped = min(clamped, achievement.max_progress)
        if clamped >= achievement.max_progress:
            return _unlock(state, achievement_id, now)

    return Transition(_replace_achievement(state, replace(achievement, progress=clamped)))


def reduce(state: GamificationState, action: Action, now: datetime | None = None) -> Transition:
    """Apply one action and return the next state with the notifications it emitted."""
    now = now or datetime.now(timezone.utc)

    if isinstance(action, AddPoints):
        return _add_points(state, action.amount, action.reason, now)
    if isinstance(action, UnlockAchievement):
        return _unlock(state, action.achievement_id, now)
    if isinstance(action, UpdateAchievementProgress):
        return _update_progress(state, action.achievement_id, action.progress, now)
    if isinstance(action, DismissLevelUp):
        return Transition(replace(state, level_up_expires_at=None))
    raise TypeError(f"Unknown gamification action: {type(action).__name__}")


class GamificationStore:
    """Mutable holder around the reducer, keeping the notification history."""

    def __init__(self, state: GamificationState | None = None):
        self.state = state or initial_state()
        self.notifications: list[GamificationEvent] = []

    def dispatch(self, action: Action, now: datetime | None = None) -> Transition:
        transition = reduce(self.state, action, now)
        self.state = transition.state
        self.notifications.extend(transition.events)
        return transition

    def add_points(self, amount: int, reason: str | None = None, now: datetime | None = None) -> Transition:
        return self.dispatch(AddPoints(amount, reason), now)

    def unlock_achievement(self, achievement_id: str, now: datetime | None = None) -> Transition:
        return self.dispatch(UnlockAchievement(achievement_id), now)

    def update_achievement_progress(
        self,
        achievement_id: str,
        progress: int,
        now: datetime | None = None,
    ) -> Transition:
        return self.dispatch(UpdateAchievementProgress(achievement_id, progress), now)

    def dismiss_level_up(self) -> Transition:
        return self.dispatch(DismissLevelUp())


# =============================================================================
# STREAKS
# =============================================================================

def next_streak(current: int, last_active_on: date | None, today: date) -> int:
    """Consecutive-day counter: +1 after yesterday, unchanged today, reset otherwise."""
    if last_active_on == today:
        return max(current, 1)
    if last_active_on is not None and (today - last_active_on).days == 1:
        return current + 1
    return 1


# =============================================================================
# GAMIFICATION SERVICE
# =============================================================================

def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands timestamps back naive
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def state_from_profile(profile: Profile) -> GamificationState:
    stored = profile.achievement_progress or {}
    achievements = []
    for definition in ACHIEVEMENTS:
        achievement = AchievementState.from_definition(definition)
        saved = stored.get(definition.id)
        if saved:
            achievement = replace(
                achievement,
                unlocked=bool(saved.get("unlocked", False)),
                progress=saved.get("progress", achievement.progress),
            )
        achievements.append(achievement)

    points = profile.xp or 0
    return GamificationState(
        points=points,
        level=level_for_points(points),
        achievements=tuple(achievements),
        level_up_expires_at=_as_utc(profile.level_up_expires_at),
    )


def apply_state_to_profile(profile: Profile, state: GamificationState) -> None:
    profile.xp = state.points
    profile.level = state.level.level
    profile.level_up_expires_at = state.level_up_expires_at
    profile.achievement_progress = {
        a.id: {"progress": a.progress, "unlocked": a.unlocked}
        for a in state.achievements
    }


def event_to_dict(event: GamificationEvent) -> dict[str, Any]:
    return {
        "kind": event.kind,
        "title": event.title,
        "description": event.description,
        "data": event.data,
    }


def level_to_dict(level: Level | None) -> dict[str, Any] | None:
    if level is None:
        return None
    return {
        "level": level.level,
        "title": level.title,
        "points_required": level.points_required,
        "color": level.color,
    }


class GamificationService:
    """Loads gamification state from a profile, applies actions, and stores the result."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def dispatch(
        self,
        user_id: str,
        action: Action,
        now: datetime | None = None,
    ) -> tuple[Profile, Transition]:
        profile = await get_or_create_profile(self.db, user_id, for_update=True)
        transition = reduce(state_from_profile(profile), action, now)
        apply_state_to_profile(profile, transition.state)
        await self.db.flush()

        if transition.leveled_up:
            logger.info(f"User {user_id} reached level {transition.state.level.level}")
        return profile, transition

    async def record_visit(
        self,
        user_id: str,
        today: date | None = None,
        now: datetime | None = None,
    ) -> Transition | None:
        """Update the daily streak; every fifth consecutive day pays a bonus."""
        now = now or datetime.now(timezone.utc)
        today = today or now.date()

        profile = await get_or_create_profile(self.db, user_id, for_update=True)
        if profile.last_active_on == today:
            return None

        profile.streak = next_streak(profile.streak or 0, profile.last_active_on, today)
        profile.last_active_on = today

        transition = None
        if profile.streak % STREAK_BONUS_INTERVAL == 0:
            transition = reduce(
                state_from_profile(profile),
                AddPoints(STREAK_BONUS_POINTS, "Daily login streak bonus"),
                now,
            )
            apply_state_to_profile(profile, transition.state)

        await self.db.flush()
        return transition

    async def get_progress(self, user_id: str, now: datetime | None = None) -> dict[str, Any]:
        """Current points, level, achievements and banner state for a user."""
        now = now or datetime.now(timezone.utc)
        profile = await get_or_create_profile(self.db, user_id)
        state = state_from_profile(profile)
        progress = level_progress(state.points)

        return {
            "points": state.points,
            "level": level_to_dict(state.level),
            "next_level": level_to_dict(progress["next_level"]),
            "points_to_next_level": progress["points_to_next_level"],
            "level_progress": progress["progress"],
            "streak": profile.streak or 0,
            "show_level_up": state.show_level_up(now),
            "level_up_expires_at": state.level_up_expires_at.isoformat() if state.level_up_expires_at else None,
            "achievements": [
                {
                    "id": a.id,
                    "title": a.title,
                    "description": a.description,
                    "points": a.points,
                    "unlocked": a.unlocked,
                    "progress": a.progress,
                    "max_progress": a.max_progress,
                }
                for a in state.achievements
            ],
        }
