from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from glowup_tracker.dates import normalize_day_key


class HabitType(str, Enum):
    """Closed set of trackable wellness activities."""

    WATER = "water"
    EXERCISE = "exercise"
    MEDITATION = "meditation"
    READING = "reading"

    @property
    def label(self) -> str:
        if self is HabitType.WATER:
            return "Water"
        if self is HabitType.EXERCISE:
            return "Exercise"
        if self is HabitType.MEDITATION:
            return "Meditation"
        return "Reading"


class Habit(BaseModel):
    """A daily habit with a numeric target and today's progress.

    ``completed_today`` and ``xp_earned`` are caches that the reducer
    re-derives after every change; callers should not set them directly.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    type: HabitType
    target: float = Field(default=1.0, gt=0, allow_inf_nan=False)
    target_unit: str = Field(default="", alias="targetUnit")
    progress: float = Field(default=0.0, ge=0, allow_inf_nan=False)
    progress_unit: str = Field(default="", alias="progressUnit")
    streak_count: int = Field(default=0, ge=0, alias="streakCount")
    completed_today: bool = Field(default=False, alias="completedToday")
    xp_earned: int = Field(default=0, ge=0, alias="xpEarned")
    icon: str = ""
    last_completed_date: Optional[str] = Field(default=None, alias="lastCompletedDate")

    @field_validator("target", mode="before")
    @classmethod
    def _repair_missing_target(cls, value: Any) -> Any:
        # Stored documents sometimes carry 0 or null targets.
        if value is None or value == 0:
            return 1.0
        return value

    @field_validator("progress", mode="before")
    @classmethod
    def _default_progress(cls, value: Any) -> Any:
        return 0.0 if value is None else value

    @field_validator("streak_count", "xp_earned", mode="before")
    @classmethod
    def _default_counter(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("last_completed_date", mode="before")
    @classmethod
    def _normalize_completed_date(cls, value: Any) -> Any:
        return normalize_day_key(value)

    @property
    def target_met(self) -> bool:
        return self.progress >= self.target


class Badge(BaseModel):
    """Persisted part of an achievement; the unlock rule lives in ``badges``."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    icon: str = ""
    unlocked: bool = False
    unlocked_date: Optional[str] = Field(default=None, alias="unlockedDate")

    @field_validator("unlocked_date", mode="before")
    @classmethod
    def _normalize_unlocked_date(cls, value: Any) -> Any:
        return normalize_day_key(value)


class UserData(BaseModel):
    """Aggregate root persisted once per user."""

    model_config = ConfigDict(populate_by_name=True)

    habits: List[Habit] = Field(default_factory=list)
    total_xp: int = Field(default=0, ge=0, alias="totalXP")
    level: int = Field(default=1, ge=1)
    badges: List[Badge] = Field(default_factory=list)
    last_visit_date: str = Field(default="", alias="lastVisitDate")
    user_id: Optional[str] = Field(default=None, alias="userId")
    last_saved: Optional[datetime] = Field(default=None, alias="lastSaved")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    @field_validator("last_visit_date", mode="before")
    @classmethod
    def _normalize_visit_date(cls, value: Any) -> Any:
        normalized = normalize_day_key(value)
        return "" if normalized is None else normalized

    @field_validator("last_saved", "updated_at", mode="after")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # Timestamps without an offset were written as UTC.
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def habit(self, habit_id: str) -> Habit | None:
        for habit in self.habits:
            if habit.id == habit_id:
                return habit
        return None

    def to_document(self) -> dict[str, Any]:
        """Return the JSON-ready mapping stored locally and remotely."""

        return self.model_dump(mode="json", by_alias=True, exclude_none=True, exclude={"updated_at"})


class AuthUser(BaseModel):
    """Authenticated identity returned by the identity provider."""

    model_config = ConfigDict(populate_by_name=True)

    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = Field(default=None, alias="displayName")
    id_token: Optional[str] = Field(default=None, exclude=True, repr=False)
    refresh_token: Optional[str] = Field(default=None, exclude=True, repr=False)


__all__ = ["AuthUser", "Badge", "Habit", "HabitType", "UserData"]
