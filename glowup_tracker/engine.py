from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from numbers import Real
from typing import Dict, Tuple

from glowup_tracker.badges import evaluate_badges
from glowup_tracker.dates import day_key
from glowup_tracker.leveling import level_of
from glowup_tracker.models import Badge, Habit, HabitType, UserData
from glowup_tracker.xp import XpMode, xp_for

LOGGER = logging.getLogger(__name__)

QUICK_ADD_AMOUNTS: Dict[HabitType, Tuple[float, ...]] = {
    HabitType.WATER: (0.25, 0.5, 1, 2),
    HabitType.EXERCISE: (15, 30, 60, 120),
    HabitType.MEDITATION: (15, 30, 60, 120),
    HabitType.READING: (15, 30, 60, 120),
}


class InvalidInputError(ValueError):
    """Raised when a progress or target value is not a usable amount."""


@dataclass(frozen=True)
class UpdateResult:
    state: UserData
    newly_unlocked: list[Badge] = field(default_factory=list)


def _validated_amount(value: object, *, name: str, allow_zero: bool = True) -> float:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidInputError(f"{name} must be a number, got {value!r}.")
    amount = float(value)
    if not math.isfinite(amount):
        raise InvalidInputError(f"{name} must be finite, got {value!r}.")
    if amount < 0 or (amount == 0 and not allow_zero):
        qualifier = "non-negative" if allow_zero else "positive"
        raise InvalidInputError(f"{name} must be {qualifier}, got {value!r}.")
    return amount


def _refresh_habit(habit: Habit, mode: XpMode) -> Habit:
    return habit.model_copy(update={"completed_today": habit.target_met, "xp_earned": xp_for(habit, mode)})


def recompute_totals(state: UserData, mode: XpMode = XpMode.TARGET) -> UserData:
    """Re-derive every cached value (habit XP, completion, total XP, level)."""

    habits = [_refresh_habit(habit, mode) for habit in state.habits]
    total_xp = sum(habit.xp_earned for habit in habits)
    return state.model_copy(update={"habits": habits, "total_xp": total_xp, "level": level_of(total_xp)})


def _with_totals(state: UserData, habits: list[Habit]) -> UserData:
    total_xp = sum(habit.xp_earned for habit in habits)
    return state.model_copy(update={"habits": habits, "total_xp": total_xp, "level": level_of(total_xp)})


def update_progress(
    state: UserData,
    habit_id: str,
    new_progress: object,
    *,
    today: str | None = None,
    mode: XpMode = XpMode.TARGET,
) -> UpdateResult:
    """Record today's progress for one habit and re-evaluate badges.

    The streak grows by one only when the target goes from unmet to met;
    lowering progress never shrinks it (that is the daily reset's job).
    """

    progress = _validated_amount(new_progress, name="Progress")
    if state.habit(habit_id) is None:
        LOGGER.debug("Progress update for unknown habit %s ignored", habit_id)
        return UpdateResult(state=state)

    today = today or day_key()
    habits: list[Habit] = []
    for habit in state.habits:
        if habit.id != habit_id:
            habits.append(habit)
            continue

        was_target_met = habit.target_met
        target_met = progress >= habit.target
        updated = habit.model_copy(
            update={
                "progress": progress,
                "completed_today": target_met,
                "streak_count": habit.streak_count + 1 if target_met and not was_target_met else habit.streak_count,
                "last_completed_date": today if target_met else habit.last_completed_date,
            }
        )
        habits.append(updated.model_copy(update={"xp_earned": xp_for(updated, mode)}))

    badges, newly_unlocked = evaluate_badges(habits, state.badges, today=today)
    new_state = _with_totals(state, habits).model_copy(update={"badges": badges})
    return UpdateResult(state=new_state, newly_unlocked=newly_unlocked)


def add_progress(
    state: UserData,
    habit_id: str,
    amount: object,
    *,
    today: str | None = None,
    mode: XpMode = XpMode.TARGET,
) -> UpdateResult:
    increment = _validated_amount(amount, name="Amount")
    habit = state.habit(habit_id)
    if habit is None:
        return UpdateResult(state=state)
    return update_progress(state, habit_id, habit.progress + increment, today=today, mode=mode)


def update_target(
    state: UserData,
    habit_id: str,
    new_target: object,
    *,
    mode: XpMode = XpMode.TARGET,
) -> UpdateResult:
    """Change a habit's target and re-score its current progress.

    XP and the completion flag follow the new target. Streaks, the last
    completion date and badges stay as they are: a new target must not grant
    or revoke anything retroactively.
    """

    target = _validated_amount(new_target, name="Target", allow_zero=False)
    if state.habit(habit_id) is None:
        LOGGER.debug("Target update for unknown habit %s ignored", habit_id)
        return UpdateResult(state=state)

    habits: list[Habit] = []
    for habit in state.habits:
        if habit.id == habit_id:
            habit = _refresh_habit(habit.model_copy(update={"target": target}), mode)
        habits.append(habit)
    return UpdateResult(state=_with_totals(state, habits))


def quick_add_amounts(habit_type: HabitType) -> Tuple[float, ...]:
    return QUICK_ADD_AMOUNTS[habit_type]


__all__ = [
    "InvalidInputError",
    "QUICK_ADD_AMOUNTS",
    "UpdateResult",
    "add_progress",
    "quick_add_amounts",
    "recompute_totals",
    "update_progress",
    "update_target",
]
