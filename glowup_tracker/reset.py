from __future__ import annotations

import logging

from glowup_tracker.dates import day_key, normalize_day_key, previous_day_key
from glowup_tracker.engine import recompute_totals
from glowup_tracker.models import Habit, UserData
from glowup_tracker.xp import XpMode

LOGGER = logging.getLogger(__name__)


def _visited_yesterday(last_visit_date: str, today: str) -> bool:
    try:
        return previous_day_key(today) == last_visit_date
    except ValueError:
        # Non-ISO keys cannot be compared by day; fall back to the completion date.
        return True


def _reset_habit(habit: Habit, last_visit_date: str, *, consecutive: bool) -> Habit:
    # Evaluated on the last visit's progress, before it is zeroed.
    keeps_streak = consecutive and habit.target_met and habit.last_completed_date == last_visit_date
    return habit.model_copy(
        update={
            "progress": 0.0,
            "completed_today": False,
            "streak_count": habit.streak_count if keeps_streak else 0,
        }
    )


def reconcile(state: UserData, today: str | None = None, *, mode: XpMode = XpMode.TARGET) -> UserData:
    """Start a new day: zero progress and keep only unbroken streaks.

    A streak survives only if its target was met, the completion is dated
    exactly on the previous visit day and that visit was yesterday. Any gap
    clears it, so skipping several days behaves like skipping one. Calling
    again on the same day is a no-op.
    """

    today = normalize_day_key(today) or day_key()
    if state.last_visit_date == today:
        return state

    LOGGER.info("New day %s detected (last visit %s), resetting daily progress", today, state.last_visit_date or "-")
    consecutive = _visited_yesterday(state.last_visit_date, today)
    habits = [_reset_habit(habit, state.last_visit_date, consecutive=consecutive) for habit in state.habits]
    reset_state = state.model_copy(update={"habits": habits, "last_visit_date": today})
    return recompute_totals(reset_state, mode)


__all__ = ["reconcile"]
