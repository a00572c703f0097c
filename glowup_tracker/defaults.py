from __future__ import annotations

from typing import List

from glowup_tracker.badges import initial_badges
from glowup_tracker.dates import day_key
from glowup_tracker.models import Habit, HabitType, UserData


def default_habits() -> List[Habit]:
    return [
        Habit(id="1", name="Drink Water", type=HabitType.WATER, target=3, target_unit="L", progress_unit="L", icon="💧"),
        Habit(
            id="2", name="Exercise", type=HabitType.EXERCISE, target=60, target_unit="min", progress_unit="min", icon="🏃‍♂️"
        ),
        Habit(
            id="3", name="Meditate", type=HabitType.MEDITATION, target=30, target_unit="min", progress_unit="min", icon="🧘‍♀️"
        ),
        Habit(id="4", name="Read", type=HabitType.READING, target=60, target_unit="min", progress_unit="min", icon="📚"),
    ]


def new_user_data(user_id: str | None = None, *, today: str | None = None) -> UserData:
    """Fresh aggregate for a user without stored data: four habits, no XP, all badges locked."""

    return UserData(
        habits=default_habits(),
        badges=initial_badges(),
        last_visit_date=today or day_key(),
        user_id=user_id,
    )


__all__ = ["default_habits", "new_user_data"]
