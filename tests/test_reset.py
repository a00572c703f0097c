from __future__ import annotations

from glowup_tracker.defaults import new_user_data
from glowup_tracker.models import Habit, HabitType, UserData
from glowup_tracker.reset import reconcile

TODAY = "2026-10-17"
YESTERDAY = "2026-10-16"
TWO_DAYS_AGO = "2026-10-15"


def _state(habit: Habit, *, last_visit: str = YESTERDAY) -> UserData:
    return UserData(habits=[habit], last_visit_date=last_visit)


def _exercise(**updates: object) -> Habit:
    habit = Habit(id="2", name="Exercise", type=HabitType.EXERCISE, target=60, progress=0, streak_count=3)
    return habit.model_copy(update=updates)


def test_gap_breaks_streak() -> None:
    state = _state(_exercise(last_completed_date=TWO_DAYS_AGO))

    result = reconcile(state, TODAY)

    habit = result.habits[0]
    assert habit.streak_count == 0
    assert habit.progress == 0
    assert result.last_visit_date == TODAY


def test_streak_survives_when_completed_on_last_visit() -> None:
    state = _state(_exercise(progress=75, completed_today=True, last_completed_date=YESTERDAY))

    result = reconcile(state, TODAY)

    habit = result.habits[0]
    assert habit.streak_count == 3
    assert habit.progress == 0
    assert habit.completed_today is False
    assert habit.last_completed_date == YESTERDAY


def test_unmet_target_on_last_visit_breaks_streak() -> None:
    state = _state(_exercise(progress=30, last_completed_date=YESTERDAY))

    assert reconcile(state, TODAY).habits[0].streak_count == 0


def test_multi_day_gap_behaves_like_single_gap() -> None:
    state = _state(_exercise(progress=60, last_completed_date=TWO_DAYS_AGO), last_visit=TWO_DAYS_AGO)

    result = reconcile(state, TODAY)

    # Completed on the last visit, but that visit was not yesterday.
    assert result.habits[0].streak_count == 0


def test_same_day_is_noop_and_repeat_is_idempotent() -> None:
    state = _state(_exercise(progress=75, last_completed_date=YESTERDAY))

    once = reconcile(state, TODAY)
    twice = reconcile(once, TODAY)

    assert twice == once
    assert reconcile(once, TODAY) is once


def test_legacy_today_key_matches_normalized_visit() -> None:
    once = reconcile(_state(_exercise(progress=75, last_completed_date=YESTERDAY)), TODAY)

    assert reconcile(once, "Sat Oct 17 2026") is once


def test_reconcile_does_not_mutate_input_and_rederives_totals() -> None:
    state = _state(_exercise(progress=75, xp_earned=19, last_completed_date=YESTERDAY))
    state = state.model_copy(update={"total_xp": 19})

    result = reconcile(state, TODAY)

    assert state.habits[0].progress == 75
    assert result.habits[0].xp_earned == 0
    assert result.total_xp == 0
    assert result.level == 1


def test_fresh_data_is_already_reconciled_for_today() -> None:
    fresh = new_user_data("uid-1", today=TODAY)

    assert reconcile(fresh, TODAY) is fresh
