from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from glowup_tracker.dates import day_key, normalize_day_key, previous_day_key
from glowup_tracker.models import AuthUser, Habit, HabitType, UserData


def test_day_key_is_anchored_to_utc() -> None:
    late_evening_west = datetime(2026, 10, 16, 22, 30, tzinfo=timezone(timedelta(hours=-5)))

    assert day_key(late_evening_west) == "2026-10-17"
    assert day_key(datetime(2026, 10, 17, 8, 0)) == "2026-10-17"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Sat Oct 17 2026", "2026-10-17"),
        ("2026-10-17", "2026-10-17"),
        ("2026-10-17T23:30:00-02:00", "2026-10-18"),
        ("", None),
        (None, None),
        ("someday", "someday"),
    ],
)
def test_normalize_day_key(raw: object, expected: object) -> None:
    assert normalize_day_key(raw) == expected


def test_previous_day_key_crosses_month() -> None:
    assert previous_day_key("2026-11-01") == "2026-10-31"


def test_habit_repairs_zero_target_and_rejects_negative() -> None:
    repaired = Habit.model_validate({"id": "1", "name": "Water", "type": "water", "target": 0})
    assert repaired.target == 1

    with pytest.raises(ValidationError):
        Habit(id="1", name="Water", type=HabitType.WATER, target=-2)


def test_user_data_document_uses_stored_field_names() -> None:
    data = UserData.model_validate(
        {
            "habits": [
                {
                    "id": "1",
                    "name": "Drink Water",
                    "type": "water",
                    "target": 3,
                    "targetUnit": "L",
                    "progress": 1.5,
                    "progressUnit": "L",
                    "streakCount": 2,
                    "completedToday": False,
                    "xpEarned": 15,
                    "icon": "💧",
                    "lastCompletedDate": "Fri Oct 16 2026",
                }
            ],
            "totalXP": 15,
            "level": 1,
            "badges": [],
            "lastVisitDate": "Sat Oct 17 2026",
        }
    )

    document = data.to_document()

    assert data.habits[0].last_completed_date == "2026-10-16"
    assert document["lastVisitDate"] == "2026-10-17"
    assert document["habits"][0]["streakCount"] == 2
    assert document["totalXP"] == 15
    assert "userId" not in document


def test_auth_user_tokens_are_not_dumped() -> None:
    user = AuthUser(uid="u1", email="a@example.com", id_token="secret", refresh_token="refresh")

    dumped = user.model_dump()

    assert "id_token" not in dumped
    assert "refresh_token" not in dumped
    assert "secret" not in repr(user)


def test_naive_saved_timestamps_are_treated_as_utc() -> None:
    data = UserData.model_validate({"lastSaved": "2026-10-17T10:00:00", "updatedAt": "2026-10-17T10:00:05+02:00"})

    assert data.last_saved == datetime(2026, 10, 17, 10, 0, tzinfo=timezone.utc)
    assert data.updated_at == datetime(2026, 10, 17, 8, 0, 5, tzinfo=timezone.utc)
