from __future__ import annotations

import pytest

from glowup_tracker.leveling import level_of, level_progress, xp_progress_within_level, xp_threshold_for_next_level


@pytest.mark.parametrize(
    ("xp", "expected_level"),
    [(0, 1), (99, 1), (100, 2), (299, 2), (300, 3), (599, 3), (600, 4), (1000, 5)],
)
def test_level_thresholds_follow_triangular_schedule(xp: int, expected_level: int) -> None:
    assert level_of(xp) == expected_level


def test_progress_within_level_stays_below_next_threshold() -> None:
    for xp in range(0, 2500, 7):
        level = level_of(xp)
        progress = xp_progress_within_level(xp, level)
        assert 0 <= progress < xp_threshold_for_next_level(level)


def test_level_is_monotonic() -> None:
    levels = [level_of(xp) for xp in range(0, 3000, 13)]
    assert levels == sorted(levels)


def test_level_progress_for_progress_bar() -> None:
    level, progress_points, required_points, ratio = level_progress(350)

    assert level == 3
    assert progress_points == 50
    assert required_points == 300
    assert ratio == pytest.approx(50 / 300)


def test_negative_xp_is_rejected() -> None:
    with pytest.raises(ValueError):
        level_of(-1)
