from __future__ import annotations

from glowup_tracker.constants import XP_PER_LEVEL_STEP


def _cost_of_level(level: int) -> int:
    """XP needed to advance from ``level`` to ``level + 1``."""

    return level * XP_PER_LEVEL_STEP


def _xp_floor(level: int) -> int:
    # Cumulative XP at which ``level`` is reached: sum of i * 100 for i < level.
    return XP_PER_LEVEL_STEP * (level - 1) * level // 2


def level_of(xp: int) -> int:
    """Map cumulative XP to a level on the triangular schedule (100, 300, 600, ...)."""

    if xp < 0:
        raise ValueError("XP must not be negative.")

    level = 1
    accumulated = 0
    while accumulated + _cost_of_level(level) <= xp:
        accumulated += _cost_of_level(level)
        level += 1
    return level


def xp_threshold_for_next_level(level: int) -> int:
    """XP required to leave ``level``; the same step ``level_of`` uses."""

    return _cost_of_level(max(1, level))


def xp_progress_within_level(xp: int, level: int) -> int:
    return xp - _xp_floor(max(1, level))


def level_progress(xp: int) -> tuple[int, int, int, float]:
    """Return ``(level, progress_points, required_points, ratio)`` for a progress bar."""

    level = level_of(xp)
    progress_points = xp_progress_within_level(xp, level)
    required_points = xp_threshold_for_next_level(level)
    progress_ratio = min(1.0, progress_points / required_points)
    return level, progress_points, required_points, progress_ratio


__all__ = [
    "level_of",
    "level_progress",
    "xp_progress_within_level",
    "xp_threshold_for_next_level",
]
