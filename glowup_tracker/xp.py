from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple

from glowup_tracker.models import Habit, HabitType


class XpMode(str, Enum):
    """How a habit's progress is turned into XP."""

    SIMPLE = "simple"
    TARGET = "target"

    @property
    def label(self) -> str:
        if self is XpMode.SIMPLE:
            return "Fixed tiers per habit type"
        return "Scaled by chosen target"


@dataclass(frozen=True)
class TargetPreset:
    value: float
    label: str
    description: str
    base_xp: int


TARGET_PRESETS: Dict[HabitType, Tuple[TargetPreset, ...]] = {
    HabitType.WATER: (
        TargetPreset(2, "2L", "Light hydration", 10),
        TargetPreset(3, "3L", "Recommended daily", 15),
        TargetPreset(4, "4L", "Active lifestyle", 20),
        TargetPreset(6, "6L", "Athlete level", 25),
    ),
    HabitType.EXERCISE: (
        TargetPreset(30, "30min", "Light workout", 10),
        TargetPreset(60, "1hr", "Recommended daily", 15),
        TargetPreset(90, "1.5hr", "Intensive training", 20),
        TargetPreset(120, "2hr", "Athlete level", 25),
    ),
    HabitType.MEDITATION: (
        TargetPreset(15, "15min", "Quick mindfulness", 10),
        TargetPreset(30, "30min", "Standard practice", 15),
        TargetPreset(45, "45min", "Deep meditation", 20),
        TargetPreset(60, "1hr", "Extended practice", 25),
    ),
    HabitType.READING: (
        TargetPreset(30, "30min", "Light reading", 10),
        TargetPreset(60, "1hr", "Daily reading", 15),
        TargetPreset(90, "1.5hr", "Book lover", 20),
        TargetPreset(120, "2hr", "Scholar level", 25),
    ),
}

# (minimum ratio, XP) from the highest tier down; below the last tier XP is proportional.
SIMPLE_WATER_TIERS: Tuple[Tuple[float, int], ...] = ((1.0, 25), (0.75, 20), (0.5, 15), (0.25, 10))
SIMPLE_WATER_PROPORTIONAL = 25
SIMPLE_ACTIVITY_TIERS: Tuple[Tuple[float, int], ...] = ((2.0, 30), (1.5, 25), (1.0, 20), (0.75, 15), (0.5, 10))
SIMPLE_ACTIVITY_PROPORTIONAL = 20

# (minimum ratio, multiplier applied to the base XP of the target)
TARGET_MULTIPLIERS: Tuple[Tuple[float, float], ...] = (
    (2.0, 1.5),
    (1.5, 1.25),
    (1.0, 1.0),
    (0.75, 0.75),
    (0.5, 0.5),
    (0.25, 0.25),
)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _progress_ratio(habit: Habit) -> float:
    if habit.target <= 0:
        raise ValueError(f"Habit {habit.id!r} has a non-positive target.")
    return habit.progress / habit.target


def simple_xp_for(habit: Habit) -> int:
    """Two-tier XP: water caps at 25, other habits pay extra up to twice the target."""

    ratio = _progress_ratio(habit)
    if habit.type is HabitType.WATER:
        tiers, proportional = SIMPLE_WATER_TIERS, SIMPLE_WATER_PROPORTIONAL
    else:
        tiers, proportional = SIMPLE_ACTIVITY_TIERS, SIMPLE_ACTIVITY_PROPORTIONAL

    for minimum_ratio, points in tiers:
        if ratio >= minimum_ratio:
            return points
    return math.floor(ratio * proportional)


def base_xp_for_target(habit_type: HabitType, target: float) -> int:
    """Base XP for a target, scaling the nearest preset for custom values."""

    presets = TARGET_PRESETS[habit_type]
    for preset in presets:
        if math.isclose(preset.value, target):
            return preset.base_xp

    nearest = min(presets, key=lambda preset: (abs(preset.value - target), preset.value))
    return max(1, _round_half_up(nearest.base_xp * (target / nearest.value)))


def target_xp_for(habit: Habit) -> int:
    ratio = _progress_ratio(habit)
    base_xp = base_xp_for_target(habit.type, habit.target)
    for minimum_ratio, multiplier in TARGET_MULTIPLIERS:
        if ratio >= minimum_ratio:
            return base_xp if multiplier == 1.0 else _round_half_up(base_xp * multiplier)
    return math.floor(ratio * base_xp)


def xp_for(habit: Habit, mode: XpMode = XpMode.TARGET) -> int:
    if mode is XpMode.SIMPLE:
        return simple_xp_for(habit)
    return target_xp_for(habit)


def xp_range_for_target(habit_type: HabitType, target: float, mode: XpMode = XpMode.TARGET) -> tuple[int, int, int]:
    """Return ``(minimum, full, maximum)`` XP a habit can earn with ``target``."""

    if mode is XpMode.SIMPLE:
        if habit_type is HabitType.WATER:
            return 0, SIMPLE_WATER_TIERS[0][1], SIMPLE_WATER_TIERS[0][1]
        return 0, SIMPLE_ACTIVITY_TIERS[2][1], SIMPLE_ACTIVITY_TIERS[0][1]

    base_xp = base_xp_for_target(habit_type, target)
    return 0, base_xp, _round_half_up(base_xp * TARGET_MULTIPLIERS[0][1])


__all__ = [
    "TARGET_PRESETS",
    "TargetPreset",
    "XpMode",
    "base_xp_for_target",
    "simple_xp_for",
    "target_xp_for",
    "xp_for",
    "xp_range_for_target",
]
