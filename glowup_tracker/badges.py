from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Sequence

from glowup_tracker.models import Badge, Habit, HabitType

LOGGER = logging.getLogger(__name__)

BadgePredicate = Callable[[Sequence[Habit]], bool]

TYPE_STREAK_DAYS = 7
CHAMPION_STREAK_DAYS = 30
CONSISTENCY_STREAK_DAYS = 14
CONSISTENCY_MIN_HABITS = 3


def _type_streak(habit_type: HabitType, days: int) -> BadgePredicate:
    def predicate(habits: Sequence[Habit]) -> bool:
        return any(habit.type is habit_type and habit.streak_count >= days for habit in habits)

    return predicate


def _all_habits_streak(days: int) -> BadgePredicate:
    def predicate(habits: Sequence[Habit]) -> bool:
        return bool(habits) and all(habit.streak_count >= days for habit in habits)

    return predicate


def _habit_count_streak(count: int, days: int) -> BadgePredicate:
    def predicate(habits: Sequence[Habit]) -> bool:
        return sum(1 for habit in habits if habit.streak_count >= days) >= count

    return predicate


@dataclass(frozen=True)
class BadgeDefinition:
    id: str
    name: str
    icon: str
    description: str
    predicate: BadgePredicate

    def locked_badge(self) -> Badge:
        return Badge(id=self.id, name=self.name, icon=self.icon)


BADGE_DEFINITIONS: tuple[BadgeDefinition, ...] = (
    BadgeDefinition(
        "hydration-hero",
        "Hydration Hero",
        "💧",
        "Reach a 7-day water streak",
        _type_streak(HabitType.WATER, TYPE_STREAK_DAYS),
    ),
    BadgeDefinition(
        "fitness-warrior",
        "Fitness Warrior",
        "🏃‍♂️",
        "Reach a 7-day exercise streak",
        _type_streak(HabitType.EXERCISE, TYPE_STREAK_DAYS),
    ),
    BadgeDefinition(
        "mindful-master",
        "Mindful Master",
        "🧘‍♀️",
        "Reach a 7-day meditation streak",
        _type_streak(HabitType.MEDITATION, TYPE_STREAK_DAYS),
    ),
    BadgeDefinition(
        "knowledge-seeker",
        "Knowledge Seeker",
        "📚",
        "Reach a 7-day reading streak",
        _type_streak(HabitType.READING, TYPE_STREAK_DAYS),
    ),
    BadgeDefinition(
        "wellness-champion",
        "Wellness Champion",
        "🏆",
        "Keep every habit on a 30-day streak",
        _all_habits_streak(CHAMPION_STREAK_DAYS),
    ),
    BadgeDefinition(
        "consistency-master",
        "Consistency Master",
        "👑",
        "Keep three habits on a 14-day streak",
        _habit_count_streak(CONSISTENCY_MIN_HABITS, CONSISTENCY_STREAK_DAYS),
    ),
)

_DEFINITIONS_BY_ID = {definition.id: definition for definition in BADGE_DEFINITIONS}


def predicate_for(badge_id: str) -> BadgePredicate | None:
    definition = _DEFINITIONS_BY_ID.get(badge_id)
    return definition.predicate if definition else None


def initial_badges() -> list[Badge]:
    return [definition.locked_badge() for definition in BADGE_DEFINITIONS]


def attach_badges(stored: Iterable[Badge]) -> list[Badge]:
    """Line persisted badge records up with the registry.

    Unlock state of known ids is kept, unknown ids are dropped and ids
    missing from storage come back locked. Result follows registry order.
    """

    stored_by_id: dict[str, Badge] = {}
    for badge in stored:
        if badge.id not in _DEFINITIONS_BY_ID:
            LOGGER.warning("Dropping unknown badge %s from stored data", badge.id)
            continue
        stored_by_id[badge.id] = badge

    attached: list[Badge] = []
    for definition in BADGE_DEFINITIONS:
        persisted = stored_by_id.get(definition.id)
        if persisted is None:
            attached.append(definition.locked_badge())
            continue
        attached.append(
            persisted.model_copy(
                update={
                    "name": definition.name,
                    "icon": definition.icon,
                    "unlocked_date": persisted.unlocked_date if persisted.unlocked else None,
                }
            )
        )
    return attached


def evaluate_badges(habits: Sequence[Habit], badges: Sequence[Badge], *, today: str) -> tuple[list[Badge], list[Badge]]:
    """Unlock every locked badge whose rule now holds.

    Returns the updated badge list and the badges unlocked by this call, both
    in registry order. Unlocked badges are never locked again.
    """

    current = {badge.id: badge for badge in badges}
    updated: list[Badge] = []
    newly_unlocked: list[Badge] = []
    for definition in BADGE_DEFINITIONS:
        badge = current.get(definition.id) or definition.locked_badge()
        if not badge.unlocked and definition.predicate(habits):
            badge = badge.model_copy(update={"unlocked": True, "unlocked_date": today})
            newly_unlocked.append(badge)
        updated.append(badge)

    if newly_unlocked:
        LOGGER.info("Unlocked badges: %s", ", ".join(badge.id for badge in newly_unlocked))
    return updated, newly_unlocked


__all__ = [
    "BADGE_DEFINITIONS",
    "BadgeDefinition",
    "BadgePredicate",
    "attach_badges",
    "evaluate_badges",
    "initial_badges",
    "predicate_for",
]
