"""Gamified daily habit tracking: XP, levels, streaks and badges."""
