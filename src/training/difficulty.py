"""Adaptive difficulty: when to move a player up or down a level."""

from __future__ import annotations

from src.engine.config import MAX_LEVEL, MIN_LEVEL, DifficultyLevel, validate_level
from src.training.statistics import Statistics, accuracy

ADVANCE_ACCURACY: int = 90
RETREAT_ACCURACY: int = 60
MIN_DECISIONS: int = 20


def should_advance_level(stats: Statistics | None, level: int) -> bool:
    """True once ≥ 20 decisions at ≥ 90% accuracy below the top level."""
    level = validate_level(level)
    if stats is None or level >= MAX_LEVEL or stats.total_decisions < MIN_DECISIONS:
        return False
    return accuracy(stats) >= ADVANCE_ACCURACY


def suggested_level(stats: Statistics | None, level: int) -> DifficultyLevel | None:
    """Level to move to, or None to stay put.

    Up one at ≥ 90% accuracy, down one below 60%; no suggestion before 20
    decisions have been recorded.
    """
    level = validate_level(level)
    if stats is None or stats.total_decisions < MIN_DECISIONS:
        return None
    overall = accuracy(stats)
    if overall >= ADVANCE_ACCURACY and level < MAX_LEVEL:
        return DifficultyLevel(level + 1)
    if overall < RETREAT_ACCURACY and level > MIN_LEVEL:
        return DifficultyLevel(level - 1)
    return None


_MESSAGES: tuple[tuple[int, str], ...] = (
    (95, "Excellent! You're mastering basic strategy!"),
    (90, "Great job! You're doing very well!"),
    (80, "Good work! Keep practicing!"),
    (70, "Not bad! You're improving!"),
    (60, "Keep trying! Practice makes perfect!"),
)


def performance_message(accuracy_pct: float) -> str:
    for floor, message in _MESSAGES:
        if accuracy_pct >= floor:
            return message
    return "Don't give up! Review the strategy and try again!"


def performance_score(stats: Statistics | None) -> float:
    """Accuracy plus streak (≤ 20) and volume (≤ 10) bonuses, capped at 100."""
    if stats is None:
        return 0.0
    streak_bonus = min(stats.current_streak * 2, 20)
    volume_bonus = min(stats.total_decisions / 10, 10)
    return min(100.0, accuracy(stats) + streak_bonus + volume_bonus)
