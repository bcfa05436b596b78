"""
Adaptive scheduler: choose which scenario to practice next.

Strategies:
    weakness   keys with ≥ min_attempts and accuracy < mastery threshold,
               drawn with probability ∝ weight_policy(accuracy)
    spaced     keys unseen for longer than the staleness window, ranked by
               error_rate × hours since last seen (highest first)
    balanced   roll < 0.4 → weakness at 90%; roll < 0.6 → spaced;
               otherwise, or when the chosen strategy finds nothing, defer

"Defer" means None: the caller generates an unconstrained random scenario.
In mastery mode None is the terminal "everything mastered" state instead,
and next_scenario() returns None rather than a random hand.

Weighted draws use a cumulative-weight array and a single uniform draw.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Sequence

import numpy as np

from src.engine.config import TrainingMode, parse_mode
from src.engine.deck import resolve_rng
from src.engine.scenarios import TrainingScenario, generate_for_level, generate_targeted
from src.training.analytics import (
    DEFAULT_MIN_ATTEMPTS,
    STALE_AFTER_SECONDS,
    ScenarioSummary,
    find_stale_scenarios,
    find_weakest_scenarios,
)
from src.training.scenario_keys import ScenarioKey
from src.training.statistics import Statistics

logger = logging.getLogger(__name__)

WeightPolicy = Callable[[float], float]

DEFAULT_MASTERY_THRESHOLD: float = 95.0
WEAKNESS_MODE_THRESHOLD: float = 100.0
BALANCED_MASTERY_THRESHOLD: float = 90.0
BALANCED_WEAKNESS_SHARE: float = 0.4
BALANCED_SPACED_SHARE: float = 0.2
MAX_WEAK_CANDIDATES: int = 50

# Review interval by review count; the last entry repeats beyond the end.
REVIEW_INTERVALS_HOURS: tuple[float, ...] = (1, 4, 24, 72, 168, 336)
MASTERED_INTERVAL_FACTOR: float = 1.5
STRUGGLING_INTERVAL_FACTOR: float = 0.5


def quadratic_weakness(accuracy: float) -> float:
    """Default weight policy: (100 − accuracy)²."""
    return (100.0 - accuracy) ** 2


DEFAULT_WEIGHT_POLICY: WeightPolicy = quadratic_weakness


def next_review_interval(accuracy: float, review_count: int) -> float:
    """Suggested hours until a scenario should be reviewed again.

    Advisory only: select_stale_key() decides due-ness with the fixed
    STALE_AFTER_SECONDS window, not with this interval.

    Examples:
        >>> next_review_interval(80, 0)
        1
        >>> next_review_interval(96, 2)
        36.0
        >>> next_review_interval(50, 10)
        168.0
    """
    base = REVIEW_INTERVALS_HOURS[min(max(review_count, 0), len(REVIEW_INTERVALS_HOURS) - 1)]
    if accuracy >= 95:
        return base * MASTERED_INTERVAL_FACTOR
    if accuracy < 70:
        return base * STRUGGLING_INTERVAL_FACTOR
    return base


def weighted_choice(
    weights: Sequence[float],
    rng: np.random.Generator | None = None,
) -> int:
    """Index drawn with probability proportional to *weights*.

    Falls back to the first index when every weight is zero.
    """
    cumulative = np.cumsum(np.asarray(weights, dtype=float))
    if len(cumulative) == 0:
        raise ValueError("weighted_choice() needs at least one weight.")
    total = cumulative[-1]
    if total <= 0:
        return 0
    draw = resolve_rng(rng).random() * total
    return int(min(np.searchsorted(cumulative, draw, side='right'), len(cumulative) - 1))


def weak_candidates(
    stats: Statistics | None,
    mastery_threshold: float = DEFAULT_MASTERY_THRESHOLD,
    min_attempts: int = DEFAULT_MIN_ATTEMPTS,
) -> list[ScenarioSummary]:
    return [
        s for s in find_weakest_scenarios(stats, MAX_WEAK_CANDIDATES, min_attempts)
        if s.accuracy < mastery_threshold
    ]


def select_weak_key(
    stats: Statistics | None,
    mastery_threshold: float = DEFAULT_MASTERY_THRESHOLD,
    min_attempts: int = DEFAULT_MIN_ATTEMPTS,
    weight_policy: WeightPolicy = DEFAULT_WEIGHT_POLICY,
    rng: np.random.Generator | None = None,
) -> ScenarioKey | None:
    """Draw a weak key, or None when nothing is below the threshold."""
    pool = weak_candidates(stats, mastery_threshold, min_attempts)
    if not pool:
        return None
    index = weighted_choice([weight_policy(s.accuracy) for s in pool], rng)
    return pool[index].key


def select_stale_key(
    stats: Statistics | None,
    max_age: float = STALE_AFTER_SECONDS,
    now: float | None = None,
) -> ScenarioKey | None:
    """Highest-priority overdue key, or None when nothing is due."""
    now = now if now is not None else time.time()
    stale = find_stale_scenarios(stats, max_age, now)
    if not stale:
        return None

    def priority(s: ScenarioSummary) -> float:
        hours_since_seen = (now - (s.last_seen or 0.0)) / 3600
        return (100 - s.accuracy) * hours_since_seen

    return max(stale, key=priority).key


def select_scenario_key(
    stats: Statistics | None,
    mode: TrainingMode | str = TrainingMode.BALANCED,
    rng: np.random.Generator | None = None,
    now: float | None = None,
    min_attempts: int = DEFAULT_MIN_ATTEMPTS,
    max_age: float = STALE_AFTER_SECONDS,
    weight_policy: WeightPolicy = DEFAULT_WEIGHT_POLICY,
) -> ScenarioKey | None:
    """Pick the next key to practice, or None to defer to random play.

    Args:
        stats:  Current snapshot (None = no history).
        mode:   random, weakness, mastery, spaced or balanced.
        rng:    numpy Generator for the weighted draw and balanced roll.
        now:    Epoch seconds; defaults to the current time.

    Raises:
        ValueError: For modes the scheduler does not drive (speed, custom).
    """
    mode = parse_mode(mode)
    rng = resolve_rng(rng)

    if mode is TrainingMode.RANDOM:
        return None
    if mode is TrainingMode.WEAKNESS:
        return select_weak_key(stats, WEAKNESS_MODE_THRESHOLD, min_attempts, weight_policy, rng)
    if mode is TrainingMode.MASTERY:
        return select_weak_key(stats, DEFAULT_MASTERY_THRESHOLD, min_attempts, weight_policy, rng)
    if mode is TrainingMode.SPACED:
        return select_stale_key(stats, max_age, now)
    if mode is TrainingMode.BALANCED:
        roll = rng.random()
        if roll < BALANCED_WEAKNESS_SHARE:
            return select_weak_key(stats, BALANCED_MASTERY_THRESHOLD, min_attempts, weight_policy, rng)
        if roll < BALANCED_WEAKNESS_SHARE + BALANCED_SPACED_SHARE:
            return select_stale_key(stats, max_age, now)
        return None
    raise ValueError(f"The scheduler does not drive {mode.value!r} mode.")


def next_scenario(
    stats: Statistics | None,
    level: int,
    mode: TrainingMode | str = TrainingMode.BALANCED,
    rng: np.random.Generator | None = None,
    now: float | None = None,
    **selection,
) -> TrainingScenario | None:
    """Materialize the next scenario for *mode*.

    A selected key goes to generate_targeted(); None goes to
    generate_for_level(), except in mastery mode where None means every
    tracked scenario is mastered and is returned as-is.
    """
    mode = parse_mode(mode)
    rng = resolve_rng(rng)
    key = select_scenario_key(stats, mode, rng=rng, now=now, **selection)
    if key is not None:
        logger.debug("%s mode targeting %s", mode.value, key)
        return generate_targeted(key.player_total, key.dealer_rank, key.hand_type, level, rng)
    if mode is TrainingMode.MASTERY:
        logger.info("all tracked scenarios at or above mastery threshold")
        return None
    return generate_for_level(level, rng)
