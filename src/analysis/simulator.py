"""
Monte Carlo practice simulator for the basic-strategy trainer.

Drives the full training loop with a simulated learner instead of a human:

    scheduler.next_scenario()  →  learner picks an action  →  grade_decision()
        →  statistics.fold()  →  sessions.update_session()

The learner's error probability on a scenario decays with the number of
times it has seen that scenario, so a run shows the ledger, the weakness
scheduler and the session trend behaving as they would for a real player.

A virtual clock advances by each decision time plus a short pause, and
sessions start one day apart, so staleness and spaced review see realistic
timestamps without reading the wall clock.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

import numpy as np

from src.engine.config import DifficultyLevel, TrainingMode, parse_mode, validate_level
from src.engine.hand import HandType
from src.engine.scenarios import TrainingScenario, generate_for_level
from src.engine.strategy import Action, available_actions, decide
from src.training.scheduler import next_scenario
from src.training.sessions import (
    TrainingSession,
    create_session,
    end_session,
    session_accuracy,
    update_session,
)
from src.training.statistics import Statistics, accuracy, fold, grade_decision

logger = logging.getLogger(__name__)

# ─── Constants ────────────────────────────────────────────────────────────────

DEFAULT_START_TIME: float = 1_700_000_000.0
SECONDS_BETWEEN_SESSIONS: float = 24 * 60 * 60
PAUSE_BETWEEN_HANDS_S: float = 2.0
MIN_DECISION_TIME_MS: float = 300.0


# ─── Learner model ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class SimulatedLearner:
    """How a simulated player errs and how quickly it learns.

    Attributes:
        base_error:       Probability of a wrong action on a first sighting.
        learning_rate:    Exponential decay of the error per prior attempt.
        floor_error:      Error probability never drops below this.
        hand_type_factor: Multiplier on the error per hand type.
        mean_time_ms:     Mean decision time.
        time_sd_ms:       Standard deviation of the decision time.
    """

    base_error: float = 0.4
    learning_rate: float = 0.15
    floor_error: float = 0.02
    hand_type_factor: dict[HandType, float] = field(
        default_factory=lambda: {HandType.HARD: 1.0, HandType.SOFT: 1.3, HandType.PAIR: 1.2}
    )
    mean_time_ms: float = 2500.0
    time_sd_ms: float = 800.0

    def __post_init__(self) -> None:
        for name in ("base_error", "floor_error"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be in [0, 1], got {value}.")
        if self.learning_rate < 0:
            raise ValueError(f"learning_rate must be ≥ 0, got {self.learning_rate}.")

    def error_probability(self, kind: HandType, prior_attempts: int) -> float:
        """Chance of a wrong action on a scenario seen *prior_attempts* times.

        Examples:
            >>> SimulatedLearner(base_error=0.5, learning_rate=0.0).error_probability(HandType.HARD, 10)
            0.5
        """
        raw = self.base_error * math.exp(-self.learning_rate * prior_attempts)
        raw *= self.hand_type_factor.get(kind, 1.0)
        return min(1.0, max(self.floor_error, raw))


def make_perfect_learner() -> SimulatedLearner:
    """A learner that never errs; every graded decision is correct."""
    return SimulatedLearner(base_error=0.0, learning_rate=0.0, floor_error=0.0)


def make_novice_learner() -> SimulatedLearner:
    """A slow learner that starts out wrong more often than right."""
    return SimulatedLearner(base_error=0.6, learning_rate=0.05, floor_error=0.1, mean_time_ms=4000.0)


# ─── Result ───────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class PracticeResult:
    """Outcome of a simulated practice run.

    Attributes:
        n_hands:   Decisions graded.
        stats:     Final statistics ledger.
        sessions:  Completed sessions, oldest first.
        accuracy:  Overall accuracy in percent.
        mode:      Training mode that drove scenario selection.
        level:     Difficulty level played.
    """

    n_hands: int
    stats: Statistics
    sessions: tuple[TrainingSession, ...]
    accuracy: int
    mode: TrainingMode
    level: DifficultyLevel

    @property
    def session_accuracies(self) -> list[int]:
        return [session_accuracy(s) for s in self.sessions]

    def __str__(self) -> str:
        return (
            f"Hands: {self.n_hands:,} | "
            f"Sessions: {len(self.sessions)} | "
            f"Accuracy: {self.accuracy}% | "
            f"Best streak: {self.stats.longest_streak} | "
            f"Mode: {self.mode.value} | Level: {int(self.level)}"
        )


# ─── Single decision ──────────────────────────────────────────────────────────


def learner_action(
    scenario: TrainingScenario,
    level: int,
    learner: SimulatedLearner,
    stats: Statistics | None,
    rng: np.random.Generator,
) -> Action:
    """The action the simulated learner picks for *scenario*.

    With the learner's error probability it picks a uniformly random legal
    action other than the correct one; otherwise the correct action.
    """
    correct = decide(
        scenario.player_cards,
        scenario.dealer_upcard,
        scenario.can_double,
        scenario.can_split,
        scenario.can_surrender,
        level,
    )
    key = scenario.tracking_key
    prior = stats.by_scenario.get(key) if stats is not None else None
    p_error = learner.error_probability(key.hand_type, prior.attempts if prior else 0)
    if rng.random() >= p_error:
        return correct

    wrong = [
        a
        for a in available_actions(
            scenario.player_cards,
            scenario.can_double,
            scenario.can_split,
            scenario.can_surrender,
            level,
        )
        if a is not correct
    ]
    return wrong[int(rng.integers(len(wrong)))]


def _decision_time(learner: SimulatedLearner, rng: np.random.Generator) -> float:
    return max(MIN_DECISION_TIME_MS, float(rng.normal(learner.mean_time_ms, learner.time_sd_ms)))


# ─── Core simulation loop ─────────────────────────────────────────────────────


def simulate_practice(
    n_hands: int = 500,
    level: int = DifficultyLevel.SURRENDER,
    mode: TrainingMode | str = TrainingMode.BALANCED,
    hands_per_session: int = 50,
    learner: SimulatedLearner | None = None,
    seed: int | None = 42,
    start_time: float = DEFAULT_START_TIME,
) -> PracticeResult:
    """Simulate *n_hands* graded decisions and return the resulting ledger.

    Args:
        n_hands:           Number of decisions to simulate.
        level:             Difficulty level for every scenario.
        mode:              Scheduler mode (random, weakness, mastery, spaced,
                           balanced). Speed and custom modes fall back to
                           random generation.
        hands_per_session: Decisions per session before a new one starts.
        learner:           Learner model; defaults to SimulatedLearner().
        seed:              Seed for the numpy Generator. None for a
                           non-deterministic run.
        start_time:        Virtual epoch seconds of the first decision.

    Returns:
        PracticeResult with the final statistics and all sessions.

    Raises:
        ValueError: If n_hands is negative or hands_per_session < 1.
    """
    if n_hands < 0:
        raise ValueError(f"n_hands must be ≥ 0, got {n_hands}.")
    if hands_per_session < 1:
        raise ValueError(f"hands_per_session must be ≥ 1, got {hands_per_session}.")

    level = validate_level(level)
    mode = parse_mode(mode)
    learner = learner if learner is not None else SimulatedLearner()
    rng = np.random.default_rng(seed)
    scheduled = mode not in (TrainingMode.SPEED, TrainingMode.CUSTOM)

    stats: Statistics | None = None
    sessions: list[TrainingSession] = []
    session: TrainingSession | None = None
    session_start = start_time
    clock = start_time

    for i in range(n_hands):
        if i % hands_per_session == 0:
            if session is not None:
                sessions.append(end_session(session, now=clock))
                session_start += SECONDS_BETWEEN_SESSIONS
                clock = session_start
            session = create_session(mode, level, now=clock)

        scenario = next_scenario(stats, level, mode, rng=rng, now=clock) if scheduled else None
        if scenario is None:
            scenario = generate_for_level(level, rng)

        chosen = learner_action(scenario, level, learner, stats, rng)
        decision_time = _decision_time(learner, rng)
        clock += decision_time / 1000 + PAUSE_BETWEEN_HANDS_S

        outcome = grade_decision(scenario, chosen, level, decision_time, session_id=session.id, now=clock)
        stats = fold(stats, outcome)
        mistake = stats.mistakes[-1] if not outcome.is_correct and stats.mistakes else None
        session = update_session(session, outcome.is_correct, decision_time, mistake)

    if session is not None:
        sessions.append(end_session(session, now=clock))
    if stats is None:
        stats = Statistics(session_start_time=start_time)

    result = PracticeResult(
        n_hands=n_hands,
        stats=stats,
        sessions=tuple(sessions),
        accuracy=accuracy(stats),
        mode=mode,
        level=level,
    )
    logger.info("simulated practice: %s", result)
    return result


# ─── Mode comparison ──────────────────────────────────────────────────────────


def compare_modes(
    n_hands: int = 500,
    level: int = DifficultyLevel.SURRENDER,
    modes: tuple[TrainingMode, ...] = (TrainingMode.RANDOM, TrainingMode.WEAKNESS, TrainingMode.BALANCED),
    seed: int = 42,
) -> dict[str, PracticeResult]:
    """Run the same learner under several modes with the same seed.

    Returns:
        {mode value: PracticeResult}
    """
    return {
        mode.value: simulate_practice(n_hands=n_hands, level=level, mode=mode, seed=seed)
        for mode in modes
    }


# ─── Entry point ──────────────────────────────────────────────────────────────

if __name__ == "__main__":
    import sys

    from src.utils import setup_logger

    setup_logger()
    n = int(sys.argv[1]) if len(sys.argv) > 1 else 1_000
    print(f"Simulating {n:,} hands per mode …\n")
    for name, res in compare_modes(n_hands=n).items():
        print(f"{name:<9} {res}")
        print(f"          session accuracy: {res.session_accuracies}")
