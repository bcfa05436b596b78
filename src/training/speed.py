"""
Speed drills: timed challenge tiers and the timeout policy.

The countdown itself runs in the caller. When it expires the caller folds
timeout_outcome() exactly as if the player had picked a wrong action.
"""

from __future__ import annotations

from dataclasses import dataclass

from src.engine.config import validate_level
from src.engine.scenarios import TrainingScenario
from src.engine.strategy import available_actions, decide
from src.training.sessions import TrainingSession, session_accuracy
from src.training.statistics import DecisionOutcome


@dataclass(frozen=True)
class SpeedChallenge:
    name: str
    time_limit_ms: int
    hands_required: int
    accuracy_required: int


SPEED_CHALLENGES: dict[str, SpeedChallenge] = {
    'beginner': SpeedChallenge('beginner', 5000, 20, 80),
    'intermediate': SpeedChallenge('intermediate', 3000, 30, 85),
    'advanced': SpeedChallenge('advanced', 2000, 40, 90),
    'expert': SpeedChallenge('expert', 1500, 50, 95),
}


def timeout_outcome(
    scenario: TrainingScenario,
    level: int,
    time_limit_ms: float,
    session_id: str | None = None,
    now: float | None = None,
) -> DecisionOutcome:
    """The incorrect outcome recorded when the timer runs out.

    The recorded action is the first legal action that is not the correct
    one, so the ledger and mistake log see an ordinary wrong answer.
    """
    level = validate_level(level)
    correct = decide(
        scenario.player_cards,
        scenario.dealer_upcard,
        scenario.can_double,
        scenario.can_split,
        scenario.can_surrender,
        level,
    )
    legal = available_actions(
        scenario.player_cards,
        scenario.can_double,
        scenario.can_split,
        scenario.can_surrender,
        level,
    )
    recorded = next(a for a in legal if a is not correct)
    key = scenario.tracking_key
    return DecisionOutcome(
        action=recorded,
        hand_type=key.hand_type,
        is_correct=False,
        decision_time=time_limit_ms,
        dealer_rank=key.dealer_rank,
        player_total=key.player_total,
        player_cards=scenario.player_cards,
        dealer_card=scenario.dealer_upcard,
        correct_action=correct,
        session_id=session_id,
        now=now,
    )


def hands_remaining(session: TrainingSession, challenge: SpeedChallenge) -> int:
    return max(0, challenge.hands_required - session.hands_played)


def challenge_passed(session: TrainingSession, challenge: SpeedChallenge) -> bool:
    """Enough hands, accurate enough, and on average inside the time limit."""
    if session.hands_played < challenge.hands_required:
        return False
    if session_accuracy(session) < challenge.accuracy_required:
        return False
    avg = session.avg_decision_time
    return avg is None or avg <= challenge.time_limit_ms
