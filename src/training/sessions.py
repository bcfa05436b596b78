"""
Training sessions: plain-data records of one sitting, plus goals.

A session is a frozen record updated by returning copies. Storage and UI
belong to the caller; this module only does the bookkeeping.

Goal types:
    hands     hands played ≥ target
    accuracy  session accuracy (%) ≥ target
    time      session length (minutes) ≥ target
    streak    longest in-session streak ≥ target (set during updates)
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, replace
from enum import Enum
from typing import Sequence

from src.engine.config import DifficultyLevel, TrainingMode, parse_mode, validate_level
from src.training.statistics import MistakeRecord, percent


class GoalType(Enum):
    HANDS = 'hands'
    ACCURACY = 'accuracy'
    TIME = 'time'
    STREAK = 'streak'


@dataclass(frozen=True)
class SessionGoal:
    type: GoalType
    target: float
    achieved: bool = False


@dataclass(frozen=True)
class TrainingSession:
    """One sitting of practice.

    Attributes:
        id:                 Unique session id ('session_<ms>_<hex>').
        start_time:         Epoch seconds.
        end_time:           Epoch seconds, None while the session is open.
        mode:               Training mode used.
        level:              Difficulty level used.
        hands_played:       Decisions recorded.
        correct_decisions:  Correct decisions.
        incorrect_decisions: Incorrect decisions.
        goals:              Goals with their achieved flags.
        mistakes:           Mistakes made during the session.
        avg_decision_time:  Mean over timed decisions (ms), None if none.
        timed_decisions:    Decisions that carried a time.
        current_streak:     Consecutive correct decisions.
        best_streak:        Longest streak within the session.
    """

    id: str
    start_time: float
    mode: TrainingMode
    level: DifficultyLevel
    end_time: float | None = None
    hands_played: int = 0
    correct_decisions: int = 0
    incorrect_decisions: int = 0
    goals: tuple[SessionGoal, ...] = ()
    mistakes: tuple[MistakeRecord, ...] = ()
    avg_decision_time: float | None = None
    timed_decisions: int = 0
    current_streak: int = 0
    best_streak: int = 0


def _session_id(now: float) -> str:
    return f"session_{int(now * 1000)}_{uuid.uuid4().hex[:9]}"


def create_goals(
    hands: int | None = None,
    accuracy: float | None = None,
    time_minutes: float | None = None,
    streak: int | None = None,
) -> tuple[SessionGoal, ...]:
    """Build the goal list for whichever targets are given."""
    goals = []
    if hands:
        goals.append(SessionGoal(GoalType.HANDS, hands))
    if accuracy:
        goals.append(SessionGoal(GoalType.ACCURACY, accuracy))
    if time_minutes:
        goals.append(SessionGoal(GoalType.TIME, time_minutes))
    if streak:
        goals.append(SessionGoal(GoalType.STREAK, streak))
    return tuple(goals)


def create_session(
    mode: TrainingMode | str,
    level: int,
    goals: Sequence[SessionGoal] = (),
    now: float | None = None,
) -> TrainingSession:
    now = now if now is not None else time.time()
    return TrainingSession(
        id=_session_id(now),
        start_time=now,
        mode=parse_mode(mode),
        level=validate_level(level),
        goals=tuple(goals),
    )


def update_session(
    session: TrainingSession,
    is_correct: bool,
    decision_time: float | None = None,
    mistake: MistakeRecord | None = None,
) -> TrainingSession:
    """Record one decision. Streak goals are marked once reached."""
    current_streak = session.current_streak + 1 if is_correct else 0
    best_streak = max(session.best_streak, current_streak)

    avg = session.avg_decision_time
    timed = session.timed_decisions
    if decision_time is not None:
        avg = ((avg or 0.0) * timed + decision_time) / (timed + 1)
        timed += 1

    goals = tuple(
        replace(g, achieved=True)
        if g.type is GoalType.STREAK and best_streak >= g.target
        else g
        for g in session.goals
    )

    return replace(
        session,
        hands_played=session.hands_played + 1,
        correct_decisions=session.correct_decisions + (1 if is_correct else 0),
        incorrect_decisions=session.incorrect_decisions + (0 if is_correct else 1),
        mistakes=session.mistakes + (mistake,) if mistake is not None else session.mistakes,
        avg_decision_time=avg,
        timed_decisions=timed,
        current_streak=current_streak,
        best_streak=best_streak,
        goals=goals,
    )


def session_accuracy(session: TrainingSession) -> int:
    return percent(session.correct_decisions, session.correct_decisions + session.incorrect_decisions)


def session_duration_minutes(session: TrainingSession, now: float | None = None) -> int:
    end = session.end_time
    if end is None:
        end = now if now is not None else time.time()
    return round((end - session.start_time) / 60)


def end_session(session: TrainingSession, now: float | None = None) -> TrainingSession:
    """Close the session and evaluate hands/accuracy/time goals."""
    end_time = now if now is not None else time.time()
    accuracy = session_accuracy(session)
    minutes = (end_time - session.start_time) / 60

    def achieved(goal: SessionGoal) -> bool:
        if goal.type is GoalType.HANDS:
            return session.hands_played >= goal.target
        if goal.type is GoalType.ACCURACY:
            return accuracy >= goal.target
        if goal.type is GoalType.TIME:
            return minutes >= goal.target
        return goal.achieved

    return replace(
        session,
        end_time=end_time,
        goals=tuple(replace(g, achieved=achieved(g)) for g in session.goals),
    )


def format_duration(minutes: int) -> str:
    """Format minutes as '45m' or '1h 5m'.

    Examples:
        >>> format_duration(65)
        '1h 5m'
    """
    if minutes < 60:
        return f"{minutes}m"
    return f"{minutes // 60}h {minutes % 60}m"


@dataclass(frozen=True)
class SessionSummary:
    accuracy: int
    duration: str
    hands_played: int
    mistake_count: int
    avg_decision_time: str
    goals_achieved: int
    total_goals: int


def session_summary(session: TrainingSession, now: float | None = None) -> SessionSummary:
    avg = session.avg_decision_time
    return SessionSummary(
        accuracy=session_accuracy(session),
        duration=format_duration(session_duration_minutes(session, now)),
        hands_played=session.hands_played,
        mistake_count=len(session.mistakes),
        avg_decision_time=f"{avg / 1000:.1f}s" if avg else "N/A",
        goals_achieved=sum(1 for g in session.goals if g.achieved),
        total_goals=len(session.goals),
    )


def compare_sessions(current: TrainingSession, previous: TrainingSession) -> dict[str, float]:
    """Deltas from *previous* to *current*. Positive speed_change = faster."""
    return {
        'accuracy_change': session_accuracy(current) - session_accuracy(previous),
        'speed_change': (previous.avg_decision_time or 0.0) - (current.avg_decision_time or 0.0),
        'hands_change': current.hands_played - previous.hands_played,
    }


@dataclass(frozen=True)
class SessionAggregate:
    total_sessions: int = 0
    total_hands: int = 0
    total_correct: int = 0
    total_incorrect: int = 0
    overall_accuracy: int = 0
    avg_session_length: int = 0
    total_training_time: int = 0
    improvement_trend: float = 0.0


def aggregate_sessions(
    sessions: Sequence[TrainingSession],
    now: float | None = None,
) -> SessionAggregate:
    """Totals across sessions plus an improvement trend.

    The trend (≥ 4 sessions) is the mean accuracy of the most recent half
    minus that of the older half, ordered by start time, rounded to 0.1.
    """
    if not sessions:
        return SessionAggregate()

    ordered = sorted(sessions, key=lambda s: s.start_time)
    total_hands = sum(s.hands_played for s in ordered)
    total_correct = sum(s.correct_decisions for s in ordered)
    total_time = sum(session_duration_minutes(s, now) for s in ordered)

    trend = 0.0
    if len(ordered) >= 4:
        split = len(ordered) - len(ordered) // 2
        older, recent = ordered[:split], ordered[split:]
        recent_mean = sum(session_accuracy(s) for s in recent) / len(recent)
        older_mean = sum(session_accuracy(s) for s in older) / len(older)
        trend = round(recent_mean - older_mean, 1)

    return SessionAggregate(
        total_sessions=len(ordered),
        total_hands=total_hands,
        total_correct=total_correct,
        total_incorrect=sum(s.incorrect_decisions for s in ordered),
        overall_accuracy=percent(total_correct, total_hands),
        avg_session_length=round(total_time / len(ordered)),
        total_training_time=total_time,
        improvement_trend=trend,
    )
