"""
Derived views over a Statistics snapshot.

Nothing here changes the ledger: every function reads a snapshot (and
optionally the session history) and returns plain values, numpy matrices
or pandas frames for the dashboard and the printed report.

Matrix layout for heat maps:
    rows    = CHART_TOTALS[hand_type] (ascending)
    columns = dealer ranks 2, 3, ..., 10, A
    NaN     = no attempts recorded for that cell
"""

from __future__ import annotations

import time
from collections import Counter
from dataclasses import dataclass
from typing import Sequence

import numpy as np
import pandas as pd

from src.engine.cards import DEALER_RANKS
from src.engine.hand import HandType
from src.engine.strategy import CHART_TOTALS
from src.training.scenario_keys import ScenarioKey, parse_scenario_key
from src.training.sessions import TrainingSession, session_accuracy
from src.training.statistics import MistakeRecord, Statistics, accuracy, bucket_accuracy, percent

DEFAULT_MIN_ATTEMPTS: int = 3
STALE_AFTER_SECONDS: float = 7 * 24 * 60 * 60

SLOW_DECISION_MS: float = 3000.0
WEAK_SCENARIO_ACCURACY: int = 70
STALE_WARNING_COUNT: int = 10
REPEATED_MISTAKE_COUNT: int = 3
TREND_THRESHOLD: int = 3


@dataclass(frozen=True)
class ScenarioSummary:
    key: ScenarioKey
    accuracy: int
    attempts: int
    last_seen: float | None = None


# ─── Scenario discovery ───────────────────────────────────────────────────────

def _summaries(stats: Statistics) -> list[ScenarioSummary]:
    return [
        ScenarioSummary(key, bucket_accuracy(bucket), bucket.attempts, bucket.last_seen)
        for key, bucket in stats.by_scenario.items()
    ]


def find_weakest_scenarios(
    stats: Statistics | None,
    count: int = 10,
    min_attempts: int = DEFAULT_MIN_ATTEMPTS,
) -> list[ScenarioSummary]:
    """Scenarios with ≥ min_attempts, lowest accuracy first.

    Ties keep the order in which scenarios were first seen.
    """
    if stats is None:
        return []
    eligible = [s for s in _summaries(stats) if s.attempts >= min_attempts]
    eligible.sort(key=lambda s: s.accuracy)
    return eligible[:count]


def find_stale_scenarios(
    stats: Statistics | None,
    max_age: float = STALE_AFTER_SECONDS,
    now: float | None = None,
) -> list[ScenarioSummary]:
    """Scenarios not seen for more than *max_age* seconds, oldest first."""
    if stats is None:
        return []
    now = now if now is not None else time.time()
    stale = [s for s in _summaries(stats) if now - (s.last_seen or 0.0) > max_age]
    stale.sort(key=lambda s: s.last_seen or 0.0)
    return stale


# ─── Heat-map matrices ────────────────────────────────────────────────────────

def accuracy_matrix(stats: Statistics | None, kind: HandType) -> np.ndarray:
    """Per-cell accuracy (0–100) for one hand type; NaN where unplayed.

    Returns:
        float64 array of shape (len(CHART_TOTALS[kind]), 10).
    """
    totals = CHART_TOTALS[kind]
    matrix = np.full((len(totals), len(DEALER_RANKS)), np.nan)
    if stats is None:
        return matrix
    for i, total in enumerate(totals):
        for j, dealer_rank in enumerate(DEALER_RANKS):
            bucket = stats.by_scenario.get(ScenarioKey(total, dealer_rank, kind))
            if bucket is not None and bucket.attempts > 0:
                matrix[i, j] = bucket_accuracy(bucket)
    return matrix


def attempts_matrix(stats: Statistics | None, kind: HandType) -> np.ndarray:
    """Per-cell attempt counts, same layout as accuracy_matrix()."""
    totals = CHART_TOTALS[kind]
    matrix = np.zeros((len(totals), len(DEALER_RANKS)), dtype=np.int64)
    if stats is None:
        return matrix
    for i, total in enumerate(totals):
        for j, dealer_rank in enumerate(DEALER_RANKS):
            bucket = stats.by_scenario.get(ScenarioKey(total, dealer_rank, kind))
            if bucket is not None:
                matrix[i, j] = bucket.attempts
    return matrix


def scenario_frame(stats: Statistics | None) -> pd.DataFrame:
    """One row per tracked scenario, weakest first."""
    columns = ['hand_type', 'player_total', 'dealer', 'correct', 'incorrect', 'accuracy', 'avg_time_ms']
    if stats is None or not stats.by_scenario:
        return pd.DataFrame(columns=columns)
    rows = [
        {
            'hand_type': key.hand_type.value,
            'player_total': key.player_total,
            'dealer': key.dealer_rank,
            'correct': bucket.correct,
            'incorrect': bucket.incorrect,
            'accuracy': bucket_accuracy(bucket),
            'avg_time_ms': round(bucket.avg_time),
        }
        for key, bucket in stats.by_scenario.items()
    ]
    return pd.DataFrame(rows, columns=columns).sort_values('accuracy', kind='stable').reset_index(drop=True)


# ─── Timing and mistakes ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class DecisionTimeAnalysis:
    overall_avg: int
    by_action: dict[str, int]
    by_hand_type: dict[str, int]
    slowest_scenarios: list[tuple[ScenarioKey, int]]


def analyze_decision_times(stats: Statistics) -> DecisionTimeAnalysis:
    """Average decision times (ms, rounded) by action, hand type and scenario."""
    speed = stats.speed_records
    overall = round(speed.total_time_tracked / speed.decisions_tracked) if speed.decisions_tracked else 0
    slowest = sorted(
        ((key, round(b.avg_time)) for key, b in stats.by_scenario.items() if b.avg_time > 0),
        key=lambda item: item[1],
        reverse=True,
    )[:10]
    return DecisionTimeAnalysis(
        overall_avg=overall,
        by_action={a.value: round(b.avg_time) for a, b in stats.by_action.items() if b.avg_time},
        by_hand_type={t.value: round(b.avg_time) for t, b in stats.by_hand_type.items() if b.avg_time},
        slowest_scenarios=slowest,
    )


@dataclass(frozen=True)
class MistakeAnalysis:
    by_hand_type: dict[str, int]
    by_dealer_card: dict[str, int]
    by_action: dict[str, int]
    most_common: list[tuple[str, int]]
    recent: list[MistakeRecord]


def mistake_label(m: MistakeRecord) -> str:
    """e.g. '16 vs 10 (hard)'."""
    return f"{m.player_total} vs {m.key.dealer_rank} ({m.hand_type.value})"


def analyze_mistakes(mistakes: Sequence[MistakeRecord]) -> MistakeAnalysis:
    """Group mistakes by hand type, dealer card and wrong-for-right action.

    ``most_common`` lists the ten most frequent scenarios; ``recent`` the
    last twenty mistakes, newest first.
    """
    by_hand_type = {t.value: 0 for t in HandType}
    by_dealer: Counter[str] = Counter()
    by_action: Counter[str] = Counter()
    scenarios: Counter[str] = Counter()
    for m in mistakes:
        by_hand_type[m.hand_type.value] += 1
        by_dealer[m.key.dealer_rank] += 1
        by_action[f"{m.player_action.value} instead of {m.correct_action.value}"] += 1
        scenarios[mistake_label(m)] += 1

    return MistakeAnalysis(
        by_hand_type=by_hand_type,
        by_dealer_card=dict(by_dealer),
        by_action=dict(by_action),
        most_common=scenarios.most_common(10),
        recent=list(reversed(mistakes[-20:])),
    )


# ─── Trends and recommendations ───────────────────────────────────────────────

@dataclass(frozen=True)
class PerformanceComparison:
    current_period_accuracy: int
    previous_period_accuracy: int
    change: int
    trend: str  # 'improving' | 'declining' | 'stable'


def _period_accuracy(sessions: Sequence[TrainingSession]) -> int:
    correct = sum(s.correct_decisions for s in sessions)
    total = sum(s.correct_decisions + s.incorrect_decisions for s in sessions)
    return percent(correct, total)


def compare_performance(
    sessions: Sequence[TrainingSession],
    period_days: float = 7,
    now: float | None = None,
) -> PerformanceComparison:
    """Accuracy of the last *period_days* against the period before it."""
    now = now if now is not None else time.time()
    period = period_days * 24 * 60 * 60
    current = [s for s in sessions if s.start_time > now - period]
    previous = [s for s in sessions if now - 2 * period < s.start_time <= now - period]

    current_acc = _period_accuracy(current)
    previous_acc = _period_accuracy(previous)
    change = current_acc - previous_acc
    if change > TREND_THRESHOLD:
        trend = 'improving'
    elif change < -TREND_THRESHOLD:
        trend = 'declining'
    else:
        trend = 'stable'
    return PerformanceComparison(current_acc, previous_acc, change, trend)


def trend_frame(sessions: Sequence[TrainingSession]) -> pd.DataFrame:
    """Per-session accuracy over time, for line charts."""
    rows = [
        {
            'start_time': pd.Timestamp(s.start_time, unit='s'),
            'accuracy': session_accuracy(s),
            'hands_played': s.hands_played,
            'avg_decision_time': s.avg_decision_time or 0.0,
        }
        for s in sorted(sessions, key=lambda s: s.start_time)
        if s.hands_played > 0
    ]
    return pd.DataFrame(rows, columns=['start_time', 'accuracy', 'hands_played', 'avg_decision_time'])


def generate_recommendations(
    stats: Statistics,
    sessions: Sequence[TrainingSession] = (),
    now: float | None = None,
) -> list[str]:
    """Short, prioritized study suggestions."""
    recommendations: list[str] = []

    weakest = find_weakest_scenarios(stats, count=5, min_attempts=5)
    if weakest and weakest[0].accuracy < WEAK_SCENARIO_ACCURACY:
        key = weakest[0].key
        recommendations.append(
            f"Focus on {key.hand_type.value} {key.player_total} vs dealer {key.dealer_rank}"
            f" - only {weakest[0].accuracy}% accuracy"
        )

    stale = find_stale_scenarios(stats, now=now)
    if len(stale) > STALE_WARNING_COUNT:
        recommendations.append(
            f"{len(stale)} scenarios haven't been practiced recently - consider using Mastery Mode"
        )

    timing = analyze_decision_times(stats)
    if timing.overall_avg > SLOW_DECISION_MS:
        recommendations.append(
            f"Average decision time is {timing.overall_avg / 1000:.1f}s - try Speed Training to improve"
        )

    if stats.mistakes:
        most_common = analyze_mistakes(stats.mistakes).most_common
        if most_common and most_common[0][1] >= REPEATED_MISTAKE_COUNT:
            label, count = most_common[0]
            recommendations.append(f'You\'ve made {count} mistakes on "{label}" - review this scenario')

    if len(sessions) >= 4:
        comparison = compare_performance(sessions, now=now)
        if comparison.trend == 'declining':
            recommendations.append(
                f"Your accuracy has dropped {abs(comparison.change)}% this week - consider reviewing basics"
            )

    if not recommendations and stats.total_decisions > 50:
        overall = accuracy(stats)
        if overall >= 90:
            recommendations.append("Excellent performance! Try increasing difficulty or Speed Training")
        elif overall >= 80:
            recommendations.append("Good progress! Focus on your remaining weak spots with Mastery Mode")

    return recommendations


def key_label(key: ScenarioKey | str) -> str:
    """Human label for a key, e.g. 'Hard 16 vs 10'."""
    key = parse_scenario_key(key)
    return f"{key.hand_type.value.title()} {key.player_total} vs {key.dealer_rank}"
