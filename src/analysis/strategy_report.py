"""Printed progress report for the basic-strategy trainer.

Six public functions format a Statistics ledger into human-readable tables:

    print_summary(stats)                 — totals, accuracy, streaks, level hint
    print_breakdown(stats)               — accuracy by hand type, action, upcard
    print_weakest(stats)                 — lowest-accuracy scenarios
    print_mistakes(stats)                — mistake patterns and recent errors
    print_timing(stats)                  — decision-time averages and records
    print_recommendations(stats, ...)    — prioritized study suggestions

print_full_report() runs all of them in order.
"""

from __future__ import annotations

from typing import Sequence

from src.engine.cards import DEALER_RANKS, hand_to_str
from src.engine.hand import HandType
from src.engine.strategy import Action
from src.training.analytics import (
    analyze_decision_times,
    analyze_mistakes,
    find_weakest_scenarios,
    generate_recommendations,
    key_label,
)
from src.training.difficulty import performance_message, performance_score
from src.training.sessions import TrainingSession, aggregate_sessions
from src.training.statistics import Statistics, accuracy, bucket_accuracy
from src.utils import timestamp

_RULE: str = "=" * 56


def _banner(title: str) -> None:
    print(_RULE)
    print(title)
    print(_RULE)


def _seconds(ms: float | None) -> str:
    return f"{ms / 1000:.2f}s" if ms else "N/A"


# ─── Public report functions ──────────────────────────────────────────────────

def print_summary(stats: Statistics) -> None:
    """Print overall totals, accuracy and streaks.

    Args:
        stats: Ledger snapshot to summarize.
    """
    overall = accuracy(stats)
    _banner("Training Summary")
    print(f"  Generated:       {timestamp()}")
    print(f"  Decisions:       {stats.total_decisions}")
    print(f"  Correct:         {stats.correct_decisions}")
    print(f"  Incorrect:       {stats.incorrect_decisions}")
    print(f"  Accuracy:        {overall}%")
    print(f"  Current streak:  {stats.current_streak}")
    print(f"  Longest streak:  {stats.longest_streak}")
    print(f"  Score:           {performance_score(stats):.0f}/100")
    print(f"  {performance_message(overall)}")
    print()


def print_breakdown(stats: Statistics) -> None:
    """Print accuracy by hand type, by action and by dealer upcard.

    Rows with no attempts are shown with a dash so every category is listed.
    """
    _banner("Accuracy Breakdown")
    print(f"  {'Hand type':<10}  {'Attempts':>8}  {'Accuracy':>8}")
    print(f"  {'---------':<10}  {'--------':>8}  {'--------':>8}")
    for kind in HandType:
        bucket = stats.by_hand_type.get(kind)
        attempts = bucket.attempts if bucket else 0
        shown = f"{bucket_accuracy(bucket)}%" if attempts else "-"
        print(f"  {kind.value:<10}  {attempts:>8}  {shown:>8}")
    print()

    print(f"  {'Action':<10}  {'Attempts':>8}  {'Accuracy':>8}")
    print(f"  {'------':<10}  {'--------':>8}  {'--------':>8}")
    for action in Action:
        bucket = stats.by_action.get(action)
        attempts = bucket.attempts if bucket else 0
        shown = f"{bucket_accuracy(bucket)}%" if attempts else "-"
        print(f"  {action.value:<10}  {attempts:>8}  {shown:>8}")
    print()

    print(f"  {'Upcard':<10}  {'Attempts':>8}  {'Accuracy':>8}")
    print(f"  {'------':<10}  {'--------':>8}  {'--------':>8}")
    for rank in DEALER_RANKS:
        bucket = stats.by_dealer_rank.get(rank)
        attempts = bucket.attempts if bucket else 0
        shown = f"{bucket_accuracy(bucket)}%" if attempts else "-"
        print(f"  {rank:<10}  {attempts:>8}  {shown:>8}")
    print()


def print_weakest(stats: Statistics, count: int = 10, min_attempts: int = 3) -> None:
    """Print the *count* lowest-accuracy scenarios with enough attempts."""
    weakest = find_weakest_scenarios(stats, count, min_attempts)
    _banner(f"Weakest Scenarios  (≥ {min_attempts} attempts)")
    if not weakest:
        print("  Not enough data yet.")
        print()
        return
    print(f"  {'Scenario':<20}  {'Attempts':>8}  {'Accuracy':>8}")
    print(f"  {'--------':<20}  {'--------':>8}  {'--------':>8}")
    for s in weakest:
        print(f"  {key_label(s.key):<20}  {s.attempts:>8}  {s.accuracy:>7}%")
    print()


def print_mistakes(stats: Statistics, recent: int = 5) -> None:
    """Print the most repeated mistakes and the *recent* latest ones."""
    analysis = analyze_mistakes(stats.mistakes)
    _banner(f"Mistakes  ({len(stats.mistakes)} logged)")
    if not stats.mistakes:
        print("  No mistakes logged.")
        print()
        return

    print("  Most common:")
    for label, n in analysis.most_common[:5]:
        print(f"    {label:<24} ×{n}")
    print()
    print("  Wrong for right:")
    for label, n in sorted(analysis.by_action.items(), key=lambda item: item[1], reverse=True)[:5]:
        print(f"    {label:<24} ×{n}")
    print()
    print("  Most recent:")
    for m in analysis.recent[:recent]:
        print(
            f"    {hand_to_str(m.player_cards):<10} vs {m.key.dealer_rank:<2}  "
            f"played {m.player_action.value:<9} correct {m.correct_action.value}"
        )
    print()


def print_timing(stats: Statistics) -> None:
    """Print decision-time averages by hand type and the speed records."""
    timing = analyze_decision_times(stats)
    records = stats.speed_records
    _banner("Decision Timing")
    print(f"  Overall average:  {_seconds(timing.overall_avg)}")
    print(f"  Fastest correct:  {_seconds(records.fastest_correct)}")
    print(f"  Last decision:    {_seconds(stats.last_decision_time)}")
    for kind, avg in timing.by_hand_type.items():
        print(f"    {kind:<8}        {_seconds(avg)}")
    if timing.slowest_scenarios:
        key, avg = timing.slowest_scenarios[0]
        print(f"  Slowest scenario: {key_label(key)} ({_seconds(avg)})")
    print()


def print_recommendations(
    stats: Statistics,
    sessions: Sequence[TrainingSession] = (),
    now: float | None = None,
) -> None:
    """Print study suggestions and, when sessions are given, the trend."""
    _banner("Recommendations")
    if sessions:
        agg = aggregate_sessions(sessions, now)
        trend = f"{agg.improvement_trend:+.1f}%" if agg.total_sessions >= 4 else "n/a"
        print(f"  Sessions: {agg.total_sessions}  |  Hands: {agg.total_hands}  |  Trend: {trend}")
    suggestions = generate_recommendations(stats, sessions, now)
    if not suggestions:
        print("  Keep practicing; no specific suggestions yet.")
    for line in suggestions:
        print(f"  • {line}")
    print()


def print_full_report(
    stats: Statistics,
    sessions: Sequence[TrainingSession] = (),
    now: float | None = None,
) -> None:
    """Print every report section in order."""
    print_summary(stats)
    print_breakdown(stats)
    print_weakest(stats)
    print_mistakes(stats)
    print_timing(stats)
    print_recommendations(stats, sessions, now)


# ─── Entry point ──────────────────────────────────────────────────────────────

if __name__ == "__main__":
    import sys

    from src.analysis.simulator import simulate_practice
    from src.utils import setup_logger

    setup_logger()
    n_hands = int(sys.argv[1]) if len(sys.argv) > 1 else 500
    result = simulate_practice(n_hands=n_hands, seed=42)
    last = result.sessions[-1].end_time if result.sessions else None
    print_full_report(result.stats, result.sessions, now=last)
