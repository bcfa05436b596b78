"""Tests for the printed progress report (src/analysis/strategy_report.py).

Tests verify that each print function produces its section header and the
key figures for a small simulated ledger, and degrades gracefully on an
empty one.
"""

from __future__ import annotations

import pytest

from src.analysis.simulator import PracticeResult, simulate_practice
from src.analysis.strategy_report import (
    print_breakdown,
    print_full_report,
    print_mistakes,
    print_recommendations,
    print_summary,
    print_timing,
    print_weakest,
)
from src.training.statistics import create_initial_stats
from tests.conftest import NOW


@pytest.fixture(scope="module")
def result() -> PracticeResult:
    return simulate_practice(n_hands=200, hands_per_session=50, seed=21)


@pytest.fixture
def empty():
    return create_initial_stats(NOW)


# ─── print_summary ────────────────────────────────────────────────────────────


class TestPrintSummary:
    def test_header_and_totals(self, result: PracticeResult, capsys: pytest.CaptureFixture) -> None:
        print_summary(result.stats)
        out = capsys.readouterr().out
        assert "Training Summary" in out
        assert "Decisions:       200" in out
        assert f"Accuracy:        {result.accuracy}%" in out

    def test_empty(self, empty, capsys: pytest.CaptureFixture) -> None:
        print_summary(empty)
        assert "Accuracy:        0%" in capsys.readouterr().out


# ─── print_breakdown ──────────────────────────────────────────────────────────


class TestPrintBreakdown:
    def test_lists_every_category(self, result: PracticeResult, capsys: pytest.CaptureFixture) -> None:
        print_breakdown(result.stats)
        out = capsys.readouterr().out
        assert "Accuracy Breakdown" in out
        for label in ("hard", "soft", "pair", "surrender", "A"):
            assert label in out

    def test_empty_rows_dashed(self, empty, capsys: pytest.CaptureFixture) -> None:
        print_breakdown(empty)
        out = capsys.readouterr().out
        assert "%" not in out.split("Accuracy Breakdown")[1]


# ─── print_weakest / print_mistakes ───────────────────────────────────────────


class TestPrintWeakest:
    def test_rows(self, result: PracticeResult, capsys: pytest.CaptureFixture) -> None:
        print_weakest(result.stats, min_attempts=2)
        out = capsys.readouterr().out
        assert "Weakest Scenarios" in out
        assert " vs " in out

    def test_no_data(self, empty, capsys: pytest.CaptureFixture) -> None:
        print_weakest(empty)
        assert "Not enough data yet." in capsys.readouterr().out


class TestPrintMistakes:
    def test_sections(self, result: PracticeResult, capsys: pytest.CaptureFixture) -> None:
        print_mistakes(result.stats)
        out = capsys.readouterr().out
        assert f"({len(result.stats.mistakes)} logged)" in out
        assert "Most common:" in out
        assert "instead of" in out

    def test_none_logged(self, empty, capsys: pytest.CaptureFixture) -> None:
        print_mistakes(empty)
        assert "No mistakes logged." in capsys.readouterr().out


# ─── print_timing / print_recommendations ─────────────────────────────────────


class TestPrintTiming:
    def test_records(self, result: PracticeResult, capsys: pytest.CaptureFixture) -> None:
        print_timing(result.stats)
        out = capsys.readouterr().out
        assert "Decision Timing" in out
        assert "Fastest correct:" in out
        assert "Slowest scenario:" in out

    def test_empty(self, empty, capsys: pytest.CaptureFixture) -> None:
        print_timing(empty)
        assert "Overall average:  N/A" in capsys.readouterr().out


class TestPrintRecommendations:
    def test_session_line(self, result: PracticeResult, capsys: pytest.CaptureFixture) -> None:
        print_recommendations(result.stats, result.sessions, now=result.sessions[-1].end_time)
        out = capsys.readouterr().out
        assert "Recommendations" in out
        assert "Sessions: 4" in out
        assert "Hands: 200" in out

    def test_empty(self, empty, capsys: pytest.CaptureFixture) -> None:
        print_recommendations(empty, now=NOW)
        assert "no specific suggestions yet" in capsys.readouterr().out


def test_full_report_has_every_section(result: PracticeResult, capsys: pytest.CaptureFixture) -> None:
    print_full_report(result.stats, result.sessions, now=result.sessions[-1].end_time)
    out = capsys.readouterr().out
    for header in (
        "Training Summary",
        "Accuracy Breakdown",
        "Weakest Scenarios",
        "Mistakes",
        "Decision Timing",
        "Recommendations",
    ):
        assert header in out
