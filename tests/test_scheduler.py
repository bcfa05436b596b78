"""Tests for src/training/scheduler.py — weighted and spaced selection."""

from __future__ import annotations

from collections import Counter

import numpy as np
import pytest

from src.engine.config import TrainingMode
from src.engine.hand import HandType
from src.engine.strategy import Action
from src.training.scenario_keys import ScenarioKey
from src.training.scheduler import (
    next_review_interval,
    next_scenario,
    quadratic_weakness,
    select_scenario_key,
    select_stale_key,
    select_weak_key,
    weak_candidates,
    weighted_choice,
)
from src.training.statistics import DecisionOutcome, fold_all
from tests.conftest import NOW

DAY = 24 * 60 * 60
WEAK = ScenarioKey(16, '10', HandType.HARD)
STRONG = ScenarioKey(12, '4', HandType.HARD)


def _plays(key: ScenarioKey, correct: int, incorrect: int, t: float = NOW):
    results = [True] * correct + [False] * incorrect
    return [
        DecisionOutcome(Action.HIT, key.hand_type, ok, dealer_rank=key.dealer_rank, player_total=key.player_total, now=t)
        for ok in results
    ]


@pytest.fixture
def mixed_stats():
    # 16 vs 10 at 20%, 12 vs 4 at 80%
    return fold_all(None, _plays(WEAK, 1, 4) + _plays(STRONG, 4, 1))


# ─── Primitives ───────────────────────────────────────────────────────────────

class TestWeightedChoice:
    def test_proportional(self):
        rng = np.random.default_rng(0)
        counts = Counter(weighted_choice([1, 3], rng) for _ in range(4000))
        assert 0.7 < counts[1] / 4000 < 0.8

    def test_zero_weight_never_drawn(self):
        rng = np.random.default_rng(0)
        assert all(weighted_choice([0, 5, 0], rng) == 1 for _ in range(200))

    def test_all_zero_falls_back(self):
        assert weighted_choice([0, 0]) == 0

    def test_empty(self):
        with pytest.raises(ValueError):
            weighted_choice([])


class TestReviewIntervals:
    @pytest.mark.parametrize("acc, count, hours", [
        (80, 0, 1), (80, 2, 24), (96, 2, 36), (50, 2, 12), (80, 99, 336), (80, -1, 1),
    ])
    def test_table(self, acc, count, hours):
        assert next_review_interval(acc, count) == hours


def test_quadratic_weakness():
    assert quadratic_weakness(100) == 0
    assert quadratic_weakness(80) == 400


# ─── Weakness ─────────────────────────────────────────────────────────────────

class TestWeakSelection:
    def test_prefers_low_accuracy(self, mixed_stats):
        rng = np.random.default_rng(1)
        picks = Counter(select_weak_key(mixed_stats, rng=rng) for _ in range(1000))
        # weights 6400 vs 400
        assert picks[WEAK] > 0.9 * 1000
        assert picks[STRONG] > 0

    def test_custom_weight_policy(self, mixed_stats):
        rng = np.random.default_rng(1)
        picks = Counter(
            select_weak_key(mixed_stats, weight_policy=lambda acc: acc, rng=rng) for _ in range(1000)
        )
        assert picks[STRONG] > picks[WEAK]

    def test_threshold(self, mixed_stats):
        assert [s.key for s in weak_candidates(mixed_stats, mastery_threshold=50)] == [WEAK]

    def test_none_when_mastered(self):
        stats = fold_all(None, _plays(WEAK, 5, 0))
        assert select_weak_key(stats) is None

    def test_empty_stats(self):
        assert select_weak_key(None) is None


class TestStaleSelection:
    def test_priority_uses_error_and_age(self):
        # Ranked on hours since last seen; hours past the window would flip it.
        stats = fold_all(None,
            _plays(WEAK, 1, 1, t=NOW - 8 * DAY)           # 50 * 192h
            + _plays(STRONG, 9, 1, t=NOW - 30 * DAY)      # 10 * 720h
        )
        assert select_stale_key(stats, now=NOW) == WEAK

    def test_due_ignores_review_interval(self):
        # next_review_interval(50, 0) is half an hour, but the window is a week.
        stats = fold_all(None, _plays(WEAK, 1, 1, t=NOW - 2 * 3600))
        assert select_stale_key(stats, now=NOW) is None

    def test_nothing_due(self, mixed_stats):
        assert select_stale_key(mixed_stats, now=NOW + 60) is None


# ─── Modes ────────────────────────────────────────────────────────────────────

class TestSelectScenarioKey:
    def test_random_defers(self, mixed_stats):
        assert select_scenario_key(mixed_stats, 'random') is None

    def test_weakness_mode(self, mixed_stats):
        assert select_scenario_key(mixed_stats, TrainingMode.WEAKNESS, np.random.default_rng(0)) in (WEAK, STRONG)

    def test_spaced_mode(self, mixed_stats):
        assert select_scenario_key(mixed_stats, 'spaced', now=NOW + 8 * DAY) is not None

    def test_balanced_mix(self, mixed_stats):
        rng = np.random.default_rng(3)
        picks = [select_scenario_key(mixed_stats, 'balanced', rng, now=NOW) for _ in range(1000)]
        targeted = sum(k is not None for k in picks)
        # only the weakness branch can fire: nothing is stale
        assert 0.33 < targeted / 1000 < 0.47

    @pytest.mark.parametrize("mode", ['speed', 'custom'])
    def test_undriven_modes(self, mixed_stats, mode):
        with pytest.raises(ValueError):
            select_scenario_key(mixed_stats, mode)


class TestNextScenario:
    def test_targets_weak_key(self):
        stats = fold_all(None, _plays(WEAK, 0, 5))
        s = next_scenario(stats, 4, 'weakness', np.random.default_rng(0))
        assert s.scenario_key == WEAK
        assert s.targeted

    def test_mastery_none_when_done(self):
        stats = fold_all(None, _plays(WEAK, 5, 0))
        assert next_scenario(stats, 4, 'mastery', np.random.default_rng(0)) is None

    def test_mastery_none_without_history(self):
        assert next_scenario(None, 4, TrainingMode.MASTERY) is None

    def test_random_generates(self):
        s = next_scenario(None, 2, 'random', np.random.default_rng(0))
        assert s is not None
        assert not s.targeted
