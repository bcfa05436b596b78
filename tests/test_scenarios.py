"""Tests for src/engine/scenarios.py — level, targeted and filtered synthesis."""

from __future__ import annotations

import numpy as np
import pytest

from src.engine.hand import HandType, evaluate, hand_type, is_pair
from src.engine.scenarios import (
    PRESET_FILTERS,
    CustomScenarioFilter,
    TrainingScenario,
    generate_filtered,
    generate_for_level,
    generate_targeted,
    hand_total_matches,
    hard_hand_values,
)
from src.engine.strategy import Action
from src.training.scenario_keys import ScenarioKey, all_scenario_keys
from src.training.statistics import DecisionOutcome, fold_all


def _many(level: int, n: int = 400, seed: int = 0) -> list[TrainingScenario]:
    rng = np.random.default_rng(seed)
    return [generate_for_level(level, rng) for _ in range(n)]


# ─── generate_for_level ───────────────────────────────────────────────────────

class TestGenerateForLevel:
    def test_level_one_hard_only(self):
        for s in _many(1):
            assert hand_type(s.player_cards) is HandType.HARD
            assert not s.can_split
            assert not s.can_surrender

    def test_level_two_hard_and_soft(self):
        kinds = {hand_type(s.player_cards) for s in _many(2)}
        assert kinds == {HandType.HARD, HandType.SOFT}

    def test_level_three_includes_pairs_without_surrender(self):
        scenarios = _many(3)
        assert any(s.can_split for s in scenarios)
        assert not any(s.can_surrender for s in scenarios)

    def test_level_four_capability_combinations(self):
        combos = {(s.can_double, s.can_split, s.can_surrender) for s in _many(4, n=600)}
        assert (True, True, False) in combos       # pair
        assert (True, False, True) in combos       # two-card non-pair
        assert (False, False, False) in combos     # three-card hard

    def test_level_four_surrender_slice(self):
        hits = [
            s for s in _many(4, n=600)
            if s.can_surrender and evaluate(s.player_cards).total in (15, 16)
            and s.dealer_upcard.value in (9, 10, 11)
        ]
        assert hits

    def test_flags_follow_cards(self):
        for s in _many(4):
            assert s.can_double == (len(s.player_cards) == 2)
            assert s.can_split == is_pair(s.player_cards)
            if s.can_surrender:
                assert len(s.player_cards) == 2 and not is_pair(s.player_cards)

    def test_each_slot_is_its_own_card(self):
        # Ranks and suits may repeat; the Card objects themselves may not.
        for s in _many(4, n=200):
            cards = s.player_cards + (s.dealer_upcard,)
            assert len({id(c) for c in cards}) == len(cards)

    def test_never_busted_or_blackjack(self):
        for s in _many(4):
            v = evaluate(s.player_cards)
            assert not v.is_busted
            assert not v.is_blackjack

    def test_untargeted(self):
        s = generate_for_level(2, np.random.default_rng(1))
        assert s.scenario_key is None
        assert not s.targeted

    def test_seed_reproducible(self):
        a = generate_for_level(4, np.random.default_rng(9))
        b = generate_for_level(4, np.random.default_rng(9))
        assert a.player_cards == b.player_cards
        assert a.dealer_upcard == b.dealer_upcard

    def test_bad_level(self):
        with pytest.raises(ValueError):
            generate_for_level(0)


# ─── generate_targeted ────────────────────────────────────────────────────────

class TestGenerateTargeted:
    def test_every_reachable_key(self):
        rng = np.random.default_rng(5)
        for key in all_scenario_keys(4):
            s = generate_targeted(key.player_total, key.dealer_rank, key.hand_type, 4, rng)
            assert s.scenario_key == key
            assert s.targeted
            assert s.tracking_key == key
            assert hand_total_matches(s), key

    @pytest.mark.parametrize("total", range(5, 21))
    def test_exact_hard_totals(self, total):
        rng = np.random.default_rng(total)
        for _ in range(20):
            s = generate_targeted(total, '7', 'hard', 4, rng)
            v = evaluate(s.player_cards)
            assert v.total == total
            assert not v.is_soft
            assert not is_pair(s.player_cards)

    def test_dealer_face_for_ten(self):
        s = generate_targeted(16, '10', 'hard', 4, np.random.default_rng(0))
        assert s.dealer_upcard.value == 10

    def test_soft_is_ace_plus_card(self):
        s = generate_targeted(17, '6', 'soft', 2, np.random.default_rng(0))
        ranks = sorted(c.rank for c in s.player_cards)
        assert ranks == ['6', 'A']

    def test_ace_pair(self):
        s = generate_targeted(22, 'A', 'pair', 3, np.random.default_rng(0))
        assert [c.rank for c in s.player_cards] == ['A', 'A']
        assert s.can_split

    def test_pair_not_splittable_below_level_three(self):
        s = generate_targeted(16, '6', 'pair', 2, np.random.default_rng(0))
        assert is_pair(s.player_cards)
        assert not s.can_split

    def test_unreachable_hard_total_falls_back(self):
        s = generate_targeted(4, '7', 'hard', 4, np.random.default_rng(0))
        assert len(s.player_cards) == 2
        assert s.scenario_key == ScenarioKey(4, '7', HandType.HARD)

    def test_bad_dealer_rank(self):
        with pytest.raises(ValueError):
            generate_targeted(16, '1', 'hard', 4)


class TestHardHandValues:
    def test_sums_to_total(self):
        rng = np.random.default_rng(0)
        for total in range(5, 31):
            values = hard_hand_values(total, rng)
            assert sum(values) == total
            assert all(2 <= v <= 10 for v in values)

    def test_fallback_never_raises(self):
        assert hard_hand_values(3, np.random.default_rng(0)) == (7, 2)
        assert hard_hand_values(40, np.random.default_rng(0)) == (7, 10)

    def test_two_cards_only_when_asked(self):
        rng = np.random.default_rng(0)
        for _ in range(50):
            assert len(hard_hand_values(16, rng, allow_three=False)) == 2


# ─── generate_filtered ────────────────────────────────────────────────────────

class TestGenerateFiltered:
    def test_respects_filter(self):
        f = CustomScenarioFilter((HandType.HARD,), (16,), ('7', '8'))
        rng = np.random.default_rng(0)
        for _ in range(30):
            s = generate_filtered(f, 4, rng=rng)
            assert s.scenario_key.player_total == 16
            assert s.scenario_key.dealer_rank in ('7', '8')

    def test_presets_build(self):
        rng = np.random.default_rng(0)
        for name, f in PRESET_FILTERS.items():
            for _ in range(10):
                s = generate_filtered(f, 4, rng=rng)
                assert s.scenario_key.hand_type in f.hand_types, name
                assert hand_total_matches(s), name

    def test_soft_never_gets_uncomposable_total(self):
        f = PRESET_FILTERS['doubling-hands']
        rng = np.random.default_rng(1)
        for _ in range(100):
            key = generate_filtered(f, 4, rng=rng).scenario_key
            if key.hand_type is HandType.SOFT:
                assert 13 <= key.player_total <= 20

    def test_max_accuracy_skips_mastered_totals(self, now):
        f = CustomScenarioFilter((HandType.HARD,), (12, 16), ('10',), max_accuracy=90)
        mastered = [
            DecisionOutcome(Action.STAND, HandType.HARD, True, dealer_rank='10', player_total=12, now=now)
        ] * 10
        stats = fold_all(None, mastered)
        rng = np.random.default_rng(0)
        for _ in range(20):
            assert generate_filtered(f, 4, stats, rng).scenario_key.player_total == 16

    def test_empty_filter_rejected(self):
        with pytest.raises(ValueError):
            CustomScenarioFilter((), (16,), ('10',))

    def test_string_hand_types_coerced(self):
        f = CustomScenarioFilter(('soft',), (18,), ('9',))
        assert f.hand_types == (HandType.SOFT,)
