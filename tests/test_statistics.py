"""Tests for src/training/statistics.py — the immutable statistics ledger."""

from __future__ import annotations

import json

import pytest

from src.engine.cards import str_to_card
from src.engine.config import GameConfig
from src.engine.hand import HandType
from src.engine.scenarios import TrainingScenario
from src.engine.strategy import Action
from src.training.scenario_keys import ScenarioKey, scenario_key
from src.training.statistics import (
    MISTAKE_LOG_LIMIT,
    BucketStats,
    DecisionOutcome,
    Statistics,
    accuracy,
    clear_all_mistakes,
    clear_mistake,
    create_initial_stats,
    fold,
    fold_all,
    grade_decision,
    mistakes_for_scenario,
    percent,
    progress_from_dict,
    progress_to_dict,
    reset_statistics,
    stats_from_dict,
    stats_to_dict,
)
from tests.conftest import NOW, hand


def _outcome(correct: bool, **kwargs) -> DecisionOutcome:
    base = dict(action=Action.HIT, hand_type=HandType.HARD, is_correct=correct, now=NOW)
    base.update(kwargs)
    return DecisionOutcome(**base)


def _mistake(total: int = 16, dealer: str = '10', t: float = NOW) -> DecisionOutcome:
    return DecisionOutcome(
        action=Action.STAND,
        hand_type=HandType.HARD,
        is_correct=False,
        decision_time=1200.0,
        dealer_rank=dealer,
        player_total=total,
        player_cards=hand('10S', '6H'),
        dealer_card=str_to_card(dealer + 'D'),
        correct_action=Action.SURRENDER,
        session_id='s1',
        now=t,
    )


def _scenario(cards, upcard, **flags) -> TrainingScenario:
    defaults = dict(can_double=True, can_split=False, can_surrender=True)
    defaults.update(flags)
    return TrainingScenario(player_cards=cards, dealer_upcard=str_to_card(upcard), created_at=NOW, **defaults)


# ─── Records ──────────────────────────────────────────────────────────────────

class TestBucketStats:
    def test_record_counts(self):
        b = BucketStats().record(True, 1000.0).record(False, 3000.0)
        assert (b.correct, b.incorrect, b.attempts) == (1, 1, 2)

    def test_online_mean(self):
        b = BucketStats().record(True, 1000.0).record(True, 2000.0).record(False, 6000.0)
        assert b.avg_time == pytest.approx(3000.0)
        assert b.avg_time == pytest.approx(b.total_time / b.attempts)

    def test_last_seen_kept_when_not_given(self):
        b = BucketStats().record(True, seen_at=5.0).record(True)
        assert b.last_seen == 5.0

    def test_record_returns_new(self):
        b = BucketStats()
        b.record(True)
        assert b.attempts == 0


class TestDecisionOutcome:
    def test_coerces_strings(self):
        o = DecisionOutcome('stand', 'soft', True)
        assert o.action is Action.STAND
        assert o.hand_type is HandType.SOFT

    def test_negative_time_rejected(self):
        with pytest.raises(ValueError):
            DecisionOutcome(Action.HIT, HandType.HARD, True, decision_time=-1)

    def test_unknown_action_rejected(self):
        with pytest.raises(ValueError):
            DecisionOutcome('insure', HandType.HARD, True)


# ─── Fold ─────────────────────────────────────────────────────────────────────

class TestFold:
    def test_first_fold_from_none(self):
        s = fold(None, _outcome(True))
        assert s.total_decisions == 1
        assert s.correct_decisions == 1

    def test_input_not_mutated(self):
        s0 = create_initial_stats(NOW)
        s1 = fold(s0, _outcome(True, dealer_rank='6', player_total=12, decision_time=900.0))
        assert s0.total_decisions == 0
        assert s0.by_scenario == {}
        assert s0.by_action[Action.HIT].attempts == 0
        assert s1 is not s0

    def test_earlier_snapshot_unchanged_after_more_folds(self):
        s1 = fold(None, _outcome(True, dealer_rank='6', player_total=12))
        before = stats_to_dict(s1)
        fold(s1, _outcome(False, dealer_rank='6', player_total=12))
        assert stats_to_dict(s1) == before

    def test_counts_every_granularity(self):
        s = fold(None, _outcome(True, dealer_rank='K', player_total=16, decision_time=800.0))
        assert s.by_action[Action.HIT].correct == 1
        assert s.by_hand_type[HandType.HARD].correct == 1
        assert s.by_dealer_rank['10'].correct == 1
        assert s.by_scenario[ScenarioKey(16, '10', HandType.HARD)].correct == 1

    def test_scenario_bucket_needs_total(self):
        s = fold(None, _outcome(True, dealer_rank='6'))
        assert s.by_dealer_rank['6'].attempts == 1
        assert s.by_scenario == {}

    def test_last_seen_set(self):
        s = fold(None, _outcome(True, dealer_rank='6', player_total=12, now=NOW + 60))
        assert s.by_scenario[scenario_key(12, '6', 'hard')].last_seen == NOW + 60

    def test_seven_of_ten_is_seventy(self):
        outcomes = [_outcome(i < 7) for i in range(10)]
        assert accuracy(fold_all(None, outcomes)) == 70

    def test_accuracy_rounds(self):
        outcomes = [_outcome(True), _outcome(True), _outcome(False)]
        assert accuracy(fold_all(None, outcomes)) == 67

    def test_streaks(self):
        s = fold_all(None, [_outcome(True)] * 5)
        assert s.current_streak == 5
        s = fold(s, _outcome(False))
        assert s.current_streak == 0
        assert s.longest_streak == 5
        s = fold_all(s, [_outcome(True)] * 2)
        assert s.current_streak == 2
        assert s.longest_streak == 5

    def test_longest_streak_never_decreases(self):
        pattern = [True, True, False, True, True, True, False, False, True]
        s = None
        longest = 0
        for ok in pattern:
            s = fold(s, _outcome(ok))
            assert s.longest_streak >= longest
            longest = s.longest_streak
        assert longest == 3

    def test_speed_records(self):
        s = fold_all(None, [
            _outcome(True, decision_time=1500.0),
            _outcome(False, decision_time=500.0),
            _outcome(True, decision_time=900.0),
        ])
        assert s.speed_records.fastest_correct == 900.0
        assert s.speed_records.decisions_tracked == 3
        assert s.speed_records.avg_speed == pytest.approx(2900.0 / 3)
        assert s.last_decision_time == 900.0

    def test_untimed_outcome_leaves_speed_alone(self):
        s = fold(None, _outcome(True))
        assert s.speed_records.decisions_tracked == 0
        assert s.last_decision_time is None


class TestMistakeLog:
    def test_mistake_logged_with_context(self):
        s = fold(None, _mistake())
        assert len(s.mistakes) == 1
        m = s.mistakes[0]
        assert m.player_action is Action.STAND
        assert m.correct_action is Action.SURRENDER
        assert m.key == ScenarioKey(16, '10', HandType.HARD)
        assert m.session_id == 's1'

    def test_no_log_without_context(self):
        assert fold(None, _outcome(False)).mistakes == ()

    def test_no_log_when_correct(self):
        o = _mistake()
        ok = DecisionOutcome(**{**o.__dict__, 'is_correct': True})
        assert fold(None, ok).mistakes == ()

    def test_ring_buffer_evicts_oldest(self):
        s = fold_all(None, [_mistake(t=NOW + i) for i in range(MISTAKE_LOG_LIMIT + 5)])
        assert len(s.mistakes) == MISTAKE_LOG_LIMIT
        assert s.mistakes[0].timestamp == NOW + 5

    def test_clear_one(self):
        s = fold_all(None, [_mistake(), _mistake(total=15)])
        target = s.mistakes[0].id
        cleared = clear_mistake(s, target)
        assert [m.id for m in cleared.mistakes] == [s.mistakes[1].id]
        assert len(s.mistakes) == 2

    def test_clear_all(self):
        s = fold_all(None, [_mistake(), _mistake()])
        assert clear_all_mistakes(s).mistakes == ()

    def test_mistakes_for_scenario(self):
        s = fold_all(None, [_mistake(16), _mistake(15), _mistake(16)])
        assert len(mistakes_for_scenario(s.mistakes, '16-10-hard')) == 2


# ─── Accuracy queries ─────────────────────────────────────────────────────────

class TestAccuracy:
    def test_zero_with_no_data(self):
        assert accuracy(None) == 0
        assert accuracy(create_initial_stats(NOW)) == 0

    def test_percent_zero_denominator(self):
        assert percent(0, 0) == 0

    def test_scoped(self):
        s = fold_all(None, [
            _outcome(True, action=Action.STAND, dealer_rank='6', player_total=13),
            _outcome(False, action=Action.HIT, dealer_rank='6', player_total=13),
            _outcome(True, action=Action.HIT, hand_type=HandType.SOFT, dealer_rank='9', player_total=18),
        ])
        assert accuracy(s, Action.STAND) == 100
        assert accuracy(s, 'hit') == 50
        assert accuracy(s, HandType.SOFT) == 100
        assert accuracy(s, 'hard') == 50
        assert accuracy(s, '13-6-hard') == 50
        assert accuracy(s, ScenarioKey(18, '9', HandType.SOFT)) == 100
        assert accuracy(s, '6') == 50
        assert accuracy(s, 'A') == 0

    def test_unknown_scope(self):
        with pytest.raises(ValueError):
            accuracy(fold(None, _outcome(True)), 3.5)

    def test_reset(self):
        assert reset_statistics(NOW).total_decisions == 0


# ─── Grading ──────────────────────────────────────────────────────────────────

class TestGradeDecision:
    def test_correct_surrender(self):
        o = grade_decision(_scenario(hand('10S', '6H'), '9D'), 'surrender', 4, 900.0, now=NOW)
        assert o.is_correct
        assert o.correct_action is Action.SURRENDER
        assert o.player_total == 16
        assert o.dealer_rank == '9'

    def test_wrong_choice(self):
        o = grade_decision(_scenario(hand('10S', '6H'), '9D'), Action.HIT, 4, now=NOW)
        assert not o.is_correct
        assert o.action is Action.HIT

    def test_targeted_key_wins(self):
        key = ScenarioKey(16, '10', HandType.HARD)
        s = TrainingScenario(hand('9S', '7H'), str_to_card('KD'), True, False, True, scenario_key=key, targeted=True)
        assert grade_decision(s, 'hit', 4).dealer_rank == '10'

    def test_end_to_end_fold(self):
        s = fold(None, grade_decision(_scenario(hand('AS', '7H'), '6D', can_surrender=False), 'double', 2, now=NOW))
        assert accuracy(s, '18-6-soft') == 100


# ─── Serialization ────────────────────────────────────────────────────────────

class TestSerialization:
    def _ledger(self) -> Statistics:
        return fold_all(None, [
            _outcome(True, dealer_rank='6', player_total=13, decision_time=700.0),
            _mistake(),
            _outcome(True, hand_type=HandType.PAIR, action=Action.SPLIT, dealer_rank='A', player_total=22),
        ])

    def test_json_ready(self):
        json.dumps(stats_to_dict(self._ledger()))

    def test_round_trip(self):
        s = self._ledger()
        restored = stats_from_dict(json.loads(json.dumps(stats_to_dict(s))))
        assert stats_to_dict(restored) == stats_to_dict(s)
        assert restored.by_scenario.keys() == s.by_scenario.keys()

    def test_keys_are_strings(self):
        d = stats_to_dict(self._ledger())
        assert '22-A-pair' in d['by_scenario']
        assert 'split' in d['by_action']

    def test_empty_payload(self):
        assert stats_from_dict(None).total_decisions == 0
        assert stats_from_dict({}).total_decisions == 0

    def test_partial_payload(self):
        s = stats_from_dict({'total_decisions': 4, 'correct_decisions': 3, 'incorrect_decisions': 1})
        assert accuracy(s) == 75
        assert s.by_action[Action.HIT].attempts == 0

    def test_malformed_mistake_dropped(self):
        d = stats_to_dict(self._ledger())
        d['mistakes'].append({'id': 'broken'})
        assert len(stats_from_dict(d).mistakes) == 1

    def test_malformed_key_raises(self):
        with pytest.raises(ValueError):
            stats_from_dict({'by_scenario': {'sixteen': {'correct': 1}}})

    def test_null_sections_take_defaults(self):
        s = stats_from_dict({
            'total_decisions': 3,
            'by_action': None,
            'by_hand_type': None,
            'by_dealer_rank': None,
            'by_scenario': None,
            'mistakes': None,
            'current_streak': None,
        })
        assert s.total_decisions == 3
        assert s.current_streak == 0
        assert s.by_action[Action.STAND].attempts == 0
        assert s.by_dealer_rank == {}
        assert s.by_scenario == {}
        assert s.mistakes == ()

    def test_face_card_ranks_merge_into_ten(self):
        s = stats_from_dict({
            'by_dealer_rank': {
                'J': {'correct': 2, 'total_time': 1000.0, 'last_seen': 50.0},
                '10': {'incorrect': 3, 'total_time': 1500.0, 'last_seen': 80.0},
            },
        })
        assert list(s.by_dealer_rank) == ['10']
        bucket = s.by_dealer_rank['10']
        assert (bucket.correct, bucket.incorrect) == (2, 3)
        assert bucket.avg_time == 500.0
        assert bucket.last_seen == 80.0


class TestProgressPayload:
    def test_round_trip_with_config(self):
        s = fold_all(None, [_outcome(True, dealer_rank='6', player_total=13), _mistake()])
        cfg = GameConfig(adaptive_difficulty=True, num_decks=6)
        restored, restored_cfg = progress_from_dict(json.loads(json.dumps(progress_to_dict(s, cfg))))
        assert restored_cfg == cfg
        assert stats_to_dict(restored) == stats_to_dict(s)

    def test_bare_stats_payload_loads(self):
        s = fold_all(None, [_outcome(True), _outcome(False)])
        restored, cfg = progress_from_dict(stats_to_dict(s))
        assert restored.total_decisions == 2
        assert cfg == GameConfig()

    def test_empty_payload(self):
        restored, cfg = progress_from_dict(None)
        assert restored.total_decisions == 0
        assert cfg == GameConfig()

    def test_invalid_config_raises(self):
        with pytest.raises(ValueError, match="Number of decks"):
            progress_from_dict({'stats': {}, 'config': {'num_decks': 12}})
