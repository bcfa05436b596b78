"""Tests for src/engine/hand.py — totals, ace resolution and hand types."""

from __future__ import annotations

from src.engine.cards import str_to_card
from src.engine.hand import (
    HandType,
    HandValue,
    evaluate,
    hand_type,
    hand_value_display,
    is_pair,
    pair_total,
    tracking_total,
)
from tests.conftest import hand


# ─── evaluate ─────────────────────────────────────────────────────────────────

class TestEvaluate:
    def test_empty_hand(self):
        assert evaluate(()) == HandValue(0, False, False, False)

    def test_simple_hard_total(self):
        v = evaluate(hand('10S', '6H'))
        assert v.total == 16
        assert not v.is_soft

    def test_soft_total(self):
        v = evaluate(hand('AS', '7H'))
        assert v.total == 18
        assert v.is_soft

    def test_ace_demoted_when_busting(self):
        v = evaluate(hand('AS', '7H', '9D'))
        assert v.total == 17
        assert not v.is_soft

    def test_two_aces(self):
        v = evaluate(hand('AS', 'AH'))
        assert v.total == 12
        assert v.is_soft

    def test_four_aces_and_seven(self):
        v = evaluate(hand('AS', 'AH', 'AD', 'AC', '7S'))
        assert v.total == 21
        assert v.is_soft

    def test_blackjack(self):
        assert evaluate(hand('KS', 'AH')).is_blackjack

    def test_three_card_21_is_not_blackjack(self):
        v = evaluate(hand('7S', '7H', '7D'))
        assert v.total == 21
        assert not v.is_blackjack

    def test_bust(self):
        v = evaluate(hand('10S', '6H', 'KD'))
        assert v.is_busted
        assert v.total == 26

    def test_face_down_cards_ignored(self):
        cards = (str_to_card('10S'), str_to_card('9H', face_up=False))
        assert evaluate(cards).total == 10

    def test_order_independent(self):
        assert evaluate(hand('AS', '5H', '9D')) == evaluate(hand('9D', 'AS', '5H'))

    def test_idempotent(self):
        cards = hand('AS', '6H')
        assert evaluate(cards) == evaluate(cards)


# ─── Classification ───────────────────────────────────────────────────────────

class TestClassification:
    def test_pair_needs_same_rank(self):
        assert is_pair(hand('8S', '8H'))
        assert not is_pair(hand('KS', 'QH'))

    def test_three_cards_not_pair(self):
        assert not is_pair(hand('8S', '8H', '8D'))

    def test_aces_are_pair_not_soft(self):
        assert hand_type(hand('AS', 'AH')) is HandType.PAIR

    def test_soft_type(self):
        assert hand_type(hand('AS', '6H')) is HandType.SOFT

    def test_hard_type(self):
        assert hand_type(hand('10S', '6H')) is HandType.HARD

    def test_pair_total_aces(self):
        assert pair_total(hand('AS', 'AH')) == 22

    def test_tracking_total_pair(self):
        assert tracking_total(hand('8S', '8H')) == 16
        assert tracking_total(hand('AS', 'AH')) == 22

    def test_tracking_total_non_pair(self):
        assert tracking_total(hand('AS', '6H')) == 17


class TestDisplay:
    def test_soft_display(self):
        assert hand_value_display(evaluate(hand('AS', '6H'))) == '7/17'

    def test_hard_display(self):
        assert hand_value_display(evaluate(hand('10S', '6H'))) == '16'

    def test_bust_display(self):
        assert hand_value_display(evaluate(hand('10S', '6H', 'KD'))) == 'BUST'

    def test_blackjack_display(self):
        assert hand_value_display(evaluate(hand('AS', 'KH'))) == 'BLACKJACK'
