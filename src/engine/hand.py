"""
Hand evaluation: total, soft/hard resolution, and hand-type classification.

Ace valuation follows standard blackjack:
    every Ace starts at 11, then one Ace at a time drops to 1 while the
    total is over 21.

A hand is soft while at least one Ace still counts 11. Face-down cards are
ignored so partially revealed hands can be evaluated.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from .cards import RANK_ACE, Card

BLACKJACK_VALUE: int = 21


class HandType(Enum):
    HARD = 'hard'
    SOFT = 'soft'
    PAIR = 'pair'


@dataclass(frozen=True)
class HandValue:
    total: int
    is_soft: bool
    is_blackjack: bool
    is_busted: bool


def evaluate(cards: Iterable[Card]) -> HandValue:
    """Evaluate the face-up cards of a hand.

    Args:
        cards: Cards in any order. Face-down cards are skipped.

    Returns:
        HandValue for the visible cards. An empty hand is total 0, hard,
        not blackjack, not busted.

    Examples:
        >>> evaluate((Card('A', 'S'), Card('6', 'H')))
        HandValue(total=17, is_soft=True, is_blackjack=False, is_busted=False)
        >>> evaluate((Card('A', 'S'), Card('A', 'H'))).total
        12
        >>> evaluate((Card('K', 'S'), Card('A', 'H'))).is_blackjack
        True
    """
    visible = [c for c in cards if c.face_up]

    total = 0
    high_aces = 0
    for card in visible:
        total += card.value
        if card.rank == RANK_ACE:
            high_aces += 1

    while total > BLACKJACK_VALUE and high_aces > 0:
        total -= 10
        high_aces -= 1

    return HandValue(
        total=total,
        is_soft=high_aces > 0 and total <= BLACKJACK_VALUE,
        is_blackjack=len(visible) == 2 and total == BLACKJACK_VALUE,
        is_busted=total > BLACKJACK_VALUE,
    )


def is_pair(cards: tuple[Card, ...]) -> bool:
    """Return True if the hand is exactly two cards of the same rank.

    K-Q is not a pair: ranks must match, not values.
    """
    return len(cards) == 2 and cards[0].rank == cards[1].rank


def hand_type(cards: tuple[Card, ...]) -> HandType:
    """Classify a hand. Pair takes precedence over soft (A-A is a pair)."""
    if is_pair(cards):
        return HandType.PAIR
    return HandType.SOFT if evaluate(cards).is_soft else HandType.HARD


def pair_total(cards: tuple[Card, ...]) -> int:
    """Return the summed value of a pair, counting A-A as 22.

    This is the total used in pair scenario keys, which differs from the
    playable total of A-A (soft 12).
    """
    return sum(c.value for c in cards)


def tracking_total(cards: tuple[Card, ...]) -> int:
    """Return the player total a scenario key uses for this hand."""
    if is_pair(cards):
        return pair_total(cards)
    return evaluate(cards).total


def hand_value_display(value: HandValue) -> str:
    """Format a HandValue for display.

    Examples:
        >>> hand_value_display(HandValue(17, True, False, False))
        '7/17'
        >>> hand_value_display(HandValue(23, False, False, True))
        'BUST'
    """
    if value.is_busted:
        return 'BUST'
    if value.is_blackjack:
        return 'BLACKJACK'
    if value.is_soft:
        return f"{value.total - 10}/{value.total}"
    return str(value.total)
