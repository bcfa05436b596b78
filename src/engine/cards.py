"""
Card constants, the immutable Card value, and human-readable I/O helpers.

String format (used in tests and at I/O boundaries):
    <rank><suit>  e.g. 'AS', '10H', '7C'
    rank in A, 2-10, J, Q, K
    suit in C, D, H, S   (display symbols: ♣ ♦ ♥ ♠)

Aces carry their high value (11) here; hand.evaluate() demotes them to 1
when the hand would otherwise bust.

Scenario tracking groups every ten-valued upcard under '10' so that
J/Q/K upcards share statistics with a plain 10.
"""

from __future__ import annotations

from dataclasses import dataclass

RANK_NAMES: list[str] = ['A', '2', '3', '4', '5', '6', '7', '8', '9', '10', 'J', 'Q', 'K']
SUIT_NAMES: list[str] = ['C', 'D', 'H', 'S']
SUIT_SYMBOLS: dict[str, str] = {'C': '♣', 'D': '♦', 'H': '♥', 'S': '♠'}

RANK_ACE: str = 'A'
TEN_VALUE_RANKS: frozenset[str] = frozenset({'10', 'J', 'Q', 'K'})

# Ace counts high; soft/hard resolution happens in hand.evaluate().
RANK_VALUES: dict[str, int] = {
    'A': 11,
    '2': 2, '3': 3, '4': 4, '5': 5, '6': 6, '7': 7, '8': 8, '9': 9,
    '10': 10, 'J': 10, 'Q': 10, 'K': 10,
}

# Upcard ranks as they appear in scenario keys and heat-map columns.
DEALER_RANKS: list[str] = ['2', '3', '4', '5', '6', '7', '8', '9', '10', 'A']


@dataclass(frozen=True)
class Card:
    """A single playing card. Immutable once dealt."""
    rank: str
    suit: str
    face_up: bool = True

    def __post_init__(self) -> None:
        validate_rank(self.rank)
        if self.suit not in SUIT_NAMES:
            raise ValueError(f"Unknown suit {self.suit!r}; expected one of {SUIT_NAMES}.")

    @property
    def value(self) -> int:
        return RANK_VALUES[self.rank]

    def __str__(self) -> str:
        return self.rank + self.suit


def validate_rank(rank: str) -> str:
    """Return *rank* unchanged, or raise ValueError if it is not a card rank.

    Examples:
        >>> validate_rank('Q')
        'Q'
    """
    if rank not in RANK_VALUES:
        raise ValueError(f"Unknown rank {rank!r}; expected one of {RANK_NAMES}.")
    return rank


def rank_value(rank: str) -> int:
    """Return the point value of a rank, with Ace counted as 11.

    Examples:
        >>> rank_value('K')
        10
        >>> rank_value('A')
        11
    """
    return RANK_VALUES[validate_rank(rank)]


def rank_for_value(value: int) -> str:
    """Return the canonical rank for a point value.

    1 and 11 both map to the Ace; 10 maps to '10' (callers wanting a face
    card pick one themselves).

    Examples:
        >>> rank_for_value(7)
        '7'
        >>> rank_for_value(11)
        'A'
    """
    if value in (1, 11):
        return RANK_ACE
    if 2 <= value <= 10:
        return str(value)
    raise ValueError(f"No single card has value {value}.")


def normalize_dealer_rank(rank: str) -> str:
    """Collapse J/Q/K to '10' so dealer upcards share one statistics bucket.

    Examples:
        >>> normalize_dealer_rank('J')
        '10'
        >>> normalize_dealer_rank('A')
        'A'
    """
    validate_rank(rank)
    return '10' if rank in TEN_VALUE_RANKS else rank


def card_to_str(card: Card) -> str:
    """Convert a Card to its string form.

    Examples:
        >>> card_to_str(Card('10', 'H'))
        '10H'
    """
    return card.rank + card.suit


def card_to_display(card: Card) -> str:
    """Convert a Card to a display string with a suit symbol, e.g. 'A♠'."""
    return card.rank + SUIT_SYMBOLS[card.suit]


def str_to_card(s: str, face_up: bool = True) -> Card:
    """Parse a card string such as 'AS' or '10C'.

    Raises:
        ValueError: If the string is not <rank><suit>.

    Examples:
        >>> str_to_card('AS')
        Card(rank='A', suit='S', face_up=True)
        >>> str_to_card('10C').rank
        '10'
    """
    if len(s) < 2:
        raise ValueError(f"Malformed card string {s!r}.")
    return Card(rank=s[:-1], suit=s[-1], face_up=face_up)


def hand_to_str(cards: tuple[Card, ...]) -> str:
    """Convert a hand to a space-separated string.

    Examples:
        >>> hand_to_str((Card('A', 'S'), Card('7', 'H')))
        'AS 7H'
    """
    return ' '.join(card_to_str(c) for c in cards)
