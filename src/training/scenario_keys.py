"""
ScenarioKey: the (player total, dealer rank, hand type) unit of tracking.

String form is ``"<total>-<dealer rank>-<hand type>"``, e.g. ``"16-10-hard"``
or ``"22-A-pair"``. Pair keys use the summed pair value (A-A = 22). Dealer
J/Q/K collapse to '10'.

Round-trip law: parse_scenario_key(str(k)) == k for every key built here.
"""

from __future__ import annotations

from dataclasses import dataclass

from src.engine.cards import DEALER_RANKS, Card, normalize_dealer_rank
from src.engine.config import DifficultyLevel, validate_level
from src.engine.hand import HandType, hand_type, tracking_total
from src.engine.strategy import CHART_TOTALS


@dataclass(frozen=True)
class ScenarioKey:
    player_total: int
    dealer_rank: str
    hand_type: HandType

    def __str__(self) -> str:
        return f"{self.player_total}-{self.dealer_rank}-{self.hand_type.value}"


def parse_hand_type(value: HandType | str) -> HandType:
    """Coerce 'hard' / HandType.HARD to a HandType.

    Raises:
        ValueError: If the value names no hand type.
    """
    if isinstance(value, HandType):
        return value
    try:
        return HandType(str(value).lower())
    except ValueError:
        raise ValueError(
            f"Unknown hand type {value!r}; expected one of {[t.value for t in HandType]}."
        ) from None


def scenario_key(total: int, dealer_rank: str, kind: HandType | str) -> ScenarioKey:
    """Build a normalized ScenarioKey.

    Examples:
        >>> str(scenario_key(16, 'K', 'hard'))
        '16-10-hard'
    """
    if isinstance(total, bool) or not isinstance(total, int) or total < 0:
        raise ValueError(f"Player total must be a non-negative int, got {total!r}.")
    return ScenarioKey(total, normalize_dealer_rank(dealer_rank), parse_hand_type(kind))


def parse_scenario_key(key: ScenarioKey | str) -> ScenarioKey:
    """Parse ``"16-10-hard"`` back into a ScenarioKey.

    Raises:
        ValueError: If the string is not <total>-<rank>-<type>.

    Examples:
        >>> parse_scenario_key('22-A-pair')
        ScenarioKey(player_total=22, dealer_rank='A', hand_type=<HandType.PAIR: 'pair'>)
    """
    if isinstance(key, ScenarioKey):
        return key
    parts = str(key).split('-')
    if len(parts) != 3 or not parts[0].isdigit():
        raise ValueError(f"Malformed scenario key {key!r}; expected '<total>-<rank>-<type>'.")
    return scenario_key(int(parts[0]), parts[1], parts[2])


def key_for_hand(player_cards: tuple[Card, ...], dealer_upcard: Card) -> ScenarioKey:
    """Return the key a dealt hand is tracked under."""
    return scenario_key(
        tracking_total(player_cards),
        dealer_upcard.rank,
        hand_type(player_cards),
    )


_LEVEL_HAND_TYPES: dict[DifficultyLevel, tuple[HandType, ...]] = {
    DifficultyLevel.HARD_ONLY: (HandType.HARD,),
    DifficultyLevel.SOFT_HANDS: (HandType.HARD, HandType.SOFT),
    DifficultyLevel.PAIRS: (HandType.HARD, HandType.SOFT, HandType.PAIR),
    DifficultyLevel.SURRENDER: (HandType.HARD, HandType.SOFT, HandType.PAIR),
}


def hand_types_for_level(level: int) -> tuple[HandType, ...]:
    return _LEVEL_HAND_TYPES[validate_level(level)]


def all_scenario_keys(level: int = DifficultyLevel.SURRENDER) -> list[ScenarioKey]:
    """Every chartable key available at *level*, in chart order."""
    return [
        ScenarioKey(total, dealer_rank, kind)
        for kind in hand_types_for_level(level)
        for total in CHART_TOTALS[kind]
        for dealer_rank in DEALER_RANKS
    ]
