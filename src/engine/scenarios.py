"""
Scenario synthesis: build practice hands for a level, a key, or a filter.

Three entry points:
    generate_for_level(level)          random hand from the level's mix
    generate_targeted(total, d, type)  hand pinned to one ScenarioKey
    generate_filtered(filter, level)   random key drawn from a filter

Card faces come from distinct slots of a freshly shuffled deck; only the
ranks are chosen here, so suits are random but no slot is used twice.
Ranks may repeat across scenarios (the trainer draws from an infinite shoe).

Capability flags are derived from the final cards:
    can_double     exactly two cards
    can_split      level ≥ 3 and a pair
    can_surrender  level 4, two cards, not a pair

Hard totals that no two- or three-card composition can reach (e.g. hard 4)
fall back to 7 + clamp(total − 7). The resulting hand may miss the target;
a DEBUG line records it.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable

import numpy as np

from src.training.scenario_keys import ScenarioKey, key_for_hand, parse_hand_type, scenario_key

from .cards import DEALER_RANKS, RANK_NAMES, TEN_VALUE_RANKS, Card, rank_for_value
from .config import DifficultyLevel, validate_level
from .deck import create_deck, deal_card, resolve_rng, shuffle_deck
from .hand import HandType, evaluate, is_pair, tracking_total
from .strategy import Action

if TYPE_CHECKING:
    from src.training.statistics import Statistics

logger = logging.getLogger(__name__)

HARD_TOTAL_MIN: int = 12
HARD_TOTAL_MAX: int = 17
SOFT_SECOND_CARD_MIN: int = 2
SOFT_SECOND_CARD_MAX: int = 9
MIN_CARD_VALUE: int = 2
MAX_CARD_VALUE: int = 10
MIN_THREE_CARD_TOTAL: int = 12
THREE_CARD_PROBABILITY: float = 0.25
FALLBACK_FIRST_VALUE: int = 7

PAIR_RANKS: list[str] = ['2', '3', '4', '5', '6', '7', '8', '9', '10', 'A']
SURRENDER_TOTALS: list[int] = [15, 16]
SURRENDER_DEALER_RANKS: list[str] = ['9', '10', 'A']
_TEN_RANKS: list[str] = sorted(TEN_VALUE_RANKS)

# Scenario family -> probability, per level.
LEVEL_MIX: dict[DifficultyLevel, dict[str, float]] = {
    DifficultyLevel.HARD_ONLY: {'hard': 1.0},
    DifficultyLevel.SOFT_HANDS: {'hard': 0.5, 'soft': 0.5},
    DifficultyLevel.PAIRS: {'pair': 1 / 3, 'soft': 1 / 3, 'hard': 1 / 3},
    DifficultyLevel.SURRENDER: {'pair': 0.25, 'soft': 0.25, 'hard': 0.25, 'surrender': 0.25},
}


@dataclass(frozen=True)
class TrainingScenario:
    """One practice hand. Replaced wholesale each round, never mutated.

    Attributes:
        player_cards:  Player's face-up cards.
        dealer_upcard: Dealer's visible card.
        can_double:    Doubling is offered.
        can_split:     Splitting is offered.
        can_surrender: Surrender is offered.
        scenario_key:  Requested key for targeted scenarios, else None.
        targeted:      True when built for a specific key.
        created_at:    Epoch seconds when the scenario was built.
    """

    player_cards: tuple[Card, ...]
    dealer_upcard: Card
    can_double: bool
    can_split: bool
    can_surrender: bool
    scenario_key: ScenarioKey | None = None
    targeted: bool = False
    created_at: float = field(default_factory=time.time)

    @property
    def tracking_key(self) -> ScenarioKey:
        """The key outcomes on this scenario are recorded under."""
        if self.scenario_key is not None:
            return self.scenario_key
        return key_for_hand(self.player_cards, self.dealer_upcard)

    @property
    def player_total(self) -> int:
        return tracking_total(self.player_cards)


# ─── Card construction ────────────────────────────────────────────────────────

def _slot_dealer(rng: np.random.Generator) -> Callable[[str], Card]:
    """Return a factory that stamps ranks onto successive deck slots."""
    deck = shuffle_deck(create_deck(), rng)

    def make(rank: str) -> Card:
        nonlocal deck
        slot, deck = deal_card(deck, face_up=True, rng=rng)
        return Card(rank=rank, suit=slot.suit)

    return make


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def _rank_for(value: int, rng: np.random.Generator) -> str:
    """Rank for a value; ten-valued cards pick 10/J/Q/K at random."""
    if value == 10:
        return _TEN_RANKS[int(rng.integers(len(_TEN_RANKS)))]
    return rank_for_value(value)


def _two_card_values(total: int) -> list[tuple[int, int]]:
    # Equal values would make a pair; two tens are fine (distinct ranks).
    return [
        (a, total - a)
        for a in range(MIN_CARD_VALUE, MAX_CARD_VALUE + 1)
        if a <= total - a <= MAX_CARD_VALUE and (a != total - a or a == 10)
    ]


def _three_card_values(total: int) -> list[tuple[int, int, int]]:
    return [
        (a, b, total - a - b)
        for a in range(MIN_CARD_VALUE, MAX_CARD_VALUE + 1)
        for b in range(a, MAX_CARD_VALUE + 1)
        if b <= total - a - b <= MAX_CARD_VALUE
    ]


def hard_hand_values(
    total: int,
    rng: np.random.Generator | None = None,
    allow_three: bool = True,
) -> tuple[int, ...]:
    """Pick card values (all 2–10) summing to a hard *total*.

    Prefers two cards; totals ≥ 12 occasionally use three. Falls back to
    7 + clamp(total − 7) when nothing sums exactly. Never raises.
    """
    rng = resolve_rng(rng)
    twos = _two_card_values(total)
    threes = _three_card_values(total) if allow_three else []

    if threes and total >= MIN_THREE_CARD_TOTAL and rng.random() < THREE_CARD_PROBABILITY:
        return threes[int(rng.integers(len(threes)))]
    if twos:
        return twos[int(rng.integers(len(twos)))]
    if threes:
        return threes[int(rng.integers(len(threes)))]

    second = _clamp(total - FALLBACK_FIRST_VALUE, MIN_CARD_VALUE, MAX_CARD_VALUE)
    logger.debug(
        "hard %d not composable; approximating with %d + %d",
        total, FALLBACK_FIRST_VALUE, second,
    )
    return (FALLBACK_FIRST_VALUE, second)


def _hard_ranks(values: tuple[int, ...], rng: np.random.Generator) -> list[str]:
    ranks = [_rank_for(v, rng) for v in values]
    if len(ranks) == 2 and ranks[0] == ranks[1]:
        # Two tens: give them different faces so the hand is not a pair.
        first, second = rng.choice(_TEN_RANKS, size=2, replace=False)
        ranks = [str(first), str(second)]
    return ranks


def _soft_ranks(total: int, rng: np.random.Generator) -> list[str]:
    second = _clamp(total - 11, SOFT_SECOND_CARD_MIN, SOFT_SECOND_CARD_MAX)
    if second != total - 11:
        logger.debug("soft %d out of range; using A + %d", total, second)
    return ['A', _rank_for(second, rng)]


def _pair_ranks(total: int, rng: np.random.Generator) -> list[str]:
    if total == 22:
        return ['A', 'A']
    value = _clamp(total // 2, MIN_CARD_VALUE, MAX_CARD_VALUE)
    if value * 2 != total:
        logger.debug("pair total %d not composable; using %d-%d", total, value, value)
    rank = _rank_for(value, rng)
    return [rank, rank]


def _capabilities(player_cards: tuple[Card, ...], level: DifficultyLevel) -> dict[str, bool]:
    two_cards = len(player_cards) == 2
    pair = is_pair(player_cards)
    return {
        'can_double': two_cards,
        'can_split': level >= DifficultyLevel.PAIRS and pair,
        'can_surrender': level == DifficultyLevel.SURRENDER and two_cards and not pair,
    }


def _build(
    player_ranks: list[str],
    dealer_rank: str,
    level: DifficultyLevel,
    rng: np.random.Generator,
    key: ScenarioKey | None = None,
) -> TrainingScenario:
    make = _slot_dealer(rng)
    player_cards = tuple(make(rank) for rank in player_ranks)
    dealer_upcard = make(dealer_rank)
    return TrainingScenario(
        player_cards=player_cards,
        dealer_upcard=dealer_upcard,
        scenario_key=key,
        targeted=key is not None,
        **_capabilities(player_cards, level),
    )


# ─── Entry points ─────────────────────────────────────────────────────────────

def _face(rank: str, rng: np.random.Generator) -> str:
    """Swap a '10' for a random ten-valued face."""
    return _rank_for(10, rng) if rank == '10' else rank


def _pick(options: list, rng: np.random.Generator):
    return options[int(rng.integers(len(options)))]


def generate_for_level(level: int, rng: np.random.Generator | None = None) -> TrainingScenario:
    """Build a random scenario from the level's hand-family mix.

    Level 1: hard only. Level 2: hard/soft 50/50. Level 3: pair/soft/hard in
    thirds. Level 4: a quarter each of pair, soft, hard, and hard 15–16 vs
    9/10/A with surrender offered.

    Args:
        level: Difficulty level 1–4.
        rng:   numpy Generator; a fresh one when None.

    Raises:
        ValueError: If level is outside 1–4.
    """
    level = validate_level(level)
    rng = resolve_rng(rng)
    mix = LEVEL_MIX[level]
    family = str(rng.choice(list(mix), p=list(mix.values())))
    dealer_rank = _pick(RANK_NAMES, rng)

    if family == 'pair':
        rank = _face(_pick(PAIR_RANKS, rng), rng)
        player_ranks = [rank, rank]
    elif family == 'soft':
        second = int(rng.integers(SOFT_SECOND_CARD_MIN, SOFT_SECOND_CARD_MAX + 1))
        player_ranks = ['A', str(second)]
    elif family == 'surrender':
        total = _pick(SURRENDER_TOTALS, rng)
        player_ranks = _hard_ranks(hard_hand_values(total, rng, allow_three=False), rng)
        dealer_rank = _face(_pick(SURRENDER_DEALER_RANKS, rng), rng)
    else:
        total = int(rng.integers(HARD_TOTAL_MIN, HARD_TOTAL_MAX + 1))
        player_ranks = _hard_ranks(hard_hand_values(total, rng), rng)

    logger.debug("level %d %s scenario: %s vs %s", level, family, player_ranks, dealer_rank)
    return _build(player_ranks, dealer_rank, level, rng)


def generate_targeted(
    total: int,
    dealer_rank: str,
    kind: HandType | str,
    level: int,
    rng: np.random.Generator | None = None,
) -> TrainingScenario:
    """Build a scenario pinned to one ScenarioKey.

    The returned scenario carries the requested key and ``targeted=True``.
    Pairs use total/2 (A-A for 22); soft hands are A + (total − 11).

    Raises:
        ValueError: On an invalid level, dealer rank or hand type.

    Examples:
        >>> s = generate_targeted(16, '10', 'hard', 4, np.random.default_rng(0))
        >>> str(s.scenario_key), s.can_surrender
        ('16-10-hard', True)
    """
    level = validate_level(level)
    rng = resolve_rng(rng)
    key = scenario_key(total, dealer_rank, kind)

    if key.hand_type is HandType.PAIR:
        player_ranks = _pair_ranks(key.player_total, rng)
    elif key.hand_type is HandType.SOFT:
        player_ranks = _soft_ranks(key.player_total, rng)
    else:
        player_ranks = _hard_ranks(hard_hand_values(key.player_total, rng), rng)

    return _build(player_ranks, _face(key.dealer_rank, rng), level, rng, key=key)


# ─── Filters ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class CustomScenarioFilter:
    """A practice subset: any combination of the listed types/totals/upcards.

    Attributes:
        hand_types:       Hand families to draw from.
        player_totals:    Totals to draw from (pair totals are summed values).
        dealer_upcards:   Dealer ranks to draw from.
        actions_required: Actions the subset is meant to drill (display only).
        max_accuracy:     With statistics, skip totals already at or above this.
    """

    hand_types: tuple[HandType, ...]
    player_totals: tuple[int, ...]
    dealer_upcards: tuple[str, ...]
    actions_required: tuple[Action, ...] = ()
    max_accuracy: float | None = None

    def __post_init__(self) -> None:
        if not self.hand_types or not self.player_totals or not self.dealer_upcards:
            raise ValueError("A scenario filter needs at least one hand type, total and upcard.")
        object.__setattr__(self, 'hand_types', tuple(parse_hand_type(t) for t in self.hand_types))
        object.__setattr__(self, 'player_totals', tuple(self.player_totals))
        object.__setattr__(self, 'dealer_upcards', tuple(self.dealer_upcards))
        object.__setattr__(self, 'actions_required', tuple(self.actions_required))


_ALL_PAIR_TOTALS = (4, 6, 8, 10, 12, 14, 16, 18, 20, 22)
_BUST_CARDS = ('2', '3', '4', '5', '6')
_STRONG_CARDS = ('7', '8', '9', '10', 'A')

PRESET_FILTERS: dict[str, CustomScenarioFilter] = {
    'soft-18-vs-9-A': CustomScenarioFilter(
        (HandType.SOFT,), (18,), ('9', '10', 'A'),
        (Action.HIT, Action.STAND, Action.DOUBLE),
    ),
    'hard-16-vs-7-A': CustomScenarioFilter(
        (HandType.HARD,), (16,), _STRONG_CARDS,
        (Action.HIT, Action.STAND, Action.SURRENDER),
    ),
    'hard-12-vs-2-6': CustomScenarioFilter(
        (HandType.HARD,), (12,), _BUST_CARDS,
        (Action.HIT, Action.STAND),
    ),
    'doubling-hands': CustomScenarioFilter(
        (HandType.HARD, HandType.SOFT), (9, 10, 11, 13, 14, 15, 16, 17, 18), tuple(DEALER_RANKS),
        (Action.DOUBLE, Action.HIT, Action.STAND),
    ),
    'splitting-decisions': CustomScenarioFilter(
        (HandType.PAIR,), _ALL_PAIR_TOTALS, tuple(DEALER_RANKS),
        (Action.SPLIT, Action.HIT, Action.STAND),
    ),
    'surrender-situations': CustomScenarioFilter(
        (HandType.HARD,), (15, 16), ('9', '10', 'A'),
        (Action.SURRENDER, Action.HIT, Action.STAND),
    ),
    'dealer-bust-cards': CustomScenarioFilter(
        (HandType.HARD, HandType.SOFT), (12, 13, 14, 15, 16), _BUST_CARDS,
        (Action.HIT, Action.STAND),
    ),
    'dealer-strong-cards': CustomScenarioFilter(
        (HandType.HARD, HandType.SOFT), (12, 13, 14, 15, 16), _STRONG_CARDS,
        (Action.HIT, Action.STAND),
    ),
}


def _composable(total: int, kind: HandType) -> bool:
    if kind is HandType.PAIR:
        return total == 22 or (total % 2 == 0 and MIN_CARD_VALUE <= total // 2 <= MAX_CARD_VALUE)
    if kind is HandType.SOFT:
        return 11 + SOFT_SECOND_CARD_MIN <= total <= 11 + SOFT_SECOND_CARD_MAX
    return bool(_two_card_values(total) or _three_card_values(total))


def _below_accuracy(
    stats: Statistics,
    total: int,
    scenario_filter: CustomScenarioFilter,
) -> bool:
    """True if any (upcard, type) combination of *total* is under the bar."""
    for dealer_rank in scenario_filter.dealer_upcards:
        for kind in scenario_filter.hand_types:
            bucket = stats.by_scenario.get(scenario_key(total, dealer_rank, kind))
            if bucket is None or bucket.attempts == 0:
                return True
            if bucket.correct / bucket.attempts * 100 < scenario_filter.max_accuracy:
                return True
    return False


def generate_filtered(
    scenario_filter: CustomScenarioFilter,
    level: int,
    stats: Statistics | None = None,
    rng: np.random.Generator | None = None,
) -> TrainingScenario:
    """Draw a random (total, upcard, type) from a filter and target it.

    With ``max_accuracy`` and *stats*, totals whose every combination is at
    or above the bar are skipped, unless that would leave nothing. Totals a
    hand type cannot form (e.g. soft 9) are never paired with that type
    while another type can form them.
    """
    level = validate_level(level)
    rng = resolve_rng(rng)

    totals = list(scenario_filter.player_totals)
    if scenario_filter.max_accuracy is not None and stats is not None:
        totals = [t for t in totals if _below_accuracy(stats, t, scenario_filter)] or totals

    combos = [
        (total, kind)
        for total in totals
        for kind in scenario_filter.hand_types
        if _composable(total, kind)
    ]
    if not combos:
        combos = [(total, kind) for total in totals for kind in scenario_filter.hand_types]

    total, kind = _pick(combos, rng)
    dealer_rank = _pick(list(scenario_filter.dealer_upcards), rng)
    return generate_targeted(total, dealer_rank, kind, level, rng)


def hand_total_matches(scenario: TrainingScenario) -> bool:
    """True if the dealt cards really form the scenario's key."""
    if scenario.scenario_key is None:
        return True
    value = evaluate(scenario.player_cards)
    kind = scenario.scenario_key.hand_type
    if kind is HandType.PAIR:
        return is_pair(scenario.player_cards) and scenario.player_total == scenario.scenario_key.player_total
    return value.total == scenario.scenario_key.player_total and value.is_soft == (kind is HandType.SOFT)
