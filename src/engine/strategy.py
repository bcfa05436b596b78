"""
Basic-strategy oracle: the correct action for any hand.

Rules assumed throughout: dealer hits soft 17 (H17), double after split
(DAS), late surrender, infinite deck.

Each hand family is an ordered rule table. A row matches when the player
total is in ``totals`` and the dealer value is in ``dealer`` (None = any);
rows that need a double only match when doubling is legal. The first
matching row wins.

Decision order (first match wins), gated by difficulty level:
    1. Surrender  (level ≥ 4, two-card hard hands, surrender offered)
    2. Split      (level ≥ 3, pairs, split offered); a non-split row falls
                  through to the hard/soft tables on the pair's total
    3. Soft table (level ≥ 2, soft 13–21)
    4. Hard table (everything else)

Dealer values run 2–11 with the Ace as 11.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Collection

from .cards import DEALER_RANKS, Card, normalize_dealer_rank, rank_value
from .config import DifficultyLevel, validate_level
from .hand import HandType, evaluate, hand_type


class Action(Enum):
    HIT = 'hit'
    STAND = 'stand'
    DOUBLE = 'double'
    SPLIT = 'split'
    SURRENDER = 'surrender'


def parse_action(value: Action | str) -> Action:
    """Coerce a user selection ('hit', Action.HIT, ...) to an Action.

    Raises:
        ValueError: If the value names no action.
    """
    if isinstance(value, Action):
        return value
    try:
        return Action(str(value).lower())
    except ValueError:
        raise ValueError(
            f"Unknown action {value!r}; expected one of {[a.value for a in Action]}."
        ) from None


@dataclass(frozen=True)
class Rule:
    totals: Collection[int]
    action: Action | None
    dealer: Collection[int] | None = None
    needs_double: bool = False

    def matches(self, total: int, dealer_value: int, can_double: bool) -> bool:
        if total not in self.totals:
            return False
        if self.dealer is not None and dealer_value not in self.dealer:
            return False
        return can_double or not self.needs_double


# ─── Rule tables ──────────────────────────────────────────────────────────────

_ANY_BUST_TOTAL = range(17, 32)

SURRENDER_RULES: tuple[Rule, ...] = (
    Rule({16}, Action.SURRENDER, dealer={9, 10, 11}),
    Rule({15}, Action.SURRENDER, dealer={10}),
)

# Keyed on the value of one card of the pair (A = 11). action=None means
# "do not split": play the pair as its total.
PAIR_RULES: tuple[Rule, ...] = (
    Rule({11, 8}, Action.SPLIT),
    Rule({10, 5, 4}, None),
    Rule({9}, Action.SPLIT, dealer={2, 3, 4, 5, 6, 8, 9}),
    Rule({7}, Action.SPLIT, dealer=range(2, 8)),
    Rule({6}, Action.SPLIT, dealer=range(2, 7)),
    Rule({3, 2}, Action.SPLIT, dealer=range(2, 8)),
)

SOFT_RULES: tuple[Rule, ...] = (
    Rule({20, 21}, Action.STAND),
    Rule({19}, Action.DOUBLE, dealer={6}, needs_double=True),
    Rule({19}, Action.STAND),
    Rule({18}, Action.HIT, dealer={9, 10, 11}),
    Rule({18}, Action.DOUBLE, dealer=range(3, 7), needs_double=True),
    Rule({18}, Action.STAND),
    Rule({17}, Action.DOUBLE, dealer=range(3, 7), needs_double=True),
    Rule({17}, Action.HIT),
    Rule({15, 16}, Action.DOUBLE, dealer=range(4, 7), needs_double=True),
    Rule({15, 16}, Action.HIT),
    Rule({13, 14}, Action.DOUBLE, dealer={5, 6}, needs_double=True),
    Rule({13, 14}, Action.HIT),
)

HARD_RULES: tuple[Rule, ...] = (
    Rule(_ANY_BUST_TOTAL, Action.STAND),
    Rule(range(13, 17), Action.STAND, dealer=range(2, 7)),
    Rule(range(13, 17), Action.HIT),
    Rule({12}, Action.STAND, dealer=range(4, 7)),
    Rule({12}, Action.HIT),
    Rule({11}, Action.DOUBLE, needs_double=True),
    Rule({11}, Action.HIT),
    Rule({10}, Action.DOUBLE, dealer=range(2, 10), needs_double=True),
    Rule({10}, Action.HIT),
    Rule({9}, Action.DOUBLE, dealer=range(3, 7), needs_double=True),
    Rule({9}, Action.HIT),
    Rule(range(0, 9), Action.HIT),
)

SOFT_TABLE_TOTALS = range(13, 22)

# Rows shown on strategy charts and heat maps, per hand family.
CHART_TOTALS: dict[HandType, list[int]] = {
    HandType.HARD: list(range(5, 21)),
    HandType.SOFT: list(range(13, 21)),
    HandType.PAIR: [4, 6, 8, 10, 12, 14, 16, 18, 20, 22],
}


def _first_match(
    rules: tuple[Rule, ...],
    total: int,
    dealer_value: int,
    can_double: bool,
) -> Rule | None:
    for rule in rules:
        if rule.matches(total, dealer_value, can_double):
            return rule
    return None


def _resolve(
    total: int,
    is_soft: bool,
    kind: HandType,
    pair_value: int | None,
    dealer_value: int,
    can_double: bool,
    can_split: bool,
    can_surrender: bool,
    level: DifficultyLevel,
) -> Action:
    if level >= DifficultyLevel.SURRENDER and can_surrender and kind is HandType.HARD:
        if _first_match(SURRENDER_RULES, total, dealer_value, can_double) is not None:
            return Action.SURRENDER

    if level >= DifficultyLevel.PAIRS and kind is HandType.PAIR and can_split:
        rule = _first_match(PAIR_RULES, pair_value, dealer_value, can_double)
        if rule is not None and rule.action is Action.SPLIT:
            return Action.SPLIT

    if level >= DifficultyLevel.SOFT_HANDS and is_soft and total in SOFT_TABLE_TOTALS:
        rule = _first_match(SOFT_RULES, total, dealer_value, can_double)
        if rule is not None:
            return rule.action

    rule = _first_match(HARD_RULES, total, dealer_value, can_double)
    return rule.action if rule is not None else Action.HIT


# ─── Public API ───────────────────────────────────────────────────────────────

def decide(
    player_cards: tuple[Card, ...],
    dealer_upcard: Card,
    can_double: bool,
    can_split: bool,
    can_surrender: bool,
    level: int,
) -> Action:
    """Return the basic-strategy action for a hand.

    Args:
        player_cards: The player's cards (face-up cards are evaluated).
        dealer_upcard: The dealer's visible card.
        can_double: Doubling is offered.
        can_split: Splitting is offered.
        can_surrender: Surrender is offered (only honoured on two cards).
        level: Difficulty level 1–4; gates which tables apply.

    Raises:
        ValueError: If level is outside 1–4 or the upcard is not a Card.

    Examples:
        >>> from src.engine.cards import str_to_card as c
        >>> decide((c('10S'), c('6H')), c('9D'), True, False, True, 4)
        <Action.SURRENDER: 'surrender'>
        >>> decide((c('AS'), c('7H')), c('6D'), True, False, False, 2)
        <Action.DOUBLE: 'double'>
    """
    level = validate_level(level)
    if not isinstance(dealer_upcard, Card):
        raise ValueError(f"Dealer upcard must be a Card, got {dealer_upcard!r}.")

    value = evaluate(player_cards)
    kind = hand_type(player_cards)
    return _resolve(
        total=value.total,
        is_soft=value.is_soft,
        kind=kind,
        pair_value=player_cards[0].value if kind is HandType.PAIR else None,
        dealer_value=dealer_upcard.value,
        can_double=can_double,
        can_split=can_split,
        can_surrender=can_surrender and len(player_cards) == 2,
        level=level,
    )


def available_actions(
    player_cards: tuple[Card, ...],
    can_double: bool,
    can_split: bool,
    can_surrender: bool,
    level: int,
) -> list[Action]:
    """List the actions a player may choose in this spot, in button order."""
    level = validate_level(level)
    two_cards = len(player_cards) == 2
    actions = [Action.HIT, Action.STAND]
    if can_double and two_cards:
        actions.append(Action.DOUBLE)
    if level >= DifficultyLevel.PAIRS and can_split and hand_type(player_cards) is HandType.PAIR:
        actions.append(Action.SPLIT)
    if level >= DifficultyLevel.SURRENDER and can_surrender and two_cards:
        actions.append(Action.SURRENDER)
    return actions


def strategy_grid(
    kind: HandType,
    level: int = DifficultyLevel.SURRENDER,
) -> dict[tuple[int, str], Action]:
    """Tabulate the oracle over a chart: (total, dealer rank) -> Action.

    Every cell assumes a fresh two-card hand with doubling offered. Pairs
    are keyed by their summed value (A-A = 22); surrender is offered for
    hard hands only.
    """
    level = validate_level(level)
    grid: dict[tuple[int, str], Action] = {}
    for total in CHART_TOTALS[kind]:
        if kind is HandType.PAIR:
            pair_value = 11 if total == 22 else total // 2
            played_total = 12 if total == 22 else total
            is_soft = total == 22
        else:
            pair_value = None
            played_total = total
            is_soft = kind is HandType.SOFT
        for dealer_rank in DEALER_RANKS:
            grid[(total, dealer_rank)] = _resolve(
                total=played_total,
                is_soft=is_soft,
                kind=kind,
                pair_value=pair_value,
                dealer_value=rank_value(dealer_rank),
                can_double=True,
                can_split=True,
                can_surrender=kind is HandType.HARD,
                level=level,
            )
    return grid


# ─── Explanations ─────────────────────────────────────────────────────────────

# (hand type, totals, dealer ranks or None for any, action, text)
_EXPLANATIONS: tuple[tuple[HandType, Collection[int], Collection[str] | None, Action, str], ...] = (
    (HandType.HARD, range(17, 21), None, Action.STAND,
     "Always stand on hard 17+. The risk of busting outweighs potential gains."),
    (HandType.HARD, {16}, {'10'}, Action.HIT,
     "Hit 16 vs 10. Dealer makes 20 often; hitting loses less than standing."),
    (HandType.HARD, range(13, 17), {'2', '3', '4', '5', '6'}, Action.STAND,
     "Stand on 13-16 vs 2-6. The dealer busts 35-42% of the time from a weak upcard."),
    (HandType.HARD, {12}, {'4', '5', '6'}, Action.STAND,
     "Stand on 12 vs 4-6. Let the dealer bust rather than risk it yourself."),
    (HandType.HARD, {12}, {'2', '3'}, Action.HIT,
     "Hit 12 vs 2-3. The dealer busts less often and only a ten breaks you."),
    (HandType.HARD, {11}, None, Action.DOUBLE,
     "Double on 11. You have the best chance of making 21 with one card."),
    (HandType.HARD, {10}, None, Action.DOUBLE,
     "Double on 10 vs 2-9. One card will usually beat the dealer's total."),
    (HandType.HARD, {9}, None, Action.DOUBLE,
     "Double on 9 vs 3-6. Press the edge while the dealer shows a bust card."),
    (HandType.SOFT, {18}, {'9', '10', 'A'}, Action.HIT,
     "Hit soft 18 vs 9-A. Standing 18 loses to the dealer's likely 19-20 and you cannot bust."),
    (HandType.SOFT, {18}, None, Action.DOUBLE,
     "Double soft 18 vs 3-6. Take advantage of the dealer's bust cards."),
    (HandType.SOFT, {17}, None, Action.DOUBLE,
     "Double soft 17 vs 3-6. A flexible hand with a good doubling opportunity."),
    (HandType.SOFT, range(13, 17), None, Action.DOUBLE,
     "Double soft 13-16 vs weak upcards. Maximize value when the dealer is likely to bust."),
    (HandType.PAIR, {22}, None, Action.SPLIT,
     "Always split Aces. Two chances at 21 beat one hand of soft 12."),
    (HandType.PAIR, {16}, None, Action.SPLIT,
     "Always split 8s. 16 is the worst hand; two 8s have far better potential."),
    (HandType.PAIR, {20}, None, Action.STAND,
     "Never split 10s. 20 is too strong to break into two uncertain hands."),
    (HandType.PAIR, {10}, None, Action.DOUBLE,
     "Never split 5s; treat them as hard 10 and double."),
    (HandType.PAIR, {18}, {'7'}, Action.STAND,
     "Stand on 9s vs 7. Your 18 already beats the dealer's most likely 17."),
    (HandType.PAIR, {18}, None, Action.SPLIT,
     "Split 9s against weak upcards. Two hands starting at 9 beat a lone 18."),
    (HandType.HARD, {16}, {'9', '10', 'A'}, Action.SURRENDER,
     "Surrender 16 vs 9-A. Losing half the bet beats losing the whole bet most of the time."),
    (HandType.HARD, {15}, {'10'}, Action.SURRENDER,
     "Surrender 15 vs 10. The math favours giving up half here."),
)

_ACTION_VERBS: dict[Action, str] = {
    Action.HIT: "Hit",
    Action.STAND: "Stand",
    Action.DOUBLE: "Double down",
    Action.SPLIT: "Split",
    Action.SURRENDER: "Surrender",
}


def explain(total: int, dealer_rank: str, kind: HandType, action: Action) -> str:
    """Return a short explanation of why *action* is correct in this spot."""
    dealer_rank = normalize_dealer_rank(dealer_rank)
    for entry_kind, totals, dealers, entry_action, text in _EXPLANATIONS:
        if entry_kind is not kind or entry_action is not action or total not in totals:
            continue
        if dealers is None or dealer_rank in dealers:
            return text
    return (
        f"{_ACTION_VERBS[action]} is the mathematically optimal play for "
        f"{kind.value} {total} vs dealer {dealer_rank} based on expected value."
    )
