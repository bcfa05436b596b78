"""
Statistics ledger: fold decision outcomes into immutable snapshots.

Every update returns a new Statistics; the input snapshot and its buckets
are never modified, so earlier snapshots stay valid for comparison or undo.

Granularities tracked per outcome:
    global counters and streaks
    by action taken, by hand type
    by dealer rank (J/Q/K grouped under '10')
    by ScenarioKey (only when dealer rank and player total are known)

Bucket timing invariant: avg_time == total_time / attempts when attempts > 0,
else 0. Decision times are milliseconds; timestamps are epoch seconds.

The mistake log keeps the most recent MISTAKE_LOG_LIMIT incorrect decisions
that arrived with full card context.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Iterable, Mapping

from src.engine.cards import Card, card_to_str, normalize_dealer_rank, str_to_card
from src.engine.config import (
    GameConfig,
    config_from_dict,
    config_to_dict,
    validate_config,
    validate_level,
)
from src.engine.hand import HandType
from src.engine.strategy import Action, decide, parse_action
from src.training.scenario_keys import (
    ScenarioKey,
    parse_hand_type,
    parse_scenario_key,
    scenario_key,
)

if TYPE_CHECKING:
    from src.engine.scenarios import TrainingScenario

logger = logging.getLogger(__name__)

MISTAKE_LOG_LIMIT: int = 500
STATS_VERSION: int = 1


# ─── Records ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class BucketStats:
    """Correct/incorrect counts and timing for one slice of decisions."""
    correct: int = 0
    incorrect: int = 0
    total_time: float = 0.0
    avg_time: float = 0.0
    last_seen: float | None = None

    @property
    def attempts(self) -> int:
        return self.correct + self.incorrect

    def record(
        self,
        is_correct: bool,
        decision_time: float | None = None,
        seen_at: float | None = None,
    ) -> BucketStats:
        correct = self.correct + (1 if is_correct else 0)
        incorrect = self.incorrect + (0 if is_correct else 1)
        total_time = self.total_time + (decision_time or 0.0)
        return BucketStats(
            correct=correct,
            incorrect=incorrect,
            total_time=total_time,
            avg_time=total_time / (correct + incorrect),
            last_seen=seen_at if seen_at is not None else self.last_seen,
        )


@dataclass(frozen=True)
class SpeedRecords:
    fastest_correct: float | None = None
    avg_speed: float = 0.0
    total_time_tracked: float = 0.0
    decisions_tracked: int = 0


@dataclass(frozen=True)
class MistakeRecord:
    id: str
    timestamp: float
    player_cards: tuple[Card, ...]
    dealer_upcard: Card
    player_action: Action
    correct_action: Action
    hand_type: HandType
    player_total: int
    decision_time: float | None = None
    session_id: str | None = None

    @property
    def key(self) -> ScenarioKey:
        return scenario_key(self.player_total, self.dealer_upcard.rank, self.hand_type)


def _action_buckets() -> dict[Action, BucketStats]:
    return {a: BucketStats() for a in Action}


def _hand_type_buckets() -> dict[HandType, BucketStats]:
    return {t: BucketStats() for t in HandType}


@dataclass(frozen=True)
class Statistics:
    """Aggregate snapshot of every recorded decision.

    Attributes:
        total_decisions:    Outcomes folded so far.
        correct_decisions:  Outcomes marked correct.
        incorrect_decisions: Outcomes marked incorrect.
        current_streak:     Consecutive correct outcomes, reset by a miss.
        longest_streak:     Running max of current_streak.
        by_action:          Bucket per action taken.
        by_hand_type:       Bucket per hand type.
        by_dealer_rank:     Bucket per dealer rank ('2'..'10', 'A').
        by_scenario:        Bucket per ScenarioKey, with last_seen.
        mistakes:           Most recent incorrect decisions, oldest first.
        speed_records:      Fastest correct time and running average.
        last_decision_time: Latency of the latest timed decision (ms).
        session_start_time: When this ledger was created (epoch seconds).
    """

    total_decisions: int = 0
    correct_decisions: int = 0
    incorrect_decisions: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    by_action: Mapping[Action, BucketStats] = field(default_factory=_action_buckets)
    by_hand_type: Mapping[HandType, BucketStats] = field(default_factory=_hand_type_buckets)
    by_dealer_rank: Mapping[str, BucketStats] = field(default_factory=dict)
    by_scenario: Mapping[ScenarioKey, BucketStats] = field(default_factory=dict)
    mistakes: tuple[MistakeRecord, ...] = ()
    speed_records: SpeedRecords = field(default_factory=SpeedRecords)
    last_decision_time: float | None = None
    session_start_time: float | None = None


@dataclass(frozen=True)
class DecisionOutcome:
    """One graded decision, the input to fold().

    Only action, hand type and correctness are required. Scenario tracking
    needs dealer_rank and player_total; the mistake log additionally needs
    player_cards, dealer_card and correct_action.
    """

    action: Action
    hand_type: HandType
    is_correct: bool
    decision_time: float | None = None
    dealer_rank: str | None = None
    player_total: int | None = None
    player_cards: tuple[Card, ...] | None = None
    dealer_card: Card | None = None
    correct_action: Action | None = None
    session_id: str | None = None
    now: float | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, 'action', parse_action(self.action))
        object.__setattr__(self, 'hand_type', parse_hand_type(self.hand_type))
        if self.correct_action is not None:
            object.__setattr__(self, 'correct_action', parse_action(self.correct_action))
        if self.decision_time is not None and self.decision_time < 0:
            raise ValueError(f"Decision time cannot be negative, got {self.decision_time}.")


def grade_decision(
    scenario: TrainingScenario,
    chosen: Action | str,
    level: int,
    decision_time: float | None = None,
    session_id: str | None = None,
    now: float | None = None,
) -> DecisionOutcome:
    """Check *chosen* against the oracle and build the outcome to fold.

    Args:
        scenario: The TrainingScenario that was shown.
        chosen:   The player's action.
        level:    Difficulty level the scenario was played at.

    Returns:
        DecisionOutcome tracked under the scenario's tracking key.
    """
    level = validate_level(level)
    chosen = parse_action(chosen)
    correct_action = decide(
        scenario.player_cards,
        scenario.dealer_upcard,
        scenario.can_double,
        scenario.can_split,
        scenario.can_surrender,
        level,
    )
    key = scenario.tracking_key
    return DecisionOutcome(
        action=chosen,
        hand_type=key.hand_type,
        is_correct=chosen is correct_action,
        decision_time=decision_time,
        dealer_rank=key.dealer_rank,
        player_total=key.player_total,
        player_cards=scenario.player_cards,
        dealer_card=scenario.dealer_upcard,
        correct_action=correct_action,
        session_id=session_id,
        now=now,
    )


# ─── Fold ─────────────────────────────────────────────────────────────────────

def create_initial_stats(now: float | None = None) -> Statistics:
    return Statistics(session_start_time=now if now is not None else time.time())


def reset_statistics(now: float | None = None) -> Statistics:
    """Return a zeroed ledger. Earlier snapshots are unaffected."""
    return create_initial_stats(now)


def _mistake_id(now: float) -> str:
    return f"mistake_{int(now * 1000)}_{uuid.uuid4().hex[:9]}"


def _updated(
    buckets: Mapping[Any, BucketStats],
    key: Any,
    is_correct: bool,
    decision_time: float | None,
    seen_at: float | None = None,
) -> dict[Any, BucketStats]:
    new = dict(buckets)
    new[key] = new.get(key, BucketStats()).record(is_correct, decision_time, seen_at)
    return new


def _updated_speed(records: SpeedRecords, decision_time: float, is_correct: bool) -> SpeedRecords:
    total = records.total_time_tracked + decision_time
    count = records.decisions_tracked + 1
    fastest = records.fastest_correct
    if is_correct and (fastest is None or decision_time < fastest):
        fastest = decision_time
    return SpeedRecords(
        fastest_correct=fastest,
        avg_speed=total / count,
        total_time_tracked=total,
        decisions_tracked=count,
    )


def fold(stats: Statistics | None, outcome: DecisionOutcome) -> Statistics:
    """Return a new snapshot with *outcome* applied.

    Args:
        stats:   Current snapshot, or None for a first run.
        outcome: The graded decision.

    Returns:
        A new Statistics; *stats* is left untouched.

    Examples:
        >>> s = fold(None, DecisionOutcome(Action.HIT, HandType.HARD, True))
        >>> s.total_decisions, s.current_streak
        (1, 1)
    """
    if stats is None:
        stats = create_initial_stats(outcome.now)
    now = outcome.now if outcome.now is not None else time.time()
    ok = outcome.is_correct
    dt = outcome.decision_time

    current_streak = stats.current_streak + 1 if ok else 0
    changes: dict[str, Any] = {
        'total_decisions': stats.total_decisions + 1,
        'correct_decisions': stats.correct_decisions + (1 if ok else 0),
        'incorrect_decisions': stats.incorrect_decisions + (0 if ok else 1),
        'current_streak': current_streak,
        'longest_streak': max(stats.longest_streak, current_streak),
        'by_action': _updated(stats.by_action, outcome.action, ok, dt),
        'by_hand_type': _updated(stats.by_hand_type, outcome.hand_type, ok, dt),
    }

    if outcome.dealer_rank is not None:
        dealer_rank = normalize_dealer_rank(outcome.dealer_rank)
        changes['by_dealer_rank'] = _updated(stats.by_dealer_rank, dealer_rank, ok, dt)
        if outcome.player_total is not None:
            key = scenario_key(outcome.player_total, dealer_rank, outcome.hand_type)
            changes['by_scenario'] = _updated(stats.by_scenario, key, ok, dt, seen_at=now)

    if dt is not None:
        changes['last_decision_time'] = dt
        changes['speed_records'] = _updated_speed(stats.speed_records, dt, ok)

    if (
        not ok
        and outcome.player_cards is not None
        and outcome.dealer_card is not None
        and outcome.correct_action is not None
        and outcome.player_total is not None
    ):
        mistake = MistakeRecord(
            id=_mistake_id(now),
            timestamp=now,
            player_cards=tuple(outcome.player_cards),
            dealer_upcard=outcome.dealer_card,
            player_action=outcome.action,
            correct_action=outcome.correct_action,
            hand_type=outcome.hand_type,
            player_total=outcome.player_total,
            decision_time=dt,
            session_id=outcome.session_id,
        )
        changes['mistakes'] = (stats.mistakes + (mistake,))[-MISTAKE_LOG_LIMIT:]

    return replace(stats, **changes)


def fold_all(stats: Statistics | None, outcomes: Iterable[DecisionOutcome]) -> Statistics:
    """Fold a sequence of outcomes left to right."""
    result = stats if stats is not None else create_initial_stats()
    for outcome in outcomes:
        result = fold(result, outcome)
    return result


# ─── Accuracy queries ─────────────────────────────────────────────────────────

def percent(correct: int, attempts: int) -> int:
    """round(correct / attempts * 100), or 0 with no attempts."""
    if attempts <= 0:
        return 0
    return round(correct / attempts * 100)


def bucket_accuracy(bucket: BucketStats | None) -> int:
    if bucket is None:
        return 0
    return percent(bucket.correct, bucket.attempts)


def _scope_bucket(stats: Statistics, scope: Any) -> BucketStats | None:
    if isinstance(scope, Action):
        return stats.by_action.get(scope)
    if isinstance(scope, HandType):
        return stats.by_hand_type.get(scope)
    if isinstance(scope, ScenarioKey):
        return stats.by_scenario.get(scope)
    if isinstance(scope, str):
        if '-' in scope:
            return stats.by_scenario.get(parse_scenario_key(scope))
        if scope in {a.value for a in Action}:
            return stats.by_action.get(Action(scope))
        if scope in {t.value for t in HandType}:
            return stats.by_hand_type.get(HandType(scope))
        return stats.by_dealer_rank.get(normalize_dealer_rank(scope))
    raise ValueError(f"Unsupported accuracy scope {scope!r}.")


def accuracy(stats: Statistics | None, scope: Any = None) -> int:
    """Percentage of correct decisions, 0 when there are none.

    Args:
        stats: Snapshot (None counts as empty).
        scope: None for overall, or an Action, HandType, ScenarioKey,
               scenario-key string, action/hand-type value, or dealer rank.

    Raises:
        ValueError: If scope names nothing the ledger tracks.

    Examples:
        >>> accuracy(None)
        0
    """
    if stats is None:
        return 0
    if scope is None:
        return percent(stats.correct_decisions, stats.total_decisions)
    return bucket_accuracy(_scope_bucket(stats, scope))


# ─── Mistake log ──────────────────────────────────────────────────────────────

def clear_mistake(stats: Statistics, mistake_id: str) -> Statistics:
    return replace(stats, mistakes=tuple(m for m in stats.mistakes if m.id != mistake_id))


def clear_all_mistakes(stats: Statistics) -> Statistics:
    return replace(stats, mistakes=())


def mistakes_for_scenario(
    mistakes: Iterable[MistakeRecord],
    key: ScenarioKey | str,
) -> list[MistakeRecord]:
    """Mistakes recorded under *key*, oldest first."""
    key = parse_scenario_key(key)
    return [m for m in mistakes if m.key == key]


# ─── Plain-data serialization ─────────────────────────────────────────────────

def _bucket_to_dict(bucket: BucketStats) -> dict[str, Any]:
    return {
        'correct': bucket.correct,
        'incorrect': bucket.incorrect,
        'total_time': bucket.total_time,
        'avg_time': bucket.avg_time,
        'last_seen': bucket.last_seen,
    }


def _bucket_from_dict(data: Mapping[str, Any]) -> BucketStats:
    correct = int(data.get('correct') or 0)
    incorrect = int(data.get('incorrect') or 0)
    total_time = float(data.get('total_time', 0.0) or 0.0)
    attempts = correct + incorrect
    return BucketStats(
        correct=correct,
        incorrect=incorrect,
        total_time=total_time,
        avg_time=total_time / attempts if attempts else 0.0,
        last_seen=data.get('last_seen'),
    )


def _merge_buckets(a: BucketStats, b: BucketStats) -> BucketStats:
    """Sum two buckets; last_seen is the later of the two."""
    correct = a.correct + b.correct
    incorrect = a.incorrect + b.incorrect
    total_time = a.total_time + b.total_time
    attempts = correct + incorrect
    seen = [t for t in (a.last_seen, b.last_seen) if t is not None]
    return BucketStats(
        correct=correct,
        incorrect=incorrect,
        total_time=total_time,
        avg_time=total_time / attempts if attempts else 0.0,
        last_seen=max(seen) if seen else None,
    )


def _mistake_to_dict(m: MistakeRecord) -> dict[str, Any]:
    return {
        'id': m.id,
        'timestamp': m.timestamp,
        'player_cards': [card_to_str(c) for c in m.player_cards],
        'dealer_upcard': card_to_str(m.dealer_upcard),
        'player_action': m.player_action.value,
        'correct_action': m.correct_action.value,
        'hand_type': m.hand_type.value,
        'player_total': m.player_total,
        'decision_time': m.decision_time,
        'session_id': m.session_id,
    }


def _mistake_from_dict(data: Mapping[str, Any]) -> MistakeRecord:
    return MistakeRecord(
        id=str(data['id']),
        timestamp=float(data['timestamp']),
        player_cards=tuple(str_to_card(s) for s in data['player_cards']),
        dealer_upcard=str_to_card(data['dealer_upcard']),
        player_action=parse_action(data['player_action']),
        correct_action=parse_action(data['correct_action']),
        hand_type=parse_hand_type(data['hand_type']),
        player_total=int(data['player_total']),
        decision_time=data.get('decision_time'),
        session_id=data.get('session_id'),
    )


def stats_to_dict(stats: Statistics) -> dict[str, Any]:
    """Convert a snapshot to JSON-ready plain data (str keys, no objects)."""
    speed = stats.speed_records
    return {
        'version': STATS_VERSION,
        'total_decisions': stats.total_decisions,
        'correct_decisions': stats.correct_decisions,
        'incorrect_decisions': stats.incorrect_decisions,
        'current_streak': stats.current_streak,
        'longest_streak': stats.longest_streak,
        'by_action': {a.value: _bucket_to_dict(b) for a, b in stats.by_action.items()},
        'by_hand_type': {t.value: _bucket_to_dict(b) for t, b in stats.by_hand_type.items()},
        'by_dealer_rank': {r: _bucket_to_dict(b) for r, b in stats.by_dealer_rank.items()},
        'by_scenario': {str(k): _bucket_to_dict(b) for k, b in stats.by_scenario.items()},
        'mistakes': [_mistake_to_dict(m) for m in stats.mistakes],
        'speed_records': {
            'fastest_correct': speed.fastest_correct,
            'avg_speed': speed.avg_speed,
            'total_time_tracked': speed.total_time_tracked,
            'decisions_tracked': speed.decisions_tracked,
        },
        'last_decision_time': stats.last_decision_time,
        'session_start_time': stats.session_start_time,
    }


def stats_from_dict(data: Mapping[str, Any] | None) -> Statistics:
    """Rebuild a snapshot from stats_to_dict() output.

    Missing fields take their defaults, so partial or older payloads load.
    Malformed mistake entries are dropped with a warning; malformed keys,
    ranks or actions raise ValueError.
    """
    if not data:
        return create_initial_stats()

    by_action = _action_buckets()
    by_action.update({
        parse_action(a): _bucket_from_dict(b) for a, b in (data.get('by_action') or {}).items()
    })
    by_hand_type = _hand_type_buckets()
    by_hand_type.update({
        parse_hand_type(t): _bucket_from_dict(b)
        for t, b in (data.get('by_hand_type') or {}).items()
    })

    # J/Q/K stored separately by older payloads collapse into '10'.
    by_dealer_rank: dict[str, BucketStats] = {}
    for r, b in (data.get('by_dealer_rank') or {}).items():
        rank = normalize_dealer_rank(r)
        bucket = _bucket_from_dict(b)
        if rank in by_dealer_rank:
            bucket = _merge_buckets(by_dealer_rank[rank], bucket)
        by_dealer_rank[rank] = bucket

    mistakes = []
    for entry in data.get('mistakes') or []:
        try:
            mistakes.append(_mistake_from_dict(entry))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("dropping malformed mistake record %r: %s", entry, exc)

    speed = data.get('speed_records') or {}
    return Statistics(
        total_decisions=int(data.get('total_decisions') or 0),
        correct_decisions=int(data.get('correct_decisions') or 0),
        incorrect_decisions=int(data.get('incorrect_decisions') or 0),
        current_streak=int(data.get('current_streak') or 0),
        longest_streak=int(data.get('longest_streak') or 0),
        by_action=by_action,
        by_hand_type=by_hand_type,
        by_dealer_rank=by_dealer_rank,
        by_scenario={
            parse_scenario_key(k): _bucket_from_dict(b)
            for k, b in (data.get('by_scenario') or {}).items()
        },
        mistakes=tuple(mistakes)[-MISTAKE_LOG_LIMIT:],
        speed_records=SpeedRecords(
            fastest_correct=speed.get('fastest_correct'),
            avg_speed=float(speed.get('avg_speed', 0.0) or 0.0),
            total_time_tracked=float(speed.get('total_time_tracked', 0.0) or 0.0),
            decisions_tracked=int(speed.get('decisions_tracked', 0) or 0),
        ),
        last_decision_time=data.get('last_decision_time'),
        session_start_time=data.get('session_start_time'),
    )


def progress_to_dict(stats: Statistics, config: GameConfig) -> dict[str, Any]:
    """Bundle a ledger and its table rules into one saveable payload."""
    return {'stats': stats_to_dict(stats), 'config': config_to_dict(config)}


def progress_from_dict(data: Mapping[str, Any] | None) -> tuple[Statistics, GameConfig]:
    """Inverse of progress_to_dict().

    A bare stats_to_dict() payload also loads, paired with the default
    GameConfig.

    Raises:
        ValueError: If the stored config fails validation.
    """
    if data and isinstance(data.get('stats'), Mapping):
        config = config_from_dict(data.get('config'))
        errors = validate_config(config)
        if errors:
            raise ValueError("; ".join(errors))
        return stats_from_dict(data['stats']), config
    return stats_from_dict(data), GameConfig()
