"""
Difficulty levels, training modes and table-rule configuration.

The strategy tables assume a fixed rule set (dealer hits soft 17, double
after split, late surrender). GameConfig records those rules so they can be
displayed and persisted alongside statistics; it does not change the
tables.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from enum import Enum, IntEnum
from typing import Any


class DifficultyLevel(IntEnum):
    HARD_ONLY = 1
    SOFT_HANDS = 2
    PAIRS = 3
    SURRENDER = 4


MIN_LEVEL: int = DifficultyLevel.HARD_ONLY
MAX_LEVEL: int = DifficultyLevel.SURRENDER


class TrainingMode(Enum):
    RANDOM = 'random'
    WEAKNESS = 'weakness'
    MASTERY = 'mastery'
    SPACED = 'spaced'
    BALANCED = 'balanced'
    SPEED = 'speed'
    CUSTOM = 'custom'


def parse_mode(value: TrainingMode | str) -> TrainingMode:
    if isinstance(value, TrainingMode):
        return value
    try:
        return TrainingMode(str(value).lower())
    except ValueError:
        raise ValueError(
            f"Unknown training mode {value!r}; expected one of {[m.value for m in TrainingMode]}."
        ) from None


@dataclass(frozen=True)
class LevelConfig:
    level: DifficultyLevel
    name: str
    description: str
    include_hard_hands: bool
    include_soft_hands: bool
    include_pairs: bool
    include_surrender: bool


LEVEL_CONFIGS: dict[DifficultyLevel, LevelConfig] = {
    DifficultyLevel.HARD_ONLY: LevelConfig(
        DifficultyLevel.HARD_ONLY, "Level 1: Hard Totals",
        "Hard hands only: hit, stand and double.",
        True, False, False, False,
    ),
    DifficultyLevel.SOFT_HANDS: LevelConfig(
        DifficultyLevel.SOFT_HANDS, "Level 2: Soft Hands",
        "Adds soft totals (Ace counted as 11).",
        True, True, False, False,
    ),
    DifficultyLevel.PAIRS: LevelConfig(
        DifficultyLevel.PAIRS, "Level 3: Pairs",
        "Adds pair splitting decisions.",
        True, True, True, False,
    ),
    DifficultyLevel.SURRENDER: LevelConfig(
        DifficultyLevel.SURRENDER, "Level 4: Surrender",
        "Full basic strategy including late surrender.",
        True, True, True, True,
    ),
}


def validate_level(level: int) -> DifficultyLevel:
    """Coerce *level* to a DifficultyLevel, failing fast on anything else.

    Raises:
        ValueError: If level is not an integer in 1..4.

    Examples:
        >>> validate_level(3)
        <DifficultyLevel.PAIRS: 3>
    """
    if isinstance(level, bool) or not isinstance(level, int):
        raise ValueError(f"Difficulty level must be an int in {MIN_LEVEL}..{MAX_LEVEL}, got {level!r}.")
    try:
        return DifficultyLevel(level)
    except ValueError:
        raise ValueError(
            f"Difficulty level must be in {MIN_LEVEL}..{MAX_LEVEL}, got {level}."
        ) from None


# ─── Table rules ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class GameConfig:
    dealer_hits_soft_17: bool = True
    double_after_split: bool = True
    surrender_allowed: bool = True
    max_splits: int = 3
    num_decks: int = 1
    adaptive_difficulty: bool = False


def validate_config(config: GameConfig) -> list[str]:
    """Return a list of problems with *config*; empty when valid."""
    errors: list[str] = []
    if not 0 <= config.max_splits <= 10:
        errors.append("Maximum splits must be between 0 and 10")
    if not 1 <= config.num_decks <= 8:
        errors.append("Number of decks must be between 1 and 8")
    return errors


def update_config(config: GameConfig, **updates: Any) -> GameConfig:
    """Return a copy of *config* with *updates* applied.

    Raises:
        ValueError: On an unknown field or if the result fails validation.
    """
    known = {f.name for f in fields(GameConfig)}
    unknown = set(updates) - known
    if unknown:
        raise ValueError(f"Unknown config fields: {sorted(unknown)}")
    new_config = GameConfig(**{**asdict(config), **updates})
    errors = validate_config(new_config)
    if errors:
        raise ValueError("; ".join(errors))
    return new_config


def config_to_dict(config: GameConfig) -> dict[str, Any]:
    return asdict(config)


def config_from_dict(data: dict[str, Any] | None) -> GameConfig:
    """Build a GameConfig from stored data, defaulting any missing field.

    Unknown keys are ignored so older or newer payloads still load.
    """
    if not isinstance(data, dict):
        return GameConfig()
    known = {f.name for f in fields(GameConfig)}
    return GameConfig(**{k: v for k, v in data.items() if k in known})


def config_description(config: GameConfig) -> list[str]:
    return [
        f"Dealer {'hits' if config.dealer_hits_soft_17 else 'stands'} on soft 17",
        f"Double after split: {'allowed' if config.double_after_split else 'not allowed'}",
        f"Surrender: {'allowed' if config.surrender_allowed else 'not allowed'}",
        f"Maximum splits: {config.max_splits}",
        f"Number of decks: {config.num_decks}",
        f"Adaptive difficulty: {'enabled' if config.adaptive_difficulty else 'disabled'}",
    ]
