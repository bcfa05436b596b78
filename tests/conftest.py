"""
Shared pytest fixtures for the strategy-trainer tests.

Provides a hand() builder over str_to_card, a seeded Generator, and a fixed
clock so ledger timestamps are deterministic.
"""

from __future__ import annotations

import numpy as np
import pytest

from src.engine.cards import Card, str_to_card

NOW: float = 1_700_000_000.0


def hand(*card_strs: str) -> tuple[Card, ...]:
    """Build a hand tuple from human-readable card strings.

    Examples:
        >>> hand('AS', '7H')
        (Card(rank='A', suit='S', face_up=True), Card(rank='7', suit='H', face_up=True))
    """
    return tuple(str_to_card(s) for s in card_strs)


def card(s: str) -> Card:
    return str_to_card(s)


@pytest.fixture
def rng() -> np.random.Generator:
    """A seeded numpy Generator."""
    return np.random.default_rng(42)


@pytest.fixture
def now() -> float:
    return NOW


@pytest.fixture
def h():
    """Expose the hand() helper as a fixture for convenience."""
    return hand
