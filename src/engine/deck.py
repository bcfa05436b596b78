"""
Deck creation, shuffling and dealing.

A deck is an immutable tuple of Card values. Dealing returns the dealt card
together with the remaining deck instead of mutating anything, so a deck
can be shared between callers.

Randomness comes from a numpy Generator. Every public function accepts an
optional ``rng``; pass a seeded ``np.random.default_rng(seed)`` for
reproducible runs.
"""

from __future__ import annotations

import numpy as np

from .cards import RANK_NAMES, SUIT_NAMES, Card

Deck = tuple[Card, ...]


def resolve_rng(rng: np.random.Generator | None) -> np.random.Generator:
    """Return *rng*, or a fresh unseeded Generator when None."""
    return rng if rng is not None else np.random.default_rng()


def create_deck() -> Deck:
    """Create a fresh, ordered 52-card deck with every card face down.

    Examples:
        >>> len(create_deck())
        52
        >>> create_deck()[0]
        Card(rank='A', suit='C', face_up=False)
    """
    return tuple(
        Card(rank=rank, suit=suit, face_up=False)
        for suit in SUIT_NAMES
        for rank in RANK_NAMES
    )


def shuffle_deck(deck: Deck, rng: np.random.Generator | None = None) -> Deck:
    """Return a shuffled copy of *deck*. The input is left untouched."""
    order = resolve_rng(rng).permutation(len(deck))
    return tuple(deck[i] for i in order)


def deal_card(
    deck: Deck,
    face_up: bool = True,
    rng: np.random.Generator | None = None,
) -> tuple[Card, Deck]:
    """Deal the top card of *deck*.

    An empty deck is replaced by a freshly shuffled one before dealing, so
    this never fails.

    Args:
        deck: Deck to deal from (not modified).
        face_up: Orientation of the dealt card.
        rng: Generator used only when a reshuffle is needed.

    Returns:
        (dealt_card, remaining_deck)

    Examples:
        >>> card, rest = deal_card(create_deck())
        >>> str(card), len(rest)
        ('AC', 51)
    """
    if not deck:
        deck = shuffle_deck(create_deck(), rng)
    top = deck[0]
    return Card(rank=top.rank, suit=top.suit, face_up=face_up), deck[1:]
