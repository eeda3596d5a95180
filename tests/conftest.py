"""Pytest fixtures for blackjack table tests."""

from dataclasses import replace
from random import Random

import pytest

from table_engine.cards import Card, Rank, Shoe, Suit
from table_engine.context import SessionContext
from table_engine.game import PlaceBet, RoundEngine, RoundState
from table_engine.hand import Hand
from table_engine.rules import RuleSet


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return Random(42)


@pytest.fixture
def context(rng):
    """Session counters backed by the seeded RNG."""
    return SessionContext(rng=rng)


@pytest.fixture
def rules():
    """Default ruleset."""
    return RuleSet()


@pytest.fixture
def engine(rules, context):
    """A round engine with default rules."""
    return RoundEngine(rules, context)


@pytest.fixture
def stacked(engine):
    """
    Build a betting-phase state whose shoe deals the given cards in order.

    The deal goes player, dealer, player, dealer; anything after the first
    four cards is drawn by hits, doubles, splits and the dealer.
    """

    def build(*cards: str, bet: int = 100, chips: int = 1000) -> RoundState:
        state = replace(engine.initial_state(chips), shoe=Shoe.from_cards(cards))
        return engine.apply(state, PlaceBet(bet))

    return build


@pytest.fixture
def blackjack_hand():
    """A natural blackjack hand."""
    return Hand.of(Card(Rank.ACE, Suit.SPADES), Card(Rank.KING, Suit.HEARTS))


@pytest.fixture
def soft_17_hand():
    """A soft 17 hand (A-6)."""
    return Hand.of(Card(Rank.ACE, Suit.SPADES), Card(Rank.SIX, Suit.HEARTS))


@pytest.fixture
def hard_16_hand():
    """A hard 16 hand (10-6)."""
    return Hand.of(Card(Rank.TEN, Suit.SPADES), Card(Rank.SIX, Suit.HEARTS))


@pytest.fixture
def pair_8s_hand():
    """A pair of 8s hand."""
    return Hand.of(Card(Rank.EIGHT, Suit.SPADES), Card(Rank.EIGHT, Suit.HEARTS))


@pytest.fixture
def bust_hand():
    """A busted hand."""
    return Hand.of("10S", "6H", "KC")
