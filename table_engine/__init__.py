"""Single-player blackjack round engine - UI-agnostic."""

from table_engine.cards import Card, Rank, Shoe, Suit
from table_engine.context import SessionContext
from table_engine.hand import Hand
from table_engine.payout import Result
from table_engine.rules import RuleSet
from table_engine.table import DealerPacing, Table

__all__ = [
    "Card",
    "Rank",
    "Shoe",
    "Suit",
    "SessionContext",
    "Hand",
    "Result",
    "RuleSet",
    "DealerPacing",
    "Table",
]
