"""Round engine, actions, events and state."""

from table_engine.game.actions import (
    Action,
    AdvanceDealer,
    ClearBet,
    Deal,
    DoubleDown,
    Hit,
    Insure,
    NewRound,
    PlaceBet,
    Reset,
    Split,
    Stand,
    Surrender,
)
from table_engine.game.events import EventEmitter, EventType, GameEvent
from table_engine.game.state import Phase, RoundState, SplitHand
from table_engine.game.engine import RoundEngine

__all__ = [
    "Action",
    "AdvanceDealer",
    "ClearBet",
    "Deal",
    "DoubleDown",
    "Hit",
    "Insure",
    "NewRound",
    "PlaceBet",
    "Reset",
    "Split",
    "Stand",
    "Surrender",
    "EventEmitter",
    "EventType",
    "GameEvent",
    "Phase",
    "RoundState",
    "SplitHand",
    "RoundEngine",
]
