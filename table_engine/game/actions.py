"""Player and host actions.

One frozen type per transition, each carrying only the fields that
transition needs. ``trigger`` names the entry in the legal-transition table.
"""

from dataclasses import dataclass
from typing import ClassVar, Union


@dataclass(frozen=True)
class PlaceBet:
    amount: int
    trigger: ClassVar[str] = "place_bet"


@dataclass(frozen=True)
class ClearBet:
    trigger: ClassVar[str] = "clear_bet"


@dataclass(frozen=True)
class Deal:
    trigger: ClassVar[str] = "deal"


@dataclass(frozen=True)
class Hit:
    trigger: ClassVar[str] = "hit"


@dataclass(frozen=True)
class Stand:
    trigger: ClassVar[str] = "stand"


@dataclass(frozen=True)
class DoubleDown:
    trigger: ClassVar[str] = "double"


@dataclass(frozen=True)
class Split:
    trigger: ClassVar[str] = "split"


@dataclass(frozen=True)
class Insure:
    """Insurance side bet; an amount of zero declines."""

    amount: int = 0
    trigger: ClassVar[str] = "insure"


@dataclass(frozen=True)
class Surrender:
    trigger: ClassVar[str] = "surrender"


@dataclass(frozen=True)
class AdvanceDealer:
    """One step of dealer play, issued by the host loop."""

    trigger: ClassVar[str] = "advance_dealer"


@dataclass(frozen=True)
class NewRound:
    trigger: ClassVar[str] = "new_round"


@dataclass(frozen=True)
class Reset:
    """Start over with a fresh bankroll (the table's starting bankroll if omitted)."""

    bankroll: int | None = None
    trigger: ClassVar[str] = "reset"


Action = Union[
    PlaceBet,
    ClearBet,
    Deal,
    Hit,
    Stand,
    DoubleDown,
    Split,
    Insure,
    Surrender,
    AdvanceDealer,
    NewRound,
    Reset,
]

ACTION_TYPES: tuple[type, ...] = (
    PlaceBet,
    ClearBet,
    Deal,
    Hit,
    Stand,
    DoubleDown,
    Split,
    Insure,
    Surrender,
    AdvanceDealer,
    NewRound,
    Reset,
)

PUBLIC_TRIGGERS = frozenset(action_type.trigger for action_type in ACTION_TYPES)
