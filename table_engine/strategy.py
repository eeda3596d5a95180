"""Basic strategy tables for blackjack."""

from enum import Enum, auto
from typing import Mapping

from table_engine.cards import Card
from table_engine.hand import Hand


class StrategyAction(Enum):
    """Possible player actions."""

    HIT = auto()
    STAND = auto()
    DOUBLE = auto()
    SPLIT = auto()
    SURRENDER = auto()

    # Conditional actions (fallback if primary not allowed)
    DOUBLE_OR_HIT = auto()  # Double if allowed, else hit
    DOUBLE_OR_STAND = auto()  # Double if allowed, else stand
    SURRENDER_OR_HIT = auto()  # Surrender if allowed, else hit
    SURRENDER_OR_STAND = auto()  # Surrender if allowed, else stand
    SURRENDER_OR_SPLIT = auto()  # Surrender if allowed, else split

    def __str__(self) -> str:
        return self.name.replace("_", "/")

    @property
    def trigger(self) -> str:
        """Name of the table action this recommendation maps to."""
        return _TRIGGERS.get(self, "")


_TRIGGERS = {
    StrategyAction.HIT: "hit",
    StrategyAction.STAND: "stand",
    StrategyAction.DOUBLE: "double",
    StrategyAction.SPLIT: "split",
    StrategyAction.SURRENDER: "surrender",
}

_CODES = {
    "H": StrategyAction.HIT,
    "S": StrategyAction.STAND,
    "P": StrategyAction.SPLIT,
    "Dh": StrategyAction.DOUBLE_OR_HIT,
    "Ds": StrategyAction.DOUBLE_OR_STAND,
    "Rh": StrategyAction.SURRENDER_OR_HIT,
    "Rs": StrategyAction.SURRENDER_OR_STAND,
    "Rp": StrategyAction.SURRENDER_OR_SPLIT,
}

# Dealer upcards: 2, 3, 4, 5, 6, 7, 8, 9, 10, A(11)
DEALER_UPCARDS = (2, 3, 4, 5, 6, 7, 8, 9, 10, 11)

# Multi-deck, dealer stands on soft 17
#        2   3   4   5   6   7   8   9   10  A
HARD = {
    5: "H  H  H  H  H  H  H  H  H  H",
    6: "H  H  H  H  H  H  H  H  H  H",
    7: "H  H  H  H  H  H  H  H  H  H",
    8: "H  H  H  H  H  H  H  H  H  H",
    9: "H  Dh Dh Dh Dh H  H  H  H  H",
    10: "Dh Dh Dh Dh Dh Dh Dh Dh H  H",
    11: "Dh Dh Dh Dh Dh Dh Dh Dh Dh Dh",
    12: "H  H  S  S  S  H  H  H  H  H",
    13: "S  S  S  S  S  H  H  H  H  H",
    14: "S  S  S  S  S  H  H  H  H  H",
    15: "S  S  S  S  S  H  H  H  Rh Rh",
    16: "S  S  S  S  S  H  H  Rh Rh Rh",
    17: "S  S  S  S  S  S  S  S  S  Rs",
    18: "S  S  S  S  S  S  S  S  S  S",
    19: "S  S  S  S  S  S  S  S  S  S",
    20: "S  S  S  S  S  S  S  S  S  S",
    21: "S  S  S  S  S  S  S  S  S  S",
}

# Soft totals: A,2 (13) through A,9 (20)
SOFT = {
    13: "H  H  H  Dh Dh H  H  H  H  H",
    14: "H  H  H  Dh Dh H  H  H  H  H",
    15: "H  H  Dh Dh Dh H  H  H  H  H",
    16: "H  H  Dh Dh Dh H  H  H  H  H",
    17: "H  Dh Dh Dh Dh H  H  H  H  H",
    18: "Ds Ds Ds Ds Ds S  S  H  H  H",
    19: "S  S  S  S  Ds S  S  S  S  S",
    20: "S  S  S  S  S  S  S  S  S  S",
    21: "S  S  S  S  S  S  S  S  S  S",
}

# Pairs by card value (A = 11)
PAIRS = {
    11: "P  P  P  P  P  P  P  P  P  P",
    2: "P  P  P  P  P  P  H  H  H  H",
    3: "P  P  P  P  P  P  H  H  H  H",
    4: "H  H  H  P  P  H  H  H  H  H",
    5: "Dh Dh Dh Dh Dh Dh Dh Dh H  H",
    6: "P  P  P  P  P  H  H  H  H  H",
    7: "P  P  P  P  P  P  H  H  H  H",
    8: "P  P  P  P  P  P  P  P  Rp Rp",
    9: "P  P  P  P  P  S  P  P  S  S",
    10: "S  S  S  S  S  S  S  S  S  S",
}


def _build(rows: Mapping[int, str]) -> dict[tuple[int, int], StrategyAction]:
    table: dict[tuple[int, int], StrategyAction] = {}
    for total, row in rows.items():
        codes = row.split()
        assert len(codes) == len(DEALER_UPCARDS), f"Bad strategy row for {total}"
        for dealer, code in zip(DEALER_UPCARDS, codes):
            table[(total, dealer)] = _CODES[code]
    return table


class BasicStrategy:
    """
    Basic strategy lookup tables.

    Pre-computed dictionaries for O(1) lookup. Consulted by callers to
    advise the player; the round engine never reads it.
    """

    def __init__(self) -> None:
        self._hard_table = _build(HARD)
        self._soft_table = _build(SOFT)
        self._pair_table = _build(PAIRS)

    def lookup(self, hand: Hand, upcard: Card, can_split: bool = True) -> StrategyAction:
        """
        Return the raw table entry, conditional codes unresolved.

        Pairs use the pair table only when a split is possible; otherwise the
        hand is played by its total. Two ten-value cards count as a pair.
        """
        dealer = upcard.value
        total = hand.value

        if len(hand) == 2 and can_split and (hand.is_pair or hand.is_ten_value_pair):
            action = self._pair_table.get((hand.cards[0].value, dealer))
            if action is not None:
                return action

        if hand.is_soft:
            action = self._soft_table.get((total, dealer))
            if action is not None:
                return action

        action = self._hard_table.get((total, dealer))
        if action is not None:
            return action

        # Default actions for edge cases
        if total >= 17:
            return StrategyAction.STAND
        return StrategyAction.HIT

    def recommend(
        self,
        hand: Hand,
        upcard: Card,
        can_double: bool = True,
        can_split: bool = True,
        can_surrender: bool = True,
    ) -> StrategyAction:
        """
        Get the basic strategy action.

        Args:
            hand: Player's current hand
            upcard: Dealer's face-up card
            can_double: Whether doubling is allowed right now
            can_split: Whether splitting is allowed right now
            can_surrender: Whether surrender is allowed right now

        Returns:
            One of HIT, STAND, DOUBLE, SPLIT or SURRENDER
        """
        action = self.lookup(hand, upcard, can_split)
        return self._resolve_action(action, can_double, can_surrender, can_split)

    def _resolve_action(
        self,
        action: StrategyAction,
        can_double: bool,
        can_surrender: bool,
        can_split: bool,
    ) -> StrategyAction:
        """Resolve conditional actions based on what's allowed."""
        if action == StrategyAction.DOUBLE_OR_HIT:
            return StrategyAction.DOUBLE if can_double else StrategyAction.HIT
        if action == StrategyAction.DOUBLE_OR_STAND:
            return StrategyAction.DOUBLE if can_double else StrategyAction.STAND
        if action == StrategyAction.SURRENDER_OR_HIT:
            return StrategyAction.SURRENDER if can_surrender else StrategyAction.HIT
        if action == StrategyAction.SURRENDER_OR_STAND:
            return StrategyAction.SURRENDER if can_surrender else StrategyAction.STAND
        if action == StrategyAction.SURRENDER_OR_SPLIT:
            if can_surrender:
                return StrategyAction.SURRENDER
            return StrategyAction.SPLIT if can_split else StrategyAction.HIT
        if action == StrategyAction.SPLIT and not can_split:
            return StrategyAction.HIT
        return action
