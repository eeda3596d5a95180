"""Hand evaluation for blackjack."""

from dataclasses import dataclass
from typing import Iterable, Iterator

from table_engine.cards import Card


def score(cards: Iterable[Card]) -> int:
    """
    Calculate the best value of a sequence of cards.

    Aces start at 11 and drop to 1, one at a time, while the total is over
    21. Returns the highest value that doesn't bust, or the lowest bust value.
    """
    total = 0
    aces = 0

    for card in cards:
        if card.is_ace:
            aces += 1
        total += card.value

    while total > 21 and aces > 0:
        total -= 10
        aces -= 1

    return total


@dataclass(frozen=True)
class Hand:
    """
    An ordered, immutable sequence of cards.

    The value is recomputed from the cards on every access.
    """

    cards: tuple[Card, ...] = ()

    @classmethod
    def of(cls, *cards: Card | str) -> "Hand":
        """Build a hand from cards or card strings like 'AS'."""
        return cls(tuple(c if isinstance(c, Card) else Card.from_string(c) for c in cards))

    def add(self, card: Card) -> "Hand":
        """Return a new hand with ``card`` appended."""
        return Hand(self.cards + (card,))

    @property
    def value(self) -> int:
        return score(self.cards)

    @property
    def is_soft(self) -> bool:
        """
        Check if the hand is soft (has an ace counted as 11).

        A hand is soft if it contains an ace that can be counted as 11
        without busting.
        """
        if not any(card.is_ace for card in self.cards):
            return False

        total_hard = sum(1 if card.is_ace else card.value for card in self.cards)
        return total_hard + 10 <= 21

    @property
    def is_hard(self) -> bool:
        return not self.is_soft

    @property
    def is_soft_17(self) -> bool:
        return self.value == 17 and self.is_soft

    @property
    def is_blackjack(self) -> bool:
        """Check if the hand is a natural blackjack (21 with 2 cards)."""
        return len(self.cards) == 2 and self.value == 21

    @property
    def is_busted(self) -> bool:
        return self.value > 21

    @property
    def is_pair(self) -> bool:
        """Check if the hand is two cards of identical rank."""
        return len(self.cards) == 2 and self.cards[0].rank == self.cards[1].rank

    @property
    def is_ten_value_pair(self) -> bool:
        """Two ten-value cards, e.g. 10-J (scores like a pair, splits only by rule)."""
        return len(self.cards) == 2 and all(card.is_ten_value for card in self.cards)

    def can_split(self, split_ten_values: bool = False) -> bool:
        """Check if the two cards may be split under the given rule."""
        if self.is_pair:
            return True
        return split_ten_values and self.is_ten_value_pair

    @property
    def is_ace_pair(self) -> bool:
        return self.is_pair and self.cards[0].is_ace

    def __len__(self) -> int:
        return len(self.cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(self.cards)

    def __str__(self) -> str:
        cards_str = " ".join(str(card) for card in self.cards)
        value_str = f"({self.value})"
        if self.is_soft:
            value_str = f"(soft {self.value})"
        if self.is_blackjack:
            value_str = "(BLACKJACK)"
        if self.is_busted:
            value_str = "(BUST)"
        return f"{cards_str} {value_str}"

    def __repr__(self) -> str:
        return f"Hand({list(self.cards)!r}, value={self.value})"


def evaluate_hands(player_hand: Hand, dealer_hand: Hand) -> int:
    """
    Compare player and dealer hands by score.

    Naturals get no special treatment here. A player natural is settled at
    the deal and never reaches this comparison; a dealer natural behind a
    non-Ace upcard is found at dealer play and compares as plain 21.

    Returns:
        1 if player wins
        -1 if dealer wins
        0 if push (tie)
    """
    player_value = player_hand.value
    dealer_value = dealer_hand.value

    # Player busts always loses, even if the dealer busts too
    if player_hand.is_busted:
        return -1

    if dealer_hand.is_busted:
        return 1

    if player_value > dealer_value:
        return 1
    if dealer_value > player_value:
        return -1
    return 0
