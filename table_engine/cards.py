"""Card and Shoe classes - immutable card representations."""

from dataclasses import dataclass, field, replace
from enum import Enum
from random import Random
from typing import Iterable, Iterator

from table_engine.context import SessionContext


class Suit(Enum):
    """Card suits."""

    CLUBS = "clubs"
    DIAMONDS = "diamonds"
    HEARTS = "hearts"
    SPADES = "spades"

    def __str__(self) -> str:
        symbols = {
            Suit.CLUBS: "♣",
            Suit.DIAMONDS: "♦",
            Suit.HEARTS: "♥",
            Suit.SPADES: "♠",
        }
        return symbols[self]


class Rank(Enum):
    """Card ranks with blackjack values."""

    TWO = 2
    THREE = 3
    FOUR = 4
    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8
    NINE = 9
    TEN = 10
    JACK = 11
    QUEEN = 12
    KING = 13
    ACE = 14

    def __str__(self) -> str:
        if self.value <= 10:
            return str(self.value)
        return {
            Rank.JACK: "J",
            Rank.QUEEN: "Q",
            Rank.KING: "K",
            Rank.ACE: "A",
        }[self]

    @property
    def blackjack_value(self) -> int:
        """Return the blackjack point value (Ace = 11, face cards = 10)."""
        if self.value <= 10:
            return self.value
        if self == Rank.ACE:
            return 11
        return 10

    @property
    def is_ace(self) -> bool:
        return self == Rank.ACE

    @property
    def is_ten_value(self) -> bool:
        return self.blackjack_value == 10


_RANK_CODES = {
    "2": Rank.TWO,
    "3": Rank.THREE,
    "4": Rank.FOUR,
    "5": Rank.FIVE,
    "6": Rank.SIX,
    "7": Rank.SEVEN,
    "8": Rank.EIGHT,
    "9": Rank.NINE,
    "10": Rank.TEN,
    "T": Rank.TEN,
    "J": Rank.JACK,
    "Q": Rank.QUEEN,
    "K": Rank.KING,
    "A": Rank.ACE,
}

_SUIT_CODES = {
    "C": Suit.CLUBS,
    "♣": Suit.CLUBS,
    "D": Suit.DIAMONDS,
    "♦": Suit.DIAMONDS,
    "H": Suit.HEARTS,
    "♥": Suit.HEARTS,
    "S": Suit.SPADES,
    "♠": Suit.SPADES,
}


@dataclass(frozen=True, slots=True)
class Card:
    """
    Immutable playing card.

    ``uid`` only disambiguates physical cards (two ace of spades in a
    six-deck shoe); it never takes part in equality or game logic.
    """

    rank: Rank
    suit: Suit
    uid: int = field(default=0, compare=False)

    def __str__(self) -> str:
        return f"{self.rank}{self.suit}"

    def __repr__(self) -> str:
        return f"Card({self.rank.name}, {self.suit.name}, uid={self.uid})"

    @property
    def value(self) -> int:
        """Return the blackjack point value."""
        return self.rank.blackjack_value

    @property
    def is_ace(self) -> bool:
        return self.rank.is_ace

    @property
    def is_ten_value(self) -> bool:
        return self.rank.is_ten_value

    def with_uid(self, uid: int) -> "Card":
        """Return the same card carrying a new identity."""
        return replace(self, uid=uid)

    def to_dict(self) -> dict[str, int | str]:
        return {"rank": self.rank.value, "suit": self.suit.value, "uid": self.uid}

    @classmethod
    def from_dict(cls, data: dict) -> "Card":
        return cls(Rank(data["rank"]), Suit(data["suit"]), int(data.get("uid", 0)))

    @classmethod
    def from_string(cls, s: str) -> "Card":
        """Create a card from a string like '2♣', 'AS', 'Kh', '10d'."""
        s = s.strip().upper()
        if len(s) < 2:
            raise ValueError(f"Invalid card string: {s}")

        rank_str = s[:-1]
        suit_str = s[-1]

        if rank_str not in _RANK_CODES:
            raise ValueError(f"Invalid rank: {rank_str}")
        if suit_str not in _SUIT_CODES:
            raise ValueError(f"Invalid suit: {suit_str}")

        return cls(_RANK_CODES[rank_str], _SUIT_CODES[suit_str])


def standard_deck() -> list[Card]:
    """Return the 52 cards of one deck in a fixed order."""
    return [Card(rank, suit) for suit in Suit for rank in Rank]


@dataclass(frozen=True)
class Shoe:
    """
    A multi-deck shoe, consumed from the end of ``cards``.

    A shoe is never mutated: :meth:`draw` hands back the drawn card and a
    new shoe holding the remaining cards, so split hands drawing in turn
    can never observe a stale or shared sequence.
    """

    cards: tuple[Card, ...] = ()
    size: int = 0
    penetration: float = 0.75
    cut_card_reached: bool = False

    @classmethod
    def build(
        cls,
        num_decks: int = 6,
        penetration: float = 0.75,
        rng: Random | None = None,
    ) -> "Shoe":
        """
        Create a freshly shuffled shoe.

        Args:
            num_decks: Number of decks in the shoe
            penetration: Fraction of the shoe dealt before the cut card
            rng: Random number generator for shuffling
        """
        if num_decks < 1:
            raise ValueError("Shoe must have at least 1 deck")
        if not 0.0 < penetration <= 1.0:
            raise ValueError("Penetration must be between 0 and 1")

        cards = [card for _ in range(num_decks) for card in standard_deck()]
        (rng or Random()).shuffle(cards)
        return cls(cards=tuple(cards), size=len(cards), penetration=penetration)

    @classmethod
    def from_cards(
        cls,
        cards: Iterable[Card | str],
        penetration: float = 0.75,
        size: int | None = None,
    ) -> "Shoe":
        """
        Create a stacked shoe whose cards come out in the given order.

        Strings are parsed with :meth:`Card.from_string`.
        """
        ordered = [c if isinstance(c, Card) else Card.from_string(c) for c in cards]
        ordered.reverse()
        return cls(
            cards=tuple(ordered),
            size=size if size is not None else len(ordered),
            penetration=penetration,
        )

    def draw(self, context: SessionContext) -> tuple[Card, "Shoe"]:
        """
        Draw one card, stamped with a fresh identity from ``context``.

        Returns:
            The card and the remaining shoe
        """
        assert self.cards, "Cannot draw from an empty shoe"

        card = self.cards[-1].with_uid(context.next_card_id())
        remaining = self.cards[:-1]
        reached = self.cut_card_reached or (
            len(remaining) < (1.0 - self.penetration) * self.size
        )
        return card, replace(self, cards=remaining, cut_card_reached=reached)

    @property
    def needs_shuffle(self) -> bool:
        """Check if a fresh shoe must be built before the next deal."""
        return not self.cards or self.cut_card_reached

    @property
    def cards_remaining(self) -> int:
        return len(self.cards)

    @property
    def cards_dealt(self) -> int:
        return self.size - len(self.cards)

    def __len__(self) -> int:
        return len(self.cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(self.cards)
