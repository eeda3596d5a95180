"""Blackjack table rule configuration."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RuleSet:
    """
    Table rules for a single-player game against the dealer.

    Every option that changes rules-correctness or payout arithmetic lives
    here. Pacing delays are presentation hints; the engine never reads them.
    """

    # Shoe configuration
    num_decks: int = 6
    deck_penetration: float = 0.75  # Fraction dealt before the cut card

    # Dealer rules
    dealer_stand_threshold: int = 17
    dealer_hits_soft_17: bool = False  # S17 by default

    # Blackjack payout (3:2 = 1.5, 6:5 = 1.2)
    blackjack_payout: float = 1.5

    # Double / split / surrender
    allow_double_after_split: bool = False  # DAS
    allow_surrender: bool = True
    max_split_hands: int = 3
    split_ten_values: bool = False  # Allow splitting e.g. 10-J

    # Bankroll
    starting_bankroll: int = 1000

    # Dealer pacing (seconds)
    dealer_initial_delay: float = 0.4
    dealer_draw_delay: float = 0.6

    def __post_init__(self) -> None:
        """Validate rule combinations."""
        if self.num_decks < 1 or self.num_decks > 8:
            raise ValueError("num_decks must be between 1 and 8")
        if not 0.0 < self.deck_penetration <= 1.0:
            raise ValueError("deck_penetration must be between 0 and 1")
        if not 12 <= self.dealer_stand_threshold <= 21:
            raise ValueError("dealer_stand_threshold must be between 12 and 21")
        if self.blackjack_payout < 1.0:
            raise ValueError("blackjack_payout must be at least 1.0")
        if self.max_split_hands < 2:
            raise ValueError("max_split_hands must be at least 2")
        if self.starting_bankroll <= 0:
            raise ValueError("starting_bankroll must be positive")
        if self.dealer_initial_delay < 0 or self.dealer_draw_delay < 0:
            raise ValueError("dealer delays cannot be negative")

    @classmethod
    def vegas_strip(cls) -> "RuleSet":
        """Standard Vegas Strip rules."""
        return cls(
            num_decks=6,
            dealer_hits_soft_17=False,
            blackjack_payout=1.5,
            allow_double_after_split=True,
            allow_surrender=True,
            max_split_hands=4,
        )

    @classmethod
    def downtown_vegas(cls) -> "RuleSet":
        """Downtown Las Vegas rules (typically H17)."""
        return cls(
            num_decks=6,
            dealer_hits_soft_17=True,
            blackjack_payout=1.5,
            allow_double_after_split=True,
            allow_surrender=True,
            max_split_hands=4,
        )

    @classmethod
    def single_deck(cls) -> "RuleSet":
        """Single deck rules with a 6:5 natural."""
        return cls(
            num_decks=1,
            deck_penetration=0.6,
            dealer_hits_soft_17=True,
            blackjack_payout=1.2,
            allow_double_after_split=False,
            allow_surrender=False,
            max_split_hands=2,
        )

    @classmethod
    def atlantic_city(cls) -> "RuleSet":
        """Atlantic City rules."""
        return cls(
            num_decks=8,
            dealer_hits_soft_17=False,
            blackjack_payout=1.5,
            allow_double_after_split=True,
            allow_surrender=True,
            max_split_hands=4,
        )
