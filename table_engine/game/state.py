"""Round state: phases, results, split hands, statistics."""

from dataclasses import dataclass, field
from enum import Enum

from table_engine.cards import Card, Shoe
from table_engine.hand import Hand
from table_engine.payout import Result

HISTORY_WINDOW = 50


class Phase(Enum):
    """
    Round state machine phases.

    Flow: BETTING → DEALING → PLAYER_TURN → DEALER_TURN → RESOLVING → GAME_OVER
    """

    IDLE = "idle"
    BETTING = "betting"
    DEALING = "dealing"
    PLAYER_TURN = "player_turn"
    SPLITTING = "splitting"
    DOUBLING = "doubling"
    INSURANCE_OFFER = "insurance_offer"
    SURRENDERING = "surrendering"
    DEALER_TURN = "dealer_turn"
    RESOLVING = "resolving"
    GAME_OVER = "game_over"

    def __str__(self) -> str:
        return self.value.replace("_", " ").title()


# Phases during which a bet is on the table and cards are in play
MID_HAND_PHASES = frozenset(
    {
        Phase.DEALING,
        Phase.PLAYER_TURN,
        Phase.SPLITTING,
        Phase.DOUBLING,
        Phase.INSURANCE_OFFER,
        Phase.SURRENDERING,
        Phase.DEALER_TURN,
    }
)


@dataclass(frozen=True)
class SplitHand:
    """One hand produced by a split, with its own bet and outcome."""

    hand: Hand
    bet: int
    result: Result | None = None
    stood: bool = False
    doubled: bool = False

    @property
    def cards(self) -> tuple[Card, ...]:
        return self.hand.cards

    @property
    def value(self) -> int:
        return self.hand.value


@dataclass(frozen=True)
class GameStats:
    """Win/loss/push counters. Split hands count individually."""

    wins: int = 0
    losses: int = 0
    pushes: int = 0

    def record(self, result: Result) -> "GameStats":
        if result.is_win:
            return GameStats(self.wins + 1, self.losses, self.pushes)
        if result == Result.LOSE:
            return GameStats(self.wins, self.losses + 1, self.pushes)
        return GameStats(self.wins, self.losses, self.pushes + 1)


@dataclass(frozen=True)
class DetailedStats:
    """Per-round aggregates read by achievements and dashboards."""

    total_hands_played: int = 0
    total_bet_amount: int = 0
    total_payout_amount: int = 0
    blackjack_count: int = 0
    double_count: int = 0
    split_count: int = 0
    surrender_count: int = 0
    insurance_taken: int = 0
    insurance_won: int = 0
    current_win_streak: int = 0
    current_loss_streak: int = 0
    biggest_win_streak: int = 0
    biggest_loss_streak: int = 0
    starting_chips: int = 0
    chip_history: tuple[int, ...] = ()
    result_history: tuple[Result, ...] = ()

    @property
    def net_result(self) -> int:
        return self.total_payout_amount - self.total_bet_amount


@dataclass(frozen=True)
class RoundState:
    """
    Complete table state between two actions.

    Instances are immutable. The engine returns a new instance for every
    legal action and the very same instance for anything it ignores.
    """

    phase: Phase = Phase.BETTING
    shoe: Shoe = field(default_factory=Shoe)
    player_hand: Hand = field(default_factory=Hand)
    dealer_hand: Hand = field(default_factory=Hand)
    split_hands: tuple[SplitHand, ...] = ()
    active_hand_index: int = 0
    bet: int = 0
    insurance_bet: int = 0
    chips: int = 1000
    stats: GameStats = field(default_factory=GameStats)
    detailed_stats: DetailedStats = field(default_factory=DetailedStats)
    dealer_revealed: bool = False
    result: Result | None = None
    message: str = "Place your bet to start!"
    natural: bool = False
    doubled: bool = False
    surrendered: bool = False
    payout: int = 0

    @classmethod
    def initial(cls, bankroll: int) -> "RoundState":
        """Fresh session state: betting phase, full bankroll, empty stats."""
        return cls(
            chips=bankroll,
            detailed_stats=DetailedStats(starting_chips=bankroll),
        )

    @property
    def is_split(self) -> bool:
        return len(self.split_hands) > 0

    @property
    def active_split_hand(self) -> SplitHand | None:
        if 0 <= self.active_hand_index < len(self.split_hands):
            return self.split_hands[self.active_hand_index]
        return None

    @property
    def wagered(self) -> int:
        """Main-hand chips at risk (all split hands once split)."""
        if self.is_split:
            return sum(h.bet for h in self.split_hands)
        return self.bet

    @property
    def shoe_size(self) -> int:
        return self.shoe.size

    @property
    def cut_card_reached(self) -> bool:
        return self.shoe.cut_card_reached

    @property
    def cards_remaining(self) -> int:
        return self.shoe.cards_remaining

    @property
    def player_score(self) -> int:
        return self.player_hand.value

    @property
    def dealer_visible_score(self) -> int:
        """Dealer score as the player sees it (upcard only until revealed)."""
        if self.dealer_revealed:
            return self.dealer_hand.value
        if self.dealer_hand.cards:
            return self.dealer_hand.cards[0].value
        return 0

    @property
    def dealer_upcard(self) -> Card | None:
        return self.dealer_hand.cards[0] if self.dealer_hand.cards else None

    @property
    def max_insurance_bet(self) -> int:
        return self.bet // 2
