"""Saving and restoring table state.

Snapshots are validated with pydantic on the way back in. Anything that
goes wrong while loading (missing file, bad JSON, a snapshot that fails
validation) is logged and reported as "no saved state".
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from table_engine.cards import Card, Rank, Shoe, Suit
from table_engine.game.state import (
    MID_HAND_PHASES,
    DetailedStats,
    GameStats,
    Phase,
    RoundState,
    SplitHand,
)
from table_engine.hand import Hand
from table_engine.history import HistoryRecorder
from table_engine.payout import Result

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


class SnapshotStore(Protocol):
    """Opaque persistence medium holding one serialized document."""

    def save(self, data: str) -> None: ...

    def load(self) -> str | None: ...


class MemoryStore:
    """Keeps the document in memory (tests, ephemeral sessions)."""

    def __init__(self, data: str | None = None) -> None:
        self.data = data

    def save(self, data: str) -> None:
        self.data = data

    def load(self) -> str | None:
        return self.data


class JsonFileStore:
    """Keeps the document in a file, replaced atomically on save."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def save(self, data: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data)
            os.replace(tmp, self.path)
        except OSError:
            Path(tmp).unlink(missing_ok=True)
            raise

    def load(self) -> str | None:
        if not self.path.exists():
            return None
        return self.path.read_text(encoding="utf-8")


# Snapshot schema


class CardModel(BaseModel):
    model_config = ConfigDict(frozen=True)

    rank: Rank
    suit: Suit
    uid: int = Field(default=0, ge=0)

    @classmethod
    def from_card(cls, card: Card) -> "CardModel":
        return cls(rank=card.rank, suit=card.suit, uid=card.uid)

    def to_card(self) -> Card:
        return Card(self.rank, self.suit, self.uid)


def _cards(hand: Hand) -> list[CardModel]:
    return [CardModel.from_card(c) for c in hand.cards]


def _hand(cards: list[CardModel]) -> Hand:
    return Hand(tuple(c.to_card() for c in cards))


class SplitHandModel(BaseModel):
    cards: list[CardModel]
    bet: int = Field(ge=0)
    result: Result | None = None
    stood: bool = False
    doubled: bool = False


class ShoeModel(BaseModel):
    cards: list[CardModel] = Field(default_factory=list)
    size: int = Field(default=0, ge=0)
    penetration: float = Field(default=0.75, gt=0.0, le=1.0)
    cut_card_reached: bool = False


class StatsModel(BaseModel):
    wins: int = Field(default=0, ge=0)
    losses: int = Field(default=0, ge=0)
    pushes: int = Field(default=0, ge=0)


class DetailedStatsModel(BaseModel):
    total_hands_played: int = Field(default=0, ge=0)
    total_bet_amount: int = Field(default=0, ge=0)
    total_payout_amount: int = Field(default=0, ge=0)
    blackjack_count: int = Field(default=0, ge=0)
    double_count: int = Field(default=0, ge=0)
    split_count: int = Field(default=0, ge=0)
    surrender_count: int = Field(default=0, ge=0)
    insurance_taken: int = Field(default=0, ge=0)
    insurance_won: int = Field(default=0, ge=0)
    current_win_streak: int = Field(default=0, ge=0)
    current_loss_streak: int = Field(default=0, ge=0)
    biggest_win_streak: int = Field(default=0, ge=0)
    biggest_loss_streak: int = Field(default=0, ge=0)
    starting_chips: int = Field(default=0, ge=0)
    chip_history: list[int] = Field(default_factory=list)
    result_history: list[Result] = Field(default_factory=list)


class StateSnapshot(BaseModel):
    """Serialized shape of a :class:`RoundState`."""

    version: int = SNAPSHOT_VERSION
    chips: int = Field(ge=0)
    stats: StatsModel = Field(default_factory=StatsModel)
    detailed_stats: DetailedStatsModel = Field(default_factory=DetailedStatsModel)
    bet: int = Field(default=0, ge=0)
    phase: Phase = Phase.BETTING
    player_hand: list[CardModel] = Field(default_factory=list)
    dealer_hand: list[CardModel] = Field(default_factory=list)
    shoe: ShoeModel = Field(default_factory=ShoeModel)
    dealer_revealed: bool = False
    result: Result | None = None
    message: str = ""
    insurance_bet: int = Field(default=0, ge=0)
    split_hands: list[SplitHandModel] = Field(default_factory=list)
    active_hand_index: int = Field(default=0, ge=0)
    is_split: bool = False
    shoe_size: int = Field(default=0, ge=0)
    cut_card_reached: bool = False
    natural: bool = False
    doubled: bool = False
    surrendered: bool = False
    payout: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def check_split_index(self) -> "StateSnapshot":
        if self.split_hands and self.active_hand_index >= len(self.split_hands):
            raise ValueError("active_hand_index does not point at a split hand")
        if self.is_split != bool(self.split_hands):
            raise ValueError("is_split disagrees with split_hands")
        return self

    @classmethod
    def from_state(cls, state: RoundState) -> "StateSnapshot":
        s = state.detailed_stats
        return cls(
            chips=state.chips,
            stats=StatsModel(
                wins=state.stats.wins,
                losses=state.stats.losses,
                pushes=state.stats.pushes,
            ),
            detailed_stats=DetailedStatsModel(
                total_hands_played=s.total_hands_played,
                total_bet_amount=s.total_bet_amount,
                total_payout_amount=s.total_payout_amount,
                blackjack_count=s.blackjack_count,
                double_count=s.double_count,
                split_count=s.split_count,
                surrender_count=s.surrender_count,
                insurance_taken=s.insurance_taken,
                insurance_won=s.insurance_won,
                current_win_streak=s.current_win_streak,
                current_loss_streak=s.current_loss_streak,
                biggest_win_streak=s.biggest_win_streak,
                biggest_loss_streak=s.biggest_loss_streak,
                starting_chips=s.starting_chips,
                chip_history=list(s.chip_history),
                result_history=list(s.result_history),
            ),
            bet=state.bet,
            phase=state.phase,
            player_hand=_cards(state.player_hand),
            dealer_hand=_cards(state.dealer_hand),
            shoe=ShoeModel(
                cards=[CardModel.from_card(c) for c in state.shoe.cards],
                size=state.shoe.size,
                penetration=state.shoe.penetration,
                cut_card_reached=state.shoe.cut_card_reached,
            ),
            dealer_revealed=state.dealer_revealed,
            result=state.result,
            message=state.message,
            insurance_bet=state.insurance_bet,
            split_hands=[
                SplitHandModel(
                    cards=_cards(h.hand),
                    bet=h.bet,
                    result=h.result,
                    stood=h.stood,
                    doubled=h.doubled,
                )
                for h in state.split_hands
            ],
            active_hand_index=state.active_hand_index,
            is_split=state.is_split,
            shoe_size=state.shoe_size,
            cut_card_reached=state.cut_card_reached,
            natural=state.natural,
            doubled=state.doubled,
            surrendered=state.surrendered,
            payout=state.payout,
        )

    def to_state(self) -> RoundState:
        """
        Rebuild the round state.

        A snapshot taken mid-hand is never resumed: the chips at risk (main
        bets and insurance) go back to the bankroll and the table returns to
        betting with a fresh shoe, since the draw position can't be trusted.
        """
        stats = GameStats(
            wins=self.stats.wins,
            losses=self.stats.losses,
            pushes=self.stats.pushes,
        )
        d = self.detailed_stats
        detailed = DetailedStats(
            **d.model_dump(exclude={"chip_history", "result_history"}),
            chip_history=tuple(d.chip_history),
            result_history=tuple(d.result_history),
        )

        if self.phase in MID_HAND_PHASES:
            if self.split_hands:
                at_risk = sum(h.bet for h in self.split_hands)
            else:
                at_risk = self.bet
            refund = at_risk + self.insurance_bet
            logger.warning(
                "Saved hand was interrupted during %s; refunding %d chips",
                self.phase.value,
                refund,
            )
            return RoundState(
                phase=Phase.BETTING,
                chips=self.chips + refund,
                stats=stats,
                detailed_stats=detailed,
                message="Previous hand was interrupted. Your bet has been returned.",
            )

        shoe = Shoe(
            cards=tuple(c.to_card() for c in self.shoe.cards),
            size=self.shoe.size or self.shoe_size,
            penetration=self.shoe.penetration,
            cut_card_reached=self.shoe.cut_card_reached or self.cut_card_reached,
        )
        return RoundState(
            phase=self.phase,
            shoe=shoe,
            player_hand=_hand(self.player_hand),
            dealer_hand=_hand(self.dealer_hand),
            split_hands=tuple(
                SplitHand(
                    hand=_hand(h.cards),
                    bet=h.bet,
                    result=h.result,
                    stood=h.stood,
                    doubled=h.doubled,
                )
                for h in self.split_hands
            ),
            active_hand_index=self.active_hand_index,
            bet=self.bet,
            insurance_bet=self.insurance_bet,
            chips=self.chips,
            stats=stats,
            detailed_stats=detailed,
            dealer_revealed=self.dealer_revealed,
            result=self.result,
            message=self.message or "Place your bet to start!",
            natural=self.natural,
            doubled=self.doubled,
            surrendered=self.surrendered,
            payout=self.payout,
        )


def dump_state(state: RoundState) -> str:
    return StateSnapshot.from_state(state).model_dump_json()


def parse_state(data: str) -> RoundState:
    """
    Parse a serialized snapshot.

    Raises:
        ValidationError: If the document is not a valid snapshot
    """
    return StateSnapshot.model_validate_json(data).to_state()


def save_state(store: SnapshotStore, state: RoundState) -> bool:
    """Persist ``state``. Failures are logged, never raised."""
    try:
        store.save(dump_state(state))
    except OSError as e:
        logger.warning("Could not save table state: %s", e)
        return False
    return True


def load_state(store: SnapshotStore) -> RoundState | None:
    """
    Load the saved state.

    Returns:
        The restored state, or None when nothing usable was saved
    """
    try:
        data = store.load()
        if data is None:
            return None
        return parse_state(data)
    except (OSError, ValueError, ValidationError) as e:
        logger.warning("Ignoring unreadable saved state: %s", e)
        return None


def save_history(store: SnapshotStore, recorder: HistoryRecorder) -> bool:
    """Persist the finished-round entries, separately from the live state."""
    try:
        store.save(json.dumps(recorder.export()))
    except OSError as e:
        logger.warning("Could not save hand history: %s", e)
        return False
    return True


def load_history(store: SnapshotStore, recorder: HistoryRecorder) -> bool:
    """
    Load saved entries into ``recorder``.

    Returns:
        True if entries were loaded
    """
    try:
        data = store.load()
        if data is None:
            return False
        items: Any = json.loads(data)
        if not isinstance(items, list):
            raise ValueError("hand history must be a list")
        recorder.load(items)
    except (OSError, ValueError, KeyError, TypeError) as e:
        logger.warning("Ignoring unreadable hand history: %s", e)
        return False
    return True
