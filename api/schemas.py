"""Pydantic schemas for API requests and responses."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


# Requests
class BetRequest(BaseModel):
    """Request to add chips to the bet."""

    amount: int = Field(..., ge=1, description="Chips to add to the bet")


class ActionRequest(BaseModel):
    """Request for player action."""

    action: Literal["hit", "stand", "double", "split", "surrender"]


class InsuranceRequest(BaseModel):
    """Insurance decision; 0 declines."""

    amount: int = Field(default=0, ge=0, description="Insurance side bet")


class ResetRequest(BaseModel):
    """Start over with a fresh bankroll."""

    bankroll: int | None = Field(default=None, ge=1)


# Responses
class CardResponse(BaseModel):
    """Card representation."""

    model_config = ConfigDict(from_attributes=True)

    rank: str
    suit: str
    value: int


class HandResponse(BaseModel):
    """Hand representation."""

    cards: list[CardResponse]
    value: int
    is_soft: bool
    is_blackjack: bool
    is_busted: bool


class SplitHandResponse(HandResponse):
    """One split hand with its bet and outcome."""

    bet: int
    result: str | None
    stood: bool
    doubled: bool


class StatsResponse(BaseModel):
    """Cumulative results."""

    wins: int
    losses: int
    pushes: int
    hands_played: int
    blackjacks: int
    net_result: int
    current_win_streak: int
    current_loss_streak: int


class AchievementResponse(BaseModel):
    id: str
    name: str
    description: str


class GameStateResponse(BaseModel):
    """Current table state."""

    phase: str
    player_hand: HandResponse
    dealer_hand: HandResponse
    dealer_showing: CardResponse | None
    dealer_revealed: bool
    split_hands: list[SplitHandResponse]
    active_hand_index: int
    bet: int
    insurance_bet: int
    chips: int
    result: str | None
    payout: int
    message: str
    legal_actions: list[str]
    can_hit: bool
    can_stand: bool
    can_double: bool
    can_split: bool
    can_surrender: bool
    can_insure: bool
    max_insurance: int
    cards_remaining: int
    cut_card_reached: bool
    stats: StatsResponse
    new_achievements: list[AchievementResponse]
    achievements_unlocked: int


class AdviceResponse(BaseModel):
    """Basic strategy recommendation for the active hand."""

    action: Literal["hit", "stand", "double", "split", "surrender"]
    code: str


class HistorySummaryResponse(BaseModel):
    """One finished round, without its step log."""

    id: int
    timestamp: datetime
    result: str
    bet: int
    insurance_bet: int
    payout: int
    net: int
    actions: list[str]
    is_split: bool
    steps: int


class SplitOutcomeResponse(HandResponse):
    bet: int
    result: str


class HistoryEntryResponse(HistorySummaryResponse):
    """One finished round in full."""

    player_hand: HandResponse
    dealer_hand: HandResponse
    split_outcomes: list[SplitOutcomeResponse]


class HistoryStepResponse(BaseModel):
    """The table right after one recorded action."""

    index: int
    total: int
    action: str
    player_hand: HandResponse
    dealer_hand: HandResponse
    split_hands: list[HandResponse]
    active_hand_index: int
    dealer_revealed: bool
    message: str
    at_start: bool
    at_end: bool
