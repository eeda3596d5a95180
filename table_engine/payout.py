"""Payout arithmetic.

Every payout is the total returned to the player's chips, stake included:
the stake was debited when the bet went on the table, so a loss pays 0.
"""

from decimal import ROUND_FLOOR, Decimal
from enum import Enum

from table_engine.hand import Hand, evaluate_hands

INSURANCE_RETURN = 3  # Stake back plus 2:1


class Result(Enum):
    """Outcome of a hand or a round."""

    WIN = "win"
    LOSE = "lose"
    PUSH = "push"
    BLACKJACK = "blackjack"

    @property
    def is_win(self) -> bool:
        return self in (Result.WIN, Result.BLACKJACK)


def blackjack_payout(bet: int, ratio: float = 1.5) -> int:
    """Stake plus ``bet × ratio`` winnings, rounded down to whole chips."""
    winnings = (Decimal(bet) * Decimal(str(ratio))).to_integral_value(rounding=ROUND_FLOOR)
    return bet + int(winnings)


def win_payout(bet: int) -> int:
    return bet * 2


def push_payout(bet: int) -> int:
    return bet


def surrender_refund(bet: int) -> int:
    """Half the stake comes back, rounded down."""
    return bet // 2


def max_insurance(bet: int, chips: int) -> int:
    """Largest insurance bet the player can place."""
    return max(0, min(bet // 2, chips))


def insurance_payout(insurance_bet: int, dealer_hand: Hand) -> int:
    """Insurance pays only against a completed dealer natural."""
    if insurance_bet > 0 and dealer_hand.is_blackjack:
        return insurance_bet * INSURANCE_RETURN
    return 0


def settle_hand(
    player_hand: Hand,
    dealer_hand: Hand,
    bet: int,
    natural: bool = False,
    ratio: float = 1.5,
) -> tuple[Result, int]:
    """
    Settle one player hand against the dealer's final hand.

    Args:
        player_hand: The player's final hand
        dealer_hand: The dealer's final hand
        bet: Stake on this hand
        natural: Whether the hand was a natural off the deal (never after a split)
        ratio: Blackjack payout ratio

    Returns:
        The result and the amount returned to the player
    """
    outcome = evaluate_hands(player_hand, dealer_hand)
    if outcome > 0:
        if natural:
            return Result.BLACKJACK, blackjack_payout(bet, ratio)
        return Result.WIN, win_payout(bet)
    if outcome < 0:
        return Result.LOSE, 0
    return Result.PUSH, push_payout(bet)


def round_result(total_payout: int, total_wagered: int) -> Result:
    """Overall result of a split round, judged by chips returned versus chips wagered."""
    if total_payout > total_wagered:
        return Result.WIN
    if total_payout == total_wagered:
        return Result.PUSH
    return Result.LOSE
