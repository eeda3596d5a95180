"""Achievement definitions and unlock checks.

Read-only: the checks look at statistics the engine already keeps and
never feed anything back into play.
"""

from dataclasses import dataclass
from datetime import datetime

from table_engine.game.state import DetailedStats, RoundState
from table_engine.payout import Result


@dataclass(frozen=True)
class Achievement:
    id: str
    name: str
    description: str


ACHIEVEMENTS: tuple[Achievement, ...] = (
    Achievement("first_blackjack", "Natural!", "Get your first Blackjack"),
    Achievement("first_win", "Winner Winner", "Win your first hand"),
    Achievement("streak_5", "Hot Streak", "Win 5 hands in a row"),
    Achievement("streak_10", "Unstoppable", "Win 10 hands in a row"),
    Achievement("hands_50", "Getting Started", "Play 50 hands"),
    Achievement("hands_100", "Regular", "Play 100 hands"),
    Achievement("hands_500", "Veteran", "Play 500 hands"),
    Achievement("bankroll_2000", "High Roller", "Reach a $2,000 bankroll"),
    Achievement("bankroll_5000", "Whale", "Reach a $5,000 bankroll"),
    Achievement("first_double", "Double Down", "Double down for the first time"),
    Achievement("first_split", "Split Decision", "Split a pair for the first time"),
    Achievement("comeback", "Comeback Kid", "Win after a 5-loss streak"),
    Achievement("blackjack_5", "Card Sharp", "Get 5 Blackjacks total"),
    Achievement("blackjack_20", "Lucky 21", "Get 20 Blackjacks total"),
    Achievement("first_surrender", "Live to Fight", "Surrender a hand"),
    Achievement("first_insurance", "Playing It Safe", "Take insurance"),
)

ACHIEVEMENTS_BY_ID = {a.id: a for a in ACHIEVEMENTS}


@dataclass(frozen=True)
class AchievementContext:
    """What the checks read after a settled round."""

    detailed_stats: DetailedStats
    chips: int
    result: Result | None

    @classmethod
    def from_state(cls, state: RoundState) -> "AchievementContext":
        return cls(detailed_stats=state.detailed_stats, chips=state.chips, result=state.result)


def _earned(ctx: AchievementContext) -> list[str]:
    stats = ctx.detailed_stats
    won = ctx.result is not None and ctx.result.is_win
    earned = []

    if won:
        earned.append("first_win")
    if ctx.result == Result.BLACKJACK or stats.blackjack_count >= 1:
        earned.append("first_blackjack")
    if stats.blackjack_count >= 5:
        earned.append("blackjack_5")
    if stats.blackjack_count >= 20:
        earned.append("blackjack_20")

    # Streaks are already updated for the round being checked
    if stats.current_win_streak >= 5:
        earned.append("streak_5")
    if stats.current_win_streak >= 10:
        earned.append("streak_10")

    for threshold in (50, 100, 500):
        if stats.total_hands_played >= threshold:
            earned.append(f"hands_{threshold}")
    for threshold in (2000, 5000):
        if ctx.chips >= threshold:
            earned.append(f"bankroll_{threshold}")

    if stats.double_count >= 1:
        earned.append("first_double")
    if stats.split_count >= 1:
        earned.append("first_split")
    if stats.surrender_count >= 1:
        earned.append("first_surrender")
    if stats.insurance_taken >= 1:
        earned.append("first_insurance")

    # A win that just broke a losing run of five or more
    if won and stats.biggest_loss_streak >= 5 and stats.current_win_streak == 1:
        earned.append("comeback")

    return earned


def check_achievements(unlocked: set[str] | frozenset[str], ctx: AchievementContext) -> list[str]:
    """
    Return the ids newly earned in this context.

    Args:
        unlocked: Ids the player already has
        ctx: Statistics after the round being checked
    """
    return [a for a in _earned(ctx) if a not in unlocked]


class AchievementTracker:
    """Remembers which achievements a player has unlocked, and when."""

    def __init__(self, unlocked: dict[str, datetime] | None = None) -> None:
        self.unlocked: dict[str, datetime] = dict(unlocked or {})

    def update(self, state: RoundState) -> list[Achievement]:
        """Check a settled state and record anything new."""
        if state.result is None:
            return []
        now = datetime.now()
        new_ids = check_achievements(set(self.unlocked), AchievementContext.from_state(state))
        for achievement_id in new_ids:
            self.unlocked[achievement_id] = now
        return [ACHIEVEMENTS_BY_ID[i] for i in new_ids]

    @property
    def progress(self) -> tuple[int, int]:
        return len(self.unlocked), len(ACHIEVEMENTS)

    def export(self) -> dict[str, str]:
        """Unlock times as ISO strings, for storage."""
        return {k: v.isoformat() for k, v in self.unlocked.items()}

    @classmethod
    def load(cls, data: dict[str, str] | None) -> "AchievementTracker":
        """Rebuild a tracker from :meth:`export` output, skipping unknown ids."""
        return cls(
            {k: datetime.fromisoformat(v) for k, v in (data or {}).items() if k in ACHIEVEMENTS_BY_ID}
        )
