"""Table session: holds the current state and drives dealer play."""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable

from table_engine.achievements import Achievement, AchievementTracker
from table_engine.context import SessionContext
from table_engine.game.actions import (
    Action,
    AdvanceDealer,
    ClearBet,
    Deal,
    DoubleDown,
    Hit,
    Insure,
    NewRound,
    PlaceBet,
    Reset,
    Split,
    Stand,
    Surrender,
)
from table_engine.game.engine import RoundEngine
from table_engine.game.events import EventEmitter, EventType, GameEvent
from table_engine.game.state import Phase, RoundState
from table_engine.history import HistoryRecorder
from table_engine.rules import RuleSet
from table_engine.storage import SnapshotStore, load_history, load_state, save_history, save_state

logger = logging.getLogger(__name__)

StepCallback = Callable[[RoundState], None]


@dataclass(frozen=True)
class DealerPacing:
    """
    Delays before dealer play begins and between dealer draws, in seconds.

    Pacing never changes an outcome; :meth:`instant` plays the dealer out
    with no waiting at all.
    """

    initial_delay: float = 0.4
    draw_delay: float = 0.6

    @classmethod
    def from_rules(cls, rules: RuleSet) -> "DealerPacing":
        return cls(rules.dealer_initial_delay, rules.dealer_draw_delay)

    @classmethod
    def instant(cls) -> "DealerPacing":
        return cls(0.0, 0.0)


class Table:
    """
    One player's seat at the table.

    Owns the session context, the engine, the current :class:`RoundState`
    the hand history and unlocked achievements. Each action replaces ``state`` with whatever the
    engine returns; the action methods report whether anything changed.
    """

    def __init__(
        self,
        rules: RuleSet | None = None,
        context: SessionContext | None = None,
        pacing: DealerPacing | None = None,
        state_store: SnapshotStore | None = None,
        history_store: SnapshotStore | None = None,
    ) -> None:
        self.rules = rules or RuleSet()
        self.context = context or SessionContext()
        self.events = EventEmitter()
        self.engine = RoundEngine(self.rules, self.context, self.events)
        self.pacing = pacing or DealerPacing.from_rules(self.rules)
        self.history = HistoryRecorder(self.context)
        self.history.attach(self.events)
        self.achievements = AchievementTracker()
        self.new_achievements: list[Achievement] = []
        self.state_store = state_store
        self.history_store = history_store
        self.state = self.engine.initial_state()

        self.events.subscribe(self._on_round_ended, EventType.ROUND_ENDED)

    def subscribe(
        self,
        handler: Callable[[GameEvent], None],
        event_type: EventType | None = None,
    ) -> None:
        self.events.subscribe(handler, event_type)

    def dispatch(self, action: Action) -> bool:
        """
        Apply an action to the current state.

        Returns:
            True if the state changed
        """
        self.new_achievements = []
        next_state = self.engine.apply(self.state, action)
        if next_state is self.state:
            return False
        self.state = next_state
        return True

    @property
    def legal_actions(self) -> frozenset[str]:
        return self.engine.legal_actions(self.state)

    # Player actions

    def place_bet(self, amount: int) -> bool:
        return self.dispatch(PlaceBet(amount))

    def clear_bet(self) -> bool:
        return self.dispatch(ClearBet())

    def deal(self) -> bool:
        return self.dispatch(Deal())

    def hit(self) -> bool:
        return self.dispatch(Hit())

    def stand(self) -> bool:
        return self.dispatch(Stand())

    def double_down(self) -> bool:
        return self.dispatch(DoubleDown())

    def split(self) -> bool:
        return self.dispatch(Split())

    def insure(self, amount: int = 0) -> bool:
        return self.dispatch(Insure(amount))

    def decline_insurance(self) -> bool:
        return self.dispatch(Insure(0))

    def surrender(self) -> bool:
        return self.dispatch(Surrender())

    def new_round(self) -> bool:
        return self.dispatch(NewRound())

    def reset(self, bankroll: int | None = None) -> bool:
        return self.dispatch(Reset(bankroll))

    # Dealer play

    @property
    def dealer_pending(self) -> bool:
        """Check if the dealer still has to play this round."""
        return self.state.phase is Phase.DEALER_TURN

    def play_dealer(self, on_step: StepCallback | None = None) -> RoundState:
        """
        Play the dealer's hand to settlement, sleeping between steps.

        Args:
            on_step: Called with the new state after every dealer step

        Returns:
            The settled state
        """
        if not self.dealer_pending:
            return self.state

        if self.pacing.initial_delay > 0:
            time.sleep(self.pacing.initial_delay)
        while self.dealer_pending:
            self.dispatch(AdvanceDealer())
            if on_step is not None:
                on_step(self.state)
            if self.dealer_pending and self.pacing.draw_delay > 0:
                time.sleep(self.pacing.draw_delay)
        return self.state

    async def play_dealer_async(self, on_step: StepCallback | None = None) -> RoundState:
        """Same as :meth:`play_dealer`, yielding to the event loop while waiting."""
        if not self.dealer_pending:
            return self.state

        await asyncio.sleep(self.pacing.initial_delay)
        while self.dealer_pending:
            self.dispatch(AdvanceDealer())
            if on_step is not None:
                on_step(self.state)
            if self.dealer_pending:
                await asyncio.sleep(self.pacing.draw_delay)
        return self.state

    # Persistence

    def save(self) -> bool:
        if self.state_store is None:
            return False
        return save_state(self.state_store, self.state)

    def restore(self) -> bool:
        """
        Replace the current state with the saved one, if there is one.

        Returns:
            True if a saved state was restored
        """
        if self.history_store is not None:
            load_history(self.history_store, self.history)
        if self.state_store is None:
            return False

        restored = load_state(self.state_store)
        if restored is None:
            return False

        cards = (
            restored.shoe.cards
            + restored.player_hand.cards
            + restored.dealer_hand.cards
            + tuple(c for h in restored.split_hands for c in h.cards)
        )
        for card in cards:
            self.context.observe_card_id(card.uid)

        self.state = restored
        logger.info("Restored table at %s with %d chips", restored.phase.value, restored.chips)
        self.events.emit_new(EventType.STATE_RESTORED, state=restored)
        return True

    def _on_round_ended(self, event: GameEvent) -> None:
        if event.state is not None:
            self.new_achievements = self.achievements.update(event.state)
            for achievement in self.new_achievements:
                logger.info("Achievement unlocked: %s", achievement.name)
        if self.history_store is not None:
            save_history(self.history_store, self.history)
