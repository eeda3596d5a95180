"""Blackjack round engine with state machine."""

import logging
from dataclasses import replace
from fractions import Fraction
from typing import Any, Callable

from table_engine.cards import Card, Shoe
from table_engine.context import SessionContext
from table_engine.dealer import DealerPolicy
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
from table_engine.game.events import EventEmitter, EventType, GameEvent
from table_engine.game.machine import PhaseMachine
from table_engine.game.state import (
    HISTORY_WINDOW,
    DetailedStats,
    Phase,
    RoundState,
    SplitHand,
)
from table_engine.hand import Hand
from table_engine.payout import (
    Result,
    insurance_payout,
    max_insurance,
    round_result,
    settle_hand,
    surrender_refund,
)
from table_engine.rules import RuleSet

logger = logging.getLogger(__name__)

Hands = tuple[SplitHand, ...]


def _hands_in_play(state: RoundState) -> tuple[Hands, int]:
    """
    The hand collection being played and the index of the active hand.

    An unsplit round is a collection of one, so hit, stand and double
    share a single code path for solo and split play.
    """
    if state.is_split:
        return state.split_hands, state.active_hand_index
    solo = SplitHand(hand=state.player_hand, bet=state.bet, doubled=state.doubled)
    return (solo,), 0


def _store_hands(state: RoundState, hands: Hands, index: int) -> RoundState:
    """Write a hand collection back into the state, focused on ``index``."""
    if len(hands) > 1:
        return replace(
            state,
            split_hands=hands,
            active_hand_index=index,
            player_hand=hands[index].hand,
        )
    solo = hands[0]
    return replace(state, player_hand=solo.hand, bet=solo.bet, doubled=solo.doubled)


def _replace_at(hands: Hands, index: int, hand: SplitHand) -> Hands:
    return hands[:index] + (hand,) + hands[index + 1 :]


def _next_playable(hands: Hands, start: int) -> int | None:
    for i in range(start, len(hands)):
        if not hands[i].stood:
            return i
    return None


def _ratio_label(ratio: float) -> str:
    fraction = Fraction(str(ratio)).limit_denominator(10)
    return f"{fraction.numerator}:{fraction.denominator}"


def _record_round(
    stats: DetailedStats,
    state: RoundState,
    result: Result,
    total_payout: int,
    insurance_won: bool,
) -> DetailedStats:
    """Fold one settled round into the cumulative statistics."""
    win_streak = stats.current_win_streak
    loss_streak = stats.current_loss_streak
    if result.is_win:
        win_streak, loss_streak = win_streak + 1, 0
    elif result == Result.LOSE:
        win_streak, loss_streak = 0, loss_streak + 1

    if state.is_split:
        doubles = sum(1 for h in state.split_hands if h.doubled)
        splits = len(state.split_hands) - 1
    else:
        doubles = 1 if state.doubled else 0
        splits = 0

    return replace(
        stats,
        total_hands_played=stats.total_hands_played + 1,
        total_bet_amount=stats.total_bet_amount + state.wagered + state.insurance_bet,
        total_payout_amount=stats.total_payout_amount + total_payout,
        blackjack_count=stats.blackjack_count + (1 if result == Result.BLACKJACK else 0),
        double_count=stats.double_count + doubles,
        split_count=stats.split_count + splits,
        surrender_count=stats.surrender_count + (1 if state.surrendered else 0),
        insurance_taken=stats.insurance_taken + (1 if state.insurance_bet > 0 else 0),
        insurance_won=stats.insurance_won + (1 if insurance_won else 0),
        current_win_streak=win_streak,
        current_loss_streak=loss_streak,
        biggest_win_streak=max(stats.biggest_win_streak, win_streak),
        biggest_loss_streak=max(stats.biggest_loss_streak, loss_streak),
        chip_history=(stats.chip_history + (state.chips + total_payout,))[-HISTORY_WINDOW:],
        result_history=(stats.result_history + (result,))[-HISTORY_WINDOW:],
    )


class RoundEngine:
    """
    Blackjack round engine using a state machine.

    The engine is a reducer: :meth:`apply` takes a state and an action and
    returns the next state. It holds no round data of its own, only the
    rules, the session context (card ids, randomness) and the event emitter.

    An action the current phase does not allow, or one the player cannot
    afford, returns the input state object itself and emits
    ``INVALID_ACTION`` or ``INSUFFICIENT_FUNDS``. Every accepted action
    emits at least one event; the last one carries the returned state.
    """

    def __init__(
        self,
        rules: RuleSet | None = None,
        context: SessionContext | None = None,
        events: EventEmitter | None = None,
    ) -> None:
        """
        Initialize a round engine.

        Args:
            rules: Table rules (uses defaults if not provided)
            context: Session counters and RNG (a fresh one if not provided)
            events: Event emitter to publish on (a fresh one if not provided)
        """
        self.rules = rules or RuleSet()
        self.context = context or SessionContext()
        self.events = events or EventEmitter()
        self.policy = DealerPolicy.from_rules(self.rules)
        self.machine = PhaseMachine()

        self._handlers: dict[type, Callable[[RoundState, Any], RoundState]] = {
            PlaceBet: self._place_bet,
            ClearBet: self._clear_bet,
            Deal: self._deal,
            Hit: self._hit,
            Stand: self._stand,
            DoubleDown: self._double,
            Split: self._split,
            Insure: self._insure,
            Surrender: self._surrender,
            AdvanceDealer: self._advance_dealer,
            NewRound: self._new_round,
            Reset: self._reset,
        }

    def initial_state(self, bankroll: int | None = None) -> RoundState:
        """Fresh session state at the betting phase."""
        return RoundState.initial(bankroll or self.rules.starting_bankroll)

    def subscribe(
        self,
        handler: Callable[[GameEvent], None],
        event_type: EventType | None = None,
    ) -> None:
        """Subscribe to game events."""
        self.events.subscribe(handler, event_type)

    def apply(self, state: RoundState, action: Action) -> RoundState:
        """
        Apply one action to a state.

        Returns:
            The next state, or ``state`` itself if the action was ignored
        """
        if not self.machine.allows(state.phase, action.trigger):
            logger.debug("Ignoring %s during %s", action.trigger, state.phase.value)
            return self._reject(
                state,
                EventType.INVALID_ACTION,
                f"Cannot {action.trigger.replace('_', ' ')} now",
                action=action.trigger,
            )

        next_state = self._handlers[type(action)](state, action)
        if next_state is state:
            return state

        logger.debug(
            "%s --%s--> %s", state.phase.value, action.trigger, next_state.phase.value
        )
        if next_state.phase is Phase.RESOLVING:
            next_state = self._settle(next_state)
        return next_state

    def is_legal(self, state: RoundState, action: Action) -> bool:
        """Check whether ``action`` would change ``state``."""
        return action.trigger in self.legal_actions(state)

    def legal_actions(self, state: RoundState) -> frozenset[str]:
        """Action triggers that would currently be accepted."""
        checks: dict[str, Callable[[RoundState], bool]] = {
            PlaceBet.trigger: lambda s: s.chips - s.bet > 0,
            ClearBet.trigger: lambda s: s.bet > 0,
            Deal.trigger: self.can_deal,
            Hit.trigger: self.can_hit,
            DoubleDown.trigger: self.can_double,
            Split.trigger: self.can_split,
            Surrender.trigger: self.can_surrender,
        }
        return frozenset(
            trigger
            for trigger in self.machine.legal_actions(state.phase)
            if trigger not in checks or checks[trigger](state)
        )

    # ------------------------------------------------------------------
    # Queries

    def can_deal(self, state: RoundState) -> bool:
        return self.machine.allows(state.phase, Deal.trigger) and 0 < state.bet <= state.chips

    def can_hit(self, state: RoundState) -> bool:
        if not self.machine.allows(state.phase, Hit.trigger):
            return False
        hands, index = _hands_in_play(state)
        return not hands[index].stood and not hands[index].hand.is_busted

    def can_stand(self, state: RoundState) -> bool:
        return self.machine.allows(state.phase, Stand.trigger)

    def can_double(self, state: RoundState) -> bool:
        return self._double_permitted(state) and state.chips >= self._active(state).bet

    def can_split(self, state: RoundState) -> bool:
        return self._split_permitted(state) and state.chips >= self._active(state).bet

    def can_surrender(self, state: RoundState) -> bool:
        return (
            self.machine.allows(state.phase, Surrender.trigger)
            and self.rules.allow_surrender
            and not state.is_split
            and len(state.player_hand) == 2
        )

    def can_insure(self, state: RoundState) -> bool:
        """Check if an insurance bet (not just a decline) is possible."""
        return (
            self.machine.allows(state.phase, Insure.trigger)
            and max_insurance(state.bet, state.chips) > 0
        )

    def _active(self, state: RoundState) -> SplitHand:
        hands, index = _hands_in_play(state)
        return hands[index]

    def _double_permitted(self, state: RoundState) -> bool:
        if not self.machine.allows(state.phase, DoubleDown.trigger):
            return False
        if state.is_split and not self.rules.allow_double_after_split:
            return False
        active = self._active(state)
        return len(active.hand) == 2 and not active.stood

    def _split_permitted(self, state: RoundState) -> bool:
        if not self.machine.allows(state.phase, Split.trigger):
            return False
        hands, index = _hands_in_play(state)
        active = hands[index]
        return (
            not active.stood
            and active.hand.can_split(self.rules.split_ten_values)
            and len(hands) < self.rules.max_split_hands
        )

    # ------------------------------------------------------------------
    # Plumbing

    def _emit(self, event_type: EventType, state: RoundState, **data: Any) -> None:
        self.events.emit_new(event_type, state=state, **data)

    def _reject(
        self,
        state: RoundState,
        event_type: EventType,
        message: str,
        **data: Any,
    ) -> RoundState:
        self.events.emit_new(event_type, message=message, phase=state.phase.value, **data)
        return state

    def _move(self, state: RoundState, *triggers: str, **changes: Any) -> RoundState:
        """Walk the phase machine through ``triggers`` and apply ``changes``."""
        return replace(state, phase=self.machine.walk(state.phase, *triggers), **changes)

    def _draw(self, shoe: Shoe) -> tuple[Card, Shoe]:
        return shoe.draw(self.context)

    # ------------------------------------------------------------------
    # Betting

    def _place_bet(self, state: RoundState, action: PlaceBet) -> RoundState:
        if action.amount <= 0:
            return self._reject(state, EventType.INVALID_ACTION, "Bet must be positive")
        if action.amount > state.chips - state.bet:
            return self._reject(
                state,
                EventType.INSUFFICIENT_FUNDS,
                "Not enough chips",
                required=action.amount,
                available=state.chips - state.bet,
            )

        bet = state.bet + action.amount
        state = self._move(
            state,
            PlaceBet.trigger,
            bet=bet,
            message=f"Bet: ${bet}. Press Deal!",
        )
        self._emit(EventType.BET_PLACED, state, amount=action.amount, bet=bet)
        return state

    def _clear_bet(self, state: RoundState, action: ClearBet) -> RoundState:
        if state.bet == 0:
            return state
        state = replace(state, bet=0, message="Place your bet to start!")
        self._emit(EventType.BET_CLEARED, state)
        return state

    # ------------------------------------------------------------------
    # Dealing

    def _fresh_shoe(self, shoe: Shoe) -> Shoe:
        if not shoe.needs_shuffle:
            return shoe
        shoe = Shoe.build(self.rules.num_decks, self.rules.deck_penetration, self.context.rng)
        logger.info("Shuffled a new %d-deck shoe", self.rules.num_decks)
        self.events.emit_new(EventType.SHOE_SHUFFLED, size=shoe.size)
        return shoe

    def _deal(self, state: RoundState, action: Deal) -> RoundState:
        if state.bet <= 0:
            return self._reject(state, EventType.INVALID_ACTION, "Place a bet first")
        if state.bet > state.chips:
            return self._reject(
                state,
                EventType.INSUFFICIENT_FUNDS,
                "Not enough chips",
                required=state.bet,
                available=state.chips,
            )

        shoe = self._fresh_shoe(state.shoe)

        # Player, dealer, player, dealer
        p1, shoe = self._draw(shoe)
        d1, shoe = self._draw(shoe)
        p2, shoe = self._draw(shoe)
        d2, shoe = self._draw(shoe)
        player = Hand((p1, p2))
        dealer = Hand((d1, d2))

        state = self._move(
            state,
            "deal_cards",
            shoe=shoe,
            player_hand=player,
            dealer_hand=dealer,
            split_hands=(),
            active_hand_index=0,
            chips=state.chips - state.bet,
            insurance_bet=0,
            dealer_revealed=False,
            result=None,
            natural=False,
            doubled=False,
            surrendered=False,
            payout=0,
            message="Dealing...",
        )

        if player.is_blackjack:
            state = self._move(state, "resolve", natural=True, dealer_revealed=True)
            self._emit(EventType.ROUND_STARTED, state, bet=state.bet)
            return state

        if d1.is_ace:
            state = self._move(state, "offer_insurance", message="Dealer shows Ace. Insurance?")
            self._emit(EventType.ROUND_STARTED, state, bet=state.bet)
            self._emit(
                EventType.INSURANCE_OFFERED,
                state,
                max_bet=max_insurance(state.bet, state.chips),
            )
            return state

        state = self._move(state, "open_play", message="Hit or Stand?")
        self._emit(EventType.ROUND_STARTED, state, bet=state.bet)
        return state

    def _insure(self, state: RoundState, action: Insure) -> RoundState:
        amount = min(action.amount, max_insurance(state.bet, state.chips))
        if amount > 0:
            state = self._move(
                state,
                "open_play",
                insurance_bet=amount,
                chips=state.chips - amount,
                message="Insurance taken. Hit or Stand?",
            )
            self._emit(EventType.INSURANCE_TAKEN, state, amount=amount)
        else:
            state = self._move(state, "open_play", insurance_bet=0, message="Hit or Stand?")
            self._emit(EventType.INSURANCE_DECLINED, state)
        return state

    # ------------------------------------------------------------------
    # Player actions

    def _complete_hand(self, state: RoundState, hands: Hands, index: int) -> RoundState:
        """
        Close the active hand and move on.

        The next unfinished hand becomes active if there is one. Otherwise a
        lone busted hand goes straight to settlement and anything else goes
        to the dealer, busted split hands included.
        """
        hands = _replace_at(hands, index, replace(hands[index], stood=True))
        following = _next_playable(hands, index + 1)
        if following is not None:
            state = _store_hands(state, hands, following)
            return replace(state, message=f"Playing hand {following + 1}...")

        state = _store_hands(state, hands, index)
        if not state.is_split and state.player_hand.is_busted:
            return self._move(
                state,
                "resolve",
                dealer_revealed=True,
                message=f"Bust! You went over 21 with {state.player_hand.value}.",
            )
        return self._move(state, "reveal", dealer_revealed=True, message="Dealer is playing...")

    def _hit(self, state: RoundState, action: Hit) -> RoundState:
        if not self.can_hit(state):
            return self._reject(state, EventType.INVALID_ACTION, "Cannot hit")

        hands, index = _hands_in_play(state)
        active = hands[index]
        card, shoe = self._draw(state.shoe)
        hand = active.hand.add(card)
        hands = _replace_at(hands, index, replace(active, hand=hand))
        state = replace(state, shoe=shoe)

        if hand.is_busted or hand.value == 21:
            state = self._complete_hand(state, hands, index)
        else:
            state = _store_hands(state, hands, index)

        self._emit(EventType.PLAYER_HIT, state, card=str(card), value=hand.value, hand_index=index)
        return state

    def _stand(self, state: RoundState, action: Stand) -> RoundState:
        hands, index = _hands_in_play(state)
        value = hands[index].value
        state = self._complete_hand(state, hands, index)
        self._emit(EventType.PLAYER_STAND, state, value=value, hand_index=index)
        return state

    def _double(self, state: RoundState, action: DoubleDown) -> RoundState:
        if not self._double_permitted(state):
            return self._reject(state, EventType.INVALID_ACTION, "Cannot double")

        hands, index = _hands_in_play(state)
        active = hands[index]
        if state.chips < active.bet:
            return self._reject(
                state,
                EventType.INSUFFICIENT_FUNDS,
                "Not enough chips to double",
                required=active.bet,
                available=state.chips,
            )

        card, shoe = self._draw(state.shoe)
        doubled = replace(active, hand=active.hand.add(card), bet=active.bet * 2, doubled=True)
        hands = _replace_at(hands, index, doubled)
        state = replace(state, shoe=shoe, chips=state.chips - active.bet)
        if not state.is_split:
            state = self._move(state, "begin_double", message="Doubling down...")
        state = self._complete_hand(state, hands, index)

        self._emit(
            EventType.PLAYER_DOUBLE,
            state,
            card=str(card),
            value=doubled.value,
            bet=doubled.bet,
            hand_index=index,
        )
        return state

    def _split(self, state: RoundState, action: Split) -> RoundState:
        if not self._split_permitted(state):
            return self._reject(state, EventType.INVALID_ACTION, "Cannot split")

        hands, index = _hands_in_play(state)
        active = hands[index]
        if state.chips < active.bet:
            return self._reject(
                state,
                EventType.INSUFFICIENT_FUNDS,
                "Not enough chips to split",
                required=active.bet,
                available=state.chips,
            )

        aces = active.hand.is_ace_pair
        shoe = state.shoe
        seeded = []
        for original in active.hand.cards:
            card, shoe = self._draw(shoe)
            hand = Hand((original, card))
            # Split aces take exactly one card; a seeded 21 stands like a hit to 21
            seeded.append(SplitHand(hand=hand, bet=active.bet, stood=aces or hand.value == 21))

        hands = hands[:index] + tuple(seeded) + hands[index + 1 :]
        state = replace(state, shoe=shoe, chips=state.chips - active.bet)
        if not state.is_split:
            state = self._move(state, "begin_split")

        following = _next_playable(hands, index)
        if following is None:
            state = _store_hands(state, hands, index)
            state = self._move(
                state, "reveal", dealer_revealed=True, message="Dealer is playing..."
            )
        else:
            state = _store_hands(state, hands, following)
            state = replace(state, message=f"Playing hand {following + 1}...")

        self._emit(EventType.PLAYER_SPLIT, state, hand_index=index, hands=len(hands))
        return state

    def _surrender(self, state: RoundState, action: Surrender) -> RoundState:
        if not self.can_surrender(state):
            return self._reject(state, EventType.INVALID_ACTION, "Cannot surrender")

        state = self._move(
            state,
            "begin_surrender",
            "resolve",
            surrendered=True,
            dealer_revealed=True,
            message="Surrendered, half bet returned.",
        )
        self._emit(EventType.PLAYER_SURRENDER, state, refund=surrender_refund(state.bet))
        return state

    # ------------------------------------------------------------------
    # Dealer

    def _advance_dealer(self, state: RoundState, action: AdvanceDealer) -> RoundState:
        step = self.policy.advance(state.dealer_hand, state.shoe, self.context)
        if step.done:
            return self._move(state, "resolve")

        state = replace(state, dealer_hand=step.hand, shoe=step.shoe)
        self._emit(EventType.DEALER_HITS, state, card=str(step.card), value=step.hand.value)
        return state

    # ------------------------------------------------------------------
    # Settlement

    def _describe(self, player: Hand, dealer: Hand, result: Result, natural: bool) -> str:
        p, d = player.value, dealer.value
        if player.is_busted:
            return f"Bust! You went over 21 with {p}."
        if result == Result.BLACKJACK:
            return f"Blackjack! You win {_ratio_label(self.rules.blackjack_payout)}!"
        if natural and result == Result.PUSH:
            return "Both have Blackjack, it's a push!"
        if result == Result.WIN and dealer.is_busted:
            return f"Dealer busts with {d}! You win!"
        if result == Result.WIN:
            return f"You win! {p} beats {d}."
        if result == Result.LOSE:
            return f"Dealer wins. {d} beats {p}."
        return f"Push! Both have {p}."

    def _settle(self, state: RoundState) -> RoundState:
        """Pay out every hand and the insurance bet, then update statistics."""
        dealer = state.dealer_hand
        split_hands = state.split_hands

        if state.surrendered:
            result, payout = Result.LOSE, surrender_refund(state.bet)
            hand_results = [result]
            message = state.message
        elif state.is_split:
            settled = []
            labels = []
            payout = 0
            for i, split_hand in enumerate(split_hands):
                hand_result, hand_payout = settle_hand(split_hand.hand, dealer, split_hand.bet)
                settled.append(replace(split_hand, result=hand_result))
                payout += hand_payout
                label = "Bust" if split_hand.hand.is_busted else hand_result.value.title()
                labels.append(f"Hand {i + 1}: {label}")
            split_hands = tuple(settled)
            hand_results = [h.result for h in split_hands]
            result = round_result(payout, state.wagered)
            message = " | ".join(labels)
        else:
            result, payout = settle_hand(
                state.player_hand,
                dealer,
                state.bet,
                natural=state.natural,
                ratio=self.rules.blackjack_payout,
            )
            hand_results = [result]
            message = self._describe(state.player_hand, dealer, result, state.natural)

        insurance = insurance_payout(state.insurance_bet, dealer)
        if insurance > 0:
            message += " Insurance pays 2:1!"
        elif state.insurance_bet > 0:
            message += " Insurance lost."

        total = payout + insurance
        stats = state.stats
        for hand_result in hand_results:
            stats = stats.record(hand_result)
        detailed = _record_round(state.detailed_stats, state, result, total, insurance > 0)

        state = self._move(
            state,
            "finish",
            split_hands=split_hands,
            chips=state.chips + total,
            payout=total,
            result=result,
            stats=stats,
            detailed_stats=detailed,
            dealer_revealed=True,
            message=message,
        )
        logger.info(
            "Round settled: %s, payout %d, chips %d", result.value, total, state.chips
        )
        self._emit(EventType.ROUND_ENDED, state, result=result.value, payout=total)
        return state

    # ------------------------------------------------------------------
    # Session

    def _new_round(self, state: RoundState, action: NewRound) -> RoundState:
        state = RoundState(
            phase=self.machine.walk(state.phase, NewRound.trigger),
            shoe=state.shoe,
            chips=state.chips,
            stats=state.stats,
            detailed_stats=state.detailed_stats,
        )
        self._emit(EventType.NEW_ROUND, state)
        return state

    def _reset(self, state: RoundState, action: Reset) -> RoundState:
        bankroll = action.bankroll if action.bankroll is not None else self.rules.starting_bankroll
        if bankroll <= 0:
            return self._reject(state, EventType.INVALID_ACTION, "Bankroll must be positive")

        phase = self.machine.walk(state.phase, Reset.trigger)
        state = replace(RoundState.initial(bankroll), phase=phase, shoe=state.shoe)
        logger.info("Table reset with a bankroll of %d", bankroll)
        self._emit(EventType.GAME_RESET, state, bankroll=bankroll)
        return state
