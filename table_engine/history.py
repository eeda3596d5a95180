"""Hand history: per-action step log, finished round entries, and replay."""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterator

from table_engine.cards import Card
from table_engine.context import SessionContext
from table_engine.game.events import EventEmitter, EventType, GameEvent
from table_engine.game.state import RoundState
from table_engine.hand import Hand
from table_engine.payout import Result

logger = logging.getLogger(__name__)

MAX_HISTORY_ENTRIES = 200

STEP_ACTIONS = (
    "deal",
    "hit",
    "stand",
    "double",
    "split",
    "surrender",
    "insurance",
    "dealer_draw",
    "result",
)

# Event that produces each step of the log
_STEP_EVENTS = {
    EventType.ROUND_STARTED: "deal",
    EventType.PLAYER_HIT: "hit",
    EventType.PLAYER_STAND: "stand",
    EventType.PLAYER_DOUBLE: "double",
    EventType.PLAYER_SPLIT: "split",
    EventType.PLAYER_SURRENDER: "surrender",
    EventType.INSURANCE_TAKEN: "insurance",
    EventType.INSURANCE_DECLINED: "insurance",
    EventType.DEALER_HITS: "dealer_draw",
    EventType.ROUND_ENDED: "result",
}


def _hand_to_list(hand: Hand) -> list[dict[str, Any]]:
    return [card.to_dict() for card in hand.cards]


def _hand_from_list(data: list[dict[str, Any]]) -> Hand:
    return Hand(tuple(Card.from_dict(c) for c in data))


@dataclass(frozen=True)
class HandHistoryStep:
    """The table as it looked right after one action."""

    action: str
    player_hand: Hand
    dealer_hand: Hand
    split_hands: tuple[Hand, ...] = ()
    active_hand_index: int = 0
    dealer_revealed: bool = False
    message: str = ""

    @classmethod
    def capture(cls, action: str, state: RoundState) -> "HandHistoryStep":
        return cls(
            action=action,
            player_hand=state.player_hand,
            dealer_hand=state.dealer_hand,
            split_hands=tuple(h.hand for h in state.split_hands),
            active_hand_index=state.active_hand_index,
            dealer_revealed=state.dealer_revealed,
            message=state.message,
        )

    @property
    def visible_dealer_cards(self) -> tuple[Card, ...]:
        """Dealer cards a spectator could see at this step."""
        if self.dealer_revealed:
            return self.dealer_hand.cards
        return self.dealer_hand.cards[:1]

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action,
            "player_hand": _hand_to_list(self.player_hand),
            "dealer_hand": _hand_to_list(self.dealer_hand),
            "split_hands": [_hand_to_list(h) for h in self.split_hands],
            "active_hand_index": self.active_hand_index,
            "dealer_revealed": self.dealer_revealed,
            "message": self.message,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HandHistoryStep":
        return cls(
            action=data["action"],
            player_hand=_hand_from_list(data["player_hand"]),
            dealer_hand=_hand_from_list(data["dealer_hand"]),
            split_hands=tuple(_hand_from_list(h) for h in data.get("split_hands", [])),
            active_hand_index=int(data.get("active_hand_index", 0)),
            dealer_revealed=bool(data.get("dealer_revealed", False)),
            message=data.get("message", ""),
        )


@dataclass(frozen=True)
class SplitOutcome:
    """Final cards, bet and result of one split hand."""

    hand: Hand
    bet: int
    result: Result

    def to_dict(self) -> dict[str, Any]:
        return {"hand": _hand_to_list(self.hand), "bet": self.bet, "result": self.result.value}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SplitOutcome":
        return cls(
            hand=_hand_from_list(data["hand"]),
            bet=int(data["bet"]),
            result=Result(data["result"]),
        )


@dataclass(frozen=True)
class HandHistoryEntry:
    """One finished round. Never modified after creation."""

    id: int
    timestamp: datetime
    player_hand: Hand
    dealer_hand: Hand
    actions: tuple[str, ...]
    result: Result
    payout: int
    bet: int
    insurance_bet: int = 0
    is_split: bool = False
    split_outcomes: tuple[SplitOutcome, ...] = ()
    steps: tuple[HandHistoryStep, ...] = field(default=(), repr=False)

    @property
    def net(self) -> int:
        """Chips won (positive) or lost (negative) over the round."""
        return self.payout - self.bet - self.insurance_bet

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "player_hand": _hand_to_list(self.player_hand),
            "dealer_hand": _hand_to_list(self.dealer_hand),
            "actions": list(self.actions),
            "result": self.result.value,
            "payout": self.payout,
            "bet": self.bet,
            "insurance_bet": self.insurance_bet,
            "is_split": self.is_split,
            "split_outcomes": [o.to_dict() for o in self.split_outcomes],
            "steps": [s.to_dict() for s in self.steps],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HandHistoryEntry":
        return cls(
            id=int(data["id"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            player_hand=_hand_from_list(data["player_hand"]),
            dealer_hand=_hand_from_list(data["dealer_hand"]),
            actions=tuple(data.get("actions", [])),
            result=Result(data["result"]),
            payout=int(data["payout"]),
            bet=int(data["bet"]),
            insurance_bet=int(data.get("insurance_bet", 0)),
            is_split=bool(data.get("is_split", False)),
            split_outcomes=tuple(SplitOutcome.from_dict(o) for o in data.get("split_outcomes", [])),
            steps=tuple(HandHistoryStep.from_dict(s) for s in data.get("steps", [])),
        )


class HistoryRecorder:
    """
    Builds the step log of the round in progress and keeps finished entries.

    Subscribe it to an :class:`EventEmitter` with :meth:`attach`. A latch is
    set when a round is dealt and cleared by the first entry written for it,
    so a round can never be recorded twice.
    """

    def __init__(
        self,
        context: SessionContext | None = None,
        max_entries: int = MAX_HISTORY_ENTRIES,
    ) -> None:
        self.context = context or SessionContext()
        self._entries: deque[HandHistoryEntry] = deque(maxlen=max_entries)
        self._steps: list[HandHistoryStep] = []
        self._in_progress = False

    def attach(self, events: EventEmitter) -> None:
        # Per-type subscriptions run before catch-all ones, and in subscription
        # order, so handlers added later for ROUND_ENDED see the new entry.
        for event_type in _STEP_EVENTS:
            events.subscribe(self.handle, event_type)

    def detach(self, events: EventEmitter) -> None:
        for event_type in _STEP_EVENTS:
            events.unsubscribe(self.handle, event_type)

    def handle(self, event: GameEvent) -> None:
        """Event handler: turn engine events into steps and entries."""
        action = _STEP_EVENTS.get(event.event_type)
        if action is None or event.state is None:
            return

        if event.event_type is EventType.ROUND_STARTED:
            self.begin(event.state)
        elif event.event_type is EventType.ROUND_ENDED:
            self.finalize(event.state)
        else:
            self.record(action, event.state)

    @property
    def in_progress(self) -> bool:
        return self._in_progress

    @property
    def current_steps(self) -> list[HandHistoryStep]:
        return list(self._steps)

    def begin(self, state: RoundState) -> None:
        """Open a new round with its ``deal`` step."""
        self._steps = []
        self._in_progress = True
        self.record("deal", state)

    def record(self, action: str, state: RoundState) -> None:
        if not self._in_progress:
            return
        self._steps.append(HandHistoryStep.capture(action, state))

    def finalize(self, state: RoundState) -> HandHistoryEntry | None:
        """
        Write the entry for the round in progress.

        Returns:
            The new entry, or None if no round is in progress (already
            written, or never dealt)
        """
        if not self._in_progress or state.result is None:
            return None

        self.record("result", state)
        entry = HandHistoryEntry(
            id=self.context.next_history_id(),
            timestamp=datetime.now(),
            player_hand=state.player_hand,
            dealer_hand=state.dealer_hand,
            actions=tuple(s.action for s in self._steps if s.action != "result"),
            result=state.result,
            payout=state.payout,
            bet=state.wagered,
            insurance_bet=state.insurance_bet,
            is_split=state.is_split,
            split_outcomes=tuple(
                SplitOutcome(hand=h.hand, bet=h.bet, result=h.result)
                for h in state.split_hands
                if h.result is not None
            ),
            steps=tuple(self._steps),
        )
        self._in_progress = False
        self._steps = []
        self._entries.append(entry)
        logger.debug("Recorded hand #%d: %s", entry.id, entry.result.value)
        return entry

    @property
    def entries(self) -> list[HandHistoryEntry]:
        """Finished rounds, oldest first."""
        return list(self._entries)

    @property
    def latest(self) -> HandHistoryEntry | None:
        return self._entries[-1] if self._entries else None

    def get(self, entry_id: int) -> HandHistoryEntry | None:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def replay(self, entry_id: int) -> "HandReplay | None":
        entry = self.get(entry_id)
        return HandReplay(entry) if entry is not None else None

    def clear(self) -> None:
        self._entries.clear()
        self._steps = []
        self._in_progress = False

    def export(self) -> list[dict[str, Any]]:
        return [entry.to_dict() for entry in self._entries]

    def load(self, data: list[dict[str, Any]]) -> None:
        """
        Replace the stored entries with exported ones.

        Raises:
            KeyError, ValueError, TypeError: If an entry is malformed
        """
        entries = [HandHistoryEntry.from_dict(item) for item in data]
        self._entries.clear()
        self._entries.extend(entries)
        for entry in entries:
            self.context.observe_history_id(entry.id)


class HandReplay:
    """
    Step-by-step cursor over a finished round.

    Pure index traversal of the entry's step log; no engine involved.
    """

    def __init__(self, entry: HandHistoryEntry) -> None:
        if not entry.steps:
            raise ValueError(f"Hand #{entry.id} has no recorded steps")
        self.entry = entry
        self._index = 0

    @property
    def index(self) -> int:
        return self._index

    @property
    def current(self) -> HandHistoryStep:
        return self.entry.steps[self._index]

    @property
    def at_start(self) -> bool:
        return self._index == 0

    @property
    def at_end(self) -> bool:
        return self._index == len(self.entry.steps) - 1

    def next(self) -> HandHistoryStep | None:
        """Step forward; None once the last step is reached."""
        if self.at_end:
            return None
        self._index += 1
        return self.current

    def previous(self) -> HandHistoryStep | None:
        """Step back; None at the first step."""
        if self.at_start:
            return None
        self._index -= 1
        return self.current

    def seek(self, index: int) -> HandHistoryStep:
        if not 0 <= index < len(self.entry.steps):
            raise IndexError(f"Step {index} out of range for hand #{self.entry.id}")
        self._index = index
        return self.current

    def restart(self) -> HandHistoryStep:
        self._index = 0
        return self.current

    def __len__(self) -> int:
        return len(self.entry.steps)

    def __iter__(self) -> Iterator[HandHistoryStep]:
        return iter(self.entry.steps)
