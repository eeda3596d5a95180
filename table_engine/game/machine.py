"""Legal-transition table for the round state machine."""

from transitions import Machine

from table_engine.game.actions import PUBLIC_TRIGGERS
from table_engine.game.state import Phase

P = Phase


def _names(*phases: Phase) -> list[str]:
    return [p.value for p in phases]


class PhaseMachine:
    """
    The round's phase graph.

    Two kinds of triggers live in the table. Action triggers (``hit``,
    ``deal``, ...) are what callers may request; their presence in a phase
    is the whole legality check. Internal triggers (``deal_cards``,
    ``reveal``, ...) move the phase while the engine resolves an action,
    and firing one from the wrong phase raises ``MachineError``.
    """

    STATES = [p.value for p in Phase]

    TRANSITIONS = [
        # Actions (dest None = internal transition, phase moves via the walk below)
        {"trigger": "place_bet", "source": _names(P.IDLE, P.BETTING), "dest": P.BETTING.value},
        {"trigger": "clear_bet", "source": P.BETTING.value, "dest": None},
        {"trigger": "deal", "source": P.BETTING.value, "dest": None},
        {"trigger": "hit", "source": _names(P.PLAYER_TURN, P.SPLITTING), "dest": None},
        {"trigger": "stand", "source": _names(P.PLAYER_TURN, P.SPLITTING), "dest": None},
        {"trigger": "double", "source": _names(P.PLAYER_TURN, P.SPLITTING), "dest": None},
        {"trigger": "split", "source": _names(P.PLAYER_TURN, P.SPLITTING), "dest": None},
        {"trigger": "insure", "source": P.INSURANCE_OFFER.value, "dest": None},
        {"trigger": "surrender", "source": P.PLAYER_TURN.value, "dest": None},
        {"trigger": "advance_dealer", "source": P.DEALER_TURN.value, "dest": None},
        {"trigger": "new_round", "source": _names(P.RESOLVING, P.GAME_OVER), "dest": P.BETTING.value},
        {
            "trigger": "reset",
            "source": _names(P.IDLE, P.BETTING, P.RESOLVING, P.GAME_OVER),
            "dest": P.BETTING.value,
        },
        # Internal moves
        {"trigger": "deal_cards", "source": P.BETTING.value, "dest": P.DEALING.value},
        {"trigger": "offer_insurance", "source": P.DEALING.value, "dest": P.INSURANCE_OFFER.value},
        {
            "trigger": "open_play",
            "source": _names(P.DEALING, P.INSURANCE_OFFER),
            "dest": P.PLAYER_TURN.value,
        },
        {"trigger": "begin_split", "source": P.PLAYER_TURN.value, "dest": P.SPLITTING.value},
        {"trigger": "begin_double", "source": P.PLAYER_TURN.value, "dest": P.DOUBLING.value},
        {"trigger": "begin_surrender", "source": P.PLAYER_TURN.value, "dest": P.SURRENDERING.value},
        {
            "trigger": "reveal",
            "source": _names(P.PLAYER_TURN, P.SPLITTING, P.DOUBLING),
            "dest": P.DEALER_TURN.value,
        },
        {
            "trigger": "resolve",
            "source": _names(P.DEALING, P.PLAYER_TURN, P.DOUBLING, P.SURRENDERING, P.DEALER_TURN),
            "dest": P.RESOLVING.value,
        },
        {"trigger": "finish", "source": P.RESOLVING.value, "dest": P.GAME_OVER.value},
    ]

    def __init__(self) -> None:
        self.machine = Machine(
            model=self,
            states=self.STATES,
            transitions=self.TRANSITIONS,
            initial=Phase.BETTING.value,
            auto_transitions=False,
            model_attribute="_machine_state",
        )
        self._legal: dict[Phase, frozenset[str]] = {
            phase: frozenset(self.machine.get_triggers(phase.value)) & PUBLIC_TRIGGERS
            for phase in Phase
        }

    def allows(self, phase: Phase, trigger: str) -> bool:
        """Check whether an action trigger is legal in ``phase``."""
        return trigger in self._legal[phase]

    def legal_actions(self, phase: Phase) -> frozenset[str]:
        return self._legal[phase]

    def walk(self, phase: Phase, *triggers: str) -> Phase:
        """
        Fire ``triggers`` in order starting from ``phase``.

        Returns:
            The phase reached after the last trigger
        """
        self.machine.set_state(phase.value)
        for name in triggers:
            self.trigger(name)  # type: ignore[attr-defined]
        return Phase(self._machine_state)  # type: ignore[attr-defined]
