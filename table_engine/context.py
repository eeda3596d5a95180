"""Per-session counters and randomness."""

from dataclasses import dataclass, field
from random import Random


@dataclass
class SessionContext:
    """
    Identity counters owned by one table session.

    Card identities and history entry ids are drawn from here instead of
    module globals, so two sessions (or two tests) never share a sequence.
    """

    last_card_id: int = 0
    last_history_id: int = 0
    rng: Random = field(default_factory=Random)

    def next_card_id(self) -> int:
        """Return a fresh card identity."""
        self.last_card_id += 1
        return self.last_card_id

    def next_history_id(self) -> int:
        """Return a fresh history entry id."""
        self.last_history_id += 1
        return self.last_history_id

    def observe_card_id(self, uid: int) -> None:
        """Make sure future card ids stay above an id restored from storage."""
        if uid > self.last_card_id:
            self.last_card_id = uid

    def observe_history_id(self, entry_id: int) -> None:
        """Make sure future history ids stay above a restored entry id."""
        if entry_id > self.last_history_id:
            self.last_history_id = entry_id
