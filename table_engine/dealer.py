"""Dealer play policy."""

from dataclasses import dataclass

from table_engine.cards import Card, Shoe
from table_engine.context import SessionContext
from table_engine.hand import Hand
from table_engine.rules import RuleSet


@dataclass(frozen=True)
class DealerStep:
    """Result of one dealer decision."""

    hand: Hand
    shoe: Shoe
    done: bool
    card: Card | None = None


@dataclass(frozen=True)
class DealerPolicy:
    """Hit below the stand threshold, and on soft 17 when the table says so."""

    stand_threshold: int = 17
    hits_soft_17: bool = False

    @classmethod
    def from_rules(cls, rules: RuleSet) -> "DealerPolicy":
        return cls(
            stand_threshold=rules.dealer_stand_threshold,
            hits_soft_17=rules.dealer_hits_soft_17,
        )

    def must_hit(self, hand: Hand) -> bool:
        """Determine if dealer should hit."""
        if hand.value < self.stand_threshold:
            return True
        return self.hits_soft_17 and hand.is_soft_17

    def advance(self, hand: Hand, shoe: Shoe, context: SessionContext) -> DealerStep:
        """
        Take a single dealer decision.

        Either draws one card (``done`` is False, the caller decides when
        to ask again) or stands (``done`` is True, nothing drawn).
        """
        if not self.must_hit(hand):
            return DealerStep(hand=hand, shoe=shoe, done=True)

        card, remaining = shoe.draw(context)
        return DealerStep(hand=hand.add(card), shoe=remaining, done=False, card=card)


def play_out(
    policy: DealerPolicy,
    hand: Hand,
    shoe: Shoe,
    context: SessionContext,
) -> DealerStep:
    """Run the policy to completion with no pacing."""
    step = policy.advance(hand, shoe, context)
    while not step.done:
        step = policy.advance(step.hand, step.shoe, context)
    return step
