"""Tests for the table session and dealer pacing."""

from dataclasses import replace

import pytest

from table_engine.cards import Shoe
from table_engine.context import SessionContext
from table_engine.game import EventType, Phase
from table_engine.payout import Result
from table_engine.rules import RuleSet
from table_engine.storage import MemoryStore
from table_engine.table import DealerPacing, Table


def stack(table, *cards):
    table.state = replace(table.state, shoe=Shoe.from_cards(cards))


@pytest.fixture
def table():
    return Table(context=SessionContext(), pacing=DealerPacing.instant())


class TestDispatch:
    """Actions through the table."""

    def test_actions_report_changes(self, table):
        assert table.place_bet(100)
        assert not table.hit()
        assert table.clear_bet()
        assert not table.clear_bet()

    def test_legal_actions(self, table):
        assert table.legal_actions == {"place_bet", "reset"}
        table.place_bet(10)
        assert "deal" in table.legal_actions

    def test_decline_insurance(self, table):
        stack(table, "10S", "AH", "7D", "9C")
        table.place_bet(100)
        table.deal()
        assert table.state.phase is Phase.INSURANCE_OFFER
        assert table.decline_insurance()
        assert table.state.phase is Phase.PLAYER_TURN

    def test_reset(self, table):
        table.place_bet(100)
        assert table.reset(250)
        assert table.state.chips == 250


class TestDealerPlay:
    """Driving the dealer step by step."""

    def test_play_dealer_reports_each_step(self, table):
        stack(table, "10S", "10H", "8D", "5C", "AH", "6S")
        table.place_bet(100)
        table.deal()
        table.stand()
        assert table.dealer_pending

        steps = []
        final = table.play_dealer(on_step=steps.append)

        assert [s.dealer_hand.value for s in steps] == [16, 22, 22]
        assert steps[-1].phase is Phase.GAME_OVER
        assert final is table.state
        assert final.result == Result.WIN
        assert not table.dealer_pending

    def test_play_dealer_when_not_pending(self, table):
        state = table.state
        assert table.play_dealer() is state

    def test_pacing_delays(self, monkeypatch):
        slept = []
        monkeypatch.setattr("table_engine.table.time.sleep", slept.append)
        table = Table(context=SessionContext(), pacing=DealerPacing(0.5, 0.25))
        stack(table, "10S", "10H", "8D", "5C", "AH", "6S")
        table.place_bet(100)
        table.deal()
        table.stand()

        table.play_dealer()
        assert slept == [0.5, 0.25, 0.25]

    def test_pacing_does_not_change_outcome(self, monkeypatch):
        monkeypatch.setattr("table_engine.table.time.sleep", lambda _: None)
        results = []
        for pacing in (DealerPacing.instant(), DealerPacing(1.0, 1.0)):
            table = Table(context=SessionContext(), pacing=pacing)
            stack(table, "10S", "10H", "8D", "5C", "AH", "6S")
            table.place_bet(100)
            table.deal()
            table.stand()
            results.append(table.play_dealer())
        assert results[0] == results[1]

    def test_pacing_from_rules(self):
        rules = RuleSet(dealer_initial_delay=0.1, dealer_draw_delay=0.2)
        assert DealerPacing.from_rules(rules) == DealerPacing(0.1, 0.2)
        assert Table(rules).pacing == DealerPacing(0.1, 0.2)

    @pytest.mark.asyncio
    async def test_play_dealer_async(self, table):
        stack(table, "10S", "10H", "8D", "5C", "AH", "6S")
        table.place_bet(100)
        table.deal()
        table.stand()

        final = await table.play_dealer_async()
        assert final.phase is Phase.GAME_OVER
        assert final.dealer_hand.value == 22


class TestPersistence:
    """save / restore through snapshot stores."""

    def test_save_and_restore(self):
        state_store = MemoryStore()
        history_store = MemoryStore()
        table = Table(
            context=SessionContext(),
            pacing=DealerPacing.instant(),
            state_store=state_store,
            history_store=history_store,
        )
        stack(table, "AS", "9H", "KD", "7C", "2C")
        table.place_bet(100)
        table.deal()
        assert table.save()
        assert history_store.data is not None

        restored = Table(
            context=SessionContext(),
            state_store=state_store,
            history_store=history_store,
        )
        assert restored.restore()
        assert restored.state == table.state
        assert [e.id for e in restored.history.entries] == [1]

    def test_restore_keeps_ids_unique(self):
        state_store = MemoryStore()
        table = Table(context=SessionContext(), state_store=state_store)
        stack(table, "AS", "9H", "KD", "7C", "2C", "3D", "4H", "5S")
        table.place_bet(100)
        table.deal()
        table.save()
        highest = max(c.uid for c in table.state.player_hand.cards + table.state.dealer_hand.cards)

        context = SessionContext()
        restored = Table(context=context, state_store=state_store)
        restored.restore()
        assert context.last_card_id == highest

        restored.new_round()
        restored.place_bet(10)
        restored.deal()
        assert min(c.uid for c in restored.state.player_hand.cards) > highest

    def test_restore_mid_hand_refunds(self):
        state_store = MemoryStore()
        table = Table(context=SessionContext(), state_store=state_store)
        stack(table, "10S", "9H", "6D", "8C")
        table.place_bet(100)
        table.deal()
        assert table.state.chips == 900
        table.save()

        restored = Table(context=SessionContext(), state_store=state_store)
        events = []
        restored.subscribe(events.append, EventType.STATE_RESTORED)
        assert restored.restore()
        assert restored.state.phase is Phase.BETTING
        assert restored.state.chips == 1000
        assert len(events) == 1

    def test_restore_without_save(self):
        table = Table(state_store=MemoryStore())
        initial = table.state
        assert not table.restore()
        assert table.state is initial

    def test_restore_corrupt_save(self):
        table = Table(state_store=MemoryStore("garbage"))
        assert not table.restore()
        assert table.state.phase is Phase.BETTING

    def test_save_without_store(self, table):
        assert not table.save()
        assert not table.restore()


class TestAchievements:
    """Unlocks checked whenever a round settles."""

    def test_natural_unlocks_at_deal(self, table):
        stack(table, "AS", "9H", "KD", "7C")
        table.place_bet(100)
        table.deal()

        assert {a.id for a in table.new_achievements} == {"first_win", "first_blackjack"}
        assert table.achievements.progress == (2, 16)

        table.new_round()
        assert table.new_achievements == []

    def test_unlock_after_dealer_play(self, table):
        """The settling dealer step is the one that reports the unlock."""
        stack(table, "10S", "10H", "8D", "5C", "AH", "6S")
        table.place_bet(100)
        table.deal()
        table.stand()
        assert table.new_achievements == []

        table.play_dealer()
        assert table.state.result is Result.WIN
        assert [a.id for a in table.new_achievements] == ["first_win"]

    def test_no_repeat_unlocks(self, table):
        for _ in range(2):
            stack(table, "AS", "9H", "KD", "7C")
            table.place_bet(100)
            table.deal()
            unlocked = table.new_achievements
            table.new_round()

        assert unlocked == []
        assert table.achievements.progress == (2, 16)
