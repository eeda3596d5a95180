"""Tests for table rules."""

import pytest

from table_engine.rules import RuleSet


class TestRuleSet:
    """Defaults, presets and validation."""

    def test_defaults(self):
        rules = RuleSet()

        assert rules.num_decks == 6
        assert rules.dealer_stand_threshold == 17
        assert rules.dealer_hits_soft_17 is False
        assert rules.max_split_hands == 3
        assert rules.split_ten_values is False

    @pytest.mark.parametrize(
        "preset,decks,h17,payout",
        [
            (RuleSet.vegas_strip, 6, False, 1.5),
            (RuleSet.downtown_vegas, 6, True, 1.5),
            (RuleSet.single_deck, 1, True, 1.2),
            (RuleSet.atlantic_city, 8, False, 1.5),
        ],
    )
    def test_presets(self, preset, decks, h17, payout):
        rules = preset()

        assert rules.num_decks == decks
        assert rules.dealer_hits_soft_17 is h17
        assert rules.blackjack_payout == payout

    def test_single_deck_is_restrictive(self):
        rules = RuleSet.single_deck()
        assert rules.allow_surrender is False
        assert rules.allow_double_after_split is False
        assert rules.max_split_hands == 2

    @pytest.mark.parametrize(
        "overrides",
        [
            {"num_decks": 0},
            {"num_decks": 9},
            {"deck_penetration": 0.0},
            {"deck_penetration": 1.5},
            {"dealer_stand_threshold": 22},
            {"blackjack_payout": 0.5},
            {"max_split_hands": 1},
            {"starting_bankroll": 0},
            {"dealer_draw_delay": -1.0},
        ],
    )
    def test_invalid_combinations(self, overrides):
        with pytest.raises(ValueError):
            RuleSet(**overrides)

    def test_frozen(self):
        rules = RuleSet()
        with pytest.raises(AttributeError):
            rules.num_decks = 2
