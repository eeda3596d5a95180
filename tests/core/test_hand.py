"""Tests for Hand evaluation."""

import pytest
from hypothesis import given, strategies as st

from table_engine.cards import Card, Rank, Suit
from table_engine.hand import Hand, evaluate_hands, score


@st.composite
def card_strategy(draw):
    """Generate a random card."""
    rank = draw(st.sampled_from(list(Rank)))
    suit = draw(st.sampled_from(list(Suit)))
    return Card(rank, suit)


@st.composite
def hand_strategy(draw, min_cards=2, max_cards=8):
    """Generate a random hand."""
    return Hand(tuple(draw(st.lists(card_strategy(), min_size=min_cards, max_size=max_cards))))


class TestHand:
    """Tests for the Hand class."""

    def test_empty_hand(self):
        """Test empty hand properties."""
        hand = Hand()
        assert len(hand) == 0
        assert hand.value == 0
        assert not hand.is_soft
        assert not hand.is_blackjack
        assert not hand.is_busted

    def test_add_returns_new_hand(self):
        """Adding a card leaves the original hand untouched."""
        hand = Hand.of("10S")
        bigger = hand.add(Card(Rank.FIVE, Suit.HEARTS))
        assert len(hand) == 1
        assert bigger.value == 15

    def test_hard_hand_value(self, hard_16_hand):
        """Test hard hand value calculation."""
        assert hard_16_hand.value == 16
        assert not hard_16_hand.is_soft
        assert hard_16_hand.is_hard

    def test_soft_hand_value(self, soft_17_hand):
        """Test soft hand value calculation."""
        assert soft_17_hand.value == 17
        assert soft_17_hand.is_soft
        assert soft_17_hand.is_soft_17

    def test_blackjack(self, blackjack_hand):
        """Test blackjack detection."""
        assert blackjack_hand.is_blackjack
        assert blackjack_hand.value == 21

    def test_not_blackjack_three_cards(self):
        """Test that 21 with 3+ cards is not blackjack."""
        hand = Hand.of("7S", "7H", "7C")
        assert hand.value == 21
        assert not hand.is_blackjack

    def test_bust(self, bust_hand):
        """Test bust detection."""
        assert bust_hand.is_busted
        assert bust_hand.value == 26

    def test_soft_to_hard_transition(self):
        """Test ace switching from 11 to 1."""
        hand = Hand.of("AS")
        assert hand.value == 11
        hand = hand.add(Card(Rank.SIX, Suit.HEARTS))
        assert hand.value == 17
        assert hand.is_soft
        hand = hand.add(Card(Rank.TEN, Suit.CLUBS))
        assert hand.value == 17
        assert not hand.is_soft

    def test_multiple_aces(self):
        """Only as many aces drop to 1 as needed."""
        assert Hand.of("AS", "AH").value == 12
        assert Hand.of("AS", "AH", "9C").value == 21
        assert Hand.of("AS", "AH", "AD", "AC").value == 14

    def test_score_of_card_sequence(self):
        """score() works on any card sequence."""
        assert score([Card(Rank.ACE, Suit.SPADES), Card(Rank.KING, Suit.SPADES)]) == 21
        assert score([]) == 0


class TestPairs:
    """Pair and split eligibility checks."""

    def test_pair_detection(self, pair_8s_hand):
        """Test pair detection."""
        assert pair_8s_hand.is_pair
        assert pair_8s_hand.can_split()

    def test_ten_value_pair_needs_rule(self):
        """10-J scores like a pair but splits only when the table allows it."""
        hand = Hand.of("10S", "JH")
        assert not hand.is_pair
        assert hand.is_ten_value_pair
        assert not hand.can_split()
        assert hand.can_split(split_ten_values=True)

    def test_kings_are_a_pair(self):
        """Same rank is a pair whatever the suits."""
        assert Hand.of("KS", "KD").can_split()

    def test_not_pair_three_cards(self):
        """Test that a three-card hand is never a pair."""
        hand = Hand.of("8S", "8H", "8D")
        assert not hand.is_pair
        assert not hand.can_split(split_ten_values=True)

    def test_ace_pair(self):
        assert Hand.of("AS", "AH").is_ace_pair
        assert not Hand.of("KS", "KH").is_ace_pair


class TestHandProperties:
    """Property-based checks over arbitrary hands."""

    @given(hand_strategy())
    def test_score_never_busts_when_avoidable(self, hand):
        """The score is at most 21 whenever counting every ace as 1 allows it."""
        hard_total = sum(1 if c.is_ace else c.value for c in hand.cards)
        if hard_total <= 21:
            assert hand.value <= 21
            assert hand.value >= hard_total
        else:
            assert hand.value == hard_total

    @given(hand_strategy(min_cards=1, max_cards=6))
    def test_blackjack_means_two_cards_totalling_21(self, hand):
        assert hand.is_blackjack == (len(hand) == 2 and hand.value == 21)

    @given(hand_strategy(min_cards=1, max_cards=6))
    def test_soft_hands_never_bust(self, hand):
        if hand.is_soft:
            assert hand.value <= 21


class TestEvaluateHands:
    """Tests for hand comparison."""

    @pytest.mark.parametrize(
        "player,dealer,expected",
        [
            (("10S", "9H"), ("10C", "8D"), 1),
            (("10S", "7H"), ("10C", "8D"), -1),
            (("10S", "8H"), ("10C", "8D"), 0),
            (("10S", "6H", "KC"), ("10C", "8D"), -1),
            (("10S", "6H"), ("10C", "6D", "KH"), 1),
        ],
    )
    def test_comparison(self, player, dealer, expected):
        assert evaluate_hands(Hand.of(*player), Hand.of(*dealer)) == expected

    def test_both_bust_player_loses(self):
        """Test that player loses even if both bust."""
        player = Hand.of("10S", "6H", "KC")
        dealer = Hand.of("10C", "6D", "QH")
        assert evaluate_hands(player, dealer) == -1

    def test_three_card_21_vs_natural_is_a_push_by_score(self):
        """Naturals are settled at the deal, so scoring alone sees 21 v 21."""
        assert evaluate_hands(Hand.of("7S", "7H", "7C"), Hand.of("AS", "KH")) == 0
