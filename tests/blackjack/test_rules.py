"""
Tests for action legality, dealer policy, winner determination and payouts.
"""

import pytest

from felt.blackjack.action import Action
from felt.blackjack.errors import EngineInvariantError, InvalidConfiguration
from felt.blackjack.rules import (
    AnimationSpeed,
    BlackjackPayout,
    RoundResult,
    Settings,
    TableLimits,
    available_actions,
    calculate_insurance_payout,
    calculate_payout,
    calculate_total_payout,
    can_buy_insurance,
    can_double_down,
    can_hit,
    can_split,
    can_stand,
    can_surrender,
    dealer_should_hit,
    determine_winner,
    insurance_cost,
    settle_chips,
    should_offer_insurance,
)
from felt.common.card import Card, Rank, Suit
from felt.state.models import DealerState, HandState, PlayerState, PlayerType


def hand(*ranks, **kwargs):
    return HandState(cards=tuple(Card(Suit.CLUBS, r, face_up=True) for r in ranks), **kwargs)


def player(*hands, bets=None, chips=900, **kwargs):
    hands = hands or (hand(),)
    return PlayerState(
        id="player-1",
        name="You",
        type=PlayerType.HUMAN,
        position=1,
        hands=tuple(hands),
        bets=tuple(bets or [100] * len(hands)),
        results=(RoundResult.PENDING,) * len(hands),
        chips=chips,
        **kwargs,
    )


def dealer(*ranks, hole=False):
    cards = [Card(Suit.HEARTS, r, face_up=True) for r in ranks]
    if hole and len(cards) > 1:
        cards[1] = cards[1].turned(False)
    return DealerState(hand=HandState(cards=tuple(cards)))


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.number_of_decks == 6
        assert settings.dealer_hits_soft_17 is True
        assert settings.blackjack_pays is BlackjackPayout.THREE_TO_TWO
        assert settings.allow_surrender is True
        assert settings.allow_double_after_split is True
        assert settings.allow_rebuy is True
        assert settings.animation_speed is AnimationSpeed.NORMAL

    def test_string_enums_are_coerced(self):
        settings = Settings(blackjack_pays="6:5", animation_speed="fast")
        assert settings.blackjack_pays is BlackjackPayout.SIX_TO_FIVE
        assert settings.blackjack_multiplier == 1.2

    @pytest.mark.parametrize("decks", [0, 9, True, "six"])
    def test_invalid_deck_count(self, decks):
        with pytest.raises(InvalidConfiguration):
            Settings(number_of_decks=decks)

    def test_invalid_payout(self):
        with pytest.raises(InvalidConfiguration):
            Settings(blackjack_pays="2:1")

    def test_invalid_flag(self):
        with pytest.raises(InvalidConfiguration):
            Settings(allow_surrender="yes")

    def test_merged(self):
        settings = Settings().merged(number_of_decks=2, allow_surrender=False)
        assert settings.number_of_decks == 2
        assert settings.allow_surrender is False
        assert settings.dealer_hits_soft_17 is True

    def test_merged_rejects_unknown_keys(self):
        with pytest.raises(InvalidConfiguration):
            Settings().merged(deck_count=2)

    def test_round_trip_through_dict(self):
        settings = Settings(number_of_decks=2, blackjack_pays=BlackjackPayout.SIX_TO_FIVE)
        data = settings.to_dict()
        assert data["blackjack_pays"] == "6:5"
        assert data["animation_speed"] == "normal"
        assert Settings.from_dict(data) == settings

    def test_from_dict_ignores_unknown_keys(self):
        assert Settings.from_dict({"number_of_decks": 4, "theme": "dark"}).number_of_decks == 4


class TestTableLimits:
    def test_defaults(self):
        limits = TableLimits()
        assert (limits.min_bet, limits.max_bet, limits.starting_chips) == (10, 500, 1000)
        assert limits.chip_denominations == (10, 25, 50, 100)

    def test_max_below_min(self):
        with pytest.raises(InvalidConfiguration):
            TableLimits(min_bet=50, max_bet=10)

    def test_non_positive_min(self):
        with pytest.raises(InvalidConfiguration):
            TableLimits(min_bet=0)


class TestActionLegality:
    def test_hit(self):
        assert can_hit(hand(Rank.TEN, Rank.SIX))
        assert not can_hit(hand(Rank.TEN, Rank.ACE))
        assert not can_hit(hand(Rank.TEN, Rank.SIX, Rank.SEVEN))
        assert not can_hit(hand(Rank.SEVEN, Rank.SEVEN, Rank.SEVEN))

    def test_stand(self):
        assert can_stand(hand(Rank.TWO))
        assert not can_stand(hand())

    def test_double_down(self):
        settings = Settings()
        two_cards = hand(Rank.FIVE, Rank.SIX)
        assert can_double_down(two_cards, player(two_cards), settings)

    def test_double_needs_two_cards(self):
        three_cards = hand(Rank.TWO, Rank.THREE, Rank.FOUR)
        assert not can_double_down(three_cards, player(three_cards), Settings())

    def test_double_needs_chips(self):
        two_cards = hand(Rank.FIVE, Rank.SIX)
        assert not can_double_down(two_cards, player(two_cards, chips=99), Settings())
        assert can_double_down(two_cards, player(two_cards, chips=100), Settings())

    def test_double_after_split(self):
        split_hand = hand(Rank.EIGHT, Rank.THREE, is_split=True)
        p = player(split_hand, hand(Rank.EIGHT, Rank.TWO, is_split=True))
        assert can_double_down(split_hand, p, Settings())
        assert not can_double_down(
            split_hand, p, Settings(allow_double_after_split=False)
        )

    def test_split(self):
        pair = hand(Rank.EIGHT, Rank.EIGHT)
        assert can_split(pair, player(pair))
        assert not can_split(hand(Rank.EIGHT, Rank.NINE), player(pair))

    def test_split_needs_chips(self):
        pair = hand(Rank.EIGHT, Rank.EIGHT)
        assert not can_split(pair, player(pair, chips=50))

    def test_split_limited_to_four_hands(self):
        pair = hand(Rank.EIGHT, Rank.EIGHT, is_split=True)
        three = player(pair, hand(Rank.EIGHT, Rank.TWO), hand(Rank.EIGHT, Rank.THREE))
        four = player(
            pair, hand(Rank.EIGHT, Rank.TWO), hand(Rank.EIGHT, Rank.THREE), hand(Rank.EIGHT, Rank.FOUR)
        )
        assert can_split(pair, three)
        assert not can_split(pair, four)

    def test_surrender(self):
        two_cards = hand(Rank.TEN, Rank.SIX)
        assert can_surrender(two_cards, player(two_cards), Settings())

    def test_surrender_disabled(self):
        two_cards = hand(Rank.TEN, Rank.SIX)
        assert not can_surrender(two_cards, player(two_cards), Settings(allow_surrender=False))

    def test_surrender_after_acting(self):
        two_cards = hand(Rank.TEN, Rank.SIX)
        assert not can_surrender(two_cards, player(two_cards, has_acted=True), Settings())

    def test_surrender_not_on_blackjack(self):
        natural = hand(Rank.ACE, Rank.KING)
        assert not can_surrender(natural, player(natural), Settings())

    def test_available_actions_order(self):
        pair = hand(Rank.EIGHT, Rank.EIGHT)
        assert available_actions(player(pair), Settings()) == [
            Action.HIT,
            Action.STAND,
            Action.DOUBLE,
            Action.SPLIT,
            Action.SURRENDER,
        ]

    def test_available_actions_on_21(self):
        three = hand(Rank.SEVEN, Rank.SEVEN, Rank.SEVEN)
        assert available_actions(player(three), Settings()) == [Action.STAND]


class TestInsurance:
    def test_offer_on_ace_upcard(self):
        assert should_offer_insurance(dealer(Rank.ACE, Rank.NINE, hole=True))
        assert not should_offer_insurance(dealer(Rank.NINE, Rank.ACE, hole=True))
        assert not should_offer_insurance(DealerState())

    def test_cost_rounds_down(self):
        assert insurance_cost(100) == 50
        assert insurance_cost(25) == 12

    def test_can_buy(self):
        d = dealer(Rank.ACE, Rank.NINE, hole=True)
        assert can_buy_insurance(player(hand(Rank.TEN, Rank.SIX)), d)

    def test_cannot_buy_twice(self):
        d = dealer(Rank.ACE, Rank.NINE, hole=True)
        assert not can_buy_insurance(player(has_insurance=True, insurance_bet=50), d)

    def test_cannot_buy_without_chips(self):
        d = dealer(Rank.ACE, Rank.NINE, hole=True)
        assert not can_buy_insurance(player(chips=49), d)
        assert can_buy_insurance(player(chips=50), d)


class TestDealerPolicy:
    def test_soft_17(self):
        soft_17 = hand(Rank.ACE, Rank.SIX)
        assert dealer_should_hit(soft_17, Settings(dealer_hits_soft_17=True))
        assert not dealer_should_hit(soft_17, Settings(dealer_hits_soft_17=False))

    def test_hard_17_stands(self):
        assert not dealer_should_hit(hand(Rank.TEN, Rank.SEVEN), Settings())

    def test_16_always_hits(self):
        for flag in (True, False):
            assert dealer_should_hit(hand(Rank.TEN, Rank.SIX), Settings(dealer_hits_soft_17=flag))

    def test_18_always_stands(self):
        for flag in (True, False):
            assert not dealer_should_hit(hand(Rank.ACE, Rank.SEVEN), Settings(dealer_hits_soft_17=flag))
            assert not dealer_should_hit(hand(Rank.TEN, Rank.EIGHT), Settings(dealer_hits_soft_17=flag))


class TestDetermineWinner:
    def test_player_bust_loses_even_if_dealer_busts(self):
        busted = hand(Rank.TEN, Rank.TWO, Rank.KING)
        assert determine_winner(busted, hand(Rank.TEN, Rank.SIX, Rank.NINE)) is RoundResult.LOSE

    def test_blackjack_beats_20(self):
        assert determine_winner(hand(Rank.ACE, Rank.KING), hand(Rank.TEN, Rank.QUEEN)) is RoundResult.BLACKJACK

    def test_blackjack_push(self):
        assert determine_winner(hand(Rank.ACE, Rank.KING), hand(Rank.ACE, Rank.JACK)) is RoundResult.PUSH

    def test_dealer_blackjack_beats_21(self):
        three = hand(Rank.SEVEN, Rank.SEVEN, Rank.SEVEN)
        assert determine_winner(three, hand(Rank.ACE, Rank.JACK)) is RoundResult.LOSE

    def test_dealer_bust(self):
        assert determine_winner(hand(Rank.TEN, Rank.NINE), hand(Rank.TEN, Rank.TWO, Rank.KING)) is RoundResult.WIN

    def test_compare_scores(self):
        assert determine_winner(hand(Rank.TEN, Rank.EIGHT), hand(Rank.TEN, Rank.KING)) is RoundResult.LOSE
        assert determine_winner(hand(Rank.TEN, Rank.NINE), hand(Rank.TEN, Rank.EIGHT)) is RoundResult.WIN
        assert determine_winner(hand(Rank.TEN, Rank.NINE), hand(Rank.KING, Rank.NINE)) is RoundResult.PUSH

    def test_surrender_comes_first(self):
        natural = hand(Rank.ACE, Rank.KING)
        assert determine_winner(natural, hand(Rank.TEN, Rank.SIX), surrendered=True) is RoundResult.SURRENDER


class TestPayouts:
    @pytest.mark.parametrize(
        "result, payout, expected",
        [
            (RoundResult.BLACKJACK, BlackjackPayout.THREE_TO_TWO, 150),
            (RoundResult.BLACKJACK, BlackjackPayout.SIX_TO_FIVE, 120),
            (RoundResult.WIN, BlackjackPayout.THREE_TO_TWO, 100),
            (RoundResult.PUSH, BlackjackPayout.THREE_TO_TWO, 0),
            (RoundResult.SURRENDER, BlackjackPayout.THREE_TO_TWO, -50),
            (RoundResult.LOSE, BlackjackPayout.THREE_TO_TWO, -100),
        ],
    )
    def test_payout_scenarios(self, result, payout, expected):
        assert calculate_payout(result, 100, Settings(blackjack_pays=payout)) == expected

    def test_payouts_round_down(self):
        assert calculate_payout(RoundResult.BLACKJACK, 25, Settings()) == 37
        assert calculate_payout(RoundResult.SURRENDER, 25, Settings()) == -12

    def test_pending_is_rejected(self):
        with pytest.raises(EngineInvariantError):
            calculate_payout(RoundResult.PENDING, 100, Settings())

    def test_insurance(self):
        assert calculate_insurance_payout(50, True) == 100
        assert calculate_insurance_payout(50, False) == -50

    def test_total_payout_across_split_hands(self):
        p = player(
            hand(Rank.EIGHT, Rank.TEN, is_split=True),
            hand(Rank.EIGHT, Rank.FIVE, is_split=True),
            bets=[100, 100],
        )
        dealer_hand = hand(Rank.TEN, Rank.SEVEN)
        # 18 beats 17, 13 loses
        assert calculate_total_payout(p, dealer_hand, Settings()) == 0

    def test_total_payout_includes_insurance(self):
        p = player(hand(Rank.TEN, Rank.NINE), has_insurance=True, insurance_bet=50)
        dealer_hand = hand(Rank.ACE, Rank.KING)
        assert calculate_total_payout(p, dealer_hand, Settings()) == -100 + 100

    def test_total_payout_uses_surrendered_hand(self):
        p = player(hand(Rank.TEN, Rank.SIX, is_surrendered=True))
        assert calculate_total_payout(p, hand(Rank.TEN, Rank.SEVEN), Settings()) == -50

    def test_settle_returns_stakes(self):
        p = player(hand(Rank.TEN, Rank.NINE), chips=850, has_insurance=True, insurance_bet=50)
        # Stakes 100 + 50 come back before the net payout
        assert settle_chips(p, 100) == 1100
        assert settle_chips(p, -150) == 850
