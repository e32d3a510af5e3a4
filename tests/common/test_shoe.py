"""
Tests for shoe construction, shuffling and dealing.
"""

import random
from collections import Counter

import pytest

from felt.blackjack.errors import (
    EmptyShoe,
    EngineInvariantError,
    InsufficientCards,
    InvalidConfiguration,
)
from felt.common.card import Rank, Suit
from felt.common.shoe import (
    build_deck,
    build_shoe,
    deal,
    deal_many,
    full_size,
    needs_reshuffle,
    new_shoe,
    penetration,
    shuffle,
)


class TestBuildShoe:
    def test_single_deck(self):
        deck = build_deck()
        assert len(deck) == 52
        assert len(set(deck)) == 52
        assert all(not card.face_up for card in deck)

    @pytest.mark.parametrize("decks", [1, 2, 6, 8])
    def test_shoe_size_and_unique_ids(self, decks):
        shoe = build_shoe(decks)
        assert len(shoe) == 52 * decks
        assert len({card.id for card in shoe}) == 52 * decks

    def test_rank_and_suit_counts(self):
        shoe = build_shoe(6)
        ranks = Counter(card.rank for card in shoe)
        suits = Counter(card.suit for card in shoe)
        assert all(count == 24 for count in ranks.values())
        assert all(count == 78 for count in suits.values())
        assert set(ranks) == set(Rank)
        assert set(suits) == set(Suit)

    @pytest.mark.parametrize("decks", [0, 9, -1, 2.5, True, "6"])
    def test_invalid_deck_count(self, decks):
        with pytest.raises(InvalidConfiguration):
            build_shoe(decks)

    def test_invalid_configuration_is_a_value_error(self):
        with pytest.raises(ValueError):
            build_shoe(0)


class TestShuffle:
    def test_shuffle_is_permutation(self):
        shoe = build_shoe(2)
        shuffled = shuffle(shoe, random.Random(42))
        assert len(shuffled) == len(shoe)
        assert Counter(c.id for c in shuffled) == Counter(c.id for c in shoe)

    def test_shuffle_leaves_input_untouched(self):
        cards = list(build_shoe(1))
        before = [c.id for c in cards]
        shuffle(cards, random.Random(1))
        assert [c.id for c in cards] == before

    def test_shuffle_changes_order(self):
        shoe = build_shoe(1)
        shuffled = shuffle(shoe, random.Random(3))
        assert [c.id for c in shuffled] != [c.id for c in shoe]

    def test_seeded_shuffle_is_reproducible(self):
        first = new_shoe(6, random.Random(99))
        second = new_shoe(6, random.Random(99))
        assert [c.id for c in first] == [c.id for c in second]

    def test_shuffle_empty_and_single(self):
        assert shuffle(()) == ()
        card = build_deck()[0]
        assert shuffle((card,)) == (card,)

    def test_first_position_is_uniform(self):
        """Every card should be roughly equally likely to land on top."""
        deck = build_deck()[:4]
        rng = random.Random(2024)
        counts = Counter(shuffle(deck, rng)[-1].id for _ in range(4000))
        assert len(counts) == 4
        for count in counts.values():
            assert 850 < count < 1150


class TestDeal:
    def test_deal_takes_from_the_end(self):
        shoe = build_shoe(1)
        card, remaining = deal(shoe)
        assert card.id == shoe[-1].id
        assert remaining == shoe[:-1]
        assert len(shoe) == 52

    def test_deal_from_empty_shoe(self):
        with pytest.raises(EmptyShoe):
            deal(())

    def test_empty_shoe_is_an_invariant_error(self):
        with pytest.raises(EngineInvariantError):
            deal(())

    def test_deal_many_in_dealing_order(self):
        shoe = build_shoe(1)
        cards, remaining = deal_many(shoe, 3)
        assert [c.id for c in cards] == [shoe[-1].id, shoe[-2].id, shoe[-3].id]
        assert len(remaining) == 49

    def test_deal_many_matches_repeated_deal(self):
        shoe = new_shoe(1, random.Random(5))
        many, rest_many = deal_many(shoe, 5)
        single = []
        rest = shoe
        for _ in range(5):
            card, rest = deal(rest)
            single.append(card)
        assert [c.id for c in many] == [c.id for c in single]
        assert rest_many == rest

    def test_deal_many_zero(self):
        shoe = build_shoe(1)
        cards, remaining = deal_many(shoe, 0)
        assert cards == ()
        assert remaining == shoe

    def test_deal_many_insufficient(self):
        with pytest.raises(InsufficientCards):
            deal_many(build_shoe(1)[:2], 3)

    def test_deal_many_negative(self):
        with pytest.raises(ValueError):
            deal_many(build_shoe(1), -1)


class TestReshuffle:
    def test_full_size(self):
        assert full_size(6) == 312

    def test_threshold_boundary(self):
        shoe = build_shoe(6)
        # 25% of 312 is 78
        assert needs_reshuffle(shoe[:77], 6)
        assert not needs_reshuffle(shoe[:78], 6)
        assert not needs_reshuffle(shoe, 6)

    def test_penetration(self):
        shoe = build_shoe(2)
        assert penetration(shoe, 2) == 0
        assert penetration(shoe[:52], 2) == pytest.approx(0.5)
