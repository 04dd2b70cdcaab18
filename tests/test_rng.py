"""Tests for card sampling."""

import random

import pytest

from dotoracle.deck import DECK_SIZE
from dotoracle.errors import InvalidInputError
from dotoracle.utils.rng import draw_cards, draw_cards_excluding


class TestDrawCards:
    def test_draw_is_deterministic_with_seeded_rng(self):
        drawn1 = draw_cards(3, random.Random(42))
        drawn2 = draw_cards(3, random.Random(42))
        assert drawn1 == drawn2

    def test_no_duplicates_across_many_draws(self):
        rng = random.Random(7)
        for _ in range(200):
            ids = [d.card_id for d in draw_cards(3, rng)]
            assert len(ids) == len(set(ids)), "No duplicate cards should be drawn"
            assert all(0 <= i < DECK_SIZE for i in ids)

    def test_whole_deck_can_be_drawn(self):
        ids = sorted(d.card_id for d in draw_cards(DECK_SIZE, random.Random(1)))
        assert ids == list(range(DECK_SIZE))

    def test_zero_cards(self):
        assert draw_cards(0) == []

    def test_too_many_cards_raises(self):
        with pytest.raises(InvalidInputError):
            draw_cards(DECK_SIZE + 1)

    def test_negative_count_raises(self):
        with pytest.raises(InvalidInputError):
            draw_cards(-1)

    def test_both_orientations_occur(self):
        rng = random.Random(3)
        orientations = {d.orientation for _ in range(50) for d in draw_cards(3, rng)}
        assert orientations == {"upright", "reversed"}


class TestDrawExcluding:
    def test_excluded_ids_never_drawn(self):
        rng = random.Random(11)
        excluded = [0, 5, 9, 21]
        for _ in range(200):
            ids = [d.card_id for d in draw_cards_excluding(3, excluded, rng)]
            assert not set(ids) & set(excluded)
            assert len(ids) == len(set(ids))

    def test_exhausted_pool_raises(self):
        with pytest.raises(InvalidInputError):
            draw_cards_excluding(3, range(20))

    def test_exact_remaining_pool(self):
        ids = sorted(d.card_id for d in draw_cards_excluding(2, range(20), random.Random(2)))
        assert ids == [20, 21]
