import json

import pytest

from dotoracle.deck import DATA_PATH, DECK_SIZE, describe_drawn, get_card, get_card_by_key, get_cards, validate_deck
from dotoracle.errors import InvalidInputError, NotFoundError


def test_deck_json_has_22_cards():
    data = json.loads(DATA_PATH.read_text(encoding="utf-8"))
    assert len(data["cards"]) == DECK_SIZE == 22


def test_card_ids_cover_major_arcana():
    ids = sorted(c.id for c in get_cards())
    assert ids == list(range(22))


def test_validate_deck_passes():
    validate_deck()


def test_get_card_and_by_key():
    assert get_card(0).key == "fool"
    assert get_card_by_key("world").id == 21


def test_unknown_card_raises():
    with pytest.raises(NotFoundError):
        get_card(22)
    with pytest.raises(NotFoundError):
        get_card_by_key("joker")


def test_describe_drawn_uses_orientation():
    card = get_card(13)
    upright = describe_drawn(13, "upright")
    reversed_ = describe_drawn(13, "reversed")
    assert upright["keywords"] == card.keywords_upright
    assert reversed_["keywords"] == card.keywords_reversed
    assert reversed_["meaning"] == card.meaning_reversed


def test_describe_drawn_rejects_bad_orientation():
    with pytest.raises(InvalidInputError):
        describe_drawn(0, "sideways")
