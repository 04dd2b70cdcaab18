"""Major Arcana deck loader + helpers.

- Loads deck JSON from dotoracle/data/cards.json
- Provides: get_deck(), get_cards(), get_card(card_id), get_card_by_key(key)
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotoracle.errors import InvalidInputError, NotFoundError
from dotoracle.models import Card

DATA_PATH = Path(__file__).resolve().parent / "data" / "cards.json"

DECK_SIZE = 22


class DeckError(RuntimeError):
    pass


def _load_json() -> Dict[str, Any]:
    try:
        raw = DATA_PATH.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise DeckError(f"Deck data file not found at: {DATA_PATH}") from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise DeckError(f"Invalid JSON in {DATA_PATH}: {e}") from e

    if "cards" not in data or not isinstance(data["cards"], list) or len(data["cards"]) != DECK_SIZE:
        raise DeckError(f"Deck data must contain exactly {DECK_SIZE} cards.")
    return data


_DECK_CACHE: Optional[Dict[str, Any]] = None
_CARDS_CACHE: Optional[List[Card]] = None


def get_deck() -> Dict[str, Any]:
    global _DECK_CACHE
    if _DECK_CACHE is None:
        _DECK_CACHE = _load_json()
    return _DECK_CACHE


def get_cards() -> List[Card]:
    global _CARDS_CACHE
    if _CARDS_CACHE is None:
        _CARDS_CACHE = [Card(**c) for c in get_deck()["cards"]]
    return list(_CARDS_CACHE)


def get_card(card_id: int) -> Card:
    for c in get_cards():
        if c.id == card_id:
            return c
    raise NotFoundError(f"Unknown card id: {card_id}")


def get_card_by_key(key: str) -> Card:
    for c in get_cards():
        if c.key == key:
            return c
    raise NotFoundError(f"Unknown card key: {key}")


def validate_deck() -> None:
    cards = get_cards()
    ids = [c.id for c in cards]
    if len(ids) != len(set(ids)):
        raise DeckError("Duplicate card ids detected.")
    if sorted(ids) != list(range(DECK_SIZE)):
        raise DeckError(f"Card ids must cover 0..{DECK_SIZE - 1}")
    keys = [c.key for c in cards]
    if len(keys) != len(set(keys)):
        raise DeckError("Duplicate card keys detected.")
    for c in cards:
        if not c.keywords_upright or not c.keywords_reversed:
            raise DeckError(f"Card {c.key} is missing keywords")


def describe_drawn(card_id: int, orientation: str) -> Dict[str, Any]:
    """Card fields resolved for one orientation, for API responses and AI requests."""
    if orientation not in ("upright", "reversed"):
        raise InvalidInputError(f"Unknown orientation: {orientation}")
    card = get_card(card_id)
    return {
        "card_id": card.id,
        "key": card.key,
        "name": card.name,
        "orientation": orientation,
        "keywords": card.keywords(orientation),
        "meaning": card.meaning(orientation),
        "talisman_line": card.talisman_line,
        "action_tip": card.action_tip,
    }
