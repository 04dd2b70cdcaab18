"""FastAPI routes for the Major Arcana deck.

Endpoints:
- GET /deck/meta
- GET /deck/cards
- GET /deck/cards/{card_id}
- GET /deck/cards/by-key/{key}
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter

from dotoracle.deck import DECK_SIZE, get_card, get_card_by_key, get_cards, get_deck

router = APIRouter(prefix="/deck", tags=["deck"])


@router.get("/meta")
def meta() -> Dict[str, Any]:
    d = get_deck()
    return {
        "deck_id": d.get("deck_id"),
        "schema_version": d.get("schema_version"),
        "card_count": DECK_SIZE,
    }


@router.get("/cards")
def cards() -> Dict[str, Any]:
    return {"cards": [c.model_dump() for c in get_cards()]}


@router.get("/cards/{card_id}")
def card(card_id: int) -> Dict[str, Any]:
    return {"card": get_card(card_id).model_dump()}


@router.get("/cards/by-key/{key}")
def card_by_key(key: str) -> Dict[str, Any]:
    return {"card": get_card_by_key(key).model_dump()}
