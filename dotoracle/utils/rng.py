"""Card sampling with an injectable random source."""

import random
from typing import Iterable, List, Optional

from dotoracle.deck import DECK_SIZE
from dotoracle.errors import InvalidInputError
from dotoracle.models import DrawnCard


def random_orientation(rng: random.Random) -> str:
    return "upright" if rng.random() < 0.5 else "reversed"


def _sample(pool: List[int], count: int, rng: Optional[random.Random]) -> List[DrawnCard]:
    if count < 0:
        raise InvalidInputError(f"Cannot draw a negative number of cards: {count}")
    if count > len(pool):
        raise InvalidInputError(f"Cannot draw {count} cards from {len(pool)} available")
    rng = rng or random.Random()

    # Fisher-Yates on the pool, take first N
    shuffled = pool.copy()
    rng.shuffle(shuffled)

    return [
        DrawnCard(card_id=card_id, orientation=random_orientation(rng))
        for card_id in shuffled[:count]
    ]


def draw_cards(count: int, rng: Optional[random.Random] = None, deck_size: int = DECK_SIZE) -> List[DrawnCard]:
    """Draw `count` distinct cards, each with an independent 50/50 orientation.

    Args:
        count: Number of cards to draw
        rng: Random source; a fresh unseeded one when omitted
        deck_size: Number of card ids in the deck, ids are 0..deck_size-1

    Returns:
        Ordered list of DrawnCard

    Raises:
        InvalidInputError: if count is negative or larger than the deck
    """
    return _sample(list(range(deck_size)), count, rng)


def draw_cards_excluding(
    count: int,
    excluded_ids: Iterable[int],
    rng: Optional[random.Random] = None,
    deck_size: int = DECK_SIZE,
) -> List[DrawnCard]:
    """Draw like draw_cards, but never return a card id in `excluded_ids`."""
    excluded = set(excluded_ids)
    pool = [i for i in range(deck_size) if i not in excluded]
    return _sample(pool, count, rng)
