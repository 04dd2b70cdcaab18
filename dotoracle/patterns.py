"""Spread pattern classification.

A spread's pattern is the upright/reversed signature of its three cards in
position order (U = upright, R = reversed). The reversal modifier is picked
from the topic alone.
"""

from __future__ import annotations

from typing import Dict, Literal, Sequence, Tuple

from dotoracle.errors import InvalidInputError

Orientation = Literal["upright", "reversed"]
SpreadTopic = Literal["GENERAL", "LOVE", "MONEY", "WORK"]
PatternCode = Literal["UUU", "UUR", "URU", "RUU", "URR", "RUR", "RRU", "RRR"]
ReversalModifier = Literal["NEUTRAL", "INTERNALIZED", "BLOCKED_DELAYED", "SHADOW_EXCESS"]

TOPICS: Tuple[SpreadTopic, ...] = ("GENERAL", "LOVE", "MONEY", "WORK")

PATTERN_CODES: Tuple[PatternCode, ...] = ("UUU", "UUR", "URU", "RUU", "URR", "RUR", "RRU", "RRR")

TOPIC_MODIFIERS: Dict[str, ReversalModifier] = {
    "GENERAL": "NEUTRAL",
    "LOVE": "INTERNALIZED",
    "MONEY": "BLOCKED_DELAYED",
    "WORK": "SHADOW_EXCESS",
}

_LETTERS = {"upright": "U", "reversed": "R"}


def classify_pattern(orientations: Sequence[str]) -> PatternCode:
    if len(orientations) != 3:
        raise InvalidInputError(f"A pattern needs exactly 3 orientations, got {len(orientations)}")
    try:
        return "".join(_LETTERS[o] for o in orientations)  # type: ignore[return-value]
    except KeyError as e:
        raise InvalidInputError(f"Unknown orientation: {e.args[0]}") from e


def modifier_for_topic(topic: str) -> ReversalModifier:
    try:
        return TOPIC_MODIFIERS[topic]
    except KeyError as e:
        raise InvalidInputError(f"Unknown topic: {topic}") from e


def reversed_count(orientations: Sequence[str]) -> int:
    return sum(1 for o in orientations if o == "reversed")


def should_suggest_clarifier(orientations: Sequence[str]) -> bool:
    """Offer a clarifier when the advice card is reversed or two or more cards are."""
    if len(orientations) != 3:
        raise InvalidInputError("should_suggest_clarifier expects the 3 spread orientations")
    return orientations[2] == "reversed" or reversed_count(orientations) >= 2


def pattern_hint_keys(pattern: str) -> Dict[str, str]:
    """Translation keys the client uses for the pattern's tone and output style."""
    if pattern not in PATTERN_CODES:
        raise InvalidInputError(f"Unknown pattern: {pattern}")
    return {
        "tone_key": f"spreadResult.patterns.{pattern}.tone",
        "output_style_key": f"spreadResult.patterns.{pattern}.outputStyle",
    }
