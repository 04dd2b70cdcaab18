import itertools

import pytest

from dotoracle.errors import InvalidInputError
from dotoracle.patterns import (
    PATTERN_CODES,
    classify_pattern,
    modifier_for_topic,
    pattern_hint_keys,
    reversed_count,
    should_suggest_clarifier,
)


def test_all_eight_combinations_have_distinct_codes():
    codes = {classify_pattern(list(combo)) for combo in itertools.product(["upright", "reversed"], repeat=3)}
    assert codes == set(PATTERN_CODES)
    assert len(codes) == 8


def test_position_order_matters():
    assert classify_pattern(["reversed", "upright", "upright"]) == "RUU"
    assert classify_pattern(["upright", "upright", "reversed"]) == "UUR"


@pytest.mark.parametrize("orientations", [[], ["upright"] * 2, ["upright"] * 4, ["upright", "upright", "sideways"]])
def test_classify_rejects_bad_input(orientations):
    with pytest.raises(InvalidInputError):
        classify_pattern(orientations)


def test_modifier_is_topic_only():
    assert modifier_for_topic("GENERAL") == "NEUTRAL"
    assert modifier_for_topic("LOVE") == "INTERNALIZED"
    assert modifier_for_topic("MONEY") == "BLOCKED_DELAYED"
    assert modifier_for_topic("WORK") == "SHADOW_EXCESS"
    with pytest.raises(InvalidInputError):
        modifier_for_topic("HEALTH")


def test_clarifier_suggestion():
    assert should_suggest_clarifier(["upright", "upright", "reversed"])
    assert should_suggest_clarifier(["reversed", "reversed", "upright"])
    assert not should_suggest_clarifier(["reversed", "upright", "upright"])
    assert not should_suggest_clarifier(["upright", "upright", "upright"])


def test_reversed_count():
    assert reversed_count(["reversed", "upright", "reversed"]) == 2


def test_pattern_hint_keys():
    assert pattern_hint_keys("URU") == {
        "tone_key": "spreadResult.patterns.URU.tone",
        "output_style_key": "spreadResult.patterns.URU.outputStyle",
    }
    with pytest.raises(InvalidInputError):
        pattern_hint_keys("XYZ")
