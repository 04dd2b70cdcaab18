"""Tests for interpretation request building and the OpenAI wrapper."""

from types import SimpleNamespace

import pytest

from dotoracle.ai import (
    OpenAIInterpreter,
    build_follow_up_prompt,
    build_follow_up_request,
    build_interpret_request,
    build_prompt,
)
from dotoracle.config import Settings
from dotoracle.errors import InterpretationError
from dotoracle.models import DrawnCard, FollowUp, FollowUpSpreadCard, SpreadCard, SpreadRecord


def make_spread(**overrides):
    data = dict(
        id="spread_test",
        date_key="2024-01-01",
        topic="LOVE",
        cards=[
            SpreadCard(position="FLOW", drawn_card=DrawnCard(card_id=0, orientation="upright")),
            SpreadCard(position="INFLUENCE", drawn_card=DrawnCard(card_id=2, orientation="reversed")),
            SpreadCard(position="ADVICE", drawn_card=DrawnCard(card_id=17, orientation="upright")),
        ],
        pattern="URU",
        modifier="INTERNALIZED",
        created_at=1,
        user_question="Will we talk again?",
    )
    data.update(overrides)
    return SpreadRecord(**data)


class FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_client(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


class TestRequestBuilding:
    def test_interpret_request_fields(self):
        request = build_interpret_request(make_spread(), "en")
        assert request.topic == "LOVE"
        assert request.pattern == "URU"
        assert [c.position for c in request.cards] == ["FLOW", "INFLUENCE", "ADVICE"]
        assert request.cards[0].card_name == "The Fool"
        assert request.cards[1].orientation == "reversed"
        assert request.cards[1].keywords  # reversed keywords of card 2
        assert request.user_question == "Will we talk again?"

    def test_follow_up_request_requires_follow_up(self):
        with pytest.raises(ValueError):
            build_follow_up_request(make_spread())

    def test_follow_up_request_carries_original(self):
        follow_up = FollowUp(
            cards=[
                FollowUpSpreadCard(position="DEPTH", drawn_card=DrawnCard(card_id=5, orientation="upright")),
                FollowUpSpreadCard(position="HIDDEN", drawn_card=DrawnCard(card_id=6, orientation="upright")),
                FollowUpSpreadCard(position="OUTCOME", drawn_card=DrawnCard(card_id=7, orientation="reversed")),
            ],
            user_question="What is hidden?",
            created_at=2,
        )
        spread = make_spread(follow_up=follow_up, ai_interpretation="Earlier reading.")
        request = build_follow_up_request(spread, "ko")
        assert request.original_pattern == "URU"
        assert request.original_interpretation == "Earlier reading."
        assert [c.position for c in request.follow_up_cards] == ["DEPTH", "HIDDEN", "OUTCOME"]
        prompt = build_follow_up_prompt(request)
        assert "What is hidden?" in prompt
        assert "역위치" in prompt

    def test_prompt_mentions_cards_and_question(self):
        prompt = build_prompt(build_interpret_request(make_spread(), "en"))
        assert "The Fool" in prompt
        assert "Will we talk again?" in prompt
        assert "love" in prompt

    def test_korean_prompt(self):
        prompt = build_prompt(build_interpret_request(make_spread(), "ko"))
        assert "연애" in prompt
        assert "정위치" in prompt


class TestOpenAIInterpreter:
    def test_missing_key_raises(self):
        interpreter = OpenAIInterpreter(Settings(openai_api_key=""))
        with pytest.raises(InterpretationError):
            interpreter.interpret(build_interpret_request(make_spread()))

    def test_returns_stripped_text(self):
        completions = FakeCompletions(content="  Trust the slow start.  ")
        interpreter = OpenAIInterpreter(Settings(ai_model="test-model"), client=fake_client(completions))
        assert interpreter.interpret(build_interpret_request(make_spread())) == "Trust the slow start."
        assert completions.calls[0]["model"] == "test-model"

    def test_client_error_is_wrapped(self):
        completions = FakeCompletions(error=RuntimeError("connection reset"))
        interpreter = OpenAIInterpreter(Settings(), client=fake_client(completions))
        with pytest.raises(InterpretationError) as exc:
            interpreter.interpret(build_interpret_request(make_spread()))
        assert "connection reset" in str(exc.value)

    def test_empty_reply_raises(self):
        interpreter = OpenAIInterpreter(Settings(), client=fake_client(FakeCompletions(content="")))
        with pytest.raises(InterpretationError):
            interpreter.interpret(build_interpret_request(make_spread()))
