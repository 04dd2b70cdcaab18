"""AI interpretation of spreads.

Builds the structured request for a spread (or its follow-up), renders it to
a prompt and sends it to OpenAI. Any failure surfaces as InterpretationError;
nothing here retries.
"""

from __future__ import annotations

import logging
from typing import List, Literal, Optional

from openai import OpenAI
from pydantic import BaseModel

from dotoracle.config import Settings
from dotoracle.deck import get_card
from dotoracle.errors import InterpretationError
from dotoracle.models import SpreadRecord

log = logging.getLogger("dotoracle.ai")

Locale = Literal["en", "ko"]

TOPIC_LABELS = {
    "GENERAL": {"en": "your situation", "ko": "전반적인 고민"},
    "LOVE": {"en": "love", "ko": "연애"},
    "MONEY": {"en": "finances", "ko": "재정"},
    "WORK": {"en": "career", "ko": "커리어"},
}

ORIENTATION_LABELS = {
    "upright": {"en": "upright", "ko": "정위치"},
    "reversed": {"en": "reversed", "ko": "역위치"},
}


class InterpretCard(BaseModel):
    position: str
    card_id: int
    card_name: str
    keywords: List[str]
    orientation: Literal["upright", "reversed"]


class InterpretRequest(BaseModel):
    topic: str
    cards: List[InterpretCard]
    pattern: str
    user_question: Optional[str] = None
    locale: Locale = "en"


class FollowUpInterpretRequest(BaseModel):
    topic: str
    original_cards: List[InterpretCard]
    follow_up_cards: List[InterpretCard]
    original_pattern: str
    original_interpretation: Optional[str] = None
    user_question: str
    locale: Locale = "en"


def _interpret_card(position: str, card_id: int, orientation: str) -> InterpretCard:
    card = get_card(card_id)
    return InterpretCard(
        position=position,
        card_id=card.id,
        card_name=card.name,
        keywords=card.keywords(orientation),
        orientation=orientation,
    )


def build_interpret_request(spread: SpreadRecord, locale: str = "en") -> InterpretRequest:
    return InterpretRequest(
        topic=spread.topic,
        cards=[_interpret_card(c.position, c.drawn_card.card_id, c.drawn_card.orientation) for c in spread.cards],
        pattern=spread.pattern,
        user_question=spread.user_question,
        locale=locale,
    )


def build_follow_up_request(spread: SpreadRecord, locale: str = "en") -> FollowUpInterpretRequest:
    if spread.follow_up is None:
        raise ValueError(f"Spread {spread.id} has no follow-up")
    return FollowUpInterpretRequest(
        topic=spread.topic,
        original_cards=[_interpret_card(c.position, c.drawn_card.card_id, c.drawn_card.orientation) for c in spread.cards],
        follow_up_cards=[
            _interpret_card(c.position, c.drawn_card.card_id, c.drawn_card.orientation)
            for c in spread.follow_up.cards
        ],
        original_pattern=spread.pattern,
        original_interpretation=spread.ai_interpretation,
        user_question=spread.follow_up.user_question,
        locale=locale,
    )


def _card_lines(cards: List[InterpretCard], locale: str) -> str:
    lines = []
    for card in cards:
        orientation = ORIENTATION_LABELS[card.orientation][locale]
        lines.append(f"- {card.position}: {card.card_name} ({orientation}) - {', '.join(card.keywords)}")
    return "\n".join(lines)


def build_prompt(request: InterpretRequest) -> str:
    locale = request.locale
    topic = TOPIC_LABELS.get(request.topic, {}).get(locale, request.topic)
    cards = _card_lines(request.cards, locale)

    if locale == "ko":
        question = f"질문: {request.user_question}\n" if request.user_question else ""
        return f"""당신은 따뜻하고 친근한 타로 리더입니다. 오랜 친구처럼 편안하게 이야기하며, 통찰력 있는 해석을 제공합니다.

말투 가이드:
- "~해요", "~예요" 체를 사용해주세요
- 카드 이름을 자연스럽게 언급해주세요
- 키워드를 직접 나열하지 말고, 의미를 자연스럽게 녹여주세요

주제: {topic}
스프레드: {request.pattern}
{question}
뽑힌 카드:
{cards}

위 카드들을 바탕으로 {topic}에 대해 따뜻하고 실용적인 해석을 2-3문단으로 해주세요."""

    question = f"Question: {request.user_question}\n" if request.user_question else ""
    return f"""You are a warm, friendly tarot reader speaking like a trusted friend.

Style guide:
- Speak conversationally and warmly
- Mention card names naturally (e.g., "The High Priestess shows up here")
- Give advice like a caring friend, not a formal reading
- Weave keywords into your interpretation naturally

Topic: {topic}
Spread: {request.pattern}
{question}
Cards drawn:
{cards}

Provide a warm, practical interpretation about {topic} in 2-3 paragraphs, as if giving friendly advice."""


def build_follow_up_prompt(request: FollowUpInterpretRequest) -> str:
    locale = request.locale
    topic = TOPIC_LABELS.get(request.topic, {}).get(locale, request.topic)
    original = _card_lines(request.original_cards, locale)
    follow_up = _card_lines(request.follow_up_cards, locale)
    previous = request.original_interpretation or ""

    if locale == "ko":
        return f"""당신은 따뜻하고 친근한 타로 리더입니다. 앞선 리딩을 이어서 더 깊이 살펴봐요.

주제: {topic}
처음 스프레드 ({request.original_pattern}):
{original}

앞선 해석:
{previous}

추가 질문: {request.user_question}

새로 뽑힌 카드:
{follow_up}

새 카드들이 추가 질문에 어떤 답을 주는지 앞선 해석과 이어서 2문단으로 설명해주세요."""

    return f"""You are a warm, friendly tarot reader continuing an earlier reading.

Topic: {topic}
Original spread ({request.original_pattern}):
{original}

Earlier interpretation:
{previous}

Follow-up question: {request.user_question}

New cards drawn:
{follow_up}

In 2 paragraphs, explain how the new cards answer the follow-up question, building on the earlier interpretation."""


class OpenAIInterpreter:
    """Sends interpretation prompts to the OpenAI chat API."""

    def __init__(self, settings: Settings, client: Optional[OpenAI] = None):
        self.settings = settings
        self._client = client

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            if not self.settings.openai_api_key:
                raise InterpretationError("AI interpretation not available - OpenAI API key not configured")
            self._client = OpenAI(api_key=self.settings.openai_api_key, timeout=self.settings.ai_timeout, max_retries=0)
        return self._client

    def _complete(self, prompt: str) -> str:
        client = self.client
        try:
            response = client.chat.completions.create(
                model=self.settings.ai_model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=self.settings.ai_max_tokens,
                temperature=0.7,
            )
        except Exception as e:
            log.warning("OpenAI request failed: %s", e)
            raise InterpretationError(f"AI interpretation failed: {e}") from e

        text = (response.choices[0].message.content or "").strip() if response.choices else ""
        if not text:
            raise InterpretationError("AI interpretation came back empty")
        return text

    def interpret(self, request: InterpretRequest) -> str:
        return self._complete(build_prompt(request))

    def interpret_follow_up(self, request: FollowUpInterpretRequest) -> str:
        return self._complete(build_follow_up_prompt(request))
