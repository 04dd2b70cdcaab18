"""FastAPI routes for three-card spreads.

Endpoints:
- POST /spreads
- GET  /spreads/{date_key}
- GET  /spreads/{date_key}/{spread_id}
- POST /spreads/{date_key}/{spread_id}/clarifier
- POST /spreads/{date_key}/{spread_id}/interpret
- POST /spreads/{date_key}/{spread_id}/follow-up
- POST /spreads/{date_key}/{spread_id}/follow-up/interpret
- PUT  /spreads/{date_key}/{spread_id}/reflection
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from dotoracle.deck import describe_drawn
from dotoracle.dependencies import get_engine
from dotoracle.engine import CompletionResult, OracleEngine
from dotoracle.models import ReflectionAccuracy, SpreadRecord
from dotoracle.patterns import SpreadTopic, pattern_hint_keys, should_suggest_clarifier

router = APIRouter(prefix="/spreads", tags=["spreads"])


class SpreadStartRequest(BaseModel):
    topic: SpreadTopic
    user_question: Optional[str] = Field(None, max_length=500)
    ad_reward_earned: bool = Field(False, description="Caller watched a rewarded ad for this spread")


class ClarifierRequest(BaseModel):
    ad_reward_earned: bool = False


class FollowUpRequest(BaseModel):
    question: str = Field(..., min_length=1, max_length=500)


class InterpretRequestBody(BaseModel):
    locale: Optional[str] = Field(None, pattern="^(en|ko)$")


class ReflectionRequest(BaseModel):
    accuracy: ReflectionAccuracy
    text: Optional[str] = Field(None, max_length=2000)


def _caller(request: Request) -> str:
    return request.client.host if request.client else "anonymous"


def _spread_payload(spread: SpreadRecord) -> Dict[str, Any]:
    out = spread.model_dump()
    out["hints"] = pattern_hint_keys(spread.pattern)
    out["suggest_clarifier"] = spread.clarifier is None and should_suggest_clarifier(spread.orientations())
    out["card_details"] = [describe_drawn(c.drawn_card.card_id, c.drawn_card.orientation) for c in spread.cards]
    return out


def _completion_payload(result: CompletionResult) -> Dict[str, Any]:
    return {
        "spread": _spread_payload(result.spread),
        "interpretation_error": result.interpretation_error,
        "xp": result.xp.model_dump() if result.xp else None,
        "unlocked_skins": result.unlocked_skins,
    }


@router.post("")
def start_spread(req: SpreadStartRequest, engine: OracleEngine = Depends(get_engine)) -> Dict[str, Any]:
    started = engine.start_spread(
        req.topic,
        user_question=req.user_question,
        ad_reward_earned=req.ad_reward_earned,
    )
    return {"spread": _spread_payload(started.spread), "access": started.access}


@router.get("/{date_key}")
def list_spreads(date_key: str, engine: OracleEngine = Depends(get_engine)) -> Dict[str, Any]:
    spreads = engine.spreads.list_spreads(date_key)
    return {
        "date_key": date_key,
        "spreads": [_spread_payload(s) for s in spreads],
        "count_by_topic": engine.spreads.count_by_topic(date_key),
        "used_topics": engine.spreads.used_topics(date_key),
    }


@router.get("/{date_key}/{spread_id}")
def get_spread(date_key: str, spread_id: str, engine: OracleEngine = Depends(get_engine)) -> Dict[str, Any]:
    return {"spread": _spread_payload(engine.spreads.get_spread(date_key, spread_id))}


@router.post("/{date_key}/{spread_id}/clarifier")
def add_clarifier(
    date_key: str,
    spread_id: str,
    req: Optional[ClarifierRequest] = None,
    engine: OracleEngine = Depends(get_engine),
) -> Dict[str, Any]:
    spread = engine.add_clarifier(date_key, spread_id, ad_reward_earned=bool(req and req.ad_reward_earned))
    return {"spread": _spread_payload(spread)}


@router.post("/{date_key}/{spread_id}/interpret")
def interpret_spread(
    date_key: str,
    spread_id: str,
    request: Request,
    req: Optional[InterpretRequestBody] = None,
    engine: OracleEngine = Depends(get_engine),
) -> Dict[str, Any]:
    result = engine.interpret_spread(date_key, spread_id, identity=_caller(request), locale=req.locale if req else None)
    return _completion_payload(result)


@router.post("/{date_key}/{spread_id}/follow-up")
def create_follow_up(
    date_key: str,
    spread_id: str,
    req: FollowUpRequest,
    engine: OracleEngine = Depends(get_engine),
) -> Dict[str, Any]:
    spread = engine.create_follow_up(date_key, spread_id, req.question)
    return {"spread": _spread_payload(spread)}


@router.post("/{date_key}/{spread_id}/follow-up/interpret")
def interpret_follow_up(
    date_key: str,
    spread_id: str,
    request: Request,
    req: Optional[InterpretRequestBody] = None,
    engine: OracleEngine = Depends(get_engine),
) -> Dict[str, Any]:
    result = engine.interpret_follow_up(date_key, spread_id, identity=_caller(request), locale=req.locale if req else None)
    return _completion_payload(result)


@router.put("/{date_key}/{spread_id}/reflection")
def save_reflection(
    date_key: str,
    spread_id: str,
    req: ReflectionRequest,
    engine: OracleEngine = Depends(get_engine),
) -> Dict[str, Any]:
    spread = engine.spreads.save_reflection(date_key, spread_id, req.accuracy, req.text)
    return {"spread": _spread_payload(spread)}
