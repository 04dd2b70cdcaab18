"""Daily talisman draw routes."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from dotoracle.deck import describe_drawn
from dotoracle.dependencies import get_engine
from dotoracle.engine import DrawResult, OracleEngine
from dotoracle.errors import NotFoundError
from dotoracle.models import DailyDraw
from dotoracle.utils.dates import next_month_key, previous_month_key

router = APIRouter(prefix="/draws", tags=["draws"])


class MemoRequest(BaseModel):
    memo: str = Field(..., max_length=2000)


def _draw_payload(draw: DailyDraw) -> Dict[str, Any]:
    out = draw.model_dump()
    out["card"] = describe_drawn(draw.drawn_card.card_id, draw.drawn_card.orientation)
    return out


def _result_payload(result: DrawResult) -> Dict[str, Any]:
    return {
        "draw": _draw_payload(result.draw),
        "created": result.created,
        "xp": result.xp.model_dump() if result.xp else None,
        "unlocked_skins": result.unlocked_skins,
    }


@router.post("/today")
def draw_today(engine: OracleEngine = Depends(get_engine)) -> Dict[str, Any]:
    result = engine.draw_today()
    return _result_payload(result)


@router.get("")
def list_draws(month: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}$"), engine: OracleEngine = Depends(get_engine)) -> Dict[str, Any]:
    target = month or engine.today()[:7]
    return {
        "month": target,
        "previous_month": previous_month_key(target),
        "next_month": next_month_key(target),
        "draws": [_draw_payload(d) for d in engine.draws.draws_for_month(target)],
    }


@router.get("/{date_key}")
def get_draw(date_key: str, engine: OracleEngine = Depends(get_engine)) -> Dict[str, Any]:
    draw = engine.draws.get(date_key)
    if draw is None:
        raise NotFoundError(f"No draw for {date_key}")
    return {"draw": _draw_payload(draw)}


@router.put("/{date_key}/memo")
def save_memo(date_key: str, req: MemoRequest, engine: OracleEngine = Depends(get_engine)) -> Dict[str, Any]:
    return _result_payload(engine.save_memo(date_key, req.memo))
