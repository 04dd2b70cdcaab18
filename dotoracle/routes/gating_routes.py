"""Daily gating and AI quota routes."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request

from dotoracle.dependencies import get_engine
from dotoracle.engine import OracleEngine

router = APIRouter(prefix="/gating", tags=["gating"])


def _summary(engine: OracleEngine, date_key: Optional[str] = None) -> Dict[str, Any]:
    return {
        "gating": engine.gating.get(date_key).model_dump(),
        "limits": engine.limits.model_dump(),
        "spread_access": engine.gating.spread_access(date_key),
        "can_do_free_spread": engine.gating.can_do_free_spread(date_key),
        "can_use_clarifier": engine.gating.can_use_clarifier(date_key),
        "can_use_another_topic": engine.gating.can_use_another_topic(date_key),
        "ad_cooldown_remaining_ms": engine.gating.get_ad_cooldown_remaining(),
        "can_show_ad": engine.gating.can_show_ad(),
    }


@router.get("/today")
def today(engine: OracleEngine = Depends(get_engine)) -> Dict[str, Any]:
    return _summary(engine)


@router.post("/ad-shown")
def ad_shown(engine: OracleEngine = Depends(get_engine)) -> Dict[str, Any]:
    engine.gating.mark_ad_shown()
    return _summary(engine)


@router.get("/rate-limit")
def rate_limit(request: Request, engine: OracleEngine = Depends(get_engine)) -> Dict[str, Any]:
    identity = request.client.host if request.client else "anonymous"
    return engine.rate_limiter.status(identity).model_dump()
