"""Attendance rewards and card back skins."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from dotoracle.dependencies import get_engine
from dotoracle.engine import OracleEngine
from dotoracle.rewards import BACK_SKINS, REWARD_MILESTONES, locked_skins

router = APIRouter(prefix="/rewards", tags=["rewards"])


class SelectSkinRequest(BaseModel):
    skin_id: str


@router.get("")
def summary(month: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}$"), engine: OracleEngine = Depends(get_engine)) -> Dict[str, Any]:
    return engine.rewards_summary(month).model_dump()


@router.get("/skins")
def skins(engine: OracleEngine = Depends(get_engine)) -> Dict[str, Any]:
    state = engine.rewards.load()
    return {
        "skins": [s.model_dump() for s in BACK_SKINS],
        "milestones": [m.model_dump() for m in REWARD_MILESTONES],
        "locked": [s.id for s in locked_skins(state)],
        "selected_skin_id": state.selected_skin_id,
    }


@router.post("/check")
def check(engine: OracleEngine = Depends(get_engine)) -> Dict[str, Any]:
    return {"newly_unlocked": engine.check_rewards(), "state": engine.rewards.load().model_dump()}


@router.post("/select")
def select(req: SelectSkinRequest, engine: OracleEngine = Depends(get_engine)) -> Dict[str, Any]:
    return {"state": engine.rewards.select_skin(req.skin_id).model_dump()}
