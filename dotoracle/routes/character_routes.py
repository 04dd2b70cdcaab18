"""Character progression routes."""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from dotoracle import progression
from dotoracle.dependencies import get_engine
from dotoracle.engine import OracleEngine

router = APIRouter(prefix="/character", tags=["character"])


def _summary(engine: OracleEngine) -> Dict[str, Any]:
    state = engine.character.load()
    return {
        "character": state.model_dump(),
        "evolution_stage": progression.evolution_stage(state.level),
        "xp_progress": progression.xp_progress(state).model_dump(),
        "total_xp_for_next_level": progression.total_xp_for_level(state.level + 1),
        "unlocked_topics": progression.unlocked_topics(state.level),
        "deep_reading_unlocked": progression.is_deep_reading_unlocked(state.level),
        "next_unlock_level": progression.next_unlock_level(state.level),
        "max_level": progression.MAX_LEVEL,
    }


@router.get("")
def get_character(engine: OracleEngine = Depends(get_engine)) -> Dict[str, Any]:
    return _summary(engine)


@router.post("/reset")
def reset_character(engine: OracleEngine = Depends(get_engine)) -> Dict[str, Any]:
    engine.character.reset()
    return _summary(engine)
