"""Character progression: experience, levels, streaks and level-gated unlocks.

Every function here is pure. Services load a `CharacterState`, pass it
through these transitions and persist the result.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from dotoracle.errors import InvalidInputError
from dotoracle.models import CharacterState, EvolutionStage, StreakInfo, XPAward, XPEvent, XPProgress
from dotoracle.patterns import TOPICS
from dotoracle.utils.dates import day_difference, local_date_key, now_ms

log = logging.getLogger("dotoracle.progression")

BASE_XP_PER_LEVEL = 100
LEVEL_EXPONENT = 1.5
MAX_LEVEL = 30

BASE_XP: Dict[str, int] = {
    "daily_training": 30,
    "quest_completion": 50,
    "advanced_quest": 80,
    "training_journal": 20,
    "streak_bonus": 0,
}

# 10% per streak day, capped at 50%
STREAK_BONUS_PERCENT_PER_DAY = 10
STREAK_BONUS_CAP_DAYS = 5

UNLOCK_TABLE: Dict[str, int] = {
    "GENERAL": 1,
    "LOVE": 3,
    "MONEY": 5,
    "WORK": 7,
    "DEEP_READING": 10,
}

# (stage, min_level, max_level, name_en, name_ko)
EVOLUTION_STAGES: List[Tuple[EvolutionStage, int, int, str, str]] = [
    ("apprentice", 1, 4, "Apprentice", "수련생"),
    ("journeyman", 5, 9, "Journeyman", "여행자"),
    ("adept", 10, 14, "Adept", "숙련자"),
    ("master", 15, 24, "Master", "달인"),
    ("grandmaster", 25, 30, "Grandmaster", "대현자"),
]


def xp_for_level(level: int) -> int:
    """XP needed to go from `level` to `level + 1`."""
    return math.floor(BASE_XP_PER_LEVEL * math.pow(level, LEVEL_EXPONENT))


def total_xp_for_level(level: int) -> int:
    """Cumulative XP needed to reach `level` from level 1."""
    return sum(xp_for_level(i) for i in range(1, level))


def evolution_stage(level: int) -> EvolutionStage:
    for stage, min_level, _, _, _ in reversed(EVOLUTION_STAGES):
        if level >= min_level:
            return stage
    return "apprentice"


def _stage_min_level(level: int) -> int:
    for _, min_level, _, _, _ in reversed(EVOLUTION_STAGES):
        if level >= min_level:
            return min_level
    return 1


def streak_bonus(base_xp: int, streak: int) -> int:
    if streak <= 0 or base_xp <= 0:
        return 0
    percent = min(streak, STREAK_BONUS_CAP_DAYS) * STREAK_BONUS_PERCENT_PER_DAY
    return base_xp * percent // 100


def is_topic_unlocked(topic: str, level: int) -> bool:
    required = UNLOCK_TABLE.get(topic)
    if required is None or topic not in TOPICS:
        return False
    return level >= required


def is_deep_reading_unlocked(level: int) -> bool:
    return level >= UNLOCK_TABLE["DEEP_READING"]


def unlocked_topics(level: int) -> List[str]:
    return [t for t in TOPICS if is_topic_unlocked(t, level)]


def unlocks_at_level(level: int) -> List[str]:
    unlocks = [key for key, required in UNLOCK_TABLE.items() if required == level]
    if _stage_min_level(level) == level:
        unlocks.append(f"EVOLUTION_{evolution_stage(level).upper()}")
    return unlocks


def next_unlock_level(level: int) -> Optional[int]:
    levels = [required for required in UNLOCK_TABLE.values() if required > level]
    levels += [min_level for _, min_level, _, _, _ in EVOLUTION_STAGES if min_level > level]
    return min(levels) if levels else None


def add_xp(
    state: CharacterState,
    source: str,
    base_override: Optional[int] = None,
    now: Optional[int] = None,
) -> Tuple[CharacterState, XPAward]:
    """Award XP and cascade level-ups.

    The base comes from BASE_XP unless overridden; the streak bonus is derived
    from the current streak. Callers are responsible for awarding a given
    action only once.
    """
    if source not in BASE_XP:
        raise InvalidInputError(f"Unknown XP source: {source}")
    base = BASE_XP[source] if base_override is None else base_override
    if base < 0:
        raise InvalidInputError(f"XP award must not be negative: {base}")

    bonus = streak_bonus(base, state.streak.current_streak)
    total = base + bonus

    level = state.level
    current = state.current_xp + total
    unlocks: List[str] = []
    while level < MAX_LEVEL and current >= xp_for_level(level):
        current -= xp_for_level(level)
        level += 1
        unlocks.extend(unlocks_at_level(level))

    event = XPEvent(
        source=source,
        amount=base,
        bonus_amount=bonus,
        total_amount=total,
        timestamp=now_ms() if now is None else now,
    )
    new_state = state.model_copy(update={
        "level": level,
        "current_xp": current,
        "total_xp": state.total_xp + total,
    })
    if level > state.level:
        log.info("level up %s -> %s unlocks=%s", state.level, level, unlocks)

    return new_state, XPAward(event=event, leveled_up=level > state.level, new_level=level, unlocks=unlocks)


def update_streak(state: CharacterState, today: Optional[str] = None) -> CharacterState:
    """Count `today` toward the streak. Calling twice on the same day is a no-op."""
    today = today or local_date_key()
    streak = state.streak
    if streak.last_active_date == today:
        return state

    current = 1
    if streak.last_active_date and day_difference(streak.last_active_date, today) == 1:
        current = streak.current_streak + 1

    return state.model_copy(update={
        "streak": StreakInfo(
            current_streak=current,
            last_active_date=today,
            longest_streak=max(streak.longest_streak, current),
        )
    })


def xp_progress(state: CharacterState) -> XPProgress:
    needed = xp_for_level(state.level)
    percentage = min(100.0, state.current_xp * 100.0 / needed) if needed > 0 else 0.0
    return XPProgress(current=state.current_xp, needed=needed, percentage=round(percentage, 2))


def new_character(now: Optional[int] = None) -> CharacterState:
    return CharacterState(created_at=now_ms() if now is None else now)


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def normalize_character(raw: Optional[Dict[str, Any]]) -> CharacterState:
    """Build a CharacterState from persisted data, clamping anything out of range."""
    if not raw:
        return new_character()

    streak_raw = raw.get("streak") or {}
    level = min(max(_as_int(raw.get("level"), 1), 1), MAX_LEVEL)
    current = max(_as_int(raw.get("current_xp"), 0), 0)
    total = max(_as_int(raw.get("total_xp"), 0), 0)
    current_streak = max(_as_int(streak_raw.get("current_streak"), 0), 0)
    longest = max(_as_int(streak_raw.get("longest_streak"), 0), current_streak)
    last_active = streak_raw.get("last_active_date") or ""
    if not isinstance(last_active, str):
        last_active = ""

    # Leftover XP past the level requirement (e.g. a hand-edited store) is
    # folded back in through the normal cascade.
    cascade_unlocks = 0
    while level < MAX_LEVEL and current >= xp_for_level(level):
        current -= xp_for_level(level)
        level += 1
        cascade_unlocks += 1

    try:
        state = CharacterState(
            level=level,
            current_xp=current,
            total_xp=max(total, current),
            streak=StreakInfo(current_streak=current_streak, last_active_date=last_active, longest_streak=longest),
            created_at=max(_as_int(raw.get("created_at"), 0), 0),
        )
    except ValidationError:
        log.warning("discarding unreadable character state")
        return new_character()

    if state.model_dump() != raw:
        log.warning("character state clamped on load (cascaded %s levels)", cascade_unlocks)
    return state
