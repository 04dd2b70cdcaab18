"""Card-back rewards unlocked by attendance milestones."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from dotoracle.errors import InvalidInputError, NotFoundError, SkinLockedError
from dotoracle.models import BackSkin, MilestoneProgress, RewardMilestone, RewardsState
from dotoracle.utils.dates import dates_in_month, is_date_key, month_key

log = logging.getLogger("dotoracle.rewards")

DEFAULT_SKIN_ID = "skin_default"

REWARD_MILESTONES: List[RewardMilestone] = [
    RewardMilestone(required_days=7, skin_id="skin_1"),
    RewardMilestone(required_days=14, skin_id="skin_2"),
    RewardMilestone(required_days=21, skin_id="skin_3"),
    RewardMilestone(required_days=28, skin_id="skin_special"),
]

BACK_SKINS: List[BackSkin] = [
    BackSkin(id=DEFAULT_SKIN_ID, name="Classic", description="The default mystical card back", required_days=0, is_default=True),
    BackSkin(id="skin_1", name="Starlight", description="Shimmering stars on midnight blue", required_days=7),
    BackSkin(id="skin_2", name="Golden Runes", description="Ancient runes etched in gold", required_days=14),
    BackSkin(id="skin_3", name="Crystal Moon", description="A crescent moon with crystals", required_days=21),
    BackSkin(id="skin_special", name="Cosmic Gateway", description="The rarest design - a portal to the cosmos", required_days=28),
]


def get_skin(skin_id: str) -> BackSkin:
    for skin in BACK_SKINS:
        if skin.id == skin_id:
            return skin
    raise NotFoundError(f"Unknown skin id: {skin_id}")


def count_attendance(date_keys: Iterable[str], scope: str = "lifetime", target_month: Optional[str] = None) -> int:
    """Distinct valid day keys, over the whole history or within one month."""
    days = {k for k in date_keys if is_date_key(k)}
    if scope == "lifetime":
        return len(days)
    if scope == "month":
        return len(dates_in_month(days, target_month or month_key()))
    raise InvalidInputError(f"Unknown attendance scope: {scope}")


def check_and_unlock_rewards(state: RewardsState, date_keys: Iterable[str]) -> Tuple[RewardsState, List[str]]:
    """Unlock every milestone the lifetime attendance has reached.

    Returns the new state and the skin ids unlocked by this call, in milestone
    order. Already unlocked skins are left alone, so repeated calls are no-ops.
    """
    attendance = count_attendance(date_keys, "lifetime")
    newly: List[str] = []
    for milestone in REWARD_MILESTONES:
        if attendance >= milestone.required_days and milestone.skin_id not in state.unlocked_skins:
            newly.append(milestone.skin_id)

    if not newly:
        return state, []

    log.info("attendance %s unlocked %s", attendance, newly)
    return state.model_copy(update={"unlocked_skins": state.unlocked_skins + newly}), newly


def select_skin(state: RewardsState, skin_id: str) -> RewardsState:
    get_skin(skin_id)
    if skin_id not in state.unlocked_skins:
        raise SkinLockedError(f"Skin {skin_id} is not unlocked")
    return state.model_copy(update={"selected_skin_id": skin_id})


def next_milestone(state: RewardsState, attendance: int) -> Optional[RewardMilestone]:
    for milestone in REWARD_MILESTONES:
        if attendance < milestone.required_days and milestone.skin_id not in state.unlocked_skins:
            return milestone
    return None


def milestone_progress(attendance: int, milestone: Optional[RewardMilestone]) -> MilestoneProgress:
    if milestone is None:
        return MilestoneProgress(current=attendance, target=attendance, percentage=100)
    percentage = min(100, round(attendance * 100 / milestone.required_days))
    return MilestoneProgress(current=attendance, target=milestone.required_days, percentage=percentage)


def locked_skins(state: RewardsState) -> List[BackSkin]:
    return [s for s in BACK_SKINS if s.id not in state.unlocked_skins]


def normalize_rewards(raw: Optional[Dict[str, Any]]) -> RewardsState:
    """Rebuild RewardsState from storage; the default skin is always owned and selection always valid."""
    if not raw:
        return RewardsState()
    unlocked: List[str] = []
    for skin_id in [DEFAULT_SKIN_ID] + list(raw.get("unlocked_skins") or []):
        if isinstance(skin_id, str) and skin_id not in unlocked:
            unlocked.append(skin_id)
    selected = raw.get("selected_skin_id")
    if selected not in unlocked:
        if selected:
            log.warning("selected skin %s is not unlocked, falling back to default", selected)
        selected = DEFAULT_SKIN_ID
    return RewardsState(unlocked_skins=unlocked, selected_skin_id=selected)
