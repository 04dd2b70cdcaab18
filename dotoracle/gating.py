"""Daily usage gating.

One `GatingState` per local calendar day. A day without a record behaves as
an all-zero record, so counters reset implicitly at the day boundary. The
functions here never validate that an ad was actually watched; callers do
that before consuming an ad-unlocked use.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from dotoracle.errors import GatingDeniedError
from dotoracle.models import GatingLimits, GatingState, SpreadAccess

log = logging.getLogger("dotoracle.gating")


def default_gating(date_key: str) -> GatingState:
    return GatingState(date_key=date_key)


def can_do_free_spread(gating: Optional[GatingState]) -> bool:
    return gating is None or not gating.free_spread_used


def use_free_spread(gating: GatingState) -> GatingState:
    if gating.free_spread_used:
        return gating
    return gating.model_copy(update={"free_spread_used": True})


def can_use_clarifier(gating: Optional[GatingState], limits: GatingLimits) -> bool:
    if gating is None:
        return limits.max_clarifier_per_day > 0
    return gating.clarifier_used_count < limits.max_clarifier_per_day


def use_clarifier(gating: GatingState, limits: GatingLimits) -> GatingState:
    if not can_use_clarifier(gating, limits):
        raise GatingDeniedError(f"Clarifier limit of {limits.max_clarifier_per_day} per day reached")
    return gating.model_copy(update={"clarifier_used_count": gating.clarifier_used_count + 1})


def can_use_another_topic(gating: Optional[GatingState], limits: GatingLimits) -> bool:
    if gating is None:
        return limits.max_another_topic_per_day > 0
    return gating.another_topic_used_count < limits.max_another_topic_per_day


def use_another_topic(gating: GatingState, limits: GatingLimits) -> GatingState:
    if not can_use_another_topic(gating, limits):
        raise GatingDeniedError(f"Extra spread limit of {limits.max_another_topic_per_day} per day reached")
    return gating.model_copy(update={"another_topic_used_count": gating.another_topic_used_count + 1})


def spread_access(gating: Optional[GatingState], limits: GatingLimits) -> SpreadAccess:
    """How the next spread of the day can be opened: free, behind an ad, or not at all."""
    if can_do_free_spread(gating):
        return "free"
    if can_use_another_topic(gating, limits):
        return "ad"
    return "blocked"


def ad_cooldown_remaining(gating: Optional[GatingState], now: int, limits: GatingLimits) -> int:
    if gating is None or not gating.last_ad_timestamp:
        return 0
    elapsed = now - gating.last_ad_timestamp
    return max(0, limits.ad_cooldown_ms - elapsed)


def can_show_ad(gating: Optional[GatingState], now: int, limits: GatingLimits) -> bool:
    return ad_cooldown_remaining(gating, now, limits) == 0


def mark_ad_shown(gating: GatingState, now: int) -> GatingState:
    return gating.model_copy(update={"last_ad_timestamp": now})


def _non_negative(value: Any) -> int:
    try:
        return max(int(value), 0)
    except (TypeError, ValueError):
        return 0


def normalize_gating(raw: Optional[Dict[str, Any]], date_key: str) -> Optional[GatingState]:
    """Rebuild the day's GatingState from storage, clamping counters to zero or above.

    The record always belongs to `date_key`, whatever the stored copy says.
    """
    if raw is None:
        return None
    if not isinstance(raw, dict):
        log.warning("discarding unreadable gating record for %s", date_key)
        return default_gating(date_key)

    state = GatingState(
        date_key=date_key,
        free_spread_used=bool(raw.get("free_spread_used", False)),
        clarifier_used_count=_non_negative(raw.get("clarifier_used_count")),
        another_topic_used_count=_non_negative(raw.get("another_topic_used_count")),
        last_ad_timestamp=_non_negative(raw.get("last_ad_timestamp")),
    )
    if state.model_dump() != raw:
        log.warning("gating record for %s clamped on load", date_key)
    return state
