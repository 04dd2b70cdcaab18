"""Stateful services: each owns one bounded piece of persisted state.

A service loads its record, runs it through the pure transition functions
and writes it back, all under the store's per-key lock.
"""

from __future__ import annotations

import logging
import random
import uuid
from typing import Callable, Dict, List, Optional, Tuple

from dotoracle import gating, progression, rewards
from dotoracle.errors import InvalidInputError, NotFoundError
from dotoracle.models import (
    FOLLOW_UP_POSITIONS,
    SPREAD_POSITIONS,
    CharacterState,
    ClarifierCard,
    DailyDraw,
    FollowUp,
    FollowUpSpreadCard,
    GatingLimits,
    GatingState,
    Reflection,
    RewardsState,
    SpreadCard,
    SpreadRecord,
    XPAward,
)
from dotoracle.patterns import TOPICS, classify_pattern, modifier_for_topic
from dotoracle.storage import (
    CHARACTER_KEY,
    DRAW_PREFIX,
    REWARDS_KEY,
    SPREADS_PREFIX,
    KeyValueStore,
    date_from_key,
    draw_key,
    gating_key,
    spreads_key,
)
from dotoracle.utils.dates import is_date_key, local_date_key, now_ms
from dotoracle.utils.rng import draw_cards, draw_cards_excluding

log = logging.getLogger("dotoracle.services")


def _check_date_key(date_key: str) -> str:
    if not is_date_key(date_key):
        raise InvalidInputError(f"Invalid date key: {date_key!r}, expected YYYY-MM-DD")
    return date_key


class CharacterService:
    def __init__(self, store: KeyValueStore):
        self.store = store

    def load(self) -> CharacterState:
        raw = self.store.get(CHARACTER_KEY)
        if raw is None:
            with self.store.locked(CHARACTER_KEY):
                raw = self.store.get(CHARACTER_KEY)
                if raw is None:
                    state = progression.new_character()
                    self.store.set(CHARACTER_KEY, state.model_dump())
                    return state
        return progression.normalize_character(raw)

    def add_xp(self, source: str, base_override: Optional[int] = None) -> XPAward:
        with self.store.locked(CHARACTER_KEY):
            state, award = progression.add_xp(self.load(), source, base_override)
            self.store.set(CHARACTER_KEY, state.model_dump())
        return award

    def update_streak(self, today: Optional[str] = None) -> CharacterState:
        with self.store.locked(CHARACTER_KEY):
            before = self.load()
            state = progression.update_streak(before, today)
            if state is not before:
                self.store.set(CHARACTER_KEY, state.model_dump())
        return state

    def reset(self) -> CharacterState:
        with self.store.locked(CHARACTER_KEY):
            state = progression.new_character()
            self.store.set(CHARACTER_KEY, state.model_dump())
        log.info("character reset")
        return state


class GatingService:
    def __init__(self, store: KeyValueStore, limits: GatingLimits, today: Callable[[], str] = local_date_key):
        self.store = store
        self.limits = limits
        self.today = today

    def get(self, date_key: Optional[str] = None) -> GatingState:
        """Stored record for the day, or an unsaved all-zero record."""
        date_key = _check_date_key(date_key or self.today())
        return self._load(date_key) or gating.default_gating(date_key)

    def _load(self, date_key: str) -> Optional[GatingState]:
        return gating.normalize_gating(self.store.get(gating_key(date_key)), date_key)

    def _find(self, date_key: Optional[str]) -> Optional[GatingState]:
        return self._load(_check_date_key(date_key or self.today()))

    def _update(self, date_key: Optional[str], transition) -> GatingState:
        date_key = _check_date_key(date_key or self.today())
        key = gating_key(date_key)
        with self.store.locked(key):
            before = self.get(date_key)
            after = transition(before)
            self.store.set(key, after.model_dump())
        return after

    def can_do_free_spread(self, date_key: Optional[str] = None) -> bool:
        return gating.can_do_free_spread(self._find(date_key))

    def use_free_spread(self, date_key: Optional[str] = None) -> GatingState:
        return self._update(date_key, gating.use_free_spread)

    def can_use_clarifier(self, date_key: Optional[str] = None) -> bool:
        return gating.can_use_clarifier(self._find(date_key), self.limits)

    def use_clarifier(self, date_key: Optional[str] = None) -> GatingState:
        return self._update(date_key, lambda g: gating.use_clarifier(g, self.limits))

    def can_use_another_topic(self, date_key: Optional[str] = None) -> bool:
        return gating.can_use_another_topic(self._find(date_key), self.limits)

    def use_another_topic(self, date_key: Optional[str] = None) -> GatingState:
        return self._update(date_key, lambda g: gating.use_another_topic(g, self.limits))

    def spread_access(self, date_key: Optional[str] = None) -> str:
        return gating.spread_access(self._find(date_key), self.limits)

    def mark_ad_shown(self, now: Optional[int] = None) -> GatingState:
        now = now_ms() if now is None else now
        return self._update(None, lambda g: gating.mark_ad_shown(g, now))

    def get_ad_cooldown_remaining(self, now: Optional[int] = None) -> int:
        now = now_ms() if now is None else now
        return gating.ad_cooldown_remaining(self._find(None), now, self.limits)

    def can_show_ad(self, now: Optional[int] = None) -> bool:
        return self.get_ad_cooldown_remaining(now) == 0


class RewardService:
    def __init__(self, store: KeyValueStore):
        self.store = store

    def load(self) -> RewardsState:
        return rewards.normalize_rewards(self.store.get(REWARDS_KEY))

    def check_and_unlock(self, date_keys: List[str]) -> List[str]:
        with self.store.locked(REWARDS_KEY):
            state, newly = rewards.check_and_unlock_rewards(self.load(), date_keys)
            if newly:
                self.store.set(REWARDS_KEY, state.model_dump())
        return newly

    def select_skin(self, skin_id: str) -> RewardsState:
        with self.store.locked(REWARDS_KEY):
            state = rewards.select_skin(self.load(), skin_id)
            self.store.set(REWARDS_KEY, state.model_dump())
        return state


class DrawService:
    """One talisman card per local day."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def get(self, date_key: str) -> Optional[DailyDraw]:
        raw = self.store.get(draw_key(_check_date_key(date_key)))
        return DailyDraw(**raw) if raw is not None else None

    def create(self, date_key: Optional[str] = None, rng: Optional[random.Random] = None) -> Tuple[DailyDraw, bool]:
        """Return the day's draw, creating it first if needed; the flag says whether it is new."""
        date_key = _check_date_key(date_key or local_date_key())
        key = draw_key(date_key)
        with self.store.locked(key):
            existing = self.get(date_key)
            if existing:
                return existing, False
            draw = DailyDraw(date_key=date_key, drawn_card=draw_cards(1, rng)[0], created_at=now_ms())
            self.store.set(key, draw.model_dump())
        log.info("daily draw %s card=%s", date_key, draw.drawn_card.card_id)
        return draw, True

    def set_memo(self, date_key: str, memo: str) -> DailyDraw:
        key = draw_key(_check_date_key(date_key))
        with self.store.locked(key):
            draw = self.get(date_key)
            if draw is None:
                raise NotFoundError(f"No draw for {date_key}")
            draw = draw.model_copy(update={"memo": memo.strip() or None})
            self.store.set(key, draw.model_dump())
        return draw

    def mark_awarded(self, date_key: str, field: str = "xp_awarded_at") -> bool:
        """Persist a one-shot reward flag on the draw; False if it was already set."""
        key = draw_key(_check_date_key(date_key))
        with self.store.locked(key):
            draw = self.get(date_key)
            if draw is None:
                raise NotFoundError(f"No draw for {date_key}")
            if getattr(draw, field) is not None:
                return False
            self.store.set(key, draw.model_copy(update={field: now_ms()}).model_dump())
        return True

    def draw_dates(self) -> List[str]:
        return [date_from_key(k) for k in self.store.keys(DRAW_PREFIX)]

    def draws_for_month(self, target_month: str) -> List[DailyDraw]:
        prefix = f"{DRAW_PREFIX}{target_month}-"
        return [DailyDraw(**self.store.get(k)) for k in self.store.keys(prefix)]


class SpreadService:
    def __init__(self, store: KeyValueStore):
        self.store = store

    def list_spreads(self, date_key: str) -> List[SpreadRecord]:
        raw = self.store.get(spreads_key(_check_date_key(date_key))) or []
        return [SpreadRecord(**r) for r in raw]

    def get_spread(self, date_key: str, spread_id: str) -> SpreadRecord:
        for spread in self.list_spreads(date_key):
            if spread.id == spread_id:
                return spread
        raise NotFoundError(f"Spread {spread_id} not found on {date_key}")

    def _save(self, date_key: str, spreads: List[SpreadRecord]) -> None:
        self.store.set(spreads_key(date_key), [s.model_dump() for s in spreads])

    def _modify(self, date_key: str, spread_id: str, transition) -> SpreadRecord:
        key = spreads_key(_check_date_key(date_key))
        with self.store.locked(key):
            spreads = self.list_spreads(date_key)
            for index, spread in enumerate(spreads):
                if spread.id == spread_id:
                    updated = transition(spread)
                    if updated is not spread:
                        spreads[index] = updated
                        self._save(date_key, spreads)
                    return updated
        raise NotFoundError(f"Spread {spread_id} not found on {date_key}")

    def create_spread(
        self,
        topic: str,
        date_key: Optional[str] = None,
        user_question: Optional[str] = None,
        rng: Optional[random.Random] = None,
    ) -> SpreadRecord:
        if topic not in TOPICS:
            raise InvalidInputError(f"Unknown topic: {topic}")
        date_key = _check_date_key(date_key or local_date_key())

        drawn = draw_cards(3, rng)
        spread = SpreadRecord(
            id=f"spread_{uuid.uuid4().hex}",
            date_key=date_key,
            topic=topic,
            cards=[SpreadCard(position=p, drawn_card=d) for p, d in zip(SPREAD_POSITIONS, drawn)],
            pattern=classify_pattern([d.orientation for d in drawn]),
            modifier=modifier_for_topic(topic),
            created_at=now_ms(),
            user_question=(user_question or "").strip() or None,
        )

        key = spreads_key(date_key)
        with self.store.locked(key):
            spreads = self.list_spreads(date_key)
            spreads.append(spread)
            self._save(date_key, spreads)
        log.info("spread %s topic=%s pattern=%s", spread.id, topic, spread.pattern)
        return spread

    def add_clarifier(self, date_key: str, spread_id: str, rng: Optional[random.Random] = None) -> Tuple[SpreadRecord, bool]:
        """Attach one extra card not already in the spread. Returns (spread, created)."""
        created = []

        def transition(spread: SpreadRecord) -> SpreadRecord:
            if spread.clarifier:
                return spread
            drawn = draw_cards_excluding(1, spread.card_ids(), rng)[0]
            created.append(True)
            return spread.model_copy(update={"clarifier": ClarifierCard(drawn_card=drawn, unlocked_at=now_ms())})

        spread = self._modify(date_key, spread_id, transition)
        return spread, bool(created)

    def create_follow_up(
        self,
        date_key: str,
        spread_id: str,
        question: str,
        rng: Optional[random.Random] = None,
    ) -> SpreadRecord:
        question = (question or "").strip()
        if not question:
            raise InvalidInputError("A follow-up needs a question")

        def transition(spread: SpreadRecord) -> SpreadRecord:
            if spread.follow_up:
                return spread
            drawn = draw_cards_excluding(3, spread.card_ids(), rng)
            follow_up = FollowUp(
                cards=[FollowUpSpreadCard(position=p, drawn_card=d) for p, d in zip(FOLLOW_UP_POSITIONS, drawn)],
                user_question=question,
                created_at=now_ms(),
            )
            return spread.model_copy(update={"follow_up": follow_up})

        return self._modify(date_key, spread_id, transition)

    def set_interpretation(self, date_key: str, spread_id: str, text: str) -> SpreadRecord:
        def transition(spread: SpreadRecord) -> SpreadRecord:
            if spread.ai_interpretation:
                return spread
            return spread.model_copy(update={"ai_interpretation": text, "ai_generated_at": now_ms(), "ai_error": None})

        return self._modify(date_key, spread_id, transition)

    def record_interpretation_failure(self, date_key: str, spread_id: str, error: str) -> SpreadRecord:
        def transition(spread: SpreadRecord) -> SpreadRecord:
            if spread.ai_interpretation:
                return spread
            return spread.model_copy(update={"ai_failed_at": now_ms(), "ai_error": error})

        return self._modify(date_key, spread_id, transition)

    def set_follow_up_interpretation(self, date_key: str, spread_id: str, text: str) -> SpreadRecord:
        def transition(spread: SpreadRecord) -> SpreadRecord:
            if spread.follow_up is None:
                raise NotFoundError(f"Spread {spread_id} has no follow-up")
            if spread.follow_up.ai_interpretation:
                return spread
            follow_up = spread.follow_up.model_copy(update={
                "ai_interpretation": text, "ai_generated_at": now_ms(), "ai_error": None,
            })
            return spread.model_copy(update={"follow_up": follow_up})

        return self._modify(date_key, spread_id, transition)

    def record_follow_up_failure(self, date_key: str, spread_id: str, error: str) -> SpreadRecord:
        def transition(spread: SpreadRecord) -> SpreadRecord:
            if spread.follow_up is None:
                raise NotFoundError(f"Spread {spread_id} has no follow-up")
            if spread.follow_up.ai_interpretation:
                return spread
            follow_up = spread.follow_up.model_copy(update={"ai_failed_at": now_ms(), "ai_error": error})
            return spread.model_copy(update={"follow_up": follow_up})

        return self._modify(date_key, spread_id, transition)

    def save_reflection(self, date_key: str, spread_id: str, accuracy: str, text: Optional[str] = None) -> SpreadRecord:
        reflection = Reflection(accuracy=accuracy, text=(text or "").strip() or None, created_at=now_ms())
        return self._modify(date_key, spread_id, lambda s: s.model_copy(update={"reflection": reflection}))

    def mark_xp_awarded(self, date_key: str, spread_id: str, follow_up: bool = False) -> bool:
        """Persist the one-shot completion flag; False if this spread was already rewarded."""
        marked = []

        def transition(spread: SpreadRecord) -> SpreadRecord:
            now = now_ms()
            if follow_up:
                if spread.follow_up is None:
                    raise NotFoundError(f"Spread {spread_id} has no follow-up")
                if spread.follow_up.xp_awarded_at is not None:
                    return spread
                marked.append(True)
                return spread.model_copy(update={
                    "follow_up": spread.follow_up.model_copy(update={"xp_awarded_at": now}),
                })
            if spread.xp_awarded_at is not None:
                return spread
            marked.append(True)
            return spread.model_copy(update={"xp_awarded_at": now})

        self._modify(date_key, spread_id, transition)
        return bool(marked)

    def spread_dates(self) -> List[str]:
        dates = []
        for key in self.store.keys(SPREADS_PREFIX):
            if self.store.get(key):
                dates.append(date_from_key(key))
        return dates

    def used_topics(self, date_key: str) -> List[str]:
        used = {s.topic for s in self.list_spreads(date_key)}
        return [t for t in TOPICS if t in used]

    def count_by_topic(self, date_key: str) -> Dict[str, int]:
        counts = {t: 0 for t in TOPICS}
        for spread in self.list_spreads(date_key):
            counts[spread.topic] += 1
        return counts
