"""User-level flows that tie the services together.

Drawing, opening a spread, adding a clarifier or follow-up and getting an
interpretation each touch several pieces of state (gating, character,
rewards). The flows keep them consistent: completion rewards are granted at
most once per record via flags persisted on the record, and AI failures are
recorded without holding back progression.
"""

from __future__ import annotations

import logging
import random
from typing import Callable, List, Optional, Tuple

from pydantic import BaseModel, Field

from dotoracle import progression, rewards
from dotoracle.ai import OpenAIInterpreter, build_follow_up_request, build_interpret_request
from dotoracle.config import Settings
from dotoracle.errors import FeatureLockedError, GatingDeniedError, InterpretationError, InvalidInputError, NotFoundError, RateLimitExceeded
from dotoracle.models import DailyDraw, GatingLimits, RewardsState, SpreadRecord, XPAward, MilestoneProgress, RewardMilestone
from dotoracle.patterns import TOPICS
from dotoracle.rate_limit import RateLimiter
from dotoracle.services import CharacterService, DrawService, GatingService, RewardService, SpreadService
from dotoracle.storage import KeyValueStore, gating_key
from dotoracle.utils.dates import local_date_key

log = logging.getLogger("dotoracle.engine")


class DrawResult(BaseModel):
    draw: DailyDraw
    created: bool
    xp: Optional[XPAward] = None
    unlocked_skins: List[str] = Field(default_factory=list)


class SpreadStart(BaseModel):
    spread: SpreadRecord
    access: str


class CompletionResult(BaseModel):
    spread: SpreadRecord
    interpretation_error: Optional[str] = None
    xp: Optional[XPAward] = None
    unlocked_skins: List[str] = Field(default_factory=list)


class RewardsSummary(BaseModel):
    state: RewardsState
    lifetime_attendance: int
    month: str
    month_attendance: int
    next_milestone: Optional[RewardMilestone] = None
    progress: MilestoneProgress


class OracleEngine:
    def __init__(
        self,
        store: KeyValueStore,
        settings: Settings,
        interpreter: Optional[OpenAIInterpreter] = None,
        rate_limiter: Optional[RateLimiter] = None,
        clock: Optional[Callable[[], str]] = None,
    ):
        self.store = store
        self.settings = settings
        # local day key of "now"; gating, attendance and streaks all use it
        self.today = clock or local_date_key
        self.limits = GatingLimits(
            max_clarifier_per_day=settings.max_clarifier_per_day,
            max_another_topic_per_day=settings.max_another_topic_per_day,
            ad_cooldown_ms=settings.ad_cooldown_ms,
        )
        self.character = CharacterService(store)
        self.gating = GatingService(store, self.limits, self.today)
        self.rewards = RewardService(store)
        self.draws = DrawService(store)
        self.spreads = SpreadService(store)
        self.interpreter = interpreter or OpenAIInterpreter(settings)
        self.rate_limiter = rate_limiter or RateLimiter(store, settings.rate_limit_per_day)

    # attendance & rewards

    def attendance_dates(self) -> List[str]:
        """Days with a daily draw or at least one spread."""
        return sorted(set(self.draws.draw_dates()) | set(self.spreads.spread_dates()))

    def check_rewards(self) -> List[str]:
        return self.rewards.check_and_unlock(self.attendance_dates())

    def rewards_summary(self, target_month: Optional[str] = None) -> RewardsSummary:
        target_month = target_month or self.today()[:7]
        dates = self.attendance_dates()
        state = self.rewards.load()
        lifetime = rewards.count_attendance(dates, "lifetime")
        milestone = rewards.next_milestone(state, lifetime)
        return RewardsSummary(
            state=state,
            lifetime_attendance=lifetime,
            month=target_month,
            month_attendance=rewards.count_attendance(dates, "month", target_month),
            next_milestone=milestone,
            progress=rewards.milestone_progress(lifetime, milestone),
        )

    def _reward_activity(self, source: str) -> Tuple[XPAward, List[str]]:
        self.character.update_streak(self.today())
        award = self.character.add_xp(source)
        unlocked = self.check_rewards()
        return award, unlocked

    # daily draw

    def draw_today(self, rng: Optional[random.Random] = None) -> DrawResult:
        draw, created = self.draws.create(self.today(), rng)
        xp, unlocked = None, []
        if self.draws.mark_awarded(draw.date_key):
            xp, unlocked = self._reward_activity("daily_training")
            draw = self.draws.get(draw.date_key)
        return DrawResult(draw=draw, created=created, xp=xp, unlocked_skins=unlocked)

    def save_memo(self, date_key: str, memo: str) -> DrawResult:
        draw = self.draws.set_memo(date_key, memo)
        xp, unlocked = None, []
        if draw.memo and self.draws.mark_awarded(date_key, "journal_xp_awarded_at"):
            xp, unlocked = self._reward_activity("training_journal")
            draw = self.draws.get(date_key)
        return DrawResult(draw=draw, created=False, xp=xp, unlocked_skins=unlocked)

    # spreads

    def start_spread(
        self,
        topic: str,
        user_question: Optional[str] = None,
        ad_reward_earned: bool = False,
        rng: Optional[random.Random] = None,
    ) -> SpreadStart:
        if topic not in TOPICS:
            raise InvalidInputError(f"Unknown topic: {topic}")
        level = self.character.load().level
        if not progression.is_topic_unlocked(topic, level):
            raise FeatureLockedError(f"Topic {topic} unlocks at level {progression.UNLOCK_TABLE[topic]}")

        date_key = self.today()
        with self.store.locked(gating_key(date_key)):
            access = self.gating.spread_access(date_key)
            if access == "blocked":
                raise GatingDeniedError("No more spreads available today")
            if access == "ad" and not ad_reward_earned:
                raise GatingDeniedError("Free spread already used today; an ad reward is required")

            spread = self.spreads.create_spread(topic, date_key, user_question, rng)
            if access == "free":
                self.gating.use_free_spread(date_key)
            else:
                self.gating.use_another_topic(date_key)
        log.info("spread opened via %s access on %s", access, date_key)
        return SpreadStart(spread=spread, access=access)

    def add_clarifier(
        self,
        date_key: str,
        spread_id: str,
        ad_reward_earned: bool = False,
        rng: Optional[random.Random] = None,
    ) -> SpreadRecord:
        spread = self.spreads.get_spread(date_key, spread_id)
        if spread.clarifier:
            return spread

        today = self.today()
        with self.store.locked(gating_key(today)):
            if not self.gating.can_use_clarifier(today):
                raise GatingDeniedError("Clarifier already used today")
            if not ad_reward_earned:
                raise GatingDeniedError("A clarifier requires an ad reward")
            spread, created = self.spreads.add_clarifier(date_key, spread_id, rng)
            if created:
                self.gating.use_clarifier(today)
        return spread

    def create_follow_up(
        self,
        date_key: str,
        spread_id: str,
        question: str,
        rng: Optional[random.Random] = None,
    ) -> SpreadRecord:
        level = self.character.load().level
        if not progression.is_deep_reading_unlocked(level):
            raise FeatureLockedError(f"Deep reading unlocks at level {progression.UNLOCK_TABLE['DEEP_READING']}")
        return self.spreads.create_follow_up(date_key, spread_id, question, rng)

    # interpretations

    def _call_ai(self, identity: str, call: Callable[[], str]) -> str:
        # reserve first; a failed call hands its slot back
        decision = self.rate_limiter.acquire(identity)
        if not decision.allowed:
            raise RateLimitExceeded(identity, decision.reset_at)
        try:
            return call()
        except InterpretationError:
            self.rate_limiter.release(identity)
            raise

    def interpret_spread(
        self,
        date_key: str,
        spread_id: str,
        identity: str = "anonymous",
        locale: Optional[str] = None,
    ) -> CompletionResult:
        spread = self.spreads.get_spread(date_key, spread_id)
        error = None
        if not spread.ai_interpretation:
            request = build_interpret_request(spread, locale or self.settings.locale)
            try:
                text = self._call_ai(identity, lambda: self.interpreter.interpret(request))
                spread = self.spreads.set_interpretation(date_key, spread_id, text)
            except RateLimitExceeded:
                raise
            except InterpretationError as e:
                log.warning("interpretation failed for %s: %s", spread_id, e)
                error = str(e)
                spread = self.spreads.record_interpretation_failure(date_key, spread_id, error)

        xp, unlocked = None, []
        if self.spreads.mark_xp_awarded(date_key, spread_id):
            xp, unlocked = self._reward_activity("quest_completion")
            spread = self.spreads.get_spread(date_key, spread_id)
        return CompletionResult(spread=spread, interpretation_error=error, xp=xp, unlocked_skins=unlocked)

    def interpret_follow_up(
        self,
        date_key: str,
        spread_id: str,
        identity: str = "anonymous",
        locale: Optional[str] = None,
    ) -> CompletionResult:
        spread = self.spreads.get_spread(date_key, spread_id)
        if spread.follow_up is None:
            raise NotFoundError(f"Spread {spread_id} has no follow-up")

        error = None
        if not spread.follow_up.ai_interpretation:
            request = build_follow_up_request(spread, locale or self.settings.locale)
            try:
                text = self._call_ai(identity, lambda: self.interpreter.interpret_follow_up(request))
                spread = self.spreads.set_follow_up_interpretation(date_key, spread_id, text)
            except RateLimitExceeded:
                raise
            except InterpretationError as e:
                log.warning("follow-up interpretation failed for %s: %s", spread_id, e)
                error = str(e)
                spread = self.spreads.record_follow_up_failure(date_key, spread_id, error)

        xp, unlocked = None, []
        if self.spreads.mark_xp_awarded(date_key, spread_id, follow_up=True):
            xp, unlocked = self._reward_activity("advanced_quest")
            spread = self.spreads.get_spread(date_key, spread_id)
        return CompletionResult(spread=spread, interpretation_error=error, xp=xp, unlocked_skins=unlocked)
