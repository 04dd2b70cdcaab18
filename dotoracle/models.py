from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import List, Optional, Literal

from dotoracle.patterns import Orientation, PatternCode, ReversalModifier, SpreadTopic, classify_pattern

XPSource = Literal["daily_training", "quest_completion", "advanced_quest", "training_journal", "streak_bonus"]
EvolutionStage = Literal["apprentice", "journeyman", "adept", "master", "grandmaster"]
SpreadPosition = Literal["FLOW", "INFLUENCE", "ADVICE"]
FollowUpPosition = Literal["DEPTH", "HIDDEN", "OUTCOME"]
ReflectionAccuracy = Literal["accurate", "neutral", "unsure"]
AttendanceScope = Literal["lifetime", "month"]
SpreadAccess = Literal["free", "ad", "blocked"]

SPREAD_POSITIONS: List[SpreadPosition] = ["FLOW", "INFLUENCE", "ADVICE"]
FOLLOW_UP_POSITIONS: List[FollowUpPosition] = ["DEPTH", "HIDDEN", "OUTCOME"]


class Card(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    key: str
    name: str
    keywords_upright: List[str] = Field(default_factory=list)
    keywords_reversed: List[str] = Field(default_factory=list)
    meaning_upright: str
    meaning_reversed: str
    talisman_line: str = ""
    action_tip: str = ""

    def keywords(self, orientation: Orientation) -> List[str]:
        return self.keywords_upright if orientation == "upright" else self.keywords_reversed

    def meaning(self, orientation: Orientation) -> str:
        return self.meaning_upright if orientation == "upright" else self.meaning_reversed


class DrawnCard(BaseModel):
    model_config = ConfigDict(frozen=True)

    card_id: int
    orientation: Orientation


# Character

class StreakInfo(BaseModel):
    current_streak: int = 0
    last_active_date: str = ""
    longest_streak: int = 0


class CharacterState(BaseModel):
    level: int = 1
    current_xp: int = 0
    total_xp: int = 0
    streak: StreakInfo = Field(default_factory=StreakInfo)
    created_at: int = 0


class XPEvent(BaseModel):
    source: XPSource
    amount: int
    bonus_amount: int
    total_amount: int
    timestamp: int


class XPAward(BaseModel):
    event: XPEvent
    leveled_up: bool
    new_level: int
    unlocks: List[str] = Field(default_factory=list)


class XPProgress(BaseModel):
    current: int
    needed: int
    percentage: float


# Readings

class SpreadCard(BaseModel):
    position: SpreadPosition
    drawn_card: DrawnCard


class FollowUpSpreadCard(BaseModel):
    position: FollowUpPosition
    drawn_card: DrawnCard


class ClarifierCard(BaseModel):
    drawn_card: DrawnCard
    unlocked_at: int


class FollowUp(BaseModel):
    cards: List[FollowUpSpreadCard] = Field(..., min_length=3, max_length=3)
    user_question: str
    created_at: int
    ai_interpretation: Optional[str] = None
    ai_generated_at: Optional[int] = None
    ai_failed_at: Optional[int] = None
    ai_error: Optional[str] = None
    xp_awarded_at: Optional[int] = None


class Reflection(BaseModel):
    accuracy: ReflectionAccuracy
    text: Optional[str] = None
    created_at: int


class SpreadRecord(BaseModel):
    id: str
    date_key: str
    topic: SpreadTopic
    cards: List[SpreadCard] = Field(..., min_length=3, max_length=3)
    pattern: PatternCode
    modifier: ReversalModifier
    created_at: int
    user_question: Optional[str] = None
    ai_interpretation: Optional[str] = None
    ai_generated_at: Optional[int] = None
    ai_failed_at: Optional[int] = None
    ai_error: Optional[str] = None
    clarifier: Optional[ClarifierCard] = None
    follow_up: Optional[FollowUp] = None
    reflection: Optional[Reflection] = None
    xp_awarded_at: Optional[int] = None

    @model_validator(mode="after")
    def _pattern_matches_cards(self) -> "SpreadRecord":
        if [c.position for c in self.cards] != SPREAD_POSITIONS:
            raise ValueError("Spread cards must be ordered FLOW, INFLUENCE, ADVICE")
        if classify_pattern(self.orientations()) != self.pattern:
            raise ValueError(f"Pattern {self.pattern} does not match the drawn orientations")
        return self

    def orientations(self) -> List[Orientation]:
        return [c.drawn_card.orientation for c in self.cards]

    def card_ids(self) -> List[int]:
        ids = [c.drawn_card.card_id for c in self.cards]
        if self.clarifier:
            ids.append(self.clarifier.drawn_card.card_id)
        return ids


class DailyDraw(BaseModel):
    date_key: str
    drawn_card: DrawnCard
    created_at: int
    memo: Optional[str] = None
    xp_awarded_at: Optional[int] = None
    journal_xp_awarded_at: Optional[int] = None


# Gating

class GatingLimits(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_clarifier_per_day: int = 1
    max_another_topic_per_day: int = 999
    ad_cooldown_ms: int = 2500


class GatingState(BaseModel):
    date_key: str
    free_spread_used: bool = False
    clarifier_used_count: int = 0
    another_topic_used_count: int = 0
    last_ad_timestamp: int = 0


# Rewards

class RewardMilestone(BaseModel):
    model_config = ConfigDict(frozen=True)

    required_days: int
    skin_id: str


class BackSkin(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    required_days: int
    is_default: bool = False


class RewardsState(BaseModel):
    unlocked_skins: List[str] = Field(default_factory=lambda: ["skin_default"])
    selected_skin_id: str = "skin_default"


class MilestoneProgress(BaseModel):
    current: int
    target: int
    percentage: int
