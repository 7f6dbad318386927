"""Player profile and the entities hanging off it"""
from enum import Enum
from typing import Optional
from datetime import datetime, timezone
from pydantic import BaseModel, Field, field_validator
from uuid import UUID, uuid4


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PlayerClass(str, Enum):
    """Class picked at onboarding"""
    WARRIOR = "Warrior"
    SCHOLAR = "Scholar"
    MONK = "Monk"


class SkillKey(str, Enum):
    """Closed set of passive skills"""
    EARLY_BIRD = "earlyBird"
    SPECIALIST = "specialist"
    IRON_WILL = "ironWill"
    NIGHT_OWL = "nightOwl"
    PERFECTIONIST = "perfectionist"
    RESILIENT = "resilient"

    @property
    def tier(self) -> int:
        return SKILL_TIERS[self]


SKILL_TIERS: dict[SkillKey, int] = {
    SkillKey.EARLY_BIRD: 1,
    SkillKey.NIGHT_OWL: 1,
    SkillKey.SPECIALIST: 2,
    SkillKey.IRON_WILL: 2,
    SkillKey.PERFECTIONIST: 3,
    SkillKey.RESILIENT: 3,
}


class PlayerProfile(BaseModel):
    """Progression state of the single player of a game session"""
    id: UUID = Field(default_factory=uuid4)
    display_name: str = "Player"
    player_class: PlayerClass = PlayerClass.WARRIOR
    created_at: datetime = Field(default_factory=_utcnow)
    level: int = Field(default=1, ge=1)
    exp_current: int = Field(default=0, ge=0)
    exp_to_next: int = Field(default=200, gt=0)
    perm_exp_multiplier: float = Field(default=0.0, ge=0.0)
    skill_points: int = Field(default=0, ge=0)
    streak_shield_available: bool = True
    cleanses_available: int = 1


class Skill(BaseModel):
    """Unlocked passive ability; never re-locked"""
    id: UUID = Field(default_factory=uuid4)
    key: SkillKey
    tier: int = 1
    level: int = 1
    is_active: bool = True


class Badge(BaseModel):
    """Permanent unlock marker"""
    id: UUID = Field(default_factory=uuid4)
    key: str
    earned_at: datetime = Field(default_factory=_utcnow)


class Debuff(BaseModel):
    """Time-boxed EXP reduction applied after a bad-habit slip"""
    id: UUID = Field(default_factory=uuid4)
    key: str
    applied_at: datetime
    expires_at: datetime
    exp_reduction: float = 0.05

    def is_active(self, now: datetime) -> bool:
        return self.expires_at > now


class WeeklyQuest(BaseModel):
    """Objective anchored to one ISO week"""
    id: UUID = Field(default_factory=uuid4)
    name: str
    target_count: int = Field(default=3, ge=1)
    progress_count: int = Field(default=0, ge=0)
    completed: bool = False
    week_start_date: datetime
    completed_at: Optional[datetime] = None

    @field_validator('progress_count')
    @classmethod
    def validate_progress(cls, v: int, info) -> int:
        """Progress never exceeds the target"""
        target = info.data.get('target_count')
        if target is not None and v > target:
            raise ValueError(f"progress_count {v} exceeds target_count {target}")
        return v
