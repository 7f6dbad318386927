"""Achievement models for gamification"""
from enum import Enum
from pydantic import BaseModel, Field
from typing import Callable
from datetime import datetime


class AchievementCategory(str, Enum):
    """Achievement categories"""
    CONSISTENCY = "consistency"
    MILESTONES = "milestones"


class ProgressSnapshot(BaseModel):
    """Current player stats an achievement predicate is evaluated against"""
    level: int = 1
    completed_today: int = 0
    total_completions: int = 0
    max_current_streak: int = 0


class Achievement(BaseModel):
    """Achievement definition; predicate decides unlocking from a snapshot"""
    key: str
    name: str
    description: str
    icon: str
    category: AchievementCategory
    target: int
    predicate: Callable[[ProgressSnapshot], bool] = Field(exclude=True)
    progress: Callable[[ProgressSnapshot], int] = Field(exclude=True)


class UnlockedAchievement(BaseModel):
    """Achievement unlocked in one evaluation pass"""
    key: str
    name: str
    description: str
    icon: str
    target: int
    unlocked_at: datetime


class AchievementGrants(BaseModel):
    """Grant ledger: achievement key -> when it was granted"""
    granted: dict[str, datetime] = Field(default_factory=dict)

    def is_granted(self, key: str) -> bool:
        return key in self.granted
