"""Result payloads returned by progression ledger operations"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field
from uuid import UUID

from grow.models.achievement import UnlockedAchievement
from grow.models.player import Debuff


class LevelChange(BaseModel):
    """What one EXP application did to the level state"""
    old_level: int
    new_level: int
    levels_gained: int = 0
    skill_points_granted: int = 0

    @property
    def leveled_up(self) -> bool:
        return self.levels_gained > 0


class ExpAward(BaseModel):
    """Result of award_exp"""
    amount: int
    leveled_up: bool
    levels_gained: int = 0
    new_level: int
    exp_current: int
    exp_to_next: int
    achievements_unlocked: list[UnlockedAchievement] = Field(default_factory=list)
    entry_id: Optional[UUID] = None  # food or weight entry that earned the EXP


class HabitCompletion(BaseModel):
    """Result of complete_habit"""
    log_id: UUID
    exp_gained: int
    streak_after: int
    leveled_up: bool
    levels_gained: int = 0
    new_level: int
    quest_progressed: bool = False
    quest_completed: bool = False
    achievements_unlocked: list[UnlockedAchievement] = Field(default_factory=list)
    undo_expires_at: Optional[datetime] = None


class BadHabitSlip(BaseModel):
    """Result of log_bad_habit"""
    log_id: UUID
    penalty_applied: int
    exp_debited: int  # may be below penalty_applied when EXP hit the zero floor
    iron_will_used: bool = False
    debuff: Debuff
    undo_expires_at: Optional[datetime] = None


class PersonalRecord(BaseModel):
    """Strict improvement of an exercise's estimated one-rep-max"""
    exercise: str
    previous_best: float
    new_best: float
    badge_key: str


class WorkoutCompletion(BaseModel):
    """Result of finish_workout"""
    workout_id: UUID
    exp_granted: int
    personal_records: list[PersonalRecord] = Field(default_factory=list)
    baselines: list[str] = Field(default_factory=list)
    pr_bonus_exp: int = 0
    leveled_up: bool = False
    new_level: int
    achievements_unlocked: list[UnlockedAchievement] = Field(default_factory=list)


class UndoResult(BaseModel):
    """Result of undo"""
    undone: bool
    description: Optional[str] = None
