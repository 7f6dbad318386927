"""Habit and habit log models"""
from enum import Enum
from typing import Optional
from datetime import datetime, timezone
from pydantic import BaseModel, Field, model_validator
from uuid import UUID, uuid4


class HabitType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"


class HabitMode(str, Enum):
    GOOD = "good"
    BAD = "bad"


class ScalarType(str, Enum):
    BINARY = "binary"
    QUANTITY = "quantity"


class Habit(BaseModel):
    """A tracked habit; streak fields only change through the progression ledger"""
    id: UUID = Field(default_factory=uuid4)
    name: str
    habit_type: HabitType = HabitType.DAILY
    mode: HabitMode = HabitMode.GOOD
    scalar: ScalarType = ScalarType.BINARY
    target_number: float = 1.0
    base_exp: int = Field(default=20, gt=0)
    current_streak: int = Field(default=0, ge=0)
    best_streak: int = Field(default=0, ge=0)
    last_completed_date: Optional[datetime] = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @model_validator(mode='after')
    def validate_streaks(self) -> "Habit":
        """Best streak is never below the current streak"""
        if self.best_streak < self.current_streak:
            raise ValueError(
                f"best_streak ({self.best_streak}) cannot be below current_streak ({self.current_streak})"
            )
        if self.scalar == ScalarType.QUANTITY and self.target_number <= 0:
            raise ValueError("Quantity habits need a positive target_number")
        return self

    @property
    def is_good_daily(self) -> bool:
        return self.mode == HabitMode.GOOD and self.habit_type == HabitType.DAILY


class HabitLog(BaseModel):
    """Completion or slip record; exp_gained is negative for penalties"""
    id: UUID = Field(default_factory=uuid4)
    habit_id: UUID
    date: datetime
    completed: bool = False
    value_number: float = 0.0
    exp_gained: int = 0
    penalty_triggered: bool = False
    iron_will_applied: bool = False
