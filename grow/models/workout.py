"""Workout, nutrition and weight log models"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field
from uuid import UUID, uuid4


class WorkoutSet(BaseModel):
    """One exercise line of a workout"""
    id: UUID = Field(default_factory=uuid4)
    exercise: str
    sets: int = Field(default=1, ge=0)
    reps: int = Field(default=0, ge=0)
    weight: float = Field(default=0.0, ge=0)
    rpe: int = 0
    order_index: int = 0


class Workout(BaseModel):
    """Logged session; immutable once exp_granted is set"""
    id: UUID = Field(default_factory=uuid4)
    date: datetime
    title: str
    duration_minutes: int = 0
    exp_granted: Optional[int] = None
    sets: list[WorkoutSet] = Field(default_factory=list)

    @property
    def is_finished(self) -> bool:
        return self.exp_granted is not None


class FoodLog(BaseModel):
    """Logged meal or snack"""
    id: UUID = Field(default_factory=uuid4)
    date: datetime
    label: str
    kcal: int = Field(default=0, ge=0)
    protein: int = Field(default=0, ge=0)
    carbs: int = Field(default=0, ge=0)
    fat: int = Field(default=0, ge=0)
    meal: Optional[str] = None  # breakfast, lunch, dinner, snack
    is_favorite: bool = False


class WeightEntry(BaseModel):
    """Body weight measurement"""
    id: UUID = Field(default_factory=uuid4)
    date: datetime
    kg: float = Field(gt=0)
