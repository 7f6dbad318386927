"""Experience event timeline models"""
from enum import Enum
from datetime import datetime
from pydantic import BaseModel, Field
from uuid import UUID, uuid4


class ExperienceSource(str, Enum):
    """Where an EXP delta came from"""
    HABIT = "habit"
    HABIT_PENALTY = "habitPenalty"
    WORKOUT = "workout"
    PERSONAL_RECORD = "personalRecord"
    NUTRITION = "nutrition"
    WEIGHT = "weight"
    BARCODE = "barcode"
    MANUAL = "manual"


class ExperienceEvent(BaseModel):
    """Append-only audit entry for an EXP delta"""
    id: UUID = Field(default_factory=uuid4)
    amount: int
    source: ExperienceSource
    reason: str
    metadata: dict[str, str] = Field(default_factory=dict)
    timestamp: datetime
