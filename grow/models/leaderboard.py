"""Leaderboard snapshot models"""
from enum import Enum
from typing import Optional
from datetime import datetime
from pydantic import BaseModel


class LeaderboardType(str, Enum):
    """Which EXP field a ranking is sorted by"""
    ALL_TIME = "totalExp"
    WEEKLY = "weeklyExp"


class LeaderboardEntry(BaseModel):
    """Denormalized player snapshot upserted to the ranked storage"""
    user_id: str
    display_name: str
    player_class: str
    level: int
    total_exp: int
    weekly_exp: int
    best_streak: int
    updated_at: datetime
    rank: Optional[int] = None
