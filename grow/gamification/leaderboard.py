"""
Leaderboard snapshots

Builds the denormalized entry pushed to the ranked storage and defines the
storage contract. Ranks are assigned by the storage (1-based position in the
sorted result), never by the engine.
"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional, Protocol
import logging

from grow.gamification.xp_system import get_level_info
from grow.models.experience import ExperienceEvent, ExperienceSource
from grow.models.habit import Habit
from grow.models.leaderboard import LeaderboardEntry, LeaderboardType
from grow.models.player import PlayerProfile
from grow.utils.datetime_helpers import Clock

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 100


def weekly_exp(
    events: Iterable[ExperienceEvent],
    now: datetime,
    clock: Clock,
    source: Optional[ExperienceSource] = None,
) -> int:
    """Sum of event amounts in now's ISO week, optionally for one source"""
    week_start = clock.iso_week_start(now)
    return sum(
        event.amount
        for event in events
        if clock.iso_week_start(event.timestamp) == week_start
        and (source is None or event.source == source)
    )


def build_leaderboard_entry(
    user_id: str,
    profile: PlayerProfile,
    habits: Iterable[Habit],
    events: Iterable[ExperienceEvent],
    now: datetime,
    clock: Clock,
) -> LeaderboardEntry:
    """Snapshot of the player for upsert into the ranked storage"""
    return LeaderboardEntry(
        user_id=user_id,
        display_name=profile.display_name,
        player_class=profile.player_class.value,
        level=profile.level,
        total_exp=get_level_info(profile)["total_xp"],
        weekly_exp=weekly_exp(events, now, clock),
        best_streak=max((h.best_streak for h in habits), default=0),
        updated_at=now,
    )


class LeaderboardBackend(Protocol):
    """Ranked storage collaborator"""

    async def upsert(self, entry: LeaderboardEntry) -> None: ...

    async def top(self, board: LeaderboardType, limit: int = DEFAULT_LIMIT) -> List[LeaderboardEntry]: ...


class InMemoryLeaderboard:
    """Ranked storage kept in a dict; used for local play and tests"""

    def __init__(self):
        self._entries: Dict[str, LeaderboardEntry] = {}

    async def upsert(self, entry: LeaderboardEntry) -> None:
        self._entries[entry.user_id] = entry.model_copy(update={"rank": None})
        logger.debug(f"Upserted leaderboard entry for {entry.user_id}")

    async def top(self, board: LeaderboardType, limit: int = DEFAULT_LIMIT) -> List[LeaderboardEntry]:
        field = "total_exp" if board == LeaderboardType.ALL_TIME else "weekly_exp"
        ranked = sorted(self._entries.values(), key=lambda e: getattr(e, field), reverse=True)
        return [
            entry.model_copy(update={"rank": index + 1})
            for index, entry in enumerate(ranked[:limit])
        ]
