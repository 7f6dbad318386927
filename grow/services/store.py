"""
Store contract and in-memory implementation

The engine never persists piecemeal: every operation collects its writes in a
StoreChanges unit and hands it to Store.commit(), which applies all of it or
nothing. Reads return copies, so callers may mutate what they get back.

InMemoryStore backs local play and tests. A database-backed store implements
the same Protocol.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Protocol, Type, TypeVar
from uuid import UUID
import logging

from pydantic import BaseModel

from grow.models.achievement import AchievementGrants
from grow.models.experience import ExperienceEvent
from grow.models.habit import Habit, HabitLog
from grow.models.player import Badge, Debuff, PlayerProfile, Skill, WeeklyQuest
from grow.models.workout import FoodLog, WeightEntry, Workout

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

ENTITY_TYPES = (
    PlayerProfile, Habit, HabitLog, Skill, WeeklyQuest, Debuff, Badge,
    ExperienceEvent, Workout, FoodLog, WeightEntry,
)


@dataclass
class StoreChanges:
    """One all-or-nothing batch of writes"""
    saved: List[BaseModel] = field(default_factory=list)
    deleted: List[BaseModel] = field(default_factory=list)
    grants: Optional[AchievementGrants] = None
    personal_records: Optional[Dict[str, float]] = None

    def save(self, *entities: BaseModel) -> "StoreChanges":
        self.saved.extend(entities)
        return self

    def delete(self, *entities: BaseModel) -> "StoreChanges":
        self.deleted.extend(entities)
        return self

    @property
    def is_empty(self) -> bool:
        return not (self.saved or self.deleted or self.grants is not None or self.personal_records is not None)


class Store(Protocol):
    """Persistence collaborator used by the progression ledger"""

    async def get_profile(self) -> Optional[PlayerProfile]: ...

    async def get_habits(self, active_only: bool = True) -> List[Habit]: ...

    async def get_habit(self, habit_id: UUID) -> Optional[Habit]: ...

    async def get_logs(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        habit_id: Optional[UUID] = None,
    ) -> List[HabitLog]: ...

    async def get_skills(self) -> List[Skill]: ...

    async def get_quest(self, week_start: datetime) -> Optional[WeeklyQuest]: ...

    async def get_debuffs(self, active_at: Optional[datetime] = None) -> List[Debuff]: ...

    async def get_badges(self) -> List[Badge]: ...

    async def get_events(self, since: Optional[datetime] = None, limit: Optional[int] = None) -> List[ExperienceEvent]: ...

    async def get_workouts(self, limit: int = 50) -> List[Workout]: ...

    async def get_workout(self, workout_id: UUID) -> Optional[Workout]: ...

    async def get_food_logs(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> List[FoodLog]: ...

    async def get_weight_entries(self, limit: int = 90) -> List[WeightEntry]: ...

    async def get_personal_records(self) -> Dict[str, float]: ...

    async def get_achievement_grants(self) -> AchievementGrants: ...

    async def commit(self, changes: StoreChanges) -> None: ...


class InMemoryStore:
    """In-memory Store; commit() swaps in fully built tables so a failure leaves nothing behind"""

    def __init__(self):
        self._tables: Dict[Type[BaseModel], Dict[UUID, BaseModel]] = {t: {} for t in ENTITY_TYPES}
        self._grants = AchievementGrants()
        self._personal_records: Dict[str, float] = {}
        logger.debug("InMemoryStore initialized")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _all(self, model: Type[M]) -> List[M]:
        return [entity.model_copy(deep=True) for entity in self._tables[model].values()]

    def _get(self, model: Type[M], entity_id: UUID) -> Optional[M]:
        entity = self._tables[model].get(entity_id)
        return entity.model_copy(deep=True) if entity is not None else None

    async def get_profile(self) -> Optional[PlayerProfile]:
        profiles = sorted(self._all(PlayerProfile), key=lambda p: p.created_at)
        return profiles[0] if profiles else None

    async def get_habits(self, active_only: bool = True) -> List[Habit]:
        habits = [h for h in self._all(Habit) if h.is_active or not active_only]
        return sorted(habits, key=lambda h: h.created_at)

    async def get_habit(self, habit_id: UUID) -> Optional[Habit]:
        return self._get(Habit, habit_id)

    async def get_logs(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        habit_id: Optional[UUID] = None,
    ) -> List[HabitLog]:
        logs = [
            log for log in self._all(HabitLog)
            if (start is None or log.date >= start)
            and (end is None or log.date < end)
            and (habit_id is None or log.habit_id == habit_id)
        ]
        return sorted(logs, key=lambda log: log.date)

    async def get_skills(self) -> List[Skill]:
        return self._all(Skill)

    async def get_quest(self, week_start: datetime) -> Optional[WeeklyQuest]:
        return next((q for q in self._all(WeeklyQuest) if q.week_start_date == week_start), None)

    async def get_debuffs(self, active_at: Optional[datetime] = None) -> List[Debuff]:
        debuffs = [d for d in self._all(Debuff) if active_at is None or d.is_active(active_at)]
        return sorted(debuffs, key=lambda d: d.applied_at)

    async def get_badges(self) -> List[Badge]:
        return sorted(self._all(Badge), key=lambda b: b.earned_at)

    async def get_events(self, since: Optional[datetime] = None, limit: Optional[int] = None) -> List[ExperienceEvent]:
        events = [e for e in self._all(ExperienceEvent) if since is None or e.timestamp >= since]
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit] if limit is not None else events

    async def get_workouts(self, limit: int = 50) -> List[Workout]:
        workouts = sorted(self._all(Workout), key=lambda w: w.date, reverse=True)
        return workouts[:limit]

    async def get_workout(self, workout_id: UUID) -> Optional[Workout]:
        return self._get(Workout, workout_id)

    async def get_food_logs(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> List[FoodLog]:
        logs = [
            log for log in self._all(FoodLog)
            if (start is None or log.date >= start) and (end is None or log.date < end)
        ]
        return sorted(logs, key=lambda log: log.date, reverse=True)

    async def get_weight_entries(self, limit: int = 90) -> List[WeightEntry]:
        entries = sorted(self._all(WeightEntry), key=lambda e: e.date, reverse=True)
        return entries[:limit]

    async def get_personal_records(self) -> Dict[str, float]:
        return dict(self._personal_records)

    async def get_achievement_grants(self) -> AchievementGrants:
        return self._grants.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def commit(self, changes: StoreChanges) -> None:
        """Apply a unit of changes atomically"""
        tables = {model: dict(rows) for model, rows in self._tables.items()}

        for entity in changes.saved:
            table = self._table_for(tables, entity)
            table[entity.id] = entity.model_copy(deep=True)

        for entity in changes.deleted:
            table = self._table_for(tables, entity)
            table.pop(entity.id, None)

        self._tables = tables
        if changes.grants is not None:
            self._grants = changes.grants.model_copy(deep=True)
        if changes.personal_records is not None:
            self._personal_records = dict(changes.personal_records)

        logger.debug(
            f"Committed {len(changes.saved)} saves and {len(changes.deleted)} deletes"
        )

    @staticmethod
    def _table_for(tables: Dict[Type[BaseModel], Dict[UUID, BaseModel]], entity: BaseModel) -> Dict[UUID, BaseModel]:
        table = tables.get(type(entity))
        if table is None:
            raise TypeError(f"InMemoryStore cannot persist {type(entity).__name__}")
        return table
