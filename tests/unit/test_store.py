"""Unit tests for the in-memory Store (grow/services/store.py)"""
import pytest
from datetime import datetime, timedelta, timezone

from pydantic import BaseModel

from grow.models.achievement import AchievementGrants
from grow.models.experience import ExperienceEvent, ExperienceSource
from grow.models.habit import Habit, HabitLog
from grow.models.player import Debuff, PlayerProfile
from grow.services.store import InMemoryStore, StoreChanges

NOW = datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)


class Unpersistable(BaseModel):
    id: int = 1


@pytest.mark.asyncio
async def test_commit_and_read_back():
    store = InMemoryStore()
    habit = Habit(name="Meditate")
    await store.commit(StoreChanges().save(PlayerProfile(), habit))

    assert (await store.get_profile()) is not None
    assert (await store.get_habit(habit.id)).name == "Meditate"


@pytest.mark.asyncio
async def test_reads_return_copies():
    store = InMemoryStore()
    habit = Habit(name="Meditate")
    await store.commit(StoreChanges().save(habit))

    loaded = await store.get_habit(habit.id)
    loaded.current_streak = 5
    loaded.best_streak = 5

    assert (await store.get_habit(habit.id)).current_streak == 0


@pytest.mark.asyncio
async def test_failed_commit_applies_nothing():
    """A unit with an unknown entity fails as a whole"""
    store = InMemoryStore()
    changes = StoreChanges().save(Habit(name="Meditate"), Unpersistable())

    with pytest.raises(TypeError):
        await store.commit(changes)

    assert await store.get_habits() == []


@pytest.mark.asyncio
async def test_delete():
    store = InMemoryStore()
    habit = Habit(name="Meditate")
    log = HabitLog(habit_id=habit.id, date=NOW, completed=True)
    await store.commit(StoreChanges().save(habit, log))
    await store.commit(StoreChanges().delete(log))

    assert await store.get_logs() == []


@pytest.mark.asyncio
async def test_get_logs_filters_by_range_and_habit():
    store = InMemoryStore()
    habit = Habit(name="Meditate")
    other = Habit(name="Read")
    logs = [
        HabitLog(habit_id=habit.id, date=NOW - timedelta(days=1)),
        HabitLog(habit_id=habit.id, date=NOW),
        HabitLog(habit_id=other.id, date=NOW),
    ]
    await store.commit(StoreChanges().save(*logs))

    today = await store.get_logs(start=NOW - timedelta(hours=9), end=NOW + timedelta(hours=15))
    mine = await store.get_logs(habit_id=habit.id)

    assert len(today) == 2
    assert [log.date for log in mine] == [NOW - timedelta(days=1), NOW]


@pytest.mark.asyncio
async def test_events_newest_first_with_limit():
    store = InMemoryStore()
    events = [
        ExperienceEvent(amount=i, source=ExperienceSource.MANUAL, reason="r", timestamp=NOW + timedelta(minutes=i))
        for i in range(5)
    ]
    await store.commit(StoreChanges().save(*events))

    recent = await store.get_events(limit=2)
    assert [e.amount for e in recent] == [4, 3]


@pytest.mark.asyncio
async def test_active_debuffs():
    store = InMemoryStore()
    expired = Debuff(key="a", applied_at=NOW - timedelta(hours=30), expires_at=NOW - timedelta(hours=6))
    active = Debuff(key="b", applied_at=NOW, expires_at=NOW + timedelta(hours=24))
    await store.commit(StoreChanges().save(expired, active))

    assert [d.key for d in await store.get_debuffs(active_at=NOW)] == ["b"]


@pytest.mark.asyncio
async def test_grants_and_records_replace():
    store = InMemoryStore()
    changes = StoreChanges()
    changes.grants = AchievementGrants(granted={"first_habit": NOW})
    changes.personal_records = {"squat": 120.0}
    await store.commit(changes)

    assert (await store.get_achievement_grants()).is_granted("first_habit")
    assert await store.get_personal_records() == {"squat": 120.0}


def test_store_changes_is_empty():
    assert StoreChanges().is_empty
    assert not StoreChanges().save(Habit(name="Meditate")).is_empty
