"""Global test fixtures and utilities for Grow engine tests"""
import pytest
import pytest_asyncio
from datetime import datetime, timedelta, timezone

from grow.gamification.undo import UndoBuffer
from grow.models.habit import Habit, HabitMode, HabitType, ScalarType
from grow.models.player import PlayerClass
from grow.services.progression_ledger import ProgressionLedger
from grow.services.store import InMemoryStore
from grow.utils.datetime_helpers import FixedClock

# Monday 09:00 UTC, first day of ISO week 2024-W03
NOW = datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)


# ============================================================================
# Infrastructure Fixtures
# ============================================================================

@pytest.fixture
def clock():
    """Clock frozen at NOW in UTC"""
    return FixedClock(NOW, timezone="UTC")


@pytest.fixture
def store():
    """Empty in-memory store"""
    return InMemoryStore()


@pytest.fixture
def ledger(store, clock):
    """Ledger without a profile"""
    return ProgressionLedger(store, clock=clock, undo_buffer=UndoBuffer(window_seconds=10))


# ============================================================================
# Habit Fixtures
# ============================================================================

@pytest.fixture
def binary_habit():
    return Habit(name="Meditate", base_exp=30, created_at=NOW - timedelta(days=30))


@pytest.fixture
def quantity_habit():
    return Habit(
        name="Read pages",
        scalar=ScalarType.QUANTITY,
        target_number=10,
        base_exp=30,
        created_at=NOW - timedelta(days=29),
    )


@pytest.fixture
def weekly_habit():
    return Habit(
        name="Long run",
        habit_type=HabitType.WEEKLY,
        base_exp=40,
        created_at=NOW - timedelta(days=28),
    )


@pytest.fixture
def bad_habit():
    return Habit(
        name="Doomscrolling",
        mode=HabitMode.BAD,
        base_exp=25,
        created_at=NOW - timedelta(days=27),
    )


@pytest_asyncio.fixture
async def seeded_ledger(ledger, binary_habit, quantity_habit, weekly_habit, bad_habit):
    """Ledger with an onboarded profile, four habits and this week's quest"""
    outcome = await ledger.create_profile(
        "Tester",
        PlayerClass.WARRIOR,
        habits=[binary_habit, quantity_habit, weekly_habit, bad_habit],
        quest_name="Run three times",
    )
    assert outcome.ok
    return ledger
