"""Unit tests for leaderboard snapshots (grow/gamification/leaderboard.py)"""
import pytest
from datetime import datetime, timedelta, timezone

from grow.gamification.leaderboard import InMemoryLeaderboard, build_leaderboard_entry, weekly_exp
from grow.models.experience import ExperienceEvent, ExperienceSource
from grow.models.habit import Habit
from grow.models.leaderboard import LeaderboardEntry, LeaderboardType
from grow.models.player import PlayerClass, PlayerProfile
from grow.utils.datetime_helpers import Clock

NOW = datetime(2024, 1, 17, 12, 0, tzinfo=timezone.utc)  # Wednesday
CLOCK = Clock("UTC")


def _event(amount, when, source=ExperienceSource.HABIT):
    return ExperienceEvent(amount=amount, source=source, reason="test", timestamp=when)


def test_weekly_exp_only_counts_current_iso_week():
    events = [
        _event(40, NOW),
        _event(-15, NOW - timedelta(days=1), ExperienceSource.HABIT_PENALTY),
        _event(100, NOW - timedelta(days=7)),  # previous week
    ]
    assert weekly_exp(events, NOW, CLOCK) == 25
    assert weekly_exp(events, NOW, CLOCK, source=ExperienceSource.HABIT) == 40


def test_build_leaderboard_entry():
    profile = PlayerProfile(display_name="Tester", player_class=PlayerClass.MONK, level=2, exp_current=50, exp_to_next=250)
    habits = [Habit(name="A", current_streak=1, best_streak=9), Habit(name="B", current_streak=3, best_streak=3)]

    entry = build_leaderboard_entry("user-1", profile, habits, [_event(250, NOW)], NOW, CLOCK)

    assert entry.player_class == "Monk"
    assert entry.total_exp == 250
    assert entry.weekly_exp == 250
    assert entry.best_streak == 9
    assert entry.rank is None


def _entry(user_id, total, weekly):
    return LeaderboardEntry(
        user_id=user_id, display_name=user_id, player_class="Warrior", level=1,
        total_exp=total, weekly_exp=weekly, best_streak=0, updated_at=NOW,
    )


@pytest.mark.asyncio
async def test_in_memory_leaderboard_ranks():
    board = InMemoryLeaderboard()
    await board.upsert(_entry("a", 500, 10))
    await board.upsert(_entry("b", 300, 90))
    await board.upsert(_entry("c", 900, 40))

    all_time = await board.top(LeaderboardType.ALL_TIME)
    weekly = await board.top(LeaderboardType.WEEKLY, limit=2)

    assert [(e.user_id, e.rank) for e in all_time] == [("c", 1), ("a", 2), ("b", 3)]
    assert [e.user_id for e in weekly] == ["b", "c"]


@pytest.mark.asyncio
async def test_upsert_replaces_entry():
    board = InMemoryLeaderboard()
    await board.upsert(_entry("a", 100, 0))
    await board.upsert(_entry("a", 200, 0))

    top = await board.top(LeaderboardType.ALL_TIME)
    assert len(top) == 1
    assert top[0].total_exp == 200
