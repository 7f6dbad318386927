"""
End-to-end progression flows through the service container

Simulates a player's first week: onboarding, daily habits, a slip, a skill
unlock, workouts with a personal record, food logging and the leaderboard push.
"""

import pytest
from datetime import datetime

from grow.gamification.xp_system import get_level_info
from grow.models.experience import ExperienceSource
from grow.models.habit import Habit, HabitMode, HabitType, ScalarType
from grow.models.leaderboard import LeaderboardType
from grow.models.player import PlayerClass, SkillKey
from grow.models.workout import WorkoutSet
from grow.services.container import ServiceContainer
from grow.services.store import InMemoryStore
from grow.utils.datetime_helpers import FixedClock

MONDAY = datetime(2024, 1, 15, 7, 30)  # naive, read as Stockholm local time


@pytest.fixture
def container():
    return ServiceContainer(store=InMemoryStore(), clock=FixedClock(MONDAY, timezone="Europe/Stockholm"))


@pytest.mark.asyncio
async def test_first_week(container):
    ledger = container.ledger
    clock = ledger.clock

    water = Habit(name="Drink water", scalar=ScalarType.QUANTITY, target_number=8, base_exp=20)
    walk = Habit(name="Walk", base_exp=30)
    gym = Habit(name="Gym session", habit_type=HabitType.WEEKLY, base_exp=50)
    snacking = Habit(name="Late snacking", mode=HabitMode.BAD, base_exp=20)

    onboarding = await ledger.create_profile(
        "Sam", PlayerClass.SCHOLAR, habits=[water, walk, gym, snacking], quest_name="Three gym sessions"
    )
    assert onboarding.ok

    # Seven days of walking and water; gym Monday, Wednesday, Friday
    for day in range(7):
        walk_result = (await ledger.complete_habit(walk.id)).unwrap()
        assert walk_result.streak_after == day + 1
        await ledger.complete_habit(water.id, value=8)
        if day in (0, 2, 4):
            gym_result = (await ledger.complete_habit(gym.id)).unwrap()
            assert gym_result.quest_progressed
        clock.advance(days=1)

    profile = await ledger.store.get_profile()
    quest = await ledger.store.get_quest(clock.iso_week_start(MONDAY))

    assert quest.completed is True
    assert profile.perm_exp_multiplier == pytest.approx(0.01)
    assert profile.level >= 2
    assert profile.skill_points == profile.level - 1

    grants = await ledger.store.get_achievement_grants()
    assert grants.is_granted("first_habit")
    assert grants.is_granted("streak_7")

    # Unlock a skill and slip once in the new week
    assert (await ledger.unlock_skill(SkillKey.IRON_WILL)).ok
    exp_before_slip = (await ledger.store.get_profile()).exp_current
    slip = (await ledger.log_bad_habit(snacking.id)).unwrap()

    assert slip.iron_will_used is True
    assert slip.penalty_applied == 10
    assert (await ledger.store.get_profile()).exp_current == max(0, exp_before_slip - 10)

    # Changed mind: undo the slip
    assert (await ledger.undo()).value.undone
    assert (await ledger.store.get_profile()).exp_current == exp_before_slip

    # Workouts: baseline then a record
    first = await ledger.create_workout("Upper", [WorkoutSet(exercise="Overhead Press", sets=3, reps=5, weight=40)])
    baseline = (await ledger.finish_workout(first.value.id, 50)).unwrap()
    assert baseline.baselines == ["overhead press"]

    second = await ledger.create_workout("Upper", [WorkoutSet(exercise="overhead  press", sets=3, reps=5, weight=42.5)])
    record = (await ledger.finish_workout(second.value.id, 50)).unwrap()
    assert [r.badge_key for r in record.personal_records] == ["pr_overhead_press"]

    # Food and weight
    assert (await ledger.log_food("Greek yoghurt", kcal=150, protein=15, carbs=8, fat=4)).ok
    assert (await ledger.log_weight(72.3)).ok

    # Leaderboard push
    entry = (await ledger.leaderboard_entry("sam")).unwrap()
    await container.leaderboard.upsert(entry)
    top = await container.leaderboard.top(LeaderboardType.ALL_TIME)

    profile = await ledger.store.get_profile()
    assert top[0].rank == 1
    assert top[0].total_exp == get_level_info(profile)["total_xp"]
    assert top[0].best_streak == 7
    assert entry.weekly_exp == await ledger.weekly_exp()


@pytest.mark.asyncio
async def test_timeline_matches_profile(container):
    """Sum of every EXP event equals the EXP the profile has accumulated"""
    ledger = container.ledger
    walk = Habit(name="Walk", base_exp=45)
    await ledger.create_profile("Sam", habits=[walk])

    for _ in range(10):
        await ledger.complete_habit(walk.id)
        ledger.clock.advance(days=1)
    await ledger.award_exp(75, ExperienceSource.MANUAL, "Referral bonus")

    events = await ledger.recent_events(limit=100)
    profile = await ledger.store.get_profile()

    assert sum(e.amount for e in events) == get_level_info(profile)["total_xp"]
    assert 0 <= profile.exp_current < profile.exp_to_next
