"""Unit tests for the Scoring Engine (grow/gamification/scoring.py)"""
import pytest
from uuid import uuid4

from grow.exceptions import LevelTableError
from grow.gamification.scoring import (
    calculate_exp_gain,
    calculate_food_exp,
    calculate_penalty,
    calculate_weight_exp,
    calculate_workout_exp,
    exp_for_level,
    round_half_up,
    streak_bonus,
    total_exp_for_level,
    workout_volume,
)
from grow.models.habit import Habit, ScalarType
from grow.models.player import SkillKey
from grow.models.workout import WorkoutSet


def _gain(habit, **overrides):
    params = dict(
        habit=habit,
        actual_value=1.0,
        streak=0,
        total_dailies_completed_today=1,
        active_skill_keys=[],
        perm_multiplier=0.0,
        completed_before_ten_am=False,
        completed_after_eight_pm=False,
        is_perfect_day=False,
        top_two_habit_ids=[],
    )
    params.update(overrides)
    return calculate_exp_gain(**params)


# ============================================================================
# Rounding
# ============================================================================

def test_round_half_up():
    """Halves round away from zero, not to even"""
    assert round_half_up(0.5) == 1
    assert round_half_up(2.5) == 3
    assert round_half_up(312.5) == 313
    assert round_half_up(2.49) == 2
    assert round_half_up(-2.5) == -3


# ============================================================================
# Habit EXP
# ============================================================================

def test_binary_habit_without_modifiers():
    """Binary good habit with every multiplier at 1"""
    habit = Habit(name="Meditate", base_exp=30)
    assert _gain(habit) == 30


def test_binary_habit_ignores_value():
    habit = Habit(name="Meditate", base_exp=30)
    assert _gain(habit, actual_value=50) == 30


def test_quantity_habit_ratio_is_capped():
    """13/10 gives the 1.3 ratio cap"""
    habit = Habit(name="Read", scalar=ScalarType.QUANTITY, target_number=10, base_exp=30)
    assert _gain(habit, actual_value=13) == 39
    assert _gain(habit, actual_value=40) == 39


def test_quantity_habit_partial_value():
    habit = Habit(name="Read", scalar=ScalarType.QUANTITY, target_number=10, base_exp=30)
    assert _gain(habit, actual_value=5) == 15


def test_streak_bonus_steps_every_three_days():
    assert streak_bonus(0) == 1.0
    assert streak_bonus(2) == 1.0
    assert streak_bonus(3) == pytest.approx(1.05)
    assert streak_bonus(6) == pytest.approx(1.10)


def test_streak_bonus_cap():
    assert streak_bonus(30) == pytest.approx(1.5)
    assert streak_bonus(90) == 1.5


def test_streak_applies_to_gain():
    habit = Habit(name="Meditate", base_exp=100)
    assert _gain(habit, streak=6) == 110
    assert _gain(habit, streak=60) == 150


def test_combo_needs_four_habits():
    habit = Habit(name="Meditate", base_exp=100)
    assert _gain(habit, total_dailies_completed_today=3) == 100
    assert _gain(habit, total_dailies_completed_today=4) == 105


def test_perm_multiplier():
    habit = Habit(name="Meditate", base_exp=100)
    assert _gain(habit, perm_multiplier=0.1) == 110


def test_early_bird_needs_morning():
    habit = Habit(name="Meditate", base_exp=100)
    keys = [SkillKey.EARLY_BIRD]
    assert _gain(habit, active_skill_keys=keys, completed_before_ten_am=True) == 110
    assert _gain(habit, active_skill_keys=keys, completed_before_ten_am=False) == 100


def test_specialist_needs_top_two():
    habit = Habit(name="Meditate", base_exp=100)
    keys = [SkillKey.SPECIALIST]
    assert _gain(habit, active_skill_keys=keys, top_two_habit_ids=[habit.id]) == 110
    assert _gain(habit, active_skill_keys=keys, top_two_habit_ids=[uuid4()]) == 100


def test_perfectionist_on_perfect_day():
    habit = Habit(name="Meditate", base_exp=100)
    assert _gain(habit, active_skill_keys=[SkillKey.PERFECTIONIST], is_perfect_day=True) == 115


def test_skill_conditions_without_skill_do_nothing():
    habit = Habit(name="Meditate", base_exp=100)
    assert _gain(habit, completed_after_eight_pm=True, is_perfect_day=True) == 100


# ============================================================================
# Penalties
# ============================================================================

def test_penalty_with_iron_will():
    assert calculate_penalty(base_exp=25, has_iron_will_active=True, iron_will_uses_remaining=1) == 12


def test_penalty_without_iron_will_uses():
    assert calculate_penalty(base_exp=25, has_iron_will_active=True, iron_will_uses_remaining=0) == 15
    assert calculate_penalty(base_exp=25, has_iron_will_active=False, iron_will_uses_remaining=2) == 15


# ============================================================================
# Level Curve
# ============================================================================

def test_exp_for_level_values():
    assert exp_for_level(1) == 200
    assert exp_for_level(2) == 250
    assert exp_for_level(3) == 313
    assert exp_for_level(5) == 488


def test_exp_for_level_rejects_zero():
    with pytest.raises(LevelTableError):
        exp_for_level(0)


def test_total_exp_for_level():
    assert total_exp_for_level(1) == 0
    assert total_exp_for_level(2) == 200
    assert total_exp_for_level(3) == 450


# ============================================================================
# Workout, food and weight EXP
# ============================================================================

def test_workout_volume():
    sets = [
        WorkoutSet(exercise="Squat", sets=3, reps=5, weight=100),
        WorkoutSet(exercise="Row", sets=2, reps=10, weight=50),
    ]
    assert workout_volume(sets) == 2500


def test_workout_exp_caps():
    assert calculate_workout_exp(60, 1500) == 31
    assert calculate_workout_exp(300, 100_000) == 100
    assert calculate_workout_exp(0, 0) == 0


def test_food_exp_rewards_protein():
    assert calculate_food_exp(kcal=600, protein=45, carbs=60, fat=15) == 105


def test_food_exp_floor():
    assert calculate_food_exp(kcal=0) >= 5


def test_weight_exp():
    assert calculate_weight_exp(80.4) == 10
    assert calculate_weight_exp(150) == 15
