"""
Scoring Engine

Pure EXP formulas. No state, no I/O.

Habit completion:
    total = base_exp * quantity_ratio * streak_bonus * combo * skills * (1 + perm_multiplier)
    - quantity_ratio: 1.0 for binary habits, min(actual / target, 1.3) for quantity habits
    - streak_bonus: 1 + 0.05 per full 3 streak days, capped at 1.5 (reached at 30 days)
    - combo: 1.05 once 4+ different habits are done today

Leveling Curve:
    exp_for_level(L) = 200 * 1.25^(L-1)   (200, 250, 313, 391, 488, ...)

All results are rounded half-up.
"""

import math
from typing import Iterable, Sequence
from uuid import UUID
import logging

from grow.exceptions import LevelTableError
from grow.gamification.skills import SituationalFlags, skill_multiplier
from grow.models.habit import Habit, ScalarType
from grow.models.player import SkillKey
from grow.models.workout import WorkoutSet

logger = logging.getLogger(__name__)

MAX_QUANTITY_RATIO = 1.3
MAX_STREAK_BONUS = 1.5
COMBO_THRESHOLD = 4
COMBO_MULTIPLIER = 1.05
PENALTY_RATIO = 0.6
IRON_WILL_PENALTY_MULTIPLIER = 0.8


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero"""
    if value < 0:
        return -math.floor(-value + 0.5)
    return math.floor(value + 0.5)


def quantity_ratio(habit: Habit, actual_value: float) -> float:
    if habit.scalar != ScalarType.QUANTITY:
        return 1.0
    return min(actual_value / habit.target_number, MAX_QUANTITY_RATIO)


def streak_bonus(streak: int) -> float:
    return min(1.0 + 0.05 * (streak // 3), MAX_STREAK_BONUS)


def calculate_exp_gain(
    habit: Habit,
    actual_value: float,
    streak: int,
    total_dailies_completed_today: int,
    active_skill_keys: Iterable[SkillKey],
    perm_multiplier: float,
    completed_before_ten_am: bool,
    completed_after_eight_pm: bool,
    is_perfect_day: bool,
    top_two_habit_ids: Sequence[UUID],
) -> int:
    """
    Calculate EXP for one habit completion

    Args:
        habit: Habit being completed
        actual_value: Entered quantity (ignored for binary habits)
        streak: Streak the habit carries into this completion
        total_dailies_completed_today: Distinct habits completed today
        active_skill_keys: Keys of the player's active skills
        perm_multiplier: Profile's permanent multiplier (0.0 - 0.10)
        completed_before_ten_am: Local hour < 10
        completed_after_eight_pm: Local hour >= 20
        is_perfect_day: Every good daily habit completed today
        top_two_habit_ids: Ids of the two habits with the highest current streak

    Returns:
        Non-negative integer EXP
    """
    flags = SituationalFlags(
        completed_before_ten_am=completed_before_ten_am,
        completed_after_eight_pm=completed_after_eight_pm,
        in_top_two=habit.id in top_two_habit_ids,
        is_perfect_day=is_perfect_day,
    )

    combo = COMBO_MULTIPLIER if total_dailies_completed_today >= COMBO_THRESHOLD else 1.0
    perm = 1.0 + perm_multiplier

    total = (
        habit.base_exp
        * quantity_ratio(habit, actual_value)
        * streak_bonus(streak)
        * combo
        * skill_multiplier(active_skill_keys, flags)
        * perm
    )
    return max(0, round_half_up(total))


def calculate_penalty(base_exp: int, has_iron_will_active: bool, iron_will_uses_remaining: int) -> int:
    """
    Calculate EXP lost for a bad-habit slip

    Iron Will softens the penalty by 20% while weekly uses remain; consuming
    the use is the caller's job.
    """
    penalty = base_exp * PENALTY_RATIO
    if has_iron_will_active and iron_will_uses_remaining > 0:
        penalty *= IRON_WILL_PENALTY_MULTIPLIER
    return round_half_up(penalty)


def exp_for_level(level: int) -> int:
    """EXP needed to complete the given level"""
    if level < 1:
        raise LevelTableError(level, operation="exp_for_level")
    return round_half_up(200 * 1.25 ** (level - 1))


def total_exp_for_level(level: int) -> int:
    """Cumulative EXP spent to reach the start of the given level"""
    return sum(exp_for_level(lvl) for lvl in range(1, level))


def workout_volume(sets: Iterable[WorkoutSet]) -> float:
    return sum(s.weight * s.sets * s.reps for s in sets)


def calculate_workout_exp(duration_minutes: int, volume: float) -> int:
    """Half a point per minute (max 60) plus a point per tonne lifted (max 40)"""
    base = min(duration_minutes // 2, 60)
    volume_bonus = min(int(volume / 1000), 40)
    return max(0, base + volume_bonus)


def calculate_food_exp(kcal: int, protein: int = 0, carbs: int = 0, fat: int = 0) -> int:
    """
    EXP for a food log: rewards protein, macros that add up, and low energy density

    Never below 5.
    """
    macros = protein + carbs + fat
    protein_bonus = protein * 2
    balance_bonus = max(0, 10 - abs(macros - kcal // 10))
    density = kcal / max(macros, 1)
    density_bonus = 5 if density > 9 else 15
    return max(5, protein_bonus + balance_bonus + density_bonus)


def calculate_weight_exp(kg: float) -> int:
    return max(10, round_half_up(kg) // 10)
