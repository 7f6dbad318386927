"""
Reward & Progression rules for Grow

This package holds the pure rules of the engine:
- Scoring (habit EXP, penalties, level thresholds, workout/food/weight EXP)
- Streak tracking
- Skill bonuses
- EXP application and level-ups
- Achievements, personal records
- Undo buffer and leaderboard snapshots

State changes and persistence live in grow.services.progression_ledger.
"""

from grow.gamification.scoring import calculate_exp_gain, calculate_penalty, exp_for_level
from grow.gamification.streak_system import advance_streak, top_streak_habit_ids
from grow.gamification.skills import SkillResolver, skill_multiplier
from grow.gamification.xp_system import apply_exp, apply_penalty, get_level_info
from grow.gamification.achievement_system import evaluate_achievements, ACHIEVEMENTS
from grow.gamification.personal_records import detect_personal_records, estimate_one_rep_max
from grow.gamification.undo import UndoBuffer

__all__ = [
    "calculate_exp_gain",
    "calculate_penalty",
    "exp_for_level",
    "advance_streak",
    "top_streak_habit_ids",
    "SkillResolver",
    "skill_multiplier",
    "apply_exp",
    "apply_penalty",
    "get_level_info",
    "evaluate_achievements",
    "ACHIEVEMENTS",
    "detect_personal_records",
    "estimate_one_rep_max",
    "UndoBuffer",
]
