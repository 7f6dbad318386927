"""
EXP and Leveling System

Applies EXP deltas to a player profile and rolls levels over.

Level-up rules:
- While exp_current >= exp_to_next: subtract the threshold, level += 1,
  recompute exp_to_next, grant 1 skill point
- One large award can cross several levels; each crossing grants its own point
- Penalties floor exp_current at 0 and never remove levels

Invariant after every call: 0 <= exp_current < exp_to_next
"""

from typing import Dict
import logging

from grow.gamification.scoring import exp_for_level, total_exp_for_level
from grow.models.player import PlayerProfile
from grow.models.results import LevelChange

logger = logging.getLogger(__name__)


def apply_exp(profile: PlayerProfile, amount: int) -> LevelChange:
    """
    Add EXP to a profile in place and run the level-up loop

    Args:
        profile: Profile to mutate (callers pass a working copy)
        amount: Non-negative EXP to add

    Returns:
        LevelChange describing levels gained and skill points granted
    """
    if amount < 0:
        raise ValueError(f"apply_exp takes non-negative amounts, got {amount}")

    old_level = profile.level
    profile.exp_current += amount

    levels_gained = 0
    while profile.exp_current >= profile.exp_to_next:
        profile.exp_current -= profile.exp_to_next
        profile.level += 1
        profile.exp_to_next = exp_for_level(profile.level)
        profile.skill_points += 1
        levels_gained += 1
        logger.info(f"Player {profile.id} reached level {profile.level}!")

    return LevelChange(
        old_level=old_level,
        new_level=profile.level,
        levels_gained=levels_gained,
        skill_points_granted=levels_gained,
    )


def apply_penalty(profile: PlayerProfile, penalty: int) -> int:
    """
    Remove EXP from a profile in place, flooring at zero

    Returns:
        EXP actually debited (may be less than the penalty)
    """
    debited = min(max(penalty, 0), profile.exp_current)
    profile.exp_current -= debited
    return debited


def get_level_info(profile: PlayerProfile) -> Dict[str, int]:
    """
    Level summary for displays and leaderboard snapshots

    Returns:
        {
            'current_level': int,
            'xp_in_current_level': int,
            'xp_to_next_level': int,
            'total_xp': int
        }
    """
    return {
        "current_level": profile.level,
        "xp_in_current_level": profile.exp_current,
        "xp_to_next_level": profile.exp_to_next - profile.exp_current,
        "total_xp": total_exp_for_level(profile.level) + profile.exp_current,
    }
