"""
Skill / Bonus Resolver

Decides which passive bonuses apply to a habit completion from the player's
unlocked skills and the situation the completion happened in.

Bonuses (multiplicative):
- earlyBird: +10% before 10:00 local time
- nightOwl: +10% at or after 20:00 local time
- specialist: +10% for the two habits with the highest current streak
- perfectionist: +15% when every good daily habit is done today
- ironWill: no multiplier; softens bad-habit penalties (see scoring.calculate_penalty)
- resilient: no scoring effect
"""

from dataclasses import dataclass
from typing import Iterable, FrozenSet, List
import logging

from grow.models.player import Skill, SkillKey

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SituationalFlags:
    """Context of one completion that skills react to"""
    completed_before_ten_am: bool = False
    completed_after_eight_pm: bool = False
    in_top_two: bool = False
    is_perfect_day: bool = False


@dataclass(frozen=True)
class SkillBonus:
    key: SkillKey
    multiplier: float


SKILL_BONUSES = {
    SkillKey.EARLY_BIRD: 1.10,
    SkillKey.NIGHT_OWL: 1.10,
    SkillKey.SPECIALIST: 1.10,
    SkillKey.PERFECTIONIST: 1.15,
}


class SkillResolver:
    """Answers "is skill X active" over a player's skill records"""

    def __init__(self, skills: Iterable[Skill]):
        self._active: FrozenSet[SkillKey] = frozenset(
            SkillKey(skill.key) for skill in skills if skill.is_active
        )

    def is_active(self, key: SkillKey) -> bool:
        return SkillKey(key) in self._active

    @property
    def active_keys(self) -> FrozenSet[SkillKey]:
        return self._active


def _condition_met(key: SkillKey, flags: SituationalFlags) -> bool:
    if key == SkillKey.EARLY_BIRD:
        return flags.completed_before_ten_am
    if key == SkillKey.NIGHT_OWL:
        return flags.completed_after_eight_pm
    if key == SkillKey.SPECIALIST:
        return flags.in_top_two
    if key == SkillKey.PERFECTIONIST:
        return flags.is_perfect_day
    return False


def active_bonuses(active_skill_keys: Iterable[SkillKey], flags: SituationalFlags) -> List[SkillBonus]:
    """
    Bonuses that fire for this completion, in SkillKey declaration order

    Args:
        active_skill_keys: Keys of the player's active skills
        flags: Situation of the completion

    Returns:
        List of SkillBonus whose skill is active and whose condition holds
    """
    keys = {SkillKey(k) for k in active_skill_keys}
    return [
        SkillBonus(key=key, multiplier=SKILL_BONUSES[key])
        for key in SkillKey
        if key in keys and key in SKILL_BONUSES and _condition_met(key, flags)
    ]


def skill_multiplier(active_skill_keys: Iterable[SkillKey], flags: SituationalFlags) -> float:
    """Product of all firing bonuses (1.0 when none fire)"""
    multiplier = 1.0
    for bonus in active_bonuses(active_skill_keys, flags):
        multiplier *= bonus.multiplier
    return multiplier
