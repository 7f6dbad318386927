"""
Achievement System

Detects newly crossed thresholds in a snapshot of player stats.

Features:
- Closed, ordered list of definitions (declaration order = evaluation order)
- Granted achievements are skipped without re-evaluating their predicate
- Each achievement is granted exactly once, permanently, through an explicit
  AchievementGrants ledger passed in and returned
"""

from typing import Dict, List, Sequence, Iterable
from dataclasses import dataclass
from datetime import datetime
import logging

from grow.models.achievement import (
    Achievement,
    AchievementCategory,
    AchievementGrants,
    ProgressSnapshot,
    UnlockedAchievement,
)
from grow.models.habit import Habit, HabitLog
from grow.models.player import PlayerProfile
from grow.utils.datetime_helpers import Clock

logger = logging.getLogger(__name__)


def _level_achievement(key: str, name: str, icon: str, level: int) -> Achievement:
    return Achievement(
        key=key,
        name=name,
        description=f"Reach Level {level}",
        icon=icon,
        category=AchievementCategory.MILESTONES,
        target=level,
        predicate=lambda s: s.level >= level,
        progress=lambda s: s.level,
    )


def _streak_achievement(key: str, name: str, description: str, icon: str, days: int) -> Achievement:
    return Achievement(
        key=key,
        name=name,
        description=description,
        icon=icon,
        category=AchievementCategory.CONSISTENCY,
        target=days,
        predicate=lambda s: s.max_current_streak >= days,
        progress=lambda s: s.max_current_streak,
    )


ACHIEVEMENTS: List[Achievement] = [
    Achievement(
        key="first_habit",
        name="First Steps",
        description="Complete your first habit",
        icon="figure.walk",
        category=AchievementCategory.MILESTONES,
        target=1,
        predicate=lambda s: s.completed_today > 0,
        progress=lambda s: min(s.total_completions, 1),
    ),
    _level_achievement("level_5", "Novice", "star.fill", 5),
    _level_achievement("level_10", "Adept", "star.circle.fill", 10),
    _streak_achievement("streak_7", "Week Warrior", "Maintain a 7-day streak", "flame.fill", 7),
    _streak_achievement("streak_30", "Month Master", "Maintain a 30-day streak", "flame.circle.fill", 30),
]


@dataclass(frozen=True)
class AchievementScan:
    unlocked: List[UnlockedAchievement]
    grants: AchievementGrants


def build_snapshot(
    profile: PlayerProfile,
    habits: Iterable[Habit],
    logs: Iterable[HabitLog],
    now: datetime,
    clock: Clock,
) -> ProgressSnapshot:
    """Collect the stats achievement predicates look at"""
    completed = [log for log in logs if log.completed]
    return ProgressSnapshot(
        level=profile.level,
        completed_today=sum(1 for log in completed if clock.is_same_day(log.date, now)),
        total_completions=len(completed),
        max_current_streak=max((h.current_streak for h in habits), default=0),
    )


def evaluate_achievements(
    snapshot: ProgressSnapshot,
    grants: AchievementGrants,
    now: datetime,
    definitions: Sequence[Achievement] = ACHIEVEMENTS,
) -> AchievementScan:
    """
    Check which achievements the snapshot newly unlocks

    Args:
        snapshot: Current player stats
        grants: Already granted achievement keys (not mutated)
        now: Grant timestamp
        definitions: Ordered achievement definitions

    Returns:
        AchievementScan with newly unlocked achievements (declaration order)
        and the updated grant ledger
    """
    granted: Dict[str, datetime] = dict(grants.granted)
    unlocked: List[UnlockedAchievement] = []

    for achievement in definitions:
        # Skip if already unlocked
        if achievement.key in granted:
            continue

        if not achievement.predicate(snapshot):
            continue

        granted[achievement.key] = now
        unlocked.append(UnlockedAchievement(
            key=achievement.key,
            name=achievement.name,
            description=achievement.description,
            icon=achievement.icon,
            target=achievement.target,
            unlocked_at=now,
        ))

        logger.info(f"Unlocked achievement: {achievement.key} ({achievement.name})")

    return AchievementScan(unlocked=unlocked, grants=AchievementGrants(granted=granted))


def achievement_progress(
    snapshot: ProgressSnapshot,
    grants: AchievementGrants,
    definitions: Sequence[Achievement] = ACHIEVEMENTS,
) -> List[Dict[str, any]]:
    """
    Progress toward every achievement

    Returns:
        [
            {
                'key': str,
                'name': str,
                'unlocked': bool,
                'current': int,
                'required': int,
                'percentage': int
            }
        ]
    """
    progress = []
    for achievement in definitions:
        unlocked = grants.is_granted(achievement.key)
        current = achievement.target if unlocked else min(achievement.progress(snapshot), achievement.target)
        percentage = min(100, int(current / achievement.target * 100)) if achievement.target > 0 else 0
        progress.append({
            "key": achievement.key,
            "name": achievement.name,
            "unlocked": unlocked,
            "current": current,
            "required": achievement.target,
            "percentage": percentage,
        })
    return progress
