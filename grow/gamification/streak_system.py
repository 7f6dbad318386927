"""
Streak Tracking System

Tracks consecutive calendar days a habit was completed.

Logic:
- Last completion today: no change (duplicate-completion guard)
- Last completion yesterday: continue streak
- Gap of 2+ days, or first completion ever: restart at 1
- best_streak follows current_streak upwards

Bad-habit slips do not touch streaks; only completions are tracked.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence
from uuid import UUID
import logging

from grow.models.habit import Habit
from grow.utils.datetime_helpers import Clock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StreakUpdate:
    current_streak: int
    best_streak: int
    last_completed_date: datetime
    old_streak: int
    continued: bool
    reset: bool


def advance_streak(
    current_streak: int,
    best_streak: int,
    last_completed_date: Optional[datetime],
    now: datetime,
    clock: Clock,
) -> StreakUpdate:
    """
    Decide how a streak evolves for a completion happening at `now`

    Args:
        current_streak: Streak before this completion
        best_streak: Best streak before this completion
        last_completed_date: Previous completion, None if never completed
        now: Completion time
        clock: Supplies the local day boundary

    Returns:
        StreakUpdate with the new values
    """
    continued = False
    reset = False

    if last_completed_date is None:
        new_current = 1
    elif clock.is_same_day(last_completed_date, now):
        new_current = current_streak
    elif clock.is_yesterday(last_completed_date, now):
        new_current = current_streak + 1
        continued = True
    else:
        new_current = 1
        reset = current_streak > 0
        if reset:
            logger.info(f"Streak broken after {current_streak} days, last completion {last_completed_date.isoformat()}")

    return StreakUpdate(
        current_streak=new_current,
        best_streak=max(best_streak, new_current),
        last_completed_date=now,
        old_streak=current_streak,
        continued=continued,
        reset=reset,
    )


def apply_streak(habit: Habit, now: datetime, clock: Clock) -> StreakUpdate:
    """Advance a habit's streak fields in place"""
    update = advance_streak(
        habit.current_streak, habit.best_streak, habit.last_completed_date, now, clock
    )
    habit.current_streak = update.current_streak
    habit.best_streak = update.best_streak
    habit.last_completed_date = update.last_completed_date

    logger.debug(f"Updated streak for habit {habit.name}: {update.old_streak} → {update.current_streak} days")
    return update


def top_streak_habit_ids(habits: Sequence[Habit], count: int = 2) -> List[UUID]:
    """Ids of the habits with the highest current streak; ties keep creation order"""
    ranked = sorted(habits, key=lambda h: h.created_at)
    ranked = sorted(ranked, key=lambda h: h.current_streak, reverse=True)
    return [h.id for h in ranked[:count]]
