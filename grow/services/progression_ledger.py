"""
ProgressionLedger - Reward & Progression orchestration

Turns player actions (habit completions, bad-habit slips, workouts, food and
weight logs) into EXP, levels, streaks, skills, quests, personal records and
achievements.

Every operation:
1. Reads working copies from the Store
2. Computes and applies the change to those copies
3. Flushes everything in one StoreChanges unit (all or nothing)
4. Records or invalidates the undo slot
5. Returns an Outcome: the result payload or a typed GrowError

Operations are serialized per ledger, so the level-up loop and the EXP floor
never interleave with a concurrent write to the same profile.
"""

import asyncio
import logging
import math
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union
from uuid import UUID, uuid4

from pydantic import ValidationError as ModelValidationError

from grow.config import (
    DEBUFF_DURATION_HOURS,
    DEBUFF_EXP_REDUCTION,
    DEFAULT_QUEST_TARGET,
    IRON_WILL_WEEKLY_USES,
    PERM_MULTIPLIER_CAP,
    PR_BONUS_EXP,
    QUEST_MULTIPLIER_STEP,
)
from grow.exceptions import (
    GrowError,
    HabitNotFoundError,
    InsufficientSkillPointsError,
    InvalidQuantityError,
    Outcome,
    PersistenceError,
    ProfileNotFoundError,
    SkillAlreadyUnlockedError,
    ValidationError,
    WorkoutAlreadyFinishedError,
    WorkoutNotFoundError,
    wrap_store_exception,
)
from grow.gamification.achievement_system import (
    achievement_progress,
    build_snapshot,
    evaluate_achievements,
)
from grow.gamification.leaderboard import build_leaderboard_entry, weekly_exp
from grow.gamification.personal_records import detect_personal_records
from grow.gamification.scoring import (
    calculate_exp_gain,
    calculate_food_exp,
    calculate_penalty,
    calculate_weight_exp,
    calculate_workout_exp,
    exp_for_level,
    workout_volume,
)
from grow.gamification.skills import SkillResolver
from grow.gamification.streak_system import apply_streak, top_streak_habit_ids
from grow.gamification.undo import UndoBuffer
from grow.gamification.xp_system import apply_exp, apply_penalty
from grow.models.achievement import UnlockedAchievement
from grow.models.experience import ExperienceEvent, ExperienceSource
from grow.models.habit import Habit, HabitLog, HabitMode, HabitType, ScalarType
from grow.models.leaderboard import LeaderboardEntry
from grow.models.player import Badge, Debuff, PlayerClass, PlayerProfile, Skill, SkillKey, WeeklyQuest
from grow.models.results import (
    BadHabitSlip,
    ExpAward,
    HabitCompletion,
    LevelChange,
    UndoResult,
    WorkoutCompletion,
)
from grow.models.workout import FoodLog, WeightEntry, Workout, WorkoutSet
from grow.observability import metrics
from grow.observability.metrics import track_operation
from grow.services.store import Store, StoreChanges
from grow.utils.datetime_helpers import Clock

logger = logging.getLogger(__name__)

FOOD_SOURCES = (ExperienceSource.NUTRITION, ExperienceSource.BARCODE)


class ProgressionLedger:
    """
    Central state-mutating service of the engine.

    Responsibilities:
    - Habit completions and bad-habit slips (streaks, EXP, debuffs, quests)
    - Generic EXP awards and the level-up loop
    - Skill unlocks
    - Workouts and personal records
    - Food and weight logging rewards
    - Single-slot undo
    """

    def __init__(
        self,
        store: Store,
        clock: Optional[Clock] = None,
        undo_buffer: Optional[UndoBuffer] = None,
    ):
        """
        Initialize ProgressionLedger.

        Args:
            store: Persistence collaborator
            clock: Calendar adapter (local timezone); defaults to the configured one
            undo_buffer: Undo slot; defaults to a fresh buffer
        """
        self.store = store
        self.clock = clock or Clock()
        self.undo_buffer = undo_buffer or UndoBuffer()
        self._lock = asyncio.Lock()
        logger.debug("ProgressionLedger initialized")

    # ------------------------------------------------------------------
    # Onboarding
    # ------------------------------------------------------------------

    async def create_profile(
        self,
        display_name: str,
        player_class: PlayerClass = PlayerClass.WARRIOR,
        habits: Iterable[Habit] = (),
        quest_name: Optional[str] = None,
    ) -> Outcome[PlayerProfile]:
        """
        Create the session's player profile with starter habits and quest.

        Args:
            display_name: Name shown on the leaderboard
            player_class: Class picked at onboarding
            habits: Starter habits
            quest_name: Name of this week's quest (no quest when None)

        Returns:
            Outcome with the new PlayerProfile
        """
        async with self._lock:
            with track_operation("create_profile") as op:
                now = self.clock.now()

                if await self.store.get_profile() is not None:
                    return self._fail(op, ValidationError(
                        "A player profile already exists",
                        field="profile",
                        operation="create_profile",
                    ))

                profile = PlayerProfile(
                    display_name=display_name,
                    player_class=player_class,
                    created_at=now,
                    exp_to_next=exp_for_level(1),
                )
                changes = StoreChanges().save(profile)
                changes.save(*habits)

                if quest_name:
                    changes.save(WeeklyQuest(
                        name=quest_name,
                        target_count=DEFAULT_QUEST_TARGET,
                        week_start_date=self.clock.iso_week_start(now),
                    ))

                error = await self._commit(changes, "create_profile")
                if error:
                    return self._fail(op, error)

                self.undo_buffer.clear()
                logger.info(f"Created profile {profile.id} ({display_name}, {player_class.value})")
                return Outcome.success(profile)

    async def add_habit(self, habit: Habit) -> Outcome[Habit]:
        """Persist a new habit"""
        async with self._lock:
            with track_operation("add_habit") as op:
                error = await self._commit(StoreChanges().save(habit), "add_habit")
                if error:
                    return self._fail(op, error)

                self.undo_buffer.clear()
                logger.info(f"Added habit {habit.name} ({habit.mode.value}, {habit.habit_type.value})")
                return Outcome.success(habit)

    async def start_weekly_quest(self, name: str, target_count: int = DEFAULT_QUEST_TARGET) -> Outcome[WeeklyQuest]:
        """Create the current ISO week's quest; returns the existing one if already started"""
        async with self._lock:
            with track_operation("start_weekly_quest") as op:
                week_start = self.clock.iso_week_start(self.clock.now())

                existing = await self.store.get_quest(week_start)
                if existing is not None:
                    return Outcome.success(existing)

                quest = WeeklyQuest(name=name, target_count=target_count, week_start_date=week_start)
                error = await self._commit(StoreChanges().save(quest), "start_weekly_quest")
                if error:
                    return self._fail(op, error)

                self.undo_buffer.clear()
                return Outcome.success(quest)

    # ------------------------------------------------------------------
    # Habits
    # ------------------------------------------------------------------

    async def complete_habit(self, habit_id: UUID, value: float = 1.0) -> Outcome[HabitCompletion]:
        """
        Record a habit completion and reward it.

        Not idempotent: each call is a new completion. Callers prevent a
        second same-day submission of binary habits.

        Args:
            habit_id: Habit being completed
            value: Quantity entered (quantity habits only)

        Returns:
            Outcome with HabitCompletion:
                exp_gained, streak_after, leveled_up, levels_gained, new_level,
                quest_progressed, quest_completed, achievements_unlocked,
                log_id, undo_expires_at
        """
        async with self._lock:
            with track_operation("complete_habit") as op:
                now = self.clock.now()

                profile = await self.store.get_profile()
                if profile is None:
                    return self._fail(op, ProfileNotFoundError(operation="complete_habit"))

                habit = await self.store.get_habit(habit_id)
                if habit is None or not habit.is_active:
                    return self._fail(op, HabitNotFoundError(habit_id, operation="complete_habit"))
                if habit.mode == HabitMode.BAD:
                    return self._fail(op, ValidationError(
                        "Bad habits are logged as slips, not completions",
                        field="habit_id",
                        value=str(habit_id),
                        operation="complete_habit",
                    ))
                if habit.scalar == ScalarType.QUANTITY and (not math.isfinite(value) or value <= 0):
                    return self._fail(op, InvalidQuantityError(value, operation="complete_habit"))

                habits = await self.store.get_habits()
                skills = await self.store.get_skills()
                today_logs = await self.store.get_logs(
                    start=self.clock.start_of_day(now), end=self.clock.end_of_day(now)
                )
                quest = None
                if habit.habit_type == HabitType.WEEKLY:
                    quest = await self.store.get_quest(self.clock.iso_week_start(now))

                before = [profile.model_copy(deep=True), habit.model_copy(deep=True)]

                # Context flags
                completed_ids = {log.habit_id for log in today_logs if log.completed} | {habit.id}
                daily_ids = {h.id for h in habits if h.habit_type == HabitType.DAILY}
                good_dailies = [h for h in habits if h.is_good_daily]
                is_perfect_day = bool(good_dailies) and all(h.id in completed_ids for h in good_dailies)
                hour = self.clock.local_hour(now)

                exp_gain = calculate_exp_gain(
                    habit=habit,
                    actual_value=value,
                    streak=habit.current_streak,
                    total_dailies_completed_today=len(completed_ids & daily_ids),
                    active_skill_keys=SkillResolver(skills).active_keys,
                    perm_multiplier=profile.perm_exp_multiplier,
                    completed_before_ten_am=hour < 10,
                    completed_after_eight_pm=hour >= 20,
                    is_perfect_day=is_perfect_day,
                    top_two_habit_ids=top_streak_habit_ids(habits),
                )

                log = HabitLog(
                    habit_id=habit.id,
                    date=now,
                    completed=True,
                    value_number=value,
                    exp_gained=exp_gain,
                )
                streak = apply_streak(habit, now, self.clock)
                level_change = apply_exp(profile, exp_gain)

                changes = StoreChanges().save(profile, habit, log)
                created: List = [log]

                # Weekly quest
                quest_progressed = False
                quest_completed = False
                if quest is not None and not quest.completed:
                    before.append(quest.model_copy(deep=True))
                    quest.progress_count = min(quest.progress_count + 1, quest.target_count)
                    quest_progressed = True
                    if quest.progress_count >= quest.target_count:
                        quest.completed = True
                        quest.completed_at = now
                        quest_completed = True
                        chest = self._grant_chest_reward(profile, now)
                        changes.save(chest)
                        created.append(chest)
                    changes.save(quest)

                event = ExperienceEvent(
                    amount=exp_gain,
                    source=ExperienceSource.HABIT,
                    reason=f"Completed {habit.name}",
                    metadata={
                        "habit_id": str(habit.id),
                        "value": f"{value:g}",
                        "streak": str(streak.current_streak),
                    },
                    timestamp=now,
                )
                changes.save(event)
                created.append(event)

                habits_after = [habit if h.id == habit.id else h for h in habits]
                unlocked = await self._scan_achievements(profile, habits_after, [log], now, changes)

                error = await self._commit(changes, "complete_habit")
                if error:
                    return self._fail(op, error)

                pending = self._record_undo(f"Complete {habit.name}", before, created, now)

                metrics.record_exp(ExperienceSource.HABIT.value, exp_gain)
                metrics.record_level_ups(level_change.levels_gained)
                for achievement in unlocked:
                    metrics.record_achievement(achievement.key)

                logger.info(
                    f"Habit completed: habit={habit.name}, exp={exp_gain}, "
                    f"streak={streak.current_streak}, level={profile.level}, "
                    f"quest_completed={quest_completed}, achievements={len(unlocked)}"
                )

                return Outcome.success(HabitCompletion(
                    log_id=log.id,
                    exp_gained=exp_gain,
                    streak_after=streak.current_streak,
                    leveled_up=level_change.leveled_up,
                    levels_gained=level_change.levels_gained,
                    new_level=profile.level,
                    quest_progressed=quest_progressed,
                    quest_completed=quest_completed,
                    achievements_unlocked=unlocked,
                    undo_expires_at=pending.expires_at,
                ))

    async def log_bad_habit(self, habit_id: UUID) -> Outcome[BadHabitSlip]:
        """
        Record a bad-habit slip: penalty, 24h debuff, Iron Will use.

        The habit's streak is left untouched.

        Returns:
            Outcome with BadHabitSlip:
                penalty_applied, exp_debited, iron_will_used, debuff, log_id, undo_expires_at
        """
        async with self._lock:
            with track_operation("log_bad_habit") as op:
                now = self.clock.now()

                profile = await self.store.get_profile()
                if profile is None:
                    return self._fail(op, ProfileNotFoundError(operation="log_bad_habit"))

                habit = await self.store.get_habit(habit_id)
                if habit is None or not habit.is_active:
                    return self._fail(op, HabitNotFoundError(habit_id, operation="log_bad_habit"))
                if habit.mode != HabitMode.BAD:
                    return self._fail(op, ValidationError(
                        "Only bad habits can be logged as slips",
                        field="habit_id",
                        value=str(habit_id),
                        operation="log_bad_habit",
                    ))

                skills = await self.store.get_skills()
                has_iron_will = SkillResolver(skills).is_active(SkillKey.IRON_WILL)
                uses_remaining = 0
                if has_iron_will:
                    uses_remaining = max(0, IRON_WILL_WEEKLY_USES - await self._iron_will_uses_this_week(now))

                penalty = calculate_penalty(habit.base_exp, has_iron_will, uses_remaining)
                iron_will_used = has_iron_will and uses_remaining > 0

                before = [profile.model_copy(deep=True)]
                debited = apply_penalty(profile, penalty)

                log = HabitLog(
                    habit_id=habit.id,
                    date=now,
                    completed=False,
                    exp_gained=-penalty,
                    penalty_triggered=True,
                    iron_will_applied=iron_will_used,
                )
                debuff = Debuff(
                    key=habit.name,
                    applied_at=now,
                    expires_at=now + timedelta(hours=DEBUFF_DURATION_HOURS),
                    exp_reduction=DEBUFF_EXP_REDUCTION,
                )
                event = ExperienceEvent(
                    amount=-debited,
                    source=ExperienceSource.HABIT_PENALTY,
                    reason=f"Slipped on {habit.name}",
                    metadata={
                        "habit_id": str(habit.id),
                        "penalty": str(penalty),
                        "iron_will": str(iron_will_used).lower(),
                    },
                    timestamp=now,
                )

                changes = StoreChanges().save(profile, log, debuff, event)
                error = await self._commit(changes, "log_bad_habit")
                if error:
                    return self._fail(op, error)

                pending = self._record_undo(f"Slip on {habit.name}", before, [log, debuff, event], now)

                metrics.record_exp(ExperienceSource.HABIT_PENALTY.value, -debited)

                logger.info(
                    f"Bad habit logged: habit={habit.name}, penalty={penalty}, "
                    f"debited={debited}, iron_will={iron_will_used}"
                )

                return Outcome.success(BadHabitSlip(
                    log_id=log.id,
                    penalty_applied=penalty,
                    exp_debited=debited,
                    iron_will_used=iron_will_used,
                    debuff=debuff,
                    undo_expires_at=pending.expires_at,
                ))

    # ------------------------------------------------------------------
    # Skills
    # ------------------------------------------------------------------

    async def unlock_skill(self, skill_key: Union[SkillKey, str]) -> Outcome[Skill]:
        """
        Spend a skill point on a skill.

        Fails with InsufficientSkillPointsError (no points) or
        SkillAlreadyUnlockedError; skill points are untouched on failure.
        """
        async with self._lock:
            with track_operation("unlock_skill") as op:
                try:
                    key = SkillKey(skill_key)
                except ValueError:
                    return self._fail(op, ValidationError(
                        f"Unknown skill: {skill_key}", field="skill_key", value=skill_key, operation="unlock_skill"
                    ))

                profile = await self.store.get_profile()
                if profile is None:
                    return self._fail(op, ProfileNotFoundError(operation="unlock_skill"))

                skills = await self.store.get_skills()
                if any(skill.key == key for skill in skills):
                    return self._fail(op, SkillAlreadyUnlockedError(key.value, operation="unlock_skill"))
                if profile.skill_points <= 0:
                    return self._fail(op, InsufficientSkillPointsError(key.value, operation="unlock_skill"))

                profile.skill_points -= 1
                skill = Skill(key=key, tier=key.tier, level=1, is_active=True)

                error = await self._commit(StoreChanges().save(profile, skill), "unlock_skill")
                if error:
                    return self._fail(op, error)

                self.undo_buffer.clear()
                metrics.record_skill_unlock(key.value)
                logger.info(f"Unlocked skill {key.value} (tier {skill.tier}), {profile.skill_points} points left")
                return Outcome.success(skill)

    # ------------------------------------------------------------------
    # Generic EXP
    # ------------------------------------------------------------------

    async def award_exp(
        self,
        amount: int,
        source: ExperienceSource,
        reason: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Outcome[ExpAward]:
        """
        Award EXP from a non-habit source.

        Args:
            amount: Non-negative EXP
            source: Where the EXP comes from
            reason: Human-readable description
            metadata: Extra string key/values for the timeline

        Returns:
            Outcome with ExpAward
        """
        async with self._lock:
            with track_operation("award_exp") as op:
                if amount < 0:
                    return self._fail(op, ValidationError(
                        "EXP awards cannot be negative", field="amount", value=amount, operation="award_exp"
                    ))

                profile = await self.store.get_profile()
                if profile is None:
                    return self._fail(op, ProfileNotFoundError(operation="award_exp"))

                return await self._award_and_commit(
                    op, "award_exp", profile, StoreChanges(), amount, source, reason, metadata
                )

    # ------------------------------------------------------------------
    # Workouts
    # ------------------------------------------------------------------

    async def create_workout(self, title: str, sets: Sequence[WorkoutSet]) -> Outcome[Workout]:
        """Log a workout; sets keep the order they were entered in"""
        async with self._lock:
            with track_operation("create_workout") as op:
                ordered = [
                    workout_set.model_copy(update={"order_index": index})
                    for index, workout_set in enumerate(sets)
                ]
                workout = Workout(date=self.clock.now(), title=title, sets=ordered)

                error = await self._commit(StoreChanges().save(workout), "create_workout")
                if error:
                    return self._fail(op, error)

                self.undo_buffer.clear()
                logger.info(f"Created workout {title} with {len(ordered)} sets")
                return Outcome.success(workout)

    async def finish_workout(self, workout_id: UUID, duration_minutes: int) -> Outcome[WorkoutCompletion]:
        """
        Finish a workout: grant duration/volume EXP, then detect personal records.

        Each strict 1RM improvement earns a pr_<exercise> badge and a fixed bonus.
        """
        async with self._lock:
            with track_operation("finish_workout") as op:
                now = self.clock.now()

                if duration_minutes < 0:
                    return self._fail(op, ValidationError(
                        "Duration cannot be negative", field="duration_minutes",
                        value=duration_minutes, operation="finish_workout",
                    ))

                profile = await self.store.get_profile()
                if profile is None:
                    return self._fail(op, ProfileNotFoundError(operation="finish_workout"))

                workout = await self.store.get_workout(workout_id)
                if workout is None:
                    return self._fail(op, WorkoutNotFoundError(workout_id, operation="finish_workout"))
                if workout.is_finished:
                    return self._fail(op, WorkoutAlreadyFinishedError(workout_id, operation="finish_workout"))

                exp = calculate_workout_exp(duration_minutes, workout_volume(workout.sets))
                workout.duration_minutes = duration_minutes
                workout.exp_granted = exp

                changes = StoreChanges().save(workout)
                level_change = self._apply_award(
                    profile, changes, exp, ExperienceSource.WORKOUT, f"Finished {workout.title}",
                    {"workout_id": str(workout.id), "duration": str(duration_minutes)}, now,
                )
                levels_gained = level_change.levels_gained

                scan = detect_personal_records(workout.sets, await self.store.get_personal_records())
                for record in scan.improvements:
                    changes.save(Badge(key=record.badge_key, earned_at=now))
                    pr_change = self._apply_award(
                        profile, changes, PR_BONUS_EXP, ExperienceSource.PERSONAL_RECORD,
                        f"New {record.exercise} record",
                        {"exercise": record.exercise, "estimated_1rm": f"{record.new_best:.1f}"}, now,
                    )
                    levels_gained += pr_change.levels_gained
                changes.personal_records = scan.records

                habits = await self.store.get_habits()
                unlocked = await self._scan_achievements(profile, habits, [], now, changes)

                error = await self._commit(changes, "finish_workout")
                if error:
                    return self._fail(op, error)

                self.undo_buffer.clear()
                pr_bonus = PR_BONUS_EXP * len(scan.improvements)
                metrics.record_exp(ExperienceSource.WORKOUT.value, exp)
                metrics.record_exp(ExperienceSource.PERSONAL_RECORD.value, pr_bonus)
                metrics.record_personal_records(len(scan.improvements))
                metrics.record_level_ups(levels_gained)
                for achievement in unlocked:
                    metrics.record_achievement(achievement.key)

                logger.info(
                    f"Workout finished: {workout.title}, exp={exp}, "
                    f"records={len(scan.improvements)}, baselines={len(scan.baselines)}"
                )

                return Outcome.success(WorkoutCompletion(
                    workout_id=workout.id,
                    exp_granted=exp,
                    personal_records=scan.improvements,
                    baselines=scan.baselines,
                    pr_bonus_exp=pr_bonus,
                    leveled_up=levels_gained > 0,
                    new_level=profile.level,
                    achievements_unlocked=unlocked,
                ))

    async def delete_workout(self, workout_id: UUID) -> Outcome[bool]:
        """Delete a workout; granted EXP, badges and record bests stay"""
        async with self._lock:
            with track_operation("delete_workout") as op:
                workout = await self.store.get_workout(workout_id)
                if workout is None:
                    return self._fail(op, WorkoutNotFoundError(workout_id, operation="delete_workout"))

                error = await self._commit(StoreChanges().delete(workout), "delete_workout")
                if error:
                    return self._fail(op, error)

                self.undo_buffer.clear()
                return Outcome.success(True)

    # ------------------------------------------------------------------
    # Nutrition & weight
    # ------------------------------------------------------------------

    async def log_food(
        self,
        label: str,
        kcal: int,
        protein: int = 0,
        carbs: int = 0,
        fat: int = 0,
        meal: Optional[str] = None,
        source: ExperienceSource = ExperienceSource.NUTRITION,
    ) -> Outcome[ExpAward]:
        """Log a meal and award nutrition (or barcode) EXP in the same commit"""
        async with self._lock:
            with track_operation("log_food") as op:
                if source not in FOOD_SOURCES:
                    return self._fail(op, ValidationError(
                        f"Food logs award nutrition or barcode EXP, not {source}",
                        field="source", value=str(source), operation="log_food",
                    ))

                profile = await self.store.get_profile()
                if profile is None:
                    return self._fail(op, ProfileNotFoundError(operation="log_food"))

                try:
                    entry = FoodLog(
                        date=self.clock.now(), label=label, kcal=kcal,
                        protein=protein, carbs=carbs, fat=fat, meal=meal,
                    )
                except ModelValidationError as e:
                    return self._fail(op, self._invalid_entry(e, "log_food"))

                exp = calculate_food_exp(entry.kcal, entry.protein, entry.carbs, entry.fat)
                return await self._award_and_commit(
                    op, "log_food", profile, StoreChanges().save(entry), exp, source,
                    f"Logged {label}", {"kcal": str(kcal), "protein": str(protein)}, entry_id=entry.id,
                )

    async def log_weight(self, kg: float, date: Optional[datetime] = None) -> Outcome[ExpAward]:
        """Log a weight measurement and award weight EXP"""
        async with self._lock:
            with track_operation("log_weight") as op:
                if not math.isfinite(kg) or kg <= 0:
                    return self._fail(op, ValidationError(
                        "Weight must be positive", field="kg", value=kg, operation="log_weight"
                    ))

                profile = await self.store.get_profile()
                if profile is None:
                    return self._fail(op, ProfileNotFoundError(operation="log_weight"))

                try:
                    entry = WeightEntry(date=date or self.clock.now(), kg=kg)
                except ModelValidationError as e:
                    return self._fail(op, self._invalid_entry(e, "log_weight"))

                return await self._award_and_commit(
                    op, "log_weight", profile, StoreChanges().save(entry), calculate_weight_exp(kg),
                    ExperienceSource.WEIGHT, "Logged weight", {"kg": f"{kg:.1f}"}, entry_id=entry.id,
                )

    # ------------------------------------------------------------------
    # Undo
    # ------------------------------------------------------------------

    def undo_available(self) -> bool:
        return self.undo_buffer.is_available(self.clock.now())

    async def undo(self) -> Outcome[UndoResult]:
        """
        Reverse the last habit completion or slip, once, inside its window.

        Restores the profile, habit and quest exactly as they were and deletes
        the records the operation created. Achievement grants are permanent.
        """
        async with self._lock:
            with track_operation("undo") as op:
                had_pending = self.undo_buffer.pending is not None
                pending = self.undo_buffer.take(self.clock.now())

                if pending is None:
                    metrics.record_undo("expired" if had_pending else "empty")
                    op["status"] = "rejected"
                    return Outcome.success(UndoResult(undone=False))

                try:
                    await pending.action()
                except Exception as e:
                    self.undo_buffer.restore(pending)
                    return self._fail(op, wrap_store_exception(e, operation="undo"))

                metrics.record_undo("undone")
                logger.info(f"Undid '{pending.description}'")
                return Outcome.success(UndoResult(undone=True, description=pending.description))

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    async def recent_events(self, limit: int = 20) -> List[ExperienceEvent]:
        """Newest-first EXP timeline"""
        return await self.store.get_events(limit=limit)

    async def weekly_exp(self, source: Optional[ExperienceSource] = None) -> int:
        """Net EXP of the current ISO week, optionally for one source"""
        now = self.clock.now()
        events = await self.store.get_events(since=self.clock.iso_week_start(now))
        return weekly_exp(events, now, self.clock, source)

    async def active_debuffs(self) -> List[Debuff]:
        return await self.store.get_debuffs(active_at=self.clock.now())

    async def achievement_progress(self) -> List[Dict[str, Any]]:
        """Progress toward every achievement; empty before onboarding"""
        profile = await self.store.get_profile()
        if profile is None:
            return []
        now = self.clock.now()
        snapshot = build_snapshot(
            profile, await self.store.get_habits(), await self.store.get_logs(), now, self.clock
        )
        return achievement_progress(snapshot, await self.store.get_achievement_grants())

    async def leaderboard_entry(self, user_id: str) -> Outcome[LeaderboardEntry]:
        """Snapshot for the ranked storage"""
        profile = await self.store.get_profile()
        if profile is None:
            return Outcome.failure(ProfileNotFoundError(operation="leaderboard_entry"))
        now = self.clock.now()
        events = await self.store.get_events(since=self.clock.iso_week_start(now))
        habits = await self.store.get_habits(active_only=False)
        return Outcome.success(build_leaderboard_entry(user_id, profile, habits, events, now, self.clock))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _apply_award(
        self,
        profile: PlayerProfile,
        changes: StoreChanges,
        amount: int,
        source: ExperienceSource,
        reason: str,
        metadata: Optional[Dict[str, str]],
        now: datetime,
    ) -> LevelChange:
        """Add EXP to the working profile and queue its timeline event"""
        level_change = apply_exp(profile, amount)
        if amount > 0:
            changes.save(ExperienceEvent(
                amount=amount,
                source=source,
                reason=reason,
                metadata=metadata or {},
                timestamp=now,
            ))
        changes.save(profile)
        return level_change

    async def _award_and_commit(
        self,
        op: dict,
        operation: str,
        profile: PlayerProfile,
        changes: StoreChanges,
        amount: int,
        source: ExperienceSource,
        reason: str,
        metadata: Optional[Dict[str, str]],
        entry_id: Optional[UUID] = None,
    ) -> Outcome[ExpAward]:
        now = self.clock.now()
        level_change = self._apply_award(profile, changes, amount, source, reason, metadata, now)

        habits = await self.store.get_habits()
        unlocked = await self._scan_achievements(profile, habits, [], now, changes)

        error = await self._commit(changes, operation)
        if error:
            return self._fail(op, error)

        self.undo_buffer.clear()
        metrics.record_exp(source.value, amount)
        metrics.record_level_ups(level_change.levels_gained)
        for achievement in unlocked:
            metrics.record_achievement(achievement.key)

        logger.info(
            f"Awarded {amount} EXP for {source.value}: {reason}. "
            f"Level: {profile.level}, EXP: {profile.exp_current}/{profile.exp_to_next}"
        )

        return Outcome.success(ExpAward(
            amount=amount,
            leveled_up=level_change.leveled_up,
            levels_gained=level_change.levels_gained,
            new_level=profile.level,
            exp_current=profile.exp_current,
            exp_to_next=profile.exp_to_next,
            achievements_unlocked=unlocked,
            entry_id=entry_id,
        ))

    async def _scan_achievements(
        self,
        profile: PlayerProfile,
        habits: Sequence[Habit],
        pending_logs: Sequence[HabitLog],
        now: datetime,
        changes: StoreChanges,
    ) -> List[UnlockedAchievement]:
        """Evaluate achievements against the working state; queue new grants"""
        logs = await self.store.get_logs()
        snapshot = build_snapshot(profile, habits, [*logs, *pending_logs], now, self.clock)
        scan = evaluate_achievements(snapshot, await self.store.get_achievement_grants(), now)

        if scan.unlocked:
            changes.grants = scan.grants
        return scan.unlocked

    async def _iron_will_uses_this_week(self, now: datetime) -> int:
        week_start = self.clock.iso_week_start(now)
        logs = await self.store.get_logs(start=week_start, end=week_start + timedelta(days=7))
        return sum(1 for log in logs if log.penalty_triggered and log.iron_will_applied)

    def _grant_chest_reward(self, profile: PlayerProfile, now: datetime) -> Badge:
        """Quest chest: permanent multiplier step (capped) and a chest badge"""
        stepped = min(PERM_MULTIPLIER_CAP, round(profile.perm_exp_multiplier + QUEST_MULTIPLIER_STEP, 4))
        profile.perm_exp_multiplier = max(profile.perm_exp_multiplier, stepped)
        logger.info(f"Weekly quest chest opened, permanent multiplier now {profile.perm_exp_multiplier:.2f}")
        return Badge(key=f"chest_{uuid4().hex[:8]}", earned_at=now)

    def _record_undo(self, description: str, before: List, created: List, now: datetime):
        """Register the exact inverse: restore before-images, delete created records"""
        restore = [entity.model_copy(deep=True) for entity in before]
        remove = list(created)

        async def compensate() -> None:
            await self.store.commit(StoreChanges(saved=list(restore), deleted=list(remove)))

        return self.undo_buffer.record(description, compensate, now)

    async def _commit(self, changes: StoreChanges, operation: str) -> Optional[GrowError]:
        try:
            await self.store.commit(changes)
        except Exception as e:
            return wrap_store_exception(e, operation=operation)
        return None

    @staticmethod
    def _fail(op: dict, error: GrowError) -> Outcome:
        op["status"] = "error" if isinstance(error, PersistenceError) else "rejected"
        return Outcome.failure(error)

    @staticmethod
    def _invalid_entry(e: ModelValidationError, operation: str) -> ValidationError:
        """First pydantic error of a log entry as a ValidationError"""
        first = e.errors()[0]
        loc = first.get("loc") or ("input",)
        return ValidationError(
            first.get("msg", "Invalid value"),
            field=str(loc[0]),
            value=first.get("input"),
            operation=operation,
        )
