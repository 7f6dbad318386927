"""
Personal Record Detection

Estimates one-rep-max per exercise (Epley: weight * (1 + reps / 30)) and
walks a finished workout's sets against the running bests.

Rules:
- Exercise names are compared case- and whitespace-insensitively
- The first set of an unseen exercise records a baseline, no bonus
- Only a strict improvement counts as a record; ties do not
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping
import logging

from grow.models.results import PersonalRecord
from grow.models.workout import WorkoutSet

logger = logging.getLogger(__name__)


def estimate_one_rep_max(weight: float, reps: int) -> float:
    return weight * (1 + reps / 30.0)


def normalize_exercise_name(name: str) -> str:
    return " ".join(name.split()).lower()


def pr_badge_key(normalized_name: str) -> str:
    return "pr_" + normalized_name.replace(" ", "_")


@dataclass
class PersonalRecordScan:
    records: Dict[str, float]
    improvements: List[PersonalRecord] = field(default_factory=list)
    baselines: List[str] = field(default_factory=list)


def detect_personal_records(
    sets: Iterable[WorkoutSet],
    records: Mapping[str, float],
) -> PersonalRecordScan:
    """
    Walk a workout's sets in logged order against the running bests

    The first set of an unseen exercise is its baseline. Any later set with a
    strictly higher estimate is a record; an exercise earns at most one record
    (one badge) per workout, spanning its best before the workout to its best
    after it.

    Args:
        sets: Sets of the finished workout
        records: Stored best estimate per normalized exercise name (not mutated)

    Returns:
        PersonalRecordScan with the updated record table, the strict
        improvements, and the exercises seen for the first time
    """
    updated = dict(records)
    scan = PersonalRecordScan(records=updated)
    beaten: Dict[str, float] = {}

    for workout_set in sorted(sets, key=lambda s: s.order_index):
        name = normalize_exercise_name(workout_set.exercise)
        if not name:
            continue
        estimate = estimate_one_rep_max(workout_set.weight, workout_set.reps)
        previous = updated.get(name)

        if previous is None:
            updated[name] = estimate
            scan.baselines.append(name)
            logger.debug(f"Baseline 1RM for {name}: {estimate:.1f}")
            continue

        if estimate > previous:
            updated[name] = estimate
            beaten.setdefault(name, previous)

    for name, previous in beaten.items():
        scan.improvements.append(PersonalRecord(
            exercise=name,
            previous_best=previous,
            new_best=updated[name],
            badge_key=pr_badge_key(name),
        ))
        logger.info(f"New personal record for {name}: {previous:.1f} → {updated[name]:.1f}")

    return scan
