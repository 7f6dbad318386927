"""
Prometheus metrics definitions for the Grow progression engine.

Metrics are organized by category:
- Progression metrics: EXP awarded and debited, level-ups, skills
- Achievement metrics: unlocks, personal records
- Ledger metrics: operation counts and latency, undo usage

The host application exposes them via prometheus_client's default registry.
"""

import logging
import time
from contextlib import contextmanager
from typing import Iterator

from prometheus_client import Counter, Histogram

from grow.config import ENABLE_PROMETHEUS

logger = logging.getLogger(__name__)

# =============================================================================
# Progression Metrics
# =============================================================================

exp_awarded_total = Counter(
    "grow_exp_awarded_total",
    "Total EXP awarded",
    ["source"],  # habit/workout/personalRecord/nutrition/weight/barcode/manual
)

exp_debited_total = Counter(
    "grow_exp_debited_total",
    "Total EXP removed by bad-habit penalties",
)

level_ups_total = Counter(
    "grow_level_ups_total",
    "Total level-ups",
)

skills_unlocked_total = Counter(
    "grow_skills_unlocked_total",
    "Total skills unlocked",
    ["skill_key"],
)

# =============================================================================
# Achievement Metrics
# =============================================================================

achievements_unlocked_total = Counter(
    "grow_achievements_unlocked_total",
    "Total achievements unlocked",
    ["achievement_key"],
)

personal_records_total = Counter(
    "grow_personal_records_total",
    "Total personal records set",
)

# =============================================================================
# Ledger Metrics
# =============================================================================

ledger_operations_total = Counter(
    "grow_ledger_operations_total",
    "Progression ledger operations",
    ["operation", "status"],  # status: success/rejected/error
)

ledger_operation_duration_seconds = Histogram(
    "grow_ledger_operation_duration_seconds",
    "Progression ledger operation latency in seconds",
    ["operation"],
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0],
)

undo_total = Counter(
    "grow_undo_total",
    "Undo requests",
    ["result"],  # undone/expired/empty
)


def record_exp(source: str, amount: int) -> None:
    """Count EXP by sign: gains per source, penalties as debits"""
    if not ENABLE_PROMETHEUS or amount == 0:
        return
    if amount > 0:
        exp_awarded_total.labels(source=source).inc(amount)
    else:
        exp_debited_total.inc(-amount)


def record_level_ups(count: int) -> None:
    if ENABLE_PROMETHEUS and count > 0:
        level_ups_total.inc(count)


def record_achievement(key: str) -> None:
    if ENABLE_PROMETHEUS:
        achievements_unlocked_total.labels(achievement_key=key).inc()


def record_personal_records(count: int) -> None:
    if ENABLE_PROMETHEUS and count > 0:
        personal_records_total.inc(count)


def record_skill_unlock(key: str) -> None:
    if ENABLE_PROMETHEUS:
        skills_unlocked_total.labels(skill_key=key).inc()


def record_undo(result: str) -> None:
    if ENABLE_PROMETHEUS:
        undo_total.labels(result=result).inc()


@contextmanager
def track_operation(operation: str) -> Iterator[dict]:
    """
    Time a ledger operation and count it by status

    The caller sets state["status"] to "rejected" for expected failures;
    an exception counts as "error".

    Example:
        with track_operation("complete_habit") as state:
            ...
            state["status"] = "rejected"
    """
    state = {"status": "success"}
    start = time.perf_counter()
    try:
        yield state
    except Exception:
        state["status"] = "error"
        raise
    finally:
        if ENABLE_PROMETHEUS:
            ledger_operation_duration_seconds.labels(operation=operation).observe(time.perf_counter() - start)
            ledger_operations_total.labels(operation=operation, status=state["status"]).inc()
