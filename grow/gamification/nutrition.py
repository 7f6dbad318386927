"""Nutrition and body-weight summaries"""
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from grow.models.workout import FoodLog, WeightEntry
from grow.utils.datetime_helpers import Clock


def daily_totals(food_logs: Iterable[FoodLog], day: datetime, clock: Clock) -> Dict[str, int]:
    """Sum kcal and macros of the logs on day's local calendar date"""
    totals = {"kcal": 0, "protein": 0, "carbs": 0, "fat": 0}
    for log in food_logs:
        if not clock.is_same_day(log.date, day):
            continue
        totals["kcal"] += log.kcal
        totals["protein"] += log.protein
        totals["carbs"] += log.carbs
        totals["fat"] += log.fat
    return totals


def weight_trend(entries: Iterable[WeightEntry], days: int = 7) -> List[float]:
    """Most recent weights first, at most `days` entries"""
    newest_first = sorted(entries, key=lambda e: e.date, reverse=True)
    return [e.kg for e in newest_first[:days]]


def weight_ema(entries: Iterable[WeightEntry], alpha: float = 0.3) -> Optional[float]:
    """Exponential moving average of weight, oldest entry first; None without data"""
    oldest_first = sorted(entries, key=lambda e: e.date)
    if not oldest_first:
        return None

    ema = oldest_first[0].kg
    for entry in oldest_first[1:]:
        ema = alpha * entry.kg + (1 - alpha) * ema
    return ema
