# macro_tracker/services/stats_service.py
"""Weekly and monthly summaries of the meal log."""
from __future__ import annotations

import logging
import math
from collections import Counter
from typing import Any, Dict, Iterable, List, Optional

from macro_tracker.services.library_service import NUTRIENT_KEYS
from macro_tracker.services.supabase_service import SupabaseService, make_result, rows_of
from macro_tracker.services.user_service import UserService
from macro_tracker.utils.dates import DEFAULT_TIMEZONE, offset_date, today_in_zone

logger = logging.getLogger(__name__)

PERIOD_DAYS = {"week": 7, "month": 30}
TOP_FOODS_LIMIT = 5


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def daily_averages(meals: List[Dict[str, Any]]) -> Dict[str, int]:
    """Totals divided by the number of distinct logged days."""
    days = len({m.get("date") for m in meals})
    out = {}
    for key in NUTRIENT_KEYS:
        total = sum(float(m.get(key) or 0) for m in meals)
        out[key] = round_half_up(total / days) if days else 0
    return out


def logging_streak(dates: Iterable[str], today: str) -> int:
    """Consecutive days ending today with at least one meal; 0 if today is empty."""
    logged = set(dates)
    streak = 0
    day = today
    while day in logged:
        streak += 1
        day = offset_date(day, -1)
    return streak


def top_foods(meals: List[Dict[str, Any]], limit: int = TOP_FOODS_LIMIT) -> List[Dict[str, Any]]:
    counts = Counter(m.get("food_name") for m in meals if m.get("food_name"))
    return [{"food_name": name, "count": n} for name, n in counts.most_common(limit)]


def meal_distribution(meals: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    counts = Counter(m.get("meal_type") for m in meals if m.get("meal_type"))
    return [{"meal_type": t, "count": n} for t, n in counts.items()]


def weight_change(stats_rows: List[Dict[str, Any]]) -> Optional[float]:
    weights = [float(r["weight"]) for r in sorted(stats_rows, key=lambda r: r.get("date") or "")
               if r.get("weight") is not None]
    if len(weights) < 2:
        return None
    return round(weights[-1] - weights[0], 1)


class StatsService(SupabaseService):

    def __init__(self, client: Any, users: UserService, timezone: str = DEFAULT_TIMEZONE):
        super().__init__(client)
        self.users = users
        self.timezone = timezone

    async def _meal_dates(self, user_id: str) -> Dict[str, Any]:
        def _fn(uid):
            return (
                self._table("meals")
                .select("date")
                .eq("user_id", uid)
                .order("date", desc=True)
                .execute()
            )

        res = await self._call_db(_fn, user_id)
        if not res["ok"]:
            return res
        return make_result(True, data=[r.get("date") for r in rows_of(res["data"])])

    async def summary(self, user_id: str, period: str = "week", today: Optional[str] = None) -> Dict[str, Any]:
        if period not in PERIOD_DAYS:
            return make_result(False, error=f"invalid: Unknown period {period!r}")
        today = today or today_in_zone(self.timezone)
        start = offset_date(today, -PERIOD_DAYS[period])

        def _meals(uid, s):
            return self._table("meals").select("*").eq("user_id", uid).gte("date", s).execute()

        meals_res = await self._call_db(_meals, user_id, start)
        if not meals_res["ok"]:
            return meals_res
        dates_res = await self._meal_dates(user_id)
        if not dates_res["ok"]:
            return dates_res
        # No upper bound: stats rows entered ahead of time still count
        stats_res = await self.users.list_daily_stats(user_id, start, "9999-12-31")
        if not stats_res["ok"]:
            return stats_res

        meals = rows_of(meals_res["data"])
        averages = daily_averages(meals)
        return make_result(
            True,
            data={
                "period": period,
                "from": start,
                "averages": averages,
                "streak": logging_streak(dates_res["data"], today),
                "top_foods": top_foods(meals),
                "meal_distribution": meal_distribution(meals),
                "weight_change": weight_change(stats_res["data"]),
            },
        )
