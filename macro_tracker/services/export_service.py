# macro_tracker/services/export_service.py
"""CSV export of the meal log over a named or custom date range."""
from __future__ import annotations

import csv
import io
import logging
from typing import Any, Dict, List, Optional, Tuple

from macro_tracker.services.meal_service import MealService
from macro_tracker.services.supabase_service import make_result
from macro_tracker.utils.dates import DEFAULT_TIMEZONE, is_iso_date, offset_date, today_in_zone
from macro_tracker.utils.text import format_number

logger = logging.getLogger(__name__)

EXPORT_FILENAME = "macro_tracker_data.csv"
EXPORT_RANGES = ("today", "yesterday", "last_week", "last_month", "custom")
CSV_HEADER = [
    "Date",
    "Meal Type",
    "Food Item",
    "Quantity",
    "Calories",
    "Protein (g)",
    "Carbs (g)",
    "Fats (g)",
    "Fiber (g)",
    "Confirmed",
    "Supplement",
    "Recipe",
]


class ExportRangeError(ValueError):
    """The requested range is unknown or incomplete."""


def resolve_range(
    range_key: str,
    today: str,
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> Tuple[str, str]:
    if range_key == "today":
        return today, today
    if range_key == "yesterday":
        day = offset_date(today, -1)
        return day, day
    if range_key == "last_week":
        return offset_date(today, -7), today
    if range_key == "last_month":
        return offset_date(today, -30), today
    if range_key == "custom":
        if not start or not end:
            raise ExportRangeError("Please select both start and end dates")
        if not (is_iso_date(start) and is_iso_date(end)):
            raise ExportRangeError("Dates must be YYYY-MM-DD")
        return start, end
    raise ExportRangeError(f"Unknown range {range_key!r}")


def _number(value: Any) -> str:
    return format_number(value or 0)


def _flag(value: Any) -> str:
    return "true" if value else "false"


def meals_to_csv(meals: List[Dict[str, Any]]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for m in meals:
        writer.writerow(
            [
                m.get("date"),
                m.get("meal_type"),
                m.get("food_name"),
                m.get("quantity"),
                _number(m.get("calories")),
                _number(m.get("protein")),
                _number(m.get("carbs")),
                _number(m.get("fats")),
                _number(m.get("fiber")),
                _flag(m.get("is_confirmed")),
                _flag(m.get("is_supplement")),
                _flag(m.get("is_recipe")),
            ]
        )
    return buf.getvalue()


class ExportService:

    def __init__(self, meals: MealService, timezone: str = DEFAULT_TIMEZONE):
        self.meals = meals
        self.timezone = timezone

    async def export_csv(
        self,
        user_id: str,
        range_key: str = "today",
        start: Optional[str] = None,
        end: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Build the CSV for a range.

        data is the CSV text. A bad range gives error "invalid: ...", an
        empty range gives "not_found".
        """
        try:
            start, end = resolve_range(range_key, today_in_zone(self.timezone), start, end)
        except ExportRangeError as exc:
            return make_result(False, error=f"invalid: {exc}")

        res = await self.meals.list_meals_in_range(user_id, start, end)
        if not res["ok"]:
            return res
        if not res["data"]:
            return make_result(False, error="not_found")
        logger.info("Exporting %d meal(s) %s..%s for user=%s", len(res["data"]), start, end, user_id)
        return make_result(
            True,
            data=meals_to_csv(res["data"]),
            diagnostics={"rows": len(res["data"]), "start": start, "end": end},
        )
