# macro_tracker/services/meal_service.py
"""
Meal log for a user: logging, editing, confirming, copying and the daily dashboard.

Notes:
- Unconfirmed meals are "pending". They are left out of logged totals and
  reported separately.
- Confirmation is one-way. `update_meal` never touches `is_confirmed`.
- Confirming or manually adding a food also adds it to the user's library
  unless an entry with the same name and quantity already exists.
- Every query is scoped to the calling user.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from macro_tracker.schemas import Nutrients
from macro_tracker.services.goal_calculator import calculate_goals, remaining
from macro_tracker.services.library_service import NUTRIENT_KEYS, LibraryService
from macro_tracker.services.supabase_service import SupabaseService, first_row, make_result, rows_of
from macro_tracker.services.user_service import UserService
from macro_tracker.utils.dates import DEFAULT_TIMEZONE, today_in_zone
from macro_tracker.utils.text import MEAL_TYPES, scale_quantity, to_title_case

logger = logging.getLogger(__name__)

SUPPLEMENTS: Dict[str, Dict[str, Any]] = {
    "vitamins": {"name": "Vitamins", "calories": 0, "protein": 0, "carbs": 0, "fats": 0, "fiber": 0},
    "creatine": {"name": "Creatine", "calories": 0, "protein": 0, "carbs": 0, "fats": 0, "fiber": 0},
    "collagen": {"name": "Collagen", "calories": 40, "protein": 10, "carbs": 0, "fats": 0, "fiber": 0},
    "cmz": {"name": "CMZ", "calories": 0, "protein": 0, "carbs": 0, "fats": 0, "fiber": 0},
}
SUPPLEMENT_QUANTITY = "1 serving"
SUPPLEMENT_MEAL_TYPE = "Breakfast"

# Columns carried over when a meal is copied to another day
COPIED_COLUMNS = (
    "meal_type", "food_name", "quantity", *NUTRIENT_KEYS,
    "is_confirmed", "is_supplement", "supplement_id", "is_recipe", "recipe_id",
)


def sum_nutrients(meals: Iterable[Dict[str, Any]]) -> Dict[str, float]:
    totals = {k: 0.0 for k in NUTRIENT_KEYS}
    for meal in meals:
        for k in NUTRIENT_KEYS:
            totals[k] += float(meal.get(k) or 0)
    return totals


def group_by_meal_type(meals: Iterable[Dict[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
    grouped: Dict[str, List[Dict[str, Any]]] = {t: [] for t in MEAL_TYPES}
    for meal in meals:
        grouped.setdefault(meal.get("meal_type") or "Snack", []).append(meal)
    return grouped


class MealService(SupabaseService):

    def __init__(
        self,
        client: Any,
        library: LibraryService,
        users: UserService,
        timezone: str = DEFAULT_TIMEZONE,
    ):
        super().__init__(client)
        self.library = library
        self.users = users
        self.timezone = timezone

    def today(self) -> str:
        return today_in_zone(self.timezone)

    # -----------------------
    # Reads
    # -----------------------
    async def list_meals(self, user_id: str, date: str) -> Dict[str, Any]:
        def _fn(uid, d):
            return (
                self._table("meals")
                .select("*")
                .eq("user_id", uid)
                .eq("date", d)
                .order("created_at")
                .execute()
            )

        res = await self._call_db(_fn, user_id, date)
        return make_result(True, data=rows_of(res["data"])) if res["ok"] else res

    async def list_meals_in_range(self, user_id: str, start: str, end: str) -> Dict[str, Any]:
        """Meals with start <= date <= end, oldest first."""

        def _fn(uid, s, e):
            return (
                self._table("meals")
                .select("*")
                .eq("user_id", uid)
                .gte("date", s)
                .lte("date", e)
                .order("date")
                .order("created_at")
                .execute()
            )

        res = await self._call_db(_fn, user_id, start, end)
        return make_result(True, data=rows_of(res["data"])) if res["ok"] else res

    async def get_meal(self, user_id: str, meal_id: str) -> Dict[str, Any]:
        def _fn(uid, mid):
            return (
                self._table("meals")
                .select("*")
                .eq("user_id", uid)
                .eq("id", mid)
                .maybe_single()
                .execute()
            )

        res = await self._call_db(_fn, user_id, meal_id)
        if res["ok"] and not first_row(res["data"]):
            return make_result(False, error="not_found")
        if res["ok"]:
            return make_result(True, data=first_row(res["data"]))
        return res

    async def get_meals_by_ids(self, user_id: str, meal_ids: List[str]) -> Dict[str, Any]:
        if not meal_ids:
            return make_result(True, data=[])

        def _fn(uid, ids):
            return self._table("meals").select("*").eq("user_id", uid).in_("id", ids).execute()

        res = await self._call_db(_fn, user_id, list(meal_ids))
        return make_result(True, data=rows_of(res["data"])) if res["ok"] else res

    # -----------------------
    # Logging
    # -----------------------
    async def _insert_meals(self, rows: List[Dict[str, Any]]) -> Dict[str, Any]:
        def _fn(data):
            return self._table("meals").insert(data).execute()

        res = await self._call_db(_fn, rows)
        return make_result(True, data=rows_of(res["data"])) if res["ok"] else res

    async def log_foods(
        self,
        user_id: str,
        date: str,
        foods: List[Dict[str, Any]],
        meal_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Save analysed foods as meals on `date`.

        `meal_type`, when given, overrides every item's own category. Items
        with neither fall back to Snack.
        """
        rows = []
        for food in foods:
            rows.append(
                {
                    "user_id": user_id,
                    "date": date,
                    "meal_type": meal_type or food.get("meal_type") or "Snack",
                    "food_name": to_title_case(food["food_name"]),
                    "quantity": food["quantity"],
                    **Nutrients.from_row(food).as_dict(),
                    "is_confirmed": bool(food.get("is_confirmed")),
                }
            )
        res = await self._insert_meals(rows)
        if res["ok"]:
            logger.info("Logged %d food(s) on %s for user=%s", len(rows), date, user_id)
        return res

    async def add_manual(self, user_id: str, entry: Dict[str, Any]) -> Dict[str, Any]:
        """Log a hand-entered food as confirmed and make sure the library has it."""
        nutrients = Nutrients.from_row(entry)
        name = to_title_case(entry["food_name"].strip())
        quantity = entry["quantity"].strip()
        row = {
            "user_id": user_id,
            "date": entry["date"],
            "meal_type": entry.get("meal_type") or "Breakfast",
            "food_name": name,
            "quantity": quantity,
            **nutrients.as_dict(),
            "is_confirmed": True,
        }
        res = await self._insert_meals([row])
        if not res["ok"]:
            return res
        lib = await self.library.upsert_confirmed_food(user_id, name, quantity, nutrients)
        if not lib["ok"]:
            return lib
        return make_result(
            True, data=first_row(res["data"]), diagnostics={"library_created": lib["diagnostics"].get("created")}
        )

    async def log_confirmed_food(
        self,
        user_id: str,
        food_id: str,
        meal_type: str = "Breakfast",
        multiplier: float = 1,
        date: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Log a library food scaled by `multiplier`. Future dates are allowed for meal prep."""
        food_res = await self.library.get_confirmed_food(user_id, food_id)
        if not food_res["ok"]:
            return food_res
        food = food_res["data"]
        base = Nutrients.from_row(food)
        row = {
            "user_id": user_id,
            "date": date or self.today(),
            "meal_type": meal_type,
            "food_name": food["food_name"],
            "quantity": scale_quantity(food.get("quantity") or "", multiplier),
            **{k: v * multiplier for k, v in base.as_dict().items()},
            "is_confirmed": True,
        }
        res = await self._insert_meals([row])
        return make_result(True, data=first_row(res["data"])) if res["ok"] else res

    async def log_recipe(
        self,
        user_id: str,
        recipe_id: str,
        meal_type: str = "Snack",
        date: Optional[str] = None,
    ) -> Dict[str, Any]:
        recipe_res = await self.library.get_recipe(user_id, recipe_id)
        if not recipe_res["ok"]:
            return recipe_res
        recipe = recipe_res["data"]
        row = {
            "user_id": user_id,
            "date": date or self.today(),
            "meal_type": meal_type,
            "food_name": recipe["recipe_name"],
            "quantity": "1 serving",
            **{k: float(recipe.get(f"total_{k}") or 0) for k in NUTRIENT_KEYS},
            "is_confirmed": True,
            "is_recipe": True,
            "recipe_id": recipe["id"],
        }
        res = await self._insert_meals([row])
        return make_result(True, data=first_row(res["data"])) if res["ok"] else res

    async def copy_meals(
        self, user_id: str, source_date: str, meal_type: str, target_date: str
    ) -> Dict[str, Any]:
        """Duplicate every `meal_type` meal of `source_date` onto `target_date`."""
        src = await self.list_meals(user_id, source_date)
        if not src["ok"]:
            return src
        meals = [m for m in src["data"] if m.get("meal_type") == meal_type]
        if not meals:
            return make_result(False, error="not_found")
        rows = [
            {**{c: m.get(c) for c in COPIED_COLUMNS}, "user_id": user_id, "date": target_date}
            for m in meals
        ]
        res = await self._insert_meals(rows)
        if res["ok"]:
            logger.info(
                "Copied %d %s meal(s) %s -> %s for user=%s",
                len(rows), meal_type, source_date, target_date, user_id,
            )
        return res

    async def toggle_supplement(
        self, user_id: str, supplement_id: str, date: str, checked: bool
    ) -> Dict[str, Any]:
        supplement = SUPPLEMENTS.get(supplement_id)
        if supplement is None:
            return make_result(False, error="not_found")

        def _find(uid, sid, d):
            return (
                self._table("meals")
                .select("*")
                .eq("user_id", uid)
                .eq("date", d)
                .eq("is_supplement", True)
                .eq("supplement_id", sid)
                .execute()
            )

        existing = await self._call_db(_find, user_id, supplement_id, date)
        if not existing["ok"]:
            return existing
        current = rows_of(existing["data"])

        if checked:
            if current:
                return make_result(True, data=current[0], diagnostics={"changed": False})
            row = {
                "user_id": user_id,
                "date": date,
                "meal_type": SUPPLEMENT_MEAL_TYPE,
                "food_name": supplement["name"],
                "quantity": SUPPLEMENT_QUANTITY,
                **{k: float(supplement[k]) for k in NUTRIENT_KEYS},
                "is_confirmed": True,
                "is_supplement": True,
                "supplement_id": supplement_id,
            }
            res = await self._insert_meals([row])
            if not res["ok"]:
                return res
            return make_result(True, data=first_row(res["data"]), diagnostics={"changed": True})

        if not current:
            return make_result(True, data=None, diagnostics={"changed": False})

        def _delete(uid, ids):
            return self._table("meals").delete().eq("user_id", uid).in_("id", ids).execute()

        res = await self._call_db(_delete, user_id, [m["id"] for m in current])
        if not res["ok"]:
            return res
        return make_result(True, data=None, diagnostics={"changed": True})

    # -----------------------
    # Edit / confirm / delete
    # -----------------------
    async def update_meal(self, user_id: str, meal_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        data = {k: v for k, v in patch.items() if k != "is_confirmed"}
        if "food_name" in data and data["food_name"]:
            data["food_name"] = to_title_case(data["food_name"].strip())
        if not data:
            return await self.get_meal(user_id, meal_id)

        def _fn(uid, mid, payload):
            return self._table("meals").update(payload).eq("user_id", uid).eq("id", mid).execute()

        res = await self._call_db(_fn, user_id, meal_id, data)
        if res["ok"] and not first_row(res["data"]):
            return make_result(False, error="not_found")
        if res["ok"]:
            return make_result(True, data=first_row(res["data"]))
        return res

    async def confirm_meal(self, user_id: str, meal_id: str) -> Dict[str, Any]:
        """
        Mark a meal confirmed and record it in the library.

        Safe to repeat: the meal stays confirmed and the library entry is
        not duplicated.
        """
        meal_res = await self.get_meal(user_id, meal_id)
        if not meal_res["ok"]:
            return meal_res
        meal = meal_res["data"]

        if not meal.get("is_confirmed"):

            def _fn(uid, mid):
                return (
                    self._table("meals")
                    .update({"is_confirmed": True})
                    .eq("user_id", uid)
                    .eq("id", mid)
                    .execute()
                )

            res = await self._call_db(_fn, user_id, meal_id)
            if not res["ok"]:
                return res
            meal = first_row(res["data"]) or {**meal, "is_confirmed": True}

        lib = await self.library.upsert_confirmed_food(
            user_id, meal["food_name"], meal["quantity"], Nutrients.from_row(meal)
        )
        if not lib["ok"]:
            # the meal stays confirmed; confirming again retries the library write
            logger.warning(
                "Meal %s confirmed but library upsert failed for user=%s: %s",
                meal_id,
                user_id,
                lib.get("error"),
            )
            return make_result(
                True,
                data=meal,
                diagnostics={"library_created": None, "library_error": lib.get("error")},
            )
        return make_result(True, data=meal, diagnostics={"library_created": lib["diagnostics"].get("created")})

    async def delete_meal(self, user_id: str, meal_id: str) -> Dict[str, Any]:
        def _fn(uid, mid):
            return self._table("meals").delete().eq("user_id", uid).eq("id", mid).execute()

        res = await self._call_db(_fn, user_id, meal_id)
        if res["ok"] and not rows_of(res["data"]):
            return make_result(False, error="not_found")
        if res["ok"]:
            return make_result(True, data={"id": meal_id})
        return res

    # -----------------------
    # Dashboard
    # -----------------------
    async def dashboard(self, user_id: str, date: str) -> Dict[str, Any]:
        meals_res = await self.list_meals(user_id, date)
        if not meals_res["ok"]:
            return meals_res
        settings_res = await self.users.get_settings(user_id)
        if not settings_res["ok"]:
            return settings_res
        stats_res = await self.users.get_daily_stats(user_id, date)
        if not stats_res["ok"]:
            return stats_res

        meals = meals_res["data"]
        confirmed = [m for m in meals if m.get("is_confirmed")]
        pending = [m for m in meals if not m.get("is_confirmed")]
        stats = stats_res["data"] or {}
        goals = calculate_goals(settings_res["data"], stats)
        totals = sum_nutrients(confirmed)

        return make_result(
            True,
            data={
                "date": date,
                "totals": totals,
                "pending": {"count": len(pending), **sum_nutrients(pending)},
                "goals": goals,
                "remaining": remaining(goals, totals),
                "weight": stats.get("weight"),
                "calories_burned": stats.get("calories_burned"),
                "weekly_goal": stats.get("weekly_goal"),
                "meals": group_by_meal_type(meals),
            },
        )
