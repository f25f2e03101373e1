# macro_tracker/services/library_service.py
"""
Personal food library: confirmed foods, recipes, excluded foods and ingredients on hand.

Confirmed foods are keyed by (food name, quantity); the name comparison is
case-insensitive and the quantity string must match exactly. Recipes hold
denormalized ingredient snapshots, not live references to meals.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from macro_tracker.schemas import Nutrients
from macro_tracker.services.supabase_service import (
    SupabaseService,
    first_row,
    make_result,
    rows_of,
)
from macro_tracker.utils.dates import now_iso
from macro_tracker.utils.text import to_title_case

logger = logging.getLogger(__name__)

NUTRIENT_KEYS = ("calories", "protein", "carbs", "fats", "fiber")


def same_food(row: Dict[str, Any], food_name: str, quantity: str) -> bool:
    return (row.get("food_name") or "").lower() == (food_name or "").lower() and row.get(
        "quantity"
    ) == quantity


def find_in_library(
    library: Iterable[Dict[str, Any]], food_name: str, quantity: str
) -> Optional[Dict[str, Any]]:
    for row in library:
        if same_food(row, food_name, quantity):
            return row
    return None


def ingredient_snapshot(meal: Dict[str, Any]) -> Dict[str, Any]:
    snap = {"food_name": meal.get("food_name"), "quantity": meal.get("quantity")}
    for key in NUTRIENT_KEYS:
        snap[key] = float(meal.get(key) or 0)
    return snap


def recipe_totals(ingredients: List[Dict[str, Any]]) -> Dict[str, float]:
    return {
        f"total_{key}": round(sum(float(i.get(key) or 0) for i in ingredients), 1)
        for key in NUTRIENT_KEYS
    }


class LibraryService(SupabaseService):

    # -----------------------
    # Confirmed foods
    # -----------------------
    async def list_confirmed_foods(
        self, user_id: str, search: Optional[str] = None, limit: Optional[int] = None
    ) -> Dict[str, Any]:
        def _fn(uid):
            q = self._table("confirmed_foods").select("*").eq("user_id", uid).order("food_name")
            if limit:
                q = q.limit(limit)
            return q.execute()

        res = await self._call_db(_fn, user_id)
        if not res["ok"]:
            return res
        foods = rows_of(res["data"])
        if search:
            needle = search.strip().lower()
            foods = [f for f in foods if needle in (f.get("food_name") or "").lower()]
        return make_result(True, data=foods, diagnostics={"count": len(foods)})

    async def get_confirmed_food(self, user_id: str, food_id: str) -> Dict[str, Any]:
        def _fn(uid, fid):
            return (
                self._table("confirmed_foods")
                .select("*")
                .eq("user_id", uid)
                .eq("id", fid)
                .maybe_single()
                .execute()
            )

        res = await self._call_db(_fn, user_id, food_id)
        if res["ok"] and not first_row(res["data"]):
            return make_result(False, error="not_found")
        if res["ok"]:
            return make_result(True, data=first_row(res["data"]))
        return res

    async def find_confirmed_food(
        self, user_id: str, food_name: str, quantity: str
    ) -> Dict[str, Any]:
        """Exact (case-insensitive name, exact quantity) lookup; data is the row or None."""

        def _fn(uid, qty):
            return (
                self._table("confirmed_foods")
                .select("*")
                .eq("user_id", uid)
                .eq("quantity", qty)
                .execute()
            )

        res = await self._call_db(_fn, user_id, quantity)
        if not res["ok"]:
            return res
        return make_result(True, data=find_in_library(rows_of(res["data"]), food_name, quantity))

    async def upsert_confirmed_food(
        self, user_id: str, food_name: str, quantity: str, nutrients: Nutrients
    ) -> Dict[str, Any]:
        """
        Add (food_name, quantity) to the library unless an entry already exists.

        The existing entry is left untouched. diagnostics["created"] tells which
        branch ran.
        """
        existing = await self.find_confirmed_food(user_id, food_name, quantity)
        if not existing["ok"]:
            return existing
        if existing["data"]:
            return make_result(True, data=existing["data"], diagnostics={"created": False})

        row = {
            "user_id": user_id,
            "food_name": food_name,
            "quantity": quantity,
            **nutrients.as_dict(),
        }

        def _fn(data):
            return self._table("confirmed_foods").insert(data).execute()

        res = await self._call_db(_fn, row)
        if not res["ok"]:
            return res
        logger.info("Added %r (%s) to library for user=%s", food_name, quantity, user_id)
        return make_result(True, data=first_row(res["data"]), diagnostics={"created": True})

    async def update_confirmed_food(
        self, user_id: str, food_id: str, patch: Dict[str, Any]
    ) -> Dict[str, Any]:
        if not patch:
            return await self.get_confirmed_food(user_id, food_id)

        # (food_name, quantity) stays unique per user
        if "food_name" in patch or "quantity" in patch:
            current = await self.get_confirmed_food(user_id, food_id)
            if not current["ok"]:
                return current
            name = patch.get("food_name", current["data"].get("food_name"))
            quantity = patch.get("quantity", current["data"].get("quantity"))
            clash = await self.find_confirmed_food(user_id, name, quantity)
            if not clash["ok"]:
                return clash
            if clash["data"] and clash["data"].get("id") != food_id:
                return make_result(
                    False, error="invalid: A food with this name and quantity already exists"
                )

        def _fn(uid, fid, data):
            return (
                self._table("confirmed_foods")
                .update(data)
                .eq("user_id", uid)
                .eq("id", fid)
                .execute()
            )

        res = await self._call_db(_fn, user_id, food_id, patch)
        if res["ok"] and not first_row(res["data"]):
            return make_result(False, error="not_found")
        if res["ok"]:
            return make_result(True, data=first_row(res["data"]))
        return res

    async def delete_confirmed_food(self, user_id: str, food_id: str) -> Dict[str, Any]:
        return await self._delete_owned("confirmed_foods", user_id, food_id)

    # -----------------------
    # Recipes
    # -----------------------
    async def list_recipes(self, user_id: str, search: Optional[str] = None) -> Dict[str, Any]:
        def _fn(uid):
            return (
                self._table("recipes").select("*").eq("user_id", uid).order("recipe_name").execute()
            )

        res = await self._call_db(_fn, user_id)
        if not res["ok"]:
            return res
        recipes = rows_of(res["data"])
        if search:
            needle = search.strip().lower()
            recipes = [r for r in recipes if needle in (r.get("recipe_name") or "").lower()]
        return make_result(True, data=recipes)

    async def get_recipe(self, user_id: str, recipe_id: str) -> Dict[str, Any]:
        def _fn(uid, rid):
            return (
                self._table("recipes")
                .select("*")
                .eq("user_id", uid)
                .eq("id", rid)
                .maybe_single()
                .execute()
            )

        res = await self._call_db(_fn, user_id, recipe_id)
        if res["ok"] and not first_row(res["data"]):
            return make_result(False, error="not_found")
        if res["ok"]:
            return make_result(True, data=first_row(res["data"]))
        return res

    async def create_recipe(
        self, user_id: str, recipe_name: str, meals: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        """Bundle a chosen subset of logged meals into a named recipe."""
        if not (recipe_name or "").strip():
            return make_result(False, error="invalid: Please enter a recipe name")
        if not meals:
            return make_result(False, error="invalid: Please select at least one food item")

        ingredients = [ingredient_snapshot(m) for m in meals]
        row = {
            "user_id": user_id,
            "recipe_name": to_title_case(recipe_name.strip()),
            "ingredients": ingredients,
            **recipe_totals(ingredients),
        }

        def _fn(data):
            return self._table("recipes").insert(data).execute()

        res = await self._call_db(_fn, row)
        if res["ok"]:
            return make_result(True, data=first_row(res["data"]))
        return res

    async def update_recipe(
        self,
        user_id: str,
        recipe_id: str,
        recipe_name: Optional[str] = None,
        ingredients: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        patch: Dict[str, Any] = {}
        if recipe_name is not None:
            if not recipe_name.strip():
                return make_result(False, error="invalid: Please enter a recipe name")
            patch["recipe_name"] = to_title_case(recipe_name.strip())
        if ingredients is not None:
            if not ingredients:
                return make_result(False, error="invalid: A recipe needs at least one ingredient")
            snaps = [ingredient_snapshot(i) for i in ingredients]
            patch["ingredients"] = snaps
            patch.update(recipe_totals(snaps))
        if not patch:
            return await self.get_recipe(user_id, recipe_id)

        def _fn(uid, rid, data):
            return self._table("recipes").update(data).eq("user_id", uid).eq("id", rid).execute()

        res = await self._call_db(_fn, user_id, recipe_id, patch)
        if res["ok"] and not first_row(res["data"]):
            return make_result(False, error="not_found")
        if res["ok"]:
            return make_result(True, data=first_row(res["data"]))
        return res

    async def delete_recipe(self, user_id: str, recipe_id: str) -> Dict[str, Any]:
        return await self._delete_owned("recipes", user_id, recipe_id)

    # -----------------------
    # Excluded foods / ingredients on hand
    # -----------------------
    async def list_excluded_foods(self, user_id: str) -> Dict[str, Any]:
        def _fn(uid):
            return (
                self._table("excluded_foods").select("*").eq("user_id", uid).order("food_name").execute()
            )

        res = await self._call_db(_fn, user_id)
        return make_result(True, data=rows_of(res["data"])) if res["ok"] else res

    async def add_excluded_food(self, user_id: str, food_name: str) -> Dict[str, Any]:
        name = (food_name or "").strip()
        if not name:
            return make_result(False, error="invalid: Food name is required")

        def _fn(data):
            return self._table("excluded_foods").insert(data).execute()

        res = await self._call_db(_fn, {"user_id": user_id, "food_name": name})
        return make_result(True, data=first_row(res["data"])) if res["ok"] else res

    async def remove_excluded_food(self, user_id: str, entry_id: str) -> Dict[str, Any]:
        return await self._delete_owned("excluded_foods", user_id, entry_id)

    async def list_ingredients_on_hand(self, user_id: str) -> Dict[str, Any]:
        def _fn(uid):
            return (
                self._table("ingredients_on_hand")
                .select("*")
                .eq("user_id", uid)
                .order("ingredient_name")
                .execute()
            )

        res = await self._call_db(_fn, user_id)
        return make_result(True, data=rows_of(res["data"])) if res["ok"] else res

    async def add_ingredient_on_hand(
        self, user_id: str, ingredient_name: str, quantity: Optional[str] = None
    ) -> Dict[str, Any]:
        name = (ingredient_name or "").strip()
        if not name:
            return make_result(False, error="invalid: Ingredient name is required")
        row = {"user_id": user_id, "ingredient_name": name, "quantity": quantity}

        def _fn(data):
            return self._table("ingredients_on_hand").insert(data).execute()

        res = await self._call_db(_fn, row)
        return make_result(True, data=first_row(res["data"])) if res["ok"] else res

    async def remove_ingredient_on_hand(self, user_id: str, entry_id: str) -> Dict[str, Any]:
        return await self._delete_owned("ingredients_on_hand", user_id, entry_id)

    # -----------------------
    # Internal
    # -----------------------
    async def _delete_owned(self, table: str, user_id: str, row_id: str) -> Dict[str, Any]:
        def _fn(uid, rid):
            return self._table(table).delete().eq("user_id", uid).eq("id", rid).execute()

        res = await self._call_db(_fn, user_id, row_id)
        if res["ok"] and not rows_of(res["data"]):
            return make_result(False, error="not_found")
        if res["ok"]:
            logger.info("Deleted %s id=%s for user=%s", table, row_id, user_id)
            return make_result(True, data={"id": row_id, "deleted_at": now_iso()})
        return res
