# macro_tracker/services/food_database.py
"""
Nutrient source adapters: Open Food Facts (barcode) and USDA FoodData Central (text search).

Both adapters:
- Use httpx.AsyncClient with a short, fixed timeout.
- Never retry: a timeout, HTTP error, bad payload or empty result is a miss (None).
- Normalise to the five tracked nutrients; calories are rounded to whole kcal
  and macros to one decimal.
"""
from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Dict, FrozenSet, List, Optional

import httpx

from macro_tracker.config.settings import Settings
from macro_tracker.schemas import Nutrients
from macro_tracker.utils.text import to_title_case

logger = logging.getLogger(__name__)

USDA_DATA_TYPE = "Survey (FNDDS)"

# Single-ingredient foods where a database hit is a good match for the AI's item.
GENERIC_FOOD_KEYWORDS: FrozenSet[str] = frozenset(
    {
        "apple", "avocado", "bacon", "banana", "beans", "beef", "blueberries",
        "bread", "broccoli", "butter", "carrot", "carrots", "cheese", "chicken",
        "cottage", "cucumber", "egg", "eggs", "fish", "grapes", "ham", "honey",
        "lettuce", "milk", "oatmeal", "oats", "olive", "onion", "orange", "pasta",
        "peanut", "pear", "pork", "potato", "potatoes", "quinoa", "rice", "salmon",
        "shrimp", "spinach", "steak", "strawberries", "tofu", "tomato", "toast",
        "tuna", "turkey", "yogurt",
    }
)


def is_generic_food(food_name: str) -> bool:
    words = re.findall(r"[a-z]+", (food_name or "").lower())
    return any(w in GENERIC_FOOD_KEYWORDS for w in words)


def _as_float(v: Any) -> Optional[float]:
    try:
        return float(v) if v is not None else None
    except (TypeError, ValueError):
        return None


def _normalized(calories: float, protein: float, carbs: float, fats: float, fiber: float) -> Nutrients:
    return Nutrients(
        calories=float(round(calories)),
        protein=round(protein, 1),
        carbs=round(carbs, 1),
        fats=round(fats, 1),
        fiber=round(fiber, 1),
    )


class FoodDatabaseService:

    def __init__(self, settings: Settings):
        self.settings = settings
        self.timeout = settings.external_lookup_timeout

    async def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        """GET `url` bounded by the lookup timeout; any failure is logged and returns None."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await asyncio.wait_for(client.get(url, params=params), timeout=self.timeout)
            if resp.status_code != 200:
                logger.info("Lookup %s returned HTTP %s", url, resp.status_code)
                return None
            data = resp.json()
            return data if isinstance(data, dict) else None
        except asyncio.TimeoutError:
            logger.info("Lookup %s timed out after %.1fs", url, self.timeout)
            return None
        except (httpx.HTTPError, ValueError) as exc:
            logger.info("Lookup %s failed: %s", url, exc)
            return None

    # -----------------------
    # USDA FoodData Central
    # -----------------------
    async def search_usda(self, food_name: str) -> Optional[Nutrients]:
        """Top text-search hit for `food_name`, or None on any miss."""
        if not food_name:
            return None
        data = await self._get_json(
            f"{self.settings.usda_base_url}/foods/search",
            params={
                "api_key": self.settings.usda_api_key,
                "query": food_name,
                "pageSize": 1,
                "dataType": USDA_DATA_TYPE,
            },
        )
        foods = (data or {}).get("foods") or []
        if not foods:
            return None
        return self._usda_nutrients(foods[0].get("foodNutrients") or [])

    def _usda_nutrients(self, nutrients: List[Dict[str, Any]]) -> Nutrients:
        def value_of(name: str, unit: Optional[str] = None) -> float:
            for n in nutrients:
                if name not in (n.get("nutrientName") or ""):
                    continue
                if unit and (n.get("unitName") or "").upper() not in ("", unit):
                    continue
                return _as_float(n.get("value")) or 0.0
            return 0.0

        return _normalized(
            calories=value_of("Energy", unit="KCAL"),
            protein=value_of("Protein"),
            carbs=value_of("Carbohydrate"),
            fats=value_of("Total lipid"),
            fiber=value_of("Fiber"),
        )

    async def lookup_generic(self, food_name: str) -> Optional[Nutrients]:
        """USDA lookup gated by the generic-food allow-list when that gate is enabled."""
        if self.settings.usda_generic_only and not is_generic_food(food_name):
            logger.debug("Skipping USDA lookup for non-generic food %r", food_name)
            return None
        return await self.search_usda(food_name)

    # -----------------------
    # Open Food Facts
    # -----------------------
    async def fetch_by_barcode(self, barcode: str) -> Optional[Dict[str, Any]]:
        """
        Product facts for `barcode` as a loggable food dict, or None.

        Nutrients are per 100 g; quantity carries the product's serving size.
        """
        barcode = (barcode or "").strip()
        if not barcode.isdigit():
            return None
        data = await self._get_json(f"{self.settings.openfoodfacts_base_url}/product/{barcode}.json")
        if not data or data.get("status") != 1 or not data.get("product"):
            return None

        product = data["product"]
        nutr = product.get("nutriments") or {}
        serving_size = product.get("serving_quantity") or 100
        serving_unit = product.get("serving_quantity_unit") or "g"

        kcal = _as_float(nutr.get("energy-kcal_100g"))
        if kcal is None:
            energy_kj = _as_float(nutr.get("energy_100g"))
            kcal = energy_kj / 4.184 if energy_kj is not None else 0.0

        nutrients = _normalized(
            calories=kcal,
            protein=_as_float(nutr.get("proteins_100g")) or 0.0,
            carbs=_as_float(nutr.get("carbohydrates_100g")) or 0.0,
            fats=_as_float(nutr.get("fat_100g")) or 0.0,
            fiber=_as_float(nutr.get("fiber_100g")) or 0.0,
        )
        return {
            "foodName": to_title_case(product.get("product_name") or "Unknown Product"),
            "quantity": f"{serving_size}{serving_unit}",
            **nutrients.as_dict(),
        }
