# macro_tracker/services/analysis_service.py
"""
Meal-analysis pipeline: free-text description -> reconciled food items.

Flow:
  1. One AI call for the whole description, with the user's confirmed-food
     library embedded in the system prompt.
  2. Per item, concurrently: library match > validated USDA record >
     (optional) USDA/AI blend > AI estimate.
  3. Names are title-cased and the meal type is resolved.

A malformed AI reply fails the whole request. Item-level lookup failures
only downgrade that item to the AI estimate.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

from macro_tracker.errors import MalformedAIResponseError
from macro_tracker.schemas import AnalyzedFood, DataSource, Err, ExtractedFood, Nutrients
from macro_tracker.services.ai_gateway import AIGatewayClient, parse_food_items
from macro_tracker.services.food_database import FoodDatabaseService
from macro_tracker.services.library_service import LibraryService, find_in_library
from macro_tracker.services.nutrient_validator import is_plausible, rejection_reason
from macro_tracker.utils.text import mask, normalize_meal_type, to_title_case

logger = logging.getLogger(__name__)

ANALYSIS_PROMPT = """You are a nutrition analysis assistant. When given a description of a meal, extract all individual food items and provide detailed nutritional information for each.{library}

Return ONLY valid JSON in this format:
{{
  "foods": [
    {{
      "foodName": "Banana",
      "quantity": "1 medium",
      "calories": 105,
      "protein": 1.3,
      "carbs": 27,
      "fats": 0.4,
      "fiber": 3.1,
      "mealType": "Snack"
    }}
  ]
}}

Important formatting rules:
- Food names: Use Title Case (e.g., "Chicken Breast", "Greek Yogurt", "Peanut Butter")
- Quantities: Use standard abbreviations:
  * g (grams), oz (ounces), lb (pounds)
  * cup/cups, tbsp (tablespoon), tsp (teaspoon)
  * slice/slices, piece/pieces
  * small, medium, large (for sizes)
  * Examples: "4 oz", "1 cup", "2 tbsp", "100g", "1 medium"
- Extract each food item separately
- Determine appropriate mealType for each item (Breakfast, Lunch, Dinner, or Snack)
- If the food matches a confirmed food in the database, use EXACTLY those nutritional values
- Provide realistic nutritional values per serving for new foods
- Round nutritional values to 1 decimal place
- Return ONLY the JSON object, no explanations or markdown"""


def library_prompt_section(library: List[Dict[str, Any]]) -> str:
    if not library:
        return ""
    lines = [
        f'"{f.get("food_name")}" ({f.get("quantity")}): {f.get("calories")}cal, '
        f'{f.get("protein")}g protein, {f.get("carbs")}g carbs, '
        f'{f.get("fats")}g fats, {f.get("fiber")}g fiber'
        for f in library
    ]
    return "\n\nUser's confirmed food database (use these exact values when matched):\n" + "\n".join(lines)


def build_system_prompt(library: List[Dict[str, Any]]) -> str:
    return ANALYSIS_PROMPT.format(library=library_prompt_section(library))


def blend(a: Nutrients, b: Nutrients) -> Nutrients:
    return Nutrients(
        calories=float(round((a.calories + b.calories) / 2)),
        protein=round((a.protein + b.protein) / 2, 1),
        carbs=round((a.carbs + b.carbs) / 2, 1),
        fats=round((a.fats + b.fats) / 2, 1),
        fiber=round((a.fiber + b.fiber) / 2, 1),
    )


class AnalysisService:

    def __init__(
        self,
        ai: AIGatewayClient,
        food_db: FoodDatabaseService,
        library: LibraryService,
        blend_with_usda: bool = False,
    ):
        self.ai = ai
        self.food_db = food_db
        self.library = library
        self.blend_with_usda = blend_with_usda

    async def analyze(
        self, description: str, user_id: str, meal_type: Optional[str] = None
    ) -> List[AnalyzedFood]:
        """
        Analyse `description` into reconciled food items.

        Raises:
            MalformedAIResponseError: the AI reply is not a valid foods list
            RateLimitedError / PaymentRequiredError / ExternalServiceError:
                propagated from the AI gateway
        """
        lib_res = await self.library.list_confirmed_foods(user_id)
        if not lib_res["ok"]:
            # Analysis still works without the library; it just can't override values.
            logger.warning(
                "Could not load confirmed foods for user=%s: %s", mask(user_id), lib_res.get("error")
            )
        library = lib_res.get("data") or []

        content = await self.ai.complete(build_system_prompt(library), description)
        parsed = parse_food_items(content)
        if isinstance(parsed, Err):
            logger.error("Malformed AI reply for user=%s: %s", mask(user_id), parsed.reason)
            raise MalformedAIResponseError(f"Could not parse AI response: {parsed.reason}")

        hint = normalize_meal_type(meal_type)
        foods = await asyncio.gather(
            *(self.reconcile(item, library, hint) for item in parsed.value)
        )
        logger.info(
            "Analysed %d item(s) for user=%s: %s",
            len(foods),
            mask(user_id),
            ", ".join(f"{f.food_name}={f.data_source.value}" for f in foods),
        )
        return list(foods)

    async def reconcile(
        self,
        item: ExtractedFood,
        library: List[Dict[str, Any]],
        meal_type_hint: Optional[str] = None,
    ) -> AnalyzedFood:
        """Resolve one extracted item to its best nutrient source."""
        name = to_title_case(item.food_name)
        meal_type = meal_type_hint or item.meal_type

        match = find_in_library(library, item.food_name, item.quantity)
        if match:
            return self._food(name, item.quantity, Nutrients.from_row(match), meal_type, DataSource.LIBRARY, True)

        ai_values = item.nutrients()
        usda = await self.food_db.lookup_generic(item.food_name)
        if usda is not None and usda.calories <= 0:
            usda = None
        if usda is not None and not is_plausible(usda):
            logger.debug("Discarding USDA record for %r: %s", name, rejection_reason(usda))
            usda = None

        ai_ok = is_plausible(ai_values)
        if usda is not None:
            if self.blend_with_usda and ai_ok:
                return self._food(name, item.quantity, blend(usda, ai_values), meal_type, DataSource.BLENDED)
            return self._food(name, item.quantity, usda, meal_type, DataSource.USDA)

        source = DataSource.AI if ai_ok else DataSource.NEEDS_REVIEW
        return self._food(name, item.quantity, ai_values, meal_type, source)

    @staticmethod
    def _food(
        name: str,
        quantity: str,
        nutrients: Nutrients,
        meal_type: Optional[str],
        source: DataSource,
        confirmed: bool = False,
    ) -> AnalyzedFood:
        return AnalyzedFood(
            food_name=name,
            quantity=quantity,
            meal_type=meal_type,
            is_confirmed=confirmed,
            data_source=source,
            **nutrients.as_dict(),
        )
