# macro_tracker/services/suggestion_service.py
"""AI meal suggestions that respect the user's exclusions and favour their library."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from macro_tracker.services.ai_gateway import AIGatewayClient
from macro_tracker.services.goal_calculator import calculate_meal_targets
from macro_tracker.services.library_service import LibraryService
from macro_tracker.services.user_service import UserService
from macro_tracker.utils.text import format_number, mask

logger = logging.getLogger(__name__)

LIBRARY_PROMPT_LIMIT = 50

SUGGESTION_PROMPT = """You are a nutrition assistant that suggests meals based on user preferences and nutritional goals.

STRICT REQUIREMENTS:
1. NEVER suggest meals containing: {excluded}
2. Prioritize foods from the user's library when possible
3. Provide realistic portion sizes
4. Match the target macros closely

User's Food Library:
{library}
{on_hand}
Target for {meal_type}:
- Calories: {calories} kcal
- Protein: {protein}g
- Carbs: {carbs}g
- Fats: {fats}g

Suggest 3 different meal options that meet these targets. For each meal, provide:
- Meal name
- List of foods with quantities
- Total macros (calories, protein, carbs, fats)
- Brief preparation notes"""


def build_suggestion_prompt(
    meal_type: str,
    targets: Dict[str, Any],
    excluded: List[str],
    library: List[Dict[str, Any]],
    on_hand: List[Dict[str, Any]],
) -> str:
    food_lines = "\n".join(
        f"{f.get('food_name')} ({f.get('quantity')}): {f.get('calories')}cal, "
        f"{f.get('protein')}g protein, {f.get('carbs')}g carbs, {f.get('fats')}g fat"
        for f in library
    )
    on_hand_section = ""
    if on_hand:
        items = ", ".join(
            f"{i.get('ingredient_name')} ({i.get('quantity')})" if i.get("quantity") else str(i.get("ingredient_name"))
            for i in on_hand
        )
        on_hand_section = f"\nIngredients on hand (use these when they fit):\n{items}\n"
    return SUGGESTION_PROMPT.format(
        excluded=", ".join(excluded) or "none",
        library=food_lines or "No saved foods yet",
        on_hand=on_hand_section,
        meal_type=meal_type,
        calories=format_number(targets.get("calories")),
        protein=format_number(targets.get("protein")),
        carbs=format_number(targets.get("carbs")),
        fats=format_number(targets.get("fats")),
    )


class SuggestionService:

    def __init__(self, ai: AIGatewayClient, library: LibraryService, users: UserService):
        self.ai = ai
        self.library = library
        self.users = users

    async def _resolve_targets(
        self, user_id: str, given: Dict[str, Optional[float]]
    ) -> Dict[str, Any]:
        if all(v is not None for v in given.values()):
            return dict(given)
        settings_res = await self.users.get_settings(user_id)
        settings_row = settings_res.get("data") if settings_res["ok"] else None
        weight_res = await self.users.latest_weight(user_id)
        weight = weight_res.get("data") if weight_res["ok"] else None
        computed = calculate_meal_targets(settings_row, weight)
        return {k: (v if v is not None else computed[k]) for k, v in given.items()}

    async def suggest(
        self,
        user_id: str,
        meal_type: str = "lunch",
        target_calories: Optional[float] = None,
        target_protein: Optional[float] = None,
        target_carbs: Optional[float] = None,
        target_fats: Optional[float] = None,
    ) -> str:
        """Return the AI's free-text suggestions; gateway errors propagate."""
        excluded_res = await self.library.list_excluded_foods(user_id)
        library_res = await self.library.list_confirmed_foods(user_id, limit=LIBRARY_PROMPT_LIMIT)
        on_hand_res = await self.library.list_ingredients_on_hand(user_id)
        for label, res in (("excluded", excluded_res), ("library", library_res), ("on_hand", on_hand_res)):
            if not res["ok"]:
                logger.warning("Suggestion context %s unavailable for user=%s", label, mask(user_id))

        targets = await self._resolve_targets(
            user_id,
            {
                "calories": target_calories,
                "protein": target_protein,
                "carbs": target_carbs,
                "fats": target_fats,
            },
        )
        excluded = [r.get("food_name") for r in excluded_res.get("data") or [] if r.get("food_name")]
        system_prompt = build_suggestion_prompt(
            meal_type,
            targets,
            excluded,
            library_res.get("data") or [],
            on_hand_res.get("data") or [],
        )
        user_prompt = f"Suggest 3 {meal_type} meals that avoid {', '.join(excluded) or 'none'}"
        return await self.ai.complete(system_prompt, user_prompt)
