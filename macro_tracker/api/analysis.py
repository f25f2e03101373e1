"""
AI endpoints: meal analysis and meal suggestions.

These keep the request contract of the serverless functions they replace:
the user id travels in the JSON body. The caller's session must belong to
that user, since the prompts carry the user's library and exclusions.
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends

from macro_tracker.api.deps import Services, current_user, get_services
from macro_tracker.errors import ForbiddenError
from macro_tracker.schemas import (
    AnalyzeFoodRequest,
    AnalyzeFoodResponse,
    SuggestMealsRequest,
    SuggestMealsResponse,
)

router = APIRouter()


def _same_user(body_user_id: str, session_user_id: str) -> None:
    if body_user_id != session_user_id:
        raise ForbiddenError("userId does not match the signed-in user")


@router.post("/analyze-food")
async def analyze_food(
    body: AnalyzeFoodRequest,
    user_id: str = Depends(current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    _same_user(body.user_id, user_id)
    foods = await services.analysis.analyze(body.description, user_id, body.meal_type)
    return AnalyzeFoodResponse(foods=foods).model_dump(by_alias=True, mode="json")


@router.post("/suggest-meals")
async def suggest_meals(
    body: SuggestMealsRequest,
    user_id: str = Depends(current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    _same_user(body.user_id, user_id)
    text = await services.suggestions.suggest(
        user_id,
        meal_type=body.meal_type,
        target_calories=body.target_calories,
        target_protein=body.target_protein,
        target_carbs=body.target_carbs,
        target_fats=body.target_fats,
    )
    return SuggestMealsResponse(suggestions=text).model_dump()
