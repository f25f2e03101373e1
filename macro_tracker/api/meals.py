"""Meal log routes. All require a signed-in user."""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query

from macro_tracker.api.deps import Services, checked_date, current_user, get_services, unwrap
from macro_tracker.schemas import (
    CopyMealsRequest,
    LogMealsRequest,
    ManualMealRequest,
    MealUpdate,
    SupplementToggle,
)
from macro_tracker.services.meal_service import SUPPLEMENTS, group_by_meal_type

router = APIRouter()


@router.get("")
async def list_meals(
    date: Optional[str] = Query(default=None),
    user_id: str = Depends(current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    day = checked_date(date) or services.meals.today()
    meals = unwrap(await services.meals.list_meals(user_id, day), "fetch meals")
    return {"date": day, "meals": meals, "by_meal_type": group_by_meal_type(meals)}


@router.post("", status_code=201)
async def log_meals(
    body: LogMealsRequest,
    user_id: str = Depends(current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    foods = [f.model_dump() for f in body.foods]
    meals = unwrap(
        await services.meals.log_foods(user_id, body.date, foods, meal_type=body.meal_type),
        "save meals",
    )
    return {"meals": meals}


@router.post("/manual", status_code=201)
async def add_manual_meal(
    body: ManualMealRequest,
    user_id: str = Depends(current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    meal = unwrap(await services.meals.add_manual(user_id, body.model_dump()), "add food")
    return {"meal": meal}


@router.post("/copy", status_code=201)
async def copy_meals(
    body: CopyMealsRequest,
    user_id: str = Depends(current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    meals = unwrap(
        await services.meals.copy_meals(user_id, body.source_date, body.meal_type, body.target_date),
        "copy meal",
        missing=f"No {body.meal_type} meals on {body.source_date}",
    )
    return {"meals": meals, "count": len(meals)}


@router.get("/supplements")
async def list_supplements(user_id: str = Depends(current_user)) -> Dict[str, Any]:
    return {"supplements": [{"id": sid, **s} for sid, s in SUPPLEMENTS.items()]}


@router.put("/supplements/{supplement_id}")
async def toggle_supplement(
    supplement_id: str,
    body: SupplementToggle,
    user_id: str = Depends(current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    meal = unwrap(
        await services.meals.toggle_supplement(user_id, supplement_id, body.date, body.checked),
        "update supplement",
        missing="Supplement not found",
    )
    return {"checked": body.checked, "meal": meal}


@router.patch("/{meal_id}")
async def update_meal(
    meal_id: str,
    body: MealUpdate,
    user_id: str = Depends(current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    patch = body.model_dump(exclude_unset=True)
    meal = unwrap(await services.meals.update_meal(user_id, meal_id, patch), "update meal", "Meal not found")
    return {"meal": meal}


@router.post("/{meal_id}/confirm")
async def confirm_meal(
    meal_id: str,
    user_id: str = Depends(current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    meal = unwrap(await services.meals.confirm_meal(user_id, meal_id), "confirm meal", "Meal not found")
    return {"meal": meal}


@router.delete("/{meal_id}")
async def delete_meal(
    meal_id: str,
    user_id: str = Depends(current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    return unwrap(await services.meals.delete_meal(user_id, meal_id), "delete meal", "Meal not found")
