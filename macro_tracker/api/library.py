"""Food library routes: confirmed foods, recipes, excluded foods, ingredients on hand."""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query

from macro_tracker.api.deps import Services, current_user, get_services, unwrap
from macro_tracker.schemas import (
    ConfirmedFoodUpdate,
    CreateRecipeRequest,
    IngredientEntry,
    LogConfirmedFoodRequest,
    LogRecipeRequest,
    NameEntry,
    RecipeUpdate,
)

router = APIRouter()


# Confirmed foods
@router.get("/foods")
async def list_foods(
    search: Optional[str] = Query(default=None),
    user_id: str = Depends(current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    foods = unwrap(await services.library.list_confirmed_foods(user_id, search=search), "fetch foods")
    return {"foods": foods}


@router.patch("/foods/{food_id}")
async def update_food(
    food_id: str,
    body: ConfirmedFoodUpdate,
    user_id: str = Depends(current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    food = unwrap(
        await services.library.update_confirmed_food(user_id, food_id, body.model_dump(exclude_unset=True)),
        "update food",
        "Food not found",
    )
    return {"food": food}


@router.delete("/foods/{food_id}")
async def delete_food(
    food_id: str,
    user_id: str = Depends(current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    return unwrap(await services.library.delete_confirmed_food(user_id, food_id), "delete food", "Food not found")


@router.post("/foods/{food_id}/log", status_code=201)
async def log_food(
    food_id: str,
    body: LogConfirmedFoodRequest,
    user_id: str = Depends(current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    meal = unwrap(
        await services.meals.log_confirmed_food(
            user_id, food_id, meal_type=body.meal_type, multiplier=body.multiplier, date=body.date
        ),
        "log food",
        "Food not found",
    )
    return {"meal": meal}


# Recipes
@router.get("/recipes")
async def list_recipes(
    search: Optional[str] = Query(default=None),
    user_id: str = Depends(current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    return {"recipes": unwrap(await services.library.list_recipes(user_id, search=search), "fetch recipes")}


@router.post("/recipes", status_code=201)
async def create_recipe(
    body: CreateRecipeRequest,
    user_id: str = Depends(current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    meals = unwrap(await services.meals.get_meals_by_ids(user_id, body.meal_ids), "create recipe")
    recipe = unwrap(await services.library.create_recipe(user_id, body.recipe_name, meals), "create recipe")
    return {"recipe": recipe}


@router.patch("/recipes/{recipe_id}")
async def update_recipe(
    recipe_id: str,
    body: RecipeUpdate,
    user_id: str = Depends(current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    ingredients = [i.model_dump() for i in body.ingredients] if body.ingredients is not None else None
    recipe = unwrap(
        await services.library.update_recipe(
            user_id, recipe_id, recipe_name=body.recipe_name, ingredients=ingredients
        ),
        "update recipe",
        "Recipe not found",
    )
    return {"recipe": recipe}


@router.delete("/recipes/{recipe_id}")
async def delete_recipe(
    recipe_id: str,
    user_id: str = Depends(current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    return unwrap(await services.library.delete_recipe(user_id, recipe_id), "delete recipe", "Recipe not found")


@router.post("/recipes/{recipe_id}/log", status_code=201)
async def log_recipe(
    recipe_id: str,
    body: LogRecipeRequest,
    user_id: str = Depends(current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    meal = unwrap(
        await services.meals.log_recipe(user_id, recipe_id, meal_type=body.meal_type, date=body.date),
        "log recipe",
        "Recipe not found",
    )
    return {"meal": meal}


# Excluded foods
@router.get("/excluded")
async def list_excluded(
    user_id: str = Depends(current_user), services: Services = Depends(get_services)
) -> Dict[str, Any]:
    return {"excluded_foods": unwrap(await services.library.list_excluded_foods(user_id), "fetch excluded foods")}


@router.post("/excluded", status_code=201)
async def add_excluded(
    body: NameEntry,
    user_id: str = Depends(current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    entry = unwrap(await services.library.add_excluded_food(user_id, body.name), "add excluded food")
    return {"excluded_food": entry}


@router.delete("/excluded/{entry_id}")
async def remove_excluded(
    entry_id: str,
    user_id: str = Depends(current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    return unwrap(
        await services.library.remove_excluded_food(user_id, entry_id), "remove excluded food", "Entry not found"
    )


# Ingredients on hand
@router.get("/ingredients")
async def list_ingredients(
    user_id: str = Depends(current_user), services: Services = Depends(get_services)
) -> Dict[str, Any]:
    return {"ingredients": unwrap(await services.library.list_ingredients_on_hand(user_id), "fetch ingredients")}


@router.post("/ingredients", status_code=201)
async def add_ingredient(
    body: IngredientEntry,
    user_id: str = Depends(current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    entry = unwrap(
        await services.library.add_ingredient_on_hand(user_id, body.ingredient_name, body.quantity),
        "add ingredient",
    )
    return {"ingredient": entry}


@router.delete("/ingredients/{entry_id}")
async def remove_ingredient(
    entry_id: str,
    user_id: str = Depends(current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    return unwrap(
        await services.library.remove_ingredient_on_hand(user_id, entry_id), "remove ingredient", "Entry not found"
    )
