# tests/test_library_service.py
import pytest

from macro_tracker.schemas import Nutrients
from macro_tracker.services.library_service import find_in_library, recipe_totals
from macro_tracker.tests.conftest import OTHER_USER_ID, USER_ID


def food(name, quantity="1 cup", calories=100, user_id=USER_ID):
    return {"user_id": user_id, "food_name": name, "quantity": quantity, "calories": calories, "protein": 5, "carbs": 10, "fats": 2, "fiber": 1}


def test_find_in_library_requires_exact_quantity():
    library = [food("Greek Yogurt", "1 cup")]
    assert find_in_library(library, "greek yogurt", "1 cup") is library[0]
    assert find_in_library(library, "Greek Yogurt", "1 Cup") is None


def test_recipe_totals_sum_ingredients():
    totals = recipe_totals([{"calories": 100, "protein": 5.25}, {"calories": 50.5, "protein": 2}])
    assert totals["total_calories"] == 150.5
    assert totals["total_protein"] == 7.2
    assert totals["total_fiber"] == 0


@pytest.mark.asyncio
async def test_list_confirmed_foods_search_and_scope(fake_supabase, library_service):
    fake_supabase.seed("confirmed_foods", food("Greek Yogurt"), food("Oat Milk"), food("Yogurt Bar", user_id=OTHER_USER_ID))

    res = await library_service.list_confirmed_foods(USER_ID, search="YOG")

    assert res["ok"]
    assert [f["food_name"] for f in res["data"]] == ["Greek Yogurt"]
    everything = await library_service.list_confirmed_foods(USER_ID)
    assert [f["food_name"] for f in everything["data"]] == ["Greek Yogurt", "Oat Milk"]


@pytest.mark.asyncio
async def test_upsert_confirmed_food_skips_existing(fake_supabase, library_service):
    first = await library_service.upsert_confirmed_food(USER_ID, "Rice", "1 cup", Nutrients(200, 4, 45, 0.4, 0.6))
    second = await library_service.upsert_confirmed_food(USER_ID, "RICE", "1 cup", Nutrients(999, 1, 1, 1, 1))
    other_qty = await library_service.upsert_confirmed_food(USER_ID, "Rice", "2 cups", Nutrients(400, 8, 90, 0.8, 1.2))

    assert first["diagnostics"]["created"] is True
    assert second["diagnostics"]["created"] is False
    assert second["data"]["calories"] == 200
    assert other_qty["diagnostics"]["created"] is True
    assert len(fake_supabase.rows("confirmed_foods")) == 2


@pytest.mark.asyncio
async def test_update_and_delete_confirmed_food(fake_supabase, library_service):
    row = fake_supabase.seed("confirmed_foods", food("Apple"))[0]

    updated = await library_service.update_confirmed_food(USER_ID, row["id"], {"calories": 95})
    assert updated["data"]["calories"] == 95

    missing = await library_service.update_confirmed_food(OTHER_USER_ID, row["id"], {"calories": 1})
    assert missing["error"] == "not_found"

    assert (await library_service.delete_confirmed_food(USER_ID, row["id"]))["ok"]
    assert fake_supabase.rows("confirmed_foods") == []


@pytest.mark.asyncio
async def test_create_recipe_from_meals(fake_supabase, library_service):
    meals = [
        {"food_name": "Oats", "quantity": "40g", "calories": 150, "protein": 5, "carbs": 27, "fats": 3, "fiber": 4},
        {"food_name": "Whey", "quantity": "1 scoop", "calories": 120, "protein": 24, "carbs": 3, "fats": 1.5, "fiber": 0},
    ]

    res = await library_service.create_recipe(USER_ID, "  protein oats ", meals)

    recipe = res["data"]
    assert recipe["recipe_name"] == "Protein Oats"
    assert recipe["total_calories"] == 270
    assert recipe["total_protein"] == 29
    assert recipe["total_fats"] == 4.5
    assert [i["food_name"] for i in recipe["ingredients"]] == ["Oats", "Whey"]


@pytest.mark.asyncio
async def test_create_recipe_validation(library_service):
    no_name = await library_service.create_recipe(USER_ID, "   ", [{"food_name": "Oats"}])
    no_meals = await library_service.create_recipe(USER_ID, "Oats", [])

    assert no_name["error"] == "invalid: Please enter a recipe name"
    assert no_meals["error"] == "invalid: Please select at least one food item"


@pytest.mark.asyncio
async def test_update_recipe_recomputes_totals(fake_supabase, library_service):
    recipe = (await library_service.create_recipe(USER_ID, "Snack Plate", [food("Cheese", calories=110)]))["data"]

    res = await library_service.update_recipe(
        USER_ID,
        recipe["id"],
        recipe_name="cheese plate",
        ingredients=[food("Cheese", calories=110), food("Crackers", calories=130)],
    )

    assert res["data"]["recipe_name"] == "Cheese Plate"
    assert res["data"]["total_calories"] == 240
    assert len(res["data"]["ingredients"]) == 2
    assert (await library_service.update_recipe(USER_ID, recipe["id"], ingredients=[]))["error"].startswith("invalid")


@pytest.mark.asyncio
async def test_excluded_foods_and_ingredients(fake_supabase, library_service):
    added = await library_service.add_excluded_food(USER_ID, "  mushrooms ")
    assert added["data"]["food_name"] == "mushrooms"
    assert (await library_service.add_excluded_food(USER_ID, "   "))["error"].startswith("invalid")

    ing = await library_service.add_ingredient_on_hand(USER_ID, "eggs", "12")
    assert ing["data"]["quantity"] == "12"
    listed = await library_service.list_ingredients_on_hand(USER_ID)
    assert [i["ingredient_name"] for i in listed["data"]] == ["eggs"]

    assert (await library_service.remove_excluded_food(USER_ID, added["data"]["id"]))["ok"]
    assert (await library_service.remove_excluded_food(USER_ID, added["data"]["id"]))["error"] == "not_found"
    assert (await library_service.list_excluded_foods(USER_ID))["data"] == []


@pytest.mark.asyncio
async def test_update_confirmed_food_keeps_name_quantity_unique(fake_supabase, library_service):
    fake_supabase.seed("confirmed_foods", food("Banana", "1 medium"))
    apple = fake_supabase.seed("confirmed_foods", food("Apple", "1 medium"))[0]

    renamed = await library_service.update_confirmed_food(USER_ID, apple["id"], {"food_name": "banana"})

    assert renamed["error"] == "invalid: A food with this name and quantity already exists"
    keys = sorted((f["food_name"], f["quantity"]) for f in fake_supabase.rows("confirmed_foods"))
    assert keys == [("Apple", "1 medium"), ("Banana", "1 medium")]

    # editing its own key, or moving to a free one, still works
    same = await library_service.update_confirmed_food(USER_ID, apple["id"], {"food_name": "APPLE", "calories": 80})
    assert same["ok"] and same["data"]["food_name"] == "APPLE"
    moved = await library_service.update_confirmed_food(USER_ID, apple["id"], {"quantity": "2 medium"})
    assert moved["data"]["quantity"] == "2 medium"
