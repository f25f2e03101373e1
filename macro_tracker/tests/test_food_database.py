# tests/test_food_database.py
import asyncio

import httpx
import pytest

from macro_tracker.services.food_database import FoodDatabaseService, is_generic_food
from macro_tracker.tests.conftest import FakeResponse, usda_payload


def test_generic_food_allow_list():
    assert is_generic_food("Scrambled Eggs")
    assert is_generic_food("chicken breast")
    assert not is_generic_food("Pad Thai")
    assert not is_generic_food("")


@pytest.mark.asyncio
async def test_search_usda_parses_top_hit(settings, patch_httpx_get):
    patch_httpx_get.routes["foods/search"] = FakeResponse(200, usda_payload(89, 1.09, 22.84, 0.33, 2.6))
    svc = FoodDatabaseService(settings)

    n = await svc.search_usda("banana")

    assert n.calories == 89
    assert n.protein == 1.1
    assert n.carbs == 22.8
    assert n.fats == 0.3
    assert n.fiber == 2.6
    _, kwargs = patch_httpx_get.call_args
    assert kwargs["params"]["query"] == "banana"
    assert kwargs["params"]["pageSize"] == 1
    assert kwargs["params"]["dataType"] == "Survey (FNDDS)"


@pytest.mark.asyncio
async def test_search_usda_miss_cases(settings, patch_httpx_get):
    svc = FoodDatabaseService(settings)

    patch_httpx_get.routes["foods/search"] = FakeResponse(200, {"foods": []})
    assert await svc.search_usda("banana") is None

    patch_httpx_get.routes["foods/search"] = FakeResponse(503, {})
    assert await svc.search_usda("banana") is None

    patch_httpx_get.routes["foods/search"] = FakeResponse(200, ValueError("not json"))
    assert await svc.search_usda("banana") is None


@pytest.mark.asyncio
async def test_search_usda_timeout_is_a_miss(settings, patch_httpx_get):
    svc = FoodDatabaseService(settings)
    patch_httpx_get.routes["foods/search"] = httpx.ReadTimeout("slow")
    assert await svc.search_usda("rice") is None

    patch_httpx_get.routes["foods/search"] = asyncio.TimeoutError()
    assert await svc.search_usda("rice") is None


@pytest.mark.asyncio
async def test_lookup_generic_skips_composite_dishes(settings, patch_httpx_get):
    svc = FoodDatabaseService(settings)
    assert await svc.lookup_generic("Pad Thai") is None
    patch_httpx_get.assert_not_awaited()


@pytest.mark.asyncio
async def test_lookup_generic_gate_can_be_disabled(settings, patch_httpx_get):
    settings.usda_generic_only = False
    patch_httpx_get.routes["foods/search"] = FakeResponse(200, usda_payload(300, 10, 40, 10))
    svc = FoodDatabaseService(settings)
    assert (await svc.lookup_generic("Pad Thai")).calories == 300


@pytest.mark.asyncio
async def test_barcode_lookup(settings, patch_httpx_get):
    patch_httpx_get.routes["/product/3017620422003.json"] = FakeResponse(
        200,
        {
            "status": 1,
            "product": {
                "product_name": "NUTELLA hazelnut spread",
                "serving_quantity": 15,
                "serving_quantity_unit": "g",
                "nutriments": {
                    "energy-kcal_100g": 539,
                    "proteins_100g": 6.3,
                    "carbohydrates_100g": 57.5,
                    "fat_100g": 30.9,
                    "fiber_100g": 0,
                },
            },
        },
    )
    svc = FoodDatabaseService(settings)

    food = await svc.fetch_by_barcode("3017620422003")

    assert food == {
        "foodName": "Nutella Hazelnut Spread",
        "quantity": "15g",
        "calories": 539,
        "protein": 6.3,
        "carbs": 57.5,
        "fats": 30.9,
        "fiber": 0,
    }


@pytest.mark.asyncio
async def test_barcode_defaults_and_kj_fallback(settings, patch_httpx_get):
    patch_httpx_get.routes["/product/123.json"] = FakeResponse(
        200, {"status": 1, "product": {"product_name": "oat bar", "nutriments": {"energy_100g": 1674}}}
    )
    svc = FoodDatabaseService(settings)

    food = await svc.fetch_by_barcode("123")

    assert food["quantity"] == "100g"
    assert food["calories"] == 400


@pytest.mark.asyncio
async def test_barcode_not_found(settings, patch_httpx_get):
    svc = FoodDatabaseService(settings)
    patch_httpx_get.routes["/product/999.json"] = FakeResponse(200, {"status": 0})
    assert await svc.fetch_by_barcode("999") is None
    assert await svc.fetch_by_barcode("abc") is None
    assert patch_httpx_get.await_count == 1
