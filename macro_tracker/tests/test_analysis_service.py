# tests/test_analysis_service.py
import json

import httpx
import openai
import pytest

from macro_tracker.errors import MalformedAIResponseError, RateLimitedError
from macro_tracker.schemas import DataSource
from macro_tracker.services.ai_gateway import AIGatewayClient
from macro_tracker.services.analysis_service import AnalysisService, build_system_prompt
from macro_tracker.services.food_database import FoodDatabaseService
from macro_tracker.tests.conftest import USER_ID, FakeChatClient, FakeResponse, usda_payload


def ai_reply(*foods):
    return json.dumps({"foods": list(foods)})


def make_service(settings, library_service, content=None, error=None, blend=False):
    chat = FakeChatClient(content=content or ai_reply(), error=error)
    svc = AnalysisService(
        AIGatewayClient(settings, client=chat),
        FoodDatabaseService(settings),
        library_service,
        blend_with_usda=blend,
    )
    return svc, chat


def usda_by_query(table):
    def _answer(url, params):
        payload = table.get((params or {}).get("query", "").lower())
        return FakeResponse(200, payload or {"foods": []})

    return _answer


EGGS = {"foodName": "scrambled eggs", "quantity": "2 large", "calories": 143, "protein": 12.6, "carbs": 0.7, "fats": 9.5, "fiber": 0, "mealType": "Breakfast"}
TOAST = {"foodName": "whole wheat toast", "quantity": "1 slice", "calories": 80, "protein": 3, "carbs": 14, "fats": 1, "fiber": 2, "mealType": "Breakfast"}


def test_system_prompt_lists_library_foods():
    prompt = build_system_prompt(
        [{"food_name": "Banana", "quantity": "1 medium", "calories": 90, "protein": 1, "carbs": 23, "fats": 0.3, "fiber": 2.6}]
    )
    assert "User's confirmed food database" in prompt
    assert '"Banana" (1 medium): 90cal, 1g protein, 23g carbs, 0.3g fats, 2.6g fiber' in prompt
    assert "User's confirmed food database" not in build_system_prompt([])


@pytest.mark.asyncio
async def test_library_values_override_ai(settings, fake_supabase, library_service, patch_httpx_get):
    fake_supabase.seed(
        "confirmed_foods",
        {"user_id": USER_ID, "food_name": "Banana", "quantity": "1 medium", "calories": 90, "protein": 1.1, "carbs": 23, "fats": 0.3, "fiber": 2.6},
    )
    svc, chat = make_service(
        settings,
        library_service,
        ai_reply({"foodName": "banana", "quantity": "1 medium", "calories": 105, "protein": 1.3, "carbs": 27, "fats": 0.4, "fiber": 3.1, "mealType": "Snack"}),
    )

    foods = await svc.analyze("a banana", USER_ID)

    assert len(foods) == 1
    food = foods[0]
    assert food.food_name == "Banana"
    assert food.calories == 90
    assert food.is_confirmed is True
    assert food.data_source == DataSource.LIBRARY
    patch_httpx_get.assert_not_awaited()
    assert '"Banana" (1 medium): 90cal' in chat.calls[0]["messages"][0]["content"]


@pytest.mark.asyncio
async def test_library_quantity_must_match_exactly(settings, fake_supabase, library_service, patch_httpx_get):
    fake_supabase.seed(
        "confirmed_foods",
        {"user_id": USER_ID, "food_name": "Banana", "quantity": "1 large", "calories": 120, "protein": 1.5, "carbs": 31, "fats": 0.4, "fiber": 3.5},
    )
    svc, _ = make_service(
        settings,
        library_service,
        ai_reply({"foodName": "Banana", "quantity": "1 medium", "calories": 105, "protein": 1.3, "carbs": 27, "fats": 0.4, "fiber": 3.1}),
    )

    food = (await svc.analyze("a banana", USER_ID))[0]

    assert food.data_source == DataSource.AI
    assert food.is_confirmed is False


@pytest.mark.asyncio
async def test_eggs_and_toast_for_breakfast(settings, library_service, patch_httpx_get):
    patch_httpx_get.routes["foods/search"] = usda_by_query(
        {"scrambled eggs": usda_payload(147, 12.6, 0.8, 9.9, 0)}
    )
    svc, _ = make_service(settings, library_service, "```json\n" + ai_reply(EGGS, TOAST) + "\n```")

    foods = await svc.analyze("2 eggs and toast for breakfast", USER_ID)

    assert [f.food_name for f in foods] == ["Scrambled Eggs", "Whole Wheat Toast"]
    eggs, toast = foods
    assert eggs.data_source == DataSource.USDA
    assert eggs.calories == 147
    assert toast.data_source == DataSource.AI
    assert toast.calories == 80
    assert all(f.meal_type == "Breakfast" for f in foods)
    assert all(f.is_confirmed is False for f in foods)
    assert patch_httpx_get.await_count == 2


@pytest.mark.asyncio
async def test_implausible_usda_record_is_discarded(settings, library_service, patch_httpx_get):
    patch_httpx_get.routes["foods/search"] = FakeResponse(200, usda_payload(500, 1, 1, 1))
    svc, _ = make_service(settings, library_service, ai_reply(EGGS))

    food = (await svc.analyze("eggs", USER_ID))[0]

    assert food.data_source == DataSource.AI
    assert food.calories == 143


@pytest.mark.asyncio
async def test_zero_calorie_usda_record_is_a_miss(settings, library_service, patch_httpx_get):
    patch_httpx_get.routes["foods/search"] = FakeResponse(200, usda_payload(0, 0, 0, 0))
    svc, _ = make_service(settings, library_service, ai_reply(EGGS))

    assert (await svc.analyze("eggs", USER_ID))[0].data_source == DataSource.AI


@pytest.mark.asyncio
async def test_implausible_ai_estimate_needs_review(settings, library_service, patch_httpx_get):
    svc, _ = make_service(
        settings,
        library_service,
        ai_reply({"foodName": "mystery bar", "quantity": "1 bar", "calories": 900, "protein": 1, "carbs": 1, "fats": 1, "fiber": 0}),
    )

    food = (await svc.analyze("a mystery bar", USER_ID))[0]

    assert food.data_source == DataSource.NEEDS_REVIEW
    assert food.calories == 900
    patch_httpx_get.assert_not_awaited()


@pytest.mark.asyncio
async def test_blending_averages_usda_and_ai(settings, library_service, patch_httpx_get):
    patch_httpx_get.routes["foods/search"] = FakeResponse(200, usda_payload(147, 12.6, 0.8, 9.9))
    svc, _ = make_service(settings, library_service, ai_reply(EGGS), blend=True)

    food = (await svc.analyze("eggs", USER_ID))[0]

    assert food.data_source == DataSource.BLENDED
    assert food.calories == 145
    assert food.protein == 12.6
    assert food.fats == 9.7


@pytest.mark.asyncio
async def test_usda_timeout_falls_back_to_ai(settings, library_service, patch_httpx_get):
    patch_httpx_get.routes["foods/search"] = httpx.ConnectTimeout("timed out")
    svc, _ = make_service(settings, library_service, ai_reply(EGGS))

    food = (await svc.analyze("eggs", USER_ID))[0]

    assert food.data_source == DataSource.AI


@pytest.mark.asyncio
async def test_meal_type_hint_overrides_ai_category(settings, library_service, patch_httpx_get):
    svc, _ = make_service(settings, library_service, ai_reply(TOAST))

    assert (await svc.analyze("toast", USER_ID, meal_type="dinner"))[0].meal_type == "Dinner"


@pytest.mark.asyncio
async def test_unknown_ai_category_becomes_none(settings, library_service, patch_httpx_get):
    svc, _ = make_service(settings, library_service, ai_reply({**TOAST, "mealType": "Brunch"}))

    assert (await svc.analyze("toast", USER_ID))[0].meal_type is None


@pytest.mark.asyncio
async def test_malformed_reply_fails_whole_request(settings, library_service, patch_httpx_get):
    svc, _ = make_service(settings, library_service, "I think you ate eggs.")

    with pytest.raises(MalformedAIResponseError):
        await svc.analyze("eggs", USER_ID)


@pytest.mark.asyncio
async def test_rate_limit_propagates(settings, library_service, patch_httpx_get):
    request = httpx.Request("POST", "https://ai.gateway.test/v1/chat/completions")
    error = openai.RateLimitError("slow down", response=httpx.Response(429, request=request), body=None)
    svc, _ = make_service(settings, library_service, error=error)

    with pytest.raises(RateLimitedError):
        await svc.analyze("eggs", USER_ID)
