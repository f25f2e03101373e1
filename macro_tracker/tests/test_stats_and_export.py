# tests/test_stats_and_export.py
import pytest

from macro_tracker.services.export_service import (
    CSV_HEADER,
    ExportRangeError,
    ExportService,
    meals_to_csv,
    resolve_range,
)
from macro_tracker.services.stats_service import (
    StatsService,
    daily_averages,
    logging_streak,
    top_foods,
    weight_change,
)
from macro_tracker.tests.conftest import USER_ID


def meal(date, name="Oats", calories=300, meal_type="Breakfast", **extra):
    return {"user_id": USER_ID, "date": date, "meal_type": meal_type, "food_name": name, "quantity": "1 cup",
            "calories": calories, "protein": 10, "carbs": 40, "fats": 5, "fiber": 4, **extra}


# -----------------------
# Stats
# -----------------------
def test_daily_averages_divide_by_distinct_days():
    avgs = daily_averages([meal("2024-03-01", calories=600), meal("2024-03-01", calories=401), meal("2024-03-02", calories=500)])
    assert avgs["calories"] == 751
    assert avgs["protein"] == 15
    assert daily_averages([])["calories"] == 0


def test_streak_must_end_today():
    dates = ["2024-03-10", "2024-03-09", "2024-03-08", "2024-03-06"]
    assert logging_streak(dates, "2024-03-10") == 3
    assert logging_streak(dates, "2024-03-11") == 0


def test_top_foods_limit_and_order():
    meals = [meal("d", "Eggs")] * 3 + [meal("d", "Oats")] * 2 + [meal("d", n) for n in "ABCD"]
    top = top_foods(meals)
    assert len(top) == 5
    assert top[0] == {"food_name": "Eggs", "count": 3}
    assert top[1] == {"food_name": "Oats", "count": 2}


def test_weight_change_needs_two_points():
    assert weight_change([{"date": "2024-03-01", "weight": 180}]) is None
    rows = [{"date": "2024-03-09", "weight": 178.5}, {"date": "2024-03-02", "weight": None}, {"date": "2024-03-01", "weight": 180}]
    assert weight_change(rows) == -1.5


@pytest.mark.asyncio
async def test_weekly_summary(fake_supabase, user_service):
    fake_supabase.seed(
        "meals",
        meal("2024-03-10", calories=600), meal("2024-03-10", "Eggs", calories=400, meal_type="Lunch"),
        meal("2024-03-09", calories=900), meal("2024-03-07", calories=800),
        meal("2024-02-01", "Pizza", calories=2000),
    )
    fake_supabase.seed(
        "daily_stats",
        {"user_id": USER_ID, "date": "2024-03-04", "weight": 180},
        {"user_id": USER_ID, "date": "2024-03-09", "weight": 178.5},
    )
    svc = StatsService(fake_supabase, user_service)

    data = (await svc.summary(USER_ID, "week", today="2024-03-10"))["data"]

    assert data["from"] == "2024-03-03"
    assert data["averages"]["calories"] == 900
    assert data["streak"] == 2
    assert data["top_foods"][0] == {"food_name": "Oats", "count": 3}
    assert {"meal_type": "Lunch", "count": 1} in data["meal_distribution"]
    assert data["weight_change"] == -1.5


@pytest.mark.asyncio
async def test_summary_rejects_unknown_period(fake_supabase, user_service):
    res = await StatsService(fake_supabase, user_service).summary(USER_ID, "year")
    assert res["error"].startswith("invalid")


# -----------------------
# Export
# -----------------------
def test_resolve_named_ranges():
    assert resolve_range("today", "2024-03-10") == ("2024-03-10", "2024-03-10")
    assert resolve_range("yesterday", "2024-03-01") == ("2024-02-29", "2024-02-29")
    assert resolve_range("last_week", "2024-03-10") == ("2024-03-03", "2024-03-10")
    assert resolve_range("last_month", "2024-03-10") == ("2024-02-09", "2024-03-10")
    assert resolve_range("custom", "2024-03-10", "2024-01-01", "2024-01-31") == ("2024-01-01", "2024-01-31")


def test_custom_range_needs_both_dates():
    with pytest.raises(ExportRangeError):
        resolve_range("custom", "2024-03-10", "2024-01-01", None)
    with pytest.raises(ExportRangeError):
        resolve_range("fortnight", "2024-03-10")


def test_meals_to_csv_format():
    text = meals_to_csv([
        meal("2024-03-10", "Rice, White", calories=205.0, protein=4.3, is_confirmed=True, is_supplement=False, is_recipe=False),
    ])
    lines = text.strip().split("\n")
    assert lines[0] == ",".join(CSV_HEADER)
    assert lines[1] == '2024-03-10,Breakfast,"Rice, White",1 cup,205,4.3,40,5,4,true,false,false'


@pytest.mark.asyncio
async def test_export_csv_has_header_plus_one_row_per_meal(fake_supabase, meal_service, monkeypatch):
    fake_supabase.seed("meals", meal("2024-03-10"), meal("2024-03-08"), meal("2024-03-09"), meal("2024-01-01"))
    monkeypatch.setattr("macro_tracker.services.export_service.today_in_zone", lambda tz: "2024-03-10")
    svc = ExportService(meal_service)

    res = await svc.export_csv(USER_ID, "last_week")

    lines = res["data"].strip().split("\n")
    assert len(lines) == 4
    assert [line.split(",")[0] for line in lines[1:]] == ["2024-03-08", "2024-03-09", "2024-03-10"]


@pytest.mark.asyncio
async def test_export_empty_range(fake_supabase, meal_service):
    svc = ExportService(meal_service)
    assert (await svc.export_csv(USER_ID, "custom", "2020-01-01", "2020-01-02"))["error"] == "not_found"
    assert (await svc.export_csv(USER_ID, "custom", "2020-01-01"))["error"].startswith("invalid")
