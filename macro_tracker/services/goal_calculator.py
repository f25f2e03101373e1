# macro_tracker/services/goal_calculator.py
"""
Daily calorie and macro targets.

Pure functions of the user's settings row and the day's stats row. Nothing
here touches the database; callers load the rows and pass them in.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

CALORIES_PER_GRAM_PROTEIN = 4
CALORIES_PER_GRAM_CARBS = 4
CALORIES_PER_GRAM_FAT = 9

DEFAULT_SETTINGS: Dict[str, float] = {
    "base_tdee": 2026,
    "protein_per_lb": 0.8,
    "carbs_percentage": 50,
    "fats_percentage": 30,
    "fiber_per_1000_cal": 14,
}

DEFAULT_WEEKLY_GOAL = "lose1"

WEEKLY_GOAL_OFFSETS: Dict[str, int] = {
    "gain2": 1000,
    "gain1": 500,
    "maintain": 0,
    "lose1": -500,
    "lose2": -1000,
}

# Suggestion targets assume this bodyweight when none has been logged
FALLBACK_WEIGHT_LBS = 160
MEALS_PER_DAY = 3


def resolve_settings(row: Optional[Dict[str, Any]]) -> Dict[str, float]:
    """Merge a (possibly missing or partial) settings row over the defaults."""
    resolved = dict(DEFAULT_SETTINGS)
    for key in DEFAULT_SETTINGS:
        value = (row or {}).get(key)
        if value is not None:
            resolved[key] = float(value)
    return resolved


def calorie_offset(weekly_goal: Optional[str]) -> int:
    return WEEKLY_GOAL_OFFSETS.get(weekly_goal or DEFAULT_WEEKLY_GOAL, 0)


def calculate_goals(
    settings_row: Optional[Dict[str, Any]], daily_stats: Optional[Dict[str, Any]]
) -> Dict[str, Optional[float]]:
    """
    Compute the day's targets.

    Args:
        settings_row: `user_settings` row or None for defaults
        daily_stats: `daily_stats` row (weight, calories_burned, weekly_goal) or None

    Returns:
        Dictionary with calorieGoal, proteinGoal, carbsGoal, fatsGoal and
        fiberGoal. Every value is None until a weight is known.
    """
    stats = daily_stats or {}
    weight = stats.get("weight")
    if weight is None:
        return {
            "calorieGoal": None,
            "proteinGoal": None,
            "carbsGoal": None,
            "fatsGoal": None,
            "fiberGoal": None,
        }

    s = resolve_settings(settings_row)
    burned = float(stats.get("calories_burned") or 0)
    adjusted_maintenance = s["base_tdee"] + burned
    calorie_goal = adjusted_maintenance + calorie_offset(stats.get("weekly_goal"))

    return {
        "calorieGoal": calorie_goal,
        "proteinGoal": float(weight) * s["protein_per_lb"],
        "carbsGoal": calorie_goal * (s["carbs_percentage"] / 100) / CALORIES_PER_GRAM_CARBS,
        "fatsGoal": calorie_goal * (s["fats_percentage"] / 100) / CALORIES_PER_GRAM_FAT,
        "fiberGoal": (calorie_goal / 1000) * s["fiber_per_1000_cal"],
    }


def calculate_meal_targets(
    settings_row: Optional[Dict[str, Any]], weight: Optional[float] = None
) -> Dict[str, int]:
    """Per-meal targets for the suggestion prompt: daily figures split across three meals."""
    s = resolve_settings(settings_row)
    body_weight = float(weight) if weight else FALLBACK_WEIGHT_LBS

    daily_protein = body_weight * s["protein_per_lb"]
    daily_carbs = s["base_tdee"] * (s["carbs_percentage"] / 100) / CALORIES_PER_GRAM_CARBS
    daily_fats = s["base_tdee"] * (s["fats_percentage"] / 100) / CALORIES_PER_GRAM_FAT

    return {
        "calories": round(s["base_tdee"] / MEALS_PER_DAY),
        "protein": round(daily_protein / MEALS_PER_DAY),
        "carbs": round(daily_carbs / MEALS_PER_DAY),
        "fats": round(daily_fats / MEALS_PER_DAY),
    }


def remaining(goals: Dict[str, Optional[float]], totals: Dict[str, float]) -> Dict[str, Optional[float]]:
    """Goal minus logged amount per nutrient; None where the goal is unknown."""
    pairs = {
        "calories": "calorieGoal",
        "protein": "proteinGoal",
        "carbs": "carbsGoal",
        "fats": "fatsGoal",
        "fiber": "fiberGoal",
    }
    out: Dict[str, Optional[float]] = {}
    for nutrient, goal_key in pairs.items():
        goal = goals.get(goal_key)
        out[nutrient] = None if goal is None else goal - totals.get(nutrient, 0)
    return out
