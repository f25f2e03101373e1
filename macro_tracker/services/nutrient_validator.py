# macro_tracker/services/nutrient_validator.py
"""
Plausibility check for a candidate nutrient record.

A record is rejected when its calories cannot be reconstructed from its
macros within a fixed tolerance, or when any value is out of range for a
single serving.
"""
from __future__ import annotations

from typing import Optional

from macro_tracker.schemas import Nutrients
from macro_tracker.services.goal_calculator import (
    CALORIES_PER_GRAM_CARBS,
    CALORIES_PER_GRAM_FAT,
    CALORIES_PER_GRAM_PROTEIN,
)

MAX_RELATIVE_DEVIATION = 0.30
MAX_CALORIES = 1000
MAX_MACRO_GRAMS = 100


def reconstructed_calories(n: Nutrients) -> float:
    return (
        CALORIES_PER_GRAM_PROTEIN * n.protein
        + CALORIES_PER_GRAM_CARBS * n.carbs
        + CALORIES_PER_GRAM_FAT * n.fats
    )


def rejection_reason(n: Nutrients) -> Optional[str]:
    """Return why `n` is implausible, or None if it passes."""
    values = n.as_dict()
    if any(v < 0 for v in values.values()):
        return "negative_value"
    if n.calories > MAX_CALORIES:
        return "calories_above_ceiling"
    if max(n.protein, n.carbs, n.fats) > MAX_MACRO_GRAMS:
        return "macro_above_ceiling"

    rebuilt = reconstructed_calories(n)
    if n.calories == 0:
        return None if rebuilt == 0 else "calorie_mismatch"
    if abs(rebuilt - n.calories) / n.calories > MAX_RELATIVE_DEVIATION:
        return "calorie_mismatch"
    return None


def is_plausible(n: Nutrients) -> bool:
    return rejection_reason(n) is None
