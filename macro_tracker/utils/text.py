"""Text normalisation shared by logging flows and the analysis pipeline."""
from __future__ import annotations

import re
from typing import Optional

MEAL_TYPES = ("Breakfast", "Lunch", "Dinner", "Snack")


def to_title_case(value: str) -> str:
    """Upper-case the first letter of each space-separated word, lower-case the rest."""
    return " ".join(w[:1].upper() + w[1:].lower() for w in (value or "").split(" "))


def normalize_meal_type(value: Optional[str]) -> Optional[str]:
    """Map any casing of a meal category onto the fixed enum; unknown -> None."""
    if not value:
        return None
    v = value.strip().lower()
    for meal_type in MEAL_TYPES:
        if meal_type.lower() == v:
            return meal_type
    return None


def mask(s: Optional[str]) -> str:
    if not s:
        return "(empty)"
    return s if len(s) <= 8 else f"{s[:4]}...{s[-4:]}"


def format_number(value) -> str:
    """Render a number the way it reads in a UI: 2.0 -> "2", 1.5 -> "1.5"."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


_LEADING_NUMBER_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+))")
_FIRST_NUMBER_RE = re.compile(r"[\d.]+\s*")


def scale_quantity(quantity: str, multiplier: float) -> str:
    """
    Multiply the leading amount of a quantity string, keeping its unit.

    "2 slices" x 1.5 -> "3 slices"; a quantity with no amount counts as 1.
    """
    m = _LEADING_NUMBER_RE.match(quantity or "")
    base = (float(m.group(1)) if m else 0.0) or 1.0
    unit = _FIRST_NUMBER_RE.sub("", quantity or "", count=1)
    return f"{format_number(round(base * multiplier, 2))} {unit}".strip()
