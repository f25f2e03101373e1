"""SQLAlchemy declarations of the tracker tables."""
from macro_tracker.models.database import Base, init_db
from macro_tracker.models.library import ConfirmedFood, ExcludedFood, IngredientOnHand, Recipe
from macro_tracker.models.meal import Meal
from macro_tracker.models.user import DailyStats, UserSettings

__all__ = [
    "Base",
    "init_db",
    "Meal",
    "ConfirmedFood",
    "Recipe",
    "ExcludedFood",
    "IngredientOnHand",
    "UserSettings",
    "DailyStats",
]
