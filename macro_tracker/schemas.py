"""
Pydantic models for request bodies, responses and the AI extraction boundary.

The analysis endpoints keep the camelCase wire format of the original
serverless functions; the REST routes use the snake_case column names of the
hosted tables.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, Dict, Generic, List, Literal, Optional, TypeVar, Union

from pydantic import AfterValidator, AliasChoices, BaseModel, ConfigDict, Field, field_validator

from macro_tracker.utils.dates import is_iso_date
from macro_tracker.utils.text import normalize_meal_type

MealType = Literal["Breakfast", "Lunch", "Dinner", "Snack"]
WeeklyGoal = Literal["gain2", "gain1", "maintain", "lose1", "lose2"]


def _check_iso_date(v: str) -> str:
    if not is_iso_date(v):
        raise ValueError("expected a calendar date as YYYY-MM-DD")
    return v


IsoDate = Annotated[str, AfterValidator(_check_iso_date)]


class DataSource(str, Enum):
    LIBRARY = "library"
    USDA = "USDA"
    BLENDED = "USDA+AI"
    AI = "AI"
    NEEDS_REVIEW = "needs review"


@dataclass(frozen=True)
class Nutrients:
    calories: float
    protein: float
    carbs: float
    fats: float
    fiber: float

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Nutrients":
        return cls(
            calories=float(row.get("calories") or 0),
            protein=float(row.get("protein") or 0),
            carbs=float(row.get("carbs") or 0),
            fats=float(row.get("fats") or 0),
            fiber=float(row.get("fiber") or 0),
        )

    def as_dict(self) -> Dict[str, float]:
        return {
            "calories": self.calories,
            "protein": self.protein,
            "carbs": self.carbs,
            "fats": self.fats,
            "fiber": self.fiber,
        }


# -----------------------
# AI extraction boundary
# -----------------------
class ExtractedFood(BaseModel):
    """One item as returned by the AI gateway. Unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore")

    food_name: str = Field(validation_alias=AliasChoices("foodName", "food_name"), min_length=1)
    quantity: str = Field(validation_alias=AliasChoices("quantity", "portion"))
    calories: float = Field(ge=0)
    protein: float = Field(default=0, ge=0)
    carbs: float = Field(default=0, ge=0)
    fats: float = Field(default=0, ge=0, validation_alias=AliasChoices("fats", "fat"))
    fiber: float = Field(default=0, ge=0)
    meal_type: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("mealType", "mealCategory", "meal_type")
    )

    @field_validator("quantity", mode="before")
    @classmethod
    def quantity_as_text(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("protein", "carbs", "fats", "fiber", mode="before")
    @classmethod
    def null_as_zero(cls, v: Any) -> Any:
        return 0 if v is None else v

    @field_validator("meal_type")
    @classmethod
    def known_meal_type(cls, v: Optional[str]) -> Optional[str]:
        return normalize_meal_type(v)

    def nutrients(self) -> Nutrients:
        return Nutrients(self.calories, self.protein, self.carbs, self.fats, self.fiber)


T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    reason: str


ParseResult = Union[Ok[List[ExtractedFood]], Err]


# -----------------------
# Analysis / suggestion endpoints
# -----------------------
class AnalyzeFoodRequest(BaseModel):
    description: str = Field(min_length=1)
    user_id: str = Field(alias="userId", min_length=1)
    meal_type: Optional[str] = Field(default=None, alias="mealType")


class AnalyzedFood(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    food_name: str = Field(serialization_alias="foodName")
    quantity: str
    calories: float
    protein: float
    carbs: float
    fats: float
    fiber: float
    meal_type: Optional[MealType] = Field(default=None, serialization_alias="mealType")
    is_confirmed: bool = Field(default=False, serialization_alias="isConfirmed")
    data_source: DataSource = Field(serialization_alias="dataSource")


class AnalyzeFoodResponse(BaseModel):
    foods: List[AnalyzedFood]


class SuggestMealsRequest(BaseModel):
    user_id: str = Field(alias="userId", min_length=1)
    meal_type: str = Field(default="lunch", alias="mealType")
    target_calories: Optional[float] = Field(default=None, alias="targetCalories")
    target_protein: Optional[float] = Field(default=None, alias="targetProtein")
    target_carbs: Optional[float] = Field(default=None, alias="targetCarbs")
    target_fats: Optional[float] = Field(default=None, alias="targetFats")


class SuggestMealsResponse(BaseModel):
    suggestions: str


# -----------------------
# Meals
# -----------------------
class NutrientFields(BaseModel):
    calories: float = Field(default=0, ge=0)
    protein: float = Field(default=0, ge=0)
    carbs: float = Field(default=0, ge=0)
    fats: float = Field(default=0, ge=0)
    fiber: float = Field(default=0, ge=0)


class LogFoodItem(NutrientFields):
    """An analysed food being saved into the meal log."""

    model_config = ConfigDict(populate_by_name=True)

    food_name: str = Field(validation_alias=AliasChoices("foodName", "food_name"), min_length=1)
    quantity: str
    meal_type: Optional[MealType] = Field(
        default=None, validation_alias=AliasChoices("mealType", "meal_type")
    )
    is_confirmed: bool = Field(
        default=False, validation_alias=AliasChoices("isConfirmed", "is_confirmed")
    )


class LogMealsRequest(BaseModel):
    date: IsoDate
    meal_type: Optional[MealType] = None
    foods: List[LogFoodItem] = Field(min_length=1)


class ManualMealRequest(NutrientFields):
    date: IsoDate
    meal_type: MealType = "Breakfast"
    food_name: str = Field(min_length=1)
    quantity: str = Field(min_length=1)


class MealUpdate(BaseModel):
    """Editable meal fields. The confirmation flag is deliberately absent."""

    model_config = ConfigDict(extra="forbid")

    food_name: Optional[str] = None
    quantity: Optional[str] = None
    meal_type: Optional[MealType] = None
    calories: Optional[float] = Field(default=None, ge=0)
    protein: Optional[float] = Field(default=None, ge=0)
    carbs: Optional[float] = Field(default=None, ge=0)
    fats: Optional[float] = Field(default=None, ge=0)
    fiber: Optional[float] = Field(default=None, ge=0)


class CopyMealsRequest(BaseModel):
    source_date: IsoDate
    meal_type: MealType
    target_date: IsoDate


class SupplementToggle(BaseModel):
    date: IsoDate
    checked: bool


# -----------------------
# Library
# -----------------------
class ConfirmedFoodUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    food_name: Optional[str] = None
    quantity: Optional[str] = None
    calories: Optional[float] = Field(default=None, ge=0)
    protein: Optional[float] = Field(default=None, ge=0)
    carbs: Optional[float] = Field(default=None, ge=0)
    fats: Optional[float] = Field(default=None, ge=0)
    fiber: Optional[float] = Field(default=None, ge=0)


class LogConfirmedFoodRequest(BaseModel):
    meal_type: MealType = "Breakfast"
    multiplier: float = Field(default=1, gt=0)
    date: Optional[IsoDate] = None


class RecipeIngredient(NutrientFields):
    food_name: str
    quantity: str


class CreateRecipeRequest(BaseModel):
    recipe_name: str
    meal_ids: List[str]


class RecipeUpdate(BaseModel):
    recipe_name: Optional[str] = None
    ingredients: Optional[List[RecipeIngredient]] = None


class LogRecipeRequest(BaseModel):
    meal_type: MealType = "Snack"
    date: Optional[IsoDate] = None


class NameEntry(BaseModel):
    name: str


class IngredientEntry(BaseModel):
    ingredient_name: str
    quantity: Optional[str] = None


# -----------------------
# Settings & stats
# -----------------------
class UserSettingsIn(BaseModel):
    base_tdee: float = Field(default=2026, ge=1000, le=5000)
    protein_per_lb: float = Field(default=0.8, ge=0.5, le=2)
    carbs_percentage: float = Field(default=50, ge=20, le=70)
    fats_percentage: float = Field(default=30, ge=15, le=50)
    fiber_per_1000_cal: float = Field(default=14, ge=10, le=25)


class DailyStatsIn(BaseModel):
    date: IsoDate
    weight: Optional[float] = Field(default=None, gt=0)
    calories_burned: Optional[float] = Field(default=None, ge=0)
    weekly_goal: WeeklyGoal = "lose1"
