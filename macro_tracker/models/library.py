"""Per-user food library tables."""
from sqlalchemy import JSON, Column, DateTime, Float, String, UniqueConstraint, func

from macro_tracker.models.database import Base, new_id


class ConfirmedFood(Base):
    __tablename__ = "confirmed_foods"
    __table_args__ = (UniqueConstraint("user_id", "food_name", "quantity", name="uq_confirmed_food"),)

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)
    food_name = Column(String, nullable=False)
    quantity = Column(String, nullable=False)
    calories = Column(Float, nullable=False, default=0)
    protein = Column(Float, nullable=False, default=0)
    carbs = Column(Float, nullable=False, default=0)
    fats = Column(Float, nullable=False, default=0)
    fiber = Column(Float, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Recipe(Base):
    __tablename__ = "recipes"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)
    recipe_name = Column(String, nullable=False)
    ingredients = Column(JSON, nullable=False)  # list of ingredient snapshots
    total_calories = Column(Float, nullable=False, default=0)
    total_protein = Column(Float, nullable=False, default=0)
    total_carbs = Column(Float, nullable=False, default=0)
    total_fats = Column(Float, nullable=False, default=0)
    total_fiber = Column(Float, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class ExcludedFood(Base):
    __tablename__ = "excluded_foods"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)
    food_name = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class IngredientOnHand(Base):
    __tablename__ = "ingredients_on_hand"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)
    ingredient_name = Column(String, nullable=False)
    quantity = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
