"""Logged meals."""
from sqlalchemy import Boolean, Column, DateTime, Float, Index, String, func

from macro_tracker.models.database import Base, new_id


class Meal(Base):
    __tablename__ = "meals"
    __table_args__ = (Index("ix_meals_user_date", "user_id", "date"),)

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)
    date = Column(String(10), nullable=False)  # YYYY-MM-DD in the app timezone
    meal_type = Column(String, nullable=False)  # Breakfast, Lunch, Dinner, Snack
    food_name = Column(String, nullable=False)
    quantity = Column(String, nullable=False)
    calories = Column(Float, nullable=False, default=0)
    protein = Column(Float, nullable=False, default=0)
    carbs = Column(Float, nullable=False, default=0)
    fats = Column(Float, nullable=False, default=0)
    fiber = Column(Float, nullable=False, default=0)
    is_confirmed = Column(Boolean, nullable=False, default=False)
    is_supplement = Column(Boolean, nullable=False, default=False)
    supplement_id = Column(String, nullable=True)
    is_recipe = Column(Boolean, nullable=False, default=False)
    recipe_id = Column(String(36), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Meal(date='{self.date}', food_name='{self.food_name}')>"
