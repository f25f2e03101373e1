"""Per-user settings and per-day stats."""
from sqlalchemy import Column, DateTime, Float, String, UniqueConstraint, func

from macro_tracker.models.database import Base, new_id


class UserSettings(Base):
    __tablename__ = "user_settings"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, unique=True)
    base_tdee = Column(Float, nullable=False, default=2026)
    protein_per_lb = Column(Float, nullable=False, default=0.8)
    carbs_percentage = Column(Float, nullable=False, default=50)
    fats_percentage = Column(Float, nullable=False, default=30)
    fiber_per_1000_cal = Column(Float, nullable=False, default=14)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class DailyStats(Base):
    __tablename__ = "daily_stats"
    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_daily_stats_user_date"),)

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)
    date = Column(String(10), nullable=False)
    weight = Column(Float, nullable=True)
    calories_burned = Column(Float, nullable=True)
    weekly_goal = Column(String, nullable=False, default="lose1")  # gain2, gain1, maintain, lose1, lose2
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
