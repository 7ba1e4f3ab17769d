from sqlalchemy import Column, String, Integer, Float, Boolean, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from fittrack.database.base import Base, PreciseDateTime
from fittrack.utils.time_utils import utc_now_ms


class DietPlan(Base):
    __tablename__ = "diet_plans"
    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_diet_plans_user_name"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True)

    date_created = Column(PreciseDateTime, nullable=False, default=utc_now_ms, index=True)
    date_updated = Column(PreciseDateTime, default=utc_now_ms, onupdate=utc_now_ms)

    user = relationship("User", back_populates="diet_plans")
    days = relationship(
        "DietDay",
        back_populates="plan",
        order_by="DietDay.order",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class DietDay(Base):
    __tablename__ = "diet_days"

    id = Column(Integer, primary_key=True, autoincrement=True)
    plan_id = Column(Integer, ForeignKey("diet_plans.id", ondelete="CASCADE"), nullable=False, index=True)
    day_of_week = Column(String(20), nullable=False)
    name = Column(String(255), nullable=True)
    order = Column("order", Integer, nullable=False, default=0)

    plan = relationship("DietPlan", back_populates="days")
    items = relationship(
        "DietMeal",
        back_populates="day",
        order_by="DietMeal.order",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class DietMeal(Base):
    __tablename__ = "diet_meals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    day_id = Column(Integer, ForeignKey("diet_days.id", ondelete="CASCADE"), nullable=False, index=True)
    recipe_id = Column(String(64), nullable=False)
    title = Column(String(255), nullable=False)
    calories = Column(Float, nullable=True)
    protein = Column(Float, nullable=True)
    carbs = Column(Float, nullable=True)
    fat = Column(Float, nullable=True)
    image = Column(String(512), nullable=True)
    recipe_url = Column(String(512), nullable=True)
    order = Column("order", Integer, nullable=False, default=0)

    day = relationship("DietDay", back_populates="items")
