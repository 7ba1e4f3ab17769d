from sqlalchemy import Column, String, Integer, Float, Boolean, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from fittrack.database.base import Base, PreciseDateTime
from fittrack.utils.time_utils import utc_now_ms


class TrainingPlan(Base):
    __tablename__ = "training_plans"
    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_training_plans_user_name"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True)

    date_created = Column(PreciseDateTime, nullable=False, default=utc_now_ms, index=True)
    date_updated = Column(PreciseDateTime, default=utc_now_ms, onupdate=utc_now_ms)

    user = relationship("User", back_populates="training_plans")
    days = relationship(
        "TrainingDay",
        back_populates="plan",
        order_by="TrainingDay.order",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class TrainingDay(Base):
    __tablename__ = "training_days"

    id = Column(Integer, primary_key=True, autoincrement=True)
    plan_id = Column(Integer, ForeignKey("training_plans.id", ondelete="CASCADE"), nullable=False, index=True)
    day_of_week = Column(String(20), nullable=False)
    name = Column(String(255), nullable=True)
    order = Column("order", Integer, nullable=False, default=0)

    plan = relationship("TrainingPlan", back_populates="days")
    items = relationship(
        "TrainingExercise",
        back_populates="day",
        order_by="TrainingExercise.order",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class TrainingExercise(Base):
    __tablename__ = "training_exercises"

    id = Column(Integer, primary_key=True, autoincrement=True)
    day_id = Column(Integer, ForeignKey("training_days.id", ondelete="CASCADE"), nullable=False, index=True)
    exercise_id = Column(String(64), nullable=False)
    exercise_name = Column(String(255), nullable=True)
    sets = Column(Integer, nullable=False, default=3)
    reps = Column(Integer, nullable=False, default=10)
    weight = Column(Float, nullable=True)
    rest_time = Column(Integer, nullable=True, default=60)  # seconds
    order = Column("order", Integer, nullable=False, default=0)
    gif_url = Column(String(512), nullable=True)
    equipment = Column(String(100), nullable=True)
    target = Column(String(100), nullable=True)
    body_part = Column(String(100), nullable=True)

    day = relationship("TrainingDay", back_populates="items")
