from sqlalchemy import Column, String, Integer, Float, Date
from sqlalchemy.orm import relationship
from fittrack.database.base import Base, PreciseDateTime
from fittrack.utils.time_utils import utc_now_ms


class User(Base):
    """User account with its flattened profile."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="client")  # client, trainer, admin

    # Profile
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    gender = Column(String(20), nullable=True)
    weight = Column(Float, nullable=True)
    height = Column(Float, nullable=True)

    created_at = Column(PreciseDateTime, default=utc_now_ms)
    updated_at = Column(PreciseDateTime, default=utc_now_ms, onupdate=utc_now_ms)

    progress_entries = relationship("Progress", back_populates="user")
    training_plans = relationship("TrainingPlan", back_populates="user")
    diet_plans = relationship("DietPlan", back_populates="user")
    analyses = relationship("Analysis", back_populates="user")
