from sqlalchemy import Column, Integer, Float, ForeignKey
from sqlalchemy.orm import relationship
from fittrack.database.base import Base, PreciseDateTime
from fittrack.utils.time_utils import utc_now_ms


class Progress(Base):
    """Single progress entry (weight and training time for a day)."""

    __tablename__ = "progress"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    weight = Column(Float, nullable=False)
    training_time = Column(Integer, nullable=False)  # minutes
    date = Column(PreciseDateTime, nullable=False, default=utc_now_ms)

    # Correlation key shared with the document store
    created_at = Column(PreciseDateTime, nullable=False, default=utc_now_ms, index=True)
    updated_at = Column(PreciseDateTime, default=utc_now_ms, onupdate=utc_now_ms)

    user = relationship("User", back_populates="progress_entries")
