from sqlalchemy import Column, String, Integer, Float, Text, JSON, ForeignKey
from sqlalchemy.orm import relationship
from fittrack.database.base import Base, PreciseDateTime
from fittrack.utils.time_utils import utc_now_ms


class Analysis(Base):
    """Saved health/economy correlation analysis."""

    __tablename__ = "analyses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    analysis_type = Column(String(64), nullable=False)
    country_code = Column(String(8), nullable=False)
    country_name = Column(String(255), nullable=False)
    period_start = Column(Integer, nullable=False)
    period_end = Column(Integer, nullable=False)
    correlation_value = Column(Float, nullable=True)
    correlation_interpretation = Column(String(255), nullable=True)
    result = Column(Text, nullable=True)
    datasets = Column(JSON, nullable=True)   # {years, healthData, economicData}
    raw_data = Column(JSON, nullable=True)   # [{year, healthValue, economicValue}]
    title = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)

    created_at = Column(PreciseDateTime, nullable=False, default=utc_now_ms, index=True)
    updated_at = Column(PreciseDateTime, default=utc_now_ms, onupdate=utc_now_ms)

    user = relationship("User", back_populates="analyses")
