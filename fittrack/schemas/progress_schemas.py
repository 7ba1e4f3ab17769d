from pydantic import BaseModel, Field, validator
from typing import Optional
from datetime import datetime

from fittrack.utils.time_utils import parse_datetime


class ProgressCreate(BaseModel):
    weight: float = Field(..., gt=0, le=700, description="Body weight in kg")
    trainingTime: int = Field(..., ge=0, le=24 * 60, description="Training time in minutes")
    date: Optional[datetime] = None

    @validator('date')
    def normalize_date(cls, v):
        return parse_datetime(v)


class ProgressUpdate(ProgressCreate):
    pass
