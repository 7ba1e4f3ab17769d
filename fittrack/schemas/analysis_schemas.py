from pydantic import BaseModel, Field, validator
from typing import List, Optional

from fittrack.enums import AnalysisType


class AnalysisCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    analysisType: AnalysisType
    countryCode: str = Field(..., min_length=2, max_length=8)
    countryName: str = Field(..., min_length=1, max_length=255)
    yearStart: int = Field(..., ge=1900, le=2100)
    yearEnd: int = Field(..., ge=1900, le=2100)

    class Config:
        use_enum_values = True

    @validator('countryCode')
    def normalize_country_code(cls, v):
        return v.strip().upper()

    @validator('yearEnd')
    def validate_period(cls, v, values):
        start = values.get('yearStart')
        if start is not None and v < start:
            raise ValueError('yearEnd must not be earlier than yearStart')
        return v


class AnalysisRename(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class CountryInfo(BaseModel):
    code: str = Field(..., min_length=2, max_length=8)
    name: str = Field(..., min_length=1, max_length=255)


class PeriodInfo(BaseModel):
    start: int
    end: int


class CorrelationInfo(BaseModel):
    value: Optional[float] = None
    interpretation: Optional[str] = None


class AnalysisInfo(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    analysisType: AnalysisType
    title: Optional[str] = None
    description: Optional[str] = None
    country: CountryInfo
    period: PeriodInfo
    correlation: Optional[CorrelationInfo] = None
    result: Optional[str] = None

    class Config:
        use_enum_values = True


class Datasets(BaseModel):
    years: List[int] = []
    healthData: List[float] = []
    economicData: List[float] = []


class RawDataPoint(BaseModel):
    year: int
    healthValue: Optional[float] = None
    economicValue: Optional[float] = None


class AnalysisImport(BaseModel):
    """Parsed content of an analysis export file."""

    analysis: AnalysisInfo
    datasets: Datasets = Datasets()
    rawData: List[RawDataPoint] = []
