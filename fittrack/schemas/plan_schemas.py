from pydantic import BaseModel, Field, validator
from typing import List, Optional

from fittrack.enums import DayOfWeek


def canonical_day(value: str) -> str:
    """'mon', 'Mon' and 'monday' all become 'Monday'; unknown labels pass through."""
    text = value.strip()
    for day in DayOfWeek:
        if len(text) >= 3 and day.value.lower().startswith(text.lower()):
            return day.value
    return text


class ExerciseCreate(BaseModel):
    exerciseId: str = Field(..., min_length=1)
    exerciseName: Optional[str] = None
    sets: Optional[int] = Field(None, ge=0)
    reps: Optional[int] = Field(None, ge=0)
    weight: Optional[float] = Field(None, ge=0)
    restTime: Optional[int] = Field(None, ge=0, description="Rest between sets in seconds")
    order: int = 0
    gifUrl: Optional[str] = None
    equipment: Optional[str] = None
    target: Optional[str] = None
    bodyPart: Optional[str] = None

    @validator('exerciseId', pre=True)
    def coerce_exercise_id(cls, v):
        return str(v) if v is not None else v


class ExerciseUpdate(BaseModel):
    exerciseName: Optional[str] = None
    sets: Optional[int] = Field(None, ge=0)
    reps: Optional[int] = Field(None, ge=0)
    weight: Optional[float] = Field(None, ge=0)
    restTime: Optional[int] = Field(None, ge=0)
    order: Optional[int] = None
    gifUrl: Optional[str] = None
    equipment: Optional[str] = None
    target: Optional[str] = None
    bodyPart: Optional[str] = None


class MealCreate(BaseModel):
    recipeId: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=255)
    calories: Optional[float] = Field(None, ge=0)
    protein: Optional[float] = Field(None, ge=0)
    carbs: Optional[float] = Field(None, ge=0)
    fat: Optional[float] = Field(None, ge=0)
    image: Optional[str] = None
    recipeUrl: Optional[str] = None
    order: int = 0

    @validator('recipeId', pre=True)
    def coerce_recipe_id(cls, v):
        return str(v) if v is not None else v


class MealUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    calories: Optional[float] = Field(None, ge=0)
    protein: Optional[float] = Field(None, ge=0)
    carbs: Optional[float] = Field(None, ge=0)
    fat: Optional[float] = Field(None, ge=0)
    image: Optional[str] = None
    recipeUrl: Optional[str] = None
    order: Optional[int] = None


class DayFields(BaseModel):
    dayOfWeek: str = Field(..., min_length=1, max_length=20)
    name: Optional[str] = Field(None, max_length=255)
    order: int = 0

    @validator('dayOfWeek')
    def validate_day_of_week(cls, v):
        return canonical_day(v)


class TrainingDayCreate(DayFields):
    exercises: List[ExerciseCreate] = []


class DietDayCreate(DayFields):
    meals: List[MealCreate] = []


class DayUpdate(BaseModel):
    dayOfWeek: Optional[str] = Field(None, min_length=1, max_length=20)
    name: Optional[str] = Field(None, max_length=255)
    order: Optional[int] = None

    @validator('dayOfWeek')
    def validate_day_of_week(cls, v):
        return canonical_day(v) if v is not None else v


class PlanFields(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    isActive: bool = True

    @validator('name')
    def validate_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Plan name is required')
        return v


class TrainingPlanCreate(PlanFields):
    days: List[TrainingDayCreate] = []


class DietPlanCreate(PlanFields):
    days: List[DietDayCreate] = []


class PlanUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    isActive: Optional[bool] = None
