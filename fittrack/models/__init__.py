"""
Relational models for the application.
"""

from .user import User
from .progress import Progress
from .training_plan import TrainingPlan, TrainingDay, TrainingExercise
from .diet_plan import DietPlan, DietDay, DietMeal
from .analysis import Analysis

__all__ = [
    "User",
    "Progress",
    "TrainingPlan",
    "TrainingDay",
    "TrainingExercise",
    "DietPlan",
    "DietDay",
    "DietMeal",
    "Analysis",
]
