"""
Domain enums for users, plans, analyses and import/export.
"""

from enum import Enum


class UserRole(str, Enum):
    CLIENT = "client"
    TRAINER = "trainer"
    ADMIN = "admin"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class DayOfWeek(str, Enum):
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"


class PlanKind(str, Enum):
    TRAINING = "training"
    DIET = "diet"


class AnalysisType(str, Enum):
    OBESITY_VS_HEALTH_EXPENDITURE = "obesity_vs_health_expenditure"
    GDP_VS_PHYSICAL_ACTIVITY = "gdp_vs_physical_activity"
    DEATH_PROBABILITY_VS_URBANIZATION = "death_probability_vs_urbanization"
    DIABETES_VS_GINI_INDEX = "diabetes_vs_gini_index"


class DuplicateStrategy(str, Enum):
    PREFIX = "prefix"
    REJECT = "reject"
    REPLACE = "replace"


class TransferFormat(str, Enum):
    JSON = "json"
    XML = "xml"
    YAML = "yaml"
