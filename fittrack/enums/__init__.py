"""
Shared enums for the application.
"""

from .store_enums import (
    StoreMode,
    StoreName,
    IsolationLevel,
    OperationKind
)
from .domain_enums import (
    UserRole,
    Gender,
    DayOfWeek,
    PlanKind,
    AnalysisType,
    DuplicateStrategy,
    TransferFormat
)

__all__ = [
    "StoreMode",
    "StoreName",
    "IsolationLevel",
    "OperationKind",
    "UserRole",
    "Gender",
    "DayOfWeek",
    "PlanKind",
    "AnalysisType",
    "DuplicateStrategy",
    "TransferFormat"
]
