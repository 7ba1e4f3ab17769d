"""
API v1 routes package.
"""

from .auth_routes import router as auth_router, profile_router
from .progress_routes import router as progress_router
from .plan_routes import training_plan_router, diet_plan_router
from .analytics_routes import router as analytics_router
from .transfer_routes import router as transfer_router

__all__ = [
    "auth_router",
    "profile_router",
    "progress_router",
    "training_plan_router",
    "diet_plan_router",
    "analytics_router",
    "transfer_router",
]
