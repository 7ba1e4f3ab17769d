"""
Database package for the application.
"""

from .base import Base
from .connection import AsyncSessionLocal, engine, build_engine, build_session_factory
from .mongo import build_mongo_client, ensure_indexes

__all__ = [
    "Base",
    "AsyncSessionLocal",
    "engine",
    "build_engine",
    "build_session_factory",
    "build_mongo_client",
    "ensure_indexes",
]
