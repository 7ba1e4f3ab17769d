from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool
from fittrack.core.config import settings
from fittrack.core.logger import get_logger

logger = get_logger("database")


def build_engine(url: str):
    """Create the async engine for the relational store."""
    if url.startswith("sqlite"):
        # Single shared connection so an in-memory database survives across sessions
        return create_async_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            future=True,
        )
    return create_async_engine(
        url,
        echo=False,
        pool_size=10,
        max_overflow=20,
        pool_timeout=30,
        pool_recycle=1800,       # MySQL drops idle connections after wait_timeout
        pool_pre_ping=True,
        future=True,
    )


def build_session_factory(bind) -> async_sessionmaker:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = build_engine(settings.RELATIONAL_DATABASE_URL)

AsyncSessionLocal = build_session_factory(engine)
