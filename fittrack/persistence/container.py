from fastapi import Request
from sqlalchemy.ext.asyncio import async_sessionmaker

from fittrack.enums import StoreMode
from fittrack.persistence.adapters import DocumentStoreAdapter, RelationalStoreAdapter
from fittrack.persistence.coordinator import DualWriteCoordinator
from fittrack.persistence.correlator import IdentityCorrelator
from fittrack.persistence.merger import ReadMerger


class DataStores:
    """Store adapters and the components built on them, wired once with a fixed mode."""

    def __init__(self, mode: StoreMode, mongo_database, session_factory: async_sessionmaker):
        self.mode = mode
        self.document = DocumentStoreAdapter(mongo_database)
        self.relational = RelationalStoreAdapter(session_factory)
        self.coordinator = DualWriteCoordinator(mode, self.document, self.relational)
        self.correlator = IdentityCorrelator(mode, self.document, self.relational)
        self.merger = ReadMerger(mode, self.document, self.relational)


def get_stores(request: Request) -> DataStores:
    """FastAPI dependency returning the stores built at startup."""
    return request.app.state.stores
