"""
Store adapters.

Both adapters expose a single ``run`` call that executes one operation
against their backing store and reports the outcome as a StoreResult. Errors
are logged and absorbed here; nothing raised by a driver escapes an adapter.
"""
from typing import Any, Awaitable, Callable, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fittrack.core.logger import get_logger
from fittrack.enums import IsolationLevel, OperationKind, StoreName
from fittrack.persistence.results import StoreResult

logger = get_logger("store_adapters")

DocumentOperation = Callable[[Any], Awaitable[Any]]
RelationalOperation = Callable[[AsyncSession], Awaitable[Any]]

ISOLATION_POLICY: Dict[OperationKind, IsolationLevel] = {
    OperationKind.READ: IsolationLevel.REPEATABLE_READ,
    OperationKind.CORRELATION: IsolationLevel.REPEATABLE_READ,
    OperationKind.LIST: IsolationLevel.READ_COMMITTED,
    OperationKind.CREATE: IsolationLevel.SERIALIZABLE,
    OperationKind.SIMPLE_WRITE: IsolationLevel.READ_COMMITTED,
    OperationKind.UPDATE: IsolationLevel.REPEATABLE_READ,
    OperationKind.DELETE: IsolationLevel.SERIALIZABLE,
}

# SQLite runs every transaction serializably and accepts no other level name
_SINGLE_LEVEL_DIALECTS = {"sqlite"}


class DocumentStoreAdapter:
    """Best-effort access to the document store. No ambient transaction."""

    store = StoreName.DOCUMENT

    def __init__(self, database):
        self.database = database

    async def run(self, operation: DocumentOperation, label: str = "operation") -> StoreResult:
        try:
            value = await operation(self.database)
        except Exception as e:
            logger.warning(f"⚠️ Document store {label} failed: {e!r}")
            return StoreResult.failed(self.store, e)
        return StoreResult.ok(self.store, value)

    async def fetch(self, operation: DocumentOperation, label: str = "read", fallback: Any = None) -> Any:
        """Run a read and return its value, or ``fallback`` when it failed or found nothing."""
        return (await self.run(operation, label)).value_or(fallback)


class RelationalStoreAdapter:
    """Runs each operation in its own transaction at a declared isolation level."""

    store = StoreName.RELATIONAL

    def __init__(
        self,
        session_factory: async_sessionmaker,
        isolation_policy: Optional[Dict[OperationKind, IsolationLevel]] = None,
    ):
        self.session_factory = session_factory
        self.isolation_policy = {**ISOLATION_POLICY, **(isolation_policy or {})}

    def isolation_for(self, kind: OperationKind) -> IsolationLevel:
        return self.isolation_policy.get(kind, IsolationLevel.REPEATABLE_READ)

    @staticmethod
    def _driver_level(session: AsyncSession, level: IsolationLevel) -> str:
        bind = session.bind
        dialect = getattr(getattr(bind, "dialect", None), "name", "")
        if dialect in _SINGLE_LEVEL_DIALECTS:
            return IsolationLevel.SERIALIZABLE.value
        return level.value

    async def run(
        self,
        operation: RelationalOperation,
        kind: OperationKind = OperationKind.READ,
        label: str = "operation",
        level: Optional[IsolationLevel] = None,
    ) -> StoreResult:
        level = level or self.isolation_for(kind)
        async with self.session_factory() as session:
            try:
                async with session.begin():
                    await session.connection(
                        execution_options={"isolation_level": self._driver_level(session, level)}
                    )
                    value = await operation(session)
            except Exception as e:
                # session.begin() has already rolled the transaction back
                logger.warning(f"⚠️ Relational store {label} failed at {level.value}: {e!r}")
                return StoreResult.failed(self.store, e)
        return StoreResult.ok(self.store, value)

    async def fetch(
        self,
        operation: RelationalOperation,
        kind: OperationKind = OperationKind.READ,
        label: str = "read",
        fallback: Any = None,
    ) -> Any:
        return (await self.run(operation, kind, label)).value_or(fallback)
