"""
Per-store outcomes.

Adapters never raise; they hand back a StoreResult carrying either the value
the store produced or the error it failed with. The coordinator folds two of
them into a DualWriteResult.
"""
from dataclasses import dataclass
from typing import Any, Dict, Generic, Optional, TypeVar

from fittrack.enums import StoreName
from fittrack.exceptions.errors import NotFoundError, StoreOperationError

T = TypeVar("T")


def is_usable(value: Any) -> bool:
    """A store produced something worth reporting (not None and not False)."""
    return value is not None and value is not False


@dataclass
class StoreResult(Generic[T]):
    store: StoreName
    attempted: bool = False
    value: Optional[T] = None
    error: Optional[Exception] = None

    @classmethod
    def ok(cls, store: StoreName, value: T) -> "StoreResult[T]":
        return cls(store=store, attempted=True, value=value)

    @classmethod
    def failed(cls, store: StoreName, error: Exception) -> "StoreResult[T]":
        return cls(store=store, attempted=True, error=error)

    @classmethod
    def skipped(cls, store: StoreName) -> "StoreResult[T]":
        return cls(store=store, attempted=False)

    @property
    def succeeded(self) -> bool:
        return self.attempted and self.error is None and is_usable(self.value)

    def value_or(self, fallback: Any = None) -> Any:
        return self.value if self.succeeded else fallback


@dataclass
class DualWriteResult:
    document: StoreResult
    relational: StoreResult
    label: str = "write"

    @property
    def succeeded(self) -> bool:
        """At least one store accepted the write."""
        return self.document.succeeded or self.relational.succeeded

    @property
    def partial(self) -> bool:
        return (
            self.document.attempted
            and self.relational.attempted
            and self.document.succeeded != self.relational.succeeded
        )

    @property
    def stores(self) -> Dict[str, bool]:
        return {
            StoreName.DOCUMENT.value: self.document.succeeded,
            StoreName.RELATIONAL.value: self.relational.succeeded,
        }

    @property
    def errored(self) -> bool:
        return self.document.error is not None or self.relational.error is not None

    def raise_for_failure(self, message: Optional[str] = None, not_found: Optional[str] = None) -> "DualWriteResult":
        """
        Raise unless some store accepted the write.

        When ``not_found`` is given and no store raised, an empty outcome means
        the target vanished between correlation and write: a 404, not a 500.
        """
        if self.succeeded:
            return self
        if not_found and not self.errored:
            raise NotFoundError(not_found)
        raise StoreOperationError(message or f"Failed to {self.label} in every active store")

    def describe(self) -> str:
        accepted = [name for name, ok in self.stores.items() if ok]
        if not accepted:
            return "none"
        return " and ".join(accepted)

