"""
Enums describing the two backing stores and how operations are routed to them.
"""

from enum import Enum


class StoreMode(str, Enum):
    DOCUMENT_ONLY = "document-only"
    RELATIONAL_ONLY = "relational-only"
    DUAL = "dual"

    @classmethod
    def parse(cls, value: str) -> "StoreMode":
        """Parse a configured mode, accepting the legacy mongo/mysql/both names."""
        aliases = {
            "mongo": cls.DOCUMENT_ONLY,
            "mongodb": cls.DOCUMENT_ONLY,
            "mysql": cls.RELATIONAL_ONLY,
            "both": cls.DUAL,
        }
        normalized = (value or "").strip().lower()
        if normalized in aliases:
            return aliases[normalized]
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(
                f"Unknown DATABASE_MODE '{value}'. Expected one of: "
                f"{', '.join(m.value for m in cls)}"
            )

    @property
    def uses_document(self) -> bool:
        return self in (StoreMode.DOCUMENT_ONLY, StoreMode.DUAL)

    @property
    def uses_relational(self) -> bool:
        return self in (StoreMode.RELATIONAL_ONLY, StoreMode.DUAL)


class StoreName(str, Enum):
    """Store keys used in every per-store result breakdown."""
    DOCUMENT = "mongo"
    RELATIONAL = "mysql"


class IsolationLevel(str, Enum):
    READ_COMMITTED = "READ COMMITTED"
    REPEATABLE_READ = "REPEATABLE READ"
    SERIALIZABLE = "SERIALIZABLE"


class OperationKind(str, Enum):
    READ = "read"
    CORRELATION = "correlation"
    LIST = "list"
    CREATE = "create"
    SIMPLE_WRITE = "simple_write"
    UPDATE = "update"
    DELETE = "delete"
