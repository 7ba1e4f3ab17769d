import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from bson import ObjectId

from fittrack.enums import OperationKind, StoreMode, StoreName
from fittrack.persistence.adapters import DocumentStoreAdapter, RelationalStoreAdapter
from fittrack.persistence.correlator import CorrelatedEntity, CorrelatedIds
from fittrack.persistence.identity import Owner
from fittrack.persistence.results import DualWriteResult

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10

PEER_ID_FIELDS = {
    StoreName.DOCUMENT: "mongoId",
    StoreName.RELATIONAL: "mysqlId",
}


@dataclass(frozen=True)
class Pagination:
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    @classmethod
    def from_query(cls, page: Optional[int] = None, limit: Optional[int] = None) -> "Pagination":
        page = page if page and page > 0 else DEFAULT_PAGE
        limit = limit if limit and limit > 0 else DEFAULT_LIMIT
        return cls(page=page, limit=limit)

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    def page_info(self, total: int) -> Dict[str, int]:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": total,
            "pages": math.ceil(total / self.limit) if total else 0,
        }


class ReadMerger:
    """
    Shapes reads for callers.

    Lists, counts and pages always come from a single authoritative store
    (the document store whenever it is active). Single-entity reads return the
    authoritative record with the other store's id attached as ``mysqlId`` or
    ``mongoId``.
    """

    def __init__(
        self,
        mode: StoreMode,
        document: DocumentStoreAdapter,
        relational: RelationalStoreAdapter,
    ):
        self.mode = mode
        self.document = document
        self.relational = relational

    @property
    def authoritative_store(self) -> StoreName:
        return StoreName.RELATIONAL if self.mode is StoreMode.RELATIONAL_ONLY else StoreName.DOCUMENT

    def merge(self, document_results: List[Dict[str, Any]], relational_results: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Authoritative results only; never a union of both stores."""
        if self.authoritative_store is StoreName.DOCUMENT:
            return list(document_results or [])
        return list(relational_results or [])

    @staticmethod
    def attach_peer_id(primary: Dict[str, Any], peer_id: Any, peer_store: StoreName) -> Dict[str, Any]:
        merged = dict(primary)
        if peer_id is not None:
            merged.setdefault(PEER_ID_FIELDS[peer_store], str(peer_id) if peer_store is StoreName.DOCUMENT else peer_id)
        return merged

    def single(self, correlated: CorrelatedIds) -> Optional[Dict[str, Any]]:
        """Primary record of a correlation, carrying the secondary store's id."""
        prefer_document = self.authoritative_store is StoreName.DOCUMENT
        if correlated.document_record is not None and (prefer_document or correlated.relational_record is None):
            return self.attach_peer_id(correlated.document_record, correlated.relational_id, StoreName.RELATIONAL)
        if correlated.relational_record is not None:
            return self.attach_peer_id(correlated.relational_record, correlated.document_id, StoreName.DOCUMENT)
        return None

    def from_write(self, result: DualWriteResult) -> Optional[Dict[str, Any]]:
        """Merged view of the records a dual write produced."""
        document_record = result.document.value_or(None)
        relational_record = result.relational.value_or(None)
        return self.single(CorrelatedIds(
            document_id=ObjectId(document_record["id"]) if document_record else None,
            relational_id=relational_record["id"] if relational_record else None,
            document_record=document_record,
            relational_record=relational_record,
        ))

    async def list_page(self, entity: CorrelatedEntity, owner: Owner, pagination: Pagination) -> Dict[str, Any]:
        if self.authoritative_store is StoreName.DOCUMENT:
            items = await self.document.fetch(
                lambda db: entity.document.list_page(db, owner.document_id, pagination.skip, pagination.limit),
                label=f"{entity.name} list",
                fallback=[],
            )
            total = await self.document.fetch(
                lambda db: entity.document.count(db, owner.document_id),
                label=f"{entity.name} count",
                fallback=0,
            )
            items = self.merge(items, [])
        else:
            items = await self.relational.fetch(
                lambda session: entity.relational.list_page(session, owner.relational_id, pagination.skip, pagination.limit),
                kind=OperationKind.LIST,
                label=f"{entity.name} list",
                fallback=[],
            )
            total = await self.relational.fetch(
                lambda session: entity.relational.count(session, owner.relational_id),
                kind=OperationKind.LIST,
                label=f"{entity.name} count",
                fallback=0,
            )
            items = self.merge([], items)
        return {"items": items, "pagination": pagination.page_info(total)}

    async def list_all(self, entity: CorrelatedEntity, owner: Owner) -> List[Dict[str, Any]]:
        if self.authoritative_store is StoreName.DOCUMENT:
            items = await self.document.fetch(
                lambda db: entity.document.list_all(db, owner.document_id),
                label=f"{entity.name} list",
                fallback=[],
            )
            return self.merge(items, [])
        items = await self.relational.fetch(
            lambda session: entity.relational.list_all(session, owner.relational_id),
            kind=OperationKind.LIST,
            label=f"{entity.name} list",
            fallback=[],
        )
        return self.merge([], items)
