from typing import Any, Dict, Optional

from fittrack.core.logger import get_logger
from fittrack.enums import OperationKind
from fittrack.exceptions.errors import NotFoundError
from fittrack.persistence import DataStores, Pagination, Principal, resolve_owner
from fittrack.repositories.progress import PROGRESS_ENTITY
from fittrack.repositories.users import UserDocuments, UserRows
from fittrack.schemas.progress_schemas import ProgressCreate, ProgressUpdate
from fittrack.utils.time_utils import utc_now_ms

logger = get_logger("progress_service")

user_documents = UserDocuments()
user_rows = UserRows()


class ProgressService:

    @staticmethod
    async def create(stores: DataStores, principal: Principal, data: ProgressCreate) -> Dict[str, Any]:
        """Record a progress entry and copy its weight onto the user's profile."""
        owner = resolve_owner(principal, stores.mode)
        payload = data.dict()
        stamp = utc_now_ms()

        async def write_document(db):
            entry = await PROGRESS_ENTITY.document.create(db, owner.document_id, payload, stamp)
            await user_documents.update_weight(db, owner.document_id, payload["weight"])
            return entry

        async def write_relational(session):
            entry = await PROGRESS_ENTITY.relational.create(session, owner.relational_id, payload, stamp)
            await user_rows.update_weight(session, owner.relational_id, payload["weight"])
            return entry

        result = await stores.coordinator.execute(
            document_op=write_document,
            relational_op=write_relational,
            kind=OperationKind.SIMPLE_WRITE,
            label="create progress",
        )
        result.raise_for_failure("Failed to save progress entry")
        return {
            "message": f"Progress entry saved ({result.describe()})",
            "progress": stores.merger.from_write(result),
            "stores": result.stores,
        }

    @staticmethod
    async def list(stores: DataStores, principal: Principal, page: Optional[int] = None, limit: Optional[int] = None) -> Dict[str, Any]:
        owner = resolve_owner(principal, stores.mode)
        listing = await stores.merger.list_page(PROGRESS_ENTITY, owner, Pagination.from_query(page, limit))
        return {"progress": listing["items"], "pagination": listing["pagination"]}

    @staticmethod
    async def get(stores: DataStores, principal: Principal, progress_id: str) -> Dict[str, Any]:
        owner = resolve_owner(principal, stores.mode)
        correlated = await stores.correlator.resolve(progress_id, PROGRESS_ENTITY, owner)
        if not correlated.found:
            raise NotFoundError("Progress entry not found")
        return stores.merger.single(correlated)

    @staticmethod
    async def update(stores: DataStores, principal: Principal, progress_id: str, data: ProgressUpdate) -> Dict[str, Any]:
        owner = resolve_owner(principal, stores.mode)
        correlated = await stores.correlator.resolve(progress_id, PROGRESS_ENTITY, owner)
        if not correlated.found:
            raise NotFoundError("Progress entry not found")

        changes = data.dict(exclude_unset=True)
        stamp = utc_now_ms()
        result = await stores.coordinator.execute(
            document_op=(
                (lambda db: PROGRESS_ENTITY.document.update(db, correlated.document_id, changes, stamp))
                if correlated.document_id else None
            ),
            relational_op=(
                (lambda session: PROGRESS_ENTITY.relational.update(session, correlated.relational_id, changes, stamp))
                if correlated.relational_id else None
            ),
            kind=OperationKind.SIMPLE_WRITE,
            label="update progress",
        )
        result.raise_for_failure("Failed to update progress entry", not_found="Progress entry not found")
        return {
            "message": "Progress entry updated",
            "progress": stores.merger.from_write(result),
            "updated": result.stores,
        }

    @staticmethod
    async def delete(stores: DataStores, principal: Principal, progress_id: str) -> Dict[str, Any]:
        owner = resolve_owner(principal, stores.mode)
        correlated = await stores.correlator.resolve(progress_id, PROGRESS_ENTITY, owner)
        if not correlated.found:
            raise NotFoundError("Progress entry not found")

        if correlated.ambiguous:
            logger.warning(f"⚠️ Deleting progress {progress_id} through an ambiguous correlation")

        result = await stores.coordinator.execute(
            document_op=(
                (lambda db: PROGRESS_ENTITY.document.delete(db, correlated.document_id))
                if correlated.document_id else None
            ),
            relational_op=(
                (lambda session: PROGRESS_ENTITY.relational.delete(session, correlated.relational_id))
                if correlated.relational_id else None
            ),
            kind=OperationKind.DELETE,
            label="delete progress",
        )
        result.raise_for_failure("Failed to delete progress entry", not_found="Progress entry not found")
        return {"message": "Progress entry deleted", "deleted": result.stores}
