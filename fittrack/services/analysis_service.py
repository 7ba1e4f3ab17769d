from typing import Any, Dict, Optional

from bson import ObjectId

from fittrack.core.logger import get_logger
from fittrack.enums import OperationKind
from fittrack.exceptions.errors import NotFoundError
from fittrack.persistence import CorrelatedIds, DataStores, Owner, Pagination, Principal, resolve_owner
from fittrack.repositories.analyses import ANALYSIS_ENTITY
from fittrack.schemas.analysis_schemas import AnalysisCreate, AnalysisRename
from fittrack.services.analytics_service import AnalyticsService
from fittrack.utils.time_utils import utc_now_ms

logger = get_logger("analysis_service")


class AnalysisService:
    """Saved analyses: computed once from the statistics providers, then stored in every active store."""

    @staticmethod
    async def save(stores: DataStores, owner: Owner, data: Dict[str, Any]):
        """Dual-write an analysis in its stored shape. Returns the DualWriteResult."""
        stamp = utc_now_ms()
        return await stores.coordinator.execute(
            document_op=lambda db: ANALYSIS_ENTITY.document.create(db, owner.document_id, data, stamp),
            relational_op=lambda session: ANALYSIS_ENTITY.relational.create(session, owner.relational_id, data, stamp),
            kind=OperationKind.SIMPLE_WRITE,
            label="create analysis",
        )

    @staticmethod
    async def create(stores: DataStores, analytics: AnalyticsService, principal: Principal, data: AnalysisCreate) -> Dict[str, Any]:
        owner = resolve_owner(principal, stores.mode)
        computed = await analytics.perform_analysis(data.analysisType, data.countryCode, data.yearStart, data.yearEnd)

        result = await AnalysisService.save(stores, owner, {
            "name": data.name,
            "analysisType": computed["analysisType"],
            "title": computed["title"],
            "description": computed["description"],
            "country": {"code": data.countryCode, "name": data.countryName},
            "period": {"start": data.yearStart, "end": data.yearEnd},
            "correlation": {
                "value": computed["correlation"],
                "interpretation": computed["correlationInterpretation"],
            },
            "result": computed["result"],
            "datasets": computed["datasets"],
            "rawData": computed["rawData"],
        })
        result.raise_for_failure("Failed to save analysis")
        return {
            "message": f"Analysis saved in {result.describe()}",
            "analysis": stores.merger.from_write(result),
            "stores": result.stores,
        }

    @staticmethod
    async def list(stores: DataStores, principal: Principal, page: Optional[int] = None, limit: Optional[int] = None) -> Dict[str, Any]:
        owner = resolve_owner(principal, stores.mode)
        listing = await stores.merger.list_page(ANALYSIS_ENTITY, owner, Pagination.from_query(page, limit))
        return {"analyses": listing["items"], "pagination": listing["pagination"]}

    @staticmethod
    async def resolve(stores: DataStores, owner: Owner, analysis_id: Any) -> CorrelatedIds:
        correlated = await stores.correlator.resolve(analysis_id, ANALYSIS_ENTITY, owner)
        if not correlated.found:
            raise NotFoundError("Analysis not found")
        return correlated

    @staticmethod
    async def get(stores: DataStores, principal: Principal, analysis_id: str) -> Dict[str, Any]:
        owner = resolve_owner(principal, stores.mode)
        return stores.merger.single(await AnalysisService.resolve(stores, owner, analysis_id))

    @staticmethod
    async def rename(stores: DataStores, principal: Principal, analysis_id: str, data: AnalysisRename) -> Dict[str, Any]:
        owner = resolve_owner(principal, stores.mode)
        correlated = await AnalysisService.resolve(stores, owner, analysis_id)
        stamp = utc_now_ms()
        result = await stores.coordinator.execute(
            document_op=(
                (lambda db: ANALYSIS_ENTITY.document.rename(db, correlated.document_id, data.name, stamp))
                if correlated.document_id else None
            ),
            relational_op=(
                (lambda session: ANALYSIS_ENTITY.relational.rename(session, correlated.relational_id, data.name, stamp))
                if correlated.relational_id else None
            ),
            kind=OperationKind.UPDATE,
            label="rename analysis",
        )
        result.raise_for_failure("Failed to update analysis", not_found="Analysis not found")
        return {
            "message": "Analysis updated",
            "analysis": stores.merger.from_write(result),
            "updated": result.stores,
        }

    @staticmethod
    async def delete_correlated(stores: DataStores, correlated: CorrelatedIds):
        return await stores.coordinator.execute(
            document_op=(
                (lambda db: ANALYSIS_ENTITY.document.delete(db, correlated.document_id))
                if correlated.document_id else None
            ),
            relational_op=(
                (lambda session: ANALYSIS_ENTITY.relational.delete(session, correlated.relational_id))
                if correlated.relational_id else None
            ),
            kind=OperationKind.DELETE,
            label="delete analysis",
        )

    @staticmethod
    async def delete(stores: DataStores, principal: Principal, analysis_id: str) -> Dict[str, Any]:
        owner = resolve_owner(principal, stores.mode)
        correlated = await AnalysisService.resolve(stores, owner, analysis_id)
        result = await AnalysisService.delete_correlated(stores, correlated)
        result.raise_for_failure("Failed to delete analysis", not_found="Analysis not found")
        return {"message": "Analysis deleted", "deleted": result.stores}

    @staticmethod
    async def find_by_name(stores: DataStores, owner: Owner, name: str) -> CorrelatedIds:
        """The analysis called ``name`` in each active store (ids unset where absent)."""
        found = CorrelatedIds()
        if stores.mode.uses_document:
            found.document_record = await stores.document.fetch(
                lambda db: ANALYSIS_ENTITY.document.find_by_name(db, owner.document_id, name),
                label="analysis by name",
            )
            if found.document_record:
                found.document_id = ObjectId(found.document_record["id"])
        if stores.mode.uses_relational:
            found.relational_record = await stores.relational.fetch(
                lambda session: ANALYSIS_ENTITY.relational.find_by_name(session, owner.relational_id, name),
                kind=OperationKind.CORRELATION,
                label="analysis by name",
            )
            if found.relational_record:
                found.relational_id = found.relational_record["id"]
        return found
