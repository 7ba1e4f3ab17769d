from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import ASCENDING
from sqlalchemy.future import select

from fittrack.database import mongo
from fittrack.models import Analysis
from fittrack.persistence.correlator import CorrelatedEntity
from fittrack.repositories.base import DocumentGateway, RelationalGateway, str_id


def _datasets(data: Dict[str, Any]) -> Dict[str, List[Any]]:
    datasets = data.get("datasets") or {}
    return {
        "years": list(datasets.get("years") or []),
        "healthData": list(datasets.get("healthData") or []),
        "economicData": list(datasets.get("economicData") or []),
    }


class AnalysisDocuments(DocumentGateway):
    collection = mongo.ANALYSES
    sort_fields = (("createdAt", ASCENDING), ("_id", ASCENDING))

    def normalize(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        country = doc.get("country") or {}
        period = doc.get("period") or {}
        correlation = doc.get("correlation") or {}
        return {
            "id": str_id(doc["_id"]),
            "userId": str_id(doc.get("userId")),
            "name": doc.get("name"),
            "analysisType": doc.get("analysisType"),
            "country": {"code": country.get("code"), "name": country.get("name")},
            "period": {"start": period.get("start"), "end": period.get("end")},
            "correlation": {
                "value": correlation.get("value"),
                "interpretation": correlation.get("interpretation"),
            },
            "result": doc.get("result"),
            "datasets": _datasets(doc),
            "rawData": list(doc.get("rawData") or []),
            "title": doc.get("title"),
            "description": doc.get("description"),
            "createdAt": doc.get("createdAt"),
            "updatedAt": doc.get("updatedAt"),
        }

    async def create(self, db, owner_id: ObjectId, data: Dict[str, Any], stamp: datetime) -> Dict[str, Any]:
        """``data`` is in the normalized analysis shape (without ids)."""
        doc = {
            "userId": owner_id,
            "name": data["name"],
            "analysisType": data["analysisType"],
            "country": dict(data["country"]),
            "period": dict(data["period"]),
            "correlation": dict(data.get("correlation") or {}),
            "result": data.get("result"),
            "datasets": _datasets(data),
            "rawData": list(data.get("rawData") or []),
            "title": data.get("title"),
            "description": data.get("description"),
            "createdAt": stamp,
            "updatedAt": stamp,
        }
        result = await db[self.collection].insert_one(doc)
        doc["_id"] = result.inserted_id
        return self.normalize(doc)

    async def rename(self, db, analysis_id: ObjectId, name: str, stamp: datetime) -> Optional[Dict[str, Any]]:
        result = await db[self.collection].update_one(
            {"_id": analysis_id}, {"$set": {"name": name, "updatedAt": stamp}}
        )
        if result.matched_count == 0:
            return None
        return self.normalize(await db[self.collection].find_one({"_id": analysis_id}))

    async def find_by_name(self, db, owner_id: ObjectId, name: str) -> Optional[Dict[str, Any]]:
        doc = await db[self.collection].find_one({"userId": owner_id, "name": name})
        return self.normalize(doc) if doc else None

    async def names(self, db, owner_id: ObjectId) -> List[str]:
        cursor = db[self.collection].find({"userId": owner_id}, {"name": 1})
        return [doc.get("name") for doc in await cursor.to_list(length=None)]


class AnalysisRows(RelationalGateway):
    model = Analysis

    def order_by(self):
        return (Analysis.created_at.asc(), Analysis.id.asc())

    def normalize(self, row: Analysis) -> Dict[str, Any]:
        return {
            "id": row.id,
            "userId": row.user_id,
            "name": row.name,
            "analysisType": row.analysis_type,
            "country": {"code": row.country_code, "name": row.country_name},
            "period": {"start": row.period_start, "end": row.period_end},
            "correlation": {
                "value": row.correlation_value,
                "interpretation": row.correlation_interpretation,
            },
            "result": row.result,
            "datasets": _datasets({"datasets": row.datasets}),
            "rawData": list(row.raw_data or []),
            "title": row.title,
            "description": row.description,
            "createdAt": row.created_at,
            "updatedAt": row.updated_at,
        }

    async def create(self, session, owner_id: int, data: Dict[str, Any], stamp: datetime) -> Dict[str, Any]:
        correlation = data.get("correlation") or {}
        row = Analysis(
            user_id=owner_id,
            name=data["name"],
            analysis_type=data["analysisType"],
            country_code=data["country"]["code"],
            country_name=data["country"]["name"],
            period_start=data["period"]["start"],
            period_end=data["period"]["end"],
            correlation_value=correlation.get("value"),
            correlation_interpretation=correlation.get("interpretation"),
            result=data.get("result"),
            datasets=_datasets(data),
            raw_data=list(data.get("rawData") or []),
            title=data.get("title"),
            description=data.get("description"),
            created_at=stamp,
            updated_at=stamp,
        )
        session.add(row)
        await session.flush()
        return self.normalize(row)

    async def rename(self, session, analysis_id: int, name: str, stamp: datetime) -> Optional[Dict[str, Any]]:
        row = await session.get(Analysis, analysis_id)
        if row is None:
            return None
        row.name = name
        row.updated_at = stamp
        await session.flush()
        return self.normalize(row)

    async def find_by_name(self, session, owner_id: int, name: str) -> Optional[Dict[str, Any]]:
        result = await session.execute(self._owned(owner_id).where(Analysis.name == name))
        row = result.scalars().first()
        return self.normalize(row) if row else None

    async def names(self, session, owner_id: int) -> List[str]:
        result = await session.execute(select(Analysis.name).where(Analysis.user_id == owner_id))
        return [name for (name,) in result.all()]


ANALYSIS_ENTITY = CorrelatedEntity("analysis", AnalysisDocuments(), AnalysisRows())
