from datetime import datetime
from typing import Any, Dict, Optional

from bson import ObjectId
from pymongo import ASCENDING

from fittrack.database import mongo
from fittrack.models import Progress
from fittrack.persistence.correlator import CorrelatedEntity
from fittrack.repositories.base import DocumentGateway, RelationalGateway, str_id


class ProgressDocuments(DocumentGateway):
    collection = mongo.PROGRESS
    sort_fields = (("date", ASCENDING), ("_id", ASCENDING))

    def normalize(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "id": str_id(doc["_id"]),
            "userId": str_id(doc.get("userId")),
            "weight": doc.get("weight"),
            "trainingTime": doc.get("trainingTime"),
            "date": doc.get("date"),
            "createdAt": doc.get("createdAt"),
            "updatedAt": doc.get("updatedAt"),
        }

    async def create(self, db, owner_id: ObjectId, data: Dict[str, Any], stamp: datetime) -> Dict[str, Any]:
        doc = {
            "userId": owner_id,
            "weight": data["weight"],
            "trainingTime": data["trainingTime"],
            "date": data.get("date") or stamp,
            "createdAt": stamp,
            "updatedAt": stamp,
        }
        result = await db[self.collection].insert_one(doc)
        doc["_id"] = result.inserted_id
        return self.normalize(doc)

    async def update(self, db, entity_id: ObjectId, changes: Dict[str, Any], stamp: datetime) -> Optional[Dict[str, Any]]:
        result = await db[self.collection].update_one(
            {"_id": entity_id},
            {"$set": {**changes, "updatedAt": stamp}}
        )
        if result.matched_count == 0:
            return None
        return self.normalize(await db[self.collection].find_one({"_id": entity_id}))


class ProgressRows(RelationalGateway):
    model = Progress

    def order_by(self):
        return (Progress.date.asc(), Progress.id.asc())

    def normalize(self, row: Progress) -> Dict[str, Any]:
        return {
            "id": row.id,
            "userId": row.user_id,
            "weight": row.weight,
            "trainingTime": row.training_time,
            "date": row.date,
            "createdAt": row.created_at,
            "updatedAt": row.updated_at,
        }

    async def create(self, session, owner_id: int, data: Dict[str, Any], stamp: datetime) -> Dict[str, Any]:
        entry = Progress(
            user_id=owner_id,
            weight=data["weight"],
            training_time=data["trainingTime"],
            date=data.get("date") or stamp,
            created_at=stamp,
            updated_at=stamp,
        )
        session.add(entry)
        await session.flush()
        return self.normalize(entry)

    async def update(self, session, entity_id: int, changes: Dict[str, Any], stamp: datetime) -> Optional[Dict[str, Any]]:
        entry = await session.get(Progress, entity_id)
        if entry is None:
            return None
        if "weight" in changes:
            entry.weight = changes["weight"]
        if "trainingTime" in changes:
            entry.training_time = changes["trainingTime"]
        if "date" in changes:
            entry.date = changes["date"]
        entry.updated_at = stamp
        await session.flush()
        return self.normalize(entry)


PROGRESS_ENTITY = CorrelatedEntity("progress", ProgressDocuments(), ProgressRows())
