"""
Per-entity store gateways.

Each entity has one gateway per store. Gateways are stateless: document
gateways take the motor database handle, relational gateways take the
AsyncSession opened by the relational adapter. Both return records in the
same camelCase shape so callers never care which store answered.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import ASCENDING
from sqlalchemy import delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select


class DocumentGateway:
    collection: str = ""
    correlation_field: str = "createdAt"
    sort_fields = (("_id", ASCENDING),)

    def normalize(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    def _normalize_or_none(self, doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        return self.normalize(doc) if doc else None

    def owner_filter(self, owner_id: ObjectId) -> Dict[str, Any]:
        return {"userId": owner_id}

    async def get(self, db, entity_id: ObjectId, owner_id: ObjectId) -> Optional[Dict[str, Any]]:
        doc = await db[self.collection].find_one({"_id": entity_id, **self.owner_filter(owner_id)})
        return self._normalize_or_none(doc)

    async def find_correlated(self, db, owner_id: ObjectId, stamp: datetime) -> List[Dict[str, Any]]:
        """Records of ``owner_id`` whose correlation timestamp equals ``stamp``, oldest id first."""
        cursor = db[self.collection].find(
            {**self.owner_filter(owner_id), self.correlation_field: stamp}
        ).sort("_id", ASCENDING)
        return [self.normalize(doc) for doc in await cursor.to_list(length=None)]

    async def list_page(self, db, owner_id: ObjectId, skip: int, limit: int) -> List[Dict[str, Any]]:
        cursor = (
            db[self.collection]
            .find(self.owner_filter(owner_id))
            .sort(list(self.sort_fields))
            .skip(skip)
            .limit(limit)
        )
        return [self.normalize(doc) for doc in await cursor.to_list(length=limit)]

    async def list_all(self, db, owner_id: ObjectId) -> List[Dict[str, Any]]:
        cursor = db[self.collection].find(self.owner_filter(owner_id)).sort(list(self.sort_fields))
        return [self.normalize(doc) for doc in await cursor.to_list(length=None)]

    async def count(self, db, owner_id: ObjectId) -> int:
        return await db[self.collection].count_documents(self.owner_filter(owner_id))

    async def delete(self, db, entity_id: ObjectId) -> bool:
        result = await db[self.collection].delete_one({"_id": entity_id})
        return result.deleted_count > 0

    async def delete_for_owner(self, db, owner_id: ObjectId) -> int:
        result = await db[self.collection].delete_many(self.owner_filter(owner_id))
        return result.deleted_count


class RelationalGateway:
    model = None
    correlation_column: str = "created_at"
    correlation_field: str = "createdAt"

    def normalize(self, row) -> Dict[str, Any]:
        raise NotImplementedError

    def order_by(self):
        return (self.model.id.asc(),)

    def _owned(self, owner_id: int):
        return select(self.model).where(self.model.user_id == owner_id)

    async def get_row(self, session: AsyncSession, entity_id: int, owner_id: int):
        result = await session.execute(
            self._owned(owner_id).where(self.model.id == entity_id)
        )
        return result.scalar_one_or_none()

    async def get(self, session: AsyncSession, entity_id: int, owner_id: int) -> Optional[Dict[str, Any]]:
        row = await self.get_row(session, entity_id, owner_id)
        return self.normalize(row) if row else None

    async def find_correlated(self, session: AsyncSession, owner_id: int, stamp: datetime) -> List[Dict[str, Any]]:
        column = getattr(self.model, self.correlation_column)
        result = await session.execute(
            self._owned(owner_id).where(column == stamp).order_by(self.model.id.asc())
        )
        return [self.normalize(row) for row in result.scalars().all()]

    async def list_page(self, session: AsyncSession, owner_id: int, skip: int, limit: int) -> List[Dict[str, Any]]:
        result = await session.execute(
            self._owned(owner_id).order_by(*self.order_by()).offset(skip).limit(limit)
        )
        return [self.normalize(row) for row in result.scalars().all()]

    async def list_all(self, session: AsyncSession, owner_id: int) -> List[Dict[str, Any]]:
        result = await session.execute(self._owned(owner_id).order_by(*self.order_by()))
        return [self.normalize(row) for row in result.scalars().all()]

    async def count(self, session: AsyncSession, owner_id: int) -> int:
        result = await session.execute(
            select(func.count(self.model.id)).where(self.model.user_id == owner_id)
        )
        return result.scalar() or 0

    async def delete(self, session: AsyncSession, entity_id: int) -> bool:
        result = await session.execute(delete(self.model).where(self.model.id == entity_id))
        return result.rowcount > 0


def str_id(value: Any) -> Optional[str]:
    return str(value) if value is not None else None
