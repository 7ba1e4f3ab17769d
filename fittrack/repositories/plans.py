"""
Training and diet plans share one structure (plan -> days -> items), so a
single gateway pair parameterized by PlanLayout serves both.

Document side: a plan is one document with nested ``days`` and items. Every
nested mutation is a compare-and-swap on the plan's ``version`` field, so two
concurrent edits of sibling days can no longer overwrite each other.

Relational side: three tables with foreign keys; deletes clean up child
tables explicitly, leaves first.

Plan names are unique per owner in each store. The document insert is an
upsert keyed on (userId, name); the relational insert rechecks the name in its
own transaction over a unique (user_id, name) key.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from bson import ObjectId
from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError
from sqlalchemy import delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from fittrack.core.logger import get_logger
from fittrack.database import mongo
from fittrack.enums import PlanKind
from fittrack.models import (
    TrainingPlan, TrainingDay, TrainingExercise,
    DietPlan, DietDay, DietMeal
)
from fittrack.persistence.correlator import CorrelatedEntity
from fittrack.repositories.base import DocumentGateway, RelationalGateway, str_id
from fittrack.utils.time_utils import utc_now_ms

logger = get_logger("plan_repository")

MAX_CAS_ATTEMPTS = 5


class ConcurrentModificationError(Exception):
    """The plan document kept changing underneath a nested update."""


class DuplicatePlanNameError(Exception):
    """The owner already has a plan with this name in the store."""


@dataclass(frozen=True)
class PlanLayout:
    kind: PlanKind
    collection: str
    items_key: str
    plan_model: Any
    day_model: Any
    item_model: Any
    # camelCase item field -> relational column
    item_fields: Dict[str, str]
    required_item_fields: Tuple[str, ...]


TRAINING_LAYOUT = PlanLayout(
    kind=PlanKind.TRAINING,
    collection=mongo.TRAINING_PLANS,
    items_key="exercises",
    plan_model=TrainingPlan,
    day_model=TrainingDay,
    item_model=TrainingExercise,
    item_fields={
        "exerciseId": "exercise_id",
        "exerciseName": "exercise_name",
        "sets": "sets",
        "reps": "reps",
        "weight": "weight",
        "restTime": "rest_time",
        "order": "order",
        "gifUrl": "gif_url",
        "equipment": "equipment",
        "target": "target",
        "bodyPart": "body_part",
    },
    required_item_fields=("exerciseId",),
)

DIET_LAYOUT = PlanLayout(
    kind=PlanKind.DIET,
    collection=mongo.DIET_PLANS,
    items_key="meals",
    plan_model=DietPlan,
    day_model=DietDay,
    item_model=DietMeal,
    item_fields={
        "recipeId": "recipe_id",
        "title": "title",
        "calories": "calories",
        "protein": "protein",
        "carbs": "carbs",
        "fat": "fat",
        "image": "image",
        "recipeUrl": "recipe_url",
        "order": "order",
    },
    required_item_fields=("recipeId", "title"),
)

PLAN_FIELDS = {
    "name": "name",
    "description": "description",
    "isActive": "is_active",
}

DAY_FIELDS = {
    "dayOfWeek": "day_of_week",
    "name": "name",
    "order": "order",
}


def _sorted_by_order(entries: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    # sorted() is stable, so equal orders keep insertion position
    return sorted(entries, key=lambda entry: entry.get("order") or 0)


class PlanDocuments(DocumentGateway):
    correlation_field = "dateCreated"
    sort_fields = (("dateCreated", ASCENDING), ("_id", ASCENDING))

    def __init__(self, layout: PlanLayout):
        self.layout = layout
        self.collection = layout.collection

    # Shape

    def normalize_item(self, item: Dict[str, Any]) -> Dict[str, Any]:
        normalized = {"id": str_id(item.get("_id"))}
        for key in self.layout.item_fields:
            normalized[key] = item.get(key)
        return normalized

    def normalize_day(self, day: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "id": str_id(day.get("_id")),
            "dayOfWeek": day.get("dayOfWeek"),
            "name": day.get("name"),
            "order": day.get("order", 0),
            self.layout.items_key: _sorted_by_order(
                [self.normalize_item(item) for item in day.get(self.layout.items_key, [])]
            ),
        }

    def normalize(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "id": str_id(doc["_id"]),
            "userId": str_id(doc.get("userId")),
            "name": doc.get("name"),
            "description": doc.get("description"),
            "isActive": doc.get("isActive", True),
            "dateCreated": doc.get("dateCreated"),
            "dateUpdated": doc.get("dateUpdated"),
            "days": _sorted_by_order([self.normalize_day(day) for day in doc.get("days", [])]),
        }

    def build_item(self, data: Dict[str, Any]) -> Dict[str, Any]:
        item = {"_id": ObjectId()}
        for key in self.layout.item_fields:
            if data.get(key) is not None:
                item[key] = data[key]
        item.setdefault("order", 0)
        return item

    def build_day(self, data: Dict[str, Any], items: List[Dict[str, Any]]) -> Dict[str, Any]:
        return {
            "_id": ObjectId(),
            "dayOfWeek": data.get("dayOfWeek"),
            "name": data.get("name"),
            "order": data.get("order") or 0,
            self.layout.items_key: [self.build_item(item) for item in items],
        }

    # Plans

    async def create(self, db, owner_id: ObjectId, plan: Dict[str, Any], days: List[Dict[str, Any]], stamp: datetime) -> Dict[str, Any]:
        """Insert the plan unless the owner already has one with the same name."""
        key = {"userId": owner_id, "name": plan["name"]}
        fields = {
            "description": plan.get("description"),
            "isActive": plan.get("isActive", True),
            "dateCreated": stamp,
            "dateUpdated": stamp,
            "version": 0,
            "days": [self.build_day(day, day.get("items", [])) for day in days],
        }
        # Upsert keyed on (userId, name): the existence check and the insert are one operation
        try:
            result = await db[self.collection].update_one(key, {"$setOnInsert": fields}, upsert=True)
        except DuplicateKeyError as e:
            raise DuplicatePlanNameError(f"Plan '{plan['name']}' already exists") from e
        if result.upserted_id is None:
            raise DuplicatePlanNameError(f"Plan '{plan['name']}' already exists")
        return self.normalize({"_id": result.upserted_id, **key, **fields})

    async def update(self, db, plan_id: ObjectId, changes: Dict[str, Any], stamp: datetime) -> Optional[Dict[str, Any]]:
        update = {key: changes[key] for key in PLAN_FIELDS if key in changes}
        update["dateUpdated"] = stamp
        result = await db[self.collection].update_one(
            {"_id": plan_id}, {"$set": update, "$inc": {"version": 1}}
        )
        if result.matched_count == 0:
            return None
        return self.normalize(await db[self.collection].find_one({"_id": plan_id}))

    async def find_by_name(self, db, owner_id: ObjectId, name: str) -> Optional[Dict[str, Any]]:
        doc = await db[self.collection].find_one({"userId": owner_id, "name": name})
        return self.normalize(doc) if doc else None

    async def names(self, db, owner_id: ObjectId) -> List[str]:
        cursor = db[self.collection].find({"userId": owner_id}, {"name": 1})
        return [doc.get("name") for doc in await cursor.to_list(length=None)]

    # Nested days / items

    async def _mutate(self, db, plan_id: ObjectId, mutator: Callable[[Dict[str, Any]], Any]) -> Any:
        """
        Read-modify-write of one plan document guarded by its version.

        ``mutator`` edits the document in place and returns the value to hand
        back, or None to abort without writing.
        """
        for attempt in range(1, MAX_CAS_ATTEMPTS + 1):
            doc = await db[self.collection].find_one({"_id": plan_id})
            if doc is None:
                return None
            version = doc.get("version")
            outcome = mutator(doc)
            if outcome is None:
                return None

            guard = {"_id": plan_id, "version": version} if version is not None \
                else {"_id": plan_id, "version": {"$exists": False}}
            doc["version"] = (version or 0) + 1
            doc["dateUpdated"] = utc_now_ms()
            result = await db[self.collection].replace_one(guard, doc)
            if result.matched_count == 1:
                return outcome
            logger.info(f"Plan {plan_id} changed concurrently, retrying ({attempt}/{MAX_CAS_ATTEMPTS})")
        raise ConcurrentModificationError(f"Plan {plan_id} kept changing during update")

    @staticmethod
    def _find(entries: List[Dict[str, Any]], entry_id: ObjectId) -> Optional[Dict[str, Any]]:
        return next((entry for entry in entries if entry.get("_id") == entry_id), None)

    async def add_day(self, db, plan_id: ObjectId, data: Dict[str, Any], items: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        day = self.build_day(data, items)

        def mutator(doc):
            doc.setdefault("days", []).append(day)
            return self.normalize_day(day)

        return await self._mutate(db, plan_id, mutator)

    async def update_day(self, db, plan_id: ObjectId, day_id: ObjectId, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        def mutator(doc):
            day = self._find(doc.get("days", []), day_id)
            if day is None:
                return None
            for key in DAY_FIELDS:
                if key in changes:
                    day[key] = changes[key]
            return self.normalize_day(day)

        return await self._mutate(db, plan_id, mutator)

    async def delete_day(self, db, plan_id: ObjectId, day_id: ObjectId) -> bool:
        def mutator(doc):
            days = doc.get("days", [])
            remaining = [day for day in days if day.get("_id") != day_id]
            if len(remaining) == len(days):
                return None
            doc["days"] = remaining
            return True

        return bool(await self._mutate(db, plan_id, mutator))

    async def add_item(self, db, plan_id: ObjectId, day_id: ObjectId, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        item = self.build_item(data)

        def mutator(doc):
            day = self._find(doc.get("days", []), day_id)
            if day is None:
                return None
            day.setdefault(self.layout.items_key, []).append(item)
            return self.normalize_item(item)

        return await self._mutate(db, plan_id, mutator)

    async def update_item(self, db, plan_id: ObjectId, item_id: ObjectId, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        def mutator(doc):
            for day in doc.get("days", []):
                item = self._find(day.get(self.layout.items_key, []), item_id)
                if item is not None:
                    for key in self.layout.item_fields:
                        if key in changes:
                            item[key] = changes[key]
                    return self.normalize_item(item)
            return None

        return await self._mutate(db, plan_id, mutator)

    async def delete_item(self, db, plan_id: ObjectId, item_id: ObjectId) -> bool:
        def mutator(doc):
            for day in doc.get("days", []):
                items = day.get(self.layout.items_key, [])
                remaining = [item for item in items if item.get("_id") != item_id]
                if len(remaining) != len(items):
                    day[self.layout.items_key] = remaining
                    return True
            return None

        return bool(await self._mutate(db, plan_id, mutator))

    async def find_plan_with_day(self, db, owner_id: ObjectId, day_id: ObjectId) -> Optional[Dict[str, Any]]:
        doc = await db[self.collection].find_one({"userId": owner_id, "days._id": day_id})
        return self.normalize(doc) if doc else None

    async def find_plan_with_item(self, db, owner_id: ObjectId, item_id: ObjectId) -> Optional[Dict[str, Any]]:
        doc = await db[self.collection].find_one(
            {"userId": owner_id, f"days.{self.layout.items_key}._id": item_id}
        )
        return self.normalize(doc) if doc else None


class PlanRows(RelationalGateway):
    correlation_column = "date_created"
    correlation_field = "dateCreated"

    def __init__(self, layout: PlanLayout):
        self.layout = layout
        self.model = layout.plan_model

    def order_by(self):
        return (self.model.date_created.asc(), self.model.id.asc())

    def _owned(self, owner_id: int):
        day_model = self.layout.day_model
        return (
            select(self.model)
            .where(self.model.user_id == owner_id)
            .options(selectinload(self.model.days).selectinload(day_model.items))
        )

    # Shape

    def normalize_item(self, item) -> Dict[str, Any]:
        normalized = {"id": item.id}
        for key, column in self.layout.item_fields.items():
            normalized[key] = getattr(item, column)
        return normalized

    def normalize_day(self, day) -> Dict[str, Any]:
        items = sorted(day.items, key=lambda item: (item.order or 0, item.id or 0))
        return {
            "id": day.id,
            "dayOfWeek": day.day_of_week,
            "name": day.name,
            "order": day.order,
            self.layout.items_key: [self.normalize_item(item) for item in items],
        }

    def normalize(self, plan) -> Dict[str, Any]:
        days = sorted(plan.days, key=lambda day: (day.order or 0, day.id or 0))
        return {
            "id": plan.id,
            "userId": plan.user_id,
            "name": plan.name,
            "description": plan.description,
            "isActive": plan.is_active,
            "dateCreated": plan.date_created,
            "dateUpdated": plan.date_updated,
            "days": [self.normalize_day(day) for day in days],
        }

    def build_item(self, data: Dict[str, Any]):
        values = {column: data[key] for key, column in self.layout.item_fields.items() if data.get(key) is not None}
        values.setdefault("order", 0)
        return self.layout.item_model(**values)

    def build_day(self, data: Dict[str, Any], items: List[Dict[str, Any]]):
        return self.layout.day_model(
            day_of_week=data.get("dayOfWeek"),
            name=data.get("name"),
            order=data.get("order") or 0,
            items=[self.build_item(item) for item in items],
        )

    # Plans

    async def create(self, session, owner_id: int, plan: Dict[str, Any], days: List[Dict[str, Any]], stamp: datetime) -> Dict[str, Any]:
        # Checked inside the create transaction; the unique (user_id, name) key catches what slips past
        if await self.find_by_name(session, owner_id, plan["name"]) is not None:
            raise DuplicatePlanNameError(f"Plan '{plan['name']}' already exists")
        row = self.model(
            user_id=owner_id,
            name=plan["name"],
            description=plan.get("description"),
            is_active=plan.get("isActive", True),
            date_created=stamp,
            date_updated=stamp,
            days=[self.build_day(day, day.get("items", [])) for day in days],
        )
        session.add(row)
        try:
            await session.flush()
        except IntegrityError as e:
            message = str(e.orig).upper()
            if "UNIQUE" in message or "DUPLICATE" in message:
                raise DuplicatePlanNameError(f"Plan '{plan['name']}' already exists") from e
            raise
        return self.normalize(row)

    async def _load(self, session, plan_id: int):
        result = await session.execute(
            select(self.model)
            .where(self.model.id == plan_id)
            .options(selectinload(self.model.days).selectinload(self.layout.day_model.items))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def update(self, session, plan_id: int, changes: Dict[str, Any], stamp: datetime) -> Optional[Dict[str, Any]]:
        row = await self._load(session, plan_id)
        if row is None:
            return None
        for key, column in PLAN_FIELDS.items():
            if key in changes:
                setattr(row, column, changes[key])
        row.date_updated = stamp
        await session.flush()
        return self.normalize(row)

    async def delete(self, session, plan_id: int) -> bool:
        day_model, item_model = self.layout.day_model, self.layout.item_model
        day_ids = select(day_model.id).where(day_model.plan_id == plan_id)
        await session.execute(delete(item_model).where(item_model.day_id.in_(day_ids)))
        await session.execute(delete(day_model).where(day_model.plan_id == plan_id))
        result = await session.execute(delete(self.model).where(self.model.id == plan_id))
        return result.rowcount > 0

    async def find_by_name(self, session, owner_id: int, name: str) -> Optional[Dict[str, Any]]:
        result = await session.execute(self._owned(owner_id).where(self.model.name == name))
        row = result.scalars().first()
        return self.normalize(row) if row else None

    async def names(self, session, owner_id: int) -> List[str]:
        result = await session.execute(select(self.model.name).where(self.model.user_id == owner_id))
        return [name for (name,) in result.all()]

    async def count_children(self, session, plan_id: int) -> Tuple[int, int]:
        """Remaining (days, items) rows for a plan id."""
        day_model, item_model = self.layout.day_model, self.layout.item_model
        day_ids = select(day_model.id).where(day_model.plan_id == plan_id)
        days = await session.execute(select(func.count(day_model.id)).where(day_model.plan_id == plan_id))
        items = await session.execute(select(func.count(item_model.id)).where(item_model.day_id.in_(day_ids)))
        return days.scalar() or 0, items.scalar() or 0

    # Nested days / items

    async def add_day(self, session, plan_id: int, data: Dict[str, Any], items: List[Dict[str, Any]]) -> Dict[str, Any]:
        day = self.build_day(data, items)
        day.plan_id = plan_id
        session.add(day)
        await session.flush()
        return self.normalize_day(day)

    async def update_day(self, session, day_id: int, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        result = await session.execute(
            select(self.layout.day_model)
            .where(self.layout.day_model.id == day_id)
            .options(selectinload(self.layout.day_model.items))
        )
        day = result.scalar_one_or_none()
        if day is None:
            return None
        for key, column in DAY_FIELDS.items():
            if key in changes:
                setattr(day, column, changes[key])
        await session.flush()
        return self.normalize_day(day)

    async def delete_day(self, session, day_id: int) -> bool:
        item_model, day_model = self.layout.item_model, self.layout.day_model
        await session.execute(delete(item_model).where(item_model.day_id == day_id))
        result = await session.execute(delete(day_model).where(day_model.id == day_id))
        return result.rowcount > 0

    async def add_item(self, session, day_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        item = self.build_item(data)
        item.day_id = day_id
        session.add(item)
        await session.flush()
        return self.normalize_item(item)

    async def update_item(self, session, item_id: int, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        item = await session.get(self.layout.item_model, item_id)
        if item is None:
            return None
        for key, column in self.layout.item_fields.items():
            if key in changes:
                setattr(item, column, changes[key])
        await session.flush()
        return self.normalize_item(item)

    async def delete_item(self, session, item_id: int) -> bool:
        item_model = self.layout.item_model
        result = await session.execute(delete(item_model).where(item_model.id == item_id))
        return result.rowcount > 0

    async def find_plan_with_day(self, session, owner_id: int, day_id: int) -> Optional[Dict[str, Any]]:
        day_model = self.layout.day_model
        result = await session.execute(
            self._owned(owner_id).join(day_model, day_model.plan_id == self.model.id).where(day_model.id == day_id)
        )
        row = result.scalars().first()
        return self.normalize(row) if row else None

    async def find_plan_with_item(self, session, owner_id: int, item_id: int) -> Optional[Dict[str, Any]]:
        day_model, item_model = self.layout.day_model, self.layout.item_model
        result = await session.execute(
            self._owned(owner_id)
            .join(day_model, day_model.plan_id == self.model.id)
            .join(item_model, item_model.day_id == day_model.id)
            .where(item_model.id == item_id)
        )
        row = result.scalars().first()
        return self.normalize(row) if row else None


TRAINING_PLAN_ENTITY = CorrelatedEntity(
    "training plan", PlanDocuments(TRAINING_LAYOUT), PlanRows(TRAINING_LAYOUT), TRAINING_LAYOUT.items_key
)
DIET_PLAN_ENTITY = CorrelatedEntity(
    "diet plan", PlanDocuments(DIET_LAYOUT), PlanRows(DIET_LAYOUT), DIET_LAYOUT.items_key
)

PLAN_ENTITIES = {
    PlanKind.TRAINING: TRAINING_PLAN_ENTITY,
    PlanKind.DIET: DIET_PLAN_ENTITY,
}
