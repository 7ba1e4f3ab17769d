from datetime import datetime, date
from typing import Any, Dict, Optional, Tuple

from bson import ObjectId
from sqlalchemy import delete, or_
from sqlalchemy.future import select

from fittrack.database import mongo
from fittrack.enums import UserRole
from fittrack.models import (
    User, Progress, TrainingPlan, TrainingDay, TrainingExercise,
    DietPlan, DietDay, DietMeal, Analysis
)
from fittrack.repositories.base import str_id
from fittrack.utils.time_utils import utc_now_ms

PROFILE_FIELDS = {
    # camelCase (API / document) -> relational column
    "firstName": "first_name",
    "lastName": "last_name",
    "dateOfBirth": "date_of_birth",
    "gender": "gender",
    "weight": "weight",
    "height": "height",
}


def _as_date(value) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    return value


def _as_datetime(value) -> Optional[datetime]:
    # BSON has no date-only type
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day)
    return value


class UserDocuments:
    collection = mongo.USERS

    def normalize(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        profile = doc.get("profileData") or {}
        return {
            "id": str_id(doc["_id"]),
            "username": doc.get("username"),
            "email": doc.get("email"),
            "role": doc.get("role", "client"),
            "profile": {
                "firstName": profile.get("firstName"),
                "lastName": profile.get("lastName"),
                "dateOfBirth": _as_date(profile.get("dateOfBirth")),
                "gender": profile.get("gender"),
                "weight": profile.get("weight"),
                "height": profile.get("height"),
            },
            "createdAt": doc.get("createdAt"),
            "updatedAt": doc.get("updatedAt"),
        }

    async def create(self, db, data: Dict[str, Any], password_hash: str, stamp: datetime) -> Dict[str, Any]:
        profile = {key: _as_datetime(data.get(key)) for key in PROFILE_FIELDS if data.get(key) is not None}
        doc = {
            "username": data["username"],
            "email": data["email"],
            "password": password_hash,
            "role": UserRole.CLIENT.value,
            "profileData": profile,
            "createdAt": stamp,
            "updatedAt": stamp,
        }
        result = await db[self.collection].insert_one(doc)
        doc["_id"] = result.inserted_id
        return self.normalize(doc)

    async def exists(self, db, username: str, email: str) -> bool:
        found = await db[self.collection].find_one({"$or": [{"username": username}, {"email": email}]})
        return found is not None

    async def find_credentials(self, db, login: str) -> Optional[Tuple[Dict[str, Any], str]]:
        doc = await db[self.collection].find_one({"$or": [{"username": login}, {"email": login}]})
        if not doc:
            return None
        return self.normalize(doc), doc.get("password", "")

    async def find_by_username(self, db, username: str) -> Optional[Dict[str, Any]]:
        doc = await db[self.collection].find_one({"username": username})
        return self.normalize(doc) if doc else None

    async def get(self, db, user_id: ObjectId) -> Optional[Dict[str, Any]]:
        doc = await db[self.collection].find_one({"_id": user_id})
        return self.normalize(doc) if doc else None

    async def get_password(self, db, user_id: ObjectId) -> Optional[str]:
        doc = await db[self.collection].find_one({"_id": user_id}, {"password": 1})
        return doc.get("password") if doc else None

    async def update_profile(self, db, user_id: ObjectId, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        update = {f"profileData.{key}": _as_datetime(changes[key]) for key in PROFILE_FIELDS if key in changes}
        if "email" in changes:
            update["email"] = changes["email"]
        update["updatedAt"] = utc_now_ms()
        result = await db[self.collection].update_one({"_id": user_id}, {"$set": update})
        if result.matched_count == 0:
            return None
        return await self.get(db, user_id)

    async def update_weight(self, db, user_id: ObjectId, weight: float) -> bool:
        result = await db[self.collection].update_one(
            {"_id": user_id},
            {"$set": {"profileData.weight": weight, "updatedAt": utc_now_ms()}}
        )
        return result.matched_count > 0

    async def update_password(self, db, user_id: ObjectId, password_hash: str) -> bool:
        result = await db[self.collection].update_one(
            {"_id": user_id},
            {"$set": {"password": password_hash, "updatedAt": utc_now_ms()}}
        )
        return result.matched_count > 0

    async def delete_cascade(self, db, user_id: ObjectId) -> bool:
        """Remove the user and everything it owns, collection by collection."""
        for collection in (mongo.PROGRESS, mongo.TRAINING_PLANS, mongo.DIET_PLANS, mongo.ANALYSES):
            await db[collection].delete_many({"userId": user_id})
        result = await db[self.collection].delete_one({"_id": user_id})
        return result.deleted_count > 0


class UserRows:
    def normalize(self, row: User) -> Dict[str, Any]:
        return {
            "id": row.id,
            "username": row.username,
            "email": row.email,
            "role": row.role,
            "profile": {
                key: getattr(row, column) for key, column in PROFILE_FIELDS.items()
            },
            "createdAt": row.created_at,
            "updatedAt": row.updated_at,
        }

    async def create(self, session, data: Dict[str, Any], password_hash: str, stamp: datetime) -> Dict[str, Any]:
        user = User(
            username=data["username"],
            email=data["email"],
            password=password_hash,
            role=UserRole.CLIENT.value,
            created_at=stamp,
            updated_at=stamp,
            **{column: _as_date(data.get(key)) if key == "dateOfBirth" else data.get(key)
               for key, column in PROFILE_FIELDS.items()}
        )
        session.add(user)
        await session.flush()
        return self.normalize(user)

    async def exists(self, session, username: str, email: str) -> bool:
        result = await session.execute(
            select(User.id).where(or_(User.username == username, User.email == email))
        )
        return result.first() is not None

    async def find_credentials(self, session, login: str) -> Optional[Tuple[Dict[str, Any], str]]:
        result = await session.execute(
            select(User).where(or_(User.username == login, User.email == login))
        )
        user = result.scalars().first()
        if not user:
            return None
        return self.normalize(user), user.password

    async def find_by_username(self, session, username: str) -> Optional[Dict[str, Any]]:
        result = await session.execute(select(User).where(User.username == username))
        user = result.scalar_one_or_none()
        return self.normalize(user) if user else None

    async def get(self, session, user_id: int) -> Optional[Dict[str, Any]]:
        user = await session.get(User, user_id)
        return self.normalize(user) if user else None

    async def get_password(self, session, user_id: int) -> Optional[str]:
        user = await session.get(User, user_id)
        return user.password if user else None

    async def update_profile(self, session, user_id: int, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        user = await session.get(User, user_id)
        if not user:
            return None
        for key, column in PROFILE_FIELDS.items():
            if key in changes:
                setattr(user, column, _as_date(changes[key]) if key == "dateOfBirth" else changes[key])
        if "email" in changes:
            user.email = changes["email"]
        user.updated_at = utc_now_ms()
        await session.flush()
        return self.normalize(user)

    async def update_weight(self, session, user_id: int, weight: float) -> bool:
        user = await session.get(User, user_id)
        if not user:
            return False
        user.weight = weight
        user.updated_at = utc_now_ms()
        return True

    async def update_password(self, session, user_id: int, password_hash: str) -> bool:
        user = await session.get(User, user_id)
        if not user:
            return False
        user.password = password_hash
        user.updated_at = utc_now_ms()
        return True

    async def delete_cascade(self, session, user_id: int) -> bool:
        """Explicit child-table cleanup, leaves first, inside the caller's transaction."""
        for plan_model, day_model, item_model in (
            (TrainingPlan, TrainingDay, TrainingExercise),
            (DietPlan, DietDay, DietMeal),
        ):
            plan_ids = select(plan_model.id).where(plan_model.user_id == user_id)
            day_ids = select(day_model.id).where(day_model.plan_id.in_(plan_ids))
            await session.execute(delete(item_model).where(item_model.day_id.in_(day_ids)))
            await session.execute(delete(day_model).where(day_model.plan_id.in_(plan_ids)))
            await session.execute(delete(plan_model).where(plan_model.user_id == user_id))
        await session.execute(delete(Progress).where(Progress.user_id == user_id))
        await session.execute(delete(Analysis).where(Analysis.user_id == user_id))
        result = await session.execute(delete(User).where(User.id == user_id))
        return result.rowcount > 0
