from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING
from fittrack.core.config import settings
from fittrack.core.logger import get_logger

logger = get_logger("mongo")

USERS = "users"
PROGRESS = "progress"
TRAINING_PLANS = "trainingplans"
DIET_PLANS = "dietplans"
ANALYSES = "analyses"


def build_mongo_client(uri: str = None) -> AsyncIOMotorClient:
    return AsyncIOMotorClient(
        uri or settings.MONGODB_URI,
        serverSelectionTimeoutMS=5000,
        tz_aware=False,
    )


async def ensure_indexes(db) -> None:
    """Create the indexes the correlation lookups and uniqueness rules rely on."""
    await db[USERS].create_index("username", unique=True)
    await db[USERS].create_index("email", unique=True)
    await db[PROGRESS].create_index([("userId", ASCENDING), ("createdAt", ASCENDING)])
    await db[PROGRESS].create_index([("userId", ASCENDING), ("date", DESCENDING)])
    for collection in (TRAINING_PLANS, DIET_PLANS):
        await db[collection].create_index([("userId", ASCENDING), ("dateCreated", ASCENDING)])
        await db[collection].create_index([("userId", ASCENDING), ("name", ASCENDING)], unique=True)
        await db[collection].create_index("days._id")
    await db[ANALYSES].create_index([("userId", ASCENDING), ("createdAt", ASCENDING)])
    logger.info("Document store indexes ensured.")
