from typing import Any, List

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import HTTPException
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from codex.config import MONGO_DB_NAME, MONGO_URL


def create_client(url: str = MONGO_URL) -> AsyncIOMotorClient:
    return AsyncIOMotorClient(url, tz_aware=False)


def get_database(client: AsyncIOMotorClient, name: str = MONGO_DB_NAME) -> AsyncIOMotorDatabase:
    return client[name]


def to_object_id(value: Any, label: str = "id") -> ObjectId:
    """Parse a path/body id, answering 400 when it is not a valid ObjectId"""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise HTTPException(status_code=400, detail=f"Invalid {label}")


def serialize_mongo(value: Any) -> Any:
    """Convert ObjectIds (at any depth) to strings for JSON responses"""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {k: serialize_mongo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [serialize_mongo(v) for v in value]
    return value


def serialize_many(docs: List[dict]) -> List[dict]:
    return [serialize_mongo(doc) for doc in docs]


async def public_users(db: AsyncIOMotorDatabase, user_ids: List[ObjectId]) -> dict:
    """Map user id -> {_id, firstName, lastName} for populating references"""
    ids = list({uid for uid in user_ids if uid is not None})
    if not ids:
        return {}
    cursor = db.users.find({"_id": {"$in": ids}}, {"firstName": 1, "lastName": 1})
    users = await cursor.to_list(length=None)
    return {u["_id"]: u for u in users}


# ==================== DATABASE INDEXES ====================

async def create_indexes(db: AsyncIOMotorDatabase):
    """Create MongoDB indexes for lookups the routers depend on"""
    await db.users.create_index("emailId", unique=True)
    await db.problems.create_index("difficulty")
    await db.submissions.create_index([("userId", ASCENDING), ("createdAt", DESCENDING)])
    await db.submissions.create_index([("problemId", ASCENDING), ("userId", ASCENDING)])
    await db.contests.create_index("startDate")
    await db.contests.create_index("participants.user")
    await db.blogs.create_index([("createdAt", DESCENDING)])
    await db.promos.create_index([("isApproved", ASCENDING), ("isActive", ASCENDING), ("expiresAt", ASCENDING)])
