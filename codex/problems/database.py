from datetime import datetime
from typing import List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

# Hidden cases never leave the server
PUBLIC_PROBLEM_FIELDS = {"hiddenTestCases": 0}


async def create_problem(db: AsyncIOMotorDatabase, problem_data: dict, creator_id: ObjectId) -> ObjectId:
    problem = {
        **problem_data,
        "problemCreator": creator_id,
        "createdAt": datetime.utcnow(),
        "updatedAt": datetime.utcnow(),
    }
    result = await db.problems.insert_one(problem)
    return result.inserted_id


async def get_problem(db: AsyncIOMotorDatabase, problem_id: ObjectId, with_hidden: bool = False) -> Optional[dict]:
    projection = None if with_hidden else PUBLIC_PROBLEM_FIELDS
    return await db.problems.find_one({"_id": problem_id}, projection)


async def list_problems(db: AsyncIOMotorDatabase) -> List[dict]:
    cursor = db.problems.find({}, {"title": 1, "difficulty": 1, "tags": 1}).sort("createdAt", -1)
    return await cursor.to_list(length=None)


async def problems_by_ids(db: AsyncIOMotorDatabase, ids: List[ObjectId], fields: dict) -> dict:
    """Map problem id -> projected problem document"""
    if not ids:
        return {}
    cursor = db.problems.find({"_id": {"$in": list(set(ids))}}, fields)
    return {p["_id"]: p for p in await cursor.to_list(length=None)}
