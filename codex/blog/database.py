from datetime import datetime
from typing import List, Optional, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from codex.db import public_users


async def create_blog(db: AsyncIOMotorDatabase, blog_data: dict, author_id: ObjectId) -> dict:
    blog = {
        "title": blog_data["title"],
        "content": blog_data["content"],
        "author": author_id,
        "likes": [],
        "comments": [],
        "createdAt": datetime.utcnow(),
        "updatedAt": datetime.utcnow(),
    }
    result = await db.blogs.insert_one(blog)
    blog["_id"] = result.inserted_id
    await db.users.update_one({"_id": author_id}, {"$push": {"blogs": blog["_id"]}})
    return blog


async def get_blog(db: AsyncIOMotorDatabase, blog_id: ObjectId) -> Optional[dict]:
    return await db.blogs.find_one({"_id": blog_id})


async def list_blogs(db: AsyncIOMotorDatabase, page: int, limit: int) -> Tuple[List[dict], int]:
    total = await db.blogs.count_documents({})
    cursor = db.blogs.find({}).sort("createdAt", -1).skip((page - 1) * limit).limit(limit)
    return await cursor.to_list(length=limit), total


async def add_comment(db: AsyncIOMotorDatabase, blog_id: ObjectId, user_id: ObjectId, text: str) -> bool:
    comment = {"_id": ObjectId(), "user": user_id, "text": text, "createdAt": datetime.utcnow()}
    result = await db.blogs.update_one(
        {"_id": blog_id},
        {"$push": {"comments": comment}, "$set": {"updatedAt": datetime.utcnow()}},
    )
    return result.matched_count > 0


async def toggle_like(db: AsyncIOMotorDatabase, blog_id: ObjectId, user_id: ObjectId) -> Optional[bool]:
    """
    Flip the caller's like. Each branch is conditional on the current
    membership so two concurrent toggles cannot both push (or both pull).
    Returns the new liked state, or None when the blog does not exist.
    """
    for _ in range(2):
        result = await db.blogs.update_one(
            {"_id": blog_id, "likes": {"$ne": user_id}},
            {"$push": {"likes": user_id}},
        )
        if result.modified_count:
            return True

        result = await db.blogs.update_one(
            {"_id": blog_id, "likes": user_id},
            {"$pull": {"likes": user_id}},
        )
        if result.modified_count:
            return False

        if await db.blogs.find_one({"_id": blog_id}, {"_id": 1}) is None:
            return None
    return None


async def populate_blog(db: AsyncIOMotorDatabase, blog: dict, with_likes: bool = True) -> dict:
    """Replace author / like / comment user ids with {_id, firstName, lastName}"""
    ids = [blog.get("author")] + [c.get("user") for c in blog.get("comments", [])]
    if with_likes:
        ids += blog.get("likes", [])
    users = await public_users(db, ids)

    populated = dict(blog)
    populated["author"] = users.get(blog.get("author"), blog.get("author"))
    populated["comments"] = [
        {**c, "user": users.get(c.get("user"), c.get("user"))} for c in blog.get("comments", [])
    ]
    if with_likes:
        populated["likes"] = [users.get(uid, uid) for uid in blog.get("likes", [])]
    return populated
