import logging
import math

from fastapi import APIRouter, Depends, HTTPException, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from codex.blog.database import add_comment, create_blog, get_blog, list_blogs, populate_blog, toggle_like
from codex.blog.models import BlogCreate, CommentCreate
from codex.db import serialize_mongo, to_object_id
from codex.dependencies import get_current_user, get_db

router = APIRouter(tags=["Blog"])
logger = logging.getLogger(__name__)


@router.post("/", status_code=201)
async def create_blog_post(
    body: BlogCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    blog = await create_blog(db, body.model_dump(), user["_id"])
    logger.info("Blog created", extra={"blog_id": str(blog["_id"]), "user_id": str(user["_id"])})
    return {"success": True, "data": serialize_mongo(blog)}


@router.get("/")
async def get_blogs(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    blogs, total = await list_blogs(db, page, limit)
    populated = [await populate_blog(db, blog, with_likes=False) for blog in blogs]
    return {
        "success": True,
        "data": {
            "blogs": serialize_mongo(populated),
            "pagination": {"total": total, "page": page, "pages": math.ceil(total / limit)},
        },
    }


@router.get("/{blog_id}")
async def get_blog_post(blog_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    blog = await get_blog(db, to_object_id(blog_id, "blog id"))
    if not blog:
        raise HTTPException(status_code=404, detail="Blog not found")
    return {"success": True, "data": serialize_mongo(await populate_blog(db, blog))}


@router.post("/{blog_id}/comments", status_code=201)
async def comment_on_blog(
    blog_id: str,
    body: CommentCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    text = body.text.strip()
    if not text:
        raise HTTPException(status_code=400, detail="Comment text is required")

    oid = to_object_id(blog_id, "blog id")
    if not await add_comment(db, oid, user["_id"], text):
        raise HTTPException(status_code=404, detail="Blog not found")

    blog = await get_blog(db, oid)
    return {"success": True, "data": serialize_mongo(await populate_blog(db, blog))}


@router.post("/{blog_id}/like")
async def like_blog(
    blog_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    oid = to_object_id(blog_id, "blog id")
    liked = await toggle_like(db, oid, user["_id"])
    if liked is None:
        raise HTTPException(status_code=404, detail="Blog not found")

    blog = await get_blog(db, oid)
    return {
        "success": True,
        "data": {"blog": serialize_mongo(await populate_blog(db, blog)), "liked": liked},
    }
