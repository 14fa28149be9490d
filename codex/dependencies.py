# codex/dependencies.py

from typing import Optional

from bson import ObjectId
from fastapi import Depends, HTTPException, Request
from motor.motor_asyncio import AsyncIOMotorDatabase
from redis.asyncio import Redis

from codex.auth.security import decode_session_token, is_token_revoked
from codex.config import SESSION_COOKIE_NAME

# ==================== SERVICE HANDLES ====================


async def get_db(request: Request) -> AsyncIOMotorDatabase:
    """Database dependency"""
    return request.app.state.db


async def get_redis(request: Request) -> Redis:
    return request.app.state.redis


async def get_judge(request: Request):
    return request.app.state.judge


async def get_storage(request: Request):
    return request.app.state.storage


async def get_payments(request: Request):
    return request.app.state.payments


# ==================== AUTH ====================


def _token_from_request(request: Request) -> Optional[str]:
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if token:
        return token
    authorization = request.headers.get("Authorization")
    if authorization and authorization.startswith("Bearer "):
        return authorization.split(" ", 1)[1]
    return None


async def get_session_token(request: Request) -> str:
    token = _token_from_request(request)
    if not token:
        raise HTTPException(status_code=401, detail="Token is not present")
    return token


async def get_current_user(
    token: str = Depends(get_session_token),
    db: AsyncIOMotorDatabase = Depends(get_db),
    redis: Redis = Depends(get_redis),
) -> dict:
    """Resolve the cookie token to a user document"""
    payload = decode_session_token(token)
    user_id = payload.get("_id")
    if not user_id or not ObjectId.is_valid(str(user_id)):
        raise HTTPException(status_code=401, detail="Invalid token")

    if await is_token_revoked(redis, token):
        raise HTTPException(status_code=401, detail="Invalid token")

    user = await db.users.find_one({"_id": ObjectId(str(user_id))}, {"password": 0})
    if not user:
        raise HTTPException(status_code=401, detail="User doesn't exist")
    return user


async def require_admin(user: dict = Depends(get_current_user)) -> dict:
    if user.get("role") != "admin":
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
