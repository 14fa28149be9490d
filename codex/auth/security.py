# codex/auth/security.py

import secrets
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from jose import JWTError, jwt
from passlib.context import CryptContext
from redis.asyncio import Redis

from codex.config import (
    JWT_ALGORITHM,
    JWT_SECRET_KEY,
    OTP_LENGTH,
    OTP_TTL_SECONDS,
    SESSION_TTL_SECONDS,
)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_session_token(user: dict, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.utcnow() + (expires_delta or timedelta(seconds=SESSION_TTL_SECONDS))
    claims = {
        "_id": str(user["_id"]),
        "emailId": user["emailId"],
        "role": user.get("role", "user"),
        "exp": expire,
    }
    return jwt.encode(claims, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_session_token(token: str) -> dict:
    try:
        return jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or Expired Token")


# ==================== SESSION BLOCKLIST ====================

def _blocklist_key(token: str) -> str:
    return f"token:{token}"


async def revoke_token(redis: Redis, token: str, expires_at: int) -> None:
    """Block a token until the moment it would have expired anyway"""
    key = _blocklist_key(token)
    await redis.set(key, "Blocked")
    await redis.expireat(key, expires_at)


async def is_token_revoked(redis: Redis, token: str) -> bool:
    return bool(await redis.exists(_blocklist_key(token)))


# ==================== ONE-TIME CODES ====================

def _otp_key(email: str) -> str:
    return f"otp:{email}"


def generate_otp(length: int = OTP_LENGTH) -> str:
    return "".join(secrets.choice("0123456789") for _ in range(length))


async def store_otp(redis: Redis, email: str, otp: str) -> None:
    await redis.set(_otp_key(email), otp, ex=OTP_TTL_SECONDS)


async def consume_otp(redis: Redis, email: str, otp: str) -> bool:
    """True (and the code is deleted) only when otp matches the stored code"""
    stored = await redis.get(_otp_key(email))
    if stored is None or not secrets.compare_digest(str(stored), otp):
        return False
    await redis.delete(_otp_key(email))
    return True


def _reset_key(email: str) -> str:
    return f"reset:{email}"


async def grant_password_reset(redis: Redis, email: str) -> None:
    await redis.set(_reset_key(email), "1", ex=OTP_TTL_SECONDS)


async def consume_password_reset(redis: Redis, email: str) -> bool:
    return bool(await redis.delete(_reset_key(email)))
