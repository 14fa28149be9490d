import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Response
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from codex.auth.mailer import send_otp_email
from codex.auth.schemas import (
    AdminRegisterRequest,
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    VerifyOtpRequest,
    public_user,
)
from codex.auth.security import (
    consume_otp,
    consume_password_reset,
    create_session_token,
    decode_session_token,
    generate_otp,
    grant_password_reset,
    hash_password,
    revoke_token,
    store_otp,
    verify_password,
)
from codex.config import SESSION_COOKIE_NAME, SESSION_TTL_SECONDS
from codex.dependencies import get_current_user, get_db, get_redis, get_session_token, require_admin
from codex.errors import MailDeliveryError

router = APIRouter(tags=["Auth"])
logger = logging.getLogger(__name__)


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        max_age=SESSION_TTL_SECONDS,
        httponly=True,
        samesite="lax",
    )


async def _create_user(db: AsyncIOMotorDatabase, data: dict, role: str) -> dict:
    if await db.users.find_one({"emailId": data["emailId"]}):
        raise HTTPException(status_code=400, detail="Email already registered")

    user = {
        "firstName": data["firstName"],
        "lastName": data.get("lastName"),
        "emailId": data["emailId"],
        "password": hash_password(data["password"]),
        "role": role,
        "problemSolved": [],
        "blogs": [],
        "createdAt": datetime.utcnow(),
        "updatedAt": datetime.utcnow(),
    }
    try:
        result = await db.users.insert_one(user)
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail="Email already registered")
    user["_id"] = result.inserted_id
    return user


# ==================== ENDPOINTS ====================

@router.post("/register", status_code=201)
async def register(
    body: RegisterRequest,
    response: Response,
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    user = await _create_user(db, body.model_dump(), role="user")
    _set_session_cookie(response, create_session_token(user))
    logger.info("User registered", extra={"user_id": str(user["_id"])})
    return {"success": True, "data": {"user": public_user(user), "message": "Registered Successfully"}}


@router.post("/admin/register", status_code=201)
async def admin_register(
    body: AdminRegisterRequest,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: dict = Depends(require_admin),
):
    """Admins create other accounts; the caller's own session is left alone"""
    data = body.model_dump()
    user = await _create_user(db, data, role=data["role"])
    return {"success": True, "data": {"user": public_user(user), "message": "User Registered Successfully"}}


@router.post("/login")
async def login(
    body: LoginRequest,
    response: Response,
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    if not body.emailId or not body.password:
        raise HTTPException(status_code=401, detail="Invalid Credentials")

    user = await db.users.find_one({"emailId": body.emailId})
    if not user or not verify_password(body.password, user["password"]):
        raise HTTPException(status_code=401, detail="Invalid Credentials")

    _set_session_cookie(response, create_session_token(user))
    return {"success": True, "data": {"user": public_user(user), "message": "Logged In Successfully"}}


@router.post("/logout")
async def logout(
    response: Response,
    token: str = Depends(get_session_token),
    user: dict = Depends(get_current_user),
    redis: Redis = Depends(get_redis),
):
    payload = decode_session_token(token)
    try:
        await revoke_token(redis, token, int(payload["exp"]))
    except RedisError as e:
        logger.exception("Token revocation failed", extra={"user_id": str(user["_id"])})
        raise HTTPException(status_code=503, detail=f"Error: {e}")

    response.delete_cookie(SESSION_COOKIE_NAME)
    return {"success": True, "data": {"message": "Logged Out Successfully"}}


@router.get("/check")
async def check_auth(user: dict = Depends(get_current_user)):
    return {"success": True, "data": {"user": public_user(user), "message": "Valid User"}}


@router.delete("/profile")
async def delete_profile(
    user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    await db.users.delete_one({"_id": user["_id"]})
    logger.info("User deleted", extra={"user_id": str(user["_id"])})
    return {"success": True, "data": {"message": "Deleted Successfully"}}


# ==================== PASSWORD RESET ====================

@router.post("/forgot-password")
async def forgot_password(
    body: ForgotPasswordRequest,
    db: AsyncIOMotorDatabase = Depends(get_db),
    redis: Redis = Depends(get_redis),
):
    user = await db.users.find_one({"emailId": body.emailId})
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    otp = generate_otp()
    await store_otp(redis, body.emailId, otp)
    try:
        await send_otp_email(body.emailId, otp)
    except MailDeliveryError as e:
        raise HTTPException(status_code=500, detail=f"Error: {e}")

    return {"success": True, "data": {"message": "OTP sent to your email"}}


@router.post("/verify-otp")
async def verify_otp(
    body: VerifyOtpRequest,
    redis: Redis = Depends(get_redis),
):
    if not await consume_otp(redis, body.emailId, body.otp):
        raise HTTPException(status_code=400, detail="Invalid or expired OTP")
    await grant_password_reset(redis, body.emailId)
    return {"success": True, "data": {"message": "OTP verified successfully"}}


@router.post("/reset-password")
async def reset_password(
    body: ResetPasswordRequest,
    db: AsyncIOMotorDatabase = Depends(get_db),
    redis: Redis = Depends(get_redis),
):
    if not await consume_password_reset(redis, body.emailId):
        raise HTTPException(status_code=400, detail="Verify the OTP before resetting the password")

    result = await db.users.update_one(
        {"emailId": body.emailId},
        {"$set": {"password": hash_password(body.newPassword), "updatedAt": datetime.utcnow()}},
    )
    if result.matched_count == 0:
        raise HTTPException(status_code=404, detail="User not found")
    return {"success": True, "data": {"message": "Password updated successfully"}}
