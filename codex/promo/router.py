import logging
import os
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from motor.motor_asyncio import AsyncIOMotorDatabase

from codex.config import MAX_IMAGE_BYTES
from codex.db import public_users, serialize_mongo, to_object_id
from codex.dependencies import get_current_user, get_db, get_payments, get_storage, require_admin
from codex.errors import PaymentGatewayError, StorageUploadError
from codex.promo.database import (
    active_promos,
    approve_payment,
    attach_order,
    create_promo,
    moderate_promo,
    record_click,
)
from codex.promo.models import (
    IMAGE_CONTENT_TYPES,
    IMAGE_EXTENSIONS,
    MAX_DESCRIPTION_LENGTH,
    MAX_TITLE_LENGTH,
    PROMO_PRICES,
    ModerationRequest,
    PaymentVerification,
    PromoDuration,
)
from codex.promo.payments import PaymentGateway
from codex.promo.storage import ImageStorage

router = APIRouter(tags=["Promotions"])
logger = logging.getLogger(__name__)


def _check_image_file(image: UploadFile, content: bytes):
    extension = os.path.splitext(image.filename or "")[1].lower()
    if extension not in IMAGE_EXTENSIONS or image.content_type not in IMAGE_CONTENT_TYPES:
        raise HTTPException(status_code=400, detail="Only image files are allowed!")
    if len(content) > MAX_IMAGE_BYTES:
        raise HTTPException(status_code=400, detail="Image must be 5MB or smaller")


@router.post("/promo")
async def create_promotion(
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    targetUrl: Optional[str] = Form(None),
    promoDuration: Optional[str] = Form(None),
    imageUrl: Optional[str] = Form(None),
    imageFile: Optional[UploadFile] = File(None),
    db: AsyncIOMotorDatabase = Depends(get_db),
    storage: ImageStorage = Depends(get_storage),
    payments: PaymentGateway = Depends(get_payments),
    user: dict = Depends(get_current_user),
):
    """
    Create a paid promotion: upload the banner, store the promo as pending
    and open a Razorpay order the client pays against.
    """
    title = (title or "").strip()
    description = (description or "").strip()
    if not title or not description or not targetUrl or not promoDuration:
        raise HTTPException(status_code=400, detail="All fields are required")
    if len(title) > MAX_TITLE_LENGTH:
        raise HTTPException(status_code=400, detail=f"Title must be at most {MAX_TITLE_LENGTH} characters")
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise HTTPException(status_code=400, detail=f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters")
    if not targetUrl.startswith("https://"):
        raise HTTPException(status_code=400, detail="Target URL must be HTTPS")
    try:
        duration = PromoDuration(promoDuration)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid promo duration")
    if imageFile is None and not imageUrl:
        raise HTTPException(status_code=400, detail="Image file or URL is required")

    try:
        if imageFile is not None:
            content = await imageFile.read()
            _check_image_file(imageFile, content)
            image = await storage.upload_bytes(content, imageFile.filename, imageFile.content_type)
        else:
            if not imageUrl.lower().endswith(IMAGE_EXTENSIONS):
                raise HTTPException(
                    status_code=400,
                    detail="Invalid image format. Supported: JPG, PNG, WEBP, GIF",
                )
            image = await storage.upload_url(imageUrl)
    except StorageUploadError as e:
        raise HTTPException(status_code=500, detail={"error": "Failed to process image", "details": str(e)})

    promo = await create_promo(db, user["_id"], title, description, targetUrl, duration, image)
    log_ctx = {"promo_id": str(promo["_id"]), "user_id": str(user["_id"])}

    try:
        order = await payments.create_order(
            amount=PROMO_PRICES[duration] * 100,
            receipt=f"promo_{promo['_id']}",
            notes={"promoId": str(promo["_id"]), "userId": str(user["_id"])},
        )
    except PaymentGatewayError as e:
        logger.error("Order creation failed: %s", e, extra=log_ctx)
        raise HTTPException(status_code=500, detail={"error": "Failed to create promotion", "details": str(e)})

    await attach_order(db, promo["_id"], order["id"])
    promo["razorpayOrderId"] = order["id"]

    logger.info("Promo created", extra=log_ctx)
    return {"success": True, "data": {"promo": serialize_mongo(promo), "order": order}}


@router.post("/{promo_id}/verify")
async def verify_promo_payment(
    promo_id: str,
    body: PaymentVerification,
    db: AsyncIOMotorDatabase = Depends(get_db),
    payments: PaymentGateway = Depends(get_payments),
    user: dict = Depends(get_current_user),
):
    oid = to_object_id(promo_id, "promo id")
    if not payments.verify(body.order_id, body.payment_id, body.signature):
        logger.warning("Payment signature mismatch", extra={"promo_id": promo_id, "user_id": str(user["_id"])})
        raise HTTPException(status_code=400, detail="Invalid payment signature")

    promo = await approve_payment(db, oid, user["_id"], body.order_id, body.payment_id)
    if not promo:
        owned = await db.promos.find_one({"_id": oid, "userId": user["_id"]}, {"_id": 1})
        if not owned:
            raise HTTPException(status_code=404, detail="Promotion not found")
        raise HTTPException(status_code=400, detail="Payment does not match this promotion's order")

    logger.info("Promo payment verified", extra={"promo_id": promo_id, "user_id": str(user["_id"])})
    return {"success": True, "data": serialize_mongo(promo)}


@router.get("/click/{promo_id}")
async def click_promotion(promo_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    promo = await record_click(db, to_object_id(promo_id, "promo id"))
    if not promo:
        raise HTTPException(status_code=404, detail="Promotion not available")
    return {"success": True, "data": {"targetUrl": promo["targetUrl"]}}


@router.get("/active")
async def get_active_promotions(db: AsyncIOMotorDatabase = Depends(get_db)):
    promos = await active_promos(db)
    owners = await public_users(db, [p.get("userId") for p in promos])
    for promo in promos:
        promo["userId"] = owners.get(promo.get("userId"), promo.get("userId"))
    return {"success": True, "data": serialize_mongo(promos)}


@router.patch("/{promo_id}/moderate")
async def moderate_promotion(
    promo_id: str,
    body: ModerationRequest,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: dict = Depends(require_admin),
):
    promo = await moderate_promo(db, to_object_id(promo_id, "promo id"), body.status, body.reason)
    if not promo:
        raise HTTPException(status_code=404, detail="Promotion not found")

    logger.info("Promo moderated: %s", body.status.value, extra={"promo_id": promo_id, "user_id": str(admin["_id"])})
    return {"success": True, "data": serialize_mongo(promo)}
