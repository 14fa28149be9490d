from datetime import datetime, timedelta
from typing import List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from codex.promo.models import PROMO_DAYS, PROMO_PRICES, ModerationStatus, PromoDuration


async def create_promo(db: AsyncIOMotorDatabase, user_id: ObjectId, title: str, description: str,
                       target_url: str, duration: PromoDuration, image: dict) -> dict:
    now = datetime.utcnow()
    promo = {
        "userId": user_id,
        "title": title,
        "description": description,
        "imagePublicId": image["public_id"],
        "imageUrl": image["secure_url"],
        "targetUrl": target_url,
        "promoDuration": duration.value,
        "price": PROMO_PRICES[duration],
        "isApproved": False,
        "isActive": True,
        "clicks": 0,
        "moderationStatus": ModerationStatus.PENDING.value,
        "expiresAt": now + timedelta(days=PROMO_DAYS[duration]),
        "createdAt": now,
        "updatedAt": now,
    }
    result = await db.promos.insert_one(promo)
    promo["_id"] = result.inserted_id
    return promo


async def attach_order(db: AsyncIOMotorDatabase, promo_id: ObjectId, order_id: str) -> None:
    await db.promos.update_one(
        {"_id": promo_id},
        {"$set": {"razorpayOrderId": order_id, "updatedAt": datetime.utcnow()}},
    )


async def approve_payment(db: AsyncIOMotorDatabase, promo_id: ObjectId, user_id: ObjectId,
                          order_id: str, payment_id: str) -> Optional[dict]:
    """Approve only the caller's promo, and only for the order opened for it"""
    return await db.promos.find_one_and_update(
        {"_id": promo_id, "userId": user_id, "razorpayOrderId": order_id},
        {"$set": {
            "isApproved": True,
            "paymentId": payment_id,
            "moderationStatus": ModerationStatus.APPROVED.value,
            "updatedAt": datetime.utcnow(),
        }},
        return_document=ReturnDocument.AFTER,
    )


async def record_click(db: AsyncIOMotorDatabase, promo_id: ObjectId) -> Optional[dict]:
    """Count a click on a live promo; None when it is missing or not live"""
    return await db.promos.find_one_and_update(
        {"_id": promo_id, "isApproved": True, "isActive": True},
        {"$inc": {"clicks": 1}},
        projection={"targetUrl": 1},
    )


async def active_promos(db: AsyncIOMotorDatabase) -> List[dict]:
    cursor = db.promos.find({
        "isApproved": True,
        "isActive": True,
        "expiresAt": {"$gt": datetime.utcnow()},
    }).sort("createdAt", -1)
    return await cursor.to_list(length=None)


async def moderate_promo(db: AsyncIOMotorDatabase, promo_id: ObjectId, status: ModerationStatus,
                         reason: Optional[str]) -> Optional[dict]:
    return await db.promos.find_one_and_update(
        {"_id": promo_id},
        {"$set": {
            "moderationStatus": status.value,
            "moderationReason": reason,
            "isActive": status == ModerationStatus.APPROVED,
            "updatedAt": datetime.utcnow(),
        }},
        return_document=ReturnDocument.AFTER,
    )
