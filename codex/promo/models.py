from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class PromoDuration(str, Enum):
    ONE_DAY = "1day"
    ONE_WEEK = "1week"
    ONE_MONTH = "1month"


# INR
PROMO_PRICES = {
    PromoDuration.ONE_DAY: 2,
    PromoDuration.ONE_WEEK: 4,
    PromoDuration.ONE_MONTH: 5,
}

PROMO_DAYS = {
    PromoDuration.ONE_DAY: 1,
    PromoDuration.ONE_WEEK: 7,
    PromoDuration.ONE_MONTH: 30,
}

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp")
IMAGE_CONTENT_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}

MAX_TITLE_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500


class ModerationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PaymentVerification(BaseModel):
    order_id: str = Field(..., min_length=1)
    payment_id: str = Field(..., min_length=1)
    signature: str = Field(..., min_length=1)


class ModerationRequest(BaseModel):
    status: ModerationStatus
    reason: Optional[str] = None
