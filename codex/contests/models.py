from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


def _naive_utc(v: datetime) -> datetime:
    # Mongo hands back naive UTC datetimes; keep everything in that form
    if v.tzinfo is not None:
        return v.astimezone(timezone.utc).replace(tzinfo=None)
    return v


class ContestCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    startDate: datetime
    endDate: datetime
    problems: List[str] = Field(..., min_length=1)

    @field_validator("startDate", "endDate")
    @classmethod
    def to_naive_utc(cls, v):
        return _naive_utc(v)

    @model_validator(mode="after")
    def check_window(self):
        if self.endDate <= self.startDate:
            raise ValueError("endDate must be after startDate")
        return self


class ContestSubmission(BaseModel):
    code: str = Field(..., min_length=1)
    language: str = Field(..., min_length=1)
    contestId: Optional[str] = None
