import re
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

_SYMBOL = re.compile(r"[^A-Za-z0-9]")


def _check_strong_password(v: str) -> str:
    if (
        len(v) < 8
        or not re.search(r"[a-z]", v)
        or not re.search(r"[A-Z]", v)
        or not re.search(r"[0-9]", v)
        or not _SYMBOL.search(v)
    ):
        raise ValueError("Weak Password")
    return v


class RegisterRequest(BaseModel):
    firstName: str = Field(..., min_length=3, max_length=20)
    lastName: Optional[str] = Field(None, max_length=20)
    emailId: EmailStr
    password: str

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        return _check_strong_password(v)


class AdminRegisterRequest(RegisterRequest):
    role: Literal["user", "admin"] = "admin"


class LoginRequest(BaseModel):
    emailId: Optional[str] = None
    password: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    emailId: EmailStr


class VerifyOtpRequest(BaseModel):
    emailId: EmailStr
    otp: str = Field(..., min_length=1)


class ResetPasswordRequest(BaseModel):
    emailId: EmailStr
    newPassword: str

    @field_validator("newPassword")
    @classmethod
    def validate_password(cls, v):
        return _check_strong_password(v)


def public_user(user: dict) -> dict:
    return {
        "firstName": user.get("firstName"),
        "lastName": user.get("lastName"),
        "emailId": user.get("emailId"),
        "_id": str(user["_id"]),
        "role": user.get("role", "user"),
    }
