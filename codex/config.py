"""
Codex Backend Configuration
Database, judge, AI, payment and storage settings
"""

import os
from typing import List


def _split_csv(value: str) -> List[str]:
    parts = [p.strip() for p in value.split(",")]
    return [p for p in parts if p]


APP_TITLE = "Codex Practice API"
APP_VERSION = "1.0.0"

# MongoDB
MONGO_URL = os.getenv("MONGO_URL", "mongodb://localhost:27017")
MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "codex_db")

# Redis (session blocklist + OTP codes)
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

# Session tokens
JWT_SECRET_KEY = os.getenv("JWT_KEY", "dev-change-me")
JWT_ALGORITHM = "HS256"
SESSION_TTL_SECONDS = 60 * 60
SESSION_COOKIE_NAME = "token"

# Password reset
OTP_TTL_SECONDS = 300
OTP_LENGTH = 6

# Judge0 compatible judging service
JUDGE_API_URL = os.getenv("JUDGE_API_URL", "https://judge0-ce.p.rapidapi.com")
JUDGE_API_KEY = os.getenv("JUDGE_API_KEY", "")
JUDGE_API_HOST = os.getenv("JUDGE_API_HOST", "judge0-ce.p.rapidapi.com")

# Judge timeout settings
JUDGE_TIMEOUT_SECONDS = 30
JUDGE_POLL_INTERVAL_SECONDS = 1
JUDGE_MAX_POLL_ATTEMPTS = 30

# Gemini
GEMINI_API_KEY = os.getenv("GEMINI_KEY", "")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-1.5-flash")
AI_TIMEOUT_SECONDS = 30

# Razorpay
RAZORPAY_KEY_ID = os.getenv("RAZORPAY_KEY_ID", "")
RAZORPAY_KEY_SECRET = os.getenv("RAZORPAY_KEY_SECRET", "")

# Cloudinary
CLOUDINARY_CLOUD_NAME = os.getenv("CLOUDINARY_CLOUD_NAME", "")
CLOUDINARY_API_KEY = os.getenv("CLOUDINARY_API_KEY", "")
CLOUDINARY_API_SECRET = os.getenv("CLOUDINARY_API_SECRET", "")
CLOUDINARY_FOLDER = "promotions"
UPLOAD_TIMEOUT_SECONDS = 30
MAX_IMAGE_BYTES = 5 * 1024 * 1024

# Outgoing mail (OTP delivery)
EMAIL_USER = os.getenv("EMAIL_USER", "")
EMAIL_PASS = os.getenv("EMAIL_PASS", "")
SMTP_HOST = os.getenv("SMTP_HOST", "smtp.gmail.com")
SMTP_PORT = int(os.getenv("SMTP_PORT", "465"))
SMTP_TIMEOUT_SECONDS = 20

# CORS
_CORS_RAW = os.getenv("CORS_ALLOW_ORIGINS", "*").strip()
CORS_ALLOW_ORIGINS: List[str] = ["*"] if _CORS_RAW == "*" else _split_csv(_CORS_RAW)

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
SERVICE_NAME = os.getenv("SERVICE_NAME", "codex-api")
