from datetime import datetime

import fakeredis
import httpx
import pytest
from bson import ObjectId
from mongomock_motor import AsyncMongoMockClient

from codex.auth.security import create_session_token
from codex.dependencies import get_db, get_judge, get_payments, get_redis, get_storage
from codex.main import app
from codex.promo.payments import verify_razorpay_signature


class FakePayments:
    """Stands in for PaymentGateway; signatures use the real HMAC check"""

    key_secret = "test_secret"

    def __init__(self):
        self.orders = []

    async def create_order(self, amount, receipt, notes, currency="INR"):
        order = {"id": f"order_{len(self.orders) + 1}", "amount": amount, "currency": currency,
                 "receipt": receipt, "notes": notes}
        self.orders.append(order)
        return order

    def verify(self, order_id, payment_id, signature):
        return verify_razorpay_signature(order_id, payment_id, signature, self.key_secret)


class FakeStorage:
    def __init__(self):
        self.uploads = []

    async def upload_bytes(self, content, filename, content_type):
        self.uploads.append(filename)
        return {"public_id": "promotions/banner", "secure_url": "https://res.cloudinary.com/demo/banner.png"}

    async def upload_url(self, url):
        self.uploads.append(url)
        return {"public_id": "promotions/remote", "secure_url": url}


@pytest.fixture
def db():
    return AsyncMongoMockClient()["codex_test"]


@pytest.fixture
async def redis():
    client = fakeredis.FakeAsyncRedis(decode_responses=True)
    await client.flushall()
    yield client
    await client.flushall()


@pytest.fixture
def payments():
    return FakePayments()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def judge():
    # replaced per test when a submission is judged
    return None


@pytest.fixture
async def client(db, redis, judge, payments, storage):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_redis] = lambda: redis
    app.dependency_overrides[get_judge] = lambda: judge
    app.dependency_overrides[get_payments] = lambda: payments
    app.dependency_overrides[get_storage] = lambda: storage
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


async def make_user(db, role="user", first_name="Alice", email=None) -> dict:
    user = {
        "_id": ObjectId(),
        "firstName": first_name,
        "lastName": "Tester",
        "emailId": email or f"{first_name.lower()}_{ObjectId()}@example.com",
        "password": "not-used",
        "role": role,
        "problemSolved": [],
        "blogs": [],
        "createdAt": datetime.utcnow(),
    }
    await db.users.insert_one(user)
    return user


def auth_headers(user: dict) -> dict:
    return {"Authorization": f"Bearer {create_session_token(user)}"}


@pytest.fixture
async def user(db):
    return await make_user(db)


@pytest.fixture
async def admin(db):
    return await make_user(db, role="admin", first_name="Root")
