import hashlib
import hmac
from datetime import datetime, timedelta

import httpx
import pytest
from bson import ObjectId

from codex.errors import StorageUploadError
from codex.promo.payments import verify_razorpay_signature
from codex.promo.storage import ImageStorage, sign_params
from conftest import auth_headers, make_user

SECRET = "test_secret"


def _signature(order_id, payment_id, secret=SECRET):
    return hmac.new(secret.encode(), f"{order_id}|{payment_id}".encode(), hashlib.sha256).hexdigest()


def test_signature_must_match_exactly():
    good = _signature("order_1", "pay_1")
    assert verify_razorpay_signature("order_1", "pay_1", good, SECRET)
    assert not verify_razorpay_signature("order_1", "pay_2", good, SECRET)
    assert not verify_razorpay_signature("order_1", "pay_1", good.upper(), SECRET)
    assert not verify_razorpay_signature("order_1", "pay_1", "", SECRET)
    assert not verify_razorpay_signature("order_1", "pay_1", "\u00e9" * 64, SECRET)


def test_cloudinary_signature():
    params = {"timestamp": 1315060510, "folder": "promotions"}
    expected = hashlib.sha1(b"folder=promotions&timestamp=1315060510abcd").hexdigest()
    assert sign_params(params, "abcd") == expected


async def test_storage_upload_url():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = request.content.decode()
        return httpx.Response(200, json={"public_id": "promotions/x", "secure_url": "https://cdn/x.png"})

    storage = ImageStorage(cloud_name="demo", api_key="k", api_secret="s", transport=httpx.MockTransport(handler))
    result = await storage.upload_url("https://example.com/banner.png")
    await storage.aclose()

    assert result == {"public_id": "promotions/x", "secure_url": "https://cdn/x.png"}
    assert seen["path"] == "/v1_1/demo/image/upload"
    assert "folder=promotions" in seen["body"]
    assert "signature=" in seen["body"]


async def test_storage_failure():
    storage = ImageStorage(cloud_name="demo", transport=httpx.MockTransport(lambda r: httpx.Response(500)))
    with pytest.raises(StorageUploadError):
        await storage.upload_bytes(b"img", "a.png", "image/png")
    await storage.aclose()


FORM = {
    "title": "Learn Graphs",
    "description": "A short course on graph algorithms",
    "targetUrl": "https://example.com/course",
    "promoDuration": "1week",
}


async def test_create_promo_with_file(client, db, user, payments, storage):
    response = await client.post(
        "/userPromo/promo",
        headers=auth_headers(user),
        data=FORM,
        files={"imageFile": ("banner.png", b"\x89PNG fake", "image/png")},
    )
    assert response.status_code == 200, response.text
    data = response.json()["data"]
    assert data["promo"]["price"] == 4
    assert data["promo"]["moderationStatus"] == "pending"
    assert data["promo"]["isApproved"] is False
    assert data["order"]["amount"] == 400
    assert data["order"]["receipt"] == f"promo_{data['promo']['_id']}"
    assert storage.uploads == ["banner.png"]

    stored = await db.promos.find_one({"_id": ObjectId(data["promo"]["_id"])})
    assert stored["razorpayOrderId"] == data["order"]["id"]
    assert stored["expiresAt"] - stored["createdAt"] == timedelta(days=7)


async def test_create_promo_validation(client, user, payments):
    headers = auth_headers(user)

    response = await client.post("/userPromo/promo", headers=headers, data={**FORM, "title": ""})
    assert response.json()["error"] == "All fields are required"

    response = await client.post("/userPromo/promo", headers=headers,
                                 data={**FORM, "targetUrl": "http://example.com", "imageUrl": "https://x/y.png"})
    assert response.json()["error"] == "Target URL must be HTTPS"

    response = await client.post("/userPromo/promo", headers=headers, data=FORM)
    assert response.json()["error"] == "Image file or URL is required"

    response = await client.post("/userPromo/promo", headers=headers, data={**FORM, "imageUrl": "https://x/y.bmp"})
    assert response.status_code == 400

    response = await client.post("/userPromo/promo", headers=headers, data=FORM,
                                 files={"imageFile": ("notes.txt", b"hello", "text/plain")})
    assert response.status_code == 400
    assert payments.orders == []


async def _promo(db, user, **overrides):
    doc = {
        "userId": user["_id"],
        "title": "Promo",
        "targetUrl": "https://example.com",
        "isApproved": False,
        "isActive": True,
        "clicks": 0,
        "razorpayOrderId": "order_1",
        "moderationStatus": "pending",
        "expiresAt": datetime.utcnow() + timedelta(days=1),
        "createdAt": datetime.utcnow(),
        **overrides,
    }
    result = await db.promos.insert_one(doc)
    return result.inserted_id


async def test_verify_payment(client, db, user):
    promo_id = await _promo(db, user)
    headers = auth_headers(user)

    response = await client.post(f"/userPromo/{promo_id}/verify", headers=headers, json={
        "order_id": "order_1", "payment_id": "pay_1", "signature": "deadbeef",
    })
    assert response.status_code == 400
    stored = await db.promos.find_one({"_id": promo_id})
    assert stored["isApproved"] is False

    response = await client.post(f"/userPromo/{promo_id}/verify", headers=headers, json={
        "order_id": "order_1", "payment_id": "pay_1", "signature": _signature("order_1", "pay_1"),
    })
    assert response.status_code == 200
    stored = await db.promos.find_one({"_id": promo_id})
    assert stored["isApproved"] is True
    assert stored["paymentId"] == "pay_1"
    assert stored["moderationStatus"] == "approved"


async def test_click_only_counts_live_promos(client, db, user):
    pending = await _promo(db, user)
    live = await _promo(db, user, isApproved=True)

    response = await client.get(f"/userPromo/click/{pending}")
    assert response.status_code == 404

    response = await client.get(f"/userPromo/click/{live}")
    assert response.json()["data"] == {"targetUrl": "https://example.com"}
    stored = await db.promos.find_one({"_id": live})
    assert stored["clicks"] == 1


async def test_active_promos(client, db, user):
    await _promo(db, user, isApproved=True, title="Live")
    await _promo(db, user, isApproved=True, title="Expired", expiresAt=datetime.utcnow() - timedelta(days=1))
    await _promo(db, user, title="Unpaid")

    response = await client.get("/userPromo/active")
    promos = response.json()["data"]
    assert [p["title"] for p in promos] == ["Live"]
    assert promos[0]["userId"]["firstName"] == "Alice"


async def test_moderation(client, db, user, admin):
    promo_id = await _promo(db, user, isApproved=True)

    response = await client.patch(f"/userPromo/{promo_id}/moderate", headers=auth_headers(user),
                                  json={"status": "rejected"})
    assert response.status_code == 403

    response = await client.patch(f"/userPromo/{promo_id}/moderate", headers=auth_headers(admin),
                                  json={"status": "rejected", "reason": "spam"})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["isActive"] is False
    assert data["moderationReason"] == "spam"

    response = await client.patch(f"/userPromo/{ObjectId()}/moderate", headers=auth_headers(admin),
                                  json={"status": "approved"})
    assert response.status_code == 404


async def test_title_and_description_limits(client, user, payments):
    headers = auth_headers(user)
    response = await client.post("/userPromo/promo", headers=headers,
                                 data={**FORM, "title": "x" * 101, "imageUrl": "https://x/y.png"})
    assert response.status_code == 400
    response = await client.post("/userPromo/promo", headers=headers,
                                 data={**FORM, "description": "x" * 501, "imageUrl": "https://x/y.png"})
    assert response.status_code == 400
    assert payments.orders == []


async def test_payment_cannot_approve_someone_elses_promo(client, db, user):
    mallory = await make_user(db, first_name="Mallory")
    promo_id = await _promo(db, user, razorpayOrderId="order_month")

    response = await client.post(f"/userPromo/{promo_id}/verify", headers=auth_headers(mallory), json={
        "order_id": "order_cheap", "payment_id": "pay_1", "signature": _signature("order_cheap", "pay_1"),
    })
    assert response.status_code == 404
    stored = await db.promos.find_one({"_id": promo_id})
    assert stored["isApproved"] is False


async def test_payment_for_another_order_is_rejected(client, db, user):
    promo_id = await _promo(db, user, razorpayOrderId="order_month")

    response = await client.post(f"/userPromo/{promo_id}/verify", headers=auth_headers(user), json={
        "order_id": "order_cheap", "payment_id": "pay_1", "signature": _signature("order_cheap", "pay_1"),
    })
    assert response.status_code == 400
    stored = await db.promos.find_one({"_id": promo_id})
    assert stored["isApproved"] is False
    assert "paymentId" not in stored


async def test_non_ascii_signature_is_a_mismatch(client, db, user):
    promo_id = await _promo(db, user)
    response = await client.post(f"/userPromo/{promo_id}/verify", headers=auth_headers(user), json={
        "order_id": "order_1", "payment_id": "pay_1", "signature": "é" * 64,
    })
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid payment signature"
