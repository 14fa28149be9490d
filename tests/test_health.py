import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from codex.main import app


class PingableDb:
    async def command(self, name):
        return {"ok": 1.0}


class DownRedis:
    async def ping(self):
        raise RedisConnectionError("connection refused")


@pytest.fixture
def state(monkeypatch, redis):
    monkeypatch.setattr(app.state, "db", PingableDb(), raising=False)
    monkeypatch.setattr(app.state, "redis", redis, raising=False)
    return app.state


async def test_health_ok(client, state):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"success": True, "data": {"status": "healthy", "mongo": "ok", "redis": "ok"}}


async def test_health_degraded_is_503(client, state, monkeypatch):
    monkeypatch.setattr(state, "redis", DownRedis())
    response = await client.get("/health")
    assert response.status_code == 503
    body = response.json()
    assert body["success"] is False
    assert body["data"]["status"] == "degraded"
    assert body["data"]["redis"] == "unreachable"
    assert body["data"]["mongo"] == "ok"
