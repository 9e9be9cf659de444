"""
Tests for the /api/unbox endpoints.
"""
import pytest
from httpx import AsyncClient

WHEEL_TRACK = {
    "external_track_id": "wheel-1",
    "song_name": "Wheel Song",
    "artist_name": "Spinner",
    "momentum": 42,
    "bpm": 128,
    "genre": "pop",
}


@pytest.mark.asyncio
async def test_requires_authentication(client: AsyncClient):
    response = await client.post("/api/unbox", json={"category": "pop"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_rejects_invalid_token(client: AsyncClient):
    response = await client.get(
        "/api/unbox/cooldown",
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_unbox_wheel_track(client: AsyncClient, alice, alice_headers):
    response = await client.post("/api/unbox", json={"track": WHEEL_TRACK}, headers=alice_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["is_new"] is True
    assert data["card"]["external_track_id"] == "wheel-1"
    assert data["card"]["momentum"] == 42
    assert data["card"]["energy"] == 0
    assert alice.cards_collected == 1


@pytest.mark.asyncio
async def test_unbox_category(client: AsyncClient, alice_headers):
    response = await client.post("/api/unbox", json={"category": "rock"}, headers=alice_headers)

    assert response.status_code == 200
    assert response.json()["card"]["external_track_id"] == "trk-rock-1"


@pytest.mark.asyncio
async def test_needs_track_or_category(client: AsyncClient, alice_headers):
    response = await client.post("/api/unbox", json={}, headers=alice_headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_momentum_out_of_range(client: AsyncClient, alice_headers):
    track = dict(WHEEL_TRACK, momentum=101)
    response = await client.post("/api/unbox", json={"track": track}, headers=alice_headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_cooldown_blocks_second_unbox(client: AsyncClient, alice_headers):
    first = await client.post("/api/unbox", json={"track": WHEEL_TRACK}, headers=alice_headers)
    assert first.status_code == 200

    second = await client.post("/api/unbox", json={"category": "pop"}, headers=alice_headers)

    assert second.status_code == 429
    data = second.json()
    assert data["error_type"] == "cooldown_active"
    assert 0 < data["remaining_ms"] <= 30_000
    assert "next_unbox_time" in data
    assert 1 <= int(second.headers["Retry-After"]) <= 30


@pytest.mark.asyncio
async def test_cooldown_status(client: AsyncClient, alice_headers):
    before = await client.get("/api/unbox/cooldown", headers=alice_headers)
    assert before.json() == {"can_unbox": True, "remaining_ms": 0, "next_unbox_time": None}

    await client.post("/api/unbox", json={"track": WHEEL_TRACK}, headers=alice_headers)

    after = (await client.get("/api/unbox/cooldown", headers=alice_headers)).json()
    assert after["can_unbox"] is False
    assert after["remaining_ms"] > 0


@pytest.mark.asyncio
async def test_unknown_category_rejected(client: AsyncClient, alice, alice_headers):
    response = await client.post("/api/unbox", json={"category": "polka"}, headers=alice_headers)

    assert response.status_code == 400
    data = response.json()
    assert data["error_type"] == "invalid_category"
    assert "pop" in data["available_genres"]
    assert alice.last_unbox_time is None

    status = (await client.get("/api/unbox/cooldown", headers=alice_headers)).json()
    assert status["can_unbox"] is True


@pytest.mark.asyncio
async def test_wheel(client: AsyncClient, alice_headers):
    response = await client.get("/api/unbox/wheel", headers=alice_headers)

    assert response.status_code == 200
    data = response.json()
    # The static catalog only holds three tracks
    assert data["count"] == 3
    assert {t["external_track_id"] for t in data["tracks"]} == {"trk-pop-1", "trk-pop-2", "trk-rock-1"}
    assert all(t["genre"] == "mixed" for t in data["tracks"])


@pytest.mark.asyncio
async def test_wheel_track_can_be_unboxed(client: AsyncClient, alice_headers):
    wheel = (await client.get("/api/unbox/wheel", headers=alice_headers)).json()

    response = await client.post("/api/unbox", json={"track": wheel["tracks"][0]}, headers=alice_headers)

    assert response.status_code == 200
    assert response.json()["card"]["genre"] == "mixed"


@pytest.mark.asyncio
async def test_wheel_requires_authentication(client: AsyncClient):
    response = await client.get("/api/unbox/wheel")
    assert response.status_code == 401
