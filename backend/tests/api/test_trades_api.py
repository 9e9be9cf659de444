"""
Tests for the /api/trades endpoints.
"""
import pytest
import pytest_asyncio
from httpx import AsyncClient

from wav.services.ledger import CollectionLedger


@pytest_asyncio.fixture
async def offer(factory, alice, bob):
    """alice holds a, bob holds b."""
    a = await factory.owned_card(alice, "trk-a", momentum=30)
    b = await factory.owned_card(bob, "trk-b", momentum=70)
    return {"receiver_id": bob.id, "sender_card_ids": [a.id], "receiver_card_ids": [b.id]}


@pytest.mark.asyncio
async def test_create_trade(client: AsyncClient, alice, bob, alice_headers, offer):
    response = await client.post("/api/trades", json=offer, headers=alice_headers)

    assert response.status_code == 201
    data = response.json()
    assert data["sender_id"] == alice.id
    assert data["receiver_id"] == bob.id
    assert data["status"] == "pending"
    assert [c["id"] for c in data["sender_cards"]] == offer["sender_card_ids"]
    assert [c["id"] for c in data["receiver_cards"]] == offer["receiver_card_ids"]
    assert data["sender"]["username"] == "alice"


@pytest.mark.asyncio
async def test_create_trade_rejects_empty_side(client: AsyncClient, alice_headers, offer):
    offer["receiver_card_ids"] = []
    response = await client.post("/api/trades", json=offer, headers=alice_headers)

    assert response.status_code == 400
    assert response.json()["error_type"] == "empty_offer"


@pytest.mark.asyncio
async def test_create_trade_with_self(client: AsyncClient, alice, alice_headers, offer):
    offer["receiver_id"] = alice.id
    response = await client.post("/api/trades", json=offer, headers=alice_headers)

    assert response.status_code == 400
    assert response.json()["error_type"] == "invalid_parties"


@pytest.mark.asyncio
async def test_create_trade_offering_unowned_card(client: AsyncClient, alice_headers, offer):
    offer["sender_card_ids"] = offer["receiver_card_ids"]
    response = await client.post("/api/trades", json=offer, headers=alice_headers)

    assert response.status_code == 400
    assert response.json()["error_type"] == "not_owned"


@pytest.mark.asyncio
async def test_list_and_received(client: AsyncClient, alice_headers, bob_headers, offer):
    await client.post("/api/trades", json=offer, headers=alice_headers)

    sent = (await client.get("/api/trades", headers=alice_headers)).json()
    assert sent["total"] == 1

    alice_received = (await client.get("/api/trades/received", headers=alice_headers)).json()
    assert alice_received["total"] == 0

    bob_received = (await client.get("/api/trades/received", headers=bob_headers)).json()
    assert bob_received["total"] == 1
    assert bob_received["trades"][0]["status"] == "pending"


@pytest.mark.asyncio
async def test_get_trade_forbidden_to_outsiders(client: AsyncClient, factory, headers_for, alice_headers, offer):
    trade_id = (await client.post("/api/trades", json=offer, headers=alice_headers)).json()["id"]
    carol = await factory.user("carol")

    response = await client.get(f"/api/trades/{trade_id}", headers=headers_for(carol))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_get_missing_trade(client: AsyncClient, alice_headers):
    response = await client.get("/api/trades/9999", headers=alice_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_accept_swaps_cards(client: AsyncClient, alice, bob, alice_headers, bob_headers, offer):
    trade_id = (await client.post("/api/trades", json=offer, headers=alice_headers)).json()["id"]

    response = await client.post(f"/api/trades/{trade_id}/accept", headers=bob_headers)

    assert response.status_code == 200
    assert response.json()["status"] == "accepted"

    alice_cards = (await client.get(f"/api/cards/user/{alice.id}")).json()
    bob_cards = (await client.get(f"/api/cards/user/{bob.id}")).json()
    assert [o["card"]["id"] for o in alice_cards["cards"]] == offer["receiver_card_ids"]
    assert [o["card"]["id"] for o in bob_cards["cards"]] == offer["sender_card_ids"]
    assert alice_cards["cards"][0]["acquired_via"] == "trade"
    assert alice.total_momentum == 70
    assert bob.total_momentum == 30
    assert alice.trades_completed == 1
    assert bob.trades_completed == 1


@pytest.mark.asyncio
async def test_sender_cannot_accept(client: AsyncClient, alice_headers, offer):
    trade_id = (await client.post("/api/trades", json=offer, headers=alice_headers)).json()["id"]

    response = await client.post(f"/api/trades/{trade_id}/accept", headers=alice_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_decline(client: AsyncClient, alice, alice_headers, bob_headers, offer):
    trade_id = (await client.post("/api/trades", json=offer, headers=alice_headers)).json()["id"]

    response = await client.post(f"/api/trades/{trade_id}/decline", headers=bob_headers)

    assert response.status_code == 200
    assert response.json()["status"] == "declined"
    alice_cards = (await client.get(f"/api/cards/user/{alice.id}")).json()
    assert [o["card"]["id"] for o in alice_cards["cards"]] == offer["sender_card_ids"]


@pytest.mark.asyncio
async def test_second_decision_reports_current_status(client: AsyncClient, alice_headers, bob_headers, offer):
    trade_id = (await client.post("/api/trades", json=offer, headers=alice_headers)).json()["id"]
    await client.post(f"/api/trades/{trade_id}/accept", headers=bob_headers)

    response = await client.post(f"/api/trades/{trade_id}/decline", headers=bob_headers)

    assert response.status_code == 400
    data = response.json()
    assert data["error_type"] == "invalid_transition"
    assert data["current_status"] == "accepted"


@pytest.mark.asyncio
async def test_trade_reads_expired_after_cards_move(
    client: AsyncClient, db_session, alice, alice_headers, bob_headers, offer
):
    trade_id = (await client.post("/api/trades", json=offer, headers=alice_headers)).json()["id"]
    await CollectionLedger(db_session).remove_ownership(alice.id, offer["sender_card_ids"][0])

    listed = (await client.get(f"/api/trades/{trade_id}", headers=bob_headers)).json()
    assert listed["status"] == "expired"
    assert listed["stored_status"] == "pending"

    response = await client.post(f"/api/trades/{trade_id}/accept", headers=bob_headers)
    assert response.status_code == 400
    assert response.json()["error_type"] == "ownership_mismatch"
