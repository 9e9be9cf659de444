"""
Tests for the /api/games endpoints.
"""
import pytest
from httpx import AsyncClient


def won_card(track_id: str, momentum: int = 30) -> dict:
    return {
        "external_track_id": track_id,
        "song_name": f"Song {track_id}",
        "artist_name": "Dealer",
        "momentum": momentum,
        "genre": "pop",
    }


@pytest.mark.asyncio
async def test_deck_by_genre(client: AsyncClient, alice_headers):
    response = await client.get("/api/games/blackjack/deck?genres=rock", headers=alice_headers)

    assert response.status_code == 200
    cards = response.json()["cards"]
    assert [c["external_track_id"] for c in cards] == ["trk-rock-1"]
    assert 1 <= cards[0]["momentum"] <= 100


@pytest.mark.asyncio
async def test_deck_without_genres(client: AsyncClient, alice_headers):
    cards = (await client.get("/api/games/blackjack/deck", headers=alice_headers)).json()["cards"]

    assert sorted(c["external_track_id"] for c in cards) == ["trk-pop-1", "trk-pop-2", "trk-rock-1"]


@pytest.mark.asyncio
async def test_stake_needs_a_card(client: AsyncClient, alice_headers):
    response = await client.get("/api/games/stake", headers=alice_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_stake_picks_owned_card(client: AsyncClient, factory, alice, alice_headers):
    card = await factory.owned_card(alice, "trk-a")

    response = await client.get("/api/games/stake", headers=alice_headers)

    assert response.status_code == 200
    assert response.json()["card"]["id"] == card.id


@pytest.mark.asyncio
async def test_settle_win_adds_cards(client: AsyncClient, alice, alice_headers):
    response = await client.post(
        "/api/games/settle",
        json={"outcome": "win", "won_cards": [won_card("w-1"), won_card("w-2", 60)]},
        headers=alice_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert len(data["added_card_ids"]) == 2
    assert data["skipped"] == 0
    assert alice.cards_collected == 2
    assert alice.total_momentum == 90
    # Game winnings never touch the unbox cooldown
    assert alice.last_unbox_time is None


@pytest.mark.asyncio
async def test_settle_loss_removes_stake(client: AsyncClient, factory, alice, alice_headers):
    card = await factory.owned_card(alice, "trk-a")

    response = await client.post(
        "/api/games/settle",
        json={"outcome": "loss", "staked_card_id": card.id},
        headers=alice_headers,
    )

    assert response.status_code == 200
    assert response.json()["removed_card_id"] == card.id
    assert alice.cards_collected == 0


@pytest.mark.asyncio
async def test_settle_loss_requires_stake(client: AsyncClient, alice_headers):
    response = await client.post("/api/games/settle", json={"outcome": "loss"}, headers=alice_headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_settle_push_changes_nothing(client: AsyncClient, factory, alice, alice_headers):
    await factory.owned_card(alice, "trk-a")

    response = await client.post("/api/games/settle", json={"outcome": "push"}, headers=alice_headers)

    assert response.status_code == 200
    assert response.json() == {
        "outcome": "push",
        "added_card_ids": [],
        "skipped": 0,
        "removed_card_id": None,
    }
    assert alice.cards_collected == 1
