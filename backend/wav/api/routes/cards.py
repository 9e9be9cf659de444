"""
Card and collection endpoints.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from wav.api.deps import CurrentUser, OptionalUser
from wav.api.utils.presenters import card_response, owned_card_response
from wav.core.constants import TOP_CARDS_MAX_LIMIT, Privacy
from wav.core.exceptions import ForbiddenError, NotFoundError
from wav.core.utils import utc_now
from wav.db.session import get_db
from wav.models.card import Card
from wav.schemas.card import CardResponse, CollectionResponse, TopCardResponse
from wav.services.leaderboard import LeaderboardAggregator
from wav.services.ledger import CollectionLedger

router = APIRouter()


@router.get("/top", response_model=list[TopCardResponse])
async def get_top_cards(
    limit: int = Query(10, ge=1),
    db: AsyncSession = Depends(get_db),
):
    """Most collected cards, ranked by how many users own them."""
    ranked = await LeaderboardAggregator(db).top_cards(min(limit, TOP_CARDS_MAX_LIMIT))
    now = utc_now()
    return [
        TopCardResponse(**card_response(entry.card, now).model_dump(), num_owned=entry.num_owned)
        for entry in ranked
    ]


@router.get("/{card_id}", response_model=CardResponse)
async def get_card(card_id: int, db: AsyncSession = Depends(get_db)):
    card = await db.get(Card, card_id)
    if card is None:
        raise NotFoundError(f"Card {card_id} not found")
    return card_response(card, utc_now())


@router.get("/user/{user_id}", response_model=CollectionResponse)
async def get_user_collection(
    user_id: int,
    viewer: OptionalUser,
    db: AsyncSession = Depends(get_db),
):
    """
    A user's cards with live energy, newest first.

    Private decks are visible only to their owner.
    """
    ledger = CollectionLedger(db)
    user = await ledger.get_user(user_id)
    if user.deck_privacy == Privacy.PRIVATE and (viewer is None or viewer.id != user_id):
        raise ForbiddenError("This deck is private")

    now = utc_now()
    owned = [
        owned_card_response(card, ownership, now)
        async for card, ownership in ledger.owned_cards(user_id)
    ]

    return CollectionResponse(
        user_id=user_id,
        cards=owned,
        total=len(owned),
        total_energy=sum(o.card.energy for o in owned),
        total_momentum=sum(o.card.momentum for o in owned),
    )


@router.delete("/user/{user_id}/{card_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user_card(
    user_id: int,
    card_id: int,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    """Remove a card from your own collection."""
    if current_user.id != user_id:
        raise ForbiddenError("You can only remove cards from your own collection")

    await CollectionLedger(db).remove_ownership(user_id, card_id)
