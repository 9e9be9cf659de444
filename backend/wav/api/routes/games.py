"""
Mini-game endpoints: deck dealing, staking and settlement.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from wav.api.deps import Catalog, CurrentUser
from wav.api.utils.presenters import card_response
from wav.core.constants import GAME_DECK_SIZE, GameOutcome
from wav.core.exceptions import NotFoundError
from wav.core.utils import utc_now
from wav.db.session import get_db
from wav.schemas.card import TrackSelectionIn
from wav.schemas.game import GameDeckResponse, SettleRequest, SettleResponse, StakeResponse
from wav.services.games import GameSettlement, build_game_deck

router = APIRouter()


@router.get("/blackjack/deck", response_model=GameDeckResponse)
async def get_blackjack_deck(
    current_user: CurrentUser,
    catalog: Catalog,
    genres: list[str] | None = Query(None),
):
    """Deal a deck of catalog tracks, biased to the user's favourite genres."""
    deck = await build_game_deck(catalog, genres or current_user.top_genres or None, GAME_DECK_SIZE)
    return GameDeckResponse(cards=[TrackSelectionIn.model_validate(s) for s in deck])


@router.get("/stake", response_model=StakeResponse)
async def stake_card(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    """Pick a random card from your collection to play for."""
    card = await GameSettlement(db).stake(current_user.id)
    if card is None:
        raise NotFoundError("You need at least one card to play")
    return StakeResponse(card=card_response(card, utc_now()))


@router.post("/settle", response_model=SettleResponse)
async def settle_round(
    body: SettleRequest,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    """Apply the result of a finished round to your collection."""
    outcome = await GameSettlement(db).settle(
        current_user.id,
        body.outcome,
        staked_card_id=body.staked_card_id,
        won_cards=[c.to_selection() for c in body.won_cards],
    )

    response = SettleResponse(outcome=body.outcome)
    if body.outcome == GameOutcome.WIN:
        response.added_card_ids = outcome.added_card_ids
        response.skipped = outcome.skipped
    elif body.outcome == GameOutcome.LOSS:
        response.removed_card_id = outcome.id
    return response
