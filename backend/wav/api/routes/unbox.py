"""
Unboxing endpoints.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from wav.api.deps import Catalog, CurrentUser
from wav.api.utils.presenters import card_response
from wav.core.utils import utc_now
from wav.db.session import get_db
from wav.schemas.card import TrackSelectionIn
from wav.schemas.unbox import CooldownResponse, UnboxRequest, UnboxResponse, WheelResponse
from wav.services.acquisition import COOLDOWN, CardAcquisition, deal_wheel, normalize_category

router = APIRouter()


@router.post("", response_model=UnboxResponse)
async def unbox_card(
    body: UnboxRequest,
    current_user: CurrentUser,
    catalog: Catalog,
    db: AsyncSession = Depends(get_db),
):
    """
    Unbox one card.

    The client either sends the track its wheel landed on, or a category
    for which a random catalog track is drawn.
    """
    now = utc_now()
    service = CardAcquisition(db)

    if body.track is not None:
        category = normalize_category(body.category) if body.category else body.track.genre
        card, is_new = await service.unbox(
            current_user.id, body.track.to_selection(), category=category, now=now
        )
    else:
        card, is_new = await service.unbox_category(
            current_user.id, catalog, body.category, now=now
        )

    return UnboxResponse(
        card=card_response(card, now),
        is_new=is_new,
        next_unbox_time=now + COOLDOWN,
    )


@router.get("/cooldown", response_model=CooldownResponse)
async def get_cooldown(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    """Whether the current user may unbox right now."""
    status = await CardAcquisition(db).cooldown_status(current_user.id)
    return CooldownResponse(
        can_unbox=status.can_unbox,
        remaining_ms=status.remaining_ms,
        next_unbox_time=status.next_unbox_time,
    )


@router.get("/wheel", response_model=WheelResponse)
async def get_wheel(
    current_user: CurrentUser,
    catalog: Catalog,
):
    """Deal tracks for the unbox wheel; the one it lands on is sent back to POST /unbox."""
    tracks = [TrackSelectionIn.model_validate(s) for s in await deal_wheel(catalog)]
    return WheelResponse(tracks=tracks, count=len(tracks))
