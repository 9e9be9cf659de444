"""
User profile and leaderboard endpoints.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from wav.api.deps import CurrentUser
from wav.core.config import settings
from wav.core.exceptions import ForbiddenError
from wav.db.session import get_db
from wav.schemas.user import (
    AggregatesResponse,
    LeaderboardEntryResponse,
    LeaderboardResponse,
    PrivacyUpdate,
    UserProfile,
    UserSummary,
)
from wav.services.leaderboard import LeaderboardAggregator
from wav.services.ledger import CollectionLedger

router = APIRouter()


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def get_leaderboard(
    limit: int = Query(settings.leaderboard_default_limit, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """Top users by live total energy."""
    entries = await LeaderboardAggregator(db).top_by_energy(limit)
    return LeaderboardResponse(
        entries=[
            LeaderboardEntryResponse(
                rank=entry.rank,
                user=UserSummary.model_validate(entry.user),
                total_energy=entry.user.total_energy,
                total_momentum=entry.user.total_momentum,
                cards_collected=entry.user.cards_collected,
            )
            for entry in entries
        ]
    )


@router.get("/{user_id}", response_model=UserProfile)
async def get_user_profile(
    user_id: int,
    db: AsyncSession = Depends(get_db),
):
    user = await CollectionLedger(db).get_user(user_id)
    return UserProfile.model_validate(user)


@router.put("/{user_id}", response_model=UserProfile)
async def update_privacy(
    user_id: int,
    body: PrivacyUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    """Change your own deck/trade privacy."""
    if current_user.id != user_id:
        raise ForbiddenError("You can only update your own profile")

    if body.deck_privacy is not None:
        current_user.deck_privacy = body.deck_privacy
    if body.trade_privacy is not None:
        current_user.trade_privacy = body.trade_privacy
    await db.flush()
    await db.refresh(current_user)
    return UserProfile.model_validate(current_user)


@router.post("/{user_id}/recompute", response_model=AggregatesResponse)
async def recompute_user_aggregates(
    user_id: int,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    """Rebuild your cached totals from your owned cards."""
    if current_user.id != user_id:
        raise ForbiddenError("You can only recompute your own stats")

    totals = await CollectionLedger(db).recompute_aggregates(user_id)
    return AggregatesResponse(
        user_id=user_id,
        total_energy=totals.energy,
        total_momentum=totals.momentum,
        cards_collected=totals.cards,
    )
