"""
Analytics endpoints.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from wav.api.deps import OptionalUser
from wav.api.utils.presenters import trade_response
from wav.core.constants import TimeScale
from wav.core.utils import utc_now
from wav.db.session import get_db
from wav.schemas.analytics import (
    AnalyticsResponse,
    GenreCount,
    HistoryPointResponse,
    HistoryResponse,
)
from wav.services.analytics import AnalyticsService

router = APIRouter()


@router.get("/user/{user_id}", response_model=AnalyticsResponse)
async def get_user_analytics(
    user_id: int,
    viewer: OptionalUser,
    db: AsyncSession = Depends(get_db),
):
    """
    Collection summary for a user.

    Recent trades are included only when the user's trades are public or
    the viewer is the owner.
    """
    now = utc_now()
    summary = await AnalyticsService(db).user_analytics(
        user_id, viewer.id if viewer else None, now
    )
    user = summary.user
    return AnalyticsResponse(
        user_id=user_id,
        total_cards=summary.total_cards,
        total_energy=summary.total_energy,
        total_momentum=summary.total_momentum,
        avg_bpm=summary.avg_bpm,
        genre_distribution=[GenreCount(genre=g, count=c) for g, c in summary.genre_distribution],
        recent_trades=[trade_response(t, s, now) for t, s in summary.recent_trades],
        deck_privacy=user.deck_privacy,
        trade_privacy=user.trade_privacy,
        is_owner=summary.is_owner,
    )


@router.get("/user/{user_id}/history", response_model=HistoryResponse)
async def get_user_history(
    user_id: int,
    viewer: OptionalUser,
    time_scale: TimeScale = Query(TimeScale.WEEK, alias="timeScale"),
    db: AsyncSession = Depends(get_db),
):
    """Daily energy/momentum points for the last day, week or month."""
    points = await AnalyticsService(db).history(
        user_id, time_scale, utc_now(), viewer.id if viewer else None
    )
    return HistoryResponse(
        data=[
            HistoryPointResponse(
                date=p.stat_date,
                energy=p.energy,
                momentum=p.momentum,
                cards_count=p.cards_count,
                reconstructed=p.reconstructed,
            )
            for p in points
        ],
        time_scale=time_scale,
    )
