"""
Trade offer endpoints.

Status is always evaluated at read time, so a pending trade past its
window or with moved cards is reported as expired.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from wav.api.deps import CurrentUser
from wav.api.utils.presenters import trade_response
from wav.core.utils import utc_now
from wav.db.session import get_db
from wav.schemas.trade import TradeCreate, TradeListResponse, TradeResponse
from wav.services.trades import TradeService

router = APIRouter()


@router.post("", response_model=TradeResponse, status_code=status.HTTP_201_CREATED)
async def create_trade(
    body: TradeCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    """Offer some of your cards for some of the receiver's."""
    now = utc_now()
    service = TradeService(db)
    trade = await service.create(
        sender_id=current_user.id,
        receiver_id=body.receiver_id,
        sender_card_ids=body.sender_card_ids,
        receiver_card_ids=body.receiver_card_ids,
        now=now,
    )
    return trade_response(trade, await service.evaluate_status(trade, now), now)


@router.get("", response_model=TradeListResponse)
async def list_trades(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    """All trades you sent or received."""
    now = utc_now()
    rows = await TradeService(db).list_trades(current_user.id, "all", now)
    return TradeListResponse(
        trades=[trade_response(trade, evaluated, now) for trade, evaluated in rows],
        total=len(rows),
    )


@router.get("/received", response_model=TradeListResponse)
async def list_received_trades(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    """Trades addressed to you."""
    now = utc_now()
    rows = await TradeService(db).list_trades(current_user.id, "received", now)
    return TradeListResponse(
        trades=[trade_response(trade, evaluated, now) for trade, evaluated in rows],
        total=len(rows),
    )


@router.get("/{trade_id}", response_model=TradeResponse)
async def get_trade(
    trade_id: int,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    now = utc_now()
    service = TradeService(db)
    trade = await service.get_trade_for(trade_id, current_user.id)
    return trade_response(trade, await service.evaluate_status(trade, now), now)


@router.post("/{trade_id}/accept", response_model=TradeResponse)
async def accept_trade(
    trade_id: int,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    """Accept a trade addressed to you; cards change hands atomically."""
    now = utc_now()
    trade = await TradeService(db).accept(trade_id, current_user.id, now)
    return trade_response(trade, trade.status, now)


@router.post("/{trade_id}/decline", response_model=TradeResponse)
async def decline_trade(
    trade_id: int,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    now = utc_now()
    trade = await TradeService(db).decline(trade_id, current_user.id, now)
    return trade_response(trade, trade.status, now)
