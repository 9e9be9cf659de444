"""
Trade Pydantic schemas.
"""
from datetime import datetime

from pydantic import BaseModel, Field

from wav.core.constants import TradeStatus
from wav.schemas.card import CardResponse
from wav.schemas.user import UserSummary


class TradeCreate(BaseModel):
    receiver_id: int
    sender_card_ids: list[int] = Field(default_factory=list, max_length=100)
    receiver_card_ids: list[int] = Field(default_factory=list, max_length=100)


class TradeResponse(BaseModel):
    """A trade with its status evaluated at response time."""
    id: int
    sender_id: int
    receiver_id: int
    sender: UserSummary
    receiver: UserSummary
    status: TradeStatus
    stored_status: TradeStatus
    sender_cards: list[CardResponse]
    receiver_cards: list[CardResponse]
    created_at: datetime
    expires_at: datetime


class TradeListResponse(BaseModel):
    trades: list[TradeResponse]
    total: int
