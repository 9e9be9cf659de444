"""
Analytics Pydantic schemas.
"""
from datetime import date

from pydantic import BaseModel

from wav.core.constants import Privacy, TimeScale
from wav.schemas.trade import TradeResponse


class GenreCount(BaseModel):
    genre: str
    count: int


class AnalyticsResponse(BaseModel):
    user_id: int
    total_cards: int
    total_energy: int
    total_momentum: int
    avg_bpm: int
    genre_distribution: list[GenreCount]
    recent_trades: list[TradeResponse]
    deck_privacy: Privacy
    trade_privacy: Privacy
    is_owner: bool


class HistoryPointResponse(BaseModel):
    date: date
    energy: int
    momentum: int
    cards_count: int
    reconstructed: bool = False


class HistoryResponse(BaseModel):
    data: list[HistoryPointResponse]
    time_scale: TimeScale
