"""
SQLAlchemy models for the WAV application.
"""
from wav.models.user import User
from wav.models.card import Card
from wav.models.user_card import UserCard
from wav.models.trade import Trade, TradeCard
from wav.models.daily_stat import UserDailyStat
from wav.models.unboxing import Unboxing

__all__ = [
    "User",
    "Card",
    "UserCard",
    "Trade",
    "TradeCard",
    "UserDailyStat",
    "Unboxing",
]
