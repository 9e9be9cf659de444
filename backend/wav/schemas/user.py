"""
User profile Pydantic schemas.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from wav.core.constants import Privacy


class UserSummary(BaseModel):
    """Minimal user info embedded in other responses."""
    id: int
    username: str
    avatar_url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class UserProfile(UserSummary):
    total_energy: int
    total_momentum: int
    cards_collected: int
    trades_completed: int
    deck_privacy: Privacy
    trade_privacy: Privacy
    top_genres: list[str] = Field(default_factory=list)
    created_at: datetime


class PrivacyUpdate(BaseModel):
    deck_privacy: Optional[Privacy] = None
    trade_privacy: Optional[Privacy] = None


class AggregatesResponse(BaseModel):
    user_id: int
    total_energy: int
    total_momentum: int
    cards_collected: int


class LeaderboardEntryResponse(BaseModel):
    rank: int
    user: UserSummary
    total_energy: int
    total_momentum: int
    cards_collected: int


class LeaderboardResponse(BaseModel):
    entries: list[LeaderboardEntryResponse]
