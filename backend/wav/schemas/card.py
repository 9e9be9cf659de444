"""
Card Pydantic schemas.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from wav.core.constants import AcquiredVia, MAX_MOMENTUM, MIN_MOMENTUM
from wav.services.catalog.base import TrackSelection


class CardResponse(BaseModel):
    """A card with its energy evaluated at response time."""
    id: int
    external_track_id: str
    is_minted: bool = False
    song_name: str
    artist_name: str
    album_name: str = ""
    album_art_url: str = ""
    preview_url: Optional[str] = None
    momentum: int
    bpm: int
    genre: str
    popularity: int
    energy: int = 0
    is_maxed: bool = False
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TopCardResponse(CardResponse):
    num_owned: int


class OwnedCardResponse(BaseModel):
    card: CardResponse
    acquired_via: AcquiredVia
    acquired_at: datetime


class CollectionResponse(BaseModel):
    user_id: int
    cards: list[OwnedCardResponse]
    total: int
    total_energy: int
    total_momentum: int


class TrackSelectionIn(BaseModel):
    """A concrete track chosen by the client, with stats already derived."""
    external_track_id: str = Field(..., min_length=1, max_length=64)
    song_name: str = Field(..., min_length=1, max_length=255)
    artist_name: str = Field(..., min_length=1, max_length=500)
    momentum: int = Field(..., ge=MIN_MOMENTUM, le=MAX_MOMENTUM)
    bpm: int = Field(default=120, ge=1, le=400)
    album_name: str = ""
    album_art_url: str = ""
    preview_url: Optional[str] = None
    popularity: int = Field(default=50, ge=0, le=100)
    genre: str = "mixed"

    model_config = ConfigDict(from_attributes=True)

    def to_selection(self) -> TrackSelection:
        return TrackSelection(**self.model_dump())
