"""
Unboxing Pydantic schemas.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, model_validator

from wav.schemas.card import CardResponse, TrackSelectionIn


class UnboxRequest(BaseModel):
    """Unbox either an explicit wheel track or a random track from a category."""
    track: Optional[TrackSelectionIn] = None
    category: Optional[str] = None

    @model_validator(mode="after")
    def require_track_or_category(self) -> "UnboxRequest":
        if self.track is None and not self.category:
            raise ValueError("Provide either a track or a category")
        return self


class UnboxResponse(BaseModel):
    card: CardResponse
    is_new: bool
    next_unbox_time: datetime


class CooldownResponse(BaseModel):
    can_unbox: bool
    remaining_ms: int = 0
    next_unbox_time: Optional[datetime] = None


class WheelResponse(BaseModel):
    tracks: list[TrackSelectionIn]
    count: int
