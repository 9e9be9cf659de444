"""
Mini-game settlement Pydantic schemas.
"""
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from wav.core.constants import GameOutcome
from wav.schemas.card import CardResponse, TrackSelectionIn


class GameDeckResponse(BaseModel):
    cards: list[TrackSelectionIn]


class StakeResponse(BaseModel):
    card: CardResponse


class SettleRequest(BaseModel):
    outcome: GameOutcome
    staked_card_id: Optional[int] = None
    won_cards: list[TrackSelectionIn] = Field(default_factory=list, max_length=100)

    @model_validator(mode="after")
    def loss_requires_stake(self) -> "SettleRequest":
        if self.outcome == GameOutcome.LOSS and self.staked_card_id is None:
            raise ValueError("staked_card_id is required for a loss")
        return self


class SettleResponse(BaseModel):
    outcome: GameOutcome
    added_card_ids: list[int] = Field(default_factory=list)
    skipped: int = 0
    removed_card_id: Optional[int] = None
