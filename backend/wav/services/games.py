"""
Economic settlement for mini-games.

Game rules (blackjack scoring etc.) live in the client. This module only
applies the consequence of a round: a win grants freshly minted cards, a
loss forfeits the staked card, a push changes nothing.
"""
import random
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from wav.core.constants import GAME_DECK_SIZE, GameOutcome
from wav.core.exceptions import NotOwnedError
from wav.models.card import Card
from wav.services.acquisition import CardAcquisition, ClaimResult
from wav.services.catalog.base import TrackCatalog, TrackSelection
from wav.services.catalog.stats import to_selection
from wav.services.ledger import CollectionLedger

logger = get_logger()


class GameSettlement:
    """Win/loss/push bookkeeping shared by every mini-game."""

    def __init__(self, db: AsyncSession, rng: random.Random | None = None):
        self.db = db
        self.ledger = CollectionLedger(db)
        self.acquisition = CardAcquisition(db)
        self._rng = rng or random.Random()

    async def stake(self, user_id: int) -> Card | None:
        """
        Pick a random owned card to put at risk.

        Nothing is persisted; the card stays in the collection until a
        loss is settled. Returns None for an empty collection.
        """
        await self.ledger.get_user(user_id)
        owned = await self.ledger.list_owned_cards(user_id)
        if not owned:
            return None
        card, _ = self._rng.choice(owned)
        return card

    async def on_win(
        self,
        user_id: int,
        won_cards: list[TrackSelection],
        now: datetime | None = None,
    ) -> ClaimResult:
        return await self.acquisition.claim_batch(user_id, won_cards, now)

    async def on_loss(
        self,
        user_id: int,
        staked_card_id: int,
        now: datetime | None = None,
    ) -> Card:
        return await self.ledger.remove_ownership(user_id, staked_card_id, now)

    async def on_push(self) -> None:
        return None

    async def settle(
        self,
        user_id: int,
        outcome: GameOutcome,
        staked_card_id: int | None = None,
        won_cards: list[TrackSelection] | None = None,
        now: datetime | None = None,
    ) -> ClaimResult | Card | None:
        """Dispatch a finished round to the matching outcome handler."""
        logger.info("game_settled", user_id=user_id, outcome=outcome.value)

        if outcome == GameOutcome.WIN:
            return await self.on_win(user_id, won_cards or [], now)
        if outcome == GameOutcome.LOSS:
            if staked_card_id is None:
                raise NotOwnedError("A lost round must name the staked card")
            return await self.on_loss(user_id, staked_card_id, now)
        return await self.on_push()


async def build_game_deck(
    catalog: TrackCatalog,
    genres: list[str] | None = None,
    size: int = GAME_DECK_SIZE,
    rng: random.Random | None = None,
) -> list[TrackSelection]:
    """Random catalog tracks with derived card stats, for the client to deal."""
    tracks = await catalog.random_tracks(size, genres)
    return [to_selection(track, rng=rng) for track in tracks]
