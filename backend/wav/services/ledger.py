"""
Collection ledger.

Keeps each user's cached aggregates (total_energy, total_momentum,
cards_collected) consistent with the cards they actually own, and
enforces the collection ceiling.

Handles:
- Enumerating owned cards
- Full recompute of the cached aggregates
- Clamped incremental deltas for latency-sensitive paths
- Compare-and-swap ownership transfer and removal
"""
from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from wav.core.constants import MAX_CARDS_PER_USER, AcquiredVia
from wav.core.exceptions import (
    NotFoundError,
    NotOwnedError,
    OwnershipMismatchError,
    ProviderUnavailableError,
)
from wav.core.utils import utc_now
from wav.models.card import Card
from wav.models.user import User
from wav.models.user_card import UserCard
from wav.services.stat_clock import calculate_energy

logger = get_logger()


@dataclass(frozen=True)
class LedgerTotals:
    """Aggregates derived from a user's owned cards at one instant."""
    energy: int
    momentum: int
    cards: int


class CollectionLedger:
    """Aggregate bookkeeping over a user's owned cards."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user(self, user_id: int) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

    async def owned_cards(self, user_id: int) -> AsyncIterator[tuple[Card, UserCard]]:
        """
        Yield (card, ownership) pairs for a user, newest acquisition first.

        Every call re-queries, so iterating again reflects current truth.
        """
        result = await self.db.execute(
            select(UserCard)
            .where(UserCard.user_id == user_id)
            .order_by(UserCard.acquired_at.desc(), UserCard.id.desc())
        )
        for ownership in result.unique().scalars():
            yield ownership.card, ownership

    async def list_owned_cards(self, user_id: int) -> list[tuple[Card, UserCard]]:
        return [pair async for pair in self.owned_cards(user_id)]

    async def card_count(self, user_id: int) -> int:
        """Number of ownership rows, counted from the detail table."""
        result = await self.db.execute(
            select(func.count()).select_from(UserCard).where(UserCard.user_id == user_id)
        )
        return int(result.scalar() or 0)

    async def owns_card(self, user_id: int, card_id: int) -> bool:
        result = await self.db.execute(
            select(UserCard.id).where(
                UserCard.user_id == user_id,
                UserCard.card_id == card_id,
            )
        )
        return result.scalar_one_or_none() is not None

    async def owned_card_ids(self, user_id: int, card_ids: Iterable[int]) -> set[int]:
        """Subset of card_ids currently held by user_id."""
        ids = set(card_ids)
        if not ids:
            return set()
        result = await self.db.execute(
            select(UserCard.card_id).where(
                UserCard.user_id == user_id,
                UserCard.card_id.in_(ids),
            )
        )
        return set(result.scalars().all())

    async def compute_totals(self, user_id: int, now: datetime | None = None) -> LedgerTotals:
        """Derive aggregates from the detail set without persisting."""
        if now is None:
            now = utc_now()
        energy = momentum = cards = 0
        async for card, _ in self.owned_cards(user_id):
            energy += calculate_energy(card.momentum, card.created_at, now)
            momentum += card.momentum
            cards += 1
        return LedgerTotals(energy=energy, momentum=momentum, cards=cards)

    async def recompute_aggregates(self, user_id: int, now: datetime | None = None) -> LedgerTotals:
        """
        Rebuild a user's cached aggregates from their owned cards.

        This is the reconciliation path: it is idempotent and heals any
        drift left by a partially failed mutation.
        """
        user = await self.get_user(user_id)
        totals = await self.compute_totals(user_id, now)

        user.total_energy = totals.energy
        user.total_momentum = totals.momentum
        user.cards_collected = totals.cards
        await self.db.flush()

        logger.debug(
            "aggregates_recomputed",
            user_id=user_id,
            energy=totals.energy,
            momentum=totals.momentum,
            cards=totals.cards,
        )
        return totals

    async def can_acquire(self, user_id: int) -> bool:
        """Whether the user is below the collection ceiling."""
        return await self.remaining_slots(user_id) > 0

    async def remaining_slots(self, user_id: int) -> int:
        await self.get_user(user_id)
        count = await self.card_count(user_id)
        return max(0, MAX_CARDS_PER_USER - count)

    async def add_ownership(
        self,
        user_id: int,
        card_id: int,
        acquired_via: AcquiredVia,
        now: datetime | None = None,
    ) -> UserCard:
        """Insert an ownership row. Aggregates are the caller's concern."""
        ownership = UserCard(
            user_id=user_id,
            card_id=card_id,
            acquired_via=acquired_via,
            acquired_at=now or utc_now(),
        )
        self.db.add(ownership)
        await self.db.flush()
        return ownership

    def apply_deltas(
        self,
        user: User,
        *,
        energy: int = 0,
        momentum: int = 0,
        cards: int = 0,
        trades: int = 0,
    ) -> None:
        """Adjust cached aggregates in place, clamping every field at zero."""
        user.total_energy = max(0, user.total_energy + energy)
        user.total_momentum = max(0, user.total_momentum + momentum)
        user.cards_collected = max(0, user.cards_collected + cards)
        user.trades_completed = max(0, user.trades_completed + trades)

    async def transfer_ownership(
        self,
        card_id: int,
        from_user_id: int,
        to_user_id: int,
        acquired_via: AcquiredVia = AcquiredVia.TRADE,
        now: datetime | None = None,
    ) -> None:
        """
        Reassign one ownership row from one holder to another.

        The holder check and the write are a single conditional UPDATE, so
        a card that moved since it was last read is never transferred, and
        the row is never absent or duplicated on any exit path.
        """
        result = await self.db.execute(
            update(UserCard)
            .where(
                UserCard.user_id == from_user_id,
                UserCard.card_id == card_id,
            )
            .values(
                user_id=to_user_id,
                acquired_via=acquired_via,
                acquired_at=now or utc_now(),
            )
            .execution_options(synchronize_session="evaluate")
        )
        # rowcount is available on UPDATE results; type stubs incomplete for async
        if result.rowcount != 1:  # type: ignore[attr-defined]
            raise OwnershipMismatchError(
                f"User {from_user_id} no longer holds card {card_id}"
            )

        logger.info(
            "ownership_transferred",
            card_id=card_id,
            from_user_id=from_user_id,
            to_user_id=to_user_id,
        )

    async def remove_ownership(
        self,
        user_id: int,
        card_id: int,
        now: datetime | None = None,
    ) -> Card:
        """
        Delete an ownership row and decrement the owner's cached stats.

        Momentum, energy and card count are clamped at zero. Returns the
        card that was removed.
        """
        user = await self.get_user(user_id)
        card = await self.db.get(Card, card_id)
        if card is None:
            raise NotOwnedError(f"User {user_id} does not own card {card_id}")

        result = await self.db.execute(
            delete(UserCard)
            .where(
                UserCard.user_id == user_id,
                UserCard.card_id == card_id,
            )
            .execution_options(synchronize_session="evaluate")
        )
        if result.rowcount != 1:  # type: ignore[attr-defined]
            raise NotOwnedError(f"User {user_id} does not own card {card_id}")

        lost_energy = calculate_energy(card.momentum, card.created_at, now)
        self.apply_deltas(user, energy=-lost_energy, momentum=-card.momentum, cards=-1)
        await self.flush_aggregates(user_id, "remove_ownership")

        logger.info(
            "ownership_removed",
            user_id=user_id,
            card_id=card_id,
            momentum=card.momentum,
        )
        return card

    async def flush_aggregates(self, user_id: int, operation: str) -> None:
        """
        Flush pending aggregate changes.

        A failure here follows an ownership mutation, so it is logged for
        reconciliation before being surfaced.
        """
        try:
            await self.db.flush()
        except SQLAlchemyError as e:
            logger.error(
                "aggregate_update_failed",
                user_id=user_id,
                operation=operation,
                needs_reconciliation=True,
                error=str(e),
            )
            raise ProviderUnavailableError("Failed to update collection stats") from e
