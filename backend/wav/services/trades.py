"""
Trade service: the offer state machine between two users.

Handles:
- Creating offers after validating both sides' ownership
- Lazy status evaluation (time expiry and moved cards)
- Accepting with an all-or-nothing bilateral transfer
- Declining

pending -> accepted | declined | expired; every non-pending state is final.
Expiry is derived on read; nothing sweeps stored trades.
"""
from datetime import datetime
from typing import Literal

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from wav.core.constants import MAX_CARDS_PER_USER, AcquiredVia, TradeSide, TradeStatus
from wav.core.exceptions import (
    AlreadyOwnedError,
    CollectionFullError,
    EmptyOfferError,
    ForbiddenError,
    InvalidPartiesError,
    InvalidTransitionError,
    NotFoundError,
    NotOwnedError,
    OwnershipMismatchError,
)
from wav.core.utils import ensure_utc, utc_now
from wav.db.transaction import savepoint
from wav.models.card import Card
from wav.models.trade import Trade, TradeCard
from wav.services.ledger import CollectionLedger
from wav.services.stat_clock import calculate_energy

logger = get_logger()

TradeDirection = Literal["all", "sent", "received"]


def _unique(ids: list[int]) -> list[int]:
    return list(dict.fromkeys(ids))


class TradeService:
    """Service for managing trade offers."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.ledger = CollectionLedger(db)

    async def create(
        self,
        sender_id: int,
        receiver_id: int,
        sender_card_ids: list[int],
        receiver_card_ids: list[int],
        now: datetime | None = None,
    ) -> Trade:
        """
        Create a pending trade offer.

        Args:
            sender_id: User making the offer
            receiver_id: User the offer is addressed to
            sender_card_ids: Cards the sender gives up
            receiver_card_ids: Cards requested from the receiver

        Raises:
            InvalidPartiesError: sender and receiver are the same user
            EmptyOfferError: either side lists no cards
            NotFoundError: a party does not exist
            NotOwnedError: a card is not held by the side it is listed under
            AlreadyOwnedError: a party already holds a card it would receive
        """
        if sender_id == receiver_id:
            raise InvalidPartiesError("Cannot trade with yourself")

        sender_card_ids = _unique(sender_card_ids)
        receiver_card_ids = _unique(receiver_card_ids)
        if not sender_card_ids or not receiver_card_ids:
            raise EmptyOfferError("Both sides of a trade must include at least one card")

        sender = await self.ledger.get_user(sender_id)
        receiver = await self.ledger.get_user(receiver_id)

        await self._require_held(sender_id, sender_card_ids, NotOwnedError, "You do not own")
        await self._require_held(
            receiver_id, receiver_card_ids, NotOwnedError, "Receiver does not own"
        )
        await self._require_not_held(receiver_id, sender_card_ids, "Receiver already owns")
        await self._require_not_held(sender_id, receiver_card_ids, "You already own")

        result = await self.db.execute(
            select(Card).where(Card.id.in_(sender_card_ids + receiver_card_ids))
        )
        cards = {card.id: card for card in result.scalars()}

        now = now or utc_now()
        async with savepoint(self.db, "trade_create"):
            trade = Trade(
                sender=sender,
                receiver=receiver,
                status=TradeStatus.PENDING,
                created_at=now,
            )
            trade.cards = [
                TradeCard(card=cards[card_id], owner_type=TradeSide.SENDER)
                for card_id in sender_card_ids
            ] + [
                TradeCard(card=cards[card_id], owner_type=TradeSide.RECEIVER)
                for card_id in receiver_card_ids
            ]
            self.db.add(trade)
            await self.db.flush()

        logger.info(
            "trade_created",
            trade_id=trade.id,
            sender_id=sender_id,
            receiver_id=receiver_id,
            sender_cards=len(sender_card_ids),
            receiver_cards=len(receiver_card_ids),
        )
        return trade

    async def _require_held(
        self,
        user_id: int,
        card_ids: list[int],
        error: type[NotOwnedError] | type[OwnershipMismatchError],
        message: str,
    ) -> None:
        held = await self.ledger.owned_card_ids(user_id, card_ids)
        missing = [cid for cid in card_ids if cid not in held]
        if missing:
            raise error(f"{message} card(s): {', '.join(map(str, missing))}")

    async def _require_not_held(self, user_id: int, card_ids: list[int], message: str) -> None:
        held = await self.ledger.owned_card_ids(user_id, card_ids)
        if held:
            raise AlreadyOwnedError(f"{message} card(s): {', '.join(map(str, sorted(held)))}")

    async def get_trade(self, trade_id: int) -> Trade:
        trade = await self.db.get(Trade, trade_id)
        if trade is None:
            raise NotFoundError(f"Trade {trade_id} not found")
        return trade

    async def get_trade_for(self, trade_id: int, viewer_id: int) -> Trade:
        """Fetch a trade, visible only to its two parties."""
        trade = await self.get_trade(trade_id)
        if viewer_id not in (trade.sender_id, trade.receiver_id):
            raise ForbiddenError("You are not a party to this trade")
        return trade

    async def _cards_still_held(self, trade: Trade) -> bool:
        sender_ids = [tc.card_id for tc in trade.sender_cards]
        receiver_ids = [tc.card_id for tc in trade.receiver_cards]
        sender_held = await self.ledger.owned_card_ids(trade.sender_id, sender_ids)
        if len(sender_held) != len(set(sender_ids)):
            return False
        receiver_held = await self.ledger.owned_card_ids(trade.receiver_id, receiver_ids)
        return len(receiver_held) == len(set(receiver_ids))

    @staticmethod
    def is_time_expired(trade: Trade, now: datetime) -> bool:
        return ensure_utc(now) >= trade.expires_at

    async def evaluate_status(self, trade: Trade, now: datetime | None = None) -> TradeStatus:
        """
        Status a trade should be presented with at `now`.

        Read-only. A pending trade reads as expired once its window has
        passed or once any listed card has left its declared holder.
        """
        status = TradeStatus(trade.status)
        if status.is_terminal:
            return status

        if self.is_time_expired(trade, now or utc_now()):
            return TradeStatus.EXPIRED
        if not await self._cards_still_held(trade):
            return TradeStatus.EXPIRED
        return TradeStatus.PENDING

    async def _flip_status(self, trade: Trade, new_status: TradeStatus, action: str) -> None:
        """Move a trade out of pending; loses cleanly to a concurrent flip."""
        result = await self.db.execute(
            update(Trade)
            .where(Trade.id == trade.id, Trade.status == TradeStatus.PENDING)
            .values(status=new_status)
            .execution_options(synchronize_session="evaluate")
        )
        if result.rowcount != 1:  # type: ignore[attr-defined]
            await self.db.refresh(trade, ["status"])
            raise InvalidTransitionError(TradeStatus(trade.status).value, action)

    async def accept(
        self,
        trade_id: int,
        acting_user_id: int,
        now: datetime | None = None,
    ) -> Trade:
        """
        Accept a trade as its receiver.

        Every precondition is checked before any card moves. The status
        flip and all transfers then run inside one savepoint, so either
        every card changes hands or none does.

        Raises:
            ForbiddenError: acting user is not the receiver
            InvalidTransitionError: trade is no longer pending (incl. time expiry)
            OwnershipMismatchError: a listed card moved since the offer was made
            AlreadyOwnedError: a party already holds a card it would receive
            CollectionFullError: the swap would push a party over the ceiling
        """
        now = now or utc_now()
        trade = await self.get_trade(trade_id)

        if acting_user_id != trade.receiver_id:
            raise ForbiddenError("Only the receiver can accept this trade")

        status = TradeStatus(trade.status)
        if status.is_terminal:
            raise InvalidTransitionError(status.value, "accept")
        if self.is_time_expired(trade, now):
            raise InvalidTransitionError(TradeStatus.EXPIRED.value, "accept")

        sender_cards = [tc.card for tc in trade.sender_cards]
        receiver_cards = [tc.card for tc in trade.receiver_cards]
        sender_ids = [c.id for c in sender_cards]
        receiver_ids = [c.id for c in receiver_cards]

        # Trade stays pending on a mismatch; a later read reports it expired
        await self._require_held(
            trade.sender_id, sender_ids, OwnershipMismatchError, "Sender no longer owns"
        )
        await self._require_held(
            trade.receiver_id, receiver_ids, OwnershipMismatchError, "You no longer own"
        )
        await self._require_not_held(trade.receiver_id, sender_ids, "You already own")
        await self._require_not_held(trade.sender_id, receiver_ids, "Sender already owns")

        sender = await self.ledger.get_user(trade.sender_id)
        receiver = await self.ledger.get_user(trade.receiver_id)
        net_to_receiver = len(sender_ids) - len(receiver_ids)
        if await self.ledger.card_count(receiver.id) + net_to_receiver > MAX_CARDS_PER_USER:
            raise CollectionFullError("Accepting would exceed your collection limit")
        if await self.ledger.card_count(sender.id) - net_to_receiver > MAX_CARDS_PER_USER:
            raise CollectionFullError("Accepting would exceed the sender's collection limit")

        sent_momentum = sum(c.momentum for c in sender_cards)
        received_momentum = sum(c.momentum for c in receiver_cards)
        sent_energy = sum(calculate_energy(c.momentum, c.created_at, now) for c in sender_cards)
        received_energy = sum(
            calculate_energy(c.momentum, c.created_at, now) for c in receiver_cards
        )

        async with savepoint(self.db, "trade_accept"):
            await self._flip_status(trade, TradeStatus.ACCEPTED, "accept")

            for card_id in sender_ids:
                await self.ledger.transfer_ownership(
                    card_id, trade.sender_id, trade.receiver_id, AcquiredVia.TRADE, now
                )
            for card_id in receiver_ids:
                await self.ledger.transfer_ownership(
                    card_id, trade.receiver_id, trade.sender_id, AcquiredVia.TRADE, now
                )

            self.ledger.apply_deltas(
                sender,
                energy=received_energy - sent_energy,
                momentum=received_momentum - sent_momentum,
                cards=-net_to_receiver,
                trades=1,
            )
            self.ledger.apply_deltas(
                receiver,
                energy=sent_energy - received_energy,
                momentum=sent_momentum - received_momentum,
                cards=net_to_receiver,
                trades=1,
            )
            await self.ledger.flush_aggregates(trade.sender_id, "trade_accept")
            await self.ledger.flush_aggregates(trade.receiver_id, "trade_accept")

        logger.info(
            "trade_accepted",
            trade_id=trade.id,
            sender_id=trade.sender_id,
            receiver_id=trade.receiver_id,
            sender_momentum_delta=received_momentum - sent_momentum,
        )
        return trade

    async def decline(
        self,
        trade_id: int,
        acting_user_id: int,
        now: datetime | None = None,
    ) -> Trade:
        """Decline a pending trade as its receiver. No cards move."""
        trade = await self.get_trade(trade_id)

        if acting_user_id != trade.receiver_id:
            raise ForbiddenError("Only the receiver can decline this trade")

        status = await self.evaluate_status(trade, now)
        if status != TradeStatus.PENDING:
            raise InvalidTransitionError(status.value, "decline")

        await self._flip_status(trade, TradeStatus.DECLINED, "decline")

        logger.info(
            "trade_declined",
            trade_id=trade.id,
            sender_id=trade.sender_id,
            receiver_id=trade.receiver_id,
        )
        return trade

    async def list_trades(
        self,
        user_id: int,
        direction: TradeDirection = "all",
        now: datetime | None = None,
        limit: int | None = None,
    ) -> list[tuple[Trade, TradeStatus]]:
        """
        Trades involving a user, newest first, each with its evaluated status.
        """
        now = now or utc_now()
        query = select(Trade)
        if direction == "sent":
            query = query.where(Trade.sender_id == user_id)
        elif direction == "received":
            query = query.where(Trade.receiver_id == user_id)
        else:
            query = query.where(or_(Trade.sender_id == user_id, Trade.receiver_id == user_id))
        query = query.order_by(Trade.created_at.desc(), Trade.id.desc())
        if limit is not None:
            query = query.limit(limit)

        result = await self.db.execute(query)
        trades = list(result.unique().scalars().all())
        return [(trade, await self.evaluate_status(trade, now)) for trade in trades]
