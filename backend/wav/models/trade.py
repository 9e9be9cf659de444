"""
Trade offer models.

A trade is a sender's offer of some of their cards in exchange for some
of the receiver's cards. Expiry is derived on read, never swept.
"""
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wav.core.constants import TRADE_EXPIRY_HOURS, TradeSide, TradeStatus
from wav.core.utils import ensure_utc, utc_now
from wav.db.base import Base

if TYPE_CHECKING:
    from wav.models.card import Card
    from wav.models.user import User


class Trade(Base):
    """A trade offer between two users."""

    __tablename__ = "trades"
    __table_args__ = (
        CheckConstraint("sender_id <> receiver_id", name="ck_trades_distinct_parties"),
    )

    sender_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    receiver_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(
        SQLEnum(TradeStatus, native_enum=False, length=20),
        default=TradeStatus.PENDING,
        nullable=False,
        index=True,
    )

    # Anchors the expiry window
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False,
    )

    sender: Mapped["User"] = relationship("User", foreign_keys=[sender_id], lazy="joined")
    receiver: Mapped["User"] = relationship("User", foreign_keys=[receiver_id], lazy="joined")
    cards: Mapped[list["TradeCard"]] = relationship(
        "TradeCard",
        back_populates="trade",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Trade id={self.id} {self.sender_id}->{self.receiver_id} status={self.status}>"

    @property
    def expires_at(self) -> datetime:
        return ensure_utc(self.created_at) + timedelta(hours=TRADE_EXPIRY_HOURS)

    @property
    def sender_cards(self) -> list["TradeCard"]:
        """Cards the sender is offering."""
        return [tc for tc in self.cards if tc.owner_type == TradeSide.SENDER]

    @property
    def receiver_cards(self) -> list["TradeCard"]:
        """Cards requested from the receiver."""
        return [tc for tc in self.cards if tc.owner_type == TradeSide.RECEIVER]


class TradeCard(Base):
    """A card listed in a trade, tagged with the side that holds it."""

    __tablename__ = "trade_cards"
    __table_args__ = (
        UniqueConstraint("trade_id", "card_id", "owner_type", name="uq_trade_cards_trade_card_side"),
    )

    trade_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("trades.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    card_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("cards.id", ondelete="CASCADE"),
        nullable=False,
    )
    owner_type: Mapped[str] = mapped_column(
        SQLEnum(TradeSide, native_enum=False, length=20),
        nullable=False,
    )

    trade: Mapped["Trade"] = relationship("Trade", back_populates="cards")
    card: Mapped["Card"] = relationship("Card", lazy="joined")

    def __repr__(self) -> str:
        return f"<TradeCard trade={self.trade_id} card={self.card_id} side={self.owner_type}>"
