"""
Ownership join between users and cards.
"""
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Enum as SQLEnum, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wav.core.constants import AcquiredVia
from wav.core.utils import utc_now
from wav.db.base import Base

if TYPE_CHECKING:
    from wav.models.card import Card


class UserCard(Base):
    """
    One user's hold on one card.

    Energy is derived from the card, never stored here. A trade moves the
    row to the new holder rather than creating a second one.
    """

    __tablename__ = "user_cards"
    __table_args__ = (
        UniqueConstraint("user_id", "card_id", name="uq_user_cards_user_card"),
    )

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    card_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("cards.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    acquired_via: Mapped[str] = mapped_column(
        SQLEnum(AcquiredVia, native_enum=False, length=20),
        nullable=False,
    )
    acquired_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )

    card: Mapped["Card"] = relationship("Card", lazy="joined")

    def __repr__(self) -> str:
        return f"<UserCard user={self.user_id} card={self.card_id} via={self.acquired_via}>"
