"""Unboxing history."""
from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from wav.db.base import Base


class Unboxing(Base):
    """Record of a single unbox: who got which card from which category."""

    __tablename__ = "unboxings"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    card_id: Mapped[int] = mapped_column(
        ForeignKey("cards.id", ondelete="CASCADE"),
        nullable=False,
    )
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="mixed")

    def __repr__(self) -> str:
        return f"<Unboxing user={self.user_id} card={self.card_id} category={self.category}>"
