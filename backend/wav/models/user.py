"""
User profile model.

Identity lives with the external auth provider; this row carries the
game profile and the cached collection aggregates.
"""
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, CheckConstraint, DateTime, Enum as SQLEnum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, validates

from wav.core.constants import Privacy
from wav.db.base import Base


class User(Base):
    """
    A player profile.

    total_energy, total_momentum and cards_collected are a cache over the
    owned-card detail set. CollectionLedger.recompute_aggregates is the
    reconciliation path; incremental updates clamp at zero.
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("total_energy >= 0", name="ck_users_total_energy_nonneg"),
        CheckConstraint("total_momentum >= 0", name="ck_users_total_momentum_nonneg"),
        CheckConstraint("cards_collected >= 0", name="ck_users_cards_collected_nonneg"),
    )

    username: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        index=True
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True
    )
    avatar_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Cached aggregates
    total_energy: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_momentum: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    cards_collected: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    trades_completed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Privacy
    deck_privacy: Mapped[str] = mapped_column(
        SQLEnum(Privacy, native_enum=False, length=10),
        default=Privacy.PUBLIC,
        nullable=False,
    )
    trade_privacy: Mapped[str] = mapped_column(
        SQLEnum(Privacy, native_enum=False, length=10),
        default=Privacy.PUBLIC,
        nullable=False,
    )

    # Cooldown gate for unboxing
    last_unbox_time: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )

    # Catalog preferences, consumed only by the catalog client
    top_genres: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    top_artists: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)

    @validates("username", "email")
    def _casefold(self, key: str, value: str) -> str:
        return value.strip().lower()

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username}>"
