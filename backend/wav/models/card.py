"""
Card model: a song template backed by the track catalog.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    String,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from wav.core.utils import utc_now
from wav.db.base import Base


class Card(Base):
    """
    A music card.

    momentum is fixed at insert and created_at anchors the card's energy
    clock; energy itself is never stored. Catalog templates are unique per
    external track id. Game winnings are minted as separate rows
    (is_minted=True) that may repeat a track id.
    """

    __tablename__ = "cards"
    __table_args__ = (
        CheckConstraint("momentum >= 1 AND momentum <= 100", name="ck_cards_momentum_range"),
        Index(
            "uq_cards_template_track",
            "external_track_id",
            unique=True,
            postgresql_where=text("is_minted = false"),
            sqlite_where=text("is_minted = 0"),
        ),
    )

    external_track_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    is_minted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Display metadata
    song_name: Mapped[str] = mapped_column(String(255), nullable=False)
    artist_name: Mapped[str] = mapped_column(String(500), nullable=False)
    album_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    album_art_url: Mapped[str] = mapped_column(String(500), default="", nullable=False)
    preview_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Stats
    momentum: Mapped[int] = mapped_column(Integer, nullable=False)
    bpm: Mapped[int] = mapped_column(Integer, default=120, nullable=False)
    genre: Mapped[str] = mapped_column(String(50), default="mixed", nullable=False)
    popularity: Mapped[int] = mapped_column(Integer, default=50, nullable=False)

    # Energy anchor; set from the application clock so accrual is testable
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Card id={self.id} track={self.external_track_id} momentum={self.momentum}>"
