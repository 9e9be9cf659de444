"""Daily snapshot of a user's collection stats."""
from datetime import date

from sqlalchemy import Date, ForeignKey, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column

from wav.db.base import Base


class UserDailyStat(Base):
    """One row per user per calendar date (UTC)."""

    __tablename__ = "user_daily_stats"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    stat_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    energy: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    momentum: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cards_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("ix_user_daily_stats_user_date", "user_id", "stat_date", unique=True),
    )

    def __repr__(self) -> str:
        return f"<UserDailyStat user={self.user_id} date={self.stat_date} energy={self.energy}>"
