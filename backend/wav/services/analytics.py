"""
Collection analytics and daily stat history.

Today's snapshot is recorded lazily the first time analytics are read on
a given UTC date. Dates without a stored snapshot are reconstructed from
the cards the user holds now, evaluated at that date's end of day.
"""
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from wav.core.config import settings
from wav.core.constants import RECENT_TRADES_LIMIT, Privacy, TimeScale, TradeStatus
from wav.core.exceptions import ForbiddenError
from wav.core.utils import ensure_utc, utc_now
from wav.models.card import Card
from wav.models.daily_stat import UserDailyStat
from wav.models.trade import Trade
from wav.models.user import User
from wav.services.ledger import CollectionLedger
from wav.services.stat_clock import calculate_energy, calculate_energy_at_time
from wav.services.trades import TradeService

logger = get_logger()


@dataclass(frozen=True)
class HistoryPoint:
    stat_date: date
    energy: int
    momentum: int
    cards_count: int
    reconstructed: bool = False


@dataclass
class AnalyticsSummary:
    user: User
    is_owner: bool
    total_cards: int = 0
    total_energy: int = 0
    total_momentum: int = 0
    avg_bpm: int = 0
    genre_distribution: list[tuple[str, int]] = field(default_factory=list)
    recent_trades: list[tuple[Trade, TradeStatus]] = field(default_factory=list)


def end_of_day(day: date) -> datetime:
    """Last representable instant of a UTC calendar date."""
    return datetime.combine(day, time.max, tzinfo=timezone.utc)


class AnalyticsService:
    """Per-user analytics over owned cards and daily snapshots."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.ledger = CollectionLedger(db)

    async def ensure_today_stats(self, user_id: int, now: datetime | None = None) -> UserDailyStat:
        """
        Record (or refresh) today's snapshot for a user.

        Also writes the fresh totals onto the user row and prunes
        snapshots older than the retention window.
        """
        now = ensure_utc(now or utc_now())
        today = now.date()
        totals = await self.ledger.recompute_aggregates(user_id, now)

        result = await self.db.execute(
            select(UserDailyStat).where(
                UserDailyStat.user_id == user_id,
                UserDailyStat.stat_date == today,
            )
        )
        stat = result.scalar_one_or_none()
        if stat is None:
            stat = UserDailyStat(user_id=user_id, stat_date=today)
            self.db.add(stat)

        stat.energy = totals.energy
        stat.momentum = totals.momentum
        stat.cards_count = totals.cards

        cutoff = today - timedelta(days=settings.daily_stats_retention_days)
        await self.db.execute(
            delete(UserDailyStat)
            .where(
                UserDailyStat.user_id == user_id,
                UserDailyStat.stat_date < cutoff,
            )
            .execution_options(synchronize_session=False)
        )
        await self.db.flush()

        logger.info(
            "daily_stats_recorded",
            user_id=user_id,
            stat_date=today.isoformat(),
            energy=totals.energy,
            momentum=totals.momentum,
            cards=totals.cards,
        )
        return stat

    async def get_daily_stats(self, user_id: int, start: date, end: date) -> list[UserDailyStat]:
        result = await self.db.execute(
            select(UserDailyStat)
            .where(
                UserDailyStat.user_id == user_id,
                UserDailyStat.stat_date >= start,
                UserDailyStat.stat_date <= end,
            )
            .order_by(UserDailyStat.stat_date)
        )
        return list(result.scalars().all())

    async def history(
        self,
        user_id: int,
        time_scale: TimeScale = TimeScale.WEEK,
        now: datetime | None = None,
        viewer_id: int | None = None,
    ) -> list[HistoryPoint]:
        """
        One point per date for the last time_scale.days days, oldest first.

        Raises:
            ForbiddenError: deck is private and viewer is not the owner
        """
        now = ensure_utc(now or utc_now())
        user = await self.ledger.get_user(user_id)
        if user.deck_privacy == Privacy.PRIVATE and viewer_id != user_id:
            raise ForbiddenError("This user's analytics are private")

        await self.ensure_today_stats(user_id, now)

        today = now.date()
        start = today - timedelta(days=time_scale.days - 1)
        stored = {s.stat_date: s for s in await self.get_daily_stats(user_id, start, today)}

        cards: list[Card] | None = None
        points = []
        for offset in range(time_scale.days):
            day = start + timedelta(days=offset)
            snapshot = stored.get(day)
            if snapshot is not None:
                points.append(HistoryPoint(
                    stat_date=day,
                    energy=snapshot.energy,
                    momentum=snapshot.momentum,
                    cards_count=snapshot.cards_count,
                ))
                continue

            if cards is None:
                cards = [card for card, _ in await self.ledger.list_owned_cards(user_id)]
            points.append(self._reconstruct(day, cards))
        return points

    @staticmethod
    def _reconstruct(day: date, cards: list[Card]) -> HistoryPoint:
        """Estimate a past date from today's cards; later cards count as absent."""
        at = end_of_day(day)
        existing = [c for c in cards if ensure_utc(c.created_at) <= at]
        return HistoryPoint(
            stat_date=day,
            energy=sum(calculate_energy_at_time(c.momentum, c.created_at, at) for c in existing),
            momentum=sum(c.momentum for c in existing),
            cards_count=len(existing),
            reconstructed=True,
        )

    async def user_analytics(
        self,
        user_id: int,
        viewer_id: int | None = None,
        now: datetime | None = None,
    ) -> AnalyticsSummary:
        now = now or utc_now()
        user = await self.ledger.get_user(user_id)
        is_owner = viewer_id == user_id

        await self.ensure_today_stats(user_id, now)

        summary = AnalyticsSummary(user=user, is_owner=is_owner)
        genres: Counter[str] = Counter()
        total_bpm = 0
        async for card, _ in self.ledger.owned_cards(user_id):
            summary.total_cards += 1
            summary.total_energy += calculate_energy(card.momentum, card.created_at, now)
            summary.total_momentum += card.momentum
            total_bpm += card.bpm
            genres[card.genre or "unknown"] += 1

        if summary.total_cards:
            summary.avg_bpm = round(total_bpm / summary.total_cards)
        summary.genre_distribution = genres.most_common()

        if user.trade_privacy == Privacy.PUBLIC or is_owner:
            summary.recent_trades = await TradeService(self.db).list_trades(
                user_id, "all", now, limit=RECENT_TRADES_LIMIT
            )
        return summary
