"""
Energy leaderboard.

User rankings are computed from live energy: every user's aggregates are
recomputed before sorting, so this is O(users x cards) per call. Card
rankings count current owners.
"""
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from wav.core.utils import utc_now
from wav.models.card import Card
from wav.models.user import User
from wav.models.user_card import UserCard
from wav.services.ledger import CollectionLedger

logger = get_logger()


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    user: User


@dataclass(frozen=True)
class TopCard:
    card: Card
    num_owned: int


class LeaderboardAggregator:
    """Ranks users by live total energy."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.ledger = CollectionLedger(db)

    async def top_by_energy(self, limit: int = 10, now: datetime | None = None) -> list[LeaderboardEntry]:
        now = now or utc_now()

        result = await self.db.execute(select(User).order_by(User.id))
        users = list(result.scalars().all())

        for user in users:
            await self.ledger.recompute_aggregates(user.id, now)

        # Ties break toward the earlier account
        ranked = sorted(users, key=lambda u: (-u.total_energy, u.id))[: max(0, limit)]

        logger.debug("leaderboard_computed", users=len(users), limit=limit)
        return [LeaderboardEntry(rank=i + 1, user=user) for i, user in enumerate(ranked)]

    async def top_cards(self, limit: int = 10) -> list[TopCard]:
        """Cards with the most current owners; ties go to the older card."""
        num_owned = func.count(UserCard.id).label("num_owned")
        result = await self.db.execute(
            select(Card, num_owned)
            .join(UserCard, UserCard.card_id == Card.id)
            .group_by(Card.id)
            .order_by(num_owned.desc(), Card.id)
            .limit(max(0, limit))
        )
        return [TopCard(card=card, num_owned=count) for card, count in result.all()]
