"""
Card acquisition service.

Handles:
- Cooldown-gated unboxing of a single catalog track
- Card resolution (template reuse vs. fresh mint)
- Batch claims from mini-games, truncated at the collection ceiling
"""
import math
import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from wav.core.constants import (
    UNBOX_COOLDOWN_SECONDS,
    WHEEL_SIZE,
    AcquiredVia,
    CardMintPolicy,
)
from wav.core.exceptions import (
    AlreadyOwnedError,
    CollectionFullError,
    CooldownActiveError,
    InvalidCategoryError,
    NotFoundError,
    ProviderUnavailableError,
)
from wav.core.utils import ensure_utc, utc_now
from wav.db.transaction import savepoint
from wav.models.card import Card
from wav.models.unboxing import Unboxing
from wav.models.user import User
from wav.services.catalog.base import AVAILABLE_GENRES, TrackCatalog, TrackSelection
from wav.services.catalog.stats import to_selection
from wav.services.ledger import CollectionLedger

logger = get_logger()

COOLDOWN = timedelta(seconds=UNBOX_COOLDOWN_SECONDS)


def normalize_category(category: str) -> str:
    """Lower-case a requested genre, rejecting ones the catalog cannot draw from."""
    genre = category.strip().lower()
    if genre not in AVAILABLE_GENRES:
        raise InvalidCategoryError(category, AVAILABLE_GENRES)
    return genre


async def deal_wheel(
    catalog: TrackCatalog,
    size: int = WHEEL_SIZE,
    rng: random.Random | None = None,
) -> list[TrackSelection]:
    """Random catalog tracks with derived stats for the unbox wheel to land on."""
    tracks = await catalog.random_tracks(size)
    if not tracks:
        raise ProviderUnavailableError("No tracks available for the wheel")
    return [to_selection(track, genre="mixed", rng=rng) for track in tracks]


@dataclass(frozen=True)
class CooldownStatus:
    can_unbox: bool
    remaining_ms: int = 0
    next_unbox_time: datetime | None = None


@dataclass
class ClaimResult:
    """Outcome of a batch claim. Fewer added than requested is not an error."""
    added_card_ids: list[int] = field(default_factory=list)
    skipped: int = 0


class CardAcquisition:
    """Grants cards to users via unboxing and game claims."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.ledger = CollectionLedger(db)

    def _cooldown_for(self, user: User, now: datetime) -> CooldownStatus:
        if user.last_unbox_time is None:
            return CooldownStatus(can_unbox=True)

        next_unbox_time = ensure_utc(user.last_unbox_time) + COOLDOWN
        remaining = (next_unbox_time - ensure_utc(now)).total_seconds()
        if remaining <= 0:
            return CooldownStatus(can_unbox=True)

        return CooldownStatus(
            can_unbox=False,
            remaining_ms=math.ceil(remaining * 1000),
            next_unbox_time=next_unbox_time,
        )

    async def cooldown_status(self, user_id: int, now: datetime | None = None) -> CooldownStatus:
        user = await self.ledger.get_user(user_id)
        return self._cooldown_for(user, now or utc_now())

    async def _check_can_unbox(self, user_id: int, now: datetime) -> User:
        user = await self.ledger.get_user(user_id)

        status = self._cooldown_for(user, now)
        if not status.can_unbox:
            raise CooldownActiveError(status.remaining_ms, status.next_unbox_time)

        if not await self.ledger.can_acquire(user_id):
            raise CollectionFullError("Collection is full. Remove a card before unboxing more.")

        return user

    async def _claim_cooldown_slot(self, user: User, now: datetime) -> None:
        """
        Stamp last_unbox_time only if the cooldown window is still open.

        Two concurrent unboxes can both pass the read-side check; only one
        of them wins this conditional write.
        """
        result = await self.db.execute(
            update(User)
            .where(
                User.id == user.id,
                or_(
                    User.last_unbox_time.is_(None),
                    User.last_unbox_time <= now - COOLDOWN,
                ),
            )
            .values(last_unbox_time=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:  # type: ignore[attr-defined]
            await self.db.refresh(user)
            status = self._cooldown_for(user, now)
            raise CooldownActiveError(
                status.remaining_ms or UNBOX_COOLDOWN_SECONDS * 1000,
                status.next_unbox_time or now + COOLDOWN,
            )
        user.last_unbox_time = now

    async def resolve_card(
        self,
        selection: TrackSelection,
        policy: CardMintPolicy,
        now: datetime | None = None,
    ) -> tuple[Card, bool]:
        """
        Find or create the card row for a track.

        REUSE_TEMPLATE returns the existing catalog template for the
        external track id when there is one. MINT_FRESH always inserts a
        new row with its own energy clock.

        Returns:
            (card, is_new)
        """
        now = now or utc_now()

        if policy == CardMintPolicy.MINT_FRESH:
            card = self._build_card(selection, now, is_minted=True)
            self.db.add(card)
            await self.db.flush()
            return card, True

        existing = await self._find_template(selection.external_track_id)
        if existing is not None:
            return existing, False

        card = self._build_card(selection, now, is_minted=False)
        try:
            async with savepoint(self.db, "card_template_insert"):
                self.db.add(card)
                await self.db.flush()
        except IntegrityError:
            # Lost an insert race on the template index; use the winner's row
            existing = await self._find_template(selection.external_track_id)
            if existing is None:
                raise
            return existing, False
        return card, True

    async def _find_template(self, external_track_id: str) -> Card | None:
        result = await self.db.execute(
            select(Card).where(
                Card.external_track_id == external_track_id,
                Card.is_minted.is_(False),
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _build_card(selection: TrackSelection, now: datetime, *, is_minted: bool) -> Card:
        return Card(
            external_track_id=selection.external_track_id,
            is_minted=is_minted,
            song_name=selection.song_name,
            artist_name=selection.artist_name,
            album_name=selection.album_name,
            album_art_url=selection.album_art_url,
            preview_url=selection.preview_url,
            momentum=selection.momentum,
            bpm=selection.bpm,
            genre=selection.genre,
            popularity=selection.popularity,
            created_at=now,
        )

    async def unbox(
        self,
        user_id: int,
        selection: TrackSelection,
        category: str = "mixed",
        now: datetime | None = None,
    ) -> tuple[Card, bool]:
        """
        Unbox one card for a user.

        Raises:
            CooldownActiveError: within 30 seconds of the previous unbox
            CollectionFullError: user already holds the maximum
            AlreadyOwnedError: user already holds this track's template

        Returns:
            (card, is_new) where is_new reports whether the card row was
            created by this call
        """
        now = now or utc_now()
        user = await self._check_can_unbox(user_id, now)

        card, is_new = await self.resolve_card(selection, CardMintPolicy.REUSE_TEMPLATE, now)
        if not is_new and await self.ledger.owns_card(user_id, card.id):
            raise AlreadyOwnedError(f"You already own '{card.song_name}'")

        await self._claim_cooldown_slot(user, now)
        await self.ledger.add_ownership(user_id, card.id, AcquiredVia.UNBOX, now)

        # A fresh ownership holds no energy yet; only momentum and count move
        self.ledger.apply_deltas(user, momentum=card.momentum, cards=1)
        self.db.add(Unboxing(user_id=user_id, card_id=card.id, category=category))
        await self.ledger.flush_aggregates(user_id, "unbox")

        logger.info(
            "card_unboxed",
            user_id=user_id,
            card_id=card.id,
            external_track_id=card.external_track_id,
            momentum=card.momentum,
            is_new=is_new,
            category=category,
        )
        return card, is_new

    async def unbox_category(
        self,
        user_id: int,
        catalog: TrackCatalog,
        category: str,
        now: datetime | None = None,
        rng: random.Random | None = None,
    ) -> tuple[Card, bool]:
        """
        Unbox a random catalog track from a genre.

        Raises:
            InvalidCategoryError: genre is not one of AVAILABLE_GENRES
            NotFoundError: the catalog has no track for the genre
        """
        category = normalize_category(category)
        now = now or utc_now()
        # Fail on cooldown/ceiling before spending a catalog round trip
        await self._check_can_unbox(user_id, now)

        track = await catalog.random_track(category)
        if track is None:
            raise NotFoundError(f"No tracks found for category '{category}'")

        selection = to_selection(track, genre=category, rng=rng)
        return await self.unbox(user_id, selection, category=category, now=now)

    async def claim_batch(
        self,
        user_id: int,
        selections: list[TrackSelection],
        now: datetime | None = None,
    ) -> ClaimResult:
        """
        Grant game winnings, bypassing the cooldown.

        Every selection is minted as a new card row. The batch is truncated
        to the user's remaining slots and aggregate deltas are applied once.
        """
        now = now or utc_now()
        user = await self.ledger.get_user(user_id)
        slots = await self.ledger.remaining_slots(user_id)

        accepted = selections[:slots]
        result = ClaimResult(skipped=len(selections) - len(accepted))

        momentum_gained = 0
        for selection in accepted:
            card, _ = await self.resolve_card(selection, CardMintPolicy.MINT_FRESH, now)
            await self.ledger.add_ownership(user_id, card.id, AcquiredVia.BLACKJACK, now)
            result.added_card_ids.append(card.id)
            momentum_gained += card.momentum

        if result.added_card_ids:
            self.ledger.apply_deltas(user, momentum=momentum_gained, cards=len(result.added_card_ids))
            await self.ledger.flush_aggregates(user_id, "claim_batch")

        logger.info(
            "cards_claimed",
            user_id=user_id,
            requested=len(selections),
            added=len(result.added_card_ids),
            skipped=result.skipped,
        )
        return result
